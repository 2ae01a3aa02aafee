"""Lecture scheduling with lab precedence and day rotation."""

import logging
from collections.abc import Iterable
from dataclasses import dataclass, field
from typing import Any

from ..constants import ROTATION_ATTEMPT_FACTOR
from ..models import (
    Day,
    Division,
    LabSession,
    LectureRequirement,
    LectureSession,
    Resource,
    SubjectKind,
    TeacherRef,
    TimeGrid,
    UnscheduledLecture,
    UnscheduledReason,
)
from .availability import AvailabilityTracker
from .restrictions import RestrictionFilter
from .rotation import DayRotationPolicy, SharedDayRotation

logger = logging.getLogger(__name__)

# Theory before value-added within a division
KIND_ORDER = {SubjectKind.THEORY: 0, SubjectKind.VALUE_ADDED: 1}


@dataclass
class LectureScheduleResult:
    """Output of the lecture phase."""

    sessions: list[LectureSession] = field(default_factory=list)
    unscheduled: list[UnscheduledLecture] = field(default_factory=list)
    skipped_lab_sessions: int = 0
    elective_bookings: dict[tuple[str, Day, int], set[str]] = field(default_factory=dict)


@dataclass
class _Attempt:
    """Running state of one subject while it is being placed."""

    requirement: LectureRequirement
    division: Division
    scheduled: int = 0
    days_used: set[Day] = field(default_factory=set)
    no_classroom_slots: set[tuple[Day, int]] = field(default_factory=set)
    relaxed: bool = False

    @property
    def complete(self) -> bool:
        return self.scheduled >= self.requirement.hours_per_week


class LectureScheduler:
    """
    Places 1-slot lectures around the committed lab schedule.

    Every slot a lab spans is pre-marked busy for its division and teacher.
    Subjects are then placed division by division with a rotating day pointer
    and a one-lecture-per-subject-per-day rule. An optional relaxed pass
    retries shortfalls without the daily rule.
    """

    def __init__(
        self,
        time_grid: TimeGrid,
        classrooms: list[Resource],
        restriction_filter: RestrictionFilter,
        rotation: DayRotationPolicy | None = None,
        days: list[Day] | None = None,
        relax_daily_subject_limit: bool = False,
    ):
        self.time_grid = time_grid
        self.classrooms = classrooms
        self.restriction_filter = restriction_filter
        self.days = days or [
            Day.MONDAY, Day.TUESDAY, Day.WEDNESDAY, Day.THURSDAY, Day.FRIDAY
        ]
        self.rotation = rotation or SharedDayRotation(self.days)
        self.relax_daily_subject_limit = relax_daily_subject_limit

        self.tracker = AvailabilityTracker()
        self.global_blocked: set[tuple[Day, int]] = set()
        self.elective_bookings: dict[tuple[str, Day, int], set[str]] = {}

    def schedule(
        self,
        divisions: list[Division],
        requirements: list[LectureRequirement],
        lab_sessions: Iterable[LabSession | dict[str, Any]],
        run_id: str = "",
    ) -> LectureScheduleResult:
        """
        Schedule lectures for all divisions.

        Args:
            divisions: All divisions of the run
            requirements: Division-level lecture requirements
            lab_sessions: Committed lab sessions (objects or serialized dicts)
            run_id: Run identifier stamped on every session

        Returns:
            LectureScheduleResult with sessions and unscheduled entries
        """
        self.tracker = AvailabilityTracker()
        result = LectureScheduleResult()

        self.global_blocked = self.restriction_filter.global_blocked_slots(
            self.days, self.time_grid.slot_numbers
        )
        result.skipped_lab_sessions = self._mark_lab_sessions(lab_sessions)
        self.elective_bookings = self._build_elective_bookings(divisions, requirements)
        result.elective_bookings = self.elective_bookings

        if not self.classrooms:
            logger.warning("No classrooms available; lectures cannot be placed")

        by_division: dict[str, list[LectureRequirement]] = {}
        for req in requirements:
            by_division.setdefault(req.division, []).append(req)

        pending: list[_Attempt] = []
        for division in divisions:
            division_reqs = [
                r for r in by_division.get(division.name, [])
                if r.kind != SubjectKind.ELECTIVE and r.hours_per_week > 0
            ]
            division_reqs.sort(key=lambda r: KIND_ORDER[r.kind])

            for req in division_reqs:
                attempt = _Attempt(requirement=req, division=division)
                self._place_rotating(attempt, result, run_id)
                if not attempt.complete:
                    pending.append(attempt)

        known = {d.name for d in divisions}
        for name in by_division:
            if name not in known:
                logger.warning(f"Lecture requirements for unknown division {name} ignored")

        if self.relax_daily_subject_limit and pending:
            logger.info(f"Relaxed pass for {len(pending)} incomplete subjects")
            for attempt in pending:
                self._place_relaxed(attempt, result, run_id)

        for attempt in pending:
            if attempt.complete:
                continue
            result.unscheduled.append(self._unscheduled(attempt))

        logger.info(
            f"Lectures: {len(result.sessions)} scheduled, "
            f"{len(result.unscheduled)} subjects short"
        )
        for entry in result.unscheduled:
            logger.warning(
                f"Unscheduled lecture: {entry.division} {entry.subject} "
                f"({entry.hours_scheduled}/{entry.hours_needed}) - {entry.reason.value}"
            )
        return result

    def _mark_lab_sessions(self, lab_sessions: Iterable[LabSession | dict[str, Any]]) -> int:
        """Pre-mark division and teacher occupancy for every lab slot.

        Returns:
            Number of malformed records skipped
        """
        skipped = 0
        marked = 0
        for raw in lab_sessions:
            parsed = self._parse_lab_session(raw)
            if parsed is None:
                logger.warning(f"Skipping invalid lab session: {raw!r}")
                skipped += 1
                continue
            division, day, start, end, teacher_id, subject = parsed
            self.tracker.reserve(
                day,
                range(start, end + 1),
                teacher_id=teacher_id,
                division=division,
                label=f"lab-{subject}",
            )
            marked += 1
        logger.info(f"Marked {marked} lab sessions as lecture exclusions")
        return skipped

    @staticmethod
    def _parse_lab_session(
        raw: LabSession | dict[str, Any],
    ) -> tuple[str, Day, int, int, str, str] | None:
        if isinstance(raw, LabSession):
            return (raw.division, raw.day, raw.start_slot, raw.end_slot,
                    raw.teacher.id, raw.subject)
        if not isinstance(raw, dict):
            return None

        division = raw.get("division")
        day = raw.get("day")
        start = raw.get("startSlot", raw.get("start_slot"))
        end = raw.get("endSlot", raw.get("end_slot"))
        teacher = raw.get("teacher")
        teacher_id = raw.get("teacherId", raw.get("teacher_id"))
        if teacher_id is None and teacher:
            teacher_id = TeacherRef.from_dict(teacher).id
        if not division or not day or not start or not end or not teacher_id:
            return None
        try:
            return (division, Day.parse(day), int(start), int(end), str(teacher_id),
                    raw.get("subject") or "Lab")
        except (TypeError, ValueError):
            return None

    def _build_elective_bookings(
        self,
        divisions: list[Division],
        requirements: list[LectureRequirement],
    ) -> dict[tuple[str, Day, int], set[str]]:
        """Map (teacher, day, slot) to the years whose elective slot holds the teacher."""
        year_of = {d.name: d.academic_year for d in divisions}
        teachers_by_year: dict[str, set[str]] = {}
        for req in requirements:
            year = year_of.get(req.division)
            if req.kind == SubjectKind.ELECTIVE and year:
                teachers_by_year.setdefault(year, set()).add(req.teacher.id)

        bookings: dict[tuple[str, Day, int], set[str]] = {}
        for year, teacher_ids in teachers_by_year.items():
            for restriction in self.restriction_filter.elective_restrictions_for_year(year):
                for day in self.days:
                    if not restriction.applies_to_day(day):
                        continue
                    for slot in restriction.time_slots:
                        for teacher_id in teacher_ids:
                            bookings.setdefault((teacher_id, day, slot), set()).add(year)

        if bookings:
            logger.info(f"Elective teacher bookings: {len(bookings)} teacher-slots held")
        return bookings

    def _is_slot_usable(
        self, attempt: _Attempt, day: Day, slot: int, strict: bool = True
    ) -> bool:
        division = attempt.division
        teacher_id = attempt.requirement.teacher.id

        if (day, slot) in self.global_blocked:
            return False
        if self.restriction_filter.is_blocked_for_year(day, slot, division.academic_year):
            return False
        if not self.tracker.is_division_available(division.name, day, slot):
            return False
        if not self.tracker.is_teacher_available(teacher_id, day, slot):
            return False
        if self.restriction_filter.is_teacher_blocked(teacher_id, day, slot):
            return False
        if (teacher_id, day, slot) in self.elective_bookings:
            return False
        if strict and day in attempt.days_used:
            return False
        return True

    def _find_classroom(self, day: Day, slot: int) -> Resource | None:
        for classroom in self.classrooms:
            if self.tracker.is_room_available(classroom.name, day, slot):
                return classroom
        return None

    def _try_day(
        self,
        attempt: _Attempt,
        day: Day,
        result: LectureScheduleResult,
        run_id: str,
        strict: bool = True,
    ) -> None:
        for slot in self.time_grid.slot_numbers:
            if attempt.complete:
                return
            if not self._is_slot_usable(attempt, day, slot, strict):
                continue
            classroom = self._find_classroom(day, slot)
            if classroom is None:
                attempt.no_classroom_slots.add((day, slot))
                continue
            self._commit(attempt, day, slot, classroom, result, run_id)

    def _place_rotating(
        self, attempt: _Attempt, result: LectureScheduleResult, run_id: str
    ) -> None:
        max_attempts = (
            len(self.days) * len(self.time_grid.slot_numbers) * ROTATION_ATTEMPT_FACTOR
        )
        self.rotation.start_subject()
        attempts = 0
        while not attempt.complete and attempts < max_attempts:
            self._try_day(attempt, self.rotation.current(), result, run_id)
            self.rotation.advance()
            attempts += 1

    def _place_relaxed(
        self, attempt: _Attempt, result: LectureScheduleResult, run_id: str
    ) -> None:
        for day in self.days:
            if attempt.complete:
                return
            self._try_day(attempt, day, result, run_id, strict=False)
        attempt.relaxed = True

    def _commit(
        self,
        attempt: _Attempt,
        day: Day,
        slot: int,
        classroom: Resource,
        result: LectureScheduleResult,
        run_id: str,
    ) -> None:
        req = attempt.requirement
        session = LectureSession(
            day=day,
            slot_number=slot,
            division=attempt.division.name,
            academic_year=attempt.division.academic_year,
            subject=req.subject,
            teacher=req.teacher,
            classroom_id=classroom.name,
            subject_kind=req.kind,
            run_id=run_id,
        )
        self.tracker.reserve(
            day,
            [slot],
            teacher_id=req.teacher.id,
            room=classroom.name,
            division=attempt.division.name,
            label=session.formatted,
        )
        attempt.scheduled += 1
        attempt.days_used.add(day)
        result.sessions.append(session)
        logger.debug(
            f"{attempt.division.name} {req.subject} -> {day.value} slot {slot} "
            f"({attempt.scheduled}/{req.hours_per_week})"
        )

    def _unscheduled(self, attempt: _Attempt) -> UnscheduledLecture:
        req = attempt.requirement
        shortfall = req.hours_per_week - attempt.scheduled
        if attempt.relaxed:
            classroom_losses = len(attempt.no_classroom_slots)
        else:
            # The strict pass loses at most one lecture per unused day
            classroom_losses = len(
                {day for day, _ in attempt.no_classroom_slots} - attempt.days_used
            )
        if classroom_losses and classroom_losses >= shortfall:
            reason = UnscheduledReason.NO_CLASSROOM
        elif attempt.relaxed:
            reason = UnscheduledReason.INSUFFICIENT_FREE_SLOTS_RELAXED
        else:
            reason = UnscheduledReason.INSUFFICIENT_FREE_SLOTS
        return UnscheduledLecture(
            division=attempt.division.name,
            subject=req.subject,
            teacher=req.teacher,
            hours_needed=req.hours_per_week,
            hours_scheduled=attempt.scheduled,
            reason=reason,
            no_classroom_skips=len(attempt.no_classroom_slots),
        )
