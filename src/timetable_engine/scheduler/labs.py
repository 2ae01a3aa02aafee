"""Lab scheduling: synchronized 2-slot blocks for every batch of a division."""

import logging
from dataclasses import dataclass, field
from typing import Any

from ..constants import LAB_BLOCK_LENGTH
from ..models import (
    ConflictRecord,
    Day,
    Division,
    LabSession,
    Resource,
    TimeGrid,
    UnscheduledLab,
    UnscheduledReason,
)
from .allocation import (
    AllocationContext,
    AllocationStrategy,
    DivisionPlacement,
    HeuristicAllocation,
)
from .availability import AvailabilityTracker
from .blocks import find_available_blocks
from .progress import ProgressMap
from .restrictions import RestrictionFilter

logger = logging.getLogger(__name__)


@dataclass
class LabScheduleResult:
    """Output of the lab phase."""

    sessions: list[LabSession] = field(default_factory=list)
    unscheduled: list[UnscheduledLab] = field(default_factory=list)
    conflicts: list[ConflictRecord] = field(default_factory=list)
    resolution_log: list[dict[str, Any]] = field(default_factory=list)
    progress: ProgressMap = field(default_factory=ProgressMap)
    metrics: dict[str, int] = field(default_factory=dict)


class LabScheduler:
    """
    Day-by-day lab scheduler.

    For each scheduling day the divisions that still have lab hours left are
    mapped onto the day's 2-hour blocks by an allocation strategy, and the
    accepted placements are committed: occupancy is reserved, progress is
    advanced by min(2, remaining) hours and a session is emitted per batch.

    Teacher and lab occupancy is reset at the start of every day. Whatever
    remains after the last day is reported as unscheduled.
    """

    def __init__(
        self,
        time_grid: TimeGrid,
        labs: list[Resource],
        restriction_filter: RestrictionFilter,
        strategy: AllocationStrategy | None = None,
        days: list[Day] | None = None,
        allow_teacher_conflicts: bool = False,
    ):
        """
        Initialize the lab scheduler.

        Args:
            time_grid: The resolved daily slot table
            labs: Active laboratory resources
            restriction_filter: Restriction lookups for this run
            strategy: Division-to-block allocation strategy (heuristic by default)
            days: Days to schedule, in order (Monday..Friday by default)
            allow_teacher_conflicts: Permit degraded teacher-conflicting assignments
        """
        self.time_grid = time_grid
        self.labs = labs
        self.restriction_filter = restriction_filter
        self.strategy = strategy or HeuristicAllocation()
        self.days = days or [
            Day.MONDAY, Day.TUESDAY, Day.WEDNESDAY, Day.THURSDAY, Day.FRIDAY
        ]
        self.allow_teacher_conflicts = allow_teacher_conflicts

    def schedule(
        self,
        divisions: list[Division],
        progress: ProgressMap,
        run_id: str = "",
    ) -> LabScheduleResult:
        """
        Schedule lab sessions for the week.

        Args:
            divisions: All divisions of the run
            progress: Progress map seeded from lab requirements; updated in place
            run_id: Run identifier stamped on every session

        Returns:
            LabScheduleResult with sessions, unscheduled entries and metrics
        """
        result = LabScheduleResult(progress=progress)
        tracker = AvailabilityTracker()
        days_used = 0
        divisions_scheduled: set[str] = set()

        if not self.labs and len(progress):
            logger.warning("No laboratories available; all lab hours stay unscheduled")

        for day in self.days:
            tracker.clear()

            candidates = [
                d for d in divisions if progress.has_remaining(d.batch_names)
            ]
            if not candidates:
                logger.info(f"All lab requirements completed before {day.value}")
                break

            blocks = find_available_blocks(
                day,
                self.time_grid,
                self.restriction_filter,
                [d.academic_year for d in candidates],
            )
            if not blocks or not self.labs:
                logger.info(f"{day.value}: no usable lab block, day skipped")
                continue

            context = AllocationContext(
                day=day,
                progress=progress,
                labs=self.labs,
                tracker=tracker,
                restriction_filter=self.restriction_filter,
                allow_teacher_conflicts=self.allow_teacher_conflicts,
            )
            allocation = self.strategy.allocate(context, candidates, blocks)

            day_sessions = 0
            for placement in allocation.placements:
                day_sessions += self._commit(placement, day, tracker, result, run_id)
                divisions_scheduled.add(placement.division.name)

            for division_name, reason in allocation.unplaced:
                result.conflicts.append(
                    ConflictRecord(
                        kind="division_unplaced",
                        details=f"{division_name} not scheduled on {day.value}: {reason}",
                        day=day,
                        resource=division_name,
                    )
                )

            if day_sessions:
                days_used += 1
            logger.info(
                f"{day.value}: {day_sessions} lab sessions for "
                f"{len(allocation.placements)}/{len(candidates)} divisions"
            )

        for entry in progress:
            if entry.remaining_hours > 0:
                result.unscheduled.append(
                    UnscheduledLab(
                        division=entry.division,
                        batch=entry.owner,
                        subject=entry.subject,
                        teacher=entry.teacher,
                        required_hours=entry.total_hours,
                        completed_hours=entry.completed_hours,
                        reason=UnscheduledReason.NO_LAB_BLOCK,
                    )
                )

        if result.unscheduled:
            logger.warning(
                f"{len(result.unscheduled)} batch-subjects left with unscheduled lab hours"
            )

        result.metrics = {
            "sessionsScheduled": len(result.sessions),
            "divisionsScheduled": len(divisions_scheduled),
            "conflictsFound": len(result.conflicts),
            "daysUsed": days_used,
        }
        return result

    def _commit(
        self,
        placement: DivisionPlacement,
        day: Day,
        tracker: AvailabilityTracker,
        result: LabScheduleResult,
        run_id: str,
    ) -> int:
        """Reserve, record progress and emit sessions for one accepted placement."""
        block = placement.block
        division = placement.division
        labels = []

        for assignment in placement.assignments:
            session = LabSession(
                day=day,
                start_slot=block.start_slot,
                end_slot=block.end_slot,
                division=division.name,
                batch=assignment.batch,
                subject=assignment.subject,
                teacher=assignment.teacher,
                lab_id=assignment.lab_id,
                run_id=run_id,
                teacher_conflict=assignment.teacher_conflict,
            )
            tracker.reserve(
                day,
                block.slots,
                teacher_id=assignment.teacher.id,
                room=assignment.lab_id,
                division=division.name,
                batch=assignment.batch,
                label=session.formatted,
            )
            result.progress.record(assignment.batch, assignment.subject, LAB_BLOCK_LENGTH)
            result.sessions.append(session)
            labels.append(session.formatted)

            if assignment.teacher_conflict:
                result.conflicts.append(
                    ConflictRecord(
                        kind="teacher_conflict",
                        details=(
                            f"{assignment.teacher.display_name} double-booked for "
                            f"{assignment.batch} {assignment.subject} at {block}"
                        ),
                        day=day,
                        slot=block.start_slot,
                        resource=assignment.teacher.id,
                    )
                )

        missing = [
            b for b in division.batch_names
            if b not in {a.batch for a in placement.assignments}
            and result.progress.pending_for_owner(b)
        ]
        if missing:
            result.conflicts.append(
                ConflictRecord(
                    kind="partial_division",
                    details=(
                        f"{division.name} at {block}: no assignment for "
                        f"{', '.join(missing)}"
                    ),
                    day=day,
                    slot=block.start_slot,
                    resource=division.name,
                )
            )

        result.resolution_log.append(
            {
                "division": division.name,
                "day": day.value,
                "block": str(block),
                "timeRange": block.time_range,
                "assignments": labels,
            }
        )
        logger.debug(f"Committed {division.name} on {day.value} {block}: {labels}")
        return len(placement.assignments)
