"""Data models for the timetable engine."""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any

from .constants import ALL_DAYS, year_code_for_label
from .exceptions import CapacityShortfallError


class Day(str, Enum):
    """Days of the academic week."""

    MONDAY = "Monday"
    TUESDAY = "Tuesday"
    WEDNESDAY = "Wednesday"
    THURSDAY = "Thursday"
    FRIDAY = "Friday"
    SATURDAY = "Saturday"  # Reserved, never scheduled by the engine

    @classmethod
    def parse(cls, value: "str | Day") -> "Day":
        """Parse a day name case-insensitively ('monday', 'Monday', 'MONDAY')."""
        if isinstance(value, Day):
            return value
        for day in cls:
            if day.value.lower() == str(value).strip().lower():
                return day
        raise ValueError(f"Unknown day: {value!r}")


class ResourceType(str, Enum):
    """Type of a schedulable room."""

    LABORATORY = "laboratory"
    CLASSROOM = "classroom"

    @classmethod
    def parse(cls, value: str) -> "ResourceType":
        """Parse a resource type, accepting the short codes LAB and CR."""
        normalized = str(value).strip().lower()
        if normalized in ("lab", "laboratory"):
            return cls.LABORATORY
        if normalized in ("cr", "classroom"):
            return cls.CLASSROOM
        raise ValueError(f"Unknown resource type: {value!r}")


class RestrictionScope(str, Enum):
    """Scope of a hard restriction."""

    GLOBAL = "global"
    YEAR_SPECIFIC = "year-specific"


class SubjectKind(str, Enum):
    """Kind of a lecture subject."""

    THEORY = "theory"
    VALUE_ADDED = "value_added"
    ELECTIVE = "elective"

    @classmethod
    def parse(cls, value: str | None) -> "SubjectKind":
        """Parse a subject kind, accepting the short codes TH, VAP and OE."""
        if value is None or value == "":
            return cls.THEORY
        normalized = str(value).strip().lower()
        aliases = {
            "th": cls.THEORY,
            "theory": cls.THEORY,
            "vap": cls.VALUE_ADDED,
            "value_added": cls.VALUE_ADDED,
            "value-added": cls.VALUE_ADDED,
            "oe": cls.ELECTIVE,
            "elective": cls.ELECTIVE,
        }
        if normalized not in aliases:
            raise ValueError(f"Unknown subject kind: {value!r}")
        return aliases[normalized]


class ProgressStatus(str, Enum):
    """Completion status of a subject requirement within a run."""

    PENDING = "pending"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"


class SessionKind(str, Enum):
    """Kind of a scheduled session."""

    LAB = "lab"
    LECTURE = "lecture"


class UnscheduledReason(str, Enum):
    """Reasons why required hours could not be placed."""

    INSUFFICIENT_FREE_SLOTS = "insufficient free slots"
    INSUFFICIENT_FREE_SLOTS_RELAXED = (
        "insufficient free slots even with relaxed constraints"
    )
    NO_CLASSROOM = "no free classroom"
    NO_LAB_BLOCK = "no lab block available within the week"


def academic_year_from_division_name(name: str) -> str | None:
    """Derive the academic year code from a division name prefix ('TE-B' -> 'TE')."""
    prefix = name.split("-", 1)[0].strip().upper()
    return year_code_for_label(prefix)


@dataclass(frozen=True)
class TeacherRef:
    """A teacher as referenced by assignments and sessions."""

    id: str
    name: str = ""

    @property
    def display_name(self) -> str:
        """Name used in formatted labels."""
        return self.name or self.id

    @classmethod
    def from_dict(cls, data: dict[str, Any] | str) -> "TeacherRef":
        """Create a TeacherRef from a dictionary or a bare id."""
        if isinstance(data, str):
            return cls(id=data, name=data)
        teacher_id = data.get("id") or data.get("teacherId") or data.get("name", "")
        return cls(id=str(teacher_id), name=data.get("name", ""))

    def to_dict(self) -> dict[str, Any]:
        return {"id": self.id, "name": self.name}


@dataclass(frozen=True)
class Batch:
    """A lab sub-group of a division."""

    name: str


@dataclass
class Division:
    """A cohort of students for one academic year."""

    id: str
    name: str
    academic_year: str | None
    batches: list[Batch] = field(default_factory=list)

    @property
    def batch_names(self) -> list[str]:
        return [b.name for b in self.batches]

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Division":
        """Create a Division from a dictionary.

        Batches may be given as ``{"name": ...}`` objects or bare strings. When
        ``academicYear`` is missing it is derived from the name prefix.
        """
        name = data["name"]
        batches = [
            Batch(b if isinstance(b, str) else b["name"])
            for b in data.get("batches", [])
        ]
        year = data.get("academicYear") or data.get("academic_year")
        academic_year = (
            year_code_for_label(year) if year else academic_year_from_division_name(name)
        )
        return cls(
            id=str(data.get("id", name)),
            name=name,
            academic_year=academic_year,
            batches=batches,
        )


@dataclass
class LabRequirement:
    """Weekly lab hours required by one batch for one subject."""

    division: str
    batch: str
    subject: str
    teacher: TeacherRef
    hours_per_week: int

    @property
    def key(self) -> tuple[str, str]:
        return (self.batch, self.subject)


@dataclass
class LectureRequirement:
    """Weekly lecture hours required by one division for one subject."""

    division: str
    subject: str
    teacher: TeacherRef
    hours_per_week: int
    kind: SubjectKind = SubjectKind.THEORY

    @property
    def key(self) -> tuple[str, str]:
        return (self.division, self.subject)


@dataclass(frozen=True)
class Resource:
    """A physical room: a laboratory or a classroom."""

    name: str
    type: ResourceType
    is_active: bool = True

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Resource":
        name = data.get("name") or data.get("roomName") or data.get("id")
        if not name:
            raise ValueError("Resource without a name")
        return cls(
            name=str(name),
            type=ResourceType.parse(data.get("type", "")),
            is_active=bool(data.get("isActive", data.get("is_active", True))),
        )


@dataclass(frozen=True)
class TimeSlot:
    """One numbered period of the daily grid."""

    slot_number: int
    start_time: str
    end_time: str

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "TimeSlot":
        return cls(
            slot_number=int(data.get("slotNumber", data.get("slot_number"))),
            start_time=str(data.get("startTime", data.get("start_time", ""))),
            end_time=str(data.get("endTime", data.get("end_time", ""))),
        )


@dataclass
class TimeGrid:
    """The resolved daily slot table, ordered by slot number."""

    slots: list[TimeSlot]

    def __post_init__(self) -> None:
        self.slots = sorted(self.slots, key=lambda s: s.slot_number)

    @property
    def slot_numbers(self) -> list[int]:
        return [s.slot_number for s in self.slots]

    def get_slot(self, slot_number: int) -> TimeSlot | None:
        for slot in self.slots:
            if slot.slot_number == slot_number:
                return slot
        return None

    def adjacent_pairs(self) -> list[tuple[TimeSlot, TimeSlot]]:
        """All pairs of consecutive slot numbers (n, n+1)."""
        return [
            (first, second)
            for first, second in zip(self.slots, self.slots[1:])
            if second.slot_number == first.slot_number + 1
        ]

    def time_range(self, start_slot: int, end_slot: int) -> str:
        """Time range string spanning two slots (e.g. '09:00-11:00')."""
        start = self.get_slot(start_slot)
        end = self.get_slot(end_slot)
        if start is None or end is None:
            return ""
        return f"{start.start_time}-{end.end_time}"

    @classmethod
    def from_list(cls, data: list[dict[str, Any]]) -> "TimeGrid":
        return cls([TimeSlot.from_dict(d) for d in data])


@dataclass
class Restriction:
    """A hard rule blocking day/slot combinations.

    An empty ``days`` list, like the ``"All days"`` wildcard, covers every day.
    When ``teacher_id`` is set the restriction blocks only that teacher.
    """

    name: str
    scope: RestrictionScope = RestrictionScope.GLOBAL
    days: list[str] = field(default_factory=list)
    time_slots: list[int] = field(default_factory=list)
    affected_years: list[str] = field(default_factory=list)
    teacher_id: str | None = None
    is_active: bool = True

    def applies_to_day(self, day: Day) -> bool:
        if not self.days:
            return True
        lowered = {d.strip().lower() for d in self.days}
        return ALL_DAYS.lower() in lowered or day.value.lower() in lowered

    def applies_to_slot(self, slot_number: int) -> bool:
        return slot_number in self.time_slots

    @property
    def affected_year_codes(self) -> set[str]:
        """Affected years translated from ordinal labels to academic year codes."""
        codes = set()
        for label in self.affected_years:
            code = year_code_for_label(label)
            if code:
                codes.add(code)
        return codes

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Restriction":
        return cls(
            name=data.get("restrictionName") or data.get("name", ""),
            scope=RestrictionScope(data.get("scope", RestrictionScope.GLOBAL.value)),
            days=list(data.get("days") or []),
            time_slots=[int(s) for s in data.get("timeSlots", data.get("time_slots", []))],
            affected_years=list(
                data.get("affectedYears", data.get("affected_years", [])) or []
            ),
            teacher_id=data.get("teacherId") or data.get("teacher_id"),
            is_active=bool(data.get("isActive", data.get("is_active", True))),
        )


@dataclass(frozen=True)
class LabBlock:
    """Two adjacent slots forming one indivisible lab session."""

    start_slot: int
    end_slot: int
    time_range: str = ""

    @property
    def slots(self) -> tuple[int, int]:
        return (self.start_slot, self.end_slot)

    def __str__(self) -> str:
        return f"{self.start_slot}-{self.end_slot}"


@dataclass
class LabSession:
    """A committed 2-slot lab session for one batch."""

    day: Day
    start_slot: int
    end_slot: int
    division: str
    batch: str
    subject: str
    teacher: TeacherRef
    lab_id: str
    run_id: str = ""
    teacher_conflict: bool = False
    kind: SessionKind = SessionKind.LAB

    @property
    def slots(self) -> list[int]:
        return list(range(self.start_slot, self.end_slot + 1))

    @property
    def formatted(self) -> str:
        return f"{self.subject}/{self.teacher.display_name}/{self.batch}/{self.lab_id}"

    def to_dict(self) -> dict[str, Any]:
        return {
            "kind": self.kind.value,
            "runId": self.run_id,
            "day": self.day.value,
            "startSlot": self.start_slot,
            "endSlot": self.end_slot,
            "division": self.division,
            "batch": self.batch,
            "subject": self.subject,
            "teacher": self.teacher.to_dict(),
            "labId": self.lab_id,
            "formattedLabel": self.formatted,
            "teacherConflict": self.teacher_conflict,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "LabSession":
        return cls(
            day=Day.parse(data["day"]),
            start_slot=int(data["startSlot"]),
            end_slot=int(data["endSlot"]),
            division=data["division"],
            batch=data["batch"],
            subject=data["subject"],
            teacher=TeacherRef.from_dict(data["teacher"]),
            lab_id=data["labId"],
            run_id=data.get("runId", ""),
            teacher_conflict=data.get("teacherConflict", False),
        )


@dataclass
class LectureSession:
    """A committed 1-slot lecture for one division."""

    day: Day
    slot_number: int
    division: str
    academic_year: str | None
    subject: str
    teacher: TeacherRef
    classroom_id: str
    subject_kind: SubjectKind = SubjectKind.THEORY
    run_id: str = ""
    kind: SessionKind = SessionKind.LECTURE

    @property
    def formatted(self) -> str:
        return f"{self.subject}/{self.teacher.display_name}/{self.classroom_id}"

    def to_dict(self) -> dict[str, Any]:
        return {
            "kind": self.kind.value,
            "runId": self.run_id,
            "day": self.day.value,
            "slotNumber": self.slot_number,
            "division": self.division,
            "academicYear": self.academic_year,
            "subject": self.subject,
            "subjectKind": self.subject_kind.value,
            "teacher": self.teacher.to_dict(),
            "classroomId": self.classroom_id,
            "formattedLabel": self.formatted,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "LectureSession":
        return cls(
            day=Day.parse(data["day"]),
            slot_number=int(data["slotNumber"]),
            division=data["division"],
            academic_year=data.get("academicYear"),
            subject=data["subject"],
            teacher=TeacherRef.from_dict(data["teacher"]),
            classroom_id=data["classroomId"],
            subject_kind=SubjectKind.parse(data.get("subjectKind")),
            run_id=data.get("runId", ""),
        )


@dataclass
class UnscheduledLab:
    """A batch-subject whose weekly lab hours were not fully placed."""

    division: str
    batch: str
    subject: str
    teacher: TeacherRef
    required_hours: int
    completed_hours: int
    reason: UnscheduledReason = UnscheduledReason.NO_LAB_BLOCK

    @property
    def shortfall(self) -> int:
        return self.required_hours - self.completed_hours

    def to_dict(self) -> dict[str, Any]:
        return {
            "division": self.division,
            "batch": self.batch,
            "subject": self.subject,
            "teacher": self.teacher.to_dict(),
            "requiredHours": self.required_hours,
            "completedHours": self.completed_hours,
            "shortfall": self.shortfall,
            "reason": self.reason.value,
        }


@dataclass
class UnscheduledLecture:
    """A division-subject whose weekly lecture hours were not fully placed."""

    division: str
    subject: str
    teacher: TeacherRef
    hours_needed: int
    hours_scheduled: int
    reason: UnscheduledReason
    no_classroom_skips: int = 0

    @property
    def shortfall(self) -> int:
        return self.hours_needed - self.hours_scheduled

    def to_dict(self) -> dict[str, Any]:
        return {
            "division": self.division,
            "subject": self.subject,
            "teacher": self.teacher.to_dict(),
            "hoursNeeded": self.hours_needed,
            "hoursScheduled": self.hours_scheduled,
            "shortfall": self.shortfall,
            "reason": self.reason.value,
            "noClassroomSkips": self.no_classroom_skips,
        }


@dataclass
class ConflictRecord:
    """A reported conflict: degraded assignment, unplaced division or violation."""

    kind: str
    details: str
    day: Day | None = None
    slot: int | None = None
    resource: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "kind": self.kind,
            "day": self.day.value if self.day else None,
            "slot": self.slot,
            "resource": self.resource,
            "details": self.details,
        }


@dataclass
class DayCapacity:
    """Capacity simulation result for one day."""

    day: Day
    available_blocks: int
    divisions_placed: int
    divisions_remaining: int
    max_unused_labs: int
    additional_labs_needed: int
    reasoning: str

    def to_dict(self) -> dict[str, Any]:
        return {
            "day": self.day.value,
            "availableBlocks": self.available_blocks,
            "divisionsPlaced": self.divisions_placed,
            "divisionsRemaining": self.divisions_remaining,
            "maxUnusedLabs": self.max_unused_labs,
            "additionalLabsNeeded": self.additional_labs_needed,
            "reasoning": self.reasoning,
        }


@dataclass
class CapacityReport:
    """Verdict on whether the lab inventory can cover all batches."""

    sufficient: bool
    current_labs: int
    minimum_labs_required: int
    additional_labs_needed: int
    batches_per_division: int = 0
    divisions_needing_labs: int = 0
    worst_case_day: Day | None = None
    days: list[DayCapacity] = field(default_factory=list)
    reasoning: str = ""

    def to_dict(self) -> dict[str, Any]:
        return {
            "sufficient": self.sufficient,
            "currentLabs": self.current_labs,
            "minimumLabsRequired": self.minimum_labs_required,
            "additionalLabsNeeded": self.additional_labs_needed,
            "batchesPerDivision": self.batches_per_division,
            "divisionsNeedingLabs": self.divisions_needing_labs,
            "worstCaseDay": self.worst_case_day.value if self.worst_case_day else None,
            "days": [d.to_dict() for d in self.days],
            "reasoning": self.reasoning,
        }


@dataclass
class ClassroomReport:
    """Verdict on whether the classroom inventory can host all divisions."""

    sufficient: bool
    current_classrooms: int
    minimum_classrooms_required: int
    additional_classrooms_needed: int
    total_divisions: int
    reasoning: str = ""

    def to_dict(self) -> dict[str, Any]:
        return {
            "sufficient": self.sufficient,
            "currentClassrooms": self.current_classrooms,
            "minimumClassroomsRequired": self.minimum_classrooms_required,
            "additionalClassroomsNeeded": self.additional_classrooms_needed,
            "totalDivisions": self.total_divisions,
            "reasoning": self.reasoning,
        }


@dataclass
class ScheduleStatistics:
    """Statistics about one run."""

    lab_sessions: int = 0
    lecture_sessions: int = 0
    unscheduled_labs: int = 0
    unscheduled_lectures: int = 0
    scheduled_hours: int = 0
    unscheduled_hours: int = 0
    by_division: dict[str, int] = field(default_factory=dict)
    by_teacher: dict[str, int] = field(default_factory=dict)
    by_day: dict[str, int] = field(default_factory=dict)

    @property
    def total_scheduled(self) -> int:
        return self.lab_sessions + self.lecture_sessions

    @property
    def total_unscheduled(self) -> int:
        return self.unscheduled_labs + self.unscheduled_lectures

    @property
    def utilization(self) -> float:
        """Placed hours as a percentage of required hours."""
        total = self.scheduled_hours + self.unscheduled_hours
        return 100 * self.scheduled_hours / total if total > 0 else 0.0

    def to_dict(self) -> dict[str, Any]:
        return {
            "labSessions": self.lab_sessions,
            "lectureSessions": self.lecture_sessions,
            "totalScheduled": self.total_scheduled,
            "unscheduledLabs": self.unscheduled_labs,
            "unscheduledLectures": self.unscheduled_lectures,
            "totalUnscheduled": self.total_unscheduled,
            "scheduledHours": self.scheduled_hours,
            "unscheduledHours": self.unscheduled_hours,
            "byDivision": self.by_division,
            "byTeacher": self.by_teacher,
            "byDay": self.by_day,
            "utilizationRate": f"{self.utilization:.2f}%",
        }


@dataclass
class EngineInput:
    """Snapshot of everything one run consumes."""

    divisions: list[Division] = field(default_factory=list)
    lab_requirements: list[LabRequirement] = field(default_factory=list)
    lecture_requirements: list[LectureRequirement] = field(default_factory=list)
    resources: list[Resource] = field(default_factory=list)
    time_grid: TimeGrid | None = None
    restrictions: list[Restriction] = field(default_factory=list)

    @property
    def labs(self) -> list[Resource]:
        return [
            r for r in self.resources
            if r.type == ResourceType.LABORATORY and r.is_active
        ]

    @property
    def classrooms(self) -> list[Resource]:
        return [
            r for r in self.resources
            if r.type == ResourceType.CLASSROOM and r.is_active
        ]

    @property
    def active_restrictions(self) -> list[Restriction]:
        return [r for r in self.restrictions if r.is_active]


@dataclass
class RunResult:
    """Result of one scheduling run."""

    run_id: str
    success: bool
    error: str | None = None
    capacity_report: CapacityReport | None = None
    classroom_report: ClassroomReport | None = None
    lab_sessions: list[LabSession] = field(default_factory=list)
    lecture_sessions: list[LectureSession] = field(default_factory=list)
    unscheduled_labs: list[UnscheduledLab] = field(default_factory=list)
    unscheduled_lectures: list[UnscheduledLecture] = field(default_factory=list)
    conflicts: list[ConflictRecord] = field(default_factory=list)
    violations: list[ConflictRecord] = field(default_factory=list)
    resolution_log: list[dict[str, Any]] = field(default_factory=list)
    lab_metrics: dict[str, int] = field(default_factory=dict)
    statistics: ScheduleStatistics = field(default_factory=ScheduleStatistics)
    generation_date: str = field(default_factory=lambda: datetime.now().isoformat())

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {
            "runId": self.run_id,
            "success": self.success,
            "error": self.error,
            "generationDate": self.generation_date,
            "capacityReport": (
                self.capacity_report.to_dict() if self.capacity_report else None
            ),
            "classroomReport": (
                self.classroom_report.to_dict() if self.classroom_report else None
            ),
            "labSessions": [s.to_dict() for s in self.lab_sessions],
            "lectureSessions": [s.to_dict() for s in self.lecture_sessions],
            "unscheduledLabs": [u.to_dict() for u in self.unscheduled_labs],
            "unscheduledLectures": [u.to_dict() for u in self.unscheduled_lectures],
            "conflicts": [c.to_dict() for c in self.conflicts],
            "violations": [v.to_dict() for v in self.violations],
            "resolutionLog": self.resolution_log,
            "labMetrics": self.lab_metrics,
            "statistics": self.statistics.to_dict(),
        }

    def raise_for_capacity(self) -> None:
        """Raise CapacityShortfallError if the run aborted for lack of rooms."""
        if self.success:
            return
        if self.error == "INSUFFICIENT_LAB_CAPACITY" and self.capacity_report:
            raise CapacityShortfallError(
                "lab",
                self.capacity_report.current_labs,
                self.capacity_report.minimum_labs_required,
            )
        if self.error == "INSUFFICIENT_CLASSROOM_CAPACITY" and self.classroom_report:
            raise CapacityShortfallError(
                "classroom",
                self.classroom_report.current_classrooms,
                self.classroom_report.minimum_classrooms_required,
            )
