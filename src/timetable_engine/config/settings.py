"""Engine settings."""

from dataclasses import dataclass, field
from typing import Any

from ..constants import DEFAULT_CP_TIME_LIMIT, SCHEDULING_DAYS
from ..models import Day

ALLOCATION_STRATEGIES = ("heuristic", "cp-sat")


@dataclass
class EngineSettings:
    """Policy knobs of a scheduling run.

    Attributes:
        allow_teacher_conflicts: Permit degraded lab assignments that double-book
            a teacher when no clean assignment exists. Off by default.
        allocation_strategy: "heuristic" or "cp-sat".
        cp_time_limit: CP-SAT time limit per lab day in seconds.
        relax_daily_subject_limit: Run a second lecture pass without the
            one-lecture-per-subject-per-day rule.
        enforce_classroom_capacity: Abort when classrooms are insufficient.
        scheduling_days: Days the engine schedules, in order.
    """

    allow_teacher_conflicts: bool = False
    allocation_strategy: str = "heuristic"
    cp_time_limit: float = DEFAULT_CP_TIME_LIMIT
    relax_daily_subject_limit: bool = False
    enforce_classroom_capacity: bool = False
    scheduling_days: list[Day] = field(
        default_factory=lambda: [Day(d) for d in SCHEDULING_DAYS]
    )

    def __post_init__(self) -> None:
        if self.allocation_strategy not in ALLOCATION_STRATEGIES:
            raise ValueError(
                f"Unknown allocation strategy {self.allocation_strategy!r}; "
                f"expected one of {', '.join(ALLOCATION_STRATEGIES)}"
            )
        if self.cp_time_limit <= 0:
            raise ValueError("cp_time_limit must be positive")
        self.scheduling_days = [Day.parse(d) for d in self.scheduling_days]
        if not self.scheduling_days:
            raise ValueError("scheduling_days must not be empty")

    @classmethod
    def from_dict(cls, data: dict[str, Any] | None) -> "EngineSettings":
        """Create settings from a camelCase or snake_case dictionary."""
        data = data or {}

        def pick(camel: str, snake: str, default: Any) -> Any:
            return data.get(camel, data.get(snake, default))

        defaults = cls()
        return cls(
            allow_teacher_conflicts=bool(
                pick("allowTeacherConflicts", "allow_teacher_conflicts",
                     defaults.allow_teacher_conflicts)
            ),
            allocation_strategy=pick(
                "allocationStrategy", "allocation_strategy", defaults.allocation_strategy
            ),
            cp_time_limit=float(
                pick("cpTimeLimit", "cp_time_limit", defaults.cp_time_limit)
            ),
            relax_daily_subject_limit=bool(
                pick("relaxDailySubjectLimit", "relax_daily_subject_limit",
                     defaults.relax_daily_subject_limit)
            ),
            enforce_classroom_capacity=bool(
                pick("enforceClassroomCapacity", "enforce_classroom_capacity",
                     defaults.enforce_classroom_capacity)
            ),
            scheduling_days=list(
                pick("schedulingDays", "scheduling_days", defaults.scheduling_days)
            ),
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "allowTeacherConflicts": self.allow_teacher_conflicts,
            "allocationStrategy": self.allocation_strategy,
            "cpTimeLimit": self.cp_time_limit,
            "relaxDailySubjectLimit": self.relax_daily_subject_limit,
            "enforceClassroomCapacity": self.enforce_classroom_capacity,
            "schedulingDays": [d.value for d in self.scheduling_days],
        }
