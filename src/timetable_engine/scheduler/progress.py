"""Per-run subject progress tracking."""

from collections.abc import Iterable, Iterator
from dataclasses import dataclass

from ..models import LabRequirement, ProgressStatus, TeacherRef


@dataclass
class SubjectProgress:
    """Completed and remaining hours of one batch-subject."""

    division: str
    owner: str
    subject: str
    teacher: TeacherRef
    total_hours: int
    completed_hours: int = 0

    @property
    def remaining_hours(self) -> int:
        return max(0, self.total_hours - self.completed_hours)

    @property
    def status(self) -> ProgressStatus:
        if self.completed_hours == 0:
            return ProgressStatus.PENDING
        if self.remaining_hours > 0:
            return ProgressStatus.IN_PROGRESS
        return ProgressStatus.COMPLETED

    def record(self, hours: int) -> int:
        """Add completed hours, never beyond the total.

        Returns:
            Hours actually applied
        """
        applied = min(hours, self.remaining_hours)
        self.completed_hours += applied
        return applied


class ProgressMap:
    """Progress of every (batch, subject) pair for one scheduling run.

    The map is an explicit value handed to the lab scheduler; it is seeded
    from the requirements at the start of every run and never shared.
    """

    def __init__(self) -> None:
        self._entries: dict[tuple[str, str], SubjectProgress] = {}

    @classmethod
    def from_lab_requirements(cls, requirements: Iterable[LabRequirement]) -> "ProgressMap":
        """Seed progress from lab requirements.

        Duplicate (batch, subject) requirements are merged by summing hours.
        """
        progress = cls()
        for req in requirements:
            if req.hours_per_week <= 0:
                continue
            existing = progress._entries.get(req.key)
            if existing is not None:
                existing.total_hours += req.hours_per_week
                continue
            progress._entries[req.key] = SubjectProgress(
                division=req.division,
                owner=req.batch,
                subject=req.subject,
                teacher=req.teacher,
                total_hours=req.hours_per_week,
            )
        return progress

    def get(self, owner: str, subject: str) -> SubjectProgress | None:
        return self._entries.get((owner, subject))

    def for_owner(self, owner: str) -> list[SubjectProgress]:
        """All subjects of a batch, in requirement order."""
        return [p for (o, _), p in self._entries.items() if o == owner]

    def pending_for_owner(self, owner: str) -> list[SubjectProgress]:
        return [p for p in self.for_owner(owner) if p.remaining_hours > 0]

    def has_remaining(self, owners: Iterable[str]) -> bool:
        return any(self.pending_for_owner(o) for o in owners)

    def record(self, owner: str, subject: str, hours: int) -> int:
        entry = self._entries[(owner, subject)]
        return entry.record(hours)

    def snapshot(self) -> dict[tuple[str, str], int]:
        """Completed hours per (batch, subject)."""
        return {key: p.completed_hours for key, p in self._entries.items()}

    def __iter__(self) -> Iterator[SubjectProgress]:
        return iter(self._entries.values())

    def __len__(self) -> int:
        return len(self._entries)
