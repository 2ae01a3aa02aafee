"""Occupancy tracking for teachers, rooms, divisions and batches."""

from collections.abc import Iterable

from ..models import Day


class AvailabilityTracker:
    """Tracks which resources are occupied at each (day, slot).

    Four independent maps, each keyed by ``(resource, day, slot)``:
    - teacher_schedule: teacher id -> label of the occupying activity
    - room_schedule: lab or classroom name -> label
    - division_schedule: division name -> label (lab or lecture)
    - batch_schedule: batch name -> label (labs only)

    The tracker is pure bookkeeping. It holds no policy and is created per run
    (or per day for the lab phase), never shared between runs.
    """

    def __init__(self) -> None:
        self.teacher_schedule: dict[tuple[str, Day, int], str] = {}
        self.room_schedule: dict[tuple[str, Day, int], str] = {}
        self.division_schedule: dict[tuple[str, Day, int], str] = {}
        self.batch_schedule: dict[tuple[str, Day, int], str] = {}

    def is_teacher_available(self, teacher_id: str, day: Day, slot: int) -> bool:
        return (teacher_id, day, slot) not in self.teacher_schedule

    def is_room_available(self, room: str, day: Day, slot: int) -> bool:
        return (room, day, slot) not in self.room_schedule

    def is_division_available(self, division: str, day: Day, slot: int) -> bool:
        return (division, day, slot) not in self.division_schedule

    def is_batch_available(self, batch: str, day: Day, slot: int) -> bool:
        return (batch, day, slot) not in self.batch_schedule

    def is_teacher_free_for(self, teacher_id: str, day: Day, slots: Iterable[int]) -> bool:
        """Check teacher availability across several slots (e.g. a lab block)."""
        return all(self.is_teacher_available(teacher_id, day, s) for s in slots)

    def is_room_free_for(self, room: str, day: Day, slots: Iterable[int]) -> bool:
        """Check room availability across several slots."""
        return all(self.is_room_available(room, day, s) for s in slots)

    def is_batch_free_for(self, batch: str, day: Day, slots: Iterable[int]) -> bool:
        return all(self.is_batch_available(batch, day, s) for s in slots)

    def reserve(
        self,
        day: Day,
        slots: Iterable[int],
        teacher_id: str | None = None,
        room: str | None = None,
        division: str | None = None,
        batch: str | None = None,
        label: str = "busy",
    ) -> None:
        """Mark the given resources as occupied for every slot in ``slots``.

        Reserving an already occupied key overwrites its label; callers check
        availability first unless a conflict is being recorded on purpose.
        """
        for slot in slots:
            if teacher_id is not None:
                self.teacher_schedule[(teacher_id, day, slot)] = label
            if room is not None:
                self.room_schedule[(room, day, slot)] = label
            if division is not None:
                self.division_schedule[(division, day, slot)] = label
            if batch is not None:
                self.batch_schedule[(batch, day, slot)] = label

    def clear(self) -> None:
        """Drop all occupancy, e.g. at the start of a new lab day."""
        self.teacher_schedule.clear()
        self.room_schedule.clear()
        self.division_schedule.clear()
        self.batch_schedule.clear()
