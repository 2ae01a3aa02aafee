"""Day-rotation policies for the lecture scheduler."""

from abc import ABC, abstractmethod

from ..models import Day


class DayRotationPolicy(ABC):
    """Decides which day the lecture scheduler tries next."""

    def __init__(self, days: list[Day]):
        if not days:
            raise ValueError("Day rotation needs at least one day")
        self.days = list(days)
        self.pointer = 0

    def current(self) -> Day:
        return self.days[self.pointer % len(self.days)]

    def advance(self) -> None:
        self.pointer = (self.pointer + 1) % len(self.days)

    @abstractmethod
    def start_subject(self) -> None:
        """Called before scanning days for a new subject."""
        pass


class SharedDayRotation(DayRotationPolicy):
    """One pointer shared across subjects and divisions.

    Consecutive subjects start where the previous one stopped, spreading
    lectures over the week instead of piling them on Monday.
    """

    def start_subject(self) -> None:
        pass


class FixedStartRotation(DayRotationPolicy):
    """Every subject starts scanning from the first day."""

    def start_subject(self) -> None:
        self.pointer = 0
