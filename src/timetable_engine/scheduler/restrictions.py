"""Hard restriction lookups."""

from collections.abc import Iterable

from ..constants import is_elective_restriction_name
from ..models import Day, LabBlock, Restriction, RestrictionScope


class RestrictionFilter:
    """Answers whether a (day, slot[, academic year]) is blocked.

    Restrictions are split on construction into three groups:
    - global: block the slot for every division
    - year-specific: block the slot for divisions of the affected years only
    - teacher: carry a ``teacher_id`` and block only that teacher

    The filter is rebuilt from the restriction snapshot of every run.
    """

    def __init__(self, restrictions: Iterable[Restriction] | None = None) -> None:
        active = [r for r in (restrictions or []) if r.is_active]
        self.teacher_restrictions = [r for r in active if r.teacher_id]
        self.global_restrictions = [
            r for r in active
            if not r.teacher_id and r.scope == RestrictionScope.GLOBAL
        ]
        self.year_restrictions = [
            r for r in active
            if not r.teacher_id and r.scope == RestrictionScope.YEAR_SPECIFIC
        ]

    @staticmethod
    def _hits(restriction: Restriction, day: Day, slot: int) -> bool:
        return restriction.applies_to_day(day) and restriction.applies_to_slot(slot)

    def is_globally_blocked(self, day: Day, slot: int) -> bool:
        return any(self._hits(r, day, slot) for r in self.global_restrictions)

    def is_blocked_for_year(self, day: Day, slot: int, academic_year: str | None) -> bool:
        """Check year-specific restrictions only."""
        if academic_year is None:
            return False
        return any(
            academic_year in r.affected_year_codes and self._hits(r, day, slot)
            for r in self.year_restrictions
        )

    def is_blocked(self, day: Day, slot: int, academic_year: str | None = None) -> bool:
        """Check global and, when a year is given, year-specific restrictions."""
        return self.is_globally_blocked(day, slot) or self.is_blocked_for_year(
            day, slot, academic_year
        )

    def is_teacher_blocked(self, teacher_id: str, day: Day, slot: int) -> bool:
        """Check teacher unavailability restrictions."""
        return any(
            r.teacher_id == teacher_id and self._hits(r, day, slot)
            for r in self.teacher_restrictions
        )

    def is_block_open(self, day: Day, block: LabBlock, academic_year: str | None) -> bool:
        """Check that neither slot of a lab block is blocked for a year."""
        return not any(self.is_blocked(day, s, academic_year) for s in block.slots)

    def global_blocked_slots(
        self, days: Iterable[Day], slot_numbers: Iterable[int]
    ) -> set[tuple[Day, int]]:
        """All (day, slot) pairs blocked by a global restriction."""
        slot_numbers = list(slot_numbers)
        return {
            (day, slot)
            for day in days
            for slot in slot_numbers
            if self.is_globally_blocked(day, slot)
        }

    def elective_restrictions_for_year(self, academic_year: str) -> list[Restriction]:
        """Year-specific restrictions reserving open-elective slots for a year."""
        return [
            r for r in self.year_restrictions
            if academic_year in r.affected_year_codes
            and is_elective_restriction_name(r.name)
        ]
