"""Two-hour lab block discovery."""

import logging
from collections.abc import Iterable

from ..models import Day, LabBlock, TimeGrid
from .restrictions import RestrictionFilter

logger = logging.getLogger(__name__)


def find_available_blocks(
    day: Day,
    time_grid: TimeGrid,
    restriction_filter: RestrictionFilter,
    academic_years: Iterable[str | None],
) -> list[LabBlock]:
    """Get all 2-hour blocks usable on a day.

    A block is any pair of adjacent slot numbers (n, n+1) such that:
    - neither slot is blocked by a global restriction
    - the block is open for at least one of the given academic years under
      year-specific restrictions

    Overlapping blocks (1-2 and 2-3) are both returned.

    Args:
        day: Day to inspect
        time_grid: The resolved daily slot table
        restriction_filter: Restriction lookups for this run
        academic_years: Years of the candidate divisions

    Returns:
        Blocks in grid order
    """
    years = list(academic_years)
    blocks = []

    for first, second in time_grid.adjacent_pairs():
        if restriction_filter.is_globally_blocked(
            day, first.slot_number
        ) or restriction_filter.is_globally_blocked(day, second.slot_number):
            continue

        block = LabBlock(
            start_slot=first.slot_number,
            end_slot=second.slot_number,
            time_range=f"{first.start_time}-{second.end_time}",
        )

        if not any(restriction_filter.is_block_open(day, block, year) for year in years):
            continue

        blocks.append(block)

    logger.debug(f"Found {len(blocks)} available 2-hour blocks on {day.value}")
    return blocks


def disjoint_blocks(blocks: list[LabBlock]) -> list[LabBlock]:
    """Pick non-overlapping blocks greedily in grid order.

    One lab can host at most one of two overlapping blocks, so capacity
    estimates walk only disjoint blocks.
    """
    result: list[LabBlock] = []
    last_end: int | None = None
    for block in sorted(blocks, key=lambda b: b.start_slot):
        if last_end is None or block.start_slot > last_end:
            result.append(block)
            last_end = block.end_slot
    return result
