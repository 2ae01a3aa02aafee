"""Lab and classroom capacity analysis.

The lab analysis answers, before anything is committed, whether the lab
inventory can physically host every batch. For each scheduling day it packs
divisions into every available 2-hour block of that day (overlapping pairs
included), ``labs // batches`` divisions per block, and derives how many extra
labs the unplaced divisions would need.
The final verdict takes the worst day: a shortfall on any single day must be
coverable even if other days have slack.
"""

import logging
from collections.abc import Iterable

from ..models import (
    CapacityReport,
    ClassroomReport,
    Day,
    DayCapacity,
    Division,
    LabRequirement,
    LectureRequirement,
    Resource,
    SubjectKind,
    TimeGrid,
)
from .blocks import find_available_blocks
from .restrictions import RestrictionFilter

logger = logging.getLogger(__name__)


def divisions_needing_labs(
    divisions: Iterable[Division], requirements: Iterable[LabRequirement]
) -> list[Division]:
    """Divisions with at least one batch that has lab hours to place."""
    batches_with_work = {r.batch for r in requirements if r.hours_per_week > 0}
    return [
        d for d in divisions
        if any(b in batches_with_work for b in d.batch_names)
    ]


class CapacityAnalyzer:
    """Side-effect free estimate of the minimum lab count."""

    def __init__(
        self,
        time_grid: TimeGrid,
        restriction_filter: RestrictionFilter,
        days: list[Day],
    ) -> None:
        self.time_grid = time_grid
        self.restriction_filter = restriction_filter
        self.days = days

    def analyze(
        self,
        divisions: list[Division],
        lab_requirements: list[LabRequirement],
        labs: list[Resource],
    ) -> CapacityReport:
        """Decide whether the lab inventory is sufficient.

        Args:
            divisions: All divisions of the run
            lab_requirements: Batch-level lab hour requirements
            labs: Active laboratory resources

        Returns:
            CapacityReport with a per-day breakdown. Repeated calls with the
            same inputs return equal reports.
        """
        lab_count = len(labs)
        lab_divisions = divisions_needing_labs(divisions, lab_requirements)

        if not lab_divisions:
            reasoning = "No division has lab hours to schedule; lab inventory is not a constraint."
            logger.info(reasoning)
            return CapacityReport(
                sufficient=True,
                current_labs=lab_count,
                minimum_labs_required=0,
                additional_labs_needed=0,
                reasoning=reasoning,
            )

        batches_per_division = max(len(d.batches) for d in lab_divisions)
        day_results = [
            self._simulate_day(day, lab_divisions, lab_count, batches_per_division)
            for day in self.days
        ]

        # Days without any usable block cannot be helped by extra labs
        usable_days = [d for d in day_results if d.available_blocks > 0]
        additional = max((d.additional_labs_needed for d in usable_days), default=0)

        worst_case = None
        if usable_days:
            worst_case = min(usable_days, key=lambda d: d.available_blocks)

        minimum = lab_count + additional
        sufficient = additional == 0

        lines = [
            "Lab requirement calculation:",
            f"  Divisions needing labs: {len(lab_divisions)}",
            f"  Batches per division: {batches_per_division}",
            f"  Labs available: {lab_count}",
            f"  Divisions per block: {lab_count // batches_per_division} "
            f"({lab_count} labs // {batches_per_division} batches)",
        ]
        if worst_case is not None:
            lines.append(
                f"  Worst case day: {worst_case.day.value} "
                f"({worst_case.available_blocks} usable block(s))"
            )
            lines.append(worst_case.reasoning)
        else:
            lines.append("  No day has a usable 2-hour block; extra labs would not help.")

        if sufficient:
            lines.append("Sufficient labs: every division fits on every usable day.")
        else:
            lines.append(
                f"Insufficient labs: add {additional} lab(s) "
                f"for a minimum of {minimum}."
            )

        reasoning = "\n".join(lines)
        log = logger.info if sufficient else logger.warning
        log(
            f"Lab capacity: {lab_count} available, {minimum} required, "
            f"{additional} additional needed"
        )

        return CapacityReport(
            sufficient=sufficient,
            current_labs=lab_count,
            minimum_labs_required=minimum,
            additional_labs_needed=additional,
            batches_per_division=batches_per_division,
            divisions_needing_labs=len(lab_divisions),
            worst_case_day=worst_case.day if worst_case else None,
            days=day_results,
            reasoning=reasoning,
        )

    def _simulate_day(
        self,
        day: Day,
        divisions: list[Division],
        lab_count: int,
        batches_per_division: int,
    ) -> DayCapacity:
        """Pack divisions into every available block of one day without committing."""
        blocks = find_available_blocks(
            day,
            self.time_grid,
            self.restriction_filter,
            [d.academic_year for d in divisions],
        )

        if not blocks:
            return DayCapacity(
                day=day,
                available_blocks=0,
                divisions_placed=0,
                divisions_remaining=len(divisions),
                max_unused_labs=0,
                additional_labs_needed=0,
                reasoning=f"  {day.value}: no usable 2-hour block, day skipped",
            )

        max_per_block = lab_count // batches_per_division
        remaining = list(divisions)
        max_unused = 0
        lines = [f"  {day.value}: {len(blocks)} usable block(s)"]

        for block in blocks:
            if not remaining:
                break
            open_divisions = [
                d for d in remaining
                if self.restriction_filter.is_block_open(day, block, d.academic_year)
            ]
            placed = open_divisions[:max_per_block]
            for division in placed:
                remaining.remove(division)
            unused = lab_count - len(placed) * batches_per_division
            max_unused = max(max_unused, unused)
            names = ", ".join(d.name for d in placed) or "none"
            lines.append(f"    Block {block}: {names}; {unused} lab(s) unused")

        additional = 0
        if remaining:
            additional = max(0, len(remaining) * batches_per_division - max_unused)
            lines.append(
                f"    Unplaced: {', '.join(d.name for d in remaining)} -> "
                f"{len(remaining)} x {batches_per_division} - {max_unused} unused = "
                f"{additional} more lab(s)"
            )

        return DayCapacity(
            day=day,
            available_blocks=len(blocks),
            divisions_placed=len(divisions) - len(remaining),
            divisions_remaining=len(remaining),
            max_unused_labs=max_unused,
            additional_labs_needed=additional,
            reasoning="\n".join(lines),
        )


def analyze_classrooms(
    divisions: list[Division],
    lecture_requirements: list[LectureRequirement],
    classrooms: list[Resource],
) -> ClassroomReport:
    """Check that every lecturing division can hold a classroom at once.

    Minimum classrooms = number of divisions with lecture hours to place.
    """
    lecturing = {
        r.division for r in lecture_requirements
        if r.hours_per_week > 0 and r.kind != SubjectKind.ELECTIVE
    }
    total = len([d for d in divisions if d.name in lecturing])
    current = len(classrooms)
    additional = max(0, total - current)

    lines = [
        "Classroom requirement calculation:",
        "  Each division requires one classroom for simultaneous lectures.",
        f"  Divisions with lectures: {total}",
        f"  Classrooms available: {current}",
        f"  Additional classrooms needed: {additional}",
    ]
    if additional:
        lines.append(f"Insufficient classrooms: add {additional} classroom(s).")
    else:
        lines.append("Sufficient classrooms for all divisions.")

    return ClassroomReport(
        sufficient=additional == 0,
        current_classrooms=current,
        minimum_classrooms_required=total,
        additional_classrooms_needed=additional,
        total_divisions=total,
        reasoning="\n".join(lines),
    )
