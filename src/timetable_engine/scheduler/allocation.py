"""Division-to-block allocation strategies for one lab day."""

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass, field

from ortools.sat.python import cp_model

from ..constants import DEFAULT_CP_TIME_LIMIT
from ..models import Day, Division, LabBlock, Resource, TeacherRef
from .availability import AvailabilityTracker
from .blocks import disjoint_blocks
from .progress import ProgressMap, SubjectProgress
from .restrictions import RestrictionFilter

logger = logging.getLogger(__name__)


@dataclass
class TentativeAssignment:
    """A batch's subject/teacher/lab for one block, not yet committed."""

    batch: str
    subject: str
    teacher: TeacherRef
    lab_id: str
    teacher_conflict: bool = False


@dataclass
class DivisionPlacement:
    """All batch assignments of a division in one block."""

    division: Division
    block: LabBlock
    assignments: list[TentativeAssignment] = field(default_factory=list)


@dataclass
class DayAllocation:
    """Outcome of allocating one day's candidate divisions."""

    placements: list[DivisionPlacement] = field(default_factory=list)
    # (division name, reason)
    unplaced: list[tuple[str, str]] = field(default_factory=list)

    @property
    def complete(self) -> bool:
        return not self.unplaced

    @property
    def assignment_count(self) -> int:
        return sum(len(p.assignments) for p in self.placements)


@dataclass
class AllocationContext:
    """Per-day state shared by every allocation attempt."""

    day: Day
    progress: ProgressMap
    labs: list[Resource]
    tracker: AvailabilityTracker
    restriction_filter: RestrictionFilter
    allow_teacher_conflicts: bool = False

    def is_teacher_free(
        self,
        teacher_id: str,
        block: LabBlock,
        tentative: AvailabilityTracker | None = None,
    ) -> bool:
        """Teacher free in the committed and tentative maps, and not restricted."""
        for slot in block.slots:
            if self.restriction_filter.is_teacher_blocked(teacher_id, self.day, slot):
                return False
        if not self.tracker.is_teacher_free_for(teacher_id, self.day, block.slots):
            return False
        if tentative is not None and not tentative.is_teacher_free_for(
            teacher_id, self.day, block.slots
        ):
            return False
        return True

    def is_batch_free(
        self,
        batch: str,
        block: LabBlock,
        tentative: AvailabilityTracker | None = None,
    ) -> bool:
        if not self.tracker.is_batch_free_for(batch, self.day, block.slots):
            return False
        return tentative is None or tentative.is_batch_free_for(batch, self.day, block.slots)

    def is_teacher_restricted(self, teacher_id: str, block: LabBlock) -> bool:
        return any(
            self.restriction_filter.is_teacher_blocked(teacher_id, self.day, s)
            for s in block.slots
        )

    def find_free_lab(
        self, block: LabBlock, tentative: AvailabilityTracker | None = None
    ) -> Resource | None:
        """First lab free for both slots of a block."""
        for lab in self.labs:
            if not self.tracker.is_room_free_for(lab.name, self.day, block.slots):
                continue
            if tentative is not None and not tentative.is_room_free_for(
                lab.name, self.day, block.slots
            ):
                continue
            return lab
        return None


class AllocationStrategy(ABC):
    """Maps a day's candidate divisions to blocks with batch assignments."""

    name: str = ""

    @abstractmethod
    def allocate(
        self,
        context: AllocationContext,
        divisions: list[Division],
        blocks: list[LabBlock],
    ) -> DayAllocation:
        """
        Allocate divisions to blocks for one day.

        Args:
            context: Per-day state (progress, labs, occupancy, restrictions).
            divisions: Divisions with remaining lab hours.
            blocks: Available 2-hour blocks of the day.
        """
        pass


def generate_allocation_combinations(
    divisions: list[Division], blocks: list[LabBlock]
) -> list[list[tuple[Division, LabBlock]]]:
    """Candidate orderings of divisions onto blocks.

    - sequential: i-th division -> i-th block
    - reverse: i-th division -> i-th block from the end
    - cyclic: i-th division -> block i modulo the block count
    - disjoint: i-th division -> non-overlapping block i modulo their count

    Sequential and reverse need at least as many blocks as divisions.
    Duplicate orderings are dropped.
    """
    if not divisions or not blocks:
        return []

    combinations: list[list[tuple[Division, LabBlock]]] = []
    if len(blocks) >= len(divisions):
        combinations.append([(d, blocks[i]) for i, d in enumerate(divisions)])
        combinations.append(
            [(d, blocks[len(blocks) - 1 - i]) for i, d in enumerate(divisions)]
        )
    combinations.append([(d, blocks[i % len(blocks)]) for i, d in enumerate(divisions)])
    separate = disjoint_blocks(blocks)
    combinations.append(
        [(d, separate[i % len(separate)]) for i, d in enumerate(divisions)]
    )

    unique = []
    seen = set()
    for combination in combinations:
        signature = tuple((d.name, b.start_slot) for d, b in combination)
        if signature not in seen:
            seen.add(signature)
            unique.append(combination)
    return unique


def synchronize_batches(
    context: AllocationContext,
    division: Division,
    block: LabBlock,
    tentative: AvailabilityTracker,
) -> list[TentativeAssignment]:
    """Assign every batch of a division a subject, teacher and lab in one block.

    Subjects are tried teachers-not-yet-used-in-this-block first, then by
    descending remaining hours. A batch with no clean option falls back to a
    teacher-conflicting assignment only when conflicts are allowed. Successful
    picks are reserved in ``tentative`` so later batches and divisions see them.

    Returns:
        Assignments for the batches that received one (possibly empty)
    """
    assignments: list[TentativeAssignment] = []
    used_teachers: set[str] = set()

    for batch in division.batches:
        pending = context.progress.pending_for_owner(batch.name)
        if not pending:
            continue
        if not context.is_batch_free(batch.name, block, tentative):
            logger.debug(f"Batch {batch.name} already busy on {context.day.value} {block}")
            continue

        prioritized = sorted(
            pending,
            key=lambda p: (p.teacher.id in used_teachers, -p.remaining_hours),
        )

        assignment = _pick_assignment(context, block, batch.name, prioritized, tentative)
        if assignment is None and context.allow_teacher_conflicts:
            assignment = _pick_assignment(
                context, block, batch.name, prioritized, tentative, strict=False
            )
            if assignment is not None:
                logger.warning(
                    f"Degraded assignment on {context.day.value} {block}: "
                    f"{assignment.teacher.display_name} double-booked for "
                    f"{batch.name} {assignment.subject}"
                )

        if assignment is None:
            logger.debug(
                f"No assignment for batch {batch.name} on {context.day.value} {block}"
            )
            continue

        tentative.reserve(
            context.day,
            block.slots,
            teacher_id=assignment.teacher.id,
            room=assignment.lab_id,
            batch=batch.name,
        )
        used_teachers.add(assignment.teacher.id)
        assignments.append(assignment)

    return assignments


def _pick_assignment(
    context: AllocationContext,
    block: LabBlock,
    batch: str,
    prioritized: list[SubjectProgress],
    tentative: AvailabilityTracker,
    strict: bool = True,
) -> TentativeAssignment | None:
    """First subject whose teacher is free (strict) and for which a lab is free."""
    lab = context.find_free_lab(block, tentative)
    if lab is None:
        return None

    for progress in prioritized:
        teacher_id = progress.teacher.id
        teacher_free = context.is_teacher_free(teacher_id, block, tentative)
        if strict and not teacher_free:
            continue
        # Explicit unavailability stays hard even in the fallback
        if not strict and context.is_teacher_restricted(teacher_id, block):
            continue
        return TentativeAssignment(
            batch=batch,
            subject=progress.subject,
            teacher=progress.teacher,
            lab_id=lab.name,
            teacher_conflict=not teacher_free,
        )
    return None


class HeuristicAllocation(AllocationStrategy):
    """Try sequential, reverse and cyclic orderings; keep the first that validates.

    An ordering validates when every division in it gets at least one batch
    assignment. When none does, the ordering that placed the most divisions
    (then the most batches) is used, so a day still yields partial progress.
    """

    name = "heuristic"

    def allocate(
        self,
        context: AllocationContext,
        divisions: list[Division],
        blocks: list[LabBlock],
    ) -> DayAllocation:
        combinations = generate_allocation_combinations(divisions, blocks)
        best: DayAllocation | None = None

        for combination in combinations:
            logger.debug(
                "Testing allocation: "
                + ", ".join(f"{d.name}@{b}" for d, b in combination)
            )
            result = self._test_allocation(context, combination)
            if result.complete:
                return result
            logger.debug(
                "Allocation incomplete: "
                + "; ".join(f"{name}: {reason}" for name, reason in result.unplaced)
            )
            if best is None or (
                len(result.placements),
                result.assignment_count,
            ) > (len(best.placements), best.assignment_count):
                best = result

        if best is None:
            return DayAllocation(
                unplaced=[(d.name, "no available block") for d in divisions]
            )
        return best

    def _test_allocation(
        self,
        context: AllocationContext,
        combination: list[tuple[Division, LabBlock]],
    ) -> DayAllocation:
        tentative = AvailabilityTracker()
        result = DayAllocation()

        for division, block in combination:
            if not context.restriction_filter.is_block_open(
                context.day, block, division.academic_year
            ):
                result.unplaced.append(
                    (division.name, f"block {block} restricted for {division.academic_year}")
                )
                continue

            assignments = synchronize_batches(context, division, block, tentative)
            if not assignments:
                result.unplaced.append(
                    (division.name, f"no batch could be assigned at {block}")
                )
                continue

            result.placements.append(DivisionPlacement(division, block, assignments))

        return result


class CpSatAllocation(AllocationStrategy):
    """Solve one lab day exactly with the CP-SAT solver.

    Variables:
    - use[d, b]: division d takes block b
    - take[d, batch, subject, b]: batch takes subject in block b

    Constraints: one block per division, one subject per batch, a take implies
    its division's use, per slot at most one session per teacher and at most
    as many sessions as free labs. The objective maximises placed sessions,
    preferring subjects with more remaining hours. Concrete labs are assigned
    afterwards in block start order. Teacher conflicts are never produced.
    """

    name = "cp-sat"

    # Each placed session is worth far more than any remaining-hours bonus
    SESSION_WEIGHT = 1000

    def __init__(self, time_limit: float = DEFAULT_CP_TIME_LIMIT) -> None:
        self.time_limit = time_limit

    def allocate(
        self,
        context: AllocationContext,
        divisions: list[Division],
        blocks: list[LabBlock],
    ) -> DayAllocation:
        if not divisions or not blocks:
            return DayAllocation(
                unplaced=[(d.name, "no available block") for d in divisions]
            )

        model = cp_model.CpModel()
        use: dict[tuple[int, int], cp_model.IntVar] = {}
        take: dict[tuple[int, str, str, int], cp_model.IntVar] = {}
        progress_by_key: dict[tuple[str, str], SubjectProgress] = {}

        for d_idx, division in enumerate(divisions):
            division_uses = []
            for b_idx, block in enumerate(blocks):
                if not context.restriction_filter.is_block_open(
                    context.day, block, division.academic_year
                ):
                    continue
                use_var = model.NewBoolVar(f"use_{division.name}_{block}")
                use[(d_idx, b_idx)] = use_var
                division_uses.append(use_var)

                for batch in division.batches:
                    if not context.is_batch_free(batch.name, block):
                        continue
                    batch_vars = []
                    for progress in context.progress.pending_for_owner(batch.name):
                        if not context.is_teacher_free(progress.teacher.id, block):
                            continue
                        var = model.NewBoolVar(
                            f"take_{batch.name}_{progress.subject}_{block}"
                        )
                        take[(d_idx, batch.name, progress.subject, b_idx)] = var
                        progress_by_key[(batch.name, progress.subject)] = progress
                        model.AddImplication(var, use_var)
                        batch_vars.append(var)
                    if len(batch_vars) > 1:
                        model.AddAtMostOne(batch_vars)

            if len(division_uses) > 1:
                model.AddAtMostOne(division_uses)

        if not take:
            return DayAllocation(
                unplaced=[(d.name, "no free teacher or open block") for d in divisions]
            )

        # Per-slot lab capacity and teacher exclusivity
        slot_vars: dict[int, list] = {}
        teacher_slot_vars: dict[tuple[str, int], list] = {}
        for (d_idx, batch, subject, b_idx), var in take.items():
            teacher_id = progress_by_key[(batch, subject)].teacher.id
            for slot in blocks[b_idx].slots:
                slot_vars.setdefault(slot, []).append(var)
                teacher_slot_vars.setdefault((teacher_id, slot), []).append(var)

        for slot, var_list in slot_vars.items():
            free_labs = sum(
                1 for lab in context.labs
                if context.tracker.is_room_available(lab.name, context.day, slot)
            )
            model.Add(sum(var_list) <= free_labs)

        for var_list in teacher_slot_vars.values():
            if len(var_list) > 1:
                model.AddAtMostOne(var_list)

        model.Maximize(
            sum(
                var * (self.SESSION_WEIGHT + progress_by_key[(batch, subject)].remaining_hours)
                for (_, batch, subject, _), var in take.items()
            )
        )

        solver = cp_model.CpSolver()
        solver.parameters.max_time_in_seconds = self.time_limit
        solver.parameters.log_search_progress = False
        status = solver.Solve(model)

        if status not in (cp_model.OPTIMAL, cp_model.FEASIBLE):
            logger.warning(
                f"CP-SAT found no allocation on {context.day.value}: "
                f"{solver.StatusName(status)}"
            )
            return DayAllocation(
                unplaced=[(d.name, "no feasible allocation") for d in divisions]
            )

        return self._extract(context, divisions, blocks, solver, use, take, progress_by_key)

    def _extract(
        self,
        context: AllocationContext,
        divisions: list[Division],
        blocks: list[LabBlock],
        solver: cp_model.CpSolver,
        use: dict,
        take: dict,
        progress_by_key: dict,
    ) -> DayAllocation:
        """Turn solver values into placements, assigning concrete labs."""
        chosen_block: dict[int, int] = {
            d_idx: b_idx for (d_idx, b_idx), var in use.items() if solver.Value(var)
        }
        taken: dict[int, dict[str, str]] = {}
        for (d_idx, batch, subject, b_idx), var in take.items():
            if solver.Value(var) and chosen_block.get(d_idx) == b_idx:
                taken.setdefault(d_idx, {})[batch] = subject

        result = DayAllocation()
        tentative = AvailabilityTracker()
        order = sorted(
            (d_idx for d_idx in taken),
            key=lambda i: (blocks[chosen_block[i]].start_slot, i),
        )

        for d_idx in order:
            division = divisions[d_idx]
            block = blocks[chosen_block[d_idx]]
            assignments = []
            for batch in division.batches:
                subject = taken[d_idx].get(batch.name)
                if subject is None:
                    continue
                lab = context.find_free_lab(block, tentative)
                if lab is None:
                    logger.debug(f"No lab left for {batch.name} at {block}")
                    continue
                progress = progress_by_key[(batch.name, subject)]
                tentative.reserve(
                    context.day,
                    block.slots,
                    teacher_id=progress.teacher.id,
                    room=lab.name,
                    batch=batch.name,
                )
                assignments.append(
                    TentativeAssignment(
                        batch=batch.name,
                        subject=subject,
                        teacher=progress.teacher,
                        lab_id=lab.name,
                    )
                )
            if assignments:
                result.placements.append(DivisionPlacement(division, block, assignments))

        placed = {p.division.name for p in result.placements}
        result.unplaced = [
            (d.name, "not selected by solver") for d in divisions if d.name not in placed
        ]
        return result


def create_strategy(name: str, time_limit: float = DEFAULT_CP_TIME_LIMIT) -> AllocationStrategy:
    """Factory for allocation strategies by name ('heuristic' or 'cp-sat')."""
    if name == HeuristicAllocation.name:
        return HeuristicAllocation()
    if name == CpSatAllocation.name:
        return CpSatAllocation(time_limit=time_limit)
    raise ValueError(f"Unknown allocation strategy: {name!r}")
