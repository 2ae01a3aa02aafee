"""Tests for the lab scheduler."""

import pytest

from timetable_engine.models import Day, Restriction, UnscheduledReason
from timetable_engine.scheduler.allocation import CpSatAllocation
from timetable_engine.scheduler.labs import LabScheduler
from timetable_engine.scheduler.progress import ProgressMap
from timetable_engine.scheduler.restrictions import RestrictionFilter
from timetable_engine.scheduler.validation import validate_sessions


def _run(time_grid, divisions, requirements, labs, restrictions=None, **kwargs):
    scheduler = LabScheduler(
        time_grid, labs, RestrictionFilter(restrictions or []), **kwargs
    )
    progress = ProgressMap.from_lab_requirements(requirements)
    return scheduler.schedule(divisions, progress, run_id="run-1")


class TestLabScheduler:
    """Tests for LabScheduler."""

    def test_single_division_completes_in_two_days(
        self, time_grid, make_division, make_lab_requirements, make_labs
    ):
        division = make_division("SE-A")
        result = _run(time_grid, [division], make_lab_requirements(division), make_labs(3))

        assert len(result.sessions) == 6
        assert {s.day for s in result.sessions} == {Day.MONDAY, Day.TUESDAY}
        assert all((s.start_slot, s.end_slot) == (1, 2) for s in result.sessions)
        assert result.unscheduled == []
        assert all(s.run_id == "run-1" for s in result.sessions)
        assert result.metrics == {
            "sessionsScheduled": 6,
            "divisionsScheduled": 1,
            "conflictsFound": 0,
            "daysUsed": 2,
        }

    def test_batches_in_one_block_use_distinct_labs(
        self, time_grid, make_division, make_lab_requirements, make_labs
    ):
        division = make_division("SE-A")
        result = _run(time_grid, [division], make_lab_requirements(division), make_labs(3))

        monday = [s for s in result.sessions if s.day == Day.MONDAY]
        assert len({s.lab_id for s in monday}) == 3
        assert validate_sessions(result.sessions, []) == []

    def test_resolution_log_records_each_commit(
        self, time_grid, make_division, make_lab_requirements, make_labs
    ):
        division = make_division("SE-A")
        result = _run(time_grid, [division], make_lab_requirements(division), make_labs(3))

        entry = result.resolution_log[0]
        assert entry["division"] == "SE-A"
        assert entry["day"] == "Monday"
        assert entry["block"] == "1-2"
        assert entry["timeRange"] == "09:00-11:00"
        assert len(entry["assignments"]) == 3

    def test_two_divisions_share_a_day_without_overlap(
        self, time_grid, make_division, make_lab_requirements, make_labs
    ):
        a, b = make_division("SE-A"), make_division("SE-B")
        requirements = make_lab_requirements(a, hours=2) + make_lab_requirements(b, hours=2)

        result = _run(time_grid, [a, b], requirements, make_labs(3))

        assert len(result.sessions) == 6
        assert {s.day for s in result.sessions} == {Day.MONDAY}
        blocks = {s.division: set(s.slots) for s in result.sessions}
        assert blocks["SE-A"].isdisjoint(blocks["SE-B"])
        assert validate_sessions(result.sessions, []) == []

    def test_cp_sat_strategy(self, time_grid, make_division, make_lab_requirements, make_labs):
        a, b = make_division("SE-A"), make_division("SE-B")
        requirements = make_lab_requirements(a, hours=2) + make_lab_requirements(b, hours=2)

        result = _run(
            time_grid, [a, b], requirements, make_labs(3),
            strategy=CpSatAllocation(time_limit=5),
        )

        assert len(result.sessions) == 6
        assert result.unscheduled == []
        assert validate_sessions(result.sessions, []) == []

    def test_shared_teacher_spreads_over_days(
        self, time_grid, make_division, make_lab_requirements, make_labs
    ):
        division = make_division("SE-A")
        requirements = make_lab_requirements(division, hours=2, teacher_id="t1")

        result = _run(time_grid, [division], requirements, make_labs(3))

        assert [s.day for s in result.sessions] == [Day.MONDAY, Day.TUESDAY, Day.WEDNESDAY]
        assert not any(s.teacher_conflict for s in result.sessions)
        assert {c.kind for c in result.conflicts} == {"partial_division"}
        assert validate_sessions(result.sessions, []) == []

    def test_allowed_teacher_conflicts_are_flagged(
        self, time_grid, make_division, make_lab_requirements, make_labs
    ):
        division = make_division("SE-A")
        requirements = make_lab_requirements(division, hours=2, teacher_id="t1")

        result = _run(
            time_grid, [division], requirements, make_labs(3), allow_teacher_conflicts=True
        )

        assert len(result.sessions) == 3
        assert {s.day for s in result.sessions} == {Day.MONDAY}
        assert sum(s.teacher_conflict for s in result.sessions) == 2
        assert [c.kind for c in result.conflicts] == ["teacher_conflict", "teacher_conflict"]
        violations = validate_sessions(result.sessions, [])
        assert {v.kind for v in violations} == {"teacher_double_booking"}

    def test_teacher_unavailability_is_never_overridden(
        self, time_grid, make_division, make_lab_requirements, make_labs
    ):
        division = make_division("SE-A")
        requirements = make_lab_requirements(division, hours=2, teacher_id="t1")
        leave = Restriction("Leave", days=["Monday"], time_slots=[1, 2, 3, 4, 5, 6],
                            teacher_id="t1")

        result = _run(
            time_grid, [division], requirements, make_labs(3), [leave],
            allow_teacher_conflicts=True,
        )

        assert Day.MONDAY not in {s.day for s in result.sessions}
        assert any(c.kind == "division_unplaced" and c.day == Day.MONDAY
                   for c in result.conflicts)
        assert len(result.sessions) == 3

    def test_leftover_hours_are_unscheduled(
        self, time_grid, make_division, make_lab_requirements, make_labs
    ):
        division = make_division("SE-A", batches=1)
        requirements = make_lab_requirements(division, hours=12)

        result = _run(time_grid, [division], requirements, make_labs(1))

        assert len(result.sessions) == 5
        assert len(result.unscheduled) == 1
        entry = result.unscheduled[0]
        assert entry.completed_hours == 10
        assert entry.shortfall == 2
        assert entry.reason == UnscheduledReason.NO_LAB_BLOCK

    def test_no_labs_leaves_everything_unscheduled(
        self, time_grid, make_division, make_lab_requirements
    ):
        division = make_division("SE-A")
        result = _run(time_grid, [division], make_lab_requirements(division), [])

        assert result.sessions == []
        assert len(result.unscheduled) == 3
        assert result.metrics["daysUsed"] == 0

    def test_globally_blocked_week(
        self, time_grid, make_division, make_lab_requirements, make_labs, global_restriction
    ):
        division = make_division("SE-A")
        result = _run(
            time_grid, [division], make_lab_requirements(division), make_labs(3),
            [global_restriction(range(1, 7))],
        )

        assert result.sessions == []
        assert all(u.completed_hours == 0 for u in result.unscheduled)

    @pytest.mark.parametrize("blocked_slots", [[2], [3], [2, 4]])
    def test_sessions_never_touch_blocked_slots(
        self, time_grid, make_division, make_lab_requirements, make_labs,
        global_restriction, blocked_slots,
    ):
        division = make_division("SE-A")
        result = _run(
            time_grid, [division], make_lab_requirements(division), make_labs(3),
            [global_restriction(blocked_slots)],
        )

        assert result.sessions
        for session in result.sessions:
            assert not set(session.slots) & set(blocked_slots)

    def test_fully_blocked_day_carries_work_to_later_days(
        self, time_grid, make_division, make_lab_requirements, make_labs, global_restriction
    ):
        division = make_division("SE-A")
        result = _run(
            time_grid, [division], make_lab_requirements(division), make_labs(3),
            [global_restriction(range(1, 7), days=["Monday"])],
        )

        days = {s.day for s in result.sessions}
        assert Day.MONDAY not in days
        assert days == {Day.TUESDAY, Day.WEDNESDAY}
        assert len(result.sessions) == 6
        assert result.unscheduled == []


class TestLabProgress:
    """Progress bookkeeping across the day loop."""

    WEEK = [Day.MONDAY, Day.TUESDAY, Day.WEDNESDAY, Day.THURSDAY, Day.FRIDAY]

    def test_completed_hours_never_exceed_total(
        self, time_grid, make_division, make_lab_requirements, make_labs
    ):
        a, b = make_division("SE-A"), make_division("SE-B", batches=2)
        requirements = (
            make_lab_requirements(a, hours=3)
            + make_lab_requirements(b, "OSL", hours=5)
            + make_lab_requirements(b, "CNL", hours=1)
        )

        result = _run(time_grid, [a, b], requirements, make_labs(3))

        assert len(result.progress) == len(requirements)
        for entry in result.progress:
            assert 0 <= entry.completed_hours <= entry.total_hours

    def test_completed_hours_grow_with_each_day(
        self, time_grid, make_division, make_lab_requirements, make_labs
    ):
        a, b = make_division("SE-A"), make_division("SE-B")
        requirements = make_lab_requirements(a, hours=5) + make_lab_requirements(b, hours=3)

        snapshots = [
            _run(
                time_grid, [a, b], requirements, make_labs(3), days=self.WEEK[:count]
            ).progress.snapshot()
            for count in range(1, len(self.WEEK) + 1)
        ]

        for earlier, later in zip(snapshots, snapshots[1:]):
            assert all(later[key] >= earlier[key] for key in earlier)
        assert snapshots[-1] == {req.key: req.hours_per_week for req in requirements}
