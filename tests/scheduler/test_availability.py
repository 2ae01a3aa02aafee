"""Tests for occupancy tracking, restriction lookups and block discovery."""

from timetable_engine.models import Day, LabBlock, Restriction, RestrictionScope
from timetable_engine.scheduler.availability import AvailabilityTracker
from timetable_engine.scheduler.blocks import disjoint_blocks, find_available_blocks
from timetable_engine.scheduler.restrictions import RestrictionFilter


class TestAvailabilityTracker:
    """Tests for AvailabilityTracker."""

    def test_reserve_marks_every_slot(self):
        tracker = AvailabilityTracker()
        tracker.reserve(Day.MONDAY, [1, 2], teacher_id="t1", room="LAB-1",
                        division="SE-A", batch="SE-A1")

        assert not tracker.is_teacher_available("t1", Day.MONDAY, 1)
        assert not tracker.is_teacher_available("t1", Day.MONDAY, 2)
        assert not tracker.is_room_available("LAB-1", Day.MONDAY, 2)
        assert not tracker.is_division_available("SE-A", Day.MONDAY, 1)
        assert not tracker.is_batch_available("SE-A1", Day.MONDAY, 1)

    def test_other_days_unaffected(self):
        tracker = AvailabilityTracker()
        tracker.reserve(Day.MONDAY, [1], teacher_id="t1")
        assert tracker.is_teacher_available("t1", Day.TUESDAY, 1)
        assert tracker.is_teacher_available("t1", Day.MONDAY, 2)

    def test_free_for_needs_all_slots(self):
        tracker = AvailabilityTracker()
        tracker.reserve(Day.MONDAY, [2], room="LAB-1")
        assert not tracker.is_room_free_for("LAB-1", Day.MONDAY, [1, 2])
        assert tracker.is_room_free_for("LAB-1", Day.MONDAY, [3, 4])
        tracker.reserve(Day.MONDAY, [1], batch="SE-A1")
        assert not tracker.is_batch_free_for("SE-A1", Day.MONDAY, [1, 2])
        assert tracker.is_batch_free_for("SE-A2", Day.MONDAY, [1, 2])

    def test_clear(self):
        tracker = AvailabilityTracker()
        tracker.reserve(Day.MONDAY, [1], teacher_id="t1", room="LAB-1")
        tracker.clear()
        assert tracker.is_teacher_available("t1", Day.MONDAY, 1)
        assert tracker.is_room_available("LAB-1", Day.MONDAY, 1)


class TestRestrictionFilter:
    """Tests for RestrictionFilter."""

    def test_all_days_wildcard(self):
        rf = RestrictionFilter([Restriction("Recess", days=["All days"], time_slots=[3])])
        assert all(rf.is_globally_blocked(day, 3) for day in Day)
        assert not rf.is_globally_blocked(Day.MONDAY, 2)

    def test_empty_days_means_every_day(self):
        rf = RestrictionFilter([Restriction("Recess", days=[], time_slots=[4])])
        assert rf.is_globally_blocked(Day.FRIDAY, 4)

    def test_year_restriction_uses_label_mapping(self):
        restriction = Restriction(
            "Seminar",
            scope=RestrictionScope.YEAR_SPECIFIC,
            days=["Tuesday"],
            time_slots=[1, 2],
            affected_years=["2nd Year"],
        )
        rf = RestrictionFilter([restriction])

        assert rf.is_blocked_for_year(Day.TUESDAY, 1, "SE")
        assert not rf.is_blocked_for_year(Day.TUESDAY, 1, "TE")
        assert not rf.is_blocked_for_year(Day.WEDNESDAY, 1, "SE")
        assert not rf.is_globally_blocked(Day.TUESDAY, 1)

    def test_inactive_restrictions_ignored(self):
        rf = RestrictionFilter([Restriction("Old", time_slots=[1], is_active=False)])
        assert not rf.is_globally_blocked(Day.MONDAY, 1)

    def test_teacher_restriction_blocks_only_teacher(self):
        rf = RestrictionFilter(
            [Restriction("Leave", days=["Monday"], time_slots=[1], teacher_id="t1")]
        )
        assert rf.is_teacher_blocked("t1", Day.MONDAY, 1)
        assert not rf.is_teacher_blocked("t2", Day.MONDAY, 1)
        assert not rf.is_globally_blocked(Day.MONDAY, 1)

    def test_block_open_checks_both_slots(self):
        rf = RestrictionFilter([Restriction("Recess", time_slots=[2])])
        assert not rf.is_block_open(Day.MONDAY, LabBlock(1, 2), "SE")
        assert rf.is_block_open(Day.MONDAY, LabBlock(3, 4), "SE")

    def test_elective_restrictions_for_year(self):
        elective = Restriction(
            "Open Elective", scope=RestrictionScope.YEAR_SPECIFIC,
            time_slots=[5], affected_years=["3rd Year"],
        )
        other = Restriction(
            "Seminar", scope=RestrictionScope.YEAR_SPECIFIC,
            time_slots=[1], affected_years=["3rd Year"],
        )
        rf = RestrictionFilter([elective, other])
        assert rf.elective_restrictions_for_year("TE") == [elective]
        assert rf.elective_restrictions_for_year("SE") == []


class TestBlocks:
    """Tests for 2-hour block discovery."""

    def test_all_adjacent_pairs_without_restrictions(self, time_grid):
        blocks = find_available_blocks(Day.MONDAY, time_grid, RestrictionFilter([]), ["SE"])
        assert [str(b) for b in blocks] == ["1-2", "2-3", "3-4", "4-5", "5-6"]
        assert blocks[0].time_range == "09:00-11:00"

    def test_global_restriction_removes_blocks(self, time_grid, global_restriction):
        rf = RestrictionFilter([global_restriction([3])])
        blocks = find_available_blocks(Day.MONDAY, time_grid, rf, ["SE"])
        assert [str(b) for b in blocks] == ["1-2", "4-5", "5-6"]

    def test_block_kept_if_open_for_any_year(self, time_grid):
        restriction = Restriction(
            "SE seminar", scope=RestrictionScope.YEAR_SPECIFIC,
            time_slots=[1, 2, 3, 4, 5, 6], affected_years=["2nd Year"],
        )
        rf = RestrictionFilter([restriction])
        assert find_available_blocks(Day.MONDAY, time_grid, rf, ["SE"]) == []
        assert len(find_available_blocks(Day.MONDAY, time_grid, rf, ["SE", "TE"])) == 5

    def test_disjoint_blocks(self, time_grid):
        blocks = find_available_blocks(Day.MONDAY, time_grid, RestrictionFilter([]), ["SE"])
        assert [str(b) for b in disjoint_blocks(blocks)] == ["1-2", "3-4", "5-6"]
