"""Tests for the subject progress map."""

from timetable_engine.models import LabRequirement, ProgressStatus, TeacherRef
from timetable_engine.scheduler.progress import ProgressMap


def _req(batch, subject, hours, teacher="t1"):
    return LabRequirement("SE-A", batch, subject, TeacherRef(teacher), hours)


class TestProgressMap:
    """Tests for ProgressMap."""

    def test_seeded_from_requirements(self):
        progress = ProgressMap.from_lab_requirements([_req("A1", "DSL", 4), _req("A1", "OSL", 2)])
        assert len(progress) == 2
        assert progress.get("A1", "DSL").remaining_hours == 4
        assert progress.get("A1", "DSL").status == ProgressStatus.PENDING

    def test_duplicates_are_merged(self):
        progress = ProgressMap.from_lab_requirements([_req("A1", "DSL", 2), _req("A1", "DSL", 2)])
        assert len(progress) == 1
        assert progress.get("A1", "DSL").total_hours == 4

    def test_zero_hour_requirements_skipped(self):
        progress = ProgressMap.from_lab_requirements([_req("A1", "DSL", 0)])
        assert len(progress) == 0
        assert not progress.has_remaining(["A1"])

    def test_record_never_exceeds_total(self):
        progress = ProgressMap.from_lab_requirements([_req("A1", "DSL", 3)])

        assert progress.record("A1", "DSL", 2) == 2
        assert progress.get("A1", "DSL").status == ProgressStatus.IN_PROGRESS
        assert progress.record("A1", "DSL", 2) == 1
        assert progress.record("A1", "DSL", 2) == 0

        entry = progress.get("A1", "DSL")
        assert entry.completed_hours == 3
        assert entry.status == ProgressStatus.COMPLETED

    def test_pending_for_owner(self):
        progress = ProgressMap.from_lab_requirements([_req("A1", "DSL", 2), _req("A1", "OSL", 2)])
        progress.record("A1", "DSL", 2)
        assert [p.subject for p in progress.pending_for_owner("A1")] == ["OSL"]
        assert progress.pending_for_owner("A2") == []

    def test_snapshot(self):
        progress = ProgressMap.from_lab_requirements([_req("A1", "DSL", 4)])
        progress.record("A1", "DSL", 2)
        assert progress.snapshot() == {("A1", "DSL"): 2}
