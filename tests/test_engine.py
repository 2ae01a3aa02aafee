"""Tests for the end-to-end timetable engine."""

import pytest

from timetable_engine import (
    CapacityShortfallError,
    EngineSettings,
    EngineInput,
    MissingTimeGridError,
    TimetableEngine,
    TimeGrid,
    parse_input,
)
from timetable_engine.constants import DEFAULT_TIME_SLOTS
from timetable_engine.models import Day
from timetable_engine.scheduler import JsonSessionStore


@pytest.fixture
def data(sample_document):
    return parse_input(sample_document)


class TestTimetableEngine:
    """Tests for TimetableEngine."""

    def test_generates_clean_timetable(self, data):
        result = TimetableEngine().generate(data, run_id="run-1")

        assert result.success
        assert result.run_id == "run-1"
        assert len(result.lab_sessions) == 4
        assert {s.day for s in result.lab_sessions} == {Day.MONDAY}
        assert len(result.lecture_sessions) == 7
        assert result.unscheduled_labs == []
        assert result.unscheduled_lectures == []
        assert result.violations == []
        assert result.conflicts == []

    def test_sessions_respect_recess(self, data):
        result = TimetableEngine().generate(data)

        for session in result.lab_sessions:
            assert 6 not in session.slots
        assert all(s.slot_number != 6 for s in result.lecture_sessions)

    def test_divisions_use_disjoint_lab_blocks(self, data):
        result = TimetableEngine().generate(data)

        slots = {}
        for session in result.lab_sessions:
            slots.setdefault(session.division, set()).update(session.slots)
        assert slots["SE-A"].isdisjoint(slots["TE-A"])

    def test_result_is_stored(self, data):
        engine = TimetableEngine()
        result = engine.generate(data, run_id="stored")

        assert engine.store.get_lab_sessions("stored") == result.lab_sessions
        assert len(engine.store.get_lecture_sessions("stored")) == 7

    def test_json_store(self, data, tmp_path):
        engine = TimetableEngine(store=JsonSessionStore(tmp_path))
        engine.generate(data, run_id="disk")
        assert JsonSessionStore(tmp_path).run_ids() == ["disk"]

    def test_run_ids_are_unique(self, data):
        engine = TimetableEngine()
        first = engine.generate(data)
        second = engine.generate(data)

        assert first.run_id != second.run_id
        assert len(first.run_id) == 32
        assert sorted(engine.store.run_ids()) == sorted([first.run_id, second.run_id])

    def test_cp_sat_strategy(self, data):
        settings = EngineSettings(allocation_strategy="cp-sat", cp_time_limit=5)
        result = TimetableEngine(settings).generate(data)

        assert result.success
        assert len(result.lab_sessions) == 4
        assert result.violations == []

    def test_statistics(self, data):
        result = TimetableEngine().generate(data)
        stats = result.statistics

        assert stats.scheduled_hours == 4 * 2 + 7
        assert stats.utilization == 100.0
        assert result.lab_metrics["sessionsScheduled"] == 4

    def test_aborts_on_lab_shortfall(self, sample_document):
        sample_document["resources"] = [
            r for r in sample_document["resources"] if r["name"] != "LAB-2"
        ]
        result = TimetableEngine().generate(parse_input(sample_document))

        assert not result.success
        assert result.error == "INSUFFICIENT_LAB_CAPACITY"
        assert result.lab_sessions == []
        assert result.capacity_report.additional_labs_needed > 0
        with pytest.raises(CapacityShortfallError) as exc_info:
            result.raise_for_capacity()
        assert exc_info.value.resource == "lab"

    def test_classroom_shortfall_only_aborts_when_enforced(self, sample_document):
        sample_document["resources"] = [
            r for r in sample_document["resources"] if not r["name"].startswith("CR")
        ]
        data = parse_input(sample_document)

        relaxed = TimetableEngine().generate(data)
        assert relaxed.success
        assert not relaxed.classroom_report.sufficient
        assert relaxed.lecture_sessions == []

        enforced = TimetableEngine(EngineSettings(enforce_classroom_capacity=True)).generate(data)
        assert not enforced.success
        assert enforced.error == "INSUFFICIENT_CLASSROOM_CAPACITY"
        with pytest.raises(CapacityShortfallError):
            enforced.raise_for_capacity()

    def test_successful_run_does_not_raise(self, data):
        TimetableEngine().generate(data).raise_for_capacity()

    def test_missing_time_grid(self, sample_document):
        sample_document["timeSlots"] = []
        data = parse_input(sample_document)

        with pytest.raises(MissingTimeGridError):
            TimetableEngine().generate(data)
        with pytest.raises(MissingTimeGridError):
            TimetableEngine().analyze(data)

    def test_zero_divisions(self):
        data = EngineInput(time_grid=TimeGrid.from_list(DEFAULT_TIME_SLOTS))
        result = TimetableEngine().generate(data)

        assert result.success
        assert result.lab_sessions == []
        assert result.lecture_sessions == []

    def test_analyze_only(self, data):
        capacity, classrooms = TimetableEngine().analyze(data)

        assert capacity.sufficient
        assert capacity.current_labs == 2
        assert classrooms.minimum_classrooms_required == 2
