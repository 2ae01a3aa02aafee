"""Test fixtures for timetable engine tests."""

import pytest

from timetable_engine.constants import DEFAULT_TIME_SLOTS
from timetable_engine.models import (
    Batch,
    Division,
    LabRequirement,
    LectureRequirement,
    Resource,
    ResourceType,
    Restriction,
    RestrictionScope,
    SubjectKind,
    TeacherRef,
    TimeGrid,
    academic_year_from_division_name,
)


@pytest.fixture
def time_grid():
    """Six one-hour slots: 1-2, 3-4 and 5-6 are the disjoint lab blocks."""
    return TimeGrid.from_list(DEFAULT_TIME_SLOTS)


@pytest.fixture
def make_division():
    """Factory for divisions with numbered batches ('SE-A' -> 'SE-A1'...)."""

    def _make(name="SE-A", batches=3, year=None):
        return Division(
            id=name,
            name=name,
            academic_year=year or academic_year_from_division_name(name),
            batches=[Batch(f"{name}{i}") for i in range(1, batches + 1)],
        )

    return _make


@pytest.fixture
def make_labs():
    def _make(count):
        return [
            Resource(f"LAB-{i}", ResourceType.LABORATORY) for i in range(1, count + 1)
        ]

    return _make


@pytest.fixture
def make_classrooms():
    def _make(count):
        return [
            Resource(f"CR-{i}", ResourceType.CLASSROOM) for i in range(1, count + 1)
        ]

    return _make


@pytest.fixture
def make_lab_requirements():
    """One requirement per batch; each batch gets its own teacher unless shared."""

    def _make(division, subject="DSL", hours=4, teacher_id=None):
        return [
            LabRequirement(
                division=division.name,
                batch=batch,
                subject=subject,
                teacher=TeacherRef(
                    id=teacher_id or f"T-{batch}-{subject}",
                    name=teacher_id or f"Teacher {batch} {subject}",
                ),
                hours_per_week=hours,
            )
            for batch in division.batch_names
        ]

    return _make


@pytest.fixture
def make_lecture():
    def _make(division, subject, teacher_id, hours=2, kind=SubjectKind.THEORY):
        return LectureRequirement(
            division=division.name,
            subject=subject,
            teacher=TeacherRef(id=teacher_id, name=teacher_id),
            hours_per_week=hours,
            kind=kind,
        )

    return _make


@pytest.fixture
def global_restriction():
    def _make(slots, days=None, name="Recess"):
        return Restriction(
            name=name,
            scope=RestrictionScope.GLOBAL,
            days=days or ["All days"],
            time_slots=list(slots),
        )

    return _make


@pytest.fixture
def sample_document():
    """A small but complete JSON input document."""
    return {
        "divisions": [
            {"name": "SE-A", "academicYear": "SE", "batches": [{"name": "A1"}, {"name": "A2"}]},
            {"name": "TE-A", "academicYear": "3rd Year", "batches": ["TA1", "TA2"]},
        ],
        "labAssignments": [
            {"division": "SE-A", "batch": "A1", "subject": "DSL",
             "teacher": {"id": "t1", "name": "Kulkarni"}, "hoursPerWeek": 2},
            {"division": "SE-A", "batch": "A2", "subject": "DSL",
             "teacher": {"id": "t2", "name": "Patil"}, "hoursPerWeek": 2},
            {"division": "TE-A", "batch": "TA1", "subject": "CNL",
             "teacher": {"id": "t3", "name": "Joshi"}, "hoursPerWeek": 2},
            {"division": "TE-A", "batch": "TA2", "subject": "CNL",
             "teacher": {"id": "t4", "name": "Deshmukh"}, "hoursPerWeek": 2},
        ],
        "lectureAssignments": [
            {"division": "SE-A", "subject": "DSA", "teacher": {"id": "t5", "name": "Rao"},
             "hoursPerWeek": 3, "kind": "TH"},
            {"division": "SE-A", "subject": "Soft Skills", "teacher": "t6",
             "hoursPerWeek": 1, "kind": "VAP"},
            {"division": "TE-A", "subject": "CN", "teacher": {"id": "t7", "name": "Iyer"},
             "hoursPerWeek": 3},
        ],
        "resources": [
            {"name": "LAB-1", "type": "laboratory"},
            {"name": "LAB-2", "type": "LAB"},
            {"name": "LAB-3", "type": "laboratory", "isActive": False},
            {"name": "CR-1", "type": "classroom"},
            {"name": "CR-2", "type": "CR"},
        ],
        "timeSlots": DEFAULT_TIME_SLOTS,
        "restrictions": [
            {"restrictionName": "Recess", "scope": "global", "days": ["All days"],
             "timeSlots": [6]},
            {"restrictionName": "Old rule", "scope": "global", "days": ["Monday"],
             "timeSlots": [1], "isActive": False},
        ],
        "settings": {"allocationStrategy": "heuristic"},
    }
