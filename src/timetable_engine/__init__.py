"""Timetable Engine - weekly lab and lecture timetable generation.

Given divisions split into lab batches, subject-hour requirements, rooms, a
daily time grid and hard restrictions, the engine checks lab capacity, places
synchronized 2-hour lab blocks and then 1-hour lectures without double-booking
any teacher, room, division or batch.

Example usage:
    from timetable_engine import InputLoader, TimetableEngine

    loader = InputLoader("input.json")
    engine = TimetableEngine(loader.settings)
    result = engine.generate(loader.data)

    if result.success:
        print(f"Lab sessions: {len(result.lab_sessions)}")
        print(f"Lecture sessions: {len(result.lecture_sessions)}")
    else:
        print(result.capacity_report.reasoning)
"""

from .config import EngineSettings, InputLoader, parse_input
from .exceptions import (
    CapacityShortfallError,
    InvalidInputError,
    MissingTimeGridError,
    TimetableError,
)
from .exporter import export_run_json, export_timetable_excel
from .models import (
    Batch,
    CapacityReport,
    ClassroomReport,
    Day,
    Division,
    EngineInput,
    LabRequirement,
    LabSession,
    LectureRequirement,
    LectureSession,
    Resource,
    ResourceType,
    Restriction,
    RestrictionScope,
    RunResult,
    SubjectKind,
    TeacherRef,
    TimeGrid,
    TimeSlot,
)
from .scheduler import TimetableEngine

__version__ = "0.1.0"

__all__ = [
    # Engine
    "TimetableEngine",
    "EngineSettings",
    # Input
    "InputLoader",
    "parse_input",
    # Models
    "Batch",
    "CapacityReport",
    "ClassroomReport",
    "Day",
    "Division",
    "EngineInput",
    "LabRequirement",
    "LabSession",
    "LectureRequirement",
    "LectureSession",
    "Resource",
    "ResourceType",
    "Restriction",
    "RestrictionScope",
    "RunResult",
    "SubjectKind",
    "TeacherRef",
    "TimeGrid",
    "TimeSlot",
    # Export
    "export_run_json",
    "export_timetable_excel",
    # Exceptions
    "TimetableError",
    "MissingTimeGridError",
    "InvalidInputError",
    "CapacityShortfallError",
]
