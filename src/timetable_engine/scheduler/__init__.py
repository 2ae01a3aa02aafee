"""Two-phase timetable scheduling engine.

The engine first checks lab capacity, then places synchronized 2-slot lab
blocks for every batch of a division day by day, and finally places 1-slot
lectures around the committed labs with a rotating day pointer.

Main classes:
- TimetableEngine: Runs the whole pipeline and commits a run
- CapacityAnalyzer: Side-effect free lab sufficiency check
- LabScheduler: Day-by-day lab block scheduling
- LectureScheduler: Lecture placement with lab precedence and day rotation

Usage:
    from timetable_engine.scheduler import TimetableEngine

    engine = TimetableEngine()
    result = engine.generate(data)
"""

from .allocation import (
    AllocationStrategy,
    CpSatAllocation,
    HeuristicAllocation,
    create_strategy,
)
from .availability import AvailabilityTracker
from .blocks import disjoint_blocks, find_available_blocks
from .capacity import CapacityAnalyzer, analyze_classrooms
from .emitter import (
    InMemorySessionStore,
    JsonSessionStore,
    ScheduleEmitter,
    SessionStore,
    compute_statistics,
)
from .engine import TimetableEngine
from .labs import LabScheduler, LabScheduleResult
from .lectures import LectureScheduler, LectureScheduleResult
from .progress import ProgressMap, SubjectProgress
from .restrictions import RestrictionFilter
from .rotation import DayRotationPolicy, FixedStartRotation, SharedDayRotation
from .validation import validate_sessions

__all__ = [
    # Engine
    "TimetableEngine",
    # Phases
    "CapacityAnalyzer",
    "analyze_classrooms",
    "LabScheduler",
    "LabScheduleResult",
    "LectureScheduler",
    "LectureScheduleResult",
    # Allocation
    "AllocationStrategy",
    "CpSatAllocation",
    "HeuristicAllocation",
    "create_strategy",
    # State
    "AvailabilityTracker",
    "ProgressMap",
    "RestrictionFilter",
    "SubjectProgress",
    # Rotation
    "DayRotationPolicy",
    "FixedStartRotation",
    "SharedDayRotation",
    # Emission
    "InMemorySessionStore",
    "JsonSessionStore",
    "ScheduleEmitter",
    "SessionStore",
    "compute_statistics",
    # Utilities
    "disjoint_blocks",
    "find_available_blocks",
    "validate_sessions",
]
