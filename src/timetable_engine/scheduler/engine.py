"""Two-phase timetable engine: capacity check, labs, lectures, emit."""

import logging
import threading
import uuid

from ..config.settings import EngineSettings
from ..exceptions import MissingTimeGridError
from ..models import CapacityReport, ClassroomReport, EngineInput, RunResult
from .allocation import create_strategy
from .capacity import CapacityAnalyzer, analyze_classrooms
from .emitter import ScheduleEmitter, SessionStore
from .labs import LabScheduler
from .lectures import LectureScheduler
from .progress import ProgressMap
from .restrictions import RestrictionFilter
from .validation import validate_sessions

logger = logging.getLogger(__name__)

# Runs mutate run-local state only, but one run at a time per process
_RUN_LOCK = threading.Lock()


class TimetableEngine:
    """
    Runs the full scheduling pipeline.

    Usage:
        engine = TimetableEngine(EngineSettings(allocation_strategy="cp-sat"))
        result = engine.generate(data)
        if not result.success:
            print(result.capacity_report.reasoning)
    """

    def __init__(
        self,
        settings: EngineSettings | None = None,
        store: SessionStore | None = None,
    ):
        self.settings = settings or EngineSettings()
        self.emitter = ScheduleEmitter(store)

    @property
    def store(self) -> SessionStore:
        return self.emitter.store

    def _require_grid(self, data: EngineInput):
        if data.time_grid is None or not data.time_grid.slots:
            raise MissingTimeGridError()
        return data.time_grid

    def analyze(self, data: EngineInput) -> tuple[CapacityReport, ClassroomReport]:
        """Run the capacity analyses without scheduling anything."""
        time_grid = self._require_grid(data)
        restriction_filter = RestrictionFilter(data.active_restrictions)
        analyzer = CapacityAnalyzer(
            time_grid, restriction_filter, self.settings.scheduling_days
        )
        capacity = analyzer.analyze(data.divisions, data.lab_requirements, data.labs)
        classrooms = analyze_classrooms(
            data.divisions, data.lecture_requirements, data.classrooms
        )
        return capacity, classrooms

    def generate(self, data: EngineInput, run_id: str | None = None) -> RunResult:
        """
        Generate a complete timetable.

        Args:
            data: Snapshot of divisions, requirements, resources, grid, restrictions
            run_id: Identifier for the run (generated when omitted)

        Returns:
            RunResult; ``success`` is False when the run aborted for capacity

        Raises:
            MissingTimeGridError: If no time grid is configured
        """
        with _RUN_LOCK:
            return self._generate(data, run_id or uuid.uuid4().hex)

    def _generate(self, data: EngineInput, run_id: str) -> RunResult:
        time_grid = self._require_grid(data)
        settings = self.settings
        logger.info(f"Starting run {run_id} ({settings.allocation_strategy} allocation)")

        capacity, classrooms = self.analyze(data)

        if not capacity.sufficient:
            logger.warning(
                f"Run {run_id} aborted: {capacity.additional_labs_needed} more lab(s) needed"
            )
            return RunResult(
                run_id=run_id,
                success=False,
                error="INSUFFICIENT_LAB_CAPACITY",
                capacity_report=capacity,
                classroom_report=classrooms,
            )

        if settings.enforce_classroom_capacity and not classrooms.sufficient:
            logger.warning(
                f"Run {run_id} aborted: {classrooms.additional_classrooms_needed} "
                "more classroom(s) needed"
            )
            return RunResult(
                run_id=run_id,
                success=False,
                error="INSUFFICIENT_CLASSROOM_CAPACITY",
                capacity_report=capacity,
                classroom_report=classrooms,
            )

        restriction_filter = RestrictionFilter(data.active_restrictions)
        progress = ProgressMap.from_lab_requirements(data.lab_requirements)

        lab_scheduler = LabScheduler(
            time_grid=time_grid,
            labs=data.labs,
            restriction_filter=restriction_filter,
            strategy=create_strategy(settings.allocation_strategy, settings.cp_time_limit),
            days=settings.scheduling_days,
            allow_teacher_conflicts=settings.allow_teacher_conflicts,
        )
        labs = lab_scheduler.schedule(data.divisions, progress, run_id)

        lecture_scheduler = LectureScheduler(
            time_grid=time_grid,
            classrooms=data.classrooms,
            restriction_filter=restriction_filter,
            days=settings.scheduling_days,
            relax_daily_subject_limit=settings.relax_daily_subject_limit,
        )
        lectures = lecture_scheduler.schedule(
            data.divisions, data.lecture_requirements, labs.sessions, run_id
        )

        violations = validate_sessions(labs.sessions, lectures.sessions)

        return self.emitter.emit(
            run_id,
            labs.sessions,
            lectures.sessions,
            unscheduled_labs=labs.unscheduled,
            unscheduled_lectures=lectures.unscheduled,
            capacity_report=capacity,
            classroom_report=classrooms,
            conflicts=labs.conflicts,
            violations=violations,
            resolution_log=labs.resolution_log,
            lab_metrics=labs.metrics,
        )
