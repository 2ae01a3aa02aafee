"""Schedule emission: run statistics and session stores."""

import json
import logging
import os
import tempfile
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Any

from ..constants import LAB_BLOCK_LENGTH
from ..models import (
    CapacityReport,
    ClassroomReport,
    ConflictRecord,
    LabSession,
    LectureSession,
    RunResult,
    ScheduleStatistics,
    UnscheduledLab,
    UnscheduledLecture,
)

logger = logging.getLogger(__name__)


class SessionStore(ABC):
    """Storage collaborator for committed sessions, keyed by run id.

    ``replace`` is the single bulk commit of a run: it swaps every session of
    the run id at once. Storage errors propagate to the caller.
    """

    @abstractmethod
    def replace(
        self, run_id: str, labs: list[LabSession], lectures: list[LectureSession]
    ) -> None:
        pass

    @abstractmethod
    def get_lab_sessions(self, run_id: str) -> list[LabSession]:
        pass

    @abstractmethod
    def get_lecture_sessions(self, run_id: str) -> list[LectureSession]:
        pass

    @abstractmethod
    def delete(self, run_id: str) -> None:
        pass

    @abstractmethod
    def run_ids(self) -> list[str]:
        pass


class InMemorySessionStore(SessionStore):
    """Process-local store, mostly for tests and one-shot CLI runs."""

    def __init__(self) -> None:
        self._runs: dict[str, tuple[list[LabSession], list[LectureSession]]] = {}

    def replace(self, run_id, labs, lectures):
        self._runs[run_id] = (list(labs), list(lectures))

    def get_lab_sessions(self, run_id):
        return list(self._runs.get(run_id, ([], []))[0])

    def get_lecture_sessions(self, run_id):
        return list(self._runs.get(run_id, ([], []))[1])

    def delete(self, run_id):
        self._runs.pop(run_id, None)

    def run_ids(self):
        return list(self._runs)


class JsonSessionStore(SessionStore):
    """One ``<run_id>.json`` document per run inside a directory.

    Writes go to a temporary file in the same directory and are moved into
    place, so readers never observe a half-written run.
    """

    def __init__(self, directory: Path | str):
        self.directory = Path(directory)
        self.directory.mkdir(parents=True, exist_ok=True)

    def _path(self, run_id: str) -> Path:
        return self.directory / f"{run_id}.json"

    def _read(self, run_id: str) -> dict[str, Any]:
        path = self._path(run_id)
        if not path.exists():
            return {"labSessions": [], "lectureSessions": []}
        with open(path, encoding="utf-8") as f:
            return json.load(f)

    def replace(self, run_id, labs, lectures):
        document = {
            "runId": run_id,
            "labSessions": [s.to_dict() for s in labs],
            "lectureSessions": [s.to_dict() for s in lectures],
        }
        fd, tmp_name = tempfile.mkstemp(dir=self.directory, suffix=".tmp")
        with os.fdopen(fd, "w", encoding="utf-8") as f:
            json.dump(document, f, ensure_ascii=False, indent=2)
        os.replace(tmp_name, self._path(run_id))
        logger.debug(f"Stored run {run_id} in {self._path(run_id)}")

    def get_lab_sessions(self, run_id):
        return [LabSession.from_dict(d) for d in self._read(run_id)["labSessions"]]

    def get_lecture_sessions(self, run_id):
        return [LectureSession.from_dict(d) for d in self._read(run_id)["lectureSessions"]]

    def delete(self, run_id):
        self._path(run_id).unlink(missing_ok=True)

    def run_ids(self):
        return sorted(p.stem for p in self.directory.glob("*.json"))


def compute_statistics(
    labs: list[LabSession],
    lectures: list[LectureSession],
    unscheduled_labs: list[UnscheduledLab],
    unscheduled_lectures: list[UnscheduledLecture],
) -> ScheduleStatistics:
    """Counts and hour breakdowns of one run.

    A lab session counts as two hours, a lecture as one.
    """
    stats = ScheduleStatistics(
        lab_sessions=len(labs),
        lecture_sessions=len(lectures),
        unscheduled_labs=len(unscheduled_labs),
        unscheduled_lectures=len(unscheduled_lectures),
    )

    def add(bucket: dict[str, int], key: str, hours: int) -> None:
        bucket[key] = bucket.get(key, 0) + hours

    for lab in labs:
        add(stats.by_division, lab.division, LAB_BLOCK_LENGTH)
        add(stats.by_teacher, lab.teacher.display_name, LAB_BLOCK_LENGTH)
        add(stats.by_day, lab.day.value, LAB_BLOCK_LENGTH)
    for lecture in lectures:
        add(stats.by_division, lecture.division, 1)
        add(stats.by_teacher, lecture.teacher.display_name, 1)
        add(stats.by_day, lecture.day.value, 1)

    stats.scheduled_hours = LAB_BLOCK_LENGTH * len(labs) + len(lectures)
    stats.unscheduled_hours = sum(u.shortfall for u in unscheduled_labs) + sum(
        u.shortfall for u in unscheduled_lectures
    )
    return stats


class ScheduleEmitter:
    """Materializes both session sets of a run under one run id."""

    def __init__(self, store: SessionStore | None = None):
        self.store = store or InMemorySessionStore()

    def emit(
        self,
        run_id: str,
        lab_sessions: list[LabSession],
        lecture_sessions: list[LectureSession],
        unscheduled_labs: list[UnscheduledLab] | None = None,
        unscheduled_lectures: list[UnscheduledLecture] | None = None,
        capacity_report: CapacityReport | None = None,
        classroom_report: ClassroomReport | None = None,
        conflicts: list[ConflictRecord] | None = None,
        violations: list[ConflictRecord] | None = None,
        resolution_log: list[dict[str, Any]] | None = None,
        lab_metrics: dict[str, int] | None = None,
    ) -> RunResult:
        """
        Stamp the run id on every session, commit them and build the result.

        Returns:
            Successful RunResult with statistics
        """
        for session in lab_sessions:
            session.run_id = run_id
        for session in lecture_sessions:
            session.run_id = run_id

        self.store.replace(run_id, lab_sessions, lecture_sessions)

        unscheduled_labs = unscheduled_labs or []
        unscheduled_lectures = unscheduled_lectures or []
        statistics = compute_statistics(
            lab_sessions, lecture_sessions, unscheduled_labs, unscheduled_lectures
        )
        logger.info(
            f"Run {run_id} committed: {len(lab_sessions)} lab and "
            f"{len(lecture_sessions)} lecture sessions, "
            f"utilization {statistics.utilization:.2f}%"
        )

        return RunResult(
            run_id=run_id,
            success=True,
            capacity_report=capacity_report,
            classroom_report=classroom_report,
            lab_sessions=lab_sessions,
            lecture_sessions=lecture_sessions,
            unscheduled_labs=unscheduled_labs,
            unscheduled_lectures=unscheduled_lectures,
            conflicts=conflicts or [],
            violations=violations or [],
            resolution_log=resolution_log or [],
            lab_metrics=lab_metrics or {},
            statistics=statistics,
        )
