"""Input loaders: JSON documents and Excel workbooks."""

import json
import logging
from pathlib import Path
from typing import Any

import pandas as pd

from ..constants import DEFAULT_TIME_SLOTS
from ..exceptions import InvalidInputError
from ..models import (
    Batch,
    Division,
    EngineInput,
    LabRequirement,
    LectureRequirement,
    Resource,
    Restriction,
    SubjectKind,
    TeacherRef,
    TimeGrid,
)
from .settings import EngineSettings

logger = logging.getLogger(__name__)

# Workbook sheet -> JSON document key
SHEET_KEYS = {
    "divisions": "divisions",
    "lab_assignments": "labAssignments",
    "lecture_assignments": "lectureAssignments",
    "resources": "resources",
    "time_slots": "timeSlots",
    "restrictions": "restrictions",
}

# Columns holding comma-separated lists in workbooks
LIST_COLUMNS = {"batches", "days", "timeSlots", "affectedYears"}


def _teacher_from_record(record: dict[str, Any]) -> TeacherRef | None:
    teacher = record.get("teacher")
    if teacher:
        return TeacherRef.from_dict(teacher)
    teacher_id = record.get("teacherId") or record.get("teacher_id")
    if teacher_id is None:
        return None
    name = record.get("teacherName") or record.get("teacher_name") or ""
    return TeacherRef(id=str(teacher_id), name=str(name))


def _hours(record: dict[str, Any], source: str, index: int) -> int:
    raw = record.get("hoursPerWeek", record.get("hours_per_week"))
    try:
        hours = int(float(raw))
    except (TypeError, ValueError):
        raise InvalidInputError(f"hoursPerWeek must be a number, got {raw!r}", source, index)
    if hours <= 0:
        raise InvalidInputError(f"hoursPerWeek must be positive, got {hours}", source, index)
    return hours


def _batch_name(division: str, batch: Any) -> str:
    """Batch names given as bare numbers are prefixed with the division name."""
    if isinstance(batch, (int, float)):
        return f"{division}{int(batch)}"
    text = str(batch).strip()
    if text.isdigit():
        return f"{division}{text}"
    return text


def parse_input(
    data: dict[str, Any],
    source: str = "input",
    use_default_grid: bool = False,
) -> EngineInput:
    """
    Build an EngineInput from a JSON-like document.

    Args:
        data: Document with divisions, labAssignments, lectureAssignments,
              resources, timeSlots and restrictions
        source: Name used in error messages
        use_default_grid: Fall back to the default time grid when the
                          document has no timeSlots

    Returns:
        EngineInput; inactive resources and restrictions are dropped

    Raises:
        InvalidInputError: On malformed records
    """
    divisions: list[Division] = []
    for i, record in enumerate(data.get("divisions", [])):
        if not record.get("name"):
            raise InvalidInputError("division without a name", f"{source}:divisions", i)
        divisions.append(Division.from_dict(record))
    by_name = {d.name: d for d in divisions}

    lab_requirements = []
    for i, record in enumerate(data.get("labAssignments", [])):
        where = f"{source}:labAssignments"
        division = record.get("division")
        if division not in by_name:
            raise InvalidInputError(f"unknown division {division!r}", where, i)
        teacher = _teacher_from_record(record)
        if teacher is None or not record.get("subject") or record.get("batch") is None:
            raise InvalidInputError("batch, subject and teacher are required", where, i)
        batch = _batch_name(division, record["batch"])
        if batch not in by_name[division].batch_names:
            by_name[division].batches.append(Batch(batch))
        lab_requirements.append(
            LabRequirement(
                division=division,
                batch=batch,
                subject=str(record["subject"]),
                teacher=teacher,
                hours_per_week=_hours(record, where, i),
            )
        )

    lecture_requirements = []
    for i, record in enumerate(data.get("lectureAssignments", [])):
        where = f"{source}:lectureAssignments"
        division = record.get("division")
        if division not in by_name:
            raise InvalidInputError(f"unknown division {division!r}", where, i)
        teacher = _teacher_from_record(record)
        if teacher is None or not record.get("subject"):
            raise InvalidInputError("subject and teacher are required", where, i)
        try:
            kind = SubjectKind.parse(record.get("kind") or record.get("type"))
        except ValueError as e:
            raise InvalidInputError(str(e), where, i)
        lecture_requirements.append(
            LectureRequirement(
                division=division,
                subject=str(record["subject"]),
                teacher=teacher,
                hours_per_week=_hours(record, where, i),
                kind=kind,
            )
        )

    resources = []
    for i, record in enumerate(data.get("resources", [])):
        try:
            resource = Resource.from_dict(record)
        except ValueError as e:
            raise InvalidInputError(str(e), f"{source}:resources", i)
        if resource.is_active:
            resources.append(resource)

    time_grid = None
    slots = data.get("timeSlots") or []
    if slots:
        time_grid = TimeGrid.from_list(slots)
    elif use_default_grid:
        logger.info("No timeSlots in input, using the default time grid")
        time_grid = TimeGrid.from_list(DEFAULT_TIME_SLOTS)

    restrictions = []
    for i, record in enumerate(data.get("restrictions", [])):
        try:
            restriction = Restriction.from_dict(record)
        except (TypeError, ValueError) as e:
            raise InvalidInputError(str(e), f"{source}:restrictions", i)
        if restriction.is_active:
            restrictions.append(restriction)

    logger.info(
        f"Loaded {len(divisions)} divisions, {len(lab_requirements)} lab and "
        f"{len(lecture_requirements)} lecture assignments, {len(resources)} resources"
    )
    return EngineInput(
        divisions=divisions,
        lab_requirements=lab_requirements,
        lecture_requirements=lecture_requirements,
        resources=resources,
        time_grid=time_grid,
        restrictions=restrictions,
    )


def load_input_json(path: Path | str) -> dict[str, Any]:
    """Load a JSON input document."""
    with open(path, encoding="utf-8") as f:
        return json.load(f)


def _split_list(value: Any) -> list[Any]:
    if value is None:
        return []
    if isinstance(value, str):
        return [part.strip() for part in value.split(",") if part.strip()]
    return [value]


def _clean_record(record: dict[str, Any]) -> dict[str, Any]:
    """Drop empty cells and split list-valued columns."""
    cleaned = {}
    for key, value in record.items():
        if value is None:
            continue
        if key in LIST_COLUMNS:
            value = _split_list(value)
            if key == "timeSlots":
                value = [int(float(v)) for v in value]
        elif isinstance(value, float) and value.is_integer():
            value = int(value)
        cleaned[str(key)] = value
    return cleaned


def load_workbook_input(path: Path | str) -> dict[str, Any]:
    """
    Read an Excel workbook into a JSON-like input document.

    Expected sheets: divisions, lab_assignments, lecture_assignments,
    resources, time_slots, restrictions. Missing sheets are treated as empty.
    Columns use the JSON field names; list columns are comma separated.
    """
    sheets = pd.read_excel(path, sheet_name=None)
    document: dict[str, Any] = {}

    for sheet_name, key in SHEET_KEYS.items():
        df = sheets.get(sheet_name)
        if df is None:
            logger.warning(f"Sheet '{sheet_name}' not found in {path}")
            document[key] = []
            continue
        df = df.astype(object).where(pd.notna(df), None)
        document[key] = [_clean_record(r) for r in df.to_dict(orient="records")]

    return document


class InputLoader:
    """Loads an EngineInput and EngineSettings from a JSON file or a workbook."""

    def __init__(self, path: Path | str, use_default_grid: bool = False):
        """
        Initialize the loader.

        Args:
            path: .json document or .xlsx workbook
            use_default_grid: Use the default time grid when none is given
        """
        self.path = Path(path)
        if not self.path.exists():
            raise FileNotFoundError(f"Input file not found: {self.path}")

        if self.path.suffix.lower() in (".xlsx", ".xlsm", ".xls"):
            document = load_workbook_input(self.path)
        else:
            document = load_input_json(self.path)

        self.settings = EngineSettings.from_dict(document.get("settings"))
        self.data = parse_input(
            document, source=self.path.name, use_default_grid=use_default_grid
        )
