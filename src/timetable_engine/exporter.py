"""Export functions for run results."""

import json
from pathlib import Path

from openpyxl import Workbook
from openpyxl.styles import Alignment, Border, Font, Side
from openpyxl.utils import get_column_letter

from .models import Day, RunResult, TimeGrid

# Fonts
FONT_TITLE = Font(name="Times New Roman", size=14, bold=True)
FONT_HEADER = Font(name="Times New Roman", size=11, bold=True)
FONT_CELL = Font(name="Times New Roman", size=10, bold=False)

# Alignments
ALIGN_CENTER = Alignment(horizontal="center", vertical="center", wrap_text=True)

# Borders
THIN_BORDER = Border(
    left=Side(style="thin"),
    right=Side(style="thin"),
    top=Side(style="thin"),
    bottom=Side(style="thin"),
)

DAY_COLUMN_WIDTH = 14.0
SLOT_COLUMN_WIDTH = 28.0
HEADER_ROW = 3
FIRST_DAY_ROW = 4


def export_run_json(result: RunResult, output_path: Path | str) -> None:
    """Export a run result to a JSON file.

    Args:
        result: RunResult to export
        output_path: Path to output JSON file
    """
    output = Path(output_path)
    output.parent.mkdir(parents=True, exist_ok=True)

    with open(output, "w", encoding="utf-8") as f:
        json.dump(result.to_dict(), f, ensure_ascii=False, indent=2)


def load_run_json(input_path: Path | str) -> dict:
    """Load an exported run result from a JSON file."""
    with open(input_path, encoding="utf-8") as f:
        return json.load(f)


def sanitize_sheet_name(name: str) -> str:
    """Remove characters Excel forbids in sheet names (max 31 chars)."""
    for char in r"/\*?:[]":
        name = name.replace(char, "")
    return name[:31] or "Sheet"


def export_timetable_excel(
    result: RunResult,
    time_grid: TimeGrid,
    output_path: Path | str,
    days: list[Day] | None = None,
) -> Path:
    """
    Write a division-by-division timetable workbook.

    One sheet per division; days are rows and slots are columns. A lab block
    is a single merged cell over its two slot columns listing every batch.

    Args:
        result: Successful run result
        time_grid: Grid the run was scheduled on
        output_path: Path to the .xlsx file
        days: Day rows to render (Monday..Friday by default)

    Returns:
        Path of the written workbook
    """
    days = days or [Day.MONDAY, Day.TUESDAY, Day.WEDNESDAY, Day.THURSDAY, Day.FRIDAY]
    output = Path(output_path)
    output.parent.mkdir(parents=True, exist_ok=True)

    divisions = sorted(
        {s.division for s in result.lab_sessions}
        | {s.division for s in result.lecture_sessions}
    )
    slot_column = {
        slot: i + 2 for i, slot in enumerate(time_grid.slot_numbers)
    }
    day_row = {day: FIRST_DAY_ROW + i for i, day in enumerate(days)}

    wb = Workbook()
    wb.remove(wb.active)

    for division in divisions:
        ws = wb.create_sheet(title=sanitize_sheet_name(division))
        last_column = get_column_letter(len(slot_column) + 1)

        ws["A1"] = f"Timetable: {division}"
        ws["A1"].font = FONT_TITLE
        ws.merge_cells(f"A1:{last_column}1")

        ws.cell(row=HEADER_ROW, column=1, value="Day")
        for slot in time_grid.slots:
            ws.cell(
                row=HEADER_ROW,
                column=slot_column[slot.slot_number],
                value=f"{slot.slot_number}\n{slot.start_time}-{slot.end_time}",
            )
        for day, row in day_row.items():
            ws.cell(row=row, column=1, value=day.value)

        # (day, start_slot, end_slot) -> lab labels
        lab_blocks: dict[tuple[Day, int, int], list[str]] = {}
        for session in result.lab_sessions:
            if session.division == division and session.day in day_row:
                key = (session.day, session.start_slot, session.end_slot)
                lab_blocks.setdefault(key, []).append(session.formatted)

        for (day, start, end), labels in lab_blocks.items():
            if start not in slot_column or end not in slot_column:
                continue
            row = day_row[day]
            ws.cell(row=row, column=slot_column[start], value="\n".join(labels))
            ws.merge_cells(
                start_row=row,
                start_column=slot_column[start],
                end_row=row,
                end_column=slot_column[end],
            )

        for session in result.lecture_sessions:
            if session.division != division or session.day not in day_row:
                continue
            column = slot_column.get(session.slot_number)
            if column is None:
                continue
            ws.cell(row=day_row[session.day], column=column, value=session.formatted)

        for row in ws.iter_rows(
            min_row=HEADER_ROW, max_row=FIRST_DAY_ROW + len(days) - 1,
            min_col=1, max_col=len(slot_column) + 1,
        ):
            for cell in row:
                cell.border = THIN_BORDER
                cell.alignment = ALIGN_CENTER
                cell.font = FONT_HEADER if cell.row == HEADER_ROW or cell.column == 1 else FONT_CELL

        ws.column_dimensions["A"].width = DAY_COLUMN_WIDTH
        for column in slot_column.values():
            ws.column_dimensions[get_column_letter(column)].width = SLOT_COLUMN_WIDTH

    if not divisions:
        wb.create_sheet(title="Timetable")

    wb.save(output)
    return output
