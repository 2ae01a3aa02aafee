"""CLI entry point for the timetable engine."""

import logging
from dataclasses import replace
from enum import Enum
from pathlib import Path
from typing import Annotated, Optional

import typer
from rich.console import Console
from rich.logging import RichHandler
from rich.table import Table

from .config import EngineSettings, InputLoader
from .exceptions import InvalidInputError, MissingTimeGridError
from .exporter import export_run_json, export_timetable_excel
from .models import CapacityReport, ClassroomReport, RunResult
from .scheduler import JsonSessionStore, TimetableEngine

app = typer.Typer(
    name="timetable-engine",
    help="Generate weekly lab and lecture timetables",
    add_completion=False,
)
console = Console()

# Exit code for a run aborted by a capacity shortfall
EXIT_CAPACITY = 2


class Strategy(str, Enum):
    """Lab allocation strategy options."""

    heuristic = "heuristic"
    cp_sat = "cp-sat"


def _setup_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=console, show_path=False)],
        force=True,
    )


def _load(input_file: Path, default_grid: bool) -> InputLoader:
    try:
        return InputLoader(input_file, use_default_grid=default_grid)
    except (InvalidInputError, ValueError) as e:
        console.print(f"[bold red]Error:[/bold red] {e}")
        raise typer.Exit(1)


def _show_capacity(capacity: CapacityReport, classrooms: ClassroomReport) -> None:
    table = Table(title="Capacity")
    table.add_column("Resource")
    table.add_column("Available", justify="right")
    table.add_column("Required", justify="right")
    table.add_column("Additional", justify="right")
    table.add_column("Status")

    def status(ok: bool) -> str:
        return "[green]sufficient[/green]" if ok else "[red]insufficient[/red]"

    table.add_row(
        "Laboratories",
        str(capacity.current_labs),
        str(capacity.minimum_labs_required),
        str(capacity.additional_labs_needed),
        status(capacity.sufficient),
    )
    table.add_row(
        "Classrooms",
        str(classrooms.current_classrooms),
        str(classrooms.minimum_classrooms_required),
        str(classrooms.additional_classrooms_needed),
        status(classrooms.sufficient),
    )
    console.print(table)


def _show_results(result: RunResult, verbose: bool) -> None:
    stats = result.statistics
    console.print(f"\n[bold]Run {result.run_id}[/bold]")
    console.print(f"  Lab sessions: {stats.lab_sessions}")
    console.print(f"  Lecture sessions: {stats.lecture_sessions}")
    console.print(f"  Scheduled hours: {stats.scheduled_hours}")
    console.print(f"  Unscheduled hours: {stats.unscheduled_hours}")
    console.print(f"  Utilization: {stats.utilization:.2f}%")

    if stats.by_day:
        table = Table(title="Hours by day")
        table.add_column("Day")
        table.add_column("Hours", justify="right")
        for day, hours in stats.by_day.items():
            table.add_row(day, str(hours))
        console.print(table)

    if result.unscheduled_labs or result.unscheduled_lectures:
        table = Table(title="Unscheduled")
        table.add_column("Division")
        table.add_column("Owner")
        table.add_column("Subject")
        table.add_column("Shortfall", justify="right")
        table.add_column("Reason")
        for lab in result.unscheduled_labs:
            table.add_row(lab.division, lab.batch, lab.subject, str(lab.shortfall), lab.reason.value)
        for lecture in result.unscheduled_lectures:
            table.add_row(
                lecture.division, lecture.division, lecture.subject,
                str(lecture.shortfall), lecture.reason.value,
            )
        console.print(table)

    if result.conflicts:
        console.print(f"\n[bold yellow]Conflicts ({len(result.conflicts)}):[/bold yellow]")
        shown = result.conflicts if verbose else result.conflicts[:10]
        for conflict in shown:
            console.print(f"  [yellow]• {conflict.details}[/yellow]")
        if len(shown) < len(result.conflicts):
            console.print(f"  [yellow]... and {len(result.conflicts) - len(shown)} more[/yellow]")

    if result.violations:
        console.print(f"\n[bold red]Violations ({len(result.violations)}):[/bold red]")
        for violation in result.violations:
            console.print(f"  [red]• {violation.kind}: {violation.details}[/red]")


@app.command()
def analyze(
    input_file: Annotated[
        Path,
        typer.Argument(help="Input JSON document or Excel workbook", exists=True, readable=True),
    ],
    default_grid: Annotated[
        bool,
        typer.Option("--default-grid", help="Use the default time grid if none is given"),
    ] = False,
    verbose: Annotated[
        bool,
        typer.Option("-v", "--verbose", help="Show detailed output"),
    ] = False,
) -> None:
    """Check whether labs and classrooms are sufficient."""
    _setup_logging(verbose)
    loader = _load(input_file, default_grid)

    try:
        capacity, classrooms = TimetableEngine(loader.settings).analyze(loader.data)
    except MissingTimeGridError as e:
        console.print(f"[bold red]Error:[/bold red] {e}")
        raise typer.Exit(1)

    _show_capacity(capacity, classrooms)
    console.print(f"\n{capacity.reasoning}")
    if verbose:
        for day in capacity.days:
            console.print(day.reasoning)
        console.print(f"\n{classrooms.reasoning}")

    if not capacity.sufficient:
        raise typer.Exit(EXIT_CAPACITY)


@app.command()
def generate(
    input_file: Annotated[
        Path,
        typer.Argument(help="Input JSON document or Excel workbook", exists=True, readable=True),
    ],
    output: Annotated[
        Optional[Path],
        typer.Option("-o", "--output", help="Output JSON file path"),
    ] = None,
    excel: Annotated[
        Optional[Path],
        typer.Option("--excel", help="Directory for the Excel timetable"),
    ] = None,
    store: Annotated[
        Optional[Path],
        typer.Option("--store", help="Directory of the JSON session store"),
    ] = None,
    strategy: Annotated[
        Optional[Strategy],
        typer.Option("--strategy", help="Lab allocation strategy"),
    ] = None,
    allow_teacher_conflicts: Annotated[
        bool,
        typer.Option(
            "--allow-teacher-conflicts",
            help="Permit degraded lab assignments that double-book a teacher",
        ),
    ] = False,
    relaxed: Annotated[
        bool,
        typer.Option("--relaxed", help="Retry short lectures without the one-per-day rule"),
    ] = False,
    default_grid: Annotated[
        bool,
        typer.Option("--default-grid", help="Use the default time grid if none is given"),
    ] = False,
    verbose: Annotated[
        bool,
        typer.Option("-v", "--verbose", help="Show detailed output"),
    ] = False,
) -> None:
    """Generate a complete lab and lecture timetable."""
    _setup_logging(verbose)
    loader = _load(input_file, default_grid)

    settings: EngineSettings = loader.settings
    overrides = {}
    if strategy is not None:
        overrides["allocation_strategy"] = strategy.value
    if allow_teacher_conflicts:
        overrides["allow_teacher_conflicts"] = True
    if relaxed:
        overrides["relax_daily_subject_limit"] = True
    if overrides:
        settings = replace(settings, **overrides)

    engine = TimetableEngine(settings, JsonSessionStore(store) if store else None)

    console.print(f"\n[bold]Timetable generation for:[/bold] {input_file.name}")
    try:
        with console.status("[bold green]Generating timetable..."):
            result = engine.generate(loader.data)
    except MissingTimeGridError as e:
        console.print(f"[bold red]Error:[/bold red] {e}")
        raise typer.Exit(1)

    if not result.success:
        console.print(f"[bold red]Run aborted:[/bold red] {result.error}")
        _show_capacity(result.capacity_report, result.classroom_report)
        console.print(f"\n{result.capacity_report.reasoning}")
        raise typer.Exit(EXIT_CAPACITY)

    _show_results(result, verbose)

    output_path = output or Path("output/timetable.json")
    if output_path.suffix != ".json":
        output_path = output_path.with_suffix(".json")
    with console.status(f"[bold green]Exporting to {output_path}..."):
        export_run_json(result, output_path)
    console.print(f"\n[bold green]✓[/bold green] Timetable exported to: {output_path}")

    if excel:
        excel_path = excel / f"timetable_{result.run_id}.xlsx"
        with console.status(f"[bold green]Exporting to {excel_path}..."):
            export_timetable_excel(
                result, loader.data.time_grid, excel_path, settings.scheduling_days
            )
        console.print(f"[bold green]✓[/bold green] Excel timetable: {excel_path}")


if __name__ == "__main__":
    app()
