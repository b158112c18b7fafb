"""
Main CLI application using Typer.
"""

import asyncio
import json
import logging
from pathlib import Path
from typing import Annotated, List, Optional, Tuple

import pendulum
import typer
from pendulum import Date
from rich.console import Console
from rich.logging import RichHandler
from rich.panel import Panel
from rich.table import Table

from ..adapters.json_snapshot_source import JsonSnapshotSource
from ..config import AppConfig, get_default_config_path
from ..domain.exceptions import AvailabilityError
from ..domain.models import ProcessedAvailability
from ..domain.wallclock import to_date
from ..services.availability_service import AvailabilityService

app = typer.Typer(
    name="therapyslots",
    help="Resolve bookable session times from practitioner schedules",
    add_completion=False
)

console = Console()
err_console = Console(stderr=True)

ConfigOption = Annotated[
    Optional[Path],
    typer.Option("--config", "-c", help="Path to config file. Defaults to ./config.yaml")
]
SnapshotOption = Annotated[
    Optional[Path],
    typer.Option("--snapshot", "-s", help="JSON snapshot to read. Overrides the config file.")
]
JsonOption = Annotated[bool, typer.Option("--json", help="Print raw JSON instead of a table.")]


@app.callback()
def main(
    verbose: Annotated[bool, typer.Option("--verbose", "-v", help="Show debug logging.")] = False,
):
    """
    Resolve practitioner availability from weekly templates, events, holidays and bookings.
    """
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(message)s",
        handlers=[RichHandler(console=err_console, show_path=False)],
        force=True,
    )


def _load_config(config_file: Optional[Path]) -> AppConfig:
    """An explicit --config must exist; a missing default falls back to built-in defaults."""
    if config_file is not None:
        return AppConfig.load_from_yaml(config_file)

    default_path = get_default_config_path()
    if default_path.exists():
        return AppConfig.load_from_yaml(default_path)

    return AppConfig()


def _build_service(
    config_file: Optional[Path],
    snapshot: Optional[Path],
) -> Tuple[AppConfig, JsonSnapshotSource, AvailabilityService]:
    config = _load_config(config_file)
    source = JsonSnapshotSource(
        path=snapshot or config.snapshot_path,
        monthly_fallback=config.monthly_fallback,
    )
    return config, source, AvailabilityService(snapshot_source=source, config=config)


def _determine_week_start(
    *,
    tz: str,
    this_week: bool,
    next_week: bool,
    start_option: Optional[str],
) -> Date:
    """
    Resolve the first day of the week to show based on shortcut flags or an explicit date.
    """
    if this_week and next_week:
        raise ValueError("--this-week and --next-week cannot be used together.")

    now = pendulum.now(tz)

    if next_week:
        return now.next(pendulum.MONDAY).date()

    if start_option:
        return to_date(start_option)

    return now.start_of("week").date()


def _render_days(days: List[ProcessedAvailability], title: str) -> None:
    table = Table(
        title=title,
        show_header=True,
        header_style="bold cyan"
    )
    table.add_column("Date", style="bold yellow")
    table.add_column("Time")
    table.add_column("Status")
    table.add_column("Reason", style="dim")

    for day in days:
        label = day.date.format("ddd DD.MM.YYYY")

        if not day.time_slots:
            table.add_row(label, "-", "[dim]no availability[/dim]", "")
            continue

        for index, slot in enumerate(day.time_slots):
            status = "[green]available[/green]" if slot.available else "[red]unavailable[/red]"
            table.add_row(label if index == 0 else "", slot.time, status, slot.reason or "")

    console.print()
    console.print(table)
    console.print()


def _print_json(data) -> None:
    typer.echo(json.dumps(data, ensure_ascii=False, indent=2))


def _fail(exc: Exception) -> None:
    err_console.print(f"[bold red]Error:[/bold red] {exc}")
    raise typer.Exit(1)


@app.command()
def week(
    practitioner: Annotated[str, typer.Argument(help="Practitioner id in the snapshot")],
    start: Annotated[Optional[str], typer.Option("--start", help="First day of the week (YYYY-MM-DD)")] = None,
    this_week: Annotated[bool, typer.Option("--this-week", help="The current week, starting Monday.")] = False,
    next_week: Annotated[bool, typer.Option("--next-week", help="The coming week, starting Monday.")] = False,
    config_file: ConfigOption = None,
    snapshot: SnapshotOption = None,
    as_json: JsonOption = False,
):
    """
    Show seven days of availability, as in the practitioner calendar.

    Examples:

        therapyslots week ana-souza --this-week

        therapyslots week ana-souza --start 2026-10-19 --json
    """
    try:
        config, _, service = _build_service(config_file, snapshot)
        week_start = _determine_week_start(
            tz=config.timezone,
            this_week=this_week,
            next_week=next_week,
            start_option=start,
        )
        days = asyncio.run(service.get_week_availability(practitioner, week_start))
    except (FileNotFoundError, ValueError, AvailabilityError) as exc:
        _fail(exc)

    if as_json:
        _print_json([day.to_dict() for day in days])
        return

    _render_days(days, title=f"{practitioner} - week of {week_start.format('DD.MM.YYYY')}")


@app.command()
def day(
    practitioner: Annotated[str, typer.Argument(help="Practitioner id in the snapshot")],
    target_date: Annotated[str, typer.Argument(metavar="DATE", help="Date to resolve (YYYY-MM-DD)")],
    config_file: ConfigOption = None,
    snapshot: SnapshotOption = None,
    as_json: JsonOption = False,
):
    """
    Show the bookable times of a single date, as in the client booking view.
    """
    try:
        _, _, service = _build_service(config_file, snapshot)
        result = asyncio.run(service.get_day_availability(practitioner, target_date))
    except (FileNotFoundError, ValueError, AvailabilityError) as exc:
        _fail(exc)

    if as_json:
        _print_json(result.to_dict())
        return

    if result.is_blocked_all_day:
        console.print(Panel.fit(
            f"[bold red]No appointments on this date[/bold red]\n\n{result.time_slots[0].reason}",
            title=result.date.format("ddd DD.MM.YYYY")
        ))
        return

    console.print()
    if not result.time_slots:
        console.print(f"[yellow]No availability on {result.date.format('DD.MM.YYYY')}.[/yellow]")
    else:
        available = len(result.available_times())
        console.print(
            f"[bold green]{practitioner} - {result.date.format('ddd DD.MM.YYYY')}: "
            f"{available} bookable time(s)[/bold green]\n"
        )
        for slot in result.time_slots:
            console.print(f"  {slot.format_display()}", highlight=False)
    console.print()


@app.command()
def calendar(
    practitioner: Annotated[str, typer.Argument(help="Practitioner id in the snapshot")],
    start: Annotated[Optional[str], typer.Option("--start", help="Start date (YYYY-MM-DD). Defaults to today.")] = None,
    end: Annotated[Optional[str], typer.Option("--end", help="End date (YYYY-MM-DD). Defaults to start + 6 days.")] = None,
    config_file: ConfigOption = None,
    snapshot: SnapshotOption = None,
):
    """
    Print the bookable times per date as JSON, for calendar pickers.
    """
    try:
        config, _, service = _build_service(config_file, snapshot)
        start_date = to_date(start) if start else pendulum.now(config.timezone).date()
        end_date = to_date(end) if end else start_date.add(days=6)
        calendar_map = asyncio.run(service.get_calendar_map(practitioner, start_date, end_date))
    except (FileNotFoundError, ValueError, AvailabilityError) as exc:
        _fail(exc)

    _print_json(calendar_map)


@app.command()
def practitioners(
    config_file: ConfigOption = None,
    snapshot: SnapshotOption = None,
):
    """
    List the practitioners present in the snapshot.
    """
    try:
        _, source, _ = _build_service(config_file, snapshot)
    except (FileNotFoundError, ValueError, AvailabilityError) as exc:
        _fail(exc)

    ids = source.list_practitioners()
    if not ids:
        console.print("[yellow]No practitioners in the snapshot.[/yellow]")
        return

    table = Table(
        title="Practitioners",
        show_header=True,
        header_style="bold cyan"
    )
    table.add_column("Id", style="bold yellow")
    for practitioner_id in ids:
        table.add_row(practitioner_id)

    console.print()
    console.print(table)
    console.print()


@app.command()
def version():
    """
    Show version information.
    """
    from .. import __version__
    console.print(f"\n[bold cyan]therapyslots[/bold cyan] version [bold]{__version__}[/bold]\n")


if __name__ == "__main__":
    app()
