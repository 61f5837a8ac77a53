"""
Main CLI application using Typer.
"""

from __future__ import annotations

import asyncio
import re
from pathlib import Path
from typing import Annotated, List, NoReturn, Optional

import pendulum
import typer
from pendulum import DateTime
from rich.console import Console
from rich.table import Table

from ..config import AppConfig, get_default_config_path
from ..domain.exceptions import SchedulingError
from ..domain.models import Meeting, MeetingRequest, MeetingStatus, SlotReport
from ..domain.timezone import Weekday
from ..logging_config import setup_logging
from ..services.availability import describe_range
from ..services.engine import SchedulingEngine, build_engine

app = typer.Typer(
    name="slotkeeper",
    help="Working hours, open slots and conflict-free bookings for executive calendars",
    add_completion=False
)

console = Console()

_OFFSET_SUFFIX = re.compile(r"(Z|[+-]\d{2}:?\d{2})$")

ConfigOption = Annotated[Optional[Path], typer.Option("--config", "-c", help="Path to config file. Defaults to ./slotkeeper.yaml")]
MockOption = Annotated[bool, typer.Option("--mock", help="Serve every calendar connection from the mock calendar file.")]


def _load(config_file: Optional[Path], mock: bool = False) -> tuple[AppConfig, SchedulingEngine]:
    config = AppConfig.load_from_yaml(config_file or get_default_config_path())
    setup_logging(config.log_level)
    return config, build_engine(config, mock=mock)


def _parse_instant(value: str) -> DateTime:
    """
    Parse an ISO-8601 instant. A bare timestamp without offset is ambiguous
    and rejected.
    """
    if not _OFFSET_SUFFIX.search(value.strip()):
        raise typer.BadParameter(f"'{value}' has no UTC offset; use e.g. 2025-01-06T09:00:00+01:00 or ...Z")
    try:
        parsed = pendulum.parse(value.strip())
    except ValueError as e:
        raise typer.BadParameter(f"Could not parse '{value}': {e}")
    if not isinstance(parsed, DateTime):
        raise typer.BadParameter(f"'{value}' is not a date and time")
    return parsed


def _parse_day(value: str, tz: str) -> DateTime:
    try:
        return pendulum.from_format(value, "YYYY-MM-DD", tz=tz)
    except ValueError as e:
        raise typer.BadParameter(f"Could not parse date '{value}': {e}")


def _owner_label(config: AppConfig, owner: str) -> str:
    user = config.find_user(owner)
    return user.display_name() if user else owner


def _fail(error: Exception) -> NoReturn:
    console.print(f"[bold red]Error:[/bold red] {error}")
    raise typer.Exit(1)


def _print_slot_report(report: SlotReport, owner_label: str, timezone: str, show_all: bool) -> None:
    for source in report.unavailable_sources:
        console.print(f"[yellow]⚠ {source} - availability may be incomplete[/yellow]")

    slots = report.slots if show_all else report.available_slots
    if not slots:
        console.print("[yellow]⚠ No open slots found.[/yellow]")
        return

    table = Table(title=f"Slots of {owner_label} ({timezone})", show_header=True, header_style="bold cyan")
    table.add_column("Slot", style="bold")
    table.add_column("Available")
    for slot in slots:
        table.add_row(
            slot.format_display(timezone),
            "[green]yes[/green]" if slot.available else "[red]no[/red]",
        )

    console.print()
    console.print(table)
    console.print(f"\n[bold green]✓ {len(report.available_slots)} open slot(s)[/bold green]\n")


@app.command()
def slots(
    owner: Annotated[str, typer.Argument(help="User id of the calendar owner")],
    start: Annotated[Optional[str], typer.Option("--start", help="First day (YYYY-MM-DD, owner's zone). Defaults to today.")] = None,
    end: Annotated[Optional[str], typer.Option("--end", help="Last day (YYYY-MM-DD). Defaults to start + 6 days.")] = None,
    duration: Annotated[Optional[int], typer.Option("--duration", "-d", help="Slot length in minutes")] = None,
    show_all: Annotated[bool, typer.Option("--all", help="Also list taken slots.")] = False,
    config_file: ConfigOption = None,
    mock: MockOption = False,
):
    """
    List candidate slots inside the owner's working hours.

    Examples:

        slotkeeper slots vp-anna --start 2025-01-06 --end 2025-01-10 --duration 45
    """
    try:
        config, engine = _load(config_file, mock=mock)

        async def run() -> tuple[str, SlotReport]:
            rule = await engine.working_hours.get_rule(owner)
            range_start = _parse_day(start, rule.timezone) if start else pendulum.now(rule.timezone).start_of("day")
            range_end = _parse_day(end, rule.timezone).end_of("day") if end else range_start.add(days=6).end_of("day")
            report = await engine.availability.generate_slot_report(
                owner,
                range_start,
                range_end,
                duration or config.defaults.duration_minutes,
            )
            return rule.timezone, report

        timezone, report = asyncio.run(run())
        _print_slot_report(report, _owner_label(config, owner), timezone, show_all)

    except SchedulingError as e:
        _fail(e)


@app.command()
def check(
    owner: Annotated[str, typer.Argument(help="User id of the calendar owner")],
    start: Annotated[str, typer.Argument(help="Start instant with offset")],
    end: Annotated[str, typer.Argument(help="End instant with offset")],
    config_file: ConfigOption = None,
    mock: MockOption = False,
):
    """
    Check whether a single interval is bookable.
    """
    try:
        _, engine = _load(config_file, mock=mock)
        available = asyncio.run(
            engine.availability.is_slot_available(owner, _parse_instant(start), _parse_instant(end))
        )
    except SchedulingError as e:
        _fail(e)

    if available:
        console.print("[bold green]✓ Available[/bold green]")
    else:
        console.print("[bold red]✗ Not available[/bold red]")
        raise typer.Exit(2)


@app.command()
def book(
    owner: Annotated[str, typer.Argument(help="User id of the calendar owner")],
    start: Annotated[str, typer.Argument(help="Start instant with offset")],
    end: Annotated[str, typer.Argument(help="End instant with offset")],
    acting_user: Annotated[Optional[str], typer.Option("--as", help="Book as this user (owner or delegate). Defaults to the owner.")] = None,
    visitor: Annotated[Optional[str], typer.Option("--visitor", help="Book as an unauthenticated visitor with this e-mail.")] = None,
    attendee: Annotated[Optional[str], typer.Option("--attendee", help="Attendee id or e-mail")] = None,
    title: Annotated[Optional[str], typer.Option("--title", help="Meeting title")] = None,
    config_file: ConfigOption = None,
    mock: MockOption = False,
):
    """
    Book a meeting after validating delegation, conflicts and working hours.
    """
    if acting_user and visitor:
        console.print("[red]Error: --as and --visitor cannot be combined.[/red]")
        raise typer.Exit(1)

    try:
        _, engine = _load(config_file, mock=mock)
        request = MeetingRequest(
            vp_owner=owner,
            start=_parse_instant(start),
            end=_parse_instant(end),
            attendee=visitor or attendee,
            title=title,
        )

        if visitor:
            meeting = asyncio.run(engine.booking.public_booking(request))
        else:
            meeting = asyncio.run(engine.booking.create_meeting(request, acting_user or owner))

    except SchedulingError as e:
        _fail(e)

    console.print(
        f"[bold green]✓ Meeting {meeting.id} booked[/bold green] "
        f"({meeting.start_time.to_iso8601_string()} - {meeting.end_time.to_iso8601_string()}, "
        f"{meeting.status.value})"
    )


@app.command()
def cancel(
    meeting_id: Annotated[str, typer.Argument(help="Meeting id")],
    acting_user: Annotated[str, typer.Option("--as", help="User cancelling the meeting")],
    config_file: ConfigOption = None,
):
    """
    Cancel a booked meeting and free its slot.
    """
    try:
        _, engine = _load(config_file)
        meeting = asyncio.run(engine.booking.cancel_meeting(meeting_id, acting_user))
    except SchedulingError as e:
        _fail(e)

    console.print(f"[green]✓ Meeting {meeting.id} cancelled.[/green]")


@app.command()
def meetings(
    owner: Annotated[str, typer.Argument(help="User id of the calendar owner")],
    acting_user: Annotated[Optional[str], typer.Option("--as", help="List as this user (owner or delegate). Defaults to the owner.")] = None,
    start: Annotated[Optional[str], typer.Option("--start", help="First day (YYYY-MM-DD, owner's zone). Defaults to today.")] = None,
    end: Annotated[Optional[str], typer.Option("--end", help="Last day (YYYY-MM-DD). Defaults to start + 6 days.")] = None,
    status: Annotated[Optional[MeetingStatus], typer.Option("--status", help="Only meetings with this status")] = None,
    config_file: ConfigOption = None,
):
    """
    List booked meetings with their ids.

    Examples:

        slotkeeper meetings vp-anna --as ea-ben --status PENDING
    """
    try:
        config, engine = _load(config_file)

        async def run() -> tuple[str, List[Meeting]]:
            rule = await engine.working_hours.get_rule(owner)
            range_start = _parse_day(start, rule.timezone) if start else pendulum.now(rule.timezone).start_of("day")
            range_end = _parse_day(end, rule.timezone).end_of("day") if end else range_start.add(days=6).end_of("day")
            found = await engine.booking.list_meetings(owner, acting_user or owner, range_start, range_end, status)
            return rule.timezone, found

        timezone, found = asyncio.run(run())
    except SchedulingError as e:
        _fail(e)

    if not found:
        console.print("[yellow]⚠ No meetings found.[/yellow]")
        return

    table = Table(title=f"Meetings of {_owner_label(config, owner)} ({timezone})", show_header=True, header_style="bold cyan")
    table.add_column("Id", style="dim", no_wrap=True)
    table.add_column("When", style="bold")
    table.add_column("Status")
    table.add_column("Attendee")
    table.add_column("Title")

    for meeting in found:
        table.add_row(
            meeting.id,
            describe_range(meeting.time_range, timezone),
            meeting.status.value,
            meeting.attendee or "-",
            meeting.title or "-",
        )

    console.print()
    console.print(table)
    console.print()


@app.command()
def hours(
    owner: Annotated[str, typer.Argument(help="User id of the calendar owner")],
    config_file: ConfigOption = None,
):
    """
    Show the owner's working hours.
    """
    try:
        config, engine = _load(config_file)
        rule = asyncio.run(engine.working_hours.get_rule(owner))
    except SchedulingError as e:
        _fail(e)

    table = Table(
        title=f"Working hours of {_owner_label(config, owner)} ({rule.timezone}, buffer {rule.buffer_minutes} min)",
        show_header=True,
        header_style="bold cyan"
    )
    table.add_column("Day", style="bold yellow")
    table.add_column("Windows", style="dim")

    for day in Weekday:
        windows = rule.windows_on(day)
        table.add_row(
            day.value.capitalize(),
            ", ".join(f"{w.start}-{w.end}" for w in windows) or "-",
        )

    console.print()
    console.print(table)
    console.print()


@app.command()
def version():
    """
    Show version information.
    """
    from .. import __version__
    console.print(f"\n[bold cyan]slotkeeper[/bold cyan] version [bold]{__version__}[/bold]\n")


if __name__ == "__main__":
    app()
