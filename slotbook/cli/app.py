"""
Main CLI application using Typer.
"""

import asyncio
import logging
from collections import defaultdict
from pathlib import Path
from typing import Annotated, Dict, List, Optional

import pendulum
import typer
from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from ..adapters.booking_store import InMemoryBookingStore
from ..adapters.google_calendar import GoogleCalendarClient
from ..adapters.mock_calendar import MockCalendarClient
from ..config import AppConfig, load_config
from ..domain.conflict_checker import BookingConflictChecker
from ..domain.event_expander import EventExpander
from ..domain.exceptions import SlotbookError
from ..domain.models import TimeSlotKey, serialize_slots
from ..domain.timezones import resolve_timezone
from ..services.availability import AvailabilityService, CalendarClientProtocol
from ..services.booking import BookingService

app = typer.Typer(
    name="slotbook",
    help="Compute bookable 30-minute slots and book them against a Google Calendar",
    add_completion=False
)

console = Console()

ConfigOption = Annotated[Optional[Path], typer.Option("--config", "-c", help="Path to config file. Defaults to ./config.yaml")]
MockOption = Annotated[bool, typer.Option("--mock", help="Use bundled mock calendar data instead of Google Calendar.")]
TimezoneOption = Annotated[Optional[str], typer.Option("--timezone", "-t", help="IANA timezone for slot keys. Defaults to the configured zone.")]


@app.callback()
def main(
    verbose: Annotated[bool, typer.Option("--verbose", "-v", help="Log per-event slot details.")] = False,
):
    """
    Slot booking engine.
    """
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


def _build_calendar_client(config: AppConfig, mock: bool, quiet: bool = False) -> CalendarClientProtocol:
    if mock:
        if not quiet:
            console.print("[yellow]⚠  MOCK MODE: using bundled calendar data[/yellow]\n")
        return MockCalendarClient()

    access_token = config.google.resolve_access_token()
    if not access_token:
        raise SlotbookError(
            "No Google access token configured. Set google.access_token in config.yaml "
            "or the SLOTBOOK_GOOGLE_ACCESS_TOKEN environment variable."
        )
    return GoogleCalendarClient(
        access_token=access_token,
        calendar_id=config.google.calendar_id,
        timeout=config.calendar_timeout_seconds,
    )


def _build_availability_service(config: AppConfig, client: CalendarClientProtocol) -> AvailabilityService:
    expander = EventExpander(
        buffers=config.buffer_config(),
        working_hours=config.working_hours_model(),
    )
    return AvailabilityService(
        calendar_client=client,
        event_expander=expander,
        default_timezone=config.timezone,
        timeout_seconds=config.calendar_timeout_seconds,
        min_booking_lead_hours=config.min_booking_lead_hours,
    )


def _slots_table(title: str, slots: List[TimeSlotKey]) -> Table:
    by_date: Dict[str, List[str]] = defaultdict(list)
    for key in sorted(slots):
        by_date[key.date.isoformat()].append(f"{key.hour:02d}:{key.minute:02d}")

    table = Table(
        title=title,
        show_header=True,
        header_style="bold cyan"
    )
    table.add_column("Date", style="bold yellow")
    table.add_column("Slots", style="dim")
    table.add_column("Count", justify="right")

    for day, times in by_date.items():
        table.add_row(day, " ".join(times), str(len(times)))

    return table


def _parse_answers(answers: List[str]) -> Dict[str, str]:
    parsed: Dict[str, str] = {}
    for answer in answers:
        key, sep, value = answer.partition("=")
        if not sep or not key.strip():
            raise ValueError(f"Answers must look like key=value, got {answer!r}")
        parsed[key.strip()] = value.strip()
    return parsed


@app.command()
def availability(
    year: Annotated[int, typer.Option("--year", "-y", help="Calendar year")],
    month: Annotated[int, typer.Option("--month", "-m", help="Month, 1 = January")],
    timezone: TimezoneOption = None,
    show_open: Annotated[bool, typer.Option("--open", help="List open slots instead of blocked ones.")] = False,
    as_json: Annotated[bool, typer.Option("--json", help="Print slot keys as JSON instead of a table.")] = False,
    config_file: ConfigOption = None,
    mock: MockOption = False,
):
    """
    Show blocked (or open) slots for a month.

    Examples:

        slotbook availability --year 2024 --month 3 --mock

        slotbook availability -y 2024 -m 3 -t Europe/Berlin --open

        slotbook availability -y 2024 -m 3 --mock --json
    """
    try:
        config = load_config(config_file)
        tz = resolve_timezone(timezone, config.timezone)
        service = _build_availability_service(config, _build_calendar_client(config, mock, quiet=as_json))

        if show_open:
            slots = asyncio.run(service.open_slots(year, month, tz))
            title = f"Open slots {year}-{month:02d} ({tz})"
        else:
            slots = sorted(asyncio.run(service.availability(year, month, tz)))
            title = f"Blocked slots {year}-{month:02d} ({tz})"

        if as_json:
            console.print_json(data={
                "year": year,
                "month": month,
                "timezone": tz,
                "kind": "open" if show_open else "blocked",
                "keys": serialize_slots(slots),
                "slots": [key.to_dict() for key in slots],
            })
            return

        console.print()
        if not slots:
            console.print(f"[yellow]⚠ No {'open' if show_open else 'blocked'} slots in {year}-{month:02d}.[/yellow]")
        else:
            console.print(_slots_table(title, slots))
            console.print(f"\n[bold green]✓ {len(slots)} slot(s)[/bold green]")
        console.print()

    except (SlotbookError, FileNotFoundError, ValueError) as e:
        console.print(f"[bold red]Error:[/bold red] {e}")
        raise typer.Exit(1)


@app.command()
def book(
    name: Annotated[str, typer.Option("--name", help="Full name")],
    email: Annotated[str, typer.Option("--email", help="Email address")],
    phone: Annotated[str, typer.Option("--phone", help="Phone number")],
    at: Annotated[str, typer.Option("--at", help="Start instant, ISO 8601 (e.g. 2024-03-11T17:00:00Z)")],
    answers: Annotated[Optional[List[str]], typer.Option("--answer", help="Qualification answer as key=value; repeatable.")] = None,
    timezone: TimezoneOption = None,
    config_file: ConfigOption = None,
    mock: MockOption = False,
):
    """
    Book a 30-minute call.

    Bookings are held in memory for the lifetime of this process only.
    """
    try:
        config = load_config(config_file)
        client = _build_calendar_client(config, mock)
        service = BookingService(
            calendar_client=client,
            availability_service=_build_availability_service(config, client),
            conflict_checker=BookingConflictChecker(
                min_lead_hours=config.min_booking_lead_hours,
                default_timezone=config.timezone,
            ),
            store=InMemoryBookingStore(),
            default_timezone=config.timezone,
            meeting_minutes=config.meeting_minutes,
        )

        request = service.parse_request({
            "name": name,
            "email": email,
            "phone": phone,
            "start": pendulum.parse(at),
            "timezone": timezone,
            "qualification": _parse_answers(answers or []),
        })
        result = asyncio.run(service.book(request))

        if not result.admitted:
            reason = result.admission.reason
            console.print(f"\n[bold red]✗ Not booked:[/bold red] {reason.describe() if reason else 'rejected'}\n")
            raise typer.Exit(1)

        booking = result.booking
        console.print(Panel.fit(
            f"[bold green]✓ Appointment booked[/bold green]\n\n"
            f"[bold]When:[/bold] {booking.date_display}, {booking.time_display} ({booking.timezone})\n"
            f"[bold]Slot:[/bold] {booking.slot_key}\n"
            f"[bold]Calendar event:[/bold] {booking.calendar_event_id or 'N/A'}\n"
            f"[bold]Meeting link:[/bold] {booking.meeting_link or 'N/A'}",
            title=f"Booking {booking.id}"
        ))

    except (SlotbookError, FileNotFoundError, ValueError) as e:
        console.print(f"[bold red]Error:[/bold red] {e}")
        raise typer.Exit(1)


@app.command()
def test_connection(
    config_file: ConfigOption = None,
):
    """
    Test Google Calendar access with the configured token.
    """
    try:
        config = load_config(config_file)
        client = _build_calendar_client(config, mock=False)
        calendar = client.test_connection()

        console.print(Panel.fit(
            f"[bold green]✓ Connection successful![/bold green]\n\n"
            f"[bold]Calendar:[/bold] {calendar.get('summary', 'N/A')}\n"
            f"[bold]Timezone:[/bold] {calendar.get('timeZone', 'N/A')}",
            title="✓ Connection test"
        ))
        console.print()

    except (SlotbookError, FileNotFoundError, ValueError) as e:
        console.print(f"\n[bold red]✗ Error:[/bold red] {e}\n")
        raise typer.Exit(1)


@app.command()
def version():
    """
    Show version information.
    """
    from .. import __version__
    console.print(f"\n[bold cyan]slotbook[/bold cyan] version [bold]{__version__}[/bold]\n")


if __name__ == "__main__":
    app()
