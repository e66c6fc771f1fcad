"""
Application service for monthly availability.

The service fetches events through a calendar client adapter and delegates
the slot arithmetic to the domain-level ``EventExpander``. The calendar
dependency is a simple protocol so the real Google adapter or a stub can be
plugged in.
"""

from __future__ import annotations

import asyncio
import logging
from datetime import date, datetime
from functools import reduce
from typing import Dict, Iterable, List, Optional, Protocol, Sequence, Tuple

import pendulum
from pendulum import DateTime

from ..domain.event_expander import EventExpander
from ..domain.exceptions import CalendarUnavailable
from ..domain.models import SLOT_MINUTES, BlockedSlotSet, CalendarEvent, TimeSlotKey
from ..domain.timezones import DEFAULT_TIMEZONE, as_instant, key_for, resolve_timezone

logger = logging.getLogger(__name__)


class CalendarClientProtocol(Protocol):
    """Protocol describing the calendar client behaviour needed by the services."""

    def list_events(self, time_min: DateTime, time_max: DateTime) -> Sequence[CalendarEvent]:
        """Return every event overlapping the UTC window, recurrences expanded."""

    def create_event(
        self,
        *,
        summary: str,
        description: str,
        start: DateTime,
        end: DateTime,
        timezone: str,
        attendees: List[str],
        request_id: str,
    ) -> Dict[str, Optional[str]]:
        """Insert an event and return its ``event_id`` and ``meeting_link``."""


class AvailabilityService:
    """
    Builds the blocked-slot set for a month.

    The calendar fetch is the only I/O; it runs on a worker thread under a
    timeout and either succeeds completely or raises ``CalendarUnavailable``.
    """

    def __init__(
        self,
        calendar_client: CalendarClientProtocol,
        event_expander: EventExpander,
        *,
        default_timezone: str = DEFAULT_TIMEZONE,
        timeout_seconds: float = 15.0,
        min_booking_lead_hours: float = 1,
    ) -> None:
        self._calendar_client = calendar_client
        self._event_expander = event_expander
        self.default_timezone = default_timezone
        self.timeout_seconds = timeout_seconds
        self.min_booking_lead_hours = min_booking_lead_hours

    @staticmethod
    def month_window(year: int, month: int) -> Tuple[DateTime, DateTime]:
        """
        Return the UTC window covering a month.

        Months are one-based (1 = January). The window runs from the first
        instant of the first day to the last instant of the last day.
        """
        if not 1 <= month <= 12:
            raise ValueError(f"Month must be between 1 and 12, got {month}")

        start = pendulum.datetime(year, month, 1, tz="UTC")
        return start, start.end_of("month")

    async def availability(self, year: int, month: int, timezone: Optional[str] = None) -> BlockedSlotSet:
        """
        Fetch the month's events and union their blocked slots.

        Args:
            year: Calendar year
            month: One-based month
            timezone: Zone the keys are expressed in; defaults when absent

        Raises:
            CalendarUnavailable: If the calendar could not be read in time
        """
        tz = resolve_timezone(timezone, self.default_timezone)
        time_min, time_max = self.month_window(year, month)

        events = await self.fetch_events(time_min, time_max)
        blocked = self.calculate_blocked(events, tz)

        logger.info(
            "Availability %04d-%02d in %s: %d events, %d blocked slots",
            year,
            month,
            tz,
            len(events),
            len(blocked),
        )
        return blocked

    def slot_window(self, instant: datetime) -> Tuple[DateTime, DateTime]:
        """
        Return the UTC window holding every event that could block ``instant``.

        The window reaches back past any cool-down and forward past any
        warm-up, and is padded by a day on each side so all-day events whose
        date only matches in the target zone are still fetched.
        """
        start = as_instant(instant).in_timezone("UTC")
        buffers = self._event_expander.buffers
        time_min = start.subtract(days=1, minutes=buffers.cooldown_minutes + SLOT_MINUTES)
        time_max = start.add(days=1, minutes=buffers.warmup_minutes + SLOT_MINUTES)
        return time_min, time_max

    async def blocked_near(self, instant: datetime, timezone: Optional[str] = None) -> BlockedSlotSet:
        """
        Blocked slots derived from the events surrounding one instant.

        Used to re-check a single candidate right before booking it; unlike
        ``availability`` the window is not tied to a calendar month.

        Raises:
            CalendarUnavailable: If the calendar could not be read in time
        """
        tz = resolve_timezone(timezone, self.default_timezone)
        time_min, time_max = self.slot_window(instant)

        events = await self.fetch_events(time_min, time_max)
        blocked = self.calculate_blocked(events, tz)

        logger.debug(
            "Live check %s..%s in %s: %d events, %d blocked slots",
            time_min.to_iso8601_string(),
            time_max.to_iso8601_string(),
            tz,
            len(events),
            len(blocked),
        )
        return blocked

    async def fetch_events(self, time_min: DateTime, time_max: DateTime) -> List[CalendarEvent]:
        """Fetch events for the window from the calendar client."""
        try:
            events = await asyncio.wait_for(
                asyncio.to_thread(self._calendar_client.list_events, time_min, time_max),
                timeout=self.timeout_seconds,
            )
            return list(events)
        except asyncio.TimeoutError as exc:
            raise CalendarUnavailable(
                f"Calendar did not respond within {self.timeout_seconds:g}s"
            ) from exc
        except Exception as exc:
            raise CalendarUnavailable(f"Calendar fetch failed: {exc}") from exc

    def calculate_blocked(self, events: Iterable[CalendarEvent], timezone: str) -> BlockedSlotSet:
        """Expand every event and fold the results into one set."""
        return reduce(
            frozenset.union,
            (self._event_expander.expand(event, timezone) for event in events),
            frozenset(),
        )

    async def open_slots(
        self,
        year: int,
        month: int,
        timezone: Optional[str] = None,
        now: Optional[datetime] = None,
    ) -> List[TimeSlotKey]:
        """
        List the bookable slots of a month in chronological order.

        A slot is open when it lies within working hours on a working day,
        is not blocked by the calendar, and starts after the minimum lead
        time. Wall-clock times skipped by a DST change are never offered.
        """
        tz = resolve_timezone(timezone, self.default_timezone)
        blocked = await self.availability(year, month, tz)

        current = as_instant(now) if now is not None else pendulum.now("UTC")
        earliest = current.add(seconds=int(self.min_booking_lead_hours * 3600))
        working_hours = self._event_expander.working_hours

        open_keys: List[TimeSlotKey] = []
        for day_number in range(1, pendulum.date(year, month, 1).days_in_month + 1):
            day = date(year, month, day_number)
            if not working_hours.is_working_day(day):
                continue

            for key in sorted(working_hours.slot_keys_for_day(day)):
                if key in blocked:
                    continue

                starts_at = pendulum.datetime(year, month, day_number, key.hour, key.minute, tz=tz)
                if key_for(starts_at) != key or starts_at < earliest:
                    continue

                open_keys.append(key)

        return open_keys
