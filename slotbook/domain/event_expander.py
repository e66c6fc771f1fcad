"""
Expansion of calendar events into the half-hour slots they block.

This is the heart of availability computation - pure domain logic without any
external dependencies (no API calls, no database, no I/O).
"""

from __future__ import annotations

import logging
import math
from typing import List

from pendulum import DateTime

from .models import SLOT_MINUTES, BlockedSlotSet, BufferConfig, CalendarEvent, TimeSlotKey, WorkingHours
from .timezones import as_instant, key_for, project

logger = logging.getLogger(__name__)


def slots_needed(minutes: float) -> int:
    """Number of half-hour steps needed to cover ``minutes``, rounded up."""
    if minutes <= 0:
        return 0
    return math.ceil(minutes / SLOT_MINUTES)


class EventExpander:
    """
    Turns one calendar event into the set of slot keys it occupies.

    Algorithm for timed events (all steps are taken on the absolute timeline
    and each step is projected into the target zone before flooring):
    1. Warm-up: step back from the start, one slot per started half hour
    2. Meeting body: step forward from the start, one slot per started half hour
    3. Cool-down: step forward from the end, beginning at the end itself

    All-day events block every working-hours slot of each date they cover,
    regardless of buffers. Rounding always errs towards blocking more.
    """

    def __init__(self, buffers: BufferConfig, working_hours: WorkingHours):
        self.buffers = buffers
        self.working_hours = working_hours

    def expand(self, event: CalendarEvent, timezone: str) -> BlockedSlotSet:
        """
        Compute the blocked slots for a single event.

        Args:
            event: Event fetched from the calendar
            timezone: IANA zone whose wall clock the keys are expressed in

        Returns:
            Frozen set of TimeSlotKey; empty for malformed events
        """
        kind = event.kind

        if kind == "all_day":
            return self._expand_all_day(event)

        if kind == "timed":
            return self._expand_timed(event, timezone)

        logger.warning(
            "Skipping calendar entry %r without a usable start (id=%s)",
            event.summary,
            event.event_id or "-",
        )
        return frozenset()

    def _expand_all_day(self, event: CalendarEvent) -> BlockedSlotSet:
        blocked = frozenset().union(
            *(self.working_hours.slot_keys_for_day(day) for day in event.all_day_dates())
        )
        logger.debug("All-day event %r blocks %d slots", event.summary, len(blocked))
        return blocked

    def _expand_timed(self, event: CalendarEvent, timezone: str) -> BlockedSlotSet:
        start = as_instant(event.start)
        end = as_instant(event.end)
        duration_minutes = (end - start).total_seconds() / 60

        warmup = [
            self._key_at(start, -SLOT_MINUTES * step, timezone)
            for step in range(1, slots_needed(self.buffers.warmup_minutes) + 1)
        ]
        meeting = [
            self._key_at(start, SLOT_MINUTES * step, timezone)
            for step in range(slots_needed(duration_minutes))
        ]
        cooldown = [
            self._key_at(end, SLOT_MINUTES * step, timezone)
            for step in range(slots_needed(self.buffers.cooldown_minutes))
        ]

        logger.debug(
            "Event %r in %s: warm-up %s, meeting %s, cool-down %s",
            event.summary,
            timezone,
            _fmt(warmup),
            _fmt(meeting),
            _fmt(cooldown),
        )

        return frozenset(warmup) | frozenset(meeting) | frozenset(cooldown)

    @staticmethod
    def _key_at(anchor: DateTime, offset_minutes: int, timezone: str) -> TimeSlotKey:
        return key_for(project(anchor.add(minutes=offset_minutes), timezone))


def _fmt(keys: List[TimeSlotKey]) -> str:
    return ", ".join(str(key) for key in keys) or "-"
