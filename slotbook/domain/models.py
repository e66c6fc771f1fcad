"""
Domain models for slot keys, calendar events and bookings.
"""

from __future__ import annotations

import enum
import uuid
from dataclasses import dataclass, field
from datetime import date, timedelta
from typing import Any, Dict, FrozenSet, Iterable, Iterator, List, Optional, Tuple

import pendulum
from pendulum import DateTime

SLOT_MINUTES = 30


@dataclass(frozen=True, order=True)
class TimeSlotKey:
    """
    Canonical identifier of a 30-minute slot in one timezone's wall clock.

    Invariant: hour is within 0..23 and minute is either 0 or 30.
    """
    date: date
    hour: int
    minute: int

    def __post_init__(self):
        if not 0 <= self.hour <= 23:
            raise ValueError(f"Hour must be between 0 and 23, got {self.hour}")
        if self.minute not in (0, SLOT_MINUTES):
            raise ValueError(f"Minute must be 0 or 30, got {self.minute}")

    @classmethod
    def parse(cls, text: str) -> "TimeSlotKey":
        """Parse the canonical ``YYYY-MM-DD_H_M`` form."""
        parts = text.strip().split("_")
        if len(parts) != 3:
            raise ValueError(f"Malformed slot key: {text!r}")
        try:
            return cls(
                date=date.fromisoformat(parts[0]),
                hour=int(parts[1]),
                minute=int(parts[2]),
            )
        except ValueError as exc:
            raise ValueError(f"Malformed slot key: {text!r}") from exc

    def to_dict(self) -> Dict[str, Any]:
        return {"date": self.date.isoformat(), "hour": self.hour, "minute": self.minute}

    def __str__(self) -> str:
        return f"{self.date.isoformat()}_{self.hour}_{self.minute}"


BlockedSlotSet = FrozenSet[TimeSlotKey]


def serialize_slots(slots: Iterable[TimeSlotKey]) -> List[str]:
    """Return the canonical string form of each key, sorted chronologically."""
    return [str(key) for key in sorted(slots)]


@dataclass(frozen=True)
class BufferConfig:
    """
    Warm-up and cool-down minutes blocked around timed events.
    """
    warmup_minutes: int = 30
    cooldown_minutes: int = 30

    def __post_init__(self):
        if self.warmup_minutes < 0 or self.cooldown_minutes < 0:
            raise ValueError(
                f"Buffers must be non-negative, got warm-up={self.warmup_minutes} "
                f"cool-down={self.cooldown_minutes}"
            )


@dataclass(frozen=True)
class WorkingHours:
    """
    Bookable hours as a half-open interval ``[start_hour, end_hour)``.
    """
    start_hour: int = 9
    end_hour: int = 17
    working_days: Tuple[int, ...] = (0, 1, 2, 3, 4)  # 0=Monday, 6=Sunday

    def __post_init__(self):
        if not 0 <= self.start_hour <= self.end_hour <= 24:
            raise ValueError(
                f"Working hours must satisfy 0 <= start <= end <= 24, "
                f"got {self.start_hour}-{self.end_hour}"
            )

    def is_working_day(self, day: date) -> bool:
        """Check if a given date falls on a working day."""
        return day.weekday() in self.working_days

    def slot_times(self) -> Iterator[Tuple[int, int]]:
        """Yield every (hour, minute) slot start within working hours."""
        for hour in range(self.start_hour, self.end_hour):
            for minute in (0, SLOT_MINUTES):
                yield hour, minute

    def slot_keys_for_day(self, day: date) -> FrozenSet[TimeSlotKey]:
        return frozenset(
            TimeSlotKey(date=day, hour=hour, minute=minute)
            for hour, minute in self.slot_times()
        )


def _parse_instant(value: str) -> DateTime:
    parsed = pendulum.parse(value)
    if isinstance(parsed, DateTime):
        return parsed
    raise ValueError(f"Could not parse datetime: {value}")


def _parse_date(value: str) -> date:
    parsed = pendulum.parse(value, exact=True)
    if isinstance(parsed, DateTime) or not isinstance(parsed, date):
        raise ValueError(f"Could not parse date: {value}")
    return date(parsed.year, parsed.month, parsed.day)


@dataclass(frozen=True)
class CalendarEvent:
    """
    An event read from the external calendar.

    Timed events carry ``start``/``end`` instants, all-day events carry
    ``all_day_date`` (and optionally an exclusive ``all_day_end``). An event
    with neither is malformed and blocks nothing.
    """
    start: Optional[DateTime] = None
    end: Optional[DateTime] = None
    all_day_date: Optional[date] = None
    all_day_end: Optional[date] = None
    summary: str = ""
    event_id: str = ""

    def __post_init__(self):
        if self.start is not None and self.end is not None and self.end < self.start:
            raise ValueError(f"Event end {self.end} is before its start {self.start}")

    @property
    def kind(self) -> str:
        if self.start is not None and self.end is not None:
            return "timed"
        if self.all_day_date is not None:
            return "all_day"
        return "malformed"

    def all_day_dates(self) -> List[date]:
        """Every calendar date an all-day event covers."""
        if self.all_day_date is None:
            return []
        end = self.all_day_end
        if end is None or end <= self.all_day_date:
            return [self.all_day_date]
        days = (end - self.all_day_date).days
        return [self.all_day_date + timedelta(days=offset) for offset in range(days)]

    @classmethod
    def from_payload(cls, payload: Dict[str, Any]) -> "CalendarEvent":
        """
        Build an event from a Google Calendar v3 event resource.

        Entries that carry neither ``start.dateTime`` nor ``start.date``, or
        whose values cannot be parsed, come back malformed instead of raising.
        """
        summary = payload.get("summary") or ""
        event_id = payload.get("id") or ""
        start = payload.get("start") or {}
        end = payload.get("end") or {}

        try:
            if start.get("dateTime"):
                return cls(
                    start=_parse_instant(start["dateTime"]),
                    end=_parse_instant(end["dateTime"]),
                    summary=summary,
                    event_id=event_id,
                )
            if start.get("date"):
                all_day_end = _parse_date(end["date"]) if end.get("date") else None
                return cls(
                    all_day_date=_parse_date(start["date"]),
                    all_day_end=all_day_end,
                    summary=summary,
                    event_id=event_id,
                )
        except (AttributeError, KeyError, TypeError, ValueError):
            return cls(summary=summary, event_id=event_id)

        return cls(summary=summary, event_id=event_id)


class RejectReason(str, enum.Enum):
    TOO_SOON = "too_soon"
    SLOT_TAKEN = "slot_taken"
    SLOT_BLOCKED = "slot_blocked"

    def describe(self) -> str:
        return {
            RejectReason.TOO_SOON: "Requested time is inside the minimum booking lead time",
            RejectReason.SLOT_TAKEN: "This time slot is no longer available",
            RejectReason.SLOT_BLOCKED: "This time slot overlaps an existing calendar event",
        }[self]


@dataclass(frozen=True)
class Admission:
    """Decision returned by the conflict checker."""
    admitted: bool
    slot_key: Optional[TimeSlotKey] = None
    reason: Optional[RejectReason] = None

    @classmethod
    def admit(cls, slot_key: TimeSlotKey) -> "Admission":
        return cls(admitted=True, slot_key=slot_key)

    @classmethod
    def reject(cls, reason: RejectReason, slot_key: TimeSlotKey | None = None) -> "Admission":
        return cls(admitted=False, slot_key=slot_key, reason=reason)


@dataclass(frozen=True)
class Booking:
    """
    A committed booking.

    Only ``calendar_event_id`` and ``meeting_link`` may be filled in after the
    booking is stored; everything else is fixed at creation.
    """
    name: str
    email: str
    phone: str
    start: DateTime
    slot_key: TimeSlotKey
    timezone: str
    date_display: str = ""
    time_display: str = ""
    id: str = field(default_factory=lambda: uuid.uuid4().hex)
    created_at: DateTime = field(default_factory=lambda: pendulum.now("UTC"))
    calendar_event_id: Optional[str] = None
    meeting_link: Optional[str] = None
    qualification: Dict[str, str] = field(default_factory=dict, hash=False)
