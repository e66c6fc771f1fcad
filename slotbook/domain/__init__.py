"""
Domain layer - Pure business logic without external dependencies.
"""

from .conflict_checker import BookingConflictChecker, BookingStoreProtocol
from .event_expander import EventExpander
from .models import (
    Admission,
    BlockedSlotSet,
    Booking,
    BufferConfig,
    CalendarEvent,
    RejectReason,
    TimeSlotKey,
    WorkingHours,
    serialize_slots,
)
from .timezones import DEFAULT_TIMEZONE, key_for, project, resolve_timezone, slot_key_for_instant

__all__ = [
    "Admission",
    "BlockedSlotSet",
    "Booking",
    "BookingConflictChecker",
    "BookingStoreProtocol",
    "BufferConfig",
    "CalendarEvent",
    "DEFAULT_TIMEZONE",
    "EventExpander",
    "RejectReason",
    "TimeSlotKey",
    "WorkingHours",
    "key_for",
    "project",
    "resolve_timezone",
    "serialize_slots",
    "slot_key_for_instant",
]
