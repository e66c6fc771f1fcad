"""
Admission decision for a single booking request.
"""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Optional, Protocol, Sequence

import pendulum

from .models import Admission, Booking, RejectReason, TimeSlotKey
from .timezones import DEFAULT_TIMEZONE, as_instant, resolve_timezone, slot_key_for_instant

logger = logging.getLogger(__name__)


class BookingStoreProtocol(Protocol):
    """Protocol describing the booking store behaviour needed by the checker."""

    def find_by_key(self, key: TimeSlotKey) -> Optional[Booking]:
        """Return the committed booking holding ``key``, if any."""

    def insert(self, booking: Booking) -> None:
        """Commit a booking; must refuse a second booking for the same key."""

    def all(self) -> Sequence[Booking]:
        """Return every committed booking."""


class BookingConflictChecker:
    """
    Decides whether a candidate instant may be booked.

    Rules, in order:
    1. Reject as too soon when inside the minimum lead time
    2. Derive the slot key in the requested timezone (unknown or missing
       zones fall back to the default zone)
    3. Reject as taken when the store already holds that key
    4. Otherwise admit

    The checker never writes to the store. Callers that act on an admission
    must serialise check and insert themselves.
    """

    def __init__(self, min_lead_hours: float = 1, default_timezone: str = DEFAULT_TIMEZONE):
        if min_lead_hours < 0:
            raise ValueError(f"min_lead_hours must be non-negative, got {min_lead_hours}")
        self.min_lead_hours = min_lead_hours
        self.default_timezone = default_timezone

    def check_and_reserve(
        self,
        candidate: datetime,
        timezone: Optional[str],
        store: BookingStoreProtocol,
        now: Optional[datetime] = None,
    ) -> Admission:
        instant = as_instant(candidate)
        current = as_instant(now) if now is not None else pendulum.now("UTC")

        earliest = current.add(seconds=int(self.min_lead_hours * 3600))
        if instant < earliest:
            logger.info("Rejecting %s: earlier than %s", instant.to_iso8601_string(), earliest.to_iso8601_string())
            return Admission.reject(RejectReason.TOO_SOON)

        key = slot_key_for_instant(instant, resolve_timezone(timezone, self.default_timezone))

        existing = store.find_by_key(key)
        if existing is not None:
            logger.info("Rejecting %s: slot %s already held by booking %s", instant.to_iso8601_string(), key, existing.id)
            return Admission.reject(RejectReason.SLOT_TAKEN, slot_key=key)

        return Admission.admit(key)
