"""
In-process booking store keyed by slot key.
"""

from __future__ import annotations

import logging
import threading
from typing import Dict, List, Optional

from ..domain.exceptions import SlotAlreadyBooked
from ..domain.models import Booking, TimeSlotKey

logger = logging.getLogger(__name__)


class InMemoryBookingStore:
    """
    Booking store backed by a dict and a single mutex.

    ``insert`` is an atomic compare-and-insert: two bookings can never share
    a slot key. Contents live as long as the process does.
    """

    def __init__(self, bookings: Optional[List[Booking]] = None):
        self._lock = threading.Lock()
        self._by_key: Dict[TimeSlotKey, Booking] = {}
        for booking in bookings or []:
            self.insert(booking)

    def find_by_key(self, key: TimeSlotKey) -> Optional[Booking]:
        with self._lock:
            return self._by_key.get(key)

    def insert(self, booking: Booking) -> None:
        """
        Commit a booking.

        Raises:
            SlotAlreadyBooked: If another booking already holds the slot key
        """
        with self._lock:
            existing = self._by_key.get(booking.slot_key)
            if existing is not None:
                raise SlotAlreadyBooked(
                    f"Slot {booking.slot_key} is already held by booking {existing.id}"
                )
            self._by_key[booking.slot_key] = booking
        logger.debug("Stored booking %s for slot %s", booking.id, booking.slot_key)

    def all(self) -> List[Booking]:
        with self._lock:
            bookings = list(self._by_key.values())
        return sorted(bookings, key=lambda b: b.start)

    def __len__(self) -> int:
        with self._lock:
            return len(self._by_key)
