"""
Adapters layer - External integrations (Google Calendar, booking storage).
"""

from .booking_store import InMemoryBookingStore
from .google_calendar import GoogleCalendarClient
from .mock_calendar import MockCalendarClient

__all__ = ["GoogleCalendarClient", "InMemoryBookingStore", "MockCalendarClient"]
