"""
Service layer helpers that orchestrate adapters and domain logic.
"""

from .availability import AvailabilityService, CalendarClientProtocol
from .booking import BookingRequest, BookingResult, BookingService

__all__ = [
    "AvailabilityService",
    "BookingRequest",
    "BookingResult",
    "BookingService",
    "CalendarClientProtocol",
]
