"""
Domain-specific exception hierarchy for the slot booking engine.
"""


class SlotbookError(Exception):
    """Base class for all application-level errors."""


class InvalidTimezone(SlotbookError, ValueError):
    """Raised when a name is not a recognised IANA timezone identifier."""

    def __init__(self, name: str):
        super().__init__(f"Unknown timezone: {name!r}")
        self.name = name


class CalendarAPIError(SlotbookError):
    """Raised when calendar data cannot be fetched, parsed or written."""


class CalendarUnavailable(SlotbookError):
    """Raised when the calendar collaborator failed or timed out."""


class SlotAlreadyBooked(SlotbookError):
    """Raised by a booking store when a slot key already holds a booking."""


class BookingValidationError(SlotbookError, ValueError):
    """Raised when a booking request is missing required contact data."""
