"""
Booking orchestration: admission, live calendar check, event creation, commit.
"""

from __future__ import annotations

import asyncio
import dataclasses
import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Dict, Optional

from pydantic import BaseModel, Field, ValidationError, field_validator

from ..domain.conflict_checker import BookingConflictChecker, BookingStoreProtocol
from ..domain.exceptions import BookingValidationError, CalendarUnavailable, SlotAlreadyBooked
from ..domain.models import Admission, Booking, RejectReason
from ..domain.timezones import DEFAULT_TIMEZONE, as_instant, project, resolve_timezone
from .availability import AvailabilityService, CalendarClientProtocol

logger = logging.getLogger(__name__)


class BookingRequest(BaseModel):
    """Data submitted by the person booking a call."""

    name: str
    email: str
    phone: str
    start: datetime
    timezone: Optional[str] = None
    date_display: str = ""
    time_display: str = ""
    qualification: Dict[str, str] = Field(default_factory=dict)

    @field_validator("name", "email", "phone")
    @classmethod
    def validate_required(cls, value: str) -> str:
        """Contact fields must not be blank."""
        value = value.strip()
        if not value:
            raise ValueError("All fields are required")
        return value

    @field_validator("email")
    @classmethod
    def validate_email(cls, value: str) -> str:
        if "@" not in value:
            raise ValueError(f"Invalid email address: {value}")
        return value


@dataclass(frozen=True)
class BookingResult:
    """Outcome of a booking attempt."""
    admission: Admission
    booking: Optional[Booking] = None

    @property
    def admitted(self) -> bool:
        return self.admission.admitted and self.booking is not None


class BookingService:
    """
    Runs the full booking flow for one request.

    Check, live calendar verification, event creation and store insert all
    happen under one lock, so concurrent requests for the same slot yield a
    single admission.
    """

    def __init__(
        self,
        calendar_client: CalendarClientProtocol,
        availability_service: AvailabilityService,
        conflict_checker: BookingConflictChecker,
        store: BookingStoreProtocol,
        *,
        default_timezone: str = DEFAULT_TIMEZONE,
        meeting_minutes: int = 30,
        meeting_title: str = "Discovery Call",
    ) -> None:
        self._calendar_client = calendar_client
        self._availability = availability_service
        self._checker = conflict_checker
        self._store = store
        self.default_timezone = default_timezone
        self.meeting_minutes = meeting_minutes
        self.meeting_title = meeting_title
        self._lock: Optional[asyncio.Lock] = None
        self._lock_loop: Optional[asyncio.AbstractEventLoop] = None

    def _loop_lock(self) -> asyncio.Lock:
        # asyncio.Lock binds to the loop it first waits on; keep one per running loop
        loop = asyncio.get_running_loop()
        if self._lock is None or self._lock_loop is not loop:
            self._lock = asyncio.Lock()
            self._lock_loop = loop
        return self._lock

    @staticmethod
    def parse_request(data: Dict[str, Any]) -> BookingRequest:
        """
        Validate raw request data.

        Raises:
            BookingValidationError: If a required field is missing or invalid
        """
        try:
            return BookingRequest.model_validate(data)
        except ValidationError as exc:
            messages = "; ".join(
                f"{'.'.join(str(part) for part in error['loc'])}: {error['msg']}"
                for error in exc.errors()
            )
            raise BookingValidationError(messages) from exc

    async def book(self, request: BookingRequest, now: Optional[datetime] = None) -> BookingResult:
        """
        Admit and commit a booking, or return the reason it was refused.

        Raises:
            CalendarUnavailable: If the calendar could not be read or written;
                nothing is committed in that case
        """
        timezone = resolve_timezone(request.timezone, self.default_timezone)
        start = as_instant(request.start)

        async with self._loop_lock():
            admission = self._checker.check_and_reserve(start, timezone, self._store, now=now)
            if not admission.admitted:
                return BookingResult(admission=admission)

            slot_key = admission.slot_key
            blocked = await self._availability.blocked_near(start, timezone)
            if slot_key in blocked:
                logger.info("Rejecting %s: slot %s is busy on the calendar", start.to_iso8601_string(), slot_key)
                return BookingResult(admission=Admission.reject(RejectReason.SLOT_BLOCKED, slot_key=slot_key))

            wall_clock = project(start, timezone)
            booking = Booking(
                name=request.name,
                email=request.email,
                phone=request.phone,
                start=start,
                slot_key=slot_key,
                timezone=timezone,
                date_display=request.date_display or wall_clock.format("dddd, MMMM D, YYYY"),
                time_display=request.time_display or wall_clock.format("h:mm A"),
                qualification=dict(request.qualification),
            )

            external = await self._create_calendar_event(booking)
            booking = dataclasses.replace(
                booking,
                calendar_event_id=external.get("event_id"),
                meeting_link=external.get("meeting_link"),
            )

            try:
                self._store.insert(booking)
            except SlotAlreadyBooked:
                logger.warning(
                    "Slot %s was committed elsewhere after calendar event %s was created",
                    slot_key,
                    booking.calendar_event_id,
                )
                return BookingResult(admission=Admission.reject(RejectReason.SLOT_TAKEN, slot_key=slot_key))

        logger.info("Booked %s for %s (booking %s)", slot_key, booking.email, booking.id)
        return BookingResult(admission=admission, booking=booking)

    async def _create_calendar_event(self, booking: Booking) -> Dict[str, Optional[str]]:
        end = booking.start.add(minutes=self.meeting_minutes)
        try:
            return await asyncio.to_thread(
                self._calendar_client.create_event,
                summary=f"{self.meeting_title} - {booking.name}",
                description=self._describe(booking),
                start=booking.start,
                end=end,
                timezone=booking.timezone,
                attendees=[booking.email],
                request_id=f"meet-{booking.id}",
            )
        except Exception as exc:
            raise CalendarUnavailable(f"Could not create calendar event: {exc}") from exc

    def _describe(self, booking: Booking) -> str:
        lines = [
            f"Contact: {booking.name}",
            f"Email: {booking.email}",
            f"Phone: {booking.phone}",
            f"Timezone: {booking.timezone}",
            f"Duration: {self.meeting_minutes} minutes",
        ]

        answers = [(key, value) for key, value in booking.qualification.items() if value]
        if answers:
            lines.extend(["", "Qualification details:"])
            lines.extend(f"- {_label(key)}: {value}" for key, value in answers)

        return "\n".join(lines)


def _label(key: str) -> str:
    return key.replace("_", " ").replace("-", " ").strip().capitalize()
