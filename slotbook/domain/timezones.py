"""
Timezone projection and half-hour slot key derivation.

A slot key is a human scheduling concept: the same instant maps to different
keys in different zones. Everything here is pure and deterministic.
"""

from __future__ import annotations

import logging
from datetime import date, datetime
from typing import Optional

import pendulum
from pendulum import DateTime

from .exceptions import InvalidTimezone
from .models import SLOT_MINUTES, TimeSlotKey

logger = logging.getLogger(__name__)

DEFAULT_TIMEZONE = "America/Phoenix"


def load_timezone(name: str):
    """Return the pendulum timezone for ``name`` or raise ``InvalidTimezone``."""
    if not name or not name.strip():
        raise InvalidTimezone(name)
    try:
        return pendulum.timezone(name.strip())
    except (KeyError, ValueError) as exc:
        raise InvalidTimezone(name) from exc


def is_valid_timezone(name: Optional[str]) -> bool:
    try:
        load_timezone(name or "")
    except InvalidTimezone:
        return False
    return True


def resolve_timezone(name: Optional[str], default: str = DEFAULT_TIMEZONE) -> str:
    """
    Pick the zone a request is evaluated in.

    An absent name falls back to ``default``. An unrecognised name is logged
    and also replaced by ``default``; it is never read as UTC. The default
    itself must be valid.
    """
    load_timezone(default)

    if name is None or not name.strip():
        return default

    if not is_valid_timezone(name):
        logger.warning("Unknown timezone %r, falling back to %s", name, default)
        return default

    return name.strip()


def as_instant(value: datetime) -> DateTime:
    """Coerce a datetime to a pendulum instant; naive values are read as UTC."""
    if isinstance(value, DateTime) and value.tzinfo is not None:
        return value
    if value.tzinfo is None:
        return pendulum.instance(value, tz="UTC")
    return pendulum.instance(value)


def project(instant: datetime, timezone: str) -> DateTime:
    """
    Convert an absolute instant into its wall-clock form in ``timezone``.

    Raises:
        InvalidTimezone: If ``timezone`` is not a recognised zone identifier
    """
    tz = load_timezone(timezone)
    return as_instant(instant).in_timezone(tz)


def key_for(wall_clock: datetime) -> TimeSlotKey:
    """Round a wall-clock timestamp down to its containing half hour."""
    minute = 0 if wall_clock.minute < SLOT_MINUTES else SLOT_MINUTES
    return TimeSlotKey(
        date=date(wall_clock.year, wall_clock.month, wall_clock.day),
        hour=wall_clock.hour,
        minute=minute,
    )


def slot_key_for_instant(instant: datetime, timezone: str) -> TimeSlotKey:
    return key_for(project(instant, timezone))
