"""
Tests for event expansion into blocked slots.
"""

from datetime import date

import pendulum
import pytest

from slotbook.domain.event_expander import EventExpander, slots_needed
from slotbook.domain.models import BufferConfig, CalendarEvent, TimeSlotKey, WorkingHours

PHOENIX = "America/Phoenix"


def _expander(warmup: int = 30, cooldown: int = 30) -> EventExpander:
    return EventExpander(
        buffers=BufferConfig(warmup_minutes=warmup, cooldown_minutes=cooldown),
        working_hours=WorkingHours(start_hour=9, end_hour=17),
    )


def _timed(start: str, end: str) -> CalendarEvent:
    return CalendarEvent(start=pendulum.parse(start), end=pendulum.parse(end), summary="Meeting")


def _key(day: int, hour: int, minute: int, month: int = 3) -> TimeSlotKey:
    return TimeSlotKey(date=date(2024, month, day), hour=hour, minute=minute)


class TestSlotsNeeded:

    @pytest.mark.parametrize("minutes,expected", [(0, 0), (1, 1), (30, 1), (31, 2), (45, 2), (60, 2), (61, 3)])
    def test_ceiling(self, minutes, expected):
        assert slots_needed(minutes) == expected


class TestTimedEvents:
    """Tests for timed events with buffers."""

    def test_phoenix_half_hour_meeting(self):
        """16:00Z-16:30Z is 09:00-09:30 in Phoenix: warm-up, meeting and cool-down keys."""
        blocked = _expander().expand(
            _timed("2024-03-10T16:00:00Z", "2024-03-10T16:30:00Z"),
            PHOENIX,
        )

        assert blocked == {_key(10, 8, 30), _key(10, 9, 0), _key(10, 9, 30)}

    def test_warmup_not_multiple_of_thirty_rounds_up(self):
        """A 45 minute warm-up covers two slots, never one."""
        blocked = _expander(warmup=45, cooldown=0).expand(
            _timed("2024-03-10T16:00:00Z", "2024-03-10T16:30:00Z"),
            PHOENIX,
        )

        assert blocked == {_key(10, 8, 0), _key(10, 8, 30), _key(10, 9, 0)}

    def test_cooldown_not_multiple_of_thirty_rounds_up(self):
        blocked = _expander(warmup=0, cooldown=40).expand(
            _timed("2024-03-10T16:00:00Z", "2024-03-10T16:30:00Z"),
            PHOENIX,
        )

        assert blocked == {_key(10, 9, 0), _key(10, 9, 30), _key(10, 10, 0)}

    @pytest.mark.parametrize("offset_minutes", [0, 5, 10, 29])
    def test_meeting_slot_count_ignores_start_offset(self, offset_minutes):
        """A 60 minute meeting always yields two meeting keys."""
        start = pendulum.datetime(2024, 3, 10, 16, offset_minutes, tz="UTC")
        event = CalendarEvent(start=start, end=start.add(minutes=60))

        blocked = _expander(warmup=0, cooldown=0).expand(event, PHOENIX)

        assert blocked == {_key(10, 9, 0), _key(10, 9, 30)}

    def test_meeting_slot_count_rounds_up(self):
        start = pendulum.datetime(2024, 3, 10, 16, tz="UTC")
        event = CalendarEvent(start=start, end=start.add(minutes=61))

        blocked = _expander(warmup=0, cooldown=0).expand(event, PHOENIX)

        assert len(blocked) == 3

    def test_late_start_floors_into_earlier_slot(self):
        """A meeting starting at 9:45 occupies the 9:30 slot, not 10:00."""
        blocked = _expander(warmup=0, cooldown=0).expand(
            _timed("2024-03-10T16:45:00Z", "2024-03-10T17:15:00Z"),
            PHOENIX,
        )

        assert blocked == {_key(10, 9, 30)}

    def test_zero_length_event_blocks_only_buffers(self):
        blocked = _expander().expand(
            _timed("2024-03-10T16:00:00Z", "2024-03-10T16:00:00Z"),
            PHOENIX,
        )

        assert blocked == {_key(10, 8, 30), _key(10, 9, 0)}

    def test_buffers_cross_midnight(self):
        blocked = _expander().expand(
            _timed("2024-03-11T07:00:00Z", "2024-03-11T07:30:00Z"),  # 00:00 Phoenix
            PHOENIX,
        )

        assert blocked == {_key(10, 23, 30), _key(11, 0, 0), _key(11, 0, 30)}

    def test_steps_skip_wall_clock_gap_on_spring_forward(self):
        """On the DST jump in New York no 2:xx key is produced."""
        blocked = _expander().expand(
            _timed("2024-03-10T06:30:00Z", "2024-03-10T07:30:00Z"),  # 01:30 EST - 03:30 EDT
            "America/New_York",
        )

        assert blocked == {_key(10, 1, 0), _key(10, 1, 30), _key(10, 3, 0), _key(10, 3, 30)}

    def test_same_event_keys_follow_requested_zone(self):
        event = _timed("2024-03-10T16:00:00Z", "2024-03-10T16:30:00Z")

        blocked = _expander(warmup=0, cooldown=0).expand(event, "Europe/Berlin")

        assert blocked == {_key(10, 17, 0)}


class TestAllDayEvents:
    """Tests for all-day events."""

    def test_blocks_full_working_day(self):
        """An all-day event on D with hours 9-17 yields exactly 16 keys on D."""
        event = CalendarEvent(all_day_date=date(2024, 3, 14), summary="Offsite")

        blocked = _expander().expand(event, PHOENIX)

        assert len(blocked) == 16
        assert all(key.date == date(2024, 3, 14) for key in blocked)
        assert all(9 <= key.hour < 17 for key in blocked)

    def test_ignores_buffers_and_timezone(self):
        event = CalendarEvent(all_day_date=date(2024, 3, 14))

        in_phoenix = _expander(warmup=120, cooldown=120).expand(event, PHOENIX)
        in_tokyo = _expander(warmup=0, cooldown=0).expand(event, "Asia/Tokyo")

        assert in_phoenix == in_tokyo

    def test_multi_day_event_blocks_each_day(self):
        event = CalendarEvent(all_day_date=date(2024, 3, 14), all_day_end=date(2024, 3, 16))

        blocked = _expander().expand(event, PHOENIX)

        assert len(blocked) == 32
        assert {key.date for key in blocked} == {date(2024, 3, 14), date(2024, 3, 15)}


class TestMalformedEvents:

    def test_malformed_event_blocks_nothing(self, caplog):
        event = CalendarEvent.from_payload({"summary": "Broken import", "start": {}, "end": {}})

        blocked = _expander().expand(event, PHOENIX)

        assert blocked == frozenset()
        assert "Broken import" in caplog.text
