"""
Mock calendar client for running without Google credentials.
"""

import json
import uuid
from pathlib import Path
from typing import Any, Dict, List, Optional

from pendulum import DateTime

from ..domain.models import CalendarEvent


class MockCalendarClient:
    """
    Mock client that simulates Google Calendar responses.

    Event payloads are loaded from mock_calendar_data.json (or passed in
    directly) in the same shape the events list endpoint returns, so the
    parsing path is exercised exactly as it is against the real API.
    """

    def __init__(self, payloads: Optional[List[Dict[str, Any]]] = None, data_file: Optional[Path] = None):
        """
        Initialize the mock client.

        Args:
            payloads: Event resources to serve; overrides the data file
            data_file: Optional path to a JSON list of event resources
        """
        self.calendar_id = "mock"
        self.created_events: List[Dict[str, Any]] = []
        if payloads is not None:
            self.payloads = list(payloads)
        else:
            self.payloads = self._load_calendar_data(data_file)

    def _load_calendar_data(self, data_file: Optional[Path]) -> List[Dict[str, Any]]:
        """Load mock calendar data from JSON file."""
        data_file = data_file or Path(__file__).parent / "mock_calendar_data.json"

        if data_file.exists():
            with open(data_file, "r", encoding="utf-8") as f:
                return json.load(f)

        return []

    def list_events(self, time_min: DateTime, time_max: DateTime) -> List[CalendarEvent]:
        """
        Return mock events that overlap the requested window.

        Malformed entries are always returned so callers see them the way the
        real API would hand them over.
        """
        events: List[CalendarEvent] = []

        for payload in self.payloads:
            event = CalendarEvent.from_payload(payload)

            if event.kind == "timed":
                if not (event.start < time_max and event.end > time_min):
                    continue
            elif event.kind == "all_day":
                last_day = event.all_day_dates()[-1]
                if last_day < time_min.date() or event.all_day_date > time_max.date():
                    continue

            events.append(event)

        return events

    def create_event(self, **kwargs: Any) -> Dict[str, Optional[str]]:
        """Record the event and return fake identifiers."""
        event_id = f"mock-{uuid.uuid4().hex[:12]}"
        self.created_events.append({"id": event_id, **kwargs})
        self.payloads.append({
            "id": event_id,
            "summary": kwargs.get("summary", ""),
            "start": {"dateTime": kwargs["start"].to_iso8601_string()},
            "end": {"dateTime": kwargs["end"].to_iso8601_string()},
        })
        return {
            "event_id": event_id,
            "meeting_link": f"https://meet.google.com/{event_id}",
            "html_link": None,
        }

    def test_connection(self) -> Dict[str, Any]:
        """
        Mock connection test.

        Returns:
            Mock calendar resource
        """
        return {
            "id": self.calendar_id,
            "summary": "Mock Calendar",
            "timeZone": "America/Phoenix",
        }
