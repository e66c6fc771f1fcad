"""
Google Calendar API v3 client for reading events and creating bookings.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional
from urllib.parse import quote

import requests
from pendulum import DateTime

from ..domain.exceptions import CalendarAPIError
from ..domain.models import CalendarEvent

logger = logging.getLogger(__name__)


class GoogleCalendarClient:
    """
    Client for Google Calendar event operations.

    Uses the events list endpoint with ``singleEvents`` so recurring events
    arrive already expanded into instances.
    """

    CALENDAR_API_ENDPOINT = "https://www.googleapis.com/calendar/v3"

    def __init__(self, access_token: str, calendar_id: str = "primary", timeout: float = 30):
        """
        Initialize the Google Calendar client.

        Args:
            access_token: Valid OAuth bearer token with calendar scope
            calendar_id: Calendar to read from and write to
            timeout: Per-request timeout in seconds
        """
        self.access_token = access_token
        self.calendar_id = calendar_id
        self.timeout = timeout
        self.headers = {
            "Authorization": f"Bearer {access_token}",
            "Content-Type": "application/json"
        }

    @property
    def _events_url(self) -> str:
        calendar = quote(self.calendar_id, safe="")
        return f"{self.CALENDAR_API_ENDPOINT}/calendars/{calendar}/events"

    def list_events(self, time_min: DateTime, time_max: DateTime) -> List[CalendarEvent]:
        """
        List all events overlapping the window, following pagination.

        Args:
            time_min: Window start (UTC)
            time_max: Window end (UTC)

        Returns:
            Parsed events; entries without a usable start come back malformed

        Raises:
            CalendarAPIError: If the API call fails
        """
        params: Dict[str, Any] = {
            "timeMin": time_min.in_timezone("UTC").to_iso8601_string(),
            "timeMax": time_max.in_timezone("UTC").to_iso8601_string(),
            "singleEvents": "true",
            "orderBy": "startTime",
            "maxResults": 2500,
        }

        items: List[Dict[str, Any]] = []
        while True:
            data = self._request("GET", self._events_url, params=params)
            items.extend(data.get("items", []))

            page_token = data.get("nextPageToken")
            if not page_token:
                break
            params["pageToken"] = page_token

        logger.info(
            "Fetched %d events from %s between %s and %s",
            len(items),
            self.calendar_id,
            params["timeMin"],
            params["timeMax"],
        )
        return [CalendarEvent.from_payload(item) for item in items]

    def create_event(
        self,
        *,
        summary: str,
        description: str,
        start: DateTime,
        end: DateTime,
        timezone: str,
        attendees: List[str],
        request_id: str,
    ) -> Dict[str, Optional[str]]:
        """
        Insert an event with a Google Meet conference and invite attendees.

        Returns:
            Dict with ``event_id``, ``meeting_link`` and ``html_link``

        Raises:
            CalendarAPIError: If the API call fails
        """
        body = {
            "summary": summary,
            "description": description,
            "start": {"dateTime": start.in_timezone("UTC").to_iso8601_string(), "timeZone": timezone},
            "end": {"dateTime": end.in_timezone("UTC").to_iso8601_string(), "timeZone": timezone},
            "attendees": [{"email": email} for email in attendees],
            "conferenceData": {
                "createRequest": {
                    "requestId": request_id,
                    "conferenceSolutionKey": {"type": "hangoutsMeet"},
                }
            },
            "reminders": {
                "useDefault": False,
                "overrides": [
                    {"method": "email", "minutes": 24 * 60},
                    {"method": "popup", "minutes": 30},
                ],
            },
        }

        data = self._request(
            "POST",
            self._events_url,
            params={"conferenceDataVersion": 1, "sendUpdates": "all"},
            json=body,
        )

        logger.info("Created event %s on calendar %s", data.get("id"), self.calendar_id)
        return {
            "event_id": data.get("id"),
            "meeting_link": self._meeting_link(data),
            "html_link": data.get("htmlLink"),
        }

    @staticmethod
    def _meeting_link(data: Dict[str, Any]) -> Optional[str]:
        if data.get("hangoutLink"):
            return data["hangoutLink"]
        entry_points = (data.get("conferenceData") or {}).get("entryPoints") or []
        if entry_points:
            return entry_points[0].get("uri")
        return None

    def _request(self, method: str, url: str, **kwargs: Any) -> Dict[str, Any]:
        try:
            response = requests.request(
                method,
                url,
                headers=self.headers,
                timeout=self.timeout,
                **kwargs
            )
            response.raise_for_status()
            return response.json()

        except requests.exceptions.RequestException as e:
            raise CalendarAPIError(f"Google Calendar request failed: {e}") from e
        except ValueError as e:
            raise CalendarAPIError(f"Google Calendar returned invalid JSON: {e}") from e

    def test_connection(self) -> Dict[str, Any]:
        """
        Test the connection and authentication by fetching the calendar resource.

        Raises:
            CalendarAPIError: If connection test fails
        """
        calendar = quote(self.calendar_id, safe="")
        return self._request("GET", f"{self.CALENDAR_API_ENDPOINT}/calendars/{calendar}")
