"""
Google Calendar client for fetching busy times via the freeBusy endpoint.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Dict, List

import pendulum
import requests
from pendulum import DateTime

from ..domain.exceptions import CalendarAPIError, InvalidInterval
from ..domain.models import CalendarConnection, TimeRange

logger = logging.getLogger(__name__)


class GoogleCalendarClient:
    """Reads busy blocks of one Google calendar."""

    FREEBUSY_ENDPOINT = "https://www.googleapis.com/calendar/v3/freeBusy"
    PROVIDER = "google"

    def __init__(self, request_timeout: float = 30.0, session: requests.Session | None = None):
        self.request_timeout = request_timeout
        self.session = session or requests.Session()

    async def fetch_busy_times(
        self,
        connection: CalendarConnection,
        start_time: DateTime,
        end_time: DateTime,
    ) -> List[TimeRange]:
        return await asyncio.to_thread(
            self.get_busy_times,
            connection.credential,
            connection.calendar_id,
            start_time,
            end_time,
        )

    def get_busy_times(
        self,
        access_token: str,
        calendar_id: str,
        start_time: DateTime,
        end_time: DateTime,
    ) -> List[TimeRange]:
        """
        Raises:
            CalendarAPIError: If the request fails or Google reports an error
                for the calendar
        """
        payload = {
            "timeMin": start_time.in_timezone("UTC").to_iso8601_string(),
            "timeMax": end_time.in_timezone("UTC").to_iso8601_string(),
            "items": [{"id": calendar_id}],
        }

        try:
            response = self.session.post(
                self.FREEBUSY_ENDPOINT,
                headers={"Authorization": f"Bearer {access_token}"},
                json=payload,
                timeout=self.request_timeout,
            )
            response.raise_for_status()
            data = response.json()
        except (requests.exceptions.RequestException, ValueError) as e:
            raise CalendarAPIError(f"Failed to fetch free/busy from Google Calendar: {e}") from e

        return self._parse_freebusy(data, calendar_id)

    def _parse_freebusy(self, response_data: Dict[str, Any], calendar_id: str) -> List[TimeRange]:
        """
        Response format:
        {
            "calendars": {
                "primary": {
                    "busy": [{"start": "2025-01-06T09:00:00Z", "end": "2025-01-06T10:00:00Z"}],
                    "errors": [{"domain": "global", "reason": "notFound"}]
                }
            }
        }
        """
        calendar = response_data.get("calendars", {}).get(calendar_id)
        if calendar is None:
            raise CalendarAPIError(f"Google did not return calendar {calendar_id}")

        errors = calendar.get("errors")
        if errors:
            reasons = ", ".join(error.get("reason", "unknown") for error in errors)
            raise CalendarAPIError(f"Google reported errors for calendar {calendar_id}: {reasons}")

        busy: List[TimeRange] = []
        for block in calendar.get("busy", []):
            try:
                busy.append(
                    TimeRange(
                        start=pendulum.parse(block["start"]).in_timezone("UTC"),
                        end=pendulum.parse(block["end"]).in_timezone("UTC"),
                    )
                )
            except (KeyError, ValueError, InvalidInterval) as e:
                logger.warning("Could not parse Google busy block: %s", e)

        return busy
