"""
Microsoft Graph client for fetching Outlook busy times.
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


class GraphClient:
    """
    Client for Microsoft Graph API calendar operations.

    Uses the /me/calendarView endpoint and treats every event whose
    ``showAs`` is not ``free`` as busy time.
    """

    GRAPH_API_ENDPOINT = "https://graph.microsoft.com/v1.0"
    PROVIDER = "outlook"

    # We consider these showAs values as "busy"
    BUSY_STATUSES = ("busy", "tentative", "oof", "workingelsewhere")

    def __init__(self, request_timeout: float = 30.0, session: requests.Session | None = None):
        """
        Initialize the Graph API client.

        Args:
            request_timeout: Socket timeout for each HTTP request
            session: Optional requests session (connection pooling, tests)
        """
        self.request_timeout = request_timeout
        self.session = session or requests.Session()

    async def fetch_busy_times(
        self,
        connection: CalendarConnection,
        start_time: DateTime,
        end_time: DateTime,
    ) -> List[TimeRange]:
        return await asyncio.to_thread(self.get_busy_times, connection.credential, start_time, end_time)

    def get_busy_times(self, access_token: str, start_time: DateTime, end_time: DateTime) -> List[TimeRange]:
        """
        Get busy ranges from the signed-in user's primary calendar.

        Args:
            access_token: Valid Microsoft Graph access token
            start_time: Start of the time window
            end_time: End of the time window

        Returns:
            List of busy TimeRange objects in UTC

        Raises:
            CalendarAPIError: If the API call fails
        """
        url = f"{self.GRAPH_API_ENDPOINT}/me/calendarView"
        headers = {
            "Authorization": f"Bearer {access_token}",
            "Prefer": 'outlook.timezone="UTC"',
        }
        params = {
            "startDateTime": start_time.in_timezone("UTC").to_iso8601_string(),
            "endDateTime": end_time.in_timezone("UTC").to_iso8601_string(),
            "$select": "start,end,showAs",
            "$orderby": "start/dateTime",
            "$top": 500,
        }

        busy: List[TimeRange] = []

        while url:
            try:
                response = self.session.get(url, headers=headers, params=params, timeout=self.request_timeout)
                response.raise_for_status()
                data = response.json()
            except (requests.exceptions.RequestException, ValueError) as e:
                raise CalendarAPIError(f"Failed to fetch calendar view from Microsoft Graph: {e}") from e

            busy.extend(self._parse_events(data))

            # nextLink already carries the query string
            url = data.get("@odata.nextLink")
            params = None

        return busy

    def _parse_events(self, response_data: Dict[str, Any]) -> List[TimeRange]:
        """
        Parse a calendarView page into busy ranges.

        Response format:
        {
            "value": [
                {
                    "showAs": "busy",
                    "start": {"dateTime": "2025-01-06T09:00:00.0000000", "timeZone": "UTC"},
                    "end": {"dateTime": "2025-01-06T10:00:00.0000000", "timeZone": "UTC"}
                }
            ]
        }
        """
        busy: List[TimeRange] = []

        for event in response_data.get("value", []):
            status = (event.get("showAs") or "busy").lower()
            if status not in self.BUSY_STATUSES:
                continue

            try:
                start = self._parse_datetime(event["start"])
                end = self._parse_datetime(event["end"])
                busy.append(TimeRange(start=start, end=end))
            except (KeyError, ValueError, InvalidInterval) as e:
                logger.warning("Could not parse Graph event: %s", e)

        return busy

    @staticmethod
    def _parse_datetime(value: Dict[str, str]) -> DateTime:
        """Parse a Graph dateTimeTimeZone object into a UTC instant."""
        # Graph sends seven fractional digits; minutes are all we keep
        dt = pendulum.parse(value["dateTime"].split(".")[0], tz=value.get("timeZone") or "UTC")

        if isinstance(dt, DateTime):
            return dt.in_timezone("UTC")

        raise ValueError(f"Could not parse datetime: {value['dateTime']}")
