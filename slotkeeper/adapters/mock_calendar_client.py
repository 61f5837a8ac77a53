"""
Mock calendar provider backed by a JSON file, for demos and tests without
provider credentials.
"""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any, Dict, List, Optional

import pendulum
from pendulum import DateTime

from ..domain.exceptions import CalendarAPIError, InvalidInterval
from ..domain.models import CalendarConnection, TimeRange

logger = logging.getLogger(__name__)


class MockCalendarClient:
    """
    Simulates an external calendar from static event data.

    Each event is ``{"calendarId": "...", "start": "...", "end": "..."}``
    with ISO-8601 instants that carry an offset.
    """

    PROVIDER = "mock"

    def __init__(self, data_file: Optional[Path] = None, events: Optional[List[Dict[str, Any]]] = None):
        """
        Initialize the mock client.

        Args:
            data_file: JSON file holding a list of events
            events: Events given directly (takes precedence over ``data_file``)
        """
        if events is not None:
            self.calendar_events = list(events)
        else:
            self.calendar_events = self._load_calendar_data(data_file)

    @staticmethod
    def _load_calendar_data(data_file: Optional[Path]) -> List[Dict[str, Any]]:
        if data_file is None or not data_file.exists():
            return []

        try:
            with open(data_file, "r", encoding="utf-8") as f:
                data = json.load(f)
        except (OSError, json.JSONDecodeError) as exc:
            raise CalendarAPIError(f"Could not read mock calendar data {data_file}: {exc}") from exc

        if not isinstance(data, list):
            raise CalendarAPIError(f"Mock calendar data in {data_file} must be a list of events")
        return data

    async def fetch_busy_times(
        self,
        connection: CalendarConnection,
        start_time: DateTime,
        end_time: DateTime,
    ) -> List[TimeRange]:
        busy: List[TimeRange] = []

        for event in self.calendar_events:
            if event.get("calendarId") != connection.calendar_id:
                continue

            try:
                event_start = pendulum.parse(event["start"])
                event_end = pendulum.parse(event["end"])
                event_range = TimeRange(start=event_start, end=event_end)
            except (KeyError, ValueError, InvalidInterval) as e:
                logger.warning("Skipping invalid mock event %s: %s", event, e)
                continue

            if event_range.start < end_time and start_time < event_range.end:
                busy.append(event_range)

        return busy
