"""
Busy-time aggregation across internal meetings and linked calendars.

The aggregator owns no data. For one query it borrows read-only views from
the meeting store and from every active calendar connection of the user,
and merges them into a single sorted list of busy intervals.

External calendars fail independently: an error or timeout from one
provider is logged and reported as ``ExternalSourceUnavailable`` next to
the result, and that provider's intervals are left out (fail-open).
"""

from __future__ import annotations

import asyncio
import logging
from typing import List, Mapping, Optional, Protocol, Sequence, Union

from pendulum import DateTime

from ..domain.exceptions import ExternalSourceUnavailable
from ..domain.models import (
    BusyInterval,
    BusyTimeReport,
    CalendarConnection,
    Meeting,
    TimeRange,
    busy_from_ranges,
)

logger = logging.getLogger(__name__)

DEFAULT_PROVIDER_TIMEOUT_SECONDS = 10.0


class CalendarProviderClient(Protocol):
    """Protocol describing one external calendar provider."""

    async def fetch_busy_times(
        self,
        connection: CalendarConnection,
        start_time: DateTime,
        end_time: DateTime,
    ) -> List[TimeRange]:
        """Return busy ranges for the connection's calendar."""


class ConnectionStore(Protocol):
    async def list_active(self, user_id: str) -> List[CalendarConnection]:
        """Return the user's active calendar connections."""


class MeetingReader(Protocol):
    async def list_active(
        self,
        vp_owner: str,
        range_start: DateTime,
        range_end: DateTime,
        exclude_id: Optional[str] = None,
    ) -> List[Meeting]:
        """Return PENDING/CONFIRMED meetings intersecting the range."""


class BusyTimeAggregator:
    """
    Merges internal meetings with busy time from external calendars.

    One call per requested range: callers fetch once and run every overlap
    test in memory, so the number of provider requests does not grow with
    the number of candidate slots.
    """

    def __init__(
        self,
        meetings: MeetingReader,
        connections: ConnectionStore,
        providers: Mapping[str, CalendarProviderClient],
        timeout_seconds: float = DEFAULT_PROVIDER_TIMEOUT_SECONDS,
    ) -> None:
        self._meetings = meetings
        self._connections = connections
        self._providers = dict(providers)
        self._timeout_seconds = timeout_seconds

    async def get_busy_intervals(
        self,
        user_id: str,
        range_start: DateTime,
        range_end: DateTime,
        exclude_meeting_id: Optional[str] = None,
    ) -> BusyTimeReport:
        """
        Collect busy intervals for ``user_id`` within ``[range_start, range_end]``.

        Args:
            user_id: Owner whose calendars are read
            range_start: Start of the query range
            range_end: End of the query range
            exclude_meeting_id: Internal meeting to leave out (used when
                rescheduling a meeting against its own old slot)

        Returns:
            BusyTimeReport with intervals sorted by start
        """
        connections = await self._connections.list_active(user_id)

        external_results, meetings = await asyncio.gather(
            asyncio.gather(*(self._fetch_one(c, range_start, range_end) for c in connections)),
            self._meetings.list_active(user_id, range_start, range_end, exclude_id=exclude_meeting_id),
        )

        report = BusyTimeReport()
        report.intervals.extend(meeting.as_busy_interval() for meeting in meetings)

        for result in external_results:
            if isinstance(result, ExternalSourceUnavailable):
                report.unavailable_sources.append(result)
            else:
                report.intervals.extend(result)

        report.intervals.sort(key=lambda interval: (interval.start, interval.end))

        logger.debug(
            "Busy time for %s %s..%s: %d interval(s), %d source(s) unavailable",
            user_id,
            range_start,
            range_end,
            len(report.intervals),
            len(report.unavailable_sources),
        )
        return report

    async def _fetch_one(
        self,
        connection: CalendarConnection,
        range_start: DateTime,
        range_end: DateTime,
    ) -> Union[Sequence[BusyInterval], ExternalSourceUnavailable]:
        provider = self._providers.get(connection.provider)
        if provider is None:
            return self._unavailable(connection, "no client registered for provider")

        try:
            ranges = await asyncio.wait_for(
                provider.fetch_busy_times(connection, range_start, range_end),
                timeout=self._timeout_seconds,
            )
        except asyncio.TimeoutError:
            return self._unavailable(connection, f"timed out after {self._timeout_seconds:g}s")
        except Exception as exc:
            return self._unavailable(connection, str(exc) or exc.__class__.__name__)

        return busy_from_ranges(ranges, source=connection.provider)

    @staticmethod
    def _unavailable(connection: CalendarConnection, reason: str) -> ExternalSourceUnavailable:
        outcome = ExternalSourceUnavailable(
            provider=connection.provider,
            connection_id=connection.id,
            reason=reason,
        )
        logger.warning("%s", outcome)
        return outcome
