"""
Read path: conflict checks and candidate slots for display.

The service coordinates the working-hours repository, the busy-time
aggregator and the pure ``SlotGenerator``. Busy time is fetched once per
request range, never once per candidate.
"""

from __future__ import annotations

import logging
from typing import List, Optional, Tuple

from pendulum import DateTime

from ..domain.conflicts import find_conflict, padded_interval
from ..domain.models import BusyInterval, BusyTimeReport, CandidateSlot, SlotReport, TimeRange
from ..domain.slot_generator import SlotGenerator
from ..domain.timezone import ensure_aware
from ..domain.working_hours import is_interval_within_working_hours
from .busy_times import BusyTimeAggregator
from .working_hours import WorkingHoursService

logger = logging.getLogger(__name__)


class ConflictDetector:
    """Decides whether a candidate is blocked by any aggregated busy interval."""

    def __init__(self, aggregator: BusyTimeAggregator) -> None:
        self._aggregator = aggregator

    async def find_conflict(
        self,
        user_id: str,
        start: DateTime,
        end: DateTime,
        buffer_minutes: int,
        exclude_meeting_id: Optional[str] = None,
    ) -> Tuple[Optional[BusyInterval], BusyTimeReport]:
        """Return the first blocking interval (or None) and the report it came from."""
        padded = padded_interval(start, end, buffer_minutes)
        report = await self._aggregator.get_busy_intervals(
            user_id,
            padded.start,
            padded.end,
            exclude_meeting_id=exclude_meeting_id,
        )
        return find_conflict(report.intervals, start, end, buffer_minutes), report

    async def has_conflict(
        self,
        user_id: str,
        start: DateTime,
        end: DateTime,
        buffer_minutes: int,
        exclude_meeting_id: Optional[str] = None,
    ) -> bool:
        conflict, _ = await self.find_conflict(user_id, start, end, buffer_minutes, exclude_meeting_id)
        return conflict is not None


class AvailabilityService:
    def __init__(
        self,
        rules: WorkingHoursService,
        aggregator: BusyTimeAggregator,
        slot_generator: Optional[SlotGenerator] = None,
    ) -> None:
        self._rules = rules
        self._aggregator = aggregator
        self._conflicts = ConflictDetector(aggregator)
        self._slot_generator = slot_generator or SlotGenerator()

    @property
    def conflicts(self) -> ConflictDetector:
        return self._conflicts

    async def generate_slot_report(
        self,
        user_id: str,
        range_start: DateTime,
        range_end: DateTime,
        duration_minutes: int = 30,
    ) -> SlotReport:
        """
        Generate candidate slots and report which calendars could not be read.
        """
        range_start = ensure_aware(range_start)
        range_end = ensure_aware(range_end)
        self._slot_generator.validate_request(range_start, range_end, duration_minutes)
        rule = await self._rules.get_rule(user_id)

        busy_range = self._slot_generator.busy_window(rule, range_start, range_end)
        if busy_range is None:
            return SlotReport()

        busy = await self._aggregator.get_busy_intervals(user_id, busy_range.start, busy_range.end)
        slots = self._slot_generator.generate(
            rule,
            range_start,
            range_end,
            duration_minutes,
            busy.intervals,
        )

        return SlotReport(slots=slots, unavailable_sources=busy.unavailable_sources)

    async def generate_slots(
        self,
        user_id: str,
        range_start: DateTime,
        range_end: DateTime,
        duration_minutes: int = 30,
    ) -> List[CandidateSlot]:
        report = await self.generate_slot_report(user_id, range_start, range_end, duration_minutes)
        return report.slots

    async def is_slot_available(self, user_id: str, start: DateTime, end: DateTime) -> bool:
        """Working hours first, then busy time; an empty or inverted interval is never available."""
        start = ensure_aware(start)
        end = ensure_aware(end)
        if start >= end:
            return False

        rule = await self._rules.get_rule(user_id)
        if not is_interval_within_working_hours(rule, start, end):
            return False

        return not await self._conflicts.has_conflict(user_id, start, end, rule.buffer_minutes)


def describe_range(time_range: TimeRange, timezone: str) -> str:
    start = time_range.start.in_timezone(timezone)
    end = time_range.end.in_timezone(timezone)
    return f"{start.format('YYYY-MM-DD HH:mm')}-{end.format('HH:mm')} {timezone}"
