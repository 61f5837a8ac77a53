"""
Candidate slot generation over a date range.

Pure domain logic: the busy intervals are handed in by the caller, which
fetches them once for the whole range (see ``SlotGenerator.busy_window``).
"""

from datetime import timedelta
from typing import Iterator, List, Optional, Sequence

from pendulum import DateTime

from .conflicts import has_conflict
from .exceptions import InvalidInterval
from .models import BusyInterval, CandidateSlot, TimeRange, WorkingHoursRule
from .timezone import civil_date_of
from .working_hours import windows_for


class SlotGenerator:
    """
    Emits fixed-duration candidates inside working-hour windows.

    Algorithm:
    1. Walk civil dates (owner's zone) from the date of ``range_start`` to
       the date of ``range_end``, inclusive
    2. Resolve the windows of each date
    3. Step a cursor through each window in ``duration`` increments,
       dropping a candidate that would spill past the window's end
    4. Tag each candidate with availability via buffer-padded overlap

    The output is finite and stateless: the same inputs give the same slots.
    """

    def generate(
        self,
        rule: WorkingHoursRule,
        range_start: DateTime,
        range_end: DateTime,
        duration_minutes: int,
        busy: Sequence[BusyInterval],
    ) -> List[CandidateSlot]:
        """
        Generate candidate slots for the range.

        Args:
            rule: The owner's working hours (zone and buffer included)
            range_start: Start of the search period
            range_end: End of the search period
            duration_minutes: Length of every candidate
            busy: Busy intervals covering ``busy_window(...)``

        Returns:
            List of CandidateSlot objects, in chronological order
        """
        self.validate_request(range_start, range_end, duration_minutes)

        return [
            CandidateSlot(
                start=candidate.start,
                end=candidate.end,
                available=not has_conflict(busy, candidate.start, candidate.end, rule.buffer_minutes),
            )
            for candidate in self.iter_candidates(rule, range_start, range_end, duration_minutes)
        ]

    def iter_candidates(
        self,
        rule: WorkingHoursRule,
        range_start: DateTime,
        range_end: DateTime,
        duration_minutes: int,
    ) -> Iterator[TimeRange]:
        for window in self._get_working_windows(rule, range_start, range_end):
            cursor = window.start

            while cursor < window.end:
                slot_end = cursor.add(minutes=duration_minutes)

                if slot_end <= window.end:
                    yield TimeRange(start=cursor, end=slot_end)

                cursor = slot_end

    def busy_window(
        self,
        rule: WorkingHoursRule,
        range_start: DateTime,
        range_end: DateTime,
    ) -> Optional[TimeRange]:
        """
        The single padded range that covers every candidate of the request.

        Returns None when no window falls in the range.
        """
        windows = self._get_working_windows(rule, range_start, range_end)
        if not windows:
            return None

        return TimeRange(
            start=min(w.start for w in windows),
            end=max(w.end for w in windows),
        ).padded(rule.buffer_minutes)

    def _get_working_windows(
        self,
        rule: WorkingHoursRule,
        range_start: DateTime,
        range_end: DateTime,
    ) -> List[TimeRange]:
        windows: List[TimeRange] = []

        current = civil_date_of(range_start, rule.timezone)
        last = civil_date_of(range_end, rule.timezone)

        while current <= last:
            windows.extend(windows_for(rule, current))
            current += timedelta(days=1)

        return windows

    @staticmethod
    def validate_request(range_start: DateTime, range_end: DateTime, duration_minutes: int) -> None:
        if duration_minutes <= 0:
            raise InvalidInterval(f"Slot duration must be positive, got {duration_minutes}")
        if range_start > range_end:
            raise InvalidInterval(f"Range start {range_start} is after range end {range_end}")
