"""
Buffer-padded overlap detection.

The candidate is padded outward by the buffer and compared against busy
intervals with strict open-interval overlap. A busy interval that merely
touches the padded candidate is not a conflict: the buffer is a minimum
gap, not an exclusion zone that also blocks touching.
"""

from typing import Iterable, Optional

from pendulum import DateTime

from .models import BusyInterval, TimeRange


def padded_interval(start: DateTime, end: DateTime, buffer_minutes: int) -> TimeRange:
    """Return ``[start - buffer, end + buffer]``."""
    return TimeRange(start=start, end=end).padded(buffer_minutes)


def find_conflict(
    busy: Iterable[BusyInterval],
    start: DateTime,
    end: DateTime,
    buffer_minutes: int,
) -> Optional[BusyInterval]:
    """Return the first busy interval overlapping the padded candidate."""
    padded = padded_interval(start, end, buffer_minutes)

    for interval in busy:
        if interval.start < padded.end and padded.start < interval.end:
            return interval

    return None


def has_conflict(
    busy: Iterable[BusyInterval],
    start: DateTime,
    end: DateTime,
    buffer_minutes: int,
) -> bool:
    return find_conflict(busy, start, end, buffer_minutes) is not None
