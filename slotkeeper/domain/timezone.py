"""
Pure conversions between stored instants and civil (wall-clock) time.

All helpers work at minute resolution: seconds and microseconds are
truncated. Daylight-saving transitions are handled by the zone database
that pendulum ships with, so "09:00" always means 09:00 on the local wall
clock of the given day.
"""

from __future__ import annotations

import re
from datetime import date, datetime
from enum import Enum

import pendulum
from pendulum import DateTime

from .exceptions import InvalidTimeZone

_CIVIL_TIME_PATTERN = re.compile(r"^([01]\d|2[0-3]):([0-5]\d)$")


class Weekday(str, Enum):
    """Days of the week, ordered like ``date.weekday()`` (Monday first)."""

    MONDAY = "monday"
    TUESDAY = "tuesday"
    WEDNESDAY = "wednesday"
    THURSDAY = "thursday"
    FRIDAY = "friday"
    SATURDAY = "saturday"
    SUNDAY = "sunday"

    @classmethod
    def from_date(cls, value: date) -> "Weekday":
        return list(cls)[value.weekday()]


def resolve_zone(zone_id: str):
    """
    Resolve an IANA zone identifier.

    Raises:
        InvalidTimeZone: If the identifier is empty or unknown
    """
    if not isinstance(zone_id, str) or not zone_id.strip():
        raise InvalidTimeZone(str(zone_id))

    try:
        return pendulum.timezone(zone_id)
    except (ValueError, KeyError, OSError) as exc:
        raise InvalidTimeZone(zone_id) from exc


def parse_civil_time(value: str) -> tuple[int, int]:
    """Split an ``HH:MM`` string into hour and minute."""
    match = _CIVIL_TIME_PATTERN.match(value or "")
    if not match:
        raise ValueError(f"Civil time must be formatted as HH:MM (00:00-23:59), got {value!r}")
    return int(match.group(1)), int(match.group(2))


def ensure_aware(value: datetime) -> DateTime:
    """
    Normalise an aware datetime to a pendulum DateTime at minute resolution.

    Raises:
        ValueError: If the datetime carries no zone information
    """
    if value.tzinfo is None or value.utcoffset() is None:
        raise ValueError(f"Naive datetime {value.isoformat()} is ambiguous; an offset or zone is required")

    return pendulum.instance(value).set(second=0, microsecond=0)


def to_zoned(instant: datetime, zone_id: str) -> DateTime:
    """Express an instant on the wall clock of ``zone_id``."""
    return ensure_aware(instant).in_timezone(resolve_zone(zone_id))


def to_instant(civil: datetime, zone_id: str) -> DateTime:
    """
    Interpret the wall-clock fields of ``civil`` in ``zone_id``.

    Any zone already attached to ``civil`` is ignored; only its date and
    time-of-day fields are used. Returns the matching UTC instant.
    """
    zoned = pendulum.datetime(
        civil.year,
        civil.month,
        civil.day,
        civil.hour,
        civil.minute,
        tz=resolve_zone(zone_id),
    )
    return zoned.in_timezone("UTC")


def civil_time_of(instant: datetime, zone_id: str) -> str:
    """Return the ``HH:MM`` wall-clock time of an instant in ``zone_id``."""
    return to_zoned(instant, zone_id).format("HH:mm")


def civil_date_of(instant: datetime, zone_id: str) -> date:
    """Return the calendar date of an instant in ``zone_id``."""
    zoned = to_zoned(instant, zone_id)
    return date(zoned.year, zoned.month, zoned.day)


def weekday_of(instant: datetime, zone_id: str) -> Weekday:
    """Return the weekday an instant falls on in ``zone_id``."""
    return Weekday.from_date(civil_date_of(instant, zone_id))


def apply_civil_time(civil_time: str, civil_date: date, zone_id: str) -> DateTime:
    """Anchor an ``HH:MM`` time on ``civil_date`` in ``zone_id``."""
    hour, minute = parse_civil_time(civil_time)
    return pendulum.datetime(
        civil_date.year,
        civil_date.month,
        civil_date.day,
        hour,
        minute,
        tz=resolve_zone(zone_id),
    )
