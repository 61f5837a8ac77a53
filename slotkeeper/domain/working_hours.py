"""
Working-hours evaluation against a WorkingHoursRule.
"""

from datetime import date, datetime
from typing import List

from .models import TimeRange, WorkingHoursRule
from .timezone import (
    Weekday,
    apply_civil_time,
    civil_date_of,
    civil_time_of,
    weekday_of,
)


def is_within_working_hours(rule: WorkingHoursRule, instant: datetime) -> bool:
    """
    Check whether an instant falls inside one of the owner's windows.

    The instant is converted to the owner's zone and its civil time is
    compared against every window of that weekday, inclusive on both ends:
    for a 09:00-17:00 window both 09:00 and 17:00 are inside.
    """
    civil_time = civil_time_of(instant, rule.timezone)
    weekday = weekday_of(instant, rule.timezone)

    return any(window.contains(civil_time) for window in rule.windows_on(weekday))


def is_interval_within_working_hours(rule: WorkingHoursRule, start: datetime, end: datetime) -> bool:
    """
    Check that a whole meeting fits in a single window.

    Start and end must land inside one window, on the same civil date.
    Touching windows (09:00-12:00, 12:00-17:00) are tried in turn.
    """
    if civil_date_of(end, rule.timezone) != civil_date_of(start, rule.timezone):
        return False

    start_time = civil_time_of(start, rule.timezone)
    end_time = civil_time_of(end, rule.timezone)

    return any(
        window.contains(start_time) and window.contains(end_time)
        for window in rule.windows_on(weekday_of(start, rule.timezone))
    )


def windows_for(rule: WorkingHoursRule, civil_date: date) -> List[TimeRange]:
    """
    Resolve the weekly template to concrete ranges on ``civil_date``.

    Returns an empty list for weekdays without windows.
    """
    return [
        TimeRange(
            start=apply_civil_time(window.start, civil_date, rule.timezone),
            end=apply_civil_time(window.end, civil_date, rule.timezone),
        )
        for window in rule.windows_on(Weekday.from_date(civil_date))
    ]
