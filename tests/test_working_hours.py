"""
Tests for working-hours evaluation.
"""

from dataclasses import replace
from datetime import date

import pendulum
import pytest

from slotkeeper.domain.models import WorkingHoursRule
from slotkeeper.domain.working_hours import (
    is_interval_within_working_hours,
    is_within_working_hours,
    windows_for,
)


@pytest.fixture
def weekday_rule():
    return WorkingHoursRule.default("vp", "UTC")


class TestIsWithinWorkingHours:
    @pytest.mark.parametrize(
        "instant, expected",
        [
            ("2025-01-06 09:00", True),
            ("2025-01-06 17:00", True),
            ("2025-01-06 08:59", False),
            ("2025-01-06 17:01", False),
            ("2025-01-06 12:30", True),
        ],
    )
    def test_boundaries_are_inclusive(self, weekday_rule, instant, expected):
        assert is_within_working_hours(weekday_rule, pendulum.parse(instant, tz="UTC")) is expected

    def test_seconds_are_truncated(self, weekday_rule):
        """17:00:59 is still 17:00 at minute resolution."""
        assert is_within_working_hours(weekday_rule, pendulum.parse("2025-01-06 17:00:59", tz="UTC"))

    def test_weekend_is_closed(self, weekday_rule):
        assert not is_within_working_hours(weekday_rule, pendulum.parse("2025-01-04 10:00", tz="UTC"))

    def test_owner_zone_offset(self, all_week_rule):
        """Owner in UTC+3 with 09:00-17:00 local hours."""
        rule = replace(all_week_rule, timezone="Europe/Moscow")

        assert is_within_working_hours(rule, pendulum.parse("2025-12-27T11:00:00Z"))  # 14:00 local
        assert not is_within_working_hours(rule, pendulum.parse("2025-12-27T14:30:00Z"))  # 17:30 local

    def test_multiple_windows_per_day(self):
        rule = WorkingHoursRule.from_mapping(
            "vp",
            "UTC",
            {"working_hours": {"monday": [
                {"start": "09:00", "end": "12:00"},
                {"start": "13:00", "end": "17:00"},
            ]}},
        )

        assert is_within_working_hours(rule, pendulum.parse("2025-01-06 12:00", tz="UTC"))
        assert not is_within_working_hours(rule, pendulum.parse("2025-01-06 12:30", tz="UTC"))
        assert is_within_working_hours(rule, pendulum.parse("2025-01-06 13:00", tz="UTC"))


class TestIntervalWithinWorkingHours:
    def test_meeting_ending_at_close_is_inside(self, weekday_rule):
        assert is_interval_within_working_hours(
            weekday_rule,
            pendulum.parse("2025-01-06 16:30", tz="UTC"),
            pendulum.parse("2025-01-06 17:00", tz="UTC"),
        )

    def test_meeting_spilling_past_close_is_outside(self, weekday_rule):
        """Start is inside the window, but the end is not."""
        start = pendulum.parse("2025-01-06 16:45", tz="UTC")
        end = pendulum.parse("2025-01-06 17:15", tz="UTC")

        assert is_within_working_hours(weekday_rule, start)
        assert not is_interval_within_working_hours(weekday_rule, start, end)

    def test_meeting_spanning_lunch_gap_is_outside(self):
        rule = WorkingHoursRule.from_mapping(
            "vp",
            "UTC",
            {"working_hours": {"monday": [
                {"start": "09:00", "end": "12:00"},
                {"start": "13:00", "end": "17:00"},
            ]}},
        )

        assert not is_interval_within_working_hours(
            rule,
            pendulum.parse("2025-01-06 11:30", tz="UTC"),
            pendulum.parse("2025-01-06 13:30", tz="UTC"),
        )

    def test_touching_windows_each_accept_their_own_meetings(self):
        """12:00 belongs to both windows; a meeting from 12:00 fits the second."""
        rule = WorkingHoursRule.from_mapping(
            "vp",
            "UTC",
            {"working_hours": {"monday": [
                {"start": "09:00", "end": "12:00"},
                {"start": "12:00", "end": "17:00"},
            ]}},
        )

        assert is_interval_within_working_hours(
            rule,
            pendulum.parse("2025-01-06 12:00", tz="UTC"),
            pendulum.parse("2025-01-06 12:30", tz="UTC"),
        )
        assert is_interval_within_working_hours(
            rule,
            pendulum.parse("2025-01-06 11:30", tz="UTC"),
            pendulum.parse("2025-01-06 12:00", tz="UTC"),
        )


class TestWindowsFor:
    def test_empty_saturday(self, weekday_rule):
        assert windows_for(weekday_rule, date(2025, 1, 4)) == []

    def test_windows_are_anchored_in_owner_zone(self):
        rule = WorkingHoursRule.default("vp", "America/New_York")

        windows = windows_for(rule, date(2025, 1, 6))

        assert len(windows) == 1
        assert windows[0].start == pendulum.parse("2025-01-06T14:00:00Z")
        assert windows[0].end == pendulum.parse("2025-01-06T22:00:00Z")

    def test_windows_follow_dst(self):
        """US clocks spring forward on 2025-03-09; the window keeps its wall-clock time."""
        rule = WorkingHoursRule.from_mapping(
            "vp",
            "America/New_York",
            {"working_hours": {"sunday": [{"start": "09:00", "end": "17:00"}]}},
        )

        before = windows_for(rule, date(2025, 3, 2))[0]
        after = windows_for(rule, date(2025, 3, 9))[0]

        assert before.start.in_timezone("UTC").hour == 14
        assert after.start.in_timezone("UTC").hour == 13
        assert after.duration_minutes() == 480
