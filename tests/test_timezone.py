"""
Tests for the time zone adapter.
"""

from datetime import date, datetime

import pendulum
import pytest

from slotkeeper.domain.exceptions import InvalidTimeZone
from slotkeeper.domain.timezone import (
    Weekday,
    apply_civil_time,
    civil_time_of,
    ensure_aware,
    parse_civil_time,
    resolve_zone,
    to_instant,
    to_zoned,
    weekday_of,
)


class TestResolveZone:
    @pytest.mark.parametrize("zone_id", ["Mars/Olympus_Mons", "", "   "])
    def test_malformed_zone_raises(self, zone_id):
        with pytest.raises(InvalidTimeZone):
            resolve_zone(zone_id)

    def test_known_zone_resolves(self):
        assert resolve_zone("Europe/Moscow") is not None


class TestConversions:
    def test_to_zoned_truncates_seconds(self):
        instant = pendulum.parse("2025-01-06T08:15:42.123456Z")

        zoned = to_zoned(instant, "Europe/Berlin")

        assert (zoned.hour, zoned.minute, zoned.second, zoned.microsecond) == (9, 15, 0, 0)

    def test_civil_time_of_offset_zone(self):
        instant = pendulum.parse("2025-12-27T11:00:00Z")

        assert civil_time_of(instant, "Europe/Moscow") == "14:00"

    def test_weekday_crosses_midnight(self):
        """Late Sunday evening UTC is already Monday in Tokyo."""
        instant = pendulum.parse("2025-01-05T20:00:00Z")

        assert weekday_of(instant, "UTC") == Weekday.SUNDAY
        assert weekday_of(instant, "Asia/Tokyo") == Weekday.MONDAY

    def test_to_instant_uses_wall_clock_fields(self):
        instant = to_instant(datetime(2025, 7, 1, 9, 0), "Europe/Berlin")

        assert instant == pendulum.parse("2025-07-01T07:00:00Z")

    def test_apply_civil_time_across_spring_forward(self):
        """09:00 stays 09:00 local on the day clocks jump forward."""
        before = apply_civil_time("09:00", date(2025, 3, 29), "Europe/Berlin")
        after = apply_civil_time("09:00", date(2025, 3, 30), "Europe/Berlin")

        assert before.in_timezone("UTC").hour == 8
        assert after.in_timezone("UTC").hour == 7
        assert civil_time_of(after, "Europe/Berlin") == "09:00"

    def test_ensure_aware_rejects_naive(self):
        with pytest.raises(ValueError, match="Naive datetime"):
            ensure_aware(datetime(2025, 1, 6, 9, 0))


class TestParseCivilTime:
    def test_valid(self):
        assert parse_civil_time("00:00") == (0, 0)
        assert parse_civil_time("23:59") == (23, 59)

    @pytest.mark.parametrize("value", ["24:00", "9:00", "09:60", "0900", ""])
    def test_invalid(self, value):
        with pytest.raises(ValueError):
            parse_civil_time(value)
