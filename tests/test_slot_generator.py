"""
Tests for the slot generator.
"""

import pendulum
import pytest

from slotkeeper.domain.exceptions import InvalidInterval
from slotkeeper.domain.models import BusyInterval, WorkingHoursRule
from slotkeeper.domain.slot_generator import SlotGenerator


def _rule(windows, buffer_minutes=0, timezone="UTC"):
    return WorkingHoursRule.from_mapping(
        "vp",
        timezone,
        {"buffer_minutes": buffer_minutes, "working_hours": {"monday": windows}},
    )


class TestSlotGenerator:
    """Tests for SlotGenerator."""

    def test_slots_never_spill_past_window(self):
        """09:00-17:05 with 30 minute slots ends with 16:30-17:00."""
        rule = _rule([{"start": "09:00", "end": "17:05"}])
        start = pendulum.parse("2025-01-06 00:00", tz="UTC")  # Monday

        slots = SlotGenerator().generate(rule, start, start.end_of("day"), 30, busy=[])

        assert len(slots) == 16
        assert slots[0].start == pendulum.parse("2025-01-06 09:00", tz="UTC")
        assert slots[-1].start == pendulum.parse("2025-01-06 16:30", tz="UTC")
        assert slots[-1].end == pendulum.parse("2025-01-06 17:00", tz="UTC")
        assert all(slot.end <= pendulum.parse("2025-01-06 17:05", tz="UTC") for slot in slots)

    def test_window_shorter_than_duration(self):
        rule = _rule([{"start": "09:00", "end": "09:20"}])
        start = pendulum.parse("2025-01-06 00:00", tz="UTC")

        assert SlotGenerator().generate(rule, start, start.end_of("day"), 30, busy=[]) == []

    def test_busy_time_marks_slots_unavailable(self):
        rule = _rule([{"start": "09:00", "end": "12:00"}], buffer_minutes=15)
        start = pendulum.parse("2025-01-06 00:00", tz="UTC")
        busy = [
            BusyInterval(
                start=pendulum.parse("2025-01-06 10:00", tz="UTC"),
                end=pendulum.parse("2025-01-06 10:30", tz="UTC"),
            )
        ]

        slots = SlotGenerator().generate(rule, start, start.end_of("day"), 30, busy=busy)

        availability = {slot.start.format("HH:mm"): slot.available for slot in slots}
        assert availability == {
            "09:00": True,
            "09:30": False,  # padded to 09:15-10:15
            "10:00": False,
            "10:30": False,  # padded to 10:15-11:15
            "11:00": True,
            "11:30": True,
        }

    def test_empty_weekday_yields_no_candidates(self):
        """Weekends without windows are skipped, not an error."""
        rule = WorkingHoursRule.default("vp", "UTC")
        saturday = pendulum.parse("2025-01-04 00:00", tz="UTC")

        assert SlotGenerator().generate(rule, saturday, saturday.end_of("day"), 30, busy=[]) == []

    def test_range_covers_each_day_inclusive(self):
        """Friday to Monday: slots on Friday and Monday only."""
        rule = WorkingHoursRule.default("vp", "UTC")
        start = pendulum.parse("2025-01-03 00:00", tz="UTC")  # Friday
        end = pendulum.parse("2025-01-06 08:00", tz="UTC")    # Monday morning

        slots = SlotGenerator().generate(rule, start, end, 60, busy=[])

        assert {slot.start.date().isoformat() for slot in slots} == {"2025-01-03", "2025-01-06"}
        assert len(slots) == 16

    def test_days_follow_owner_zone(self):
        """A UTC range that is already Monday in Tokyo yields Monday's windows."""
        rule = WorkingHoursRule.default("vp", "Asia/Tokyo")
        start = pendulum.parse("2025-01-05T20:00:00Z")  # Monday 05:00 in Tokyo

        slots = SlotGenerator().generate(rule, start, start, 60, busy=[])

        assert len(slots) == 8
        assert slots[0].start == pendulum.parse("2025-01-06T00:00:00Z")

    def test_same_arguments_same_output(self):
        rule = WorkingHoursRule.default("vp", "Europe/Berlin")
        start = pendulum.parse("2025-01-06 00:00", tz="Europe/Berlin")
        end = start.add(days=6)
        generator = SlotGenerator()

        assert generator.generate(rule, start, end, 45, busy=[]) == generator.generate(rule, start, end, 45, busy=[])

    @pytest.mark.parametrize("duration", [0, -30])
    def test_duration_must_be_positive(self, duration):
        rule = WorkingHoursRule.default("vp", "UTC")
        start = pendulum.parse("2025-01-06 00:00", tz="UTC")

        with pytest.raises(InvalidInterval):
            SlotGenerator().generate(rule, start, start.add(days=1), duration, busy=[])

    def test_busy_window_covers_all_candidates(self):
        rule = WorkingHoursRule.default("vp", "UTC")
        start = pendulum.parse("2025-01-06 00:00", tz="UTC")

        window = SlotGenerator().busy_window(rule, start, start.add(days=1))

        assert window.start == pendulum.parse("2025-01-06 08:45", tz="UTC")
        assert window.end == pendulum.parse("2025-01-07 17:15", tz="UTC")

    def test_busy_window_none_without_windows(self):
        rule = WorkingHoursRule.default("vp", "UTC")
        saturday = pendulum.parse("2025-01-04 00:00", tz="UTC")

        assert SlotGenerator().busy_window(rule, saturday, saturday.add(days=1)) is None
