"""
Tests for the command line interface.
"""

import asyncio
import textwrap

import pendulum
import pytest
from typer.testing import CliRunner

from slotkeeper.adapters.sqlite_store import SqliteMeetingStore
from slotkeeper.cli.app import app

runner = CliRunner()


@pytest.fixture
def config_file(tmp_path):
    path = tmp_path / "slotkeeper.yaml"
    path.write_text(textwrap.dedent("""
        log_level: WARNING
        database_path: meetings.db
        defaults:
          buffer_minutes: 15
        users:
          - id: vp
            name: Anna Berg
            timezone: UTC
            working_hours:
              working_hours:
                monday: [{start: "09:00", end: "12:00"}]
          - id: ea
            role: EA
          - id: intern
            role: EA
        delegations:
          - vp_owner: vp
            delegate: ea
    """))
    return path


def _invoke(*args):
    return runner.invoke(app, list(args))


def _stored_meetings(config_file):
    store = SqliteMeetingStore(config_file.parent / "meetings.db")
    return asyncio.run(store.list_active(
        "vp", pendulum.parse("2025-01-01T00:00:00Z"), pendulum.parse("2025-02-01T00:00:00Z"),
    ))


class TestBook:
    def test_book_then_conflict(self, config_file):
        first = _invoke("book", "vp", "2025-01-06T10:00:00Z", "2025-01-06T10:30:00Z", "-c", str(config_file))
        second = _invoke("book", "vp", "2025-01-06T10:15:00+00:00", "2025-01-06T10:45:00+00:00", "-c", str(config_file))

        assert first.exit_code == 0, first.output
        assert "booked" in first.output
        assert second.exit_code == 1
        assert "Error" in second.output
        assert len(_stored_meetings(config_file)) == 1

    def test_delegate_and_stranger(self, config_file):
        allowed = _invoke(
            "book", "vp", "2025-01-06T09:00:00Z", "2025-01-06T09:30:00Z", "--as", "ea", "-c", str(config_file),
        )
        denied = _invoke(
            "book", "vp", "2025-01-06T11:00:00Z", "2025-01-06T11:30:00Z", "--as", "intern", "-c", str(config_file),
        )

        assert allowed.exit_code == 0, allowed.output
        assert denied.exit_code == 1
        assert "may not" in denied.output

    def test_visitor_booking(self, config_file):
        result = _invoke(
            "book", "vp", "2025-01-06T09:00:00Z", "2025-01-06T09:30:00Z",
            "--visitor", "guest@example.com", "-c", str(config_file),
        )

        assert result.exit_code == 0, result.output
        [meeting] = _stored_meetings(config_file)
        assert meeting.booked_by == "guest@example.com"

    def test_outside_working_hours(self, config_file):
        result = _invoke("book", "vp", "2025-01-06T13:00:00Z", "2025-01-06T13:30:00Z", "-c", str(config_file))

        assert result.exit_code == 1
        assert "outside working hours" in result.output

    def test_instant_without_offset_is_rejected(self, config_file):
        result = _invoke("book", "vp", "2025-01-06T10:00:00", "2025-01-06T10:30:00", "-c", str(config_file))

        assert result.exit_code == 2
        assert _stored_meetings(config_file) == []


class TestOtherCommands:
    def test_cancel_frees_slot(self, config_file):
        _invoke("book", "vp", "2025-01-06T10:00:00Z", "2025-01-06T10:30:00Z", "-c", str(config_file))
        [meeting] = _stored_meetings(config_file)

        result = _invoke("cancel", meeting.id, "--as", "vp", "-c", str(config_file))

        assert result.exit_code == 0, result.output
        assert "cancelled" in result.output
        assert _stored_meetings(config_file) == []

    def test_check(self, config_file):
        free = _invoke("check", "vp", "2025-01-06T10:00:00Z", "2025-01-06T10:30:00Z", "-c", str(config_file))
        closed = _invoke("check", "vp", "2025-01-07T10:00:00Z", "2025-01-07T10:30:00Z", "-c", str(config_file))

        assert free.exit_code == 0
        assert "Available" in free.output
        assert closed.exit_code == 2

    def test_slots(self, config_file):
        _invoke("book", "vp", "2025-01-06T10:00:00Z", "2025-01-06T11:00:00Z", "-c", str(config_file))

        result = _invoke(
            "slots", "vp", "--start", "2025-01-06", "--end", "2025-01-06", "--duration", "30", "-c", str(config_file),
        )

        assert result.exit_code == 0, result.output
        assert "2 open slot(s)" in result.output

    def test_slots_on_a_day_off(self, config_file):
        result = _invoke("slots", "vp", "--start", "2025-01-07", "--end", "2025-01-07", "-c", str(config_file))

        assert result.exit_code == 0
        assert "No open slots" in result.output

    def test_hours(self, config_file):
        result = _invoke("hours", "vp", "-c", str(config_file))

        assert result.exit_code == 0
        assert "09:00-12:00" in result.output
        assert "Anna Berg" in result.output

    def test_missing_config(self, tmp_path):
        result = _invoke("hours", "vp", "-c", str(tmp_path / "missing.yaml"))

        assert result.exit_code == 1
        assert "not found" in result.output

    def test_version(self):
        result = _invoke("version")

        assert result.exit_code == 0
        assert "0.1.0" in result.output


class TestMeetings:
    def _book_morning(self, config_file):
        _invoke("book", "vp", "2025-01-06T09:00:00Z", "2025-01-06T09:30:00Z", "-c", str(config_file))
        _invoke("book", "vp", "2025-01-06T10:00:00Z", "2025-01-06T10:30:00Z", "-c", str(config_file))
        first, _ = _stored_meetings(config_file)
        _invoke("cancel", first.id, "--as", "vp", "-c", str(config_file))

    def test_owner_lists_all_statuses(self, config_file):
        self._book_morning(config_file)

        result = _invoke("meetings", "vp", "--start", "2025-01-06", "--end", "2025-01-06", "-c", str(config_file))

        assert result.exit_code == 0, result.output
        assert "PENDING" in result.output
        assert "CANCELLED" in result.output

    def test_status_filter(self, config_file):
        self._book_morning(config_file)

        result = _invoke(
            "meetings", "vp", "--start", "2025-01-06", "--end", "2025-01-06", "--status", "CANCELLED",
            "-c", str(config_file),
        )

        assert result.exit_code == 0, result.output
        assert "CANCELLED" in result.output
        assert "PENDING" not in result.output

    def test_delegate_with_view_grant(self, config_file):
        self._book_morning(config_file)

        allowed = _invoke(
            "meetings", "vp", "--as", "ea", "--start", "2025-01-06", "--end", "2025-01-06", "-c", str(config_file),
        )
        denied = _invoke(
            "meetings", "vp", "--as", "intern", "--start", "2025-01-06", "--end", "2025-01-06", "-c", str(config_file),
        )

        assert allowed.exit_code == 0, allowed.output
        assert "PENDING" in allowed.output
        assert denied.exit_code == 1
        assert "Error" in denied.output

    def test_empty_week(self, config_file):
        result = _invoke("meetings", "vp", "--start", "2025-01-13", "--end", "2025-01-17", "-c", str(config_file))

        assert result.exit_code == 0
        assert "No meetings found" in result.output
