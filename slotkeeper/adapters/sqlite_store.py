"""
SQLite-backed meeting store.

Instants are stored as UTC epoch seconds. Inserts and reschedules run the
overlap query and the write inside one ``BEGIN IMMEDIATE`` transaction, so
the database itself admits at most one of several overlapping meetings per
owner, even across processes sharing the file.
"""

from __future__ import annotations

import asyncio
import logging
import sqlite3
from contextlib import closing
from pathlib import Path
from typing import Collection, List, Optional, Tuple

import pendulum
from pendulum import DateTime

from ..domain.exceptions import ConstraintViolation, MeetingNotFound
from ..domain.models import ACTIVE_STATUSES, Meeting, MeetingStatus

logger = logging.getLogger(__name__)

_SCHEMA = """
CREATE TABLE IF NOT EXISTS meetings (
    id TEXT PRIMARY KEY,
    vp_owner TEXT NOT NULL,
    attendee TEXT,
    booked_by TEXT,
    title TEXT,
    start_ts INTEGER NOT NULL,
    end_ts INTEGER NOT NULL,
    status TEXT NOT NULL,
    created_ts INTEGER NOT NULL
);
CREATE INDEX IF NOT EXISTS idx_meetings_owner_start ON meetings (vp_owner, start_ts);
"""

_ACTIVE = tuple(status.value for status in ACTIVE_STATUSES)

_OVERLAP_QUERY = f"""
SELECT id FROM meetings
WHERE vp_owner = ?
  AND id != ?
  AND status IN ({", ".join("?" for _ in _ACTIVE)})
  AND start_ts < ?
  AND ? < end_ts
LIMIT 1
"""


def _to_ts(value: DateTime) -> int:
    return int(value.timestamp())


def _from_ts(value: int) -> DateTime:
    return pendulum.from_timestamp(value, tz="UTC")


class SqliteMeetingStore:
    def __init__(self, db_path: Path, timeout_seconds: float = 30.0) -> None:
        self.db_path = Path(db_path)
        self._timeout_seconds = timeout_seconds
        self.db_path.parent.mkdir(parents=True, exist_ok=True)
        with closing(self._connect()) as conn:
            conn.executescript(_SCHEMA)

    def _connect(self) -> sqlite3.Connection:
        # autocommit mode; transactions are opened explicitly
        conn = sqlite3.connect(str(self.db_path), timeout=self._timeout_seconds, isolation_level=None)
        conn.row_factory = sqlite3.Row
        return conn

    async def insert(self, meeting: Meeting, buffer_minutes: int) -> Meeting:
        return await asyncio.to_thread(self._write, meeting, buffer_minutes, False)

    async def update(self, meeting: Meeting, buffer_minutes: Optional[int] = None) -> Meeting:
        return await asyncio.to_thread(self._write, meeting, buffer_minutes, True)

    async def get(self, meeting_id: str) -> Optional[Meeting]:
        return await asyncio.to_thread(self._get, meeting_id)

    async def list_active(
        self,
        vp_owner: str,
        range_start: DateTime,
        range_end: DateTime,
        exclude_id: Optional[str] = None,
    ) -> List[Meeting]:
        return await asyncio.to_thread(self._list, vp_owner, range_start, range_end, _ACTIVE, exclude_id)

    async def list_range(
        self,
        vp_owner: str,
        range_start: DateTime,
        range_end: DateTime,
        statuses: Optional[Collection[MeetingStatus]] = None,
    ) -> List[Meeting]:
        wanted = tuple(status.value for status in (MeetingStatus if statuses is None else statuses))
        return await asyncio.to_thread(self._list, vp_owner, range_start, range_end, wanted, None)

    def _write(self, meeting: Meeting, buffer_minutes: Optional[int], existing: bool) -> Meeting:
        with closing(self._connect()) as conn:
            conn.execute("BEGIN IMMEDIATE")
            try:
                if existing and conn.execute("SELECT 1 FROM meetings WHERE id = ?", (meeting.id,)).fetchone() is None:
                    raise MeetingNotFound(f"Meeting not found: {meeting.id}")

                if buffer_minutes is not None and meeting.is_active:
                    self._ensure_free(conn, meeting, buffer_minutes)

                conn.execute(
                    """
                    INSERT OR REPLACE INTO meetings
                        (id, vp_owner, attendee, booked_by, title, start_ts, end_ts, status, created_ts)
                    VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)
                    """,
                    (
                        meeting.id,
                        meeting.vp_owner,
                        meeting.attendee,
                        meeting.booked_by,
                        meeting.title,
                        _to_ts(meeting.start_time),
                        _to_ts(meeting.end_time),
                        meeting.status.value,
                        _to_ts(meeting.created_at),
                    ),
                )
            except BaseException:
                conn.execute("ROLLBACK")
                raise
            conn.execute("COMMIT")
        return meeting

    @staticmethod
    def _ensure_free(conn: sqlite3.Connection, meeting: Meeting, buffer_minutes: int) -> None:
        padded_start = _to_ts(meeting.start_time.subtract(minutes=buffer_minutes))
        padded_end = _to_ts(meeting.end_time.add(minutes=buffer_minutes))

        row = conn.execute(
            _OVERLAP_QUERY,
            (meeting.vp_owner, meeting.id, *_ACTIVE, padded_end, padded_start),
        ).fetchone()

        if row is not None:
            raise ConstraintViolation(
                f"Meeting {meeting.start_time}-{meeting.end_time} overlaps meeting {row['id']} "
                f"of {meeting.vp_owner}"
            )

    def _get(self, meeting_id: str) -> Optional[Meeting]:
        with closing(self._connect()) as conn:
            row = conn.execute("SELECT * FROM meetings WHERE id = ?", (meeting_id,)).fetchone()
        return self._row_to_meeting(row) if row else None

    def _list(
        self,
        vp_owner: str,
        range_start: DateTime,
        range_end: DateTime,
        statuses: Tuple[str, ...],
        exclude_id: Optional[str],
    ) -> List[Meeting]:
        if not statuses:
            return []

        with closing(self._connect()) as conn:
            rows = conn.execute(
                f"""
                SELECT * FROM meetings
                WHERE vp_owner = ?
                  AND id != ?
                  AND status IN ({", ".join("?" for _ in statuses)})
                  AND start_ts < ?
                  AND ? < end_ts
                ORDER BY start_ts
                """,
                (vp_owner, exclude_id or "", *statuses, _to_ts(range_end), _to_ts(range_start)),
            ).fetchall()
        return [self._row_to_meeting(row) for row in rows]

    @staticmethod
    def _row_to_meeting(row: sqlite3.Row) -> Meeting:
        return Meeting(
            id=row["id"],
            vp_owner=row["vp_owner"],
            attendee=row["attendee"],
            booked_by=row["booked_by"],
            title=row["title"],
            start_time=_from_ts(row["start_ts"]),
            end_time=_from_ts(row["end_ts"]),
            status=MeetingStatus(row["status"]),
            created_at=_from_ts(row["created_ts"]),
        )
