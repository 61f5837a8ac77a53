"""
In-memory implementations of the store protocols.

Useful for tests, the mock CLI mode and single-process deployments. The
meeting store enforces the padded-overlap constraint inside one critical
section, keyed by owner, so check and insert cannot interleave.
"""

from __future__ import annotations

import threading
from collections import defaultdict
from typing import Collection, Dict, Iterable, List, Optional, Tuple

from pendulum import DateTime

from ..domain.conflicts import find_conflict
from ..domain.exceptions import ConstraintViolation, MeetingNotFound
from ..domain.models import (
    ACTIVE_STATUSES,
    CalendarConnection,
    DelegationGrant,
    Meeting,
    MeetingStatus,
    UserProfile,
    WorkingHoursRule,
)


class InMemoryMeetingStore:
    """
    Arena of meetings: owner id -> meetings, insert fails on padded overlap.
    """

    def __init__(self, meetings: Iterable[Meeting] = ()) -> None:
        self._lock = threading.Lock()
        self._by_owner: Dict[str, Dict[str, Meeting]] = defaultdict(dict)
        for meeting in meetings:
            self._by_owner[meeting.vp_owner][meeting.id] = meeting

    async def insert(self, meeting: Meeting, buffer_minutes: int) -> Meeting:
        with self._lock:
            self._ensure_free(meeting, buffer_minutes)
            self._by_owner[meeting.vp_owner][meeting.id] = meeting
        return meeting

    async def update(self, meeting: Meeting, buffer_minutes: Optional[int] = None) -> Meeting:
        with self._lock:
            if meeting.id not in self._by_owner[meeting.vp_owner]:
                raise MeetingNotFound(f"Meeting not found: {meeting.id}")
            if buffer_minutes is not None and meeting.is_active:
                self._ensure_free(meeting, buffer_minutes)
            self._by_owner[meeting.vp_owner][meeting.id] = meeting
        return meeting

    async def get(self, meeting_id: str) -> Optional[Meeting]:
        with self._lock:
            for meetings in self._by_owner.values():
                if meeting_id in meetings:
                    return meetings[meeting_id]
        return None

    async def list_active(
        self,
        vp_owner: str,
        range_start: DateTime,
        range_end: DateTime,
        exclude_id: Optional[str] = None,
    ) -> List[Meeting]:
        meetings = await self.list_range(vp_owner, range_start, range_end, ACTIVE_STATUSES)
        return [m for m in meetings if m.id != exclude_id]

    async def list_range(
        self,
        vp_owner: str,
        range_start: DateTime,
        range_end: DateTime,
        statuses: Optional[Collection[MeetingStatus]] = None,
    ) -> List[Meeting]:
        with self._lock:
            candidates = list(self._by_owner[vp_owner].values())

        return sorted(
            (
                m for m in candidates
                if (statuses is None or m.status in statuses)
                and m.start_time < range_end
                and range_start < m.end_time
            ),
            key=lambda m: m.start_time,
        )

    def all(self) -> List[Meeting]:
        with self._lock:
            return [m for meetings in self._by_owner.values() for m in meetings.values()]

    def _ensure_free(self, meeting: Meeting, buffer_minutes: int) -> None:
        others = [
            m.as_busy_interval()
            for m in self._by_owner[meeting.vp_owner].values()
            if m.is_active and m.id != meeting.id
        ]
        if find_conflict(others, meeting.start_time, meeting.end_time, buffer_minutes) is not None:
            raise ConstraintViolation(
                f"Meeting {meeting.start_time}-{meeting.end_time} overlaps an active meeting "
                f"of {meeting.vp_owner}"
            )


class InMemoryRuleStore:
    def __init__(self, rules: Iterable[WorkingHoursRule] = ()) -> None:
        self._lock = threading.Lock()
        self._rules: Dict[str, WorkingHoursRule] = {rule.owner_id: rule for rule in rules}

    async def get(self, owner_id: str) -> Optional[WorkingHoursRule]:
        with self._lock:
            return self._rules.get(owner_id)

    async def setdefault(self, rule: WorkingHoursRule) -> WorkingHoursRule:
        with self._lock:
            return self._rules.setdefault(rule.owner_id, rule)

    async def save(self, rule: WorkingHoursRule) -> WorkingHoursRule:
        with self._lock:
            self._rules[rule.owner_id] = rule
        return rule


class InMemoryDelegationStore:
    def __init__(self, grants: Iterable[DelegationGrant] = ()) -> None:
        self._grants: Dict[Tuple[str, str], DelegationGrant] = {
            (grant.delegate, grant.vp_owner): grant for grant in grants
        }

    async def lookup(self, delegate_id: str, vp_owner_id: str) -> Optional[DelegationGrant]:
        return self._grants.get((delegate_id, vp_owner_id))


class InMemoryConnectionStore:
    def __init__(self, connections: Iterable[CalendarConnection] = ()) -> None:
        self._connections: List[CalendarConnection] = list(connections)

    async def list_active(self, user_id: str) -> List[CalendarConnection]:
        return [c for c in self._connections if c.user_id == user_id and c.active]


class InMemoryUserDirectory:
    def __init__(self, users: Iterable[UserProfile] = ()) -> None:
        self._users: Dict[str, UserProfile] = {user.id: user for user in users}

    async def get(self, user_id: str) -> Optional[UserProfile]:
        return self._users.get(user_id)
