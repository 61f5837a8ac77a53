"""
Write path: validating and committing meetings.

Every booking runs the same sequence, short-circuiting on the first
failure:

1. the interval must start before it ends (``InvalidInterval``)
2. a caller other than the owner needs an active ``can_book`` grant
   (``Unauthorized``)
3. no buffer-padded overlap with busy time (``SchedulingConflict``)
4. the meeting must sit inside one working-hours window
   (``OutsideWorkingHours``)
5. the meeting is stored as PENDING

Steps 3-5 run while holding the owner's admission lock, and the store's
insert rejects padded overlaps on its own. For a fixed owner at most one of
several concurrent overlapping requests succeeds; the others observe
``SchedulingConflict``.
"""

from __future__ import annotations

import asyncio
import contextlib
import logging
from dataclasses import replace
from typing import AsyncIterator, Collection, Dict, List, Optional, Protocol

from pendulum import DateTime

from ..domain.exceptions import (
    ConstraintViolation,
    InvalidInterval,
    InvalidMeetingState,
    MeetingNotFound,
    OutsideWorkingHours,
    SchedulingConflict,
)
from ..domain.models import Meeting, MeetingRequest, MeetingStatus, WorkingHoursRule
from ..domain.timezone import ensure_aware
from ..domain.working_hours import is_interval_within_working_hours
from .availability import ConflictDetector, describe_range
from .delegation import DelegationAuthorizer
from .working_hours import WorkingHoursService

logger = logging.getLogger(__name__)

# A constraint violation is re-checked once before it is reported.
ADMISSION_ATTEMPTS = 2


class MeetingStore(Protocol):
    async def insert(self, meeting: Meeting, buffer_minutes: int) -> Meeting:
        """
        Atomically store ``meeting`` unless its padded interval overlaps an
        active meeting of the same owner.

        Raises:
            ConstraintViolation: On overlap
        """

    async def update(self, meeting: Meeting, buffer_minutes: Optional[int] = None) -> Meeting:
        """
        Replace a stored meeting. With ``buffer_minutes`` the padded-overlap
        constraint is enforced against every other active meeting.
        """

    async def get(self, meeting_id: str) -> Optional[Meeting]:
        """Return the meeting, if it exists."""

    async def list_active(
        self,
        vp_owner: str,
        range_start: DateTime,
        range_end: DateTime,
        exclude_id: Optional[str] = None,
    ) -> List[Meeting]:
        """Return PENDING/CONFIRMED meetings intersecting the range."""

    async def list_range(
        self,
        vp_owner: str,
        range_start: DateTime,
        range_end: DateTime,
        statuses: Optional[Collection[MeetingStatus]] = None,
    ) -> List[Meeting]:
        """Return meetings of any (or the given) status intersecting the range."""


class OwnerLocks:
    """
    One asyncio lock per owner; different owners never contend.

    A lock exists only while a booking holds or waits for it, so the map is
    bounded by the owners with admissions in flight.
    """

    def __init__(self) -> None:
        self._locks: Dict[str, asyncio.Lock] = {}
        self._claims: Dict[str, int] = {}

    @contextlib.asynccontextmanager
    async def hold(self, vp_owner: str) -> AsyncIterator[None]:
        lock = self._locks.setdefault(vp_owner, asyncio.Lock())
        self._claims[vp_owner] = self._claims.get(vp_owner, 0) + 1
        try:
            async with lock:
                yield
        finally:
            self._claims[vp_owner] -= 1
            if not self._claims[vp_owner]:
                del self._claims[vp_owner]
                del self._locks[vp_owner]

    def __len__(self) -> int:
        return len(self._locks)


class BookingService:
    def __init__(
        self,
        rules: WorkingHoursService,
        conflicts: ConflictDetector,
        authorizer: DelegationAuthorizer,
        meetings: MeetingStore,
        locks: Optional[OwnerLocks] = None,
    ) -> None:
        self._rules = rules
        self._conflicts = conflicts
        self._authorizer = authorizer
        self._meetings = meetings
        self._locks = locks if locks is not None else OwnerLocks()

    async def create_meeting(self, request: MeetingRequest, acting_user_id: str) -> Meeting:
        """
        Book a meeting for ``request.vp_owner`` on behalf of ``acting_user_id``.

        Raises:
            InvalidInterval: start is not before end
            Unauthorized: acting user is not the owner and lacks ``can_book``
            SchedulingConflict: padded overlap with busy time
            OutsideWorkingHours: meeting not inside a working-hours window
        """
        self._validate_interval(request.start, request.end)

        if acting_user_id != request.vp_owner:
            await self._authorizer.require(acting_user_id, request.vp_owner, "can_book")

        meeting = Meeting(
            vp_owner=request.vp_owner,
            start_time=request.start,
            end_time=request.end,
            attendee=request.attendee,
            booked_by=acting_user_id,
            title=request.title,
        )
        return await self._admit(meeting)

    async def public_booking(self, request: MeetingRequest) -> Meeting:
        """
        Book as an unauthenticated visitor.

        The visitor books for themselves as attendee, so no delegation is
        consulted; all other checks apply.
        """
        self._validate_interval(request.start, request.end)

        meeting = Meeting(
            vp_owner=request.vp_owner,
            start_time=request.start,
            end_time=request.end,
            attendee=request.attendee,
            booked_by=request.attendee,
            title=request.title,
        )
        return await self._admit(meeting)

    async def reschedule_meeting(
        self,
        meeting_id: str,
        new_start: DateTime,
        new_end: DateTime,
        acting_user_id: str,
    ) -> Meeting:
        """Move an active meeting; the meeting's own old slot does not block it."""
        new_start = ensure_aware(new_start)
        new_end = ensure_aware(new_end)
        self._validate_interval(new_start, new_end)

        meeting = await self._get_active(meeting_id)
        if acting_user_id != meeting.vp_owner:
            await self._authorizer.require(acting_user_id, meeting.vp_owner, "can_update")

        moved = replace(meeting, start_time=new_start, end_time=new_end)
        return await self._admit(moved, reschedule=True)

    async def cancel_meeting(self, meeting_id: str, acting_user_id: str) -> Meeting:
        """The owner, the attendee or a delegate with ``can_cancel`` may cancel."""
        meeting = await self._get_active(meeting_id)

        if acting_user_id not in (meeting.vp_owner, meeting.attendee):
            await self._authorizer.require(acting_user_id, meeting.vp_owner, "can_cancel")

        cancelled = await self._meetings.update(replace(meeting, status=MeetingStatus.CANCELLED))
        logger.info("Meeting %s cancelled by %s", meeting_id, acting_user_id)
        return cancelled

    async def confirm_meeting(self, meeting_id: str, acting_user_id: str) -> Meeting:
        meeting = await self._get_meeting(meeting_id)
        if meeting.status != MeetingStatus.PENDING:
            raise InvalidMeetingState(f"Meeting {meeting_id} is {meeting.status.value}, not PENDING")

        if acting_user_id != meeting.vp_owner:
            await self._authorizer.require(acting_user_id, meeting.vp_owner, "can_update")

        confirmed = await self._meetings.update(replace(meeting, status=MeetingStatus.CONFIRMED))
        logger.info("Meeting %s confirmed by %s", meeting_id, acting_user_id)
        return confirmed

    async def get_meeting(self, meeting_id: str, acting_user_id: str) -> Meeting:
        """The owner, the attendee or a delegate with ``can_view`` may look a meeting up."""
        meeting = await self._get_meeting(meeting_id)

        if acting_user_id not in (meeting.vp_owner, meeting.attendee):
            await self._authorizer.require(acting_user_id, meeting.vp_owner, "can_view")

        return meeting

    async def list_meetings(
        self,
        vp_owner: str,
        acting_user_id: str,
        range_start: DateTime,
        range_end: DateTime,
        status: Optional[MeetingStatus] = None,
    ) -> List[Meeting]:
        """
        Meetings of ``vp_owner`` intersecting the range, ordered by start.

        Raises:
            InvalidInterval: range_start is not before range_end
            Unauthorized: acting user is not the owner and lacks ``can_view``
        """
        range_start = ensure_aware(range_start)
        range_end = ensure_aware(range_end)
        self._validate_interval(range_start, range_end)

        if acting_user_id != vp_owner:
            await self._authorizer.require(acting_user_id, vp_owner, "can_view")

        return await self._meetings.list_range(
            vp_owner,
            range_start,
            range_end,
            statuses=None if status is None else (status,),
        )

    async def _admit(self, meeting: Meeting, reschedule: bool = False) -> Meeting:
        rule = await self._rules.get_rule(meeting.vp_owner)
        for attempt in range(1, ADMISSION_ATTEMPTS + 1):
            async with self._locks.hold(meeting.vp_owner):
                await self._check_slot(rule, meeting, exclude_meeting_id=meeting.id if reschedule else None)
                try:
                    if reschedule:
                        stored = await self._meetings.update(meeting, buffer_minutes=rule.buffer_minutes)
                    else:
                        stored = await self._meetings.insert(meeting, buffer_minutes=rule.buffer_minutes)
                except ConstraintViolation as exc:
                    if attempt == ADMISSION_ATTEMPTS:
                        raise SchedulingConflict(str(exc)) from exc
                    logger.info("Store rejected meeting for %s, re-checking: %s", meeting.vp_owner, exc)
                    continue

            logger.info(
                "Meeting %s %s for %s at %s by %s",
                stored.id,
                "rescheduled" if reschedule else "booked",
                stored.vp_owner,
                describe_range(stored.time_range, rule.timezone),
                stored.booked_by or "anonymous",
            )
            return stored

        raise SchedulingConflict(f"Could not admit meeting for {meeting.vp_owner}")

    async def _check_slot(
        self,
        rule: WorkingHoursRule,
        meeting: Meeting,
        exclude_meeting_id: Optional[str] = None,
    ) -> None:
        conflict, _ = await self._conflicts.find_conflict(
            meeting.vp_owner,
            meeting.start_time,
            meeting.end_time,
            rule.buffer_minutes,
            exclude_meeting_id=exclude_meeting_id,
        )
        if conflict is not None:
            logger.info(
                "Conflict for %s: requested %s blocked by %s busy time %s",
                meeting.vp_owner,
                describe_range(meeting.time_range, rule.timezone),
                conflict.source,
                describe_range(conflict.time_range, rule.timezone),
            )
            raise SchedulingConflict(
                f"Time slot conflicts with existing busy time ({conflict.source}, "
                f"buffer {rule.buffer_minutes} min)"
            )

        if not is_interval_within_working_hours(rule, meeting.start_time, meeting.end_time):
            raise OutsideWorkingHours(
                f"{describe_range(meeting.time_range, rule.timezone)} is outside working hours"
            )

    async def _get_meeting(self, meeting_id: str) -> Meeting:
        meeting = await self._meetings.get(meeting_id)
        if meeting is None:
            raise MeetingNotFound(f"Meeting not found: {meeting_id}")
        return meeting

    async def _get_active(self, meeting_id: str) -> Meeting:
        meeting = await self._get_meeting(meeting_id)
        if not meeting.is_active:
            raise InvalidMeetingState(f"Meeting {meeting_id} is {meeting.status.value}")
        return meeting

    @staticmethod
    def _validate_interval(start: DateTime, end: DateTime) -> None:
        if start >= end:
            raise InvalidInterval("End time must be after start time")
