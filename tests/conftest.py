"""
Shared stubs and builders for the test suite.
"""

import asyncio
from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Optional

import pendulum
import pytest

from slotkeeper.adapters.memory_store import (
    InMemoryConnectionStore,
    InMemoryDelegationStore,
    InMemoryMeetingStore,
    InMemoryRuleStore,
    InMemoryUserDirectory,
)
from slotkeeper.domain.models import (
    CalendarConnection,
    DelegationGrant,
    TimeRange,
    UserProfile,
    WorkingHoursRule,
)
from slotkeeper.services.availability import AvailabilityService
from slotkeeper.services.booking import BookingService
from slotkeeper.services.busy_times import BusyTimeAggregator
from slotkeeper.services.delegation import DelegationAuthorizer
from slotkeeper.services.working_hours import WorkingHoursService

ALL_WEEK = {
    day: [{"start": "09:00", "end": "17:00"}]
    for day in ("monday", "tuesday", "wednesday", "thursday", "friday", "saturday", "sunday")
}


class StubCalendarClient:
    """Minimal stub matching CalendarProviderClient."""

    def __init__(self, busy: Iterable[TimeRange] = (), error: Optional[Exception] = None, delay: float = 0.0):
        self.busy = list(busy)
        self.error = error
        self.delay = delay
        self.calls: List[Dict[str, object]] = []

    async def fetch_busy_times(self, connection, start_time, end_time):
        self.calls.append({"connection": connection.id, "start": start_time, "end": end_time})
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.error is not None:
            raise self.error
        return [r for r in self.busy if r.start < end_time and start_time < r.end]


@dataclass
class Harness:
    working_hours: WorkingHoursService
    availability: AvailabilityService
    booking: BookingService
    meetings: InMemoryMeetingStore
    delegations: InMemoryDelegationStore
    providers: Dict[str, StubCalendarClient] = field(default_factory=dict)


def build_harness(
    users: Iterable[UserProfile] = (UserProfile(id="vp", timezone="UTC"),),
    rules: Iterable[WorkingHoursRule] = (),
    grants: Iterable[DelegationGrant] = (),
    providers: Optional[Dict[str, StubCalendarClient]] = None,
    meetings: Optional[InMemoryMeetingStore] = None,
    timeout_seconds: float = 1.0,
) -> Harness:
    providers = providers if providers is not None else {}
    meetings = meetings if meetings is not None else InMemoryMeetingStore()
    connections = [
        CalendarConnection(id=f"vp-{tag}", user_id="vp", provider=tag, credential="token")
        for tag in providers
    ]
    working_hours = WorkingHoursService(
        rules=InMemoryRuleStore(rules),
        users=InMemoryUserDirectory(users),
    )
    aggregator = BusyTimeAggregator(
        meetings=meetings,
        connections=InMemoryConnectionStore(connections),
        providers=providers,
        timeout_seconds=timeout_seconds,
    )
    availability = AvailabilityService(rules=working_hours, aggregator=aggregator)
    delegations = InMemoryDelegationStore(grants)
    booking = BookingService(
        rules=working_hours,
        conflicts=availability.conflicts,
        authorizer=DelegationAuthorizer(delegations),
        meetings=meetings,
    )
    return Harness(
        working_hours=working_hours,
        availability=availability,
        booking=booking,
        meetings=meetings,
        delegations=delegations,
        providers=providers,
    )


@pytest.fixture
def harness_factory():
    return build_harness


@pytest.fixture
def stub_calendar():
    return StubCalendarClient


@pytest.fixture
def utc():
    """Parse a wall-clock string as a UTC instant."""
    return lambda text: pendulum.parse(text, tz="UTC")


@pytest.fixture
def all_week_rule():
    """09:00-17:00 every day of the week, UTC, no buffer."""
    return WorkingHoursRule.from_mapping("vp", "UTC", {"buffer_minutes": 0, "working_hours": ALL_WEEK})
