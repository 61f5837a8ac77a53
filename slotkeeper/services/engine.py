"""
Wiring of stores, providers and services from an AppConfig.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, Optional

from ..adapters.google_client import GoogleCalendarClient
from ..adapters.graph_client import GraphClient
from ..adapters.memory_store import (
    InMemoryConnectionStore,
    InMemoryDelegationStore,
    InMemoryMeetingStore,
    InMemoryRuleStore,
    InMemoryUserDirectory,
)
from ..adapters.mock_calendar_client import MockCalendarClient
from ..adapters.sqlite_store import SqliteMeetingStore
from ..config import AppConfig
from .availability import AvailabilityService
from .booking import BookingService, MeetingStore
from .busy_times import BusyTimeAggregator, CalendarProviderClient
from .delegation import DelegationAuthorizer
from .working_hours import WorkingHoursService


@dataclass
class SchedulingEngine:
    working_hours: WorkingHoursService
    availability: AvailabilityService
    booking: BookingService
    meetings: MeetingStore


def build_providers(config: AppConfig, mock: bool = False) -> Dict[str, CalendarProviderClient]:
    """
    Provider clients keyed by the ``provider`` tag of a connection.

    In mock mode every provider tag is served from the mock calendar file.
    """
    mock_client = MockCalendarClient(data_file=config.mock_calendar_file)
    if mock:
        tags = {connection.provider for connection in config.connections} | {MockCalendarClient.PROVIDER}
        return {tag: mock_client for tag in tags}

    return {
        GraphClient.PROVIDER: GraphClient(),
        GoogleCalendarClient.PROVIDER: GoogleCalendarClient(),
        MockCalendarClient.PROVIDER: mock_client,
    }


def build_engine(
    config: AppConfig,
    mock: bool = False,
    meeting_store: Optional[MeetingStore] = None,
    providers: Optional[Dict[str, CalendarProviderClient]] = None,
) -> SchedulingEngine:
    if meeting_store is None:
        if config.database_path is not None:
            meeting_store = SqliteMeetingStore(config.database_path)
        else:
            meeting_store = InMemoryMeetingStore()

    users = InMemoryUserDirectory(user.to_profile() for user in config.users)
    working_hours = WorkingHoursService(
        rules=InMemoryRuleStore(config.initial_rules()),
        users=users,
        default_timezone=config.timezone,
    )
    aggregator = BusyTimeAggregator(
        meetings=meeting_store,
        connections=InMemoryConnectionStore(c.to_connection() for c in config.connections),
        providers=providers if providers is not None else build_providers(config, mock=mock),
        timeout_seconds=config.defaults.provider_timeout_seconds,
    )
    availability = AvailabilityService(rules=working_hours, aggregator=aggregator)
    booking = BookingService(
        rules=working_hours,
        conflicts=availability.conflicts,
        authorizer=DelegationAuthorizer(InMemoryDelegationStore(d.to_grant() for d in config.delegations)),
        meetings=meeting_store,
    )

    return SchedulingEngine(
        working_hours=working_hours,
        availability=availability,
        booking=booking,
        meetings=meeting_store,
    )
