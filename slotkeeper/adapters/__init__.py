"""
Adapters layer - External calendars and storage.
"""

from .google_client import GoogleCalendarClient
from .graph_client import GraphClient
from .memory_store import (
    InMemoryConnectionStore,
    InMemoryDelegationStore,
    InMemoryMeetingStore,
    InMemoryRuleStore,
    InMemoryUserDirectory,
)
from .mock_calendar_client import MockCalendarClient
from .sqlite_store import SqliteMeetingStore

__all__ = [
    "GoogleCalendarClient",
    "GraphClient",
    "InMemoryConnectionStore",
    "InMemoryDelegationStore",
    "InMemoryMeetingStore",
    "InMemoryRuleStore",
    "InMemoryUserDirectory",
    "MockCalendarClient",
    "SqliteMeetingStore",
]
