"""
Domain layer - Pure business logic without external dependencies.
"""

from .models import (
    BusyInterval,
    CandidateSlot,
    DelegationGrant,
    DelegationPermissions,
    Meeting,
    MeetingRequest,
    MeetingStatus,
    TimeRange,
    TimeWindow,
    WorkingHoursRule,
)
from .slot_generator import SlotGenerator
from .timezone import Weekday

__all__ = [
    "BusyInterval",
    "CandidateSlot",
    "DelegationGrant",
    "DelegationPermissions",
    "Meeting",
    "MeetingRequest",
    "MeetingStatus",
    "SlotGenerator",
    "TimeRange",
    "TimeWindow",
    "Weekday",
    "WorkingHoursRule",
]
