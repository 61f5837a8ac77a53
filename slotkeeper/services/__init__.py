"""
Service layer helpers that orchestrate adapters and domain logic.
"""

from .availability import AvailabilityService, ConflictDetector
from .booking import BookingService, MeetingStore, OwnerLocks
from .busy_times import BusyTimeAggregator, CalendarProviderClient
from .delegation import DelegationAuthorizer
from .working_hours import WorkingHoursService

__all__ = [
    "AvailabilityService",
    "BookingService",
    "BusyTimeAggregator",
    "CalendarProviderClient",
    "ConflictDetector",
    "DelegationAuthorizer",
    "MeetingStore",
    "OwnerLocks",
    "WorkingHoursService",
]
