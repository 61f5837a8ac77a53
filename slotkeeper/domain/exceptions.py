"""
Domain-specific exception hierarchy for the scheduling engine.
"""


class SchedulingError(Exception):
    """Base class for all application-level errors."""


class InvalidInterval(SchedulingError):
    """Raised when an interval does not start strictly before it ends."""


class InvalidTimeZone(SchedulingError):
    """Raised when a stored time-zone identifier cannot be resolved."""

    def __init__(self, zone_id: str):
        super().__init__(f"Unknown time zone identifier: {zone_id!r}")
        self.zone_id = zone_id


class Unauthorized(SchedulingError):
    """Raised when the acting user lacks the required delegation."""


class OutsideWorkingHours(SchedulingError):
    """Raised when a booking falls outside the owner's working hours."""


class SchedulingConflict(SchedulingError):
    """Raised when a booking overlaps busy time (including buffers)."""


class ConstraintViolation(SchedulingError):
    """Raised by a meeting store when an insert would overlap an active meeting."""


class MeetingNotFound(SchedulingError):
    """Raised when a meeting id is unknown to the store."""


class InvalidMeetingState(SchedulingError):
    """Raised when a meeting transition is not allowed from its current status."""


class CalendarAPIError(SchedulingError):
    """Raised when calendar data cannot be fetched or parsed."""


class ConfigError(SchedulingError):
    """Raised when the configuration file is missing or invalid."""


class ExternalSourceUnavailable(SchedulingError):
    """
    Outcome for a single external calendar that could not be read.

    Never raised out of the aggregator; instances are collected and returned
    next to the busy intervals so callers can tell "no busy time" apart from
    "source failed".
    """

    def __init__(self, provider: str, connection_id: str, reason: str):
        super().__init__(f"{provider} calendar {connection_id} unavailable: {reason}")
        self.provider = provider
        self.connection_id = connection_id
        self.reason = reason
