"""
Domain models for working hours, busy time and meetings.
"""

from __future__ import annotations

import uuid
from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Dict, FrozenSet, List, Mapping, Optional, Sequence, Tuple

import pendulum
from pendulum import DateTime

from .exceptions import ExternalSourceUnavailable, InvalidInterval
from .timezone import Weekday, ensure_aware, parse_civil_time, resolve_zone

INTERNAL_SOURCE = "internal"


@dataclass(frozen=True)
class TimeRange:
    """
    Represents an immutable time range with start and end datetime.

    Invariant: start must be before end.
    """
    start: DateTime
    end: DateTime

    def __post_init__(self):
        if self.start >= self.end:
            raise InvalidInterval(f"Start time {self.start} must be before end time {self.end}")

    def duration_minutes(self) -> int:
        """Return the duration in minutes."""
        return int((self.end - self.start).total_seconds() / 60)

    def overlaps(self, other: "TimeRange") -> bool:
        """Strict open-interval overlap: touching ranges do not overlap."""
        return self.start < other.end and other.start < self.end

    def padded(self, buffer_minutes: int) -> "TimeRange":
        """Extend the range outward by ``buffer_minutes`` on both ends."""
        return TimeRange(
            start=self.start.subtract(minutes=buffer_minutes),
            end=self.end.add(minutes=buffer_minutes),
        )

    def __str__(self) -> str:
        return f"{self.start.format('DD.MM.YYYY HH:mm')} - {self.end.format('HH:mm')}"


@dataclass(frozen=True)
class TimeWindow:
    """An open window of civil time, e.g. 09:00-17:00."""
    start: str
    end: str

    def __post_init__(self):
        if parse_civil_time(self.start) >= parse_civil_time(self.end):
            raise ValueError(f"Window start {self.start} must be before end {self.end}")

    def contains(self, civil_time: str) -> bool:
        """Inclusive on both ends."""
        return self.start <= civil_time <= self.end

    def overlaps(self, other: "TimeWindow") -> bool:
        return self.start < other.end and other.start < self.end


WeeklyTemplate = Dict[Weekday, Tuple[TimeWindow, ...]]

DEFAULT_BUFFER_MINUTES = 15
DEFAULT_WINDOW = TimeWindow(start="09:00", end="17:00")
WORKDAYS = (Weekday.MONDAY, Weekday.TUESDAY, Weekday.WEDNESDAY, Weekday.THURSDAY, Weekday.FRIDAY)


def _normalize_template(template: Mapping) -> WeeklyTemplate:
    normalized: WeeklyTemplate = {}

    for key, windows in template.items():
        weekday = key if isinstance(key, Weekday) else Weekday(str(key).lower())
        parsed = [
            window if isinstance(window, TimeWindow) else TimeWindow(start=window["start"], end=window["end"])
            for window in windows or []
        ]
        parsed.sort(key=lambda w: w.start)
        for previous, current in zip(parsed, parsed[1:]):
            if previous.overlaps(current):
                raise ValueError(
                    f"Windows {previous.start}-{previous.end} and {current.start}-{current.end} "
                    f"overlap on {weekday.value}"
                )
        normalized[weekday] = tuple(parsed)

    for weekday in Weekday:
        normalized.setdefault(weekday, ())

    return normalized


@dataclass(frozen=True)
class WorkingHoursRule:
    """
    Per-owner weekly template of open windows plus a buffer.

    Windows are civil times interpreted in ``timezone``, the owner's stored
    zone identifier.
    """
    owner_id: str
    timezone: str
    buffer_minutes: int = DEFAULT_BUFFER_MINUTES
    weekly_template: WeeklyTemplate = field(default_factory=dict)

    def __post_init__(self):
        if self.buffer_minutes < 0:
            raise ValueError(f"buffer_minutes must be non-negative, got {self.buffer_minutes}")
        resolve_zone(self.timezone)
        object.__setattr__(self, "weekly_template", _normalize_template(self.weekly_template))

    def windows_on(self, weekday: Weekday) -> Tuple[TimeWindow, ...]:
        return self.weekly_template.get(weekday, ())

    def with_changes(
        self,
        buffer_minutes: Optional[int] = None,
        weekly_template: Optional[Mapping] = None,
    ) -> "WorkingHoursRule":
        """Return a replacement rule; unspecified parts are carried over."""
        return replace(
            self,
            buffer_minutes=self.buffer_minutes if buffer_minutes is None else buffer_minutes,
            weekly_template=self.weekly_template if weekly_template is None else weekly_template,
        )

    @classmethod
    def default(cls, owner_id: str, timezone: str) -> "WorkingHoursRule":
        """Monday-Friday 09:00-17:00 with a 15 minute buffer."""
        template = {day: (DEFAULT_WINDOW,) for day in WORKDAYS}
        return cls(owner_id=owner_id, timezone=timezone, weekly_template=template)

    @classmethod
    def from_mapping(cls, owner_id: str, timezone: str, data: Mapping) -> "WorkingHoursRule":
        """
        Build a rule from untrusted JSON-like data.

        Expected shape::

            {"buffer_minutes": 15,
             "working_hours": {"monday": [{"start": "09:00", "end": "17:00"}], ...}}
        """
        return cls(
            owner_id=owner_id,
            timezone=timezone,
            buffer_minutes=int(data.get("buffer_minutes", DEFAULT_BUFFER_MINUTES)),
            weekly_template=data.get("working_hours") or {},
        )

    def to_mapping(self) -> dict:
        return {
            "buffer_minutes": self.buffer_minutes,
            "working_hours": {
                day.value: [{"start": w.start, "end": w.end} for w in self.windows_on(day)]
                for day in Weekday
            },
        }


@dataclass(frozen=True)
class BusyInterval:
    """A range that blocks new bookings, from a meeting or an external calendar."""
    start: DateTime
    end: DateTime
    source: str = INTERNAL_SOURCE

    @property
    def time_range(self) -> TimeRange:
        return TimeRange(start=self.start, end=self.end)


@dataclass(frozen=True)
class CandidateSlot:
    start: DateTime
    end: DateTime
    available: bool

    def format_display(self, timezone: str) -> str:
        """Format: Monday, 25.11.2024 | 09:00 - 09:30"""
        start = self.start.in_timezone(timezone)
        end = self.end.in_timezone(timezone)
        return f"{start.format('dddd, DD.MM.YYYY')} | {start.format('HH:mm')} - {end.format('HH:mm')}"


class MeetingStatus(str, Enum):
    PENDING = "PENDING"
    CONFIRMED = "CONFIRMED"
    CANCELLED = "CANCELLED"
    COMPLETED = "COMPLETED"


ACTIVE_STATUSES: FrozenSet[MeetingStatus] = frozenset({MeetingStatus.PENDING, MeetingStatus.CONFIRMED})


@dataclass(frozen=True)
class MeetingRequest:
    """What a caller asks to book. Instants must carry an offset or zone."""
    vp_owner: str
    start: DateTime
    end: DateTime
    attendee: Optional[str] = None
    title: Optional[str] = None

    def __post_init__(self):
        object.__setattr__(self, "start", ensure_aware(self.start))
        object.__setattr__(self, "end", ensure_aware(self.end))


@dataclass(frozen=True)
class Meeting:
    vp_owner: str
    start_time: DateTime
    end_time: DateTime
    status: MeetingStatus = MeetingStatus.PENDING
    attendee: Optional[str] = None
    booked_by: Optional[str] = None
    title: Optional[str] = None
    id: str = field(default_factory=lambda: uuid.uuid4().hex)
    created_at: DateTime = field(default_factory=lambda: pendulum.now("UTC"))

    @property
    def is_active(self) -> bool:
        return self.status in ACTIVE_STATUSES

    @property
    def time_range(self) -> TimeRange:
        return TimeRange(start=self.start_time, end=self.end_time)

    def as_busy_interval(self) -> BusyInterval:
        return BusyInterval(start=self.start_time, end=self.end_time, source=INTERNAL_SOURCE)


@dataclass(frozen=True)
class DelegationPermissions:
    can_book: bool = True
    can_cancel: bool = True
    can_view: bool = True
    can_update: bool = False

    @classmethod
    def names(cls) -> Tuple[str, ...]:
        return ("can_book", "can_cancel", "can_view", "can_update")


@dataclass(frozen=True)
class DelegationGrant:
    vp_owner: str
    delegate: str
    permissions: DelegationPermissions = field(default_factory=DelegationPermissions)
    active: bool = True


@dataclass(frozen=True)
class CalendarConnection:
    """A linked external calendar; ``credential`` is an opaque access token."""
    id: str
    user_id: str
    provider: str
    credential: str
    calendar_id: str = "primary"
    active: bool = True


class Role(str, Enum):
    VP = "VP"
    EA = "EA"
    ADMIN = "ADMIN"
    ATTENDEE = "ATTENDEE"


@dataclass(frozen=True)
class UserProfile:
    id: str
    timezone: str = "UTC"
    role: Role = Role.VP
    name: str = ""
    email: str = ""


@dataclass
class BusyTimeReport:
    """Merged busy intervals plus the external sources that could not be read."""
    intervals: List[BusyInterval] = field(default_factory=list)
    unavailable_sources: List[ExternalSourceUnavailable] = field(default_factory=list)

    @property
    def complete(self) -> bool:
        return not self.unavailable_sources


@dataclass
class SlotReport:
    slots: List[CandidateSlot] = field(default_factory=list)
    unavailable_sources: List[ExternalSourceUnavailable] = field(default_factory=list)

    @property
    def available_slots(self) -> List[CandidateSlot]:
        return [slot for slot in self.slots if slot.available]


def busy_from_ranges(ranges: Sequence[TimeRange], source: str) -> List[BusyInterval]:
    return [BusyInterval(start=r.start, end=r.end, source=source) for r in ranges]