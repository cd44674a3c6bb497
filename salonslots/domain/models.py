"""
Domain models for stylist schedules and slot calculations.
"""

import re
from dataclasses import dataclass, field
from datetime import date, time
from typing import Dict, FrozenSet, List, Optional, Tuple

import pendulum

from .exceptions import InvalidTimeError

WEEKDAY_NAMES = (
    "Monday",
    "Tuesday",
    "Wednesday",
    "Thursday",
    "Friday",
    "Saturday",
    "Sunday",
)

# Appointments in these states no longer occupy the stylist's chair.
INACTIVE_BOOKING_STATUSES = frozenset({"Cancelled", "NoShow", "Completed"})

# Existing bookings are assumed to last this long when checking conflicts.
DEFAULT_BOOKING_DURATION_MINUTES = 60

DEFAULT_SLOT_INTERVAL_MINUTES = 30

_CLOCK_PATTERN = re.compile(r"^(\d{1,2}):(\d{2})(?::(\d{2}))?$")


def parse_clock_time(value: "str | time") -> time:
    """
    Parse a wall-clock string such as ``"09:30"`` or ``"09:30:00"``.

    Postgres ``time`` columns come back with seconds, so both forms are
    accepted. Anything else raises ``InvalidTimeError`` instead of being
    silently misread.
    """
    if isinstance(value, time):
        return value

    match = _CLOCK_PATTERN.match(value.strip()) if isinstance(value, str) else None
    if not match:
        raise InvalidTimeError(f"Invalid time {value!r}, expected HH:MM")

    hour, minute = int(match.group(1)), int(match.group(2))
    second = int(match.group(3) or 0)
    if hour > 23 or minute > 59 or second > 59:
        raise InvalidTimeError(f"Invalid time {value!r}, expected HH:MM")

    return time(hour=hour, minute=minute, second=second)


def parse_calendar_date(value: "str | date") -> date:
    """Parse a naive ``YYYY-MM-DD`` calendar date."""
    if isinstance(value, date):
        return value

    try:
        return pendulum.from_format(str(value).strip(), "YYYY-MM-DD").date()
    except ValueError as exc:
        raise InvalidTimeError(f"Invalid date {value!r}, expected YYYY-MM-DD") from exc


def to_minutes(value: time) -> int:
    """Return minutes since midnight, ignoring seconds."""
    return value.hour * 60 + value.minute


def format_minutes(minutes: int) -> str:
    """Format minutes since midnight as zero-padded 24-hour ``HH:MM``."""
    return f"{minutes // 60:02d}:{minutes % 60:02d}"


def weekday_name(day: date) -> str:
    """English weekday name for a calendar date."""
    return WEEKDAY_NAMES[day.weekday()]


@dataclass(frozen=True)
class MinuteRange:
    """
    Half-open interval ``[start, end)`` in minutes since midnight.

    Invariant: start must not be after end.
    """
    start: int
    end: int

    def __post_init__(self):
        if self.start > self.end:
            raise ValueError(f"Start minute {self.start} must not be after end minute {self.end}")

    @classmethod
    def from_start(cls, start: int, duration_minutes: int) -> "MinuteRange":
        return cls(start=start, end=start + duration_minutes)

    def duration_minutes(self) -> int:
        """Return the duration in minutes."""
        return self.end - self.start

    def overlaps(self, other: "MinuteRange") -> bool:
        """
        Check if this range overlaps with another.

        Ranges that only touch (one ends exactly when the other starts)
        do not overlap.
        """
        return self.start < other.end and self.end > other.start

    def __str__(self) -> str:
        return f"{format_minutes(self.start)} - {format_minutes(self.end)}"


@dataclass(frozen=True)
class WorkingHours:
    """A stylist's daily open/close wall-clock window."""
    start: time
    end: time

    @classmethod
    def parse(cls, start: str, end: str) -> "WorkingHours":
        return cls(start=parse_clock_time(start), end=parse_clock_time(end))

    @property
    def start_minutes(self) -> int:
        return to_minutes(self.start)

    @property
    def end_minutes(self) -> int:
        return to_minutes(self.end)

    def to_dict(self) -> Dict[str, str]:
        return {"start": self.start.strftime("%H:%M"), "end": self.end.strftime("%H:%M")}


DEFAULT_WORKING_HOURS = WorkingHours(start=time(9, 0), end=time(18, 0))


@dataclass(frozen=True)
class AvailabilityProfile:
    """
    A stylist's schedule profile.

    ``working_days`` of ``None`` (or empty) means the stylist is not
    restricted to particular weekdays.
    """
    id: str
    name: str
    working_hours: WorkingHours = DEFAULT_WORKING_HOURS
    working_days: Optional[FrozenSet[str]] = None
    is_emergency_unavailable: bool = False
    specializations: Tuple[str, ...] = ()
    hours_by_day: Dict[str, WorkingHours] = field(default_factory=dict, compare=False)

    def works_on(self, day: date) -> bool:
        """Check if the stylist works on the weekday of ``day``."""
        if not self.working_days:
            return True
        return weekday_name(day) in self.working_days

    def hours_for(self, day: date) -> WorkingHours:
        """Working hours for ``day``; per-weekday hours win over the flat window."""
        return self.hours_by_day.get(weekday_name(day), self.working_hours)


@dataclass(frozen=True)
class LeaveRange:
    """Inclusive date range during which a stylist is fully unavailable."""
    start_date: date
    end_date: date

    def covers(self, day: date) -> bool:
        return self.start_date <= day <= self.end_date


@dataclass(frozen=True)
class Break:
    """
    A recurring daily break, applied on every working day.

    Rows are stored as entered, so ``end`` may precede ``start``; such a
    break is still checked with the plain overlap test and never raises.
    """
    start: time
    end: time

    def blocks(self, candidate: MinuteRange) -> bool:
        """Check if the break overlaps ``candidate``."""
        return candidate.start < to_minutes(self.end) and candidate.end > to_minutes(self.start)


@dataclass(frozen=True)
class Booking:
    """
    An existing appointment on the target date.

    ``duration_minutes`` is the booked service's real duration when known;
    availability checks ignore it and assume the default span.
    """
    start: time
    status: str = "Pending"
    duration_minutes: Optional[int] = None
    id: Optional[str] = None
    customer_id: Optional[str] = None

    @property
    def is_active(self) -> bool:
        return self.status not in INACTIVE_BOOKING_STATUSES

    def occupied_range(self, duration_minutes: int = DEFAULT_BOOKING_DURATION_MINUTES) -> MinuteRange:
        return MinuteRange.from_start(to_minutes(self.start), duration_minutes)


@dataclass(frozen=True)
class SalonService:
    """A bookable salon service."""
    id: str
    name: str
    duration_minutes: int
    price: Optional[float] = None
    category: Optional[str] = None

    def to_dict(self) -> Dict[str, object]:
        return {
            "id": self.id,
            "name": self.name,
            "duration": self.duration_minutes,
            "price": self.price,
            "category": self.category,
        }


@dataclass(frozen=True)
class Slot:
    """A grid-aligned candidate start time with its availability verdict."""
    time: str
    available: bool
    reason: Optional[str] = None

    def to_dict(self) -> Dict[str, object]:
        data: Dict[str, object] = {"time": self.time, "available": self.available}
        if self.reason is not None:
            data["reason"] = self.reason
        return data


@dataclass(frozen=True)
class AvailabilityContext:
    """Everything the engine needs about one stylist, fetched up front."""
    profile: AvailabilityProfile
    leave_ranges: Tuple[LeaveRange, ...] = ()
    breaks: Tuple[Break, ...] = ()
    bookings: Tuple[Booking, ...] = ()
    slot_interval_minutes: int = DEFAULT_SLOT_INTERVAL_MINUTES

    def is_on_leave(self, day: date) -> bool:
        return any(leave.covers(day) for leave in self.leave_ranges)

    def active_bookings(self) -> List[Booking]:
        return [booking for booking in self.bookings if booking.is_active]


@dataclass
class AvailabilityResult:
    """
    Slots for one stylist and day.

    ``message`` explains an empty result (day off, leave, ...); it is not an
    error.
    """
    slots: List[Slot]
    message: Optional[str] = None

    @property
    def available_count(self) -> int:
        return sum(1 for slot in self.slots if slot.available)

    @property
    def total(self) -> int:
        return len(self.slots)
