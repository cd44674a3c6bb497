"""
Conflict checks for a proposed appointment.

Unlike the slot grid, these checks use each existing appointment's real
duration, so they are the final guard against double-booking.
"""

from dataclasses import dataclass
from typing import Dict, Iterable, List, Optional, Sequence

from .models import Booking, MinuteRange, format_minutes, parse_clock_time, to_minutes

STYLIST_BUSY = "stylist_busy"
CUSTOMER_STYLIST_CONFLICT = "customer_stylist_conflict"
NO_CONFLICT = "no_conflict"

# Only these statuses count when validating a new appointment.
CONFLICTING_STATUSES = frozenset({"Pending", "InProgress"})


@dataclass(frozen=True)
class ProposedBooking:
    stylist_id: str
    customer_id: str
    start: str
    duration_minutes: int
    exclude_booking_id: Optional[str] = None

    def minute_range(self) -> MinuteRange:
        return MinuteRange.from_start(to_minutes(parse_clock_time(self.start)), self.duration_minutes)

    def as_booking(self) -> Booking:
        """The appointment this proposal would create, as a pending booking."""
        return Booking(
            start=parse_clock_time(self.start),
            status="Pending",
            duration_minutes=self.duration_minutes,
            customer_id=self.customer_id,
        )


@dataclass(frozen=True)
class ValidationResult:
    is_valid: bool
    conflict_type: str = NO_CONFLICT
    reason: Optional[str] = None
    conflicting_booking: Optional[Booking] = None

    def to_dict(self) -> Dict[str, object]:
        data: Dict[str, object] = {"isValid": self.is_valid, "conflictType": self.conflict_type}
        if self.reason is not None:
            data["reason"] = self.reason
        if self.conflicting_booking is not None and self.conflicting_booking.id is not None:
            data["conflictingAppointmentId"] = self.conflicting_booking.id
        return data


def slot_end(start: str, duration_minutes: int) -> str:
    """End time of a slot, e.g. ``slot_end("09:30", 45) == "10:15"``."""
    return format_minutes(to_minutes(parse_clock_time(start)) + duration_minutes)


def find_conflict(
    proposed: MinuteRange,
    existing: Iterable[Booking],
    exclude_booking_id: Optional[str] = None,
) -> Optional[Booking]:
    """Return the first existing booking overlapping ``proposed``, if any."""
    for booking in existing:
        if booking.status not in CONFLICTING_STATUSES:
            continue
        if exclude_booking_id is not None and booking.id == exclude_booking_id:
            continue
        # Without a recorded duration there is no end time to compare against.
        if not booking.duration_minutes:
            continue
        if proposed.overlaps(booking.occupied_range(booking.duration_minutes)):
            return booking
    return None


def validate_booking(
    proposed: ProposedBooking,
    stylist_bookings: Iterable[Booking],
    customer_bookings: Iterable[Booking] = (),
) -> ValidationResult:
    """
    Check a proposed appointment against the stylist's appointments that day.

    ``stylist_bookings`` must belong to ``proposed.stylist_id`` and the
    proposed date. ``customer_bookings`` are further appointments with the
    same stylist that are not stored yet, such as earlier services of the
    same request; only those held by ``proposed.customer_id`` count. Pass
    ``exclude_booking_id`` when rescheduling so the appointment does not
    clash with itself.
    """
    candidate = proposed.minute_range()

    conflict = find_conflict(candidate, stylist_bookings, proposed.exclude_booking_id)
    if conflict is not None:
        return ValidationResult(
            is_valid=False,
            conflict_type=STYLIST_BUSY,
            reason="Stylist is already booked at this time",
            conflicting_booking=conflict,
        )

    own = [booking for booking in customer_bookings if booking.customer_id == proposed.customer_id]
    conflict = find_conflict(candidate, own, proposed.exclude_booking_id)
    if conflict is not None:
        return ValidationResult(
            is_valid=False,
            conflict_type=CUSTOMER_STYLIST_CONFLICT,
            reason="You already have an appointment with this stylist at an overlapping time",
            conflicting_booking=conflict,
        )

    return ValidationResult(is_valid=True)


def validate_bookings(
    proposals: Sequence[ProposedBooking],
    bookings_by_stylist: Dict[str, List[Booking]],
) -> List[ValidationResult]:
    """
    Validate a multi-service request, stopping at the first failure.

    Each accepted proposal is held against later ones, so a customer cannot
    book the same stylist twice at overlapping times in one request. The
    returned list ends with the failing result when there is one.
    """
    held: Dict[str, List[Booking]] = {}
    results: List[ValidationResult] = []
    for proposed in proposals:
        result = validate_booking(
            proposed,
            bookings_by_stylist.get(proposed.stylist_id, []),
            held.get(proposed.stylist_id, []),
        )
        results.append(result)
        if not result.is_valid:
            break
        held.setdefault(proposed.stylist_id, []).append(proposed.as_booking())
    return results


def are_concurrent(first: ProposedBooking, second: ProposedBooking) -> bool:
    """
    Whether two appointments run in parallel with different stylists.

    This is allowed (e.g. colour and nails at once); the same stylist
    twice is a conflict, not concurrency.
    """
    if first.stylist_id == second.stylist_id:
        return False
    return first.minute_range().overlaps(second.minute_range())
