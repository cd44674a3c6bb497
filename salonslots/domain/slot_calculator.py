"""
Core business logic for calculating bookable appointment slots.

This is the heart of the application - pure domain logic without any
external dependencies (no API calls, no database, no I/O).
"""

import math
from datetime import date, datetime
from typing import List, Optional, Sequence

from .models import (
    DEFAULT_BOOKING_DURATION_MINUTES,
    AvailabilityContext,
    AvailabilityResult,
    Booking,
    Break,
    MinuteRange,
    Slot,
    format_minutes,
    weekday_name,
)

# Same-day queries never offer a slot starting sooner than this.
LEAD_TIME_MINUTES = 30

BREAK_REASON = "Break time"
BOOKED_REASON = "Already booked"


class SlotCalculator:
    """
    Calculates the slot grid for a single stylist on a single day.

    Algorithm:
    1. Short-circuit days off, emergency unavailability and leave
    2. Walk the grid from opening time (or from now + lead time, for today)
    3. Emit every slot that fits before closing time
    4. Mark slots overlapping a break, otherwise an existing booking
    """

    def __init__(self, booking_duration_minutes: int = DEFAULT_BOOKING_DURATION_MINUTES):
        self.booking_duration_minutes = booking_duration_minutes

    def compute(
        self,
        context: AvailabilityContext,
        target_date: date,
        duration_minutes: int,
        now: datetime,
    ) -> AvailabilityResult:
        """
        Compute the annotated slot grid.

        Args:
            context: Stylist profile, leave, breaks, bookings and slot interval
            target_date: Naive local calendar date to check
            duration_minutes: Length of the requested service
            now: Current local wall-clock time, used only when target_date is today

        Returns:
            AvailabilityResult; empty slots with a message when the stylist
            is not available at all that day
        """
        profile = context.profile

        if not profile.works_on(target_date):
            return AvailabilityResult(
                slots=[],
                message=f"{profile.name} does not work on {weekday_name(target_date)}s",
            )

        if profile.is_emergency_unavailable:
            return AvailabilityResult(slots=[], message=f"{profile.name} is currently unavailable")

        if context.is_on_leave(target_date):
            return AvailabilityResult(slots=[], message=f"{profile.name} is on leave on this date")

        hours = profile.hours_for(target_date)
        slots = self.generate_slots(
            start_minutes=hours.start_minutes,
            end_minutes=hours.end_minutes,
            breaks=context.breaks,
            bookings=context.active_bookings(),
            slot_interval_minutes=context.slot_interval_minutes,
            duration_minutes=duration_minutes,
            target_date=target_date,
            now=now,
        )
        return AvailabilityResult(slots=slots)

    def generate_slots(
        self,
        *,
        start_minutes: int,
        end_minutes: int,
        breaks: Sequence[Break],
        bookings: Sequence[Booking],
        slot_interval_minutes: int,
        duration_minutes: int,
        target_date: date,
        now: datetime,
    ) -> List[Slot]:
        """Walk the grid between opening and closing and annotate each slot."""
        booking_ranges = [
            booking.occupied_range(self.booking_duration_minutes) for booking in bookings
        ]

        current = first_slot_start(start_minutes, slot_interval_minutes, target_date, now)
        slots: List[Slot] = []

        while current + duration_minutes <= end_minutes:
            candidate = MinuteRange.from_start(current, duration_minutes)
            reason = self._conflict_reason(candidate, breaks, booking_ranges)

            slots.append(
                Slot(
                    time=format_minutes(current),
                    available=reason is None,
                    reason=reason,
                )
            )
            current += slot_interval_minutes

        return slots

    @staticmethod
    def _conflict_reason(
        candidate: MinuteRange,
        breaks: Sequence[Break],
        booking_ranges: Sequence[MinuteRange],
    ) -> Optional[str]:
        # Breaks win: a slot blocked by a break is never reported as booked.
        if any(brk.blocks(candidate) for brk in breaks):
            return BREAK_REASON
        if any(candidate.overlaps(booked) for booked in booking_ranges):
            return BOOKED_REASON
        return None


def first_slot_start(
    start_minutes: int,
    slot_interval_minutes: int,
    target_date: date,
    now: datetime,
) -> int:
    """
    First candidate start in minutes since midnight.

    For today the grid is rounded up past ``now`` plus the lead time, so
    14:10 with a 30 minute interval starts at 15:00.
    """
    if slot_interval_minutes <= 0:
        raise ValueError(f"Slot interval must be positive, got {slot_interval_minutes}")

    if target_date != now.date():
        return start_minutes

    earliest = now.hour * 60 + now.minute + LEAD_TIME_MINUTES
    rounded = math.ceil(earliest / slot_interval_minutes) * slot_interval_minutes
    return max(start_minutes, rounded)


def compute_available_slots(
    context: AvailabilityContext,
    target_date: date,
    duration_minutes: int,
    now: datetime,
) -> AvailabilityResult:
    """Convenience wrapper around ``SlotCalculator.compute`` with default settings."""
    return SlotCalculator().compute(context, target_date, duration_minutes, now)
