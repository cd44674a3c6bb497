"""
"No preference" availability across several stylists.

Two views over the same inputs:
- a merged grid where a slot is open if at least one stylist is free
- a per-stylist listing, ranked by how many free slots each stylist has
"""

from dataclasses import dataclass, field
from datetime import date, datetime
from typing import Dict, List, Sequence

from .models import (
    DEFAULT_SLOT_INTERVAL_MINUTES,
    AvailabilityContext,
    AvailabilityProfile,
    MinuteRange,
    Slot,
    format_minutes,
)
from .slot_calculator import SlotCalculator, first_slot_start


@dataclass(frozen=True)
class ConsolidatedSlot:
    time: str
    available_stylist_count: int

    @property
    def available(self) -> bool:
        return self.available_stylist_count > 0

    def to_dict(self) -> Dict[str, object]:
        return {
            "time": self.time,
            "available": self.available,
            "availableStylistCount": self.available_stylist_count,
        }


@dataclass
class ConsolidatedAvailability:
    slots: List[ConsolidatedSlot]
    qualified_stylist_count: int
    message: str | None = None

    @property
    def total_slots(self) -> int:
        return len(self.slots)

    @property
    def available_slots(self) -> int:
        return sum(1 for slot in self.slots if slot.available)


@dataclass
class StylistAvailability:
    """Slot grid of one stylist in the ranked listing."""
    profile: AvailabilityProfile
    slots: List[Slot] = field(default_factory=list)

    @property
    def available_count(self) -> int:
        return sum(1 for slot in self.slots if slot.available)


def bookable_contexts(
    contexts: Sequence[AvailabilityContext],
    target_date: date,
) -> List[AvailabilityContext]:
    """Drop stylists who are off, on leave, or flagged unavailable that day."""
    return [
        context
        for context in contexts
        if context.profile.works_on(target_date)
        and not context.profile.is_emergency_unavailable
        and not context.is_on_leave(target_date)
    ]


def consolidate(
    contexts: Sequence[AvailabilityContext],
    target_date: date,
    duration_minutes: int,
    now: datetime,
    slot_interval_minutes: int = DEFAULT_SLOT_INTERVAL_MINUTES,
    booking_duration_minutes: int | None = None,
) -> ConsolidatedAvailability:
    """
    Build one merged grid spanning the earliest opening to the latest closing.

    A stylist counts towards a slot only if the whole slot fits inside their
    own hours and clashes with none of their breaks or bookings.
    """
    calculator = (
        SlotCalculator(booking_duration_minutes)
        if booking_duration_minutes is not None
        else SlotCalculator()
    )
    candidates = bookable_contexts(contexts, target_date)

    if not candidates:
        return ConsolidatedAvailability(
            slots=[],
            qualified_stylist_count=0,
            message="No stylists available on this day",
        )

    windows: List[MinuteRange] = []
    for context in candidates:
        hours = context.profile.hours_for(target_date)
        # A window closing before it opens simply contributes no slots.
        windows.append(
            MinuteRange(start=hours.start_minutes, end=max(hours.start_minutes, hours.end_minutes))
        )
    global_start = min(window.start for window in windows)
    global_end = max(window.end for window in windows)

    # Per-stylist booked ranges, resolved once.
    booked: List[List[MinuteRange]] = [
        [booking.occupied_range(calculator.booking_duration_minutes) for booking in context.active_bookings()]
        for context in candidates
    ]

    current = first_slot_start(global_start, slot_interval_minutes, target_date, now)
    slots: List[ConsolidatedSlot] = []

    while current + duration_minutes <= global_end:
        candidate = MinuteRange.from_start(current, duration_minutes)
        free = 0

        for context, window, ranges in zip(candidates, windows, booked):
            if candidate.start < window.start or candidate.end > window.end:
                continue
            if any(brk.blocks(candidate) for brk in context.breaks):
                continue
            if any(candidate.overlaps(other) for other in ranges):
                continue
            free += 1

        slots.append(ConsolidatedSlot(time=format_minutes(current), available_stylist_count=free))
        current += slot_interval_minutes

    return ConsolidatedAvailability(slots=slots, qualified_stylist_count=len(candidates))


def rank_available_stylists(
    contexts: Sequence[AvailabilityContext],
    target_date: date,
    duration_minutes: int,
    now: datetime,
    calculator: SlotCalculator | None = None,
) -> List[StylistAvailability]:
    """
    Per-stylist grids for stylists with at least one free slot, most free first.

    Stylists with equal counts keep their input order.
    """
    calculator = calculator or SlotCalculator()
    ranked: List[StylistAvailability] = []

    for context in bookable_contexts(contexts, target_date):
        result = calculator.compute(context, target_date, duration_minutes, now)
        entry = StylistAvailability(profile=context.profile, slots=result.slots)
        if entry.available_count > 0:
            ranked.append(entry)

    ranked.sort(key=lambda entry: entry.available_count, reverse=True)
    return ranked
