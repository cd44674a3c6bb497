"""
Domain layer - Pure business logic without external dependencies.
"""

from .models import (
    AvailabilityContext,
    AvailabilityProfile,
    AvailabilityResult,
    Booking,
    Break,
    LeaveRange,
    MinuteRange,
    Slot,
    WorkingHours,
)
from .slot_calculator import SlotCalculator, compute_available_slots

__all__ = [
    "AvailabilityContext",
    "AvailabilityProfile",
    "AvailabilityResult",
    "Booking",
    "Break",
    "LeaveRange",
    "MinuteRange",
    "Slot",
    "WorkingHours",
    "SlotCalculator",
    "compute_available_slots",
]
