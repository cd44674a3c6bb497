"""
Service layer helpers that orchestrate adapters and domain logic.
"""

from .availability_service import AvailabilityService

__all__ = ["AvailabilityService"]
