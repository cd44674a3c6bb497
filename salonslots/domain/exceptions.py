"""
Domain-specific exception hierarchy for the salon availability application.
"""


class SalonSlotsError(Exception):
    """Base class for all application-level errors."""


class InvalidRequestError(SalonSlotsError):
    """Raised when a caller supplies missing or invalid query parameters."""


class InvalidTimeError(InvalidRequestError):
    """Raised when a wall-clock or calendar value cannot be parsed."""


class StylistNotFoundError(SalonSlotsError):
    """Raised when the requested stylist does not exist."""


class ServiceNotFoundError(SalonSlotsError):
    """Raised when the requested salon service does not exist or is inactive."""


class RecordStoreError(SalonSlotsError):
    """Raised when records cannot be fetched from the backing store."""
