"""
Domain-specific exception hierarchy for the availability engine.
"""


class AvailabilityError(Exception):
    """Base class for all application-level errors."""


class InvalidTimeError(AvailabilityError, ValueError):
    """Raised when a wall-clock or calendar value cannot be parsed."""


class SnapshotError(AvailabilityError):
    """Raised when schedule data cannot be loaded or is incomplete."""


class PractitionerNotFoundError(SnapshotError):
    """Raised when a snapshot has no entry for the requested practitioner."""
