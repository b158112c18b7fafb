"""
Service layer helpers that orchestrate adapters and domain logic.
"""

from .availability_service import AvailabilityService, SnapshotSourceProtocol

__all__ = ["AvailabilityService", "SnapshotSourceProtocol"]
