"""
Application services for resolving practitioner availability.

The service coordinates fetching a schedule snapshot via a data source
adapter and delegates the actual resolution to the domain-level
``AvailabilityEngine``. Both the practitioner calendar and the client
booking view go through the same ``get_availability`` path.
"""

from __future__ import annotations

import logging
from typing import Dict, List, Optional, Protocol, Tuple, TypeVar

from ..config import AppConfig
from ..domain.availability_engine import AvailabilityEngine, to_calendar_map
from ..domain.exceptions import SnapshotError
from ..domain.models import PractitionerSnapshot, ProcessedAvailability, ScheduleSettings
from ..domain.wallclock import DateLike, to_date

logger = logging.getLogger(__name__)

T = TypeVar("T")


class SnapshotSourceProtocol(Protocol):
    """Protocol describing the data access behaviour needed by the service."""

    async def fetch_snapshot(
        self,
        practitioner_id: str,
        start_date: DateLike,
        end_date: DateLike,
    ) -> PractitionerSnapshot:
        """Return the schedule inputs for one practitioner."""


class AvailabilityService:
    """
    Orchestrates snapshot retrieval and availability resolution.

    Dependency inversion toward a protocol makes it easy to plug in a
    database-backed source or the JSON source used in tests.
    """

    def __init__(
        self,
        snapshot_source: SnapshotSourceProtocol,
        config: Optional[AppConfig] = None,
    ) -> None:
        self._snapshot_source = snapshot_source
        self._config = config or AppConfig()

    async def get_availability(
        self,
        practitioner_id: str,
        start_date: DateLike,
        end_date: DateLike,
    ) -> List[ProcessedAvailability]:
        """
        Fetch the practitioner's snapshot and resolve every date in the range.
        """
        start = to_date(start_date)
        end = to_date(end_date)

        snapshot = await self._snapshot_source.fetch_snapshot(practitioner_id, start, end)
        snapshot = self.prepare_snapshot(snapshot)

        engine = AvailabilityEngine.from_settings(self.resolve_settings(snapshot))

        return engine.resolve(
            start,
            end,
            templates=snapshot.templates,
            events=snapshot.events,
            holidays=snapshot.holidays,
            appointments=snapshot.appointments,
        )

    async def get_week_availability(
        self,
        practitioner_id: str,
        week_start: DateLike,
    ) -> List[ProcessedAvailability]:
        """Seven days from week_start, as shown in the practitioner calendar."""
        start = to_date(week_start)
        return await self.get_availability(practitioner_id, start, start.add(days=6))

    async def get_day_availability(
        self,
        practitioner_id: str,
        target_date: DateLike,
    ) -> ProcessedAvailability:
        """A single date, as shown in the client booking view."""
        days = await self.get_availability(practitioner_id, target_date, target_date)
        return days[0]

    async def get_calendar_map(
        self,
        practitioner_id: str,
        start_date: DateLike,
        end_date: DateLike,
    ) -> Dict[str, List[str]]:
        """Bookable times per date for calendar pickers."""
        days = await self.get_availability(practitioner_id, start_date, end_date)
        return to_calendar_map(days)

    def resolve_settings(self, snapshot: PractitionerSnapshot) -> ScheduleSettings:
        """Stored practitioner settings win over configured defaults."""
        return snapshot.settings or self._config.to_schedule_settings()

    def prepare_snapshot(self, snapshot: PractitionerSnapshot) -> PractitionerSnapshot:
        """
        Apply data-access policies before the engine sees the snapshot.

        - Missing collections become empty (permissive) or raise (strict)
        - Inactive events and holidays are dropped
        - Holidays scoped to another region are dropped
        - Appointments that no longer hold their time are dropped

        Raises:
            SnapshotError: If a collection is missing under the strict policy
        """
        region = self._config.region

        templates = self._require(snapshot.templates, "templates")
        events = self._require(snapshot.events, "events")
        holidays = self._require(snapshot.holidays, "holidays")
        appointments = self._require(snapshot.appointments, "appointments")

        return PractitionerSnapshot(
            templates=templates,
            events=tuple(event for event in events if event.is_active),
            holidays=tuple(
                holiday for holiday in holidays
                if holiday.is_active and holiday.applies_to_region(
                    region.country_code, region.state_code, region.city_code
                )
            ),
            appointments=tuple(appointment for appointment in appointments if appointment.occupies_time),
            settings=snapshot.settings,
        )

    def _require(self, collection: Optional[Tuple[T, ...]], name: str) -> Tuple[T, ...]:
        if collection is not None:
            return tuple(collection)

        if self._config.missing_collections == "strict":
            raise SnapshotError(f"Data source did not supply {name}")

        logger.warning("Data source did not supply %s; treating it as empty", name)
        return ()
