"""
Snapshot source backed by a JSON export of the schedule tables.
"""

import json
import logging
from pathlib import Path
from typing import Any, Callable, Dict, List, Mapping, Optional, Tuple, TypeVar

from pendulum import Date

from ..domain.exceptions import PractitionerNotFoundError, SnapshotError
from ..domain.models import (
    BookedAppointment,
    EventType,
    Holiday,
    OverrideEvent,
    PractitionerSnapshot,
    ScheduleSettings,
    WeeklyTemplateSlot,
)
from ..domain.recurrence import MonthlyFallback, recurrence_from_record
from ..domain.wallclock import DateLike, to_date

logger = logging.getLogger(__name__)

T = TypeVar("T")

SAMPLE_SNAPSHOT_PATH = Path(__file__).parent / "sample_snapshot.json"


def parse_template(row: Mapping[str, Any]) -> WeeklyTemplateSlot:
    """Convert an ``availability_slots`` row into a weekly template."""
    return WeeklyTemplateSlot(
        day_of_week=int(row["day_of_week"]),
        start_time=row["start_time"],
        end_time=row["end_time"],
        is_available=bool(row.get("is_available", True)),
        session_type=row.get("session_type") or "both",
        id=_optional_str(row.get("id")),
    )


def parse_event(row: Mapping[str, Any], monthly_fallback: MonthlyFallback = "weekday") -> Optional[OverrideEvent]:
    """
    Convert an ``availability_events`` row into an override event.

    Returns None (and logs a warning) for rows the engine cannot use:
    unknown event types, unknown recurrence types, or monthly rows
    without a pattern when ``monthly_fallback`` is ``"none"``.
    """
    event_id = str(row.get("id", ""))
    start_date = to_date(row["start_date"])

    try:
        event_type = EventType(row.get("event_type"))
    except ValueError:
        logger.warning("Skipping event %s with unsupported type %r", event_id, row.get("event_type"))
        return None

    try:
        recurrence = recurrence_from_record(
            row.get("recurrence_type"),
            start_date,
            days_of_week=row.get("days_of_week"),
            month_pattern=row.get("month_pattern"),
            monthly_fallback=monthly_fallback,
        )
    except ValueError as exc:
        logger.warning("Skipping event %s: %s", event_id, exc)
        return None

    if recurrence is None:
        logger.warning(
            "Skipping monthly event %s: no month_pattern and monthly_fallback is 'none'", event_id
        )
        return None

    return OverrideEvent(
        id=event_id,
        title=row.get("title") or "",
        event_type=event_type,
        recurrence=recurrence,
        start_date=start_date,
        end_date=row.get("end_date") or None,
        start_time=row.get("start_time") or None,
        end_time=row.get("end_time") or None,
        is_active=bool(row.get("is_active", True)),
        description=row.get("description"),
    )


def parse_holiday(row: Mapping[str, Any]) -> Holiday:
    """Convert a ``holidays`` row into a holiday."""
    return Holiday(
        name=row["name"],
        date=row.get("date") or None,
        is_recurring=bool(row.get("is_recurring", False)),
        month_day=row.get("month_day") or None,
        blocks_appointments=bool(row.get("blocks_appointments", True)),
        is_active=bool(row.get("is_active", True)),
        country_code=row.get("country_code"),
        state_code=row.get("state_code"),
        city_code=row.get("city_code"),
        id=_optional_str(row.get("id")),
    )


def parse_appointment(row: Mapping[str, Any]) -> BookedAppointment:
    """Convert an ``appointments`` row into a booked-appointment projection."""
    return BookedAppointment(
        date=row.get("appointment_date") or row["date"],
        start_time=row["start_time"],
        end_time=row.get("end_time") or None,
        status=row.get("status"),
        id=_optional_str(row.get("id")),
    )


def parse_settings(row: Mapping[str, Any], default_timezone: str = "America/Sao_Paulo") -> ScheduleSettings:
    """Convert a ``schedule_settings`` row, keeping defaults for absent columns."""
    fields = (
        "default_session_duration",
        "min_advance_hours",
        "max_advance_days",
        "break_between_sessions",
        "allow_back_to_back",
    )
    values: Dict[str, Any] = {name: row[name] for name in fields if row.get(name) is not None}
    values["timezone"] = row.get("timezone") or default_timezone
    return ScheduleSettings(**values)


def _optional_str(value: Any) -> Optional[str]:
    return None if value is None else str(value)


class JsonSnapshotSource:
    """
    Data source that reads practitioner schedules from a JSON file.

    The file mirrors the database tables: a top-level ``holidays`` list and
    a ``practitioners`` mapping whose entries hold ``availability_slots``,
    ``availability_events``, ``appointments`` and ``schedule_settings``.
    A missing table key is reported as a collection that was not supplied.
    """

    def __init__(self, path: Optional[Path] = None, monthly_fallback: MonthlyFallback = "weekday"):
        """
        Initialize the source.

        Args:
            path: JSON file to read; defaults to the bundled sample snapshot
            monthly_fallback: How monthly events without a pattern are read

        Raises:
            SnapshotError: If the file is missing or not valid JSON
        """
        self.path = Path(path) if path else SAMPLE_SNAPSHOT_PATH
        self.monthly_fallback = monthly_fallback
        self._data = self._load_data()

    def _load_data(self) -> Dict[str, Any]:
        """Load snapshot data from the JSON file."""
        if not self.path.exists():
            raise SnapshotError(f"Snapshot file not found: {self.path}")

        try:
            with open(self.path, "r", encoding="utf-8") as f:
                data = json.load(f)
        except json.JSONDecodeError as exc:
            raise SnapshotError(f"Invalid JSON in {self.path}: {exc}") from exc

        if not isinstance(data, dict):
            raise SnapshotError(f"Snapshot {self.path} must contain an object at the root level.")

        practitioners = data.get("practitioners", {})
        if not isinstance(practitioners, dict):
            raise SnapshotError(f"Snapshot {self.path}: 'practitioners' must be an object keyed by id.")
        if not all(isinstance(entry, dict) or entry is None for entry in practitioners.values()):
            raise SnapshotError(f"Snapshot {self.path}: every practitioner entry must be an object.")

        if not isinstance(data.get("holidays", []), list):
            raise SnapshotError(f"Snapshot {self.path}: 'holidays' must be a list.")

        return data

    def list_practitioners(self) -> List[str]:
        """Return the practitioner ids present in the snapshot."""
        return sorted(self._data.get("practitioners", {}).keys())

    async def fetch_snapshot(
        self,
        practitioner_id: str,
        start_date: DateLike,
        end_date: DateLike,
    ) -> PractitionerSnapshot:
        """
        Load the inputs for one practitioner.

        Appointments are limited to the requested range; other collections
        are returned whole.

        Raises:
            PractitionerNotFoundError: If the practitioner is not in the file
            SnapshotError: If a row cannot be converted
        """
        practitioners = self._data.get("practitioners", {})
        if practitioner_id not in practitioners:
            raise PractitionerNotFoundError(f"Unknown practitioner: {practitioner_id!r}")

        entry = practitioners[practitioner_id] or {}
        start = to_date(start_date)
        end = to_date(end_date)

        templates = self._parse_rows(entry.get("availability_slots"), parse_template, "availability_slots")
        holidays = self._parse_rows(self._data.get("holidays"), parse_holiday, "holidays")
        events = self._parse_events(entry.get("availability_events"))
        appointments = self._parse_rows(entry.get("appointments"), parse_appointment, "appointments")

        if appointments is not None:
            appointments = tuple(a for a in appointments if self._in_range(a.date, start, end))

        settings = None
        if entry.get("schedule_settings"):
            settings = self._parse_one(entry["schedule_settings"], parse_settings, "schedule_settings")

        return PractitionerSnapshot(
            templates=templates,
            events=events,
            holidays=holidays,
            appointments=appointments,
            settings=settings,
        )

    def _parse_events(self, rows: Optional[List[Mapping[str, Any]]]) -> Optional[Tuple[OverrideEvent, ...]]:
        if rows is None:
            return None

        events: List[OverrideEvent] = []
        for index, row in enumerate(rows):
            event = self._parse_one(
                row,
                lambda r: parse_event(r, monthly_fallback=self.monthly_fallback),
                f"availability_events[{index}]",
            )
            if event is not None:
                events.append(event)

        return tuple(events)

    def _parse_rows(
        self,
        rows: Optional[List[Mapping[str, Any]]],
        parser: Callable[[Mapping[str, Any]], T],
        table: str,
    ) -> Optional[Tuple[T, ...]]:
        if rows is None:
            return None
        return tuple(
            self._parse_one(row, parser, f"{table}[{index}]")
            for index, row in enumerate(rows)
        )

    @staticmethod
    def _parse_one(row: Mapping[str, Any], parser: Callable[[Mapping[str, Any]], T], label: str) -> T:
        try:
            return parser(row)
        except (KeyError, TypeError, ValueError) as exc:
            raise SnapshotError(f"Invalid row {label} in snapshot: {exc!r}") from exc

    @staticmethod
    def _in_range(value: Date, start: Date, end: Date) -> bool:
        return start <= value <= end
