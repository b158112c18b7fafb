"""
Tests for the availability service.
"""

import asyncio

import pendulum
import pytest

from therapyslots.config import AppConfig
from therapyslots.domain.exceptions import SnapshotError
from therapyslots.domain.models import (
    BookedAppointment,
    EventType,
    Holiday,
    OverrideEvent,
    PractitionerSnapshot,
    ScheduleSettings,
    WeeklyTemplateSlot,
)
from therapyslots.domain.recurrence import OneTime
from therapyslots.services.availability_service import AvailabilityService

MONDAY = "2024-11-25"


class StubSnapshotSource:
    """Returns a fixed snapshot and records every request."""

    def __init__(self, snapshot: PractitionerSnapshot):
        self.snapshot = snapshot
        self.calls = []

    async def fetch_snapshot(self, practitioner_id, start_date, end_date):
        self.calls.append((practitioner_id, start_date, end_date))
        return self.snapshot


def _snapshot(**overrides) -> PractitionerSnapshot:
    values = dict(
        templates=(WeeklyTemplateSlot(day_of_week=1, start_time="09:00", end_time="12:00"),),
        events=(),
        holidays=(),
        appointments=(),
    )
    values.update(overrides)
    return PractitionerSnapshot(**values)


def _times(day):
    return [slot.time for slot in day.time_slots if slot.available]


class TestAvailabilityService:
    """Tests for AvailabilityService."""

    def test_get_availability_fetches_range(self):
        """Test the source is asked for the normalised date range."""
        source = StubSnapshotSource(_snapshot())
        service = AvailabilityService(snapshot_source=source)

        days = asyncio.run(service.get_availability("p-1", MONDAY, "2024-11-27"))

        assert source.calls == [("p-1", pendulum.date(2024, 11, 25), pendulum.date(2024, 11, 27))]
        assert len(days) == 3
        assert _times(days[0]) == ["09:00", "10:00", "11:00"]

    def test_week_and_day_share_resolution(self):
        """Test a date resolves the same from the week view and the day view."""
        snapshot = _snapshot(
            appointments=(BookedAppointment(date=MONDAY, start_time="10:00", end_time="11:00"),)
        )
        service = AvailabilityService(snapshot_source=StubSnapshotSource(snapshot))

        week = asyncio.run(service.get_week_availability("p-1", "2024-11-24"))
        day = asyncio.run(service.get_day_availability("p-1", MONDAY))

        assert len(week) == 7
        assert week[1] == day

    def test_calendar_map(self):
        service = AvailabilityService(snapshot_source=StubSnapshotSource(_snapshot()))

        calendar = asyncio.run(service.get_calendar_map("p-1", "2024-11-24", MONDAY))

        assert calendar == {"2024-11-24": [], "2024-11-25": ["09:00", "10:00", "11:00"]}

    def test_stored_settings_drive_granularity(self):
        """Test practitioner settings win over the configured defaults."""
        snapshot = _snapshot(settings=ScheduleSettings(default_session_duration=30))
        service = AvailabilityService(snapshot_source=StubSnapshotSource(snapshot))

        day = asyncio.run(service.get_day_availability("p-1", MONDAY))

        assert len(day.time_slots) == 6

    def test_config_defaults_used_without_settings(self):
        config = AppConfig(schedule={"default_session_duration": 90})
        service = AvailabilityService(snapshot_source=StubSnapshotSource(_snapshot()), config=config)

        day = asyncio.run(service.get_day_availability("p-1", MONDAY))

        assert _times(day) == ["09:00", "10:30"]

    def test_inactive_events_are_ignored(self):
        block = OverrideEvent(
            id="e-1",
            title="Cancelled block",
            event_type=EventType.BLOCK,
            recurrence=OneTime(),
            start_date=MONDAY,
            is_active=False,
        )
        service = AvailabilityService(snapshot_source=StubSnapshotSource(_snapshot(events=(block,))))

        day = asyncio.run(service.get_day_availability("p-1", MONDAY))

        assert _times(day) == ["09:00", "10:00", "11:00"]

    def test_inactive_holidays_are_ignored(self):
        holiday = Holiday(name="Old", date=MONDAY, is_active=False)
        service = AvailabilityService(snapshot_source=StubSnapshotSource(_snapshot(holidays=(holiday,))))

        day = asyncio.run(service.get_day_availability("p-1", MONDAY))

        assert not day.is_blocked_all_day

    def test_cancelled_appointments_do_not_block(self):
        appointments = (
            BookedAppointment(date=MONDAY, start_time="09:00", status="cancelled"),
            BookedAppointment(date=MONDAY, start_time="10:00", status="confirmed"),
        )
        service = AvailabilityService(
            snapshot_source=StubSnapshotSource(_snapshot(appointments=appointments))
        )

        day = asyncio.run(service.get_day_availability("p-1", MONDAY))

        assert _times(day) == ["09:00", "11:00"]

    def test_holidays_scoped_to_region(self):
        """Test holidays for another state do not block."""
        holiday = Holiday(name="State holiday", date=MONDAY, country_code="BR", state_code="SP")
        snapshot = _snapshot(holidays=(holiday,))

        in_region = AvailabilityService(
            snapshot_source=StubSnapshotSource(snapshot),
            config=AppConfig(region={"country_code": "BR", "state_code": "SP"}),
        )
        out_of_region = AvailabilityService(
            snapshot_source=StubSnapshotSource(snapshot),
            config=AppConfig(region={"country_code": "BR", "state_code": "RJ"}),
        )

        assert asyncio.run(in_region.get_day_availability("p-1", MONDAY)).is_blocked_all_day
        assert not asyncio.run(out_of_region.get_day_availability("p-1", MONDAY)).is_blocked_all_day


class TestMissingCollections:
    """Tests for the missing-collection policy."""

    def test_permissive_treats_missing_as_empty(self):
        snapshot = _snapshot(holidays=None, appointments=None)
        service = AvailabilityService(snapshot_source=StubSnapshotSource(snapshot))

        day = asyncio.run(service.get_day_availability("p-1", MONDAY))

        assert _times(day) == ["09:00", "10:00", "11:00"]

    def test_permissive_logs_warning(self, caplog):
        service = AvailabilityService(snapshot_source=StubSnapshotSource(_snapshot(events=None)))

        with caplog.at_level("WARNING"):
            asyncio.run(service.get_day_availability("p-1", MONDAY))

        assert "did not supply events" in caplog.text

    def test_strict_raises(self):
        config = AppConfig(missing_collections="strict")
        service = AvailabilityService(
            snapshot_source=StubSnapshotSource(_snapshot(appointments=None)), config=config
        )

        with pytest.raises(SnapshotError, match="did not supply appointments"):
            asyncio.run(service.get_day_availability("p-1", MONDAY))
