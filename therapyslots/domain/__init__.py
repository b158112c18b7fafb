"""
Domain layer - Pure business logic without external dependencies.
"""

from .availability_engine import AvailabilityEngine, to_calendar_map
from .models import (
    BookedAppointment,
    EventType,
    Holiday,
    OverrideEvent,
    PractitionerSnapshot,
    ProcessedAvailability,
    ScheduleSettings,
    TimeSlot,
    WeeklyTemplateSlot,
)
from .recurrence import applies_to_date, find_blocking_holiday, holiday_matches

__all__ = [
    "AvailabilityEngine",
    "to_calendar_map",
    "BookedAppointment",
    "EventType",
    "Holiday",
    "OverrideEvent",
    "PractitionerSnapshot",
    "ProcessedAvailability",
    "ScheduleSettings",
    "TimeSlot",
    "WeeklyTemplateSlot",
    "applies_to_date",
    "find_blocking_holiday",
    "holiday_matches",
]
