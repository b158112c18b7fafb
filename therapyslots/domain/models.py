"""
Domain models for practitioner schedules and resolved availability.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional, Tuple

from pendulum import Date

from .recurrence import Recurrence
from .wallclock import month_day as month_day_key, normalize_wall_clock, parse_wall_clock, to_date

ALL_DAY = "all-day"
ALREADY_BOOKED = "Already booked"

SESSION_TYPES = ("online", "in-person", "both")

# Appointment statuses that still occupy the practitioner's time
BOOKING_STATUSES = ("scheduled", "confirmed")


class EventType(str, Enum):
    """Kind of override event."""
    BLOCK = "block"
    AVAILABLE = "available"


@dataclass(frozen=True)
class ScheduleSettings:
    """
    Per-practitioner scheduling preferences.

    Only ``default_session_duration`` drives slot generation; the advance
    window and break settings are carried for consumers.
    """
    default_session_duration: int = 60
    min_advance_hours: int = 24
    max_advance_days: int = 60
    break_between_sessions: int = 0
    allow_back_to_back: bool = True
    timezone: str = "America/Sao_Paulo"

    def __post_init__(self):
        if self.default_session_duration <= 0:
            raise ValueError(
                f"default_session_duration must be positive, got {self.default_session_duration}"
            )
        if self.min_advance_hours < 0 or self.max_advance_days < 0 or self.break_between_sessions < 0:
            raise ValueError("Advance windows and breaks cannot be negative")


@dataclass(frozen=True)
class WeeklyTemplateSlot:
    """
    A recurring weekly availability rule.

    Invariant: start_time must be before end_time.
    """
    day_of_week: int  # 0=Sunday, 6=Saturday
    start_time: str
    end_time: str
    is_available: bool = True
    session_type: str = "both"
    id: Optional[str] = None

    def __post_init__(self):
        if not 0 <= self.day_of_week <= 6:
            raise ValueError(f"day_of_week must be between 0 and 6, got {self.day_of_week}")
        if self.session_type not in SESSION_TYPES:
            raise ValueError(f"Unknown session type: {self.session_type!r}")

        # Store canonical HH:mm so templates compare and sort as strings
        object.__setattr__(self, "start_time", normalize_wall_clock(self.start_time))
        object.__setattr__(self, "end_time", normalize_wall_clock(self.end_time))

        if parse_wall_clock(self.start_time) >= parse_wall_clock(self.end_time):
            raise ValueError(
                f"Start time {self.start_time} must be before end time {self.end_time}"
            )


@dataclass(frozen=True)
class OverrideEvent:
    """
    A named exception to the weekly template: a block or extra availability.

    Times are kept as given; events with missing or unparsable times are
    handled (or skipped) by the engine rather than rejected here.
    """
    id: str
    title: str
    event_type: EventType
    recurrence: Optional[Recurrence]
    start_date: Date
    end_date: Optional[Date] = None
    start_time: Optional[str] = None
    end_time: Optional[str] = None
    is_active: bool = True
    description: Optional[str] = None

    def __post_init__(self):
        object.__setattr__(self, "event_type", EventType(self.event_type))
        object.__setattr__(self, "start_date", to_date(self.start_date))
        if self.end_date is not None:
            object.__setattr__(self, "end_date", to_date(self.end_date))

    @property
    def has_time_range(self) -> bool:
        """True when both start and end times are set."""
        return bool(self.start_time) and bool(self.end_time)

    @property
    def is_block(self) -> bool:
        return self.event_type is EventType.BLOCK

    @property
    def is_extra_availability(self) -> bool:
        return self.event_type is EventType.AVAILABLE


@dataclass(frozen=True)
class Holiday:
    """
    A calendar exclusion, global or scoped to a region.

    Recurring holidays match on ``month_day`` (``MM-DD``), derived from
    ``date`` when not given.
    """
    name: str
    date: Optional[Date] = None
    is_recurring: bool = False
    month_day: Optional[str] = None
    blocks_appointments: bool = True
    is_active: bool = True
    country_code: Optional[str] = None
    state_code: Optional[str] = None
    city_code: Optional[str] = None
    id: Optional[str] = None

    def __post_init__(self):
        if self.date is not None:
            object.__setattr__(self, "date", to_date(self.date))

        if self.is_recurring and not self.month_day and self.date is not None:
            object.__setattr__(self, "month_day", month_day_key(self.date))

        if self.is_recurring and not self.month_day:
            raise ValueError(f"Recurring holiday {self.name!r} needs a month_day or date")
        if not self.is_recurring and self.date is None:
            raise ValueError(f"Holiday {self.name!r} needs a date")

    def applies_to_region(
        self,
        country_code: Optional[str] = None,
        state_code: Optional[str] = None,
        city_code: Optional[str] = None,
    ) -> bool:
        """
        Check whether this holiday is in scope for a region.

        A code is only compared when both the holiday and the region set it.
        """
        pairs = (
            (self.country_code, country_code),
            (self.state_code, state_code),
            (self.city_code, city_code),
        )
        for own, other in pairs:
            if own and other and own.lower() != other.lower():
                return False
        return True


@dataclass(frozen=True)
class BookedAppointment:
    """Read-only projection of an appointment that occupies a practitioner's time."""
    date: Date
    start_time: str
    end_time: Optional[str] = None
    status: Optional[str] = None
    id: Optional[str] = None

    def __post_init__(self):
        object.__setattr__(self, "date", to_date(self.date))

    @property
    def occupies_time(self) -> bool:
        """Cancelled and completed appointments no longer hold the slot."""
        return self.status is None or self.status in BOOKING_STATUSES


@dataclass
class TimeSlot:
    """One candidate start time in the resolved availability."""
    time: str
    available: bool
    reason: Optional[str] = None
    event_id: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {"time": self.time, "available": self.available}
        if self.reason is not None:
            data["reason"] = self.reason
        if self.event_id is not None:
            data["eventId"] = self.event_id
        return data

    def format_display(self) -> str:
        """
        Format the slot for display.
        Format: HH:mm | available  or  HH:mm | blocked (reason)
        """
        status = "available" if self.available else "blocked"
        if self.reason:
            status = f"{status} ({self.reason})"
        return f"{self.time} | {status}"


@dataclass
class ProcessedAvailability:
    """Resolved slots for one calendar date."""
    date: Date
    time_slots: List[TimeSlot] = field(default_factory=list)

    @property
    def is_blocked_all_day(self) -> bool:
        return len(self.time_slots) == 1 and self.time_slots[0].time == ALL_DAY

    def available_times(self) -> List[str]:
        """Bookable times for this date, excluding the all-day sentinel."""
        return [
            slot.time for slot in self.time_slots
            if slot.available and slot.time != ALL_DAY
        ]

    def to_dict(self) -> Dict[str, Any]:
        return {
            "date": self.date.to_date_string(),
            "timeSlots": [slot.to_dict() for slot in self.time_slots],
        }


@dataclass(frozen=True)
class PractitionerSnapshot:
    """
    Read-only bundle of the inputs for one practitioner.

    A collection set to None was not supplied by the data source.
    """
    templates: Optional[Tuple[WeeklyTemplateSlot, ...]] = ()
    events: Optional[Tuple[OverrideEvent, ...]] = ()
    holidays: Optional[Tuple[Holiday, ...]] = ()
    appointments: Optional[Tuple[BookedAppointment, ...]] = ()
    settings: Optional[ScheduleSettings] = None
