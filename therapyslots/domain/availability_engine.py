"""
Core business logic for resolving bookable time slots.

This is the heart of the application - pure domain logic without any
external dependencies (no API calls, no database, no I/O). Every call
recomputes its answer from the snapshots it is given.
"""

import logging
from typing import Dict, Iterable, List, Optional, Sequence, Tuple

from pendulum import Date

from .exceptions import InvalidTimeError
from .models import (
    ALL_DAY,
    ALREADY_BOOKED,
    BookedAppointment,
    Holiday,
    OverrideEvent,
    ProcessedAvailability,
    ScheduleSettings,
    TimeSlot,
    WeeklyTemplateSlot,
)
from .recurrence import applies_to_date, find_blocking_holiday
from .wallclock import DateLike, day_of_week, iter_dates, parse_wall_clock, step_wall_clock, to_date

logger = logging.getLogger(__name__)


class AvailabilityEngine:
    """
    Resolves per-date slot availability for one practitioner.

    Algorithm, for each date in the range:
    1. A blocking holiday ends the date with a single "all-day" slot
    2. Expand weekly templates into candidate start times
    3. Apply block events, then extra-availability events
    4. Mark slots that overlap booked appointments
    5. Return slots sorted by time
    """

    def __init__(self, granularity_minutes: int):
        if granularity_minutes <= 0:
            raise ValueError(f"Granularity must be positive, got {granularity_minutes}")
        self.granularity_minutes = granularity_minutes

    @classmethod
    def from_settings(cls, settings: ScheduleSettings) -> "AvailabilityEngine":
        """Build an engine stepping by the practitioner's session duration."""
        return cls(granularity_minutes=settings.default_session_duration)

    def resolve(
        self,
        start_date: DateLike,
        end_date: DateLike,
        templates: Iterable[WeeklyTemplateSlot],
        events: Iterable[OverrideEvent],
        holidays: Iterable[Holiday],
        appointments: Iterable[BookedAppointment],
    ) -> List[ProcessedAvailability]:
        """
        Resolve availability for every date from start_date to end_date inclusive.

        Args:
            start_date: First date of the range
            end_date: Last date of the range
            templates: Weekly recurring availability rules
            events: Active override events (blocks and extra availability)
            holidays: Active holidays
            appointments: Appointments that occupy the practitioner's time

        Returns:
            One ProcessedAvailability per date, in ascending date order.
            An inverted range yields an empty list.
        """
        start = to_date(start_date)
        end = to_date(end_date)

        templates = tuple(templates)
        events = tuple(events)
        holidays = tuple(holidays)
        appointments = tuple(appointments)

        results: List[ProcessedAvailability] = []

        for current in iter_dates(start, end):
            holiday = find_blocking_holiday(holidays, current)
            if holiday:
                logger.debug("Holiday %r blocks %s", holiday.name, current)
                results.append(
                    ProcessedAvailability(
                        date=current,
                        time_slots=[TimeSlot(time=ALL_DAY, available=False, reason=holiday.name)],
                    )
                )
                continue

            base_slots = self.base_slots_for_date(templates, current)

            if not base_slots and not self._has_extra_availability(events, current):
                results.append(ProcessedAvailability(date=current, time_slots=[]))
                continue

            slots = self.apply_events(base_slots, current, events)
            slots = self.remove_booked(slots, current, appointments)

            results.append(ProcessedAvailability(date=current, time_slots=slots))

        return results

    def resolve_day(
        self,
        target_date: DateLike,
        templates: Iterable[WeeklyTemplateSlot],
        events: Iterable[OverrideEvent],
        holidays: Iterable[Holiday],
        appointments: Iterable[BookedAppointment],
    ) -> ProcessedAvailability:
        """Resolve a single date through the same path as a range."""
        return self.resolve(target_date, target_date, templates, events, holidays, appointments)[0]

    def resolve_week(
        self,
        week_start: DateLike,
        templates: Iterable[WeeklyTemplateSlot],
        events: Iterable[OverrideEvent],
        holidays: Iterable[Holiday],
        appointments: Iterable[BookedAppointment],
    ) -> List[ProcessedAvailability]:
        """Resolve the seven days starting at week_start."""
        start = to_date(week_start)
        return self.resolve(start, start.add(days=6), templates, events, holidays, appointments)

    def base_slots_for_date(
        self,
        templates: Iterable[WeeklyTemplateSlot],
        target_date: DateLike,
    ) -> List[str]:
        """
        Expand the weekly templates for one date into candidate start times.

        Overlapping templates may produce the same time twice; the list is
        returned sorted with duplicates kept.
        """
        weekday = day_of_week(to_date(target_date))
        times: List[str] = []

        for template in templates:
            if template.day_of_week != weekday or not template.is_available:
                continue
            times.extend(
                step_wall_clock(template.start_time, template.end_time, self.granularity_minutes)
            )

        return sorted(times)

    def apply_events(
        self,
        base_slots: Sequence[str],
        target_date: DateLike,
        events: Iterable[OverrideEvent],
    ) -> List[TimeSlot]:
        """
        Layer block and extra-availability events over the base times.

        Blocks are applied first, so extra availability can only add times
        that are not already present; it never reopens a blocked slot.
        """
        target = to_date(target_date)
        matching = [event for event in events if applies_to_date(event, target)]

        slots: Dict[str, TimeSlot] = {}
        for time in base_slots:
            slots.setdefault(time, TimeSlot(time=time, available=True))

        for event in matching:
            if event.is_block:
                self._apply_block(slots, event)

        for event in matching:
            if event.is_extra_availability:
                self._apply_extra_availability(slots, event)

        return sorted(slots.values(), key=lambda slot: slot.time)

    def remove_booked(
        self,
        slots: Sequence[TimeSlot],
        target_date: DateLike,
        appointments: Iterable[BookedAppointment],
    ) -> List[TimeSlot]:
        """
        Mark available slots that overlap an appointment on the same date.

        A slot covers [time, time + granularity); an appointment covers
        [start_time, end_time), or one granularity step when end_time is
        missing or not after start_time.
        """
        target = to_date(target_date)
        booked = [
            interval for interval in (
                self._appointment_interval(appointment)
                for appointment in appointments
                if appointment.date == target
            )
            if interval is not None
        ]

        result: List[TimeSlot] = []

        for slot in slots:
            if slot.available and slot.time != ALL_DAY and self._overlaps_any(slot.time, booked):
                result.append(
                    TimeSlot(time=slot.time, available=False, reason=ALREADY_BOOKED, event_id=slot.event_id)
                )
            else:
                result.append(slot)

        return result

    def _has_extra_availability(self, events: Iterable[OverrideEvent], target: Date) -> bool:
        return any(
            event.is_extra_availability and applies_to_date(event, target)
            for event in events
        )

    def _apply_block(self, slots: Dict[str, TimeSlot], event: OverrideEvent) -> None:
        """Mark slots unavailable for a block event; no time range blocks the whole day."""
        if not event.has_time_range:
            for slot in slots.values():
                self._mark_blocked(slot, event)
            return

        try:
            block_start = parse_wall_clock(event.start_time)
            block_end = parse_wall_clock(event.end_time)
        except InvalidTimeError as exc:
            logger.warning("Skipping block event %s: %s", event.id, exc)
            return

        for slot in slots.values():
            if block_start <= parse_wall_clock(slot.time) < block_end:
                self._mark_blocked(slot, event)

    @staticmethod
    def _mark_blocked(slot: TimeSlot, event: OverrideEvent) -> None:
        slot.available = False
        slot.reason = event.title
        slot.event_id = event.id

    def _apply_extra_availability(self, slots: Dict[str, TimeSlot], event: OverrideEvent) -> None:
        """Add net-new available times from an extra-availability event."""
        if not event.has_time_range:
            logger.debug("Skipping extra availability %s without a time range", event.id)
            return

        try:
            times = list(step_wall_clock(event.start_time, event.end_time, self.granularity_minutes))
        except InvalidTimeError as exc:
            logger.warning("Skipping extra availability %s: %s", event.id, exc)
            return

        for time in times:
            if time not in slots:
                slots[time] = TimeSlot(time=time, available=True, reason=event.title, event_id=event.id)

    def _appointment_interval(self, appointment: BookedAppointment) -> Optional[Tuple[int, int]]:
        try:
            start = parse_wall_clock(appointment.start_time)
            end = parse_wall_clock(appointment.end_time) if appointment.end_time else None
        except InvalidTimeError as exc:
            logger.warning("Ignoring appointment %s with invalid time: %s", appointment.id, exc)
            return None

        if end is None or end <= start:
            end = start + self.granularity_minutes

        return start, end

    def _overlaps_any(self, time: str, intervals: Sequence[Tuple[int, int]]) -> bool:
        slot_start = parse_wall_clock(time)
        slot_end = slot_start + self.granularity_minutes
        return any(start < slot_end and slot_start < end for start, end in intervals)


def to_calendar_map(processed: Iterable[ProcessedAvailability]) -> Dict[str, List[str]]:
    """
    Reduce resolved availability to {date: [bookable times]} for calendar pickers.

    Unavailable slots and the "all-day" sentinel are dropped.
    """
    return {
        day.date.to_date_string(): day.available_times()
        for day in processed
    }
