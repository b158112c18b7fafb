"""
Recurrence rules for override events and holidays.

Each rule kind is its own small immutable type with a ``matches`` method,
so monthly rules are expressed explicitly instead of borrowing the weekly
test.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, FrozenSet, Iterable, Literal, Mapping, Optional, Union

from pendulum import Date

from .wallclock import DateLike, day_of_week, month_day, to_date

if TYPE_CHECKING:
    from .models import Holiday, OverrideEvent

MonthlyFallback = Literal["weekday", "none"]

RECURRENCE_TYPES = ("one_time", "weekly", "monthly", "yearly")


@dataclass(frozen=True)
class OneTime:
    """Applies on the event's start date only."""

    def matches(self, target: Date, anchor: Date) -> bool:
        return target == anchor


@dataclass(frozen=True)
class Weekly:
    """Applies on the listed weekdays (0=Sunday .. 6=Saturday)."""
    days: FrozenSet[int]

    def matches(self, target: Date, anchor: Date) -> bool:
        return day_of_week(target) in self.days


@dataclass(frozen=True)
class MonthlyByWeekday:
    """
    Applies on the listed weekdays of one week of the month.

    ``week`` is 1-5 for the first to fifth occurrence, or -1 for the last.
    """
    week: int
    days: FrozenSet[int]

    def __post_init__(self):
        if self.week not in (-1, 1, 2, 3, 4, 5):
            raise ValueError(f"week_of_month must be 1-5 or -1, got {self.week}")

    def matches(self, target: Date, anchor: Date) -> bool:
        if day_of_week(target) not in self.days:
            return False
        if self.week == -1:
            return target.day + 7 > target.days_in_month
        return (target.day - 1) // 7 + 1 == self.week


@dataclass(frozen=True)
class MonthlyByDate:
    """Applies on a fixed day of every month; months without that day are skipped."""
    day: int

    def __post_init__(self):
        if not 1 <= self.day <= 31:
            raise ValueError(f"month_day must be between 1 and 31, got {self.day}")

    def matches(self, target: Date, anchor: Date) -> bool:
        return target.day == self.day


@dataclass(frozen=True)
class MonthlyByDayOfWeek:
    """
    Monthly rule with no pattern: matches the listed weekdays like ``Weekly``.

    Kept for records created before month patterns existed.
    """
    days: FrozenSet[int]

    def matches(self, target: Date, anchor: Date) -> bool:
        return day_of_week(target) in self.days


@dataclass(frozen=True)
class Yearly:
    """Applies on the same month and day every year."""
    month: int
    day: int

    def matches(self, target: Date, anchor: Date) -> bool:
        return target.month == self.month and target.day == self.day


Recurrence = Union[OneTime, Weekly, MonthlyByWeekday, MonthlyByDate, MonthlyByDayOfWeek, Yearly]


def _weekday_set(days: Optional[Iterable[int]]) -> FrozenSet[int]:
    return frozenset(int(day) for day in (days or ()))


def recurrence_from_record(
    recurrence_type: Optional[str],
    start_date: DateLike,
    days_of_week: Optional[Iterable[int]] = None,
    month_pattern: Optional[Mapping[str, Any]] = None,
    monthly_fallback: MonthlyFallback = "weekday",
) -> Optional[Recurrence]:
    """
    Build a recurrence rule from the stored record fields.

    Returns None for a monthly record without a usable pattern when
    ``monthly_fallback`` is ``"none"``.

    Raises:
        ValueError: If the recurrence type is unknown or the pattern is invalid
    """
    if recurrence_type not in RECURRENCE_TYPES:
        raise ValueError(f"Unknown recurrence type: {recurrence_type!r}")

    days = _weekday_set(days_of_week)

    if recurrence_type == "one_time":
        return OneTime()

    if recurrence_type == "weekly":
        return Weekly(days=days)

    if recurrence_type == "yearly":
        anchor = to_date(start_date)
        return Yearly(month=anchor.month, day=anchor.day)

    pattern = month_pattern if isinstance(month_pattern, Mapping) else {}

    if pattern.get("month_day") is not None:
        return MonthlyByDate(day=int(pattern["month_day"]))

    if pattern.get("week_of_month") is not None:
        pattern_days = _weekday_set(pattern.get("days_of_week")) or days
        return MonthlyByWeekday(week=int(pattern["week_of_month"]), days=pattern_days)

    if monthly_fallback == "weekday":
        return MonthlyByDayOfWeek(days=days)

    return None


def applies_to_date(event: "OverrideEvent", target: DateLike) -> bool:
    """
    Decide whether an override event applies to a calendar date.

    The date must lie within ``[start_date, end_date]`` (inclusive, end
    optional) and satisfy the event's recurrence rule.
    """
    target = to_date(target)

    if target < event.start_date:
        return False
    if event.end_date is not None and target > event.end_date:
        return False
    if event.recurrence is None:
        return False

    return event.recurrence.matches(target, event.start_date)


def holiday_matches(holiday: "Holiday", target: DateLike) -> bool:
    """Recurring holidays match on ``MM-DD``; others on the exact date."""
    target = to_date(target)

    if holiday.is_recurring:
        return holiday.month_day == month_day(target)

    return holiday.date == target


def find_blocking_holiday(holidays: Iterable["Holiday"], target: DateLike) -> Optional["Holiday"]:
    """Return the first holiday that blocks appointments on ``target``, if any."""
    target = to_date(target)

    for holiday in holidays:
        if holiday.blocks_appointments and holiday_matches(holiday, target):
            return holiday

    return None
