"""
Wall-clock and calendar-date helpers.

Times are local wall-clock values (``HH:mm``) with no timezone attached;
they are handled as minutes since midnight so they compare and step
without touching a real calendar. Dates are normalised to ``pendulum.Date``
at day granularity.
"""

import re
from datetime import date, datetime, time
from typing import Iterator, Union

import pendulum
from pendulum import Date

from .exceptions import InvalidTimeError

MINUTES_PER_DAY = 24 * 60

# HH:mm with an optional :ss, always two digits per part
WALL_CLOCK_PATTERN = re.compile(r"[0-9]{2}:[0-9]{2}(:[0-9]{2})?")

WallClock = Union[str, time]
DateLike = Union[str, date, datetime]


def parse_wall_clock(value: WallClock) -> int:
    """
    Parse a wall-clock value into minutes since midnight.

    Accepts ``HH:mm``, ``HH:mm:ss`` (as stored by database time columns)
    and ``datetime.time``. ``24:00`` is allowed and means end of day.

    Raises:
        InvalidTimeError: If the value is not a valid wall-clock time
    """
    if isinstance(value, time):
        return value.hour * 60 + value.minute

    if not isinstance(value, str):
        raise InvalidTimeError(f"Unsupported time value: {value!r}")

    parts = value.strip().split(":")
    if not WALL_CLOCK_PATTERN.fullmatch(value.strip()):
        raise InvalidTimeError(f"Invalid wall-clock time: {value!r}")

    hour, minute = int(parts[0]), int(parts[1])
    second = int(parts[2]) if len(parts) == 3 else 0

    if hour == 24 and minute == 0 and second == 0:
        return MINUTES_PER_DAY
    if not (0 <= hour <= 23 and 0 <= minute <= 59 and 0 <= second <= 59):
        raise InvalidTimeError(f"Invalid wall-clock time: {value!r}")

    return hour * 60 + minute


def format_wall_clock(minutes: int) -> str:
    """Format minutes since midnight as ``HH:mm``."""
    return f"{minutes // 60:02d}:{minutes % 60:02d}"


def normalize_wall_clock(value: WallClock) -> str:
    """Return the canonical ``HH:mm`` form of a wall-clock value."""
    return format_wall_clock(parse_wall_clock(value))


def step_wall_clock(start: WallClock, end: WallClock, granularity_minutes: int) -> Iterator[str]:
    """
    Yield every start time from ``start`` in fixed steps while strictly before ``end``.

    Example: 09:00 - 12:00 at 60 minutes -> 09:00, 10:00, 11:00
    """
    if granularity_minutes <= 0:
        raise ValueError(f"Granularity must be positive, got {granularity_minutes}")

    current = parse_wall_clock(start)
    stop = parse_wall_clock(end)

    while current < stop:
        yield format_wall_clock(current)
        current += granularity_minutes


def to_date(value: DateLike) -> Date:
    """
    Normalise a string, date or datetime to a ``pendulum.Date``.

    Raises:
        InvalidTimeError: If a string cannot be parsed as a date
    """
    if isinstance(value, datetime):
        value = value.date()

    if isinstance(value, date):
        return pendulum.date(value.year, value.month, value.day)

    if not isinstance(value, str):
        raise InvalidTimeError(f"Unsupported date value: {value!r}")

    try:
        parsed = pendulum.parse(value.strip(), exact=True)
    except ValueError as exc:
        raise InvalidTimeError(f"Invalid date: {value!r}") from exc

    if isinstance(parsed, datetime):
        parsed = parsed.date()
    if not isinstance(parsed, date):
        raise InvalidTimeError(f"Invalid date: {value!r}")

    return pendulum.date(parsed.year, parsed.month, parsed.day)


def day_of_week(value: date) -> int:
    """Return the weekday with 0=Sunday .. 6=Saturday."""
    return value.isoweekday() % 7


def month_day(value: date) -> str:
    """Return the ``MM-DD`` key used by recurring holidays."""
    return f"{value.month:02d}-{value.day:02d}"


def iter_dates(start: Date, end: Date) -> Iterator[Date]:
    """Yield each calendar day from ``start`` to ``end`` inclusive."""
    current = start
    while current <= end:
        yield current
        current = current.add(days=1)
