"""Calendar arithmetic for daily bars.

Pure functions over :class:`datetime.date`. Weekday arithmetic uses the
Sunday=0 … Saturday=6 numbering the week rules are written in.
"""

from __future__ import annotations

from datetime import date, timedelta

WEEKDAY_NAMES = (
    "Sunday",
    "Monday",
    "Tuesday",
    "Wednesday",
    "Thursday",
    "Friday",
    "Saturday",
)

SUNDAY = 0
THURSDAY = 4
FRIDAY = 5


def sunday_based_weekday(d: date) -> int:
    """Weekday number with Sunday=0 and Saturday=6."""
    return d.isoweekday() % 7


def weekday_name(d: date) -> str:
    """Return the English weekday name of a date."""
    return WEEKDAY_NAMES[sunday_based_weekday(d)]


def calendar_month_day(d: date) -> int:
    """1-based day of the month."""
    return d.day


def calendar_year_day(d: date) -> int:
    """1-based day of the year."""
    return d.timetuple().tm_yday


def is_leap_year(year: int) -> bool:
    """Gregorian leap-year rule."""
    return (year % 4 == 0 and year % 100 != 0) or year % 400 == 0


def is_even(n: int) -> bool:
    return n % 2 == 0


def monday_week_start(d: date) -> date:
    """Monday that starts the week containing ``d``.

    Sunday belongs to the week that started six days earlier.
    """
    weekday = sunday_based_weekday(d)
    offset = 6 if weekday == SUNDAY else weekday - 1
    return d - timedelta(days=offset)


def expiry_week_end(d: date) -> date:
    """Thursday that closes the expiry week ``d`` settles into.

    A Friday rolls into the following week's expiry, six days ahead. A
    Thursday maps to the next Thursday, never to itself.
    """
    weekday = sunday_based_weekday(d)
    if weekday == FRIDAY:
        return d + timedelta(days=6)
    if weekday == THURSDAY:
        return d + timedelta(days=7)
    return d + timedelta(days=(THURSDAY - weekday + 7) % 7)


def month_key(d: date) -> tuple[int, int]:
    """``(year, month)`` bucket key."""
    return (d.year, d.month)


def month_start(d: date) -> date:
    return d.replace(day=1)


def year_start(d: date) -> date:
    return date(d.year, 1, 1)


__all__ = [
    "WEEKDAY_NAMES",
    "sunday_based_weekday",
    "weekday_name",
    "calendar_month_day",
    "calendar_year_day",
    "is_leap_year",
    "is_even",
    "monday_week_start",
    "expiry_week_end",
    "month_key",
    "month_start",
    "year_start",
]
