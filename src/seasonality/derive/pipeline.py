"""Derived-field pipeline.

Turns a daily bar series into the five annotated series used for
seasonality analysis. Coarser granularities are computed first because finer
ones copy their return context:

1. Yearly aggregates and returns
2. Monthly aggregates and returns, plus the owning year's context
3. Monday-week and expiry-week aggregates, week numbers and returns, plus
   month and year context
4. Daily calendar fields and returns, plus week, month and year context
5. Trading-day counters over the days actually present

Every lookup table is built inside a single call, so independent runs (one
per instrument, say) share no state.
"""

from __future__ import annotations

import logging
from datetime import date
from typing import Any, Callable, Iterable, Sequence

from seasonality.data.transforms import deduplicate_by_date
from seasonality.dates import (calendar_month_day, calendar_year_day,
                               expiry_week_end, is_even, monday_week_start,
                               month_key, weekday_name)
from seasonality.derive.aggregation import (group_by_month, group_by_period,
                                            group_by_year)
from seasonality.types import (AnnotatedSeries, Bar, DailyBar, MonthlyBar,
                               PeriodBar, ReturnRecord, WeekBar, WeekContext,
                               WeekType, YearlyBar)

logger = logging.getLogger(__name__)

# Returns are stored rounded to this many decimals
RETURN_DECIMALS = 4

WEEK_KEY_FUNCTIONS: dict[WeekType, Callable[[date], date]] = {
    WeekType.MONDAY: monday_week_start,
    WeekType.EXPIRY: expiry_week_end,
}

WEEK_ANCHOR_DAYS: dict[WeekType, str] = {
    WeekType.MONDAY: "Monday",
    WeekType.EXPIRY: "Thursday",
}

# Raw bar fields carried onto daily rows
BAR_FIELDS = set(Bar.model_fields)


def calculate_returns(close: float, previous_close: float | None) -> ReturnRecord:
    """Return record of ``close`` against the previous bucket's close.

    :param close: Close of the current bucket.
    :param previous_close: Close of the previous bucket, None for the first.
    :returns: Points and percentage rounded to four decimals; zeros when
        there is no usable previous close.
    """
    if previous_close is None or previous_close == 0:
        return ReturnRecord()

    points = close - previous_close
    percentage = round(points / previous_close * 100, RETURN_DECIMALS)
    points = round(points, RETURN_DECIMALS)
    return ReturnRecord(
        return_points=points,
        return_percentage=percentage,
        positive=points > 0,
    )


def series_returns(rows: Iterable[Any]) -> list[ReturnRecord]:
    """Return records of each row against the row before it."""
    records: list[ReturnRecord] = []
    previous_close: float | None = None
    for row in rows:
        records.append(calculate_returns(row.close, previous_close))
        previous_close = row.close
    return records


def number_weeks(weeks: Sequence[PeriodBar]) -> list[tuple[int, int]]:
    """Week counters ``(within_month, within_year)`` for date-sorted weeks.

    Counters restart at 1 whenever the week's month (respectively year)
    differs from the previous week's, otherwise they increment. Only weeks
    present in the series are counted.
    """
    counters: list[tuple[int, int]] = []
    monthly = yearly = 0
    current_month: tuple[int, int] | None = None
    current_year: int | None = None

    for week in weeks:
        key = month_key(week.date)
        if key != current_month:
            monthly = 1
            current_month = key
        else:
            monthly += 1

        if week.date.year != current_year:
            yearly = 1
            current_year = week.date.year
        else:
            yearly += 1

        counters.append((monthly, yearly))

    return counters


def number_trading_days(dates: Sequence[date]) -> list[tuple[int, int]]:
    """Trading-day counters ``(day_of_month, day_of_year)`` for sorted dates."""
    counters: list[tuple[int, int]] = []
    month_day = year_day = 0
    current_month: tuple[int, int] | None = None
    current_year: int | None = None

    for d in dates:
        key = month_key(d)
        if key != current_month:
            month_day = 1
            current_month = key
        else:
            month_day += 1

        if d.year != current_year:
            year_day = 1
            current_year = d.year
        else:
            year_day += 1

        counters.append((month_day, year_day))

    return counters


# ---------------------------------------------------------------------------
# Context copying
# ---------------------------------------------------------------------------


def _year_context(yearly: YearlyBar | None) -> dict[str, Any]:
    if yearly is None:
        return {}
    return {
        "yearly_return_points": yearly.return_points,
        "yearly_return_percentage": yearly.return_percentage,
        "positive_year": yearly.positive_year,
    }


def _month_context(monthly: MonthlyBar | None) -> dict[str, Any]:
    if monthly is None:
        return {}
    return {
        "monthly_return_points": monthly.return_points,
        "monthly_return_percentage": monthly.return_percentage,
        "positive_month": monthly.positive_month,
    }


def _week_context(week_type: WeekType, week_date: date, week: WeekBar | None) -> WeekContext:
    if week is None:
        return WeekContext(week_type=week_type, week_date=week_date)
    return WeekContext(
        week_type=week_type,
        week_date=week_date,
        week_number_monthly=week.week_number_monthly,
        week_number_yearly=week.week_number_yearly,
        even_week_number_monthly=week.even_week_number_monthly,
        even_week_number_yearly=week.even_week_number_yearly,
        return_points=week.return_points,
        return_percentage=week.return_percentage,
        positive_week=week.positive_week,
    )


# ---------------------------------------------------------------------------
# Per-granularity steps
# ---------------------------------------------------------------------------


def build_yearly(daily: Sequence[Bar]) -> list[YearlyBar]:
    """Step 1: yearly aggregates with their own returns."""
    aggregates = group_by_year(daily)
    return [
        YearlyBar(
            **aggregate.model_dump(),
            even_year=is_even(aggregate.date.year),
            return_points=returns.return_points,
            return_percentage=returns.return_percentage,
            positive_year=returns.positive,
        )
        for aggregate, returns in zip(aggregates, series_returns(aggregates))
    ]


def build_monthly(
    daily: Sequence[Bar],
    yearly_by_year: dict[int, YearlyBar],
) -> list[MonthlyBar]:
    """Step 2: monthly aggregates with returns and year context."""
    aggregates = group_by_month(daily)
    return [
        MonthlyBar(
            **aggregate.model_dump(),
            even_month=is_even(aggregate.date.month),
            return_points=returns.return_points,
            return_percentage=returns.return_percentage,
            positive_month=returns.positive,
            even_year=is_even(aggregate.date.year),
            **_year_context(yearly_by_year.get(aggregate.date.year)),
        )
        for aggregate, returns in zip(aggregates, series_returns(aggregates))
    ]


def build_weekly(
    daily: Sequence[Bar],
    week_type: WeekType,
    monthly_by_key: dict[tuple[int, int], MonthlyBar],
    yearly_by_year: dict[int, YearlyBar],
) -> list[WeekBar]:
    """Step 3: week aggregates for one convention.

    Month and year context follow the week's key date, so an expiry week
    whose Thursday falls in the next month carries that month's context.
    """
    aggregates = group_by_period(daily, WEEK_KEY_FUNCTIONS[week_type])
    numbers = number_weeks(aggregates)
    returns = series_returns(aggregates)

    weeks: list[WeekBar] = []
    for aggregate, (monthly_no, yearly_no), record in zip(aggregates, numbers, returns):
        key_date = aggregate.date
        weeks.append(
            WeekBar(
                **aggregate.model_dump(),
                week_type=week_type,
                weekday=WEEK_ANCHOR_DAYS[week_type],
                week_number_monthly=monthly_no,
                week_number_yearly=yearly_no,
                even_week_number_monthly=is_even(monthly_no),
                even_week_number_yearly=is_even(yearly_no),
                return_points=record.return_points,
                return_percentage=record.return_percentage,
                positive_week=record.positive,
                even_month=is_even(key_date.month),
                even_year=is_even(key_date.year),
                **_month_context(monthly_by_key.get(month_key(key_date))),
                **_year_context(yearly_by_year.get(key_date.year)),
            )
        )
    return weeks


def build_daily(
    daily: Sequence[Bar],
    weeks_by_date: dict[WeekType, dict[date, WeekBar]],
    monthly_by_key: dict[tuple[int, int], MonthlyBar],
    yearly_by_year: dict[int, YearlyBar],
) -> list[DailyBar]:
    """Step 4: daily rows with calendar fields, returns and all context.

    A missed lookup leaves the corresponding context at its defaults.
    """
    rows: list[DailyBar] = []
    for bar, record in zip(daily, series_returns(daily)):
        d = bar.date
        month_day = calendar_month_day(d)
        year_day = calendar_year_day(d)

        contexts = {}
        for week_type, key_fn in WEEK_KEY_FUNCTIONS.items():
            week_date = key_fn(d)
            contexts[week_type] = _week_context(
                week_type, week_date, weeks_by_date[week_type].get(week_date)
            )

        rows.append(
            DailyBar(
                **bar.model_dump(include=BAR_FIELDS),
                weekday=weekday_name(d),
                calendar_month_day=month_day,
                calendar_year_day=year_day,
                even_calendar_month_day=is_even(month_day),
                even_calendar_year_day=is_even(year_day),
                return_points=record.return_points,
                return_percentage=record.return_percentage,
                positive_day=record.positive,
                monday_week=contexts[WeekType.MONDAY],
                expiry_week=contexts[WeekType.EXPIRY],
                even_month=is_even(d.month),
                even_year=is_even(d.year),
                **_month_context(monthly_by_key.get(month_key(d))),
                **_year_context(yearly_by_year.get(d.year)),
            )
        )
    return rows


def assign_trading_days(daily: Sequence[DailyBar]) -> list[DailyBar]:
    """Step 5: stamp trading day-of-month and day-of-year counters."""
    counters = number_trading_days([row.date for row in daily])
    return [
        row.model_copy(
            update={
                "trading_month_day": month_day,
                "trading_year_day": year_day,
                "even_trading_month_day": is_even(month_day),
                "even_trading_year_day": is_even(year_day),
            }
        )
        for row, (month_day, year_day) in zip(daily, counters)
    ]


def derive_all_fields(bars: Sequence[Bar]) -> AnnotatedSeries:
    """Compute all five annotated series from a daily bar series.

    The input is deduplicated by date (last occurrence wins) and sorted
    before aggregation; it is never modified.

    :param bars: Daily bars for one instrument.
    :returns: Daily, Monday-week, expiry-week, monthly and yearly series.
    """
    if not bars:
        return AnnotatedSeries()

    daily_bars = deduplicate_by_date(bars)

    yearly = build_yearly(daily_bars)
    yearly_by_year = {row.date.year: row for row in yearly}

    monthly = build_monthly(daily_bars, yearly_by_year)
    monthly_by_key = {month_key(row.date): row for row in monthly}

    weekly = {
        week_type: build_weekly(daily_bars, week_type, monthly_by_key, yearly_by_year)
        for week_type in WeekType
    }
    weeks_by_date = {
        week_type: {row.date: row for row in rows}
        for week_type, rows in weekly.items()
    }

    daily = build_daily(daily_bars, weeks_by_date, monthly_by_key, yearly_by_year)
    daily = assign_trading_days(daily)

    logger.debug(
        "Derived %d daily, %d monday-week, %d expiry-week, %d monthly, %d yearly rows",
        len(daily),
        len(weekly[WeekType.MONDAY]),
        len(weekly[WeekType.EXPIRY]),
        len(monthly),
        len(yearly),
    )

    return AnnotatedSeries(
        daily=daily,
        monday_weekly=weekly[WeekType.MONDAY],
        expiry_weekly=weekly[WeekType.EXPIRY],
        monthly=monthly,
        yearly=yearly,
    )


__all__ = [
    "RETURN_DECIMALS",
    "calculate_returns",
    "series_returns",
    "number_weeks",
    "number_trading_days",
    "build_yearly",
    "build_monthly",
    "build_weekly",
    "build_daily",
    "assign_trading_days",
    "derive_all_fields",
]
