"""Period aggregation of daily bars.

Groups a date-sorted daily sequence into Monday-week, expiry-week, month and
year buckets and reduces each bucket to a single OHLCV :class:`PeriodBar`.
Buckets without bars are never emitted.
"""

from __future__ import annotations

from datetime import date
from typing import Callable, Iterable, Protocol, Sequence

from seasonality.dates import (expiry_week_end, monday_week_start,
                               month_start, year_start)
from seasonality.types import PeriodBar


class OHLCVRow(Protocol):
    """Anything carrying a date and OHLCV fields (daily or period bars)."""

    date: date
    open: float
    high: float
    low: float
    close: float
    volume: float
    open_interest: float


def aggregate_ohlcv(period_date: date, rows: Sequence[OHLCVRow]) -> PeriodBar | None:
    """Reduce the rows of one bucket to a period bar.

    Open comes from the first row, close and open interest from the last,
    high and low are the extremes and volume is summed.

    :param period_date: Key date to stamp on the aggregate.
    :param rows: Rows of the bucket in date order.
    :returns: The aggregate, or None for an empty bucket.
    """
    if not rows:
        return None

    first = rows[0]
    last = rows[-1]
    return PeriodBar(
        date=period_date,
        open=first.open,
        high=max(r.high for r in rows),
        low=min(r.low for r in rows),
        close=last.close,
        volume=sum((r.volume or 0.0) for r in rows),
        open_interest=last.open_interest or 0.0,
    )


def group_by_period(
    rows: Iterable[OHLCVRow],
    key_fn: Callable[[date], date],
) -> list[PeriodBar]:
    """Bucket rows by ``key_fn(row.date)`` and aggregate every bucket.

    :param rows: Rows sorted ascending by date.
    :param key_fn: Maps a row date to the key date of its bucket.
    :returns: One aggregate per non-empty bucket, sorted by key date.
    """
    buckets: dict[date, list[OHLCVRow]] = {}
    for row in rows:
        buckets.setdefault(key_fn(row.date), []).append(row)

    result: list[PeriodBar] = []
    for key, bucket in buckets.items():
        aggregated = aggregate_ohlcv(key, bucket)
        if aggregated is not None:
            result.append(aggregated)

    return sorted(result, key=lambda bar: bar.date)


def group_by_monday_week(rows: Iterable[OHLCVRow]) -> list[PeriodBar]:
    """Weekly aggregates keyed by the Monday starting each week."""
    return group_by_period(rows, monday_week_start)


def group_by_expiry_week(rows: Iterable[OHLCVRow]) -> list[PeriodBar]:
    """Weekly aggregates keyed by the expiry Thursday closing each week."""
    return group_by_period(rows, expiry_week_end)


def group_by_month(rows: Iterable[OHLCVRow]) -> list[PeriodBar]:
    """Monthly aggregates keyed by the first day of each month."""
    return group_by_period(rows, month_start)


def group_by_year(rows: Iterable[OHLCVRow]) -> list[PeriodBar]:
    """Yearly aggregates keyed by 1 January of each year."""
    return group_by_period(rows, year_start)


__all__ = [
    "OHLCVRow",
    "aggregate_ohlcv",
    "group_by_period",
    "group_by_monday_week",
    "group_by_expiry_week",
    "group_by_month",
    "group_by_year",
]
