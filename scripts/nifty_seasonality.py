#!/usr/bin/env python3
"""
NIFTY Seasonality Demo
======================

Fetches ten years of daily NIFTY 50 data from Yahoo Finance, derives the
annotated daily, weekly, monthly and yearly series, and prints a few
seasonality views built with the filter engine.

What This Script Does
---------------------
1. **Data Fetching**: Downloads daily ``^NSEI`` bars via ``YahooDataSource``
2. **Quality Check**: Reports invalid rows, duplicate dates, gaps and outliers
3. **Derivation**: Builds the five annotated series with ``derive_all_fields``
4. **Filtering**: Compares election years against the rest, Monday returns in
   even months, and expiry weeks with large moves removed
5. **Aggregation**: Prints average return per calendar month and per weekday,
   plus the compounded curve of the filtered daily returns

Usage
-----
    pip install -e ".[yahoo]"
    python scripts/nifty_seasonality.py
"""

from datetime import date

from seasonality.data.quality import run_quality_check
from seasonality.data.sources import YahooDataSource
from seasonality.derive.pipeline import derive_all_fields
from seasonality.filters.engine import FilterEngine
from seasonality.stats import (AggregateType, aggregate_by_key,
                               cumulative_returns, summarize_returns)
from seasonality.types import (DateRange, DayFilters, EvenOdd, FilterConfig,
                               MonthFilters, OutlierFilters, OutlierRange,
                               Symbol, Weekday, YearFilters, YearKind)


def print_summary(title: str, rows: list) -> None:
    stats = summarize_returns(row.return_percentage for row in rows)
    print(
        f"{title:<32} {stats.all_count:>6} {stats.avg_return_all:>+9.4f} "
        f"{stats.sum_return_all:>+10.2f} {stats.pos_accuracy:>7.2f}%"
    )


def main() -> None:
    """Run the NIFTY seasonality demonstration."""
    print("=" * 60)
    print("NIFTY 50 Seasonality")
    print("=" * 60)

    # -------------------------------------------------------------------------
    # Step 1: Fetch daily bars
    # -------------------------------------------------------------------------
    symbol = Symbol("^NSEI")
    date_range = DateRange(start=date(2015, 1, 1), end=date(2024, 12, 31))

    print(f"Date Range: {date_range.start} to {date_range.end}")
    print(f"Symbol:     {symbol}")
    print("\nFetching data from Yahoo Finance...")

    bars = list(YahooDataSource().fetch_bars([symbol], date_range))
    print(f"Fetched {len(bars)} daily bars")
    if not bars:
        return

    # -------------------------------------------------------------------------
    # Step 2: Quality check
    # -------------------------------------------------------------------------
    report = run_quality_check(bars)
    print(
        f"Quality: {report.validation.invalid_rows} invalid, "
        f"{report.duplicates.duplicate_count} duplicates, "
        f"{report.gaps.gap_count} gaps, {report.outliers.outlier_count} outliers"
    )

    # -------------------------------------------------------------------------
    # Step 3: Derive annotated series
    # -------------------------------------------------------------------------
    series = derive_all_fields(bars)
    print(
        f"Derived {len(series.daily)} days, {len(series.monday_weekly)} Monday weeks, "
        f"{len(series.expiry_weekly)} expiry weeks, {len(series.monthly)} months, "
        f"{len(series.yearly)} years"
    )

    # -------------------------------------------------------------------------
    # Step 4: Filtered views
    # -------------------------------------------------------------------------
    print(f"\n{'View':<32} {'Count':>6} {'Avg %':>9} {'Sum %':>10} {'Pos%':>8}")
    print("-" * 70)

    daily = FilterEngine(series.daily)
    print_summary("All days", daily.data)

    election = daily.clone().apply_year_filters(YearFilters(even_odd=YearKind.ELECTION))
    print_summary("Days in election years", election.data)

    even_month_mondays = FilterEngine(series.daily).apply_filters(
        FilterConfig(
            month_filters=MonthFilters(even_odd=EvenOdd.EVEN),
            day_filters=DayFilters(weekdays=[Weekday.MONDAY]),
        )
    )
    print_summary("Mondays in even months", even_month_mondays.data)

    calm_expiry_weeks = FilterEngine(series.expiry_weekly).apply_outlier_filters(
        OutlierFilters(expiry_weekly=OutlierRange(enabled=True, min=-3, max=3))
    )
    print_summary("Expiry weeks within +/-3%", calm_expiry_weeks.data)

    # -------------------------------------------------------------------------
    # Step 5: Aggregates
    # -------------------------------------------------------------------------
    print("\nAverage monthly return by calendar month")
    print("-" * 40)
    for item in aggregate_by_key(series.monthly, lambda row: row.date.month, AggregateType.AVG):
        print(f"   {item.label:>3} {item.value:>+9.4f}%  ({item.statistics.pos_accuracy:.0f}% positive)")

    print("\nTotal daily return by weekday")
    print("-" * 40)
    for item in aggregate_by_key(series.daily, "weekday", AggregateType.TOTAL):
        print(f"   {item.label:<10} {item.value:>+10.2f}%")

    curve = cumulative_returns([row.return_percentage for row in even_month_mondays.data])
    if curve:
        print(
            f"\n100 compounded over Mondays in even months: "
            f"{curve[-1].cumulative_return:.2f} ({curve[-1].cumulative_return_percent:+.2f}%)"
        )


if __name__ == "__main__":
    main()
