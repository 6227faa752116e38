"""Chainable filter engine over annotated series."""

from __future__ import annotations

import logging
from datetime import date
from typing import Callable, Sequence, TypeVar

from seasonality.dates import is_even, is_leap_year
from seasonality.types import (AnnotatedRow, DailyBar, DateRange, DayFilters,
                               ElectionYearType, EvenOdd, FilterConfig,
                               Granularity, MonthFilters, MonthlyBar,
                               OutlierFilters, OutlierRange, PositiveNegative,
                               WeekBar, WeekContext, WeekFilters, WeekType,
                               YearFilters, YearKind, YearlyBar)

logger = logging.getLogger(__name__)

Row = TypeVar("Row", DailyBar, WeekBar, MonthlyBar, YearlyBar)

# General election years (India)
ELECTION_YEARS = frozenset(
    [1952, 1957, 1962, 1967, 1971, 1977, 1980, 1984, 1989, 1991,
     1996, 1998, 1999, 2004, 2009, 2014, 2019, 2024]
)

# Years of the current government regime
REGIME_YEARS = frozenset(range(2014, 2027))


def _matches_direction(flag: bool | None, selector: PositiveNegative) -> bool:
    if flag is None:
        return False
    return flag is (selector is PositiveNegative.POSITIVE)


def _matches_parity(flag: bool | None, selector: EvenOdd) -> bool:
    if flag is None:
        return False
    return flag is (selector is EvenOdd.EVEN)


def _week_fields(row: AnnotatedRow, week_type: WeekType) -> WeekBar | WeekContext | None:
    """Week fields visible on ``row`` for one week convention."""
    if isinstance(row, DailyBar):
        return row.week(week_type)
    if isinstance(row, WeekBar) and row.week_type is week_type:
        return row
    return None


def _positive_month(row: AnnotatedRow) -> bool | None:
    if isinstance(row, YearlyBar):
        return None
    return row.positive_month


def _return_for(row: AnnotatedRow, granularity: Granularity) -> float | None:
    """Return percentage of ``row`` at ``granularity``, None when not carried.

    A row's own return is used when the granularities match; otherwise the
    cross-period context copied onto it.
    """
    if row.granularity is granularity:
        return row.return_percentage

    if granularity is Granularity.YEARLY and not isinstance(row, YearlyBar):
        return row.yearly_return_percentage
    if granularity is Granularity.MONTHLY and isinstance(row, (DailyBar, WeekBar)):
        return row.monthly_return_percentage
    if isinstance(row, DailyBar):
        if granularity is Granularity.MONDAY_WEEKLY:
            return row.monday_week.return_percentage
        if granularity is Granularity.EXPIRY_WEEKLY:
            return row.expiry_week.return_percentage
    return None


def classify_election_year(year: int, kind: ElectionYearType, current_year: int) -> bool:
    """Whether ``year`` belongs to an election-cycle classification.

    :param year: Calendar year to test.
    :param kind: Classification to test against.
    :param current_year: Year that ``CURRENT`` matches.
    """
    if kind is ElectionYearType.ELECTION:
        return year in ELECTION_YEARS
    if kind is ElectionYearType.PRE_ELECTION:
        return year + 1 in ELECTION_YEARS
    if kind is ElectionYearType.POST_ELECTION:
        return year - 1 in ELECTION_YEARS
    if kind is ElectionYearType.MID_ELECTION:
        return not ({year - 1, year, year + 1} & ELECTION_YEARS)
    if kind is ElectionYearType.REGIME:
        return year in REGIME_YEARS
    if kind is ElectionYearType.CURRENT:
        return year == current_year
    return True


class FilterEngine:
    """Narrow an annotated series with chainable filters.

    The engine keeps the rows it was created with and a current view. Each
    ``apply_*``/``filter_*`` call narrows the current view and returns the
    engine; :meth:`reset` restores the original rows. Input rows are never
    modified.

    Example usage::

        engine = FilterEngine(series.daily)
        rows = (
            engine.apply_year_filters(YearFilters(even_odd=YearKind.ELECTION))
            .apply_day_filters(DayFilters(weekdays=[Weekday.MONDAY]))
            .data
        )

    Rows of any granularity are accepted. A predicate on a field the row
    does not carry (a day filter on a monthly row, say) does not hold, so
    such rows are dropped.

    :param rows: Annotated rows sorted by date.
    :param today: Date used by the ``CURRENT`` election-year filter
        (defaults to the real current date at filter time).
    """

    def __init__(self, rows: Sequence[Row], today: date | None = None) -> None:
        self._original: list[Row] = list(rows)
        self._current: list[Row] = list(self._original)
        self._today = today

    @property
    def data(self) -> list[Row]:
        """Current filtered view."""
        return self._current

    def _keep(self, predicate: Callable[[Row], bool]) -> None:
        self._current = [row for row in self._current if predicate(row)]

    def reset(self) -> FilterEngine:
        """Restore the original rows."""
        self._current = list(self._original)
        return self

    def apply_filters(self, config: FilterConfig | None) -> FilterEngine:
        """Reset, then apply every configured filter family in order.

        Order: date range, last N days, year, month, expiry week, Monday
        week, day, outlier, election type. Absent families are skipped.

        :param config: Filter configuration; None only resets.
        :returns: The engine.
        """
        self.reset()
        if config is None:
            return self

        if config.date_range is not None:
            self.filter_by_date_range(config.date_range)
        if config.last_n_days:
            self.filter_last_n_days(config.last_n_days)
        if config.year_filters is not None:
            self.apply_year_filters(config.year_filters)
        if config.month_filters is not None:
            self.apply_month_filters(config.month_filters)
        if config.expiry_week_filters is not None:
            self.apply_expiry_week_filters(config.expiry_week_filters)
        if config.monday_week_filters is not None:
            self.apply_monday_week_filters(config.monday_week_filters)
        if config.day_filters is not None:
            self.apply_day_filters(config.day_filters)
        if config.outlier_filters is not None:
            self.apply_outlier_filters(config.outlier_filters)
        self.filter_by_election_year_type(config.election_year_type)

        logger.debug("Filters kept %d of %d rows", len(self._current), len(self._original))
        return self

    # -----------------------------------------------------------------------
    # Date range
    # -----------------------------------------------------------------------

    def filter_by_date_range(self, date_range: DateRange) -> FilterEngine:
        """Keep rows with ``start <= date <= end``."""
        self._keep(lambda row: date_range.start <= row.date <= date_range.end)
        return self

    def filter_last_n_days(self, n: int) -> FilterEngine:
        """Keep the final ``n`` rows of the current view."""
        if n <= 0:
            return self
        self._current = self._current[-n:]
        return self

    # -----------------------------------------------------------------------
    # Year and month
    # -----------------------------------------------------------------------

    def apply_year_filters(self, filters: YearFilters) -> FilterEngine:
        """Filter by year direction, year kind, decade digit and explicit years.

        Decade digits run 1-10 with 10 standing for 0. An empty selection,
        or one that covers all ten digits, filters nothing.
        """
        if filters.positive_negative is not PositiveNegative.ALL:
            self._keep(lambda row: _matches_direction(row.positive_year, filters.positive_negative))

        kind = filters.even_odd
        if kind is YearKind.EVEN:
            self._keep(lambda row: is_even(row.date.year))
        elif kind is YearKind.ODD:
            self._keep(lambda row: not is_even(row.date.year))
        elif kind is YearKind.LEAP:
            self._keep(lambda row: is_leap_year(row.date.year))
        elif kind is YearKind.ELECTION:
            self._keep(lambda row: row.date.year in ELECTION_YEARS)

        if filters.decade_years:
            digits = {0 if d == 10 else d for d in filters.decade_years}
            if len(digits) < 10:
                self._keep(lambda row: row.date.year % 10 in digits)

        if filters.specific_years:
            years = set(filters.specific_years)
            self._keep(lambda row: row.date.year in years)

        return self

    def apply_month_filters(self, filters: MonthFilters) -> FilterEngine:
        """Filter by month direction, month parity and a single month."""
        if filters.positive_negative is not PositiveNegative.ALL:
            self._keep(lambda row: _matches_direction(_positive_month(row), filters.positive_negative))

        if filters.even_odd is not EvenOdd.ALL:
            self._keep(lambda row: _matches_parity(is_even(row.date.month), filters.even_odd))

        if filters.specific_month:
            self._keep(lambda row: row.date.month == filters.specific_month)

        return self

    # -----------------------------------------------------------------------
    # Weeks
    # -----------------------------------------------------------------------

    def apply_week_filters(self, filters: WeekFilters, week_type: WeekType) -> FilterEngine:
        """Filter by the week fields of one week convention.

        Daily rows are judged by their enclosing week; week rows only by
        their own convention.

        :param filters: Week filters.
        :param week_type: Convention the filters refer to.
        :returns: The engine.
        """
        checks: list[Callable[[WeekBar | WeekContext], bool]] = []

        if filters.positive_negative is not PositiveNegative.ALL:
            checks.append(lambda week: _matches_direction(week.positive_week, filters.positive_negative))

        if filters.even_odd_monthly is not EvenOdd.ALL:
            checks.append(lambda week: _matches_parity(week.even_week_number_monthly, filters.even_odd_monthly))

        if filters.specific_week_monthly:
            checks.append(lambda week: week.week_number_monthly == filters.specific_week_monthly)

        if filters.even_odd_yearly is not EvenOdd.ALL:
            checks.append(lambda week: _matches_parity(week.even_week_number_yearly, filters.even_odd_yearly))

        for check in checks:
            self._keep(lambda row, check=check: self._week_check(row, week_type, check))

        return self

    @staticmethod
    def _week_check(
        row: AnnotatedRow,
        week_type: WeekType,
        check: Callable[[WeekBar | WeekContext], bool],
    ) -> bool:
        week = _week_fields(row, week_type)
        return week is not None and check(week)

    def apply_expiry_week_filters(self, filters: WeekFilters) -> FilterEngine:
        return self.apply_week_filters(filters, WeekType.EXPIRY)

    def apply_monday_week_filters(self, filters: WeekFilters) -> FilterEngine:
        return self.apply_week_filters(filters, WeekType.MONDAY)

    # -----------------------------------------------------------------------
    # Days
    # -----------------------------------------------------------------------

    def apply_day_filters(self, filters: DayFilters) -> FilterEngine:
        """Filter by daily fields. Non-daily rows fail any active day filter."""
        checks: list[Callable[[DailyBar], bool]] = []

        if filters.positive_negative is not PositiveNegative.ALL:
            checks.append(lambda row: _matches_direction(row.positive_day, filters.positive_negative))

        if filters.weekdays:
            names = {day.value for day in filters.weekdays}
            checks.append(lambda row: row.weekday in names)

        parity_fields = (
            (filters.even_odd_calendar_monthly, "even_calendar_month_day"),
            (filters.even_odd_calendar_yearly, "even_calendar_year_day"),
            (filters.even_odd_trading_monthly, "even_trading_month_day"),
            (filters.even_odd_trading_yearly, "even_trading_year_day"),
        )
        for selector, field in parity_fields:
            if selector is not EvenOdd.ALL:
                checks.append(
                    lambda row, selector=selector, field=field: _matches_parity(getattr(row, field), selector)
                )

        if filters.specific_trading_days:
            trading_days = set(filters.specific_trading_days)
            checks.append(lambda row: row.trading_month_day in trading_days)

        if filters.specific_calendar_days:
            calendar_days = set(filters.specific_calendar_days)
            checks.append(lambda row: row.calendar_month_day in calendar_days)

        for check in checks:
            self._keep(lambda row, check=check: isinstance(row, DailyBar) and check(row))

        return self

    # -----------------------------------------------------------------------
    # Outliers and election cycle
    # -----------------------------------------------------------------------

    def apply_outlier_filters(self, filters: OutlierFilters) -> FilterEngine:
        """Drop rows whose return falls outside an enabled band.

        Rows that carry no return at a band's granularity pass that band.
        """
        for granularity, band in filters.bands():
            self._keep(lambda row, g=granularity, b=band: self._within(row, g, b))
        return self

    @staticmethod
    def _within(row: AnnotatedRow, granularity: Granularity, band: OutlierRange) -> bool:
        value = _return_for(row, granularity)
        if value is None:
            return True
        return band.min <= value <= band.max

    def filter_by_election_year_type(self, kind: ElectionYearType) -> FilterEngine:
        """Keep rows whose calendar year matches an election-cycle class."""
        if kind is ElectionYearType.ALL:
            return self
        current_year = (self._today or date.today()).year
        self._keep(lambda row: classify_election_year(row.date.year, kind, current_year))
        return self

    # -----------------------------------------------------------------------
    # Utilities
    # -----------------------------------------------------------------------

    def count(self) -> int:
        """Number of rows in the current view."""
        return len(self._current)

    def years(self) -> list[int]:
        """Distinct calendar years in the current view, ascending."""
        return sorted({row.date.year for row in self._current})

    def date_range(self) -> DateRange | None:
        """Earliest and latest dates in the current view, None when empty."""
        if not self._current:
            return None
        dates = [row.date for row in self._current]
        return DateRange(start=min(dates), end=max(dates))

    def clone(self) -> FilterEngine:
        """Copy of the engine sharing the original rows and current view."""
        cloned = FilterEngine(self._original, today=self._today)
        cloned._current = list(self._current)
        return cloned


def apply_filters(
    rows: Sequence[Row],
    config: FilterConfig | None,
    today: date | None = None,
) -> list[Row]:
    """Filter ``rows`` with ``config`` in one call."""
    return FilterEngine(rows, today=today).apply_filters(config).data


__all__ = [
    "ELECTION_YEARS",
    "REGIME_YEARS",
    "FilterEngine",
    "apply_filters",
    "classify_election_year",
]
