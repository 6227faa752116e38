"""Core type definitions for the seasonality package.

All data models use Pydantic BaseModel for automatic validation, JSON
serialization, and better error messages.
"""

from __future__ import annotations

import datetime as dt
from enum import Enum
from pathlib import Path
from typing import Annotated, Any, ClassVar, NewType

from pydantic import AliasChoices, BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

# Type aliases for domain-specific identifiers
Symbol = NewType("Symbol", str)


# ---------------------------------------------------------------------------
# Base Configuration
# ---------------------------------------------------------------------------


class FrozenModel(BaseModel):
    """Base model with frozen (immutable) configuration."""

    model_config = ConfigDict(frozen=True)


class FilterModel(BaseModel):
    """Frozen base for filter configuration.

    Fields are declared in snake_case and also accepted in camelCase so a
    request payload such as ``{"yearFilters": {"evenOdd": "Even"}}`` parses
    unchanged.
    """

    model_config = ConfigDict(
        frozen=True,
        alias_generator=to_camel,
        populate_by_name=True,
    )


# ---------------------------------------------------------------------------
# Enumerations
# ---------------------------------------------------------------------------


class Granularity(str, Enum):
    """Time bucket size of a derived series."""

    DAILY = "daily"
    MONDAY_WEEKLY = "monday_weekly"
    EXPIRY_WEEKLY = "expiry_weekly"
    MONTHLY = "monthly"
    YEARLY = "yearly"


class WeekType(str, Enum):
    """Week convention: Monday-anchored or Thursday-expiry-anchored."""

    MONDAY = "monday"
    EXPIRY = "expiry"

    @property
    def granularity(self) -> Granularity:
        """Granularity of the weekly series built with this convention."""
        if self is WeekType.MONDAY:
            return Granularity.MONDAY_WEEKLY
        return Granularity.EXPIRY_WEEKLY


class Weekday(str, Enum):
    """Weekday names as stamped on daily rows."""

    SUNDAY = "Sunday"
    MONDAY = "Monday"
    TUESDAY = "Tuesday"
    WEDNESDAY = "Wednesday"
    THURSDAY = "Thursday"
    FRIDAY = "Friday"
    SATURDAY = "Saturday"


class IngestMode(str, Enum):
    """How to treat rows with missing open/high/low prices.

    ``LENIENT`` substitutes the close price; ``STRICT`` rejects the row.
    """

    LENIENT = "lenient"
    STRICT = "strict"


class FillMethod(str, Enum):
    """Strategy for synthesising bars on missing weekdays."""

    FORWARD = "forward"
    BACKWARD = "backward"
    INTERPOLATE = "interpolate"


# ---------------------------------------------------------------------------
# Date Types
# ---------------------------------------------------------------------------


class DateRange(FrozenModel):
    """Inclusive date range.

    Also accepts ``startDate`` and ``endDate`` keys.

    :param start: First date of the range (inclusive).
    :param end: Last date of the range (inclusive).
    """

    start: dt.date = Field(validation_alias=AliasChoices("start", "startDate"))
    end: dt.date = Field(validation_alias=AliasChoices("end", "endDate"))


# ---------------------------------------------------------------------------
# Market Data Types
# ---------------------------------------------------------------------------


class Bar(FrozenModel):
    """One trading day of OHLCV data for an instrument.

    This is the structure produced by the ingestion layer and consumed by the
    derivation pipeline.

    :param symbol: Instrument symbol, if known.
    :param date: Trading date.
    :param open: Opening price.
    :param high: Highest price of the day.
    :param low: Lowest price of the day.
    :param close: Closing price.
    :param volume: Traded volume.
    :param open_interest: Open interest at the close.
    """

    symbol: Symbol | None = None
    date: dt.date
    open: float
    high: float
    low: float
    close: float
    volume: float = 0.0
    open_interest: float = 0.0


class ReturnRecord(FrozenModel):
    """Change versus the previous bucket of the same granularity.

    :param return_points: ``close - previous_close``.
    :param return_percentage: Points as a percentage of the previous close.
    :param positive: Whether ``return_points`` is strictly positive.
    """

    return_points: float = 0.0
    return_percentage: float = 0.0
    positive: bool = False


class PeriodBar(FrozenModel):
    """OHLCV reduction over every daily bar of one period bucket.

    :param date: Key date of the bucket (Monday, expiry Thursday, first of
        month or first of year).
    :param open: Open of the first bar in the bucket.
    :param high: Highest high in the bucket.
    :param low: Lowest low in the bucket.
    :param close: Close of the last bar in the bucket.
    :param volume: Summed volume.
    :param open_interest: Open interest of the last bar.
    """

    date: dt.date
    open: float
    high: float
    low: float
    close: float
    volume: float = 0.0
    open_interest: float = 0.0


class YearlyBar(PeriodBar):
    """Yearly aggregate with its own return fields."""

    granularity: ClassVar[Granularity] = Granularity.YEARLY

    even_year: bool
    return_points: float
    return_percentage: float
    positive_year: bool


class MonthlyBar(PeriodBar):
    """Monthly aggregate with its own return and the owning year's context."""

    granularity: ClassVar[Granularity] = Granularity.MONTHLY

    even_month: bool
    return_points: float
    return_percentage: float
    positive_month: bool
    even_year: bool
    yearly_return_points: float = 0.0
    yearly_return_percentage: float = 0.0
    positive_year: bool = False


class WeekBar(PeriodBar):
    """Weekly aggregate for one week convention.

    Both week series share this field set and are told apart by
    ``week_type``.
    """

    week_type: WeekType
    weekday: str
    week_number_monthly: int
    week_number_yearly: int
    even_week_number_monthly: bool
    even_week_number_yearly: bool
    return_points: float
    return_percentage: float
    positive_week: bool
    even_month: bool
    monthly_return_points: float = 0.0
    monthly_return_percentage: float = 0.0
    positive_month: bool = False
    even_year: bool
    yearly_return_points: float = 0.0
    yearly_return_percentage: float = 0.0
    positive_year: bool = False

    @property
    def granularity(self) -> Granularity:
        return self.week_type.granularity


class WeekContext(FrozenModel):
    """Fields a daily row inherits from its enclosing week.

    Defaults describe a lookup miss: no week numbers, false flags, zero
    returns.

    :param week_type: Week convention this context belongs to.
    :param week_date: Key date of the enclosing week bucket.
    :param week_number_monthly: Week counter within the month.
    :param week_number_yearly: Week counter within the year.
    :param even_week_number_monthly: Parity of the monthly counter.
    :param even_week_number_yearly: Parity of the yearly counter.
    :param return_points: Week return in points.
    :param return_percentage: Week return in percent.
    :param positive_week: Whether the week closed higher.
    """

    week_type: WeekType
    week_date: dt.date
    week_number_monthly: int | None = None
    week_number_yearly: int | None = None
    even_week_number_monthly: bool = False
    even_week_number_yearly: bool = False
    return_points: float = 0.0
    return_percentage: float = 0.0
    positive_week: bool = False


class DailyBar(Bar):
    """Daily bar stamped with same-day and cross-period fields."""

    granularity: ClassVar[Granularity] = Granularity.DAILY

    weekday: str
    calendar_month_day: int
    calendar_year_day: int
    even_calendar_month_day: bool
    even_calendar_year_day: bool
    return_points: float
    return_percentage: float
    positive_day: bool
    monday_week: WeekContext
    expiry_week: WeekContext
    even_month: bool
    monthly_return_points: float = 0.0
    monthly_return_percentage: float = 0.0
    positive_month: bool = False
    even_year: bool
    yearly_return_points: float = 0.0
    yearly_return_percentage: float = 0.0
    positive_year: bool = False
    trading_month_day: int = 0
    trading_year_day: int = 0
    even_trading_month_day: bool = False
    even_trading_year_day: bool = False

    def week(self, week_type: WeekType) -> WeekContext:
        """Return the enclosing week context for a week convention."""
        if week_type is WeekType.MONDAY:
            return self.monday_week
        return self.expiry_week


AnnotatedRow = DailyBar | WeekBar | MonthlyBar | YearlyBar


class AnnotatedSeries(FrozenModel):
    """The five annotated series produced by one pipeline run.

    :param daily: Daily rows.
    :param monday_weekly: Monday-anchored week rows.
    :param expiry_weekly: Expiry-Thursday-anchored week rows.
    :param monthly: Month rows.
    :param yearly: Year rows.
    """

    daily: list[DailyBar] = Field(default_factory=list)
    monday_weekly: list[WeekBar] = Field(default_factory=list)
    expiry_weekly: list[WeekBar] = Field(default_factory=list)
    monthly: list[MonthlyBar] = Field(default_factory=list)
    yearly: list[YearlyBar] = Field(default_factory=list)

    def weekly(self, week_type: WeekType) -> list[WeekBar]:
        """Get the week series for a week convention."""
        if week_type is WeekType.MONDAY:
            return self.monday_weekly
        return self.expiry_weekly

    def series(self, granularity: Granularity) -> list[AnnotatedRow]:
        """Get the series for a granularity."""
        mapping: dict[Granularity, list] = {
            Granularity.DAILY: self.daily,
            Granularity.MONDAY_WEEKLY: self.monday_weekly,
            Granularity.EXPIRY_WEEKLY: self.expiry_weekly,
            Granularity.MONTHLY: self.monthly,
            Granularity.YEARLY: self.yearly,
        }
        return mapping[granularity]

    def is_empty(self) -> bool:
        return not self.daily


# ---------------------------------------------------------------------------
# Filter Configuration Types
# ---------------------------------------------------------------------------


class PositiveNegative(str, Enum):
    """Direction selector; ``ALL`` disables the filter."""

    ALL = "All"
    POSITIVE = "Positive"
    NEGATIVE = "Negative"


class EvenOdd(str, Enum):
    """Parity selector; ``ALL`` disables the filter."""

    ALL = "All"
    EVEN = "Even"
    ODD = "Odd"


class YearKind(str, Enum):
    """Calendar-year classification selector."""

    ALL = "All"
    EVEN = "Even"
    ODD = "Odd"
    LEAP = "Leap"
    ELECTION = "Election"


class ElectionYearType(str, Enum):
    """Position of a year within the election cycle."""

    ALL = "All"
    ELECTION = "Election"
    PRE_ELECTION = "PreElection"
    POST_ELECTION = "PostElection"
    MID_ELECTION = "MidElection"
    REGIME = "Regime"
    CURRENT = "Current"


class YearFilters(FilterModel):
    """Year-level filters.

    :param positive_negative: Keep rows whose year closed up or down.
    :param even_odd: Keep even, odd, leap or election calendar years.
    :param decade_years: Allowed last digits of the year, 1-10 (10 means 0).
    :param specific_years: Allowed calendar years.
    """

    positive_negative: PositiveNegative = PositiveNegative.ALL
    even_odd: YearKind = YearKind.ALL
    decade_years: list[Annotated[int, Field(ge=0, le=10)]] | None = None
    specific_years: list[int] | None = None


class MonthFilters(FilterModel):
    """Month-level filters.

    :param positive_negative: Keep rows whose month closed up or down.
    :param even_odd: Keep even or odd month numbers.
    :param specific_month: Keep a single month (1-12); 0 disables.
    """

    positive_negative: PositiveNegative = PositiveNegative.ALL
    even_odd: EvenOdd = EvenOdd.ALL
    specific_month: int | None = Field(default=None, ge=0, le=12)


class WeekFilters(FilterModel):
    """Week-level filters, applied to one week convention at a time.

    :param positive_negative: Keep rows whose week closed up or down.
    :param even_odd_monthly: Parity of the week number within the month.
    :param specific_week_monthly: Exact week number within the month; 0 disables.
    :param even_odd_yearly: Parity of the week number within the year.
    """

    positive_negative: PositiveNegative = PositiveNegative.ALL
    even_odd_monthly: EvenOdd = EvenOdd.ALL
    specific_week_monthly: int | None = Field(default=None, ge=0)
    even_odd_yearly: EvenOdd = EvenOdd.ALL


class DayFilters(FilterModel):
    """Day-level filters.

    :param positive_negative: Keep up or down days.
    :param weekdays: Allowed weekday names.
    :param even_odd_calendar_monthly: Parity of the calendar day of month.
    :param even_odd_calendar_yearly: Parity of the calendar day of year.
    :param even_odd_trading_monthly: Parity of the trading day of month.
    :param even_odd_trading_yearly: Parity of the trading day of year.
    :param specific_trading_days: Allowed trading days of month.
    :param specific_calendar_days: Allowed calendar days of month.
    """

    positive_negative: PositiveNegative = PositiveNegative.ALL
    weekdays: list[Weekday] | None = None
    even_odd_calendar_monthly: EvenOdd = EvenOdd.ALL
    even_odd_calendar_yearly: EvenOdd = EvenOdd.ALL
    even_odd_trading_monthly: EvenOdd = EvenOdd.ALL
    even_odd_trading_yearly: EvenOdd = EvenOdd.ALL
    specific_trading_days: list[int] | None = None
    specific_calendar_days: list[int] | None = None


class OutlierRange(FilterModel):
    """Allowed return-percentage band for one granularity.

    :param enabled: Whether the band is enforced.
    :param min: Lowest allowed return percentage (inclusive).
    :param max: Highest allowed return percentage (inclusive).
    """

    enabled: bool = False
    min: float = float("-inf")
    max: float = float("inf")


class OutlierFilters(FilterModel):
    """Outlier bands per granularity."""

    daily: OutlierRange | None = None
    monday_weekly: OutlierRange | None = None
    expiry_weekly: OutlierRange | None = None
    monthly: OutlierRange | None = None
    yearly: OutlierRange | None = None

    def bands(self) -> list[tuple[Granularity, OutlierRange]]:
        """Enabled bands in evaluation order."""
        candidates = [
            (Granularity.DAILY, self.daily),
            (Granularity.MONDAY_WEEKLY, self.monday_weekly),
            (Granularity.EXPIRY_WEEKLY, self.expiry_weekly),
            (Granularity.MONTHLY, self.monthly),
            (Granularity.YEARLY, self.yearly),
        ]
        return [(g, band) for g, band in candidates if band is not None and band.enabled]


class FilterConfig(FilterModel):
    """Declarative filter configuration; every part is optional.

    :param date_range: Inclusive date bounds.
    :param last_n_days: Keep only the final N rows.
    :param year_filters: Year-level filters.
    :param month_filters: Month-level filters.
    :param expiry_week_filters: Filters on the expiry-week context.
    :param monday_week_filters: Filters on the Monday-week context.
    :param day_filters: Day-level filters.
    :param outlier_filters: Return-percentage bands.
    :param election_year_type: Election-cycle classification.
    """

    date_range: DateRange | None = None
    last_n_days: int | None = Field(default=None, ge=0)
    year_filters: YearFilters | None = None
    month_filters: MonthFilters | None = None
    expiry_week_filters: WeekFilters | None = None
    monday_week_filters: WeekFilters | None = None
    day_filters: DayFilters | None = None
    outlier_filters: OutlierFilters | None = None
    election_year_type: ElectionYearType = ElectionYearType.ALL


# ---------------------------------------------------------------------------
# Command Configuration Types
# ---------------------------------------------------------------------------


class QualityGate(FrozenModel):
    """Quality-check settings of the annotate command.

    :param enabled: Run the quality check before deriving.
    :param fail_on_invalid: Abort when the report is not valid.
    :param max_gap_days: Largest tolerated calendar gap.
    :param outlier_threshold: Z-score above which a return is an outlier.
    """

    enabled: bool = True
    fail_on_invalid: bool = False
    max_gap_days: int = 5
    outlier_threshold: float = 3.0


class AnnotateConfig(FrozenModel):
    """Configuration for the annotate command.

    :param data_source: Source type ("csv" or "yahoo").
    :param source_params: Source-specific parameters.
    :param symbols: Symbols to annotate (empty = all symbols in the source).
    :param date_range: Inclusive date range to load, None for everything.
    :param quality: Quality-check settings.
    :param fill_method: Fill short weekday gaps before deriving, None to skip.
    :param output_dir: Directory receiving one folder of CSVs per symbol.
    :param log_level: Logging level.
    """

    data_source: str
    source_params: dict[str, Any] = Field(default_factory=dict)
    symbols: list[Symbol] = Field(default_factory=list)
    date_range: DateRange | None = None
    quality: QualityGate = Field(default_factory=QualityGate)
    fill_method: FillMethod | None = None
    output_dir: Path
    log_level: str = "INFO"


class FilterRunConfig(FrozenModel):
    """Configuration for the filter command.

    :param data_source: Source type ("csv" or "yahoo").
    :param source_params: Source-specific parameters.
    :param symbol: Symbol to analyse; may be omitted when the source holds one.
    :param date_range: Inclusive date range to load, None for everything.
    :param granularity: Annotated series the filters run over.
    :param filters: Filter configuration.
    :param group_by: Row attribute to group statistics by, if any.
    :param output_path: CSV file receiving the filtered rows, if any.
    :param today: Date the ``Current`` election filter compares against.
    :param log_level: Logging level.
    """

    data_source: str
    source_params: dict[str, Any] = Field(default_factory=dict)
    symbol: Symbol | None = None
    date_range: DateRange | None = None
    granularity: Granularity = Granularity.DAILY
    filters: FilterConfig = Field(default_factory=FilterConfig)
    group_by: str | None = None
    output_path: Path | None = None
    today: dt.date | None = None
    log_level: str = "INFO"


# ---------------------------------------------------------------------------
# Exports
# ---------------------------------------------------------------------------

__all__ = [
    # Type aliases
    "Symbol",
    "AnnotatedRow",
    # Base models
    "FrozenModel",
    "FilterModel",
    # Enums
    "Granularity",
    "WeekType",
    "Weekday",
    "IngestMode",
    "FillMethod",
    # Date
    "DateRange",
    # Market data
    "Bar",
    "ReturnRecord",
    "PeriodBar",
    "YearlyBar",
    "MonthlyBar",
    "WeekBar",
    "WeekContext",
    "DailyBar",
    "AnnotatedSeries",
    # Filter configuration
    "PositiveNegative",
    "EvenOdd",
    "YearKind",
    "ElectionYearType",
    "YearFilters",
    "MonthFilters",
    "WeekFilters",
    "DayFilters",
    "OutlierRange",
    "OutlierFilters",
    "FilterConfig",
    # Command configuration
    "QualityGate",
    "AnnotateConfig",
    "FilterRunConfig",
]
