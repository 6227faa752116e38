"""Data quality checks for daily price rows.

Every check is pure and returns a report; nothing here raises on bad data,
so a caller can decide whether to proceed with partial input.

Rows are mappings keyed by column name (aliases are resolved) or
:class:`~seasonality.types.Bar` objects.
"""

from __future__ import annotations

import datetime as dt
import logging
from enum import Enum
from typing import Any, Iterable, Mapping, Sequence

import numpy as np

from seasonality.data.transforms import (COLUMN_ALIASES, normalize_column_name,
                                         normalize_row, parse_date,
                                         parse_number)
from seasonality.types import Bar, DateRange, FrozenModel

logger = logging.getLogger(__name__)

# Caps on the detail lists kept in reports
MAX_ISSUE_DETAILS = 100
MAX_FINDING_DETAILS = 50

DEFAULT_MAX_GAP_DAYS = 5
DEFAULT_OUTLIER_THRESHOLD = 3.0

PRICE_FIELDS = ("open", "high", "low", "close")


class CsvLayout(str, Enum):
    """Known input layouts and the columns each requires."""

    DAILY = "daily"
    OHLCV = "ohlcv"
    SEASONALITY = "seasonality"


REQUIRED_COLUMNS: dict[CsvLayout, tuple[str, ...]] = {
    CsvLayout.DAILY: ("date", "open", "high", "low", "close"),
    CsvLayout.OHLCV: ("date", "open", "high", "low", "close", "volume"),
    CsvLayout.SEASONALITY: ("date", "symbol", "open", "high", "low", "close"),
}


# ---------------------------------------------------------------------------
# Report Types
# ---------------------------------------------------------------------------


class ColumnValidation(FrozenModel):
    """Result of checking the header row.

    :param valid: True when no required column is missing.
    :param missing_columns: Required columns absent after normalisation.
    :param normalized_headers: Headers after alias resolution.
    """

    valid: bool
    missing_columns: list[str]
    normalized_headers: list[str]


class RowIssue(FrozenModel):
    """A single error or warning about a row.

    :param row_number: 1-based row position.
    :param field: Column the issue concerns, if any.
    :param message: Human-readable description.
    """

    row_number: int
    field: str | None = None
    message: str


class RowValidation(FrozenModel):
    """Errors and warnings for one row."""

    row_number: int
    errors: list[RowIssue]
    warnings: list[RowIssue]

    @property
    def valid(self) -> bool:
        return not self.errors


class DatasetValidation(FrozenModel):
    """Row validation summary for a whole dataset.

    Issue lists are capped at ``MAX_ISSUE_DETAILS``; the totals are not.
    """

    valid: bool
    total_rows: int
    valid_rows: int
    invalid_rows: int
    total_errors: int
    total_warnings: int
    errors: list[RowIssue]
    warnings: list[RowIssue]


class DuplicateDate(FrozenModel):
    """A repeated ``(symbol, date)`` key.

    :param symbol: Symbol of the rows, None when symbols are not compared.
    :param date: The repeated date.
    :param first_row_number: 1-based row of the first occurrence.
    :param duplicate_row_number: 1-based row of the repeat.
    """

    symbol: str | None
    date: dt.date
    first_row_number: int
    duplicate_row_number: int


class DuplicateReport(FrozenModel):
    duplicate_count: int
    duplicates: list[DuplicateDate]

    @property
    def has_duplicates(self) -> bool:
        return self.duplicate_count > 0


class DateGap(FrozenModel):
    """Consecutive dates further apart than the allowed gap.

    :param from_date: Last date before the gap.
    :param to_date: First date after the gap.
    :param gap_days: Calendar days between the two dates.
    :param index: 0-based position of ``to_date`` in the sorted dates.
    """

    from_date: dt.date
    to_date: dt.date
    gap_days: int
    index: int


class GapReport(FrozenModel):
    gap_count: int
    gaps: list[DateGap]
    max_gap_days: int

    @property
    def has_gaps(self) -> bool:
        return self.gap_count > 0


class OutlierPoint(FrozenModel):
    """A day whose close-to-close return is an outlier.

    :param date: Date of the row, if parseable.
    :param return_percentage: Day-over-day return in percent.
    :param z_score: Absolute z-score of that return.
    :param index: 0-based position of the row in the input.
    """

    date: dt.date | None
    return_percentage: float
    z_score: float
    index: int


class OutlierReport(FrozenModel):
    """Z-score outliers plus the statistics they were measured against."""

    outlier_count: int
    outliers: list[OutlierPoint]
    mean: float
    std_dev: float
    threshold: float

    @property
    def has_outliers(self) -> bool:
        return self.outlier_count > 0


class QualityReport(FrozenModel):
    """Combined result of every quality check.

    :param overall_valid: No row errors and no duplicate dates.
    :param total_rows: Number of input rows.
    :param date_range: First and last parseable dates.
    """

    overall_valid: bool
    total_rows: int
    date_range: DateRange | None
    validation: DatasetValidation
    duplicates: DuplicateReport
    gaps: GapReport
    outliers: OutlierReport


# ---------------------------------------------------------------------------
# Checks
# ---------------------------------------------------------------------------


def _as_mapping(row: Mapping[str, Any] | Bar) -> dict[str, Any]:
    if isinstance(row, Bar):
        return row.model_dump()
    return normalize_row(row)


def validate_required_columns(
    headers: Sequence[str],
    layout: CsvLayout = CsvLayout.DAILY,
) -> ColumnValidation:
    """Check that every column the layout needs is present.

    :param headers: Raw header names.
    :param layout: Expected layout.
    """
    normalized = [normalize_column_name(h) for h in headers]
    missing = [col for col in REQUIRED_COLUMNS[layout] if col not in normalized]
    return ColumnValidation(
        valid=not missing,
        missing_columns=missing,
        normalized_headers=normalized,
    )


def validate_row(row: Mapping[str, Any] | Bar, row_number: int) -> RowValidation:
    """Validate one row.

    Errors: missing or unparseable date, non-numeric price, ``high < low``.
    Warnings: negative prices, open or close outside ``[low, high]``, bad or
    negative volume.
    """
    data = _as_mapping(row)
    errors: list[RowIssue] = []
    warnings: list[RowIssue] = []

    def error(field: str | None, message: str) -> None:
        errors.append(RowIssue(row_number=row_number, field=field, message=f"Row {row_number}: {message}"))

    def warn(field: str | None, message: str) -> None:
        warnings.append(RowIssue(row_number=row_number, field=field, message=f"Row {row_number}: {message}"))

    raw_date = data.get("date")
    if raw_date is None or (isinstance(raw_date, str) and not raw_date.strip()):
        error("date", "Missing date")
    elif parse_date(raw_date) is None:
        error("date", f'Invalid date format "{raw_date}"')

    prices: dict[str, float | None] = {}
    for field in PRICE_FIELDS:
        value = parse_number(data.get(field), default=None)
        prices[field] = value
        if value is None:
            error(field, f'Invalid {field} value "{data.get(field)}"')
        elif value < 0:
            warn(field, f"Negative {field} value {value}")

    open_, high, low, close = (prices[f] for f in PRICE_FIELDS)

    if high is not None and low is not None and high < low:
        error("high", f"High ({high}) is less than Low ({low})")
    if open_ is not None and high is not None and open_ > high:
        warn("open", f"Open ({open_}) is greater than High ({high})")
    if open_ is not None and low is not None and open_ < low:
        warn("open", f"Open ({open_}) is less than Low ({low})")
    if close is not None and high is not None and close > high:
        warn("close", f"Close ({close}) is greater than High ({high})")
    if close is not None and low is not None and close < low:
        warn("close", f"Close ({close}) is less than Low ({low})")

    raw_volume = data.get("volume")
    if raw_volume is not None and raw_volume != "":
        volume = parse_number(raw_volume, default=None)
        if volume is None:
            warn("volume", f'Invalid volume value "{raw_volume}"')
        elif volume < 0:
            warn("volume", f"Negative volume {volume}")

    return RowValidation(row_number=row_number, errors=errors, warnings=warnings)


def validate_dataset(rows: Sequence[Mapping[str, Any] | Bar]) -> DatasetValidation:
    """Validate every row and summarise the result."""
    all_errors: list[RowIssue] = []
    all_warnings: list[RowIssue] = []
    valid_rows = 0

    for row_number, row in enumerate(rows, start=1):
        result = validate_row(row, row_number)
        if result.valid:
            valid_rows += 1
        all_errors.extend(result.errors)
        all_warnings.extend(result.warnings)

    invalid_rows = len(rows) - valid_rows
    return DatasetValidation(
        valid=invalid_rows == 0,
        total_rows=len(rows),
        valid_rows=valid_rows,
        invalid_rows=invalid_rows,
        total_errors=len(all_errors),
        total_warnings=len(all_warnings),
        errors=all_errors[:MAX_ISSUE_DETAILS],
        warnings=all_warnings[:MAX_ISSUE_DETAILS],
    )


def find_duplicate_dates(
    rows: Sequence[Mapping[str, Any] | Bar],
    symbol_field: str | None = None,
) -> DuplicateReport:
    """Report every repeated ``(symbol, date)`` key.

    :param rows: Input rows; rows with an unparseable date are ignored.
    :param symbol_field: Column holding the symbol, or None to compare dates
        only.
    """
    seen: dict[tuple[str | None, dt.date], int] = {}
    duplicates: list[DuplicateDate] = []

    for row_number, row in enumerate(rows, start=1):
        data = _as_mapping(row)
        row_date = parse_date(data.get("date"))
        if row_date is None:
            continue
        symbol = None
        if symbol_field is not None:
            raw_symbol = data.get(normalize_column_name(symbol_field))
            symbol = str(raw_symbol) if raw_symbol is not None else None
        key = (symbol, row_date)

        if key in seen:
            duplicates.append(
                DuplicateDate(
                    symbol=symbol,
                    date=row_date,
                    first_row_number=seen[key],
                    duplicate_row_number=row_number,
                )
            )
        else:
            seen[key] = row_number

    return DuplicateReport(
        duplicate_count=len(duplicates),
        duplicates=duplicates[:MAX_FINDING_DETAILS],
    )


def find_date_gaps(
    rows: Sequence[Mapping[str, Any] | Bar],
    max_gap_days: int = DEFAULT_MAX_GAP_DAYS,
) -> GapReport:
    """Report consecutive dates more than ``max_gap_days`` apart.

    The default of five days tolerates weekends and short holidays. Gaps are
    only reported; see :func:`seasonality.data.transforms.fill_missing_dates`
    to fill them.
    """
    dates = sorted(
        d for d in (parse_date(_as_mapping(row).get("date")) for row in rows) if d is not None
    )

    gaps: list[DateGap] = []
    for index in range(1, len(dates)):
        gap_days = (dates[index] - dates[index - 1]).days
        if gap_days > max_gap_days:
            gaps.append(
                DateGap(
                    from_date=dates[index - 1],
                    to_date=dates[index],
                    gap_days=gap_days,
                    index=index,
                )
            )

    return GapReport(
        gap_count=len(gaps),
        gaps=gaps[:MAX_FINDING_DETAILS],
        max_gap_days=max_gap_days,
    )


def detect_outliers(
    rows: Sequence[Mapping[str, Any] | Bar],
    threshold: float = DEFAULT_OUTLIER_THRESHOLD,
) -> OutlierReport:
    """Flag day-over-day close returns whose z-score exceeds ``threshold``.

    Mean and standard deviation are taken over all returns of the series
    (population standard deviation). A series with no spread has no
    outliers.
    """
    mappings = [_as_mapping(row) for row in rows]

    positions: list[int] = []
    returns: list[float] = []
    for index in range(1, len(mappings)):
        previous_close = parse_number(mappings[index - 1].get("close"), default=None)
        close = parse_number(mappings[index].get("close"), default=None)
        if previous_close is None or close is None or previous_close <= 0:
            continue
        positions.append(index)
        returns.append((close - previous_close) / previous_close * 100)

    if not returns:
        return OutlierReport(outlier_count=0, outliers=[], mean=0.0, std_dev=0.0, threshold=threshold)

    values = np.asarray(returns, dtype=float)
    mean = float(np.mean(values))
    std_dev = float(np.std(values))

    outliers: list[OutlierPoint] = []
    if std_dev > 0 and np.isfinite(std_dev):
        z_scores = np.abs((values - mean) / std_dev)
        for position, value, z_score in zip(positions, returns, z_scores):
            if z_score > threshold:
                outliers.append(
                    OutlierPoint(
                        date=parse_date(mappings[position].get("date")),
                        return_percentage=round(value, 2),
                        z_score=round(float(z_score), 2),
                        index=position,
                    )
                )

    return OutlierReport(
        outlier_count=len(outliers),
        outliers=outliers[:MAX_FINDING_DETAILS],
        mean=round(mean, 4),
        std_dev=round(std_dev, 4),
        threshold=threshold,
    )


def _sort_by_date(rows: Iterable[Mapping[str, Any] | Bar]) -> list[dict[str, Any]]:
    mappings = [_as_mapping(row) for row in rows]
    # Unparseable dates sort last so they still show up in row validation
    return sorted(
        mappings,
        key=lambda data: (parse_date(data.get("date")) is None, parse_date(data.get("date")) or dt.date.min),
    )


def run_quality_check(
    rows: Sequence[Mapping[str, Any] | Bar],
    symbol_field: str | None = None,
    max_gap_days: int = DEFAULT_MAX_GAP_DAYS,
    outlier_threshold: float = DEFAULT_OUTLIER_THRESHOLD,
) -> QualityReport:
    """Run every check on the date-sorted rows.

    :param rows: Input rows.
    :param symbol_field: Column used with the date as the duplicate key.
    :param max_gap_days: Largest tolerated calendar gap.
    :param outlier_threshold: Z-score above which a return is an outlier.
    :returns: Combined report. Row numbers refer to the sorted order.
    """
    sorted_rows = _sort_by_date(rows)

    validation = validate_dataset(sorted_rows)
    duplicates = find_duplicate_dates(sorted_rows, symbol_field)
    gaps = find_date_gaps(sorted_rows, max_gap_days)
    outliers = detect_outliers(sorted_rows, outlier_threshold)

    dates = [d for d in (parse_date(row.get("date")) for row in sorted_rows) if d is not None]
    date_range = DateRange(start=dates[0], end=dates[-1]) if dates else None

    report = QualityReport(
        overall_valid=validation.valid and not duplicates.has_duplicates,
        total_rows=len(sorted_rows),
        date_range=date_range,
        validation=validation,
        duplicates=duplicates,
        gaps=gaps,
        outliers=outliers,
    )

    logger.info(
        "Quality check: %d rows, %d invalid, %d duplicates, %d gaps, %d outliers",
        report.total_rows,
        validation.invalid_rows,
        duplicates.duplicate_count,
        gaps.gap_count,
        outliers.outlier_count,
    )
    return report


__all__ = [
    "COLUMN_ALIASES",
    "CsvLayout",
    "REQUIRED_COLUMNS",
    "normalize_column_name",
    "ColumnValidation",
    "RowIssue",
    "RowValidation",
    "DatasetValidation",
    "DuplicateDate",
    "DuplicateReport",
    "DateGap",
    "GapReport",
    "OutlierPoint",
    "OutlierReport",
    "QualityReport",
    "validate_required_columns",
    "validate_row",
    "validate_dataset",
    "find_duplicate_dates",
    "find_date_gaps",
    "detect_outliers",
    "run_quality_check",
]
