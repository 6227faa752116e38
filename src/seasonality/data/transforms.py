"""Row transforms between raw tabular data and :class:`Bar` objects.

Covers column-name normalisation, strict date parsing, lenient number
parsing, per-row conversion, deduplication and optional gap filling. Gap
filling only happens when a caller asks for it.
"""

from __future__ import annotations

import logging
import re
from datetime import date, datetime, timedelta
from typing import Any, Iterable, Mapping, Sequence

from seasonality.exceptions import DataValidationError
from seasonality.types import Bar, FillMethod, FrozenModel, IngestMode, Symbol

logger = logging.getLogger(__name__)

# Canonical names for common column spellings (keys are lower-cased)
COLUMN_ALIASES: dict[str, str] = {
    "ticker": "symbol",
    "timestamp": "date",
    "oi": "open_interest",
    "openinterest": "open_interest",
    "open interest": "open_interest",
    "vol": "volume",
    "o": "open",
    "h": "high",
    "l": "low",
    "c": "close",
    "v": "volume",
}

# Accepted date shapes; day-first forms are tried before ISO
_DMY_DASH = re.compile(r"^(\d{1,2})-(\d{1,2})-(\d{4})$")
_DMY_SLASH = re.compile(r"^(\d{1,2})/(\d{1,2})/(\d{4})$")
_YMD_DASH = re.compile(r"^(\d{4})-(\d{1,2})-(\d{1,2})$")

MIN_YEAR = 1900
MAX_YEAR = 2100


class TransformIssue(FrozenModel):
    """A row that could not be turned into a bar.

    :param row_number: 1-based position of the row in the input.
    :param error: Why the row was rejected.
    """

    row_number: int
    error: str


class TransformResult(FrozenModel):
    """Outcome of converting a raw dataset.

    :param bars: Successfully converted bars, in input order.
    :param errors: Rejected rows.
    :param total: Number of input rows.
    :param skipped: Number of rows dropped.
    """

    bars: list[Bar]
    errors: list[TransformIssue]
    total: int
    skipped: int


def normalize_column_name(name: str) -> str:
    """Lower-case, trim and resolve aliases for a column header."""
    lower = name.strip().lower()
    return COLUMN_ALIASES.get(lower, lower)


def normalize_row(raw: Mapping[str, Any]) -> dict[str, Any]:
    """Return a copy of ``raw`` keyed by normalised column names."""
    return {normalize_column_name(str(key)): value for key, value in raw.items()}


def parse_date(value: Any) -> date | None:
    """Parse a date in ``DD-MM-YYYY``, ``DD/MM/YYYY`` or ``YYYY-MM-DD`` form.

    ``date`` and ``datetime`` values pass through. Anything else, including
    out-of-range components, yields None; there is no fuzzy fallback.
    """
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if value is None:
        return None

    text = str(value).strip()
    if not text:
        return None

    for pattern, order in ((_DMY_DASH, "dmy"), (_DMY_SLASH, "dmy"), (_YMD_DASH, "ymd")):
        match = pattern.match(text)
        if not match:
            continue
        first, second, third = (int(part) for part in match.groups())
        if order == "dmy":
            day, month, year = first, second, third
        else:
            year, month, day = first, second, third
        if not MIN_YEAR <= year <= MAX_YEAR:
            return None
        try:
            return date(year, month, day)
        except ValueError:
            return None

    return None


def parse_number(value: Any, default: float | None = 0.0) -> float | None:
    """Parse a number, stripping thousands separators.

    :param value: Raw cell value.
    :param default: Returned for empty or unparseable input.
    """
    if value is None:
        return default
    if isinstance(value, bool):
        return float(value)
    if isinstance(value, (int, float)):
        return float(value)

    cleaned = str(value).replace(",", "").strip()
    if not cleaned:
        return default
    try:
        return float(cleaned)
    except ValueError:
        return default


def row_symbol(row: Mapping[str, Any], default_symbol: str | None = None) -> str | None:
    """Upper-cased symbol of a normalised row, falling back to ``default_symbol``."""
    symbol = str(row.get("symbol") or "").strip().upper()
    return symbol or (default_symbol or "").strip().upper() or None


def transform_row(
    raw: Mapping[str, Any],
    mode: IngestMode = IngestMode.LENIENT,
    default_symbol: str | None = None,
) -> Bar:
    """Convert one raw row into a bar.

    :param raw: Row keyed by column header (any alias spelling).
    :param mode: Missing open/high/low handling.
    :param default_symbol: Symbol used when the row carries none.
    :returns: The parsed bar.
    :raises DataValidationError: If the date or close is missing or invalid,
        or a price is missing in strict mode.
    """
    row = normalize_row(raw)

    row_date = parse_date(row.get("date"))
    if row_date is None:
        raise DataValidationError("Invalid or missing date")

    close = parse_number(row.get("close"), default=None)
    if close is None or close <= 0:
        raise DataValidationError("Invalid or missing close price")

    prices: dict[str, float] = {}
    for field in ("open", "high", "low"):
        value = parse_number(row.get(field), default=None)
        if not value:
            if mode is IngestMode.STRICT:
                raise DataValidationError(f"Invalid or missing {field} price")
            value = close
        prices[field] = value

    symbol = row_symbol(row, default_symbol)

    return Bar(
        symbol=Symbol(symbol) if symbol else None,
        date=row_date,
        open=prices["open"],
        high=prices["high"],
        low=prices["low"],
        close=close,
        volume=parse_number(row.get("volume"), default=0.0),
        open_interest=parse_number(row.get("open_interest"), default=0.0),
    )


def transform_dataset(
    raw_rows: Iterable[Mapping[str, Any]],
    mode: IngestMode = IngestMode.LENIENT,
    default_symbol: str | None = None,
    skip_invalid: bool = True,
) -> TransformResult:
    """Convert raw rows into bars, collecting rejected rows.

    :param raw_rows: Rows keyed by column header.
    :param mode: Missing open/high/low handling.
    :param default_symbol: Symbol for rows that carry none.
    :param skip_invalid: Collect and skip bad rows instead of raising.
    :returns: Converted bars plus per-row errors.
    :raises DataValidationError: On the first bad row when ``skip_invalid``
        is False.
    """
    bars: list[Bar] = []
    errors: list[TransformIssue] = []
    total = 0

    for row_number, raw in enumerate(raw_rows, start=1):
        total += 1
        try:
            bars.append(transform_row(raw, mode=mode, default_symbol=default_symbol))
        except DataValidationError as e:
            if not skip_invalid:
                raise DataValidationError(f"Row {row_number}: {e}") from e
            errors.append(TransformIssue(row_number=row_number, error=str(e)))

    if errors:
        logger.warning("Skipped %d of %d rows during transform", len(errors), total)

    return TransformResult(bars=bars, errors=errors, total=total, skipped=len(errors))


def group_by_symbol(bars: Iterable[Bar]) -> dict[str, list[Bar]]:
    """Split bars per symbol, each list sorted by date.

    Bars without a symbol are grouped under ``"UNKNOWN"``.
    """
    groups: dict[str, list[Bar]] = {}
    for bar in bars:
        groups.setdefault(bar.symbol or "UNKNOWN", []).append(bar)
    for rows in groups.values():
        rows.sort(key=lambda bar: bar.date)
    return groups


def deduplicate_by_date(bars: Iterable[Bar]) -> list[Bar]:
    """Keep the last bar seen for each date, sorted ascending by date."""
    latest: dict[date, Bar] = {}
    for bar in bars:
        latest[bar.date] = bar
    return sorted(latest.values(), key=lambda bar: bar.date)


def fill_missing_dates(
    bars: Sequence[Bar],
    method: FillMethod = FillMethod.FORWARD,
    max_gap_days: int = 5,
) -> list[Bar]:
    """Insert synthetic weekday bars into short gaps of a sorted series.

    Gaps longer than ``max_gap_days`` calendar days are left alone, as are
    Saturdays and Sundays inside a gap.

    :param bars: Date-sorted bars.
    :param method: Copy the previous bar, copy the next bar, or interpolate
        open and close linearly.
    :param max_gap_days: Longest gap (in calendar days) that gets filled.
    :returns: A new list including the synthetic bars.
    """
    if len(bars) < 2:
        return list(bars)

    filled: list[Bar] = [bars[0]]
    for previous, current in zip(bars, bars[1:]):
        gap_days = (current.date - previous.date).days
        if 1 < gap_days <= max_gap_days:
            for offset in range(1, gap_days):
                fill_date = previous.date + timedelta(days=offset)
                if fill_date.weekday() >= 5:
                    continue
                filled.append(_fill_bar(previous, current, fill_date, offset / gap_days, method))
        filled.append(current)

    return filled


def _fill_bar(
    previous: Bar,
    current: Bar,
    fill_date: date,
    ratio: float,
    method: FillMethod,
) -> Bar:
    if method is FillMethod.FORWARD:
        return previous.model_copy(update={"date": fill_date})
    if method is FillMethod.BACKWARD:
        return current.model_copy(update={"date": fill_date})
    return Bar(
        symbol=current.symbol,
        date=fill_date,
        open=previous.open + (current.open - previous.open) * ratio,
        high=max(previous.high, current.high),
        low=min(previous.low, current.low),
        close=previous.close + (current.close - previous.close) * ratio,
        volume=0.0,
        open_interest=previous.open_interest,
    )


__all__ = [
    "COLUMN_ALIASES",
    "IngestMode",
    "FillMethod",
    "TransformIssue",
    "TransformResult",
    "normalize_column_name",
    "normalize_row",
    "parse_date",
    "parse_number",
    "row_symbol",
    "transform_row",
    "transform_dataset",
    "group_by_symbol",
    "deduplicate_by_date",
    "fill_missing_dates",
]
