"""Data source implementations for loading daily bars.

This module provides an abstract interface for data sources and concrete
implementations for CSV files and Yahoo Finance.
"""

from __future__ import annotations

import csv
import logging
from abc import ABC, abstractmethod
from datetime import timedelta
from pathlib import Path
from typing import Any, Iterator

from seasonality.data.transforms import (IngestMode, TransformResult,
                                         transform_dataset)
from seasonality.exceptions import DataSourceError
from seasonality.types import Bar, DateRange, Symbol

logger = logging.getLogger(__name__)


def _in_range(bar: Bar, date_range: DateRange | None) -> bool:
    if date_range is None:
        return True
    return date_range.start <= bar.date <= date_range.end


class DataSource(ABC):
    """Abstract base class for data sources.

    All data source implementations must inherit from this class and implement
    the `fetch_bars` method.
    """

    @abstractmethod
    def fetch_bars(
        self,
        symbols: list[Symbol],
        date_range: DateRange | None = None,
    ) -> Iterator[Bar]:
        """Fetch daily bars for the given symbols and dates.

        :param symbols: Symbols to fetch (empty = every symbol the source has).
        :param date_range: Inclusive date range, None for everything.
        :returns: Iterator of bars, per symbol in date order.
        :raises DataSourceError: If fetching fails.
        """
        ...


class CSVDataSource(DataSource):
    """Data source that reads daily bars from a CSV file.

    Headers are matched case-insensitively and common aliases are accepted
    (``ticker`` for ``symbol``, ``oi`` for ``open_interest`` and so on). Dates
    may be ``DD-MM-YYYY``, ``DD/MM/YYYY`` or ``YYYY-MM-DD``. Rows that cannot
    be converted are skipped and logged.

    :param source_params: Required parameters:
        - file_path: Path to the CSV file.
        Optional parameters:
        - delimiter: CSV delimiter (default: ",")
        - symbol: Symbol for rows without a symbol column
        - mode: "lenient" (default) or "strict" handling of missing prices
        - encoding: File encoding (default: "utf-8-sig")
    """

    def __init__(self, source_params: dict[str, Any] | None = None) -> None:
        """Initialize CSV data source.

        :param source_params: Configuration with file_path and optional settings.
        :raises DataSourceError: If file_path is missing or mode is unknown.
        """
        self.params = source_params or {}
        self.file_path = self.params.get("file_path")
        if not self.file_path:
            raise DataSourceError("CSVDataSource requires 'file_path' in source_params")

        self.delimiter = self.params.get("delimiter", ",")
        self.encoding = self.params.get("encoding", "utf-8-sig")
        self.default_symbol = self.params.get("symbol")
        try:
            self.mode = IngestMode(self.params.get("mode", IngestMode.LENIENT.value))
        except ValueError as e:
            raise DataSourceError(f"Unknown ingest mode: {self.params.get('mode')!r}") from e

    def read_headers(self) -> list[str]:
        """Return the header row of the file."""
        with self._open() as f:
            reader = csv.reader(f, delimiter=self.delimiter)
            try:
                return next(reader)
            except StopIteration:
                return []
            except csv.Error as e:
                raise DataSourceError(f"CSV parsing error: {e}") from e

    def read_rows(self) -> list[dict[str, str]]:
        """Return every data row keyed by the raw header names.

        :raises DataSourceError: If the file is missing or unreadable.
        """
        try:
            with self._open() as f:
                return list(csv.DictReader(f, delimiter=self.delimiter))
        except csv.Error as e:
            raise DataSourceError(f"CSV parsing error: {e}") from e

    def load(self) -> TransformResult:
        """Read and convert the whole file, collecting rejected rows."""
        result = transform_dataset(
            self.read_rows(),
            mode=self.mode,
            default_symbol=self.default_symbol,
        )
        logger.info(
            "Loaded %d bars from %s (%d rows skipped)",
            len(result.bars),
            self.file_path,
            result.skipped,
        )
        return result

    def fetch_bars(
        self,
        symbols: list[Symbol],
        date_range: DateRange | None = None,
    ) -> Iterator[Bar]:
        """Read bars from the CSV file.

        :param symbols: Symbols to keep (empty = all symbols).
        :param date_range: Inclusive date range to keep.
        :returns: Iterator of bars in file order.
        :raises DataSourceError: If reading fails.
        """
        symbol_set = {str(s).upper() for s in symbols} if symbols else None

        for bar in self.load().bars:
            if symbol_set and (bar.symbol or "") not in symbol_set:
                continue
            if not _in_range(bar, date_range):
                continue
            yield bar

    def _open(self):
        path = Path(self.file_path)
        if not path.exists():
            raise DataSourceError(f"CSV file not found: {self.file_path}")
        try:
            return open(path, newline="", encoding=self.encoding)
        except OSError as e:
            raise DataSourceError(f"Failed to read CSV file: {e}") from e


class YahooDataSource(DataSource):
    """Data source that fetches daily bars from Yahoo Finance via yfinance.

    Requires the ``yahoo`` extra.

    :param source_params: Optional parameters for configuring the source.
        - timeout: Request timeout in seconds (default: 30)
    """

    def __init__(self, source_params: dict[str, Any] | None = None) -> None:
        self.params = source_params or {}
        self.timeout = self.params.get("timeout", 30)

    def fetch_bars(
        self,
        symbols: list[Symbol],
        date_range: DateRange | None = None,
    ) -> Iterator[Bar]:
        """Fetch daily bars from Yahoo Finance.

        :param symbols: Symbols to fetch; at least one is required.
        :param date_range: Inclusive date range (required).
        :returns: Iterator of bars.
        :raises DataSourceError: If yfinance is missing or fetching fails.
        """
        if not symbols:
            raise DataSourceError("YahooDataSource requires at least one symbol")
        if date_range is None:
            raise DataSourceError("YahooDataSource requires a date range")

        try:
            import yfinance as yf
        except ImportError as e:
            raise DataSourceError(
                "yfinance is not installed. Install it with: pip install 'seasonality[yahoo]'"
            ) from e

        start_str = date_range.start.strftime("%Y-%m-%d")
        # yfinance treats the end date as exclusive
        end_str = (date_range.end + timedelta(days=1)).strftime("%Y-%m-%d")

        for symbol in symbols:
            try:
                ticker = yf.Ticker(str(symbol))
                df = ticker.history(
                    start=start_str,
                    end=end_str,
                    interval="1d",
                    timeout=self.timeout,
                )
            except Exception as e:
                raise DataSourceError(
                    f"Failed to fetch data for symbol '{symbol}': {e}"
                ) from e

            if df.empty:
                logger.warning("No data returned for %s", symbol)
                continue

            for timestamp, row in df.iterrows():
                yield Bar(
                    symbol=Symbol(str(symbol).upper()),
                    date=timestamp.date(),
                    open=float(row["Open"]),
                    high=float(row["High"]),
                    low=float(row["Low"]),
                    close=float(row["Close"]),
                    volume=float(row["Volume"]),
                )


def resolve_data_source(kind: str, params: dict[str, Any] | None = None) -> DataSource:
    """Construct a data source by name.

    :param kind: Source type, ``"csv"`` or ``"yahoo"``.
    :param params: Source-specific parameters.
    :returns: DataSource instance for the specified type.
    :raises DataSourceError: If the source type is unrecognized.
    """
    source_type = kind.lower()

    if source_type == "csv":
        return CSVDataSource(params)
    elif source_type == "yahoo":
        return YahooDataSource(params)
    else:
        raise DataSourceError(
            f"Unrecognized data source type: '{kind}'. Supported types: csv, yahoo"
        )


__all__ = [
    "DataSource",
    "CSVDataSource",
    "YahooDataSource",
    "resolve_data_source",
]
