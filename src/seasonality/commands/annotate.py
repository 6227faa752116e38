"""Configuration and execution for the annotate command.

Example config file (annotate.yaml):

    source:
      type: "csv"
      params:
        file_path: "data/nifty.csv"
        symbol: "NIFTY"      # Used when the file has no symbol column
        mode: "lenient"      # Or "strict"
    symbols: []              # Optional, empty = every symbol in the source
    date_range:              # Optional
      start: "2015-01-01"
      end: "2024-12-31"
    quality:                 # Optional
      enabled: true
      fail_on_invalid: false
      max_gap_days: 5
      outlier_threshold: 3.0
    fill_method: null        # Optional: forward, backward or interpolate
    output_dir: "out/annotated"
    logging:
      level: "INFO"
"""

from __future__ import annotations

import csv
import logging
from pathlib import Path
from typing import Any, Sequence

from pydantic import Field, ValidationError

from seasonality.commands.config import (load_yaml_mapping, parse_date_range,
                                         parse_log_level, parse_source,
                                         parse_symbols)
from seasonality.data.quality import QualityReport, run_quality_check
from seasonality.data.sources import (CSVDataSource, DataSource,
                                      resolve_data_source)
from seasonality.data.transforms import (fill_missing_dates, group_by_symbol,
                                         normalize_row, parse_date, row_symbol)
from seasonality.derive.pipeline import derive_all_fields
from seasonality.exceptions import ConfigError, DataValidationError
from seasonality.types import (AnnotateConfig, AnnotatedRow, AnnotatedSeries,
                               Bar, FillMethod, FrozenModel, Granularity,
                               QualityGate)

logger = logging.getLogger(__name__)


class AnnotateResult(FrozenModel):
    """Outcome of an annotate run.

    :param series: Annotated series per symbol.
    :param quality: Quality report per symbol, empty when the check was disabled.
    :param written: CSV files written.
    """

    series: dict[str, AnnotatedSeries]
    quality: dict[str, QualityReport] = Field(default_factory=dict)
    written: list[Path]


def load_annotate_config(config_path: str | Path) -> AnnotateConfig:
    """Parse and validate an annotate configuration file.

    :param config_path: Path to YAML configuration file.
    :returns: Validated AnnotateConfig object.
    :raises ConfigError: If file cannot be read or config is invalid.
    """
    raw_config = load_yaml_mapping(config_path)

    data_source, source_params = parse_source(raw_config)

    if "output_dir" not in raw_config:
        raise ConfigError("Missing required field: output_dir")

    raw_quality = raw_config.get("quality", {}) or {}
    if not isinstance(raw_quality, dict):
        raise ConfigError("'quality' must be a mapping")
    try:
        quality = QualityGate(**raw_quality)
    except ValidationError as e:
        raise ConfigError(f"Invalid 'quality' section: {e}") from e
    if quality.max_gap_days < 1:
        raise ConfigError("'quality.max_gap_days' must be a positive integer")
    if quality.outlier_threshold <= 0:
        raise ConfigError("'quality.outlier_threshold' must be positive")

    fill_method: FillMethod | None = None
    raw_fill = raw_config.get("fill_method")
    if raw_fill is not None:
        try:
            fill_method = FillMethod(str(raw_fill).lower())
        except ValueError as e:
            raise ConfigError(
                f"Invalid fill_method '{raw_fill}'. "
                f"Valid options: {[m.value for m in FillMethod]}"
            ) from e

    return AnnotateConfig(
        data_source=data_source,
        source_params=source_params,
        symbols=parse_symbols(raw_config.get("symbols")),
        date_range=parse_date_range(raw_config.get("date_range")),
        quality=quality,
        fill_method=fill_method,
        output_dir=Path(raw_config["output_dir"]),
        log_level=parse_log_level(raw_config),
    )


def flatten_row(row: AnnotatedRow) -> dict[str, Any]:
    """Flatten an annotated row into one CSV record.

    Week contexts on daily rows become ``monday_week_*`` and
    ``expiry_week_*`` columns.
    """
    record: dict[str, Any] = {}
    for key, value in row.model_dump(mode="json").items():
        if isinstance(value, dict):
            for sub_key, sub_value in value.items():
                if sub_key == "week_type":
                    continue
                record[f"{key}_{sub_key.removeprefix('week_')}"] = sub_value
        else:
            record[key] = value
    return record


def write_rows(path: Path, rows: Sequence[AnnotatedRow]) -> Path:
    """Write annotated rows to a CSV file, creating parent directories."""
    path.parent.mkdir(parents=True, exist_ok=True)
    records = [flatten_row(row) for row in rows]
    with open(path, "w", newline="", encoding="utf-8") as f:
        if records:
            writer = csv.DictWriter(f, fieldnames=list(records[0]))
            writer.writeheader()
            writer.writerows(records)
    return path


def write_series(output_dir: Path, symbol: str, series: AnnotatedSeries) -> list[Path]:
    """Write the five series of one symbol as ``<output_dir>/<symbol>/<granularity>.csv``."""
    folder = output_dir / symbol
    return [
        write_rows(folder / f"{granularity.value}.csv", series.series(granularity))
        for granularity in Granularity
    ]


def quality_rows(
    source: DataSource,
    config: AnnotateConfig,
    per_symbol: dict[str, list[Bar]],
) -> dict[str, Sequence[Any]]:
    """Rows to quality-check for each symbol being annotated.

    CSV sources are checked on their raw rows, so parse errors that bar
    conversion already dropped still show up. Raw rows are kept when their
    symbol was requested and their date falls in ``config.date_range``; rows
    with an unreadable date are kept for the symbol they name. Other sources
    are checked on their bars.
    """
    if not isinstance(source, CSVDataSource):
        return dict(per_symbol)

    wanted = {str(s).upper() for s in config.symbols}
    date_range = config.date_range
    groups: dict[str, list[dict[str, str]]] = {}
    for raw in source.read_rows():
        row = normalize_row(raw)
        symbol = row_symbol(row, source.default_symbol) or "UNKNOWN"
        if wanted and symbol not in wanted:
            continue
        row_date = parse_date(row.get("date"))
        if row_date is not None and date_range is not None:
            if not date_range.start <= row_date <= date_range.end:
                continue
        groups.setdefault(symbol, []).append(raw)
    return groups


def run_annotate(config: AnnotateConfig, write: bool = True) -> AnnotateResult:
    """Ingest, optionally quality-check, derive and write annotated series.

    Quality is checked per symbol, on the symbols and dates being annotated.

    :param config: Annotate configuration.
    :param write: Write CSV files to ``config.output_dir``.
    :returns: Annotated series and quality reports per symbol, and written paths.
    :raises DataSourceError: If loading fails.
    :raises DataValidationError: If ``quality.fail_on_invalid`` is set and any
        symbol fails the quality check.
    """
    source = resolve_data_source(config.data_source, config.source_params)
    bars = list(source.fetch_bars(config.symbols, config.date_range))
    per_symbol = group_by_symbol(bars)

    quality: dict[str, QualityReport] = {}
    if config.quality.enabled:
        for symbol, rows in quality_rows(source, config, per_symbol).items():
            quality[symbol] = run_quality_check(
                rows,
                symbol_field="symbol",
                max_gap_days=config.quality.max_gap_days,
                outlier_threshold=config.quality.outlier_threshold,
            )

        failed = {symbol: report for symbol, report in quality.items() if not report.overall_valid}
        if config.quality.fail_on_invalid and failed:
            details = "; ".join(
                f"{symbol}: {report.validation.invalid_rows} invalid rows, "
                f"{report.duplicates.duplicate_count} duplicate dates"
                for symbol, report in failed.items()
            )
            raise DataValidationError(f"Quality check failed for {details}")

    annotated: dict[str, AnnotatedSeries] = {}
    written: list[Path] = []
    for symbol, symbol_bars in per_symbol.items():
        if config.fill_method is not None:
            symbol_bars = fill_missing_dates(
                symbol_bars,
                method=config.fill_method,
                max_gap_days=config.quality.max_gap_days,
            )
        series = derive_all_fields(symbol_bars)
        annotated[symbol] = series
        logger.info("Annotated %s: %d daily rows", symbol, len(series.daily))

        if write:
            written.extend(write_series(config.output_dir, symbol, series))

    return AnnotateResult(series=annotated, quality=quality, written=written)


__all__ = [
    "AnnotateResult",
    "load_annotate_config",
    "flatten_row",
    "write_rows",
    "write_series",
    "quality_rows",
    "run_annotate",
]
