"""Configuration and execution for the filter command.

Example config file (filter.yaml):

    source:
      type: "csv"
      params:
        file_path: "data/nifty.csv"
        symbol: "NIFTY"
    symbol: "NIFTY"          # Optional when the source holds one symbol
    granularity: "daily"     # daily, monday_weekly, expiry_weekly, monthly, yearly
    filters:                 # snake_case or camelCase keys
      yearFilters:
        evenOdd: "Election"
      dayFilters:
        weekdays: ["Monday", "Friday"]
      outlierFilters:
        daily: {enabled: true, min: -5, max: 5}
    group_by: "weekday"      # Optional row attribute for grouped statistics
    output_path: "out/filtered.csv"  # Optional
    logging:
      level: "INFO"
"""

from __future__ import annotations

import logging
from pathlib import Path

from pydantic import ValidationError

from seasonality.commands.annotate import write_rows
from seasonality.commands.config import (load_yaml_mapping, parse_config_date,
                                         parse_date_range, parse_log_level,
                                         parse_source)
from seasonality.data.sources import resolve_data_source
from seasonality.data.transforms import group_by_symbol
from seasonality.derive.pipeline import derive_all_fields
from seasonality.exceptions import ConfigError, DataValidationError
from seasonality.filters.engine import FilterEngine
from seasonality.stats import (ReturnStatistics, group_return_statistics,
                               summarize_returns)
from seasonality.types import (AnnotatedRow, DateRange, FilterConfig,
                               FilterRunConfig, FrozenModel, Granularity,
                               Symbol)

logger = logging.getLogger(__name__)


class FilterRunResult(FrozenModel):
    """Outcome of a filter run.

    :param symbol: Symbol that was filtered.
    :param granularity: Series the filters ran over.
    :param total_rows: Rows before filtering.
    :param rows: Rows that passed every filter.
    :param years: Distinct years among the kept rows.
    :param date_range: First and last kept dates.
    :param statistics: Return statistics of the kept rows.
    :param grouped: Statistics per ``group_by`` value, if requested.
    """

    symbol: str
    granularity: Granularity
    total_rows: int
    rows: list[AnnotatedRow]
    years: list[int]
    date_range: DateRange | None = None
    statistics: ReturnStatistics
    grouped: dict[str, ReturnStatistics] | None = None


def load_filter_config(config_path: str | Path) -> FilterRunConfig:
    """Parse and validate a filter configuration file.

    :param config_path: Path to YAML configuration file.
    :returns: Validated FilterRunConfig object.
    :raises ConfigError: If file cannot be read or config is invalid.
    """
    raw_config = load_yaml_mapping(config_path)

    data_source, source_params = parse_source(raw_config)

    raw_granularity = str(raw_config.get("granularity", Granularity.DAILY.value)).lower()
    try:
        granularity = Granularity(raw_granularity)
    except ValueError as e:
        raise ConfigError(
            f"Invalid granularity '{raw_granularity}'. "
            f"Valid options: {[g.value for g in Granularity]}"
        ) from e

    raw_filters = raw_config.get("filters", {}) or {}
    if not isinstance(raw_filters, dict):
        raise ConfigError("'filters' must be a mapping")
    try:
        filters = FilterConfig.model_validate(raw_filters)
    except ValidationError as e:
        raise ConfigError(f"Invalid 'filters' section: {e}") from e

    symbol = raw_config.get("symbol")
    group_by = raw_config.get("group_by")
    if group_by is not None and not isinstance(group_by, str):
        raise ConfigError("'group_by' must be a field name")

    output_path = raw_config.get("output_path")
    today = raw_config.get("today")

    return FilterRunConfig(
        data_source=data_source,
        source_params=source_params,
        symbol=Symbol(str(symbol).upper()) if symbol else None,
        date_range=parse_date_range(raw_config.get("date_range")),
        granularity=granularity,
        filters=filters,
        group_by=group_by,
        output_path=Path(output_path) if output_path else None,
        today=parse_config_date(today, "today") if today is not None else None,
        log_level=parse_log_level(raw_config),
    )


def run_filter(config: FilterRunConfig) -> FilterRunResult:
    """Load, annotate and filter one symbol, then summarise the kept rows.

    :param config: Filter configuration.
    :returns: Kept rows and their statistics.
    :raises DataSourceError: If loading fails.
    :raises DataValidationError: If the source has no bars for the symbol, or
        several symbols and none was chosen.
    """
    source = resolve_data_source(config.data_source, config.source_params)
    symbols = [config.symbol] if config.symbol else []
    per_symbol = group_by_symbol(source.fetch_bars(symbols, config.date_range))

    if not per_symbol:
        raise DataValidationError("No bars loaded from the data source")
    if len(per_symbol) > 1:
        raise DataValidationError(
            f"Source holds several symbols ({', '.join(sorted(per_symbol))}); set 'symbol'"
        )
    symbol, bars = next(iter(per_symbol.items()))

    series = derive_all_fields(bars).series(config.granularity)
    engine = FilterEngine(series, today=config.today).apply_filters(config.filters)
    kept = engine.data
    logger.info("%s %s: kept %d of %d rows", symbol, config.granularity.value, len(kept), len(series))

    grouped: dict[str, ReturnStatistics] | None = None
    if config.group_by:
        grouped = {
            str(key): stats
            for key, stats in group_return_statistics(kept, config.group_by).items()
        }

    if config.output_path is not None:
        write_rows(config.output_path, kept)

    return FilterRunResult(
        symbol=symbol,
        granularity=config.granularity,
        total_rows=len(series),
        rows=kept,
        years=engine.years(),
        date_range=engine.date_range(),
        statistics=summarize_returns(row.return_percentage for row in kept),
        grouped=grouped,
    )


__all__ = [
    "FilterRunResult",
    "load_filter_config",
    "run_filter",
]
