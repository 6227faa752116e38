"""Seasonality package root."""

from seasonality.derive.pipeline import derive_all_fields
from seasonality.exceptions import (ConfigError, DataSourceError,
                                    DataValidationError, SeasonalityError)
from seasonality.filters.engine import FilterEngine, apply_filters

__all__ = [
    "derive_all_fields",
    "FilterEngine",
    "apply_filters",
    "SeasonalityError",
    "ConfigError",
    "DataSourceError",
    "DataValidationError",
]
