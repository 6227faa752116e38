"""Data ingestion, quality checks and source management module."""

from seasonality.data.quality import run_quality_check
from seasonality.data.sources import (CSVDataSource, DataSource,
                                      YahooDataSource, resolve_data_source)
from seasonality.data.transforms import transform_dataset

__all__ = [
    "DataSource",
    "CSVDataSource",
    "YahooDataSource",
    "resolve_data_source",
    "run_quality_check",
    "transform_dataset",
]
