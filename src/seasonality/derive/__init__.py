"""Period aggregation and derived-field computation."""

from seasonality.derive.aggregation import (aggregate_ohlcv,
                                            group_by_expiry_week,
                                            group_by_monday_week,
                                            group_by_month, group_by_period,
                                            group_by_year)
from seasonality.derive.pipeline import (calculate_returns, derive_all_fields,
                                         number_trading_days, number_weeks)

__all__ = [
    "aggregate_ohlcv",
    "group_by_period",
    "group_by_monday_week",
    "group_by_expiry_week",
    "group_by_month",
    "group_by_year",
    "calculate_returns",
    "number_weeks",
    "number_trading_days",
    "derive_all_fields",
]
