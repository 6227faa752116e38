"""Return statistics over annotated (usually filtered) series."""

from __future__ import annotations

from enum import Enum
from typing import Any, Callable, Hashable, Iterable, Sequence

import numpy as np

from seasonality.types import FrozenModel

KeyFn = Callable[[Any], Hashable | None]


class ReturnStatistics(FrozenModel):
    """Summary of a set of returns.

    Averages and sums are rounded to four decimals, accuracies (share of
    strictly positive/negative returns, in percent) to two.

    :param all_count: Number of returns.
    :param avg_return_all: Mean of all returns.
    :param sum_return_all: Sum of all returns.
    :param pos_count: Number of strictly positive returns.
    :param avg_return_pos: Mean of positive returns.
    :param sum_return_pos: Sum of positive returns.
    :param neg_count: Number of strictly negative returns.
    :param avg_return_neg: Mean of negative returns.
    :param sum_return_neg: Sum of negative returns.
    :param pos_accuracy: Percentage of positive returns.
    :param neg_accuracy: Percentage of negative returns.
    """

    all_count: int = 0
    avg_return_all: float = 0.0
    sum_return_all: float = 0.0
    pos_count: int = 0
    avg_return_pos: float = 0.0
    sum_return_pos: float = 0.0
    neg_count: int = 0
    avg_return_neg: float = 0.0
    sum_return_neg: float = 0.0
    pos_accuracy: float = 0.0
    neg_accuracy: float = 0.0


class AggregateType(str, Enum):
    """Which statistic :func:`aggregate_by_key` reports per group."""

    TOTAL = "total"
    AVG = "avg"
    MAX = "max"
    MIN = "min"


class GroupAggregate(FrozenModel):
    """Aggregate value for one group plus its full statistics."""

    label: str
    value: float
    statistics: ReturnStatistics


class CumulativePoint(FrozenModel):
    """Compounded value after one return.

    :param cumulative_return: Value of ``start_value`` compounded so far.
    :param cumulative_return_percent: Growth over ``start_value`` in percent.
    """

    cumulative_return: float
    cumulative_return_percent: float


def _sum(values: np.ndarray) -> float:
    return float(values.sum()) if values.size else 0.0


def _mean(values: np.ndarray) -> float:
    return float(values.mean()) if values.size else 0.0


def summarize_returns(values: Iterable[float]) -> ReturnStatistics:
    """Summarise a sequence of returns.

    :param values: Return values (percentages, usually).
    :returns: Counts, sums, averages and accuracies; all zero when empty.
    """
    returns = np.asarray(list(values), dtype=float)
    if returns.size == 0:
        return ReturnStatistics()

    positive = returns[returns > 0]
    negative = returns[returns < 0]
    total = returns.size

    return ReturnStatistics(
        all_count=total,
        avg_return_all=round(_mean(returns), 4),
        sum_return_all=round(_sum(returns), 4),
        pos_count=positive.size,
        avg_return_pos=round(_mean(positive), 4),
        sum_return_pos=round(_sum(positive), 4),
        neg_count=negative.size,
        avg_return_neg=round(_mean(negative), 4),
        sum_return_neg=round(_sum(negative), 4),
        pos_accuracy=round(positive.size / total * 100, 2),
        neg_accuracy=round(negative.size / total * 100, 2),
    )


def _resolve(key: KeyFn | str) -> KeyFn:
    if isinstance(key, str):
        return lambda row: getattr(row, key, None)
    return key


def group_return_statistics(
    rows: Iterable[Any],
    key: KeyFn | str,
    value: KeyFn | str = "return_percentage",
) -> dict[Hashable, ReturnStatistics]:
    """Group rows and summarise the returns of each group.

    :param rows: Annotated rows.
    :param key: Attribute name or function giving the group of a row; rows
        whose key is None are skipped.
    :param value: Attribute name or function giving the return of a row.
    :returns: Statistics per group, in first-seen order.
    """
    key_fn = _resolve(key)
    value_fn = _resolve(value)

    groups: dict[Hashable, list[float]] = {}
    for row in rows:
        group = key_fn(row)
        if group is None:
            continue
        groups.setdefault(group, []).append(value_fn(row))

    return {group: summarize_returns(values) for group, values in groups.items()}


def _label_order(label: str) -> tuple[int, int, str]:
    try:
        return (0, int(label), "")
    except ValueError:
        return (1, 0, label)


def aggregate_by_key(
    rows: Iterable[Any],
    key: KeyFn | str,
    aggregate: AggregateType = AggregateType.TOTAL,
    value: KeyFn | str = "return_percentage",
) -> list[GroupAggregate]:
    """One aggregate value per group, as plotted in aggregate charts.

    ``TOTAL`` and ``AVG`` use all returns of the group, ``MAX`` the mean
    positive return (floored at 0) and ``MIN`` the mean negative return
    (capped at 0). Numeric labels sort numerically, before any others.
    """
    results: list[GroupAggregate] = []
    for group, stats in group_return_statistics(rows, key, value).items():
        if aggregate is AggregateType.AVG:
            figure = stats.avg_return_all
        elif aggregate is AggregateType.MAX:
            figure = max(stats.avg_return_pos, 0.0)
        elif aggregate is AggregateType.MIN:
            figure = min(stats.avg_return_neg, 0.0)
        else:
            figure = stats.sum_return_all
        results.append(GroupAggregate(label=str(group), value=round(figure, 4), statistics=stats))

    return sorted(results, key=lambda item: _label_order(item.label))


def cumulative_returns(
    values: Sequence[float | None],
    start_value: float = 100.0,
) -> list[CumulativePoint]:
    """Compound percentage returns from ``start_value``.

    Missing returns count as 0%.
    """
    if not values:
        return []

    growth = 1 + np.asarray([v or 0.0 for v in values], dtype=float) / 100
    compounded = start_value * np.cumprod(growth)
    return [
        CumulativePoint(
            cumulative_return=round(float(level), 4),
            cumulative_return_percent=round(float((level - start_value) / start_value * 100), 4),
        )
        for level in compounded
    ]


__all__ = [
    "ReturnStatistics",
    "AggregateType",
    "GroupAggregate",
    "CumulativePoint",
    "summarize_returns",
    "group_return_statistics",
    "aggregate_by_key",
    "cumulative_returns",
]
