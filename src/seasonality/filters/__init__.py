"""Filter engine over annotated series."""

from seasonality.filters.engine import (ELECTION_YEARS, REGIME_YEARS,
                                        FilterEngine, apply_filters,
                                        classify_election_year)

__all__ = [
    "ELECTION_YEARS",
    "REGIME_YEARS",
    "FilterEngine",
    "apply_filters",
    "classify_election_year",
]
