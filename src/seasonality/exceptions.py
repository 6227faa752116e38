"""Seasonality exception hierarchy.

All package-specific exceptions derive from :class:`SeasonalityError` so callers
can catch them uniformly.
"""

from __future__ import annotations


class SeasonalityError(Exception):
    """Base class for seasonality-related exceptions.

    Derived exceptions should extend this class so that callers can catch all
    package-specific errors uniformly.
    """


class ConfigError(SeasonalityError):
    """Raised when configuration files or parameters are invalid."""


class DataSourceError(SeasonalityError):
    """Raised when accessing or processing a data source fails."""


class DataValidationError(SeasonalityError):
    """Raised when data fails validation checks and the caller asked to gate on it.

    Named DataValidationError to avoid conflict with pydantic's ValidationError.
    """


__all__ = [
    "SeasonalityError",
    "ConfigError",
    "DataSourceError",
    "DataValidationError",
]
