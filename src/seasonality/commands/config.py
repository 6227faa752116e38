"""YAML parsing helpers shared by the command configurations.

Every helper raises :class:`~seasonality.exceptions.ConfigError` with a
message naming the offending key.
"""

from __future__ import annotations

from datetime import date
from pathlib import Path
from typing import Any

import yaml

from seasonality.data.transforms import parse_date
from seasonality.exceptions import ConfigError
from seasonality.types import DateRange, Symbol

# Valid log levels
VALID_LOG_LEVELS = frozenset(["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"])

# Valid data source types
VALID_DATA_SOURCES = frozenset(["csv", "yahoo"])


def load_yaml_mapping(config_path: str | Path) -> dict[str, Any]:
    """Read a YAML file whose top level must be a mapping.

    :param config_path: Path to YAML configuration file.
    :returns: The parsed mapping.
    :raises ConfigError: If the file is missing, not YAML, or not a mapping.
    """
    config_path = Path(config_path)

    try:
        with open(config_path) as f:
            raw_config = yaml.safe_load(f)
    except FileNotFoundError as e:
        raise ConfigError(f"Configuration file not found: {config_path}") from e
    except yaml.YAMLError as e:
        raise ConfigError(f"Invalid YAML in configuration file: {e}") from e

    if not isinstance(raw_config, dict):
        raise ConfigError("Configuration must be a YAML mapping")
    return raw_config


def parse_config_date(value: Any, key: str) -> date:
    """Parse a date written in YAML (native date or supported string form)."""
    parsed = parse_date(value)
    if parsed is None:
        raise ConfigError(f"Invalid date for '{key}': {value!r}")
    return parsed


def parse_date_range(raw: Any, key: str = "date_range") -> DateRange | None:
    """Parse an optional ``{start, end}`` mapping into an inclusive range."""
    if raw is None:
        return None
    if not isinstance(raw, dict):
        raise ConfigError(f"'{key}' must be a mapping with 'start' and 'end'")
    if "start" not in raw or "end" not in raw:
        raise ConfigError(f"'{key}' must contain 'start' and 'end'")

    start = parse_config_date(raw["start"], f"{key}.start")
    end = parse_config_date(raw["end"], f"{key}.end")
    if start > end:
        raise ConfigError(f"'{key}.start' must not be after '{key}.end'")
    return DateRange(start=start, end=end)


def parse_source(raw_config: dict[str, Any]) -> tuple[str, dict[str, Any]]:
    """Parse the required ``source`` section.

    :returns: ``(source_type, source_params)``.
    """
    if "source" not in raw_config:
        raise ConfigError("Missing required field: source")

    raw_source = raw_config["source"]
    if not isinstance(raw_source, dict):
        raise ConfigError("'source' must be a mapping")

    source_type = str(raw_source.get("type", "")).lower()
    if source_type not in VALID_DATA_SOURCES:
        raise ConfigError(
            f"Invalid source type '{raw_source.get('type')}'. "
            f"Valid options: {sorted(VALID_DATA_SOURCES)}"
        )

    source_params = raw_source.get("params", {}) or {}
    if not isinstance(source_params, dict):
        raise ConfigError("'source.params' must be a mapping")

    return source_type, source_params


def parse_symbols(raw: Any) -> list[Symbol]:
    """Parse an optional list of symbols (upper-cased)."""
    if raw is None:
        return []
    if not isinstance(raw, list):
        raise ConfigError("'symbols' must be a list")
    return [Symbol(str(s).upper()) for s in raw]


def parse_log_level(raw_config: dict[str, Any]) -> str:
    """Parse the optional ``logging.level`` entry (default INFO)."""
    raw_logging = raw_config.get("logging", {}) or {}
    if not isinstance(raw_logging, dict):
        raise ConfigError("'logging' must be a mapping")

    log_level = str(raw_logging.get("level", "INFO")).upper()
    if log_level not in VALID_LOG_LEVELS:
        raise ConfigError(
            f"Invalid log level '{log_level}'. "
            f"Valid options: {sorted(VALID_LOG_LEVELS)}"
        )
    return log_level


__all__ = [
    "VALID_LOG_LEVELS",
    "VALID_DATA_SOURCES",
    "load_yaml_mapping",
    "parse_config_date",
    "parse_date_range",
    "parse_source",
    "parse_symbols",
    "parse_log_level",
]
