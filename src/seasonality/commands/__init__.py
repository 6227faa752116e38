"""CLI command implementations for the seasonality package.

Each command module provides:
- Configuration loading and validation
- Command execution logic
- Integration with core library functions
"""

from seasonality.commands.annotate import load_annotate_config, run_annotate
from seasonality.commands.filter_data import load_filter_config, run_filter

__all__ = [
    "load_annotate_config",
    "run_annotate",
    "load_filter_config",
    "run_filter",
]
