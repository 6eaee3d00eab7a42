"""I/O utilities for cytostats.

Provides logging, CSV I/O, and sample loading utilities.
"""

from .logging import get_logger, get_timestamped_log_path, log_json, log_yaml
from .csv import (
    DEFAULT_EXTENSION,
    ensure_output_dir,
    load_events,
    load_sample_registry,
    save_statistics,
    with_default_extension,
    write_dataframe,
)

__all__ = [
    # Logging
    "get_logger",
    "get_timestamped_log_path",
    "log_json",
    "log_yaml",
    # CSV I/O
    "DEFAULT_EXTENSION",
    "ensure_output_dir",
    "load_events",
    "load_sample_registry",
    "save_statistics",
    "with_default_extension",
    "write_dataframe",
]
