"""Summary statistics for samples and gated populations.

The pipeline parses the requested statistic, extracts each population,
computes per-channel values and assembles them into long or wide tables.

Example
-------
>>> from cytostats.core.statistics import StatisticsEngine
>>> result = StatisticsEngine().execute(gs, statistic="median", alias="T Cells", transformers=trans)
>>> result.data
"""

from .aggregation import aggregate_statistics
from .compute import channel_statistics, compute_statistic, count_events, frequency
from .config import StatisticsConfig
from .dispatch import STATISTIC_ALIASES, StatisticKind, parse_statistic
from .engine import StatisticsEngine, StatisticsResult, compute_statistics
from .export import export_all, export_provenance, export_statistics
from .layout import StatisticRecord, StatisticTable, long_to_wide, wide_to_long
from .request import StatisticRequest

__all__ = [
    # Dispatch
    "StatisticKind",
    "STATISTIC_ALIASES",
    "parse_statistic",
    # Computation
    "compute_statistic",
    "channel_statistics",
    "count_events",
    "frequency",
    "aggregate_statistics",
    # Layout
    "StatisticRecord",
    "StatisticTable",
    "wide_to_long",
    "long_to_wide",
    # Engine
    "StatisticsConfig",
    "StatisticRequest",
    "StatisticsEngine",
    "StatisticsResult",
    "compute_statistics",
    # Export
    "export_statistics",
    "export_provenance",
    "export_all",
]
