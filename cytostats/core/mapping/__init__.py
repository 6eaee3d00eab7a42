"""Dimension-reduced maps (PCA, tSNE, UMAP) computed with scanpy."""

from .config import DEFAULT_EXCLUDED_CHANNELS, MappingConfig
from .engine import (
    MAP_TYPES,
    MappingEngine,
    MappingResult,
    compute_map,
    map_columns,
    map_sample,
    map_source,
    parse_map_type,
    sample_events,
    select_channels,
)

__all__ = [
    "DEFAULT_EXCLUDED_CHANNELS",
    "MAP_TYPES",
    "MappingConfig",
    "MappingEngine",
    "MappingResult",
    "compute_map",
    "map_columns",
    "map_sample",
    "map_source",
    "parse_map_type",
    "sample_events",
    "select_channels",
]
