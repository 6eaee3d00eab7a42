"""Dimension-reduced maps of cytometry events.

Events from every sample are sub-sampled, pooled into one matrix and
mapped once, so all samples share a consensus map. The two map
coordinates are appended to each sample as ``<TYPE>-1`` and ``<TYPE>-2``.

Dimension reduction itself is delegated to scanpy.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, List, Optional, Sequence, Union

import numpy as np
import pandas as pd

from ..errors import UnsupportedMappingError
from ..samples.sample import Sample
from ..samples.sources import (
    NAME_COLUMN,
    ROOT,
    HierarchicalSampleSource,
    SampleSet,
    as_source,
)
from .config import MappingConfig

logger = logging.getLogger(__name__)

# Lower-cased name -> canonical type
MAP_TYPES = {
    "pca": "PCA",
    "tsne": "tSNE",
    "umap": "UMAP",
}

# Recognized names without a scanpy implementation
UNAVAILABLE_MAP_TYPES = {
    "fit-sne": "FIt-SNE",
    "fitsne": "FIt-SNE",
    "embedsom": "EmbedSOM",
}

SAMPLING_SEED = 56


def parse_map_type(map_type: str) -> str:
    """Return the canonical map type name.

    Raises
    ------
    UnsupportedMappingError
        If the type is unknown or has no available implementation.
    """
    key = str(map_type).strip().lower()
    if key in MAP_TYPES:
        return MAP_TYPES[key]
    name = UNAVAILABLE_MAP_TYPES.get(key, str(map_type))
    raise UnsupportedMappingError(name, supported=MAP_TYPES.values())


def map_columns(map_type: str) -> List[str]:
    """Coordinate column names for a map type."""
    canonical = parse_map_type(map_type)
    return [f"{canonical}-1", f"{canonical}-2"]


def select_channels(
    sample: Sample,
    channels: Optional[Union[str, Sequence[str]]] = None,
    exclude: Optional[Sequence[str]] = None,
) -> List[str]:
    """Channels used as map inputs.

    Explicit channels (or markers) are resolved as given. Otherwise every
    channel with an assigned marker is used, or every channel when no markers
    are assigned, skipping channels whose name contains an excluded fragment.
    """
    if channels is not None:
        return sample.resolve_channels(channels)

    fragments = [e.lower() for e in (exclude or [])]
    candidates = [
        ch for ch in sample.channels if not any(f in ch.lower() for f in fragments)
    ]
    with_markers = [ch for ch in candidates if ch in sample.markers]
    return with_markers or candidates


def sample_events(sample: Sample, display: float, rng: np.random.Generator) -> Sample:
    """Randomly keep a fraction (display <= 1) or a number of events."""
    n = len(sample)
    if display <= 1:
        size = int(round(n * display))
    else:
        size = min(int(display), n)
    if size >= n:
        return sample
    keep = np.zeros(n, dtype=bool)
    keep[rng.choice(n, size=size, replace=False)] = True
    return sample.subset(keep)


def compute_map(
    matrix: Union[np.ndarray, pd.DataFrame],
    map_type: str = "UMAP",
    seed: Optional[int] = None,
    n_neighbors: int = 15,
    perplexity: float = 30.0,
) -> pd.DataFrame:
    """Compute two-dimensional coordinates for an event matrix.

    Parameters
    ----------
    matrix : np.ndarray or pd.DataFrame
        Events x channels.
    map_type : str
        "PCA", "tSNE" or "UMAP" (case-insensitive).
    seed : int, optional
        Random state passed to scanpy.
    n_neighbors : int
        UMAP neighborhood size, capped at n_events - 1.
    perplexity : float
        tSNE perplexity, capped for small inputs.

    Returns
    -------
    pd.DataFrame
        Columns ``<TYPE>-1`` and ``<TYPE>-2``, one row per event.

    Raises
    ------
    UnsupportedMappingError
        Unknown map type.
    ValueError
        Fewer than 2 channels or 3 events.
    """
    canonical = parse_map_type(map_type)
    values = np.asarray(matrix, dtype=float)
    if values.ndim != 2 or values.shape[1] < 2:
        raise ValueError("Mapping requires at least 2 channels")
    n_obs = values.shape[0]
    if n_obs < 3:
        raise ValueError(f"Mapping requires at least 3 events, got {n_obs}")

    import anndata as ad
    import scanpy as sc

    random_state = seed if seed is not None else 0
    adata = ad.AnnData(X=values.astype(np.float32))

    logger.info(
        "Computing %s co-ordinates for %d events on %d channels",
        canonical,
        n_obs,
        values.shape[1],
    )

    if canonical == "PCA":
        svd_solver = "arpack" if min(adata.n_obs, adata.n_vars) > 2 else "full"
        sc.tl.pca(adata, n_comps=2, svd_solver=svd_solver, random_state=random_state)
        coords = adata.obsm["X_pca"][:, :2]
    elif canonical == "tSNE":
        use_perplexity = min(perplexity, max((n_obs - 1) / 3.0, 1.0))
        sc.tl.tsne(adata, use_rep="X", perplexity=use_perplexity, random_state=random_state)
        coords = adata.obsm["X_tsne"][:, :2]
    else:
        use_neighbors = max(2, min(n_neighbors, n_obs - 1))
        sc.pp.neighbors(adata, n_neighbors=use_neighbors, use_rep="X", random_state=random_state)
        sc.tl.umap(adata, random_state=random_state)
        coords = adata.obsm["X_umap"][:, :2]

    return pd.DataFrame(np.asarray(coords, dtype=float), columns=map_columns(canonical))


@dataclass
class MappingResult:
    """Result of mapping a source.

    Attributes
    ----------
    source : SampleSet
        Sampled events with map coordinates appended
    coordinates : pd.DataFrame
        ``name`` plus the two coordinate columns, one row per mapped event
    map_type : str
        Canonical map type
    channels : List[str]
        Channels used as map inputs
    provenance : Dict[str, Any]
        Execution provenance
    """

    source: SampleSet
    coordinates: pd.DataFrame
    map_type: str
    channels: List[str] = field(default_factory=list)
    provenance: Dict[str, Any] = field(default_factory=dict)


class MappingEngine:
    """Build a consensus map over every sample of a source.

    Parameters
    ----------
    config : MappingConfig, optional
        Map type, sampling and algorithm settings.

    Example
    -------
    >>> engine = MappingEngine(MappingConfig(type="PCA", seed=1))
    >>> result = engine.execute(gs, alias="T Cells", channels=["CD4", "CD8"])
    >>> result.coordinates.head()
    """

    def __init__(self, config: Optional[MappingConfig] = None):
        self.config = config or MappingConfig.default()

    def execute(
        self,
        source: Union[Sample, HierarchicalSampleSource],
        alias: str = ROOT,
        channels: Optional[Union[str, Sequence[str]]] = None,
        map_type: Optional[str] = None,
        display: Optional[float] = None,
        seed: Optional[int] = None,
    ) -> MappingResult:
        """Map the events of population alias across all samples.

        Parameters
        ----------
        source : Sample or HierarchicalSampleSource
            Data to map.
        alias : str
            Population to extract ("root" for ungated events).
        channels : str or Sequence[str], optional
            Channels or markers used as map inputs.
        map_type : str, optional
            Overrides the configured type.
        display : float, optional
            Overrides the configured sampling.
        seed : int, optional
            Overrides the configured seed.

        Returns
        -------
        MappingResult
            Mapped samples, coordinates and provenance.
        """
        start_time = datetime.now()
        cfg = self.config
        canonical = parse_map_type(map_type or cfg.type)
        display = display if display is not None else cfg.display
        seed = seed if seed is not None else cfg.seed
        if not display > 0:
            raise ValueError(f"display must be positive, got {display}")

        source = as_source(source)
        populations = source.extract(alias)
        if not populations:
            raise ValueError("Nothing to map: source contains no samples")

        rng = np.random.default_rng(seed if seed is not None else SAMPLING_SEED)
        sampled = [sample_events(s, display, rng) for s in populations]
        used_channels = select_channels(sampled[0], channels, exclude=cfg.exclude_channels)

        matrix = np.vstack([s.events[used_channels].to_numpy(dtype=float) for s in sampled])
        coords = compute_map(
            matrix,
            canonical,
            seed=seed,
            n_neighbors=cfg.n_neighbors,
            perplexity=cfg.perplexity,
        )

        mapped: List[Sample] = []
        frames: List[pd.DataFrame] = []
        start = 0
        for s in sampled:
            stop = start + len(s)
            piece = coords.iloc[start:stop].reset_index(drop=True)
            mapped.append(s.with_columns(piece))
            frames.append(piece.assign(**{NAME_COLUMN: s.name})[[NAME_COLUMN] + list(piece.columns)])
            start = stop

        coordinates = pd.concat(frames, ignore_index=True)
        result_source = SampleSet(mapped, metadata=source.details(), transformers=source.transformers)
        end_time = datetime.now()

        provenance = {
            "timestamp": start_time.isoformat(),
            "duration_seconds": (end_time - start_time).total_seconds(),
            "map_type": canonical,
            "alias": alias,
            "channels": used_channels,
            "n_samples": len(mapped),
            "n_events": int(len(coordinates)),
            "display": display,
            "seed": seed,
            "config": cfg.to_dict(),
        }

        return MappingResult(
            source=result_source,
            coordinates=coordinates,
            map_type=canonical,
            channels=used_channels,
            provenance=provenance,
        )


def map_sample(
    sample: Sample,
    channels: Optional[Union[str, Sequence[str]]] = None,
    map_type: str = "UMAP",
    display: float = 1.0,
    seed: Optional[int] = None,
) -> Sample:
    """Map one sample and return it with coordinates appended."""
    engine = MappingEngine(MappingConfig(type=map_type, display=display, seed=seed))
    return engine.execute(sample, channels=channels).source.samples()[0]


def map_source(
    source: HierarchicalSampleSource,
    alias: str = ROOT,
    channels: Optional[Union[str, Sequence[str]]] = None,
    map_type: str = "UMAP",
    display: float = 1.0,
    seed: Optional[int] = None,
) -> SampleSet:
    """Map every sample of a source onto one shared map."""
    engine = MappingEngine(MappingConfig(type=map_type, display=display, seed=seed))
    return engine.execute(source, alias=alias, channels=channels).source
