"""Statistics engine.

This module provides the StatisticsEngine class that runs the
extract -> compute -> reshape -> persist pipeline for one request.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, Optional, Sequence, Union

import pandas as pd

from ...io.csv import save_statistics
from ..samples.gates import Gate
from ..samples.sample import Sample
from ..samples.sources import HierarchicalSampleSource, as_source
from ..samples.transforms import TransformerList
from .aggregation import aggregate_statistics, effective_transformers
from .compute import warn_missing_transform
from .config import StatisticsConfig
from .dispatch import StatisticKind, parse_statistic
from .layout import StatisticTable
from .request import StatisticRequest

logger = logging.getLogger(__name__)

SourceLike = Union[Sample, HierarchicalSampleSource]
Names = Optional[Union[str, Sequence[str]]]


@dataclass
class StatisticsResult:
    """Result of one statistics run.

    Attributes
    ----------
    table : StatisticTable
        Computed records
    data : pd.DataFrame
        Table in the requested layout
    kind : StatisticKind
        Statistic computed
    format : str
        Layout of data
    output_path : Path, optional
        CSV written, if any
    provenance : Dict[str, Any]
        Execution provenance
    """

    table: StatisticTable
    data: pd.DataFrame
    kind: StatisticKind
    format: str
    output_path: Optional[Path] = None
    provenance: Dict[str, Any] = field(default_factory=dict)


class StatisticsEngine:
    """Compute summary statistics for samples and gated populations.

    Parameters
    ----------
    config : StatisticsConfig, optional
        Defaults for statistic, layout and smoothing.

    Example
    -------
    >>> from cytostats.core.statistics import StatisticsEngine
    >>> engine = StatisticsEngine()
    >>> result = engine.execute(gs, statistic="freq", alias=["T Cells"], parent=["Cells"])
    >>> result.data.head()
    """

    def __init__(self, config: Optional[StatisticsConfig] = None):
        self.config = config or StatisticsConfig.default()

    def build_request(
        self,
        statistic: Optional[Union[str, StatisticKind]] = None,
        channels: Names = None,
        transformers: Optional[TransformerList] = None,
        gate: Optional[Gate] = None,
        format: Optional[str] = None,
        alias: Names = None,
        parent: Names = None,
        density_smooth: Optional[float] = None,
    ) -> StatisticRequest:
        """Fill unset arguments from the configuration."""
        config = self.config
        return StatisticRequest.build(
            statistic=statistic if statistic is not None else config.statistic,
            channels=channels if channels is not None else config.channels,
            transformers=transformers,
            density_smooth=density_smooth if density_smooth is not None else config.density_smooth,
            gate=gate,
            format=format if format is not None else config.format,
            alias=alias,
            parent=parent,
            grid_size=config.mode_grid_size,
        )

    def execute(
        self,
        source: SourceLike,
        statistic: Optional[Union[str, StatisticKind]] = None,
        channels: Names = None,
        transformers: Optional[TransformerList] = None,
        gate: Optional[Gate] = None,
        format: Optional[str] = None,
        alias: Names = None,
        parent: Names = None,
        density_smooth: Optional[float] = None,
        save_as: Optional[Union[str, Path]] = None,
    ) -> StatisticsResult:
        """Compute a statistic over a source.

        Parameters
        ----------
        source : Sample or HierarchicalSampleSource
            Data to summarize.
        statistic : str or StatisticKind, optional
            Statistic name or alias.
        channels : str or Sequence[str], optional
            Channels or markers to summarize.
        transformers : TransformerList, optional
            Transforms of the stored events; defaults to the source's own.
        gate : Gate, optional
            Gate applied to flat sources.
        format : str, optional
            "long" or "wide".
        alias : str or Sequence[str], optional
            Populations to summarize; required for hierarchical sources.
        parent : str or Sequence[str], optional
            Reference populations for freq.
        density_smooth : float, optional
            Bandwidth multiplier for mode.
        save_as : str or Path, optional
            CSV destination; ".csv" is appended when there is no extension.

        Returns
        -------
        StatisticsResult
            Computed table, formatted data and provenance.
        """
        start_time = datetime.now()

        # Names are parsed before any data is touched
        request = self.build_request(
            statistic=statistic,
            channels=channels,
            transformers=transformers,
            gate=gate,
            format=format,
            alias=alias,
            parent=parent,
            density_smooth=density_smooth,
        )
        source = as_source(source)

        if self.config.warn_missing_transform:
            if warn_missing_transform(request.kind, effective_transformers(source, request)):
                logger.info("No transformers supplied; %s returned on the current scale", request.kind.label)

        table = aggregate_statistics(source, request, default_parent=self.config.default_parent)
        data = table.to_format(request.format)

        output_path = None
        if save_as is not None:
            output_path = save_statistics(data, save_as, extension=self.config.csv_extension)

        end_time = datetime.now()

        provenance = {
            "timestamp": start_time.isoformat(),
            "duration_seconds": (end_time - start_time).total_seconds(),
            "statistic": request.kind.value,
            "label": request.kind.label,
            "format": request.format,
            "source_type": type(source).__name__,
            "n_samples": len(source),
            "n_rows": len(data),
            "aliases": list(request.alias) if request.alias else [],
            "parents": table.keys if request.kind is StatisticKind.FREQ else [],
            "channels": table.keys if request.kind.is_channel_statistic else [],
            "transformed": effective_transformers(source, request) is not None,
            "output_path": str(output_path) if output_path else None,
            "config": self.config.to_dict(),
        }

        logger.info(
            "Computed %s for %d samples (%d rows, %s format)",
            request.kind.label,
            len(source),
            len(data),
            request.format,
        )

        return StatisticsResult(
            table=table,
            data=data,
            kind=request.kind,
            format=request.format,
            output_path=output_path,
            provenance=provenance,
        )


def compute_statistics(
    source: SourceLike,
    channels: Names = None,
    trans: Optional[TransformerList] = None,
    stat: Union[str, StatisticKind] = "median",
    gate: Optional[Gate] = None,
    format: str = "long",
    alias: Names = None,
    parent: Names = None,
    density_smooth: float = 0.6,
    save_as: Optional[Union[str, Path]] = None,
) -> pd.DataFrame:
    """Compute a statistic and return the formatted table.

    Convenience wrapper around ``StatisticsEngine.execute``.

    Example
    -------
    >>> compute_statistics(gs, channels=["CD4", "CD8"], trans=trans,
    ...                    stat="median", alias="T Cells", format="wide")
    """
    engine = StatisticsEngine()
    result = engine.execute(
        source,
        statistic=parse_statistic(stat),
        channels=channels,
        transformers=trans,
        gate=gate,
        format=format,
        alias=alias,
        parent=parent,
        density_smooth=density_smooth,
        save_as=save_as,
    )
    return result.data
