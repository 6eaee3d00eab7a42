"""Statistics over whole sample sources.

Sources are processed one unit (sample or hierarchy) at a time and the
per-unit tables are concatenated in source order. Within a unit, records
are ordered by alias and then by channel or parent as requested.
"""

from __future__ import annotations

import logging
from typing import Dict, List, Optional, Sequence

from ..samples.sources import ROOT, HierarchicalSampleSource
from ..samples.transforms import TransformerList
from .compute import COUNT_KEY, channel_statistics, count_events, frequency
from .dispatch import StatisticKind
from .layout import StatisticRecord, StatisticTable
from .request import StatisticRequest

logger = logging.getLogger(__name__)

MISSING_ALIAS_MESSAGE = "Supply the name of the population to 'alias'."


def resolve_parents(
    request: StatisticRequest,
    default_parent: str = ROOT,
) -> List[str]:
    """Parents used for freq; falls back to default_parent."""
    if request.parent:
        return list(request.parent)
    logger.info(
        "Calculating frequency relative to '%s' population; set 'parent' to change it",
        default_parent,
    )
    return [default_parent]


def effective_transformers(
    source: HierarchicalSampleSource,
    request: StatisticRequest,
) -> Optional[TransformerList]:
    """Explicitly requested transforms win over the source's own."""
    if request.transformers is not None:
        return request.transformers
    return source.transformers


def _check_request(source: HierarchicalSampleSource, request: StatisticRequest) -> None:
    if request.parent and request.kind is not StatisticKind.FREQ:
        logger.warning(
            "Ignoring parent %s: parents are only used for freq", list(request.parent)
        )
    if not source.is_hierarchical:
        ignored = [a for a in request.alias or () if a != ROOT]
        if ignored:
            logger.warning(
                "Ignoring alias %s: %s has no gated populations, "
                "statistics are computed on whole samples",
                ignored,
                type(source).__name__,
            )
        return
    if request.gate is not None:
        raise ValueError(
            "'gate' is only supported for ungated samples; "
            "add the gate to the hierarchy and select it with 'alias'"
        )
    if not request.alias:
        raise ValueError(MISSING_ALIAS_MESSAGE)


def _hierarchy_records(
    unit: HierarchicalSampleSource,
    request: StatisticRequest,
    transformers: Optional[TransformerList],
    parents: Sequence[str],
) -> List[StatisticRecord]:
    sample_name = unit.samples()[0].name
    kind = request.kind
    channels = None
    if kind.is_channel_statistic:
        channels = unit.samples()[0].resolve_channels(request.channels)

    parent_counts: Dict[str, int] = {}
    records: List[StatisticRecord] = []
    for alias in request.alias:
        population = unit.extract(alias)[0]

        if kind is StatisticKind.COUNT:
            records.append(StatisticRecord(sample_name, alias, COUNT_KEY, len(population)))
        elif kind is StatisticKind.FREQ:
            for parent in parents:
                if parent not in parent_counts:
                    parent_counts[parent] = len(unit.extract(parent)[0])
                value = frequency(
                    len(population),
                    parent_counts[parent],
                    parent=parent,
                    sample=sample_name,
                    population=alias,
                )
                records.append(StatisticRecord(sample_name, alias, parent, value))
        else:
            values = channel_statistics(
                population,
                channels,
                kind,
                transformers=transformers,
                density_smooth=request.density_smooth,
                grid_size=request.grid_size,
            )
            records.extend(
                StatisticRecord(sample_name, alias, channel, value)
                for channel, value in values.items()
            )
    return records


def _flat_records(
    unit: HierarchicalSampleSource,
    request: StatisticRequest,
    transformers: Optional[TransformerList],
    parents: Sequence[str],
) -> List[StatisticRecord]:
    sample = unit.samples()[0]
    kind = request.kind

    if kind is StatisticKind.COUNT:
        return [StatisticRecord(sample.name, None, COUNT_KEY, count_events(sample, request.gate))]

    if kind is StatisticKind.FREQ:
        count = count_events(sample, request.gate)
        records = []
        for parent in parents:
            parent_count = len(unit.extract(parent)[0])
            value = frequency(count, parent_count, parent=parent, sample=sample.name)
            records.append(StatisticRecord(sample.name, None, parent, value))
        return records

    channels = sample.resolve_channels(request.channels)
    gated = sample.gate(request.gate) if request.gate is not None else sample
    values = channel_statistics(
        gated,
        channels,
        kind,
        transformers=transformers,
        density_smooth=request.density_smooth,
        grid_size=request.grid_size,
    )
    return [StatisticRecord(sample.name, None, ch, v) for ch, v in values.items()]


def aggregate_statistics(
    source: HierarchicalSampleSource,
    request: StatisticRequest,
    default_parent: str = ROOT,
) -> StatisticTable:
    """Compute a statistic for every unit of a source.

    Parameters
    ----------
    source : HierarchicalSampleSource
        Single sample, sample set, hierarchy or hierarchy set.
    request : StatisticRequest
        What to compute.
    default_parent : str
        Parent used for freq when the request names none.

    Returns
    -------
    StatisticTable
        Records ordered by unit, then alias, then channel or parent.

    Raises
    ------
    ValueError
        Hierarchical source without alias, or with a gate.
    MissingPopulationError
        Alias or parent not defined in a hierarchy.
    """
    _check_request(source, request)
    transformers = effective_transformers(source, request)
    parents: List[str] = []
    if request.kind is StatisticKind.FREQ:
        parents = resolve_parents(request, default_parent)

    build = _hierarchy_records if source.is_hierarchical else _flat_records
    tables = []
    for unit in source.units():
        records = build(unit, request, transformers, parents)
        tables.append(
            StatisticTable(
                kind=request.kind,
                records=records,
                metadata=unit.details(),
                hierarchical=source.is_hierarchical,
            )
        )
        logger.debug("Computed %d %s values for %s", len(records), request.kind.value, unit.sample_names())

    if not tables:
        return StatisticTable(
            kind=request.kind,
            metadata=source.details(),
            hierarchical=source.is_hierarchical,
        )
    return StatisticTable.concat(tables)
