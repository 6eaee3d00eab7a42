"""Per-sample statistic computation.

All functions are pure: samples are never modified and new dictionaries are
returned. Channel statistics are computed on the linear scale when a
``TransformerList`` is supplied and on the stored scale otherwise.
"""

from __future__ import annotations

import logging
import warnings
from typing import Callable, Dict, Optional, Sequence, Union

import numpy as np

from ...utils.stats import (
    DEFAULT_GRID_SIZE,
    arithmetic_mean,
    coefficient_of_variation,
    geometric_mean,
    kde_mode,
    median,
)
from ..errors import MissingTransformWarning, NonPositiveValueError, ZeroParentCountError
from ..samples.gates import Gate, check_gate
from ..samples.sample import Sample
from ..samples.sources import ROOT
from ..samples.transforms import TransformerList, check_transformers
from .dispatch import StatisticKind, parse_statistic

logger = logging.getLogger(__name__)

COUNT_KEY = "Count"

MISSING_TRANSFORM_MESSAGE = (
    "'trans' missing - statistics will be returned on the current scale."
)

_ESTIMATORS: Dict[StatisticKind, Callable[[np.ndarray], float]] = {
    StatisticKind.MEAN: arithmetic_mean,
    StatisticKind.MEDIAN: median,
    StatisticKind.CV: coefficient_of_variation,
}


def warn_missing_transform(kind: StatisticKind, transformers: Optional[TransformerList]) -> bool:
    """Issue MissingTransformWarning for channel statistics without transforms.

    Returns True if a warning was issued.
    """
    if transformers is None and kind.is_channel_statistic:
        warnings.warn(MISSING_TRANSFORM_MESSAGE, MissingTransformWarning, stacklevel=3)
        return True
    return False


def count_events(sample: Sample, gate: Optional[Gate] = None) -> int:
    """Number of events in sample, after gating when a gate is given."""
    if gate is None:
        return len(sample)
    return int(np.sum(gate.contains(sample.events)))


def frequency(
    count: int,
    parent_count: int,
    parent: str = ROOT,
    sample: str = "",
    population: Optional[str] = None,
) -> float:
    """Percentage of parent events in a population.

    Raises
    ------
    ZeroParentCountError
        If the parent has no events.
    """
    if parent_count == 0:
        raise ZeroParentCountError(parent, sample=sample, population=population)
    return 100.0 * count / parent_count


def channel_statistics(
    sample: Sample,
    channels: Sequence[str],
    kind: StatisticKind,
    transformers: Optional[TransformerList] = None,
    density_smooth: float = 0.6,
    grid_size: int = DEFAULT_GRID_SIZE,
) -> Dict[str, float]:
    """Compute one channel statistic per resolved channel.

    Parameters
    ----------
    sample : Sample
        Events to summarize (already gated).
    channels : Sequence[str]
        Channel names present in sample.
    kind : StatisticKind
        One of mean, geo_mean, median, mode, cv.
    transformers : TransformerList, optional
        Used to return values to the linear scale before summarizing.
    density_smooth : float
        Bandwidth multiplier for mode.
    grid_size : int
        Density grid size for mode.

    Returns
    -------
    Dict[str, float]
        Channel -> value, in channel order. NaN for empty samples.
    """
    if not kind.is_channel_statistic:
        raise ValueError(f"{kind.value} is not a channel statistic")
    if kind is StatisticKind.MODE and not density_smooth > 0:
        raise ValueError(f"density_smooth must be positive, got {density_smooth}")

    result: Dict[str, float] = {}
    for channel in channels:
        values = sample.values(channel)
        if transformers is not None:
            values = transformers.inverse(channel, values)

        if kind is StatisticKind.GEO_MEAN:
            n_invalid = int(np.sum(values[np.isfinite(values)] <= 0))
            if n_invalid:
                raise NonPositiveValueError(channel, n_invalid, sample=sample.name)
            result[channel] = geometric_mean(values)
        elif kind is StatisticKind.MODE:
            result[channel] = kde_mode(values, density_smooth=density_smooth, grid_size=grid_size)
        else:
            result[channel] = _ESTIMATORS[kind](values)
    return result


def compute_statistic(
    sample: Sample,
    channels: Optional[Union[str, Sequence[str]]] = None,
    kind: Union[str, StatisticKind] = StatisticKind.MEDIAN,
    transformers: Optional[TransformerList] = None,
    gate: Optional[Gate] = None,
    density_smooth: float = 0.6,
    parent: Optional[Sample] = None,
    grid_size: int = DEFAULT_GRID_SIZE,
) -> Dict[str, float]:
    """Compute one statistic for one sample.

    Parameters
    ----------
    sample : Sample
        Events to summarize.
    channels : str or Sequence[str], optional
        Channel or marker names; None selects every channel. Ignored for
        count and freq.
    kind : str or StatisticKind
        Statistic name or kind.
    transformers : TransformerList, optional
        Transforms applied to the stored events.
    gate : Gate, optional
        Gate applied to sample before computing.
    density_smooth : float
        Bandwidth multiplier for mode.
    parent : Sample, optional
        Reference population for freq. When None the ungated sample is the
        parent and the gated events the numerator.
    grid_size : int
        Density grid size for mode.

    Returns
    -------
    Dict[str, float]
        ``{"Count": n}`` for count, ``{"root": pct}`` (or ``{"parent": pct}``
        when parent is given) for freq, channel -> value otherwise.

    Raises
    ------
    UnsupportedStatisticError
        Unknown statistic name.
    InvalidTransformTypeError
        transformers is not a TransformerList.
    InvalidGateTypeError
        gate is not a Gate.
    ZeroParentCountError
        freq against an empty parent.
    NonPositiveValueError
        geo mean on non-positive values.

    Example
    -------
    >>> compute_statistic(sample, ["CD4", "CD8"], "median", transformers=trans)
    {'PE-A': 812.4, 'APC-A': 95.1}
    """
    kind = parse_statistic(kind)
    transformers = check_transformers(transformers)
    gate = check_gate(gate)

    if kind is StatisticKind.COUNT:
        return {COUNT_KEY: count_events(sample, gate)}

    if kind is StatisticKind.FREQ:
        if parent is None:
            parent_alias, parent_count = ROOT, len(sample)
        else:
            parent_alias, parent_count = "parent", len(parent)
        count = count_events(sample, gate)
        return {
            parent_alias: frequency(count, parent_count, parent=parent_alias, sample=sample.name)
        }

    warn_missing_transform(kind, transformers)
    resolved = sample.resolve_channels(channels)
    gated = sample.gate(gate) if gate is not None else sample
    return channel_statistics(
        gated,
        resolved,
        kind,
        transformers=transformers,
        density_smooth=density_smooth,
        grid_size=grid_size,
    )
