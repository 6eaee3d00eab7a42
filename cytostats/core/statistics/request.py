"""Normalized statistic requests."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional, Sequence, Tuple, Union

from ...utils.stats import DEFAULT_GRID_SIZE
from ..samples.gates import Gate, check_gate
from ..samples.transforms import TransformerList, check_transformers
from .config import VALID_FORMATS
from .dispatch import StatisticKind, parse_statistic

Names = Optional[Union[str, Sequence[str]]]


def _as_tuple(values: Names) -> Optional[Tuple[str, ...]]:
    if values is None:
        return None
    if isinstance(values, str):
        return (values,)
    return tuple(str(v) for v in values)


@dataclass(frozen=True)
class StatisticRequest:
    """Everything needed to compute one statistic over a source.

    Attributes
    ----------
    kind : StatisticKind
        Statistic to compute
    channels : Tuple[str, ...], optional
        Channels or markers (None = all channels)
    transformers : TransformerList, optional
        Transforms of the stored events; overrides the source's own
    density_smooth : float
        Bandwidth multiplier for mode
    gate : Gate, optional
        Gate applied to flat sources
    format : str
        "long" or "wide"
    alias : Tuple[str, ...], optional
        Populations to summarize (hierarchical sources)
    parent : Tuple[str, ...], optional
        Reference populations for freq
    grid_size : int
        Density grid size for mode
    """

    kind: StatisticKind
    channels: Optional[Tuple[str, ...]] = None
    transformers: Optional[TransformerList] = None
    density_smooth: float = 0.6
    gate: Optional[Gate] = None
    format: str = "long"
    alias: Optional[Tuple[str, ...]] = None
    parent: Optional[Tuple[str, ...]] = None
    grid_size: int = DEFAULT_GRID_SIZE

    def __post_init__(self):
        if not isinstance(self.kind, StatisticKind):
            raise TypeError("kind must be a StatisticKind; use StatisticRequest.build for names")
        check_transformers(self.transformers)
        check_gate(self.gate)
        if self.format not in VALID_FORMATS:
            raise ValueError(f"format must be one of {VALID_FORMATS}, got {self.format!r}")
        if self.kind is StatisticKind.MODE and not self.density_smooth > 0:
            raise ValueError(f"density_smooth must be positive, got {self.density_smooth}")

    @classmethod
    def build(
        cls,
        statistic: Union[str, StatisticKind] = "median",
        channels: Names = None,
        transformers: Optional[TransformerList] = None,
        density_smooth: float = 0.6,
        gate: Optional[Gate] = None,
        format: str = "long",
        alias: Names = None,
        parent: Names = None,
        grid_size: int = DEFAULT_GRID_SIZE,
    ) -> "StatisticRequest":
        """Create a request from user-facing arguments."""
        return cls(
            kind=parse_statistic(statistic),
            channels=_as_tuple(channels),
            transformers=transformers,
            density_smooth=density_smooth,
            gate=gate,
            format=format,
            alias=_as_tuple(alias),
            parent=_as_tuple(parent),
            grid_size=grid_size,
        )
