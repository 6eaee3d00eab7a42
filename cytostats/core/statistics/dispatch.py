"""Statistic name parsing.

User-facing names are parsed once into a ``StatisticKind``; everything
downstream dispatches on the enum.
"""

from __future__ import annotations

from enum import Enum
from typing import Dict, Union

from ..errors import UnsupportedStatisticError


class StatisticKind(str, Enum):
    """Canonical statistic kinds."""

    COUNT = "count"
    FREQ = "freq"
    MEAN = "mean"
    GEO_MEAN = "geo_mean"
    MEDIAN = "median"
    MODE = "mode"
    CV = "cv"

    @property
    def label(self) -> str:
        """Column label used in output tables."""
        return _LABELS[self]

    @property
    def is_channel_statistic(self) -> bool:
        """True for statistics computed per channel."""
        return self not in (StatisticKind.COUNT, StatisticKind.FREQ)


_LABELS: Dict[StatisticKind, str] = {
    StatisticKind.COUNT: "Count",
    StatisticKind.FREQ: "Percent",
    StatisticKind.MEAN: "MFI",
    StatisticKind.GEO_MEAN: "GMFI",
    StatisticKind.MEDIAN: "MedFI",
    StatisticKind.MODE: "ModFI",
    StatisticKind.CV: "CV",
}

# Lower-cased alias -> kind
STATISTIC_ALIASES: Dict[str, StatisticKind] = {
    "count": StatisticKind.COUNT,
    "events": StatisticKind.COUNT,
    "freq": StatisticKind.FREQ,
    "percent": StatisticKind.FREQ,
    "mean": StatisticKind.MEAN,
    "geo mean": StatisticKind.GEO_MEAN,
    "geo_mean": StatisticKind.GEO_MEAN,
    "geomean": StatisticKind.GEO_MEAN,
    "gmean": StatisticKind.GEO_MEAN,
    "median": StatisticKind.MEDIAN,
    "mode": StatisticKind.MODE,
    "cv": StatisticKind.CV,
}

CHANNEL_STATISTICS = tuple(k for k in StatisticKind if k.is_channel_statistic)


def parse_statistic(name: Union[str, StatisticKind]) -> StatisticKind:
    """Map a statistic name or alias to its kind.

    Parameters
    ----------
    name : str or StatisticKind
        Case-insensitive name, e.g. "Median", "geo mean", "CV". A
        StatisticKind is returned unchanged.

    Returns
    -------
    StatisticKind
        Canonical kind.

    Raises
    ------
    UnsupportedStatisticError
        If the name is not a recognized alias.
    """
    if isinstance(name, StatisticKind):
        return name
    if not isinstance(name, str):
        raise UnsupportedStatisticError(name, supported=STATISTIC_ALIASES)
    key = name.strip().lower()
    if key not in STATISTIC_ALIASES:
        raise UnsupportedStatisticError(name, supported=STATISTIC_ALIASES)
    return STATISTIC_ALIASES[key]
