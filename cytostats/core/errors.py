"""
Errors with actionable diagnostics for statistics computation.

Each error carries a machine-readable code and, where a close match exists,
a suggestion naming what the caller probably meant. Every error also derives
from the nearest builtin exception so generic handlers keep working.

Error Codes:
    S001_UNSUPPORTED_STATISTIC: Statistic name not recognized
    S002_MISSING_POPULATION: Population alias not found in a hierarchy
    S003_CHANNEL_NOT_FOUND: Channel or marker not found in a sample
    S004_INVALID_TRANSFORM: Transform object is not a TransformerList
    S005_INVALID_GATE: Gate object or gate definition not recognized
    S006_ZERO_PARENT_COUNT: Frequency requested against an empty parent
    S007_NON_POSITIVE_VALUE: Geometric mean of non-positive values
    S008_UNSUPPORTED_MAPPING: Dimension-reduction type not recognized
"""

from __future__ import annotations

from difflib import get_close_matches
from typing import Iterable, Optional


def suggest(value: str, candidates: Iterable[str], n: int = 3) -> str:
    """Return a "Did you mean" hint for value, or an empty string."""
    candidates = [str(c) for c in candidates]
    matches = get_close_matches(str(value), candidates, n=n, cutoff=0.4)
    if not matches:
        lowered = {c.lower(): c for c in candidates}
        if str(value).lower() in lowered:
            matches = [lowered[str(value).lower()]]
    if matches:
        return f"Did you mean: {', '.join(matches)}?"
    return ""


class CytoStatsError(Exception):
    """Base class for cytostats errors.

    Attributes
    ----------
    message : str
        Human-readable error description
    error_code : str
        Machine-readable error code for programmatic handling
    suggestion : str
        Actionable suggestion for fixing the error
    """

    error_code = "S000_UNKNOWN"

    def __init__(self, message: str, suggestion: str = ""):
        super().__init__(message)
        self.message = message
        self.suggestion = suggestion

    def __str__(self) -> str:
        parts = [f"[{self.error_code}] {self.message}"]
        if self.suggestion:
            parts.append(f"  Suggestion: {self.suggestion}")
        return "\n".join(parts)


class UnsupportedStatisticError(CytoStatsError, ValueError):
    """Requested statistic is not one of the recognized kinds."""

    error_code = "S001_UNSUPPORTED_STATISTIC"

    def __init__(self, statistic: object, supported: Iterable[str] = ()):
        supported = list(supported)
        super().__init__(
            f"Supplied statistic not supported: {statistic!r}",
            suggestion=suggest(str(statistic), supported) if supported else "",
        )
        self.statistic = statistic


class MissingPopulationError(CytoStatsError, KeyError):
    """Population alias does not exist in the hierarchy."""

    error_code = "S002_MISSING_POPULATION"

    def __init__(self, alias: str, sample: str = "", available: Iterable[str] = ()):
        where = f" in sample '{sample}'" if sample else ""
        super().__init__(
            f"Population '{alias}' not found{where}",
            suggestion=suggest(alias, available),
        )
        self.alias = alias
        self.sample = sample


class ChannelNotFoundError(CytoStatsError, KeyError):
    """Channel or marker name does not match any channel of a sample."""

    error_code = "S003_CHANNEL_NOT_FOUND"

    def __init__(self, channel: str, sample: str = "", available: Iterable[str] = ()):
        where = f" in sample '{sample}'" if sample else ""
        super().__init__(
            f"'{channel}' is not a valid channel or marker{where}",
            suggestion=suggest(channel, available),
        )
        self.channel = channel


class InvalidTransformTypeError(CytoStatsError, TypeError):
    """Supplied transform object is not a TransformerList."""

    error_code = "S004_INVALID_TRANSFORM"

    def __init__(self, found: object):
        super().__init__(
            f"'trans' must be a TransformerList, got {type(found).__name__}",
            suggestion="Wrap per-channel transforms with TransformerList({channel: transform}).",
        )


class InvalidGateTypeError(CytoStatsError, TypeError):
    """Supplied gate is not a Gate, or a gate definition names an unknown type."""

    error_code = "S005_INVALID_GATE"

    def __init__(self, message: str, suggestion: str = ""):
        super().__init__(message, suggestion=suggestion)


class ZeroParentCountError(CytoStatsError, ZeroDivisionError):
    """Frequency requested relative to a parent population without events."""

    error_code = "S006_ZERO_PARENT_COUNT"

    def __init__(self, parent: str, sample: str = "", population: Optional[str] = None):
        target = f"'{population}' " if population else ""
        where = f" in sample '{sample}'" if sample else ""
        super().__init__(
            f"Cannot compute frequency of {target}relative to parent '{parent}'{where}: "
            "parent contains no events",
        )
        self.parent = parent
        self.sample = sample


class NonPositiveValueError(CytoStatsError, ValueError):
    """Geometric mean requested on data containing zero or negative values."""

    error_code = "S007_NON_POSITIVE_VALUE"

    def __init__(self, channel: str, n_invalid: int, sample: str = ""):
        where = f" in sample '{sample}'" if sample else ""
        super().__init__(
            f"Geometric mean is undefined for channel '{channel}'{where}: "
            f"{n_invalid} non-positive value(s)",
            suggestion="Supply the transformers used on the data so values are "
            "returned to the linear scale, or use 'median' instead.",
        )
        self.channel = channel


class UnsupportedMappingError(CytoStatsError, ValueError):
    """Dimension-reduction type is not supported."""

    error_code = "S008_UNSUPPORTED_MAPPING"

    def __init__(self, map_type: str, supported: Iterable[str] = ()):
        supported = list(supported)
        super().__init__(
            f"{map_type} is not a supported mapping type",
            suggestion=suggest(map_type, supported),
        )


class MissingTransformWarning(UserWarning):
    """Statistics are returned on the current, possibly transformed, scale."""
