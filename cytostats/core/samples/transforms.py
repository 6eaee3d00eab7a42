"""Per-channel transforms and their inverses.

Cytometry channels are usually analysed on a compressed display scale
(log, arcsinh). Statistics such as the mean or median are reported on the
linear scale, so every transform here is a monotonic bijection with an
explicit inverse.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, Iterator, List, Mapping, Optional

import numpy as np
import pandas as pd

from ..errors import InvalidTransformTypeError


class Transform:
    """Base class for monotonic per-channel transforms."""

    name = "base"

    def forward(self, values: np.ndarray) -> np.ndarray:
        raise NotImplementedError

    def inverse(self, values: np.ndarray) -> np.ndarray:
        raise NotImplementedError

    def to_dict(self) -> Dict[str, Any]:
        return {"type": self.name}


@dataclass(frozen=True)
class LinearTransform(Transform):
    """Affine transform ``slope * x + intercept``."""

    slope: float = 1.0
    intercept: float = 0.0
    name = "linear"

    def __post_init__(self):
        if self.slope == 0:
            raise ValueError("LinearTransform slope must be non-zero")

    def forward(self, values: np.ndarray) -> np.ndarray:
        return np.asarray(values, dtype=float) * self.slope + self.intercept

    def inverse(self, values: np.ndarray) -> np.ndarray:
        return (np.asarray(values, dtype=float) - self.intercept) / self.slope

    def to_dict(self) -> Dict[str, Any]:
        return {"type": self.name, "slope": self.slope, "intercept": self.intercept}


@dataclass(frozen=True)
class LogTransform(Transform):
    """Logarithm with configurable base, ``log_base(x)``."""

    base: float = 10.0
    name = "log"

    def __post_init__(self):
        if self.base <= 0 or self.base == 1:
            raise ValueError(f"Invalid log base: {self.base}")

    def forward(self, values: np.ndarray) -> np.ndarray:
        values = np.asarray(values, dtype=float)
        with np.errstate(divide="ignore", invalid="ignore"):
            return np.log(values) / np.log(self.base)

    def inverse(self, values: np.ndarray) -> np.ndarray:
        return np.power(self.base, np.asarray(values, dtype=float))

    def to_dict(self) -> Dict[str, Any]:
        return {"type": self.name, "base": self.base}


@dataclass(frozen=True)
class Log1pTransform(Transform):
    """``log(1 + x)``; negative inputs are clipped at zero."""

    name = "log1p"

    def forward(self, values: np.ndarray) -> np.ndarray:
        return np.log1p(np.maximum(np.asarray(values, dtype=float), 0))

    def inverse(self, values: np.ndarray) -> np.ndarray:
        return np.expm1(np.asarray(values, dtype=float))


@dataclass(frozen=True)
class ArcsinhTransform(Transform):
    """``asinh(x / cofactor)``, the usual choice for fluorescence channels."""

    cofactor: float = 150.0
    name = "arcsinh"

    def __post_init__(self):
        if self.cofactor <= 0:
            raise ValueError(f"Arcsinh cofactor must be positive, got {self.cofactor}")

    def forward(self, values: np.ndarray) -> np.ndarray:
        return np.arcsinh(np.asarray(values, dtype=float) / self.cofactor)

    def inverse(self, values: np.ndarray) -> np.ndarray:
        return np.sinh(np.asarray(values, dtype=float)) * self.cofactor

    def to_dict(self) -> Dict[str, Any]:
        return {"type": self.name, "cofactor": self.cofactor}


TRANSFORM_TYPES = {
    "linear": LinearTransform,
    "log": LogTransform,
    "log1p": Log1pTransform,
    "arcsinh": ArcsinhTransform,
    "asinh": ArcsinhTransform,
}


def transform_from_dict(data: Mapping[str, Any]) -> Transform:
    """Build a Transform from a ``{"type": ..., **params}`` mapping."""
    params = dict(data)
    transform_type = str(params.pop("type", "")).lower()
    if transform_type not in TRANSFORM_TYPES:
        raise ValueError(
            f"Unknown transform type: {transform_type!r}. "
            f"Available: {sorted(TRANSFORM_TYPES)}"
        )
    return TRANSFORM_TYPES[transform_type](**params)


class TransformerList:
    """Mapping of channel name to Transform.

    Channels without an entry are left untouched by ``apply`` and
    ``inverse_apply``.

    Example
    -------
    >>> trans = TransformerList({"FL1-A": ArcsinhTransform(cofactor=150)})
    >>> linear = trans.inverse("FL1-A", np.array([0.5, 1.0]))
    """

    def __init__(self, transforms: Optional[Mapping[str, Transform]] = None):
        self._transforms: Dict[str, Transform] = {}
        for channel, transform in (transforms or {}).items():
            if not isinstance(transform, Transform):
                raise TypeError(
                    f"Transform for channel '{channel}' must be a Transform, "
                    f"got {type(transform).__name__}"
                )
            self._transforms[str(channel)] = transform

    def __contains__(self, channel: object) -> bool:
        return channel in self._transforms

    def __getitem__(self, channel: str) -> Transform:
        return self._transforms[channel]

    def __iter__(self) -> Iterator[str]:
        return iter(self._transforms)

    def __len__(self) -> int:
        return len(self._transforms)

    def __repr__(self) -> str:
        inner = ", ".join(f"{k}: {v.name}" for k, v in self._transforms.items())
        return f"TransformerList({{{inner}}})"

    @property
    def channels(self) -> List[str]:
        return list(self._transforms)

    def forward(self, channel: str, values: np.ndarray) -> np.ndarray:
        values = np.asarray(values, dtype=float)
        if channel not in self._transforms:
            return values
        return self._transforms[channel].forward(values)

    def inverse(self, channel: str, values: np.ndarray) -> np.ndarray:
        """Return values of channel on the linear scale."""
        values = np.asarray(values, dtype=float)
        if channel not in self._transforms:
            return values
        return self._transforms[channel].inverse(values)

    def apply(self, events: pd.DataFrame) -> pd.DataFrame:
        """Return a transformed copy of an event table."""
        out = events.copy()
        for channel in self._transforms:
            if channel in out.columns:
                out[channel] = self.forward(channel, out[channel].to_numpy())
        return out

    def inverse_apply(self, events: pd.DataFrame) -> pd.DataFrame:
        """Return a copy of an event table on the linear scale."""
        out = events.copy()
        for channel in self._transforms:
            if channel in out.columns:
                out[channel] = self.inverse(channel, out[channel].to_numpy())
        return out

    def to_dict(self) -> Dict[str, Dict[str, Any]]:
        return {channel: t.to_dict() for channel, t in self._transforms.items()}

    @classmethod
    def from_dict(cls, data: Mapping[str, Mapping[str, Any]]) -> "TransformerList":
        """Create from ``{channel: {"type": ..., **params}}``."""
        return cls({channel: transform_from_dict(spec) for channel, spec in data.items()})


def check_transformers(trans: object) -> Optional[TransformerList]:
    """Validate a user-supplied transform argument.

    None passes through. Anything that is not a TransformerList raises
    InvalidTransformTypeError.
    """
    if trans is None:
        return None
    if not isinstance(trans, TransformerList):
        raise InvalidTransformTypeError(trans)
    return trans
