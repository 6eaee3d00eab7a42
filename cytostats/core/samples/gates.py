"""Gates selecting subsets of events.

A gate is an opaque predicate over event rows: ``contains(events)`` returns
a boolean mask with one entry per event. Gates never modify the events they
are applied to.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List, Mapping, Optional, Sequence, Tuple

import numpy as np
import pandas as pd
from matplotlib.path import Path as MplPath

from ..errors import ChannelNotFoundError, InvalidGateTypeError

Bounds = Tuple[Optional[float], Optional[float]]


class Gate:
    """Base class for gates."""

    gate_type = "base"

    @property
    def channels(self) -> List[str]:
        raise NotImplementedError

    def contains(self, events: pd.DataFrame) -> np.ndarray:
        raise NotImplementedError

    def to_dict(self) -> Dict[str, Any]:
        raise NotImplementedError

    def _check_channels(self, events: pd.DataFrame) -> None:
        for channel in self.channels:
            if channel not in events.columns:
                raise ChannelNotFoundError(channel, available=list(events.columns))


@dataclass
class RectangleGate(Gate):
    """Axis-aligned box; ``None`` leaves a side open.

    An event is inside when ``low <= value < high`` on every gated channel.
    """

    bounds: Dict[str, Bounds] = field(default_factory=dict)
    gate_type = "rectangle"

    def __post_init__(self):
        if not self.bounds:
            raise ValueError("RectangleGate needs at least one channel")
        for channel, (low, high) in self.bounds.items():
            if low is not None and high is not None and low >= high:
                raise ValueError(
                    f"RectangleGate bounds for '{channel}' are empty: [{low}, {high})"
                )

    @property
    def channels(self) -> List[str]:
        return list(self.bounds)

    def contains(self, events: pd.DataFrame) -> np.ndarray:
        self._check_channels(events)
        mask = np.ones(len(events), dtype=bool)
        for channel, (low, high) in self.bounds.items():
            values = events[channel].to_numpy(dtype=float)
            if low is not None:
                mask &= values >= low
            if high is not None:
                mask &= values < high
        return mask

    def to_dict(self) -> Dict[str, Any]:
        return {
            "type": self.gate_type,
            "bounds": {ch: [low, high] for ch, (low, high) in self.bounds.items()},
        }


@dataclass
class PolygonGate(Gate):
    """Closed polygon in a two-channel plane."""

    x_channel: str
    y_channel: str
    vertices: Sequence[Sequence[float]]
    gate_type = "polygon"

    def __post_init__(self):
        self.vertices = [tuple(map(float, v)) for v in self.vertices]
        if len(self.vertices) < 3:
            raise ValueError("PolygonGate needs at least 3 vertices")
        self._path = MplPath(np.asarray(self.vertices, dtype=float))

    @property
    def channels(self) -> List[str]:
        return [self.x_channel, self.y_channel]

    def contains(self, events: pd.DataFrame) -> np.ndarray:
        self._check_channels(events)
        if len(events) == 0:
            return np.zeros(0, dtype=bool)
        points = events[[self.x_channel, self.y_channel]].to_numpy(dtype=float)
        return np.asarray(self._path.contains_points(points), dtype=bool)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "type": self.gate_type,
            "channels": [self.x_channel, self.y_channel],
            "vertices": [list(v) for v in self.vertices],
        }


@dataclass(eq=False)
class EllipsoidGate(Gate):
    """Ellipsoid given by a center, covariance matrix and Mahalanobis radius.

    An event is inside when ``(x - mean)^T cov^-1 (x - mean) <= distance^2``.
    """

    gate_channels: Sequence[str]
    mean: Sequence[float]
    cov: Sequence[Sequence[float]]
    distance: float = 1.0
    gate_type = "ellipsoid"

    def __post_init__(self):
        self.gate_channels = [str(c) for c in self.gate_channels]
        self.mean = np.asarray(self.mean, dtype=float)
        self.cov = np.asarray(self.cov, dtype=float)
        n = len(self.gate_channels)
        if self.mean.shape != (n,) or self.cov.shape != (n, n):
            raise ValueError(
                f"EllipsoidGate over {n} channels needs a mean of length {n} "
                f"and a {n}x{n} covariance matrix"
            )
        if self.distance <= 0:
            raise ValueError("EllipsoidGate distance must be positive")
        self._precision = np.linalg.inv(self.cov)

    @property
    def channels(self) -> List[str]:
        return list(self.gate_channels)

    def contains(self, events: pd.DataFrame) -> np.ndarray:
        self._check_channels(events)
        centered = events[self.gate_channels].to_numpy(dtype=float) - self.mean
        d2 = np.einsum("ij,jk,ik->i", centered, self._precision, centered)
        return d2 <= self.distance ** 2

    def to_dict(self) -> Dict[str, Any]:
        return {
            "type": self.gate_type,
            "channels": list(self.gate_channels),
            "mean": self.mean.tolist(),
            "cov": self.cov.tolist(),
            "distance": float(self.distance),
        }


GATE_TYPES = ("rectangle", "polygon", "ellipsoid")


def _parse_bounds(raw: Mapping[str, Sequence[Optional[float]]]) -> Dict[str, Bounds]:
    bounds = {}
    for channel, pair in raw.items():
        low, high = pair
        bounds[str(channel)] = (
            None if low is None else float(low),
            None if high is None else float(high),
        )
    return bounds


def gate_from_dict(data: Mapping[str, Any]) -> Gate:
    """Build a gate from its YAML/JSON definition.

    Parameters
    ----------
    data : Mapping[str, Any]
        ``{"type": "rectangle", "bounds": {channel: [low, high]}}``,
        ``{"type": "polygon", "channels": [x, y], "vertices": [[x, y], ...]}`` or
        ``{"type": "ellipsoid", "channels": [...], "mean": [...], "cov": [[...]],
        "distance": 1.0}``.

    Returns
    -------
    Gate
        The constructed gate.

    Raises
    ------
    InvalidGateTypeError
        If the gate type is missing or unknown.
    """
    gate_type = str(data.get("type", "")).lower()
    if gate_type == "rectangle":
        return RectangleGate(bounds=_parse_bounds(data["bounds"]))
    if gate_type == "polygon":
        x_channel, y_channel = data["channels"]
        return PolygonGate(x_channel=x_channel, y_channel=y_channel, vertices=data["vertices"])
    if gate_type == "ellipsoid":
        return EllipsoidGate(
            gate_channels=data["channels"],
            mean=data["mean"],
            cov=data["cov"],
            distance=float(data.get("distance", 1.0)),
        )
    raise InvalidGateTypeError(
        f"Unknown gate type: {data.get('type')!r}",
        suggestion=f"Supported gate types: {', '.join(GATE_TYPES)}",
    )


def check_gate(gate: object) -> Optional[Gate]:
    """Validate a user-supplied gate argument; None passes through."""
    if gate is None:
        return None
    if not isinstance(gate, Gate):
        raise InvalidGateTypeError(
            f"'gate' must be a RectangleGate, PolygonGate or EllipsoidGate, "
            f"got {type(gate).__name__}",
        )
    return gate
