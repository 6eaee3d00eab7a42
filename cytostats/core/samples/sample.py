"""Sample: one table of events with named channels."""

from __future__ import annotations

from typing import Dict, List, Mapping, Optional, Sequence, Union

import numpy as np
import pandas as pd

from ..errors import ChannelNotFoundError


class Sample:
    """An immutable event table (rows = events, columns = channels).

    Parameters
    ----------
    name : str
        Unique sample identifier.
    events : pd.DataFrame
        Numeric event table. The table is copied on construction.
    markers : Mapping[str, str], optional
        Channel to marker (antibody) mapping, e.g. ``{"PE-A": "CD4"}``.

    Example
    -------
    >>> sample = Sample("Activation_01", events, markers={"PE-A": "CD4"})
    >>> sample.resolve_channels(["CD4", "FSC-A"])
    ['PE-A', 'FSC-A']
    """

    def __init__(
        self,
        name: str,
        events: pd.DataFrame,
        markers: Optional[Mapping[str, str]] = None,
    ):
        self.name = str(name)
        self._events = events.reset_index(drop=True).copy()
        self._events.columns = [str(c) for c in self._events.columns]
        self.markers: Dict[str, str] = {
            str(ch): str(m) for ch, m in (markers or {}).items() if str(ch) in self._events.columns
        }

    def __len__(self) -> int:
        return len(self._events)

    def __repr__(self) -> str:
        return f"Sample(name={self.name!r}, n_events={len(self)}, n_channels={len(self.channels)})"

    @property
    def events(self) -> pd.DataFrame:
        """Copy of the event table."""
        return self._events.copy()

    @property
    def channels(self) -> List[str]:
        return list(self._events.columns)

    @property
    def n_events(self) -> int:
        return len(self._events)

    def values(self, channel: str) -> np.ndarray:
        """Return the values of one channel as a float array."""
        if channel not in self._events.columns:
            raise ChannelNotFoundError(channel, sample=self.name, available=self.channels)
        return self._events[channel].to_numpy(dtype=float, copy=True)

    def resolve_channels(self, channels: Optional[Union[str, Sequence[str]]] = None) -> List[str]:
        """Convert channel or marker names to channel names.

        Parameters
        ----------
        channels : str or Sequence[str], optional
            Channel names, marker names or a mix. None selects every channel.

        Returns
        -------
        List[str]
            Channel names in the order requested, without duplicates.

        Raises
        ------
        ChannelNotFoundError
            If a name matches neither a channel nor a marker.
        """
        if channels is None:
            return self.channels
        if isinstance(channels, str):
            channels = [channels]

        marker_to_channel = {m: ch for ch, m in self.markers.items()}
        marker_to_channel_lower = {m.lower(): ch for m, ch in marker_to_channel.items()}
        resolved: List[str] = []
        for name in channels:
            if name in self._events.columns:
                channel = name
            elif name in marker_to_channel:
                channel = marker_to_channel[name]
            elif str(name).lower() in marker_to_channel_lower:
                channel = marker_to_channel_lower[str(name).lower()]
            else:
                raise ChannelNotFoundError(
                    name,
                    sample=self.name,
                    available=self.channels + list(self.markers.values()),
                )
            if channel not in resolved:
                resolved.append(channel)
        return resolved

    def subset(self, mask: np.ndarray) -> "Sample":
        """Return a new Sample holding only events where mask is True."""
        mask = np.asarray(mask, dtype=bool)
        if mask.shape != (len(self),):
            raise ValueError(
                f"Mask length {mask.shape[0] if mask.ndim else 0} does not match "
                f"{len(self)} events in sample '{self.name}'"
            )
        return Sample(self.name, self._events.loc[mask], markers=self.markers)

    def gate(self, gate) -> "Sample":
        """Return the events of this sample inside gate."""
        return self.subset(gate.contains(self._events))

    def with_columns(self, columns: pd.DataFrame) -> "Sample":
        """Return a new Sample with extra channels appended."""
        if len(columns) != len(self):
            raise ValueError("Appended columns must have one row per event")
        clash = [c for c in columns.columns if c in self._events.columns]
        if clash:
            raise ValueError(f"Channels already present in sample '{self.name}': {clash}")
        appended = pd.concat(
            [self._events, columns.reset_index(drop=True)], axis=1
        )
        return Sample(self.name, appended, markers=self.markers)
