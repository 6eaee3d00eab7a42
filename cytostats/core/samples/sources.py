"""Sample sources consumed by the statistics pipeline.

Every input the pipeline accepts implements ``HierarchicalSampleSource``:

- ``SingleSample``: one ungated sample
- ``SampleSet``: several ungated samples with a metadata table
- ``SampleHierarchy``: one sample with a tree of gated populations
- ``SampleHierarchySet``: several hierarchies sharing a gating scheme

The pipeline only calls ``extract``, ``channels``, ``details`` and
``units``; it never looks at how populations are defined.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any, List, Mapping, Optional, Sequence

import pandas as pd

from ..errors import MissingPopulationError
from .sample import Sample
from .transforms import TransformerList, check_transformers

ROOT = "root"
NAME_COLUMN = "name"


def _metadata_frame(names: Sequence[str], metadata: Optional[pd.DataFrame]) -> pd.DataFrame:
    """Return one metadata row per name, in names order, ``name`` first."""
    if metadata is None or metadata.empty:
        return pd.DataFrame({NAME_COLUMN: list(names)})
    if NAME_COLUMN not in metadata.columns:
        raise ValueError(f"Sample metadata needs a '{NAME_COLUMN}' column")

    metadata = metadata.copy()
    metadata[NAME_COLUMN] = metadata[NAME_COLUMN].astype(str)
    missing = [n for n in names if n not in set(metadata[NAME_COLUMN])]
    if missing:
        raise ValueError(f"No metadata rows for samples: {missing}")

    ordered = metadata.drop_duplicates(NAME_COLUMN).set_index(NAME_COLUMN).loc[list(names)]
    ordered = ordered.reset_index()
    cols = [NAME_COLUMN] + [c for c in ordered.columns if c != NAME_COLUMN]
    return ordered[cols]


class HierarchicalSampleSource(ABC):
    """Interface shared by every sample container."""

    is_hierarchical: bool = False

    @property
    @abstractmethod
    def transformers(self) -> Optional[TransformerList]:
        """Transforms applied to the stored events, if known."""

    @abstractmethod
    def samples(self) -> List[Sample]:
        """Ungated samples in source order."""

    @abstractmethod
    def extract(self, alias: str = ROOT) -> List[Sample]:
        """Events of population ``alias``, one Sample per sample in order."""

    @abstractmethod
    def details(self) -> pd.DataFrame:
        """Metadata with one row per sample, ``name`` as the first column."""

    def units(self) -> List["HierarchicalSampleSource"]:
        """Independent per-sample pieces processed one at a time."""
        return [self]

    def channels(self) -> List[str]:
        """Channels of the first sample."""
        samples = self.samples()
        return samples[0].channels if samples else []

    def sample_names(self) -> List[str]:
        return [s.name for s in self.samples()]

    def __len__(self) -> int:
        return len(self.samples())


class SingleSample(HierarchicalSampleSource):
    """A single ungated sample.

    Parameters
    ----------
    sample : Sample
        The events.
    metadata : Mapping[str, Any], optional
        Extra columns reported next to the statistics.
    transformers : TransformerList, optional
        Transforms already applied to the events.
    """

    def __init__(
        self,
        sample: Sample,
        metadata: Optional[Mapping[str, Any]] = None,
        transformers: Optional[TransformerList] = None,
    ):
        self.sample = sample
        self.metadata = dict(metadata or {})
        self._transformers = check_transformers(transformers)

    @property
    def transformers(self) -> Optional[TransformerList]:
        return self._transformers

    def samples(self) -> List[Sample]:
        return [self.sample]

    def extract(self, alias: str = ROOT) -> List[Sample]:
        if alias != ROOT:
            raise MissingPopulationError(alias, sample=self.sample.name, available=[ROOT])
        return [self.sample]

    def details(self) -> pd.DataFrame:
        row = {NAME_COLUMN: self.sample.name}
        row.update({k: v for k, v in self.metadata.items() if k != NAME_COLUMN})
        return pd.DataFrame([row])


class SampleSet(HierarchicalSampleSource):
    """An ordered collection of ungated samples.

    Parameters
    ----------
    samples : Sequence[Sample]
        Samples with unique names.
    metadata : pd.DataFrame, optional
        Table with a ``name`` column and one row per sample.
    transformers : TransformerList, optional
        Transforms already applied to the events.
    """

    def __init__(
        self,
        samples: Sequence[Sample],
        metadata: Optional[pd.DataFrame] = None,
        transformers: Optional[TransformerList] = None,
    ):
        self._samples = list(samples)
        names = [s.name for s in self._samples]
        duplicated = sorted({n for n in names if names.count(n) > 1})
        if duplicated:
            raise ValueError(f"Duplicated sample names: {duplicated}")
        self._metadata = _metadata_frame(names, metadata)
        self._transformers = check_transformers(transformers)

    @property
    def transformers(self) -> Optional[TransformerList]:
        return self._transformers

    def samples(self) -> List[Sample]:
        return list(self._samples)

    def extract(self, alias: str = ROOT) -> List[Sample]:
        if alias != ROOT:
            raise MissingPopulationError(alias, available=[ROOT])
        return list(self._samples)

    def details(self) -> pd.DataFrame:
        return self._metadata.copy()

    def units(self) -> List[HierarchicalSampleSource]:
        rows = self._metadata.to_dict("records")
        return [
            SingleSample(sample, metadata=row, transformers=self._transformers)
            for sample, row in zip(self._samples, rows)
        ]


def as_source(source: object) -> HierarchicalSampleSource:
    """Wrap a bare Sample so every input looks like a source."""
    if isinstance(source, HierarchicalSampleSource):
        return source
    if isinstance(source, Sample):
        return SingleSample(source)
    raise TypeError(
        f"Expected a Sample or HierarchicalSampleSource, got {type(source).__name__}"
    )
