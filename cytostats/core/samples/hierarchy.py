"""Population trees for gated samples.

A ``SampleHierarchy`` holds one sample and a tree of populations rooted at
``"root"`` (the ungated sample). Each population applies its gate to the
events of its parent, so extracting a population walks the path from the
root and applies each gate in turn.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Dict, List, Mapping, Optional, Sequence

import pandas as pd

from ..errors import MissingPopulationError
from .gates import Gate, check_gate
from .sample import Sample
from .sources import (
    NAME_COLUMN,
    ROOT,
    HierarchicalSampleSource,
    _metadata_frame,
)
from .transforms import TransformerList, check_transformers

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PopulationNode:
    """A named population and how it is derived from its parent.

    Attributes
    ----------
    alias : str
        Population name, unique within its hierarchy
    parent : str
        Alias of the parent population ("root" for top-level gates)
    gate : Gate
        Gate applied to the parent's events
    """

    alias: str
    parent: str
    gate: Gate


class SampleHierarchy(HierarchicalSampleSource):
    """One sample with a tree of gated populations.

    Parameters
    ----------
    sample : Sample
        Ungated events (the "root" population).
    transformers : TransformerList, optional
        Transforms applied to the stored events.
    metadata : Mapping[str, Any], optional
        Extra columns reported next to the statistics.

    Example
    -------
    >>> gh = SampleHierarchy(sample, transformers=trans)
    >>> gh.add_population("Cells", RectangleGate({"FSC-A": (5e4, None)}))
    >>> gh.add_population("T Cells", RectangleGate({"CD3": (1.5, None)}), parent="Cells")
    >>> t_cells = gh.extract_population("T Cells")
    """

    is_hierarchical = True

    def __init__(
        self,
        sample: Sample,
        transformers: Optional[TransformerList] = None,
        metadata: Optional[Mapping[str, Any]] = None,
    ):
        self.sample = sample
        self.metadata = dict(metadata or {})
        self._transformers = check_transformers(transformers)
        self._nodes: Dict[str, PopulationNode] = {}

    def __repr__(self) -> str:
        return (
            f"SampleHierarchy(sample={self.sample.name!r}, "
            f"populations={self.populations()})"
        )

    @property
    def name(self) -> str:
        return self.sample.name

    @property
    def transformers(self) -> Optional[TransformerList]:
        return self._transformers

    # ------------------------------------------------------------------
    # Tree construction and navigation
    # ------------------------------------------------------------------

    def add_population(self, alias: str, gate: Gate, parent: str = ROOT) -> PopulationNode:
        """Add a population gated from ``parent``.

        Raises
        ------
        ValueError
            If alias is "root" or already defined.
        MissingPopulationError
            If parent is not defined.
        InvalidGateTypeError
            If gate is not a Gate.
        """
        alias = str(alias)
        if alias == ROOT:
            raise ValueError(f"'{ROOT}' is reserved for the ungated sample")
        if alias in self._nodes:
            raise ValueError(f"Population '{alias}' already exists in sample '{self.name}'")
        self._check_alias(parent)
        check_gate(gate)
        node = PopulationNode(alias=alias, parent=parent, gate=gate)
        self._nodes[alias] = node
        return node

    def populations(self) -> List[str]:
        """Population aliases in definition order, excluding root."""
        return list(self._nodes)

    def parent_of(self, alias: str) -> Optional[str]:
        self._check_alias(alias)
        if alias == ROOT:
            return None
        return self._nodes[alias].parent

    def children(self, alias: str = ROOT) -> List[str]:
        self._check_alias(alias)
        return [node.alias for node in self._nodes.values() if node.parent == alias]

    def path(self, alias: str) -> List[str]:
        """Aliases from root down to alias, inclusive."""
        self._check_alias(alias)
        lineage = [alias]
        while lineage[-1] != ROOT:
            lineage.append(self._nodes[lineage[-1]].parent)
        return list(reversed(lineage))

    def _check_alias(self, alias: str) -> None:
        if alias != ROOT and alias not in self._nodes:
            raise MissingPopulationError(
                alias, sample=self.name, available=[ROOT] + self.populations()
            )

    # ------------------------------------------------------------------
    # Extraction
    # ------------------------------------------------------------------

    def extract_population(self, alias: str = ROOT) -> Sample:
        """Return the events of population alias as a new Sample."""
        current = self.sample
        for step in self.path(alias)[1:]:
            current = current.gate(self._nodes[step].gate)
        logger.debug("Extracted %d events for '%s' in '%s'", len(current), alias, self.name)
        return current

    def samples(self) -> List[Sample]:
        return [self.sample]

    def extract(self, alias: str = ROOT) -> List[Sample]:
        return [self.extract_population(alias)]

    def population_counts(self) -> Dict[str, int]:
        """Event count of every population, root first."""
        counts = {ROOT: len(self.sample)}
        for alias in self._nodes:
            counts[alias] = len(self.extract_population(alias))
        return counts

    def details(self) -> pd.DataFrame:
        row = {NAME_COLUMN: self.name}
        row.update({k: v for k, v in self.metadata.items() if k != NAME_COLUMN})
        return pd.DataFrame([row])

    def with_context(
        self,
        metadata: Optional[Mapping[str, Any]] = None,
        transformers: Optional[TransformerList] = None,
    ) -> "SampleHierarchy":
        """Return a copy sharing the population tree with new metadata or transforms."""
        clone = SampleHierarchy(
            self.sample,
            transformers=transformers if transformers is not None else self._transformers,
            metadata=metadata if metadata is not None else self.metadata,
        )
        clone._nodes = dict(self._nodes)
        return clone


class SampleHierarchySet(HierarchicalSampleSource):
    """Ordered collection of sample hierarchies.

    Parameters
    ----------
    hierarchies : Sequence[SampleHierarchy]
        Hierarchies with unique sample names.
    metadata : pd.DataFrame, optional
        Table with a ``name`` column. When omitted the metadata of each
        hierarchy is used.
    transformers : TransformerList, optional
        Transforms shared by every hierarchy. When omitted the transforms of
        the first hierarchy are used.
    """

    is_hierarchical = True

    def __init__(
        self,
        hierarchies: Sequence[SampleHierarchy],
        metadata: Optional[pd.DataFrame] = None,
        transformers: Optional[TransformerList] = None,
    ):
        self._hierarchies = list(hierarchies)
        names = [gh.name for gh in self._hierarchies]
        duplicated = sorted({n for n in names if names.count(n) > 1})
        if duplicated:
            raise ValueError(f"Duplicated sample names: {duplicated}")

        if metadata is None and self._hierarchies:
            metadata = pd.concat([gh.details() for gh in self._hierarchies], ignore_index=True)
        self._metadata = _metadata_frame(names, metadata)
        self._transformers = check_transformers(transformers)

    def __getitem__(self, index: int) -> SampleHierarchy:
        return self._hierarchies[index]

    def __iter__(self):
        return iter(self._hierarchies)

    @property
    def transformers(self) -> Optional[TransformerList]:
        if self._transformers is not None:
            return self._transformers
        for gh in self._hierarchies:
            if gh.transformers is not None:
                return gh.transformers
        return None

    def samples(self) -> List[Sample]:
        return [gh.sample for gh in self._hierarchies]

    def extract(self, alias: str = ROOT) -> List[Sample]:
        return [gh.extract_population(alias) for gh in self._hierarchies]

    def details(self) -> pd.DataFrame:
        return self._metadata.copy()

    def units(self) -> List[HierarchicalSampleSource]:
        """One hierarchy per unit, carrying the set-level metadata row."""
        rows = self._metadata.to_dict("records")
        units: List[HierarchicalSampleSource] = []
        for gh, row in zip(self._hierarchies, rows):
            units.append(
                gh.with_context(
                    metadata=row,
                    transformers=(
                        self._transformers if self._transformers is not None else gh.transformers
                    ),
                )
            )
        return units

    def populations(self) -> List[str]:
        """Aliases defined in every hierarchy, in the order of the first."""
        if not self._hierarchies:
            return []
        shared = set(self._hierarchies[0].populations())
        for gh in self._hierarchies[1:]:
            shared &= set(gh.populations())
        return [a for a in self._hierarchies[0].populations() if a in shared]
