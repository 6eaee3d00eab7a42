"""Gating templates: a reusable population tree applied to many samples.

Templates are loaded from YAML rather than being hardcoded:

    markers:
      PE-A: CD4
      APC-A: CD8
    transforms:
      PE-A: {type: arcsinh, cofactor: 150}
    populations:
      - alias: Cells
        parent: root
        gate: {type: rectangle, bounds: {FSC-A: [50000, null]}}
      - alias: CD4 T Cells
        parent: Cells
        gate: {type: rectangle, bounds: {PE-A: [2.0, null]}}

Parents must be defined before their children.
"""

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional

import yaml

from .gates import Gate, gate_from_dict
from .hierarchy import SampleHierarchy
from .sample import Sample
from .sources import ROOT
from .transforms import TransformerList


@dataclass
class PopulationSpec:
    """One template entry.

    Attributes
    ----------
    alias : str
        Population name
    parent : str
        Parent alias
    gate : Gate
        Gate applied to the parent's events
    """

    alias: str
    gate: Gate
    parent: str = ROOT

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "PopulationSpec":
        """Create from dictionary."""
        if "alias" not in data or "gate" not in data:
            raise KeyError(f"Population entry needs 'alias' and 'gate': {data}")
        return cls(
            alias=str(data["alias"]),
            gate=gate_from_dict(data["gate"]),
            parent=str(data.get("parent", ROOT)),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {"alias": self.alias, "parent": self.parent, "gate": self.gate.to_dict()}


@dataclass
class GatingTemplate:
    """Population tree plus the transforms and markers of the experiment.

    Attributes
    ----------
    populations : List[PopulationSpec]
        Populations in definition order
    transformers : TransformerList, optional
        Per-channel transforms applied to the event tables
    markers : Dict[str, str]
        Channel to marker mapping
    """

    populations: List[PopulationSpec] = field(default_factory=list)
    transformers: Optional[TransformerList] = None
    markers: Dict[str, str] = field(default_factory=dict)

    @property
    def aliases(self) -> List[str]:
        return [p.alias for p in self.populations]

    def apply(self, sample: Sample, metadata: Optional[Dict[str, Any]] = None) -> SampleHierarchy:
        """Build the hierarchy of one sample."""
        if self.markers and not sample.markers:
            sample = Sample(sample.name, sample.events, markers=self.markers)
        gh = SampleHierarchy(sample, transformers=self.transformers, metadata=metadata)
        for spec in self.populations:
            gh.add_population(spec.alias, spec.gate, parent=spec.parent)
        return gh

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "GatingTemplate":
        """Create from dictionary."""
        transforms = data.get("transforms") or {}
        return cls(
            populations=[PopulationSpec.from_dict(p) for p in data.get("populations", [])],
            transformers=TransformerList.from_dict(transforms) if transforms else None,
            markers={str(k): str(v) for k, v in (data.get("markers") or {}).items()},
        )

    @classmethod
    def from_yaml(cls, path: Path) -> "GatingTemplate":
        """Load a template from a YAML file."""
        path = Path(path)
        if not path.exists():
            raise FileNotFoundError(f"Gating template not found: {path}")
        with open(path) as f:
            data = yaml.safe_load(f) or {}
        return cls.from_dict(data)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "markers": dict(self.markers),
            "transforms": self.transformers.to_dict() if self.transformers else {},
            "populations": [p.to_dict() for p in self.populations],
        }

    def to_yaml(self, path: Path) -> None:
        with open(path, "w") as f:
            yaml.dump(self.to_dict(), f, default_flow_style=False, sort_keys=False)
