"""Samples, gates, transforms and population hierarchies.

Every container implements ``HierarchicalSampleSource`` so the statistics
pipeline can treat single samples, sample sets and gated hierarchies alike.
"""

from .gates import (
    EllipsoidGate,
    Gate,
    PolygonGate,
    RectangleGate,
    check_gate,
    gate_from_dict,
)
from .hierarchy import PopulationNode, SampleHierarchy, SampleHierarchySet
from .loader import load_experiment, load_samples
from .sample import Sample
from .sources import (
    NAME_COLUMN,
    ROOT,
    HierarchicalSampleSource,
    SampleSet,
    SingleSample,
    as_source,
)
from .template import GatingTemplate, PopulationSpec
from .transforms import (
    ArcsinhTransform,
    LinearTransform,
    Log1pTransform,
    LogTransform,
    Transform,
    TransformerList,
    check_transformers,
    transform_from_dict,
)

__all__ = [
    # Samples and sources
    "Sample",
    "HierarchicalSampleSource",
    "SingleSample",
    "SampleSet",
    "SampleHierarchy",
    "SampleHierarchySet",
    "PopulationNode",
    "ROOT",
    "NAME_COLUMN",
    "as_source",
    # Gates
    "Gate",
    "RectangleGate",
    "PolygonGate",
    "EllipsoidGate",
    "gate_from_dict",
    "check_gate",
    # Transforms
    "Transform",
    "LinearTransform",
    "LogTransform",
    "Log1pTransform",
    "ArcsinhTransform",
    "TransformerList",
    "transform_from_dict",
    "check_transformers",
    # Templates and loading
    "GatingTemplate",
    "PopulationSpec",
    "load_experiment",
    "load_samples",
]
