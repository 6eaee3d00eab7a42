"""Load experiments from a sample registry and optional gating template."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Dict, List, Optional, Union

from ...io.csv import load_events, load_sample_registry
from .hierarchy import SampleHierarchySet
from .sample import Sample
from .sources import NAME_COLUMN, HierarchicalSampleSource, SampleSet
from .template import GatingTemplate
from .transforms import TransformerList

logger = logging.getLogger(__name__)

PathLike = Union[str, Path]

EVENTS_COLUMN = "events_path"


def load_samples(
    registry_path: PathLike,
    markers: Optional[Dict[str, str]] = None,
    drop_columns: Optional[List[str]] = None,
) -> SampleSet:
    """Read every sample listed in a registry CSV.

    Parameters
    ----------
    registry_path : PathLike
        Registry with ``name``, ``events_path`` and metadata columns.
    markers : Dict[str, str], optional
        Channel to marker mapping applied to every sample.
    drop_columns : List[str], optional
        Columns removed from each event table.

    Returns
    -------
    SampleSet
        Samples in registry order; metadata excludes ``events_path``.
    """
    registry = load_sample_registry(registry_path)
    samples = []
    for row in registry.to_dict("records"):
        events = load_events(row[EVENTS_COLUMN], drop_columns=drop_columns)
        samples.append(Sample(row[NAME_COLUMN], events, markers=markers))
        logger.info("Loaded %s: %d events, %d channels", row[NAME_COLUMN], len(events), events.shape[1])

    metadata = registry.drop(columns=[EVENTS_COLUMN])
    return SampleSet(samples, metadata=metadata)


def load_experiment(
    registry_path: PathLike,
    gating_template: Optional[Union[PathLike, GatingTemplate]] = None,
    transformers: Optional[TransformerList] = None,
    drop_columns: Optional[List[str]] = None,
) -> HierarchicalSampleSource:
    """Load samples and, when a template is given, gate them.

    Parameters
    ----------
    registry_path : PathLike
        Sample registry CSV.
    gating_template : PathLike or GatingTemplate, optional
        Template (or YAML path) defining populations, transforms and markers.
    transformers : TransformerList, optional
        Overrides the template's transforms.
    drop_columns : List[str], optional
        Columns removed from each event table.

    Returns
    -------
    HierarchicalSampleSource
        ``SampleHierarchySet`` when a template is given, else ``SampleSet``.
    """
    template: Optional[GatingTemplate]
    if gating_template is None or isinstance(gating_template, GatingTemplate):
        template = gating_template
    else:
        template = GatingTemplate.from_yaml(Path(gating_template))

    markers = template.markers if template is not None else None
    sample_set = load_samples(registry_path, markers=markers, drop_columns=drop_columns)

    if template is None:
        if transformers is None:
            return sample_set
        return SampleSet(sample_set.samples(), metadata=sample_set.details(), transformers=transformers)

    if transformers is not None:
        template = GatingTemplate(
            populations=template.populations,
            transformers=transformers,
            markers=template.markers,
        )

    metadata = sample_set.details()
    rows = metadata.to_dict("records")
    hierarchies = [template.apply(sample, row) for sample, row in zip(sample_set.samples(), rows)]
    logger.info(
        "Applied gating template with %d populations to %d samples",
        len(template.populations),
        len(hierarchies),
    )
    return SampleHierarchySet(hierarchies, metadata=metadata, transformers=template.transformers)
