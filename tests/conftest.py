"""Pytest configuration and shared fixtures for cytostats tests."""

import sys
from pathlib import Path

import pytest
import pandas as pd

# Add package to path
PROJECT_ROOT = Path(__file__).resolve().parents[1]
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

# Import mock data generators
from tests.fixtures import (
    MARKERS,
    create_ladder_events,
    create_random_events,
)

from cytostats.core.samples import (
    ArcsinhTransform,
    LinearTransform,
    RectangleGate,
    Sample,
    SampleHierarchy,
    SampleHierarchySet,
    SampleSet,
    TransformerList,
)


# ============================================================================
# Sample Fixtures
# ============================================================================


@pytest.fixture
def ladder_sample() -> Sample:
    """Ten events with ladder values (FSC-A 10..100, PE-A 1..10, APC-A 10..1)."""
    return Sample("S1", create_ladder_events(), markers=MARKERS)


@pytest.fixture
def shifted_sample() -> Sample:
    """Ladder sample with PE-A shifted up by one."""
    return Sample("S2", create_ladder_events(pe_offset=1.0), markers=MARKERS)


@pytest.fixture
def random_sample() -> Sample:
    """2000 positive random events."""
    return Sample("R1", create_random_events(), markers=MARKERS)


@pytest.fixture
def sample_set(ladder_sample, shifted_sample) -> SampleSet:
    """Two ungated samples with a treatment column."""
    metadata = pd.DataFrame({"name": ["S1", "S2"], "treatment": ["ctrl", "stim"]})
    return SampleSet([ladder_sample, shifted_sample], metadata=metadata)


# ============================================================================
# Gating Fixtures
# ============================================================================


@pytest.fixture
def cells_gate() -> RectangleGate:
    """FSC-A >= 30: keeps 8 of 10 ladder events."""
    return RectangleGate({"FSC-A": (30, None)})


def _build_hierarchy(sample: Sample, metadata=None) -> SampleHierarchy:
    gh = SampleHierarchy(sample, metadata=metadata)
    gh.add_population("Cells", RectangleGate({"FSC-A": (30, None)}))
    gh.add_population("T Cells", RectangleGate({"PE-A": (6, None)}), parent="Cells")
    gh.add_population("CD8 T Cells", RectangleGate({"APC-A": (6, None)}), parent="Cells")
    return gh


@pytest.fixture
def ladder_hierarchy(ladder_sample) -> SampleHierarchy:
    """Ladder sample gated into Cells (8), T Cells (5) and CD8 T Cells (3)."""
    return _build_hierarchy(ladder_sample)


@pytest.fixture
def hierarchy_set(ladder_sample, shifted_sample) -> SampleHierarchySet:
    """Two hierarchies; S2 has 6 T Cells instead of 5."""
    metadata = pd.DataFrame({"name": ["S1", "S2"], "treatment": ["ctrl", "stim"]})
    return SampleHierarchySet(
        [_build_hierarchy(ladder_sample), _build_hierarchy(shifted_sample)],
        metadata=metadata,
    )


@pytest.fixture
def arcsinh_trans() -> TransformerList:
    """Arcsinh transform on both fluorescence channels."""
    return TransformerList({
        "PE-A": ArcsinhTransform(cofactor=150),
        "APC-A": ArcsinhTransform(cofactor=150),
    })


@pytest.fixture
def linear_trans() -> TransformerList:
    """Identity transforms: values are already on the linear scale."""
    return TransformerList({"PE-A": LinearTransform(), "APC-A": LinearTransform()})


@pytest.fixture
def tmp_output_dir(tmp_path: Path) -> Path:
    """Create a temporary output directory for tests."""
    output_dir = tmp_path / "output"
    output_dir.mkdir(parents=True, exist_ok=True)
    return output_dir


# ============================================================================
# Experiment Fixtures
# ============================================================================


@pytest.fixture
def experiment_dir(tmp_path) -> Path:
    """Registry CSV, two event CSVs and a gating template on disk."""
    import yaml

    events_dir = tmp_path / "events"
    events_dir.mkdir()
    create_ladder_events().to_csv(events_dir / "s1.csv", index=False)
    create_ladder_events(pe_offset=1.0).to_csv(events_dir / "s2.csv", index=False)

    pd.DataFrame({
        "name": ["S1", "S2"],
        "events_path": ["events/s1.csv", "events/s2.csv"],
        "treatment": ["ctrl", "stim"],
    }).to_csv(tmp_path / "samples.csv", index=False)

    template = {
        "markers": dict(MARKERS),
        "populations": [
            {"alias": "Cells", "parent": "root",
             "gate": {"type": "rectangle", "bounds": {"FSC-A": [30, None]}}},
            {"alias": "T Cells", "parent": "Cells",
             "gate": {"type": "rectangle", "bounds": {"PE-A": [6, None]}}},
        ],
    }
    with open(tmp_path / "gating.yaml", "w") as f:
        yaml.dump(template, f)

    return tmp_path
