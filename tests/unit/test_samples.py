"""Unit tests for samples, gates, transforms and hierarchies."""

import numpy as np
import pandas as pd
import pytest

from cytostats.core.errors import (
    ChannelNotFoundError,
    InvalidGateTypeError,
    InvalidTransformTypeError,
    MissingPopulationError,
)
from cytostats.core.samples import (
    ArcsinhTransform,
    EllipsoidGate,
    GatingTemplate,
    LinearTransform,
    LogTransform,
    PolygonGate,
    RectangleGate,
    Sample,
    SampleHierarchy,
    SampleHierarchySet,
    SampleSet,
    SingleSample,
    TransformerList,
    as_source,
    gate_from_dict,
    load_experiment,
    transform_from_dict,
)


class TestSample:
    """Tests for Sample."""

    def test_events_are_copied(self, ladder_sample):
        """Modifying the returned events does not change the sample."""
        events = ladder_sample.events
        events.loc[0, "PE-A"] = -1.0
        assert ladder_sample.values("PE-A")[0] == 1.0

    def test_resolve_markers(self, ladder_sample):
        """Markers resolve to channels, case-insensitively, without duplicates."""
        assert ladder_sample.resolve_channels(["cd4", "PE-A", "CD8"]) == ["PE-A", "APC-A"]

    def test_resolve_all(self, ladder_sample):
        """None selects every channel."""
        assert ladder_sample.resolve_channels() == ["FSC-A", "PE-A", "APC-A", "Time"]

    def test_resolve_unknown(self, ladder_sample):
        """Unknown names raise ChannelNotFoundError."""
        with pytest.raises(ChannelNotFoundError):
            ladder_sample.resolve_channels(["CD19"])

    def test_subset_mask_length(self, ladder_sample):
        """Masks must have one entry per event."""
        with pytest.raises(ValueError):
            ladder_sample.subset(np.ones(3, dtype=bool))

    def test_with_columns(self, ladder_sample):
        """Appended channels keep events aligned."""
        extra = pd.DataFrame({"UMAP-1": np.arange(10.0), "UMAP-2": np.zeros(10)})
        out = ladder_sample.with_columns(extra)
        assert out.channels[-2:] == ["UMAP-1", "UMAP-2"]
        assert "UMAP-1" not in ladder_sample.channels

    def test_with_columns_clash(self, ladder_sample):
        """Existing channels cannot be appended again."""
        with pytest.raises(ValueError):
            ladder_sample.with_columns(pd.DataFrame({"PE-A": np.zeros(10)}))


class TestGates:
    """Tests for gate types."""

    def test_rectangle_half_open(self, ladder_sample):
        """Lower bound inclusive, upper bound exclusive."""
        gate = RectangleGate({"FSC-A": (30, 60)})
        assert gate.contains(ladder_sample.events).sum() == 3

    def test_rectangle_empty_bounds(self):
        """Empty intervals are rejected."""
        with pytest.raises(ValueError):
            RectangleGate({"FSC-A": (10, 10)})

    def test_rectangle_unknown_channel(self, ladder_sample):
        """Gating on a missing channel fails."""
        with pytest.raises(ChannelNotFoundError):
            RectangleGate({"CD3": (1, None)}).contains(ladder_sample.events)

    def test_polygon(self, ladder_sample):
        """Square around PE-A 2..4, APC-A 7..9 keeps three events."""
        gate = PolygonGate("PE-A", "APC-A", [(1.5, 6.5), (4.5, 6.5), (4.5, 9.5), (1.5, 9.5)])
        assert gate.contains(ladder_sample.events).sum() == 3

    def test_ellipsoid(self):
        """Unit circle keeps points within distance 1 of the center."""
        events = pd.DataFrame({"x": [0.0, 0.5, 2.0, 0.0], "y": [0.0, 0.5, 0.0, -0.9]})
        gate = EllipsoidGate(["x", "y"], mean=[0, 0], cov=[[1, 0], [0, 1]])
        assert gate.contains(events).tolist() == [True, True, False, True]

    def test_gate_from_dict(self):
        """Gate definitions round-trip through dictionaries."""
        gate = gate_from_dict({"type": "rectangle", "bounds": {"FSC-A": [30, None]}})
        assert isinstance(gate, RectangleGate)
        assert gate_from_dict(gate.to_dict()).bounds == {"FSC-A": (30.0, None)}

    def test_gate_from_dict_unknown(self):
        """Unknown gate types raise InvalidGateTypeError."""
        with pytest.raises(InvalidGateTypeError):
            gate_from_dict({"type": "quadrant"})


class TestTransforms:
    """Tests for transforms and TransformerList."""

    def test_inverse_restores_values(self):
        """inverse(forward(x)) == x."""
        values = np.array([1.0, 150.0, 5000.0])
        for transform in (ArcsinhTransform(), LogTransform(), LinearTransform(2.0, 1.0)):
            np.testing.assert_allclose(transform.inverse(transform.forward(values)), values)

    def test_untransformed_channels_pass_through(self, arcsinh_trans):
        """Channels without a transform are returned unchanged."""
        np.testing.assert_array_equal(arcsinh_trans.inverse("FSC-A", [1.0, 2.0]), [1.0, 2.0])

    def test_from_dict(self):
        """Build from YAML-style mappings."""
        trans = TransformerList.from_dict({"PE-A": {"type": "asinh", "cofactor": 5}})
        assert trans["PE-A"] == ArcsinhTransform(cofactor=5)
        assert trans.to_dict() == {"PE-A": {"type": "arcsinh", "cofactor": 5}}

    def test_unknown_transform_type(self):
        """Unknown transform types are rejected."""
        with pytest.raises(ValueError):
            transform_from_dict({"type": "logicle"})

    def test_invalid_transformer_list(self):
        """Sources reject non-TransformerList transforms."""
        with pytest.raises(InvalidTransformTypeError):
            SingleSample(Sample("S", pd.DataFrame({"a": [1.0]})), transformers={"a": "log"})


class TestSources:
    """Tests for flat sources."""

    def test_single_sample_root_only(self, ladder_sample):
        """Ungated samples only have the root population."""
        source = SingleSample(ladder_sample)
        assert len(source.extract("root")[0]) == 10
        with pytest.raises(MissingPopulationError):
            source.extract("Cells")

    def test_sample_set_metadata_order(self, ladder_sample, shifted_sample):
        """Metadata is reordered to match the samples."""
        metadata = pd.DataFrame({"treatment": ["stim", "ctrl"], "name": ["S2", "S1"]})
        source = SampleSet([ladder_sample, shifted_sample], metadata=metadata)
        details = source.details()
        assert details.columns.tolist() == ["name", "treatment"]
        assert details["treatment"].tolist() == ["ctrl", "stim"]

    def test_sample_set_duplicate_names(self, ladder_sample):
        """Sample names must be unique."""
        with pytest.raises(ValueError):
            SampleSet([ladder_sample, ladder_sample])

    def test_units_carry_metadata(self, sample_set):
        """Each unit reports its own metadata row."""
        units = sample_set.units()
        assert [u.details()["treatment"].iloc[0] for u in units] == ["ctrl", "stim"]

    def test_as_source(self, ladder_sample):
        """Bare samples are wrapped; other objects are rejected."""
        assert isinstance(as_source(ladder_sample), SingleSample)
        with pytest.raises(TypeError):
            as_source("S1")


class TestSampleHierarchy:
    """Tests for SampleHierarchy and SampleHierarchySet."""

    def test_population_counts(self, ladder_hierarchy):
        """Counts follow the gating tree."""
        assert ladder_hierarchy.population_counts() == {
            "root": 10,
            "Cells": 8,
            "T Cells": 5,
            "CD8 T Cells": 3,
        }

    def test_navigation(self, ladder_hierarchy):
        """Parents, children and paths."""
        assert ladder_hierarchy.parent_of("T Cells") == "Cells"
        assert ladder_hierarchy.children("Cells") == ["T Cells", "CD8 T Cells"]
        assert ladder_hierarchy.path("T Cells") == ["root", "Cells", "T Cells"]

    def test_duplicate_alias(self, ladder_hierarchy):
        """Aliases are unique and root is reserved."""
        with pytest.raises(ValueError):
            ladder_hierarchy.add_population("Cells", RectangleGate({"FSC-A": (0, None)}))
        with pytest.raises(ValueError):
            ladder_hierarchy.add_population("root", RectangleGate({"FSC-A": (0, None)}))

    def test_missing_parent(self, ladder_hierarchy):
        """Parents must exist."""
        with pytest.raises(MissingPopulationError) as exc_info:
            ladder_hierarchy.add_population("B Cells", RectangleGate({"PE-A": (0, 1)}), parent="Lymphs")
        assert exc_info.value.error_code == "S002_MISSING_POPULATION"

    def test_invalid_gate(self, ladder_hierarchy):
        """Gates must be Gate objects."""
        with pytest.raises(InvalidGateTypeError):
            ladder_hierarchy.add_population("B Cells", {"PE-A": (0, 1)})

    def test_extract_missing(self, ladder_hierarchy):
        """Unknown aliases raise MissingPopulationError with a suggestion."""
        with pytest.raises(MissingPopulationError) as exc_info:
            ladder_hierarchy.extract_population("T cell")
        assert "T Cells" in exc_info.value.suggestion

    def test_set_units(self, hierarchy_set):
        """Units share the tree and carry set metadata."""
        units = hierarchy_set.units()
        assert [u.name for u in units] == ["S1", "S2"]
        assert units[1].details()["treatment"].iloc[0] == "stim"
        assert len(units[1].extract_population("T Cells")) == 6

    def test_set_populations(self, hierarchy_set):
        """Shared aliases in definition order."""
        assert hierarchy_set.populations() == ["Cells", "T Cells", "CD8 T Cells"]

    def test_set_transformers_fallback(self, ladder_sample, arcsinh_trans):
        """Without set-level transforms, the hierarchies' transforms are used."""
        gh = SampleHierarchy(ladder_sample, transformers=arcsinh_trans)
        assert SampleHierarchySet([gh]).transformers is arcsinh_trans

    def test_set_empty_transformers_kept(self, ladder_sample, arcsinh_trans):
        """An empty set-level TransformerList is not replaced by the hierarchy's own."""
        gh = SampleHierarchy(ladder_sample, transformers=arcsinh_trans)
        empty = TransformerList({})
        units = SampleHierarchySet([gh], transformers=empty).units()
        assert units[0].transformers is empty


class TestTemplates:
    """Tests for gating templates and experiment loading."""

    def test_template_from_yaml(self, experiment_dir):
        """Populations, markers and parents are read in order."""
        template = GatingTemplate.from_yaml(experiment_dir / "gating.yaml")
        assert template.aliases == ["Cells", "T Cells"]
        assert template.populations[1].parent == "Cells"
        assert template.markers == {"PE-A": "CD4", "APC-A": "CD8"}
        assert template.transformers is None

    def test_template_missing(self, tmp_path):
        """A missing template file raises FileNotFoundError."""
        with pytest.raises(FileNotFoundError):
            GatingTemplate.from_yaml(tmp_path / "missing.yaml")

    def test_template_round_trip(self, experiment_dir, tmp_path):
        """Templates can be written back to YAML."""
        template = GatingTemplate.from_yaml(experiment_dir / "gating.yaml")
        template.transformers = TransformerList({"PE-A": ArcsinhTransform()})
        template.to_yaml(tmp_path / "copy.yaml")
        copy = GatingTemplate.from_yaml(tmp_path / "copy.yaml")
        assert copy.aliases == template.aliases
        assert copy.transformers.to_dict() == template.transformers.to_dict()

    def test_load_experiment(self, experiment_dir):
        """Registry plus template gives a hierarchy set with metadata."""
        gs = load_experiment(experiment_dir / "samples.csv", experiment_dir / "gating.yaml")
        assert isinstance(gs, SampleHierarchySet)
        assert gs.sample_names() == ["S1", "S2"]
        assert gs.details().columns.tolist() == ["name", "treatment"]
        assert [len(p) for p in gs.extract("T Cells")] == [5, 6]
        assert gs[0].sample.markers["PE-A"] == "CD4"

    def test_load_experiment_without_template(self, experiment_dir):
        """Without a template the samples stay ungated."""
        source = load_experiment(experiment_dir / "samples.csv")
        assert isinstance(source, SampleSet)
        assert len(source) == 2
