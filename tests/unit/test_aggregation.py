"""Unit tests for statistics over whole sources."""

import pandas as pd
import pytest

from cytostats.core.errors import MissingPopulationError, ZeroParentCountError
from cytostats.core.samples import RectangleGate
from cytostats.core.statistics import StatisticRequest, aggregate_statistics


class TestHierarchicalAggregation:
    """Tests for hierarchy sources."""

    def test_freq_aliases_times_parents(self, hierarchy_set):
        """Two aliases and two parents give four long rows per sample."""
        request = StatisticRequest.build(
            "freq", alias=["T Cells", "CD8 T Cells"], parent=["Cells", "root"]
        )
        long = aggregate_statistics(hierarchy_set, request).to_long()

        assert len(long) == 8
        assert (long.groupby("name").size() == 4).all()
        assert long.columns.tolist() == ["name", "treatment", "Population", "Parent", "Frequency"]
        s1 = long[long["name"] == "S1"]
        assert s1["Population"].tolist() == ["T Cells", "T Cells", "CD8 T Cells", "CD8 T Cells"]
        assert s1["Parent"].tolist() == ["Cells", "root", "Cells", "root"]
        assert s1["Frequency"].tolist() == pytest.approx([62.5, 50.0, 37.5, 30.0])

    def test_freq_wide_one_column_per_parent(self, hierarchy_set):
        """Wide frequencies spread parents to columns."""
        request = StatisticRequest.build("freq", alias="T Cells", parent=["Cells", "root"])
        wide = aggregate_statistics(hierarchy_set, request).to_wide()
        assert wide.columns.tolist() == ["name", "treatment", "Population", "Cells", "root"]
        assert wide["Cells"].tolist() == pytest.approx([62.5, 75.0])

    def test_freq_default_parent(self, ladder_hierarchy, caplog):
        """Without parents, frequencies are relative to root."""
        request = StatisticRequest.build("freq", alias="T Cells")
        with caplog.at_level("INFO", logger="cytostats"):
            table = aggregate_statistics(ladder_hierarchy, request)
        assert table.keys == ["root"]
        assert table.records[0].value == pytest.approx(50.0)
        assert "root" in caplog.text

    def test_freq_zero_parent(self, ladder_hierarchy):
        """An empty parent population fails explicitly."""
        ladder_hierarchy.add_population("Debris", RectangleGate({"FSC-A": (1000, None)}))
        request = StatisticRequest.build("freq", alias="Cells", parent="Debris")
        with pytest.raises(ZeroParentCountError):
            aggregate_statistics(ladder_hierarchy, request)

    def test_channel_statistic_order(self, hierarchy_set, linear_trans):
        """Records are ordered by hierarchy, alias, then channel as given."""
        request = StatisticRequest.build(
            "median",
            channels=["CD8", "CD4"],
            alias=["T Cells", "Cells"],
            transformers=linear_trans,
        )
        table = aggregate_statistics(hierarchy_set, request)
        keys = [(r.sample, r.population, r.key) for r in table.records]
        assert keys == [
            ("S1", "T Cells", "APC-A"),
            ("S1", "T Cells", "PE-A"),
            ("S1", "Cells", "APC-A"),
            ("S1", "Cells", "PE-A"),
            ("S2", "T Cells", "APC-A"),
            ("S2", "T Cells", "PE-A"),
            ("S2", "Cells", "APC-A"),
            ("S2", "Cells", "PE-A"),
        ]
        values = {(r.sample, r.population, r.key): r.value for r in table.records}
        assert values[("S1", "T Cells", "PE-A")] == pytest.approx(8.0)
        assert values[("S2", "T Cells", "PE-A")] == pytest.approx(8.5)
        assert values[("S1", "T Cells", "APC-A")] == pytest.approx(3.0)

    def test_metadata_repeated_per_alias(self, hierarchy_set):
        """Each alias row carries the sample's metadata."""
        request = StatisticRequest.build("count", alias=["Cells", "T Cells"])
        long = aggregate_statistics(hierarchy_set, request).to_long()
        assert long["treatment"].tolist() == ["ctrl", "ctrl", "stim", "stim"]
        assert long["Count"].tolist() == [8, 5, 8, 6]

    def test_alias_required(self, hierarchy_set):
        """Hierarchical sources need an alias."""
        with pytest.raises(ValueError, match="alias"):
            aggregate_statistics(hierarchy_set, StatisticRequest.build("count"))

    def test_gate_rejected(self, hierarchy_set, cells_gate):
        """Gates are not applied to hierarchical sources."""
        request = StatisticRequest.build("count", alias="Cells", gate=cells_gate)
        with pytest.raises(ValueError):
            aggregate_statistics(hierarchy_set, request)

    def test_missing_alias(self, hierarchy_set):
        """Unknown aliases fail the whole call."""
        request = StatisticRequest.build("count", alias=["Cells", "NK Cells"])
        with pytest.raises(MissingPopulationError):
            aggregate_statistics(hierarchy_set, request)

    def test_source_transformers_used(self, ladder_sample, arcsinh_trans):
        """A hierarchy's own transforms apply when none are requested."""
        from cytostats.core.samples import SampleHierarchy

        gh = SampleHierarchy(ladder_sample, transformers=arcsinh_trans)
        gh.add_population("Large", RectangleGate({"FSC-A": (20, None)}))
        request = StatisticRequest.build("median", channels="CD4", alias="Large")
        value = aggregate_statistics(gh, request).records[0].value
        assert value == pytest.approx(arcsinh_trans.inverse("PE-A", [6.0])[0])


class TestFlatAggregation:
    """Tests for ungated sources."""

    def test_sample_set_median_wide(self, sample_set, arcsinh_trans):
        """Flat sources have no Population column."""
        request = StatisticRequest.build("median", channels=["FSC-A"], transformers=arcsinh_trans)
        wide = aggregate_statistics(sample_set, request).to_wide()
        assert wide.columns.tolist() == ["name", "treatment", "FSC-A"]
        assert wide["FSC-A"].tolist() == pytest.approx([55.0, 55.0])

    def test_gated_count(self, sample_set, cells_gate):
        """Gates apply to every sample."""
        request = StatisticRequest.build("count", gate=cells_gate)
        long = aggregate_statistics(sample_set, request).to_long()
        assert long.columns.tolist() == ["name", "treatment", "Count"]
        assert long["Count"].tolist() == [8, 8]

    def test_gated_freq(self, sample_set, cells_gate):
        """Flat frequencies are gated over ungated events."""
        request = StatisticRequest.build("freq", gate=cells_gate)
        long = aggregate_statistics(sample_set, request).to_long()
        assert long["Parent"].tolist() == ["root", "root"]
        assert long["Frequency"].tolist() == pytest.approx([80.0, 80.0])

    def test_flat_parent_must_be_root(self, sample_set):
        """Only root exists in ungated samples."""
        request = StatisticRequest.build("freq", parent="Cells")
        with pytest.raises(MissingPopulationError):
            aggregate_statistics(sample_set, request)

    def test_flat_alias_ignored_with_warning(self, sample_set, caplog):
        """Aliases on ungated samples are reported and whole samples are counted."""
        request = StatisticRequest.build("count", alias="T Cells")
        with caplog.at_level("WARNING", logger="cytostats"):
            long = aggregate_statistics(sample_set, request).to_long()
        assert long["Count"].tolist() == [10, 10]
        assert "Ignoring alias" in caplog.text
        assert "T Cells" in caplog.text

    def test_root_alias_not_reported(self, sample_set, caplog):
        """root is the whole sample, so nothing is ignored."""
        request = StatisticRequest.build("count", alias="root")
        with caplog.at_level("WARNING", logger="cytostats"):
            aggregate_statistics(sample_set, request)
        assert "Ignoring alias" not in caplog.text

    def test_parent_ignored_for_channel_statistic(self, sample_set, linear_trans, caplog):
        """parent only applies to freq."""
        request = StatisticRequest.build("mean", channels="CD4", parent="Cells", transformers=linear_trans)
        with caplog.at_level("WARNING", logger="cytostats"):
            long = aggregate_statistics(sample_set, request).to_long()
        assert long["MFI"].tolist() == pytest.approx([5.5, 6.5])
        assert "Ignoring parent" in caplog.text

    def test_empty_sample_set(self):
        """An empty set gives an empty table."""
        from cytostats.core.samples import SampleSet

        table = aggregate_statistics(SampleSet([]), StatisticRequest.build("count"))
        assert len(table) == 0
        assert isinstance(table.to_long(), pd.DataFrame)
