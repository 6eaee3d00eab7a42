"""Unit tests for wide and long result layouts."""

import pandas as pd
import pytest

from cytostats.core.statistics import (
    StatisticKind,
    StatisticRecord,
    StatisticRequest,
    StatisticTable,
    aggregate_statistics,
    long_to_wide,
    wide_to_long,
)

ID_COLUMNS = ["name", "treatment", "Population"]


@pytest.fixture
def median_table(hierarchy_set, arcsinh_trans) -> StatisticTable:
    request = StatisticRequest.build(
        "median", channels=["PE-A", "APC-A"], alias=["Cells", "T Cells"], transformers=arcsinh_trans
    )
    return aggregate_statistics(hierarchy_set, request)


class TestStatisticTable:
    """Tests for StatisticTable projections."""

    def test_long_columns(self, median_table):
        """Long tables stack channels under Marker with the label as value column."""
        long = median_table.to_long()
        assert long.columns.tolist() == ID_COLUMNS + ["Marker", "MedFI"]
        assert len(long) == 2 * 2 * 2

    def test_wide_columns(self, median_table):
        """Wide tables have one column per channel."""
        wide = median_table.to_wide()
        assert wide.columns.tolist() == ID_COLUMNS + ["PE-A", "APC-A"]
        assert wide["Population"].tolist() == ["Cells", "T Cells", "Cells", "T Cells"]

    def test_count_wide_spreads_populations(self, hierarchy_set):
        """Hierarchical counts in wide format have one row per sample."""
        request = StatisticRequest.build("count", alias=["Cells", "T Cells"])
        wide = aggregate_statistics(hierarchy_set, request).to_wide()
        assert wide.columns.tolist() == ["name", "treatment", "Cells", "T Cells"]
        assert wide["T Cells"].tolist() == [5, 6]

    def test_to_format(self, median_table):
        """to_format dispatches on the layout name."""
        pd.testing.assert_frame_equal(median_table.to_format("wide"), median_table.to_wide())
        with pytest.raises(ValueError):
            median_table.to_format("tidy")

    def test_concat_kind_mismatch(self):
        """Tables of different statistics cannot be combined."""
        a = StatisticTable(StatisticKind.MEAN)
        b = StatisticTable(StatisticKind.MEDIAN)
        with pytest.raises(ValueError):
            StatisticTable.concat([a, b])

    def test_to_frame(self):
        """Records are available as plain quads."""
        table = StatisticTable(
            StatisticKind.MEAN,
            records=[StatisticRecord("S1", None, "PE-A", 1.5)],
            metadata=pd.DataFrame({"name": ["S1"]}),
        )
        frame = table.to_frame()
        assert frame.columns.tolist() == ["sample", "population", "key", "value"]
        assert table.to_long().columns.tolist() == ["name", "Marker", "MFI"]


class TestReshape:
    """Tests for wide_to_long and long_to_wide."""

    def test_wide_to_long_matches_projection(self, median_table):
        """Melting the wide table gives the long table."""
        melted = wide_to_long(median_table.to_wide(), "median", id_columns=ID_COLUMNS)
        pd.testing.assert_frame_equal(melted, median_table.to_long())

    def test_long_to_wide_matches_projection(self, median_table):
        """Spreading the long table gives the wide table."""
        spread = long_to_wide(median_table.to_long(), "median")
        pd.testing.assert_frame_equal(spread, median_table.to_wide())

    def test_round_trip(self, median_table):
        """wide -> long -> wide is the identity."""
        wide = median_table.to_wide()
        back = long_to_wide(wide_to_long(wide, StatisticKind.MEDIAN, id_columns=ID_COLUMNS), "median")
        pd.testing.assert_frame_equal(back, wide)

    def test_default_id_columns(self):
        """Without id columns, everything up to Population identifies a row."""
        wide = pd.DataFrame({
            "name": ["S1"], "Population": ["Cells"], "PE-A": [1.0], "APC-A": [2.0],
        })
        long = wide_to_long(wide, "mean")
        assert long.columns.tolist() == ["name", "Population", "Marker", "MFI"]
        assert long["Marker"].tolist() == ["PE-A", "APC-A"]

    def test_freq_reshape(self, hierarchy_set):
        """Frequencies use Parent and Frequency."""
        request = StatisticRequest.build("freq", alias="T Cells", parent=["Cells", "root"])
        table = aggregate_statistics(hierarchy_set, request)
        spread = long_to_wide(table.to_long(), "freq")
        pd.testing.assert_frame_equal(spread, table.to_wide())

    def test_count_reshape(self, hierarchy_set):
        """Hierarchical counts spread and melt by Population."""
        request = StatisticRequest.build("count", alias=["Cells", "T Cells"])
        table = aggregate_statistics(hierarchy_set, request)
        spread = long_to_wide(table.to_long(), "count")
        pd.testing.assert_frame_equal(spread, table.to_wide())
        melted = wide_to_long(table.to_wide(), "count", id_columns=["name", "treatment"])
        pd.testing.assert_frame_equal(melted, table.to_long())


CHANNEL_KINDS = ["mean", "median", "mode", "geo_mean", "cv"]


class TestDefaultReshape:
    """wide <-> long with default id columns."""

    @pytest.mark.parametrize("statistic", CHANNEL_KINDS)
    def test_flat_round_trip(self, sample_set, linear_trans, statistic):
        """Metadata of ungated samples is kept as row identity, not melted."""
        request = StatisticRequest.build(statistic, channels=["CD4", "CD8"], transformers=linear_trans)
        table = aggregate_statistics(sample_set, request)
        wide = table.to_wide()

        long = wide_to_long(wide, statistic)
        pd.testing.assert_frame_equal(long, table.to_long())
        assert set(long["Marker"]) == {"PE-A", "APC-A"}
        pd.testing.assert_frame_equal(long_to_wide(long, statistic), wide)

    @pytest.mark.parametrize("statistic", CHANNEL_KINDS)
    def test_hierarchical_round_trip(self, hierarchy_set, linear_trans, statistic):
        """Population tables round-trip without explicit id columns."""
        request = StatisticRequest.build(
            statistic, channels=["CD4", "CD8"], alias=["Cells", "T Cells"], transformers=linear_trans
        )
        wide = aggregate_statistics(hierarchy_set, request).to_wide()
        back = long_to_wide(wide_to_long(wide, statistic), statistic)
        pd.testing.assert_frame_equal(back, wide)

    def test_hierarchical_count(self, hierarchy_set):
        """Counts spread by population melt back without metadata rows."""
        request = StatisticRequest.build("count", alias=["Cells", "T Cells"])
        table = aggregate_statistics(hierarchy_set, request)
        long = wide_to_long(table.to_wide(), "count")
        pd.testing.assert_frame_equal(long, table.to_long())
        assert long["Population"].tolist() == ["Cells", "T Cells", "Cells", "T Cells"]
        pd.testing.assert_frame_equal(long_to_wide(long, "count"), table.to_wide())

    def test_flat_count(self, sample_set):
        """Flat counts are already long."""
        table = aggregate_statistics(sample_set, StatisticRequest.build("count"))
        pd.testing.assert_frame_equal(wide_to_long(table.to_wide(), "count"), table.to_long())
