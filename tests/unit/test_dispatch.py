"""Unit tests for statistic name parsing."""

import pytest

from cytostats.core.errors import CytoStatsError, UnsupportedStatisticError
from cytostats.core.statistics import STATISTIC_ALIASES, StatisticKind, parse_statistic


class TestParseStatistic:
    """Tests for parse_statistic."""

    @pytest.mark.parametrize("name", ["Mean", "mean", "MEAN", "  mean "])
    def test_case_and_whitespace_insensitive(self, name):
        """Every spelling resolves to the same kind and label."""
        kind = parse_statistic(name)
        assert kind is StatisticKind.MEAN
        assert kind.label == "MFI"

    @pytest.mark.parametrize("name", ["geo mean", "geo_mean", "GeoMean", "gmean"])
    def test_geometric_mean_aliases(self, name):
        """Geometric mean has several aliases."""
        assert parse_statistic(name) is StatisticKind.GEO_MEAN

    def test_count_and_freq_aliases(self):
        """events -> count, percent -> freq."""
        assert parse_statistic("events") is StatisticKind.COUNT
        assert parse_statistic("Percent") is StatisticKind.FREQ

    def test_labels(self):
        """Each kind has its output label."""
        labels = {k: k.label for k in StatisticKind}
        assert labels == {
            StatisticKind.COUNT: "Count",
            StatisticKind.FREQ: "Percent",
            StatisticKind.MEAN: "MFI",
            StatisticKind.GEO_MEAN: "GMFI",
            StatisticKind.MEDIAN: "MedFI",
            StatisticKind.MODE: "ModFI",
            StatisticKind.CV: "CV",
        }

    def test_kind_passes_through(self):
        """An already parsed kind is returned unchanged."""
        assert parse_statistic(StatisticKind.MODE) is StatisticKind.MODE

    def test_every_alias_maps_to_a_kind(self):
        """All seven kinds are reachable from the alias table."""
        assert set(STATISTIC_ALIASES.values()) == set(StatisticKind)

    @pytest.mark.parametrize("name", ["variance", "sum", "", "medianx"])
    def test_unsupported(self, name):
        """Unknown names raise UnsupportedStatisticError."""
        with pytest.raises(UnsupportedStatisticError):
            parse_statistic(name)

    def test_unsupported_is_value_error(self):
        """The error can be caught as ValueError or CytoStatsError."""
        with pytest.raises(ValueError):
            parse_statistic("variance")
        with pytest.raises(CytoStatsError):
            parse_statistic("variance")

    def test_unsupported_suggestion(self):
        """A close alias is suggested."""
        with pytest.raises(UnsupportedStatisticError) as exc_info:
            parse_statistic("medain")
        assert exc_info.value.error_code == "S001_UNSUPPORTED_STATISTIC"
        assert "median" in exc_info.value.suggestion

    def test_non_string(self):
        """Non-string input is rejected."""
        with pytest.raises(UnsupportedStatisticError):
            parse_statistic(3)


class TestStatisticKind:
    """Tests for StatisticKind helpers."""

    def test_channel_statistics(self):
        """Only count and freq are not per-channel."""
        assert not StatisticKind.COUNT.is_channel_statistic
        assert not StatisticKind.FREQ.is_channel_statistic
        assert StatisticKind.MEDIAN.is_channel_statistic
        assert StatisticKind.CV.is_channel_statistic
