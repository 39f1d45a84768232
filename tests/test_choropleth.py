"""
Tests for choropleth classification.

Verifies:
- Quantile and equal-interval breaks on hand-computed inputs
- Breaks are non-decreasing and lookups monotonic for random inputs
- Threshold ties fall into the higher bin
- Features without usable data map to the no-data color
- Summary statistics
"""

import numpy as np
import pytest

from atlasgto.processing.choropleth import (
    EQUAL_INTERVAL,
    QUANTILE,
    calculate_breaks,
    classify_value,
    create_choropleth_mapping,
    extract_data_summary,
    extract_values,
)
from atlasgto.processing.data_joiner import join_data_with_geometries
from atlasgto.processing.data_loader import field_extractor

COLORS = ["#c1", "#c2", "#c3", "#c4", "#c5"]


def enriched(values):
    """Enriched features keyed by code; None values have no data."""
    features = []
    for code, value in values.items():
        features.append(
            {
                "type": "Feature",
                "geometry": None,
                "properties": {
                    "cvegeo": code,
                    "has_data": value is not None,
                    "data": {"v": value} if value is not None else None,
                },
            }
        )
    return features


def get_v(record):
    return record["v"]


class TestBreaks:
    def test_quantile_breaks_for_five_values(self):
        assert calculate_breaks([10, 20, 30, 40, 50], QUANTILE, 5) == (10, 10, 20, 30, 40, 50)

    def test_quantile_breaks_ignore_input_order(self):
        assert calculate_breaks([50, 10, 40, 20, 30]) == (10, 10, 20, 30, 40, 50)

    def test_quantile_breaks_for_ten_values(self):
        assert calculate_breaks(list(range(1, 11))) == (1, 2, 4, 6, 8, 10)

    def test_quantile_breaks_for_few_values(self):
        assert calculate_breaks([7]) == (7, 7, 7, 7, 7, 7)
        assert calculate_breaks([3, 9]) == (3, 3, 3, 3, 3, 9)

    def test_equal_interval_breaks(self):
        assert calculate_breaks([0, 100, 50], EQUAL_INTERVAL, 5) == (0, 25, 50, 75, 100)

    def test_equal_interval_single_color(self):
        assert calculate_breaks([4, 8], EQUAL_INTERVAL, 1) == (4,)

    def test_unknown_method(self):
        with pytest.raises(ValueError):
            calculate_breaks([1, 2, 3], "jenks")

    def test_empty_values(self):
        with pytest.raises(ValueError):
            calculate_breaks([])

    @pytest.mark.parametrize("method", [QUANTILE, EQUAL_INTERVAL])
    def test_breaks_non_decreasing(self, method):
        rng = np.random.default_rng(42)
        for size in (1, 2, 5, 17, 46, 200):
            values = rng.normal(50, 20, size=size).tolist()
            breaks = calculate_breaks(values, method, 5)
            assert all(a <= b for a, b in zip(breaks, breaks[1:]))


class TestClassifyValue:
    def test_value_between_thresholds(self):
        breaks = calculate_breaks([10, 20, 30, 40, 50])
        assert classify_value(25, breaks, COLORS) == "#c3"

    def test_tie_goes_to_higher_bin(self):
        breaks = (0, 25, 50, 75, 100)
        assert classify_value(25, breaks, COLORS) == "#c2"
        assert classify_value(24.999, breaks, COLORS) == "#c1"

    def test_clamped_to_color_range(self):
        breaks = calculate_breaks([10, 20, 30, 40, 50])
        assert classify_value(50, breaks, COLORS) == "#c5"
        assert classify_value(1000, breaks, COLORS) == "#c5"
        assert classify_value(-5, breaks, COLORS) == "#c1"

    def test_monotonic(self):
        rng = np.random.default_rng(7)
        values = rng.uniform(0, 100, size=46).tolist()
        breaks = calculate_breaks(values)

        probes = np.linspace(-10, 110, 241)
        indices = [COLORS.index(classify_value(v, breaks, COLORS)) for v in probes]
        assert indices == sorted(indices)


class TestChoroplethMapping:
    def test_mapping_colors(self):
        mapping = create_choropleth_mapping(
            enriched({"11001": 10, "11002": 20, "11003": 30, "11004": 40, "11005": 50}), get_v, COLORS
        )

        assert mapping.breaks == (10, 10, 20, 30, 40, 50)
        assert mapping("11002") == "#c3"
        assert mapping("11003") == "#c4"
        assert mapping("11005") == "#c5"

    def test_no_data_features(self):
        mapping = create_choropleth_mapping(
            enriched({"11001": 10, "11002": None, "11003": 30}), get_v, COLORS, no_data_color="#eee"
        )

        assert mapping("11002") == "#eee"
        assert mapping.missing_values == {"11002": 0.0}
        assert "11002" not in mapping.values

    def test_unknown_code_gets_no_data_color(self):
        mapping = create_choropleth_mapping(enriched({"11001": 10}), get_v, COLORS)
        assert mapping("99999") == "#cccccc"

    def test_non_numeric_values_are_no_data(self):
        mapping = create_choropleth_mapping(
            enriched({"11001": 10, "11002": "n/a", "11003": float("nan"), "11004": True}), get_v, COLORS
        )

        assert set(mapping.values) == {"11001"}
        assert set(mapping.missing_values) == {"11002", "11003", "11004"}

    def test_numeric_strings_are_values(self):
        mapping = create_choropleth_mapping(enriched({"11001": "12.5"}), get_v, COLORS)
        assert mapping.values == {"11001": 12.5}

    def test_real_zero_classifies_normally(self):
        mapping = create_choropleth_mapping(
            enriched({"11001": 0, "11002": 5, "11003": 10}), get_v, COLORS, missing_data_value=0
        )

        assert mapping("11001") != mapping.no_data_color
        assert mapping.missing_values == {}

    def test_empty_distribution(self):
        mapping = create_choropleth_mapping(enriched({"11001": None, "11002": None}), get_v, COLORS)

        assert mapping.breaks == ()
        assert mapping("11001") == mapping.no_data_color
        assert mapping("11002") == mapping.no_data_color

    def test_empty_colors_rejected(self):
        with pytest.raises(ValueError):
            create_choropleth_mapping(enriched({"11001": 1}), get_v, [])

    def test_unknown_method_rejected(self):
        with pytest.raises(ValueError):
            create_choropleth_mapping(enriched({"11001": 1}), get_v, COLORS, method="natural-breaks")

    def test_equal_interval_mapping(self):
        mapping = create_choropleth_mapping(
            enriched({"11001": 0, "11002": 60, "11003": 100}), get_v, COLORS, method=EQUAL_INTERVAL
        )

        assert mapping.breaks == (0, 25, 50, 75, 100)
        assert mapping("11002") == "#c3"

    def test_legend(self):
        mapping = create_choropleth_mapping(enriched({"11001": 0, "11002": 100}), get_v, COLORS, method=EQUAL_INTERVAL)

        legend = mapping.legend()
        assert [entry["color"] for entry in legend] == COLORS
        assert legend[1]["from"] == 25

    def test_mapping_from_join_result(self, prepared_geojson, risk_payload):
        join = join_data_with_geometries(prepared_geojson, risk_payload)

        mapping = create_choropleth_mapping(join, field_extractor("indice"), COLORS)

        assert len(mapping.values) == 46
        assert mapping("11001") == "#c1"
        assert mapping("11046") == "#c5"

    def test_mapping_from_feature_collection(self, prepared_geojson, risk_payload):
        collection = join_data_with_geometries(prepared_geojson, risk_payload).to_geojson()

        values, no_data = extract_values(collection, field_extractor("indice"))

        assert len(values) == 46
        assert no_data == frozenset()


class TestDataSummary:
    def test_summary(self):
        summary = extract_data_summary(enriched({"a": 1, "b": 2, "c": 3, "d": 4, "e": None}), get_v)

        assert summary["count"] == 4
        assert summary["min"] == 1
        assert summary["max"] == 4
        assert summary["mean"] == pytest.approx(2.5)
        assert summary["median"] == pytest.approx(2.5)
        assert summary["std"] == pytest.approx(np.std([1, 2, 3, 4]))

    def test_empty_summary(self):
        summary = extract_data_summary([], get_v)
        assert summary == {"count": 0, "min": 0.0, "max": 0.0, "mean": 0.0, "median": 0.0, "std": 0.0}
