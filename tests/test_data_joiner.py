"""
Tests for joining tabular records onto municipal geometries.

Verifies:
- One enriched feature per input feature, in input order
- has_data reflects whether a matching record exists
- Alignment report over the full code sets
- Duplicate record codes resolve to the last record
- Codes are synthesized when the geometry has no cvegeo property
"""

import copy

import pytest

from atlasgto.processing.data_joiner import (
    UNKNOWN_CODE,
    JoinResult,
    get_feature_code,
    join_data_with_geometries,
    resolve_feature_code,
)
from atlasgto.processing.data_loader import parse_data_file


class TestJoin:
    def test_full_join(self, prepared_geojson, risk_payload):
        result = join_data_with_geometries(prepared_geojson, risk_payload, data_source_name="Índice de Riesgo")

        assert isinstance(result, JoinResult)
        assert len(result) == 46
        assert all(f["properties"]["has_data"] for f in result.features)
        assert result.alignment.alignment_ratio == 1.0
        assert result.metadata["features_with_data"] == 46
        assert result.metadata["data_source"] == "Índice de Riesgo"
        assert result.metadata["data_version"] == "2024.1"

    def test_partial_data(self, prepared_geojson, risk_payload):
        risk_payload["records"] = risk_payload["records"][:40]

        result = join_data_with_geometries(prepared_geojson, risk_payload)

        assert len(result.features) == 46
        assert result.alignment.alignment_ratio == pytest.approx(40 / 46)
        assert result.alignment.codes_only_in_geometry == [f"11{code:03d}" for code in range(41, 47)]
        assert result.alignment.codes_only_in_data == []
        assert len(result.alignment.matched_codes) == 40
        assert sum(1 for f in result.features if f["properties"]["has_data"]) == 40
        assert result.metadata["missing_data_codes"] == result.alignment.codes_only_in_geometry

    def test_missing_record_flags_no_data(self, prepared_geojson, risk_payload):
        risk_payload["records"] = [r for r in risk_payload["records"] if r["municipio"] != "11020"]

        result = join_data_with_geometries(prepared_geojson, risk_payload)

        leon = next(f for f in result.features if f["properties"]["cvegeo"] == "11020")
        assert leon["properties"]["has_data"] is False
        assert leon["properties"]["data"] is None

    def test_extra_data_codes_reported(self, prepared_geojson, risk_payload):
        risk_payload["records"].append({"municipio": "11999", "indice": 1.0})

        result = join_data_with_geometries(prepared_geojson, risk_payload)

        assert result.alignment.codes_only_in_data == ["11999"]
        assert result.alignment.alignment_ratio == pytest.approx(46 / 47)
        assert len(result) == 46

    def test_duplicate_codes_last_record_wins(self, prepared_geojson, risk_payload):
        risk_payload["records"].append({"municipio": "11007", "indice": 1.0})
        risk_payload["records"].append({"municipio": "11007", "indice": 99.0})

        result = join_data_with_geometries(prepared_geojson, risk_payload)

        celaya = next(f for f in result.features if f["properties"]["cvegeo"] == "11007")
        assert celaya["properties"]["data"]["indice"] == 99.0

    def test_order_and_geometry_preserved(self, prepared_geojson, risk_payload):
        result = join_data_with_geometries(prepared_geojson, risk_payload)

        for source, enriched in zip(prepared_geojson["features"], result.features):
            assert enriched["geometry"] == source["geometry"]
            assert enriched["properties"]["mun_code"] == source["properties"]["mun_code"]

    def test_inputs_not_mutated(self, prepared_geojson, risk_payload):
        geo_before = copy.deepcopy(prepared_geojson)
        data_before = copy.deepcopy(risk_payload)

        join_data_with_geometries(prepared_geojson, risk_payload)

        assert prepared_geojson == geo_before
        assert risk_payload == data_before

    def test_enriched_properties(self, prepared_geojson, risk_payload):
        result = join_data_with_geometries(prepared_geojson, risk_payload, data_source_name="Riesgo")

        props = result.features[19]["properties"]
        assert props["cvegeo"] == "11020"
        assert props["nombre"] == "León"
        assert props["data"] == {"municipio": "11020", "indice": 40.0, "calidad": "alta"}
        assert props["has_data"] is True
        assert props["data_source"] == "Riesgo"

    def test_accepts_data_file(self, prepared_geojson, risk_payload):
        data_file = parse_data_file(risk_payload)
        assert len(join_data_with_geometries(prepared_geojson, data_file)) == 46

    def test_raw_geometry_codes_are_synthesized(self, municipalities_geojson, risk_payload):
        result = join_data_with_geometries(municipalities_geojson, risk_payload)

        assert result.alignment.alignment_ratio == 1.0
        assert result.features[0]["properties"]["cvegeo"] == "11001"
        # Without a canonical name the raw name is used
        assert result.features[0]["properties"]["nombre"] == "Abasolo"

    def test_empty_inputs(self):
        result = join_data_with_geometries({"type": "FeatureCollection", "features": []}, {"records": []})

        assert len(result) == 0
        assert result.alignment.alignment_ratio == 1.0

    def test_payload_without_records_raises(self, prepared_geojson):
        with pytest.raises(ValueError):
            join_data_with_geometries(prepared_geojson, {"version": "2024.1"})

    def test_geometry_without_features_raises(self, risk_payload):
        with pytest.raises(ValueError):
            join_data_with_geometries({"type": "FeatureCollection"}, risk_payload)

    def test_to_geojson(self, prepared_geojson, risk_payload):
        collection = join_data_with_geometries(prepared_geojson, risk_payload).to_geojson()

        assert collection["type"] == "FeatureCollection"
        assert len(collection["features"]) == 46
        assert collection["metadata"]["alignment"]["alignment_ratio"] == 1.0


class TestFeatureCodes:
    def test_explicit_code_wins(self):
        assert resolve_feature_code({"cvegeo": "11005", "state_code": 11, "mun_code": 1}) == "11005"

    def test_synthesized_code(self):
        assert resolve_feature_code({"state_code": 11, "mun_code": 3}) == "11003"
        assert resolve_feature_code({"cvegeo": "", "state_code": "11", "mun_code": "3"}) == "11003"

    def test_unknown_code(self):
        assert resolve_feature_code({"mun_name": "Sin código"}) == UNKNOWN_CODE

    def test_feature_without_properties(self):
        assert get_feature_code({"type": "Feature"}) is None
        assert get_feature_code({"properties": {"cvegeo": "11046"}}) == "11046"

    def test_unknown_features_still_joined(self, prepared_geojson, risk_payload):
        prepared_geojson["features"].append({"type": "Feature", "geometry": None, "properties": {}})

        result = join_data_with_geometries(prepared_geojson, risk_payload)

        assert len(result) == 47
        assert result.features[-1]["properties"]["cvegeo"] == UNKNOWN_CODE
        assert result.features[-1]["properties"]["has_data"] is False
        assert result.features[-1]["properties"]["nombre"] == "Unknown"
