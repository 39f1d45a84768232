"""
Tests for data payload parsing and the layer data loader.
"""

import json
import math

import pytest

from atlasgto.layers.layer_config import ATLAS_LAYERS
from atlasgto.processing.data_loader import (
    DEFAULT_VERSION,
    DataFile,
    LayerDataLoader,
    create_municipality_lookup,
    field_extractor,
    parse_data_file,
    records_to_frame,
    validate_municipality_alignment,
)


@pytest.fixture
def data_dir(tmp_path, risk_payload):
    (tmp_path / "indice_riesgo.json").write_text(json.dumps(risk_payload), encoding="utf-8")
    (tmp_path / "homicidio_mun.json").write_text(json.dumps({"version": "2024.1"}), encoding="utf-8")
    return tmp_path


class TestParseDataFile:
    def test_parse(self, risk_payload):
        data_file = parse_data_file(risk_payload)

        assert isinstance(data_file, DataFile)
        assert data_file.version == "2024.1"
        assert data_file.source == "Gobierno del Estado de Guanajuato"
        assert len(data_file.records) == 46
        assert data_file.codes()[:2] == ["11001", "11002"]

    def test_version_defaults(self):
        assert parse_data_file({"records": []}).version == DEFAULT_VERSION

    def test_non_object_records_skipped(self):
        data_file = parse_data_file({"records": [{"municipio": "11001"}, "basura", 3, None]})
        assert data_file.records == [{"municipio": "11001"}]

    @pytest.mark.parametrize("payload", [None, [], {"version": "1"}, {"records": {"municipio": "11001"}}])
    def test_not_a_record_collection(self, payload):
        with pytest.raises(ValueError):
            parse_data_file(payload)


class TestLookupAndAlignment:
    def test_last_record_wins(self):
        data_file = parse_data_file(
            {"records": [{"municipio": "11007", "indice": 1}, {"municipio": "11007", "indice": 2}]}
        )
        assert create_municipality_lookup(data_file)["11007"]["indice"] == 2

    def test_codes_stringified_and_missing_skipped(self):
        data_file = parse_data_file({"records": [{"municipio": 11001}, {"indice": 5}]})
        assert list(create_municipality_lookup(data_file)) == ["11001"]

    def test_alignment(self):
        alignment = validate_municipality_alignment(["11001", "11002", "11003"], ["11002", "11003", "11999"])

        assert alignment["matching"] == ["11002", "11003"]
        assert alignment["missing_in_data"] == ["11001"]
        assert alignment["missing_in_geo"] == ["11999"]
        assert alignment["alignment_ratio"] == pytest.approx(2 / 3)

    def test_identical_sets(self):
        assert validate_municipality_alignment(["a", "b"], ["b", "a", "a"])["alignment_ratio"] == 1.0

    def test_empty_sets(self):
        assert validate_municipality_alignment([], [])["alignment_ratio"] == 1.0


class TestFieldExtractor:
    def test_numeric_values(self):
        extract = field_extractor("indice")
        assert extract({"indice": 42}) == 42.0
        assert extract({"indice": "12.5"}) == 12.5

    def test_non_numeric_values_are_nan(self):
        extract = field_extractor("indice")
        assert math.isnan(extract({"indice": "n/a"}))
        assert math.isnan(extract({"indice": None}))
        assert math.isnan(extract({}))

    def test_records_to_frame(self, risk_payload):
        frame = records_to_frame(parse_data_file(risk_payload))

        assert len(frame) == 46
        assert list(frame.columns) == ["municipio", "indice", "calidad"]
        assert frame["municipio"].iloc[0] == "11001"

    def test_records_to_frame_empty(self):
        assert records_to_frame(parse_data_file({"records": []})).empty


class TestLayerDataLoader:
    def test_load_layer(self, data_dir):
        loader = LayerDataLoader(data_dir)

        data_file = loader.load_layer_data("indice_riesgo")

        assert len(data_file.records) == 46
        assert loader.resolve_path("indice_riesgo") == data_dir / "indice_riesgo.json"

    def test_default_catalog(self, data_dir):
        assert LayerDataLoader(data_dir).layer_configs is ATLAS_LAYERS

    def test_cached(self, data_dir):
        loader = LayerDataLoader(data_dir)
        first = loader.load_layer_data("indice_riesgo")

        (data_dir / "indice_riesgo.json").unlink()

        assert loader.load_layer_data("indice_riesgo") is first
        assert loader.get_cache_status() == [{"layer_id": "indice_riesgo", "record_count": 46}]

    def test_clear_cache(self, data_dir):
        loader = LayerDataLoader(data_dir)
        loader.load_layer_data("indice_riesgo")

        loader.clear_cache()

        assert loader.get_cache_status() == []

    def test_unknown_layer(self, data_dir):
        with pytest.raises(ValueError):
            LayerDataLoader(data_dir).load_layer_data("no_existe")

    def test_missing_file(self, data_dir):
        with pytest.raises(FileNotFoundError):
            LayerDataLoader(data_dir).load_layer_data("desapariciones")

    def test_malformed_payload(self, data_dir):
        with pytest.raises(ValueError):
            LayerDataLoader(data_dir).load_layer_data("homicidios")

    def test_load_multiple_skips_failures(self, data_dir):
        loaded = LayerDataLoader(data_dir).load_multiple(["indice_riesgo", "homicidios", "desapariciones"])
        assert list(loaded) == ["indice_riesgo"]

    def test_get_municipality_data(self, data_dir):
        loader = LayerDataLoader(data_dir)

        assert loader.get_municipality_data("indice_riesgo", "11020")["indice"] == 40.0
        assert loader.get_municipality_data("indice_riesgo", "99999") is None
        assert loader.get_municipality_data("desapariciones", "11020") is None
