"""
Tests for the shared logging helpers.

Verifies:
- Tabular summaries report rows for data frames and features plus CRS for GeoDataFrames
- Long column lists are truncated
- The geometry and record builders log their summaries
"""

import geopandas as gpd
import pandas as pd
import pytest
from loguru import logger
from shapely.geometry import Point

from atlasgto.processing.data_loader import parse_data_file, records_to_frame
from atlasgto.processing.geo_utils import to_geodataframe
from atlasgto.processing.processing_utils import log_data_summary


@pytest.fixture
def messages():
    captured = []
    handler_id = logger.add(lambda message: captured.append(message.record["message"]), level="DEBUG")
    yield captured
    logger.remove(handler_id)


class TestLogDataSummary:
    def test_data_frame(self, messages):
        log_data_summary(pd.DataFrame({"municipio": ["11001"], "indice": [1.0]}), "Indice")

        assert messages[0] == "📋 Indice: 1 rows"
        assert messages[1] == "   Columns: municipio, indice"

    def test_geodataframe(self, messages):
        gdf = gpd.GeoDataFrame({"cvegeo": ["11001"]}, geometry=[Point(-101.0, 20.5)], crs="EPSG:4326")

        log_data_summary(gdf, "Municipios")

        assert messages[0] == "📋 Municipios: 1 features"
        assert messages[1].startswith("   CRS: EPSG:4326")

    def test_columns_truncated(self, messages):
        frame = pd.DataFrame({f"c{i}": [i] for i in range(12)})

        log_data_summary(frame, "Ancho", max_columns=3)

        assert messages[-1] == "   Columns: c0, c1, c2 (+9 more)"


class TestBuildersLogSummaries:
    def test_records_to_frame(self, messages, risk_payload):
        records_to_frame(parse_data_file(risk_payload))
        assert "📋 Records v2024.1: 46 rows" in messages

    def test_to_geodataframe(self, messages, prepared_geojson):
        to_geodataframe(prepared_geojson)
        assert "📋 Enriched municipalities: 46 features" in messages
