"""
Pytest configuration and fixtures for atlasgto tests.
"""

import pytest

from atlasgto.processing.municipality_codes import GUANAJUATO_MUNICIPALITIES


def square(index, size=0.05):
    """Closed square ring placed on a grid so no two municipalities overlap."""
    lng = -102.0 + (index % 8) * 0.1
    lat = 20.0 + (index // 8) * 0.1
    return {
        "type": "Polygon",
        "coordinates": [
            [[lng, lat], [lng + size, lat], [lng + size, lat + size], [lng, lat + size], [lng, lat]]
        ],
    }


def make_feature(compact_code, name, state_code=11, geometry=None):
    return {
        "type": "Feature",
        "geometry": geometry if geometry is not None else square(compact_code),
        "properties": {"id": None, "state_code": state_code, "mun_code": compact_code, "mun_name": name},
    }


@pytest.fixture
def municipalities_geojson():
    """Raw 46-municipality collection carrying the official names."""
    return {
        "type": "FeatureCollection",
        "features": [make_feature(unit.compact_code, unit.official_name) for unit in GUANAJUATO_MUNICIPALITIES],
    }


@pytest.fixture
def prepared_geojson(municipalities_geojson):
    """Collection with cvegeo and nombre attached."""
    from atlasgto.processing.geo_utils import prepare_municipalities

    return prepare_municipalities(municipalities_geojson)


@pytest.fixture
def risk_payload():
    """Decoded risk index payload with one record per municipality."""
    return {
        "version": "2024.1",
        "source": "Gobierno del Estado de Guanajuato",
        "records": [
            {"municipio": unit.data_code, "indice": float(unit.compact_code * 2), "calidad": "alta"}
            for unit in GUANAJUATO_MUNICIPALITIES
        ],
    }


@pytest.fixture
def feature_factory():
    """Build single raw municipality features."""
    return make_feature
