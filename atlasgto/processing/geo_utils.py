"""
Geospatial utilities for the Guanajuato municipal geometries.

Loads the municipalities GeoJSON, attaches the data-compatible code
(cvegeo) and canonical name to every feature, and offers lookups, bounds
and a GeoDataFrame export for rendering.
"""

import json
import unicodedata
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional, Tuple, Union

import geopandas as gpd
from loguru import logger

from .municipality_codes import DEFAULT_CROSSWALK, MunicipalityCrosswalk, as_compact_code, format_data_code
from .processing_utils import log_data_summary

Bounds = Tuple[Tuple[float, float], Tuple[float, float]]


def prepare_municipalities(
    geojson_data: Mapping[str, Any],
    crosswalk: MunicipalityCrosswalk = DEFAULT_CROSSWALK,
    state_field: str = "state_code",
    code_field: str = "mun_code",
    name_field: str = "mun_name",
    data_code_field: str = "cvegeo",
    canonical_name_field: str = "nombre",
) -> Dict[str, Any]:
    """
    Attach the data code and canonical name to every municipality feature.

    The data code is state_code followed by the zero-padded mun_code. The
    canonical name is the catalog's official name when the code is known,
    otherwise the feature's own name.

    Args:
        geojson_data: Raw FeatureCollection (left untouched)

    Returns:
        New FeatureCollection with the computed properties
    """
    features = geojson_data.get("features")
    if not isinstance(features, list):
        raise ValueError("GeoJSON does not have a valid features array")

    prepared: List[Dict[str, Any]] = []
    for feature in features:
        properties = dict(feature.get("properties") or {})
        state = as_compact_code(properties.get(state_field))
        compact = as_compact_code(properties.get(code_field))

        if state is not None and compact is not None:
            properties[data_code_field] = format_data_code(state, compact)

        unit = crosswalk.by_compact_code(compact) if compact is not None else None
        properties[canonical_name_field] = unit.official_name if unit else properties.get(name_field)

        prepared.append({**feature, "properties": properties})

    logger.info(f"✅ Prepared {len(prepared)} municipalities")
    for feature in prepared[:5]:
        props = feature["properties"]
        logger.debug(
            f"   {props.get(name_field)} ({code_field}:{props.get(code_field)} → "
            f"{data_code_field}:{props.get(data_code_field)})"
        )

    return {**geojson_data, "features": prepared}


def load_municipalities_geojson(path: Union[str, Path], **kwargs) -> Dict[str, Any]:
    """
    Load the municipalities GeoJSON file and prepare its features.

    Args:
        path: GeoJSON file path
        **kwargs: Field names forwarded to prepare_municipalities

    Raises:
        FileNotFoundError: If the file does not exist
    """
    path = Path(path)
    logger.info(f"🔗 Loading GeoJSON from: {path}")
    if not path.exists():
        logger.error(f"❌ GeoJSON file not found: {path}")
        raise FileNotFoundError(f"GeoJSON file not found: {path}")

    with open(path, "r", encoding="utf-8") as f:
        geojson_data = json.load(f)

    return prepare_municipalities(geojson_data, **kwargs)


def find_municipality_by_code(
    geojson_data: Mapping[str, Any], cvegeo: str, data_code_field: str = "cvegeo"
) -> Optional[Dict[str, Any]]:
    for feature in geojson_data.get("features") or []:
        if (feature.get("properties") or {}).get(data_code_field) == cvegeo:
            return feature
    return None


def _name_sort_key(name: str) -> Tuple[str, str]:
    # Accents sort with their base letter, as in a Spanish collation
    stripped = "".join(
        ch for ch in unicodedata.normalize("NFD", name) if unicodedata.category(ch) != "Mn"
    )
    return stripped.casefold(), name


def get_municipalities_list(geojson_data: Mapping[str, Any]) -> List[Dict[str, Any]]:
    """Feature properties of every municipality, sorted by name."""
    properties = [dict(feature.get("properties") or {}) for feature in geojson_data.get("features") or []]
    return sorted(properties, key=lambda p: _name_sort_key(p.get("nombre") or p.get("mun_name") or ""))


def calculate_municipalities_bounds(geojson_data: Mapping[str, Any]) -> Optional[Bounds]:
    """
    Bounding box of all municipality geometries.

    Returns:
        ((min_lat, min_lng), (max_lat, max_lng)), or None when there are no coordinates
    """
    min_lat = min_lng = float("inf")
    max_lat = max_lng = float("-inf")

    stack: List[Any] = []
    for feature in geojson_data.get("features") or []:
        geometry = feature.get("geometry") or {}
        if geometry.get("coordinates") is not None:
            stack.append(geometry["coordinates"])
        stack.extend(g.get("coordinates") for g in geometry.get("geometries") or [] if g.get("coordinates"))

    while stack:
        node = stack.pop()
        if not isinstance(node, (list, tuple)) or not node:
            continue
        if isinstance(node[0], (int, float)):
            lng, lat = node[0], node[1]
            min_lng, max_lng = min(min_lng, lng), max(max_lng, lng)
            min_lat, max_lat = min(min_lat, lat), max(max_lat, lat)
        else:
            stack.extend(node)

    if min_lat == float("inf"):
        return None
    return (min_lat, min_lng), (max_lat, max_lng)


def to_geodataframe(
    enriched: Mapping[str, Any], crs: str = "EPSG:4326", data_prefix: str = "data_"
) -> gpd.GeoDataFrame:
    """
    Convert an enriched FeatureCollection into a GeoDataFrame.

    The nested data record is flattened into data_* columns so the frame can
    be rendered or exported directly.
    """
    features = []
    for feature in enriched.get("features") or []:
        properties = dict(feature.get("properties") or {})
        record = properties.pop("data", None) or {}
        for key, value in record.items():
            properties[f"{data_prefix}{key}"] = value
        features.append({**feature, "properties": properties})

    gdf = gpd.GeoDataFrame.from_features(features, crs=crs)
    log_data_summary(gdf, "Enriched municipalities")
    return gdf
