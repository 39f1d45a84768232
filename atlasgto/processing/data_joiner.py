"""
Data Joining System - Atlas de Riesgo

Joins tabular layer data with municipal GeoJSON geometries for visualization.
Designed to handle missing data gracefully and to make data alignment
problems visible:

- every input feature produces exactly one enriched feature, in order
- a feature without a matching record is flagged has_data=False, not an error
- the alignment report compares the full code sets on both sides, so a
  renumbered dataset shows up even when some joins happen to succeed
"""

from dataclasses import asdict, dataclass, field
from datetime import datetime
from typing import Any, Dict, List, Mapping, Optional, Union

from loguru import logger

from .data_loader import (
    DEFAULT_CODE_FIELD,
    DataFile,
    create_municipality_lookup,
    parse_data_file,
    validate_municipality_alignment,
)
from .municipality_codes import as_compact_code, format_data_code

UNKNOWN_CODE = "unknown"

Feature = Dict[str, Any]


@dataclass(frozen=True)
class AlignmentReport:
    """Code alignment between the geometry collection and a data file."""

    matched_codes: List[str]
    codes_only_in_geometry: List[str]
    codes_only_in_data: List[str]
    alignment_ratio: float


@dataclass
class JoinResult:
    """Enriched features plus alignment report and join metadata."""

    features: List[Feature]
    alignment: AlignmentReport
    metadata: Dict[str, Any] = field(default_factory=dict)

    def __len__(self) -> int:
        return len(self.features)

    def to_geojson(self) -> Dict[str, Any]:
        """Enriched FeatureCollection with join metadata and alignment attached."""
        return {
            "type": "FeatureCollection",
            "features": self.features,
            "metadata": {**self.metadata, "alignment": asdict(self.alignment)},
        }


def resolve_feature_code(
    properties: Mapping[str, Any],
    geo_code_field: str = "cvegeo",
    state_field: str = "state_code",
    code_field: str = "mun_code",
) -> str:
    """
    Read a feature's municipality code, synthesizing it when the field is absent.

    Falls back to state_code + zero-padded mun_code, then to 'unknown'.
    """
    code = properties.get(geo_code_field)
    if code not in (None, ""):
        return str(code)

    state = as_compact_code(properties.get(state_field))
    compact = as_compact_code(properties.get(code_field))
    if state is not None and compact is not None:
        return format_data_code(state, compact)
    return UNKNOWN_CODE


def join_data_with_geometries(
    geojson_data: Mapping[str, Any],
    data_file: Union[DataFile, Mapping[str, Any]],
    geo_code_field: str = "cvegeo",
    data_code_field: str = DEFAULT_CODE_FIELD,
    data_source_name: str = "Unknown",
    name_field: str = "nombre",
    raw_name_field: str = "mun_name",
) -> JoinResult:
    """
    Join tabular data with GeoJSON geometries.

    Args:
        geojson_data: Municipal geometries (FeatureCollection dict, left untouched)
        data_file: DataFile or decoded payload with a 'records' list
        geo_code_field: Property in GeoJSON holding the municipality code
        data_code_field: Field in the records holding the municipality code
        data_source_name: Name recorded on every feature and in the metadata
        name_field: Property that receives the display name
        raw_name_field: Property used for the display name when name_field is absent

    Returns:
        JoinResult with one enriched feature per input feature

    Raises:
        ValueError: If the geometry has no features list or the data payload
            is not a record collection
    """
    if not isinstance(data_file, DataFile):
        data_file = parse_data_file(data_file, source_label=data_source_name)

    features = geojson_data.get("features") if isinstance(geojson_data, Mapping) else None
    if not isinstance(features, list):
        raise ValueError("GeoJSON does not have a valid features array")

    data_lookup = create_municipality_lookup(data_file, data_code_field)

    resolved_codes = [
        resolve_feature_code(feature.get("properties") or {}, geo_code_field) for feature in features
    ]
    alignment = validate_municipality_alignment(resolved_codes, data_lookup.keys())

    logger.info(f"🔗 Joining {data_source_name} data:")
    logger.info(f"   Geometries: {len(set(resolved_codes))}, Data records: {len(data_lookup)}")
    logger.info(f"   Successful joins: {len(alignment['matching'])}")
    if alignment["missing_in_data"]:
        logger.warning(f"   Missing data for: {', '.join(alignment['missing_in_data'])}")
    if alignment["missing_in_geo"]:
        logger.warning(f"   Extra data for: {', '.join(alignment['missing_in_geo'])}")

    enhanced_features: List[Feature] = []
    for feature, code in zip(features, resolved_codes):
        properties = feature.get("properties") or {}
        data = data_lookup.get(code)
        nombre = properties.get(name_field) or properties.get(raw_name_field) or "Unknown"

        enhanced_features.append(
            {
                **feature,
                "properties": {
                    **properties,
                    geo_code_field: code,
                    name_field: nombre,
                    "data": data,
                    "has_data": data is not None,
                    "data_source": data_source_name,
                },
            }
        )

    report = AlignmentReport(
        matched_codes=alignment["matching"],
        codes_only_in_geometry=alignment["missing_in_data"],
        codes_only_in_data=alignment["missing_in_geo"],
        alignment_ratio=alignment["alignment_ratio"],
    )

    metadata = {
        "total_features": len(enhanced_features),
        "features_with_data": sum(1 for f in enhanced_features if f["properties"]["has_data"]),
        "alignment_ratio": report.alignment_ratio,
        "missing_data_codes": report.codes_only_in_geometry,
        "data_source": data_source_name,
        "data_version": data_file.version,
        "joined_at": datetime.now().isoformat(),
    }

    return JoinResult(features=enhanced_features, alignment=report, metadata=metadata)


def get_feature_code(feature: Mapping[str, Any], geo_code_field: str = "cvegeo") -> Optional[str]:
    """Code of an enriched feature, or None when it carries no properties."""
    properties = feature.get("properties")
    if not isinstance(properties, Mapping):
        return None
    return resolve_feature_code(properties, geo_code_field)
