"""
Processing package for the Atlas de Riesgo

This package contains the data-integration core: municipality code mapping,
GeoJSON validation, data loading and joining, and choropleth classification.
"""

# Import key utilities for easy access
from .choropleth import ChoroplethMapping, calculate_breaks, create_choropleth_mapping, extract_data_summary
from .data_joiner import AlignmentReport, JoinResult, join_data_with_geometries
from .data_loader import DataFile, LayerDataLoader, create_municipality_lookup, parse_data_file
from .geojson_validator import (
    ValidationIssue,
    ValidationReport,
    create_corrected_geojson,
    generate_validation_report,
    validate_geojson_integrity,
)
from .municipality_codes import (
    DEFAULT_CROSSWALK,
    GUANAJUATO_MUNICIPALITIES,
    MunicipalityCrosswalk,
    MunicipalityInfo,
    data_code_to_geo_code,
    geo_code_to_data_code,
)

__all__ = [
    "ChoroplethMapping",
    "calculate_breaks",
    "create_choropleth_mapping",
    "extract_data_summary",
    "AlignmentReport",
    "JoinResult",
    "join_data_with_geometries",
    "DataFile",
    "LayerDataLoader",
    "create_municipality_lookup",
    "parse_data_file",
    "ValidationIssue",
    "ValidationReport",
    "create_corrected_geojson",
    "generate_validation_report",
    "validate_geojson_integrity",
    "DEFAULT_CROSSWALK",
    "GUANAJUATO_MUNICIPALITIES",
    "MunicipalityCrosswalk",
    "MunicipalityInfo",
    "data_code_to_geo_code",
    "geo_code_to_data_code",
]
