#!/usr/bin/env python3
"""
GeoJSON Validation System for Guanajuato Municipalities

Validates a municipalities FeatureCollection against the official INEGI
catalog and identifies the data integrity issues that need fixing:
- missing or malformed feature properties
- wrong state codes
- municipality names or codes that disagree with the catalog
- empty or topologically invalid geometries
- catalog municipalities absent from the GeoJSON

A companion function builds a corrected copy of the collection for features
whose name identifies a municipality but whose code does not.
"""

from dataclasses import asdict, dataclass, field
from typing import Any, Dict, List, Optional, Sequence, Tuple

from loguru import logger
from shapely.errors import ShapelyError
from shapely.geometry import shape
from shapely.validation import explain_validity

from .municipality_codes import (
    GUANAJUATO_MUNICIPALITIES,
    GUANAJUATO_STATE_CODE,
    MunicipalityInfo,
    as_compact_code,
    format_data_code,
)

# Issue kinds
MISSING_PROPERTIES = "missing_properties"
INVALID_STATE_CODE = "invalid_state_code"
WRONG_NAME = "wrong_name"
WRONG_CODE = "wrong_code"
UNKNOWN_MUNICIPALITY = "unknown_municipality"
MISSING_MUNICIPALITY = "missing_municipality"
EXTRA_MUNICIPALITY = "extra_municipality"
INVALID_GEOMETRY = "invalid_geometry"
INVALID_TOPOLOGY = "invalid_topology"

SEVERITIES = ("error", "warning", "info")


@dataclass
class ValidationIssue:
    """A single problem found in the GeoJSON."""

    kind: str
    severity: str  # 'error', 'warning', 'info'
    message: str
    municipality: Optional[str] = None
    expected: Optional[str] = None
    actual: Optional[str] = None
    suggestion: Optional[str] = None


@dataclass
class ValidationReport:
    """Complete validation report."""

    is_valid: bool
    total_municipalities: int
    expected_municipalities: int
    issues: List[ValidationIssue] = field(default_factory=list)
    summary: Dict[str, int] = field(default_factory=dict)

    def issues_by_severity(self, severity: str) -> List[ValidationIssue]:
        return [issue for issue in self.issues if issue.severity == severity]

    def to_dict(self) -> Dict[str, Any]:
        """Machine-readable form of the report."""
        return asdict(self)


def _summarize(issues: Sequence[ValidationIssue]) -> Dict[str, int]:
    return {
        "errors": sum(1 for i in issues if i.severity == "error"),
        "warnings": sum(1 for i in issues if i.severity == "warning"),
        "info": sum(1 for i in issues if i.severity == "info"),
    }


def _is_blank(value: Any) -> bool:
    return value is None or (isinstance(value, str) and not value.strip())


def _has_coordinates(geometry: Any) -> bool:
    """True when the geometry carries at least one numeric coordinate."""
    if not isinstance(geometry, dict):
        return False

    if geometry.get("type") == "GeometryCollection":
        return any(_has_coordinates(member) for member in geometry.get("geometries") or [])

    stack: List[Any] = [geometry.get("coordinates")]
    while stack:
        node = stack.pop()
        if isinstance(node, (int, float)) and not isinstance(node, bool):
            return True
        if isinstance(node, (list, tuple)):
            stack.extend(node)
    return False


def _check_topology(geometry: Dict[str, Any]) -> Tuple[bool, Optional[str]]:
    """Build the shapely geometry; returns (buildable, invalid_reason)."""
    try:
        geom = shape(geometry)
    except (ValueError, TypeError, AttributeError, KeyError, IndexError, ShapelyError) as e:
        return False, str(e)
    if not geom.is_valid:
        return True, explain_validity(geom)
    return True, None


def _build_name_index(units: Sequence[MunicipalityInfo]) -> Dict[str, MunicipalityInfo]:
    by_name: Dict[str, MunicipalityInfo] = {}
    for unit in units:
        by_name[unit.official_name.lower()] = unit
        if unit.common_name:
            by_name.setdefault(unit.common_name.lower(), unit)
    return by_name


def validate_geojson_integrity(
    geojson_data: Any,
    units: Sequence[MunicipalityInfo] = GUANAJUATO_MUNICIPALITIES,
    expected_state_code: int = GUANAJUATO_STATE_CODE,
    state_field: str = "state_code",
    code_field: str = "mun_code",
    name_field: str = "mun_name",
) -> ValidationReport:
    """
    Validate GeoJSON against the official INEGI catalog.

    Args:
        geojson_data: Parsed GeoJSON FeatureCollection
        units: Canonical municipality catalog
        expected_state_code: State code every feature must carry
        state_field: Property holding the state code
        code_field: Property holding the compact municipality code
        name_field: Property holding the municipality name

    Returns:
        ValidationReport; is_valid is True iff no error-level issue was found
    """
    issues: List[ValidationIssue] = []

    logger.info("🔍 Starting GeoJSON validation against INEGI standards...")

    features = geojson_data.get("features") if isinstance(geojson_data, dict) else None
    if not isinstance(features, list):
        issues.append(
            ValidationIssue(
                kind=MISSING_PROPERTIES,
                severity="error",
                message="GeoJSON does not have a valid features array",
                suggestion='Ensure GeoJSON has a "features" array property',
            )
        )
        logger.error("❌ GeoJSON has no features array")
        return ValidationReport(
            is_valid=False,
            total_municipalities=0,
            expected_municipalities=len(units),
            issues=issues,
            summary=_summarize(issues),
        )

    by_code = {unit.data_code: unit for unit in units}
    by_name = _build_name_index(units)

    found_codes: set = set()
    found_names: set = set()

    for index, feature in enumerate(features):
        props = feature.get("properties") if isinstance(feature, dict) else None
        if not isinstance(props, dict):
            props = {}

        state_code = props.get(state_field)
        mun_code = props.get(code_field)
        mun_name = props.get(name_field)

        if _is_blank(state_code) or _is_blank(mun_code) or _is_blank(mun_name):
            missing = [
                name
                for name, value in ((state_field, state_code), (code_field, mun_code), (name_field, mun_name))
                if _is_blank(value)
            ]
            issues.append(
                ValidationIssue(
                    kind=MISSING_PROPERTIES,
                    severity="error",
                    municipality=f"Feature {index}",
                    message=f"Missing required properties ({', '.join(missing)})",
                    suggestion="Add missing properties to GeoJSON feature",
                )
            )
            continue

        mun_name = str(mun_name)

        if as_compact_code(state_code) != expected_state_code:
            issues.append(
                ValidationIssue(
                    kind=INVALID_STATE_CODE,
                    severity="error",
                    municipality=mun_name,
                    expected=str(expected_state_code),
                    actual=str(state_code),
                    message="Invalid state code for Guanajuato",
                    suggestion=f"State code should be {expected_state_code} for Guanajuato",
                )
            )

        state = as_compact_code(state_code)
        compact = as_compact_code(mun_code)
        expected_code = format_data_code(
            state if state is not None else state_code,
            compact if compact is not None else mun_code,
        )

        if expected_code in found_codes:
            issues.append(
                ValidationIssue(
                    kind=EXTRA_MUNICIPALITY,
                    severity="warning",
                    municipality=mun_name,
                    actual=expected_code,
                    message="Municipality code appears more than once in GeoJSON",
                    suggestion="Merge or remove duplicated features",
                )
            )
        found_codes.add(expected_code)
        found_names.add(mun_name.lower())

        code_match = by_code.get(expected_code)
        name_match = by_name.get(mun_name.lower())

        if code_match is None and name_match is None:
            issues.append(
                ValidationIssue(
                    kind=UNKNOWN_MUNICIPALITY,
                    severity="error",
                    municipality=mun_name,
                    expected="Valid INEGI municipality",
                    actual=f"{mun_name} ({expected_code})",
                    message="Municipality not found in official INEGI catalog",
                    suggestion="Verify municipality name and code against INEGI data",
                )
            )
        elif code_match is not None and name_match is code_match:
            logger.debug(f"✅ {mun_name} ({expected_code}) - Perfect match")
        elif code_match is not None and name_match is None:
            issues.append(
                ValidationIssue(
                    kind=WRONG_NAME,
                    severity="warning",
                    municipality=mun_name,
                    expected=code_match.official_name,
                    actual=mun_name,
                    message="Municipality name doesn't match INEGI official name",
                    suggestion=f'Consider using official name: "{code_match.official_name}"',
                )
            )
        else:
            # Name identifies a municipality; the code is absent or points elsewhere
            correct = name_match.compact_code
            issues.append(
                ValidationIssue(
                    kind=WRONG_CODE,
                    severity="error",
                    municipality=mun_name,
                    expected=f"{code_field}: {correct}",
                    actual=f"{code_field}: {mun_code}",
                    message="Municipality code doesn't match INEGI official code",
                    suggestion=f"Change {code_field} from {mun_code} to {correct}",
                )
            )

        geometry = feature.get("geometry")
        if not _has_coordinates(geometry):
            issues.append(
                ValidationIssue(
                    kind=INVALID_GEOMETRY,
                    severity="error",
                    municipality=mun_name,
                    message="Invalid or missing geometry",
                    suggestion="Ensure feature has valid geometry with coordinates",
                )
            )
            continue

        buildable, reason = _check_topology(geometry)
        if not buildable:
            issues.append(
                ValidationIssue(
                    kind=INVALID_GEOMETRY,
                    severity="error",
                    municipality=mun_name,
                    actual=reason,
                    message="Geometry coordinates cannot form a valid shape",
                    suggestion="Check ring closure and coordinate nesting",
                )
            )
        elif reason:
            issues.append(
                ValidationIssue(
                    kind=INVALID_TOPOLOGY,
                    severity="warning",
                    municipality=mun_name,
                    actual=reason,
                    message="Geometry is topologically invalid",
                    suggestion="Repair with shapely.validation.make_valid",
                )
            )

    for unit in units:
        if unit.data_code not in found_codes and unit.official_name.lower() not in found_names:
            issues.append(
                ValidationIssue(
                    kind=MISSING_MUNICIPALITY,
                    severity="warning",
                    municipality=unit.official_name,
                    expected=unit.data_code,
                    message="Official municipality missing from GeoJSON",
                    suggestion=f"Add {unit.official_name} ({unit.data_code}) to GeoJSON",
                )
            )

    summary = _summarize(issues)
    is_valid = summary["errors"] == 0

    logger.info("📊 Validation complete:")
    logger.info(f"   Total municipalities in GeoJSON: {len(features)}")
    logger.info(f"   Expected municipalities (INEGI): {len(units)}")
    logger.info(f"   Errors: {summary['errors']}")
    logger.info(f"   Warnings: {summary['warnings']}")
    logger.info(f"   Valid: {'✅' if is_valid else '❌'}")

    return ValidationReport(
        is_valid=is_valid,
        total_municipalities=len(features),
        expected_municipalities=len(units),
        issues=issues,
        summary=summary,
    )


def _format_issue_block(issues: List[ValidationIssue], problem_label: str, fix_label: str) -> str:
    output = ""
    for i, issue in enumerate(issues, 1):
        output += f"   {i}. {issue.municipality or 'Unknown'}\n"
        output += f"      {problem_label}: {issue.message}\n"
        if issue.expected:
            output += f"      Expected: {issue.expected}\n"
        if issue.actual:
            output += f"      Actual: {issue.actual}\n"
        if issue.suggestion:
            output += f"      {fix_label}: {issue.suggestion}\n"
        output += "\n"
    return output


def generate_validation_report(report: ValidationReport) -> str:
    """
    Generate a detailed validation report for console or file output.

    Args:
        report: Validation report

    Returns:
        Formatted report string
    """
    output = "\n🔍 GEOJSON VALIDATION REPORT\n"
    output += "=" * 50 + "\n\n"

    output += "📊 SUMMARY:\n"
    output += f"   Status: {'✅ VALID' if report.is_valid else '❌ INVALID'}\n"
    output += f"   Municipalities: {report.total_municipalities}/{report.expected_municipalities}\n"
    output += f"   Errors: {report.summary.get('errors', 0)}\n"
    output += f"   Warnings: {report.summary.get('warnings', 0)}\n"
    output += f"   Info: {report.summary.get('info', 0)}\n\n"

    if not report.issues:
        output += "✅ NO ISSUES FOUND - GeoJSON is valid!\n"
        return output

    output += "🚨 ISSUES FOUND:\n\n"

    errors = report.issues_by_severity("error")
    warnings = report.issues_by_severity("warning")
    infos = report.issues_by_severity("info")

    if errors:
        output += f"❌ ERRORS ({len(errors)}):\n"
        output += _format_issue_block(errors, "Problem", "Fix")
    if warnings:
        output += f"⚠️  WARNINGS ({len(warnings)}):\n"
        output += _format_issue_block(warnings, "Issue", "Suggestion")
    if infos:
        output += f"ℹ️  INFO ({len(infos)}):\n"
        output += _format_issue_block(infos, "Note", "Suggestion")

    return output


def create_corrected_geojson(
    geojson_data: Dict[str, Any],
    units: Sequence[MunicipalityInfo] = GUANAJUATO_MUNICIPALITIES,
    state_field: str = "state_code",
    code_field: str = "mun_code",
    name_field: str = "mun_name",
    data_code_field: str = "cvegeo",
) -> Dict[str, Any]:
    """
    Create a corrected copy of the GeoJSON.

    Features whose name matches a catalog municipality but whose code does
    not get the official code. Everything else is returned unchanged.

    Args:
        geojson_data: Original GeoJSON (left untouched)
        units: Canonical municipality catalog

    Returns:
        Corrected GeoJSON FeatureCollection
    """
    logger.info("🔧 Creating corrected GeoJSON...")

    by_code = {unit.data_code: unit for unit in units}
    by_name = _build_name_index(units)

    corrected_features = []
    corrections = 0

    for feature in geojson_data.get("features") or []:
        props = feature.get("properties") if isinstance(feature, dict) else None
        if not isinstance(props, dict) or _is_blank(props.get(name_field)):
            corrected_features.append(feature)
            continue

        name_match = by_name.get(str(props[name_field]).lower())
        if name_match is None:
            corrected_features.append(feature)
            continue

        state = as_compact_code(props.get(state_field))
        compact = as_compact_code(props.get(code_field))
        current_code = (
            format_data_code(state, compact) if state is not None and compact is not None else None
        )
        if current_code is not None and by_code.get(current_code) is name_match:
            corrected_features.append(feature)
            continue

        logger.debug(
            f"   {props[name_field]}: {code_field} {props.get(code_field)} → {name_match.compact_code}"
        )
        corrections += 1
        corrected_features.append(
            {
                **feature,
                "properties": {
                    **props,
                    code_field: name_match.compact_code,
                    data_code_field: name_match.data_code,
                },
            }
        )

    logger.info(f"   ✅ Applied {corrections} code corrections")

    corrected = {key: value for key, value in geojson_data.items() if key != "features"}
    corrected["type"] = "FeatureCollection"
    corrected["features"] = corrected_features
    return corrected
