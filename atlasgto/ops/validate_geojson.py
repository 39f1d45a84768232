#!/usr/bin/env python3
"""
GeoJSON Validation Command

Validates the municipalities GeoJSON against the official INEGI catalog,
writes a text report and, when errors are found, a corrected copy of the
GeoJSON for review.

Usage:
    atlas-validate-geojson
    atlas-validate-geojson geo/municipios_gto.geojson --report reports/validation.txt
    atlas-validate-geojson --config my_config.yaml --verbose

Exit codes:
    0: no errors (warnings allowed)
    1: errors found or the file could not be read
"""

import argparse
import json
import sys
from pathlib import Path
from typing import List, Optional

from loguru import logger

from ..processing.geojson_validator import (
    create_corrected_geojson,
    generate_validation_report,
    validate_geojson_integrity,
)
from ..processing.processing_utils import configure_logging, log_processing_step, log_success
from .config_loader import Config

REPORT_FILENAME = "geojson-validation-report.txt"


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Validate the municipalities GeoJSON against the INEGI catalog"
    )
    parser.add_argument("geojson", nargs="?", help="GeoJSON file (default: input_files.municipalities_geojson)")
    parser.add_argument("--config", help="Path to config.yaml")
    parser.add_argument("--report", help=f"Report output path (default: <reports dir>/{REPORT_FILENAME})")
    parser.add_argument("--corrected", help="Corrected GeoJSON output path (default: <input>_corrected.geojson)")
    parser.add_argument("-v", "--verbose", action="store_true", help="Enable DEBUG level logging")
    return parser.parse_args(argv)


def run_validation(
    config: Config,
    geojson_path: Path,
    report_path: Path,
    corrected_path: Optional[Path] = None,
) -> int:
    """
    Validate one GeoJSON file and write the report (and corrected copy if invalid).

    Returns:
        Process exit code
    """
    log_processing_step("Loading GeoJSON", str(geojson_path))
    if not geojson_path.exists():
        logger.error(f"❌ GeoJSON file not found: {geojson_path}")
        return 1

    try:
        with open(geojson_path, "r", encoding="utf-8") as f:
            geojson_data = json.load(f)
    except json.JSONDecodeError as e:
        logger.error(f"❌ Could not parse GeoJSON: {e}")
        return 1

    fields = {
        "state_field": config.get_column_name("state_code"),
        "code_field": config.get_column_name("compact_code"),
        "name_field": config.get_column_name("raw_name"),
    }

    report = validate_geojson_integrity(
        geojson_data,
        expected_state_code=config.get_validation_setting("expected_state_code"),
        **fields,
    )
    report_text = generate_validation_report(report)
    logger.info(f"\n{report_text}")

    report_path.parent.mkdir(parents=True, exist_ok=True)
    report_path.write_text(report_text, encoding="utf-8")
    logger.info(f"📝 Validation report saved to: {report_path}")

    if not report.is_valid:
        log_processing_step("Creating corrected GeoJSON")
        corrected = create_corrected_geojson(
            geojson_data, data_code_field=config.get_column_name("data_code"), **fields
        )
        corrected_path = corrected_path or geojson_path.with_name(f"{geojson_path.stem}_corrected.geojson")
        with open(corrected_path, "w", encoding="utf-8") as f:
            json.dump(corrected, f, ensure_ascii=False, indent=2)
        logger.info(f"✅ Corrected GeoJSON saved to: {corrected_path}")
        logger.info("   Review the corrections and replace the original file if appropriate.")

    logger.info("📊 VALIDATION SUMMARY:")
    logger.info(f"   Status: {'✅ VALID' if report.is_valid else '❌ NEEDS FIXES'}")
    logger.info(f"   Total Issues: {len(report.issues)}")
    logger.info(f"   Errors: {report.summary['errors']}")
    logger.info(f"   Warnings: {report.summary['warnings']}")

    if report.summary["errors"] > 0:
        logger.error("🚨 Fix the identified errors in the GeoJSON and re-run validation")
        return 1
    if report.summary["warnings"] > 0:
        logger.warning("⚠️ Review warnings for data quality improvements")
    else:
        log_success("GeoJSON is fully compliant with the INEGI catalog")
    return 0


def main(argv: Optional[List[str]] = None) -> int:
    args = parse_args(argv)
    configure_logging("DEBUG" if args.verbose else "INFO")

    try:
        config = Config(args.config)
    except (FileNotFoundError, ValueError) as e:
        logger.critical(f"❌ Configuration error: {e}")
        return 1

    if not args.verbose:
        configure_logging(config.get("logging.level"))

    geojson_path = Path(args.geojson) if args.geojson else config.get_input_path("municipalities_geojson")
    report_path = Path(args.report) if args.report else config.get_output_dir("reports") / REPORT_FILENAME
    corrected_path = Path(args.corrected) if args.corrected else None

    return run_validation(config, geojson_path, report_path, corrected_path)


if __name__ == "__main__":
    sys.exit(main())
