"""
Processing Utilities - Common Infrastructure

Logging setup and step helpers shared by the atlas commands, so every
processing step reports progress the same way.
"""

import sys
from typing import Union

import geopandas as gpd
import pandas as pd
from loguru import logger

BRIEF_FORMAT = "<green>{time:HH:mm:ss}</green> | <level>{level: <8}</level> | <level>{message}</level>"
DETAILED_FORMAT = (
    "<green>{time:YYYY-MM-DD HH:mm:ss.SSS}</green> | <level>{level: <8}</level> | "
    "<cyan>{name}</cyan>:<cyan>{function}</cyan>:<cyan>{line}</cyan> | <level>{message}</level>"
)


def configure_logging(level: str = "INFO") -> None:
    """
    Configure loguru with a single stderr sink.

    Args:
        level: Log level name; DEBUG and TRACE switch to the detailed format
    """
    level = level.upper()
    log_format = DETAILED_FORMAT if level in ("DEBUG", "TRACE") else BRIEF_FORMAT

    logger.remove()
    logger.add(
        sys.stderr,
        format=log_format,
        level=level,
        colorize=True,
        backtrace=level == "TRACE",
        diagnose=level == "TRACE",
    )
    logger.debug(f"🔧 Logging configured at {level} level")


def log_processing_step(step_name: str, details: str = "") -> None:
    """
    Log a processing step with consistent formatting.

    Args:
        step_name: Name of the processing step
        details: Optional details about the step
    """
    logger.info(f"🔄 {step_name}")
    if details:
        logger.info(f"   {details}")


def log_success(message: str) -> None:
    """Log a success message with consistent formatting."""
    logger.success(f"✅ {message}")


def log_data_summary(frame: Union[pd.DataFrame, gpd.GeoDataFrame], label: str, max_columns: int = 10) -> None:
    """Log row (or feature) count, CRS and leading columns of a tabular view."""
    unit = "features" if isinstance(frame, gpd.GeoDataFrame) else "rows"
    logger.debug(f"📋 {label}: {len(frame):,} {unit}")
    if isinstance(frame, gpd.GeoDataFrame) and frame.crs:
        logger.debug(f"   CRS: {frame.crs}")

    columns = list(frame.columns)
    more = f" (+{len(columns) - max_columns} more)" if len(columns) > max_columns else ""
    logger.debug(f"   Columns: {', '.join(map(str, columns[:max_columns]))}{more}")
