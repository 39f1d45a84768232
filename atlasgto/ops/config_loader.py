"""
Configuration Loader for the Atlas de Riesgo pipeline

This module provides a centralized way to load and access configuration
settings from a config.yaml file.

Usage:
    from atlasgto.ops import Config

    config = Config()
    geojson_path = config.get_input_path('municipalities_geojson')
    code_field = config.get_column_name('record_code')
"""

import copy
import os
from pathlib import Path
from typing import Any, Dict, Optional, Union

import yaml  # type: ignore[import-untyped]
from loguru import logger

PACKAGED_CONFIG = Path(__file__).parent / "config.yaml"


class Config:
    """Configuration manager for the atlas data pipeline."""

    # Default values that can be overridden in config
    DEFAULTS: Dict[str, Any] = {
        "columns": {
            "state_code": "state_code",
            "compact_code": "mun_code",
            "raw_name": "mun_name",
            "data_code": "cvegeo",
            "canonical_name": "nombre",
            "record_code": "municipio",
        },
        "classification": {
            "method": "quantile",
            "no_data_color": "#cccccc",
            "missing_data_value": 0,
            "colors": ["#99ccff", "#3399ff", "#0066cc", "#004d99", "#003366"],
        },
        "validation": {
            "expected_state_code": 11,
        },
        "layers": {
            "primary": "indice_riesgo",
        },
        "directories": {
            "data": "data",
            "geo": "geo",
            "reports": "reports",
        },
        "logging": {
            "level": "INFO",
        },
    }

    def __init__(
        self,
        config_file: Optional[Union[str, Path]] = None,
        project_root_override: Optional[Union[str, Path]] = None,
    ):
        """
        Initialize configuration manager.

        Args:
            config_file: Path to config file. If None, looks for:
                        1. Environment variable ATLAS_CONFIG_PATH
                        2. config.yaml in current directory
                        3. the config.yaml shipped with the package
            project_root_override: Override project root detection
        """
        if config_file is None:
            env_config = os.environ.get("ATLAS_CONFIG_PATH")
            if env_config and Path(env_config).exists():
                config_file = env_config
                logger.debug(f"Using config from environment: {config_file}")
            elif Path("config.yaml").exists():
                config_file = "config.yaml"
            else:
                config_file = PACKAGED_CONFIG
                logger.debug("Using packaged default config.yaml")

        self.config_path = Path(config_file).resolve()
        if not self.config_path.exists():
            raise FileNotFoundError(f"Config file not found: {self.config_path}")

        if project_root_override:
            self.project_root = Path(project_root_override).resolve()
            logger.debug(f"Using project root override: {self.project_root}")
        elif os.environ.get("ATLAS_PROJECT_ROOT"):
            self.project_root = Path(os.environ["ATLAS_PROJECT_ROOT"]).resolve()
            logger.debug(f"Using project root from environment: {self.project_root}")
        elif self.config_path == PACKAGED_CONFIG.resolve():
            self.project_root = Path.cwd()
        else:
            self.project_root = self.config_path.parent

        logger.debug(f"Loading config from: {self.config_path}")
        logger.debug(f"Project root: {self.project_root}")

        with open(self.config_path, "r", encoding="utf-8") as f:
            self.data = yaml.safe_load(f) or {}

        if not isinstance(self.data, dict):
            raise ValueError(f"Config file must contain a mapping: {self.config_path}")

        self._setup_paths()

    def _setup_paths(self) -> None:
        """Setup base directory paths relative to project root."""
        dirs = self.data.get("directories", {}) or {}
        defaults = self.DEFAULTS["directories"]

        self.data_dir = self.project_root / dirs.get("data", defaults["data"])
        self.geo_dir = self.project_root / dirs.get("geo", defaults["geo"])
        self.reports_dir = self.project_root / dirs.get("reports", defaults["reports"])

    def get(self, key_path: str, default: Any = None) -> Any:
        """
        Get configuration value using dot notation with intelligent defaults.

        Args:
            key_path: Dot-separated path to the configuration value
            default: Default value if key not found

        Returns:
            Configuration value
        """
        keys = key_path.split(".")

        value: Any = self.data
        for key in keys:
            if isinstance(value, dict) and key in value:
                value = value[key]
            else:
                value = None
                break

        if value is None:
            value = self.DEFAULTS
            for key in keys:
                if isinstance(value, dict) and key in value:
                    value = value[key]
                else:
                    return default
            # Hand out copies so callers never edit the class defaults
            value = copy.deepcopy(value)

        return value

    def get_input_path(self, filename_key: str) -> Path:
        """
        Get full path to an input file declared under input_files.

        Args:
            filename_key: Key for the filename in input_files

        Returns:
            Full absolute path to the input file
        """
        relative_path_str = (self.data.get("input_files") or {}).get(filename_key)
        if not relative_path_str:
            raise ValueError(
                f"Input filename key '{filename_key}' not found in config: input_files"
            )
        return self.project_root / relative_path_str

    def get_layer_data_path(self, file_name: str) -> Path:
        """Resolve a layer data file (e.g. 'indice_riesgo.json') inside the data directory."""
        return self.data_dir / Path(file_name).name

    def get_column_name(self, column_key: str) -> str:
        """Get column name with intelligent defaults."""
        result = self.get(f"columns.{column_key}")
        if isinstance(result, str):
            return result
        raise ValueError(f"Column name not found or not a string: {column_key}")

    def get_classification_setting(self, setting_key: str) -> Any:
        """Get classification setting with intelligent defaults."""
        return self.get(f"classification.{setting_key}")

    def get_validation_setting(self, setting_key: str) -> Any:
        """Get validation setting with intelligent defaults."""
        return self.get(f"validation.{setting_key}")

    def get_output_dir(self, dir_key: str) -> Path:
        """
        Get full path to a configured directory.

        Args:
            dir_key: Directory key ('data', 'geo' or 'reports')

        Returns:
            Full path to the directory
        """
        if dir_key == "data":
            return self.data_dir
        elif dir_key == "geo":
            return self.geo_dir
        elif dir_key == "reports":
            return self.reports_dir
        else:
            raise ValueError(f"Unknown directory key: {dir_key}")

    def print_config_summary(self) -> None:
        """Print a summary of the current configuration."""
        logger.debug("📋 Configuration Summary")
        logger.debug("=" * 50)
        logger.debug(f"Project: {self.get('project_name', 'Unknown')}")
        logger.debug(f"Config file: {self.config_path}")
        logger.debug(f"Project root: {self.project_root}")

        logger.debug("📁 Directories:")
        for key in ["data", "geo", "reports"]:
            dir_path = self.get_output_dir(key)
            exists = "✅" if dir_path.exists() else "❌"
            logger.debug(f"  {exists} {key}: {dir_path}")
