"""
Operations package for the Atlas de Riesgo pipeline

This package centralizes the operational tools:
- Configuration management
- Pipeline orchestration
- GeoJSON validation command

The Config class is exposed at the package level for convenient imports:
    from atlasgto.ops import Config
"""

from .config_loader import Config

__all__ = ["Config"]
