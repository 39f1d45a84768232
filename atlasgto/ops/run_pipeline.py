#!/usr/bin/env python3
"""
Atlas Data Pipeline with Click CLI

Loads the municipalities GeoJSON once, then for each requested layer loads
its data file, joins it onto the geometries, builds the choropleth color
mapping and reports the outcome to the layer manager.

Usage:
    atlas-pipeline                                   # All layers
    atlas-pipeline --layer indice_riesgo             # One layer
    atlas-pipeline --layer homicidios --layer desapariciones --write-geojson
    atlas-pipeline --verbose                         # Enable DEBUG level logging
"""

import json
import sys
import time
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Callable, Dict, Iterable, List, Optional

import click
import pandas as pd
from loguru import logger

from ..layers.layer_config import ATLAS_LAYERS
from ..layers.layer_manager import AtlasLayerManager
from ..processing.choropleth import ChoroplethMapping, create_choropleth_mapping, extract_data_summary
from ..processing.data_joiner import JoinResult, join_data_with_geometries
from ..processing.data_loader import DataRecord, LayerDataLoader, field_extractor
from ..processing.geo_utils import load_municipalities_geojson
from ..processing.processing_utils import configure_logging, log_processing_step, log_success
from .config_loader import Config


def _institutional_capacity(record: DataRecord) -> float:
    # Health centers and shelters count individually, each institution present adds one
    counts = pd.to_numeric(
        pd.Series([record.get("centros_salud"), record.get("refugios")], dtype=object), errors="coerce"
    )
    total = float(counts.fillna(0).sum())
    institutions = ("comision_busqueda", "imug_imm", "fiscalia", "c5i")
    return total + sum(1 for name in institutions if record.get(name))


VALUE_EXTRACTORS: Dict[str, Callable[[DataRecord], Any]] = {
    "indice_riesgo": field_extractor("indice"),
    "desapariciones": field_extractor("casos"),
    "homicidios": field_extractor("casos"),
    "tomas_clandestinas": field_extractor("tomas"),
    "rezago_social": lambda record: abs(field_extractor("irs")(record)),
    "capacidad_instalada": _institutional_capacity,
}


@dataclass
class LayerResult:
    """Outcome of processing one layer."""

    layer_id: str
    join: Optional[JoinResult] = None
    mapping: Optional[ChoroplethMapping] = None
    summary: Dict[str, float] = field(default_factory=dict)
    error: Optional[str] = None

    @property
    def succeeded(self) -> bool:
        return self.error is None


class AtlasPipeline:
    """
    Drives loading, joining and classification for the atlas layers.

    Usage:
        pipeline = AtlasPipeline(Config())
        results = pipeline.run(["indice_riesgo"])
    """

    def __init__(
        self,
        config: Config,
        manager: Optional[AtlasLayerManager] = None,
        loader: Optional[LayerDataLoader] = None,
    ):
        self.config = config
        self.manager = manager or AtlasLayerManager(ATLAS_LAYERS, config.get("layers.primary"))
        self.loader = loader or LayerDataLoader(config.get_output_dir("data"), ATLAS_LAYERS)
        self._geojson: Optional[Dict[str, Any]] = None

    def load_geometries(self, geojson_path: Optional[Path] = None) -> Dict[str, Any]:
        if self._geojson is None:
            path = geojson_path or self.config.get_input_path("municipalities_geojson")
            self._geojson = load_municipalities_geojson(
                path,
                state_field=self.config.get_column_name("state_code"),
                code_field=self.config.get_column_name("compact_code"),
                name_field=self.config.get_column_name("raw_name"),
                data_code_field=self.config.get_column_name("data_code"),
                canonical_name_field=self.config.get_column_name("canonical_name"),
            )
        return self._geojson

    def use_geometries(self, geojson_data: Dict[str, Any]) -> None:
        """Use an already prepared FeatureCollection instead of reading the file."""
        self._geojson = geojson_data

    def _colors_for(self, layer_id: str) -> List[str]:
        return self.config.get(f"classification.layer_colors.{layer_id}") or self.config.get_classification_setting(
            "colors"
        )

    def process_layer(self, layer_id: str) -> LayerResult:
        """
        Load, join and classify one layer, keeping the layer manager informed.

        Failures are logged and reported in the result; the layer is then
        marked as having no data.
        """
        layer_config = ATLAS_LAYERS.get(layer_id)
        if layer_config is None:
            logger.warning(f"⚠️ Layer not found: {layer_id}")
            return LayerResult(layer_id, error=f"Layer not found: {layer_id}")

        log_processing_step(f"Processing layer: {layer_config.name}")
        self.manager.set_loading(layer_id, True)
        try:
            geojson_data = self.load_geometries()
            data_file = self.loader.load_layer_data(layer_id)
            data_code_field = self.config.get_column_name("data_code")

            join = join_data_with_geometries(
                geojson_data,
                data_file,
                geo_code_field=data_code_field,
                data_code_field=self.config.get_column_name("record_code"),
                data_source_name=layer_config.name,
                name_field=self.config.get_column_name("canonical_name"),
                raw_name_field=self.config.get_column_name("raw_name"),
            )

            extractor = VALUE_EXTRACTORS.get(layer_id, field_extractor("valor"))
            mapping = create_choropleth_mapping(
                join,
                extractor,
                self._colors_for(layer_id),
                method=self.config.get_classification_setting("method"),
                no_data_color=self.config.get_classification_setting("no_data_color"),
                missing_data_value=self.config.get_classification_setting("missing_data_value"),
                geo_code_field=data_code_field,
            )
            summary = extract_data_summary(join, extractor, data_code_field)
        except (FileNotFoundError, ValueError, OSError) as e:
            logger.error(f"❌ Failed to process layer {layer_id}: {e}")
            self.manager.set_data(layer_id, False)
            return LayerResult(layer_id, error=str(e))
        finally:
            self.manager.set_loading(layer_id, False)

        self.manager.set_data(layer_id, True, len(data_file.records))
        logger.info(
            f"   📊 {summary['count']} values, mean {summary['mean']:.2f}, "
            f"alignment {join.alignment.alignment_ratio:.1%}"
        )
        return LayerResult(layer_id, join=join, mapping=mapping, summary=summary)

    def run(self, layer_ids: Optional[Iterable[str]] = None) -> Dict[str, LayerResult]:
        layer_ids = list(layer_ids or ATLAS_LAYERS.keys())
        return {layer_id: self.process_layer(layer_id) for layer_id in layer_ids}

    def write_enriched_geojson(self, result: LayerResult) -> Optional[Path]:
        """Write a layer's enriched FeatureCollection with a fill color per feature."""
        if result.join is None or result.mapping is None:
            return None

        data_code_field = self.config.get_column_name("data_code")
        collection = result.join.to_geojson()
        collection["features"] = [
            {
                **feature,
                "properties": {
                    **feature["properties"],
                    "fill_color": result.mapping(feature["properties"][data_code_field]),
                },
            }
            for feature in collection["features"]
        ]
        collection["metadata"]["legend"] = result.mapping.legend()

        output_dir = self.config.get_output_dir("geo")
        output_dir.mkdir(parents=True, exist_ok=True)
        output_path = output_dir / f"{result.layer_id}_enriched.geojson"
        with open(output_path, "w", encoding="utf-8") as f:
            json.dump(collection, f, ensure_ascii=False, default=str)
        logger.info(f"💾 Saved enriched GeoJSON: {output_path}")
        return output_path


@click.command()
@click.option("--config", "config_path", type=click.Path(exists=True), help="Path to config.yaml")
@click.option(
    "--layer",
    "layer_ids",
    multiple=True,
    type=click.Choice(list(ATLAS_LAYERS.keys())),
    help="Layer to process (repeatable, default: all layers)",
)
@click.option("--geojson", type=click.Path(exists=True), help="Override the municipalities GeoJSON path")
@click.option("--write-geojson", is_flag=True, help="Write enriched GeoJSON per layer to the geo directory")
@click.option("-v", "--verbose", is_flag=True, help="Enable DEBUG level logging")
def main(config_path, layer_ids, geojson, write_geojson, verbose):
    """Run the atlas data pipeline for the selected layers."""
    configure_logging("DEBUG" if verbose else "INFO")
    logger.info("🗺️ Atlas de Riesgo Data Pipeline")

    try:
        config = Config(config_path)
    except (FileNotFoundError, ValueError) as e:
        logger.critical(f"Configuration error: {e}")
        logger.info("💡 Make sure config.yaml exists and is valid")
        sys.exit(1)

    if not verbose:
        configure_logging(config.get("logging.level"))
    config.print_config_summary()
    pipeline = AtlasPipeline(config)

    start = time.time()
    try:
        pipeline.load_geometries(Path(geojson) if geojson else None)
    except (FileNotFoundError, ValueError) as e:
        logger.critical(f"❌ Could not load municipalities: {e}")
        sys.exit(1)

    results = pipeline.run(layer_ids or None)
    if write_geojson:
        for result in results.values():
            pipeline.write_enriched_geojson(result)

    succeeded = sum(1 for r in results.values() if r.succeeded)
    stats = pipeline.manager.get_statistics()
    logger.info("=" * 60)
    log_success(f"Processed {succeeded}/{len(results)} layers in {time.time() - start:.1f}s")
    logger.info(f"   Layers with data: {stats.with_data}/{stats.total}")

    if succeeded < len(results):
        sys.exit(1)


if __name__ == "__main__":
    main()
