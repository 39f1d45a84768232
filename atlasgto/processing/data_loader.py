"""
Data Loading System - Atlas de Riesgo

Turns decoded JSON payloads into DataFile objects and loads the per-layer
data files from the configured data directory.

Key design principles:
- Consistent data structure across all layers (a records list keyed by municipio)
- Missing data is handled gracefully; only a payload that is not a record
  collection at all is rejected
- Loaded files are cached per layer
"""

import json
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Callable, Dict, Iterable, List, Mapping, Optional, Set, Union

import pandas as pd
from loguru import logger

from .processing_utils import log_data_summary

DEFAULT_VERSION = "2024.1"
DEFAULT_CODE_FIELD = "municipio"

DataRecord = Dict[str, Any]


@dataclass
class DataFile:
    """A tabular layer payload: version tag, optional metadata and records."""

    version: str
    records: List[DataRecord]
    source: Optional[str] = None
    updated: Optional[str] = None
    metadata: Dict[str, Any] = field(default_factory=dict)

    def codes(self, code_field: str = DEFAULT_CODE_FIELD) -> List[Any]:
        return [record.get(code_field) for record in self.records]


def parse_data_file(raw: Any, source_label: str = "data payload") -> DataFile:
    """
    Validate a decoded JSON payload and wrap it as a DataFile.

    Args:
        raw: Decoded JSON (expected: mapping with a 'records' list)
        source_label: Name used in error messages

    Returns:
        DataFile with the version defaulted when absent

    Raises:
        ValueError: If the payload is not a record collection
    """
    if not isinstance(raw, Mapping) or not isinstance(raw.get("records"), list):
        logger.error(f"❌ Invalid data structure in {source_label}: missing 'records' array")
        raise ValueError(f"Invalid data structure in {source_label}: missing 'records' array")

    records: List[DataRecord] = []
    skipped = 0
    for record in raw["records"]:
        if isinstance(record, Mapping):
            records.append(dict(record))
        else:
            skipped += 1

    if skipped:
        logger.warning(f"⚠️ Skipped {skipped} non-object records in {source_label}")

    return DataFile(
        version=str(raw.get("version") or DEFAULT_VERSION),
        records=records,
        source=raw.get("source"),
        updated=raw.get("updated"),
        metadata=dict(raw.get("metadata") or {}),
    )


def create_municipality_lookup(
    data_file: DataFile, code_field: str = DEFAULT_CODE_FIELD
) -> Dict[str, DataRecord]:
    """
    Create a lookup map for fast municipality data access.

    Records sharing a code overwrite earlier ones: the last record wins.

    Args:
        data_file: Data file to create lookup from
        code_field: Record field holding the municipality code

    Returns:
        Dict with municipality code as key and record as value
    """
    lookup: Dict[str, DataRecord] = {}
    duplicates = 0

    for record in data_file.records:
        code = record.get(code_field)
        if code is None:
            continue
        code = str(code)
        if code in lookup:
            duplicates += 1
        lookup[code] = record

    if duplicates:
        logger.debug(f"   {duplicates} duplicate codes resolved by last-write-wins")

    return lookup


def validate_municipality_alignment(
    geo_codes: Iterable[str], data_codes: Iterable[str]
) -> Dict[str, Any]:
    """
    Compare the full set of GeoJSON codes with the full set of data codes.

    Args:
        geo_codes: Codes from GeoJSON
        data_codes: Codes from the data file

    Returns:
        Dict with matching, missing_in_geo, missing_in_data and alignment_ratio
    """
    geo_set: Set[str] = set(geo_codes)
    data_set: Set[str] = set(data_codes)

    matching = sorted(geo_set & data_set)
    missing_in_geo = sorted(data_set - geo_set)
    missing_in_data = sorted(geo_set - data_set)

    denominator = max(len(geo_set), len(data_set))
    ratio = len(matching) / denominator if denominator else 1.0

    return {
        "matching": matching,
        "missing_in_geo": missing_in_geo,
        "missing_in_data": missing_in_data,
        "alignment_ratio": ratio,
    }


def field_extractor(field_name: str) -> Callable[[DataRecord], float]:
    """
    Build a value extractor reading one numeric field of a record.

    Non-numeric values come back as NaN, which the choropleth treats as no data.
    """

    def extract(record: DataRecord) -> float:
        value = pd.to_numeric(pd.Series([record.get(field_name)], dtype=object), errors="coerce")
        return float(value.iloc[0])

    return extract


def records_to_frame(data_file: DataFile, code_field: str = DEFAULT_CODE_FIELD) -> pd.DataFrame:
    """Tabular view of a data file, one row per record, code column as strings."""
    frame = pd.DataFrame.from_records(data_file.records)
    if frame.empty:
        return frame
    if code_field in frame.columns:
        frame[code_field] = frame[code_field].astype(str)
    log_data_summary(frame, f"Records v{data_file.version}")
    return frame


class LayerDataLoader:
    """
    Loads layer data files from a directory, caching each layer once loaded.

    Usage:
        loader = LayerDataLoader(config.get_output_dir("data"))
        data_file = loader.load_layer_data("indice_riesgo")
    """

    def __init__(self, data_dir: Union[str, Path], layer_configs: Optional[Mapping[str, Any]] = None):
        if layer_configs is None:
            from ..layers.layer_config import ATLAS_LAYERS

            layer_configs = ATLAS_LAYERS

        self.data_dir = Path(data_dir)
        self.layer_configs = layer_configs
        self._cache: Dict[str, DataFile] = {}

    def resolve_path(self, layer_id: str) -> Path:
        layer_config = self.layer_configs.get(layer_id)
        if layer_config is None:
            raise ValueError(f"Layer not found: {layer_id}")
        return self.data_dir / Path(layer_config.data_source).name

    def load_layer_data(self, layer_id: str) -> DataFile:
        """
        Load the JSON data file for a specific layer.

        Args:
            layer_id: ID of the layer to load data for

        Returns:
            The loaded DataFile

        Raises:
            ValueError: Unknown layer or malformed payload
            FileNotFoundError: Data file missing
        """
        if layer_id in self._cache:
            return self._cache[layer_id]

        path = self.resolve_path(layer_id)
        layer_name = self.layer_configs[layer_id].name
        logger.info(f"📊 Loading data for layer: {layer_name}")
        logger.debug(f"🔗 Reading data from: {path}")

        if not path.exists():
            logger.error(f"❌ Data file not found for {layer_name}: {path}")
            raise FileNotFoundError(f"Data file not found: {path}")

        with open(path, "r", encoding="utf-8") as f:
            raw = json.load(f)

        data_file = parse_data_file(raw, source_label=str(path))
        self._cache[layer_id] = data_file

        logger.info(f"✅ Loaded {len(data_file.records)} records for {layer_name}")
        return data_file

    def load_multiple(self, layer_ids: Iterable[str]) -> Dict[str, DataFile]:
        """
        Load several layers; failures are logged and left out of the result.

        Args:
            layer_ids: Layer IDs to load

        Returns:
            Dict of layer ID to DataFile for the layers that loaded
        """
        layer_ids = list(layer_ids)
        logger.info(f"📊 Loading {len(layer_ids)} layers: {layer_ids}")

        loaded: Dict[str, DataFile] = {}
        failed = 0
        for layer_id in layer_ids:
            try:
                loaded[layer_id] = self.load_layer_data(layer_id)
            except (ValueError, OSError) as e:
                logger.error(f"❌ Failed to load layer {layer_id}: {e}")
                failed += 1

        logger.info(f"📊 Data loading summary: {len(loaded)} successful, {failed} failed")
        return loaded

    def get_municipality_data(
        self, layer_id: str, municipio_code: str, code_field: str = DEFAULT_CODE_FIELD
    ) -> Optional[DataRecord]:
        """Get the record for one municipality, or None if unavailable."""
        try:
            data_file = self.load_layer_data(layer_id)
        except (ValueError, OSError) as e:
            logger.warning(f"Failed to get municipality data for {municipio_code} in {layer_id}: {e}")
            return None
        return create_municipality_lookup(data_file, code_field).get(municipio_code)

    def clear_cache(self) -> None:
        self._cache.clear()
        logger.debug("🗑️ Data cache cleared")

    def get_cache_status(self) -> List[Dict[str, Any]]:
        return [
            {"layer_id": layer_id, "record_count": len(data_file.records)}
            for layer_id, data_file in self._cache.items()
        ]
