"""
Choropleth classification for joined municipal data.

Builds a code → color mapping from an enriched feature collection using
quantile (default) or equal-interval breaks, plus summary statistics over
the same values.

Tie-break rule: a value exactly equal to a threshold falls into the higher bin.
"""

import math
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, FrozenSet, Iterable, List, Mapping, Sequence, Tuple, Union

import numpy as np
from loguru import logger

from .data_joiner import JoinResult, get_feature_code

QUANTILE = "quantile"
EQUAL_INTERVAL = "equal-interval"
METHODS = (QUANTILE, EQUAL_INTERVAL)

DEFAULT_NO_DATA_COLOR = "#cccccc"

ValueExtractor = Callable[[Dict[str, Any]], Any]
EnrichedInput = Union[JoinResult, Mapping[str, Any], Iterable[Mapping[str, Any]]]


def _iter_features(enriched: EnrichedInput) -> List[Mapping[str, Any]]:
    if isinstance(enriched, JoinResult):
        return enriched.features
    if isinstance(enriched, Mapping):
        return list(enriched.get("features") or [])
    return list(enriched)


def _as_number(value: Any) -> Union[float, None]:
    if isinstance(value, bool) or value is None:
        return None
    try:
        number = float(value)
    except (TypeError, ValueError):
        return None
    return number if math.isfinite(number) else None


def extract_values(
    enriched: EnrichedInput, value_extractor: ValueExtractor, geo_code_field: str = "cvegeo"
) -> Tuple[Dict[str, float], FrozenSet[str]]:
    """
    Extract numeric values from features that have data.

    Returns:
        (values by code, codes without usable data)
    """
    values: Dict[str, float] = {}
    no_data: set = set()

    for feature in _iter_features(enriched):
        code = get_feature_code(feature, geo_code_field)
        if code is None:
            continue
        properties = feature["properties"]
        value = None
        if properties.get("has_data") and properties.get("data") is not None:
            value = _as_number(value_extractor(properties["data"]))
            if value is None:
                logger.debug(f"   Non-numeric value for {code}, treated as no data")
        if value is None:
            no_data.add(code)
            values.pop(code, None)
        else:
            values[code] = value
            no_data.discard(code)

    return values, frozenset(no_data)


def calculate_breaks(values: Sequence[float], method: str = QUANTILE, n_colors: int = 5) -> Tuple[float, ...]:
    """
    Calculate classification breaks.

    Quantile: [min, r(n/5), r(2n/5), r(3n/5), r(4n/5), max] where r(k) is the
    k-th smallest value (1-based, floor) and r(0) falls back to the minimum.
    Ranks are deliberately 1-based: [10, 20, 30, 40, 50] yields
    (10, 10, 20, 30, 40, 50), so 25 lands in the third bin. Indexing the
    sorted values 0-based would instead give (10, 20, 30, 40, 50, 50).
    Equal interval: min + i * (max - min) / (n_colors - 1) for i in 0..n_colors-1.

    Args:
        values: Numeric values (any order, at least one)
        method: 'quantile' or 'equal-interval'
        n_colors: Number of colors in the scale

    Returns:
        Non-decreasing tuple of thresholds
    """
    if method not in METHODS:
        raise ValueError(f"Unknown classification method: {method}. Use one of {METHODS}")
    if not values:
        raise ValueError("Cannot calculate breaks without values")

    ordered = sorted(values)
    n = len(ordered)

    if method == QUANTILE:

        def rank(k: int) -> float:
            return ordered[k - 1] if 1 <= k <= n else ordered[0]

        breaks = [ordered[0]] + [rank((i * n) // 5) for i in range(1, 5)] + [ordered[-1]]
        return tuple(breaks)

    minimum, maximum = ordered[0], ordered[-1]
    if n_colors < 2:
        return (minimum,)
    interval = (maximum - minimum) / (n_colors - 1)
    return tuple(minimum + interval * i for i in range(n_colors))


def classify_value(value: float, breaks: Sequence[float], colors: Sequence[str]) -> str:
    """
    Color for a value: the first threshold (scanning high to low) the value
    meets or exceeds, clamped to the color range.
    """
    for i in range(len(breaks) - 1, -1, -1):
        if value >= breaks[i]:
            return colors[min(i, len(colors) - 1)]
    return colors[0]


@dataclass(frozen=True)
class ChoroplethMapping:
    """Callable mapping a municipality code to a fill color."""

    breaks: Tuple[float, ...]
    colors: Tuple[str, ...]
    values: Mapping[str, float] = field(default_factory=dict)
    missing_values: Mapping[str, float] = field(default_factory=dict)
    no_data_color: str = DEFAULT_NO_DATA_COLOR
    method: str = QUANTILE

    def __call__(self, municipality_code: str) -> str:
        value = self.values.get(municipality_code)
        if value is None or not self.breaks:
            return self.no_data_color
        return classify_value(value, self.breaks, self.colors)

    def legend(self) -> List[Dict[str, Any]]:
        """Color bins as (color, lower bound) pairs for a map legend."""
        return [
            {"color": color, "from": self.breaks[i] if i < len(self.breaks) else None}
            for i, color in enumerate(self.colors)
        ]


def create_choropleth_mapping(
    enriched: EnrichedInput,
    value_extractor: ValueExtractor,
    colors: Sequence[str],
    method: str = QUANTILE,
    no_data_color: str = DEFAULT_NO_DATA_COLOR,
    missing_data_value: float = 0,
    geo_code_field: str = "cvegeo",
) -> ChoroplethMapping:
    """
    Create a choropleth color mapping based on data values.

    Args:
        enriched: JoinResult, enriched FeatureCollection or list of enriched features
        value_extractor: Function extracting a numeric value from a data record
        colors: Colors from low to high
        method: 'quantile' or 'equal-interval'
        no_data_color: Color for municipalities without data
        missing_data_value: Value recorded for municipalities without data
            (they always map to no_data_color regardless)
        geo_code_field: Property holding the municipality code

    Returns:
        ChoroplethMapping; call it with a municipality code to get a color
    """
    if not colors:
        raise ValueError("Color scale must contain at least one color")
    if method not in METHODS:
        raise ValueError(f"Unknown classification method: {method}. Use one of {METHODS}")

    values, no_data_codes = extract_values(enriched, value_extractor, geo_code_field)
    missing_values = {code: float(missing_data_value) for code in no_data_codes}

    if not values:
        logger.warning("⚠️ No data values found for choropleth mapping")
        return ChoroplethMapping(
            breaks=(),
            colors=tuple(colors),
            missing_values=missing_values,
            no_data_color=no_data_color,
            method=method,
        )

    breaks = calculate_breaks(list(values.values()), method, len(colors))
    logger.info("🎨 Choropleth mapping created:")
    logger.info(f"   Method: {method}, Colors: {len(colors)}")
    logger.info(f"   Value range: {min(values.values()):.1f} - {max(values.values()):.1f}")
    logger.info(f"   Breaks: {', '.join(f'{b:.1f}' for b in breaks)}")
    logger.debug(f"   {len(missing_values)} municipalities without data")

    return ChoroplethMapping(
        breaks=breaks,
        colors=tuple(colors),
        values=dict(values),
        missing_values=missing_values,
        no_data_color=no_data_color,
        method=method,
    )


def extract_data_summary(
    enriched: EnrichedInput, value_extractor: ValueExtractor, geo_code_field: str = "cvegeo"
) -> Dict[str, float]:
    """
    Summary statistics over the values of features with data.

    Returns:
        Dict with count, min, max, mean, median and std (population)
    """
    values, _ = extract_values(enriched, value_extractor, geo_code_field)
    if not values:
        return {"count": 0, "min": 0.0, "max": 0.0, "mean": 0.0, "median": 0.0, "std": 0.0}

    array = np.fromiter(values.values(), dtype=float)
    return {
        "count": int(array.size),
        "min": float(array.min()),
        "max": float(array.max()),
        "mean": float(array.mean()),
        "median": float(np.median(array)),
        "std": float(array.std()),
    }
