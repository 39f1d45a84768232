"""
Layer Management System - Atlas de Riesgo

Keeps the visibility / loading / data state of every atlas layer and
broadcasts a fresh snapshot to subscribers after each change.

Visualization kinds:
- choropleth: risk index, social lag
- heatmap: disappearances, homicides, clandestine taps
- markers: institutional capacity

Every mutation and its broadcast run under one re-entrant lock. Layer states
are immutable and replaced as a whole, so a listener never sees a
half-updated record.
"""

import itertools
import threading
from dataclasses import dataclass, field, replace
from datetime import datetime
from typing import Callable, Dict, List, Mapping, Optional

from loguru import logger

from .layer_config import ATLAS_LAYERS, LayerConfig

CHOROPLETH = "choropleth"
HEATMAP = "heatmap"
MARKERS = "markers"
NONE = "none"
VISUALIZATION_KINDS = (CHOROPLETH, HEATMAP, MARKERS, NONE)

PRIMARY_LAYER_ID = "indice_riesgo"

_KIND_BY_LAYER_ID: Dict[str, str] = {
    "indice_riesgo": CHOROPLETH,
    "rezago_social": CHOROPLETH,
    "desapariciones": HEATMAP,
    "homicidios": HEATMAP,
    "tomas_clandestinas": HEATMAP,
    "capacidad_instalada": MARKERS,
}


def determine_visualization_kind(layer_id: str) -> str:
    """Visualization kind of a layer id; unrecognized ids render as choropleth."""
    return _KIND_BY_LAYER_ID.get(layer_id, CHOROPLETH)


@dataclass(frozen=True)
class LayerState:
    """UI state of one layer."""

    id: str
    display_name: str
    description: str
    is_visible: bool
    is_loading: bool
    has_data: bool
    visualization_kind: str
    record_count: Optional[int] = None
    last_updated: Optional[datetime] = None
    config: Optional[LayerConfig] = None


@dataclass
class LayerStatistics:
    total: int
    visible: int
    with_data: int
    loading: int
    by_type: Dict[str, int] = field(default_factory=dict)


Listener = Callable[[List[LayerState]], None]


class AtlasLayerManager:
    """
    Store of layer states for the atlas.

    Usage:
        manager = AtlasLayerManager()
        unsubscribe = manager.subscribe(render)
        manager.set_data("indice_riesgo", True, 46)
    """

    def __init__(
        self,
        layer_configs: Mapping[str, LayerConfig] = ATLAS_LAYERS,
        primary_layer_id: str = PRIMARY_LAYER_ID,
    ):
        self.primary_layer_id = primary_layer_id
        self._lock = threading.RLock()
        self._layers: Dict[str, LayerState] = {}
        self._listeners: Dict[int, Listener] = {}
        self._tokens = itertools.count()

        for layer_id, config in layer_configs.items():
            self._layers[layer_id] = LayerState(
                id=layer_id,
                display_name=config.name,
                description=config.description,
                is_visible=bool(config.is_active),
                is_loading=False,
                has_data=False,
                visualization_kind=determine_visualization_kind(layer_id),
                config=config,
            )

        logger.info(f"🗂️ Initialized {len(self._layers)} layers")

    # Reads

    def get_all(self) -> List[LayerState]:
        with self._lock:
            return list(self._layers.values())

    def get_visible(self) -> List[LayerState]:
        return [layer for layer in self.get_all() if layer.is_visible]

    def get_by_id(self, layer_id: str) -> Optional[LayerState]:
        with self._lock:
            return self._layers.get(layer_id)

    def get_by_visualization_kind(self, kind: str) -> List[LayerState]:
        return [layer for layer in self.get_all() if layer.visualization_kind == kind]

    def get_statistics(self) -> LayerStatistics:
        layers = self.get_all()
        by_type = {kind: 0 for kind in VISUALIZATION_KINDS}
        for layer in layers:
            by_type[layer.visualization_kind] = by_type.get(layer.visualization_kind, 0) + 1

        return LayerStatistics(
            total=len(layers),
            visible=sum(1 for layer in layers if layer.is_visible),
            with_data=sum(1 for layer in layers if layer.has_data),
            loading=sum(1 for layer in layers if layer.is_loading),
            by_type=by_type,
        )

    # Mutations

    def toggle_visibility(self, layer_id: str) -> bool:
        """
        Flip one layer's visibility.

        Returns:
            The new visibility, or False for an unknown layer
        """
        with self._lock:
            layer = self._layers.get(layer_id)
            if layer is None:
                logger.warning(f"⚠️ Layer not found: {layer_id}")
                return False

            layer = self._replace(layer, is_visible=not layer.is_visible)
            logger.debug(f"👁️ {'Showing' if layer.is_visible else 'Hiding'} layer: {layer.display_name}")
            self._notify_listeners()
            return layer.is_visible

    def set_visibility(self, layer_id: str, visible: bool) -> bool:
        """
        Set one layer's visibility; listeners are only notified on a change.

        Returns:
            True if the layer exists, False otherwise
        """
        with self._lock:
            layer = self._layers.get(layer_id)
            if layer is None:
                logger.warning(f"⚠️ Layer not found: {layer_id}")
                return False

            if layer.is_visible != visible:
                self._replace(layer, is_visible=visible)
                logger.debug(f"👁️ {'Showing' if visible else 'Hiding'} layer: {layer.display_name}")
                self._notify_listeners()
            return True

    def show_only(self, layer_id: str) -> None:
        with self._lock:
            if layer_id not in self._layers:
                logger.warning(f"⚠️ Layer not found: {layer_id}, all layers will be hidden")
            for current_id, layer in list(self._layers.items()):
                self._replace(layer, is_visible=current_id == layer_id)

            target = self._layers.get(layer_id)
            logger.debug(f"🎯 Showing only layer: {target.display_name if target else layer_id}")
            self._notify_listeners()

    def hide_all(self) -> None:
        with self._lock:
            for layer in list(self._layers.values()):
                self._replace(layer, is_visible=False)
            logger.debug("🙈 All layers hidden")
            self._notify_listeners()

    def set_loading(self, layer_id: str, loading: bool) -> bool:
        with self._lock:
            layer = self._layers.get(layer_id)
            if layer is None:
                logger.warning(f"⚠️ Layer not found for set_loading: {layer_id}")
                return False

            self._replace(layer, is_loading=loading, last_updated=datetime.now())
            self._notify_listeners()
            return True

    def set_data(self, layer_id: str, has_data: bool, record_count: Optional[int] = None) -> bool:
        """
        Record whether a layer has data and how many records it holds.

        Args:
            layer_id: Layer to update
            has_data: Whether data was loaded
            record_count: Number of records, if known

        Returns:
            True if the layer exists, False otherwise
        """
        with self._lock:
            layer = self._layers.get(layer_id)
            if layer is None:
                logger.warning(f"⚠️ Layer not found for set_data: {layer_id}")
                return False

            logger.info(f"📊 Updating layer data for {layer_id}: has_data={has_data}, records={record_count}")
            self._replace(layer, has_data=has_data, record_count=record_count, last_updated=datetime.now())
            self._notify_listeners()
            return True

    def reset(self) -> None:
        """Restore defaults: only the primary layer visible, no loading or data flags."""
        with self._lock:
            for layer_id, layer in list(self._layers.items()):
                self._replace(
                    layer,
                    is_visible=layer_id == self.primary_layer_id,
                    is_loading=False,
                    has_data=False,
                    record_count=None,
                    last_updated=None,
                )
            logger.info("🔄 Layers reset to default state")
            self._notify_listeners()

    # Subscriptions

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        """
        Register a listener called with the full snapshot after every change.

        Returns:
            A function that removes the listener; calling it twice is harmless
        """
        with self._lock:
            token = next(self._tokens)
            self._listeners[token] = listener

        def unsubscribe() -> None:
            with self._lock:
                self._listeners.pop(token, None)

        return unsubscribe

    def _replace(self, layer: LayerState, **changes) -> LayerState:
        updated = replace(layer, **changes)
        self._layers[layer.id] = updated
        return updated

    def _notify_listeners(self) -> None:
        snapshot = list(self._layers.values())
        for listener in list(self._listeners.values()):
            try:
                listener(list(snapshot))
            except Exception:
                logger.exception("❌ Layer listener failed")
