"""Atlas layer catalog and layer state management."""

from .layer_config import ATLAS_LAYERS, LayerConfig, get_active_layers, get_layer_config, get_layers_by_group
from .layer_manager import AtlasLayerManager, LayerState, LayerStatistics

__all__ = [
    "ATLAS_LAYERS",
    "LayerConfig",
    "get_active_layers",
    "get_layer_config",
    "get_layers_by_group",
    "AtlasLayerManager",
    "LayerState",
    "LayerStatistics",
]
