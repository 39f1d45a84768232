"""
Atlas Layer Catalog - Atlas de Riesgo

Defines the map layers, their data sources, color scales and grouping.
Colors follow the Gobierno del Estado de Guanajuato palette.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

# Official palette, one color per government axis plus base colors
GUANAJUATO_COLORS: Dict[str, str] = {
    "SEGURIDAD_PAZ_SOCIAL": "#6580A4",
    "DESARROLLO_SOCIAL": "#F45197",
    "DESARROLLO_ECONOMICO": "#FF8200",
    "STAFF_GOBERNADOR": "#0066FF",
    "GOBIERNO_EFECTIVO": "#00A99D",
    "EDUCACION_CALIDAD": "#B9C8E7",
    "DESARROLLO_SOSTENIBLE": "#32AA00",
    "AZUL_MARINO": "#000F9F",
    "AZUL_MEDIO": "#0066FF",
    "DOCUMENTOS": "#c8c8aa",
}

# Risk index quintile colors, low to high when read bottom-up
RISK_INDEX_COLORS: Dict[str, str] = {
    "MUY_ALTO": "#003366",
    "ALTO": "#004d99",
    "MEDIO": "#0066cc",
    "BAJO": "#3399ff",
    "MUY_BAJO": "#99ccff",
}

RISK_INDEX_RANGES: Dict[str, Dict[str, Any]] = {
    "MUY_ALTO": {"min": 80, "max": 100, "label": "Muy Alto", "color": RISK_INDEX_COLORS["MUY_ALTO"]},
    "ALTO": {"min": 60, "max": 79, "label": "Alto", "color": RISK_INDEX_COLORS["ALTO"]},
    "MEDIO": {"min": 40, "max": 59, "label": "Medio", "color": RISK_INDEX_COLORS["MEDIO"]},
    "BAJO": {"min": 20, "max": 39, "label": "Bajo", "color": RISK_INDEX_COLORS["BAJO"]},
    "MUY_BAJO": {"min": 0, "max": 19, "label": "Muy Bajo", "color": RISK_INDEX_COLORS["MUY_BAJO"]},
}

# Default weights of the composite risk index (sum to 1.0)
DEFAULT_RISK_WEIGHTS: Dict[str, float] = {
    "V1_incidentes_buscadoras": 0.30,
    "V2_desapariciones": 0.20,
    "V3_homicidio": 0.15,
    "V4_huachicol": 0.15,
    "V5_rezago": 0.10,
    "V6_capacidad_inversa": 0.10,
}

VISUALIZATION_TYPES = ("choropleth", "heatmap", "markers", "hybrid")


@dataclass(frozen=True)
class LayerConfig:
    """Static description of one atlas layer."""

    id: str
    name: str
    description: str
    data_source: str
    visualization: str
    color: str
    is_active: bool
    group: str
    order: int
    metadata: Dict[str, str] = field(default_factory=dict)


ATLAS_LAYERS: Dict[str, LayerConfig] = {
    "indice_riesgo": LayerConfig(
        id="indice_riesgo",
        name="Índice de Riesgo",
        description="Índice compuesto de riesgo para mujeres buscadoras por municipio (0-100)",
        data_source="/data/indice_riesgo.json",
        visualization="choropleth",
        color=GUANAJUATO_COLORS["SEGURIDAD_PAZ_SOCIAL"],
        is_active=True,
        group="principal",
        order=1,
        metadata={
            "source": "Gobierno del Estado de Guanajuato",
            "last_updated": "2024-01",
            "unit": "índice 0-100",
            "methodology": "Promedio ponderado de 6 variables de riesgo",
        },
    ),
    "desapariciones": LayerConfig(
        id="desapariciones",
        name="Desapariciones",
        description="Casos de desaparición por municipio con visualización de densidad",
        data_source="/data/desapariciones_mun.json",
        visualization="hybrid",
        color=GUANAJUATO_COLORS["DESARROLLO_SOCIAL"],
        is_active=False,
        group="factores_riesgo",
        order=2,
        metadata={
            "source": "Registro Nacional de Personas Desaparecidas (RNPDNO)",
            "last_updated": "2024-01",
            "unit": "casos",
        },
    ),
    "homicidios": LayerConfig(
        id="homicidios",
        name="Homicidios",
        description="Homicidios dolosos por municipio con mapa de calor",
        data_source="/data/homicidio_mun.json",
        visualization="hybrid",
        color=GUANAJUATO_COLORS["DESARROLLO_ECONOMICO"],
        is_active=False,
        group="factores_riesgo",
        order=3,
        metadata={
            "source": "Secretariado Ejecutivo del SNSP",
            "last_updated": "2024-01",
            "unit": "casos",
        },
    ),
    "tomas_clandestinas": LayerConfig(
        id="tomas_clandestinas",
        name="Tomas Clandestinas",
        description="Densidad de tomas clandestinas de combustible por municipio",
        data_source="/data/tomas_clandestinas.json",
        visualization="heatmap",
        color=GUANAJUATO_COLORS["DESARROLLO_ECONOMICO"],
        is_active=False,
        group="factores_riesgo",
        order=4,
        metadata={
            "source": "PEMEX / Secretaría de Seguridad Pública",
            "last_updated": "2024-01",
            "unit": "por km²",
        },
    ),
    "rezago_social": LayerConfig(
        id="rezago_social",
        name="Rezago Social",
        description="Índice de rezago social municipal por quintiles",
        data_source="/data/rezago_municipal.json",
        visualization="choropleth",
        color=GUANAJUATO_COLORS["DESARROLLO_SOSTENIBLE"],
        is_active=False,
        group="socioeconomico",
        order=5,
        metadata={"source": "CONEVAL", "last_updated": "2020", "unit": "quintiles"},
    ),
    "capacidad_instalada": LayerConfig(
        id="capacidad_instalada",
        name="Capacidad Institucional",
        description="Infraestructura institucional disponible para búsqueda",
        data_source="/data/capacidad_instalada.json",
        visualization="markers",
        color=GUANAJUATO_COLORS["GOBIERNO_EFECTIVO"],
        is_active=False,
        group="institucional",
        order=6,
        metadata={
            "source": "Secretaría de Desarrollo Social",
            "last_updated": "2024-01",
            "unit": "instituciones",
        },
    ),
}

LAYER_GROUPS: Dict[str, Dict[str, str]] = {
    "principal": {
        "name": "Índice Principal",
        "description": "Índice compuesto de riesgo",
        "color": GUANAJUATO_COLORS["SEGURIDAD_PAZ_SOCIAL"],
    },
    "factores_riesgo": {
        "name": "Factores de Riesgo",
        "description": "Variables que componen el índice",
        "color": GUANAJUATO_COLORS["DESARROLLO_SOCIAL"],
    },
    "socioeconomico": {
        "name": "Contexto Socioeconómico",
        "description": "Indicadores socioeconómicos",
        "color": GUANAJUATO_COLORS["DESARROLLO_SOSTENIBLE"],
    },
    "institucional": {
        "name": "Capacidad Institucional",
        "description": "Recursos disponibles para búsqueda",
        "color": GUANAJUATO_COLORS["GOBIERNO_EFECTIVO"],
    },
}


def get_layers_by_group(group_id: str) -> List[LayerConfig]:
    """Layers of one sidebar group, in display order."""
    return sorted(
        (layer for layer in ATLAS_LAYERS.values() if layer.group == group_id),
        key=lambda layer: layer.order,
    )


def get_layer_config(layer_id: str) -> Optional[LayerConfig]:
    return ATLAS_LAYERS.get(layer_id)


def get_active_layers() -> List[LayerConfig]:
    """Layers visible by default, in display order."""
    return sorted(
        (layer for layer in ATLAS_LAYERS.values() if layer.is_active),
        key=lambda layer: layer.order,
    )
