"""
AtlasGTO - Atlas de Riesgo para Mujeres Buscadoras

Data-integration and classification core for the Guanajuato municipal
risk atlas: code crosswalk, GeoJSON integrity validation, data joining,
choropleth classification and layer state management.
"""

__version__ = "0.1.0"
