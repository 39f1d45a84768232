"""
Municipality Code Mapping - Guanajuato

Maps between the two municipality code formats used by the atlas:
- GeoJSON: separate state_code + mun_code (1-46)
- Data JSON: combined 5-digit codes ("11001"-"11046")

The catalog below is the single source of truth for official names and is
shared by the crosswalk lookups and the GeoJSON validator.
"""

from dataclasses import dataclass
from typing import Any, Dict, Iterable, List, Optional, Sequence

from loguru import logger

GUANAJUATO_STATE_CODE = 11
CATALOG_VERSION = "INEGI-2020"


@dataclass(frozen=True)
class MunicipalityInfo:
    """Municipality information from official sources."""

    compact_code: int  # mun_code in GeoJSON (1-46)
    data_code: str  # municipio code in JSON ("11001"-"11046")
    official_name: str
    common_name: Optional[str] = None


def _unit(compact_code: int, official_name: str, common_name: Optional[str] = None) -> MunicipalityInfo:
    return MunicipalityInfo(
        compact_code=compact_code,
        data_code=format_data_code(GUANAJUATO_STATE_CODE, compact_code),
        official_name=official_name,
        common_name=common_name,
    )


def format_data_code(state_code: Any, compact_code: Any) -> str:
    """
    Build a five-digit data code from a state code and a compact code.

    Args:
        state_code: State code (11 for Guanajuato)
        compact_code: Municipality code within the state

    Returns:
        State code followed by the compact code zero-padded to 3 digits
    """
    return f"{state_code}{str(compact_code).zfill(3)}"


# Source: INEGI - Catálogo de Entidades, Municipios y Localidades
GUANAJUATO_MUNICIPALITIES: List[MunicipalityInfo] = [
    _unit(1, "Abasolo"),
    _unit(2, "Acámbaro"),
    _unit(3, "San Miguel de Allende"),
    _unit(4, "Apaseo el Alto"),
    _unit(5, "Apaseo el Grande"),
    _unit(6, "Atarjea"),
    _unit(7, "Celaya"),
    _unit(8, "Manuel Doblado"),
    _unit(9, "Comonfort"),
    _unit(10, "Coroneo"),
    _unit(11, "Cortazar"),
    _unit(12, "Cuerámaro"),
    _unit(13, "Doctor Mora"),
    _unit(14, "Dolores Hidalgo Cuna de la Independencia Nacional", "Dolores Hidalgo"),
    _unit(15, "Guanajuato"),
    _unit(16, "Huanímaro"),
    _unit(17, "Irapuato"),
    _unit(18, "Jaral del Progreso"),
    _unit(19, "Jerécuaro"),
    _unit(20, "León"),
    _unit(21, "Moroleón"),
    _unit(22, "Ocampo"),
    _unit(23, "Pénjamo"),
    _unit(24, "Pueblo Nuevo"),
    _unit(25, "Purísima del Rincón"),
    _unit(26, "Romita"),
    _unit(27, "Salamanca"),
    _unit(28, "Salvatierra"),
    _unit(29, "San Diego de la Unión"),
    _unit(30, "San Felipe"),
    _unit(31, "San Francisco del Rincón"),
    _unit(32, "San José Iturbide"),
    _unit(33, "San Luis de la Paz"),
    _unit(34, "Santa Catarina"),
    _unit(35, "Santa Cruz de Juventino Rosas"),
    _unit(36, "Santiago Maravatío"),
    _unit(37, "Silao de la Victoria", "Silao"),
    _unit(38, "Tarandacuao"),
    _unit(39, "Tarimoro"),
    _unit(40, "Tierra Blanca"),
    _unit(41, "Uriangato"),
    _unit(42, "Valle de Santiago"),
    _unit(43, "Victoria"),
    _unit(44, "Villagrán"),
    _unit(45, "Xichú"),
    _unit(46, "Yuriria"),
]


def as_compact_code(value: Any) -> Optional[int]:
    """Coerce ints and digit strings to a compact code; anything else is None."""
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, float) and value.is_integer():
        return int(value)
    if isinstance(value, str) and value.strip().isdigit():
        return int(value.strip())
    return None


@dataclass
class CodeAlignment:
    """Result of comparing GeoJSON compact codes against data codes."""

    matched: List[Dict[str, Any]]
    missing_in_data: List[Dict[str, Any]]
    missing_in_geo: List[Dict[str, Any]]
    alignment_ratio: float
    summary: Dict[str, int]


class MunicipalityCrosswalk:
    """
    Bidirectional lookups between compact codes and data codes.

    Every lookup returns None for codes outside the catalog instead of raising.
    """

    def __init__(self, units: Sequence[MunicipalityInfo] = GUANAJUATO_MUNICIPALITIES):
        self.units = tuple(units)
        self._by_compact: Dict[int, MunicipalityInfo] = {}
        self._by_data: Dict[str, MunicipalityInfo] = {}

        for unit in self.units:
            if unit.compact_code in self._by_compact:
                raise ValueError(f"Duplicate compact code in catalog: {unit.compact_code}")
            if unit.data_code in self._by_data:
                raise ValueError(f"Duplicate data code in catalog: {unit.data_code}")
            self._by_compact[unit.compact_code] = unit
            self._by_data[unit.data_code] = unit

    def __len__(self) -> int:
        return len(self.units)

    def by_compact_code(self, compact_code: Any) -> Optional[MunicipalityInfo]:
        code = as_compact_code(compact_code)
        return self._by_compact.get(code) if code is not None else None

    def by_data_code(self, data_code: Any) -> Optional[MunicipalityInfo]:
        if not isinstance(data_code, str):
            return None
        return self._by_data.get(data_code.strip())

    def data_code_for(self, compact_code: Any) -> Optional[str]:
        unit = self.by_compact_code(compact_code)
        return unit.data_code if unit else None

    def compact_code_for(self, data_code: Any) -> Optional[int]:
        unit = self.by_data_code(data_code)
        return unit.compact_code if unit else None

    def geo_to_data_code_map(self) -> Dict[int, str]:
        """Map of GeoJSON mun_code to data municipio code."""
        return {unit.compact_code: unit.data_code for unit in self.units}

    def data_to_geo_code_map(self) -> Dict[str, int]:
        """Map of data municipio code to GeoJSON mun_code."""
        return {unit.data_code: unit.compact_code for unit in self.units}

    def validate_code_alignment(
        self, geo_codes: Iterable[Any], data_codes: Iterable[str]
    ) -> CodeAlignment:
        """
        Validate and report alignment between GeoJSON and data codes.

        Args:
            geo_codes: mun_codes from GeoJSON
            data_codes: municipio codes from JSON data

        Returns:
            CodeAlignment with matched / missing partitions and the ratio
        """
        # Codes are normalized before de-duplicating so 5 and "5" count once;
        # unparseable geo codes keep their raw value
        unique_geo = list(
            dict.fromkeys(
                as_compact_code(code) if as_compact_code(code) is not None else code for code in geo_codes
            )
        )
        unique_data = list(
            dict.fromkeys(code.strip() if isinstance(code, str) else code for code in data_codes)
        )
        geo_set = {as_compact_code(code) for code in unique_geo}
        data_set = set(unique_data)

        matched: List[Dict[str, Any]] = []
        missing_in_data: List[Dict[str, Any]] = []
        missing_in_geo: List[Dict[str, Any]] = []

        for geo_code in unique_geo:
            unit = self.by_compact_code(geo_code)
            if unit and unit.data_code in data_set:
                matched.append(
                    {"geo_code": unit.compact_code, "data_code": unit.data_code, "name": unit.official_name}
                )
            else:
                missing_in_data.append(
                    {
                        "geo_code": geo_code,
                        "expected_data_code": unit.data_code if unit else "Unknown",
                        "name": unit.official_name if unit else "Unknown",
                    }
                )

        for data_code in unique_data:
            unit = self.by_data_code(data_code)
            if not unit or unit.compact_code not in geo_set:
                missing_in_geo.append(
                    {
                        "data_code": data_code,
                        "expected_geo_code": unit.compact_code if unit else None,
                        "name": unit.official_name if unit else None,
                    }
                )

        total = max(len(unique_geo), len(unique_data))
        ratio = len(matched) / total if total else 1.0

        if missing_in_data or missing_in_geo:
            logger.debug(
                f"Code alignment: {len(matched)}/{total} matched, "
                f"{len(missing_in_data)} missing in data, {len(missing_in_geo)} missing in GeoJSON"
            )

        return CodeAlignment(
            matched=matched,
            missing_in_data=missing_in_data,
            missing_in_geo=missing_in_geo,
            alignment_ratio=ratio,
            summary={
                "total": total,
                "matched": len(matched),
                "geojson_count": len(unique_geo),
                "data_count": len(unique_data),
            },
        )


DEFAULT_CROSSWALK = MunicipalityCrosswalk(GUANAJUATO_MUNICIPALITIES)


def get_municipality_by_geo_code(compact_code: Any) -> Optional[MunicipalityInfo]:
    """Get municipality info by GeoJSON mun_code."""
    return DEFAULT_CROSSWALK.by_compact_code(compact_code)


def get_municipality_by_data_code(data_code: Any) -> Optional[MunicipalityInfo]:
    """Get municipality info by data municipio code."""
    return DEFAULT_CROSSWALK.by_data_code(data_code)


def geo_code_to_data_code(compact_code: Any) -> Optional[str]:
    """Convert GeoJSON mun_code to data municipio code."""
    return DEFAULT_CROSSWALK.data_code_for(compact_code)


def data_code_to_geo_code(data_code: Any) -> Optional[int]:
    """Convert data municipio code to GeoJSON mun_code."""
    return DEFAULT_CROSSWALK.compact_code_for(data_code)


def validate_code_alignment(geo_codes: Iterable[Any], data_codes: Iterable[str]) -> CodeAlignment:
    """Validate alignment against the Guanajuato catalog."""
    return DEFAULT_CROSSWALK.validate_code_alignment(geo_codes, data_codes)
