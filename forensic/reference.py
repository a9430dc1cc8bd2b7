"""
Reference data tables for the Marrakech market.

Pure data, loaded once and shared read-only. The mappings are wrapped in
MappingProxyType so a calculation can never mutate them.
"""

from __future__ import annotations

from dataclasses import dataclass
from types import MappingProxyType
from typing import Final, Mapping, Optional, Tuple

from .models import (
    DocumentType,
    InfrastructureCategory,
    InfrastructurePoint,
    ZoningCode,
    ZoningCodeInfo,
)


# =============================================================================
# Zoning
# =============================================================================


@dataclass(frozen=True)
class ZoningCoefficients:
    """Buildable coefficients used for zoning potential."""
    cos: float  # Ground coverage ratio
    ces: float  # Footprint ratio
    max_units: int


@dataclass(frozen=True)
class ZoningLimits:
    """Dimensional limits used for zoning validation."""
    min_terrain_m2: float
    cos: float
    ces: float
    max_floors: int


ZONING_COEFFICIENTS: Final[Mapping[ZoningCode, ZoningCoefficients]] = MappingProxyType({
    ZoningCode.SD1: ZoningCoefficients(cos=0.07, ces=0.05, max_units=1),
    ZoningCode.GH2: ZoningCoefficients(cos=0.40, ces=0.35, max_units=15),
    ZoningCode.SA1: ZoningCoefficients(cos=0.60, ces=0.50, max_units=25),
    ZoningCode.S1: ZoningCoefficients(cos=0.50, ces=0.40, max_units=20),
    ZoningCode.ZI: ZoningCoefficients(cos=0.70, ces=0.60, max_units=1),
    ZoningCode.ZA: ZoningCoefficients(cos=0.02, ces=0.01, max_units=1),
})

ZONING_LIMITS: Final[Mapping[ZoningCode, ZoningLimits]] = MappingProxyType({
    ZoningCode.SD1: ZoningLimits(min_terrain_m2=1000, cos=0.07, ces=0.05, max_floors=2),
    ZoningCode.GH2: ZoningLimits(min_terrain_m2=250, cos=0.40, ces=0.35, max_floors=5),
    ZoningCode.SA1: ZoningLimits(min_terrain_m2=500, cos=0.60, ces=0.50, max_floors=7),
    ZoningCode.S1: ZoningLimits(min_terrain_m2=1000, cos=0.50, ces=0.40, max_floors=5),
    ZoningCode.ZI: ZoningLimits(min_terrain_m2=2000, cos=0.70, ces=0.60, max_floors=3),
    ZoningCode.ZA: ZoningLimits(min_terrain_m2=10000, cos=0.02, ces=0.01, max_floors=1),
})

# Zoning codes that permit multi-unit (short-term rental friendly) schemes
MULTI_UNIT_ZONING: Final[frozenset] = frozenset({ZoningCode.GH2, ZoningCode.SA1})

ZONING_CODE_INFO: Final[Mapping[ZoningCode, ZoningCodeInfo]] = MappingProxyType({
    ZoningCode.SD1: ZoningCodeInfo(
        code=ZoningCode.SD1, name="Villa sur grand terrain", min_terrain_m2=1000,
        cos=0.07, ces=0.05, max_height_m=8.5, max_floors=2,
        max_units_per_hectare=10, typical_price_per_m2_min=3000, typical_price_per_m2_max=8000,
    ),
    ZoningCode.GH2: ZoningCodeInfo(
        code=ZoningCode.GH2, name="Habitat collectif", min_terrain_m2=250,
        cos=0.40, ces=0.35, max_height_m=17.5, max_floors=5, multi_unit_allowed=True,
        max_units_per_hectare=150, commercial_allowed=True,
        typical_price_per_m2_min=6000, typical_price_per_m2_max=14000,
    ),
    ZoningCode.SA1: ZoningCodeInfo(
        code=ZoningCode.SA1, name="Zone touristique", min_terrain_m2=500,
        cos=0.60, ces=0.50, max_height_m=24.0, max_floors=7, multi_unit_allowed=True,
        max_units_per_hectare=250, commercial_allowed=True, hotel_allowed=True,
        typical_price_per_m2_min=8000, typical_price_per_m2_max=20000,
    ),
    ZoningCode.S1: ZoningCodeInfo(
        code=ZoningCode.S1, name="Zone mixte", min_terrain_m2=1000,
        cos=0.50, ces=0.40, max_height_m=17.5, max_floors=5,
        max_units_per_hectare=200, commercial_allowed=True,
        typical_price_per_m2_min=5000, typical_price_per_m2_max=12000,
    ),
    ZoningCode.ZI: ZoningCodeInfo(
        code=ZoningCode.ZI, name="Zone industrielle", min_terrain_m2=2000,
        cos=0.70, ces=0.60, max_height_m=12.0, max_floors=3, commercial_allowed=True,
        typical_price_per_m2_min=1500, typical_price_per_m2_max=4000,
    ),
    ZoningCode.ZA: ZoningCodeInfo(
        code=ZoningCode.ZA, name="Zone agricole", min_terrain_m2=10000,
        cos=0.02, ces=0.01, max_height_m=4.5, max_floors=1,
        max_units_per_hectare=1, typical_price_per_m2_min=150, typical_price_per_m2_max=600,
        notes="Foreign acquisition requires VNA authorisation",
    ),
})


# =============================================================================
# Neighbourhood price tiers (MAD per m2)
# =============================================================================

DEFAULT_TIER: Final[str] = "default"

NEIGHBORHOOD_TIERS: Final[Mapping[str, float]] = MappingProxyType({
    "hivernage": 25000,
    "gueliz": 22000,
    "mellah": 18000,
    "palmeraie": 30000,
    "medina": 15000,
    "targa": 12000,
    DEFAULT_TIER: 10000,
})

# Dense historic district where traditional guesthouses compete for stays
HISTORIC_DISTRICT: Final[str] = "medina"

MARRAKECH_NEIGHBORHOODS: Final[Tuple[str, ...]] = (
    "hivernage",
    "gueliz",
    "medina",
    "palmeraie",
    "targa",
    "mellah",
    "agdal",
    "semlalia",
    "massira",
    "daoudiate",
    "amerchich",
    "route de fes",
    "route de casablanca",
    "route de ouarzazate",
)


def price_per_m2_for(neighborhood: Optional[str]) -> float:
    """Baseline price per m2 for a neighbourhood, default tier if unknown."""
    key = (neighborhood or DEFAULT_TIER).strip().lower()
    return NEIGHBORHOOD_TIERS.get(key, NEIGHBORHOOD_TIERS[DEFAULT_TIER])


# =============================================================================
# Infrastructure
# =============================================================================

INFRASTRUCTURE_WEIGHTS: Final[Mapping[InfrastructureCategory, float]] = MappingProxyType({
    InfrastructureCategory.TGV_STATION: 0.30,
    InfrastructureCategory.STADIUM: 0.25,
    InfrastructureCategory.HIGHWAY: 0.15,
    InfrastructureCategory.AIRPORT: 0.20,
    InfrastructureCategory.INDUSTRIAL_ZONE: 0.10,
})

DEFAULT_INFRASTRUCTURE_WEIGHT: Final[float] = 0.10
DEFAULT_VALUE_MULTIPLIER: Final[float] = 1.10

DEFAULT_INFRASTRUCTURE: Final[Tuple[InfrastructurePoint, ...]] = (
    InfrastructurePoint(
        id="tgv-marrakech",
        name="Gare LGV Marrakech",
        category=InfrastructureCategory.TGV_STATION,
        latitude=31.6295,
        longitude=-8.0089,
        completion_year=2027,
        is_operational=False,
        impact_radius_km=5.0,
        value_multiplier=1.25,
        description="High-speed rail station connecting to Casablanca and Tangier",
    ),
    InfrastructurePoint(
        id="grand-stade",
        name="Grand Stade de Marrakech",
        category=InfrastructureCategory.STADIUM,
        latitude=31.5847,
        longitude=-8.0756,
        completion_year=2029,
        is_operational=False,
        impact_radius_km=8.0,
        value_multiplier=1.40,
        description="World Cup 2030 stadium with 65,000 capacity",
    ),
    InfrastructurePoint(
        id="autoroute-agadir",
        name="Autoroute Marrakech-Agadir Extension",
        category=InfrastructureCategory.HIGHWAY,
        latitude=31.5500,
        longitude=-8.2000,
        completion_year=2028,
        is_operational=False,
        impact_radius_km=3.0,
        value_multiplier=1.15,
        description="Extended highway connection to southern coast",
    ),
    InfrastructurePoint(
        id="menara-airport",
        name="Aeroport Marrakech Menara",
        category=InfrastructureCategory.AIRPORT,
        latitude=31.6069,
        longitude=-8.0363,
        completion_year=2020,
        is_operational=True,
        impact_radius_km=10.0,
        value_multiplier=1.10,
        description="International airport with expanding terminal",
    ),
    InfrastructurePoint(
        id="sidi-ghanem",
        name="Zone Industrielle Sidi Ghanem",
        category=InfrastructureCategory.INDUSTRIAL_ZONE,
        latitude=31.6650,
        longitude=-8.0200,
        completion_year=2010,
        is_operational=True,
        impact_radius_km=2.0,
        value_multiplier=0.95,
        description="Industrial and artisan zone",
    ),
)


# =============================================================================
# Documents & regulation
# =============================================================================

REQUIRED_DOCUMENTS: Final[Tuple[DocumentType, ...]] = (
    DocumentType.CERTIFICAT_PROPRIETE,
    DocumentType.NOTE_RENSEIGNEMENT,
    DocumentType.QUITUS_FISCAL,
    DocumentType.PLAN_CADASTRAL,
)

# Land deadline rule: unbuilt land must be developed within 5 years of purchase
LAND_DEADLINE_YEARS: Final[int] = 5

# Buildings before the 2023 seismic code need chaining (RPS 2011/2026)
SEISMIC_CODE_YEAR: Final[int] = 2023

EXEMPT_NATIONALITIES: Final[frozenset] = frozenset({"MA"})
UNKNOWN_NATIONALITY: Final[str] = "UNKNOWN"

FOREIGN_AUTH_DELAY_MONTHS: Final[int] = 12
FOREIGN_AUTH_COST_MAD: Final[int] = 200_000
AGRICULTURAL_AUTH_DELAY_MONTHS: Final[int] = 18
AGRICULTURAL_AUTH_COST_MAD: Final[int] = 250_000
