"""
Data models for the Forensic Valuation Engine.

Defines the closed taxonomies (asset type, zoning code, document type,
infrastructure category, risk grade) and the records that flow through the
valuation and compliance pipeline.

All money amounts are MAD (Moroccan Dirham).
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime
from enum import Enum
from typing import Any, List, Optional


class _LookupEnum(Enum):
    """Enum with a forgiving, case-insensitive string lookup."""

    @classmethod
    def from_string(cls, value: Any) -> Optional["_LookupEnum"]:
        """Convert string to member, case-insensitive. None if unrecognised."""
        if isinstance(value, cls):
            return value
        if value is None:
            return None
        normalised = str(value).strip().lower()
        for member in cls:
            if member.value.lower() == normalised:
                return member
        return None


class AssetType(_LookupEnum):
    """Asset category of a property."""
    APARTMENT = "Apartment"
    VILLA = "Villa"
    LAND = "Land"


class ZoningCode(_LookupEnum):
    """
    Marrakech urban plan zoning codes.

    ZA is agricultural zoning and is the only rural classification.
    """
    SD1 = "SD1"
    GH2 = "GH2"
    SA1 = "SA1"
    S1 = "S1"
    ZI = "ZI"
    ZA = "ZA"

    @property
    def is_rural(self) -> bool:
        return self is ZoningCode.ZA


class DocumentType(_LookupEnum):
    """The seven canonical verification documents."""
    CERTIFICAT_PROPRIETE = "certificat_propriete"
    NOTE_RENSEIGNEMENT = "note_renseignement"
    QUITUS_FISCAL = "quitus_fiscal"
    PLAN_CADASTRAL = "plan_cadastral"
    CERTIFICAT_CONFORMITE = "certificat_conformite"
    VNA = "vna"
    TNB_TAX = "tnb_tax"


class InfrastructureCategory(_LookupEnum):
    """Infrastructure point categories."""
    TGV_STATION = "tgv_station"
    STADIUM = "stadium"
    HIGHWAY = "highway"
    AIRPORT = "airport"
    INDUSTRIAL_ZONE = "industrial_zone"


class RiskGrade(_LookupEnum):
    """Aggregate risk letter. A is best, F is worst."""
    A = "A"
    B = "B"
    C = "C"
    D = "D"
    E = "E"
    F = "F"


class ComplianceStatus(_LookupEnum):
    """Overall regulatory verdict."""
    COMPLIANT = "compliant"
    NON_COMPLIANT = "non_compliant"
    PENDING_REVIEW = "pending_review"
    EXPIRED = "expired"


class FlagSeverity(_LookupEnum):
    """Severity of a compliance flag."""
    CRITICAL = "critical"
    WARNING = "warning"
    INFO = "info"


class MarketVerdict(_LookupEnum):
    """Three-tier verdict for forensic vs market price."""
    OVERPRICED = "overpriced"
    UNDERPRICED = "underpriced"
    FAIR = "fair"


class GapVerdict(_LookupEnum):
    """Five-tier verdict for scraped listing gap analysis."""
    SEVERELY_OVERPRICED = "severely_overpriced"
    OVERPRICED = "overpriced"
    FAIR = "fair"
    UNDERPRICED = "underpriced"
    SEVERELY_UNDERPRICED = "severely_underpriced"


class ListingPortal(_LookupEnum):
    """Listing portals scraped for comparables."""
    AGENZ = "agenz"
    MUBAWAB = "mubawab"
    SAROUTY = "sarouty"


def _parse_date(value: Any) -> Optional[date]:
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    return datetime.fromisoformat(str(value)).date()


def _parse_datetime(value: Any) -> Optional[datetime]:
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        return value
    if isinstance(value, date):
        return datetime(value.year, value.month, value.day)
    return datetime.fromisoformat(str(value).replace("Z", "+00:00"))


_TRUE_STRINGS = {"true", "1", "yes", "y", "oui", "on"}
_FALSE_STRINGS = {"false", "0", "no", "n", "non", "off", ""}


def _parse_bool(value: Any) -> bool:
    """Boolean from a JSON value or a form/sheet string ("TRUE", "false", "1")."""
    if isinstance(value, str):
        normalised = value.strip().lower()
        if normalised in _TRUE_STRINGS:
            return True
        if normalised in _FALSE_STRINGS:
            return False
        raise ValueError(f"Invalid boolean: {value!r}")
    return bool(value)


def _optional_float(value: Any) -> Optional[float]:
    if value is None or value == "":
        return None
    return float(value)


def _optional_int(value: Any) -> Optional[int]:
    if value is None or value == "":
        return None
    return int(value)


# =============================================================================
# Property
# =============================================================================


@dataclass
class StructuralHealthScore:
    """
    Structural health (SHS) of a building.

    seismic_chaining is tri-state: True (retrofit present), False (confirmed
    absent), None (unknown). Unknown and absent carry different penalties.
    """
    seismic_chaining: Optional[bool] = None
    rps_2011_compliant: bool = False
    rps_2026_compliant: bool = False
    humidity_score: Optional[float] = None  # 0-10
    foundation_depth_m: Optional[float] = None
    roof_life_years: Optional[float] = None
    overall_score: Optional[float] = None  # 0-100

    def to_dict(self) -> dict:
        return {
            "seismic_chaining": self.seismic_chaining,
            "rps_2011_compliant": self.rps_2011_compliant,
            "rps_2026_compliant": self.rps_2026_compliant,
            "humidity_score": self.humidity_score,
            "foundation_depth_m": self.foundation_depth_m,
            "roof_life_years": self.roof_life_years,
            "overall_score": self.overall_score,
        }

    @classmethod
    def from_dict(cls, data: Optional[dict]) -> "StructuralHealthScore":
        if not data:
            return cls()
        chaining = data.get("seismic_chaining")
        return cls(
            seismic_chaining=None if chaining in (None, "") else _parse_bool(chaining),
            rps_2011_compliant=_parse_bool(data.get("rps_2011_compliant", False)),
            rps_2026_compliant=_parse_bool(data.get("rps_2026_compliant", False)),
            humidity_score=_optional_float(data.get("humidity_score")),
            foundation_depth_m=_optional_float(data.get("foundation_depth_m")),
            roof_life_years=_optional_float(data.get("roof_life_years")),
            overall_score=_optional_float(data.get("overall_score")),
        )


@dataclass
class Property:
    """
    A property record as audited on the ground.

    For Land, structural health fields are inapplicable and ignored by the
    engine.
    """
    id: str
    asset_type: AssetType
    latitude: float
    longitude: float

    title: str = ""
    address: str = ""
    city: str = "Marrakech"
    neighborhood: Optional[str] = None

    # Physical metrics
    terrain_size_m2: Optional[float] = None
    built_size_m2: Optional[float] = None
    floors: Optional[int] = None
    rooms: Optional[int] = None
    bathrooms: Optional[int] = None
    year_built: Optional[int] = None

    # Pricing (MAD)
    market_price: Optional[float] = None
    forensic_price: Optional[float] = None

    # Zoning
    zoning_code: Optional[ZoningCode] = None
    zoning_potential_value: Optional[float] = None

    # Scores
    risk_grade: RiskGrade = RiskGrade.C
    structural_health: StructuralHealthScore = field(default_factory=StructuralHealthScore)
    resilience_score: Optional[int] = None
    alpha_score: Optional[float] = None

    # Infrastructure proximity (km)
    distance_tgv_station_km: Optional[float] = None
    distance_stadium_km: Optional[float] = None
    distance_highway_km: Optional[float] = None
    distance_airport_km: Optional[float] = None

    # Compliance flags
    compliance_status: ComplianceStatus = ComplianceStatus.PENDING_REVIEW
    deadline_flagged: bool = False
    foreign_authorization_required: bool = False
    tax_gate_passed: bool = False

    # Verification metadata
    source_url: str = ""
    source_portal: str = ""
    is_verified: bool = False
    verified_at: Optional[datetime] = None
    verified_by: str = ""
    audit_notes: List[str] = field(default_factory=list)

    @property
    def is_land(self) -> bool:
        return self.asset_type is AssetType.LAND

    @property
    def price_per_m2(self) -> Optional[float]:
        """Market price per m2 over built area, falling back to terrain."""
        size = self.built_size_m2 or self.terrain_size_m2
        if not self.market_price or not size:
            return None
        return round(self.market_price / size, 2)

    def to_dict(self) -> dict:
        """Convert to dictionary for JSON output."""
        return {
            "id": self.id,
            "title": self.title,
            "asset_type": self.asset_type.value,
            "address": self.address,
            "city": self.city,
            "neighborhood": self.neighborhood,
            "latitude": self.latitude,
            "longitude": self.longitude,
            "terrain_size_m2": self.terrain_size_m2,
            "built_size_m2": self.built_size_m2,
            "floors": self.floors,
            "rooms": self.rooms,
            "bathrooms": self.bathrooms,
            "year_built": self.year_built,
            "market_price": self.market_price,
            "forensic_price": self.forensic_price,
            "price_per_m2": self.price_per_m2,
            "zoning_code": self.zoning_code.value if self.zoning_code else None,
            "zoning_potential_value": self.zoning_potential_value,
            "risk_grade": self.risk_grade.value,
            "structural_health": self.structural_health.to_dict(),
            "resilience_score": self.resilience_score,
            "alpha_score": self.alpha_score,
            "distance_tgv_station_km": self.distance_tgv_station_km,
            "distance_stadium_km": self.distance_stadium_km,
            "distance_highway_km": self.distance_highway_km,
            "distance_airport_km": self.distance_airport_km,
            "compliance_status": self.compliance_status.value,
            "deadline_flagged": self.deadline_flagged,
            "foreign_authorization_required": self.foreign_authorization_required,
            "tax_gate_passed": self.tax_gate_passed,
            "source_url": self.source_url,
            "source_portal": self.source_portal,
            "is_verified": self.is_verified,
            "verified_at": self.verified_at.isoformat() if self.verified_at else None,
            "verified_by": self.verified_by,
            "audit_notes": list(self.audit_notes),
        }

    @classmethod
    def from_dict(cls, data: dict) -> "Property":
        """
        Build a Property from a stored or submitted record.

        Unrecognised zoning codes are dropped (treated as absent) and an
        unrecognised asset type defaults to Apartment.
        """
        return cls(
            id=str(data["id"]),
            asset_type=AssetType.from_string(data.get("asset_type")) or AssetType.APARTMENT,
            latitude=float(data.get("latitude") or 0.0),
            longitude=float(data.get("longitude") or 0.0),
            title=data.get("title") or "",
            address=data.get("address") or "",
            city=data.get("city") or "Marrakech",
            neighborhood=data.get("neighborhood") or None,
            terrain_size_m2=_optional_float(data.get("terrain_size_m2")),
            built_size_m2=_optional_float(data.get("built_size_m2")),
            floors=_optional_int(data.get("floors")),
            rooms=_optional_int(data.get("rooms")),
            bathrooms=_optional_int(data.get("bathrooms")),
            year_built=_optional_int(data.get("year_built")),
            market_price=_optional_float(data.get("market_price")),
            forensic_price=_optional_float(data.get("forensic_price")),
            zoning_code=ZoningCode.from_string(data.get("zoning_code")),
            zoning_potential_value=_optional_float(data.get("zoning_potential_value")),
            risk_grade=RiskGrade.from_string(data.get("risk_grade")) or RiskGrade.C,
            structural_health=StructuralHealthScore.from_dict(data.get("structural_health")),
            resilience_score=_optional_int(data.get("resilience_score")),
            alpha_score=_optional_float(data.get("alpha_score")),
            distance_tgv_station_km=_optional_float(data.get("distance_tgv_station_km")),
            distance_stadium_km=_optional_float(data.get("distance_stadium_km")),
            distance_highway_km=_optional_float(data.get("distance_highway_km")),
            distance_airport_km=_optional_float(data.get("distance_airport_km")),
            compliance_status=(
                ComplianceStatus.from_string(data.get("compliance_status"))
                or ComplianceStatus.PENDING_REVIEW
            ),
            deadline_flagged=_parse_bool(data.get("deadline_flagged", False)),
            foreign_authorization_required=_parse_bool(data.get("foreign_authorization_required", False)),
            tax_gate_passed=_parse_bool(data.get("tax_gate_passed", False)),
            source_url=data.get("source_url") or "",
            source_portal=data.get("source_portal") or "",
            is_verified=_parse_bool(data.get("is_verified", False)),
            verified_at=_parse_datetime(data.get("verified_at")),
            verified_by=data.get("verified_by") or "",
            audit_notes=list(data.get("audit_notes") or []),
        )


# =============================================================================
# Reference entities
# =============================================================================


@dataclass(frozen=True)
class ZoningCodeInfo:
    """Legal limits for one zoning code. Immutable reference data."""
    code: ZoningCode
    name: str
    min_terrain_m2: float
    cos: float  # Ground coverage ratio
    ces: float  # Building footprint ratio
    max_height_m: Optional[float] = None
    max_floors: Optional[int] = None
    multi_unit_allowed: bool = False
    max_units_per_hectare: Optional[int] = None
    commercial_allowed: bool = False
    hotel_allowed: bool = False
    typical_price_per_m2_min: Optional[float] = None
    typical_price_per_m2_max: Optional[float] = None
    notes: str = ""


@dataclass(frozen=True)
class InfrastructurePoint:
    """
    A major infrastructure project that moves nearby property values.

    value_multiplier > 1 is a premium, < 1 a discount.
    """
    id: str
    name: str
    category: Optional[InfrastructureCategory]
    latitude: float
    longitude: float
    is_operational: bool = False
    completion_year: Optional[int] = None
    impact_radius_km: Optional[float] = None
    value_multiplier: Optional[float] = None
    description: str = ""

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "category": self.category.value if self.category else None,
            "latitude": self.latitude,
            "longitude": self.longitude,
            "is_operational": self.is_operational,
            "completion_year": self.completion_year,
            "impact_radius_km": self.impact_radius_km,
            "value_multiplier": self.value_multiplier,
            "description": self.description,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "InfrastructurePoint":
        """
        Build from a stored or submitted record.

        A missing category defaults to industrial zone; an unrecognised one
        raises ValueError.
        """
        raw_category = data.get("category")
        category = InfrastructureCategory.from_string(raw_category or "industrial_zone")
        if category is None:
            raise ValueError(f"Invalid category: {raw_category}")
        return cls(
            id=str(data["id"]),
            name=data.get("name") or "",
            category=category,
            latitude=float(data.get("latitude") or 0.0),
            longitude=float(data.get("longitude") or 0.0),
            is_operational=_parse_bool(data.get("is_operational", False)),
            completion_year=_optional_int(data.get("completion_year")),
            impact_radius_km=_optional_float(data.get("impact_radius_km")),
            value_multiplier=_optional_float(data.get("value_multiplier")),
            description=data.get("description") or "",
        )


@dataclass
class ForensicDocument:
    """A verification document attached to a property."""
    id: str
    property_id: str
    document_type: DocumentType
    is_verified: bool = False
    qr_code_verified: bool = False
    document_date: Optional[date] = None
    expiry_date: Optional[date] = None
    reference_number: str = ""
    issuing_authority: str = ""

    def is_expired(self, today: date) -> bool:
        """True when the document carries an expiry date before today."""
        return self.expiry_date is not None and self.expiry_date < today

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "property_id": self.property_id,
            "document_type": self.document_type.value,
            "is_verified": self.is_verified,
            "qr_code_verified": self.qr_code_verified,
            "document_date": self.document_date.isoformat() if self.document_date else None,
            "expiry_date": self.expiry_date.isoformat() if self.expiry_date else None,
            "reference_number": self.reference_number,
            "issuing_authority": self.issuing_authority,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "ForensicDocument":
        """Build from a stored record. Raises ValueError on unknown type."""
        document_type = DocumentType.from_string(data.get("document_type"))
        if document_type is None:
            raise ValueError(f"Invalid document_type: {data.get('document_type')}")
        return cls(
            id=str(data["id"]),
            property_id=str(data["property_id"]),
            document_type=document_type,
            is_verified=_parse_bool(data.get("is_verified", False)),
            qr_code_verified=_parse_bool(data.get("qr_code_verified", False)),
            document_date=_parse_date(data.get("document_date")),
            expiry_date=_parse_date(data.get("expiry_date")),
            reference_number=data.get("reference_number") or "",
            issuing_authority=data.get("issuing_authority") or "",
        )


# =============================================================================
# Valuation output
# =============================================================================


@dataclass
class ValuationAdjustment:
    """One named value adjustment. impact_value is in MAD."""
    factor: str
    description: str
    impact_percent: float
    impact_value: float

    def to_dict(self) -> dict:
        return {
            "factor": self.factor,
            "description": self.description,
            "impact_percent": self.impact_percent,
            "impact_value": self.impact_value,
        }


@dataclass
class ValuationResult:
    """
    Forensic valuation of one property.

    Transient: recomputed on demand. Callers may persist selected fields
    back onto the Property.
    """
    base_value: float
    forensic_value: float
    adjustments: List[ValuationAdjustment]
    risk_grade: RiskGrade
    confidence_score: int
    alpha_value: float = 0.0
    alpha_percent: float = 0.0
    zoning_potential_value: Optional[float] = None
    resilience_score: Optional[int] = None

    @property
    def negative_adjustments(self) -> List[ValuationAdjustment]:
        return [a for a in self.adjustments if a.impact_percent < 0]

    def to_dict(self) -> dict:
        """Convert to dictionary for JSON output."""
        return {
            "base_value": self.base_value,
            "forensic_value": self.forensic_value,
            "adjustments": [a.to_dict() for a in self.adjustments],
            "zoning_potential_value": self.zoning_potential_value,
            "alpha_value": self.alpha_value,
            "alpha_percent": self.alpha_percent,
            "risk_grade": self.risk_grade.value,
            "confidence_score": self.confidence_score,
            "resilience_score": self.resilience_score,
        }


# =============================================================================
# Market listings
# =============================================================================


@dataclass
class ScrapedListing:
    """
    A comparable listing scraped from a public portal.

    Only used as gap-analysis input; never owned by the engine.
    """
    source_portal: ListingPortal
    source_url: str
    scraped_at: datetime
    source_listing_id: str = ""
    title: str = ""
    asset_type: Optional[AssetType] = None
    city: str = ""
    neighborhood: Optional[str] = None
    asking_price: Optional[float] = None
    terrain_size_m2: Optional[float] = None
    built_size_m2: Optional[float] = None
    rooms: Optional[int] = None
    bathrooms: Optional[int] = None
    latitude: Optional[float] = None
    longitude: Optional[float] = None

    @property
    def size_m2(self) -> Optional[float]:
        return self.built_size_m2 or self.terrain_size_m2

    def to_dict(self) -> dict:
        return {
            "source_portal": self.source_portal.value,
            "source_url": self.source_url,
            "scraped_at": self.scraped_at.isoformat(),
            "source_listing_id": self.source_listing_id,
            "title": self.title,
            "asset_type": self.asset_type.value if self.asset_type else None,
            "city": self.city,
            "neighborhood": self.neighborhood,
            "asking_price": self.asking_price,
            "terrain_size_m2": self.terrain_size_m2,
            "built_size_m2": self.built_size_m2,
            "rooms": self.rooms,
            "bathrooms": self.bathrooms,
            "latitude": self.latitude,
            "longitude": self.longitude,
        }
