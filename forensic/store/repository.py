"""
Property Repository - In-Memory Storage for Audited Properties

Key-value store of properties (by opaque id) and their forensic documents,
with optional JSON file persistence. Records are never hard-deleted;
clear() only resets computed valuation fields.
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from pathlib import Path
from typing import Optional

from forensic.compliance import ComplianceResult
from forensic.models import (
    AssetType,
    ComplianceStatus,
    ForensicDocument,
    InfrastructureCategory,
    InfrastructurePoint,
    Property,
    RiskGrade,
    ValuationResult,
    ZoningCode,
)


logger = logging.getLogger(__name__)


# =============================================================================
# Search Filters
# =============================================================================


@dataclass
class PropertyFilter:
    """
    Property search criteria. Empty lists and None disable a criterion.

    Properties without a zoning code pass the zoning filter. Price bounds
    compare against market price, with a missing price counted as 0.
    City and neighbourhood match case-insensitively.
    """
    asset_types: list[AssetType] = field(default_factory=list)
    risk_grades: list[RiskGrade] = field(default_factory=list)
    zoning_codes: list[ZoningCode] = field(default_factory=list)
    min_price: Optional[float] = None
    max_price: Optional[float] = None
    only_verified: bool = False
    only_alpha: bool = False
    city: Optional[str] = None
    neighborhood: Optional[str] = None

    def matches(self, property: Property) -> bool:
        if self.asset_types and property.asset_type not in self.asset_types:
            return False
        if self.risk_grades and property.risk_grade not in self.risk_grades:
            return False
        if (
            self.zoning_codes
            and property.zoning_code is not None
            and property.zoning_code not in self.zoning_codes
        ):
            return False

        price = property.market_price or 0
        if self.min_price and price < self.min_price:
            return False
        if self.max_price and price > self.max_price:
            return False

        if self.only_verified and not property.is_verified:
            return False
        if self.only_alpha and not (
            property.zoning_potential_value
            and property.market_price
            and property.zoning_potential_value > property.market_price
        ):
            return False

        if self.city and property.city.lower() != self.city.lower():
            return False
        if self.neighborhood and (property.neighborhood or "").lower() != self.neighborhood.lower():
            return False
        return True


# =============================================================================
# Repository
# =============================================================================


class PropertyRepository:
    """
    Repository for storing and retrieving properties and their documents.

    Uses in-memory storage with optional file persistence.
    """

    def __init__(self, persist_path: Optional[str] = None):
        """
        Initialise repository.

        Args:
            persist_path: Optional path to persist data to JSON file
        """
        self._properties: dict[str, Property] = {}
        self._documents: dict[str, list[ForensicDocument]] = {}
        self._infrastructure: dict[str, InfrastructurePoint] = {}
        self._persist_path = Path(persist_path) if persist_path else None

        if self._persist_path and self._persist_path.exists():
            self._load_from_file()

    def _save_to_file(self) -> None:
        """Persist data to file."""
        if not self._persist_path:
            return

        data = {
            "properties": {pid: p.to_dict() for pid, p in self._properties.items()},
            "documents": {
                pid: [d.to_dict() for d in docs]
                for pid, docs in self._documents.items()
            },
            "infrastructure": [p.to_dict() for p in self._infrastructure.values()],
            "saved_at": datetime.now(timezone.utc).isoformat(),
        }

        self._persist_path.parent.mkdir(parents=True, exist_ok=True)
        self._persist_path.write_text(json.dumps(data, indent=2))

    def _load_from_file(self) -> None:
        """Load data from file."""
        try:
            data = json.loads(self._persist_path.read_text())
            for pid, record in data.get("properties", {}).items():
                self._properties[pid] = Property.from_dict(record)
            for pid, records in data.get("documents", {}).items():
                self._documents[pid] = [ForensicDocument.from_dict(r) for r in records]
            for record in data.get("infrastructure", []):
                point = InfrastructurePoint.from_dict(record)
                self._infrastructure[point.id] = point
        except (json.JSONDecodeError, KeyError, ValueError) as e:
            # Start fresh rather than refuse to boot
            logger.warning("Could not load repository data from %s: %s", self._persist_path, e)

    # =========================================================================
    # CRUD Operations
    # =========================================================================

    def create(self, property: Property) -> Property:
        """
        Store a new property.

        Raises:
            ValueError: If the id already exists
        """
        if property.id in self._properties:
            raise ValueError(f"Property {property.id} already exists")

        self._properties[property.id] = property
        self._documents.setdefault(property.id, [])
        self._save_to_file()
        return property

    def get(self, property_id: str) -> Optional[Property]:
        """Get a property by id, None if unknown."""
        return self._properties.get(property_id)

    def update(self, property: Property) -> Optional[Property]:
        """Replace a stored property. Returns None if the id is unknown."""
        if property.id not in self._properties:
            return None

        self._properties[property.id] = property
        self._save_to_file()
        return property

    def clear(self, property_id: str) -> bool:
        """
        Reset the computed valuation fields of a property.

        The record itself and its documents are kept.

        Returns:
            True if the property exists
        """
        property = self._properties.get(property_id)
        if property is None:
            return False

        property.forensic_price = None
        property.zoning_potential_value = None
        property.alpha_score = None
        property.resilience_score = None
        property.risk_grade = RiskGrade.C
        property.compliance_status = ComplianceStatus.PENDING_REVIEW

        self._save_to_file()
        return True

    # =========================================================================
    # Documents
    # =========================================================================

    def add_document(self, document: ForensicDocument) -> ForensicDocument:
        """
        Attach a document to its property.

        Raises:
            ValueError: If the property is unknown or the document id is taken
        """
        if document.property_id not in self._properties:
            raise ValueError(f"Property {document.property_id} not found")

        documents = self._documents.setdefault(document.property_id, [])
        if any(d.id == document.id for d in documents):
            raise ValueError(f"Document {document.id} already exists")

        documents.append(document)
        self._save_to_file()
        return document

    def get_documents(self, property_id: str) -> list[ForensicDocument]:
        """All documents on file for a property (empty if none)."""
        return list(self._documents.get(property_id, []))

    # =========================================================================
    # Engine write-back
    # =========================================================================

    def apply_valuation(self, property_id: str, result: ValuationResult) -> Optional[Property]:
        """
        Persist selected valuation fields back onto the property.

        Stores forensic price, zoning potential, risk grade, alpha score
        (alpha percent) and resilience score.
        """
        property = self._properties.get(property_id)
        if property is None:
            return None

        property.forensic_price = result.forensic_value
        property.zoning_potential_value = result.zoning_potential_value
        property.risk_grade = result.risk_grade
        property.alpha_score = result.alpha_percent
        property.resilience_score = result.resilience_score

        self._save_to_file()
        return property

    def apply_compliance(self, property_id: str, result: ComplianceResult) -> Optional[Property]:
        """Persist the compliance verdict and its flags onto the property."""
        property = self._properties.get(property_id)
        if property is None:
            return None

        property.compliance_status = result.overall_status
        property.deadline_flagged = result.land_deadline.is_flagged
        property.foreign_authorization_required = result.foreign_authorization.required
        property.tax_gate_passed = not result.tax_gate.is_high_risk

        self._save_to_file()
        return property

    # =========================================================================
    # Query Operations
    # =========================================================================

    def list_all(self) -> list[Property]:
        """Get all properties."""
        return list(self._properties.values())

    def list_by_type(self, asset_type: AssetType) -> list[Property]:
        """Get properties of one asset type."""
        return [p for p in self._properties.values() if p.asset_type is asset_type]

    def search(self, filters: PropertyFilter) -> list[Property]:
        """Get properties matching every set criterion."""
        return [p for p in self._properties.values() if filters.matches(p)]

    def count(self) -> int:
        """Get total number of properties."""
        return len(self._properties)

    # =========================================================================
    # Infrastructure
    # =========================================================================

    def add_infrastructure_point(self, point: InfrastructurePoint) -> InfrastructurePoint:
        """
        Register an infrastructure project.

        Raises:
            ValueError: If the id already exists
        """
        if point.id in self._infrastructure:
            raise ValueError(f"Infrastructure point {point.id} already exists")

        self._infrastructure[point.id] = point
        self._save_to_file()
        logger.info("Added infrastructure point %s (%s)", point.id, point.name)
        return point

    def list_infrastructure(self) -> list[InfrastructurePoint]:
        """Stored infrastructure points (empty until one is added)."""
        return list(self._infrastructure.values())

    def list_infrastructure_by_category(
        self, category: InfrastructureCategory
    ) -> list[InfrastructurePoint]:
        return [p for p in self._infrastructure.values() if p.category is category]


# =============================================================================
# Singleton Instance
# =============================================================================

_repository_instance: Optional[PropertyRepository] = None


def get_property_repository(persist_path: Optional[str] = None) -> PropertyRepository:
    """
    Get the property repository singleton.

    Args:
        persist_path: Optional path for persistence (only used on first call)

    Returns:
        PropertyRepository instance
    """
    global _repository_instance
    if _repository_instance is None:
        _repository_instance = PropertyRepository(persist_path)
    return _repository_instance
