"""
Legal Compliance Validation - Moroccan 2026 Real Estate Regulations

Four independent checks, each a pure function of its inputs:
1. Land deadline (Bill 34.21): unbuilt land must be developed within 5 years
2. Foreign authorisation (VNA): non-exempt buyers of rural land
3. Tax gate: QR-verified Quitus Fiscal must be on file
4. Seismic compliance (RPS 2011/2026): pre-2023 buildings need chaining

perform_compliance_audit combines them with a document-expiry pass into an
overall status, flags and recommendations.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime
from typing import Iterable, List, Optional, Sequence

from .models import (
    ComplianceStatus,
    DocumentType,
    FlagSeverity,
    ForensicDocument,
    Property,
    ZoningCode,
)
from .reference import (
    AGRICULTURAL_AUTH_COST_MAD,
    AGRICULTURAL_AUTH_DELAY_MONTHS,
    EXEMPT_NATIONALITIES,
    FOREIGN_AUTH_COST_MAD,
    FOREIGN_AUTH_DELAY_MONTHS,
    LAND_DEADLINE_YEARS,
    REQUIRED_DOCUMENTS,
    SEISMIC_CODE_YEAR,
    UNKNOWN_NATIONALITY,
)


# =============================================================================
# Check Results
# =============================================================================


@dataclass
class LandDeadlineCheck:
    """Result of the 5-year undeveloped land rule."""
    applicable: bool = False
    purchase_date: Optional[date] = None
    deadline_date: Optional[date] = None
    construction_started: bool = False
    is_flagged: bool = False

    def to_dict(self) -> dict:
        return {
            "applicable": self.applicable,
            "purchase_date": self.purchase_date.isoformat() if self.purchase_date else None,
            "deadline_date": self.deadline_date.isoformat() if self.deadline_date else None,
            "construction_started": self.construction_started,
            "is_flagged": self.is_flagged,
        }


@dataclass
class ForeignAuthorizationCheck:
    """Result of the foreign acquisition authorisation (VNA) check."""
    required: bool
    buyer_nationality: str
    property_is_rural: bool
    estimated_delay_months: int = FOREIGN_AUTH_DELAY_MONTHS
    estimated_cost_mad: int = FOREIGN_AUTH_COST_MAD

    def to_dict(self) -> dict:
        return {
            "required": self.required,
            "buyer_nationality": self.buyer_nationality,
            "property_is_rural": self.property_is_rural,
            "estimated_delay_months": self.estimated_delay_months,
            "estimated_cost_mad": self.estimated_cost_mad,
        }


@dataclass
class TaxGateCheck:
    """Result of the Quitus Fiscal tax gate."""
    quitus_fiscal_present: bool
    qr_verified: bool
    is_high_risk: bool = True

    def to_dict(self) -> dict:
        return {
            "quitus_fiscal_present": self.quitus_fiscal_present,
            "qr_verified": self.qr_verified,
            "is_high_risk": self.is_high_risk,
        }


@dataclass
class SeismicCheck:
    """Result of the RPS seismic compliance check."""
    year_built: Optional[int]
    pre_2023: bool
    seismic_chaining_present: Optional[bool]
    rps_2011_compliant: bool
    rps_2026_compliant: bool
    value_penalty_percent: int = 0

    def to_dict(self) -> dict:
        return {
            "year_built": self.year_built,
            "pre_2023": self.pre_2023,
            "seismic_chaining_present": self.seismic_chaining_present,
            "rps_2011_compliant": self.rps_2011_compliant,
            "rps_2026_compliant": self.rps_2026_compliant,
            "value_penalty_percent": self.value_penalty_percent,
        }


@dataclass
class ComplianceFlag:
    """A single actionable compliance issue."""
    code: str
    severity: FlagSeverity
    title: str
    description: str
    impact_percent: Optional[float] = None

    def to_dict(self) -> dict:
        return {
            "code": self.code,
            "severity": self.severity.value,
            "title": self.title,
            "description": self.description,
            "impact_percent": self.impact_percent,
        }


@dataclass
class ComplianceResult:
    """
    Compliance snapshot for one property.

    Derived, never stored by the engine. The caller decides persistence.
    """
    overall_status: ComplianceStatus
    land_deadline: LandDeadlineCheck
    foreign_authorization: ForeignAuthorizationCheck
    tax_gate: TaxGateCheck
    seismic: SeismicCheck
    flags: List[ComplianceFlag] = field(default_factory=list)
    recommendations: List[str] = field(default_factory=list)
    expired_documents: List[ForensicDocument] = field(default_factory=list)

    @property
    def critical_flags(self) -> List[ComplianceFlag]:
        return [f for f in self.flags if f.severity is FlagSeverity.CRITICAL]

    @property
    def warning_flags(self) -> List[ComplianceFlag]:
        return [f for f in self.flags if f.severity is FlagSeverity.WARNING]

    def to_dict(self) -> dict:
        """Convert to dictionary for JSON output."""
        return {
            "overall_status": self.overall_status.value,
            "land_deadline": self.land_deadline.to_dict(),
            "foreign_authorization": self.foreign_authorization.to_dict(),
            "tax_gate": self.tax_gate.to_dict(),
            "seismic": self.seismic.to_dict(),
            "flags": [f.to_dict() for f in self.flags],
            "recommendations": list(self.recommendations),
            "expired_documents": [d.id for d in self.expired_documents],
        }


# =============================================================================
# Individual Checks
# =============================================================================


def _add_years(value: date, years: int) -> date:
    try:
        return value.replace(year=value.year + years)
    except ValueError:
        # 29 February rolls back to 28 February
        return value.replace(year=value.year + years, day=28)


def _as_date(value) -> date:
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    return datetime.fromisoformat(str(value)).date()


def validate_land_deadline(
    property: Property,
    purchase_date: Optional[date] = None,
    now: Optional[date] = None,
) -> LandDeadlineCheck:
    """
    Apply the 5-year development deadline to unbuilt land.

    Args:
        property: Property under audit (only Land is in scope)
        purchase_date: Acquisition date, if known
        now: Reference date (default: today)

    Returns:
        LandDeadlineCheck; flagged when today is past purchase + 5 years
    """
    check = LandDeadlineCheck()

    if not property.is_land:
        return check

    check.applicable = True

    if purchase_date is not None:
        today = _as_date(now) if now is not None else date.today()
        purchase = _as_date(purchase_date)
        check.purchase_date = purchase
        check.deadline_date = _add_years(purchase, LAND_DEADLINE_YEARS)
        check.is_flagged = today > check.deadline_date

    return check


def validate_foreign_authorization(
    buyer_nationality: Optional[str],
    property_is_rural: bool,
    zoning_code: Optional[ZoningCode] = None,
) -> ForeignAuthorizationCheck:
    """
    Determine whether a foreign acquisition authorisation is needed.

    Exempt (domestic) buyers never need it. Non-exempt buyers need it for
    rural land; agricultural zoning escalates delay and cost.
    """
    nationality = (buyer_nationality or UNKNOWN_NATIONALITY).strip().upper()
    check = ForeignAuthorizationCheck(
        required=False,
        buyer_nationality=nationality,
        property_is_rural=property_is_rural,
    )

    if nationality in EXEMPT_NATIONALITIES:
        return check

    if property_is_rural:
        check.required = True

    if zoning_code is ZoningCode.ZA:
        check.required = True
        check.estimated_delay_months = AGRICULTURAL_AUTH_DELAY_MONTHS
        check.estimated_cost_mad = AGRICULTURAL_AUTH_COST_MAD

    return check


def find_document(
    documents: Iterable[ForensicDocument],
    document_type: DocumentType,
) -> Optional[ForensicDocument]:
    """First document of the given type, preferring a QR-verified one."""
    matching = [d for d in documents if d.document_type is document_type]
    if not matching:
        return None
    verified = [d for d in matching if d.qr_code_verified]
    return verified[0] if verified else matching[0]


def validate_tax_gate(documents: Sequence[ForensicDocument]) -> TaxGateCheck:
    """
    Check for a QR-verified Quitus Fiscal (tax clearance).

    High risk by default; cleared only when the document is present AND
    digitally verified.
    """
    quitus = find_document(documents, DocumentType.QUITUS_FISCAL)

    check = TaxGateCheck(
        quitus_fiscal_present=quitus is not None,
        qr_verified=bool(quitus and quitus.qr_code_verified),
    )

    if check.quitus_fiscal_present and check.qr_verified:
        check.is_high_risk = False

    return check


def validate_seismic(property: Property) -> SeismicCheck:
    """
    Assess seismic code compliance.

    Penalty: 15% if pre-2023 and chaining confirmed absent, 8% if pre-2023
    and chaining unknown, 0 otherwise. Land has no seismic requirement.
    """
    shs = property.structural_health
    year_built = property.year_built

    check = SeismicCheck(
        year_built=year_built,
        pre_2023=year_built is not None and year_built < SEISMIC_CODE_YEAR,
        seismic_chaining_present=shs.seismic_chaining,
        rps_2011_compliant=shs.rps_2011_compliant,
        rps_2026_compliant=shs.rps_2026_compliant,
    )

    if property.is_land:
        return check

    if check.pre_2023 and check.seismic_chaining_present is False:
        check.value_penalty_percent = 15
    elif check.pre_2023 and check.seismic_chaining_present is None:
        check.value_penalty_percent = 8

    return check


# =============================================================================
# Full Audit
# =============================================================================


def perform_compliance_audit(
    property: Property,
    documents: Sequence[ForensicDocument],
    purchase_date: Optional[date] = None,
    buyer_nationality: Optional[str] = None,
    now: Optional[date] = None,
) -> ComplianceResult:
    """
    Run every compliance check and aggregate the verdict.

    Status precedence (first match wins):
    1. Any expired document -> expired
    2. Any critical flag -> non_compliant
    3. Any warning flag -> pending_review
    4. Otherwise -> compliant

    Args:
        property: Property under audit
        documents: All documents on file for the property
        purchase_date: Transaction purchase date (land deadline rule)
        buyer_nationality: ISO country code of the buyer (default: UNKNOWN)
        now: Reference date (default: today)

    Returns:
        ComplianceResult with check details, flags and recommendations
    """
    today = _as_date(now) if now is not None else date.today()
    flags: List[ComplianceFlag] = []
    recommendations: List[str] = []

    # Land deadline
    land_deadline = validate_land_deadline(property, purchase_date, today)
    if land_deadline.is_flagged:
        flags.append(ComplianceFlag(
            code="LAND_DEADLINE_EXCEEDED",
            severity=FlagSeverity.CRITICAL,
            title="Bill 34.21 Deadline Exceeded",
            description=(
                "The 5-year infrastructure deadline for this land has passed. "
                "Legal action may be pending."
            ),
            impact_percent=-20,
        ))
        recommendations.append(
            "Consult legal counsel about Bill 34.21 implications before proceeding."
        )

    # Foreign authorisation
    zoning = property.zoning_code
    foreign_authorization = validate_foreign_authorization(
        buyer_nationality,
        property_is_rural=bool(zoning and zoning.is_rural),
        zoning_code=zoning,
    )
    if foreign_authorization.required:
        months = foreign_authorization.estimated_delay_months
        flags.append(ComplianceFlag(
            code="FOREIGN_AUTHORIZATION_REQUIRED",
            severity=FlagSeverity.WARNING,
            title="VNA Authorization Required",
            description=f"Foreign acquisition requires VNA. Expected delay: {months} months.",
            impact_percent=-5,
        ))
        recommendations.append(
            f"Budget {foreign_authorization.estimated_cost_mad:,} MAD for VNA process."
        )
        recommendations.append(f"Allow {months} months for authorization timeline.")

    # Tax gate
    tax_gate = validate_tax_gate(documents)
    if tax_gate.is_high_risk:
        if not tax_gate.quitus_fiscal_present:
            flags.append(ComplianceFlag(
                code="TAX_CLEARANCE_MISSING",
                severity=FlagSeverity.CRITICAL,
                title="Missing Quitus Fiscal",
                description="No tax clearance certificate present. Transaction cannot proceed safely.",
                impact_percent=-10,
            ))
            recommendations.append("Request Quitus Fiscal from seller before any deposit.")
        else:
            flags.append(ComplianceFlag(
                code="TAX_CLEARANCE_UNVERIFIED",
                severity=FlagSeverity.WARNING,
                title="Unverified Quitus Fiscal",
                description="Quitus Fiscal present but digital QR verification failed or not performed.",
                impact_percent=-5,
            ))
            recommendations.append("Verify Quitus Fiscal QR code with tax authority portal.")

    # Seismic
    seismic = validate_seismic(property)
    if seismic.value_penalty_percent > 0:
        severity = (
            FlagSeverity.CRITICAL if seismic.value_penalty_percent >= 15 else FlagSeverity.WARNING
        )
        flags.append(ComplianceFlag(
            code="SEISMIC_NON_COMPLIANT",
            severity=severity,
            title="Seismic Compliance Issue",
            description=(
                "Pre-2023 building without proper seismic chaining. "
                f"Value penalty: {seismic.value_penalty_percent}%"
            ),
            impact_percent=-seismic.value_penalty_percent,
        ))
        recommendations.append("Commission structural engineer report for seismic retrofit costs.")

    # Document expiry, independent of asset type
    expired = [d for d in documents if d.is_expired(today)]
    if expired:
        flags.append(ComplianceFlag(
            code="DOCUMENTS_EXPIRED",
            severity=FlagSeverity.CRITICAL,
            title="Expired Documents",
            description=f"{len(expired)} document(s) have expired and need renewal.",
        ))
        recommendations.append(
            "Renew expired documents: "
            + ", ".join(sorted({d.document_type.value for d in expired}))
        )

    return ComplianceResult(
        overall_status=_determine_status(flags, expired),
        land_deadline=land_deadline,
        foreign_authorization=foreign_authorization,
        tax_gate=tax_gate,
        seismic=seismic,
        flags=flags,
        recommendations=recommendations,
        expired_documents=expired,
    )


def _determine_status(
    flags: List[ComplianceFlag],
    expired: List[ForensicDocument],
) -> ComplianceStatus:
    if expired:
        return ComplianceStatus.EXPIRED
    if any(f.severity is FlagSeverity.CRITICAL for f in flags):
        return ComplianceStatus.NON_COMPLIANT
    if any(f.severity is FlagSeverity.WARNING for f in flags):
        return ComplianceStatus.PENDING_REVIEW
    return ComplianceStatus.COMPLIANT


# =============================================================================
# Document Completeness
# =============================================================================


@dataclass
class DocumentCompletenessResult:
    """Which canonical documents are on file for a property."""
    is_complete: bool
    present: List[DocumentType]
    missing: List[DocumentType]
    optional_missing: List[DocumentType]
    completeness_percent: int

    def to_dict(self) -> dict:
        return {
            "is_complete": self.is_complete,
            "present": [d.value for d in self.present],
            "missing": [d.value for d in self.missing],
            "optional_missing": [d.value for d in self.optional_missing],
            "completeness_percent": self.completeness_percent,
        }


def conditional_documents(property: Property) -> List[DocumentType]:
    """Documents required only for some properties."""
    conditional = []
    if not property.is_land:
        conditional.append(DocumentType.CERTIFICAT_CONFORMITE)
    if property.foreign_authorization_required:
        conditional.append(DocumentType.VNA)
    if property.is_land:
        conditional.append(DocumentType.TNB_TAX)
    return conditional


def check_document_completeness(
    property: Property,
    documents: Sequence[ForensicDocument],
) -> DocumentCompletenessResult:
    """
    Compare documents on file against the required and conditional sets.

    completeness_percent counts distinct required/conditional types on file
    over the number of types this property needs.
    """
    present_types = []
    for document in documents:
        if document.document_type not in present_types:
            present_types.append(document.document_type)

    missing = [t for t in REQUIRED_DOCUMENTS if t not in present_types]
    needed_conditional = conditional_documents(property)
    optional_missing = [t for t in needed_conditional if t not in present_types]

    needed = list(REQUIRED_DOCUMENTS) + needed_conditional
    on_file = [t for t in needed if t in present_types]
    percent = round(len(on_file) / len(needed) * 100) if needed else 100

    return DocumentCompletenessResult(
        is_complete=not missing and not optional_missing,
        present=present_types,
        missing=missing,
        optional_missing=optional_missing,
        completeness_percent=percent,
    )
