"""
Forensic Audit Report

Renders the valuation and compliance verdict for one property as a PDF.
Uses ReportLab for deterministic PDF generation.

Output Structure:
1. Header (property, date, verdict)
2. Valuation Summary
3. Value Adjustments
4. Compliance Checks & Flags
5. Recommendations
6. Disclaimer
"""

from dataclasses import dataclass
from datetime import date, datetime
from io import BytesIO
from pathlib import Path
from typing import List, Optional, Tuple

from reportlab.lib import colors
from reportlab.lib.enums import TA_JUSTIFY, TA_LEFT
from reportlab.lib.pagesizes import A4
from reportlab.lib.styles import ParagraphStyle, getSampleStyleSheet
from reportlab.lib.units import mm
from reportlab.pdfgen import canvas
from reportlab.platypus import (
    HRFlowable,
    Paragraph,
    SimpleDocTemplate,
    Spacer,
    Table,
    TableStyle,
)

from forensic.compliance import ComplianceResult
from forensic.models import (
    AssetType,
    ComplianceStatus,
    DocumentType,
    FlagSeverity,
    ForensicDocument,
    Property,
    RiskGrade,
    StructuralHealthScore,
    ValuationResult,
    ZoningCode,
)
from utils.formatting import (
    format_area,
    format_date,
    format_distance,
    format_percent,
    format_price,
)


# =============================================================================
# Color Palette
# =============================================================================

class Palette:
    """Print-friendly palette: charcoal text, terracotta accent."""
    BLACK = colors.Color(0.1, 0.1, 0.1)
    CHARCOAL = colors.Color(0.2, 0.2, 0.22)
    SLATE = colors.Color(0.35, 0.38, 0.42)
    GRAY = colors.Color(0.5, 0.5, 0.5)
    LIGHT_GRAY = colors.Color(0.85, 0.85, 0.85)
    PALE_GRAY = colors.Color(0.95, 0.95, 0.95)
    WHITE = colors.white

    ACCENT = colors.Color(0.62, 0.29, 0.18)

    SUCCESS = colors.Color(0.15, 0.4, 0.25)
    WARNING = colors.Color(0.6, 0.45, 0.1)
    DANGER = colors.Color(0.6, 0.15, 0.15)


STATUS_COLORS = {
    ComplianceStatus.COMPLIANT: Palette.SUCCESS,
    ComplianceStatus.PENDING_REVIEW: Palette.WARNING,
    ComplianceStatus.NON_COMPLIANT: Palette.DANGER,
    ComplianceStatus.EXPIRED: Palette.DANGER,
}

SEVERITY_COLORS = {
    FlagSeverity.CRITICAL: Palette.DANGER,
    FlagSeverity.WARNING: Palette.WARNING,
    FlagSeverity.INFO: Palette.SLATE,
}

DISCLAIMER = (
    "This forensic audit is an indicative assessment based on the field audit, "
    "documents supplied and public reference data at the date shown. It is not a "
    "formal valuation, legal opinion or structural survey. Buyers should obtain "
    "independent notarial, legal and engineering advice before committing funds."
)


# =============================================================================
# Styles
# =============================================================================

def get_report_styles():
    """Paragraph styles for the audit report."""
    styles = getSampleStyleSheet()

    styles.add(ParagraphStyle(
        name='ReportBrand',
        parent=styles['Normal'],
        fontSize=9,
        leading=12,
        textColor=Palette.ACCENT,
        fontName='Helvetica-Bold',
        letterSpacing=1.5,
    ))

    styles.add(ParagraphStyle(
        name='ReportTitle',
        parent=styles['Normal'],
        fontSize=18,
        leading=23,
        textColor=Palette.CHARCOAL,
        fontName='Helvetica-Bold',
        spaceBefore=4*mm,
        spaceAfter=2*mm,
    ))

    styles.add(ParagraphStyle(
        name='ReportSubtitle',
        parent=styles['Normal'],
        fontSize=10,
        leading=14,
        textColor=Palette.SLATE,
        fontName='Helvetica',
        spaceAfter=2*mm,
    ))

    styles.add(ParagraphStyle(
        name='SectionTitle',
        parent=styles['Normal'],
        fontSize=12.5,
        leading=16,
        textColor=Palette.CHARCOAL,
        fontName='Helvetica-Bold',
        spaceBefore=16,
        spaceAfter=8,
    ))

    styles['BodyText'].fontSize = 9.5
    styles['BodyText'].leading = 14
    styles['BodyText'].textColor = Palette.CHARCOAL
    styles['BodyText'].spaceAfter = 6
    styles['BodyText'].alignment = TA_LEFT
    styles['BodyText'].fontName = 'Helvetica'

    styles.add(ParagraphStyle(
        name='BulletText',
        parent=styles['BodyText'],
        fontSize=9,
        leading=13,
        leftIndent=6*mm,
        bulletIndent=2*mm,
        spaceAfter=4,
    ))

    styles.add(ParagraphStyle(
        name='TableCell',
        parent=styles['Normal'],
        fontSize=8.5,
        leading=11,
        textColor=Palette.CHARCOAL,
        fontName='Helvetica',
    ))

    styles.add(ParagraphStyle(
        name='Disclaimer',
        parent=styles['Normal'],
        fontSize=7.5,
        leading=11,
        textColor=Palette.GRAY,
        alignment=TA_JUSTIFY,
        fontName='Helvetica',
        spaceBefore=14,
    ))

    return styles


def _table_style(header_rows: int = 1) -> TableStyle:
    return TableStyle([
        ('FONTNAME', (0, 0), (-1, header_rows - 1), 'Helvetica-Bold'),
        ('FONTNAME', (0, header_rows), (-1, -1), 'Helvetica'),
        ('FONTSIZE', (0, 0), (-1, -1), 8.5),
        ('BACKGROUND', (0, 0), (-1, header_rows - 1), Palette.CHARCOAL),
        ('TEXTCOLOR', (0, 0), (-1, header_rows - 1), Palette.WHITE),
        ('TEXTCOLOR', (0, header_rows), (-1, -1), Palette.CHARCOAL),
        ('VALIGN', (0, 0), (-1, -1), 'MIDDLE'),
        ('GRID', (0, 0), (-1, -1), 0.5, Palette.LIGHT_GRAY),
        ('TOPPADDING', (0, 0), (-1, -1), 2.5*mm),
        ('BOTTOMPADDING', (0, 0), (-1, -1), 2.5*mm),
        ('LEFTPADDING', (0, 0), (-1, -1), 2*mm),
        ('RIGHTPADDING', (0, 0), (-1, -1), 2*mm),
        ('ROWBACKGROUNDS', (0, header_rows), (-1, -1), [Palette.WHITE, Palette.PALE_GRAY]),
    ])


# =============================================================================
# Result Types
# =============================================================================

@dataclass
class AuditReportSuccess:
    """Returned when the PDF was written to disk."""
    path: Path
    page_count: int


class AuditReportGenerator:
    """
    Forensic audit PDF generator.

    Same inputs always produce the same layout; the report date is the only
    time-dependent element and can be injected.
    """

    PAGE_WIDTH, PAGE_HEIGHT = A4
    MARGIN_LEFT = 18*mm
    MARGIN_RIGHT = 18*mm
    MARGIN_TOP = 18*mm
    MARGIN_BOTTOM = 22*mm

    OUTPUT_DIR = Path("reports")

    def __init__(self, report_date: Optional[date] = None):
        """
        Initialize the report generator.

        Args:
            report_date: Date printed on the report (default: today)
        """
        self.styles = get_report_styles()
        self._report_date = report_date or date.today()
        self._page_count = 0

    def generate_report(
        self,
        property: Property,
        valuation: ValuationResult,
        compliance: ComplianceResult,
        output_dir: Optional[Path] = None,
    ) -> AuditReportSuccess:
        """
        Write the audit PDF to <output_dir>/FVE-<property id>.pdf.

        Args:
            property: Audited property
            valuation: Result of calculate_fair_market_value
            compliance: Result of perform_compliance_audit
            output_dir: Destination directory (default: ./reports)

        Returns:
            AuditReportSuccess with the written path
        """
        output_dir = Path(output_dir) if output_dir else self.OUTPUT_DIR
        output_dir.mkdir(parents=True, exist_ok=True)
        output_path = output_dir / f"FVE-{property.id}.pdf"

        output_path.write_bytes(self.generate_to_buffer(property, valuation, compliance))

        return AuditReportSuccess(path=output_path, page_count=self._page_count)

    def generate_to_buffer(
        self,
        property: Property,
        valuation: ValuationResult,
        compliance: ComplianceResult,
    ) -> bytes:
        """Generate PDF and return as bytes (for testing or streaming)."""
        buffer = BytesIO()
        self._build_document(property, valuation, compliance, buffer)
        return buffer.getvalue()

    def _build_document(
        self,
        property: Property,
        valuation: ValuationResult,
        compliance: ComplianceResult,
        buffer: BytesIO,
    ) -> None:
        doc = SimpleDocTemplate(
            buffer,
            pagesize=A4,
            leftMargin=self.MARGIN_LEFT,
            rightMargin=self.MARGIN_RIGHT,
            topMargin=self.MARGIN_TOP,
            bottomMargin=self.MARGIN_BOTTOM,
            title=f"Forensic Audit - {property.id}",
            author="Forensic Valuation Engine",
            subject="Property valuation and compliance audit",
        )

        story = []
        story.extend(self._build_header(property, valuation, compliance))
        story.extend(self._build_valuation_summary(property, valuation))
        story.extend(self._build_adjustments(valuation))
        story.extend(self._build_compliance(compliance))
        story.extend(self._build_recommendations(compliance))
        story.append(Paragraph(DISCLAIMER, self.styles['Disclaimer']))

        doc.build(story, onFirstPage=self._draw_page_frame, onLaterPages=self._draw_page_frame)
        self._page_count = doc.page

    # =========================================================================
    # Page Drawing
    # =========================================================================

    def _draw_page_frame(self, canvas_obj: canvas.Canvas, doc):
        """Footer: wordmark left, page number right."""
        canvas_obj.saveState()
        canvas_obj.setFont('Helvetica', 7)
        canvas_obj.setFillColor(Palette.GRAY)
        canvas_obj.drawString(
            self.MARGIN_LEFT,
            self.MARGIN_BOTTOM - 10*mm,
            "FORENSIC VALUATION ENGINE - MARRAKECH",
        )
        canvas_obj.drawRightString(
            self.PAGE_WIDTH - self.MARGIN_RIGHT,
            self.MARGIN_BOTTOM - 10*mm,
            f"{doc.page}",
        )
        canvas_obj.restoreState()

    # =========================================================================
    # Sections
    # =========================================================================

    def _build_header(
        self,
        property: Property,
        valuation: ValuationResult,
        compliance: ComplianceResult,
    ) -> list:
        elements = []

        elements.append(Paragraph("FORENSIC AUDIT", self.styles['ReportBrand']))
        elements.append(Paragraph(property.title or property.id, self.styles['ReportTitle']))

        location = ", ".join(p for p in (property.address, property.neighborhood, property.city) if p)
        elements.append(Paragraph(
            f"{property.asset_type.value} - {location}",
            self.styles['ReportSubtitle'],
        ))
        elements.append(Paragraph(
            f"Report date: {format_date(self._report_date)} &nbsp;|&nbsp; "
            f"Reference: {property.id}",
            self.styles['ReportSubtitle'],
        ))

        status = compliance.overall_status
        status_color = STATUS_COLORS[status].hexval()[2:]
        elements.append(Paragraph(
            f"Risk grade <b>{valuation.risk_grade.value}</b> &nbsp;|&nbsp; "
            f"Compliance <font color='#{status_color}'><b>"
            f"{status.value.replace('_', ' ').upper()}</b></font>",
            self.styles['BodyText'],
        ))
        elements.append(HRFlowable(width="100%", thickness=0.5, color=Palette.LIGHT_GRAY))

        return elements

    def _build_valuation_summary(self, property: Property, valuation: ValuationResult) -> list:
        elements = [Paragraph("Valuation Summary", self.styles['SectionTitle'])]

        rows = [
            ["Metric", "Value"],
            ["Asking / market price", format_price(property.market_price) if property.market_price else "Not listed"],
            ["Base value", format_price(valuation.base_value)],
            ["Forensic value", format_price(valuation.forensic_value)],
            ["Risk grade", valuation.risk_grade.value],
            ["Confidence", f"{valuation.confidence_score}/100"],
        ]

        size = property.built_size_m2 or property.terrain_size_m2
        if size:
            rows.append(["Size", format_area(size)])
        if valuation.zoning_potential_value is not None:
            rows.append(["Zoning potential", format_price(valuation.zoning_potential_value)])
            rows.append(["Alpha", f"{format_price(valuation.alpha_value)} ({format_percent(valuation.alpha_percent)})"])
        if valuation.resilience_score is not None:
            rows.append(["Resilience score", f"{valuation.resilience_score}/100"])

        for label, km in (
            ("TGV station", property.distance_tgv_station_km),
            ("Grand Stade", property.distance_stadium_km),
            ("Airport", property.distance_airport_km),
        ):
            if km is not None:
                rows.append([f"Distance to {label}", format_distance(km)])

        table = Table(rows, colWidths=[70*mm, 104*mm])
        table.setStyle(_table_style())
        elements.append(table)
        return elements

    def _build_adjustments(self, valuation: ValuationResult) -> list:
        elements = [Paragraph("Value Adjustments", self.styles['SectionTitle'])]

        if not valuation.adjustments:
            elements.append(Paragraph("No adjustments were applied.", self.styles['BodyText']))
            return elements

        rows = [["Factor", "Description", "Impact %", "Impact"]]
        for adjustment in valuation.adjustments:
            rows.append([
                adjustment.factor.replace("_", " ").title(),
                Paragraph(adjustment.description, self.styles['TableCell']),
                f"{adjustment.impact_percent:+.2f}%",
                format_price(adjustment.impact_value),
            ])

        table = Table(rows, colWidths=[34*mm, 84*mm, 22*mm, 34*mm])
        style = _table_style()
        style.add('ALIGN', (2, 0), (-1, -1), 'RIGHT')
        table.setStyle(style)
        elements.append(table)
        return elements

    def _build_compliance(self, compliance: ComplianceResult) -> list:
        elements = [Paragraph("Compliance Checks", self.styles['SectionTitle'])]

        land = compliance.land_deadline
        authorization = compliance.foreign_authorization
        tax_gate = compliance.tax_gate
        seismic = compliance.seismic

        rows = [
            ["Check", "Result"],
            ["Land development deadline", self._land_deadline_text(land.applicable, land.is_flagged, land.deadline_date)],
            ["Foreign authorisation (VNA)", (
                f"Required - {authorization.estimated_delay_months} months, "
                f"{format_price(authorization.estimated_cost_mad)}"
                if authorization.required else "Not required"
            )],
            ["Tax gate (Quitus Fiscal)", (
                "Cleared" if not tax_gate.is_high_risk
                else "Present, not QR verified" if tax_gate.quitus_fiscal_present
                else "Missing"
            )],
            ["Seismic (RPS 2011/2026)", (
                f"Penalty {seismic.value_penalty_percent}%"
                if seismic.value_penalty_percent else "No penalty"
            )],
        ]
        table = Table(rows, colWidths=[70*mm, 104*mm])
        table.setStyle(_table_style())
        elements.append(table)

        if compliance.flags:
            elements.append(Spacer(1, 10))
            flag_rows = [["Severity", "Flag", "Detail"]]
            for flag in compliance.flags:
                flag_rows.append([
                    flag.severity.value.upper(),
                    Paragraph(flag.title, self.styles['TableCell']),
                    Paragraph(flag.description, self.styles['TableCell']),
                ])
            flag_table = Table(flag_rows, colWidths=[24*mm, 50*mm, 100*mm])
            style = _table_style()
            for row, flag in enumerate(compliance.flags, start=1):
                style.add('TEXTCOLOR', (0, row), (0, row), SEVERITY_COLORS[flag.severity])
            flag_table.setStyle(style)
            elements.append(flag_table)

        return elements

    @staticmethod
    def _land_deadline_text(applicable: bool, flagged: bool, deadline: Optional[date]) -> str:
        if not applicable:
            return "Not applicable"
        if deadline is None:
            return "Purchase date unknown"
        if flagged:
            return f"EXCEEDED (deadline {deadline.isoformat()})"
        return f"Within deadline ({deadline.isoformat()})"

    def _build_recommendations(self, compliance: ComplianceResult) -> list:
        elements = [Paragraph("Recommendations", self.styles['SectionTitle'])]

        if not compliance.recommendations:
            elements.append(Paragraph(
                "No outstanding actions. Proceed with standard notarial due diligence.",
                self.styles['BodyText'],
            ))
            return elements

        for recommendation in compliance.recommendations:
            elements.append(Paragraph(recommendation, self.styles['BulletText'], bulletText="•"))
        return elements


# =============================================================================
# Sample Data
# =============================================================================

def create_sample_audit() -> Tuple[Property, List[ForensicDocument]]:
    """A pre-code Palmeraie villa with an unverified Quitus Fiscal."""
    property = Property(
        id="sample-palmeraie-villa",
        title="Villa Palmeraie - 4 suites",
        asset_type=AssetType.VILLA,
        address="Circuit de la Palmeraie",
        neighborhood="Palmeraie",
        latitude=31.6695,
        longitude=-7.9811,
        terrain_size_m2=2500,
        built_size_m2=450,
        floors=2,
        rooms=4,
        bathrooms=5,
        year_built=2008,
        market_price=9_500_000,
        zoning_code=ZoningCode.SD1,
        risk_grade=RiskGrade.C,
        structural_health=StructuralHealthScore(
            seismic_chaining=False,
            humidity_score=8,
            foundation_depth_m=1.8,
            roof_life_years=3,
            overall_score=58,
        ),
        distance_tgv_station_km=6.2,
        distance_stadium_km=14.1,
        distance_airport_km=9.4,
        is_verified=True,
        verified_at=datetime(2024, 6, 1, 10, 0),
        verified_by="Field auditor",
    )
    documents = [
        ForensicDocument(
            id="doc-1",
            property_id=property.id,
            document_type=DocumentType.CERTIFICAT_PROPRIETE,
            is_verified=True,
        ),
        ForensicDocument(
            id="doc-2",
            property_id=property.id,
            document_type=DocumentType.QUITUS_FISCAL,
            is_verified=True,
            qr_code_verified=False,
        ),
    ]
    return property, documents
