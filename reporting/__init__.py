"""
Reporting module for the Forensic Valuation Engine.

Generates forensic audit PDFs from a valuation and compliance result.

Usage:
    from reporting import AuditReportGenerator, create_sample_audit

    property, documents = create_sample_audit()
    result = AuditReportGenerator().generate_report(property, valuation, compliance)
"""

from .audit_report import (
    AuditReportGenerator,
    AuditReportSuccess,
    Palette,
    create_sample_audit,
    get_report_styles,
)

__all__ = [
    "AuditReportGenerator",
    "AuditReportSuccess",
    "Palette",
    "create_sample_audit",
    "get_report_styles",
]
