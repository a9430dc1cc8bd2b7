#!/usr/bin/env python3
"""
CLI for generating forensic audit PDFs.

Usage:
    python -m reporting.cli sample
    python -m reporting.cli generate <audit_json>

Examples:
    # Generate sample report for testing
    python -m reporting.cli sample

    # Generate from a JSON audit file
    python -m reporting.cli generate audits/palmeraie_villa.json

The audit file holds the property record plus its documents:

    {
        "property": {"id": "...", "asset_type": "Villa", ...},
        "documents": [{"id": "...", "document_type": "quitus_fiscal", ...}],
        "purchase_date": "2019-03-01",
        "buyer_nationality": "FR"
    }
"""

import argparse
import json
import sys
from datetime import date
from pathlib import Path

from forensic import (
    ForensicDocument,
    Property,
    calculate_fair_market_value,
    perform_compliance_audit,
)
from forensic.reference import DEFAULT_INFRASTRUCTURE, ZONING_CODE_INFO
from utils.config import Config

from .audit_report import AuditReportGenerator, create_sample_audit


def parse_audit_from_json(data: dict):
    """
    Parse a JSON dictionary into the inputs of one audit.

    Args:
        data: Dictionary with "property" and optional "documents",
            "purchase_date" and "buyer_nationality"

    Returns:
        Tuple of (property, documents, purchase_date, buyer_nationality)
    """
    property = Property.from_dict(data["property"])
    documents = [
        ForensicDocument.from_dict({"property_id": property.id, **doc})
        for doc in data.get("documents", [])
    ]

    purchase_date = data.get("purchase_date")
    if purchase_date:
        purchase_date = date.fromisoformat(purchase_date)

    return property, documents, purchase_date, data.get("buyer_nationality")


def _write_report(property, documents, purchase_date, buyer_nationality, output_dir) -> Path:
    zoning_info = ZONING_CODE_INFO.get(property.zoning_code) if property.zoning_code else None
    valuation = calculate_fair_market_value(property, zoning_info, DEFAULT_INFRASTRUCTURE)
    compliance = perform_compliance_audit(
        property,
        documents,
        purchase_date=purchase_date,
        buyer_nationality=buyer_nationality,
    )

    print(f"Forensic value: {valuation.forensic_value:,.0f} MAD (grade {valuation.risk_grade.value})")
    print(f"Compliance: {compliance.overall_status.value}")

    result = AuditReportGenerator().generate_report(property, valuation, compliance, output_dir)
    return result.path


def cmd_sample(args):
    """Generate a sample audit report for testing."""
    print("Generating sample forensic audit...")

    property, documents = create_sample_audit()
    filepath = _write_report(property, documents, None, "FR", args.output_dir)

    print(f"Report generated: {filepath}")
    return 0


def cmd_generate(args):
    """Generate a report from a JSON audit file."""
    input_path = Path(args.audit_file)

    if not input_path.exists():
        print(f"Error: File not found: {input_path}", file=sys.stderr)
        return 1

    print(f"Loading audit from: {input_path}")

    try:
        with open(input_path, "r") as f:
            data = json.load(f)
    except json.JSONDecodeError as e:
        print(f"Error: Invalid JSON: {e}", file=sys.stderr)
        return 1

    try:
        property, documents, purchase_date, nationality = parse_audit_from_json(data)
    except (KeyError, ValueError) as e:
        print(f"Error: Invalid audit data: {e}", file=sys.stderr)
        return 1

    print(f"Generating report for: {property.title or property.id}")
    filepath = _write_report(property, documents, purchase_date, nationality, args.output_dir)

    print(f"Report generated: {filepath}")
    return 0


def main(argv=None):
    """Main CLI entry point."""
    parser = argparse.ArgumentParser(
        description="Forensic Valuation Engine - Audit Report Generator",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
    python -m reporting.cli sample
    python -m reporting.cli generate audits/palmeraie_villa.json

Output:
    Reports are saved to: $REPORTS_DIR/FVE-<property_id>.pdf
        """,
    )
    parser.add_argument(
        "--output-dir",
        default=Config.load().reports_dir,
        help="Directory for generated PDFs",
    )

    subparsers = parser.add_subparsers(dest="command", required=True)

    # Sample command
    sample_parser = subparsers.add_parser(
        "sample",
        help="Generate a sample report with mock data",
    )
    sample_parser.set_defaults(func=cmd_sample)

    # Generate command
    gen_parser = subparsers.add_parser(
        "generate",
        help="Generate a report from a JSON audit file",
    )
    gen_parser.add_argument(
        "audit_file",
        help="Path to JSON audit file",
    )
    gen_parser.set_defaults(func=cmd_generate)

    args = parser.parse_args(argv)
    return args.func(args)


if __name__ == "__main__":
    sys.exit(main())
