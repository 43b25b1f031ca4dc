"""CSV export and money display formatting for normalized claims."""

from __future__ import annotations

from pathlib import Path

from claimsalytics.schema import ClaimRecord

EXPORT_HEADERS = [
    "Claim ID",
    "Provider",
    "Payer",
    "Patient Name",
    "Patient ID",
    "CPT",
    "Units",
    "DOS",
    "Charge",
    "Paid",
    "Status",
]


def escape_field(value: object) -> str:
    """Quote a field holding a comma, quote or newline; double inner quotes."""
    text = "" if value is None else str(value)
    if "," in text or '"' in text or "\n" in text:
        return '"' + text.replace('"', '""') + '"'
    return text


def format_units(units: float) -> str:
    return str(int(units)) if float(units).is_integer() else str(units)


def claim_to_row(claim: ClaimRecord) -> list[str]:
    return [
        str(claim.claim_id),
        claim.provider,
        claim.payer,
        claim.patient_name,
        claim.patient_id,
        claim.procedure_code,
        format_units(claim.units),
        claim.service_date.isoformat() if claim.service_date else "",
        f"{claim.charge:.2f}",
        f"{claim.paid:.2f}",
        "Paid" if claim.is_paid else "Unpaid",
    ]


def export_claims_csv(claims: list[ClaimRecord]) -> str:
    """Render claims as CSV text, header first, rows joined by ``\\n``."""
    lines = [",".join(escape_field(header) for header in EXPORT_HEADERS)]
    for claim in claims:
        lines.append(",".join(escape_field(field) for field in claim_to_row(claim)))
    return "\n".join(lines)


def write_claims_csv(claims: list[ClaimRecord], path: Path) -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(export_claims_csv(claims), encoding="utf-8")
    return path


def format_money(amount: float) -> str:
    """USD display string, e.g. ``$1,234.56`` or ``-$12.00``."""
    sign = "-" if amount < 0 else ""
    return f"{sign}${abs(amount):,.2f}"
