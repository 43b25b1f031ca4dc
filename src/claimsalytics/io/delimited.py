"""Delimited-text (CSV / TSV) claims parser.

Tokenizes raw text with a quote-aware state machine, resolves a loosely named
header to the canonical claim columns, and emits one claim per row that
carries a procedure code. Malformed rows are skipped; a missing procedure
code column is a hard error.
"""

from __future__ import annotations

import logging

from claimsalytics.config import PayerAlias
from claimsalytics.errors import MissingColumnError
from claimsalytics.normalize import (
    normalize_money,
    normalize_payer,
    parse_service_date,
    parse_units,
)
from claimsalytics.schema import (
    UNKNOWN_ID,
    UNKNOWN_PATIENT,
    UNKNOWN_PROVIDER,
    ClaimRecord,
)

logger = logging.getLogger(__name__)

# Logical column -> accepted header names, first match wins
COLUMN_ALIASES: dict[str, tuple[str, ...]] = {
    "procedure_code": ("cpt", "procedure code", "proc code"),
    "units": ("days_or_units", "units", "days", "qty"),
    "charge": ("charges", "charge", "billed"),
    "paid": ("insurance_payment", "paid", "payment", "ins paid"),
    "patient_id": ("patient_id", "id", "mrn", "account number"),
    "patient_name": ("patient_name", "patient", "name", "patient name"),
    "payer": ("insurance provider", "payer", "insurance", "plan", "insurance_name"),
    "service_date": ("date_of_service", "dos", "date", "service date"),
    "provider": ("provider", "rendering provider", "rendering_provider", "attending"),
}


def detect_delimiter(text: str) -> str:
    """Tab if the first non-blank line contains one, else comma."""
    for line in text.splitlines():
        if line.strip():
            return "\t" if "\t" in line else ","
    return ","


def tokenize(text: str, delimiter: str) -> list[list[str]]:
    """Split text into rows of fields.

    Inside quotes, ``""`` is a literal quote and delimiters, newlines and
    carriage returns are kept verbatim. Outside quotes, carriage returns are
    dropped.
    """
    rows: list[list[str]] = []
    row: list[str] = []
    field: list[str] = []
    in_quotes = False
    i = 0
    length = len(text)

    while i < length:
        char = text[i]
        if in_quotes:
            if char == '"':
                if i + 1 < length and text[i + 1] == '"':
                    field.append('"')
                    i += 1
                else:
                    in_quotes = False
            else:
                field.append(char)
        elif char == '"':
            in_quotes = True
        elif char == delimiter:
            row.append("".join(field))
            field = []
        elif char == "\n":
            row.append("".join(field))
            rows.append(row)
            row = []
            field = []
        elif char != "\r":
            field.append(char)
        i += 1

    if field or row:
        row.append("".join(field))
        rows.append(row)
    return rows


def resolve_columns(
    header: list[str],
    aliases: dict[str, tuple[str, ...]] = COLUMN_ALIASES,
) -> dict[str, int]:
    """Map each logical column to its index in ``header``.

    Header cells are compared lowercased and trimmed. Columns with no
    matching header are left out of the result.
    """
    normalized = [cell.strip().lower() for cell in header]
    resolved: dict[str, int] = {}
    for logical, candidates in aliases.items():
        for candidate in candidates:
            if candidate in normalized:
                resolved[logical] = normalized.index(candidate)
                break
    return resolved


def _field(row: list[str], columns: dict[str, int], logical: str) -> str:
    index = columns.get(logical)
    if index is None or index >= len(row):
        return ""
    return row[index].strip()


def parse_delimited_text(
    text: str,
    fallback_provider: str = "",
    payer_aliases: list[PayerAlias] | None = None,
) -> list[ClaimRecord]:
    """Parse CSV/TSV claims text into claim records.

    Args:
        text: Complete decoded file contents.
        fallback_provider: Provider used for rows without one.
        payer_aliases: Payer alias table; defaults to the built-in table.

    Returns:
        Claims with ids 1..N in row order.

    Raises:
        MissingColumnError: If no procedure code column is present.
    """
    delimiter = detect_delimiter(text)
    rows = tokenize(text, delimiter)

    # Leading blank lines come through as a single empty field
    while rows and not any(cell.strip() for cell in rows[0]):
        rows.pop(0)
    if not rows:
        return []

    header, data_rows = rows[0], rows[1:]
    columns = resolve_columns(header)
    if "procedure_code" not in columns:
        raise MissingColumnError("CPT", [cell.strip() for cell in header if cell.strip()])

    logger.debug(
        "Delimiter %r, resolved columns: %s",
        delimiter,
        {name: header[index].strip() for name, index in columns.items()},
    )

    claims: list[ClaimRecord] = []
    skipped = 0
    for row in data_rows:
        code = _field(row, columns, "procedure_code")
        if not code:
            skipped += 1
            continue

        claims.append(
            ClaimRecord(
                claim_id=len(claims) + 1,
                provider=_field(row, columns, "provider") or fallback_provider or UNKNOWN_PROVIDER,
                procedure_code=code,
                units=parse_units(_field(row, columns, "units")),
                charge=normalize_money(_field(row, columns, "charge")),
                paid=abs(normalize_money(_field(row, columns, "paid"))),
                patient_id=_field(row, columns, "patient_id") or UNKNOWN_ID,
                patient_name=_field(row, columns, "patient_name") or UNKNOWN_PATIENT,
                payer=normalize_payer(_field(row, columns, "payer"), payer_aliases),
                service_date=parse_service_date(_field(row, columns, "service_date")),
            )
        )

    logger.info("Parsed %d claims from delimited text (%d rows skipped)", len(claims), skipped)
    return claims
