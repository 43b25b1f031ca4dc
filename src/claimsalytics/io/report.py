"""Unstructured spreadsheet report parser.

A report is a 2-D grid of cells already decoded from its container. The row
holding a "Date of Service" / "DOS" cell anchors the header; the header
decides between two layouts:

- Payment report: has an "Applied Payments" column. "Provider Name:" rows
  set the current provider for the lines below them.
- Visit report: patient and insurance context is written inline as
  key/value rows ("Patient:", "Insurance:") above each patient's lines.

Both layouts are extracted by folding a step function over the rows. A step
takes the running context and one row and returns the next context plus at
most one claim.
"""

from __future__ import annotations

import logging
import re
from collections.abc import Callable, Sequence
from typing import Any

from pydantic import BaseModel, ConfigDict

from claimsalytics.config import PayerAlias
from claimsalytics.errors import MissingHeaderError
from claimsalytics.normalize import (
    cell_text,
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
    ReportLayout,
)

logger = logging.getLogger(__name__)

HEADER_ANCHORS = ("date of service", "dos")

# Logical column -> accepted (lowercased) header cells, first match wins
REPORT_COLUMN_ALIASES: dict[str, tuple[str, ...]] = {
    "service_date": ("dos", "date of service"),
    "procedure_code": ("cpt",),
    "applied_payment": ("applied payments",),
    "description": ("desc.",),
    "patient_name": ("patient name",),
    "patient_id": ("patient id",),
    "payer": ("payer",),
    "units": ("days or units", "units"),
    "charge": ("charges",),
    "paid": ("insurance payment",),
}

_PROVIDER_LABEL = re.compile(r"provider name:", re.IGNORECASE)
_US_DATE_SHAPE = re.compile(r"\d{1,2}/\d{1,2}/\d{4}")
_ISO_DATE_SHAPE = re.compile(r"^\d{4}-\d{2}-\d{2}$")


class ReportContext(BaseModel):
    """Running context carried from context rows to the data rows below them."""

    model_config = ConfigDict(frozen=True)

    provider: str = ""
    payer: str = ""
    patient_id: str = ""
    patient_name: str = ""


class _Settings(BaseModel):
    fallback_provider: str = ""
    payer_aliases: list[PayerAlias] | None = None


ClaimFields = dict[str, Any]
Step = Callable[
    [ReportContext, list[str], dict[str, int], _Settings],
    tuple[ReportContext, ClaimFields | None],
]


# ---------------------------------------------------------------------------
# Header resolution (shared by both layouts)
# ---------------------------------------------------------------------------
def find_header_row(grid: Sequence[Sequence[object]]) -> int:
    """Index of the first row holding a date-of-service header cell."""
    for index, row in enumerate(grid):
        for cell in row:
            if isinstance(cell, str) and cell.strip().lower() in HEADER_ANCHORS:
                return index
    raise MissingHeaderError()


def build_header_map(header_row: Sequence[object]) -> dict[str, int]:
    """Lowercased header text -> column index; later duplicates win."""
    header: dict[str, int] = {}
    for index, cell in enumerate(header_row):
        if isinstance(cell, str) and cell.strip():
            header[cell.strip().lower()] = index
    return header


def resolve_report_columns(header: dict[str, int]) -> dict[str, int]:
    columns: dict[str, int] = {}
    for logical, candidates in REPORT_COLUMN_ALIASES.items():
        for candidate in candidates:
            if candidate in header:
                columns[logical] = header[candidate]
                break
    return columns


def detect_layout(header: dict[str, int]) -> ReportLayout:
    if "applied payments" in header:
        return ReportLayout.PAYMENT_REPORT
    return ReportLayout.VISIT_REPORT


# ---------------------------------------------------------------------------
# Row helpers
# ---------------------------------------------------------------------------
def _get(cells: list[str], columns: dict[str, int], logical: str) -> str:
    index = columns.get(logical)
    if index is None or index >= len(cells):
        return ""
    return cells[index]


def find_value_by_keyword(cells: list[str], keyword: str) -> str:
    """Value of an inline ``Key: value`` pair within a row.

    The value is the remainder of the keyword's own cell, or failing that
    the next non-empty cell to its right.
    """
    needle = keyword.lower().replace(":", "")
    index = next((i for i, cell in enumerate(cells) if needle in cell.lower()), None)
    if index is None:
        return ""

    remainder = re.sub(re.escape(keyword), "", cells[index], count=1, flags=re.IGNORECASE)
    remainder = remainder.replace(":", "", 1).strip()
    if remainder:
        return remainder

    for cell in cells[index + 1 :]:
        if cell:
            return cell
    return ""


def _has_date_shape(text: str) -> bool:
    return bool(_US_DATE_SHAPE.search(text) or _ISO_DATE_SHAPE.match(text))


# ---------------------------------------------------------------------------
# Layout steps
# ---------------------------------------------------------------------------
def _payment_report_step(
    context: ReportContext,
    cells: list[str],
    columns: dict[str, int],
    settings: _Settings,
) -> tuple[ReportContext, ClaimFields | None]:
    flat = " ".join(cells).lower()
    if "provider name:" in flat:
        label = next((cell for cell in cells if "provider name:" in cell.lower()), "")
        provider = _PROVIDER_LABEL.sub("", label, count=1).strip()
        return context.model_copy(update={"provider": provider or context.provider}), None

    service_date = _get(cells, columns, "service_date")
    code = _get(cells, columns, "procedure_code")
    if not (service_date and code):
        return context, None

    if "adj" in _get(cells, columns, "description").lower():
        return context, None

    return context, {
        "provider": context.provider or settings.fallback_provider or UNKNOWN_PROVIDER,
        "procedure_code": code,
        "units": 1.0,  # this layout carries no unit counts
        "charge": 0.0,
        "paid": abs(normalize_money(_get(cells, columns, "applied_payment"))),
        "patient_id": _get(cells, columns, "patient_id") or UNKNOWN_ID,
        "patient_name": _get(cells, columns, "patient_name") or UNKNOWN_PATIENT,
        "payer": normalize_payer(_get(cells, columns, "payer"), settings.payer_aliases),
        "service_date": parse_service_date(service_date),
    }


def _visit_report_step(
    context: ReportContext,
    cells: list[str],
    columns: dict[str, int],
    settings: _Settings,
) -> tuple[ReportContext, ClaimFields | None]:
    flat = " ".join(cells).lower()
    if "sub total" in flat or "page:" in flat:
        return context, None

    lowered = [cell.lower() for cell in cells]
    if any(cell.startswith("patient:") for cell in lowered):
        return (
            ReportContext(
                patient_name=find_value_by_keyword(cells, "Patient:"),
                patient_id=find_value_by_keyword(cells, "Patient ID:"),
            ),
            None,
        )

    if any(cell.startswith("insurance:") for cell in lowered):
        return (
            context.model_copy(
                update={
                    "payer": find_value_by_keyword(cells, "Insurance:"),
                    "provider": find_value_by_keyword(cells, "Provider:"),
                }
            ),
            None,
        )

    service_date = _get(cells, columns, "service_date")
    code = _get(cells, columns, "procedure_code")
    if not (_has_date_shape(service_date) and code):
        return context, None

    return context, {
        "provider": context.provider or settings.fallback_provider or UNKNOWN_PROVIDER,
        "procedure_code": code,
        "units": parse_units(_get(cells, columns, "units")),
        "charge": normalize_money(_get(cells, columns, "charge")),
        "paid": abs(normalize_money(_get(cells, columns, "paid"))),
        "patient_id": context.patient_id or UNKNOWN_ID,
        "patient_name": context.patient_name or UNKNOWN_PATIENT,
        "payer": normalize_payer(context.payer, settings.payer_aliases),
        "service_date": parse_service_date(service_date),
    }


LAYOUT_STEPS: dict[ReportLayout, Step] = {
    ReportLayout.PAYMENT_REPORT: _payment_report_step,
    ReportLayout.VISIT_REPORT: _visit_report_step,
}


def parse_report_grid(
    grid: Sequence[Sequence[object]],
    fallback_provider: str = "",
    payer_aliases: list[PayerAlias] | None = None,
) -> list[ClaimRecord]:
    """Extract claims from a decoded spreadsheet report.

    Args:
        grid: Rows of cell values (text, numbers, dates or ``None``).
        fallback_provider: Provider used when no context row names one.
        payer_aliases: Payer alias table; defaults to the built-in table.

    Returns:
        Claims with ids 1..N in row order.

    Raises:
        MissingHeaderError: If no row holds a date-of-service header cell.
    """
    header_index = find_header_row(grid)
    header = build_header_map(grid[header_index])
    columns = resolve_report_columns(header)
    layout = detect_layout(header)
    step = LAYOUT_STEPS[layout]
    settings = _Settings(fallback_provider=fallback_provider, payer_aliases=payer_aliases)

    logger.debug(
        "Report header at row %d, layout=%s, columns=%s",
        header_index,
        layout.value,
        columns,
    )

    context = ReportContext()
    drafts: list[ClaimFields] = []
    for row in grid[header_index + 1 :]:
        cells = [cell_text(cell) for cell in row]
        if not any(cells):
            continue
        context, draft = step(context, cells, columns, settings)
        if draft is not None:
            drafts.append(draft)

    claims = [ClaimRecord(claim_id=index, **draft) for index, draft in enumerate(drafts, start=1)]
    logger.info("Parsed %d claims from %s", len(claims), layout.value)
    return claims
