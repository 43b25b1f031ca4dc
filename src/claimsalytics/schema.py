"""Schema definitions for normalized claim data.

Provides:
- Enum-like tags for procedure-code classes, rate methods and report layouts.
- Pydantic models for claim records and the derived analytics records.
- The Polars frame schema used by the tabular aggregations.
"""

from __future__ import annotations

import calendar
from datetime import date
from enum import Enum

import polars as pl
from pydantic import BaseModel, ConfigDict, Field, computed_field, field_validator

# ---------------------------------------------------------------------------
# Placeholders and thresholds
# ---------------------------------------------------------------------------
UNKNOWN_PROVIDER = "Unknown Provider"
UNKNOWN_PAYER = "Unknown Payer"
UNKNOWN_ID = "Unknown ID"
UNKNOWN_PATIENT = "Unknown Patient"

# A line paying this much or less is a denial
PAID_THRESHOLD = 0.01

AQL_PREFIXES = ("A", "Q", "L")

# Codes listed per payer in the denial breakdown
TOP_DENIED_CODES = 5


class CodeClass(str, Enum):
    """Procedure-code class derived from the first character of the code."""

    AQL = "AQL"  # alpha-prefixed: A, Q or L
    NUMERIC = "NUMERIC"
    OTHER = "OTHER"


class RateMethod(str, Enum):
    """Statistic used to pick an expected rate from a payment history."""

    MODE = "Mode"
    MAX = "Max"
    NONE = "None"


class ReportLayout(str, Enum):
    """Layouts recognized in unstructured spreadsheet reports."""

    PAYMENT_REPORT = "payment_report"
    VISIT_REPORT = "visit_report"


# ---------------------------------------------------------------------------
# Pydantic record models
# ---------------------------------------------------------------------------
class ClaimRecord(BaseModel):
    """A single normalized claim line, immutable once constructed."""

    model_config = ConfigDict(frozen=True)

    claim_id: int = Field(ge=1, description="Sequence number, unique within a batch")
    provider: str = UNKNOWN_PROVIDER
    procedure_code: str = Field(description="Uppercase CPT/HCPCS code, never empty")
    units: float = Field(default=0.0, ge=0)
    charge: float = 0.0
    paid: float = 0.0
    patient_id: str = UNKNOWN_ID
    patient_name: str = UNKNOWN_PATIENT
    payer: str = UNKNOWN_PAYER
    service_date: date | None = None

    @field_validator("procedure_code")
    @classmethod
    def _uppercase_code(cls, value: str) -> str:
        code = value.strip().upper()
        if not code:
            raise ValueError("procedure_code must not be empty")
        return code

    @field_validator("charge", "paid")
    @classmethod
    def _absolute_amount(cls, value: float) -> float:
        return abs(value)

    @computed_field  # type: ignore[prop-decorator]
    @property
    def code_class(self) -> CodeClass:
        from claimsalytics.normalize import classify_code

        return classify_code(self.procedure_code)

    @computed_field  # type: ignore[prop-decorator]
    @property
    def is_paid(self) -> bool:
        return self.paid > PAID_THRESHOLD

    @computed_field  # type: ignore[prop-decorator]
    @property
    def sort_key(self) -> int:
        """Epoch seconds of the service date; 0 when the date is unknown."""
        if self.service_date is None:
            return 0
        return calendar.timegm(self.service_date.timetuple())


class ExpectedRate(BaseModel):
    """Inferred per-unit reimbursement for one (payer, procedure code) pair."""

    payer: str
    procedure_code: str
    expected_rate: float = 0.0
    method: RateMethod = RateMethod.NONE
    frequency: int = Field(default=0, description="Occurrences of the modal rate")


# payer -> procedure code -> entry
RateTable = dict[str, dict[str, ExpectedRate]]


class DeniedCode(BaseModel):
    procedure_code: str
    units: float


class PayerDenialStat(BaseModel):
    """Denied volume and projected recoverable revenue for one payer."""

    payer: str
    denied_units: float = 0.0
    denied_charges: float = Field(default=0.0, description="Sum of billed charge on unpaid lines")
    projected_value: float = Field(
        default=0.0, description="Sum of units × expected rate where a rate is known"
    )
    denied_code_units: dict[str, float] = Field(
        default_factory=dict, description="Procedure code -> denied units, first-seen order"
    )

    @computed_field  # type: ignore[prop-decorator]
    @property
    def top_denied_codes(self) -> list[DeniedCode]:
        """Most-denied codes by units; equal counts keep first-seen order."""
        ranked = sorted(self.denied_code_units.items(), key=lambda item: item[1], reverse=True)
        return [
            DeniedCode(procedure_code=code, units=units)
            for code, units in ranked[:TOP_DENIED_CODES]
        ]


class PatientStat(BaseModel):
    """Revenue and visit summary for one patient id."""

    patient_id: str
    patient_name: str
    total_visits: int = Field(default=0, description="Distinct service dates")
    total_revenue: float = 0.0
    last_visit: date | None = None
    payer: str = Field(
        default=UNKNOWN_PAYER,
        description="Payer of the first claim seen for this patient (not an authoritative primary payer)",
    )


# ---------------------------------------------------------------------------
# Polars frame schema (column name → dtype)
# Used by the tabular aggregations in patients.py and summary.py.
# ---------------------------------------------------------------------------
CLAIM_FRAME_SCHEMA: dict[str, pl.DataType] = {
    "claim_id": pl.Int64(),
    "provider": pl.Utf8(),
    "procedure_code": pl.Utf8(),
    "code_class": pl.Utf8(),
    "units": pl.Float64(),
    "charge": pl.Float64(),
    "paid": pl.Float64(),
    "is_paid": pl.Boolean(),
    "patient_id": pl.Utf8(),
    "patient_name": pl.Utf8(),
    "payer": pl.Utf8(),
    "service_date": pl.Date(),
    "sort_key": pl.Int64(),
}


def claims_to_frame(claims: list[ClaimRecord]) -> pl.DataFrame:
    """Build a one-row-per-claim DataFrame, preserving input order."""
    columns: dict[str, list] = {name: [] for name in CLAIM_FRAME_SCHEMA}
    for claim in claims:
        for name in CLAIM_FRAME_SCHEMA:
            value = getattr(claim, name)
            if isinstance(value, Enum):
                value = value.value
            columns[name].append(value)
    return pl.DataFrame(columns, schema=CLAIM_FRAME_SCHEMA)
