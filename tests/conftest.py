"""Shared test fixtures for claims analytics tests."""

from __future__ import annotations

import textwrap
from collections.abc import Callable
from datetime import date, datetime

import pytest

from claimsalytics.config import PipelineConfig
from claimsalytics.schema import ClaimRecord


@pytest.fixture
def config() -> PipelineConfig:
    """Default test configuration."""
    return PipelineConfig(default_provider="Dr. Fallback")


@pytest.fixture
def sample_csv_text() -> str:
    """A small comma-delimited export with loosely named columns."""
    return textwrap.dedent("""\
        CPT,Units,Charges,Insurance_Payment,Patient_ID,Patient_Name,Payer,Date_of_Service,Provider
        99213,1,$150.00,$80.00,P100,"Doe, Jane",Aetna,2024-01-15,Dr. Adams
        a4550,2,40.00,(20.00),P100,"Doe, Jane",UHC Choice Plus,1/15/2024,
        ,1,10.00,0,P999,Nobody,Aetna,2024-01-16,Dr. Adams
        99214,x,200,,P200,,,pending,Dr. Baker
    """)


@pytest.fixture
def payment_report_grid() -> list[list[object]]:
    """An 'applied payments' report as decoded from a workbook."""
    return [
        ["Applied Payments Report", None, None, None, None, None, None],
        [None, None, None, None, None, None, None],
        ["Patient Name", "Patient ID", "DOS", "CPT", "Desc.", "Payer", "Applied Payments"],
        ["Provider Name: XINGBO SUN, DPM", None, None, None, None, None, None],
        ["Smith, Ann", "P300", "03/01/2024", "L3000", "Payment", "United", "($120.00)"],
        ["Smith, Ann", "P300", "03/01/2024", "L3000", "Contractual Adj", "United", "-30.00"],
        [None, None, None, None, None, None, None],
        ["Provider Name: JANE LEE, MD", None, None, None, None, None, None],
        ["Brown, Bob", "P400", datetime(2024, 3, 5), 99203.0, "Payment", "Aetna", 95.5],
        ["Total", None, None, None, None, None, "215.50"],
    ]


@pytest.fixture
def visit_report_grid() -> list[list[object]]:
    """A 'patient visit' report with inline key/value context rows."""
    return [
        ["Patient Visit Report", None, None, None, None],
        ["Date of Service", "CPT", "Days or Units", "Charges", "Insurance Payment"],
        ["Patient:", "Doe, Jane", "Patient ID:", "P100", None],
        ["Insurance:", "UHC Choice Plus", "Provider:", "Dr. Adams", None],
        ["01/15/2024", "99213", 1, "$150.00", "$80.00"],
        ["1/15/2024", "a4550", 2, "40.00", "(20.00)"],
        ["Sub Total", None, 3, "$190.00", "$100.00"],
        ["Patient: Roe, Rick", None, "Patient ID: P200", None, None],
        ["2024-02-01", "99214", 1, "200", 0],
        ["Note", "99999", 1, "10", "10"],
        ["Page: 1 of 1", None, None, None, None],
    ]


@pytest.fixture
def claim_factory() -> Callable[..., ClaimRecord]:
    """Build claims with sensible defaults; keyword arguments override."""
    counter = {"next": 1}

    def make(**overrides: object) -> ClaimRecord:
        fields: dict[str, object] = {
            "claim_id": counter["next"],
            "provider": "Dr. Adams",
            "procedure_code": "99213",
            "units": 1.0,
            "charge": 100.0,
            "paid": 80.0,
            "patient_id": "P100",
            "patient_name": "Doe, Jane",
            "payer": "Aetna",
            "service_date": date(2024, 1, 15),
        }
        fields.update(overrides)
        counter["next"] += 1
        return ClaimRecord(**fields)

    return make


@pytest.fixture
def mixed_claims(claim_factory: Callable[..., ClaimRecord]) -> list[ClaimRecord]:
    """Paid and denied lines across two payers and three patients."""
    return [
        claim_factory(paid=80.0),
        claim_factory(procedure_code="A4550", units=2, charge=40.0, paid=30.0),
        claim_factory(paid=0.0, units=2, charge=150.0, service_date=date(2024, 2, 1)),
        claim_factory(
            payer="UnitedHealthcare", patient_id="P200", patient_name="Roe, Rick",
            procedure_code="99214", paid=0.0, units=1, charge=200.0,
        ),
        claim_factory(
            patient_id="P300", patient_name="Smith, Ann", procedure_code="L3000",
            service_date=None, paid=120.0, charge=0.0,
        ),
    ]
