"""Batch-level summaries rendered by the dashboard.

Computes headline KPIs, the monthly paid trend, the A/Q/L code summary and
per-code / per-payer disposition tables from a claim set.
"""

from __future__ import annotations

import polars as pl
from pydantic import BaseModel, Field

from claimsalytics.denials import calculate_denial_opportunity
from claimsalytics.schema import AQL_PREFIXES, ClaimRecord, CodeClass, RateTable, claims_to_frame


class KpiSummary(BaseModel):
    """Headline metrics for a batch."""

    total_collected: float = 0.0
    total_encounters: int = Field(default=0, description="Distinct (patient, date) pairs")
    total_units: float = 0.0
    paid_units: float = 0.0
    denial_rate: float = Field(default=0.0, description="Percent of units unpaid")
    projected_opportunity: float = Field(
        default=0.0, description="Sum of projected value across payers"
    )


class MonthlyStat(BaseModel):
    month: str = Field(description="YYYY-MM")
    paid: float
    units: float


class DispositionStat(BaseModel):
    """Unit disposition and payment for one grouping key."""

    key: str
    payer: str | None = None
    units: float = 0.0
    paid_units: float = 0.0
    unpaid_units: float = 0.0
    paid_amount: float = 0.0
    lines: int = 0


def _disposition_aggs(paid_amount: pl.Expr) -> list[pl.Expr]:
    return [
        pl.col("units").sum().alias("units"),
        pl.col("units").filter(pl.col("is_paid")).sum().alias("paid_units"),
        pl.col("units").filter(~pl.col("is_paid")).sum().alias("unpaid_units"),
        paid_amount.alias("paid_amount"),
        pl.len().alias("lines"),
    ]


def compute_kpis(claims: list[ClaimRecord], rates: RateTable) -> KpiSummary:
    """Compute the headline KPIs.

    The denial rate is measured by unit volume, not by line count.
    """
    df = claims_to_frame(claims)
    if df.height == 0:
        return KpiSummary()

    total_units = float(df["units"].sum())
    paid_units = float(df.filter(pl.col("is_paid"))["units"].sum())
    denial_rate = (total_units - paid_units) / total_units * 100 if total_units else 0.0
    denials = calculate_denial_opportunity(claims, rates)

    return KpiSummary(
        total_collected=float(df["paid"].sum()),
        total_encounters=df.select("patient_id", "service_date").unique().height,
        total_units=total_units,
        paid_units=paid_units,
        denial_rate=denial_rate,
        projected_opportunity=sum(stat.projected_value for stat in denials),
    )


def monthly_trend(claims: list[ClaimRecord]) -> list[MonthlyStat]:
    """Paid amount and units per service month; unknown dates are excluded."""
    df = claims_to_frame(claims).filter(pl.col("service_date").is_not_null())
    if df.height == 0:
        return []

    monthly = (
        df.with_columns(pl.col("service_date").dt.strftime("%Y-%m").alias("month"))
        .group_by("month")
        .agg(
            pl.col("paid").sum().alias("paid"),
            pl.col("units").sum().alias("units"),
        )
        .sort("month")
    )
    return [MonthlyStat(**row) for row in monthly.iter_rows(named=True)]


def code_class_summary(claims: list[ClaimRecord]) -> list[DispositionStat]:
    """Disposition of alpha-prefixed codes, one row per leading letter A, Q, L."""
    df = claims_to_frame(claims).filter(pl.col("code_class") == CodeClass.AQL.value)
    by_letter: dict[str, DispositionStat] = {
        letter: DispositionStat(key=letter) for letter in AQL_PREFIXES
    }
    if df.height == 0:
        return list(by_letter.values())

    grouped = (
        df.with_columns(pl.col("procedure_code").str.slice(0, 1).alias("key"))
        .group_by("key")
        .agg(_disposition_aggs(pl.col("paid").sum()))
    )
    for row in grouped.iter_rows(named=True):
        by_letter[row["key"]] = DispositionStat(**row)
    return list(by_letter.values())


def procedure_summary(claims: list[ClaimRecord]) -> list[DispositionStat]:
    """Disposition per procedure code, sorted by code."""
    df = claims_to_frame(claims)
    if df.height == 0:
        return []

    grouped = (
        df.group_by("procedure_code")
        .agg(_disposition_aggs(pl.col("paid").sum()))
        .rename({"procedure_code": "key"})
        .sort("key")
    )
    return [DispositionStat(**row) for row in grouped.iter_rows(named=True)]


def payer_procedure_summary(claims: list[ClaimRecord]) -> list[DispositionStat]:
    """Disposition per (procedure code, payer), sorted by code then payer.

    ``paid_amount`` only counts paid lines.
    """
    df = claims_to_frame(claims)
    if df.height == 0:
        return []

    grouped = (
        df.group_by("procedure_code", "payer")
        .agg(_disposition_aggs(pl.col("paid").filter(pl.col("is_paid")).sum()))
        .rename({"procedure_code": "key"})
        .sort("key", "payer")
    )
    return [DispositionStat(**row) for row in grouped.iter_rows(named=True)]
