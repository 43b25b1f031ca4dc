"""Patient encounter aggregation.

A visit is one distinct (patient, service date) pair; all unknown dates of a
patient share a single visit bucket.
"""

from __future__ import annotations

import polars as pl

from claimsalytics.schema import ClaimRecord, PatientStat, claims_to_frame


def analyze_patients(claims: list[ClaimRecord]) -> list[PatientStat]:
    """Compute one revenue/visit summary per patient id, in first-seen order.

    ``payer`` is taken from the first claim seen for each patient.
    """
    df = claims_to_frame(claims)
    if df.height == 0:
        return []

    summary = df.group_by("patient_id", maintain_order=True).agg(
        pl.col("patient_name").first().alias("patient_name"),
        # n_unique counts null as one value: the unknown-date bucket
        pl.col("service_date").n_unique().alias("total_visits"),
        pl.col("paid").sum().alias("total_revenue"),
        pl.col("service_date").max().alias("last_visit"),
        pl.col("payer").first().alias("payer"),
    )

    return [PatientStat(**row) for row in summary.iter_rows(named=True)]
