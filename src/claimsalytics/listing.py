"""Claim listings grouped by service month.

Filters a batch by paid status, buckets it by ``YYYY-MM`` and orders the
lines inside each month chronologically by ``sort_key``.
"""

from __future__ import annotations

from enum import Enum

from pydantic import BaseModel, Field, computed_field

from claimsalytics.schema import ClaimRecord

UNKNOWN_MONTH = "Unknown Date"


class ClaimStatus(str, Enum):
    ALL = "all"
    PAID = "paid"
    UNPAID = "unpaid"


class MonthGroup(BaseModel):
    """Claim lines of one service month."""

    month: str = Field(description=f"YYYY-MM, or '{UNKNOWN_MONTH}'")
    claims: list[ClaimRecord] = Field(default_factory=list)

    @computed_field  # type: ignore[prop-decorator]
    @property
    def total_paid(self) -> float:
        return sum(claim.paid for claim in self.claims)

    @computed_field  # type: ignore[prop-decorator]
    @property
    def unpaid_lines(self) -> int:
        return sum(1 for claim in self.claims if not claim.is_paid)


def filter_by_status(claims: list[ClaimRecord], status: ClaimStatus) -> list[ClaimRecord]:
    if status == ClaimStatus.PAID:
        return [claim for claim in claims if claim.is_paid]
    if status == ClaimStatus.UNPAID:
        return [claim for claim in claims if not claim.is_paid]
    return list(claims)


def sort_claims(claims: list[ClaimRecord], descending: bool = False) -> list[ClaimRecord]:
    """Order claims by ``sort_key``; equal keys keep their input order.

    Unknown dates have a key of 0, so they lead an ascending listing.
    """
    return sorted(claims, key=lambda claim: claim.sort_key, reverse=descending)


def month_key(claim: ClaimRecord) -> str:
    if claim.service_date is None:
        return UNKNOWN_MONTH
    return claim.service_date.strftime("%Y-%m")


def claims_by_month(
    claims: list[ClaimRecord],
    status: ClaimStatus = ClaimStatus.ALL,
    descending: bool = False,
) -> list[MonthGroup]:
    """Group claims by service month for a claims listing.

    Args:
        claims: Claims of the batch.
        status: Keep all lines, only paid or only unpaid ones.
        descending: Newest month first instead of oldest.

    Returns:
        One group per month. The unknown-date group is always last, and
        lines within a group are in ascending ``sort_key`` order.
    """
    groups: dict[str, list[ClaimRecord]] = {}
    for claim in filter_by_status(claims, ClaimStatus(status)):
        groups.setdefault(month_key(claim), []).append(claim)

    months = sorted((m for m in groups if m != UNKNOWN_MONTH), reverse=descending)
    if UNKNOWN_MONTH in groups:
        months.append(UNKNOWN_MONTH)

    return [MonthGroup(month=month, claims=sort_claims(groups[month])) for month in months]
