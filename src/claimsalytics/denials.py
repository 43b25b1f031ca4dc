"""Denial opportunity projection per payer."""

from __future__ import annotations

from claimsalytics.schema import ClaimRecord, PayerDenialStat, RateTable


def calculate_denial_opportunity(
    claims: list[ClaimRecord],
    rates: RateTable,
) -> list[PayerDenialStat]:
    """Aggregate unpaid lines per payer and project their recoverable value.

    A line is valued at ``units × expected rate`` for its (payer, code). Lines
    without a known rate add nothing to ``projected_value``; billed charge is
    never used as a substitute.

    Returns:
        One stat per payer with unpaid lines, in first-seen order.
    """
    stats: dict[str, PayerDenialStat] = {}
    for claim in claims:
        if claim.is_paid:
            continue
        stat = stats.setdefault(claim.payer, PayerDenialStat(payer=claim.payer))
        stat.denied_units += claim.units
        stat.denied_charges += claim.charge
        codes = stat.denied_code_units
        codes[claim.procedure_code] = codes.get(claim.procedure_code, 0.0) + claim.units

        entry = rates.get(claim.payer, {}).get(claim.procedure_code)
        if entry is not None:
            stat.projected_value += claim.units * entry.expected_rate

    return list(stats.values())
