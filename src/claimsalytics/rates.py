"""Expected reimbursement rate inference.

For every (payer, procedure code) pair with paid history, the per-unit
payment is rounded to cents and counted. Groups with more than two distinct
rates use the modal rate (ties go to the higher rate); smaller groups use
the highest rate seen.
"""

from __future__ import annotations

import logging
import math
from collections import Counter

from claimsalytics.schema import ClaimRecord, ExpectedRate, RateMethod, RateTable

logger = logging.getLogger(__name__)

# More distinct rates than this selects the mode
MODE_DISTINCT_THRESHOLD = 2


def round_rate(value: float) -> float:
    """Round half-up to cents; the result is the grouping key for rates."""
    return math.floor(value * 100 + 0.5) / 100


def _select_rate(payer: str, code: str, rates: list[float]) -> ExpectedRate:
    histogram = Counter(rates)
    max_rate = max(histogram)

    mode_rate = 0.0
    max_freq = 0
    for rate, freq in histogram.items():
        if freq > max_freq or (freq == max_freq and rate > mode_rate):
            max_freq = freq
            mode_rate = rate

    if len(histogram) > MODE_DISTINCT_THRESHOLD:
        expected, method = mode_rate, RateMethod.MODE
    else:
        expected, method = max_rate, RateMethod.MAX

    # frequency reports the mode's count under both methods
    return ExpectedRate(
        payer=payer,
        procedure_code=code,
        expected_rate=expected,
        method=method,
        frequency=max_freq,
    )


def infer_expected_rates(claims: list[ClaimRecord]) -> RateTable:
    """Build the payer -> procedure code -> expected rate table.

    Only paid lines with positive payment and units contribute. Pairs with
    no qualifying lines are absent from the table.
    """
    history: dict[str, dict[str, list[float]]] = {}
    for claim in claims:
        if not (claim.is_paid and claim.paid > 0 and claim.units > 0):
            continue
        per_code = history.setdefault(claim.payer, {})
        per_code.setdefault(claim.procedure_code, []).append(
            round_rate(claim.paid / claim.units)
        )

    table: RateTable = {
        payer: {code: _select_rate(payer, code, rates) for code, rates in per_code.items()}
        for payer, per_code in history.items()
    }
    logger.debug(
        "Inferred %d expected rates across %d payers",
        sum(len(per_code) for per_code in table.values()),
        len(table),
    )
    return table


def lookup_rate(table: RateTable, payer: str, procedure_code: str) -> ExpectedRate:
    """Table entry for a pair, or a zero-rate entry with method ``None``."""
    entry = table.get(payer, {}).get(procedure_code)
    if entry is not None:
        return entry
    return ExpectedRate(payer=payer, procedure_code=procedure_code)


def rates_to_records(table: RateTable) -> list[dict]:
    """Flatten the table to JSON-ready rows ordered by payer then code."""
    return [
        table[payer][code].model_dump(mode="json")
        for payer in sorted(table)
        for code in sorted(table[payer])
    ]
