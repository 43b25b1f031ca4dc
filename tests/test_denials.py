"""Tests for denial opportunity projection."""

from __future__ import annotations

from claimsalytics.denials import calculate_denial_opportunity
from claimsalytics.rates import infer_expected_rates
from claimsalytics.schema import ClaimRecord


class TestDenialOpportunity:
    def test_projection_uses_expected_rate(self, mixed_claims: list[ClaimRecord]) -> None:
        rates = infer_expected_rates(mixed_claims)
        stats = {s.payer: s for s in calculate_denial_opportunity(mixed_claims, rates)}

        aetna = stats["Aetna"]
        assert aetna.denied_units == 2
        assert aetna.denied_charges == 150.0
        assert aetna.projected_value == 160.0  # 2 units × $80

    def test_unknown_rate_contributes_zero(self, mixed_claims: list[ClaimRecord]) -> None:
        rates = infer_expected_rates(mixed_claims)
        stats = {s.payer: s for s in calculate_denial_opportunity(mixed_claims, rates)}

        united = stats["UnitedHealthcare"]
        assert united.denied_units == 1
        assert united.denied_charges == 200.0
        assert united.projected_value == 0.0

    def test_rate_not_shared_across_payers(self, claim_factory) -> None:
        claims = [
            claim_factory(payer="Aetna", paid=80.0),
            claim_factory(payer="Cigna", paid=0.0, charge=300.0),
        ]
        stats = calculate_denial_opportunity(claims, infer_expected_rates(claims))
        assert [s.payer for s in stats] == ["Cigna"]
        assert stats[0].projected_value == 0.0

    def test_paid_lines_excluded(self, claim_factory) -> None:
        claims = [claim_factory(paid=80.0)]
        assert calculate_denial_opportunity(claims, infer_expected_rates(claims)) == []

    def test_negligible_payment_is_denial(self, claim_factory) -> None:
        claims = [claim_factory(paid=80.0), claim_factory(paid=0.01, units=3)]
        stats = calculate_denial_opportunity(claims, infer_expected_rates(claims))
        assert stats[0].denied_units == 3
        assert stats[0].projected_value == 240.0

    def test_denied_units_per_code(self, mixed_claims: list[ClaimRecord]) -> None:
        stats = {s.payer: s for s in calculate_denial_opportunity(mixed_claims, {})}
        assert stats["Aetna"].denied_code_units == {"99213": 2.0}
        assert stats["UnitedHealthcare"].denied_code_units == {"99214": 1.0}

    def test_top_denied_codes_ranked_and_capped(self, claim_factory) -> None:
        units = {"99211": 1, "99212": 4, "99213": 2, "99214": 4, "99215": 3, "A4550": 1}
        claims = [
            claim_factory(procedure_code=code, units=count, paid=0.0)
            for code, count in units.items()
        ]
        (stat,) = calculate_denial_opportunity(claims, {})
        top = [(entry.procedure_code, entry.units) for entry in stat.top_denied_codes]
        # ties keep first-seen order
        assert top == [("99212", 4), ("99214", 4), ("99215", 3), ("99213", 2), ("99211", 1)]

    def test_top_denied_codes_serialized(self, claim_factory) -> None:
        claims = [claim_factory(paid=0.0, units=2)]
        (stat,) = calculate_denial_opportunity(claims, {})
        dumped = stat.model_dump(mode="json")
        assert dumped["top_denied_codes"] == [{"procedure_code": "99213", "units": 2.0}]
