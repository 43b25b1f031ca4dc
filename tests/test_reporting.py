"""Tests for reporting module."""

from datetime import date
from pathlib import Path

from claimsalytics.denials import calculate_denial_opportunity
from claimsalytics.patients import analyze_patients
from claimsalytics.rates import infer_expected_rates
from claimsalytics.reporting import generate_report
from claimsalytics.schema import ClaimRecord
from claimsalytics.summary import compute_kpis, monthly_trend


class TestReporting:
    def test_report_generated(self, tmp_path: Path, mixed_claims: list[ClaimRecord]) -> None:
        """Full report generation should produce the Markdown file and figures."""
        rates = infer_expected_rates(mixed_claims)
        report_path = generate_report(
            claims=mixed_claims,
            provider_name="Dr. Adams",
            kpis=compute_kpis(mixed_claims, rates),
            rates=rates,
            denials=calculate_denial_opportunity(mixed_claims, rates),
            patients=analyze_patients(mixed_claims),
            monthly=monthly_trend(mixed_claims),
            output_dir=tmp_path,
        )

        assert report_path.exists()
        assert (tmp_path / "figures" / "monthly_trend.png").exists()
        assert (tmp_path / "figures" / "denials_by_payer.png").exists()

        content = report_path.read_text(encoding="utf-8")
        assert "Key Metrics" in content
        assert "$230.00" in content
        assert "AQL Codes Summary" in content
        assert "Denial Opportunity by Payer" in content
        assert "| Aetna | 99213 | $80.00 | Max | 1 |" in content
        assert "Patient Insights" in content
        assert "| Aetna | 2 | $150.00 | $160.00 | 99213 (2) |" in content
        assert "| UnitedHealthcare | 1 | $200.00 | $0.00 | 99214 (1) |" in content
        assert "## CPT Performance" in content
        assert "| A4550 | 1 | 2 | 2 | 0 | $30.00 |" in content
        assert "## CPT by Payer" in content
        assert "| 99214 | UnitedHealthcare | 1 | 0 | 1 | $0.00 |" in content
        assert "| 2024-01 | 3 | 1 | $110.00 |" in content
        assert "| Unknown Date | 1 | 0 | $120.00 |" in content
        assert "Top Patients by Revenue" in content
        assert "Most Frequent Visitors" in content

    def test_report_without_denials(self, tmp_path: Path, claim_factory) -> None:
        claims = [claim_factory(service_date=None)]
        rates = infer_expected_rates(claims)
        report_path = generate_report(
            claims=claims,
            provider_name="Dr. Adams",
            kpis=compute_kpis(claims, rates),
            rates=rates,
            denials=[],
            patients=analyze_patients(claims),
            monthly=[],
            output_dir=tmp_path,
        )
        content = report_path.read_text(encoding="utf-8")
        assert "No denied claim lines." in content
        assert not (tmp_path / "figures" / "monthly_trend.png").exists()

    def test_patients_ranked_by_visits(self, tmp_path: Path, claim_factory) -> None:
        claims = [
            claim_factory(patient_id="P1", patient_name="Big, Spender", paid=500.0),
            claim_factory(patient_id="P2", patient_name="Regular, Rita", paid=10.0),
            claim_factory(
                patient_id="P2", patient_name="Regular, Rita", paid=10.0,
                service_date=date(2024, 2, 1),
            ),
        ]
        rates = infer_expected_rates(claims)
        report_path = generate_report(
            claims=claims,
            provider_name="Dr. Adams",
            kpis=compute_kpis(claims, rates),
            rates=rates,
            denials=[],
            patients=analyze_patients(claims),
            monthly=monthly_trend(claims),
            output_dir=tmp_path,
        )
        content = report_path.read_text(encoding="utf-8")
        revenue, visits = content.split("### Most Frequent Visitors")
        revenue = revenue.split("### Top Patients by Revenue")[1]
        assert revenue.index("Big, Spender") < revenue.index("Regular, Rita")
        assert visits.index("Regular, Rita") < visits.index("Big, Spender")
