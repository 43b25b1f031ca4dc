"""Report generation module.

Produces a Markdown report with headline KPIs, payer denial opportunity,
the expected-rate matrix, per-code performance, monthly claim counts and
patient insights, plus two figures.
"""

from __future__ import annotations

from datetime import datetime
from pathlib import Path

import matplotlib
matplotlib.use("Agg")  # Non-interactive backend
import matplotlib.pyplot as plt

from claimsalytics.export import format_money, format_units
from claimsalytics.listing import claims_by_month
from claimsalytics.schema import ClaimRecord, PatientStat, PayerDenialStat, RateTable
from claimsalytics.summary import (
    KpiSummary,
    MonthlyStat,
    code_class_summary,
    payer_procedure_summary,
    procedure_summary,
)


def _save_monthly_trend(monthly: list[MonthlyStat], output_dir: Path) -> str:
    """Generate and save the monthly paid trend chart."""
    if not monthly:
        return ""

    fig, ax = plt.subplots(figsize=(10, 5))
    months = [stat.month for stat in monthly]
    ax.plot(months, [stat.paid for stat in monthly], color="#2196F3", marker="o", linewidth=2)
    ax.set_xlabel("Month")
    ax.set_ylabel("Paid ($)")
    ax.set_title("Monthly Paid Trend")
    ax.grid(axis="y", alpha=0.3)
    plt.setp(ax.get_xticklabels(), rotation=45, ha="right")

    path = output_dir / "figures" / "monthly_trend.png"
    path.parent.mkdir(parents=True, exist_ok=True)
    fig.savefig(path, dpi=150, bbox_inches="tight")
    plt.close(fig)
    return "figures/monthly_trend.png"


def _save_denials_by_payer(denials: list[PayerDenialStat], output_dir: Path) -> str:
    """Generate and save a denied-units bar chart per payer."""
    if not denials:
        return ""

    ordered = sorted(denials, key=lambda stat: stat.denied_units, reverse=True)
    fig, ax = plt.subplots(figsize=(10, 5))
    ax.barh(
        [stat.payer for stat in ordered],
        [stat.denied_units for stat in ordered],
        color="#F44336",
        alpha=0.8,
    )
    ax.invert_yaxis()
    ax.set_xlabel("Denied Units")
    ax.set_title("Volume by Payer (Denials)")
    ax.grid(axis="x", alpha=0.3)

    path = output_dir / "figures" / "denials_by_payer.png"
    path.parent.mkdir(parents=True, exist_ok=True)
    fig.savefig(path, dpi=150, bbox_inches="tight")
    plt.close(fig)
    return "figures/denials_by_payer.png"


def _patient_table(patients: list[PatientStat]) -> list[str]:
    rows = ["| Patient | ID | Visits | Revenue | Last Visit | Payer |", "|---|---|---|---|---|---|"]
    for patient in patients:
        last_visit = patient.last_visit.isoformat() if patient.last_visit else "-"
        rows.append(
            f"| {patient.patient_name} | {patient.patient_id} | {patient.total_visits} | "
            f"{format_money(patient.total_revenue)} | {last_visit} | {patient.payer} |"
        )
    rows.append("")
    return rows


def generate_report(
    claims: list[ClaimRecord],
    provider_name: str,
    kpis: KpiSummary,
    rates: RateTable,
    denials: list[PayerDenialStat],
    patients: list[PatientStat],
    monthly: list[MonthlyStat],
    output_dir: Path,
    top_n_patients: int = 10,
) -> Path:
    """Generate the Markdown claims report with figures.

    Args:
        claims: Normalized claims of the batch.
        provider_name: Provider the report is for.
        kpis: Headline metrics.
        rates: Expected-rate table.
        denials: Per-payer denial opportunity.
        patients: Per-patient summaries.
        monthly: Monthly paid trend.
        output_dir: Output directory.
        top_n_patients: Patients listed, by revenue.

    Returns:
        Path to the generated report file.
    """
    output_dir.mkdir(parents=True, exist_ok=True)
    now = datetime.now().strftime("%Y-%m-%d %H:%M:%S")

    trend_path = _save_monthly_trend(monthly, output_dir)
    denial_path = _save_denials_by_payer(denials, output_dir)

    lines: list[str] = []
    lines.append("# Claims Analytics Report\n")
    lines.append(f"**Generated:** {now}\n")
    lines.append(f"**Provider:** {provider_name} | **Claim lines:** {len(claims):,}\n")
    lines.append("---\n")

    # --- Key Metrics ---
    lines.append("## Key Metrics\n")
    lines.append("| Metric | Value |")
    lines.append("|---|---|")
    lines.append(f"| Total Collected | {format_money(kpis.total_collected)} |")
    lines.append(f"| Est. Revenue Denied | {format_money(kpis.projected_opportunity)} |")
    lines.append(f"| Denial Rate (by units) | {kpis.denial_rate:.1f}% |")
    lines.append(f"| Unique Encounters | {kpis.total_encounters:,} |")
    lines.append(f"| Total Units | {kpis.total_units:,.0f} |")
    lines.append(f"| Paid Units | {kpis.paid_units:,.0f} |")
    lines.append("")

    if trend_path:
        lines.append("## Monthly Paid Trend\n")
        lines.append(f"![Monthly Paid Trend]({trend_path})\n")

    # --- AQL codes ---
    aql = code_class_summary(claims)
    if any(stat.units for stat in aql):
        lines.append("## AQL Codes Summary\n")
        lines.append("| Code Type | Total Units | Paid Units | Unpaid Units | Paid % | Total Paid |")
        lines.append("|---|---|---|---|---|---|")
        for stat in aql:
            paid_pct = stat.paid_units / stat.units * 100 if stat.units else 0.0
            lines.append(
                f"| {stat.key}-Codes | {stat.units:,.0f} | {stat.paid_units:,.0f} | "
                f"{stat.unpaid_units:,.0f} | {paid_pct:.1f}% | {format_money(stat.paid_amount)} |"
            )
        lines.append("")

    # --- Denial opportunity ---
    lines.append("## Denial Opportunity by Payer\n")
    if denial_path:
        lines.append(f"![Denials by Payer]({denial_path})\n")
    if denials:
        lines.append(
            "| Payer | Denied Units | Denied Charges | Projected Value | Top Denied Codes (Units) |"
        )
        lines.append("|---|---|---|---|---|")
        for stat in sorted(denials, key=lambda s: s.projected_value, reverse=True):
            top_codes = ", ".join(
                f"{entry.procedure_code} ({format_units(entry.units)})"
                for entry in stat.top_denied_codes
            )
            lines.append(
                f"| {stat.payer} | {stat.denied_units:,.0f} | "
                f"{format_money(stat.denied_charges)} | {format_money(stat.projected_value)} | "
                f"{top_codes} |"
            )
        lines.append("")
    else:
        lines.append("No denied claim lines.\n")

    # --- Expected rates ---
    lines.append("## Expected Reimbursement Rates\n")
    if rates:
        lines.append("| Payer | CPT | Expected Rate | Method | Frequency |")
        lines.append("|---|---|---|---|---|")
        for payer in sorted(rates):
            for code in sorted(rates[payer]):
                entry = rates[payer][code]
                lines.append(
                    f"| {payer} | {code} | {format_money(entry.expected_rate)} | "
                    f"{entry.method.value} | {entry.frequency} |"
                )
        lines.append("")
    else:
        lines.append("No paid history to infer rates from.\n")

    # --- Procedure performance ---
    by_code = procedure_summary(claims)
    if by_code:
        lines.append("## CPT Performance\n")
        lines.append("| CPT | Lines | Total Units | Paid Units | Unpaid Units | Total Paid |")
        lines.append("|---|---|---|---|---|---|")
        for stat in by_code:
            lines.append(
                f"| {stat.key} | {stat.lines:,} | {stat.units:,.0f} | {stat.paid_units:,.0f} | "
                f"{stat.unpaid_units:,.0f} | {format_money(stat.paid_amount)} |"
            )
        lines.append("")

        lines.append("## CPT by Payer\n")
        lines.append("| CPT | Payer | Total Units | Paid Units | Unpaid Units | Total Paid |")
        lines.append("|---|---|---|---|---|---|")
        for stat in payer_procedure_summary(claims):
            lines.append(
                f"| {stat.key} | {stat.payer} | {stat.units:,.0f} | {stat.paid_units:,.0f} | "
                f"{stat.unpaid_units:,.0f} | {format_money(stat.paid_amount)} |"
            )
        lines.append("")

    # --- Claims by month ---
    months = claims_by_month(claims)
    if months:
        lines.append("## Claims by Month\n")
        lines.append("| Month | Lines | Unpaid Lines | Total Paid |")
        lines.append("|---|---|---|---|")
        for group in months:
            lines.append(
                f"| {group.month} | {len(group.claims):,} | {group.unpaid_lines:,} | "
                f"{format_money(group.total_paid)} |"
            )
        lines.append("")

    # --- Patients ---
    lines.append("## Patient Insights\n")
    if patients:
        average = kpis.total_collected / len(patients)
        lines.append(f"**Patients:** {len(patients):,} | **Avg revenue per patient:** {format_money(average)}\n")
        by_revenue = sorted(patients, key=lambda p: p.total_revenue, reverse=True)
        lines.append("### Top Patients by Revenue\n")
        lines.extend(_patient_table(by_revenue[:top_n_patients]))

        by_visits = sorted(patients, key=lambda p: p.total_visits, reverse=True)
        lines.append("### Most Frequent Visitors\n")
        lines.extend(_patient_table(by_visits[:top_n_patients]))

    report_path = output_dir / "claims_report.md"
    report_path.write_text("\n".join(lines), encoding="utf-8")

    return report_path
