"""CLI entrypoint for claims analytics.

Commands:
  ingest  : Parse and merge billing exports, write normalized claims.csv
  analyze : Ingest, then infer expected rates, denial opportunity and patient stats
  report  : Analyze, then generate the Markdown report
  claims  : List claims grouped by service month
"""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import TYPE_CHECKING

import typer
from rich.console import Console
from rich.logging import RichHandler
from rich.table import Table

from claimsalytics.config import PipelineConfig
from claimsalytics.errors import BatchIngestError, EmptyBatchError, StructuralError
from claimsalytics.listing import ClaimStatus

if TYPE_CHECKING:
    from claimsalytics.ingest import IngestResult

app = typer.Typer(
    name="claimsalytics",
    help="Claims analytics: normalize billing exports, benchmark payer rates, project denials.",
    add_completion=False,
)
console = Console()


def _configure_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="%(message)s",
        handlers=[RichHandler(console=console, show_path=False)],
        force=True,
    )


def _get_config(
    provider: str,
    output_dir: Path,
    config_file: Path | None = None,
) -> PipelineConfig:
    """Build pipeline config from CLI args and optional config file."""
    if config_file and config_file.exists():
        raw = json.loads(config_file.read_text())
        config = PipelineConfig(**raw)
        if provider:
            config = config.model_copy(update={"default_provider": provider})
        return config
    return PipelineConfig(default_provider=provider, output_dir=output_dir)


def _ingest(files: list[Path], config: PipelineConfig) -> IngestResult:
    """Load a batch, turning ingestion failures into exit code 1."""
    from claimsalytics.ingest import load_batch

    try:
        result = load_batch(files, config)
    except EmptyBatchError as e:
        console.print(f"[yellow]{e}[/]")
        raise typer.Exit(code=1) from e
    except (BatchIngestError, StructuralError, ValueError) as e:
        console.print(f"[red]✗ {e}[/]")
        raise typer.Exit(code=1) from e

    for name, message in result.skipped.items():
        console.print(f"  [yellow]• skipped {name}: {message}[/]")
    return result


def _write_json(path: Path, payload: object) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(json.dumps(payload, indent=2, default=str))


def _analyze(files: list[Path], config: PipelineConfig) -> dict:
    from claimsalytics.denials import calculate_denial_opportunity
    from claimsalytics.export import write_claims_csv
    from claimsalytics.ingest import dominant_provider
    from claimsalytics.patients import analyze_patients
    from claimsalytics.rates import infer_expected_rates, rates_to_records
    from claimsalytics.summary import (
        compute_kpis,
        monthly_trend,
        payer_procedure_summary,
        procedure_summary,
    )

    result = _ingest(files, config)
    claims = result.claims
    out = config.output_dir

    rates = infer_expected_rates(claims)
    denials = calculate_denial_opportunity(claims, rates)
    patients = analyze_patients(claims)
    kpis = compute_kpis(claims, rates)
    monthly = monthly_trend(claims)

    write_claims_csv(claims, out / "claims.csv")
    _write_json(out / "expected_rates.json", rates_to_records(rates))
    _write_json(out / "denial_opportunity.json", [d.model_dump(mode="json") for d in denials])
    _write_json(out / "patients.json", [p.model_dump(mode="json") for p in patients])
    (out / "kpis.json").write_text(kpis.model_dump_json(indent=2))
    _write_json(
        out / "procedure_summary.json",
        [s.model_dump(mode="json") for s in procedure_summary(claims)],
    )
    _write_json(
        out / "payer_procedure_summary.json",
        [s.model_dump(mode="json") for s in payer_procedure_summary(claims)],
    )

    return {
        "claims": claims,
        "provider": dominant_provider(claims, config.default_provider),
        "rates": rates,
        "denials": denials,
        "patients": patients,
        "kpis": kpis,
        "monthly": monthly,
    }


def _print_summary(analysis: dict) -> None:
    from claimsalytics.export import format_money

    kpis = analysis["kpis"]
    table = Table(title=f"Report for {analysis['provider']}")
    table.add_column("Metric")
    table.add_column("Value", justify="right")
    table.add_row("Claim lines", f"{len(analysis['claims']):,}")
    table.add_row("Total collected", format_money(kpis.total_collected))
    table.add_row("Est. revenue denied", format_money(kpis.projected_opportunity))
    table.add_row("Denial rate (units)", f"{kpis.denial_rate:.1f}%")
    table.add_row("Unique encounters", f"{kpis.total_encounters:,}")
    console.print(table)


@app.command()
def ingest(
    files: list[Path] = typer.Argument(..., help="CSV/TSV/TXT exports or XLS/XLSX reports"),
    provider: str = typer.Option("", "--provider", help="Fallback provider name"),
    output_dir: Path = typer.Option(Path("output"), help="Output directory"),
    config_file: Path | None = typer.Option(None, "--config", help="JSON config file"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Debug logging"),
) -> None:
    """Parse and merge billing exports into a normalized claims.csv."""
    from claimsalytics.export import write_claims_csv
    from claimsalytics.ingest import save_claims

    _configure_logging(verbose)
    config = _get_config(provider, output_dir, config_file)
    console.print(f"[bold blue]Ingesting {len(files)} file(s)...[/]")

    result = _ingest(files, config)
    out_path = write_claims_csv(result.claims, config.output_dir / "claims.csv")
    save_claims(result.claims, config.output_dir / "claims.parquet")

    console.print(f"[green]✓ {len(result.claims):,} claims → {out_path}[/]")


@app.command()
def analyze(
    files: list[Path] = typer.Argument(..., help="CSV/TSV/TXT exports or XLS/XLSX reports"),
    provider: str = typer.Option("", "--provider", help="Fallback provider name"),
    output_dir: Path = typer.Option(Path("output"), help="Output directory"),
    config_file: Path | None = typer.Option(None, "--config", help="JSON config file"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Debug logging"),
) -> None:
    """Infer expected rates, denial opportunity and patient stats."""
    _configure_logging(verbose)
    config = _get_config(provider, output_dir, config_file)
    console.print(f"[bold blue]Analyzing {len(files)} file(s)...[/]")

    analysis = _analyze(files, config)
    _print_summary(analysis)

    console.print(f"[green]✓ Analysis written → {config.output_dir}[/]")


@app.command()
def report(
    files: list[Path] = typer.Argument(..., help="CSV/TSV/TXT exports or XLS/XLSX reports"),
    provider: str = typer.Option("", "--provider", help="Fallback provider name"),
    output_dir: Path = typer.Option(Path("output"), help="Output directory"),
    config_file: Path | None = typer.Option(None, "--config", help="JSON config file"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Debug logging"),
) -> None:
    """Analyze, then generate the Markdown report with figures."""
    from claimsalytics.reporting import generate_report

    _configure_logging(verbose)
    config = _get_config(provider, output_dir, config_file)
    console.print("[bold blue]Generating report...[/]")

    try:
        analysis = _analyze(files, config)
        report_path = generate_report(
            claims=analysis["claims"],
            provider_name=analysis["provider"],
            kpis=analysis["kpis"],
            rates=analysis["rates"],
            denials=analysis["denials"],
            patients=analysis["patients"],
            monthly=analysis["monthly"],
            output_dir=config.output_dir,
        )
    except typer.Exit:
        raise
    except Exception as e:
        console.print(f"[red]Pipeline error: {e}[/]")
        raise typer.Exit(code=2) from e

    _print_summary(analysis)
    console.print(f"[green]✓ Report generated → {report_path}[/]")


@app.command("claims")
def list_claims(
    files: list[Path] = typer.Argument(..., help="CSV/TSV/TXT exports or XLS/XLSX reports"),
    status: ClaimStatus = typer.Option(ClaimStatus.ALL, "--status", help="all, paid or unpaid"),
    newest_first: bool = typer.Option(False, "--newest-first", help="Newest month first"),
    provider: str = typer.Option("", "--provider", help="Fallback provider name"),
    config_file: Path | None = typer.Option(None, "--config", help="JSON config file"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Debug logging"),
) -> None:
    """List claims grouped by service month, unknown dates last."""
    from claimsalytics.export import format_money, format_units
    from claimsalytics.listing import claims_by_month

    _configure_logging(verbose)
    config = _get_config(provider, Path("output"), config_file)
    result = _ingest(files, config)

    groups = claims_by_month(result.claims, status=status, descending=newest_first)
    console.print(f"[bold]{sum(len(g.claims) for g in groups):,} claims found[/]")
    for group in groups:
        table = Table(title=f"{group.month}: {format_money(group.total_paid)} paid")
        for column in ["DOS", "Patient", "CPT", "Payer", "Units", "Paid", "Status"]:
            table.add_column(column)
        for claim in group.claims:
            table.add_row(
                claim.service_date.isoformat() if claim.service_date else "-",
                claim.patient_name,
                claim.procedure_code,
                claim.payer,
                format_units(claim.units),
                format_money(claim.paid),
                "Paid" if claim.is_paid else "Unpaid",
            )
        console.print(table)


if __name__ == "__main__":
    app()
