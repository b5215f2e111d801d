"""
Evaluation commands: batch runs and one-off scoring.
"""

from __future__ import annotations

from pathlib import Path
from typing import Optional

import orjson
import typer
from rich.console import Console
from rich.table import Table

from tenderscore.core.config.models import EvaluationMode

console = Console()
err_console = Console(stderr=True)

app = typer.Typer(
    help="Score tenders against profiles",
    no_args_is_help=True,
)


@app.command("run")
def run_batch(
    mode: Optional[EvaluationMode] = typer.Option(
        None,
        "--mode",
        "-m",
        help="incremental (new tenders only) or full",
        case_sensitive=False,
    ),
    org: Optional[int] = typer.Option(None, "--org", "-o", help="Only this organization"),
    config_path: Optional[Path] = typer.Option(None, "--config", "-c", help="Path to app.yaml"),
    verbose: bool = typer.Option(False, "--verbose", help="Debug logging"),
) -> None:
    """Run the batch evaluation for one or all organizations."""
    from tenderscore.core.evaluation.batch import run_batch_evaluation
    
    from .common import configure_logging, load_config_or_exit, open_scope
    
    config = load_config_or_exit(config_path)
    configure_logging(config, verbose=verbose)
    mode = mode or config.evaluation.default_mode
    
    results = run_batch_evaluation(open_scope(config), mode=mode, organization_id=org)
    
    table = Table(title=f"Batch evaluation ({mode.value})", show_header=True, header_style="bold magenta")
    table.add_column("Org", style="cyan", justify="right")
    table.add_column("Profiles", justify="right")
    table.add_column("Tenders", justify="right")
    table.add_column("Upserted", justify="right")
    table.add_column("Qualified", justify="right")
    table.add_column("Errors", justify="right")
    table.add_column("Note")
    
    for stats in results:
        errors = f"[red]{stats.errors_count}[/red]" if stats.errors_count else "0"
        table.add_row(
            str(stats.organization_id),
            str(stats.profiles),
            str(stats.tenders),
            str(stats.upserted),
            str(stats.qualified),
            errors,
            stats.skipped_reason or "",
        )
    
    console.print(table)
    
    if any(stats.errors_count for stats in results):
        raise typer.Exit(1)


@app.command("score")
def score_files(
    tender_file: Path = typer.Option(..., "--tender", "-t", help="Tender JSON file", exists=True),
    profile_file: Path = typer.Option(..., "--profile", "-p", help="Profile JSON file", exists=True),
    as_json: bool = typer.Option(False, "--json", help="Print the result as JSON"),
) -> None:
    """Score a single tender against a single profile."""
    from tenderscore.core.scoring import ProfileCriteria, TenderRecord, score
    
    try:
        tender = TenderRecord.from_dict(orjson.loads(tender_file.read_bytes()))
        profile = ProfileCriteria.from_dict(orjson.loads(profile_file.read_bytes()))
    except (orjson.JSONDecodeError, KeyError, TypeError, ValueError) as e:
        err_console.print(f"[red]Invalid input:[/red] {e}")
        raise typer.Exit(1)
    
    result = score(tender, profile)
    row = result.to_row()
    
    if as_json:
        row["qualified"] = result.qualified
        console.print_json(orjson.dumps(row).decode("utf-8"))
        return
    
    verdict = "[green]qualifies[/green]" if result.qualified else "[red]disqualified[/red]"
    console.print(f"Tender {tender.id} vs profile {profile.id}: {verdict}")
    console.print(
        f"  support={result.support_score} negative={result.negative_score} "
        f"cpv={result.cpv_score} synergy={result.synergy_bonus} "
        f"[bold]total={result.total_score}[/bold]"
    )
    console.print(f"  {result.explanation}")
