"""
TenderScore CLI - Main entry point.

Scores public tender notices against organization keyword/CPV profiles
and keeps evaluations current through a durable job queue.
"""

from __future__ import annotations

import os
import sys
from pathlib import Path
from typing import Optional

import typer
from dotenv import load_dotenv
from rich.console import Console
from rich.panel import Panel
from rich.traceback import install as install_rich_traceback

from tenderscore import __app_name__, __version__

# Load environment variables from .env (if present)
load_dotenv()

# Install rich traceback for better error display
install_rich_traceback(show_locals=False, width=120)

# Force UTF-8 on Windows to avoid encoding issues
if sys.platform == "win32":
    os.environ.setdefault("PYTHONIOENCODING", "utf-8")
    if hasattr(sys.stdout, "reconfigure"):
        try:
            sys.stdout.reconfigure(encoding="utf-8", errors="replace")
        except (AttributeError, OSError):
            pass

console = Console(legacy_windows=False)
err_console = Console(stderr=True, legacy_windows=False)

# Create main app
app = typer.Typer(
    name=__app_name__,
    help="Tender relevance scoring and evaluation queue",
    rich_markup_mode="rich",
    no_args_is_help=True,
    pretty_exceptions_show_locals=False,
)


def version_callback(value: bool) -> None:
    """Print version and exit."""
    if value:
        console.print(f"[bold cyan]{__app_name__}[/bold cyan] version [green]{__version__}[/green]")
        raise typer.Exit()


@app.callback()
def main(
    version: Optional[bool] = typer.Option(
        None,
        "--version",
        "-v",
        help="Show version and exit",
        callback=version_callback,
        is_eager=True,
    ),
) -> None:
    """TenderScore - score tenders against company profiles."""
    pass


# =============================================================================
# Import and register subcommand modules
# =============================================================================

from .commands import db, evaluate, jobs, profiles, tenders, worker  # noqa: E402

app.add_typer(db.app, name="db", help="Database operations")
app.add_typer(evaluate.app, name="evaluate", help="Score tenders")
app.add_typer(worker.app, name="worker", help="Run the evaluation worker")
app.add_typer(jobs.app, name="jobs", help="Inspect and manage evaluation jobs")
app.add_typer(tenders.app, name="tenders", help="Import and purge tenders")
app.add_typer(profiles.app, name="profiles", help="Inspect and edit company profiles")


# =============================================================================
# Init Command
# =============================================================================


@app.command()
def init(
    force: bool = typer.Option(
        False,
        "--force",
        "-f",
        help="Overwrite existing configuration",
    ),
) -> None:
    """Initialize TenderScore database and configuration.
    
    Creates required directories, a default configuration file,
    and the database schema.
    """
    from tenderscore.core.config.loader import load_app_config
    from tenderscore.persistence.db import init_db
    
    app_config_path = Path("configs/app.yaml")
    if not app_config_path.exists() or force:
        _create_default_app_config(app_config_path)
    
    config = load_app_config(app_config_path)
    config.ensure_directories()
    init_db(config.database.url)
    
    console.print()
    console.print(Panel.fit(
        "[bold green]OK - TenderScore initialized successfully![/bold green]\n\n"
        "Created:\n"
        "  - [cyan]configs/app.yaml[/cyan] - Application configuration\n"
        "  - [cyan]data/[/cyan] - Database storage\n"
        "  - [cyan]logs/[/cyan] - Log files\n\n"
        "Next steps:\n"
        "  1. Import tenders: [yellow]tenderscore tenders import <org> <file>[/yellow]\n"
        "  2. Score them: [yellow]tenderscore evaluate run --mode full[/yellow]\n"
        "  3. Keep them current: [yellow]tenderscore worker serve[/yellow]",
        title="[bold]Initialization Complete[/bold]",
        border_style="green",
    ))


def _create_default_app_config(path: Path) -> None:
    """Create default app.yaml configuration."""
    default_config = """\
# TenderScore Configuration

data_dir: data

database:
  url: ${TENDERSCORE_DATABASE_URL:-sqlite:///data/tenderscore.db}
  echo: false

logging:
  level: INFO
  file: logs/tenderscore.log
  json_format: true
  rich_console: true

worker:
  poll_interval_seconds: 3
  max_loop_seconds: 50
  lease_seconds: 300
  default_max_retries: 5
  backoff_base: 2
  max_backoff_seconds: 3600
  worker_interval_seconds: 60

evaluation:
  default_mode: incremental
  # batch_cron: "0 3 * * *"

retention:
  purge_after_deadline_days: 30
  max_age_days: 365

scheduler_db_url: sqlite+aiosqlite:///data/schedules.db
"""
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(default_config, encoding="utf-8")


# =============================================================================
# Status Command
# =============================================================================


@app.command()
def status(
    config_path: Optional[Path] = typer.Option(None, "--config", "-c", help="Path to app.yaml"),
) -> None:
    """Show queue and evaluation statistics."""
    from rich.table import Table
    
    from tenderscore.persistence.repo import EvaluationRepository, JobRepository, OrganizationRepository
    
    from .commands.common import load_config_or_exit, open_scope
    
    config = load_config_or_exit(config_path)
    scope = open_scope(config)
    
    console.print()
    console.print("[bold]TenderScore Status[/bold]")
    console.print()
    
    with scope() as session:
        org_ids = OrganizationRepository(session).get_all_ids()
        evaluations = EvaluationRepository(session)
        job_counts = JobRepository(session).count_by_status()
        
        table = Table(title="Organizations", show_header=True, header_style="bold magenta")
        table.add_column("Org", style="cyan", justify="right")
        table.add_column("Evaluations", justify="right")
        for org_id in org_ids:
            table.add_row(str(org_id), str(evaluations.count(org_id)))
        
        if org_ids:
            console.print(table)
        else:
            console.print("[dim]No organizations yet.[/dim]")
        
        console.print()
        
        if job_counts:
            jobs_table = Table(title="Evaluation Jobs", show_header=True, header_style="bold magenta")
            jobs_table.add_column("Status", style="cyan")
            jobs_table.add_column("Count", justify="right")
            for job_status, count in sorted(job_counts.items()):
                jobs_table.add_row(job_status, str(count))
            console.print(jobs_table)
        else:
            console.print("[dim]No evaluation jobs queued yet.[/dim]")


# =============================================================================
# Entry Point
# =============================================================================


def run() -> None:
    """Run the CLI application."""
    app()


if __name__ == "__main__":
    run()
