"""
Tender store commands.
"""

from __future__ import annotations

from datetime import datetime
from pathlib import Path
from typing import Optional

import orjson
import typer
from rich.console import Console

console = Console()
err_console = Console(stderr=True)

app = typer.Typer(
    help="Import and purge tenders",
    no_args_is_help=True,
)


@app.command("import")
def import_tenders(
    org: int = typer.Argument(..., help="Organization id"),
    file: Path = typer.Argument(..., help="JSON file with a list of tender records", exists=True),
    config_path: Optional[Path] = typer.Option(None, "--config", "-c", help="Path to app.yaml"),
) -> None:
    """Import normalized tender records for an organization."""
    from tenderscore.persistence.repo import OrganizationRepository, TenderRepository
    
    from .common import load_config_or_exit, open_scope
    
    try:
        records = orjson.loads(file.read_bytes())
    except orjson.JSONDecodeError as e:
        err_console.print(f"[red]Invalid JSON:[/red] {e}")
        raise typer.Exit(1)
    
    if isinstance(records, dict):
        records = records.get("tenders", [])
    if not isinstance(records, list):
        err_console.print("[red]Expected a list of tender records[/red]")
        raise typer.Exit(1)
    
    config = load_config_or_exit(config_path)
    
    with open_scope(config)() as session:
        if OrganizationRepository(session).get_by_id(org) is None:
            err_console.print(f"[red]Organization not found:[/red] {org}")
            raise typer.Exit(1)
        try:
            created, updated = TenderRepository(session).import_records(org, records)
        except ValueError as e:
            err_console.print(f"[red]Import failed:[/red] {e}")
            raise typer.Exit(1)
    
    console.print(f"[green]OK[/green] {created} new, {updated} updated tenders")


@app.command("purge")
def purge_tenders(
    config_path: Optional[Path] = typer.Option(None, "--config", "-c", help="Path to app.yaml"),
) -> None:
    """Delete tenders outside the retention window, with their evaluations."""
    from tenderscore.persistence.repo import TenderRepository
    
    from .common import load_config_or_exit, open_scope
    
    config = load_config_or_exit(config_path)
    retention = config.retention
    
    with open_scope(config)() as session:
        deleted = TenderRepository(session).purge(
            datetime.utcnow(),
            purge_after_deadline_days=retention.purge_after_deadline_days,
            max_age_days=retention.max_age_days,
        )
    
    console.print(f"[green]OK[/green] Purged {deleted} tenders")
