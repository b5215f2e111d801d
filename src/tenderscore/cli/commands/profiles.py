"""
Company profile commands.
"""

from __future__ import annotations

from pathlib import Path
from typing import Optional

import typer
from rich.console import Console
from rich.table import Table

from tenderscore.core.config.models import KeywordKind

console = Console()
err_console = Console(stderr=True)

app = typer.Typer(
    help="Inspect and edit company profiles",
    no_args_is_help=True,
)


@app.command("list")
def list_profiles(
    org: int = typer.Argument(..., help="Organization id"),
    config_path: Optional[Path] = typer.Option(None, "--config", "-c", help="Path to app.yaml"),
) -> None:
    """List an organization's profiles and their criteria."""
    from tenderscore.persistence.repo import ProfileRepository
    
    from .common import load_config_or_exit, open_scope
    
    config = load_config_or_exit(config_path)
    
    with open_scope(config)() as session:
        profiles = ProfileRepository(session).list_for_org(org)
        
        if not profiles:
            console.print("[dim]No profiles for this organization.[/dim]")
            return
        
        table = Table(title=f"Profiles of organization {org}", show_header=True, header_style="bold magenta")
        table.add_column("ID", style="cyan", justify="right")
        table.add_column("Name")
        table.add_column("Own", justify="center")
        table.add_column("Minimum")
        table.add_column("Support")
        table.add_column("Negative")
        table.add_column("CPV")
        
        for profile in profiles:
            table.add_row(
                str(profile.id),
                profile.profile_name,
                "[green]*[/green]" if profile.is_own_profile else "",
                ", ".join(r.keyword for r in profile.minimum_requirements),
                ", ".join(f"{k.keyword}({k.weight})" for k in profile.support_keywords),
                ", ".join(f"{k.keyword}({k.weight})" for k in profile.negative_keywords),
                ", ".join(f"{c.cpv_code}({c.weight})" for c in profile.cpv_codes),
            )
        
        console.print(table)


@app.command("add-keyword")
def add_keyword(
    profile_id: int = typer.Argument(..., help="Profile id"),
    kind: KeywordKind = typer.Argument(..., help="minimum, support, negative or cpv"),
    keyword: str = typer.Argument(..., help="Keyword or CPV code"),
    weight: Optional[int] = typer.Option(None, "--weight", "-w", help="Weight (ignored for minimum)"),
    config_path: Optional[Path] = typer.Option(None, "--config", "-c", help="Path to app.yaml"),
) -> None:
    """Add a keyword and queue re-evaluation of the profile."""
    from tenderscore.persistence.repo import ProfileRepository
    
    from .common import load_config_or_exit, open_scope
    
    config = load_config_or_exit(config_path)
    
    with open_scope(config)() as session:
        repo = ProfileRepository(session, max_retries=config.worker.default_max_retries)
        try:
            job = repo.add_keyword(profile_id, kind, keyword, weight)
        except (LookupError, ValueError) as e:
            err_console.print(f"[red]{e}[/red]")
            raise typer.Exit(1)
        job_id = job.id if job is not None else None
    
    console.print(f"[green]OK[/green] Added '{keyword}' ({kind.value}); job {job_id} queued")


@app.command("remove-keyword")
def remove_keyword(
    profile_id: int = typer.Argument(..., help="Profile id"),
    kind: KeywordKind = typer.Argument(..., help="minimum, support, negative or cpv"),
    keyword: str = typer.Argument(..., help="Keyword or CPV code"),
    config_path: Optional[Path] = typer.Option(None, "--config", "-c", help="Path to app.yaml"),
) -> None:
    """Remove a keyword and queue re-evaluation of the profile."""
    from tenderscore.persistence.repo import ProfileRepository
    
    from .common import load_config_or_exit, open_scope
    
    config = load_config_or_exit(config_path)
    
    with open_scope(config)() as session:
        repo = ProfileRepository(session, max_retries=config.worker.default_max_retries)
        try:
            job = repo.remove_keyword(profile_id, kind, keyword)
        except LookupError as e:
            err_console.print(f"[red]{e}[/red]")
            raise typer.Exit(1)
        job_id = job.id if job is not None else None
    
    if job_id is None:
        console.print(f"[dim]'{keyword}' not found in {kind.value} list[/dim]")
        return
    console.print(f"[green]OK[/green] Removed '{keyword}' ({kind.value}); job {job_id} queued")
