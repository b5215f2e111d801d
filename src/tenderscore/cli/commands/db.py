"""
Database management commands.
"""

from __future__ import annotations

from pathlib import Path
from typing import Optional

import typer
from rich.console import Console

console = Console()
err_console = Console(stderr=True)

app = typer.Typer(
    help="Database operations",
    no_args_is_help=True,
)


@app.command("init")
def init_database(
    drop_existing: bool = typer.Option(
        False,
        "--drop",
        help="Drop existing tables before creating",
    ),
    yes: bool = typer.Option(False, "--yes", "-y", help="Skip confirmation"),
    config_path: Optional[Path] = typer.Option(None, "--config", "-c", help="Path to app.yaml"),
) -> None:
    """Initialize the database schema.
    
    Creates all tables. Use --drop to reset the database.
    """
    from tenderscore.persistence.db import drop_db, init_db
    
    from .common import load_config_or_exit
    
    config = load_config_or_exit(config_path)
    
    if drop_existing:
        if not yes and not typer.confirm("This will DELETE ALL DATA. Continue?", default=False):
            raise typer.Abort()
        
        console.print("[yellow]Dropping existing tables...[/yellow]")
        drop_db(config.database.url)
    
    console.print("Creating database schema...")
    init_db(config.database.url)
    
    console.print("[green]OK[/green] Database initialized")


@app.command("migrate")
def run_migrations(
    revision: str = typer.Option(
        "head",
        "--revision",
        "-r",
        help="Target revision (default: head)",
    ),
) -> None:
    """Run database migrations."""
    from alembic import command
    from alembic.config import Config
    
    alembic_cfg = Config("alembic.ini")
    
    console.print(f"Running migrations to: {revision}")
    
    try:
        command.upgrade(alembic_cfg, revision)
        console.print("[green]OK[/green] Migrations complete")
    except Exception as e:
        err_console.print(f"[red]Migration failed:[/red] {e}")
        raise typer.Exit(1)


@app.command("current")
def show_current() -> None:
    """Show current database revision."""
    from alembic import command
    from alembic.config import Config
    
    alembic_cfg = Config("alembic.ini")
    
    console.print("[bold]Current database revision:[/bold]")
    command.current(alembic_cfg, verbose=True)
