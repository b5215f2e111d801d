"""
Helpers shared by CLI commands.
"""

from __future__ import annotations

from pathlib import Path

import typer
from rich.console import Console

from tenderscore.core.config.loader import ConfigError, load_app_config
from tenderscore.core.config.models import AppConfig
from tenderscore.core.logging import setup_logging
from tenderscore.persistence.db import SessionScope, get_session_scope

err_console = Console(stderr=True)


def load_config_or_exit(path: Path | None = None) -> AppConfig:
    """Load app.yaml, printing validation details and exiting on failure."""
    try:
        return load_app_config(path)
    except ConfigError as e:
        err_console.print(f"[red]Configuration error:[/red] {e}")
        if e.path:
            err_console.print(f"  File: {e.path}")
        if e.details:
            err_console.print(e.details)
        raise typer.Exit(1)


def configure_logging(config: AppConfig, verbose: bool = False) -> None:
    config.ensure_directories()
    setup_logging(
        level="DEBUG" if verbose else config.logging.level,
        log_file=config.logging.file,
        json_format=config.logging.json_format,
        rich_console=config.logging.rich_console,
    )


def open_scope(config: AppConfig) -> SessionScope:
    return get_session_scope(
        config.database.url,
        echo=config.database.echo,
        pool_size=config.database.pool_size,
    )
