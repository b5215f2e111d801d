"""
Evaluation worker commands.
"""

from __future__ import annotations

import asyncio
from pathlib import Path
from typing import Optional

import typer
from rich.console import Console

console = Console()
err_console = Console(stderr=True)

app = typer.Typer(
    help="Run the evaluation worker",
    no_args_is_help=True,
)


@app.command("run")
def run_once(
    budget: Optional[float] = typer.Option(
        None,
        "--budget",
        help="Override the wall-clock budget in seconds",
    ),
    config_path: Optional[Path] = typer.Option(None, "--config", "-c", help="Path to app.yaml"),
    verbose: bool = typer.Option(False, "--verbose", help="Debug logging"),
) -> None:
    """Run one bounded worker invocation."""
    from tenderscore.core.queue.worker import run_worker
    
    from .common import configure_logging, load_config_or_exit, open_scope
    
    config = load_config_or_exit(config_path)
    configure_logging(config, verbose=verbose)
    
    worker_config = config.worker
    if budget is not None:
        worker_config = worker_config.model_copy(
            update={"max_loop_seconds": max(budget, worker_config.poll_interval_seconds)}
        )
    
    report = run_worker(open_scope(config), config=worker_config)
    
    console.print(
        f"[green]OK[/green] processed={report.processed_jobs} "
        f"failed={report.failed_jobs} runtime={report.runtime_seconds:.1f}s"
    )


@app.command("serve")
def serve(
    config_path: Optional[Path] = typer.Option(None, "--config", "-c", help="Path to app.yaml"),
    verbose: bool = typer.Option(False, "--verbose", help="Debug logging"),
) -> None:
    """Host the worker (and scheduled batch runs) in the foreground."""
    from tenderscore.core.scheduler.service import SchedulerService
    
    from .common import configure_logging, load_config_or_exit
    
    config = load_config_or_exit(config_path)
    configure_logging(config, verbose=verbose)
    
    service = SchedulerService(config, config_path=str(config_path) if config_path else None)
    
    console.print(
        f"[bold]Scheduler running[/bold] (worker every {config.worker.worker_interval_seconds}s). "
        "Press Ctrl+C to stop."
    )
    try:
        asyncio.run(service.start())
    except KeyboardInterrupt:
        console.print("[yellow]Stopped[/yellow]")
