"""
Evaluation job commands.
"""

from __future__ import annotations

from pathlib import Path
from typing import List, Optional

import typer
from rich.console import Console
from rich.table import Table

from tenderscore.core.config.models import JobStatus

console = Console()
err_console = Console(stderr=True)

app = typer.Typer(
    help="Inspect and manage evaluation jobs",
    no_args_is_help=True,
)


@app.command("list")
def list_jobs(
    status: Optional[JobStatus] = typer.Option(None, "--status", "-s", help="Filter by status"),
    org: Optional[int] = typer.Option(None, "--org", "-o", help="Filter by organization"),
    limit: int = typer.Option(50, "--limit", "-n", help="Maximum rows"),
    config_path: Optional[Path] = typer.Option(None, "--config", "-c", help="Path to app.yaml"),
) -> None:
    """List evaluation jobs, newest first."""
    from tenderscore.persistence.repo import JobRepository
    
    from .common import load_config_or_exit, open_scope
    
    config = load_config_or_exit(config_path)
    
    with open_scope(config)() as session:
        jobs = JobRepository(session).list_jobs(
            status=status.value if status else None,
            organization_id=org,
            limit=limit,
        )
        
        if not jobs:
            console.print("[dim]No jobs found.[/dim]")
            return
        
        table = Table(title="Evaluation Jobs", show_header=True, header_style="bold magenta")
        table.add_column("ID", style="cyan", justify="right")
        table.add_column("Org", justify="right")
        table.add_column("Status")
        table.add_column("Profiles")
        table.add_column("Retries", justify="right")
        table.add_column("Run not before")
        table.add_column("Error")
        
        styles = {
            JobStatus.PENDING.value: "yellow",
            JobStatus.RUNNING.value: "blue",
            JobStatus.COMPLETED.value: "green",
            JobStatus.DEAD_LETTER.value: "red",
        }
        
        for job in jobs:
            style = styles.get(job.status, "default")
            error = f"{job.error_code}: {job.error_message}" if job.error_code else ""
            table.add_row(
                str(job.id),
                str(job.organization_id),
                f"[{style}]{job.status}[/{style}]",
                ", ".join(str(pid) for pid in job.affected_profile_ids or []),
                f"{job.retry_count}/{job.max_retries}",
                job.run_not_before.strftime("%Y-%m-%d %H:%M:%S"),
                error[:60],
            )
        
        console.print(table)


@app.command("enqueue")
def enqueue(
    org: int = typer.Argument(..., help="Organization id"),
    profile_ids: List[int] = typer.Argument(..., help="Affected profile ids"),
    config_path: Optional[Path] = typer.Option(None, "--config", "-c", help="Path to app.yaml"),
) -> None:
    """Queue re-evaluation of profiles."""
    from tenderscore.core.queue.service import JobQueue
    
    from .common import load_config_or_exit, open_scope
    
    config = load_config_or_exit(config_path)
    job_id = JobQueue(open_scope(config), config=config.worker).enqueue(org, profile_ids)
    
    if job_id is None:
        console.print("[dim]Nothing to enqueue.[/dim]")
        return
    console.print(f"[green]OK[/green] Job {job_id} pending for organization {org}")


@app.command("requeue")
def requeue(
    job_id: int = typer.Argument(..., help="Dead-lettered job id"),
    config_path: Optional[Path] = typer.Option(None, "--config", "-c", help="Path to app.yaml"),
) -> None:
    """Return a dead-lettered job to the pending pool."""
    from tenderscore.core.queue.service import JobQueue
    
    from .common import load_config_or_exit, open_scope
    
    config = load_config_or_exit(config_path)
    if not JobQueue(open_scope(config), config=config.worker).requeue(job_id):
        err_console.print(f"[red]Job {job_id} not found or not dead-lettered[/red]")
        raise typer.Exit(1)
    console.print(f"[green]OK[/green] Job {job_id} requeued")


@app.command("events")
def list_events(
    org: int = typer.Argument(..., help="Organization id"),
    limit: int = typer.Option(20, "--limit", "-n", help="Maximum rows"),
    config_path: Optional[Path] = typer.Option(None, "--config", "-c", help="Path to app.yaml"),
) -> None:
    """Show evaluation events on an organization's channel, oldest first."""
    from tenderscore.core.queue.events import channel_for
    from tenderscore.persistence.repo import EventRepository
    
    from .common import load_config_or_exit, open_scope
    
    config = load_config_or_exit(config_path)
    channel = channel_for(org)
    
    with open_scope(config)() as session:
        events = EventRepository(session).list_for_channel(channel, limit=limit)
        
        if not events:
            console.print(f"[dim]No events on {channel}.[/dim]")
            return
        
        table = Table(title=f"Events on {channel}", show_header=True, header_style="bold magenta")
        table.add_column("ID", style="cyan", justify="right")
        table.add_column("Type")
        table.add_column("Job", justify="right")
        table.add_column("At")
        
        for event in events:
            table.add_row(
                str(event.id),
                event.event_type,
                str(event.job_id or ""),
                event.created_at.strftime("%Y-%m-%d %H:%M:%S"),
            )
        
        console.print(table)
