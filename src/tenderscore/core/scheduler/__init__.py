"""Scheduler service - APScheduler integration."""

from .service import SchedulerService, execute_batch_run, execute_worker_run

__all__ = [
    "SchedulerService",
    "execute_batch_run",
    "execute_worker_run",
]
