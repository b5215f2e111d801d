"""
Bounded evaluation worker loop.

One invocation claims and processes jobs back to back while any are
available, polls at a fixed interval while the queue is empty, and
returns once its wall-clock budget is used up. Hosts (cron, the
APScheduler service) invoke it repeatedly.
"""

from __future__ import annotations

import time
from dataclasses import dataclass
from typing import Any, Callable

from sqlalchemy.exc import SQLAlchemyError

from tenderscore.core.config.models import WorkerConfig
from tenderscore.core.logging import get_logger
from tenderscore.persistence.db import SessionScope

from .events import EventBroadcaster
from .service import JobQueue

logger = get_logger("worker")


@dataclass
class WorkerReport:
    """Summary of one worker invocation."""
    
    processed_jobs: int = 0
    failed_jobs: int = 0
    runtime_seconds: float = 0.0
    
    def to_dict(self) -> dict[str, Any]:
        return {
            "processed_jobs": self.processed_jobs,
            "failed_jobs": self.failed_jobs,
            "runtime_seconds": round(self.runtime_seconds, 3),
        }


class EvaluationWorker:
    """Runs the claim/process loop against a job queue."""
    
    def __init__(
        self,
        queue: JobQueue,
        config: WorkerConfig | None = None,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self.queue = queue
        self.config = config or queue.config
        self.clock = clock
        self.sleep = sleep
    
    def run(self) -> WorkerReport:
        """Process jobs until the time budget is exhausted."""
        report = WorkerReport()
        started = self.clock()
        deadline = started + self.config.max_loop_seconds
        
        logger.info("Worker %s started (budget %.0fs)", self.queue.worker_id, self.config.max_loop_seconds)
        
        while True:
            remaining = deadline - self.clock()
            if remaining <= 0:
                break
            
            try:
                job = self.queue.claim_next_job()
            except SQLAlchemyError:
                logger.exception("Claiming failed, ending this invocation")
                break
            
            if job is None:
                self.sleep(min(self.config.poll_interval_seconds, remaining))
                continue
            
            if self.queue.run_job(job):
                report.processed_jobs += 1
            else:
                report.failed_jobs += 1
        
        report.runtime_seconds = self.clock() - started
        logger.info(
            "Worker finished: %d processed, %d failed in %.1fs",
            report.processed_jobs, report.failed_jobs, report.runtime_seconds,
        )
        return report


def run_worker(
    scope: SessionScope,
    config: WorkerConfig | None = None,
    broadcaster: EventBroadcaster | None = None,
    clock: Callable[[], float] = time.monotonic,
    sleep: Callable[[float], None] = time.sleep,
) -> WorkerReport:
    """Worker entrypoint: one bounded invocation of the job loop."""
    config = config or WorkerConfig()
    queue = JobQueue(scope, config=config, broadcaster=broadcaster)
    return EvaluationWorker(queue, config=config, clock=clock, sleep=sleep).run()
