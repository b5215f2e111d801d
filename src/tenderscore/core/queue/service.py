"""
Evaluation job queue.

Drives the job protocol on top of the job and evaluation repositories:
enqueue, exclusive claim, set-based evaluation with per-profile
upsert + cleanup, completion and retry/dead-letter handling.
"""

from __future__ import annotations

import os
import socket
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Callable, Iterable, Sequence
from uuid import uuid4

from tenderscore.core.config.models import EventType, JobStatus, WorkerConfig
from tenderscore.core.evaluation.profiles import evaluate_profiles
from tenderscore.core.logging import get_contextual_logger, get_logger
from tenderscore.core.scoring import NO_MATCHES_FINGERPRINT, SOLO, EvaluationResult
from tenderscore.persistence.db import SessionScope
from tenderscore.persistence.models import EvaluationJob
from tenderscore.persistence.repo import CleanupStats, EvaluationRepository, JobRepository

from .errors import classify_error
from .events import EventBroadcaster
from .retries import with_retry

logger = get_logger("queue")


def make_worker_id() -> str:
    return f"{socket.gethostname()}-{os.getpid()}-{uuid4().hex[:8]}"


@dataclass(frozen=True)
class ClaimedJob:
    """Snapshot of a job held by this worker."""
    
    id: int
    organization_id: int
    affected_profile_ids: tuple[int, ...]
    retry_count: int
    max_retries: int
    
    @classmethod
    def from_model(cls, job: EvaluationJob) -> "ClaimedJob":
        return cls(
            id=job.id,
            organization_id=job.organization_id,
            affected_profile_ids=tuple(int(pid) for pid in job.affected_profile_ids or ()),
            retry_count=job.retry_count,
            max_retries=job.max_retries,
        )


@dataclass
class JobOutcome:
    """Counts produced by processing one job."""
    
    upserted: int = 0
    pruned: int = 0
    profiles: dict[int, CleanupStats] = field(default_factory=dict)


class JobQueue:
    """Evaluation job queue bound to a storage scope.
    
    Every storage step runs in its own transaction so that a failure in
    one profile's upsert + cleanup leaves the others committed.
    """
    
    def __init__(
        self,
        scope: SessionScope,
        config: WorkerConfig | None = None,
        broadcaster: EventBroadcaster | None = None,
        worker_id: str | None = None,
        now: Callable[[], datetime] = datetime.utcnow,
    ) -> None:
        self.scope = scope
        self.config = config or WorkerConfig()
        self.broadcaster = broadcaster or EventBroadcaster(scope)
        self.worker_id = worker_id or make_worker_id()
        self.now = now
    
    # -------------------------------------------------------------------------
    # Enqueue / claim
    # -------------------------------------------------------------------------
    
    def enqueue(self, organization_id: int, profile_ids: Iterable[int]) -> int | None:
        """Queue re-evaluation of profiles. Returns the job id, or None if nothing to do."""
        with self.scope() as session:
            job = JobRepository(session).enqueue(
                organization_id,
                profile_ids,
                max_retries=self.config.default_max_retries,
                now=self.now(),
            )
            return job.id if job is not None else None
    
    @with_retry
    def claim_next_job(self) -> ClaimedJob | None:
        """Claim one eligible job, or return None when the queue is idle."""
        with self.scope() as session:
            job = JobRepository(session).claim_next(
                self.worker_id,
                lease_seconds=self.config.lease_seconds,
                now=self.now(),
            )
            if job is None:
                return None
            return ClaimedJob.from_model(job)
    
    # -------------------------------------------------------------------------
    # Processing
    # -------------------------------------------------------------------------
    
    def upsert_with_cleanup(
        self,
        organization_id: int,
        profile_id: int,
        combination_type: str,
        results: Sequence[EvaluationResult],
        fingerprint: str,
    ) -> CleanupStats:
        """Upsert a profile's results and prune stale rows in one transaction."""
        with self.scope() as session:
            return EvaluationRepository(session).upsert_with_cleanup(
                organization_id,
                profile_id,
                combination_type,
                results,
                fingerprint,
                now=self.now(),
            )
    
    def process_job(self, job: ClaimedJob) -> JobOutcome:
        """Evaluate the job's profiles and write their results.
        
        Profiles with no qualifying tender are swept with the
        ``no-matches`` fingerprint, deleting all of their prior rows.
        """
        log = get_contextual_logger("queue", org_id=job.organization_id, job_id=job.id)
        
        with self.scope() as session:
            evaluations = evaluate_profiles(session, job.organization_id, job.affected_profile_ids)
        
        outcome = JobOutcome()
        for profile_id in job.affected_profile_ids:
            evaluation = evaluations.get(profile_id)
            if evaluation is None:
                stats = self.upsert_with_cleanup(
                    job.organization_id, profile_id, SOLO, [], NO_MATCHES_FINGERPRINT
                )
            else:
                stats = self.upsert_with_cleanup(
                    job.organization_id,
                    profile_id,
                    SOLO,
                    evaluation.results,
                    evaluation.fingerprint,
                )
            
            outcome.profiles[profile_id] = stats
            outcome.upserted += stats.upserted
            outcome.pruned += stats.pruned
            log.with_context(profile_id=profile_id).debug(
                "Profile evaluated: %d upserted, %d pruned", stats.upserted, stats.pruned
            )
        
        return outcome
    
    # -------------------------------------------------------------------------
    # Completion / failure
    # -------------------------------------------------------------------------
    
    @with_retry
    def complete(self, job: ClaimedJob, payload: dict[str, Any] | None = None) -> bool:
        with self.scope() as session:
            return JobRepository(session).mark_completed(
                job.id, self.worker_id, payload=payload, now=self.now()
            )
    
    def handle_failure(self, job: ClaimedJob, exc: BaseException) -> str | None:
        """Record a failed attempt.
        
        Returns:
            The job's new status, or None if the job was no longer held
        """
        code = classify_error(exc)
        with self.scope() as session:
            updated = JobRepository(session).record_failure(
                job.id,
                self.worker_id,
                error_message=str(exc) or type(exc).__name__,
                error_code=code,
                backoff_base=self.config.backoff_base,
                max_backoff_seconds=self.config.max_backoff_seconds,
                now=self.now(),
            )
            if updated is None:
                return None
            return updated.status
    
    def requeue(self, job_id: int) -> bool:
        """Return a dead-lettered job to the pending pool."""
        with self.scope() as session:
            return JobRepository(session).requeue_dead_letter(job_id, now=self.now())
    
    # -------------------------------------------------------------------------
    # Full cycle
    # -------------------------------------------------------------------------
    
    def run_job(self, job: ClaimedJob) -> bool:
        """Process a claimed job end to end.
        
        Returns:
            True if the job completed, False if it failed
        """
        log = get_contextual_logger("queue", org_id=job.organization_id, job_id=job.id)
        affected = list(job.affected_profile_ids)
        
        self.broadcaster.broadcast(
            job.organization_id,
            EventType.EVALUATION_STARTED,
            {"job_id": job.id, "affected_profile_ids": affected},
        )
        
        try:
            outcome = self.process_job(job)
            payload = {
                "job_id": job.id,
                "affected_profile_ids": affected,
                "upserted_count": outcome.upserted,
                "pruned_count": outcome.pruned,
            }
            if not self.complete(job, payload):
                log.warning("Lost claim before completion, leaving job to its new holder")
                return False
        except Exception as exc:
            log.exception("Job failed (attempt %d)", job.retry_count + 1)
            try:
                status = self.handle_failure(job, exc)
            except Exception:
                log.exception("Could not record failure; job will be reclaimed after lease expiry")
                return False
            if status == JobStatus.DEAD_LETTER.value:
                log.error("Job moved to dead letter after %d retries", job.max_retries)
            elif status == JobStatus.PENDING.value:
                log.info("Job rescheduled with backoff")
            return False
        
        log.info(
            "Job completed: %d profiles, %d upserted, %d pruned",
            len(affected), outcome.upserted, outcome.pruned,
        )
        self.broadcaster.broadcast(job.organization_id, EventType.EVALUATION_DONE, payload)
        return True
