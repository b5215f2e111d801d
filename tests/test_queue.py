"""
Tests for the evaluation job queue: enqueue, claim, retry and dead-letter.
"""
from datetime import datetime, timedelta

import pytest
from sqlalchemy.exc import OperationalError

from tenderscore.core.config.models import JobStatus
from tenderscore.core.queue import JobError, JobQueue, classify_error
from tenderscore.core.queue.retries import RetryConfig, with_retry
from tenderscore.persistence.models import EvaluationJob
from tenderscore.persistence.repo import JobRepository

NOW = datetime(2026, 3, 1, 12, 0, 0)


def _queue(scope, worker_config, worker_id, now=NOW):
    return JobQueue(scope, config=worker_config, worker_id=worker_id, now=lambda: now)


def _job(scope, job_id):
    with scope() as session:
        return session.get(EvaluationJob, job_id)


# ============= Enqueue =============

class TestEnqueue:

    def test_pending_job_is_merged(self, scope, seeded, worker_config):
        queue = _queue(scope, worker_config, "w1")
        first = queue.enqueue(seeded.org_id, [seeded.own_id])
        second = queue.enqueue(seeded.org_id, [seeded.partner_id, seeded.own_id])

        assert first == second
        job = _job(scope, first)
        assert job.affected_profile_ids == sorted([seeded.own_id, seeded.partner_id])
        assert job.dedupe_key == f"org:{seeded.org_id}"
        assert job.max_retries == worker_config.default_max_retries
        assert job.run_not_before == NOW

    def test_claimed_job_is_not_merged(self, scope, seeded, worker_config):
        queue = _queue(scope, worker_config, "w1")
        first = queue.enqueue(seeded.org_id, [seeded.own_id])
        assert queue.claim_next_job().id == first

        second = queue.enqueue(seeded.org_id, [seeded.own_id])
        assert second != first

    def test_empty_profile_set(self, scope, seeded, worker_config):
        assert _queue(scope, worker_config, "w1").enqueue(seeded.org_id, []) is None


# ============= Claim =============

class TestClaim:

    def test_claim_is_exclusive(self, scope, seeded, worker_config):
        first_worker = _queue(scope, worker_config, "w1")
        second_worker = _queue(scope, worker_config, "w2")
        job_id = first_worker.enqueue(seeded.org_id, [seeded.own_id])

        claimed = first_worker.claim_next_job()
        assert claimed.id == job_id
        assert claimed.affected_profile_ids == (seeded.own_id,)
        assert second_worker.claim_next_job() is None

        job = _job(scope, job_id)
        assert job.status == JobStatus.RUNNING.value
        assert job.claimed_by == "w1"
        assert job.lease_expires_at == NOW + timedelta(seconds=worker_config.lease_seconds)

    def test_future_job_not_claimable(self, scope, seeded, worker_config):
        with scope() as session:
            JobRepository(session).enqueue(seeded.org_id, [seeded.own_id], now=NOW + timedelta(minutes=5))

        assert _queue(scope, worker_config, "w1").claim_next_job() is None
        assert _queue(scope, worker_config, "w1", now=NOW + timedelta(minutes=5)).claim_next_job() is not None

    def test_expired_lease_is_reclaimed(self, scope, seeded, worker_config):
        crashed = _queue(scope, worker_config, "crashed")
        job_id = crashed.enqueue(seeded.org_id, [seeded.own_id])
        held = crashed.claim_next_job()

        later = NOW + timedelta(seconds=worker_config.lease_seconds + 1)
        rescuer = _queue(scope, worker_config, "rescuer", now=later)
        assert _queue(scope, worker_config, "early", now=NOW + timedelta(seconds=10)).claim_next_job() is None
        assert rescuer.claim_next_job().id == job_id

        # The original holder can no longer complete or fail the job
        assert crashed.complete(held) is False
        assert crashed.handle_failure(held, RuntimeError("late")) is None
        assert _job(scope, job_id).claimed_by == "rescuer"

    def test_complete_records_payload(self, scope, seeded, worker_config):
        queue = _queue(scope, worker_config, "w1")
        queue.enqueue(seeded.org_id, [seeded.own_id])
        job = queue.claim_next_job()

        assert queue.complete(job, {"upserted_count": 2}) is True
        stored = _job(scope, job.id)
        assert stored.status == JobStatus.COMPLETED.value
        assert stored.completed_at == NOW
        assert stored.broadcast_payload == {"upserted_count": 2}


# ============= Retry and Dead Letter =============

def _fail_times(scope, org_id, profile_id, times, max_retries=5):
    """Claim and fail a job ``times`` times, each claim at its run_not_before."""
    with scope() as session:
        job_id = JobRepository(session).enqueue(org_id, [profile_id], max_retries=max_retries, now=NOW).id

    at = NOW
    for _ in range(times):
        with scope() as session:
            repo = JobRepository(session)
            claimed = repo.claim_next("w1", lease_seconds=300, now=at)
            assert claimed.id == job_id
            job = repo.record_failure(job_id, "w1", "boom", "unknown", now=at)
            last_failure, at = at, job.run_not_before
    return job_id, last_failure


class TestRetries:

    def test_three_failures_back_off(self, scope, seeded):
        job_id, last_failure = _fail_times(scope, seeded.org_id, seeded.own_id, 3)

        job = _job(scope, job_id)
        assert job.status == JobStatus.PENDING.value
        assert job.retry_count == 3
        assert job.run_not_before == last_failure + timedelta(seconds=8)
        assert job.claimed_by is None
        assert job.error_code == "unknown"

    def test_six_failures_dead_letter(self, scope, seeded):
        job_id, _ = _fail_times(scope, seeded.org_id, seeded.own_id, 6)

        job = _job(scope, job_id)
        assert job.status == JobStatus.DEAD_LETTER.value
        assert job.retry_count == 6
        assert job.error_code == "max-retries-exceeded"

        with scope() as session:
            assert JobRepository(session).claim_next("w1", now=NOW + timedelta(days=1)) is None

    def test_backoff_is_capped(self, scope, seeded):
        with scope() as session:
            repo = JobRepository(session)
            job = repo.enqueue(seeded.org_id, [seeded.own_id], max_retries=20, now=NOW)
            job.retry_count = 15
            session.flush()
            repo.claim_next("w1", now=NOW)
            job = repo.record_failure(job.id, "w1", "boom", "timeout", max_backoff_seconds=3600, now=NOW)
            assert job.run_not_before == NOW + timedelta(seconds=3600)

    def test_requeue_dead_letter(self, scope, seeded, worker_config):
        job_id, _ = _fail_times(scope, seeded.org_id, seeded.own_id, 2, max_retries=1)
        queue = _queue(scope, worker_config, "w1", now=NOW + timedelta(hours=1))

        assert queue.requeue(job_id) is True
        job = _job(scope, job_id)
        assert job.status == JobStatus.PENDING.value
        assert job.retry_count == 0
        assert job.error_code is None
        assert queue.requeue(job_id) is False

    def test_handle_failure_classifies(self, scope, seeded, worker_config):
        queue = _queue(scope, worker_config, "w1")
        queue.enqueue(seeded.org_id, [seeded.own_id])
        job = queue.claim_next_job()

        assert queue.handle_failure(job, JobError("denied", code="access-denied")) == JobStatus.PENDING.value
        stored = _job(scope, job.id)
        assert stored.error_code == "access-denied"
        assert stored.error_message == "denied"
        assert stored.run_not_before == NOW + timedelta(seconds=2)


# ============= Error Classification =============

class TestClassifyError:

    @pytest.mark.parametrize("exc, expected", [
        (JobError("x", code="parse-error"), "parse-error"),
        (Exception("syntax error in tsquery: 'it &'"), "parse-error"),
        (Exception("permission denied for table tenders"), "access-denied"),
        (Exception("new row violates row-level security policy"), "access-denied"),
        (TimeoutError(), "timeout"),
        (Exception("canceling statement due to statement timeout"), "timeout"),
        (ValueError("boom"), "unknown"),
    ])
    def test_codes(self, exc, expected):
        assert classify_error(exc) == expected

    def test_database_locked(self):
        exc = OperationalError("UPDATE evaluation_jobs", {}, Exception("database is locked"))
        assert classify_error(exc) == "timeout"


# ============= In-process Retries =============

class TestWithRetry:

    def _locked(self):
        return OperationalError("UPDATE evaluation_jobs", {}, Exception("database is locked"))

    def test_retries_then_reraises(self):
        calls = []

        @with_retry(config=RetryConfig(jitter=False, min_wait=0, max_wait=0))
        def flaky():
            calls.append(1)
            raise self._locked()

        with pytest.raises(OperationalError):
            flaky()
        assert len(calls) == 3

    def test_overrides_leave_shared_config_untouched(self):
        shared = RetryConfig(max_attempts=4, jitter=False, min_wait=0, max_wait=0)
        calls = []

        @with_retry(config=shared, max_attempts=2, retry_on=(ValueError,))
        def flaky():
            calls.append(1)
            raise ValueError("boom")

        with pytest.raises(ValueError):
            flaky()
        assert len(calls) == 2
        assert shared.max_attempts == 4
        assert shared.retry_exceptions == (OperationalError,)

    def test_other_errors_are_not_retried(self):
        calls = []

        @with_retry
        def broken():
            calls.append(1)
            raise ValueError("boom")

        with pytest.raises(ValueError):
            broken()
        assert len(calls) == 1
