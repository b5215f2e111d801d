"""
Interleaved access to the job queue from two sessions.

A file-backed SQLite database gives each session its own connection, so
a rival's committed write lands between another session's read and its
conditional write.
"""
from datetime import datetime, timedelta

import pytest
from sqlalchemy import event

from tenderscore.core.config.models import JobStatus
from tenderscore.persistence.db import create_db_engine
from tenderscore.persistence.models import Base, EvaluationJob
from tenderscore.persistence.repo import JobRepository

NOW = datetime(2026, 3, 1, 12, 0, 0)


@pytest.fixture
def engine(tmp_path):
    engine = create_db_engine(f"sqlite:///{tmp_path / 'queue.db'}")
    Base.metadata.create_all(engine)
    yield engine
    engine.dispose()


def before_first_update(session, action):
    """Run ``action`` just before the session's first UPDATE statement."""
    fired = []

    @event.listens_for(session, "do_orm_execute")
    def _interleave(orm_execute_state):
        if orm_execute_state.is_update and not fired:
            fired.append(True)
            action()

    return fired


def _enqueue(scope, org_id, profile_ids):
    with scope() as session:
        return JobRepository(session).enqueue(org_id, profile_ids, now=NOW).id


def _claim(scope, worker_id, now=NOW):
    with scope() as session:
        job = JobRepository(session).claim_next(worker_id, lease_seconds=300, now=now)
        if job is None:
            return None
        return job.id, tuple(job.affected_profile_ids)


def _row(scope, job_id):
    with scope() as session:
        return session.get(EvaluationJob, job_id)


class TestClaimRace:

    def test_only_one_worker_wins(self, scope, seeded):
        job_id = _enqueue(scope, seeded.org_id, [seeded.own_id])
        rival = {}

        def rival_claims():
            rival["claim"] = _claim(scope, "rival")

        with scope() as session:
            fired = before_first_update(session, rival_claims)
            mine = JobRepository(session).claim_next("me", lease_seconds=300, now=NOW)

        assert fired
        assert mine is None
        assert rival["claim"] == (job_id, (seeded.own_id,))
        assert _row(scope, job_id).claimed_by == "rival"

    def test_loser_moves_on_to_next_job(self, scope, seeded):
        first = _enqueue(scope, seeded.org_id, [seeded.own_id])
        with scope() as session:
            # Second org-level job: the first has already failed once
            JobRepository(session).get_by_id(first).retry_count = 1
        second = _enqueue(scope, seeded.org_id, [seeded.partner_id])
        assert second != first
        rival = {}

        with scope() as session:
            before_first_update(session, lambda: rival.setdefault("claim", _claim(scope, "rival")))
            mine = JobRepository(session).claim_next("me", lease_seconds=300, now=NOW)
            mine_id = mine.id

        assert rival["claim"][0] == first
        assert mine_id == second
        assert _row(scope, second).claimed_by == "me"


class TestEnqueueRace:

    def test_claim_between_read_and_merge_creates_new_job(self, scope, seeded):
        job_id = _enqueue(scope, seeded.org_id, [seeded.own_id])
        claimed = {}

        def worker_claims():
            claimed["claim"] = _claim(scope, "w1")

        with scope() as session:
            fired = before_first_update(session, worker_claims)
            job = JobRepository(session).enqueue(seeded.org_id, [seeded.partner_id], now=NOW)
            new_id, new_ids, new_status = job.id, job.affected_profile_ids, job.status

        assert fired
        assert claimed["claim"] == (job_id, (seeded.own_id,))
        assert new_id != job_id
        assert new_ids == [seeded.partner_id]
        assert new_status == JobStatus.PENDING.value

        running = _row(scope, job_id)
        assert running.status == JobStatus.RUNNING.value
        assert running.affected_profile_ids == [seeded.own_id]

    def test_unclaimed_job_is_merged(self, scope, seeded):
        job_id = _enqueue(scope, seeded.org_id, [seeded.own_id])
        assert _enqueue(scope, seeded.org_id, [seeded.partner_id]) == job_id
        assert _row(scope, job_id).affected_profile_ids == sorted([seeded.own_id, seeded.partner_id])


class TestFailureRace:

    def test_reclaimed_job_ignores_stale_failure(self, scope, seeded):
        job_id = _enqueue(scope, seeded.org_id, [seeded.own_id])
        assert _claim(scope, "crashed")[0] == job_id
        later = NOW + timedelta(seconds=301)

        with scope() as session:
            before_first_update(session, lambda: _claim(scope, "rescuer", now=later))
            result = JobRepository(session).record_failure(job_id, "crashed", "boom", "timeout", now=later)

        assert result is None
        job = _row(scope, job_id)
        assert job.status == JobStatus.RUNNING.value
        assert job.claimed_by == "rescuer"
        assert job.retry_count == 0
        assert job.error_code is None
