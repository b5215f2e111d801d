"""
Repository pattern for database operations.

Provides clean abstractions over the profile and tender stores, the
evaluation cache (upsert + fingerprint cleanup) and the evaluation job
queue (enqueue, atomic claim, completion, retry/dead-letter).
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Any, Iterable, Sequence

from sqlalchemy import and_, delete, func, or_, select, update
from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.orm import Session, selectinload

from tenderscore.core.config.models import JobStatus, KeywordKind
from tenderscore.core.scoring.combinations import SOLO
from tenderscore.core.scoring.records import EvaluationResult

from .models import (
    CompanyProfile,
    EvaluationEvent,
    EvaluationJob,
    Organization,
    ProfileCpvCode,
    ProfileMinimumRequirement,
    ProfileNegativeKeyword,
    ProfileSupportKeyword,
    Tender,
    TenderEvaluation,
)

MAX_RETRIES_EXCEEDED = "max-retries-exceeded"


def _dialect_insert(session: Session, model: Any):
    """INSERT construct supporting ON CONFLICT for the session's backend."""
    dialect = session.get_bind().dialect.name
    if dialect == "postgresql":
        return pg_insert(model)
    if dialect == "sqlite":
        return sqlite_insert(model)
    raise NotImplementedError(f"Upsert is not supported on {dialect}")


# =============================================================================
# Organization Repository
# =============================================================================


class OrganizationRepository:
    """Repository for Organization operations."""
    
    def __init__(self, session: Session):
        self.session = session
    
    def get_by_id(self, organization_id: int) -> Organization | None:
        return self.session.get(Organization, organization_id)
    
    def get_all_ids(self) -> list[int]:
        stmt = select(Organization.id).order_by(Organization.id)
        return list(self.session.execute(stmt).scalars().all())
    
    def create(self, name: str) -> Organization:
        organization = Organization(name=name)
        self.session.add(organization)
        self.session.flush()
        return organization


# =============================================================================
# Profile Repository
# =============================================================================


_KEYWORD_MODELS: dict[KeywordKind, Any] = {
    KeywordKind.MINIMUM: ProfileMinimumRequirement,
    KeywordKind.SUPPORT: ProfileSupportKeyword,
    KeywordKind.NEGATIVE: ProfileNegativeKeyword,
    KeywordKind.CPV: ProfileCpvCode,
}


class ProfileRepository:
    """Repository for company profiles and their criteria.
    
    Criteria mutations enqueue an evaluation job for the profile.
    """
    
    def __init__(self, session: Session, max_retries: int = 5):
        self.session = session
        self.max_retries = max_retries
    
    def _with_criteria(self):
        return select(CompanyProfile).options(
            selectinload(CompanyProfile.minimum_requirements),
            selectinload(CompanyProfile.support_keywords),
            selectinload(CompanyProfile.negative_keywords),
            selectinload(CompanyProfile.cpv_codes),
        )
    
    def get_by_id(self, profile_id: int) -> CompanyProfile | None:
        stmt = self._with_criteria().where(CompanyProfile.id == profile_id)
        return self.session.execute(stmt).scalar_one_or_none()
    
    def list_for_org(self, organization_id: int) -> Sequence[CompanyProfile]:
        """All profiles of an organization with criteria loaded."""
        stmt = (
            self._with_criteria()
            .where(CompanyProfile.organization_id == organization_id)
            .order_by(CompanyProfile.id)
        )
        return self.session.execute(stmt).scalars().all()
    
    def get_by_ids(self, organization_id: int, profile_ids: Iterable[int]) -> Sequence[CompanyProfile]:
        ids = list(profile_ids)
        if not ids:
            return []
        stmt = (
            self._with_criteria()
            .where(
                and_(
                    CompanyProfile.organization_id == organization_id,
                    CompanyProfile.id.in_(ids),
                )
            )
            .order_by(CompanyProfile.id)
        )
        return self.session.execute(stmt).scalars().all()
    
    def create(
        self,
        organization_id: int,
        profile_name: str,
        is_own_profile: bool = False,
    ) -> CompanyProfile:
        profile = CompanyProfile(
            organization_id=organization_id,
            profile_name=profile_name,
            is_own_profile=is_own_profile,
        )
        self.session.add(profile)
        self.session.flush()
        return profile
    
    def _entries(self, profile: CompanyProfile, kind: KeywordKind) -> list[Any]:
        return {
            KeywordKind.MINIMUM: profile.minimum_requirements,
            KeywordKind.SUPPORT: profile.support_keywords,
            KeywordKind.NEGATIVE: profile.negative_keywords,
            KeywordKind.CPV: profile.cpv_codes,
        }[kind]
    
    @staticmethod
    def _term(entry: Any) -> str:
        return entry.cpv_code if isinstance(entry, ProfileCpvCode) else entry.keyword
    
    def add_keyword(
        self,
        profile_id: int,
        kind: KeywordKind,
        keyword: str,
        weight: int | None = None,
    ) -> EvaluationJob | None:
        """Add a keyword or CPV code and enqueue re-evaluation of the profile.
        
        Raises:
            LookupError: If the profile does not exist
            ValueError: If the keyword is blank or already present (case-insensitive)
        """
        profile = self.get_by_id(profile_id)
        if profile is None:
            raise LookupError(f"Profile not found: {profile_id}")
        
        keyword = keyword.strip()
        if not keyword:
            raise ValueError("Keyword must not be empty")
        
        entries = self._entries(profile, kind)
        if any(self._term(e).lower() == keyword.lower() for e in entries):
            raise ValueError(f"'{keyword}' already exists in {kind.value} list of profile {profile_id}")
        
        model = _KEYWORD_MODELS[kind]
        if kind is KeywordKind.MINIMUM:
            entry = model(profile_id=profile_id, keyword=keyword)
        elif kind is KeywordKind.CPV:
            entry = model(profile_id=profile_id, cpv_code=keyword, weight=1 if weight is None else weight)
        elif kind is KeywordKind.NEGATIVE:
            entry = model(profile_id=profile_id, keyword=keyword, weight=-1 if weight is None else weight)
        else:
            entry = model(profile_id=profile_id, keyword=keyword, weight=1 if weight is None else weight)
        entries.append(entry)
        self.session.flush()
        
        return JobRepository(self.session).enqueue(
            profile.organization_id, [profile_id], max_retries=self.max_retries
        )
    
    def remove_keyword(
        self,
        profile_id: int,
        kind: KeywordKind,
        keyword: str,
    ) -> EvaluationJob | None:
        """Remove a keyword or CPV code and enqueue re-evaluation.
        
        Returns:
            The enqueued job, or None if nothing was removed
        """
        profile = self.get_by_id(profile_id)
        if profile is None:
            raise LookupError(f"Profile not found: {profile_id}")
        
        entries = self._entries(profile, kind)
        matches = [e for e in entries if self._term(e).lower() == keyword.strip().lower()]
        if not matches:
            return None
        
        for entry in matches:
            entries.remove(entry)
        self.session.flush()
        
        return JobRepository(self.session).enqueue(
            profile.organization_id, [profile_id], max_retries=self.max_retries
        )


# =============================================================================
# Tender Repository
# =============================================================================


class TenderRepository:
    """Repository for the normalized tender store."""
    
    FIELDS = ("title", "body", "cpv_codes", "deadline", "published_date", "url")
    
    def __init__(self, session: Session):
        self.session = session
    
    def get_by_id(self, tender_id: int) -> Tender | None:
        return self.session.get(Tender, tender_id)
    
    def list_for_org(
        self,
        organization_id: int,
        exclude_ids: Iterable[int] | None = None,
    ) -> Sequence[Tender]:
        stmt = select(Tender).where(Tender.organization_id == organization_id)
        excluded = list(exclude_ids or ())
        if excluded:
            stmt = stmt.where(Tender.id.not_in(excluded))
        stmt = stmt.order_by(Tender.id)
        return self.session.execute(stmt).scalars().all()
    
    def upsert(
        self,
        organization_id: int,
        external_id: str,
        data: dict[str, Any],
    ) -> tuple[Tender, bool]:
        """Create or update a tender by (organization, external id).
        
        Returns:
            Tuple of (tender, created)
        """
        values = {k: v for k, v in data.items() if k in self.FIELDS}
        if "cpv_codes" in values:
            values["cpv_codes"] = [str(code) for code in values["cpv_codes"] or []]
        
        stmt = select(Tender).where(
            and_(
                Tender.organization_id == organization_id,
                Tender.external_id == external_id,
            )
        )
        existing = self.session.execute(stmt).scalar_one_or_none()
        
        if existing is not None:
            for field, value in values.items():
                setattr(existing, field, value)
            self.session.flush()
            return existing, False
        
        tender = Tender(organization_id=organization_id, external_id=external_id, **values)
        self.session.add(tender)
        self.session.flush()
        return tender, True
    
    def import_records(
        self,
        organization_id: int,
        records: Iterable[dict[str, Any]],
    ) -> tuple[int, int]:
        """Upsert normalized tender records keyed by their external id.
        
        Date fields may be ISO-8601 strings.
        
        Returns:
            Tuple of (created, updated)
        
        Raises:
            ValueError: If a record has no external id or an invalid date
        """
        created = updated = 0
        for record in records:
            external_id = record.get("external_id") or record.get("id")
            if external_id is None or str(external_id).strip() == "":
                raise ValueError(f"Tender record without external_id: {record!r}")
            
            data = dict(record)
            for key in ("deadline", "published_date"):
                if isinstance(data.get(key), str):
                    data[key] = datetime.fromisoformat(data[key])
            
            _, was_created = self.upsert(organization_id, str(external_id), data)
            if was_created:
                created += 1
            else:
                updated += 1
        return created, updated
    
    def purge(
        self,
        now: datetime,
        purge_after_deadline_days: int,
        max_age_days: int,
    ) -> int:
        """Apply the retention policy relative to ``now``."""
        return self.purge_expired(
            deadline_before=now - timedelta(days=purge_after_deadline_days),
            published_before=now - timedelta(days=max_age_days),
        )
    
    def purge_expired(
        self,
        deadline_before: datetime,
        published_before: datetime,
    ) -> int:
        """Delete tenders past their deadline window or too old, with their evaluations.
        
        Returns:
            Number of tenders deleted
        """
        expired = or_(
            and_(Tender.deadline.is_not(None), Tender.deadline < deadline_before),
            and_(Tender.published_date.is_not(None), Tender.published_date < published_before),
        )
        ids = list(self.session.execute(select(Tender.id).where(expired)).scalars().all())
        if not ids:
            return 0
        
        self.session.execute(
            delete(TenderEvaluation)
            .where(TenderEvaluation.tender_id.in_(ids))
            .execution_options(synchronize_session=False)
        )
        result = self.session.execute(
            delete(Tender).where(Tender.id.in_(ids)).execution_options(synchronize_session=False)
        )
        return int(result.rowcount or 0)


# =============================================================================
# Evaluation Repository
# =============================================================================


@dataclass
class CleanupStats:
    """Outcome of an upsert-with-cleanup call."""
    
    upserted: int = 0
    pruned: int = 0


class EvaluationRepository:
    """Repository for the tender evaluation cache."""
    
    KEY_COLUMNS = ("tender_id", "organization_id", "lead_profile_id")
    
    def __init__(self, session: Session):
        self.session = session
    
    def get(self, tender_id: int, organization_id: int, profile_id: int) -> TenderEvaluation | None:
        stmt = select(TenderEvaluation).where(
            and_(
                TenderEvaluation.tender_id == tender_id,
                TenderEvaluation.organization_id == organization_id,
                TenderEvaluation.lead_profile_id == profile_id,
            )
        )
        return self.session.execute(stmt).scalar_one_or_none()
    
    def evaluated_tender_ids(self, organization_id: int) -> set[int]:
        """Tenders that already have an evaluation for any profile of the org."""
        stmt = (
            select(TenderEvaluation.tender_id)
            .where(TenderEvaluation.organization_id == organization_id)
            .distinct()
        )
        return set(self.session.execute(stmt).scalars().all())
    
    def list_for_org(
        self,
        organization_id: int,
        profile_id: int | None = None,
        qualified_only: bool = False,
        limit: int = 100,
    ) -> Sequence[TenderEvaluation]:
        stmt = select(TenderEvaluation).where(TenderEvaluation.organization_id == organization_id)
        if profile_id is not None:
            stmt = stmt.where(TenderEvaluation.lead_profile_id == profile_id)
        if qualified_only:
            stmt = stmt.where(TenderEvaluation.qualified.is_(True))
        stmt = stmt.order_by(TenderEvaluation.total_score.desc(), TenderEvaluation.tender_id)
        stmt = stmt.limit(limit)
        return self.session.execute(stmt).scalars().all()
    
    def count(self, organization_id: int | None = None) -> int:
        stmt = select(func.count(TenderEvaluation.id))
        if organization_id is not None:
            stmt = stmt.where(TenderEvaluation.organization_id == organization_id)
        return int(self.session.execute(stmt).scalar_one())
    
    def upsert(
        self,
        organization_id: int,
        result: EvaluationResult,
        fingerprint: str | None = None,
        now: datetime | None = None,
    ) -> int:
        """Insert or overwrite the row keyed by (tender, organization, profile).
        
        Manual rows are left untouched.
        
        Returns:
            Number of rows written (0 or 1)
        """
        now = now or datetime.utcnow()
        row = result.to_row()
        row["organization_id"] = organization_id
        if fingerprint is not None:
            row["criteria_fingerprint"] = fingerprint
        
        insert_stmt = _dialect_insert(self.session, TenderEvaluation).values(
            **row,
            is_manual=False,
            created_at=now,
            updated_at=now,
        )
        updates = {k: v for k, v in row.items() if k not in self.KEY_COLUMNS}
        updates["updated_at"] = now
        stmt = insert_stmt.on_conflict_do_update(
            index_elements=list(self.KEY_COLUMNS),
            set_=updates,
            where=TenderEvaluation.is_manual.is_(False),
        )
        written = self.session.execute(stmt).rowcount
        return max(int(written or 0), 0)
    
    def upsert_with_cleanup(
        self,
        organization_id: int,
        profile_id: int,
        combination_type: str,
        results: Sequence[EvaluationResult],
        fingerprint: str,
        now: datetime | None = None,
    ) -> CleanupStats:
        """Upsert a profile's qualifying results and prune stale rows.
        
        Rows for the profile that were computed with a different
        fingerprint and are absent from ``results`` are deleted. Runs in
        the caller's transaction, so the whole call commits or rolls back
        as one unit.
        """
        now = now or datetime.utcnow()
        stats = CleanupStats()
        
        for result in results:
            stats.upserted += self.upsert(organization_id, result, fingerprint=fingerprint, now=now)
        
        kept_ids = [r.tender_id for r in results]
        stmt = delete(TenderEvaluation).where(
            and_(
                TenderEvaluation.organization_id == organization_id,
                TenderEvaluation.lead_profile_id == profile_id,
                TenderEvaluation.combination_type == combination_type,
                TenderEvaluation.is_manual.is_(False),
                or_(
                    TenderEvaluation.criteria_fingerprint.is_(None),
                    TenderEvaluation.criteria_fingerprint != fingerprint,
                ),
            )
        )
        if kept_ids:
            stmt = stmt.where(TenderEvaluation.tender_id.not_in(kept_ids))
        
        result = self.session.execute(stmt.execution_options(synchronize_session=False))
        stats.pruned = int(result.rowcount or 0)
        return stats


# =============================================================================
# Job Repository
# =============================================================================


def dedupe_key_for(organization_id: int) -> str:
    return f"org:{organization_id}"


class JobRepository:
    """Repository for the durable evaluation job queue."""
    
    CLAIM_CANDIDATES = 10
    
    def __init__(self, session: Session):
        self.session = session
    
    def get_by_id(self, job_id: int) -> EvaluationJob | None:
        return self.session.get(EvaluationJob, job_id)
    
    def enqueue(
        self,
        organization_id: int,
        profile_ids: Iterable[int],
        max_retries: int = 5,
        now: datetime | None = None,
    ) -> EvaluationJob | None:
        """Create a pending job, or merge into a fresh pending job for the org.
        
        The merge is a conditional UPDATE that only applies while the job
        is still pending and unclaimed. If a worker claimed it after it was
        read, a new pending job is created so the profiles are not lost.
        
        Returns:
            The created or merged job, or None when no profiles were given
        """
        ids = sorted({int(pid) for pid in profile_ids})
        if not ids:
            return None
        
        now = now or datetime.utcnow()
        key = dedupe_key_for(organization_id)
        mergeable = and_(
            EvaluationJob.dedupe_key == key,
            EvaluationJob.status == JobStatus.PENDING.value,
            EvaluationJob.retry_count == 0,
            EvaluationJob.claimed_by.is_(None),
        )
        
        stmt = (
            select(EvaluationJob.id, EvaluationJob.affected_profile_ids)
            .where(mergeable)
            .order_by(EvaluationJob.id)
            .limit(1)
        )
        if self.session.get_bind().dialect.name == "postgresql":
            stmt = stmt.with_for_update()
        existing = self.session.execute(stmt).first()
        
        if existing is not None:
            job_id, current_ids = existing
            merged = sorted(set(current_ids or []) | set(ids))
            result = self.session.execute(
                update(EvaluationJob)
                .where(and_(EvaluationJob.id == job_id, mergeable))
                .values(affected_profile_ids=merged, updated_at=now)
                .execution_options(synchronize_session=False)
            )
            if result.rowcount == 1:
                return self.session.get(EvaluationJob, job_id, populate_existing=True)
        
        job = EvaluationJob(
            organization_id=organization_id,
            affected_profile_ids=ids,
            dedupe_key=key,
            status=JobStatus.PENDING.value,
            retry_count=0,
            max_retries=max_retries,
            run_not_before=now,
            created_at=now,
        )
        self.session.add(job)
        self.session.flush()
        return job
    
    @staticmethod
    def _claimable(now: datetime):
        return or_(
            and_(
                EvaluationJob.status == JobStatus.PENDING.value,
                EvaluationJob.run_not_before <= now,
            ),
            and_(
                EvaluationJob.status == JobStatus.RUNNING.value,
                EvaluationJob.lease_expires_at.is_not(None),
                EvaluationJob.lease_expires_at <= now,
            ),
        )
    
    def claim_next(
        self,
        worker_id: str,
        lease_seconds: int = 300,
        now: datetime | None = None,
    ) -> EvaluationJob | None:
        """Atomically claim one eligible job for ``worker_id``.
        
        Eligible jobs are pending ones whose ``run_not_before`` has passed,
        and running ones whose lease expired. The claim is a single
        conditional UPDATE per candidate; a zero rowcount means another
        worker got there first.
        """
        now = now or datetime.utcnow()
        claimable = self._claimable(now)
        
        stmt = (
            select(EvaluationJob.id, EvaluationJob.status)
            .where(claimable)
            .order_by(EvaluationJob.run_not_before, EvaluationJob.id)
            .limit(self.CLAIM_CANDIDATES)
        )
        if self.session.get_bind().dialect.name == "postgresql":
            stmt = stmt.with_for_update(skip_locked=True)
        
        candidates = self.session.execute(stmt).all()
        
        for job_id, observed_status in candidates:
            claim = (
                update(EvaluationJob)
                .where(
                    and_(
                        EvaluationJob.id == job_id,
                        EvaluationJob.status == observed_status,
                        claimable,
                    )
                )
                .values(
                    status=JobStatus.RUNNING.value,
                    claimed_by=worker_id,
                    started_at=now,
                    lease_expires_at=now + timedelta(seconds=lease_seconds),
                    updated_at=now,
                )
                .execution_options(synchronize_session=False)
            )
            if self.session.execute(claim).rowcount == 1:
                return self.session.get(EvaluationJob, job_id, populate_existing=True)
        
        return None
    
    def _held(self, job_id: int, worker_id: str) -> EvaluationJob | None:
        job = self.session.get(EvaluationJob, job_id, populate_existing=True)
        if job is None or job.status != JobStatus.RUNNING.value or job.claimed_by != worker_id:
            return None
        return job
    
    def mark_completed(
        self,
        job_id: int,
        worker_id: str,
        payload: dict[str, Any] | None = None,
        now: datetime | None = None,
    ) -> bool:
        """Mark a held job completed.
        
        Returns:
            False if the job is no longer held by this worker
        """
        now = now or datetime.utcnow()
        result = self.session.execute(
            update(EvaluationJob)
            .where(
                and_(
                    EvaluationJob.id == job_id,
                    EvaluationJob.status == JobStatus.RUNNING.value,
                    EvaluationJob.claimed_by == worker_id,
                )
            )
            .values(
                status=JobStatus.COMPLETED.value,
                completed_at=now,
                updated_at=now,
                lease_expires_at=None,
                broadcast_payload=payload,
            )
            .execution_options(synchronize_session=False)
        )
        return result.rowcount == 1
    
    def record_failure(
        self,
        job_id: int,
        worker_id: str,
        error_message: str,
        error_code: str,
        backoff_base: float = 2.0,
        max_backoff_seconds: int = 3600,
        now: datetime | None = None,
    ) -> EvaluationJob | None:
        """Reschedule a failed job with exponential backoff, or dead-letter it.
        
        ``retry_count`` is incremented; while it stays within
        ``max_retries`` the job returns to pending with ``run_not_before``
        pushed ``backoff_base ** retry_count`` seconds ahead. The write is
        conditional on the job still being held by ``worker_id``.
        
        Returns:
            The updated job, or None if it is no longer held by this worker
        """
        now = now or datetime.utcnow()
        job = self._held(job_id, worker_id)
        if job is None:
            return None
        
        retry_count = job.retry_count + 1
        values: dict[str, Any] = {
            "retry_count": retry_count,
            "error_message": error_message,
            "claimed_by": None,
            "lease_expires_at": None,
            "updated_at": now,
        }
        if retry_count > job.max_retries:
            values["status"] = JobStatus.DEAD_LETTER.value
            values["error_code"] = MAX_RETRIES_EXCEEDED
        else:
            delay = min(backoff_base ** retry_count, max_backoff_seconds)
            values["status"] = JobStatus.PENDING.value
            values["error_code"] = error_code
            values["run_not_before"] = now + timedelta(seconds=delay)
        
        result = self.session.execute(
            update(EvaluationJob)
            .where(
                and_(
                    EvaluationJob.id == job_id,
                    EvaluationJob.status == JobStatus.RUNNING.value,
                    EvaluationJob.claimed_by == worker_id,
                    EvaluationJob.retry_count == job.retry_count,
                )
            )
            .values(**values)
            .execution_options(synchronize_session=False)
        )
        if result.rowcount != 1:
            return None
        return self.session.get(EvaluationJob, job_id, populate_existing=True)
    
    def requeue_dead_letter(self, job_id: int, now: datetime | None = None) -> bool:
        """Return a dead-lettered job to the pending pool with a fresh retry budget."""
        now = now or datetime.utcnow()
        job = self.get_by_id(job_id)
        if job is None or job.status != JobStatus.DEAD_LETTER.value:
            return False
        
        job.status = JobStatus.PENDING.value
        job.retry_count = 0
        job.run_not_before = now
        job.error_message = None
        job.error_code = None
        job.updated_at = now
        self.session.flush()
        return True
    
    def list_jobs(
        self,
        status: str | None = None,
        organization_id: int | None = None,
        limit: int = 50,
    ) -> Sequence[EvaluationJob]:
        stmt = select(EvaluationJob)
        if status is not None:
            stmt = stmt.where(EvaluationJob.status == status)
        if organization_id is not None:
            stmt = stmt.where(EvaluationJob.organization_id == organization_id)
        stmt = stmt.order_by(EvaluationJob.id.desc()).limit(limit)
        return self.session.execute(stmt).scalars().all()
    
    def count_by_status(self) -> dict[str, int]:
        stmt = select(EvaluationJob.status, func.count(EvaluationJob.id)).group_by(EvaluationJob.status)
        return {status: count for status, count in self.session.execute(stmt).all()}


# =============================================================================
# Event Repository
# =============================================================================


class EventRepository:
    """Repository for the evaluation event outbox."""
    
    def __init__(self, session: Session):
        self.session = session
    
    def record(
        self,
        organization_id: int,
        channel: str,
        event_type: str,
        payload: dict[str, Any],
        job_id: int | None = None,
    ) -> EvaluationEvent:
        event = EvaluationEvent(
            organization_id=organization_id,
            channel=channel,
            event_type=event_type,
            job_id=job_id,
            payload=payload,
        )
        self.session.add(event)
        self.session.flush()
        return event
    
    def list_for_channel(
        self,
        channel: str,
        since: datetime | None = None,
        limit: int = 100,
    ) -> Sequence[EvaluationEvent]:
        stmt = select(EvaluationEvent).where(EvaluationEvent.channel == channel)
        if since is not None:
            stmt = stmt.where(EvaluationEvent.created_at >= since)
        stmt = stmt.order_by(EvaluationEvent.id).limit(limit)
        return self.session.execute(stmt).scalars().all()
