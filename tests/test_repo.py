"""
Tests for the repositories: evaluation upsert/cleanup, tenders, profiles.
"""
from datetime import datetime, timedelta

import pytest
from sqlalchemy import select

from tenderscore.core.config.models import JobStatus, KeywordKind
from tenderscore.core.scoring import NO_MATCHES_FINGERPRINT, EvaluationResult
from tenderscore.persistence.models import EvaluationJob, Tender, TenderEvaluation
from tenderscore.persistence.repo import (
    EvaluationRepository,
    ProfileRepository,
    TenderRepository,
)


def _result(tender_id, profile_id, total=1, explanation="x = 1 poeng"):
    return EvaluationResult(
        tender_id=tender_id,
        profile_id=profile_id,
        qualified=True,
        all_minimum_requirements_met=True,
        support_score=total,
        explanation=explanation,
    )


def _rows(session, org_id, profile_id):
    stmt = (
        select(TenderEvaluation)
        .where(
            TenderEvaluation.organization_id == org_id,
            TenderEvaluation.lead_profile_id == profile_id,
        )
        .order_by(TenderEvaluation.tender_id)
    )
    return session.execute(stmt).scalars().all()


# ============= Upsert with Cleanup =============

class TestUpsertWithCleanup:

    def test_stale_tender_is_pruned(self, scope, seeded):
        """A tender that stops qualifying under new criteria is deleted; the other stays."""
        tender_a, tender_b = seeded.it_tender_id, seeded.school_tender_id

        with scope() as session:
            stats = EvaluationRepository(session).upsert_with_cleanup(
                seeded.org_id, seeded.own_id, "solo",
                [_result(tender_a, seeded.own_id), _result(tender_b, seeded.own_id)],
                "fp-1",
            )
            assert stats.upserted == 2
            assert stats.pruned == 0

        with scope() as session:
            stats = EvaluationRepository(session).upsert_with_cleanup(
                seeded.org_id, seeded.own_id, "solo",
                [_result(tender_a, seeded.own_id, total=5)],
                "fp-2",
            )
            assert stats.upserted == 1
            assert stats.pruned == 1

        with scope() as session:
            rows = _rows(session, seeded.org_id, seeded.own_id)
            assert [r.tender_id for r in rows] == [tender_a]
            assert rows[0].total_score == 5
            assert rows[0].criteria_fingerprint == "fp-2"

    def test_sentinel_sweeps_every_row(self, scope, seeded):
        with scope() as session:
            EvaluationRepository(session).upsert_with_cleanup(
                seeded.org_id, seeded.own_id, "solo",
                [_result(seeded.it_tender_id, seeded.own_id), _result(seeded.school_tender_id, seeded.own_id)],
                "fp-1",
            )

        with scope() as session:
            stats = EvaluationRepository(session).upsert_with_cleanup(
                seeded.org_id, seeded.own_id, "solo", [], NO_MATCHES_FINGERPRINT
            )
            assert stats.pruned == 2

        with scope() as session:
            assert _rows(session, seeded.org_id, seeded.own_id) == []

    def test_other_profiles_untouched(self, scope, seeded):
        with scope() as session:
            repo = EvaluationRepository(session)
            repo.upsert(seeded.org_id, _result(seeded.school_tender_id, seeded.partner_id), fingerprint="p-1")
            repo.upsert_with_cleanup(seeded.org_id, seeded.own_id, "solo", [], NO_MATCHES_FINGERPRINT)

        with scope() as session:
            assert len(_rows(session, seeded.org_id, seeded.partner_id)) == 1

    def test_manual_rows_survive(self, scope, seeded):
        with scope() as session:
            EvaluationRepository(session).upsert(
                seeded.org_id, _result(seeded.it_tender_id, seeded.own_id), fingerprint="fp-1"
            )
            row = _rows(session, seeded.org_id, seeded.own_id)[0]
            row.is_manual = True
            row.explanation = "set by hand"

        with scope() as session:
            repo = EvaluationRepository(session)
            written = repo.upsert(
                seeded.org_id, _result(seeded.it_tender_id, seeded.own_id, total=9), fingerprint="fp-2"
            )
            stats = repo.upsert_with_cleanup(seeded.org_id, seeded.own_id, "solo", [], NO_MATCHES_FINGERPRINT)
            assert written == 0
            assert stats.pruned == 0

        with scope() as session:
            rows = _rows(session, seeded.org_id, seeded.own_id)
            assert len(rows) == 1
            assert rows[0].explanation == "set by hand"

    def test_upsert_overwrites_single_row(self, scope, seeded):
        with scope() as session:
            repo = EvaluationRepository(session)
            repo.upsert(seeded.org_id, _result(seeded.it_tender_id, seeded.own_id, total=1))
            repo.upsert(seeded.org_id, _result(seeded.it_tender_id, seeded.own_id, total=3))

        with scope() as session:
            rows = _rows(session, seeded.org_id, seeded.own_id)
            assert len(rows) == 1
            assert rows[0].total_score == 3
            assert EvaluationRepository(session).evaluated_tender_ids(seeded.org_id) == {seeded.it_tender_id}


# ============= Tenders =============

class TestTenderRepository:

    def test_import_creates_then_updates(self, scope, seeded):
        records = [
            {"external_id": "N-1", "title": "Ny IT-avtale", "cpv_codes": [72000000]},
            {"external_id": "T-1", "title": "IT-drift (endret)", "deadline": "2026-01-31T12:00:00"},
        ]
        with scope() as session:
            created, updated = TenderRepository(session).import_records(seeded.org_id, records)
            assert (created, updated) == (1, 1)

        with scope() as session:
            tenders = {t.external_id: t for t in TenderRepository(session).list_for_org(seeded.org_id)}
            assert tenders["N-1"].cpv_codes == ["72000000"]
            assert tenders["T-1"].title == "IT-drift (endret)"
            assert tenders["T-1"].deadline == datetime(2026, 1, 31, 12, 0)

    def test_import_requires_external_id(self, scope, seeded):
        with scope() as session:
            with pytest.raises(ValueError):
                TenderRepository(session).import_records(seeded.org_id, [{"title": "x"}])

    def test_purge_removes_expired_with_evaluations(self, scope, seeded):
        now = datetime(2026, 6, 1)
        with scope() as session:
            tender = session.get(Tender, seeded.it_tender_id)
            tender.deadline = now - timedelta(days=31)
            old = session.get(Tender, seeded.snow_tender_id)
            old.published_date = now - timedelta(days=400)
            EvaluationRepository(session).upsert(seeded.org_id, _result(seeded.it_tender_id, seeded.own_id))

        with scope() as session:
            deleted = TenderRepository(session).purge(now, purge_after_deadline_days=30, max_age_days=365)
            assert deleted == 2

        with scope() as session:
            remaining = [t.id for t in TenderRepository(session).list_for_org(seeded.org_id)]
            assert remaining == [seeded.school_tender_id]
            assert EvaluationRepository(session).count(seeded.org_id) == 0


# ============= Profiles =============

class TestProfileRepository:

    def test_add_keyword_enqueues_job(self, scope, seeded):
        with scope() as session:
            job = ProfileRepository(session).add_keyword(seeded.own_id, KeywordKind.SUPPORT, "kommune", 2)
            job_id = job.id

        with scope() as session:
            job = session.get(EvaluationJob, job_id)
            assert job.status == JobStatus.PENDING.value
            assert job.affected_profile_ids == [seeded.own_id]
            profile = ProfileRepository(session).get_by_id(seeded.own_id)
            assert ("kommune", 2) in [(k.keyword, k.weight) for k in profile.support_keywords]

    def test_duplicate_keyword_rejected_case_insensitively(self, scope, seeded):
        with scope() as session:
            with pytest.raises(ValueError):
                ProfileRepository(session).add_keyword(seeded.own_id, KeywordKind.SUPPORT, "DRIFT")

    def test_remove_keyword(self, scope, seeded):
        with scope() as session:
            repo = ProfileRepository(session)
            assert repo.remove_keyword(seeded.own_id, KeywordKind.NEGATIVE, "ukjent") is None
            job = repo.remove_keyword(seeded.own_id, KeywordKind.NEGATIVE, "Vedlikehold")
            assert job is not None

        with scope() as session:
            assert ProfileRepository(session).get_by_id(seeded.own_id).negative_keywords == []

    def test_unknown_profile(self, scope, seeded):
        with scope() as session:
            with pytest.raises(LookupError):
                ProfileRepository(session).add_keyword(9999, KeywordKind.MINIMUM, "x")
