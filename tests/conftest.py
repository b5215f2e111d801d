"""
Shared fixtures: in-memory SQLite database and a seeded organization.
"""
from __future__ import annotations

from types import SimpleNamespace

import pytest
from sqlalchemy import create_engine, event
from sqlalchemy.pool import StaticPool

from tenderscore.core.config.models import WorkerConfig
from tenderscore.persistence.db import create_session_factory, session_scope
from tenderscore.persistence.models import (
    Base,
    CompanyProfile,
    Organization,
    ProfileCpvCode,
    ProfileMinimumRequirement,
    ProfileNegativeKeyword,
    ProfileSupportKeyword,
    Tender,
)


@pytest.fixture
def engine():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )

    @event.listens_for(engine, "connect")
    def _enable_foreign_keys(dbapi_connection, connection_record):
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()

    Base.metadata.create_all(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def scope(engine):
    return session_scope(create_session_factory(engine))


@pytest.fixture
def worker_config():
    return WorkerConfig(poll_interval_seconds=3, max_loop_seconds=50, lease_seconds=300)


def add_profile(session, org_id, name, own=False, minimum=(), support=(), negative=(), cpv=()):
    profile = CompanyProfile(organization_id=org_id, profile_name=name, is_own_profile=own)
    profile.minimum_requirements = [ProfileMinimumRequirement(keyword=k) for k in minimum]
    profile.support_keywords = [ProfileSupportKeyword(keyword=k, weight=w) for k, w in support]
    profile.negative_keywords = [ProfileNegativeKeyword(keyword=k, weight=w) for k, w in negative]
    profile.cpv_codes = [ProfileCpvCode(cpv_code=c, weight=w) for c, w in cpv]
    session.add(profile)
    session.flush()
    return profile


def add_tender(session, org_id, external_id, title, body="", cpv_codes=()):
    tender = Tender(
        organization_id=org_id,
        external_id=external_id,
        title=title,
        body=body,
        cpv_codes=list(cpv_codes),
    )
    session.add(tender)
    session.flush()
    return tender


@pytest.fixture
def seeded(scope):
    """One organization with an own profile, a partner profile and three tenders."""
    with scope() as session:
        org = Organization(name="Acme AS")
        session.add(org)
        session.flush()

        own = add_profile(
            session,
            org.id,
            "Acme",
            own=True,
            minimum=["IT"],
            support=[("drift", 2), ("support", 1)],
            negative=[("vedlikehold", -3)],
            cpv=[("7200", 1)],
        )
        partner = add_profile(session, org.id, "Bygg Partner", minimum=["skole"], support=[("bygg", 2)])

        it_tender = add_tender(
            session, org.id, "T-1", "IT-drift og support for kommune", cpv_codes=["72000000"]
        )
        school_tender = add_tender(session, org.id, "T-2", "Bygg av ny skole", body="ingen IT-komponenter")
        snow_tender = add_tender(
            session, org.id, "T-3", "Snøbrøyting", body="vinterdrift av veier", cpv_codes=["90620000"]
        )

        return SimpleNamespace(
            org_id=org.id,
            own_id=own.id,
            partner_id=partner.id,
            it_tender_id=it_tender.id,
            school_tender_id=school_tender.id,
            snow_tender_id=snow_tender.id,
        )
