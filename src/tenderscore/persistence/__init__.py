"""Database persistence layer."""

from .db import SessionScope, get_engine, get_session, get_session_scope, init_db, session_scope
from .models import (
    Base,
    CompanyProfile,
    EvaluationEvent,
    EvaluationJob,
    Organization,
    Tender,
    TenderEvaluation,
)
from .repo import (
    CleanupStats,
    EvaluationRepository,
    EventRepository,
    JobRepository,
    OrganizationRepository,
    ProfileRepository,
    TenderRepository,
)

__all__ = [
    "SessionScope",
    "get_engine",
    "get_session",
    "get_session_scope",
    "init_db",
    "session_scope",
    "Base",
    "CompanyProfile",
    "EvaluationEvent",
    "EvaluationJob",
    "Organization",
    "Tender",
    "TenderEvaluation",
    "CleanupStats",
    "EvaluationRepository",
    "EventRepository",
    "JobRepository",
    "OrganizationRepository",
    "ProfileRepository",
    "TenderRepository",
]
