"""
SQLAlchemy ORM models for TenderScore.

Defines the complete database schema including:
- Organizations and their company profiles with keyword/CPV criteria
- Tenders: normalized notices per organization
- TenderEvaluations: cached scoring results per (tender, profile)
- EvaluationJobs: durable re-evaluation work queue
- EvaluationEvents: outbox for evaluation lifecycle broadcasts
"""

from __future__ import annotations

from datetime import datetime
from typing import Any

from sqlalchemy import (
    JSON,
    Boolean,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column, relationship

from tenderscore.core.config.models import JobStatus
from tenderscore.core.scoring.records import (
    CpvCode,
    MinimumRequirement,
    NegativeKeyword,
    ProfileCriteria,
    SupportKeyword,
    TenderRecord,
)


# =============================================================================
# Base Class
# =============================================================================


class Base(DeclarativeBase):
    """Base class for all ORM models."""
    
    type_annotation_map = {
        dict[str, Any]: JSON,
        list[Any]: JSON,
    }


# =============================================================================
# Mixins
# =============================================================================


class TimestampMixin:
    """Mixin providing created_at and updated_at columns."""
    
    created_at: Mapped[datetime] = mapped_column(
        DateTime,
        default=datetime.utcnow,
        nullable=False,
    )
    updated_at: Mapped[datetime | None] = mapped_column(
        DateTime,
        default=None,
        onupdate=datetime.utcnow,
        nullable=True,
    )


# =============================================================================
# Organization Model
# =============================================================================


class Organization(Base, TimestampMixin):
    """Tenant owning profiles, tenders and evaluations."""
    
    __tablename__ = "organizations"
    
    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(String(200), nullable=False)
    
    profiles: Mapped[list["CompanyProfile"]] = relationship(
        "CompanyProfile",
        back_populates="organization",
        cascade="all, delete-orphan",
    )
    tenders: Mapped[list["Tender"]] = relationship(
        "Tender",
        back_populates="organization",
        cascade="all, delete-orphan",
    )
    
    def __repr__(self) -> str:
        return f"<Organization(id={self.id}, name='{self.name}')>"


# =============================================================================
# Profile Models
# =============================================================================


class CompanyProfile(Base, TimestampMixin):
    """A scoring target (own company or partner) with keyword/CPV criteria."""
    
    __tablename__ = "company_profiles"
    
    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    organization_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("organizations.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    profile_name: Mapped[str] = mapped_column(String(200), nullable=False)
    is_own_profile: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    
    organization: Mapped["Organization"] = relationship("Organization", back_populates="profiles")
    minimum_requirements: Mapped[list["ProfileMinimumRequirement"]] = relationship(
        "ProfileMinimumRequirement",
        cascade="all, delete-orphan",
        order_by="ProfileMinimumRequirement.id",
    )
    support_keywords: Mapped[list["ProfileSupportKeyword"]] = relationship(
        "ProfileSupportKeyword",
        cascade="all, delete-orphan",
        order_by="ProfileSupportKeyword.id",
    )
    negative_keywords: Mapped[list["ProfileNegativeKeyword"]] = relationship(
        "ProfileNegativeKeyword",
        cascade="all, delete-orphan",
        order_by="ProfileNegativeKeyword.id",
    )
    cpv_codes: Mapped[list["ProfileCpvCode"]] = relationship(
        "ProfileCpvCode",
        cascade="all, delete-orphan",
        order_by="ProfileCpvCode.id",
    )
    
    def to_criteria(self) -> ProfileCriteria:
        """Snapshot this profile's criteria for the scoring engine."""
        return ProfileCriteria(
            id=self.id,
            organization_id=self.organization_id,
            name=self.profile_name,
            is_own_profile=self.is_own_profile,
            minimum_requirements=tuple(
                MinimumRequirement(r.keyword) for r in self.minimum_requirements
            ),
            support_keywords=tuple(
                SupportKeyword(k.keyword, k.weight) for k in self.support_keywords
            ),
            negative_keywords=tuple(
                NegativeKeyword(k.keyword, k.weight) for k in self.negative_keywords
            ),
            cpv_codes=tuple(CpvCode(c.cpv_code, c.weight) for c in self.cpv_codes),
        )
    
    def __repr__(self) -> str:
        return f"<CompanyProfile(id={self.id}, name='{self.profile_name}', own={self.is_own_profile})>"


class ProfileMinimumRequirement(Base):
    """Gate keyword; at least one must match for a tender to qualify."""
    
    __tablename__ = "minimum_requirements"
    
    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    profile_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("company_profiles.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    keyword: Mapped[str] = mapped_column(String(200), nullable=False)
    
    __table_args__ = (
        UniqueConstraint("profile_id", "keyword", name="uq_minimum_requirement_profile_keyword"),
    )


class ProfileSupportKeyword(Base):
    """Positively weighted keyword."""
    
    __tablename__ = "support_keywords"
    
    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    profile_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("company_profiles.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    keyword: Mapped[str] = mapped_column(String(200), nullable=False)
    weight: Mapped[int] = mapped_column(Integer, nullable=False, default=1)
    
    __table_args__ = (
        UniqueConstraint("profile_id", "keyword", name="uq_support_keyword_profile_keyword"),
    )


class ProfileNegativeKeyword(Base):
    """Penalty keyword. Weight is stored signed; its magnitude is the penalty."""
    
    __tablename__ = "negative_keywords"
    
    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    profile_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("company_profiles.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    keyword: Mapped[str] = mapped_column(String(200), nullable=False)
    weight: Mapped[int] = mapped_column(Integer, nullable=False, default=-1)
    
    __table_args__ = (
        UniqueConstraint("profile_id", "keyword", name="uq_negative_keyword_profile_keyword"),
    )


class ProfileCpvCode(Base):
    """CPV code prefix with a weight."""
    
    __tablename__ = "cpv_codes"
    
    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    profile_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("company_profiles.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    cpv_code: Mapped[str] = mapped_column(String(20), nullable=False)
    weight: Mapped[int] = mapped_column(Integer, nullable=False, default=1)
    
    __table_args__ = (
        UniqueConstraint("profile_id", "cpv_code", name="uq_cpv_code_profile_code"),
    )


# =============================================================================
# Tender Model
# =============================================================================


class Tender(Base):
    """Normalized tender notice owned by an organization."""
    
    __tablename__ = "tenders"
    
    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    organization_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("organizations.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    external_id: Mapped[str] = mapped_column(String(200), nullable=False)
    
    title: Mapped[str] = mapped_column(String(1000), nullable=False, default="")
    body: Mapped[str | None] = mapped_column(Text, nullable=True)
    cpv_codes: Mapped[list[Any]] = mapped_column(JSON, nullable=False, default=list)
    
    deadline: Mapped[datetime | None] = mapped_column(DateTime, nullable=True, index=True)
    published_date: Mapped[datetime | None] = mapped_column(DateTime, nullable=True, index=True)
    url: Mapped[str | None] = mapped_column(String(2000), nullable=True)
    
    created_at: Mapped[datetime] = mapped_column(
        DateTime,
        default=datetime.utcnow,
        nullable=False,
    )
    
    organization: Mapped["Organization"] = relationship("Organization", back_populates="tenders")
    evaluations: Mapped[list["TenderEvaluation"]] = relationship(
        "TenderEvaluation",
        back_populates="tender",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )
    
    __table_args__ = (
        UniqueConstraint("organization_id", "external_id", name="uq_tender_org_external"),
    )
    
    def to_record(self) -> TenderRecord:
        return TenderRecord(
            id=self.id,
            title=self.title or "",
            body=self.body or "",
            cpv_codes=tuple(str(code) for code in self.cpv_codes or ()),
        )
    
    def __repr__(self) -> str:
        return f"<Tender(id={self.id}, external_id='{self.external_id}', title='{self.title[:50] if self.title else ''}...')>"


# =============================================================================
# Tender Evaluation Model
# =============================================================================


class TenderEvaluation(Base, TimestampMixin):
    """Cached score of one tender against one profile.
    
    Fully rebuildable from profile and tender state.
    """
    
    __tablename__ = "tender_evaluations"
    
    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    tender_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("tenders.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    organization_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("organizations.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    lead_profile_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("company_profiles.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    partner_profile_id: Mapped[int | None] = mapped_column(
        Integer,
        ForeignKey("company_profiles.id", ondelete="SET NULL"),
        nullable=True,
    )
    combination_id: Mapped[int | None] = mapped_column(Integer, nullable=True)
    combination_type: Mapped[str] = mapped_column(String(50), nullable=False, default="solo")
    
    # Gate
    qualified: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    all_minimum_requirements_met: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    met_minimum_requirements: Mapped[list[Any]] = mapped_column(JSON, nullable=False, default=list)
    missing_minimum_requirements: Mapped[list[Any]] = mapped_column(JSON, nullable=False, default=list)
    
    # Scores
    support_score: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    negative_score: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    cpv_score: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    synergy_bonus: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    total_score: Mapped[int] = mapped_column(Integer, nullable=False, default=0, index=True)
    
    # Matches
    matched_support_keywords: Mapped[list[Any]] = mapped_column(JSON, nullable=False, default=list)
    matched_negative_keywords: Mapped[list[Any]] = mapped_column(JSON, nullable=False, default=list)
    matched_cpv_codes: Mapped[list[Any]] = mapped_column(JSON, nullable=False, default=list)
    
    explanation: Mapped[str | None] = mapped_column(Text, nullable=True)
    criteria_fingerprint: Mapped[str | None] = mapped_column(String(64), nullable=True)
    
    # Set by a person; never pruned or overwritten automatically
    is_manual: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    
    tender: Mapped["Tender"] = relationship("Tender", back_populates="evaluations")
    
    __table_args__ = (
        UniqueConstraint(
            "tender_id",
            "organization_id",
            "lead_profile_id",
            name="uq_evaluation_tender_org_profile",
        ),
        Index("ix_evaluation_org_profile", "organization_id", "lead_profile_id"),
    )
    
    def __repr__(self) -> str:
        return (
            f"<TenderEvaluation(id={self.id}, tender_id={self.tender_id}, "
            f"profile_id={self.lead_profile_id}, score={self.total_score})>"
        )


# =============================================================================
# Evaluation Job Model
# =============================================================================


class EvaluationJob(Base, TimestampMixin):
    """Durable request to re-evaluate a set of profiles for an organization."""
    
    __tablename__ = "evaluation_jobs"
    
    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    organization_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("organizations.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    affected_profile_ids: Mapped[list[Any]] = mapped_column(JSON, nullable=False, default=list)
    dedupe_key: Mapped[str] = mapped_column(String(100), nullable=False, index=True)
    
    status: Mapped[str] = mapped_column(
        String(20),
        nullable=False,
        default=JobStatus.PENDING.value,
        index=True,
    )
    retry_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    max_retries: Mapped[int] = mapped_column(Integer, nullable=False, default=5)
    run_not_before: Mapped[datetime] = mapped_column(
        DateTime,
        default=datetime.utcnow,
        nullable=False,
    )
    
    # Claim lease
    claimed_by: Mapped[str | None] = mapped_column(String(100), nullable=True)
    lease_expires_at: Mapped[datetime | None] = mapped_column(DateTime, nullable=True)
    started_at: Mapped[datetime | None] = mapped_column(DateTime, nullable=True)
    completed_at: Mapped[datetime | None] = mapped_column(DateTime, nullable=True)
    
    # Failure details
    error_message: Mapped[str | None] = mapped_column(Text, nullable=True)
    error_code: Mapped[str | None] = mapped_column(String(50), nullable=True)
    
    broadcast_payload: Mapped[dict[str, Any] | None] = mapped_column(JSON, nullable=True)
    
    __table_args__ = (
        Index("ix_job_status_run_not_before", "status", "run_not_before"),
    )
    
    def __repr__(self) -> str:
        return f"<EvaluationJob(id={self.id}, org_id={self.organization_id}, status='{self.status}')>"


# =============================================================================
# Evaluation Event Model
# =============================================================================


class EvaluationEvent(Base):
    """Broadcast evaluation lifecycle event, kept for UI layers to poll."""
    
    __tablename__ = "evaluation_events"
    
    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    organization_id: Mapped[int] = mapped_column(Integer, nullable=False, index=True)
    channel: Mapped[str] = mapped_column(String(100), nullable=False, index=True)
    event_type: Mapped[str] = mapped_column(String(50), nullable=False)
    job_id: Mapped[int | None] = mapped_column(
        Integer,
        ForeignKey("evaluation_jobs.id", ondelete="SET NULL"),
        nullable=True,
    )
    payload: Mapped[dict[str, Any]] = mapped_column(JSON, nullable=False)
    
    created_at: Mapped[datetime] = mapped_column(
        DateTime,
        default=datetime.utcnow,
        nullable=False,
        index=True,
    )
    
    def __repr__(self) -> str:
        return f"<EvaluationEvent(id={self.id}, type='{self.event_type}', channel='{self.channel}')>"
