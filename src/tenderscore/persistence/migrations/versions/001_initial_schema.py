"""Initial schema

Revision ID: 001
Revises: 
Create Date: 2026-10-17 00:00:00.000000

"""
from __future__ import annotations

from typing import Sequence

import sqlalchemy as sa
from alembic import op

# revision identifiers, used by Alembic.
revision: str = "001"
down_revision: str | None = None
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None


def _keyword_table(
    name: str,
    keyword_column: str,
    length: int,
    weight_default: str | None,
    constraint: str,
) -> None:
    columns = [
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("profile_id", sa.Integer(), nullable=False),
        sa.Column(keyword_column, sa.String(length=length), nullable=False),
    ]
    if weight_default is not None:
        columns.append(sa.Column("weight", sa.Integer(), nullable=False, server_default=weight_default))
    op.create_table(
        name,
        *columns,
        sa.ForeignKeyConstraint(["profile_id"], ["company_profiles.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("profile_id", keyword_column, name=constraint),
    )
    op.create_index(f"ix_{name}_profile_id", name, ["profile_id"])


def upgrade() -> None:
    """Create initial database schema."""
    
    # Organizations
    op.create_table(
        "organizations",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("name", sa.String(length=200), nullable=False),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.Column("updated_at", sa.DateTime(), nullable=True),
        sa.PrimaryKeyConstraint("id"),
    )
    
    # Company profiles
    op.create_table(
        "company_profiles",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("organization_id", sa.Integer(), nullable=False),
        sa.Column("profile_name", sa.String(length=200), nullable=False),
        sa.Column("is_own_profile", sa.Boolean(), nullable=False, server_default="0"),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.Column("updated_at", sa.DateTime(), nullable=True),
        sa.ForeignKeyConstraint(["organization_id"], ["organizations.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_company_profiles_organization_id", "company_profiles", ["organization_id"])
    
    # Profile criteria
    _keyword_table("minimum_requirements", "keyword", 200, None, "uq_minimum_requirement_profile_keyword")
    _keyword_table("support_keywords", "keyword", 200, "1", "uq_support_keyword_profile_keyword")
    _keyword_table("negative_keywords", "keyword", 200, "-1", "uq_negative_keyword_profile_keyword")
    _keyword_table("cpv_codes", "cpv_code", 20, "1", "uq_cpv_code_profile_code")
    
    # Tenders
    op.create_table(
        "tenders",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("organization_id", sa.Integer(), nullable=False),
        sa.Column("external_id", sa.String(length=200), nullable=False),
        sa.Column("title", sa.String(length=1000), nullable=False, server_default=""),
        sa.Column("body", sa.Text(), nullable=True),
        sa.Column("cpv_codes", sa.JSON(), nullable=False),
        sa.Column("deadline", sa.DateTime(), nullable=True),
        sa.Column("published_date", sa.DateTime(), nullable=True),
        sa.Column("url", sa.String(length=2000), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.ForeignKeyConstraint(["organization_id"], ["organizations.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("organization_id", "external_id", name="uq_tender_org_external"),
    )
    op.create_index("ix_tenders_organization_id", "tenders", ["organization_id"])
    op.create_index("ix_tenders_deadline", "tenders", ["deadline"])
    op.create_index("ix_tenders_published_date", "tenders", ["published_date"])
    
    # Tender evaluations
    op.create_table(
        "tender_evaluations",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("tender_id", sa.Integer(), nullable=False),
        sa.Column("organization_id", sa.Integer(), nullable=False),
        sa.Column("lead_profile_id", sa.Integer(), nullable=False),
        sa.Column("partner_profile_id", sa.Integer(), nullable=True),
        sa.Column("combination_id", sa.Integer(), nullable=True),
        sa.Column("combination_type", sa.String(length=50), nullable=False, server_default="solo"),
        sa.Column("qualified", sa.Boolean(), nullable=False, server_default="0"),
        sa.Column("all_minimum_requirements_met", sa.Boolean(), nullable=False, server_default="0"),
        sa.Column("met_minimum_requirements", sa.JSON(), nullable=False),
        sa.Column("missing_minimum_requirements", sa.JSON(), nullable=False),
        sa.Column("support_score", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("negative_score", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("cpv_score", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("synergy_bonus", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("total_score", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("matched_support_keywords", sa.JSON(), nullable=False),
        sa.Column("matched_negative_keywords", sa.JSON(), nullable=False),
        sa.Column("matched_cpv_codes", sa.JSON(), nullable=False),
        sa.Column("explanation", sa.Text(), nullable=True),
        sa.Column("criteria_fingerprint", sa.String(length=64), nullable=True),
        sa.Column("is_manual", sa.Boolean(), nullable=False, server_default="0"),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.Column("updated_at", sa.DateTime(), nullable=True),
        sa.ForeignKeyConstraint(["tender_id"], ["tenders.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["organization_id"], ["organizations.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["lead_profile_id"], ["company_profiles.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["partner_profile_id"], ["company_profiles.id"], ondelete="SET NULL"),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint(
            "tender_id", "organization_id", "lead_profile_id",
            name="uq_evaluation_tender_org_profile",
        ),
    )
    op.create_index("ix_tender_evaluations_tender_id", "tender_evaluations", ["tender_id"])
    op.create_index("ix_tender_evaluations_organization_id", "tender_evaluations", ["organization_id"])
    op.create_index("ix_tender_evaluations_lead_profile_id", "tender_evaluations", ["lead_profile_id"])
    op.create_index("ix_tender_evaluations_total_score", "tender_evaluations", ["total_score"])
    op.create_index("ix_evaluation_org_profile", "tender_evaluations", ["organization_id", "lead_profile_id"])
    
    # Evaluation jobs
    op.create_table(
        "evaluation_jobs",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("organization_id", sa.Integer(), nullable=False),
        sa.Column("affected_profile_ids", sa.JSON(), nullable=False),
        sa.Column("dedupe_key", sa.String(length=100), nullable=False),
        sa.Column("status", sa.String(length=20), nullable=False, server_default="pending"),
        sa.Column("retry_count", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("max_retries", sa.Integer(), nullable=False, server_default="5"),
        sa.Column("run_not_before", sa.DateTime(), nullable=False),
        sa.Column("claimed_by", sa.String(length=100), nullable=True),
        sa.Column("lease_expires_at", sa.DateTime(), nullable=True),
        sa.Column("started_at", sa.DateTime(), nullable=True),
        sa.Column("completed_at", sa.DateTime(), nullable=True),
        sa.Column("error_message", sa.Text(), nullable=True),
        sa.Column("error_code", sa.String(length=50), nullable=True),
        sa.Column("broadcast_payload", sa.JSON(), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.Column("updated_at", sa.DateTime(), nullable=True),
        sa.ForeignKeyConstraint(["organization_id"], ["organizations.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_evaluation_jobs_organization_id", "evaluation_jobs", ["organization_id"])
    op.create_index("ix_evaluation_jobs_dedupe_key", "evaluation_jobs", ["dedupe_key"])
    op.create_index("ix_evaluation_jobs_status", "evaluation_jobs", ["status"])
    op.create_index("ix_job_status_run_not_before", "evaluation_jobs", ["status", "run_not_before"])
    
    # Evaluation events (outbox)
    op.create_table(
        "evaluation_events",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("organization_id", sa.Integer(), nullable=False),
        sa.Column("channel", sa.String(length=100), nullable=False),
        sa.Column("event_type", sa.String(length=50), nullable=False),
        sa.Column("job_id", sa.Integer(), nullable=True),
        sa.Column("payload", sa.JSON(), nullable=False),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.ForeignKeyConstraint(["job_id"], ["evaluation_jobs.id"], ondelete="SET NULL"),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_evaluation_events_organization_id", "evaluation_events", ["organization_id"])
    op.create_index("ix_evaluation_events_channel", "evaluation_events", ["channel"])
    op.create_index("ix_evaluation_events_created_at", "evaluation_events", ["created_at"])


def downgrade() -> None:
    """Drop all tables."""
    op.drop_table("evaluation_events")
    op.drop_table("evaluation_jobs")
    op.drop_table("tender_evaluations")
    op.drop_table("tenders")
    op.drop_table("cpv_codes")
    op.drop_table("negative_keywords")
    op.drop_table("support_keywords")
    op.drop_table("minimum_requirements")
    op.drop_table("company_profiles")
    op.drop_table("organizations")
