"""Onboarding schema: users, profiles, service catalog, onboarding records.

Revision ID: 001_onboarding_schema
Revises:
Create Date: 2026-10-19

- pgcrypto for gen_random_uuid() primary keys
- users with role and account status
- client_profiles, consultant_profiles (onboarding mirrors into these)
- consulting_services (recommendation catalog)
- client_onboardings, consultant_onboardings with JSONB sub-documents
"""

from collections.abc import Sequence

import sqlalchemy as sa
from alembic import op
from sqlalchemy.dialects.postgresql import JSONB, UUID

revision: str = "001_onboarding_schema"
down_revision: str | None = None
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None

_UUID_DEFAULT = sa.text("gen_random_uuid()")
_EMPTY_LIST = sa.text("'[]'::jsonb")
_EMPTY_OBJECT = sa.text("'{}'::jsonb")


def _id() -> sa.Column:
    return sa.Column(
        "id", UUID(as_uuid=True), server_default=_UUID_DEFAULT, primary_key=True
    )


def _timestamps() -> list[sa.Column]:
    return [
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            server_default=sa.func.now(),
            nullable=False,
        ),
        sa.Column(
            "updated_at",
            sa.DateTime(timezone=True),
            server_default=sa.func.now(),
            nullable=False,
        ),
    ]


def _user_fk(name: str, *, nullable: bool, ondelete: str) -> sa.Column:
    return sa.Column(
        name,
        UUID(as_uuid=True),
        sa.ForeignKey("users.id", ondelete=ondelete),
        nullable=nullable,
    )


def _jsonb(name: str, default: sa.TextClause | None) -> sa.Column:
    if default is None:
        return sa.Column(name, JSONB(), nullable=True)
    return sa.Column(name, JSONB(), nullable=False, server_default=default)


def _onboarding_columns() -> list[sa.Column]:
    return [
        sa.Column(
            "status",
            sa.String(20),
            nullable=False,
            server_default=sa.text("'not_started'"),
        ),
        sa.Column("progress", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("current_step", sa.Integer(), nullable=False, server_default="1"),
        _jsonb("steps", _EMPTY_LIST),
        sa.Column(
            "started_at",
            sa.DateTime(timezone=True),
            server_default=sa.func.now(),
            nullable=False,
        ),
        sa.Column("completed_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column(
            "last_activity",
            sa.DateTime(timezone=True),
            server_default=sa.func.now(),
            nullable=False,
        ),
        _jsonb("reminders", _EMPTY_LIST),
    ]


def upgrade() -> None:
    op.execute("CREATE EXTENSION IF NOT EXISTS pgcrypto")

    # =========================================================================
    # Accounts and profiles
    # =========================================================================
    op.create_table(
        "users",
        _id(),
        sa.Column("email", sa.String(255), nullable=False, unique=True),
        sa.Column("name", sa.String(255), nullable=True),
        sa.Column("first_name", sa.String(100), nullable=True),
        sa.Column("last_name", sa.String(100), nullable=True),
        sa.Column(
            "role", sa.String(20), nullable=False, server_default=sa.text("'client'")
        ),
        sa.Column(
            "account_status",
            sa.String(20),
            nullable=False,
            server_default=sa.text("'pending'"),
        ),
        *_timestamps(),
        sa.CheckConstraint(
            "role IN ('client', 'consultant', 'admin')", name="ck_users_role"
        ),
        sa.CheckConstraint(
            "account_status IN ('pending', 'active', 'suspended')",
            name="ck_users_account_status",
        ),
    )

    op.create_table(
        "client_profiles",
        _id(),
        _user_fk("user_id", nullable=False, ondelete="CASCADE"),
        sa.Column("company_name", sa.String(255), nullable=True),
        sa.Column("company_size", sa.String(20), nullable=True),
        sa.Column("industry", sa.String(50), nullable=True),
        sa.Column("website", sa.Text(), nullable=True),
        sa.Column(
            "onboarding_completed",
            sa.Boolean(),
            nullable=False,
            server_default=sa.text("false"),
        ),
        *_timestamps(),
        sa.UniqueConstraint("user_id", name="uq_client_profiles_user_id"),
    )

    op.create_table(
        "consultant_profiles",
        _id(),
        _user_fk("user_id", nullable=False, ondelete="CASCADE"),
        sa.Column("title", sa.String(255), nullable=True),
        sa.Column("summary", sa.Text(), nullable=True),
        sa.Column("primary_specialty", sa.String(255), nullable=True),
        sa.Column("years_of_experience", sa.Integer(), nullable=True),
        _jsonb("skills", _EMPTY_LIST),
        _jsonb("industries", _EMPTY_LIST),
        sa.Column(
            "available_for_work",
            sa.Boolean(),
            nullable=False,
            server_default=sa.text("false"),
        ),
        sa.Column(
            "visibility",
            sa.String(20),
            nullable=False,
            server_default=sa.text("'private'"),
        ),
        sa.Column(
            "onboarding_completed",
            sa.Boolean(),
            nullable=False,
            server_default=sa.text("false"),
        ),
        *_timestamps(),
        sa.UniqueConstraint("user_id", name="uq_consultant_profiles_user_id"),
        sa.CheckConstraint(
            "visibility IN ('private', 'public')",
            name="ck_consultant_profiles_visibility",
        ),
    )
    # has_any (?|) lookups from consultant recommendations
    op.create_index(
        "ix_consultant_profiles_skills",
        "consultant_profiles",
        ["skills"],
        postgresql_using="gin",
    )
    op.create_index(
        "ix_consultant_profiles_industries",
        "consultant_profiles",
        ["industries"],
        postgresql_using="gin",
    )

    # =========================================================================
    # Service catalog
    # =========================================================================
    op.create_table(
        "consulting_services",
        _id(),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("category", sa.String(100), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        _jsonb("industries", _EMPTY_LIST),
        sa.Column(
            "status", sa.String(20), nullable=False, server_default=sa.text("'draft'")
        ),
        *_timestamps(),
        sa.CheckConstraint(
            "status IN ('draft', 'published', 'archived')",
            name="ck_consulting_services_status",
        ),
    )
    op.create_index(
        "ix_consulting_services_category", "consulting_services", ["category"]
    )

    # =========================================================================
    # Onboarding records
    # =========================================================================
    op.create_table(
        "client_onboardings",
        _id(),
        _user_fk("user_id", nullable=False, ondelete="CASCADE"),
        _user_fk("assigned_to", nullable=True, ondelete="SET NULL"),
        *_onboarding_columns(),
        _jsonb("preferences", _EMPTY_OBJECT),
        _jsonb("needs_assessment", _EMPTY_OBJECT),
        _jsonb("company_info", _EMPTY_OBJECT),
        _jsonb("recommended_consultants", _EMPTY_LIST),
        _jsonb("recommended_services", _EMPTY_LIST),
        _jsonb("documents", _EMPTY_LIST),
        _jsonb("sessions", _EMPTY_LIST),
        _jsonb("feedback", None),
        *_timestamps(),
        sa.UniqueConstraint("user_id", name="uq_client_onboardings_user_id"),
        sa.CheckConstraint(
            "status IN ('not_started', 'in_progress', 'completed')",
            name="ck_client_onboardings_status",
        ),
        sa.CheckConstraint(
            "progress >= 0 AND progress <= 100",
            name="ck_client_onboardings_progress",
        ),
    )
    op.create_index(
        "ix_client_onboardings_status", "client_onboardings", ["status"]
    )
    op.create_index(
        "ix_client_onboardings_last_activity", "client_onboardings", ["last_activity"]
    )
    op.create_index(
        "ix_client_onboardings_assigned_to", "client_onboardings", ["assigned_to"]
    )

    op.create_table(
        "consultant_onboardings",
        _id(),
        _user_fk("user_id", nullable=False, ondelete="CASCADE"),
        _user_fk("reviewed_by", nullable=True, ondelete="SET NULL"),
        sa.Column("approved_at", sa.DateTime(timezone=True), nullable=True),
        *_onboarding_columns(),
        _jsonb("professional_info", _EMPTY_OBJECT),
        _jsonb("work_history", _EMPTY_LIST),
        _jsonb("portfolio", _EMPTY_LIST),
        _jsonb("service_offerings", _EMPTY_LIST),
        _jsonb("verification_checks", _EMPTY_OBJECT),
        _jsonb("contracts", _EMPTY_OBJECT),
        _jsonb("training", _EMPTY_OBJECT),
        _jsonb("payment_information", _EMPTY_OBJECT),
        _jsonb("tax_information", _EMPTY_OBJECT),
        _jsonb("scheduling", _EMPTY_OBJECT),
        _jsonb("interviews", _EMPTY_LIST),
        _jsonb("admin_notes", _EMPTY_LIST),
        *_timestamps(),
        sa.UniqueConstraint("user_id", name="uq_consultant_onboardings_user_id"),
        sa.CheckConstraint(
            "status IN ('not_started', 'in_progress', 'under_review', "
            "'approved', 'rejected', 'completed')",
            name="ck_consultant_onboardings_status",
        ),
        sa.CheckConstraint(
            "progress >= 0 AND progress <= 100",
            name="ck_consultant_onboardings_progress",
        ),
    )
    op.create_index(
        "ix_consultant_onboardings_status", "consultant_onboardings", ["status"]
    )
    op.create_index(
        "ix_consultant_onboardings_last_activity",
        "consultant_onboardings",
        ["last_activity"],
    )


def downgrade() -> None:
    op.drop_table("consultant_onboardings")
    op.drop_table("client_onboardings")
    op.drop_table("consulting_services")
    op.drop_table("consultant_profiles")
    op.drop_table("client_profiles")
    op.drop_table("users")
