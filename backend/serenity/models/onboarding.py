"""Onboarding record models.

One ClientOnboarding per client and one ConsultantOnboarding per consultant.
Steps and every nested sub-document live in JSONB columns; their typed
shapes are in ``serenity.schemas.onboarding_documents`` and
``serenity.services.onboarding_steps``.

Services always assign a new list/dict to a JSONB attribute instead of
mutating it in place, so SQLAlchemy change tracking sees every write.
"""

import uuid
from datetime import datetime
from typing import Any

from sqlalchemy import CheckConstraint, DateTime, ForeignKey, Integer, String, func, text
from sqlalchemy.dialects.postgresql import JSONB, UUID
from sqlalchemy.orm import Mapped, mapped_column

from serenity.models.base import Base, TimestampMixin

_DEFAULT_UUID = text("gen_random_uuid()")
_EMPTY_LIST = text("'[]'::jsonb")
_EMPTY_OBJECT = text("'{}'::jsonb")
_USER_FK = "users.id"


class OnboardingRecordMixin:
    """Columns shared by client and consultant onboarding records.

    Attributes:
        status: Overall status (stalled is never stored).
        progress: 0-100 share of completed or skipped steps.
        current_step: Step number the user should work on next.
        steps: JSONB list of OnboardingStep documents.
        started_at: When the record was initialized.
        completed_at: When the onboarding was finished.
        last_activity: Last mutation, drives stalled detection.
        reminders: JSONB list of Reminder documents.
    """

    status: Mapped[str] = mapped_column(
        String(20),
        nullable=False,
        server_default=text("'not_started'"),
        index=True,
    )
    progress: Mapped[int] = mapped_column(
        Integer,
        nullable=False,
        server_default=text("0"),
    )
    current_step: Mapped[int] = mapped_column(
        Integer,
        nullable=False,
        server_default=text("1"),
    )
    steps: Mapped[list[dict[str, Any]]] = mapped_column(
        JSONB,
        nullable=False,
        server_default=_EMPTY_LIST,
    )
    started_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        server_default=func.now(),
    )
    completed_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True),
        nullable=True,
    )
    last_activity: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        server_default=func.now(),
        index=True,
    )
    reminders: Mapped[list[dict[str, Any]]] = mapped_column(
        JSONB,
        nullable=False,
        server_default=_EMPTY_LIST,
    )


class ClientOnboarding(Base, OnboardingRecordMixin, TimestampMixin):
    """Onboarding workflow of one client."""

    __tablename__ = "client_onboardings"
    __table_args__ = (
        CheckConstraint(
            "status IN ('not_started', 'in_progress', 'completed')",
            name="ck_client_onboardings_status",
        ),
        CheckConstraint(
            "progress >= 0 AND progress <= 100",
            name="ck_client_onboardings_progress",
        ),
    )

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        primary_key=True,
        server_default=_DEFAULT_UUID,
    )
    user_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey(_USER_FK, ondelete="CASCADE"),
        unique=True,
        nullable=False,
    )
    assigned_to: Mapped[uuid.UUID | None] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey(_USER_FK, ondelete="SET NULL"),
        nullable=True,
        index=True,
    )
    preferences: Mapped[dict[str, Any]] = mapped_column(
        JSONB, nullable=False, server_default=_EMPTY_OBJECT
    )
    needs_assessment: Mapped[dict[str, Any]] = mapped_column(
        JSONB, nullable=False, server_default=_EMPTY_OBJECT
    )
    company_info: Mapped[dict[str, Any]] = mapped_column(
        JSONB, nullable=False, server_default=_EMPTY_OBJECT
    )
    recommended_consultants: Mapped[list[dict[str, Any]]] = mapped_column(
        JSONB, nullable=False, server_default=_EMPTY_LIST
    )
    recommended_services: Mapped[list[dict[str, Any]]] = mapped_column(
        JSONB, nullable=False, server_default=_EMPTY_LIST
    )
    documents: Mapped[list[dict[str, Any]]] = mapped_column(
        JSONB, nullable=False, server_default=_EMPTY_LIST
    )
    sessions: Mapped[list[dict[str, Any]]] = mapped_column(
        JSONB, nullable=False, server_default=_EMPTY_LIST
    )
    feedback: Mapped[dict[str, Any] | None] = mapped_column(JSONB, nullable=True)


class ConsultantOnboarding(Base, OnboardingRecordMixin, TimestampMixin):
    """Onboarding workflow of one consultant, ending in an admin review."""

    __tablename__ = "consultant_onboardings"
    __table_args__ = (
        CheckConstraint(
            "status IN ('not_started', 'in_progress', 'under_review', "
            "'approved', 'rejected', 'completed')",
            name="ck_consultant_onboardings_status",
        ),
        CheckConstraint(
            "progress >= 0 AND progress <= 100",
            name="ck_consultant_onboardings_progress",
        ),
    )

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        primary_key=True,
        server_default=_DEFAULT_UUID,
    )
    user_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey(_USER_FK, ondelete="CASCADE"),
        unique=True,
        nullable=False,
    )
    reviewed_by: Mapped[uuid.UUID | None] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey(_USER_FK, ondelete="SET NULL"),
        nullable=True,
    )
    approved_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True),
        nullable=True,
    )
    professional_info: Mapped[dict[str, Any]] = mapped_column(
        JSONB, nullable=False, server_default=_EMPTY_OBJECT
    )
    work_history: Mapped[list[dict[str, Any]]] = mapped_column(
        JSONB, nullable=False, server_default=_EMPTY_LIST
    )
    portfolio: Mapped[list[dict[str, Any]]] = mapped_column(
        JSONB, nullable=False, server_default=_EMPTY_LIST
    )
    service_offerings: Mapped[list[dict[str, Any]]] = mapped_column(
        JSONB, nullable=False, server_default=_EMPTY_LIST
    )
    verification_checks: Mapped[dict[str, Any]] = mapped_column(
        JSONB, nullable=False, server_default=_EMPTY_OBJECT
    )
    contracts: Mapped[dict[str, Any]] = mapped_column(
        JSONB, nullable=False, server_default=_EMPTY_OBJECT
    )
    training: Mapped[dict[str, Any]] = mapped_column(
        JSONB, nullable=False, server_default=_EMPTY_OBJECT
    )
    payment_information: Mapped[dict[str, Any]] = mapped_column(
        JSONB, nullable=False, server_default=_EMPTY_OBJECT
    )
    tax_information: Mapped[dict[str, Any]] = mapped_column(
        JSONB, nullable=False, server_default=_EMPTY_OBJECT
    )
    scheduling: Mapped[dict[str, Any]] = mapped_column(
        JSONB, nullable=False, server_default=_EMPTY_OBJECT
    )
    interviews: Mapped[list[dict[str, Any]]] = mapped_column(
        JSONB, nullable=False, server_default=_EMPTY_LIST
    )
    admin_notes: Mapped[list[dict[str, Any]]] = mapped_column(
        JSONB, nullable=False, server_default=_EMPTY_LIST
    )
