"""Client and consultant profile models.

Profiles hold the public-facing data of a user. Onboarding mirrors what the
user enters in certain steps into these rows, and the consultant profile is
the source the recommendation catalog matches against.
"""

import uuid

from sqlalchemy import Boolean, CheckConstraint, ForeignKey, Integer, String, Text, text
from sqlalchemy.dialects.postgresql import JSONB, UUID
from sqlalchemy.orm import Mapped, mapped_column

from serenity.models.base import Base, TimestampMixin

_DEFAULT_UUID = text("gen_random_uuid()")
_DEFAULT_EMPTY_JSONB = text("'[]'::jsonb")
_USER_FK = "users.id"


class ClientProfile(Base, TimestampMixin):
    """Company profile of a client. One-to-one with User."""

    __tablename__ = "client_profiles"

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
    company_name: Mapped[str | None] = mapped_column(String(255), nullable=True)
    company_size: Mapped[str | None] = mapped_column(String(20), nullable=True)
    industry: Mapped[str | None] = mapped_column(String(50), nullable=True)
    website: Mapped[str | None] = mapped_column(Text, nullable=True)
    onboarding_completed: Mapped[bool] = mapped_column(
        Boolean,
        nullable=False,
        server_default=text("false"),
        default=False,
    )


class ConsultantProfile(Base, TimestampMixin):
    """Professional profile of a consultant. One-to-one with User.

    Attributes:
        skills: JSONB list of skill keywords matched against client interests.
        industries: JSONB list of industries the consultant works in.
        primary_specialty: Headline specialty shown in recommendations.
        available_for_work: Whether the consultant takes new engagements.
        visibility: private until approval makes the profile public.
    """

    __tablename__ = "consultant_profiles"
    __table_args__ = (
        CheckConstraint(
            "visibility IN ('private', 'public')",
            name="ck_consultant_profiles_visibility",
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
    title: Mapped[str | None] = mapped_column(String(255), nullable=True)
    summary: Mapped[str | None] = mapped_column(Text, nullable=True)
    primary_specialty: Mapped[str | None] = mapped_column(String(255), nullable=True)
    years_of_experience: Mapped[int | None] = mapped_column(Integer, nullable=True)
    skills: Mapped[list] = mapped_column(
        JSONB,
        server_default=_DEFAULT_EMPTY_JSONB,
        nullable=False,
        default=list,
    )
    industries: Mapped[list] = mapped_column(
        JSONB,
        server_default=_DEFAULT_EMPTY_JSONB,
        nullable=False,
        default=list,
    )
    available_for_work: Mapped[bool] = mapped_column(
        Boolean,
        nullable=False,
        server_default=text("false"),
        default=False,
    )
    visibility: Mapped[str] = mapped_column(
        String(20),
        nullable=False,
        server_default=text("'private'"),
        default="private",
    )
    onboarding_completed: Mapped[bool] = mapped_column(
        Boolean,
        nullable=False,
        server_default=text("false"),
        default=False,
    )
