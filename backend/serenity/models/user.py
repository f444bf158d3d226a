"""User model - marketplace accounts.

Every client, consultant and staff member is a row here. ``role`` decides
which onboarding flow a user goes through and what they may do to other
users' onboardings.
"""

import uuid

from sqlalchemy import CheckConstraint, String, text
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import Mapped, mapped_column

from serenity.models.base import Base, TimestampMixin

_DEFAULT_UUID = text("gen_random_uuid()")

USER_ROLES: tuple[str, ...] = ("client", "consultant", "admin")
ACCOUNT_STATUSES: tuple[str, ...] = ("pending", "active", "suspended")


class User(Base, TimestampMixin):
    """Marketplace account.

    Attributes:
        id: UUID primary key.
        email: Unique email address.
        name: Display name.
        first_name: Given name, used in notification greetings.
        last_name: Family name.
        role: client, consultant or admin.
        account_status: pending until onboarding activates the account.
    """

    __tablename__ = "users"
    __table_args__ = (
        CheckConstraint(
            "role IN ('client', 'consultant', 'admin')",
            name="ck_users_role",
        ),
        CheckConstraint(
            "account_status IN ('pending', 'active', 'suspended')",
            name="ck_users_account_status",
        ),
    )

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        primary_key=True,
        server_default=_DEFAULT_UUID,
    )
    email: Mapped[str] = mapped_column(
        String(255),
        unique=True,
        nullable=False,
    )
    name: Mapped[str | None] = mapped_column(
        String(255),
        nullable=True,
    )
    first_name: Mapped[str | None] = mapped_column(
        String(100),
        nullable=True,
    )
    last_name: Mapped[str | None] = mapped_column(
        String(100),
        nullable=True,
    )
    role: Mapped[str] = mapped_column(
        String(20),
        nullable=False,
        server_default=text("'client'"),
        default="client",
    )
    account_status: Mapped[str] = mapped_column(
        String(20),
        nullable=False,
        server_default=text("'pending'"),
        default="pending",
    )

    @property
    def is_admin(self) -> bool:
        return self.role == "admin"

    @property
    def display_name(self) -> str:
        full = " ".join(p for p in (self.first_name, self.last_name) if p)
        return full or self.name or self.email
