"""Interfaces of the services the onboarding orchestrator depends on.

The orchestrator receives one implementation of each at construction; the
SQL and email backed ones live in ``serenity.services.sql_collaborators``
and ``serenity.services.notifications``. Tests pass mocks.
"""

import uuid
from dataclasses import dataclass
from enum import Enum
from typing import Any, Protocol

from serenity.schemas.onboarding_documents import CompanyInfo, ProfessionalInfo
from serenity.services.recommendation_engine import (
    ClientContext,
    ConsultantCandidate,
    ServiceCandidate,
)


class UserRole(str, Enum):
    CLIENT = "client"
    CONSULTANT = "consultant"
    ADMIN = "admin"


@dataclass(frozen=True)
class DirectoryUser:
    """Identity of a user as the onboarding flows need it."""

    id: uuid.UUID
    role: UserRole
    display_name: str
    email: str
    first_name: str | None = None

    @property
    def is_admin(self) -> bool:
        return self.role == UserRole.ADMIN

    @property
    def greeting_name(self) -> str:
        return self.first_name or self.display_name


class NotificationKind(str, Enum):
    CLIENT_WELCOME = "client_welcome"
    CONSULTANT_WELCOME = "consultant_welcome"
    SESSION_SCHEDULED = "session_scheduled"
    INTERVIEW_SCHEDULED = "interview_scheduled"
    REVIEW_REQUESTED = "review_requested"
    CONSULTANT_APPROVED = "consultant_approved"
    CONSULTANT_REJECTED = "consultant_rejected"
    ONBOARDING_ASSIGNED = "onboarding_assigned"


class IdentityDirectory(Protocol):
    async def find_user(self, user_id: uuid.UUID) -> DirectoryUser | None: ...

    async def find_admins(self) -> list[DirectoryUser]: ...

    async def activate_account(self, user_id: uuid.UUID) -> None: ...


class NotificationDispatcher(Protocol):
    async def notify(
        self,
        recipient_email: str,
        kind: NotificationKind,
        payload: dict[str, Any],
    ) -> None: ...


class CandidateCatalog(Protocol):
    async def published_services(
        self, context: ClientContext, limit: int
    ) -> list[ServiceCandidate]: ...

    async def available_consultants(
        self, context: ClientContext, limit: int
    ) -> list[ConsultantCandidate]: ...


class ProfileMirror(Protocol):
    async def mirror_company_info(
        self, user_id: uuid.UUID, company_info: CompanyInfo
    ) -> None: ...

    async def mirror_professional_info(
        self, user_id: uuid.UUID, professional_info: ProfessionalInfo
    ) -> None: ...

    async def mark_client_onboarded(self, user_id: uuid.UUID) -> None: ...

    async def publish_consultant(self, user_id: uuid.UUID) -> None: ...

    async def mark_consultant_onboarded(self, user_id: uuid.UUID) -> None: ...
