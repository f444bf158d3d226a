"""Database-backed collaborators of the onboarding orchestrator.

Each wraps the request's AsyncSession. Profile writes run inside a
savepoint so a failing best-effort write rolls back on its own and leaves
the onboarding change in the outer transaction intact.
"""

import logging
import uuid

from sqlalchemy.ext.asyncio import AsyncSession

from serenity.models.user import User
from serenity.repositories.catalog_repository import CatalogRepository
from serenity.repositories.profile_repository import ProfileRepository
from serenity.repositories.user_repository import UserRepository
from serenity.schemas.onboarding_documents import CompanyInfo, ProfessionalInfo
from serenity.services.collaborators import DirectoryUser, UserRole
from serenity.services.recommendation_engine import (
    ClientContext,
    ConsultantCandidate,
    ServiceCandidate,
)

logger = logging.getLogger(__name__)


def to_directory_user(user: User) -> DirectoryUser:
    return DirectoryUser(
        id=user.id,
        role=UserRole(user.role),
        display_name=user.display_name,
        email=user.email,
        first_name=user.first_name,
    )


class SqlIdentityDirectory:
    """IdentityDirectory over the users table."""

    def __init__(self, db: AsyncSession) -> None:
        self._db = db

    async def find_user(self, user_id: uuid.UUID) -> DirectoryUser | None:
        user = await UserRepository.get_by_id(self._db, user_id)
        return to_directory_user(user) if user is not None else None

    async def find_admins(self) -> list[DirectoryUser]:
        admins = await UserRepository.list_by_role(self._db, UserRole.ADMIN.value)
        return [to_directory_user(u) for u in admins]

    async def activate_account(self, user_id: uuid.UUID) -> None:
        async with self._db.begin_nested():
            await UserRepository.set_account_status(self._db, user_id, "active")


class SqlCandidateCatalog:
    """CandidateCatalog over published services and consultant profiles.

    Fetches a pool larger than the final list since the engine drops
    candidates that only matched the coarse SQL filter.
    """

    POOL_FACTOR = 4

    def __init__(self, db: AsyncSession) -> None:
        self._db = db

    async def published_services(
        self, context: ClientContext, limit: int
    ) -> list[ServiceCandidate]:
        services = await CatalogRepository.list_published_services(
            self._db, list(context.interests), limit * self.POOL_FACTOR
        )
        return [
            ServiceCandidate(
                id=str(s.id),
                name=s.name,
                category=s.category,
                industries=list(s.industries or []),
            )
            for s in services
        ]

    async def available_consultants(
        self, context: ClientContext, limit: int
    ) -> list[ConsultantCandidate]:
        rows = await CatalogRepository.list_available_consultants(
            self._db,
            list(context.interests),
            list(context.industries),
            limit * self.POOL_FACTOR,
        )
        return [
            ConsultantCandidate(
                user_id=str(user.id),
                display_name=user.display_name,
                skills=list(profile.skills or []),
                industries=list(profile.industries or []),
                primary_specialty=profile.primary_specialty,
                years_of_experience=profile.years_of_experience,
            )
            for profile, user in rows
        ]


class SqlProfileMirror:
    """ProfileMirror writing onboarding data into profile rows."""

    def __init__(self, db: AsyncSession) -> None:
        self._db = db

    async def mirror_company_info(
        self, user_id: uuid.UUID, company_info: CompanyInfo
    ) -> None:
        async with self._db.begin_nested():
            profile = await ProfileRepository.get_or_create_client_profile(
                self._db, user_id
            )
            profile.company_name = company_info.name or profile.company_name
            profile.industry = company_info.industry or profile.industry
            profile.company_size = company_info.size or profile.company_size
            profile.website = company_info.website or profile.website

    async def mirror_professional_info(
        self, user_id: uuid.UUID, professional_info: ProfessionalInfo
    ) -> None:
        async with self._db.begin_nested():
            profile = await ProfileRepository.get_or_create_consultant_profile(
                self._db, user_id
            )
            profile.title = professional_info.title or profile.title
            profile.summary = professional_info.summary or profile.summary
            if professional_info.years_of_experience is not None:
                profile.years_of_experience = professional_info.years_of_experience
            if professional_info.expertise:
                profile.skills = list(professional_info.expertise)
                profile.primary_specialty = (
                    professional_info.specialty or profile.primary_specialty
                )
            if professional_info.industries:
                profile.industries = list(professional_info.industries)

    async def mark_client_onboarded(self, user_id: uuid.UUID) -> None:
        async with self._db.begin_nested():
            profile = await ProfileRepository.get_or_create_client_profile(
                self._db, user_id
            )
            profile.onboarding_completed = True

    async def publish_consultant(self, user_id: uuid.UUID) -> None:
        async with self._db.begin_nested():
            profile = await ProfileRepository.get_or_create_consultant_profile(
                self._db, user_id
            )
            profile.visibility = "public"
            profile.available_for_work = True

    async def mark_consultant_onboarded(self, user_id: uuid.UUID) -> None:
        async with self._db.begin_nested():
            profile = await ProfileRepository.get_or_create_consultant_profile(
                self._db, user_id
            )
            profile.onboarding_completed = True
        logger.info("Consultant %s marked onboarded", user_id)
