"""Repository for client and consultant profiles."""

import uuid

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from serenity.models.profiles import ClientProfile, ConsultantProfile


class ProfileRepository:
    """Stateless repository for profile rows.

    Profiles are created lazily the first time onboarding writes to them.
    """

    @staticmethod
    async def get_client_profile(
        db: AsyncSession, user_id: uuid.UUID
    ) -> ClientProfile | None:
        stmt = select(ClientProfile).where(ClientProfile.user_id == user_id)
        result = await db.execute(stmt)
        return result.scalar_one_or_none()

    @staticmethod
    async def get_or_create_client_profile(
        db: AsyncSession, user_id: uuid.UUID
    ) -> ClientProfile:
        profile = await ProfileRepository.get_client_profile(db, user_id)
        if profile is None:
            profile = ClientProfile(user_id=user_id, onboarding_completed=False)
            db.add(profile)
            await db.flush()
        return profile

    @staticmethod
    async def get_consultant_profile(
        db: AsyncSession, user_id: uuid.UUID
    ) -> ConsultantProfile | None:
        stmt = select(ConsultantProfile).where(ConsultantProfile.user_id == user_id)
        result = await db.execute(stmt)
        return result.scalar_one_or_none()

    @staticmethod
    async def get_or_create_consultant_profile(
        db: AsyncSession, user_id: uuid.UUID
    ) -> ConsultantProfile:
        profile = await ProfileRepository.get_consultant_profile(db, user_id)
        if profile is None:
            profile = ConsultantProfile(
                user_id=user_id,
                skills=[],
                industries=[],
                available_for_work=False,
                visibility="private",
                onboarding_completed=False,
            )
            db.add(profile)
            await db.flush()
        return profile
