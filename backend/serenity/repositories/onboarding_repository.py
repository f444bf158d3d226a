"""Repository for client and consultant onboarding records.

Both record tables share their status and activity columns, so every
method takes the model class to query.
"""

import uuid
from datetime import datetime
from typing import TypeVar

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from serenity.models.onboarding import ClientOnboarding, ConsultantOnboarding

OnboardingModel = TypeVar("OnboardingModel", ClientOnboarding, ConsultantOnboarding)


class OnboardingRepository:
    """Stateless repository for onboarding records.

    All methods are static. The caller owns the transaction: writes are
    flushed, never committed.
    """

    @staticmethod
    async def get_for_user(
        db: AsyncSession, model: type[OnboardingModel], user_id: uuid.UUID
    ) -> OnboardingModel | None:
        """Fetch the onboarding record of a user.

        Args:
            db: Async database session.
            model: ClientOnboarding or ConsultantOnboarding.
            user_id: The client or consultant the record belongs to.

        Returns:
            The record if one exists, None otherwise.
        """
        stmt = select(model).where(model.user_id == user_id)
        result = await db.execute(stmt)
        return result.scalar_one_or_none()

    @staticmethod
    async def create(db: AsyncSession, record: OnboardingModel) -> OnboardingModel:
        """Insert a new record and refresh server-generated columns."""
        db.add(record)
        await db.flush()
        await db.refresh(record)
        return record

    @staticmethod
    async def save(db: AsyncSession, record: OnboardingModel) -> OnboardingModel:
        """Flush pending changes of a loaded record."""
        await db.flush()
        return record

    @staticmethod
    async def list_by_status(
        db: AsyncSession, model: type[OnboardingModel], status: str
    ) -> list[OnboardingModel]:
        stmt = (
            select(model)
            .where(model.status == status)
            .order_by(model.last_activity.desc())
        )
        result = await db.execute(stmt)
        return list(result.scalars().all())

    @staticmethod
    async def list_stalled(
        db: AsyncSession, model: type[OnboardingModel], inactive_since: datetime
    ) -> list[OnboardingModel]:
        """In-progress records with no activity since ``inactive_since``.

        Oldest activity first.
        """
        stmt = (
            select(model)
            .where(
                model.status == "in_progress",
                model.last_activity < inactive_since,
            )
            .order_by(model.last_activity)
        )
        result = await db.execute(stmt)
        return list(result.scalars().all())

    @staticmethod
    async def list_client_by_assignee(
        db: AsyncSession, assignee_id: uuid.UUID
    ) -> list[ClientOnboarding]:
        """Open client onboardings owned by a staff member."""
        stmt = (
            select(ClientOnboarding)
            .where(
                ClientOnboarding.assigned_to == assignee_id,
                ClientOnboarding.status != "completed",
            )
            .order_by(ClientOnboarding.last_activity.desc())
        )
        result = await db.execute(stmt)
        return list(result.scalars().all())

    @staticmethod
    async def count_by_status(
        db: AsyncSession, model: type[OnboardingModel]
    ) -> dict[str, int]:
        stmt = select(model.status, func.count()).group_by(model.status)
        result = await db.execute(stmt)
        return {status: count for status, count in result.all()}

    @staticmethod
    async def count_stalled(
        db: AsyncSession, model: type[OnboardingModel], inactive_since: datetime
    ) -> int:
        stmt = select(func.count()).where(
            model.status == "in_progress",
            model.last_activity < inactive_since,
        )
        result = await db.execute(stmt)
        return int(result.scalar_one() or 0)

    @staticmethod
    async def completion_spans(
        db: AsyncSession, model: type[OnboardingModel]
    ) -> list[tuple[datetime, datetime]]:
        """(started_at, completed_at) of completed records with both stamps."""
        stmt = select(model.started_at, model.completed_at).where(
            model.status == "completed",
            model.started_at.is_not(None),
            model.completed_at.is_not(None),
        )
        result = await db.execute(stmt)
        return [(started, completed) for started, completed in result.all()]
