"""Repository for the users table."""

import uuid

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from serenity.models.user import ACCOUNT_STATUSES, User


class UserRepository:
    """Stateless repository for User table operations.

    All methods are static; no instance state. Pass an AsyncSession
    for every call so the caller controls transaction boundaries.
    """

    @staticmethod
    async def get_by_id(db: AsyncSession, user_id: uuid.UUID) -> User | None:
        """Fetch a user by primary key.

        Args:
            db: Async database session.
            user_id: UUID primary key.

        Returns:
            User if found, None otherwise.
        """
        return await db.get(User, user_id)

    @staticmethod
    async def list_by_role(db: AsyncSession, role: str) -> list[User]:
        """All users with a role, oldest first."""
        stmt = select(User).where(User.role == role).order_by(User.created_at)
        result = await db.execute(stmt)
        return list(result.scalars().all())

    @staticmethod
    async def set_account_status(
        db: AsyncSession, user_id: uuid.UUID, account_status: str
    ) -> User | None:
        """Change a user's account status.

        Raises:
            ValueError: If the status is not a known account status.
        """
        if account_status not in ACCOUNT_STATUSES:
            raise ValueError(f"Unknown account status: {account_status}")
        user = await db.get(User, user_id)
        if user is None:
            return None
        user.account_status = account_status
        await db.flush()
        return user
