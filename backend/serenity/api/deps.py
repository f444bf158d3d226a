"""Shared dependencies for API endpoints.

Local-first mode uses DEFAULT_USER_ID; hosted mode validates the JWT from
the session cookie. The onboarding service is assembled per request from
the request's database session and the SQL/email collaborators.
"""

import uuid
from typing import Annotated

import jwt
from fastapi import Depends, HTTPException, Request, status
from sqlalchemy.ext.asyncio import AsyncSession

from serenity.core.config import settings
from serenity.core.database import get_db
from serenity.core.errors import AdminRequiredError
from serenity.core.file_storage import get_file_store
from serenity.models import User
from serenity.repositories.user_repository import UserRepository
from serenity.services.collaborators import DirectoryUser
from serenity.services.notifications import EmailNotificationDispatcher
from serenity.services.onboarding_service import OnboardingService
from serenity.services.sql_collaborators import (
    SqlCandidateCatalog,
    SqlIdentityDirectory,
    SqlProfileMirror,
    to_directory_user,
)

# Generic 401 detail. Never says why authentication failed.
_UNAUTHORIZED_DETAIL = {
    "code": "UNAUTHORIZED",
    "message": "Authentication required",
}


def _unauthorized() -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail=_UNAUTHORIZED_DETAIL,
    )


async def get_current_user_id(request: Request) -> uuid.UUID:
    """Get current user ID from auth context.

    Validation steps (hosted mode):
    1. Read JWT from cookie
    2. Decode + verify signature (HS256)
    3. Verify exp, aud, iss claims
    4. Extract sub as UUID

    Args:
        request: HTTP request (injected by FastAPI).

    Returns:
        UUID of the current authenticated user.

    Raises:
        HTTPException: 401 for any auth failure.
    """
    if not settings.auth_enabled:
        if settings.default_user_id is None:
            raise _unauthorized()
        return settings.default_user_id

    token = request.cookies.get(settings.auth_cookie_name)
    if not token:
        raise _unauthorized()

    try:
        payload = jwt.decode(
            token,
            settings.auth_secret.get_secret_value(),
            algorithms=["HS256"],
            audience=settings.auth_audience,
            issuer=settings.auth_issuer,
        )
        return uuid.UUID(payload["sub"])
    except (jwt.InvalidTokenError, KeyError, ValueError) as exc:
        raise _unauthorized() from exc


async def get_current_user(
    user_id: Annotated[uuid.UUID, Depends(get_current_user_id)],
    db: Annotated[AsyncSession, Depends(get_db)],
) -> User:
    """Load the User row for the authenticated user.

    Raises:
        HTTPException: 401 if the user no longer exists.
    """
    user = await UserRepository.get_by_id(db, user_id)
    if user is None:
        raise _unauthorized()
    return user


def get_current_actor(
    user: Annotated[User, Depends(get_current_user)],
) -> DirectoryUser:
    """The authenticated user in the shape the onboarding service checks."""
    return to_directory_user(user)


def require_admin(
    actor: Annotated[DirectoryUser, Depends(get_current_actor)],
) -> DirectoryUser:
    """Gate admin-only endpoints.

    Raises:
        AdminRequiredError: 403 for non-admin users.
    """
    if not actor.is_admin:
        raise AdminRequiredError()
    return actor


def get_onboarding_service(
    db: Annotated[AsyncSession, Depends(get_db)],
) -> OnboardingService:
    """Build the onboarding orchestrator for this request's session."""
    return OnboardingService(
        db,
        directory=SqlIdentityDirectory(db),
        notifier=EmailNotificationDispatcher(),
        catalog=SqlCandidateCatalog(db),
        profiles=SqlProfileMirror(db),
        file_store=get_file_store(),
    )


# Reusable type aliases for dependency injection
CurrentUserId = Annotated[uuid.UUID, Depends(get_current_user_id)]
CurrentUser = Annotated[User, Depends(get_current_user)]
CurrentActor = Annotated[DirectoryUser, Depends(get_current_actor)]
AdminActor = Annotated[DirectoryUser, Depends(require_admin)]
DbSession = Annotated[AsyncSession, Depends(get_db)]
Onboarding = Annotated[OnboardingService, Depends(get_onboarding_service)]
