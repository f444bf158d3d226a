import socket
import uuid
from collections.abc import AsyncGenerator
from datetime import UTC, datetime, timedelta
from typing import Any
from unittest.mock import AsyncMock, MagicMock

import jwt
import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import (
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from serenity.core.config import settings
from serenity.models.base import Base
from serenity.models.onboarding import ClientOnboarding, ConsultantOnboarding
from serenity.services import onboarding_service as onboarding_service_module
from serenity.services.client_onboarding import new_client_onboarding
from serenity.services.collaborators import DirectoryUser, UserRole
from serenity.services.consultant_onboarding import new_consultant_onboarding
from serenity.services.onboarding_service import OnboardingService

# Use separate test database
TEST_DATABASE_URL = settings.database_url.replace(
    settings.database_name, f"{settings.database_name}_test"
)

# Fixed "now" so step timestamps and stalled checks are predictable
FIXED_NOW = datetime(2026, 3, 2, 12, 0, tzinfo=UTC)

CLIENT_ID = uuid.UUID("00000000-0000-0000-0000-000000000001")
CONSULTANT_ID = uuid.UUID("00000000-0000-0000-0000-000000000002")
ADMIN_ID = uuid.UUID("00000000-0000-0000-0000-000000000003")
OTHER_CLIENT_ID = uuid.UUID("00000000-0000-0000-0000-000000000004")

# Security: This is a test-only secret. Production uses a real secret from env.
TEST_AUTH_SECRET = "test-secret-key-that-is-at-least-32-characters-long"  # nosec B105  # gitleaks:allow


def create_test_jwt(
    user_id: uuid.UUID = CLIENT_ID,
    *,
    secret: str = TEST_AUTH_SECRET,
    expires_delta: timedelta | None = None,
) -> str:
    """Create a signed JWT for test authentication.

    Args:
        user_id: User UUID to encode in the sub claim.
        secret: Signing secret (must match settings.auth_secret in tests).
        expires_delta: Time until expiration. Defaults to 1 hour.

    Returns:
        Encoded JWT string.
    """
    now = datetime.now(UTC)
    payload = {
        "sub": str(user_id),
        "aud": settings.auth_audience,
        "iss": settings.auth_issuer,
        "exp": now + (expires_delta or timedelta(hours=1)),
        "iat": now,
    }
    return jwt.encode(payload, secret, algorithm="HS256")


def _is_postgres_available() -> bool:
    """Check if PostgreSQL is accepting connections.

    Returns:
        True if PostgreSQL is reachable on port 5432, False otherwise.
    """
    try:
        sock = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
        sock.settimeout(1)
        result = sock.connect_ex(("127.0.0.1", 5432))
        sock.close()
        return result == 0
    except OSError:
        return False


# Check once at module load time
_POSTGRES_AVAILABLE = _is_postgres_available()


def skip_if_no_postgres() -> None:
    """Skip test if PostgreSQL is not available."""
    if not _POSTGRES_AVAILABLE:
        pytest.skip(
            "PostgreSQL not available on port 5432. "
            "Start database with: docker compose up -d"
        )


@pytest_asyncio.fixture(scope="function")
async def db_engine():
    """Create test database engine.

    Skips test if PostgreSQL is not available (e.g., Docker not running).
    """
    skip_if_no_postgres()

    engine = create_async_engine(TEST_DATABASE_URL, echo=False)

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)

    await engine.dispose()


@pytest_asyncio.fixture(scope="function")
async def db_session(db_engine) -> AsyncGenerator[AsyncSession, None]:
    """Create test database session."""
    async_session = async_sessionmaker(
        db_engine,
        class_=AsyncSession,
        expire_on_commit=False,
    )

    async with async_session() as session:
        yield session
        await session.rollback()


# =============================================================================
# Onboarding service fixtures (no database)
# =============================================================================


class InMemoryOnboardingRepository:
    """Stands in for OnboardingRepository's static methods.

    Records are keyed by (model, user_id); ``create`` assigns the id the
    database would generate.
    """

    def __init__(self) -> None:
        self.records: dict[tuple[type, uuid.UUID], Any] = {}
        self.saved: list[Any] = []
        self.count_by_status_result: dict[type, dict[str, int]] = {}
        self.count_stalled_result: dict[type, int] = {}
        self.completion_spans_result: dict[type, list[tuple[datetime, datetime]]] = {}

    def put(self, record: Any) -> Any:
        if record.id is None:
            record.id = uuid.uuid4()
        self.records[(type(record), record.user_id)] = record
        return record

    async def get_for_user(self, _db, model, user_id):
        return self.records.get((model, user_id))

    async def create(self, _db, record):
        return self.put(record)

    async def save(self, _db, record):
        self.saved.append(record)
        return record

    def _of_model(self, model) -> list[Any]:
        return [r for (m, _), r in self.records.items() if m is model]

    async def list_by_status(self, _db, model, status):
        return [r for r in self._of_model(model) if r.status == status]

    async def list_stalled(self, _db, model, inactive_since):
        stalled = [
            r
            for r in self._of_model(model)
            if r.status == "in_progress" and r.last_activity < inactive_since
        ]
        return sorted(stalled, key=lambda r: r.last_activity)

    async def list_client_by_assignee(self, _db, assignee_id):
        return [
            r
            for r in self._of_model(ClientOnboarding)
            if r.assigned_to == assignee_id and r.status != "completed"
        ]

    async def count_by_status(self, _db, model):
        return self.count_by_status_result.get(model, {})

    async def count_stalled(self, _db, model, _inactive_since):
        return self.count_stalled_result.get(model, 0)

    async def completion_spans(self, _db, model):
        return self.completion_spans_result.get(model, [])


def _directory_user(user_id: uuid.UUID, role: UserRole, name: str) -> DirectoryUser:
    return DirectoryUser(
        id=user_id,
        role=role,
        display_name=f"{name} Example",
        email=f"{name.lower()}@example.com",
        first_name=name,
    )


@pytest.fixture
def client_user() -> DirectoryUser:
    return _directory_user(CLIENT_ID, UserRole.CLIENT, "Clara")


@pytest.fixture
def consultant_user() -> DirectoryUser:
    return _directory_user(CONSULTANT_ID, UserRole.CONSULTANT, "Conrad")


@pytest.fixture
def admin_user() -> DirectoryUser:
    return _directory_user(ADMIN_ID, UserRole.ADMIN, "Ada")


@pytest.fixture
def other_client_user() -> DirectoryUser:
    return _directory_user(OTHER_CLIENT_ID, UserRole.CLIENT, "Otto")


@pytest.fixture
def directory(client_user, consultant_user, admin_user, other_client_user) -> AsyncMock:
    """IdentityDirectory mock knowing the four fixture users."""
    users = {
        u.id: u for u in (client_user, consultant_user, admin_user, other_client_user)
    }
    mock = AsyncMock()
    mock.find_user.side_effect = lambda user_id: users.get(user_id)
    mock.find_admins.return_value = [admin_user]
    return mock


@pytest.fixture
def notifier() -> AsyncMock:
    return AsyncMock()


@pytest.fixture
def catalog() -> AsyncMock:
    mock = AsyncMock()
    mock.published_services.return_value = []
    mock.available_consultants.return_value = []
    return mock


@pytest.fixture
def profiles() -> AsyncMock:
    return AsyncMock()


@pytest.fixture
def file_store() -> AsyncMock:
    return AsyncMock()


@pytest.fixture
def mock_db() -> MagicMock:
    """AsyncSession stand-in; ``begin_nested()`` works as an async context."""
    db = MagicMock(spec=AsyncSession)
    db.begin_nested = MagicMock()
    db.flush = AsyncMock()
    return db


@pytest.fixture
def repository(monkeypatch) -> InMemoryOnboardingRepository:
    repo = InMemoryOnboardingRepository()
    monkeypatch.setattr(onboarding_service_module, "OnboardingRepository", repo)
    return repo


@pytest.fixture
def service(
    mock_db, repository, directory, notifier, catalog, profiles, file_store
) -> OnboardingService:
    return OnboardingService(
        mock_db,
        directory=directory,
        notifier=notifier,
        catalog=catalog,
        profiles=profiles,
        file_store=file_store,
        clock=lambda: FIXED_NOW,
        stalled_threshold_days=7,
        recommendation_limit=5,
    )


@pytest.fixture
def client_record(repository) -> ClientOnboarding:
    """Fresh client onboarding, started a day before FIXED_NOW."""
    record = new_client_onboarding(CLIENT_ID, now=FIXED_NOW - timedelta(days=1))
    return repository.put(record)


@pytest.fixture
def consultant_record(repository) -> ConsultantOnboarding:
    """Fresh consultant onboarding, started a day before FIXED_NOW."""
    record = new_consultant_onboarding(CONSULTANT_ID, now=FIXED_NOW - timedelta(days=1))
    return repository.put(record)
