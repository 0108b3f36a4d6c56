import os

# Must be set before the application settings are imported
os.environ.setdefault("MODE", "test")

from dataclasses import dataclass

import pytest
from sqlalchemy import create_engine
from sqlalchemy.ext.asyncio import create_async_engine, AsyncSession, async_sessionmaker
from sqlalchemy.orm import Session
from sqlalchemy.pool import NullPool
from httpx import AsyncClient, ASGITransport

from main import app as fastapi_app
import db as project_db
import db_models  # noqa: F401  ensure models are imported
from config import settings
from core.notifications import Notifier, get_notifier
from core.security import get_password_hash, get_token_service
from db_base import Base
from db_models.user import User, UserRole

TEST_DATABASE_URL = settings.DATABASE_URL
PASSWORD = "correct-horse-1"


def get_sync_url(url: str) -> str:
    return (
        url.replace("postgresql+asyncpg://", "postgresql+psycopg2://")
        .replace("sqlite+aiosqlite://", "sqlite://")
    )


sync_url = get_sync_url(TEST_DATABASE_URL)

# Use an async engine for app interactions
engine = create_async_engine(
    TEST_DATABASE_URL,
    echo=False,
    poolclass=NullPool  # Disable connection pooling for tests
)
AsyncSessionTest = async_sessionmaker(
    bind=engine,
    class_=AsyncSession,
    expire_on_commit=False,
    autoflush=False,
    autocommit=False
)


@dataclass
class SeededUser:
    id: int
    username: str
    email: str
    role: UserRole
    password: str = PASSWORD


class RecordingNotifier(Notifier):
    """Captures outgoing mail, including the plaintext single-use tokens."""

    def __init__(self):
        super().__init__(backend="console")
        self.sent: list[tuple[str, str]] = []
        self.verification_tokens: dict[str, str] = {}
        self.reset_tokens: dict[str, str] = {}

    async def send_verification_email(self, to, username, token):
        self.verification_tokens[to] = token
        self.sent.append(("verification", to))

    async def send_password_reset_email(self, to, username, token):
        self.reset_tokens[to] = token
        self.sent.append(("password_reset", to))

    async def send_welcome_email(self, to, username, role):
        self.sent.append(("welcome", to))


class FailingNotifier(Notifier):
    """Every delivery fails, as an unreachable SMTP relay would."""

    def __init__(self):
        super().__init__(backend="console")

    async def send(self, to, subject, body):
        raise ConnectionError("SMTP relay unreachable")


@pytest.fixture(scope="session")
def anyio_backend():
    return "asyncio"


@pytest.fixture(autouse=True)
def seeded_users() -> dict[UserRole, SeededUser]:
    """Fresh schema for every test, with one verified, active user per role."""
    sync_engine = create_engine(sync_url)
    Base.metadata.drop_all(bind=sync_engine)
    Base.metadata.create_all(bind=sync_engine)

    seeded = {}
    password_hash = get_password_hash(PASSWORD)
    with Session(sync_engine) as session:
        for role, username in [
            (UserRole.SUPER_ADMIN, "root"),
            (UserRole.ADMIN, "manager"),
            (UserRole.DATA_ENTRY, "clerk"),
            (UserRole.AUDITOR, "inspector"),
        ]:
            user = User(
                username=username,
                email=f"{username}@example.com",
                password_hash=password_hash,
                role=role.value,
                is_active=True,
                email_verified=True,
            )
            session.add(user)
            session.flush()
            seeded[role] = SeededUser(id=user.id, username=username, email=user.email, role=role)
        session.commit()

    yield seeded

    Base.metadata.drop_all(bind=sync_engine)
    sync_engine.dispose()


@pytest.fixture
async def db_session():
    async with AsyncSessionTest() as session:
        yield session
        await session.rollback()


@pytest.fixture
def notifier():
    return RecordingNotifier()


@pytest.fixture
async def async_client(notifier):
    # Override the get_session dependency to create a fresh session for each request
    async def override_get_session():
        async with AsyncSessionTest() as session:
            yield session

    fastapi_app.dependency_overrides[project_db.get_session] = override_get_session
    fastapi_app.dependency_overrides[get_notifier] = lambda: notifier

    async with AsyncClient(transport=ASGITransport(app=fastapi_app), base_url="http://testserver") as ac:
        yield ac

    # Clean up
    fastapi_app.dependency_overrides.clear()


def bearer(user_id: int, role: UserRole) -> dict[str, str]:
    token = get_token_service().issue(user_id, role).token
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def superadmin_headers(seeded_users):
    user = seeded_users[UserRole.SUPER_ADMIN]
    return bearer(user.id, user.role)


@pytest.fixture
def admin_headers(seeded_users):
    user = seeded_users[UserRole.ADMIN]
    return bearer(user.id, user.role)


@pytest.fixture
def data_entry_headers(seeded_users):
    user = seeded_users[UserRole.DATA_ENTRY]
    return bearer(user.id, user.role)


@pytest.fixture
def auditor_headers(seeded_users):
    user = seeded_users[UserRole.AUDITOR]
    return bearer(user.id, user.role)


@pytest.fixture
def failing_notifier():
    return FailingNotifier()


@pytest.fixture
def headers_for():
    """Build bearer headers for any user id and role."""
    return bearer
