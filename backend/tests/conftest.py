"""Pytest configuration and fixtures."""

import os

# Settings are read at import time; these must be set before the app loads
os.environ.setdefault("ENVIRONMENT", "test")
os.environ.setdefault("JWT_SECRET_KEY", "test-access-secret")
os.environ.setdefault("JWT_REFRESH_SECRET_KEY", "test-refresh-secret")
os.environ.setdefault("GOOGLE_CLIENT_ID", "test-client-id.apps.googleusercontent.com")
os.environ.setdefault("BCRYPT_ROUNDS", "4")
os.environ.setdefault("DATABASE_URL_OVERRIDE", "sqlite+aiosqlite://")

from collections.abc import AsyncGenerator, Awaitable, Callable  # noqa: E402

import pytest  # noqa: E402
from httpx import ASGITransport, AsyncClient  # noqa: E402
from sqlalchemy.ext.asyncio import (  # noqa: E402
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.pool import StaticPool  # noqa: E402

from studygroup.core.security import claims_for_user, create_token_pair, hash_password  # noqa: E402
from studygroup.db import models  # noqa: E402,F401 - Import models to register them
from studygroup.db.base import Base  # noqa: E402
from studygroup.db.models import User, UserRole  # noqa: E402
from studygroup.db.session import get_db  # noqa: E402
from studygroup.main import app  # noqa: E402

DEFAULT_PASSWORD = "password123"

MakeUser = Callable[..., Awaitable[User]]


@pytest.fixture
async def engine() -> AsyncGenerator[AsyncEngine, None]:
    """In-memory SQLite database, created fresh for every test."""
    engine = create_async_engine(
        "sqlite+aiosqlite://",
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    await engine.dispose()


@pytest.fixture
async def db(engine: AsyncEngine) -> AsyncGenerator[AsyncSession, None]:
    """Session shared by the test body and every request it makes."""
    session_factory = async_sessionmaker(
        bind=engine,
        class_=AsyncSession,
        expire_on_commit=False,
        autoflush=False,
    )
    async with session_factory() as session:
        yield session


@pytest.fixture
async def client(db: AsyncSession) -> AsyncGenerator[AsyncClient, None]:
    """Async HTTP client for testing FastAPI endpoints."""

    async def override_get_db() -> AsyncGenerator[AsyncSession, None]:
        yield db

    app.dependency_overrides[get_db] = override_get_db
    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test",
    ) as ac:
        yield ac
    app.dependency_overrides.clear()


# ============================================================
# Users and tokens
# ============================================================


@pytest.fixture
def make_user(db: AsyncSession) -> MakeUser:
    """Factory persisting a user with a known password."""

    async def _make_user(
        name: str,
        email: str,
        *,
        role: UserRole = UserRole.USER,
        password: str | None = DEFAULT_PASSWORD,
        profile_complete: bool = True,
    ) -> User:
        user = User(
            name=name,
            email=email,
            role=role,
            password_hash=hash_password(password) if password else None,
            is_profile_complete=profile_complete,
        )
        db.add(user)
        await db.commit()
        await db.refresh(user)
        return user

    return _make_user


def headers_for(user: User) -> dict[str, str]:
    """Authorization header carrying a fresh access token for `user`."""
    tokens = create_token_pair(claims_for_user(user))
    return {"Authorization": f"Bearer {tokens.access_token}"}


@pytest.fixture
async def alice(make_user: MakeUser) -> User:
    return await make_user("Alice Johnson", "alice@learning.com")


@pytest.fixture
async def bob(make_user: MakeUser) -> User:
    return await make_user("Bob Smith", "bob@learning.com")


@pytest.fixture
async def admin(make_user: MakeUser) -> User:
    return await make_user("Admin User", "admin@learning.com", role=UserRole.ADMIN)


@pytest.fixture
def alice_headers(alice: User) -> dict[str, str]:
    return headers_for(alice)


@pytest.fixture
def bob_headers(bob: User) -> dict[str, str]:
    return headers_for(bob)


@pytest.fixture
def admin_headers(admin: User) -> dict[str, str]:
    return headers_for(admin)


# ============================================================
# Content
# ============================================================

TOPIC_PAYLOAD: dict = {
    "title": "Distributed Systems",
    "startDate": "2026-01-05",
    "endDate": "2026-03-30",
    "intervalType": "WEEKLY",
    "outline": "Consensus, replication, clocks",
    "referenceUrls": ["https://example.org/ds"],
    "keywords": ["raft", "paxos"],
}


@pytest.fixture
def topic_payload() -> dict:
    return dict(TOPIC_PAYLOAD)


@pytest.fixture
async def topic(client: AsyncClient, alice_headers: dict[str, str]) -> dict:
    """A topic created by Alice."""
    response = await client.post("/api/topics", json=TOPIC_PAYLOAD, headers=alice_headers)
    assert response.status_code == 201, response.text
    return response.json()


@pytest.fixture
async def session(
    client: AsyncClient,
    topic: dict,
    bob,
    admin_headers: dict[str, str],
) -> dict:
    """A session in Alice's topic, presented by Bob."""
    response = await client.post(
        "/api/sessions",
        json={
            "topicId": topic["id"],
            "presenterId": bob.id,
            "startDateTime": "2026-01-12 18:30",
            "scope": "Raft leader election",
            "outline": "Terms and votes",
            "noteLinks": ["https://notes.example.org/raft"],
            "references": [
                {
                    "label": "Raft paper",
                    "description": "In Search of an Understandable Consensus Algorithm",
                    "url": "https://raft.github.io/raft.pdf",
                    "category": "paper",
                }
            ],
            "attendees": [bob.id],
        },
        headers=admin_headers,
    )
    assert response.status_code == 201, response.text
    return response.json()


@pytest.fixture
def auth_headers_for() -> Callable[[User], dict[str, str]]:
    """Build Authorization headers for any user created in a test."""
    return headers_for
