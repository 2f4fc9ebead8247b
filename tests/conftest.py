"""Shared test fixtures.

Database tests run against an in-memory SQLite database created from the ORM
metadata; Redis is disabled, so rate limiting and achievement events are
skipped.
"""

from __future__ import annotations

import os
from collections.abc import AsyncGenerator
from datetime import datetime, timezone

os.environ["SH_DATABASE_URL"] = "sqlite+aiosqlite:///:memory:"
os.environ["SH_REDIS_URL"] = ""
os.environ["SH_LOG_FORMAT"] = "console"

import pytest_asyncio  # noqa: E402
from httpx import ASGITransport, AsyncClient  # noqa: E402
from sqlalchemy.ext.asyncio import AsyncSession  # noqa: E402

from studyhub.config import get_settings  # noqa: E402

get_settings.cache_clear()

from studyhub.auth.jwt import create_access_token  # noqa: E402
from studyhub.database import close_db, create_schema, get_session, init_db  # noqa: E402
from studyhub.db.models import User  # noqa: E402
from studyhub.main import create_app  # noqa: E402


async def make_user(
    db: AsyncSession,
    username: str = "alice",
    first_name: str = "Alice",
    last_name: str = "Liddell",
) -> User:
    """Insert and commit a user."""
    user = User(
        username=username,
        email=f"{username}@example.com",
        first_name=first_name,
        last_name=last_name,
        study_preferences={},
        created_at=datetime(2026, 1, 5, 9, 0, tzinfo=timezone.utc),
    )
    db.add(user)
    await db.commit()
    return user


@pytest_asyncio.fixture
async def database() -> AsyncGenerator[None, None]:
    """Fresh in-memory schema per test."""
    settings = get_settings()
    await init_db(settings.database_url)
    await create_schema()
    yield
    await close_db()


@pytest_asyncio.fixture
async def db_session(database: None) -> AsyncGenerator[AsyncSession, None]:
    """Direct database session for seeding and assertions."""
    async for session in get_session():
        yield session
        break


@pytest_asyncio.fixture
async def client(database: None) -> AsyncGenerator[AsyncClient, None]:
    """Async HTTP client bound to a fresh app (lifespan not run; fixtures own the DB)."""
    app = create_app()
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac


@pytest_asyncio.fixture
async def user(db_session: AsyncSession) -> User:
    """The authenticated test user."""
    return await make_user(db_session)


@pytest_asyncio.fixture
async def authed_client(client: AsyncClient, user: User) -> AsyncClient:
    """Client carrying a bearer token for ``user``."""
    client.headers["Authorization"] = f"Bearer {create_access_token(user.id, user.username)}"
    return client


@pytest_asyncio.fixture
async def user_factory(db_session: AsyncSession):  # noqa: ANN201
    """Create extra users: ``await user_factory("bob", "Bob", "Builder")``."""

    async def _make(username: str, first_name: str = "", last_name: str = "") -> User:
        return await make_user(db_session, username, first_name, last_name)

    return _make
