"""
Pytest configuration and fixtures.

This file is automatically discovered by pytest and provides
shared fixtures for all test modules.

Every test gets its own in-memory SQLite database (aiosqlite + StaticPool,
so all sessions share the one connection). Foreign keys and SAVEPOINTs are
enabled by ``kbase.db.session.create_engine`` exactly as in production.

References:
-----------
- Pytest Fixtures: https://docs.pytest.org/en/stable/fixture.html
- FastAPI Testing: https://fastapi.tiangolo.com/advanced/async-tests/
"""

import os

# Settings are read at import time
os.environ["DATABASE_URL"] = "sqlite+aiosqlite:///:memory:"
os.environ["JWT_SECRET_KEY"] = "test-secret-key-that-is-at-least-32-characters"
os.environ["APP_ENV"] = "testing"
os.environ["YOUTUBE_API_KEY"] = ""
os.environ["LOG_FORMAT"] = "text"

from datetime import timedelta
from typing import AsyncGenerator

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.pool import StaticPool

import kbase.models  # noqa: F401
from kbase.core.security import create_access_token
from kbase.db.base import Base
from kbase.db.deps import get_db, get_db_override
from kbase.db.session import create_engine, create_session_factory
from kbase.main import app
from kbase.models.user import AuthorizedUser, User, UserRole


# ================================
# Database Fixtures
# ================================

@pytest_asyncio.fixture
async def test_engine():
    engine = create_engine("sqlite+aiosqlite:///:memory:", poolclass=StaticPool)

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    await engine.dispose()


@pytest_asyncio.fixture
async def db_session(test_engine) -> AsyncGenerator[AsyncSession, None]:
    """A session from the same factory the app uses (expire_on_commit=False)."""
    session_factory = create_session_factory(test_engine)
    async with session_factory() as session:
        yield session


# ================================
# FastAPI Client Fixtures
# ================================

@pytest_asyncio.fixture
async def client(test_engine, db_session: AsyncSession) -> AsyncGenerator[AsyncClient, None]:
    """
    Async HTTP client against the app, sharing ``db_session`` with the test.

    Usage:
        async def test_something(client: AsyncClient, auth_headers: dict):
            response = await client.get("/api/v1/content", headers=auth_headers)
            assert response.status_code == 200
    """
    app.dependency_overrides[get_db] = get_db_override(db_session)
    # The lifespan does not run under ASGITransport
    app.state.engine = test_engine
    app.state.session_factory = create_session_factory(test_engine)

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac

    app.dependency_overrides.clear()


# ================================
# User Fixtures
# ================================

async def _make_user(db_session: AsyncSession, email: str, name: str, is_active: bool = True) -> User:
    user = User(email=email, name=name, role=UserRole.VIEWER, is_active=is_active)
    db_session.add(user)
    await db_session.commit()
    await db_session.refresh(user)
    return user


@pytest_asyncio.fixture
async def test_user(db_session: AsyncSession) -> User:
    return await _make_user(db_session, "test@example.com", "Test User")


@pytest_asyncio.fixture
async def other_user(db_session: AsyncSession) -> User:
    """A second account, for ownership isolation tests."""
    return await _make_user(db_session, "other@example.com", "Other User")


@pytest_asyncio.fixture
async def inactive_user(db_session: AsyncSession) -> User:
    return await _make_user(db_session, "inactive@example.com", "Inactive User", is_active=False)


@pytest_asyncio.fixture
async def authorized_email(db_session: AsyncSession) -> str:
    """An allow-listed e-mail with no User row yet."""
    db_session.add(AuthorizedUser(email="newcomer@example.com", role=UserRole.ADMIN))
    await db_session.commit()
    return "newcomer@example.com"


# ================================
# Authentication Fixtures
# ================================

def make_auth_headers(user: User) -> dict[str, str]:
    token = create_access_token(
        data={"sub": user.email},
        expires_delta=timedelta(minutes=30),
    )
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def auth_headers(test_user: User) -> dict[str, str]:
    return make_auth_headers(test_user)


@pytest.fixture
def other_auth_headers(other_user: User) -> dict[str, str]:
    return make_auth_headers(other_user)


@pytest.fixture
def expired_token(test_user: User) -> str:
    return create_access_token(
        data={"sub": test_user.email},
        expires_delta=timedelta(hours=-1),
    )
