"""
API Test Configuration

App, client and identity-token fixtures backed by an in-memory database.
"""

from datetime import datetime, timedelta, timezone
from typing import AsyncGenerator

import jwt
import pytest
import pytest_asyncio
from fastapi import FastAPI
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from adminguard.api.config import settings
from adminguard.api.db.models import AdminRoleRow, AuthUserRow, Base, MfaFactorRow, ProfileRow
from adminguard.api.dependencies import get_session_factory
from adminguard.api.main import create_app


# ==================== Database Fixtures ====================


@pytest_asyncio.fixture(scope="function")
async def async_engine():
    """Create async SQLite engine for testing."""
    engine = create_async_engine(
        "sqlite+aiosqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    await engine.dispose()


@pytest.fixture(scope="function")
def sessions(async_engine) -> async_sessionmaker:
    return async_sessionmaker(async_engine, class_=AsyncSession, expire_on_commit=False)


@pytest_asyncio.fixture(scope="function")
async def seeded(sessions) -> async_sessionmaker:
    """Admins of every role plus one end user."""
    async with sessions() as session:
        for user_id, role in (
            ("admin-1", "admin"),
            ("support-1", "support_write_limited"),
            ("viewer-1", "support_readonly"),
        ):
            session.add(AuthUserRow(id=user_id, email=f"{user_id}@corp.test"))
            session.add(AdminRoleRow(user_id=user_id, role=role, is_active=True))
            session.add(MfaFactorRow(id=f"factor-{user_id}", user_id=user_id, status="verified"))

        session.add(AuthUserRow(id="user-1", email="alice@example.com"))
        session.add(ProfileRow(id="user-1", email="alice@example.com", full_name="Alice Smith"))
        await session.commit()
    return sessions


# ==================== Application Fixtures ====================


@pytest.fixture(scope="function")
def app(seeded) -> FastAPI:
    """Create FastAPI app with test database."""
    test_app = create_app()
    test_app.dependency_overrides[get_session_factory] = lambda: seeded
    return test_app


@pytest_asyncio.fixture(scope="function")
async def async_client(app) -> AsyncGenerator[AsyncClient, None]:
    """Create async test client."""
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac


# ==================== Token Fixtures ====================


@pytest.fixture
def make_token():
    """Sign an identity-provider access token."""

    def _make(user_id: str, expires_in: timedelta = timedelta(hours=1)) -> str:
        payload = {
            "sub": user_id,
            "email": f"{user_id}@corp.test",
            "aud": settings.IDP_JWT_AUDIENCE,
            "exp": datetime.now(timezone.utc) + expires_in,
        }
        return jwt.encode(payload, settings.IDP_JWT_SECRET, algorithm=settings.IDP_JWT_ALGORITHM)

    return _make


@pytest.fixture
def headers_for(make_token):
    """Authorization headers for a seeded principal."""

    def _headers(user_id: str) -> dict:
        return {"Authorization": f"Bearer {make_token(user_id)}"}

    return _headers
