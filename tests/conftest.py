"""Shared test fixtures.

Each test gets a fresh SQLite database built from the ORM metadata. Set
LC_TEST_DATABASE_URL to a PostgreSQL URL to run the same suite (plus the
concurrency tests) against Postgres instead.
"""

from __future__ import annotations

import os
from collections.abc import AsyncGenerator
from datetime import datetime, timezone

import pytest
import pytest_asyncio
from fastapi import FastAPI
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine

from linguacred.auth.jwt import create_access_token
from linguacred.clock import FixedClock
from linguacred.database import get_session
from linguacred.db import models  # noqa: F401
from linguacred.db.base import Base
from linguacred.db.models import User
from linguacred.dependencies import get_clock
from linguacred.users.service import create_user

TEST_DATABASE_URL = os.environ.get("LC_TEST_DATABASE_URL", "")


def is_postgres() -> bool:
    return TEST_DATABASE_URL.startswith("postgresql")


@pytest_asyncio.fixture
async def engine(tmp_path) -> AsyncGenerator[AsyncEngine, None]:
    """Fresh schema per test."""
    url = TEST_DATABASE_URL or f"sqlite+aiosqlite:///{tmp_path / 'linguacred.db'}"
    eng = create_async_engine(url)
    async with eng.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
        await conn.run_sync(Base.metadata.create_all)
    yield eng
    await eng.dispose()


@pytest.fixture
def session_factory(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


@pytest_asyncio.fixture
async def db(session_factory) -> AsyncGenerator[AsyncSession, None]:
    """Direct database session for service-level tests."""
    async with session_factory() as session:
        yield session


@pytest.fixture
def clock() -> FixedClock:
    """Tuesday 2026-03-10 12:00 UTC."""
    return FixedClock(datetime(2026, 3, 10, 12, 0, tzinfo=timezone.utc))


async def make_user(session_factory, email: str = "learner@example.com", **kwargs) -> User:
    async with session_factory() as session:
        user = await create_user(session, email, **kwargs)
        await session.commit()
        return user


@pytest_asyncio.fixture
async def user(session_factory) -> User:
    return await make_user(session_factory, display_name="Learner", selected_language="japanese")


@pytest_asyncio.fixture
async def other_user(session_factory) -> User:
    return await make_user(session_factory, "other@example.com", display_name="Other")


@pytest.fixture
def app(session_factory, clock) -> FastAPI:
    """Application with the test database and clock injected."""
    from linguacred.main import create_app

    application = create_app()

    async def _session() -> AsyncGenerator[AsyncSession, None]:
        async with session_factory() as session:
            yield session

    application.dependency_overrides[get_session] = _session
    application.dependency_overrides[get_clock] = lambda: clock
    return application


@pytest_asyncio.fixture
async def client(app: FastAPI) -> AsyncGenerator[AsyncClient, None]:
    """HTTP client over the test application."""
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac


@pytest_asyncio.fixture
async def authed_client(client: AsyncClient, user: User) -> AsyncClient:
    """Client authenticated as ``user``."""
    client.headers["Authorization"] = f"Bearer {create_access_token(user.id, user.email)}"
    return client
