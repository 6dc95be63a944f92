"""
Pytest configuration and shared fixtures.

The application reads its settings at import time, so the environment is
prepared here before anything from employee_api is imported:
  - in-memory SQLite (aiosqlite) with the schema created on startup
  - no Redis (cache disabled)
  - known passwords for the two built-in accounts, cheap bcrypt rounds
"""

import os

os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///:memory:")
os.environ.setdefault("AUTO_CREATE_SCHEMA", "true")
os.environ.setdefault("CACHE_ENABLED", "false")
os.environ.setdefault("ADMIN_PASSWORD", "admin-secret")
os.environ.setdefault("USER_PASSWORD", "user-secret")
os.environ.setdefault("BCRYPT_ROUNDS", "4")
os.environ.setdefault("TRACING_ENABLED", "false")

from unittest.mock import AsyncMock, MagicMock

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from employee_api.cache.redis_client import RedisCache
from employee_api.db import models  # noqa: F401
from employee_api.db.engine import Base

ADMIN_AUTH = ("admin", "admin-secret")
USER_AUTH = ("user", "user-secret")


@pytest.fixture
def client():
    """
    TestClient with the lifespan running.

    The in-memory database lives on the engine's single pooled connection;
    the lifespan disposes the engine on exit, so each test starts empty.
    """
    from employee_api.main import app

    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()


@pytest.fixture
async def db_session():
    """Fresh in-memory database and session, independent of the app engine."""
    engine = create_async_engine(
        "sqlite+aiosqlite:///:memory:",
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    session_maker = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)
    async with session_maker() as session:
        yield session

    await engine.dispose()


@pytest.fixture
def disabled_cache():
    """A cache that was never connected (CACHE_ENABLED=false)."""
    return RedisCache(default_ttl=600)


@pytest.fixture
def redis_mock():
    """Stand-in for a redis.asyncio.Redis client."""
    client = MagicMock()
    client.get = AsyncMock(return_value=None)
    client.set = AsyncMock(return_value=True)
    client.delete = AsyncMock(return_value=1)
    client.ping = AsyncMock(return_value=True)
    client.aclose = AsyncMock()
    return client


@pytest.fixture
def connected_cache(redis_mock):
    """RedisCache wired to `redis_mock` instead of a real server."""
    cache = RedisCache(default_ttl=600)
    cache._client = redis_mock
    return cache
