"""
Database Engine & Session Management
=============================================================================
CONCEPT: Async SQLAlchemy with Connection Pooling

  1. Engine - The connection factory. Creates and manages DB connections.
  2. Session - A "workspace" for DB operations. Groups queries into transactions.
  3. Connection Pool - Reuses DB connections instead of creating new ones per request.
  4. Async - asyncpg (PostgreSQL) or aiosqlite (SQLite) for non-blocking I/O.

POOL SETTINGS (PostgreSQL):
  - pool_size=20: Keep 20 connections ready at all times
  - max_overflow=10: Allow up to 10 extra connections during traffic spikes
  - pool_pre_ping=True: Check if a connection is alive before using it
  - pool_recycle=3600: Replace connections after 1 hour

SQLite (local development and tests) takes none of those arguments. An
in-memory SQLite database only lives as long as its connection, so we use a
StaticPool: every session shares the one connection and therefore sees the
same tables.
=============================================================================
"""

from typing import AsyncIterator

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.orm import DeclarativeBase
from sqlalchemy.pool import StaticPool

from employee_api.config import settings


def _engine_options(database_url: str) -> dict:
    """Pick pool arguments that the target dialect actually supports."""
    if database_url.startswith("sqlite"):
        return {
            "poolclass": StaticPool,
            "connect_args": {"check_same_thread": False},
        }
    return {
        "pool_size": 20,
        "max_overflow": 10,
        "pool_pre_ping": True,
        "pool_recycle": 3600,
    }


engine = create_async_engine(
    settings.database_url,
    echo=settings.debug,
    **_engine_options(settings.database_url),
)

# expire_on_commit=False keeps ORM objects readable after commit
# (otherwise attribute access would trigger a lazy load outside the session).
async_session_maker = async_sessionmaker(
    engine,
    class_=AsyncSession,
    expire_on_commit=False,
)


class Base(DeclarativeBase):
    pass


async def get_db_session() -> AsyncIterator[AsyncSession]:
    """
    FastAPI dependency that provides a database session per request.

    Usage in a route:
        @router.get("/employees/{employee_id}")
        async def get_employee(db: AsyncSession = Depends(get_db_session)):
            ...
    """
    async with async_session_maker() as session:
        try:
            yield session
        finally:
            await session.close()
