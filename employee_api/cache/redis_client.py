"""
Redis Caching Layer
=============================================================================
CONCEPT: Read-Through Cache for Single-Row Lookups

Two reads dominate this API: "get employee N" and "how many employees are
there". Both are cheap for the database individually but are hit on every
page load of a typical admin UI. We keep them in Redis:

    Key pattern            Value                         Invalidated by
    ---------------------  ----------------------------  -----------------------
    employee:{id}          {"id": .., "name": .., ...}   update/patch (put), delete
    employees:count        integer                       create, delete, upsert-create

FLOW (find_by_id):
    1. GET employee:{id}     -> hit?  return it
    2. SELECT ... WHERE id   -> miss: load from the database
    3. SET employee:{id} EX ttl

Writes update or delete the affected keys after the database commit, so the
cache can be briefly stale only if Redis is unreachable mid-write. The TTL
(CACHE_TTL_SECONDS) bounds that window.

CONCEPT: Cache Is Optional
With CACHE_ENABLED=false (local development, tests) the cache is never
connected and `enabled` is False; the service skips every cache call and
reads straight from the database.
=============================================================================
"""

import json
from typing import Any

import redis.asyncio as redis

from employee_api.config import settings
from employee_api.observability.metrics import record_cache_event

EMPLOYEE_COUNT_KEY = "employees:count"


def employee_key(employee_id: int) -> str:
    return f"employee:{employee_id}"


class RedisCache:
    """
    Async Redis client with JSON (de)serialization and a default TTL.

    The connection is NOT created in __init__. Call connect() during
    application startup; redis.asyncio.from_url() builds a connection pool
    lazily, so connect() itself does no network I/O.
    """

    def __init__(self, default_ttl: int | None = None) -> None:
        self._client: redis.Redis | None = None
        self.default_ttl = default_ttl

    async def connect(self) -> None:
        self._client = redis.from_url(
            settings.redis_url,
            decode_responses=True,
        )

    async def disconnect(self) -> None:
        if self._client is not None:
            await self._client.aclose()
            self._client = None

    @property
    def enabled(self) -> bool:
        return self._client is not None

    @property
    def client(self) -> redis.Redis:
        if self._client is None:
            raise RuntimeError(
                "Redis client is not connected. Call 'await cache.connect()' "
                "during application startup before using the cache."
            )
        return self._client

    # =========================================================================
    # General-Purpose Cache Operations
    # =========================================================================
    async def get(self, key: str) -> Any | None:
        """Return the deserialized value for `key`, or None on a miss."""
        raw = await self.client.get(key)
        if raw is None:
            record_cache_event("miss")
            return None
        record_cache_event("hit")
        try:
            return json.loads(raw)
        except json.JSONDecodeError:
            return raw

    async def set(self, key: str, value: Any, ttl: int | None = None) -> None:
        """Store `value` as JSON. `ttl` defaults to the cache's default TTL."""
        ttl = ttl if ttl is not None else self.default_ttl
        serialized = json.dumps(value)
        if ttl is not None:
            await self.client.set(key, serialized, ex=ttl)
        else:
            await self.client.set(key, serialized)

    async def delete(self, *keys: str) -> bool:
        """Delete one or more keys. True if at least one existed."""
        result = await self.client.delete(*keys)
        record_cache_event("evict")
        return result > 0


# =============================================================================
# Module-Level Singleton
# =============================================================================
# Not connected at import time. main.py connects it in the lifespan when
# CACHE_ENABLED is true.
employee_cache = RedisCache(default_ttl=settings.cache_ttl_seconds)


def get_cache() -> RedisCache:
    """FastAPI dependency returning the shared cache (override in tests)."""
    return employee_cache
