"""
FastAPI Application Entry Point
=============================================================================
CONCEPT: FastAPI Application Lifecycle

  1. Startup - configure logging/tracing, build the credential store,
     verify the database, connect the cache
  2. Request handling - routes in api/
  3. Shutdown - close the cache and the database pool

We use the `lifespan` context manager pattern (recommended over the older
`@app.on_event("startup")` pattern): everything before `yield` runs on
startup, everything after it on shutdown.

Startup FAILS (and the server never accepts traffic) when ADMIN_PASSWORD or
USER_PASSWORD is unset, or when the database is unreachable.

Run with: uvicorn employee_api.main:app --reload --host 0.0.0.0 --port 8080
=============================================================================
"""

from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from sqlalchemy import text

from employee_api.api.errors import register_exception_handlers
from employee_api.api.router import api_router
from employee_api.auth.users import get_user_store
from employee_api.cache.redis_client import employee_cache
from employee_api.config import settings
from employee_api.db import models  # noqa: F401  (registers tables on Base.metadata)
from employee_api.db.engine import Base, engine
from employee_api.observability.logging import RequestContextMiddleware, get_logger, setup_logging
from employee_api.observability.tracing import setup_tracing

logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    # === STARTUP ===
    setup_logging()
    logger.info("application_starting", app_name=settings.app_name, environment=settings.app_env)

    if settings.tracing_enabled:
        setup_tracing(environment=settings.app_env)
        logger.info("tracing_enabled")

    store = get_user_store()
    logger.info("credential_store_ready", accounts=store.usernames)

    async with engine.begin() as conn:
        if settings.auto_create_schema:
            await conn.run_sync(Base.metadata.create_all)
            logger.info("database_schema_created")
        await conn.execute(text("SELECT 1"))
    logger.info("database_connection_verified")

    if settings.cache_enabled:
        await employee_cache.connect()
        logger.info("cache_connected", redis_url=settings.redis_url)

    yield  # Application is running and handling requests

    # === SHUTDOWN ===
    await employee_cache.disconnect()
    await engine.dispose()
    logger.info("application_stopped")


# =============================================================================
# Create the FastAPI application
# =============================================================================
app = FastAPI(
    title=settings.app_name,
    description=(
        "CRUD API for employee records: paging, sorting, search, role "
        "filtering and partial updates, with input sanitization, HTTP Basic "
        "authentication and structured error responses."
    ),
    version="1.0.0",
    lifespan=lifespan,
)


# =============================================================================
# Middleware
# =============================================================================
# CORS: browsers only let the listed frontends call this API. Location and
# X-Total-Count are response headers scripts must be able to read.
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.allowed_origins,
    allow_credentials=True,
    allow_methods=["GET", "POST", "PUT", "PATCH", "DELETE", "OPTIONS"],
    allow_headers=["*"],
    expose_headers=["Location", "X-Total-Count"],
    max_age=3600,
)
app.add_middleware(RequestContextMiddleware)

register_exception_handlers(app)


# =============================================================================
# Mount Routers
# =============================================================================
app.include_router(api_router)
