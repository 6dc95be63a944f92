"""
Health, Readiness & Metrics Endpoints
=============================================================================
CONCEPT: Health Checks

  1. /health (Liveness) - "Is the process running?"
     Public. Used by the orchestrator to restart a dead container.

  2. /ready (Readiness) - "Can it handle requests?"
     Checks the database (and Redis when the cache is enabled). A failing
     check returns 503 so the load balancer stops routing traffic here
     without restarting the process.

  3. /metrics - Prometheus text exposition (observability/metrics.py).

/ready and /metrics reveal internal state, so they require the ADMIN role.
=============================================================================
"""

from fastapi import APIRouter, Depends, Response, status
from prometheus_client import CONTENT_TYPE_LATEST, generate_latest
from redis.exceptions import RedisError
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from employee_api.auth.dependencies import require_role
from employee_api.auth.users import ROLE_ADMIN
from employee_api.cache.redis_client import RedisCache, get_cache
from employee_api.config import settings
from employee_api.db.engine import get_db_session
from employee_api.observability.logging import get_logger

logger = get_logger(__name__)

router = APIRouter(tags=["Health"])


@router.get("/health")
async def health_check():
    """Liveness probe. Always 200 while the process is alive."""
    return {"status": "ok", "service": "employee-records-api"}


@router.get("/ready", dependencies=[Depends(require_role(ROLE_ADMIN))])
async def readiness_check(
    response: Response,
    db: AsyncSession = Depends(get_db_session),
    cache: RedisCache = Depends(get_cache),
):
    """Readiness probe: database, plus Redis when the cache is enabled."""
    checks = {}

    try:
        await db.execute(text("SELECT 1"))
        checks["database"] = "ok"
    except SQLAlchemyError as exc:
        logger.warning("readiness_database_failed", error=str(exc))
        checks["database"] = "error"

    if settings.cache_enabled:
        try:
            await cache.client.ping()
            checks["cache"] = "ok"
        except (RedisError, RuntimeError) as exc:
            logger.warning("readiness_cache_failed", error=str(exc))
            checks["cache"] = "error"

    all_ok = all(value == "ok" for value in checks.values())
    if not all_ok:
        response.status_code = status.HTTP_503_SERVICE_UNAVAILABLE

    return {
        "status": "ok" if all_ok else "degraded",
        "checks": checks,
    }


@router.get("/metrics", dependencies=[Depends(require_role(ROLE_ADMIN))])
async def metrics():
    return Response(content=generate_latest(), media_type=CONTENT_TYPE_LATEST)
