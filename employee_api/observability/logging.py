"""
Structured Logging with structlog
=============================================================================
CONCEPT: Why Structured (JSON) Logging?

Plain text:
    2025-01-15 10:30:45 INFO Employee created successfully with id: 42

Structured:
    {"timestamp": "2025-01-15T10:30:45.123Z", "level": "info",
     "logger": "employee_api.services.employee_service",
     "event": "employee_created", "employee_id": 42,
     "request_id": "9f1c2e", "method": "POST", "path": "/api/v1/employees"}

The second form can be filtered (`employee_id:42 AND level:error`),
aggregated and correlated with traces without regex parsing.

CONCEPT: Log Injection
A structured renderer escapes newlines inside values, but the console
renderer used in development does not. Any user-supplied string we log
(search terms, rejected names) goes through sanitizer.normalize_text()
first, which strips every control character.

STRUCTLOG PIPELINE:
    Raw event -> [contextvars] -> [level filter] -> [logger name] -> [level]
              -> [timestamp]   -> [exc info]    -> JSON / console renderer

RequestContextMiddleware binds request_id / method / path into structlog's
contextvars at the start of every request, so every log line emitted while
handling that request carries them without passing a logger around. It also
records the request latency histogram (observability/metrics.py).
=============================================================================
"""

import logging
import sys
import time
import uuid

import structlog
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request

from employee_api.config import settings
from employee_api.observability.metrics import record_request
from employee_api.security.sanitizer import normalize_text

_logging_configured: bool = False


def setup_logging() -> None:
    """
    Configure structlog over the stdlib logging module.

    Call once during application startup (main.py's lifespan). Repeated
    calls are ignored.
    """
    global _logging_configured

    if _logging_configured:
        return

    log_level = getattr(logging, settings.log_level.upper(), logging.INFO)

    shared_processors: list[structlog.types.Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.filter_by_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        structlog.processors.UnicodeDecoder(),
        structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
    ]

    structlog.configure(
        processors=shared_processors,
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    # Console renderer for development, JSON everywhere else.
    formatter = structlog.stdlib.ProcessorFormatter(
        processor=structlog.dev.ConsoleRenderer()
        if settings.debug
        else structlog.processors.JSONRenderer(),
    )

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(formatter)

    root_logger = logging.getLogger()
    root_logger.handlers.clear()
    root_logger.addHandler(handler)
    root_logger.setLevel(log_level)

    for noisy_logger in ["uvicorn.access", "sqlalchemy.engine", "passlib"]:
        logging.getLogger(noisy_logger).setLevel(logging.WARNING)

    _logging_configured = True


def get_logger(name: str) -> structlog.stdlib.BoundLogger:
    """
    Get a named structured logger. Use the module's __name__.

        logger = get_logger(__name__)
        logger.info("employee_updated", employee_id=42)
    """
    return structlog.get_logger(name)


class RequestContextMiddleware(BaseHTTPMiddleware):
    """
    Bind per-request context into structlog contextvars.

    The request id is taken from an incoming `X-Request-ID` header when the
    client sends one (truncated, control characters removed) and generated
    otherwise. It is echoed back in the response header of the same name.
    """

    async def dispatch(self, request: Request, call_next):
        request_id = normalize_text(request.headers.get("X-Request-ID", ""))[:64] or uuid.uuid4().hex[:12]

        structlog.contextvars.clear_contextvars()
        structlog.contextvars.bind_contextvars(
            request_id=request_id,
            method=request.method,
            path=request.url.path,
        )
        start = time.perf_counter()
        # An exception escaping call_next becomes a 500 in the outer error middleware.
        status_code = 500
        try:
            response = await call_next(request)
            status_code = response.status_code
        finally:
            duration_ms = (time.perf_counter() - start) * 1000
            route = request.scope.get("route")
            record_request(
                method=request.method,
                route=getattr(route, "path", "unmatched"),
                status=status_code,
                duration_ms=duration_ms,
            )
        response.headers["X-Request-ID"] = request_id
        return response
