"""
Exception Handlers
=============================================================================
CONCEPT: One Error Shape for Every Failure

Whatever goes wrong, the client receives the same JSON structure
(schemas.ErrorResponse):

    {
      "status": 404,
      "error": "EMPLOYEE_NOT_FOUND",          <- stable, machine-readable
      "message": "Employee not found",         <- short, human-readable
      "details": "Could not find employee with id: 123",
      "path": "/api/v1/employees/123",
      "timestamp": "2025-01-15T10:30:45.123",
      "traceId": "4bf92f3577b3"
    }

The `traceId` is also written to the log line for the failure, so support
can go from a client report straight to the server-side context.

CONCEPT: Never Leak Internals
Unexpected exceptions become a generic 500. The exception text and stack
trace go to the log only; the client sees "Please contact support with
the trace ID".

401 and 403 responses always carry the small auth body
({"error": ..., "message": ...}) from auth/dependencies.py, including the
401 FastAPI's HTTPBasic raises itself for an undecodable header.
=============================================================================
"""

import uuid
from datetime import datetime, timezone
from typing import Any

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from sqlalchemy.orm.exc import StaleDataError
from starlette.exceptions import HTTPException as StarletteHTTPException

from employee_api.api.schemas import ErrorResponse, FieldError
from employee_api.auth.dependencies import FORBIDDEN_BODY, UNAUTHORIZED_BODY
from employee_api.exceptions import EmployeeNotFoundError, EmployeeValidationError
from employee_api.observability.logging import get_logger
from employee_api.observability.tracing import current_trace_id
from employee_api.security.sanitizer import InvalidInput, normalize_text

logger = get_logger(__name__)

_TYPE_ERRORS = ("int_parsing", "int_type", "float_parsing", "bool_parsing", "int_from_float")


def _trace_id() -> str:
    return current_trace_id() or uuid.uuid4().hex[:12]


def _error_response(
    request: Request,
    status_code: int,
    error: str,
    message: str,
    details: str | None,
    trace_id: str,
    field_errors: list[FieldError] | None = None,
    headers: dict[str, str] | None = None,
) -> JSONResponse:
    body = ErrorResponse(
        status=status_code,
        error=error,
        message=message,
        details=details,
        path=request.url.path,
        timestamp=datetime.now(timezone.utc),
        field_errors=field_errors,
        trace_id=trace_id,
    )
    return JSONResponse(
        status_code=status_code,
        content=body.model_dump(mode="json", by_alias=True, exclude_none=True),
        headers=headers,
    )


# =============================================================================
# Domain errors
# =============================================================================
async def employee_not_found_handler(request: Request, exc: EmployeeNotFoundError) -> JSONResponse:
    trace_id = _trace_id()
    logger.warning("employee_not_found", trace_id=trace_id, employee_id=exc.employee_id)
    return _error_response(
        request, status.HTTP_404_NOT_FOUND, "EMPLOYEE_NOT_FOUND", "Employee not found", str(exc), trace_id
    )


async def employee_validation_handler(request: Request, exc: EmployeeValidationError) -> JSONResponse:
    trace_id = _trace_id()
    logger.warning("employee_validation_failed", trace_id=trace_id, reason=str(exc), field=exc.field)
    field_errors = None
    if exc.field is not None:
        field_errors = [FieldError(field=exc.field, rejected_value=exc.rejected_value, message=str(exc))]
    return _error_response(
        request,
        status.HTTP_400_BAD_REQUEST,
        "VALIDATION_ERROR",
        "Validation failed",
        str(exc),
        trace_id,
        field_errors=field_errors,
    )


async def invalid_input_handler(request: Request, exc: InvalidInput) -> JSONResponse:
    trace_id = _trace_id()
    logger.warning("invalid_input", trace_id=trace_id, reason=normalize_text(str(exc)))
    return _error_response(
        request, status.HTTP_400_BAD_REQUEST, "VALIDATION_ERROR", "Validation failed", str(exc), trace_id
    )


async def stale_data_handler(request: Request, exc: StaleDataError) -> JSONResponse:
    trace_id = _trace_id()
    logger.warning("concurrent_modification", trace_id=trace_id)
    return _error_response(
        request,
        status.HTTP_409_CONFLICT,
        "CONCURRENT_MODIFICATION",
        "Employee was modified concurrently",
        "The employee was changed by another request. Reload it and retry.",
        trace_id,
    )


# =============================================================================
# Request validation (FastAPI / pydantic)
# =============================================================================
def _field_name(loc: tuple) -> str:
    # ("body", "name") -> "name"; ("body", "items", 0, "role") -> "items[0].role"
    name = ""
    for part in loc[1:]:
        if isinstance(part, int):
            name += f"[{part}]"
        else:
            name += f".{part}" if name else str(part)
    return name or str(loc[0])


async def request_validation_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """
    Sort pydantic's error list into the error kinds clients rely on.

    Precedence: unreadable body, then body field errors, then query/path
    parameter problems (missing, wrong type, failed constraint).
    """
    trace_id = _trace_id()
    errors = exc.errors()

    unreadable = [
        err for err in errors
        if err.get("type") == "json_invalid" or tuple(err.get("loc", ())) == ("body",)
    ]
    if unreadable:
        logger.warning("malformed_request_body", trace_id=trace_id)
        return _error_response(
            request,
            status.HTTP_400_BAD_REQUEST,
            "MALFORMED_JSON",
            "Request body is not readable",
            "The request body contains malformed JSON or is not readable",
            trace_id,
        )

    body_errors = [err for err in errors if err.get("loc", ("",))[0] == "body"]
    if body_errors:
        field_errors = [
            FieldError(
                field=_field_name(tuple(err["loc"])),
                rejected_value=_rejected_value(err),
                message=_clean_message(err.get("msg", "")),
            )
            for err in body_errors
        ]
        logger.warning("request_validation_failed", trace_id=trace_id, error_count=len(field_errors))
        return _error_response(
            request,
            status.HTTP_400_BAD_REQUEST,
            "VALIDATION_ERROR",
            "Request validation failed",
            "One or more fields have validation errors",
            trace_id,
            field_errors=field_errors,
        )

    first = errors[0] if errors else {"type": "", "loc": ("query", "?"), "msg": ""}
    param = str(first.get("loc", ("", "?"))[-1])
    error_type = first.get("type", "")

    if error_type == "missing":
        logger.warning("missing_parameter", trace_id=trace_id, parameter=param)
        return _error_response(
            request,
            status.HTTP_400_BAD_REQUEST,
            "MISSING_PARAMETER",
            "Required parameter missing",
            f"Required parameter '{param}' is missing",
            trace_id,
        )

    if error_type in _TYPE_ERRORS:
        value = normalize_text(str(first.get("input")))
        logger.warning("parameter_type_mismatch", trace_id=trace_id, parameter=param, value=value)
        return _error_response(
            request,
            status.HTTP_400_BAD_REQUEST,
            "TYPE_MISMATCH",
            "Parameter type mismatch",
            f"Parameter '{param}' with value '{value}' could not be converted to type 'int'",
            trace_id,
        )

    logger.warning("constraint_violation", trace_id=trace_id, parameter=param)
    field_errors = [
        FieldError(
            field=str(err.get("loc", ("", "?"))[-1]),
            rejected_value=_rejected_value(err),
            message=_clean_message(err.get("msg", "")),
        )
        for err in errors
    ]
    return _error_response(
        request,
        status.HTTP_400_BAD_REQUEST,
        "CONSTRAINT_VIOLATION",
        "Constraint validation failed",
        "; ".join(f"{fe.field}: {fe.message}" for fe in field_errors),
        trace_id,
        field_errors=field_errors,
    )


def _rejected_value(err: dict) -> Any:
    value = err.get("input")
    if isinstance(value, str):
        return normalize_text(value)
    if value is None or isinstance(value, (int, float, bool)):
        return value
    return None


def _clean_message(message: str) -> str:
    # pydantic prefixes messages from custom validators with "Value error, ".
    return message.removeprefix("Value error, ")


# =============================================================================
# Framework HTTP errors (routing, auth)
# =============================================================================
async def http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    if exc.status_code == status.HTTP_401_UNAUTHORIZED:
        body = exc.detail if isinstance(exc.detail, dict) else UNAUTHORIZED_BODY
        return JSONResponse(status_code=exc.status_code, content=body, headers={"WWW-Authenticate": "Basic"})
    if exc.status_code == status.HTTP_403_FORBIDDEN:
        body = exc.detail if isinstance(exc.detail, dict) else FORBIDDEN_BODY
        return JSONResponse(status_code=exc.status_code, content=body)

    trace_id = _trace_id()
    method = request.method

    if exc.status_code == status.HTTP_404_NOT_FOUND:
        logger.warning("endpoint_not_found", trace_id=trace_id)
        return _error_response(
            request,
            exc.status_code,
            "ENDPOINT_NOT_FOUND",
            "Endpoint not found",
            f"No handler found for {method} {request.url.path}",
            trace_id,
        )

    if exc.status_code == status.HTTP_405_METHOD_NOT_ALLOWED:
        allowed = (exc.headers or {}).get("Allow", "")
        logger.warning("method_not_allowed", trace_id=trace_id)
        return _error_response(
            request,
            exc.status_code,
            "METHOD_NOT_ALLOWED",
            "HTTP method not supported",
            f"Method '{method}' is not supported for this endpoint. Supported methods: [{allowed}]",
            trace_id,
            headers=exc.headers,
        )

    if exc.status_code == status.HTTP_415_UNSUPPORTED_MEDIA_TYPE:
        logger.warning("unsupported_media_type", trace_id=trace_id)
        return _error_response(
            request,
            exc.status_code,
            "UNSUPPORTED_MEDIA_TYPE",
            "Media type not supported",
            str(exc.detail),
            trace_id,
        )

    logger.warning("http_error", trace_id=trace_id, status=exc.status_code)
    return _error_response(
        request,
        exc.status_code,
        "HTTP_ERROR",
        str(exc.detail),
        None,
        trace_id,
        headers=exc.headers,
    )


async def unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    trace_id = _trace_id()
    logger.error("unexpected_error", trace_id=trace_id, exc_info=exc)
    return _error_response(
        request,
        status.HTTP_500_INTERNAL_SERVER_ERROR,
        "INTERNAL_SERVER_ERROR",
        "An unexpected error occurred",
        "Please contact support with the trace ID",
        trace_id,
    )


def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(EmployeeNotFoundError, employee_not_found_handler)
    app.add_exception_handler(EmployeeValidationError, employee_validation_handler)
    app.add_exception_handler(InvalidInput, invalid_input_handler)
    app.add_exception_handler(StaleDataError, stale_data_handler)
    app.add_exception_handler(RequestValidationError, request_validation_handler)
    app.add_exception_handler(StarletteHTTPException, http_exception_handler)
    app.add_exception_handler(Exception, unhandled_exception_handler)
