"""
Employee Service
=============================================================================
CONCEPT: One Facade for Every Employee Operation

Routes never talk to the repositories or the cache directly. They call
EmployeeService, which owns the sequence for each operation:

    sanitize -> (cache lookup) -> repository -> (cache update) -> DTO

and wraps each one in the same observability envelope:

    span "employee.<operation>"        (OpenTelemetry, observability/tracing.py)
    employee_operations_total{...}     (Prometheus, observability/metrics.py)
    structured log line                (structlog, observability/logging.py)

Outcomes recorded on the counter: success, not_found, invalid, conflict,
error. Exceptions are never translated here; they propagate to the
handlers in api/errors.py, which turn them into ErrorResponse bodies.

CONCEPT: Cache Failures Do Not Fail Requests
Redis is an accelerator, not a source of truth. If a cache call raises a
RedisError the service logs a warning and carries on against the database.
=============================================================================
"""

from contextlib import contextmanager
from typing import Any, Iterator

from redis.exceptions import RedisError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm.exc import StaleDataError

from employee_api import mapper
from employee_api.api.schemas import EmployeeDto, EmployeePatch
from employee_api.cache.redis_client import EMPLOYEE_COUNT_KEY, RedisCache, employee_key
from employee_api.db import repositories as repo
from employee_api.exceptions import EmployeeNotFoundError, EmployeeValidationError
from employee_api.observability.logging import get_logger
from employee_api.observability.metrics import record_operation
from employee_api.observability.tracing import get_tracer
from employee_api.security.sanitizer import (
    InvalidInput,
    normalize_text,
    validate_pagination_params,
    validate_sort_field,
)

logger = get_logger(__name__)
tracer = get_tracer(__name__)

DESCENDING = "desc"


class _Operation:
    """Outcome holder handed to the body of an `_observe` block."""

    def __init__(self, name: str) -> None:
        self.name = name
        self.outcome = "success"


@contextmanager
def _observe(operation: str, **attributes: Any) -> Iterator[_Operation]:
    """Run the block inside a span and count its outcome."""
    op = _Operation(operation)
    with tracer.start_as_current_span(f"employee.{operation}") as span:
        for key, value in attributes.items():
            if value is not None:
                span.set_attribute(key, value)
        try:
            yield op
        except EmployeeNotFoundError:
            op.outcome = "not_found"
            raise
        except (InvalidInput, EmployeeValidationError):
            op.outcome = "invalid"
            raise
        except StaleDataError:
            op.outcome = "conflict"
            raise
        except Exception:
            op.outcome = "error"
            raise
        finally:
            span.set_attribute("employee.outcome", op.outcome)
            record_operation(operation, op.outcome)


def is_descending(sort_dir: str | None) -> bool:
    """True only for "desc" in any letter case; everything else sorts ascending."""
    normalized = normalize_text(sort_dir)
    return normalized is not None and normalized.strip().casefold() == DESCENDING


class EmployeeService:
    """Employee operations over one database session and the shared cache."""

    def __init__(self, db: AsyncSession, cache: RedisCache) -> None:
        self.db = db
        self.cache = cache

    # =========================================================================
    # Cache helpers
    # =========================================================================
    async def _cache_get(self, key: str) -> Any | None:
        if not self.cache.enabled:
            return None
        try:
            return await self.cache.get(key)
        except RedisError as exc:
            logger.warning("cache_read_failed", key=key, error=str(exc))
            return None

    async def _cache_put(self, key: str, value: Any) -> None:
        if not self.cache.enabled:
            return
        try:
            await self.cache.set(key, value)
        except RedisError as exc:
            logger.warning("cache_write_failed", key=key, error=str(exc))

    async def _cache_evict(self, *keys: str) -> None:
        if not self.cache.enabled:
            return
        try:
            await self.cache.delete(*keys)
        except RedisError as exc:
            logger.warning("cache_evict_failed", keys=list(keys), error=str(exc))

    async def _cache_employee(self, dto: EmployeeDto) -> None:
        await self._cache_put(employee_key(dto.id), dto.model_dump(mode="json"))

    # =========================================================================
    # Reads
    # =========================================================================
    async def find_all(
        self,
        page: int = 0,
        size: int = 10,
        sort_by: str | None = "id",
        sort_dir: str | None = "asc",
    ) -> tuple[list[EmployeeDto], int]:
        """
        One page of employees plus the total row count.

        RAISES:
          InvalidInput: page < 0, size outside 1..1000, or a sort field that
          is not in SORTABLE_FIELDS. Nothing is queried in that case.
        """
        with _observe("find_all", **{"page.number": page, "page.size": size}):
            validate_pagination_params(page, size)
            sort_field = validate_sort_field(sort_by)
            descending = is_descending(sort_dir)

            employees, total = await repo.list_employees_page(
                self.db, page=page, size=size, sort_by=sort_field, descending=descending
            )
            logger.debug(
                "employees_listed",
                page=page,
                size=size,
                sort_by=sort_by,
                descending=descending,
                returned=len(employees),
                total=total,
            )
            return mapper.to_dto_list(employees), total

    async def find_by_id(self, employee_id: int) -> EmployeeDto | None:
        """Read-through cached lookup. None when the employee does not exist."""
        with _observe("find_by_id", **{"employee.id": employee_id}) as op:
            cached = await self._cache_get(employee_key(employee_id))
            if cached is not None:
                return EmployeeDto.model_validate(cached)

            employee = await repo.get_employee_by_id(self.db, employee_id)
            if employee is None:
                op.outcome = "not_found"
                return None

            dto = mapper.to_dto(employee)
            await self._cache_employee(dto)
            return dto

    async def exists_by_id(self, employee_id: int) -> bool:
        with _observe("exists_by_id", **{"employee.id": employee_id}):
            return await repo.employee_exists(self.db, employee_id)

    async def search(self, name: str | None, role: str | None = None) -> list[EmployeeDto]:
        """Case-insensitive name containment, optionally narrowed to one role."""
        with _observe("search"):
            employees = await repo.search_employees(self.db, name=name, role=role)
            logger.info(
                "employees_searched",
                name=normalize_text(name),
                role=normalize_text(role),
                returned=len(employees),
            )
            return mapper.to_dto_list(employees)

    async def find_by_role(self, role: str) -> list[EmployeeDto]:
        with _observe("find_by_role"):
            employees = await repo.find_employees_by_role(self.db, role)
            logger.info("employees_by_role", role=normalize_text(role), returned=len(employees))
            return mapper.to_dto_list(employees)

    async def count(self, role: str | None = None) -> int:
        """
        Number of employees, optionally only those holding `role`.

        The unfiltered total is cached under `employees:count` and evicted
        whenever an employee is created or deleted.
        """
        with _observe("count"):
            role = normalize_text(role)
            if role and role.strip():
                return await repo.count_employees(self.db, role=role)

            cached = await self._cache_get(EMPLOYEE_COUNT_KEY)
            if cached is not None:
                return int(cached)

            total = await repo.count_employees(self.db)
            await self._cache_put(EMPLOYEE_COUNT_KEY, total)
            return total

    # =========================================================================
    # Writes
    # =========================================================================
    async def create(self, dto: EmployeeDto) -> EmployeeDto:
        """
        Insert a new employee. Any `id` in the body is ignored.

        RAISES:
          InvalidInput / EmployeeValidationError: name or role rejected.
        """
        with _observe("create"):
            employee = await repo.save_employee(self.db, mapper.to_entity(dto))
            await self._cache_evict(EMPLOYEE_COUNT_KEY)
            logger.info("employee_created", employee_id=employee.id)
            return mapper.to_dto(employee)

    async def update(self, employee_id: int, dto: EmployeeDto) -> tuple[EmployeeDto, bool]:
        """
        Replace an employee's name and role (PUT semantics).

        If no employee has `employee_id`, a new one is created instead and
        the database assigns its id, which may differ from `employee_id`.
        Returns the saved employee and whether it was created.
        """
        with _observe("update", **{"employee.id": employee_id}):
            employee = await repo.get_employee_by_id(self.db, employee_id)
            if employee is None:
                created = await repo.save_employee(self.db, mapper.to_entity(dto))
                await self._cache_evict(EMPLOYEE_COUNT_KEY)
                logger.info(
                    "employee_upserted",
                    requested_id=employee_id,
                    employee_id=created.id,
                )
                return mapper.to_dto(created), True

            employee.update_details(dto.name, dto.role)
            employee = await repo.save_employee(self.db, employee)
            result = mapper.to_dto(employee)
            await self._cache_employee(result)
            logger.info("employee_updated", employee_id=employee_id)
            return result, False

    async def partial_update(self, employee_id: int, patch: EmployeePatch) -> EmployeeDto | None:
        """Apply the non-null fields of `patch`. None when the employee does not exist."""
        with _observe("partial_update", **{"employee.id": employee_id}) as op:
            employee = await repo.get_employee_by_id(self.db, employee_id)
            if employee is None:
                op.outcome = "not_found"
                return None

            mapper.update_entity_from_dto(patch, employee)
            employee = await repo.save_employee(self.db, employee)
            result = mapper.to_dto(employee)
            await self._cache_employee(result)
            logger.info(
                "employee_patched",
                employee_id=employee_id,
                fields=sorted(patch.model_dump(exclude_none=True)),
            )
            return result

    async def delete_by_id(self, employee_id: int) -> bool:
        """Delete an employee. False when there was nothing to delete."""
        with _observe("delete", **{"employee.id": employee_id}) as op:
            employee = await repo.get_employee_by_id(self.db, employee_id)
            if employee is None:
                op.outcome = "not_found"
                return False

            await repo.delete_employee(self.db, employee)
            await self._cache_evict(employee_key(employee_id), EMPLOYEE_COUNT_KEY)
            logger.info("employee_deleted", employee_id=employee_id)
            return True
