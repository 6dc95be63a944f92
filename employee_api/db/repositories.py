"""
Data Access Layer (Repositories)
=============================================================================
CONCEPT: Repository Pattern

All employee queries live here as thin async functions around SQLAlchemy.
The service layer never builds SQL; routes never touch the session
directly except to hand it to the service.

CONCEPT: Sort Columns Derived From the Allow-List
ORDER BY columns come from SORTABLE_FIELDS in the sanitizer module. The API
names ("createdAt") are mapped to model attributes ("created_at") by a
camelCase -> snake_case conversion, so there is one list of sortable fields
instead of two that can drift apart.
=============================================================================
"""

import re

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from employee_api.db.models import Employee
from employee_api.security.sanitizer import (
    DEFAULT_SORT_FIELD,
    SORTABLE_FIELDS,
    normalize_text,
)

_CAMEL_BOUNDARY = re.compile(r"(?<!^)(?=[A-Z])")


def _column_name(field: str) -> str:
    return _CAMEL_BOUNDARY.sub("_", field).lower()


SORT_COLUMNS = {field: getattr(Employee, _column_name(field)) for field in SORTABLE_FIELDS}


def _escape_like(term: str) -> str:
    """Escape LIKE wildcards so user input only ever matches literally."""
    return term.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")


def _role_filter(role: str):
    """
    Case-insensitive role equality, folded by the database's LOWER().

    PostgreSQL with a UTF-8 locale lowercases any script. SQLite's built-in lower()
    only folds ASCII, so there "INGÉNIEUR" and "ingénieur" stay distinct while
    "Ingénieur" and "INGéNIEUR" match. Python-side checks use role_equals(),
    which casefolds.
    """
    return func.lower(Employee.role) == role.lower()


async def get_employee_by_id(db: AsyncSession, employee_id: int) -> Employee | None:
    """Fetch an employee by primary key."""
    return await db.get(Employee, employee_id)


async def employee_exists(db: AsyncSession, employee_id: int) -> bool:
    result = await db.execute(select(Employee.id).where(Employee.id == employee_id))
    return result.scalar_one_or_none() is not None


async def list_employees_page(
    db: AsyncSession,
    page: int = 0,
    size: int = 10,
    sort_by: str | None = None,
    descending: bool = False,
) -> tuple[list[Employee], int]:
    """
    Return one page of employees plus the total number of rows.

    `sort_by` is the field returned by validate_sort_field(); None falls
    back to ordering by id. The id is always appended as a tie-breaker
    so paging over non-unique columns (role) is stable.
    """
    column = SORT_COLUMNS[sort_by or DEFAULT_SORT_FIELD]
    order = column.desc() if descending else column.asc()

    query = select(Employee).order_by(order, Employee.id.asc()).limit(size).offset(page * size)
    result = await db.execute(query)
    total = await count_employees(db)
    return list(result.scalars().all()), total


async def search_employees(
    db: AsyncSession,
    name: str | None = None,
    role: str | None = None,
) -> list[Employee]:
    """
    Search by name (case-insensitive containment) and/or role
    (case-insensitive equality). Omitted criteria are not applied.
    """
    query = select(Employee)

    name = normalize_text(name)
    if name:
        query = query.where(Employee.name.ilike(f"%{_escape_like(name)}%", escape="\\"))

    role = normalize_text(role)
    if role:
        query = query.where(_role_filter(role))

    result = await db.execute(query.order_by(Employee.id))
    return list(result.scalars().all())


async def find_employees_by_role(db: AsyncSession, role: str) -> list[Employee]:
    """Employees whose role equals `role`, ignoring case."""
    return await search_employees(db, role=role)


async def count_employees(db: AsyncSession, role: str | None = None) -> int:
    """Count employees, optionally only those holding `role` (case-insensitive)."""
    query = select(func.count(Employee.id))
    role = normalize_text(role)
    if role:
        query = query.where(_role_filter(role))
    result = await db.execute(query)
    return result.scalar_one()


async def save_employee(db: AsyncSession, employee: Employee) -> Employee:
    """Insert or update `employee` and return it refreshed from the database."""
    db.add(employee)
    await db.commit()
    await db.refresh(employee)
    return employee


async def delete_employee(db: AsyncSession, employee: Employee) -> None:
    await db.delete(employee)
    await db.commit()
