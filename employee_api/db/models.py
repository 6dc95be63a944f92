"""
Database Models (SQLAlchemy ORM)
=============================================================================
CONCEPT: Validation at the Attribute Boundary

SQLAlchemy's `@validates` decorator runs a function every time an attribute
is assigned: in the constructor, through setattr(), or via a bulk update
helper. We use it to push every `name` and `role` through the input
sanitizer. If the sanitizer raises, the assignment never happens and the
record keeps its previous value:

    employee = Employee(name="Ada Lovelace", role="Engineer")
    employee.name = "<script>"      # raises InvalidInput
    employee.name                   # still "Ada Lovelace"

The sanitizer only bounds the maximum length. The minimum length (2) is a
record rule, checked here after sanitization, and reported as an
EmployeeValidationError naming the field.

CONCEPT: Optimistic Locking
`version` is registered as SQLAlchemy's `version_id_col`. Every UPDATE adds
"WHERE version = <value we loaded>" and increments it. If another request
changed the row in the meantime, zero rows match and SQLAlchemy raises
StaleDataError instead of silently overwriting the other change.
=============================================================================
"""

from datetime import datetime, timezone

from sqlalchemy import Column, DateTime, Index, Integer, String
from sqlalchemy.orm import validates

from employee_api.db.engine import Base
from employee_api.exceptions import EmployeeValidationError
from employee_api.security.sanitizer import (
    NAME_MAX_LENGTH,
    ROLE_MAX_LENGTH,
    role_equals,
    validate_and_sanitize_name,
    validate_and_sanitize_role,
)

MIN_FIELD_LENGTH = 2


def utcnow():
    """Helper to get current UTC time."""
    return datetime.now(timezone.utc)


class Employee(Base):
    __tablename__ = "employees"

    id = Column(Integer, primary_key=True, autoincrement=True)
    name = Column(String(NAME_MAX_LENGTH), nullable=False)
    role = Column(String(ROLE_MAX_LENGTH), nullable=False)
    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)
    updated_at = Column(DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow)
    version = Column(Integer, nullable=False)

    __table_args__ = (
        Index("idx_employee_name", "name"),
        Index("idx_employee_role", "role"),
    )
    __mapper_args__ = {"version_id_col": version}

    @validates("name")
    def _validate_name(self, key, value):
        sanitized = validate_and_sanitize_name(value)
        if len(sanitized) < MIN_FIELD_LENGTH:
            raise EmployeeValidationError(
                f"Employee name must be between {MIN_FIELD_LENGTH} and {NAME_MAX_LENGTH} characters",
                field="name",
                rejected_value=sanitized,
            )
        return sanitized

    @validates("role")
    def _validate_role(self, key, value):
        sanitized = validate_and_sanitize_role(value)
        if len(sanitized) < MIN_FIELD_LENGTH:
            raise EmployeeValidationError(
                f"Employee role must be between {MIN_FIELD_LENGTH} and {ROLE_MAX_LENGTH} characters",
                field="role",
                rejected_value=sanitized,
            )
        return sanitized

    # -------------------------------------------------------------------------
    # Business methods
    # -------------------------------------------------------------------------
    def update_details(self, name: str, role: str) -> None:
        """Replace both fields. Both are validated before either is assigned."""
        sanitized_name = self._validate_name("name", name)
        sanitized_role = self._validate_role("role", role)
        self.name = sanitized_name
        self.role = sanitized_role

    def has_role(self, role: str | None) -> bool:
        return role_equals(self.role, role)

    def __repr__(self) -> str:
        return f"Employee(id={self.id!r}, name={self.name!r}, role={self.role!r})"
