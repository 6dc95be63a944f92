"""
Request / Response Schemas
=============================================================================
CONCEPT: Transfer Objects vs ORM Models

The ORM model (db/models.py) is what we store; these Pydantic models are
what crosses the wire. Keeping them separate means:
  - internal columns (version, timestamps) never leak into responses
  - the client cannot set `id`; it is accepted on input and ignored
  - request validation errors are reported per field before any DB work

JSON keys are camelCase (`employeeList`, `totalElements`, `fieldErrors`).
Python attributes stay snake_case; `alias_generator=to_camel` bridges the
two and FastAPI serializes response models by alias.
=============================================================================
"""

import math
from datetime import datetime
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_serializer, field_validator
from pydantic.alias_generators import to_camel

from employee_api.security.sanitizer import NAME_MAX_LENGTH, ROLE_MAX_LENGTH


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


# =============================================================================
# Employee
# =============================================================================
class EmployeeDto(CamelModel):
    """Employee as sent and received by the API."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        from_attributes=True,
        json_schema_extra={"example": {"id": 1, "name": "John Doe", "role": "Software Engineer"}},
    )

    id: int | None = Field(None, description="Employee ID (read-only)")
    name: str = Field(
        ...,
        min_length=2,
        max_length=NAME_MAX_LENGTH,
        description="Employee full name",
    )
    role: str = Field(
        ...,
        min_length=2,
        max_length=ROLE_MAX_LENGTH,
        description="Employee role/position",
    )

    @field_validator("name")
    @classmethod
    def _name_not_blank(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("Employee name is required")
        return value

    @field_validator("role")
    @classmethod
    def _role_not_blank(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("Employee role is required")
        return value


class EmployeePatch(CamelModel):
    """Partial update body. Omitted (or null) fields are left unchanged."""

    name: str | None = None
    role: str | None = None


# =============================================================================
# Listing
# =============================================================================
class EmbeddedEmployees(CamelModel):
    employee_list: list[EmployeeDto]


class PageMetadata(CamelModel):
    size: int = Field(..., description="Requested page size", examples=[10])
    number: int = Field(..., description="Current page number (0-based)", examples=[0])
    total_elements: int = Field(..., description="Total number of elements", examples=[100])
    total_pages: int = Field(..., description="Total number of pages", examples=[10])


class EmployeeListResponse(CamelModel):
    """HAL-like wrapper: the employees plus paging metadata."""

    embedded: EmbeddedEmployees
    page: PageMetadata

    @classmethod
    def of(
        cls,
        employees: list[EmployeeDto],
        page: int = 0,
        size: int | None = None,
        total_elements: int | None = None,
    ) -> "EmployeeListResponse":
        """
        Build a response. Without paging arguments the list is treated as a
        single complete page (size == total == len(employees)).
        """
        if size is None:
            size = len(employees)
        if total_elements is None:
            total_elements = len(employees)
        total_pages = math.ceil(total_elements / size) if size > 0 else 0
        return cls(
            embedded=EmbeddedEmployees(employee_list=employees),
            page=PageMetadata(
                size=size,
                number=page,
                total_elements=total_elements,
                total_pages=total_pages,
            ),
        )


# =============================================================================
# Errors
# =============================================================================
class FieldError(CamelModel):
    field: str
    rejected_value: Any = None
    message: str


class ErrorResponse(CamelModel):
    """Body returned for every non-2xx response produced by the application."""

    status: int = Field(..., examples=[404])
    error: str = Field(..., examples=["EMPLOYEE_NOT_FOUND"])
    message: str = Field(..., examples=["Employee not found"])
    details: str | None = Field(None, examples=["Could not find employee with id: 123"])
    path: str | None = Field(None, examples=["/api/v1/employees/123"])
    timestamp: datetime
    field_errors: list[FieldError] | None = None
    trace_id: str | None = Field(None, examples=["4bf92f3577b3"])

    @field_serializer("timestamp")
    def _format_timestamp(self, value: datetime) -> str:
        return value.strftime("%Y-%m-%dT%H:%M:%S.") + f"{value.microsecond // 1000:03d}"
