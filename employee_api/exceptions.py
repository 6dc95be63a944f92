"""Domain exceptions raised by the service and persistence layers."""

from typing import Any


class EmployeeNotFoundError(Exception):
    """The requested employee does not exist."""

    def __init__(self, employee_id: int | None = None, message: str | None = None):
        self.employee_id = employee_id
        super().__init__(message or f"Could not find employee with id: {employee_id}")


class EmployeeValidationError(Exception):
    """
    A record-level rule failed (for example a name shorter than two characters).

    `field` and `rejected_value` are optional; when present they are reported
    back to the client in the error body's `fieldErrors`.
    """

    def __init__(self, message: str, field: str | None = None, rejected_value: Any = None):
        self.field = field
        self.rejected_value = rejected_value
        super().__init__(message)
