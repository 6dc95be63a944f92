"""
Entity <-> DTO mapping.

Assigning `name` / `role` on an Employee runs the sanitizer (see
db/models.py), so `to_entity` and `update_entity_from_dto` raise
InvalidInput or EmployeeValidationError on bad input and leave the target
untouched for the failing field.
"""

from employee_api.api.schemas import EmployeeDto, EmployeePatch
from employee_api.db.models import Employee


def to_dto(employee: Employee) -> EmployeeDto:
    return EmployeeDto.model_validate(employee)


def to_dto_list(employees: list[Employee]) -> list[EmployeeDto]:
    return [to_dto(employee) for employee in employees]


def to_entity(dto: EmployeeDto) -> Employee:
    """New, unsaved Employee. `dto.id` is ignored; the database assigns ids."""
    return Employee(name=dto.name, role=dto.role)


def update_entity_from_dto(patch: EmployeePatch, employee: Employee) -> Employee:
    """Copy the non-null fields of `patch` onto `employee`."""
    if patch.name is not None:
        employee.name = patch.name
    if patch.role is not None:
        employee.role = patch.role
    return employee
