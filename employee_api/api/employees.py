"""
Employee API Endpoints
=============================================================================
CONCEPT: RESTful API Design

    GET    /api/v1/employees               list (paged, sorted)
    GET    /api/v1/employees/search        search by name (and role)
    GET    /api/v1/employees/role/{role}   filter by role
    GET    /api/v1/employees/count         number of employees
    GET    /api/v1/employees/{id}          read one
    POST   /api/v1/employees               create          -> 201 + Location
    PUT    /api/v1/employees/{id}          replace/upsert  -> 200, or 201 + Location
    PATCH  /api/v1/employees/{id}          partial update
    DELETE /api/v1/employees/{id}          delete          -> 204

The literal sub-paths (/search, /role, /count) are declared BEFORE
/{employee_id}. Starlette matches routes in declaration order, and
"/count" would otherwise be tried as an employee id.

Every route requires the USER role (the admin account holds it too).
Handlers stay thin: parse the request, call EmployeeService, shape the
response. Errors propagate as exceptions to api/errors.py.
=============================================================================
"""

from fastapi import APIRouter, Depends, HTTPException, Path, Query, Request, Response, status
from sqlalchemy.ext.asyncio import AsyncSession

from employee_api.api.schemas import EmployeeDto, EmployeeListResponse, EmployeePatch, ErrorResponse
from employee_api.auth.users import ROLE_USER
from employee_api.auth.dependencies import require_role
from employee_api.cache.redis_client import RedisCache, get_cache
from employee_api.db.engine import get_db_session
from employee_api.exceptions import EmployeeNotFoundError
from employee_api.services.employee_service import EmployeeService

EMPLOYEES_PATH = "/api/v1/employees"

router = APIRouter(
    prefix=EMPLOYEES_PATH,
    tags=["Employees"],
    dependencies=[Depends(require_role(ROLE_USER))],
    responses={
        400: {"model": ErrorResponse, "description": "Invalid input"},
        401: {"description": "Authentication required"},
        403: {"description": "Access denied"},
    },
)


def get_employee_service(
    db: AsyncSession = Depends(get_db_session),
    cache: RedisCache = Depends(get_cache),
) -> EmployeeService:
    return EmployeeService(db, cache)


async def require_json_body(request: Request) -> None:
    """415 for a body declared as anything other than JSON."""
    content_type = request.headers.get("content-type")
    if content_type is None:
        return
    media_type = content_type.split(";", 1)[0].strip().lower()
    if media_type != "application/json" and not media_type.endswith("+json"):
        raise HTTPException(
            status_code=status.HTTP_415_UNSUPPORTED_MEDIA_TYPE,
            detail=f"Media type '{media_type}' is not supported. Supported types: [application/json]",
        )


def _location(employee_id: int) -> str:
    return f"{EMPLOYEES_PATH}/{employee_id}"


# =============================================================================
# Collection routes
# =============================================================================
@router.get("", response_model=EmployeeListResponse)
async def list_employees(
    response: Response,
    page: int = Query(0, description="Page number (0-based)"),
    size: int = Query(10, description="Page size (1-1000)"),
    sort_by: str = Query("id", alias="sortBy", description="id, name, role, createdAt or updatedAt"),
    sort_dir: str = Query("asc", alias="sortDir", description="asc or desc"),
    service: EmployeeService = Depends(get_employee_service),
):
    """
    List employees one page at a time.

    CONCEPT: Pagination
    page=0&size=10 -> rows 0-9, page=1&size=10 -> rows 10-19. The total is
    returned in the body (page.totalElements) and in the X-Total-Count
    header. Bounds are checked by the sanitizer, not by Query(ge=...), so
    the client gets the same VALIDATION_ERROR messages as everywhere else.
    """
    employees, total = await service.find_all(page=page, size=size, sort_by=sort_by, sort_dir=sort_dir)
    response.headers["X-Total-Count"] = str(total)
    return EmployeeListResponse.of(employees, page=page, size=size, total_elements=total)


@router.get("/search", response_model=EmployeeListResponse)
async def search_employees(
    name: str = Query(..., description="Case-insensitive substring of the name"),
    role: str | None = Query(None, description="Exact role, case-insensitive"),
    service: EmployeeService = Depends(get_employee_service),
):
    employees = await service.search(name=name, role=role)
    return EmployeeListResponse.of(employees)


@router.get("/role/{role}", response_model=EmployeeListResponse)
async def get_employees_by_role(
    role: str,
    service: EmployeeService = Depends(get_employee_service),
):
    """Employees holding `role`; "engineer" matches "Engineer"."""
    employees = await service.find_by_role(role)
    return EmployeeListResponse.of(employees)


@router.get("/count", response_model=int)
async def count_employees(
    role: str | None = Query(None, description="Only count employees holding this role"),
    service: EmployeeService = Depends(get_employee_service),
):
    return await service.count(role=role)


@router.post(
    "",
    response_model=EmployeeDto,
    status_code=status.HTTP_201_CREATED,
    dependencies=[Depends(require_json_body)],
)
async def create_employee(
    dto: EmployeeDto,
    response: Response,
    service: EmployeeService = Depends(get_employee_service),
):
    created = await service.create(dto)
    response.headers["Location"] = _location(created.id)
    return created


# =============================================================================
# Single-employee routes
# =============================================================================
@router.get(
    "/{employee_id}",
    response_model=EmployeeDto,
    responses={404: {"model": ErrorResponse, "description": "Employee not found"}},
)
async def get_employee(
    employee_id: int = Path(..., ge=1),
    service: EmployeeService = Depends(get_employee_service),
):
    employee = await service.find_by_id(employee_id)
    if employee is None:
        raise EmployeeNotFoundError(employee_id)
    return employee


@router.put(
    "/{employee_id}",
    response_model=EmployeeDto,
    dependencies=[Depends(require_json_body)],
    responses={201: {"model": EmployeeDto, "description": "No such employee; a new one was created"}},
)
async def replace_employee(
    dto: EmployeeDto,
    response: Response,
    employee_id: int = Path(..., ge=1),
    service: EmployeeService = Depends(get_employee_service),
):
    """
    Replace name and role. If the employee does not exist it is created,
    and Location points at the NEW id assigned by the database.
    """
    saved, created = await service.update(employee_id, dto)
    if created:
        response.status_code = status.HTTP_201_CREATED
        response.headers["Location"] = _location(saved.id)
    return saved


@router.patch(
    "/{employee_id}",
    response_model=EmployeeDto,
    dependencies=[Depends(require_json_body)],
    responses={404: {"model": ErrorResponse, "description": "Employee not found"}},
)
async def patch_employee(
    patch: EmployeePatch,
    employee_id: int = Path(..., ge=1),
    service: EmployeeService = Depends(get_employee_service),
):
    updated = await service.partial_update(employee_id, patch)
    if updated is None:
        raise EmployeeNotFoundError(employee_id)
    return updated


@router.delete(
    "/{employee_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    response_class=Response,
    responses={404: {"model": ErrorResponse, "description": "Employee not found"}},
)
async def delete_employee(
    employee_id: int = Path(..., ge=1),
    service: EmployeeService = Depends(get_employee_service),
):
    if not await service.delete_by_id(employee_id):
        raise EmployeeNotFoundError(employee_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
