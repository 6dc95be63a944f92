"""
FastAPI Authentication Dependencies
=============================================================================
CONCEPT: HTTP Basic + Dependency Injection

Every employee route declares what it needs and FastAPI provides it:

    @router.get("/{employee_id}")
    async def get_employee(user: AuthenticatedUser = Depends(require_role("USER"))):
        # `user` is already authenticated and holds the USER role
        ...

The dependency chain looks like:
    HTTP Request
      -> HTTPBasic (parses "Authorization: Basic base64(user:pass)")
        -> get_current_user (checks the credentials against the user store)
          -> require_role (checks the user's roles)
            -> route handler (receives the validated user)

In tests, the whole chain can be swapped out:
    app.dependency_overrides[get_current_user] = lambda: fake_user

WHY 403 (Forbidden) NOT 401 (Unauthorized)?
  - 401: we do not know who you are (missing or wrong credentials)
  - 403: we know who you are, but your roles do not allow this route

Both responses carry a small JSON body instead of the framework default;
api/errors.py passes it through unchanged.
=============================================================================
"""

from typing import Callable

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPBasic, HTTPBasicCredentials

from employee_api.auth.users import AuthenticatedUser, UserStore, get_user_store
from employee_api.observability.logging import get_logger
from employee_api.security.sanitizer import normalize_text, role_equals

logger = get_logger(__name__)

# auto_error=False: a missing header reaches get_current_user as None, so
# the 401 body is ours rather than FastAPI's {"detail": "Not authenticated"}.
basic_scheme = HTTPBasic(auto_error=False, description="Username and password of a built-in account")

UNAUTHORIZED_BODY = {"error": "Unauthorized", "message": "Authentication required"}
FORBIDDEN_BODY = {"error": "Forbidden", "message": "Access denied"}


def _unauthorized() -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail=UNAUTHORIZED_BODY,
        headers={"WWW-Authenticate": "Basic"},
    )


async def get_current_user(
    credentials: HTTPBasicCredentials | None = Depends(basic_scheme),
    store: UserStore = Depends(get_user_store),
) -> AuthenticatedUser:
    """
    Resolve the caller from HTTP Basic credentials.

    RAISES:
      HTTPException 401: no credentials, unknown username or wrong password.
      The response never says which of the three it was.
    """
    if credentials is None:
        raise _unauthorized()

    user = store.authenticate(credentials.username, credentials.password)
    if user is None:
        logger.warning("authentication_failed", username=normalize_text(credentials.username)[:64])
        raise _unauthorized()
    return user


def require_role(*allowed_roles: str) -> Callable:
    """
    Dependency factory: allow the request only if the user holds one of
    `allowed_roles`. Role names are compared with role_equals(), so "admin"
    and "ADMIN" are the same role.
    """

    async def role_checker(
        current_user: AuthenticatedUser = Depends(get_current_user),
    ) -> AuthenticatedUser:
        for held in current_user.roles:
            if any(role_equals(held, allowed) for allowed in allowed_roles):
                return current_user

        logger.warning(
            "authorization_denied",
            username=current_user.username,
            required_roles=list(allowed_roles),
        )
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail=FORBIDDEN_BODY)

    return role_checker
