"""
Built-in Accounts & Password Hashing
=============================================================================
CONCEPT: An In-Memory Credential Store

The API has exactly two accounts, configured through the environment:

    Username (default)   Roles          Env var for the password
    -------------------  -------------  ------------------------
    admin                ADMIN, USER    ADMIN_PASSWORD
    user                 USER           USER_PASSWORD

At startup each password is hashed once with bcrypt and only the hash is
kept. The plain-text value stays in the Settings object and is never
logged. An empty password is a configuration error: the store refuses to
build, and main.py's lifespan fails before the server accepts traffic.

CONCEPT: Password Hashing with passlib
CryptContext hides the bcrypt details (salt generation, hash format,
constant-time verification). `bcrypt__rounds` is the cost factor: every
+1 doubles the work. 12 is the production default; tests use 4 to keep
the suite fast.

CONCEPT: Username Enumeration
authenticate() does the same amount of work whether or not the username
exists. Usernames are compared with secrets.compare_digest against every
account, and an unknown user still pays for one bcrypt verification
(CryptContext.dummy_verify), so response times do not reveal which
usernames are valid.
=============================================================================
"""

import secrets
from dataclasses import dataclass
from functools import lru_cache

from passlib.context import CryptContext

from employee_api.config import settings

ROLE_ADMIN = "ADMIN"
ROLE_USER = "USER"


class CredentialsConfigurationError(RuntimeError):
    """A built-in account is missing its password."""


@dataclass(frozen=True)
class AuthenticatedUser:
    username: str
    roles: tuple[str, ...]


@dataclass(frozen=True)
class _Account:
    username: str
    password_hash: str
    roles: tuple[str, ...]


class UserStore:
    """Fixed set of accounts with bcrypt-hashed passwords."""

    def __init__(self, pwd_context: CryptContext, accounts: list[_Account]) -> None:
        self._pwd_context = pwd_context
        self._accounts = accounts

    @property
    def usernames(self) -> list[str]:
        return [account.username for account in self._accounts]

    def authenticate(self, username: str, password: str) -> AuthenticatedUser | None:
        """Return the matching user, or None for a wrong username or password."""
        match = None
        for account in self._accounts:
            if secrets.compare_digest(account.username.encode("utf-8"), username.encode("utf-8")):
                match = account

        if match is None:
            self._pwd_context.dummy_verify()
            return None

        if not self._pwd_context.verify(password, match.password_hash):
            return None
        return AuthenticatedUser(username=match.username, roles=match.roles)


def build_user_store(
    admin_username: str,
    admin_password: str,
    user_username: str,
    user_password: str,
    rounds: int = 12,
) -> UserStore:
    """Hash the configured passwords and build the store."""
    if not admin_password:
        raise CredentialsConfigurationError(
            "ADMIN_PASSWORD must be set to a non-empty value"
        )
    if not user_password:
        raise CredentialsConfigurationError(
            "USER_PASSWORD must be set to a non-empty value"
        )

    pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto", bcrypt__rounds=rounds)
    accounts = [
        _Account(admin_username, pwd_context.hash(admin_password), (ROLE_ADMIN, ROLE_USER)),
        _Account(user_username, pwd_context.hash(user_password), (ROLE_USER,)),
    ]
    return UserStore(pwd_context, accounts)


@lru_cache
def get_user_store() -> UserStore:
    """Process-wide store built from settings on first use."""
    return build_user_store(
        admin_username=settings.admin_username,
        admin_password=settings.admin_password,
        user_username=settings.user_username,
        user_password=settings.user_password,
        rounds=settings.bcrypt_rounds,
    )
