"""
Authentication and Authorization Dependencies

Resolves the bearer token on each request into a `CurrentUser` and
enforces role checks for route groups.

SECURITY NOTE:
- Development tokens (`dev-admin`, `dev-teacher`, `dev-student`) are ONLY
  accepted when PYTHON_ENV=development
- Staging and production never accept them, even if settings are misread
"""

import logging
import os
from collections.abc import Callable, Coroutine
from dataclasses import dataclass
from typing import Any
from uuid import UUID

from fastapi import Depends
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from app.core.config import settings
from app.core.errors import AuthenticationError, AuthorizationError
from app.core.security import decode_token

logger = logging.getLogger(__name__)

ROLE_ADMIN = "admin"
ROLE_TEACHER = "teacher"
ROLE_STUDENT = "student"
ALL_ROLES = (ROLE_ADMIN, ROLE_TEACHER, ROLE_STUDENT)

security = HTTPBearer(
    auto_error=False,
    description="JWT Bearer token for authentication",
)


@dataclass(frozen=True)
class CurrentUser:
    """
    Authenticated caller, populated from JWT claims.

    Attributes:
        id: User's identifier
        role: One of admin, teacher, student
        email: User's email address
        name: Display name (optional)
    """

    id: UUID
    role: str
    email: str = ""
    name: str | None = None

    @property
    def is_admin(self) -> bool:
        return self.role == ROLE_ADMIN

    def __str__(self) -> str:
        return f"CurrentUser(id={self.id}, role={self.role})"


def _is_dev_mode_safe() -> bool:
    """Development tokens require development settings and a non-production env var."""
    env_var = os.getenv("PYTHON_ENV", "").lower()
    is_safe = (
        settings.is_development
        and not settings.is_production
        and env_var not in ("production", "staging")
    )
    if is_safe:
        logger.warning(
            "SECURITY: Development auth mode is ENABLED. This MUST NOT be used in production!"
        )
    return is_safe


_DEVELOPMENT_MODE = _is_dev_mode_safe()

_DEV_USERS = {
    "dev-admin": CurrentUser(
        id=UUID("00000000-0000-0000-0000-000000000001"),
        role=ROLE_ADMIN,
        email="admin@secretaria.dev",
        name="Administrador Dev",
    ),
    "dev-teacher": CurrentUser(
        id=UUID("00000000-0000-0000-0000-000000000002"),
        role=ROLE_TEACHER,
        email="professor@secretaria.dev",
        name="Professor Dev",
    ),
    "dev-student": CurrentUser(
        id=UUID("00000000-0000-0000-0000-000000000003"),
        role=ROLE_STUDENT,
        email="aluno@secretaria.dev",
        name="Aluno Dev",
    ),
}


def user_from_token(token: str) -> CurrentUser:
    """
    Validate a bearer token and build the caller identity.

    Raises:
        AuthenticationError: If the token is invalid, expired or malformed
    """
    if _DEVELOPMENT_MODE and token in _DEV_USERS:
        logger.debug(f"Development mode: using test token {token}")
        return _DEV_USERS[token]

    payload = decode_token(token)
    if payload is None:
        logger.warning("Invalid or expired JWT token")
        raise AuthenticationError(
            "Invalid or expired authentication token.", error_code="INVALID_TOKEN"
        )

    if payload.get("type", "access") != "access":
        raise AuthenticationError(
            "This endpoint requires an access token.", error_code="INVALID_TOKEN_TYPE"
        )

    role = payload.get("role", "")
    try:
        user_id = UUID(payload.get("sub") or "")
    except ValueError as e:
        logger.warning(f"Invalid token claims: {e}")
        raise AuthenticationError(
            "Token contains invalid or missing claims.", error_code="INVALID_TOKEN_CLAIMS"
        ) from e

    if role not in ALL_ROLES:
        raise AuthenticationError(
            "Token contains invalid or missing claims.", error_code="INVALID_TOKEN_CLAIMS"
        )

    return CurrentUser(
        id=user_id,
        role=role,
        email=payload.get("email", ""),
        name=payload.get("name"),
    )


async def get_current_user(
    credentials: HTTPAuthorizationCredentials | None = Depends(security),
) -> CurrentUser:
    """FastAPI dependency returning the authenticated caller."""
    if credentials is None or not credentials.credentials:
        raise AuthenticationError("Authentication required.", error_code="MISSING_TOKEN")
    return user_from_token(credentials.credentials)


def require_roles(
    *roles: str,
) -> Callable[..., Coroutine[Any, Any, CurrentUser]]:
    """
    Dependency factory restricting an endpoint to the given roles.

    Usage:
        @router.get("/stats")
        async def stats(user: CurrentUser = Depends(require_roles("admin"))):
            ...
    """
    allowed = set(roles)

    async def dependency(user: CurrentUser = Depends(get_current_user)) -> CurrentUser:
        if user.role not in allowed:
            logger.warning(
                f"Access denied: user {user.id} has role '{user.role}', "
                f"requires one of {sorted(allowed)}"
            )
            raise AuthorizationError(
                "You do not have permission to access this resource.",
                error_code="INSUFFICIENT_ROLE",
            )
        return user

    return dependency


get_current_admin = require_roles(ROLE_ADMIN)


__all__ = [
    "CurrentUser",
    "ROLE_ADMIN",
    "ROLE_TEACHER",
    "ROLE_STUDENT",
    "get_current_user",
    "get_current_admin",
    "require_roles",
    "user_from_token",
]
