"""
Authentication and Authorization Module

FastAPI dependencies that turn a Bearer JWT into the calling principal.

SECURITY NOTE:
- Development test tokens are ONLY accepted when PYTHON_ENV=development
- Admin endpoints additionally require the ``admin`` role claim; the
  verification service re-checks the reviewer's role against the database
"""

import logging
import os
from dataclasses import dataclass
from uuid import UUID

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from campuslink.core.config import settings
from campuslink.core.security import decode_token

logger = logging.getLogger(__name__)

security = HTTPBearer(
    auto_error=True,
    description="JWT Bearer token for authentication",
)

ADMIN_ROLE = "admin"


@dataclass
class CurrentUser:
    """
    Authenticated caller, populated from JWT claims.

    Attributes:
        id: Principal ID
        email: Principal email address
        role: Role claim (student, alumni, aspirant or admin)
        name: Display name (optional)
    """

    id: UUID
    email: str
    role: str
    name: str | None = None

    @property
    def is_admin(self) -> bool:
        return self.role == ADMIN_ROLE

    def __str__(self) -> str:
        return f"CurrentUser(id={self.id}, role={self.role})"


def _is_dev_mode_safe() -> bool:
    """
    Development auth is enabled only when settings AND the raw environment
    both say development.
    """
    env_var = os.getenv("PYTHON_ENV", "").lower()
    is_safe = (
        settings.is_development
        and not settings.is_production
        and env_var not in ("production", "staging")
    )

    if is_safe:
        logger.warning("SECURITY: Development auth mode is ENABLED. Never use this in production!")

    return is_safe


_DEVELOPMENT_MODE = _is_dev_mode_safe()

_DEV_ADMIN = CurrentUser(
    id=UUID("00000000-0000-0000-0000-000000000001"),
    email="admin@campuslink.dev",
    role=ADMIN_ROLE,
    name="Development Admin",
)


def _unauthorized(error: str, message: str) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail={"error": error, "message": message},
        headers={"WWW-Authenticate": "Bearer"},
    )


async def _validate_jwt_token(token: str) -> CurrentUser:
    """
    Validate a JWT and extract the caller's claims.

    Raises:
        HTTPException 401: If token is invalid, expired or has bad claims
    """
    if _DEVELOPMENT_MODE and token == "dev-token":
        logger.debug("Development mode: Using test admin token")
        return _DEV_ADMIN

    payload = decode_token(token)

    if payload is None:
        logger.warning("Invalid or expired JWT token")
        raise _unauthorized("INVALID_TOKEN", "Invalid or expired authentication token.")

    if payload.get("type", "access") != "access":
        logger.warning(f"Invalid token type: {payload.get('type')}")
        raise _unauthorized("INVALID_TOKEN_TYPE", "This endpoint requires an access token.")

    try:
        subject = payload.get("sub")
        if not subject:
            raise ValueError("Missing 'sub' claim in token")

        return CurrentUser(
            id=UUID(subject),
            email=payload.get("email", ""),
            role=payload.get("role", ""),
            name=payload.get("name"),
        )
    except ValueError as e:
        logger.warning(f"Invalid token claims: {e}")
        raise _unauthorized(
            "INVALID_TOKEN_CLAIMS", "Token contains invalid or missing claims."
        ) from e


async def get_current_user(
    credentials: HTTPAuthorizationCredentials = Depends(security),
) -> CurrentUser:
    """FastAPI dependency returning the authenticated principal."""
    return await _validate_jwt_token(credentials.credentials)


async def get_current_admin_user(
    user: CurrentUser = Depends(get_current_user),
) -> CurrentUser:
    """
    FastAPI dependency that only admits callers with the admin role.

    Raises:
        HTTPException 403: If the caller is not an admin
    """
    if not user.is_admin:
        logger.warning(f"Access denied: principal {user.id} has role '{user.role}', admin required")
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail={
                "error": "ADMIN_ACCESS_REQUIRED",
                "message": "Administrator access is required for this endpoint.",
            },
        )

    return user


__all__ = [
    "ADMIN_ROLE",
    "CurrentUser",
    "get_current_admin_user",
    "get_current_user",
]
