"""FastAPI authentication dependencies."""

from __future__ import annotations

import secrets
from typing import Any

import jwt
import structlog
from fastapi import Security
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from mysteria.auth.jwt import verify_token
from mysteria.config import get_settings
from mysteria.errors import AuthError, ConfigurationError, ForbiddenError

logger = structlog.get_logger()

# auto_error=False so a missing header gets our own 401 body
_bearer = HTTPBearer(auto_error=False)


async def require_admin(
    credentials: HTTPAuthorizationCredentials | None = Security(_bearer),  # noqa: B008
) -> dict[str, Any]:
    """Verify the bearer JWT and require the admin role. Returns the token claims."""
    if credentials is None:
        msg = "Missing authorization header"
        raise AuthError(msg)
    try:
        claims = verify_token(credentials.credentials)
    except jwt.InvalidTokenError as e:
        logger.info("admin_token_rejected", error=str(e))
        msg = "Unauthorized"
        raise AuthError(msg) from e
    if claims.get("role") != "admin":
        msg = "Forbidden: Admin access required"
        raise ForbiddenError(msg)
    return claims


async def require_service_role(
    credentials: HTTPAuthorizationCredentials | None = Security(_bearer),  # noqa: B008
) -> None:
    """Backup and restore are called with the service-role key, not a user session."""
    settings = get_settings()
    if not settings.service_role_key:
        raise ConfigurationError("MYSTERIA_SERVICE_ROLE_KEY is not set")
    if credentials is None:
        msg = "Missing authorization header"
        raise AuthError(msg)
    if not secrets.compare_digest(credentials.credentials.encode(), settings.service_role_key.encode()):
        msg = "Unauthorized"
        raise AuthError(msg)
