"""Admin access endpoints: IP check, login, allowlist management."""

from __future__ import annotations

import uuid
from typing import Any

import structlog
from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse
from redis.asyncio import Redis
from sqlalchemy.ext.asyncio import AsyncSession

from mysteria.auth.dependencies import require_admin
from mysteria.auth.ip_allowlist import client_ip, is_ip_allowed
from mysteria.auth.schemas import (
    AdminLoginRequest,
    AdminLoginResponse,
    IpCheckResponse,
    WhitelistedIpCreate,
    WhitelistedIpResponse,
)
from mysteria.auth.service import (
    add_whitelisted_ip,
    authenticate_admin,
    deactivate_whitelisted_ip,
    list_whitelisted_ips,
)
from mysteria.database import get_session
from mysteria.redis_client import get_redis
from mysteria.validation import parse_uuid

logger = structlog.get_logger()

router = APIRouter(prefix="/api/v1", tags=["Admin access"])


@router.api_route("/check-admin-ip", methods=["GET", "POST"], response_model=IpCheckResponse)
async def check_admin_ip(request: Request, db: AsyncSession = Depends(get_session)) -> Any:  # noqa: B008
    """Report whether the caller's IP may reach the admin area. Read only."""
    ip = client_ip(request)
    if ip is None:
        return JSONResponse(
            status_code=400,
            content={"allowed": False, "message": "Unable to determine IP address", "ip": None},
        )
    allowed = await is_ip_allowed(db, ip)
    logger.info("admin_ip_checked", ip=ip, allowed=allowed)
    return IpCheckResponse(
        allowed=allowed,
        ip=ip,
        message="IP address is whitelisted" if allowed else "IP address is not whitelisted",
    )


@router.post("/admin/login", response_model=AdminLoginResponse)
async def admin_login(
    body: AdminLoginRequest,
    request: Request,
    db: AsyncSession = Depends(get_session),  # noqa: B008
    redis: Redis = Depends(get_redis),  # noqa: B008
) -> AdminLoginResponse:
    session = await authenticate_admin(db, redis, email=body.email, password=body.password, ip=client_ip(request))
    return AdminLoginResponse(access_token=session.access_token, expires_in=session.expires_in, email=session.email)


@router.get("/admin/whitelisted-ips", response_model=list[WhitelistedIpResponse])
async def get_whitelisted_ips(
    _claims: dict[str, Any] = Depends(require_admin),  # noqa: B008
    db: AsyncSession = Depends(get_session),  # noqa: B008
) -> Any:
    return await list_whitelisted_ips(db)


@router.post("/admin/whitelisted-ips", response_model=WhitelistedIpResponse, status_code=201)
async def create_whitelisted_ip(
    body: WhitelistedIpCreate,
    claims: dict[str, Any] = Depends(require_admin),  # noqa: B008
    db: AsyncSession = Depends(get_session),  # noqa: B008
) -> Any:
    return await add_whitelisted_ip(db, body.ip_address, body.description, uuid.UUID(claims["sub"]))


@router.delete("/admin/whitelisted-ips/{entry_id}", response_model=WhitelistedIpResponse)
async def remove_whitelisted_ip(
    entry_id: str,
    _claims: dict[str, Any] = Depends(require_admin),  # noqa: B008
    db: AsyncSession = Depends(get_session),  # noqa: B008
) -> Any:
    return await deactivate_whitelisted_ip(db, parse_uuid(entry_id))
