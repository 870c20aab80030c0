"""
Admin authentication and allowlist management.

Login order: IP gate, attempt counter, password, role. A failed IP gate and a
failed password both count toward the per-IP lockout.
"""

from __future__ import annotations

import uuid
from dataclasses import dataclass
from typing import TYPE_CHECKING

import structlog
from sqlalchemy import select

from mysteria.auth.ip_allowlist import is_ip_allowed, parse_allowlist_entry
from mysteria.auth.jwt import create_admin_token
from mysteria.auth.password import check_needs_rehash, hash_password, verify_password
from mysteria.config import get_settings
from mysteria.db.models import AdminUser, WhitelistedIp
from mysteria.errors import AuthError, ForbiddenError, NotFoundError, RateLimitedError
from mysteria.redis_client import admin_login_key
from mysteria.timeutils import utcnow

if TYPE_CHECKING:
    from redis.asyncio import Redis
    from sqlalchemy.ext.asyncio import AsyncSession

logger = structlog.get_logger()

INVALID_CREDENTIALS = "Invalid email or password"


@dataclass(frozen=True)
class AdminSession:
    access_token: str
    expires_in: int
    email: str


# ---------------------------------------------------------------------------
# Login lockout (keyed by client IP)
# ---------------------------------------------------------------------------


async def check_login_lockout(redis: Redis, ip: str) -> bool:
    settings = get_settings()
    count = await redis.get(admin_login_key(ip))
    if count is None:
        return False
    return int(count) >= settings.admin_login_max_attempts


async def increment_failed_login(redis: Redis, ip: str) -> int:
    """Increment the failed attempt counter. Returns the new count."""
    settings = get_settings()
    key = admin_login_key(ip)
    count = await redis.incr(key)
    if count == 1:
        await redis.expire(key, settings.admin_login_lockout_minutes * 60)
    return int(count)


async def clear_failed_login(redis: Redis, ip: str) -> None:
    await redis.delete(admin_login_key(ip))


# ---------------------------------------------------------------------------
# Login
# ---------------------------------------------------------------------------


async def authenticate_admin(
    db: AsyncSession,
    redis: Redis,
    *,
    email: str,
    password: str,
    ip: str | None,
) -> AdminSession:
    """
    Sign an admin in and issue a session token.

    Raises:
        ForbiddenError: Client IP unknown or not on the allowlist.
        RateLimitedError: Too many failed attempts from this IP.
        AuthError: Wrong email or password.
    """
    if ip is None:
        msg = "Unable to determine IP address"
        raise ForbiddenError(msg)

    if await check_login_lockout(redis, ip):
        logger.warning("admin_login_locked", ip=ip)
        msg = "Too many failed login attempts. Please try again later."
        raise RateLimitedError(msg)

    if not await is_ip_allowed(db, ip):
        await increment_failed_login(redis, ip)
        logger.warning("admin_login_ip_rejected", ip=ip)
        msg = "Access denied: IP address is not whitelisted"
        raise ForbiddenError(msg)

    result = await db.execute(select(AdminUser).where(AdminUser.email == email.strip().lower()))
    admin = result.scalar_one_or_none()
    if admin is None or not admin.is_active or not verify_password(password, admin.password_hash):
        attempts = await increment_failed_login(redis, ip)
        logger.info("admin_login_failed", ip=ip, attempts=attempts)
        raise AuthError(INVALID_CREDENTIALS)

    if admin.role != "admin":
        logger.warning("admin_login_not_admin", admin_id=str(admin.id))
        msg = "Forbidden: Admin access required"
        raise ForbiddenError(msg)

    await clear_failed_login(redis, ip)
    admin.last_login = utcnow()
    if check_needs_rehash(admin.password_hash):
        admin.password_hash = hash_password(password)
        logger.info("admin_password_rehashed", admin_id=str(admin.id))
    await db.commit()

    settings = get_settings()
    logger.info("admin_login_succeeded", admin_id=str(admin.id), ip=ip)
    return AdminSession(
        access_token=create_admin_token(admin.id, admin.email, admin.role),
        expires_in=settings.admin_session_timeout_minutes * 60,
        email=admin.email,
    )


async def create_admin_user(db: AsyncSession, email: str, password: str, role: str = "admin") -> AdminUser:
    admin = AdminUser(email=email.strip().lower(), password_hash=hash_password(password), role=role)
    db.add(admin)
    await db.commit()
    return admin


# ---------------------------------------------------------------------------
# Allowlist management
# ---------------------------------------------------------------------------


async def list_whitelisted_ips(db: AsyncSession) -> list[WhitelistedIp]:
    result = await db.execute(select(WhitelistedIp).order_by(WhitelistedIp.created_at.desc()))
    return list(result.scalars())


async def add_whitelisted_ip(
    db: AsyncSession,
    ip_address: str,
    description: str | None,
    created_by: uuid.UUID | None,
) -> WhitelistedIp:
    entry = WhitelistedIp(
        ip_address=parse_allowlist_entry(ip_address),
        description=description,
        created_by=created_by,
    )
    db.add(entry)
    await db.commit()
    logger.info("allowlist_entry_added", ip=entry.ip_address)
    return entry


async def deactivate_whitelisted_ip(db: AsyncSession, entry_id: uuid.UUID) -> WhitelistedIp:
    entry = await db.get(WhitelistedIp, entry_id)
    if entry is None:
        msg = "IP entry not found"
        raise NotFoundError(msg)
    entry.is_active = False
    await db.commit()
    logger.info("allowlist_entry_deactivated", ip=entry.ip_address)
    return entry
