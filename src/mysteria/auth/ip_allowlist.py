"""
Admin IP allowlist.

Entries in ``whitelisted_ips`` are either literal addresses or CIDR networks.
The client address comes from the proxy headers in priority order; the raw
socket peer is never trusted for this check.
"""

from __future__ import annotations

import ipaddress
from typing import TYPE_CHECKING

import structlog
from sqlalchemy import select

from mysteria.db.models import WhitelistedIp
from mysteria.errors import InputValidationError

if TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncSession
    from starlette.requests import Request

logger = structlog.get_logger()

IpNetwork = ipaddress.IPv4Network | ipaddress.IPv6Network


def client_ip(request: Request) -> str | None:
    """First non-empty of cf-connecting-ip, x-real-ip, first x-forwarded-for entry."""
    for header in ("cf-connecting-ip", "x-real-ip"):
        value = request.headers.get(header, "").strip()
        if value:
            return value
    forwarded = request.headers.get("x-forwarded-for", "")
    first = forwarded.split(",")[0].strip()
    return first or None


def parse_allowlist_entry(value: str) -> str:
    """Validate an allowlist entry (address or CIDR) and return its canonical form."""
    entry = value.strip()
    try:
        if "/" in entry:
            return str(ipaddress.ip_network(entry, strict=False))
        return str(ipaddress.ip_address(entry))
    except ValueError as e:
        msg = "Invalid IP address or CIDR range"
        raise InputValidationError(msg) from e


def entry_matches(entry: str, ip: str) -> bool:
    try:
        address = ipaddress.ip_address(ip)
    except ValueError:
        return False
    try:
        if "/" in entry:
            network: IpNetwork = ipaddress.ip_network(entry, strict=False)
            return address in network
        return address == ipaddress.ip_address(entry)
    except ValueError:
        logger.warning("malformed_allowlist_entry", entry=entry)
        return False


async def is_ip_allowed(db: AsyncSession, ip: str) -> bool:
    result = await db.execute(select(WhitelistedIp.ip_address).where(WhitelistedIp.is_active.is_(True)))
    return any(entry_matches(entry, ip) for entry in result.scalars())
