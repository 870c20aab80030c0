"""Redis connection pool and key naming.

Redis only holds short-lived counters (request rate limit, per-address email
limit, admin login attempts). Nothing in it is authoritative; losing it resets
the counters.
"""

import hashlib

import redis.asyncio as redis

_pool: redis.Redis | None = None

KEY_PREFIX = "mysteria"


async def init_redis(url: str) -> None:
    """Initialize the Redis connection pool."""
    global _pool  # noqa: PLW0603
    _pool = redis.from_url(  # type: ignore[no-untyped-call]
        url,
        encoding="utf-8",
        decode_responses=True,
        max_connections=20,
    )


async def close_redis() -> None:
    """Close the Redis connection pool."""
    global _pool  # noqa: PLW0603
    if _pool:
        await _pool.aclose()
        _pool = None


def get_redis() -> redis.Redis:
    """Get the Redis client (FastAPI dependency)."""
    if _pool is None:
        msg = "Redis not initialized. Call init_redis() first."
        raise RuntimeError(msg)
    return _pool


def set_redis(client: redis.Redis | None) -> None:
    """Install an already-built client (tests, workers sharing a connection)."""
    global _pool  # noqa: PLW0603
    _pool = client


def rate_limit_key(client_ip: str, window: int) -> str:
    return f"{KEY_PREFIX}:ratelimit:{client_ip}:{window}"


def email_rate_key(email: str) -> str:
    digest = hashlib.sha256(email.lower().encode()).hexdigest()
    return f"{KEY_PREFIX}:email_rate:{digest}"


def admin_login_key(client_ip: str) -> str:
    return f"{KEY_PREFIX}:admin_login_attempts:{client_ip}"
