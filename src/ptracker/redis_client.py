"""Optional shared Redis client.

Redis backs the rate limiter and the persistent mirror replay queue. Without
``PTR_REDIS_URL`` no client exists: rate limiting is skipped and the mirror
queue stays in process memory.
"""

import logging

import redis.asyncio as redis
from redis.exceptions import RedisError

logger = logging.getLogger(__name__)

_client: redis.Redis | None = None


async def init_redis(url: str, max_connections: int = 20) -> redis.Redis:
    """Create the shared client. The pool connects lazily on first command."""
    global _client  # noqa: PLW0603
    _client = redis.from_url(  # type: ignore[no-untyped-call]
        url,
        encoding="utf-8",
        decode_responses=True,
        max_connections=max_connections,
    )
    logger.info("Redis client created (pool size %d)", max_connections)
    return _client


async def close_redis() -> None:
    global _client  # noqa: PLW0603
    if _client is not None:
        await _client.aclose()
        _client = None


def get_redis() -> redis.Redis:
    """Shared client. Raises RuntimeError when Redis is not configured."""
    if _client is None:
        msg = "Redis is not configured (set PTR_REDIS_URL)"
        raise RuntimeError(msg)
    return _client


async def redis_status() -> str | None:
    """Readiness check result, or None when Redis is not configured."""
    if _client is None:
        return None
    try:
        await _client.ping()
    except (RedisError, OSError) as exc:
        logger.warning("Redis ping failed: %s", exc)
        return f"error: {exc}"
    return "ok"
