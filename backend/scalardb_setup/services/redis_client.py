"""Redis client used as a best-effort cache for Maven Central lookups."""

import json
import logging
from typing import Any

import redis.asyncio as redis

from scalardb_setup.config import settings

logger = logging.getLogger(__name__)

# Global Redis connection pool
_redis_pool: redis.ConnectionPool | None = None
_redis_client: redis.Redis | None = None


async def get_redis() -> redis.Redis:
    """Get Redis client instance (creates connection pool on first call)."""
    global _redis_pool, _redis_client

    if _redis_client is None:
        _redis_pool = redis.ConnectionPool.from_url(
            settings.redis_url,
            decode_responses=True,
            max_connections=10,
        )
        _redis_client = redis.Redis(connection_pool=_redis_pool)
        logger.info("Redis connection pool initialized")

    return _redis_client


async def close_redis() -> None:
    """Close Redis connection pool."""
    global _redis_pool, _redis_client

    if _redis_client:
        await _redis_client.aclose()
        _redis_client = None

    if _redis_pool:
        await _redis_pool.aclose()
        _redis_pool = None

    logger.info("Redis connection pool closed")


# ---------------------------------------------------------------------------
# Generic cache helpers (fail silently when Redis is down)
# ---------------------------------------------------------------------------


async def cache_get(key: str) -> Any | None:
    """Get a cached value by key. Returns None on miss or error."""
    try:
        client = await get_redis()
        raw = await client.get(key)
        if raw is None:
            return None
        return json.loads(raw)
    except Exception:
        logger.debug("Cache miss/error for key %s", key, exc_info=True)
        return None


async def cache_set(key: str, value: Any, ttl_seconds: int = 600) -> None:
    """Store a value in cache with TTL. Fails silently."""
    try:
        client = await get_redis()
        await client.setex(key, ttl_seconds, json.dumps(value, default=str))
    except Exception:
        logger.debug("Cache set failed for key %s", key, exc_info=True)
