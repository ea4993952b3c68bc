"""Redis store for caching discovery results.

Handles:
- Caching with TTL policies
- Invalidation when stores or reviews change

TTL policies:
- Distinct tag list: 5 minutes
- Top-rated ranking: 5 minutes

The cache is optional: callers catch RuntimeError (not initialized) and
RedisError (unavailable) and fall back to the repository.
"""

import json
import logging
from typing import Any

import redis.asyncio as redis

from storefinder.settings import get_settings

# TTL constants (in seconds)
TTL_TAG_LIST = 300  # 5 minutes
TTL_TOP_STORES = 300  # 5 minutes

# Key prefixes
PREFIX_TAG_LIST = "tags:list"
PREFIX_TOP_STORES = "stores:top:"

# Redis client (initialized on startup)
_redis: redis.Redis | None = None
logger = logging.getLogger("uvicorn.error")


async def init_redis() -> None:
    """Initialize Redis connection."""
    global _redis
    settings = get_settings()
    _redis = redis.from_url(
        settings.redis_url,
        encoding="utf-8",
        decode_responses=True,
        socket_connect_timeout=5,
        socket_timeout=5,
    )
    # Validate connectivity early (especially for `rediss://` in production).
    await _redis.ping()
    logger.info("Redis connected")


async def close_redis() -> None:
    """Close Redis connection."""
    global _redis
    if _redis:
        await _redis.aclose()
        _redis = None


def _get_redis() -> redis.Redis:
    """Get Redis client instance."""
    if _redis is None:
        raise RuntimeError("Redis not initialized. Call init_redis() first.")
    return _redis


# ============================================================
# Generic cache operations
# ============================================================


async def cache_get(key: str) -> str | None:
    """Get value from cache.

    Args:
        key: Cache key.

    Returns:
        Cached value or None if not found.
    """
    return await _get_redis().get(key)


async def cache_set(key: str, value: str, ttl: int) -> None:
    """Set value in cache with TTL.

    Args:
        key: Cache key.
        value: Value to cache.
        ttl: Time-to-live in seconds.
    """
    await _get_redis().setex(key, ttl, value)


async def cache_delete(*keys: str) -> None:
    """Delete values from cache."""
    if keys:
        await _get_redis().delete(*keys)


async def cache_get_json(key: str) -> Any | None:
    """Get JSON value from cache."""
    value = await cache_get(key)
    if value:
        return json.loads(value)
    return None


async def cache_set_json(key: str, value: Any, ttl: int) -> None:
    """Set JSON value in cache."""
    await cache_set(key, json.dumps(value), ttl)


# ============================================================
# Discovery caches
# ============================================================


async def get_tag_list_cache() -> list[dict[str, Any]] | None:
    """Get cached distinct tag counts."""
    return await cache_get_json(PREFIX_TAG_LIST)


async def set_tag_list_cache(tags: list[dict[str, Any]]) -> None:
    """Cache distinct tag counts."""
    await cache_set_json(PREFIX_TAG_LIST, tags, TTL_TAG_LIST)


async def get_top_stores_cache(limit: int) -> list[dict[str, Any]] | None:
    """Get cached top-rated ranking for a given limit."""
    return await cache_get_json(f"{PREFIX_TOP_STORES}{limit}")


async def set_top_stores_cache(limit: int, stores: list[dict[str, Any]]) -> None:
    """Cache top-rated ranking for a given limit."""
    await cache_set_json(f"{PREFIX_TOP_STORES}{limit}", stores, TTL_TOP_STORES)


async def invalidate_tag_list() -> None:
    await cache_delete(PREFIX_TAG_LIST)


async def invalidate_top_stores() -> None:
    """Drop every cached top-rated ranking (one key per requested limit)."""
    client = _get_redis()
    keys = [key async for key in client.scan_iter(match=f"{PREFIX_TOP_STORES}*")]
    await cache_delete(*keys)
