"""
Redis connection management for the local fallback song store.
"""

import os
from typing import Optional
import redis.asyncio as redis
import logging

logger = logging.getLogger(__name__)

REDIS_URL = os.getenv("REDIS_URL", "redis://redis:6379/0")

_redis_cache: Optional[redis.Redis] = None


async def get_redis_cache() -> redis.Redis:
    """
    Returns the Redis connection used for fallback persistence.

    Creates a new connection pool if one doesn't exist.
    """
    global _redis_cache

    if _redis_cache is None:
        try:
            _redis_cache = redis.from_url(
                REDIS_URL,
                decode_responses=True,
                max_connections=20,
                retry_on_timeout=True,
            )

            await _redis_cache.ping()
            logger.info("Redis connection established successfully")

        except Exception as e:
            logger.error(f"Failed to connect to Redis: {e}")
            _redis_cache = None
            raise

    return _redis_cache


async def close_redis_connections():
    """Close the Redis connection during application shutdown."""
    global _redis_cache

    if _redis_cache:
        await _redis_cache.close()
        _redis_cache = None
        logger.info("Redis connection closed")


async def health_check_redis() -> dict:
    """Report whether the fallback store is reachable."""
    status = {"status": "disconnected", "error": None}

    try:
        cache = await get_redis_cache()
        await cache.ping()
        status["status"] = "connected"
    except Exception as e:
        status["error"] = str(e)

    return status
