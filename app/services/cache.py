"""
Cache Service Singleton - Classroom Observation Platform
app/services/cache.py

Provides a singleton Redis cache instance with TTL constants.
Gracefully handles Redis unavailability.
"""
import logging
from typing import Optional

import redis

from app.config import settings
from app.services.redis_cache import RedisCache

logger = logging.getLogger(__name__)

TTL_RUBRIC = settings.CACHE_TTL_RUBRIC

RUBRIC_CACHE_KEY = "rubric:active"

# Singleton instance
_cache: Optional[RedisCache] = None


def get_cache() -> Optional[RedisCache]:
    """
    Get or create Redis cache instance.

    Returns:
        RedisCache instance if Redis is available, None otherwise.

    Note:
        Returns None if Redis is unavailable, allowing the application
        to continue functioning without caching (graceful degradation).
    """
    global _cache
    if _cache is None:
        try:
            _cache = RedisCache()
            _cache.client.ping()  # Test connection
        except (redis.RedisError, ConnectionError) as e:
            logger.warning("Redis unavailable, caching disabled: %s", e)
            _cache = None
    return _cache


def reset_cache() -> None:
    """
    Reset the cache singleton.

    Useful for testing or when Redis connection needs to be re-established.
    """
    global _cache
    _cache = None
