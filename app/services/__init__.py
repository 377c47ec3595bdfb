"""
Services module for the Classroom Observation Platform.

Only infrastructure services are imported here. Domain services
(audit_log, lifecycle, observation_service, rubric_service) import the
repositories, which in turn import app.services.snowflake, so they are
imported from their own modules.
"""

from app.services.cache import get_cache
from app.services.rate_limiter import RateLimiter, build_rate_limiters
from app.services.redis_cache import RedisCache
from app.services.snowflake import get_snowflake_connection


__all__ = [
    "get_cache",
    "RateLimiter",
    "build_rate_limiters",
    "RedisCache",
    "get_snowflake_connection",
]
