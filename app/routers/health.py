"""
Health Check Router - Classroom Observation Platform
app/routers/health.py

Returns health status of Snowflake and Redis with real connection checks.
"""
from datetime import datetime, timezone
from typing import Dict

from fastapi import APIRouter, status
from fastapi.responses import JSONResponse
from pydantic import BaseModel

from app.config import settings
from app.services.redis_cache import RedisCache
from app.services.snowflake import get_snowflake_connection

router = APIRouter(tags=["Health"])



#  Schemas


class HealthResponse(BaseModel):
    status: str
    timestamp: datetime
    version: str
    dependencies: Dict[str, str]



#  Dependency Health Checks


def _short(error: Exception) -> str:
    msg = str(error)
    return msg[:100] + "..." if len(msg) > 100 else msg


async def check_snowflake() -> str:
    """Check Snowflake connection health."""
    if not all([settings.SNOWFLAKE_ACCOUNT, settings.SNOWFLAKE_USER, settings.SNOWFLAKE_PASSWORD]):
        missing = [
            name
            for name in ("SNOWFLAKE_ACCOUNT", "SNOWFLAKE_USER", "SNOWFLAKE_PASSWORD")
            if not getattr(settings, name)
        ]
        return f"unhealthy: Missing settings: {', '.join(missing)}"
    try:
        conn = get_snowflake_connection()
        try:
            cursor = conn.cursor()
            cursor.execute("SELECT CURRENT_USER()")
            result = cursor.fetchone()
            cursor.close()
        finally:
            conn.close()
        return f"healthy (User: {result[0]})"
    except Exception as e:
        return f"unhealthy: {_short(e)}"


async def check_redis() -> str:
    """Check Redis connection health."""
    try:
        cache = RedisCache(settings.REDIS_URL)
        try:
            cache.ping()
        finally:
            cache.close()
        return "healthy"
    except Exception as e:
        return f"unhealthy: {_short(e)}"



#  Main Health Check Route


@router.get(
    "/health",
    response_model=HealthResponse,
    responses={
        200: {"description": "All dependencies healthy"},
        503: {"description": "One or more dependencies unhealthy"},
    },
    summary="Health check",
    description="Check health of all dependencies.",
)
async def health_check():
    """Check health of all dependencies."""
    dependencies = {
        "snowflake": await check_snowflake(),
        "redis": await check_redis(),
    }

    all_healthy = all(v.startswith("healthy") for v in dependencies.values())

    response = HealthResponse(
        status="healthy" if all_healthy else "degraded",
        timestamp=datetime.now(timezone.utc),
        version=settings.APP_VERSION,
        dependencies=dependencies,
    )

    if all_healthy:
        return response
    return JSONResponse(
        status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
        content=response.model_dump(mode="json"),
    )
