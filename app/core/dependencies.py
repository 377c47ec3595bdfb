"""
Dependencies - Classroom Observation Platform
app/core/dependencies.py

FastAPI dependency injection for repositories, services, the calling actor
and per-endpoint rate limits.
"""

from functools import lru_cache
from typing import Optional

from fastapi import Depends, Header, HTTPException, Request, status
from pydantic import ValidationError

from app.models.observation import Actor
from app.repositories.audit_repository import AuditLogRepository
from app.repositories.observation_repository import ObservationRepository
from app.repositories.rubric_repository import RubricRepository
from app.services.audit_log import AuditLogger
from app.services.cache import get_cache
from app.services.lifecycle import LifecycleController
from app.services.observation_service import ObservationService
from app.services.report_service import ReportService
from app.services.redis_cache import RedisCache
from app.services.rubric_service import RubricService


@lru_cache()
def get_rubric_repository() -> RubricRepository:
    """Get cached RubricRepository instance."""
    return RubricRepository()


@lru_cache()
def get_observation_repository() -> ObservationRepository:
    """Get cached ObservationRepository instance."""
    return ObservationRepository()


@lru_cache()
def get_audit_log_repository() -> AuditLogRepository:
    """Get cached AuditLogRepository instance."""
    return AuditLogRepository()


def get_audit_logger(
    repository: AuditLogRepository = Depends(get_audit_log_repository),
) -> AuditLogger:
    return AuditLogger(repository)


def get_rubric_cache() -> Optional[RedisCache]:
    """Redis cache for the rubric snapshot, or None when Redis is down."""
    return get_cache()


def get_rubric_service(
    repository: RubricRepository = Depends(get_rubric_repository),
    audit_logger: AuditLogger = Depends(get_audit_logger),
    cache: Optional[RedisCache] = Depends(get_rubric_cache),
) -> RubricService:
    return RubricService(repository, audit_logger, cache)


def get_observation_service(
    repository: ObservationRepository = Depends(get_observation_repository),
    rubric_service: RubricService = Depends(get_rubric_service),
    audit_logger: AuditLogger = Depends(get_audit_logger),
) -> ObservationService:
    return ObservationService(repository, rubric_service, audit_logger)


def get_report_service(
    repository: ObservationRepository = Depends(get_observation_repository),
    rubric_service: RubricService = Depends(get_rubric_service),
) -> ReportService:
    return ReportService(repository, rubric_service)


def get_lifecycle_controller(
    repository: ObservationRepository = Depends(get_observation_repository),
    audit_logger: AuditLogger = Depends(get_audit_logger),
) -> LifecycleController:
    return LifecycleController(repository, audit_logger)


#  Actor


def get_actor(
    x_actor_id: Optional[str] = Header(default=None),
    x_actor_role: Optional[str] = Header(default=None),
) -> Actor:
    """
    Caller identity forwarded by the authentication layer in front of the API.

    Raises:
        HTTPException 401: headers missing or malformed
    """
    if not x_actor_id or not x_actor_role:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail={"error_code": "UNAUTHORIZED", "message": "Actor headers are required"},
        )
    try:
        return Actor(id=x_actor_id, role=x_actor_role)
    except ValidationError:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail={"error_code": "UNAUTHORIZED", "message": "Invalid actor headers"},
        )


#  Rate limiting


def get_client_identifier(request: Request) -> str:
    forwarded = request.headers.get("x-forwarded-for")
    if forwarded:
        return forwarded.split(",")[0].strip()
    real_ip = request.headers.get("x-real-ip")
    if real_ip:
        return real_ip.strip()
    return "unknown"


def rate_limit(name: str):
    """Dependency factory enforcing the limiter registered under name."""

    def _check(request: Request) -> None:
        limiters = getattr(request.app.state, "rate_limiters", None) or {}
        limiter = limiters.get(name)
        if limiter is None:
            return
        result = limiter.hit(get_client_identifier(request))
        if not result.success:
            raise HTTPException(
                status_code=status.HTTP_429_TOO_MANY_REQUESTS,
                detail={
                    "error_code": "RATE_LIMITED",
                    "message": "Too many requests, please try again later",
                },
                headers={
                    "X-RateLimit-Limit": str(result.limit),
                    "X-RateLimit-Remaining": str(result.remaining),
                    "X-RateLimit-Reset": str(int(result.reset_time)),
                },
            )

    return _check
