"""
Audit Log Router - Classroom Observation Platform
app/routers/audit_logs.py

Admin-only, read-only view of the audit trail.
"""

from typing import Optional

from fastapi import APIRouter, Depends, Query

from app.core.dependencies import get_actor, get_audit_log_repository, rate_limit
from app.core.exceptions import AuthorizationError
from app.models.audit import PaginatedAuditLogResponse
from app.models.enumerations import UserRole
from app.models.observation import Actor
from app.repositories.audit_repository import AuditLogRepository

router = APIRouter(prefix="/api/v1/audit-logs", tags=["Audit Logs"])


@router.get(
    "",
    response_model=PaginatedAuditLogResponse,
    summary="List audit entries (admin)",
    description="Newest first, filterable by object, user and action.",
    dependencies=[Depends(rate_limit("list"))],
)
async def list_audit_logs(
    page: int = Query(default=1, ge=1),
    page_size: int = Query(default=50, ge=1, le=100, alias="pageSize"),
    object_type: Optional[str] = Query(default=None, alias="objectType"),
    object_id: Optional[str] = Query(default=None, alias="objectId"),
    user_id: Optional[str] = Query(default=None, alias="userId"),
    action: Optional[str] = Query(default=None),
    actor: Actor = Depends(get_actor),
    audit_repo: AuditLogRepository = Depends(get_audit_log_repository),
) -> PaginatedAuditLogResponse:
    if actor.role != UserRole.ADMIN:
        raise AuthorizationError("Only admins can view audit logs")

    entries, total = audit_repo.get_all(
        page=page,
        page_size=page_size,
        object_type=object_type,
        object_id=object_id,
        user_id=user_id,
        action=action,
    )
    total_pages = (total + page_size - 1) // page_size if total > 0 else 0
    return PaginatedAuditLogResponse(
        items=entries,
        total=total,
        page=page,
        page_size=page_size,
        total_pages=total_pages,
    )
