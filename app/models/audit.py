from datetime import datetime, timezone
from typing import Any, Dict, List
from uuid import UUID, uuid4

from pydantic import Field

from app.models.common import ApiModel


class AuditLogEntry(ApiModel):
    """
    One appended audit record for a mutating operation.
    """

    id: UUID = Field(default_factory=uuid4)
    object_type: str = Field(..., description="Entity kind, e.g. Observation")
    object_id: str = Field(..., description="Identifier of the affected entity")
    action: str = Field(..., description="Operation name, e.g. SUBMIT or UPDATE")
    user_id: str = Field(..., description="Acting user")
    diff: Dict[str, Any] = Field(default_factory=dict, description="Free-form change payload")
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))


class PaginatedAuditLogResponse(ApiModel):
    items: List[AuditLogEntry]
    total: int
    page: int
    page_size: int
    total_pages: int
