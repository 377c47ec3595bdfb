"""
Audit Logger - Classroom Observation Platform
app/services/audit_log.py

Best-effort audit trail. A failed audit write is logged and swallowed so
the primary operation it describes is never rolled back or blocked.
"""
import logging
from typing import Any, Dict, Optional

from app.models.audit import AuditLogEntry
from app.repositories.audit_repository import AuditLogRepository

logger = logging.getLogger(__name__)


class AuditLogger:
    """Appends AuditLogEntry records through an AuditLogRepository."""

    def __init__(self, repository: AuditLogRepository):
        self.repository = repository

    def record(
        self,
        object_type: str,
        object_id: Any,
        action: str,
        user_id: Any,
        diff: Optional[Dict[str, Any]] = None,
    ) -> Optional[AuditLogEntry]:
        """
        Append one audit entry.

        Returns:
            The stored entry, or None when the write failed.
        """
        entry = AuditLogEntry(
            object_type=object_type,
            object_id=str(object_id),
            action=action,
            user_id=str(user_id),
            diff=dict(diff or {}),
        )
        try:
            return self.repository.create(entry)
        except Exception:
            logger.exception(
                "Error creating audit log (%s %s %s)", object_type, object_id, action
            )
            return None
