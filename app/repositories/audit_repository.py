"""
Audit Log Repository - Classroom Observation Platform
app/repositories/audit_repository.py

Append-only storage for audit entries.
"""

import json
from typing import Any, Dict, List, Optional, Tuple
from uuid import UUID

from app.models.audit import AuditLogEntry
from app.repositories.base import BaseRepository


class AuditLogRepository(BaseRepository):
    """Repository for AUDIT_LOGS."""

    TABLE_NAME = "AUDIT_LOGS"

    def create(self, entry: AuditLogEntry) -> AuditLogEntry:
        sql = """
            INSERT INTO AUDIT_LOGS (ID, OBJECT_TYPE, OBJECT_ID, ACTION, USER_ID, DIFF, CREATED_AT)
            SELECT %s, %s, %s, %s, %s, PARSE_JSON(%s), %s
        """
        params = (
            str(entry.id),
            entry.object_type,
            entry.object_id,
            entry.action,
            entry.user_id,
            json.dumps(entry.diff, default=str),
            entry.created_at,
        )
        self.execute_query(sql, params, commit=True)
        return entry

    def get_all(
        self,
        page: int = 1,
        page_size: int = 50,
        object_type: Optional[str] = None,
        object_id: Optional[str] = None,
        user_id: Optional[str] = None,
        action: Optional[str] = None,
    ) -> Tuple[List[AuditLogEntry], int]:
        """
        Retrieve paginated audit entries, newest first.

        Returns:
            Tuple of (entries, total count)
        """
        offset = (page - 1) * page_size
        where_clauses = ["1=1"]
        params: List[Any] = []

        for column, value in (
            ("OBJECT_TYPE", object_type),
            ("OBJECT_ID", object_id),
            ("USER_ID", user_id),
            ("ACTION", action),
        ):
            if value:
                where_clauses.append(f"{column} = %s")
                params.append(value)

        where_sql = " AND ".join(where_clauses)

        count_result = self.execute_query(
            f"SELECT COUNT(*) AS TOTAL FROM AUDIT_LOGS WHERE {where_sql}",
            tuple(params),
            fetch_one=True,
        )
        total = count_result["TOTAL"] if count_result else 0

        rows = self.execute_query(
            f"""
            SELECT ID, OBJECT_TYPE, OBJECT_ID, ACTION, USER_ID, DIFF, CREATED_AT
            FROM AUDIT_LOGS
            WHERE {where_sql}
            ORDER BY CREATED_AT DESC
            LIMIT %s OFFSET %s
            """,
            tuple(params) + (page_size, offset),
            fetch_all=True,
        ) or []

        return [self._row_to_entry(row) for row in rows], total

    def _row_to_entry(self, row: Dict[str, Any]) -> AuditLogEntry:
        diff = row["DIFF"]
        if isinstance(diff, str):
            diff = json.loads(diff) if diff else {}
        return AuditLogEntry(
            id=UUID(row["ID"]),
            object_type=row["OBJECT_TYPE"],
            object_id=row["OBJECT_ID"],
            action=row["ACTION"],
            user_id=row["USER_ID"],
            diff=diff or {},
            created_at=self.normalize_timestamp(row["CREATED_AT"]),
        )
