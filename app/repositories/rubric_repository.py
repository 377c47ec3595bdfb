"""
Rubric Repository - Classroom Observation Platform
app/repositories/rubric_repository.py

Data access layer for rubric domains and items. Rows are never removed;
archiving clears IS_ACTIVE so historical observations keep resolving.
"""

from datetime import datetime, timezone
from typing import Any, Dict, List, Optional
from uuid import UUID, uuid4

from app.repositories.base import BaseRepository

DOMAIN_COLUMNS = "ID, NAME, DESCRIPTION, ORDER_INDEX, IS_ACTIVE, CREATED_AT, UPDATED_AT"
ITEM_COLUMNS = (
    "ID, DOMAIN_ID, NUMBER, PROMPT, ORDER_INDEX, MAX_SCORE, "
    "SCALE_MIN, SCALE_MAX, IS_ACTIVE, CREATED_AT, UPDATED_AT"
)


class RubricRepository(BaseRepository):
    """Repository for rubric domain and item operations."""

    DOMAIN_TABLE = "RUBRIC_DOMAINS"
    ITEM_TABLE = "RUBRIC_ITEMS"

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def get_active_domains(self) -> List[Dict[str, Any]]:
        """
        Active domains ordered by ORDER_INDEX, each with its active items
        ordered by ORDER_INDEX. Both reads share one connection.
        """
        with self.get_cursor() as cursor:
            cursor.execute(
                f"SELECT {DOMAIN_COLUMNS} FROM RUBRIC_DOMAINS "
                "WHERE IS_ACTIVE = TRUE ORDER BY ORDER_INDEX"
            )
            domain_rows = cursor.fetchall()
            cursor.execute(
                f"SELECT {ITEM_COLUMNS} FROM RUBRIC_ITEMS "
                "WHERE IS_ACTIVE = TRUE ORDER BY ORDER_INDEX, NUMBER"
            )
            item_rows = cursor.fetchall()

        domains = [self._domain_row_to_dict(row) for row in domain_rows]
        by_id = {d["id"]: d for d in domains}
        for row in item_rows:
            item = self._item_row_to_dict(row)
            domain = by_id.get(item["domain_id"])
            if domain is not None:
                domain["items"].append(item)
        return domains

    def get_domain(self, domain_id: UUID) -> Optional[Dict[str, Any]]:
        sql = f"SELECT {DOMAIN_COLUMNS} FROM RUBRIC_DOMAINS WHERE ID = %s"
        row = self.execute_query(sql, (str(domain_id),), fetch_one=True)
        return self._domain_row_to_dict(row) if row else None

    def get_item(self, item_id: UUID) -> Optional[Dict[str, Any]]:
        sql = f"SELECT {ITEM_COLUMNS} FROM RUBRIC_ITEMS WHERE ID = %s"
        row = self.execute_query(sql, (str(item_id),), fetch_one=True)
        return self._item_row_to_dict(row) if row else None

    def get_items_by_ids(self, item_ids: List[UUID]) -> List[Dict[str, Any]]:
        """Items by id, archived ones included."""
        if not item_ids:
            return []
        placeholders = ", ".join(["%s"] * len(item_ids))
        sql = f"SELECT {ITEM_COLUMNS} FROM RUBRIC_ITEMS WHERE ID IN ({placeholders})"
        rows = self.execute_query(sql, tuple(str(i) for i in item_ids), fetch_all=True)
        return [self._item_row_to_dict(row) for row in rows or []]

    def get_domains_by_ids(self, domain_ids: List[UUID]) -> List[Dict[str, Any]]:
        """Domains by id (without items), archived ones included."""
        if not domain_ids:
            return []
        placeholders = ", ".join(["%s"] * len(domain_ids))
        sql = f"SELECT {DOMAIN_COLUMNS} FROM RUBRIC_DOMAINS WHERE ID IN ({placeholders})"
        rows = self.execute_query(sql, tuple(str(i) for i in domain_ids), fetch_all=True)
        return [self._domain_row_to_dict(row) for row in rows or []]

    def domain_order_taken(self, order_index: int, exclude_id: Optional[UUID] = None) -> bool:
        """True when an active domain already uses order_index."""
        sql = "SELECT 1 FROM RUBRIC_DOMAINS WHERE ORDER_INDEX = %s AND IS_ACTIVE = TRUE"
        params: List[Any] = [order_index]
        if exclude_id:
            sql += " AND ID <> %s"
            params.append(str(exclude_id))
        return self.execute_query(sql, tuple(params), fetch_one=True) is not None

    # ------------------------------------------------------------------
    # Domain writes
    # ------------------------------------------------------------------

    def create_domain(self, name: str, description: str, order_index: int) -> Dict[str, Any]:
        domain_id = uuid4()
        now = datetime.now(timezone.utc)
        sql = f"""
            INSERT INTO RUBRIC_DOMAINS ({DOMAIN_COLUMNS})
            VALUES (%s, %s, %s, %s, TRUE, %s, %s)
        """
        self.execute_query(
            sql, (str(domain_id), name, description, order_index, now, now), commit=True
        )
        return self.get_domain(domain_id)

    def update_domain(self, domain_id: UUID, update_data: Dict[str, Any]) -> Optional[Dict[str, Any]]:
        if update_data:
            sql, params = self.build_update_query(
                self.DOMAIN_TABLE,
                update_data,
                "ID",
                str(domain_id),
                additional_set={"updated_at": datetime.now(timezone.utc)},
            )
            self.execute_query(sql, tuple(params), commit=True)
        return self.get_domain(domain_id)

    def archive_domain(self, domain_id: UUID) -> int:
        sql = """
            UPDATE RUBRIC_DOMAINS
            SET IS_ACTIVE = FALSE, UPDATED_AT = %s
            WHERE ID = %s AND IS_ACTIVE = TRUE
        """
        return self.execute_query(sql, (datetime.now(timezone.utc), str(domain_id)), commit=True)

    # ------------------------------------------------------------------
    # Item writes
    # ------------------------------------------------------------------

    def create_item(
        self,
        domain_id: UUID,
        prompt: str,
        number: int,
        order_index: int,
        max_score: int,
        scale_min: int,
        scale_max: int,
    ) -> Dict[str, Any]:
        item_id = uuid4()
        now = datetime.now(timezone.utc)
        sql = f"""
            INSERT INTO RUBRIC_ITEMS ({ITEM_COLUMNS})
            VALUES (%s, %s, %s, %s, %s, %s, %s, %s, TRUE, %s, %s)
        """
        params = (
            str(item_id),
            str(domain_id),
            number,
            prompt,
            order_index,
            max_score,
            scale_min,
            scale_max,
            now,
            now,
        )
        self.execute_query(sql, params, commit=True)
        return self.get_item(item_id)

    def update_item(self, item_id: UUID, update_data: Dict[str, Any]) -> Optional[Dict[str, Any]]:
        if update_data:
            sql, params = self.build_update_query(
                self.ITEM_TABLE,
                update_data,
                "ID",
                str(item_id),
                additional_set={"updated_at": datetime.now(timezone.utc)},
            )
            self.execute_query(sql, tuple(params), commit=True)
        return self.get_item(item_id)

    def archive_item(self, item_id: UUID) -> int:
        sql = """
            UPDATE RUBRIC_ITEMS
            SET IS_ACTIVE = FALSE, UPDATED_AT = %s
            WHERE ID = %s AND IS_ACTIVE = TRUE
        """
        return self.execute_query(sql, (datetime.now(timezone.utc), str(item_id)), commit=True)

    # ------------------------------------------------------------------
    # Row mapping
    # ------------------------------------------------------------------

    def _domain_row_to_dict(self, row: Dict[str, Any]) -> Dict[str, Any]:
        return {
            "id": UUID(row["ID"]),
            "name": row["NAME"],
            "description": row["DESCRIPTION"] or "",
            "order_index": int(row["ORDER_INDEX"]),
            "is_active": bool(row["IS_ACTIVE"]),
            "items": [],
        }

    def _item_row_to_dict(self, row: Dict[str, Any]) -> Dict[str, Any]:
        return {
            "id": UUID(row["ID"]),
            "domain_id": UUID(row["DOMAIN_ID"]),
            "number": int(row["NUMBER"]),
            "prompt": row["PROMPT"],
            "order_index": int(row["ORDER_INDEX"]),
            "max_score": int(row["MAX_SCORE"]),
            "scale_min": int(row["SCALE_MIN"]),
            "scale_max": int(row["SCALE_MAX"]),
            "is_active": bool(row["IS_ACTIVE"]),
        }
