"""
Observation Repository - Classroom Observation Platform
app/repositories/observation_repository.py

Data access layer for observations and their item scores.

Every write that depends on the observation's current status is a
compare-and-swap: the UPDATE/DELETE carries `AND STATUS = %s` with the
status the caller read, and zero affected rows raises
ConcurrentModificationException.
"""

from datetime import date, datetime, timezone
from typing import Any, Dict, List, Optional, Tuple
from uuid import UUID, uuid4

from app.core.exceptions import ConcurrentModificationException
from app.models.enumerations import ObservationStatus
from app.repositories.base import BaseRepository

OBSERVATION_COLUMNS = (
    "ID, BRANCH_ID, TEACHER_ID, OBSERVER_ID, REVIEWER_ID, CLASS_SECTION, "
    "TOTAL_STUDENTS, PRESENT_STUDENTS, SUBJECT, TOPIC, OBSERVATION_DATE, "
    "OBSERVATION_TIME, LESSON_PLAN_ATTACHED, STRENGTHS, AREAS_TO_IMPROVE, "
    "SUGGESTIONS, OVERALL_OVERRIDE_RATING, OVERRIDE_REASON, STATUS, "
    "REVIEWER_COMMENTS, REVIEWED_AT, FINALIZED_AT, CREATED_AT, UPDATED_AT"
)

# Model field -> column, for fields a caller may update
FIELD_COLUMNS = {
    "class_section": "CLASS_SECTION",
    "total_students": "TOTAL_STUDENTS",
    "present_students": "PRESENT_STUDENTS",
    "subject": "SUBJECT",
    "topic": "TOPIC",
    "date": "OBSERVATION_DATE",
    "time": "OBSERVATION_TIME",
    "lesson_plan_attached": "LESSON_PLAN_ATTACHED",
    "strengths": "STRENGTHS",
    "areas_to_improve": "AREAS_TO_IMPROVE",
    "suggestions": "SUGGESTIONS",
    "overall_override_rating": "OVERALL_OVERRIDE_RATING",
    "override_reason": "OVERRIDE_REASON",
    "status": "STATUS",
    "reviewer_id": "REVIEWER_ID",
    "reviewer_comments": "REVIEWER_COMMENTS",
    "reviewed_at": "REVIEWED_AT",
    "finalized_at": "FINALIZED_AT",
}


class ObservationRepository(BaseRepository):
    """Repository for Observation CRUD and status transitions."""

    TABLE_NAME = "OBSERVATIONS"

    def create(
        self,
        observer_id: UUID,
        data: Dict[str, Any],
        item_scores: Optional[Dict[UUID, Any]] = None,
    ) -> Dict[str, Any]:
        """
        Create a new draft observation with its initial item scores.

        Args:
            observer_id: UUID of the observer of record
            data: Observation context and reflection fields
            item_scores: Optional mapping of rubric item id -> {rating, comment}

        Returns:
            Created observation dict
        """
        observation_id = uuid4()
        now = datetime.now(timezone.utc)

        sql = f"""
            INSERT INTO OBSERVATIONS ({OBSERVATION_COLUMNS})
            VALUES (%s, %s, %s, %s, NULL, %s, %s, %s, %s, %s, %s, %s, %s,
                    %s, %s, %s, %s, %s, %s, NULL, NULL, NULL, %s, %s)
        """
        params = (
            str(observation_id),
            str(data["branch_id"]),
            str(data["teacher_id"]),
            str(observer_id),
            data["class_section"],
            data["total_students"],
            data["present_students"],
            data["subject"],
            data["topic"],
            data["date"],
            data["time"],
            bool(data.get("lesson_plan_attached", False)),
            data.get("strengths"),
            data.get("areas_to_improve"),
            data.get("suggestions"),
            data.get("overall_override_rating"),
            data.get("override_reason"),
            ObservationStatus.DRAFT.value,
            now,
            now,
        )

        with self.transaction() as cursor:
            cursor.execute(sql, params)
            if item_scores:
                self._insert_item_scores(cursor, observation_id, item_scores, now)

        return self.get_by_id(observation_id)

    def get_by_id(self, observation_id: UUID) -> Optional[Dict[str, Any]]:
        """
        Retrieve an observation with its item scores.

        Returns:
            Observation dict or None if not found
        """
        sql = f"SELECT {OBSERVATION_COLUMNS} FROM OBSERVATIONS WHERE ID = %s"
        row = self.execute_query(sql, (str(observation_id),), fetch_one=True)
        if not row:
            return None

        observation = self._row_to_dict(row)
        observation["item_scores"] = self._get_item_scores([observation_id]).get(observation_id, [])
        return observation

    def get_all(
        self,
        page: int = 1,
        page_size: int = 20,
        status: Optional[ObservationStatus] = None,
        branch_id: Optional[UUID] = None,
        teacher_id: Optional[UUID] = None,
        observer_id: Optional[UUID] = None,
        date_from: Optional[date] = None,
        date_to: Optional[date] = None,
    ) -> Tuple[List[Dict[str, Any]], int]:
        """
        Retrieve paginated observations, newest first, with optional filters.

        Returns:
            Tuple of (list of observation dicts, total count)
        """
        offset = (page - 1) * page_size

        where_clauses = ["1=1"]
        params: List[Any] = []

        if status:
            where_clauses.append("STATUS = %s")
            params.append(status.value)
        if branch_id:
            where_clauses.append("BRANCH_ID = %s")
            params.append(str(branch_id))
        if teacher_id:
            where_clauses.append("TEACHER_ID = %s")
            params.append(str(teacher_id))
        if observer_id:
            where_clauses.append("OBSERVER_ID = %s")
            params.append(str(observer_id))
        if date_from:
            where_clauses.append("OBSERVATION_DATE >= %s")
            params.append(date_from)
        if date_to:
            where_clauses.append("OBSERVATION_DATE <= %s")
            params.append(date_to)

        where_sql = " AND ".join(where_clauses)

        count_sql = f"SELECT COUNT(*) AS TOTAL FROM OBSERVATIONS WHERE {where_sql}"
        count_result = self.execute_query(count_sql, tuple(params), fetch_one=True)
        total = count_result["TOTAL"] if count_result else 0

        data_sql = f"""
            SELECT {OBSERVATION_COLUMNS}
            FROM OBSERVATIONS
            WHERE {where_sql}
            ORDER BY CREATED_AT DESC
            LIMIT %s OFFSET %s
        """
        rows = self.execute_query(data_sql, tuple(params) + (page_size, offset), fetch_all=True) or []

        observations = [self._row_to_dict(row) for row in rows]
        scores = self._get_item_scores([o["id"] for o in observations])
        for observation in observations:
            observation["item_scores"] = scores.get(observation["id"], [])
        return observations, total

    def update(
        self,
        observation_id: UUID,
        expected_status: ObservationStatus,
        update_data: Dict[str, Any],
        item_scores: Optional[Dict[UUID, Any]] = None,
    ) -> Dict[str, Any]:
        """
        Update observation fields and, when given, replace its item scores.

        Raises:
            ConcurrentModificationException: status changed since it was read
        """
        now = datetime.now(timezone.utc)
        with self.transaction() as cursor:
            self._conditional_update(cursor, observation_id, expected_status, update_data, now)
            if item_scores is not None:
                cursor.execute(
                    "DELETE FROM OBSERVATION_ITEM_SCORES WHERE OBSERVATION_ID = %s",
                    (str(observation_id),),
                )
                self._insert_item_scores(cursor, observation_id, item_scores, now)

        return self.get_by_id(observation_id)

    def transition_status(
        self,
        observation_id: UUID,
        expected_status: ObservationStatus,
        new_status: ObservationStatus,
        extra_fields: Optional[Dict[str, Any]] = None,
    ) -> Dict[str, Any]:
        """
        Move an observation from expected_status to new_status atomically.

        Raises:
            ConcurrentModificationException: status changed since it was read
        """
        update_data = dict(extra_fields or {})
        update_data["status"] = new_status
        now = datetime.now(timezone.utc)
        with self.transaction() as cursor:
            self._conditional_update(cursor, observation_id, expected_status, update_data, now)
        return self.get_by_id(observation_id)

    def delete(self, observation_id: UUID, expected_status: ObservationStatus) -> None:
        """
        Delete an observation together with its item scores and attachments.

        Raises:
            ConcurrentModificationException: status changed since it was read
        """
        oid = str(observation_id)
        with self.transaction() as cursor:
            cursor.execute(
                "DELETE FROM OBSERVATIONS WHERE ID = %s AND STATUS = %s",
                (oid, expected_status.value),
            )
            if cursor.rowcount == 0:
                raise ConcurrentModificationException("Observation", oid)
            cursor.execute("DELETE FROM OBSERVATION_ITEM_SCORES WHERE OBSERVATION_ID = %s", (oid,))
            cursor.execute("DELETE FROM ATTACHMENTS WHERE OBSERVATION_ID = %s", (oid,))

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _conditional_update(
        self,
        cursor: Any,
        observation_id: UUID,
        expected_status: ObservationStatus,
        update_data: Dict[str, Any],
        now: datetime,
    ) -> None:
        set_clauses = []
        params: List[Any] = []
        for field, value in update_data.items():
            set_clauses.append(f"{FIELD_COLUMNS[field]} = %s")
            if isinstance(value, ObservationStatus):
                value = value.value
            elif isinstance(value, UUID):
                value = str(value)
            params.append(value)
        set_clauses.append("UPDATED_AT = %s")
        params.append(now)
        params.extend([str(observation_id), expected_status.value])

        sql = f"""
            UPDATE OBSERVATIONS
            SET {', '.join(set_clauses)}
            WHERE ID = %s AND STATUS = %s
        """
        cursor.execute(sql, tuple(params))
        if cursor.rowcount == 0:
            raise ConcurrentModificationException("Observation", str(observation_id))

    def _insert_item_scores(
        self,
        cursor: Any,
        observation_id: UUID,
        item_scores: Dict[UUID, Any],
        now: datetime,
    ) -> None:
        sql = """
            INSERT INTO OBSERVATION_ITEM_SCORES
                (ID, OBSERVATION_ID, RUBRIC_ITEM_ID, RATING, COMMENT, CREATED_AT, UPDATED_AT)
            VALUES (%s, %s, %s, %s, %s, %s, %s)
        """
        rows = [
            (
                str(uuid4()),
                str(observation_id),
                str(item_id),
                score.rating,
                score.comment,
                now,
                now,
            )
            for item_id, score in item_scores.items()
        ]
        if rows:
            cursor.executemany(sql, rows)

    def _get_item_scores(self, observation_ids: List[UUID]) -> Dict[UUID, List[Dict[str, Any]]]:
        if not observation_ids:
            return {}
        placeholders = ", ".join(["%s"] * len(observation_ids))
        sql = f"""
            SELECT ID, OBSERVATION_ID, RUBRIC_ITEM_ID, RATING, COMMENT
            FROM OBSERVATION_ITEM_SCORES
            WHERE OBSERVATION_ID IN ({placeholders})
        """
        rows = self.execute_query(sql, tuple(str(i) for i in observation_ids), fetch_all=True) or []

        grouped: Dict[UUID, List[Dict[str, Any]]] = {}
        for row in rows:
            observation_id = UUID(row["OBSERVATION_ID"])
            grouped.setdefault(observation_id, []).append(
                {
                    "id": UUID(row["ID"]),
                    "observation_id": observation_id,
                    "rubric_item_id": UUID(row["RUBRIC_ITEM_ID"]),
                    "rating": int(row["RATING"]) if row["RATING"] is not None else None,
                    "comment": row["COMMENT"],
                }
            )
        return grouped

    def _row_to_dict(self, row: Dict[str, Any]) -> Dict[str, Any]:
        """Convert Snowflake row to observation dict."""
        return {
            "id": UUID(row["ID"]),
            "branch_id": UUID(row["BRANCH_ID"]),
            "teacher_id": UUID(row["TEACHER_ID"]),
            "observer_id": UUID(row["OBSERVER_ID"]),
            "reviewer_id": self.str_to_uuid(row["REVIEWER_ID"]),
            "class_section": row["CLASS_SECTION"],
            "total_students": int(row["TOTAL_STUDENTS"]),
            "present_students": int(row["PRESENT_STUDENTS"]),
            "subject": row["SUBJECT"],
            "topic": row["TOPIC"],
            "date": row["OBSERVATION_DATE"],
            "time": row["OBSERVATION_TIME"],
            "lesson_plan_attached": bool(row["LESSON_PLAN_ATTACHED"]),
            "strengths": row["STRENGTHS"],
            "areas_to_improve": row["AREAS_TO_IMPROVE"],
            "suggestions": row["SUGGESTIONS"],
            "overall_override_rating": row["OVERALL_OVERRIDE_RATING"],
            "override_reason": row["OVERRIDE_REASON"],
            "status": ObservationStatus(row["STATUS"]),
            "reviewer_comments": row["REVIEWER_COMMENTS"],
            "reviewed_at": self.normalize_timestamp(row["REVIEWED_AT"]),
            "finalized_at": self.normalize_timestamp(row["FINALIZED_AT"]),
            "created_at": self.normalize_timestamp(row["CREATED_AT"]),
            "updated_at": self.normalize_timestamp(row["UPDATED_AT"]),
        }
