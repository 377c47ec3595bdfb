# tests/test_repositories.py

"""
Repository Tests - Snowflake SQL, compare-and-swap writes, row mapping

Snowflake is replaced by a MagicMock connection; assertions are on the
statements and parameters sent to the cursor.
"""

from datetime import date, datetime
from unittest.mock import MagicMock, patch
from uuid import uuid4

import pytest
from snowflake.connector.errors import ProgrammingError

from app.core.exceptions import ConcurrentModificationException, DuplicateEntityException
from app.models.enumerations import ObservationStatus
from app.models.observation import ItemScoreInput
from app.repositories.observation_repository import ObservationRepository
from app.repositories.rubric_repository import RubricRepository


@pytest.fixture
def connection():
    conn = MagicMock()
    cursor = MagicMock()
    cursor.rowcount = 1
    conn.cursor.return_value = cursor
    with patch("app.repositories.base.get_snowflake_connection", return_value=conn):
        yield conn


def observation_row(observation_id, status="draft"):
    return {
        "ID": str(observation_id),
        "BRANCH_ID": str(uuid4()),
        "TEACHER_ID": str(uuid4()),
        "OBSERVER_ID": str(uuid4()),
        "REVIEWER_ID": None,
        "CLASS_SECTION": "7-B",
        "TOTAL_STUDENTS": 30,
        "PRESENT_STUDENTS": 28,
        "SUBJECT": "Mathematics",
        "TOPIC": "Fractions",
        "OBSERVATION_DATE": date(2026, 3, 2),
        "OBSERVATION_TIME": "09:30",
        "LESSON_PLAN_ATTACHED": True,
        "STRENGTHS": None,
        "AREAS_TO_IMPROVE": None,
        "SUGGESTIONS": None,
        "OVERALL_OVERRIDE_RATING": None,
        "OVERRIDE_REASON": None,
        "STATUS": status,
        "REVIEWER_COMMENTS": None,
        "REVIEWED_AT": None,
        "FINALIZED_AT": None,
        "CREATED_AT": datetime(2026, 3, 2, 9, 45),
        "UPDATED_AT": datetime(2026, 3, 2, 9, 45),
    }



# OBSERVATION REPOSITORY


class TestObservationRepository:

    def test_transition_is_compare_and_swap(self, connection):
        repo = ObservationRepository()
        observation_id = uuid4()
        with patch.object(repo, "get_by_id", return_value={}):
            repo.transition_status(
                observation_id, ObservationStatus.DRAFT, ObservationStatus.SUBMITTED
            )

        cursor = connection.cursor.return_value
        sql, params = cursor.execute.call_args_list[-1].args
        assert "WHERE ID = %s AND STATUS = %s" in sql
        assert "STATUS = %s" in sql.split("WHERE")[0]
        assert params[0] == "submitted"
        assert params[-2:] == (str(observation_id), "draft")
        connection.commit.assert_called_once()

    def test_lost_race_raises_and_rolls_back(self, connection):
        connection.cursor.return_value.rowcount = 0
        repo = ObservationRepository()

        with pytest.raises(ConcurrentModificationException):
            repo.transition_status(uuid4(), ObservationStatus.SUBMITTED, ObservationStatus.REVIEWED)

        connection.rollback.assert_called_once()
        connection.commit.assert_not_called()

    def test_update_replaces_item_scores(self, connection):
        repo = ObservationRepository()
        item_id = uuid4()
        with patch.object(repo, "get_by_id", return_value={}):
            repo.update(
                uuid4(),
                ObservationStatus.DRAFT,
                {"topic": "Decimals"},
                {item_id: ItemScoreInput(rating=3, comment="ok")},
            )

        cursor = connection.cursor.return_value
        statements = [c.args[0] for c in cursor.execute.call_args_list]
        assert any("DELETE FROM OBSERVATION_ITEM_SCORES" in s for s in statements)
        rows = cursor.executemany.call_args.args[1]
        assert rows[0][2:5] == (str(item_id), 3, "ok")

    def test_update_without_item_scores_keeps_them(self, connection):
        repo = ObservationRepository()
        with patch.object(repo, "get_by_id", return_value={}):
            repo.update(uuid4(), ObservationStatus.DRAFT, {"date": date(2026, 4, 1)})

        cursor = connection.cursor.return_value
        statements = [c.args[0] for c in cursor.execute.call_args_list]
        assert not any("DELETE" in s for s in statements)
        assert "OBSERVATION_DATE = %s" in statements[-1]
        cursor.executemany.assert_not_called()

    def test_delete_cascades(self, connection):
        repo = ObservationRepository()
        repo.delete(uuid4(), ObservationStatus.DRAFT)

        statements = [c.args[0] for c in connection.cursor.return_value.execute.call_args_list]
        assert statements[0] == "BEGIN"
        assert "DELETE FROM OBSERVATIONS" in statements[1]
        assert "OBSERVATION_ITEM_SCORES" in statements[2]
        assert "ATTACHMENTS" in statements[3]

    def test_get_by_id_maps_row(self, connection):
        repo = ObservationRepository()
        observation_id = uuid4()
        item_id = uuid4()
        cursor = connection.cursor.return_value
        cursor.fetchone.return_value = observation_row(observation_id, status="SUBMITTED")
        cursor.fetchall.return_value = [
            {
                "ID": str(uuid4()),
                "OBSERVATION_ID": str(observation_id),
                "RUBRIC_ITEM_ID": str(item_id),
                "RATING": 4,
                "COMMENT": None,
            }
        ]

        result = repo.get_by_id(observation_id)

        assert result["id"] == observation_id
        assert result["status"] == ObservationStatus.SUBMITTED
        assert result["created_at"].tzinfo is not None
        assert result["item_scores"][0]["rubric_item_id"] == item_id
        assert result["item_scores"][0]["rating"] == 4

    def test_get_by_id_missing(self, connection):
        connection.cursor.return_value.fetchone.return_value = None
        assert ObservationRepository().get_by_id(uuid4()) is None

    def test_unique_violation_translated(self, connection):
        connection.cursor.return_value.execute.side_effect = ProgrammingError("Duplicate key UNIQUE")
        with pytest.raises(DuplicateEntityException):
            ObservationRepository().get_by_id(uuid4())



# RUBRIC REPOSITORY


class TestRubricRepository:

    def test_active_domains_grouped_with_items(self, connection):
        domain_id = uuid4()
        cursor = connection.cursor.return_value
        cursor.fetchall.side_effect = [
            [{"ID": str(domain_id), "NAME": "Planning", "DESCRIPTION": None,
              "ORDER_INDEX": 1, "IS_ACTIVE": True}],
            [
                {"ID": str(uuid4()), "DOMAIN_ID": str(domain_id), "NUMBER": 1, "PROMPT": "p1",
                 "ORDER_INDEX": 1, "MAX_SCORE": 4, "SCALE_MIN": 0, "SCALE_MAX": 4, "IS_ACTIVE": True},
                {"ID": str(uuid4()), "DOMAIN_ID": str(uuid4()), "NUMBER": 1, "PROMPT": "orphan",
                 "ORDER_INDEX": 1, "MAX_SCORE": 4, "SCALE_MIN": 0, "SCALE_MAX": 4, "IS_ACTIVE": True},
            ],
        ]

        domains = RubricRepository().get_active_domains()

        assert len(domains) == 1
        assert domains[0]["description"] == ""
        assert [i["prompt"] for i in domains[0]["items"]] == ["p1"]

    def test_domain_order_taken_excludes_self(self, connection):
        cursor = connection.cursor.return_value
        cursor.fetchone.return_value = None
        domain_id = uuid4()

        assert RubricRepository().domain_order_taken(2, exclude_id=domain_id) is False
        sql, params = cursor.execute.call_args.args
        assert "ID <> %s" in sql
        assert params == (2, str(domain_id))

    def test_items_by_ids_skips_active_filter(self, connection):
        cursor = connection.cursor.return_value
        item_id, domain_id = uuid4(), uuid4()
        cursor.fetchall.return_value = [
            {"ID": str(item_id), "DOMAIN_ID": str(domain_id), "NUMBER": 2, "PROMPT": "old",
             "ORDER_INDEX": 2, "MAX_SCORE": 5, "SCALE_MIN": 0, "SCALE_MAX": 5, "IS_ACTIVE": False},
        ]

        items = RubricRepository().get_items_by_ids([item_id, uuid4()])

        sql, params = cursor.execute.call_args.args
        assert "ID IN (%s, %s)" in sql
        assert "IS_ACTIVE" not in sql.split("WHERE")[1]
        assert params[0] == str(item_id)
        assert items[0]["id"] == item_id
        assert items[0]["is_active"] is False

    def test_ids_lookup_with_no_ids_skips_query(self, connection):
        repo = RubricRepository()
        assert repo.get_items_by_ids([]) == []
        assert repo.get_domains_by_ids([]) == []
        connection.cursor.return_value.execute.assert_not_called()
