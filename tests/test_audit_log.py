# tests/test_audit_log.py

"""
Audit Log Tests - best-effort logger and Snowflake repository SQL
"""

import json
import logging
from unittest.mock import MagicMock, patch
from uuid import uuid4

from app.models.audit import AuditLogEntry
from app.repositories.audit_repository import AuditLogRepository
from app.services.audit_log import AuditLogger
from tests.conftest import FakeAuditLogRepository


class TestAuditLogger:

    def test_record_returns_entry(self):
        repo = FakeAuditLogRepository()
        object_id, user_id = uuid4(), uuid4()

        entry = AuditLogger(repo).record("Observation", object_id, "CREATE", user_id, {"action": "x"})

        assert entry is repo.entries[0]
        assert entry.object_id == str(object_id)
        assert entry.user_id == str(user_id)
        assert entry.diff == {"action": "x"}

    def test_failure_is_logged_and_swallowed(self, caplog):
        with caplog.at_level(logging.ERROR, logger="app.services.audit_log"):
            entry = AuditLogger(FakeAuditLogRepository(fail=True)).record(
                "Observation", uuid4(), "DELETE", uuid4()
            )
        assert entry is None
        assert "Error creating audit log" in caplog.text

    def test_entry_serializes_camel_case(self):
        entry = AuditLogEntry(object_type="RubricItem", object_id="1", action="ARCHIVE", user_id="2")
        data = entry.model_dump(by_alias=True)
        assert {"objectType", "objectId", "userId", "createdAt"} <= set(data)


class TestAuditLogRepository:

    def test_create_writes_json_diff(self):
        repo = AuditLogRepository()
        entry = AuditLogEntry(object_type="Observation", object_id="1", action="SUBMIT",
                              user_id="2", diff={"newStatus": "submitted"})
        with patch.object(repo, "execute_query", return_value=1) as execute:
            repo.create(entry)

        sql, params = execute.call_args.args
        assert "PARSE_JSON" in sql
        assert json.loads(params[5]) == {"newStatus": "submitted"}

    def test_get_all_applies_filters(self):
        repo = AuditLogRepository()
        execute = MagicMock(side_effect=[{"TOTAL": 0}, []])
        with patch.object(repo, "execute_query", execute):
            entries, total = repo.get_all(page=2, page_size=10, object_type="Observation", action="SUBMIT")

        assert (entries, total) == ([], 0)
        count_sql, count_params = execute.call_args_list[0].args
        assert "OBJECT_TYPE = %s" in count_sql and "ACTION = %s" in count_sql
        assert count_params == ("Observation", "SUBMIT")
        data_params = execute.call_args_list[1].args[1]
        assert data_params[-2:] == (10, 10)
