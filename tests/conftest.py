# tests/conftest.py

"""
Pytest Fixtures - Shared test configuration for models, services and APIs

SEED RUBRIC ID REFERENCE:
- Domains: d1000000-... (Planning, order 1), d2000000-... (Delivery, order 2)
- Items:   e1000000-..., e2000000-... (Planning, maxScore 4)
           e3000000-... (Delivery, maxScore 5)
- Actors:  f1 admin, f2 observer, f3 second observer, f4 reviewer, f5 teacher
"""

import copy
from datetime import datetime, timedelta, timezone
from uuid import UUID, uuid4

import pytest
from fastapi.testclient import TestClient

from app.core.dependencies import (
    get_audit_log_repository,
    get_observation_repository,
    get_rubric_cache,
    get_rubric_repository,
)
from app.core.exceptions import ConcurrentModificationException
from app.main import app
from app.models.enumerations import ObservationStatus, UserRole
from app.models.observation import Actor
from app.services.audit_log import AuditLogger
from app.services.lifecycle import LifecycleController
from app.services.observation_service import ObservationService
from app.services.report_service import ReportService
from app.services.rubric_service import RubricService


# =============================================================================
# SEED IDS
# =============================================================================

PLANNING_ID = UUID("d1000000-0000-0000-0000-000000000001")
DELIVERY_ID = UUID("d2000000-0000-0000-0000-000000000002")
ITEM_A1 = UUID("e1000000-0000-0000-0000-000000000001")
ITEM_A2 = UUID("e2000000-0000-0000-0000-000000000002")
ITEM_B1 = UUID("e3000000-0000-0000-0000-000000000003")

ADMIN_ID = UUID("f1000000-0000-0000-0000-000000000001")
OBSERVER_ID = UUID("f2000000-0000-0000-0000-000000000002")
OTHER_OBSERVER_ID = UUID("f3000000-0000-0000-0000-000000000003")
REVIEWER_ID = UUID("f4000000-0000-0000-0000-000000000004")
TEACHER_ID = UUID("f5000000-0000-0000-0000-000000000005")

BRANCH_ID = UUID("a1000000-0000-0000-0000-000000000001")


def actor_headers(actor_id: UUID, role: str) -> dict:
    return {"X-Actor-Id": str(actor_id), "X-Actor-Role": role}


# =============================================================================
# IN-MEMORY REPOSITORIES
# =============================================================================

class FakeRubricRepository:
    """Dict-backed stand-in for RubricRepository."""

    def __init__(self):
        self.domains = {}
        self.items = {}

    def seed(self):
        self._add_domain(PLANNING_ID, "Planning", "Lesson preparation", 1)
        self._add_domain(DELIVERY_ID, "Delivery", "Classroom delivery", 2)
        self._add_item(ITEM_A1, PLANNING_ID, 1, "Objectives are stated", 1, 4)
        self._add_item(ITEM_A2, PLANNING_ID, 2, "Materials are ready", 2, 4)
        self._add_item(ITEM_B1, DELIVERY_ID, 1, "Pacing suits the class", 1, 5)
        return self

    def _add_domain(self, domain_id, name, description, order_index):
        self.domains[domain_id] = {
            "id": domain_id,
            "name": name,
            "description": description,
            "order_index": order_index,
            "is_active": True,
            "items": [],
        }

    def _add_item(self, item_id, domain_id, number, prompt, order_index, max_score,
                  scale_min=0, scale_max=None):
        self.items[item_id] = {
            "id": item_id,
            "domain_id": domain_id,
            "number": number,
            "prompt": prompt,
            "order_index": order_index,
            "max_score": max_score,
            "scale_min": scale_min,
            "scale_max": max_score if scale_max is None else scale_max,
            "is_active": True,
        }

    def get_active_domains(self):
        domains = sorted(
            (copy.deepcopy(d) for d in self.domains.values() if d["is_active"]),
            key=lambda d: d["order_index"],
        )
        by_id = {d["id"]: d for d in domains}
        for item in sorted(self.items.values(), key=lambda i: (i["order_index"], i["number"])):
            if item["is_active"] and item["domain_id"] in by_id:
                by_id[item["domain_id"]]["items"].append(copy.deepcopy(item))
        return domains

    def get_domain(self, domain_id):
        domain = self.domains.get(domain_id)
        return copy.deepcopy(domain) if domain else None

    def get_item(self, item_id):
        item = self.items.get(item_id)
        return copy.deepcopy(item) if item else None

    def get_items_by_ids(self, item_ids):
        return [copy.deepcopy(self.items[i]) for i in item_ids if i in self.items]

    def get_domains_by_ids(self, domain_ids):
        return [
            {**copy.deepcopy(self.domains[d]), "items": []}
            for d in domain_ids
            if d in self.domains
        ]

    def domain_order_taken(self, order_index, exclude_id=None):
        return any(
            d["order_index"] == order_index and d["is_active"] and d["id"] != exclude_id
            for d in self.domains.values()
        )

    def create_domain(self, name, description, order_index):
        domain_id = uuid4()
        self._add_domain(domain_id, name, description, order_index)
        return self.get_domain(domain_id)

    def update_domain(self, domain_id, update_data):
        self.domains[domain_id].update(update_data)
        return self.get_domain(domain_id)

    def archive_domain(self, domain_id):
        self.domains[domain_id]["is_active"] = False
        return 1

    def create_item(self, domain_id, prompt, number, order_index, max_score, scale_min, scale_max):
        item_id = uuid4()
        self._add_item(item_id, domain_id, number, prompt, order_index, max_score, scale_min, scale_max)
        return self.get_item(item_id)

    def update_item(self, item_id, update_data):
        self.items[item_id].update(update_data)
        return self.get_item(item_id)

    def archive_item(self, item_id):
        self.items[item_id]["is_active"] = False
        return 1


class FakeObservationRepository:
    """Dict-backed stand-in for ObservationRepository with the same CAS rules."""

    def __init__(self):
        self.rows = {}
        self._tick = datetime(2026, 1, 1, tzinfo=timezone.utc)

    def _now(self):
        self._tick += timedelta(seconds=1)
        return self._tick

    @staticmethod
    def _scores(observation_id, item_scores):
        return [
            {
                "id": uuid4(),
                "observation_id": observation_id,
                "rubric_item_id": item_id,
                "rating": score.rating,
                "comment": score.comment,
            }
            for item_id, score in (item_scores or {}).items()
        ]

    def create(self, observer_id, data, item_scores=None):
        observation_id = uuid4()
        now = self._now()
        row = dict(data)
        row.update(
            id=observation_id,
            observer_id=observer_id,
            reviewer_id=None,
            status=ObservationStatus.DRAFT,
            reviewer_comments=None,
            reviewed_at=None,
            finalized_at=None,
            created_at=now,
            updated_at=now,
            item_scores=self._scores(observation_id, item_scores),
        )
        self.rows[observation_id] = row
        return self.get_by_id(observation_id)

    def get_by_id(self, observation_id):
        row = self.rows.get(observation_id)
        return copy.deepcopy(row) if row else None

    def get_all(self, page=1, page_size=20, status=None, branch_id=None, teacher_id=None,
                observer_id=None, date_from=None, date_to=None):
        rows = [
            r for r in self.rows.values()
            if (status is None or r["status"] == status)
            and (branch_id is None or r["branch_id"] == branch_id)
            and (teacher_id is None or r["teacher_id"] == teacher_id)
            and (observer_id is None or r["observer_id"] == observer_id)
            and (date_from is None or r["date"] >= date_from)
            and (date_to is None or r["date"] <= date_to)
        ]
        rows.sort(key=lambda r: r["created_at"], reverse=True)
        start = (page - 1) * page_size
        return [copy.deepcopy(r) for r in rows[start:start + page_size]], len(rows)

    def _check(self, observation_id, expected_status):
        row = self.rows.get(observation_id)
        if row is None or row["status"] != expected_status:
            raise ConcurrentModificationException("Observation", str(observation_id))
        return row

    def update(self, observation_id, expected_status, update_data, item_scores=None):
        row = self._check(observation_id, expected_status)
        row.update(update_data)
        row["updated_at"] = self._now()
        if item_scores is not None:
            row["item_scores"] = self._scores(observation_id, item_scores)
        return self.get_by_id(observation_id)

    def transition_status(self, observation_id, expected_status, new_status, extra_fields=None):
        row = self._check(observation_id, expected_status)
        row.update(extra_fields or {})
        row["status"] = new_status
        row["updated_at"] = self._now()
        return self.get_by_id(observation_id)

    def delete(self, observation_id, expected_status):
        self._check(observation_id, expected_status)
        del self.rows[observation_id]


class FakeAuditLogRepository:
    """List-backed stand-in for AuditLogRepository."""

    def __init__(self, fail=False):
        self.entries = []
        self.fail = fail

    def create(self, entry):
        if self.fail:
            raise RuntimeError("audit store unavailable")
        self.entries.append(entry)
        return entry

    def get_all(self, page=1, page_size=50, object_type=None, object_id=None,
                user_id=None, action=None):
        rows = [
            e for e in reversed(self.entries)
            if (object_type is None or e.object_type == object_type)
            and (object_id is None or e.object_id == object_id)
            and (user_id is None or e.user_id == user_id)
            and (action is None or e.action == action)
        ]
        start = (page - 1) * page_size
        return rows[start:start + page_size], len(rows)


# =============================================================================
# REPOSITORY / SERVICE FIXTURES
# =============================================================================

@pytest.fixture
def rubric_repo():
    return FakeRubricRepository().seed()


@pytest.fixture
def observation_repo():
    return FakeObservationRepository()


@pytest.fixture
def audit_repo():
    return FakeAuditLogRepository()


@pytest.fixture
def audit_logger(audit_repo):
    return AuditLogger(audit_repo)


@pytest.fixture
def rubric_service(rubric_repo, audit_logger):
    return RubricService(rubric_repo, audit_logger, cache=None)


@pytest.fixture
def observation_service(observation_repo, rubric_service, audit_logger):
    return ObservationService(observation_repo, rubric_service, audit_logger)


@pytest.fixture
def report_service(observation_repo, rubric_service):
    return ReportService(observation_repo, rubric_service)


@pytest.fixture
def lifecycle(observation_repo, audit_logger):
    return LifecycleController(observation_repo, audit_logger)


@pytest.fixture
def rubric(rubric_service):
    """Active rubric snapshot of the seed data."""
    return rubric_service.get_active_rubric()


# =============================================================================
# ACTOR FIXTURES
# =============================================================================

@pytest.fixture
def admin():
    return Actor(id=ADMIN_ID, role=UserRole.ADMIN)


@pytest.fixture
def observer():
    return Actor(id=OBSERVER_ID, role=UserRole.OBSERVER)


@pytest.fixture
def other_observer():
    return Actor(id=OTHER_OBSERVER_ID, role=UserRole.OBSERVER)


@pytest.fixture
def reviewer():
    return Actor(id=REVIEWER_ID, role=UserRole.REVIEWER)


@pytest.fixture
def teacher():
    return Actor(id=TEACHER_ID, role=UserRole.TEACHER)


# =============================================================================
# OBSERVATION DATA FIXTURES
# =============================================================================

@pytest.fixture
def observation_payload():
    """Valid create body in wire (camelCase) form."""
    return {
        "branchId": str(BRANCH_ID),
        "teacherId": str(TEACHER_ID),
        "classSection": "  7-B  ",
        "subject": "Mathematics",
        "topic": "Fractions",
        "date": "2026-03-02",
        "time": "09:30",
        "totalStudents": 30,
        "presentStudents": 28,
        "lessonPlanAttached": True,
        "strengths": "Clear examples",
        "areasToImprove": "",
        "itemScores": {
            str(ITEM_A1): {"rating": 3, "comment": "Objectives on the board"},
        },
    }


@pytest.fixture
def make_observation(observation_service, observer):
    """Create a draft observation through the service; returns the response model."""
    from app.models.observation import ObservationCreate

    def _make(payload_overrides=None, actor=None, **fields):
        payload = {
            "branch_id": BRANCH_ID,
            "teacher_id": TEACHER_ID,
            "class_section": "7-B",
            "subject": "Mathematics",
            "topic": "Fractions",
            "date": "2026-03-02",
            "time": "09:30",
            "total_students": 30,
            "present_students": 28,
            "item_scores": {ITEM_A1: {"rating": 3}},
        }
        payload.update(payload_overrides or {})
        payload.update(fields)
        return observation_service.create(ObservationCreate(**payload), actor or observer)

    return _make


# =============================================================================
# FASTAPI TEST CLIENT FIXTURE
# =============================================================================

@pytest.fixture
def client(rubric_repo, observation_repo, audit_repo):
    """TestClient with in-memory repositories and no Redis."""
    app.dependency_overrides[get_rubric_repository] = lambda: rubric_repo
    app.dependency_overrides[get_observation_repository] = lambda: observation_repo
    app.dependency_overrides[get_audit_log_repository] = lambda: audit_repo
    app.dependency_overrides[get_rubric_cache] = lambda: None
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()
