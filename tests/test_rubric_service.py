# tests/test_rubric_service.py

"""
Rubric Service Tests - active rubric, admin edits, cache invalidation
"""

import logging
from unittest.mock import MagicMock
from uuid import uuid4

import pytest

from app.core.exceptions import (
    AuthorizationError,
    DuplicateEntityException,
    EntityNotFoundException,
    ValidationFailedError,
)
from app.models.rubric import (
    RubricDomainCreate,
    RubricDomainUpdate,
    RubricItemCreate,
    RubricItemUpdate,
    RubricSnapshot,
)
from app.services.cache import RUBRIC_CACHE_KEY
from app.services.rubric_service import RubricService
from tests.conftest import DELIVERY_ID, ITEM_A1, ITEM_A2, ITEM_B1, PLANNING_ID


class TestActiveRubric:

    def test_domains_and_items_ordered(self, rubric):
        assert [d.id for d in rubric.domains] == [PLANNING_ID, DELIVERY_ID]
        assert [i.id for i in rubric.domains[0].items] == [ITEM_A1, ITEM_A2]
        assert rubric.item_index()[ITEM_B1].max_score == 5

    def test_archived_domain_excluded(self, rubric_service, admin):
        rubric_service.archive_domain(DELIVERY_ID, admin)
        assert [d.id for d in rubric_service.get_active_rubric().domains] == [PLANNING_ID]

    def test_cache_hit_skips_repository(self, rubric_repo, audit_logger):
        cached = RubricSnapshot(domains=[])
        cache = MagicMock()
        cache.get.return_value = cached
        rubric_repo.get_active_domains = MagicMock()

        result = RubricService(rubric_repo, audit_logger, cache).get_active_rubric()

        assert result is cached
        rubric_repo.get_active_domains.assert_not_called()

    def test_cache_miss_populates(self, rubric_repo, audit_logger):
        cache = MagicMock()
        cache.get.return_value = None

        snapshot = RubricService(rubric_repo, audit_logger, cache).get_active_rubric()

        key, value, _ttl = cache.set.call_args.args
        assert key == RUBRIC_CACHE_KEY
        assert value == snapshot

    def test_cache_errors_fall_back_to_repository(self, rubric_repo, audit_logger):
        cache = MagicMock()
        cache.get.side_effect = ConnectionError("redis down")
        cache.set.side_effect = ConnectionError("redis down")

        snapshot = RubricService(rubric_repo, audit_logger, cache).get_active_rubric()

        assert len(snapshot.domains) == 2


class TestDomainAdmin:

    def test_create_domain(self, rubric_service, admin, audit_repo):
        domain = rubric_service.create_domain(
            RubricDomainCreate(name=" Assessment ", description="Checks", order_index=3), admin
        )
        assert domain.name == "Assessment"
        assert audit_repo.entries[-1].object_type == "RubricDomain"
        assert audit_repo.entries[-1].action == "CREATE"

    def test_duplicate_order_rejected(self, rubric_service, admin):
        with pytest.raises(DuplicateEntityException):
            rubric_service.create_domain(RubricDomainCreate(name="Other", order_index=1), admin)

    def test_update_domain_order_conflict(self, rubric_service, admin):
        with pytest.raises(DuplicateEntityException):
            rubric_service.update_domain(DELIVERY_ID, RubricDomainUpdate(order_index=1), admin)

    def test_update_domain_same_order_allowed(self, rubric_service, admin):
        domain = rubric_service.update_domain(
            PLANNING_ID, RubricDomainUpdate(name="Preparation", order_index=1), admin
        )
        assert domain.name == "Preparation"

    def test_non_admin_rejected(self, rubric_service, reviewer):
        with pytest.raises(AuthorizationError):
            rubric_service.create_domain(RubricDomainCreate(name="X", order_index=9), reviewer)

    def test_archive_missing_domain(self, rubric_service, admin):
        with pytest.raises(EntityNotFoundException):
            rubric_service.archive_domain(uuid4(), admin)

    def test_edit_invalidates_cache(self, rubric_repo, audit_logger, admin):
        cache = MagicMock()
        service = RubricService(rubric_repo, audit_logger, cache)
        service.archive_domain(DELIVERY_ID, admin)
        cache.delete.assert_called_once_with(RUBRIC_CACHE_KEY)


class TestItemAdmin:

    def test_create_item_defaults(self, rubric_service, admin):
        item = rubric_service.create_item(
            RubricItemCreate(domain_id=DELIVERY_ID, prompt="Checks understanding"), admin
        )
        assert (item.number, item.order_index) == (1, 1)
        assert (item.max_score, item.scale_min, item.scale_max) == (5, 0, 5)

    def test_create_item_in_missing_domain(self, rubric_service, admin):
        with pytest.raises(EntityNotFoundException):
            rubric_service.create_item(RubricItemCreate(domain_id=uuid4(), prompt="x"), admin)

    def test_scale_mismatch_only_warns(self, rubric_service, admin, caplog):
        with caplog.at_level(logging.WARNING, logger="app.services.rubric_service"):
            item = rubric_service.create_item(
                RubricItemCreate(domain_id=PLANNING_ID, prompt="x", max_score=4, scale_max=3), admin
            )
        assert item.scale_max == 3
        assert "differs from max_score" in caplog.text

    def test_update_item_merged_scale_checked(self, rubric_service, admin):
        with pytest.raises(ValidationFailedError):
            rubric_service.update_item(ITEM_A1, RubricItemUpdate(scale_min=5), admin)

    def test_update_item(self, rubric_service, admin):
        item = rubric_service.update_item(ITEM_A1, RubricItemUpdate(prompt="Objectives shared"), admin)
        assert item.prompt == "Objectives shared"

    def test_archived_item_cannot_be_edited(self, rubric_service, admin):
        rubric_service.archive_item(ITEM_A2, admin)
        with pytest.raises(EntityNotFoundException):
            rubric_service.update_item(ITEM_A2, RubricItemUpdate(prompt="x"), admin)
