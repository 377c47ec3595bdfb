"""
Rubric Service - Classroom Observation Platform
app/services/rubric_service.py

Reads the active rubric (through the Redis cache when available) and
applies admin edits. Every edit invalidates the cached snapshot and is
audited.
"""
import logging
from typing import Any, Dict, Iterable, Optional
from uuid import UUID

from app.config import settings
from app.core.exceptions import (
    AuthorizationError,
    DuplicateEntityException,
    EntityNotFoundException,
    ValidationFailedError,
)
from app.models.enumerations import UserRole
from app.models.observation import Actor
from app.models.rubric import (
    RubricDomain,
    RubricDomainCreate,
    RubricDomainUpdate,
    RubricItem,
    RubricItemCreate,
    RubricItemUpdate,
    RubricSnapshot,
)
from app.repositories.rubric_repository import RubricRepository
from app.services.audit_log import AuditLogger
from app.services.cache import RUBRIC_CACHE_KEY, TTL_RUBRIC
from app.services.redis_cache import RedisCache

logger = logging.getLogger(__name__)


def _require_admin(actor: Actor) -> None:
    if actor.role != UserRole.ADMIN:
        raise AuthorizationError("Only admins can edit the rubric")


class RubricService:
    def __init__(
        self,
        repository: RubricRepository,
        audit_logger: AuditLogger,
        cache: Optional[RedisCache] = None,
    ):
        self.repository = repository
        self.audit_logger = audit_logger
        self.cache = cache

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def get_active_rubric(self) -> RubricSnapshot:
        """Active domains and items, cached; one snapshot per call."""
        if self.cache:
            try:
                cached = self.cache.get(RUBRIC_CACHE_KEY, RubricSnapshot)
                if cached:
                    return cached
            except Exception as e:
                logger.warning("Rubric cache read failed: %s", e)

        snapshot = RubricSnapshot(
            domains=[RubricDomain(**d) for d in self.repository.get_active_domains()]
        )

        if self.cache:
            try:
                self.cache.set(RUBRIC_CACHE_KEY, snapshot, TTL_RUBRIC)
            except Exception as e:
                logger.warning("Rubric cache write failed: %s", e)
        return snapshot

    def get_rubric_for_items(self, item_ids: Iterable[UUID]) -> RubricSnapshot:
        """
        Active rubric plus any of item_ids that have since been archived,
        placed under their own (possibly archived) domains. Reports on
        existing observations score against this so archiving never
        changes a stored score.
        """
        snapshot = self.get_active_rubric()
        known = snapshot.item_index()
        missing = [i for i in dict.fromkeys(item_ids) if i not in known]
        if not missing:
            return snapshot

        archived_items = [RubricItem(**i) for i in self.repository.get_items_by_ids(missing)]
        if not archived_items:
            return snapshot

        domains = {d.id: d.model_copy(update={"items": list(d.items)}) for d in snapshot.domains}
        absent = [i.domain_id for i in archived_items if i.domain_id not in domains]
        for row in self.repository.get_domains_by_ids(list(dict.fromkeys(absent))):
            domains[row["id"]] = RubricDomain(**row)

        for item in archived_items:
            domain = domains.get(item.domain_id)
            if domain is None:
                logger.warning("Rubric item %s references missing domain %s", item.id, item.domain_id)
                continue
            domain.items.append(item)

        for domain in domains.values():
            domain.items.sort(key=lambda i: (i.order_index, i.number))
        logger.debug("Resolved %d archived rubric items", len(archived_items))
        return RubricSnapshot(domains=sorted(domains.values(), key=lambda d: d.order_index))

    def _invalidate(self) -> None:
        if self.cache:
            try:
                self.cache.delete(RUBRIC_CACHE_KEY)
            except Exception as e:
                logger.warning("Rubric cache invalidation failed: %s", e)

    def _get_domain(self, domain_id: UUID) -> Dict[str, Any]:
        domain = self.repository.get_domain(domain_id)
        if not domain or not domain["is_active"]:
            raise EntityNotFoundException("RubricDomain", str(domain_id))
        return domain

    def _get_item(self, item_id: UUID) -> Dict[str, Any]:
        item = self.repository.get_item(item_id)
        if not item or not item["is_active"]:
            raise EntityNotFoundException("RubricItem", str(item_id))
        return item

    # ------------------------------------------------------------------
    # Domains
    # ------------------------------------------------------------------

    def create_domain(self, payload: RubricDomainCreate, actor: Actor) -> RubricDomain:
        _require_admin(actor)
        if self.repository.domain_order_taken(payload.order_index):
            raise DuplicateEntityException(
                f"A domain with order index {payload.order_index} already exists"
            )
        domain = self.repository.create_domain(
            name=payload.name.strip(),
            description=payload.description.strip(),
            order_index=payload.order_index,
        )
        self._invalidate()
        self.audit_logger.record(
            "RubricDomain", domain["id"], "CREATE", actor.id, {"action": "Created rubric domain", "name": domain["name"]}
        )
        return RubricDomain(**domain)

    def update_domain(self, domain_id: UUID, payload: RubricDomainUpdate, actor: Actor) -> RubricDomain:
        _require_admin(actor)
        self._get_domain(domain_id)
        changes = payload.model_dump(exclude_unset=True, exclude_none=True)
        if "order_index" in changes and self.repository.domain_order_taken(
            changes["order_index"], exclude_id=domain_id
        ):
            raise DuplicateEntityException(
                f"A domain with order index {changes['order_index']} already exists"
            )
        domain = self.repository.update_domain(domain_id, changes)
        self._invalidate()
        self.audit_logger.record(
            "RubricDomain", domain_id, "UPDATE", actor.id, {"action": "Updated rubric domain", "changes": changes}
        )
        return RubricDomain(**domain)

    def archive_domain(self, domain_id: UUID, actor: Actor) -> None:
        _require_admin(actor)
        self._get_domain(domain_id)
        self.repository.archive_domain(domain_id)
        self._invalidate()
        self.audit_logger.record(
            "RubricDomain", domain_id, "ARCHIVE", actor.id, {"action": "Archived rubric domain"}
        )

    # ------------------------------------------------------------------
    # Items
    # ------------------------------------------------------------------

    def create_item(self, payload: RubricItemCreate, actor: Actor) -> RubricItem:
        _require_admin(actor)
        self._get_domain(payload.domain_id)

        max_score = payload.max_score or settings.RUBRIC_DEFAULT_MAX_SCORE
        scale_max = payload.scale_max if payload.scale_max is not None else max_score
        self._check_scale(payload.scale_min, scale_max, max_score)

        item = self.repository.create_item(
            domain_id=payload.domain_id,
            prompt=payload.prompt.strip(),
            number=payload.number,
            order_index=payload.order_index,
            max_score=max_score,
            scale_min=payload.scale_min,
            scale_max=scale_max,
        )
        self._invalidate()
        self.audit_logger.record(
            "RubricItem", item["id"], "CREATE", actor.id, {"action": "Created rubric item", "domainId": str(payload.domain_id)}
        )
        return RubricItem(**item)

    def update_item(self, item_id: UUID, payload: RubricItemUpdate, actor: Actor) -> RubricItem:
        _require_admin(actor)
        current = self._get_item(item_id)
        changes = payload.model_dump(exclude_unset=True, exclude_none=True)
        merged = {**current, **changes}
        self._check_scale(merged["scale_min"], merged["scale_max"], merged["max_score"])

        item = self.repository.update_item(item_id, changes)
        self._invalidate()
        self.audit_logger.record(
            "RubricItem", item_id, "UPDATE", actor.id, {"action": "Updated rubric item", "changes": changes}
        )
        return RubricItem(**item)

    def archive_item(self, item_id: UUID, actor: Actor) -> None:
        _require_admin(actor)
        self._get_item(item_id)
        self.repository.archive_item(item_id)
        self._invalidate()
        self.audit_logger.record(
            "RubricItem", item_id, "ARCHIVE", actor.id, {"action": "Archived rubric item"}
        )

    def _check_scale(self, scale_min: int, scale_max: int, max_score: int) -> None:
        if scale_min > scale_max:
            raise ValidationFailedError(["scale_min must be <= scale_max"])
        if scale_max != max_score:
            logger.warning(
                "Rubric item scale_max (%s) differs from max_score (%s)", scale_max, max_score
            )
