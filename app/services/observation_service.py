"""
Observation Service - Classroom Observation Platform
app/services/observation_service.py

Create, read, edit and delete observations, and build their score reports.
Status changes go through LifecycleController, never through update().
"""
from datetime import date
from typing import Any, Dict, Iterable, List, Optional, Tuple
from uuid import UUID

import structlog

from app.core.exceptions import (
    AuthorizationError,
    EntityNotFoundException,
    ValidationFailedError,
)
from app.models.enumerations import ObservationStatus, UserRole
from app.models.observation import (
    Actor,
    ItemScoreInput,
    ObservationCreate,
    ObservationResponse,
    ObservationUpdate,
)
from app.models.rubric import RubricSnapshot
from app.models.scoring import ScoreReport
from app.repositories.observation_repository import ObservationRepository
from app.scoring.calculator import build_score_report
from app.scoring.validation import PRESENT_EXCEEDS_ERROR
from app.services.audit_log import AuditLogger
from app.services.lifecycle import ensure_can_modify
from app.services.rubric_service import RubricService

logger = structlog.get_logger(__name__)

CREATOR_ROLES = frozenset({UserRole.OBSERVER, UserRole.ADMIN})


def check_item_scores(
    item_scores: Dict[UUID, ItemScoreInput],
    rubric: RubricSnapshot,
) -> List[str]:
    """Errors for unknown rubric items and ratings outside the item's scale."""
    items = rubric.item_index()
    errors = []
    for item_id, score in item_scores.items():
        item = items.get(item_id)
        if item is None:
            errors.append(f"Unknown rubric item {item_id}")
            continue
        if score.rating is not None and not item.scale_min <= score.rating <= item.scale_max:
            errors.append(
                f"Rating for item {item_id} must be between {item.scale_min} and {item.scale_max}"
            )
    return errors


class ObservationService:
    def __init__(
        self,
        repository: ObservationRepository,
        rubric_service: RubricService,
        audit_logger: AuditLogger,
    ):
        self.repository = repository
        self.rubric_service = rubric_service
        self.audit_logger = audit_logger

    def get(self, observation_id: UUID) -> ObservationResponse:
        data = self.repository.get_by_id(observation_id)
        if not data:
            raise EntityNotFoundException("Observation", str(observation_id))
        return ObservationResponse(**data)

    def list(
        self,
        page: int = 1,
        page_size: int = 20,
        status: Optional[ObservationStatus] = None,
        branch_id: Optional[UUID] = None,
        teacher_id: Optional[UUID] = None,
        observer_id: Optional[UUID] = None,
        date_from: Optional[date] = None,
        date_to: Optional[date] = None,
    ) -> Tuple[List[ObservationResponse], int]:
        rows, total = self.repository.get_all(
            page=page,
            page_size=page_size,
            status=status,
            branch_id=branch_id,
            teacher_id=teacher_id,
            observer_id=observer_id,
            date_from=date_from,
            date_to=date_to,
        )
        return [ObservationResponse(**r) for r in rows], total

    def create(self, payload: ObservationCreate, actor: Actor) -> ObservationResponse:
        if actor.role not in CREATOR_ROLES:
            raise AuthorizationError("Only observers and admins can create observations")

        if payload.item_scores:
            errors = check_item_scores(payload.item_scores, self.rubric_service.get_active_rubric())
            if errors:
                raise ValidationFailedError(errors)

        data = payload.model_dump(exclude={"item_scores"})
        created = ObservationResponse(
            **self.repository.create(actor.id, data, payload.item_scores)
        )

        logger.info("observation_created", observation_id=str(created.id), observer_id=str(actor.id))
        self.audit_logger.record(
            "Observation", created.id, "CREATE", actor.id, {"action": "Created new observation"}
        )
        return created

    def update(
        self,
        observation_id: UUID,
        payload: ObservationUpdate,
        actor: Actor,
    ) -> ObservationResponse:
        current = self.get(observation_id)
        ensure_can_modify(actor, current, "edit")

        changes: Dict[str, Any] = payload.model_dump(exclude_unset=True, exclude={"item_scores"})
        for field in ("strengths", "areas_to_improve", "suggestions", "override_reason"):
            if field in changes and not changes[field]:
                changes[field] = None
        for field in ("class_section", "subject", "topic", "date", "time",
                      "total_students", "present_students", "lesson_plan_attached"):
            if field in changes and changes[field] is None:
                del changes[field]

        errors: List[str] = []
        total = changes.get("total_students", current.total_students)
        present = changes.get("present_students", current.present_students)
        if present > total:
            errors.append(PRESENT_EXCEEDS_ERROR)

        item_scores = payload.item_scores
        if item_scores:
            # Ratings already stored on since-archived items stay editable.
            rubric = self.rubric_service.get_rubric_for_items(current.score_map().keys())
            errors.extend(check_item_scores(item_scores, rubric))
        else:
            item_scores = None
        if errors:
            raise ValidationFailedError(errors)

        updated = ObservationResponse(
            **self.repository.update(observation_id, current.status, changes, item_scores)
        )

        self.audit_logger.record(
            "Observation",
            observation_id,
            "UPDATE",
            actor.id,
            {
                "action": "Updated observation",
                "fields": sorted(changes),
                "itemScoresReplaced": item_scores is not None,
            },
        )
        return updated

    def delete(self, observation_id: UUID, actor: Actor) -> None:
        current = self.get(observation_id)
        ensure_can_modify(actor, current, "delete")

        self.repository.delete(observation_id, current.status)

        logger.info("observation_deleted", observation_id=str(observation_id), actor_id=str(actor.id))
        self.audit_logger.record(
            "Observation", observation_id, "DELETE", actor.id, {"action": "Deleted observation"}
        )

    def report(
        self,
        observation_id: UUID,
        thresholds: Optional[Iterable[Any]] = None,
    ) -> ScoreReport:
        observation = self.get(observation_id)
        rubric = self.rubric_service.get_rubric_for_items(observation.score_map().keys())
        return build_score_report(rubric.domains, observation.score_map(), thresholds)
