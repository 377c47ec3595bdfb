"""
Observation Lifecycle - Classroom Observation Platform
app/services/lifecycle.py

State machine over Observation.status:

    draft ──SUBMIT──▶ submitted ──REVIEW──▶ reviewed ──FINALIZE──▶ finalized
      ▲                   │                    │
      └──RETURN_TO_DRAFT──┴────────────────────┘

finalized is terminal. Every permission question goes through the policy
functions below so that transitions, edits and deletes share one source
of truth for "who" and "from which state".
"""
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Callable, Dict, FrozenSet, Optional
from uuid import UUID

import structlog

from app.core.exceptions import (
    AuthorizationError,
    EntityNotFoundException,
    IncompleteObservationError,
    InvalidStateError,
)
from app.models.enumerations import ObservationStatus, TransitionAction, UserRole
from app.models.observation import Actor, ObservationResponse, TransitionResponse
from app.repositories.observation_repository import ObservationRepository
from app.services.audit_log import AuditLogger

logger = structlog.get_logger(__name__)

S = ObservationStatus
REVIEW_ROLES = frozenset({UserRole.REVIEWER, UserRole.ADMIN})


@dataclass(frozen=True)
class Transition:
    """Static definition of one lifecycle action."""

    sources: FrozenSet[ObservationStatus]
    target: ObservationStatus
    roles: FrozenSet[UserRole]
    observer_of_record_allowed: bool
    description: str
    state_error: str


TRANSITIONS: Dict[TransitionAction, Transition] = {
    TransitionAction.SUBMIT: Transition(
        sources=frozenset({S.DRAFT}),
        target=S.SUBMITTED,
        roles=frozenset({UserRole.ADMIN}),
        observer_of_record_allowed=True,
        description="Submitted observation for review",
        state_error="Only draft observations can be submitted",
    ),
    TransitionAction.REVIEW: Transition(
        sources=frozenset({S.SUBMITTED}),
        target=S.REVIEWED,
        roles=REVIEW_ROLES,
        observer_of_record_allowed=False,
        description="Reviewed observation",
        state_error="Only submitted observations can be reviewed",
    ),
    TransitionAction.FINALIZE: Transition(
        sources=frozenset({S.REVIEWED}),
        target=S.FINALIZED,
        roles=REVIEW_ROLES,
        observer_of_record_allowed=False,
        description="Finalized observation",
        state_error="Only reviewed observations can be finalized",
    ),
    TransitionAction.RETURN_TO_DRAFT: Transition(
        sources=frozenset({S.SUBMITTED, S.REVIEWED}),
        target=S.DRAFT,
        roles=REVIEW_ROLES,
        observer_of_record_allowed=False,
        description="Returned observation to draft",
        state_error="Only submitted or reviewed observations can be returned to draft",
    ),
}


# ---------------------------------------------------------------------------
# Policy
# ---------------------------------------------------------------------------

def is_authorized(
    actor_role: UserRole,
    action: TransitionAction,
    is_observer_of_record: bool = False,
) -> bool:
    transition = TRANSITIONS[action]
    if actor_role in transition.roles:
        return True
    return transition.observer_of_record_allowed and is_observer_of_record


def is_allowed_from(action: TransitionAction, current_state: ObservationStatus) -> bool:
    return current_state in TRANSITIONS[action].sources


def can_perform(
    actor_role: UserRole,
    action: TransitionAction,
    current_state: ObservationStatus,
    is_observer_of_record: bool = False,
) -> bool:
    """Single policy check consulted for every lifecycle transition."""
    return is_authorized(actor_role, action, is_observer_of_record) and is_allowed_from(
        action, current_state
    )


def ensure_can_modify(actor: Actor, observation: ObservationResponse, verb: str) -> None:
    """
    Edit/delete rule: observer of record or admin, and not finalized.

    Raises:
        AuthorizationError: actor is neither the observer of record nor an admin
        InvalidStateError: observation is finalized
    """
    if actor.role != UserRole.ADMIN and actor.id != observation.observer_id:
        raise AuthorizationError(
            f"Only the observer of record or an admin can {verb} this observation"
        )
    if observation.status == ObservationStatus.FINALIZED:
        raise InvalidStateError(f"Cannot {verb} finalized observation")


# ---------------------------------------------------------------------------
# Controller
# ---------------------------------------------------------------------------

class LifecycleController:
    """Validates and applies status transitions, then records an audit entry."""

    def __init__(
        self,
        repository: ObservationRepository,
        audit_logger: AuditLogger,
        clock: Optional[Callable[[], datetime]] = None,
    ):
        self.repository = repository
        self.audit_logger = audit_logger
        self.clock = clock or (lambda: datetime.now(timezone.utc))

    def transition(
        self,
        observation_id: UUID,
        action: TransitionAction,
        actor: Actor,
        reviewer_comments: Optional[str] = None,
    ) -> TransitionResponse:
        """
        Apply one lifecycle action.

        Raises:
            EntityNotFoundException: no such observation
            AuthorizationError: actor may not perform the action
            InvalidStateError: action not allowed from the current status
            IncompleteObservationError: SUBMIT with no rated items
            ConcurrentModificationException: status changed concurrently
        """
        data = self.repository.get_by_id(observation_id)
        if not data:
            raise EntityNotFoundException("Observation", str(observation_id))
        observation = ObservationResponse(**data)
        transition = TRANSITIONS[action]
        current = observation.status

        if not is_authorized(actor.role, action, actor.id == observation.observer_id):
            logger.info(
                "transition_rejected",
                observation_id=str(observation_id),
                action=action.value,
                actor_id=str(actor.id),
                actor_role=actor.role.value,
                reason="forbidden",
            )
            raise AuthorizationError(
                f"Role '{actor.role.value}' is not allowed to {action.value} this observation"
            )

        if not is_allowed_from(action, current):
            logger.info(
                "transition_rejected",
                observation_id=str(observation_id),
                action=action.value,
                current_status=current.value,
                reason="invalid_state",
            )
            raise InvalidStateError(transition.state_error)

        if action == TransitionAction.SUBMIT:
            # Zero counts as rated here, unlike in scoring
            rated = [s for s in observation.item_scores if s.rating is not None]
            if not rated:
                raise IncompleteObservationError(
                    "At least one rubric item must be rated before submission"
                )

        extra = self._side_effects(action, actor, reviewer_comments)
        self.repository.transition_status(observation_id, current, transition.target, extra)

        logger.info(
            "observation_transitioned",
            observation_id=str(observation_id),
            action=action.value,
            previous_status=current.value,
            new_status=transition.target.value,
            actor_id=str(actor.id),
        )

        self.audit_logger.record(
            object_type="Observation",
            object_id=observation_id,
            action=action.value,
            user_id=actor.id,
            diff={
                "action": transition.description,
                "previousStatus": current.value,
                "newStatus": transition.target.value,
            },
        )

        return TransitionResponse(
            id=observation_id,
            previous_status=current,
            new_status=transition.target,
        )

    def _side_effects(
        self,
        action: TransitionAction,
        actor: Actor,
        reviewer_comments: Optional[str],
    ) -> Dict[str, object]:
        if action == TransitionAction.REVIEW:
            return {
                "reviewer_id": actor.id,
                "reviewed_at": self.clock(),
                "reviewer_comments": reviewer_comments,
            }
        if action == TransitionAction.FINALIZE:
            return {"finalized_at": self.clock()}
        if action == TransitionAction.RETURN_TO_DRAFT:
            return {"reviewer_id": None, "reviewed_at": None, "reviewer_comments": None}
        return {}
