"""
Observation Router - Classroom Observation Platform
app/routers/observations.py

Observation CRUD, lifecycle transitions, score reports and validation.
"""

from datetime import date
from typing import Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Query, Response, status

from app.core.dependencies import (
    get_actor,
    get_lifecycle_controller,
    get_observation_service,
    rate_limit,
)
from app.models.enumerations import ObservationStatus
from app.models.observation import (
    Actor,
    ObservationCreate,
    ObservationResponse,
    ObservationUpdate,
    PaginatedObservationResponse,
    TransitionRequest,
    TransitionResponse,
)
from app.models.scoring import ObservationValidationInput, ScoreReport, ValidationResult
from app.scoring.validation import validate_observation_data
from app.services.lifecycle import LifecycleController
from app.services.observation_service import ObservationService

router = APIRouter(prefix="/api/v1/observations", tags=["Observations"])


@router.post(
    "",
    response_model=ObservationResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Create a draft observation",
    description="Creates a new observation in draft status. The caller becomes the observer of record.",
    dependencies=[Depends(rate_limit("create"))],
)
async def create_observation(
    payload: ObservationCreate,
    actor: Actor = Depends(get_actor),
    observation_service: ObservationService = Depends(get_observation_service),
) -> ObservationResponse:
    return observation_service.create(payload, actor)


@router.get(
    "",
    response_model=PaginatedObservationResponse,
    summary="List observations (paginated)",
    description="Newest first. Status filter accepts either casing.",
    dependencies=[Depends(rate_limit("list"))],
)
async def list_observations(
    page: int = Query(default=1, ge=1),
    page_size: int = Query(default=20, ge=1, le=100, alias="pageSize"),
    status_filter: Optional[ObservationStatus] = Query(default=None, alias="status"),
    branch_id: Optional[UUID] = Query(default=None, alias="branchId"),
    teacher_id: Optional[UUID] = Query(default=None, alias="teacherId"),
    observer_id: Optional[UUID] = Query(default=None, alias="observerId"),
    date_from: Optional[date] = Query(default=None, alias="dateFrom"),
    date_to: Optional[date] = Query(default=None, alias="dateTo"),
    actor: Actor = Depends(get_actor),
    observation_service: ObservationService = Depends(get_observation_service),
) -> PaginatedObservationResponse:
    items, total = observation_service.list(
        page=page,
        page_size=page_size,
        status=status_filter,
        branch_id=branch_id,
        teacher_id=teacher_id,
        observer_id=observer_id,
        date_from=date_from,
        date_to=date_to,
    )
    total_pages = (total + page_size - 1) // page_size if total > 0 else 0
    return PaginatedObservationResponse(
        items=items,
        total=total,
        page=page,
        page_size=page_size,
        total_pages=total_pages,
    )


@router.post(
    "/validate",
    response_model=ValidationResult,
    summary="Validate unsaved observation data",
    description="Runs every rule and returns the full error list; never rejects the request.",
)
async def validate_payload(
    payload: ObservationValidationInput,
    actor: Actor = Depends(get_actor),
) -> ValidationResult:
    return validate_observation_data(payload)


@router.get(
    "/{id}",
    response_model=ObservationResponse,
    summary="Get observation by ID",
)
async def get_observation(
    id: UUID,
    actor: Actor = Depends(get_actor),
    observation_service: ObservationService = Depends(get_observation_service),
) -> ObservationResponse:
    return observation_service.get(id)


@router.put(
    "/{id}",
    response_model=ObservationResponse,
    summary="Update an observation",
    description="Partial update by the observer of record or an admin. Finalized observations are read-only.",
)
async def update_observation(
    id: UUID,
    payload: ObservationUpdate,
    actor: Actor = Depends(get_actor),
    observation_service: ObservationService = Depends(get_observation_service),
) -> ObservationResponse:
    return observation_service.update(id, payload, actor)


@router.delete(
    "/{id}",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Delete an observation",
    description="Deletes the observation with its item scores and attachments.",
)
async def delete_observation(
    id: UUID,
    actor: Actor = Depends(get_actor),
    observation_service: ObservationService = Depends(get_observation_service),
) -> Response:
    observation_service.delete(id, actor)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.put(
    "/{id}/status",
    response_model=TransitionResponse,
    summary="Change observation status",
    description="SUBMIT, REVIEW, FINALIZE or RETURN_TO_DRAFT.",
    dependencies=[Depends(rate_limit("transition"))],
)
async def change_status(
    id: UUID,
    payload: TransitionRequest,
    actor: Actor = Depends(get_actor),
    controller: LifecycleController = Depends(get_lifecycle_controller),
) -> TransitionResponse:
    return controller.transition(id, payload.action, actor, payload.reviewer_comments)


@router.get(
    "/{id}/report",
    response_model=ScoreReport,
    summary="Score report",
    description="Domain scores, grand total and overall rating. Items archived since the observation was scored still count.",
)
async def get_report(
    id: UUID,
    actor: Actor = Depends(get_actor),
    observation_service: ObservationService = Depends(get_observation_service),
) -> ScoreReport:
    return observation_service.report(id)


@router.post(
    "/{id}/validate",
    response_model=ValidationResult,
    summary="Validate a stored observation",
)
async def validate_observation(
    id: UUID,
    actor: Actor = Depends(get_actor),
    observation_service: ObservationService = Depends(get_observation_service),
) -> ValidationResult:
    observation = observation_service.get(id)
    return validate_observation_data(
        ObservationValidationInput(
            total_students=observation.total_students,
            present_students=observation.present_students,
            item_scores={
                str(s.rubric_item_id): {"rating": s.rating, "comment": s.comment}
                for s in observation.item_scores
            },
        )
    )
