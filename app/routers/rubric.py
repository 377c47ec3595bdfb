"""
Rubric Router - Classroom Observation Platform
app/routers/rubric.py

Active rubric read and admin-only domain/item edits.
"""

from uuid import UUID

from fastapi import APIRouter, Depends, Response, status

from app.core.dependencies import get_actor, get_rubric_service, rate_limit
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
from app.services.rubric_service import RubricService

router = APIRouter(prefix="/api/v1/rubric", tags=["Rubric"])


@router.get(
    "",
    response_model=RubricSnapshot,
    summary="Get active rubric",
    description="Active domains ordered by orderIndex, each with its active items. Cached in Redis.",
    dependencies=[Depends(rate_limit("list"))],
)
async def get_rubric(
    actor: Actor = Depends(get_actor),
    rubric_service: RubricService = Depends(get_rubric_service),
) -> RubricSnapshot:
    return rubric_service.get_active_rubric()


#  Domains


@router.post(
    "/domains",
    response_model=RubricDomain,
    status_code=status.HTTP_201_CREATED,
    summary="Create a rubric domain (admin)",
    dependencies=[Depends(rate_limit("create"))],
)
async def create_domain(
    payload: RubricDomainCreate,
    actor: Actor = Depends(get_actor),
    rubric_service: RubricService = Depends(get_rubric_service),
) -> RubricDomain:
    return rubric_service.create_domain(payload, actor)


@router.put(
    "/domains/{domain_id}",
    response_model=RubricDomain,
    summary="Update a rubric domain (admin)",
)
async def update_domain(
    domain_id: UUID,
    payload: RubricDomainUpdate,
    actor: Actor = Depends(get_actor),
    rubric_service: RubricService = Depends(get_rubric_service),
) -> RubricDomain:
    return rubric_service.update_domain(domain_id, payload, actor)


@router.delete(
    "/domains/{domain_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Archive a rubric domain (admin)",
)
async def archive_domain(
    domain_id: UUID,
    actor: Actor = Depends(get_actor),
    rubric_service: RubricService = Depends(get_rubric_service),
) -> Response:
    rubric_service.archive_domain(domain_id, actor)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


#  Items


@router.post(
    "/items",
    response_model=RubricItem,
    status_code=status.HTTP_201_CREATED,
    summary="Create a rubric item (admin)",
    dependencies=[Depends(rate_limit("create"))],
)
async def create_item(
    payload: RubricItemCreate,
    actor: Actor = Depends(get_actor),
    rubric_service: RubricService = Depends(get_rubric_service),
) -> RubricItem:
    return rubric_service.create_item(payload, actor)


@router.put(
    "/items/{item_id}",
    response_model=RubricItem,
    summary="Update a rubric item (admin)",
)
async def update_item(
    item_id: UUID,
    payload: RubricItemUpdate,
    actor: Actor = Depends(get_actor),
    rubric_service: RubricService = Depends(get_rubric_service),
) -> RubricItem:
    return rubric_service.update_item(item_id, payload, actor)


@router.delete(
    "/items/{item_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Archive a rubric item (admin)",
)
async def archive_item(
    item_id: UUID,
    actor: Actor = Depends(get_actor),
    rubric_service: RubricService = Depends(get_rubric_service),
) -> Response:
    rubric_service.archive_item(item_id, actor)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
