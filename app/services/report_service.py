"""
Report Service - Classroom Observation Platform
app/services/report_service.py

Admin-only statistics across observations: overall and per-domain averages,
top teachers, monthly trends and branch performance.
"""
from datetime import date
from typing import Dict, List, Optional
from uuid import UUID

import structlog

from app.core.exceptions import AuthorizationError
from app.models.enumerations import UserRole
from app.models.observation import Actor, ObservationResponse
from app.models.report import AdminReport
from app.repositories.observation_repository import ObservationRepository
from app.scoring.reports import build_admin_report
from app.services.rubric_service import RubricService

logger = structlog.get_logger(__name__)

FETCH_PAGE_SIZE = 100


class ReportService:
    def __init__(
        self,
        repository: ObservationRepository,
        rubric_service: RubricService,
    ):
        self.repository = repository
        self.rubric_service = rubric_service

    def _fetch_all(
        self,
        branch_id: Optional[UUID],
        date_from: Optional[date],
        date_to: Optional[date],
    ) -> List[ObservationResponse]:
        observations: List[ObservationResponse] = []
        page = 1
        while True:
            rows, total = self.repository.get_all(
                page=page,
                page_size=FETCH_PAGE_SIZE,
                branch_id=branch_id,
                date_from=date_from,
                date_to=date_to,
            )
            observations.extend(ObservationResponse(**r) for r in rows)
            if not rows or len(observations) >= total:
                return observations
            page += 1

    def generate(
        self,
        actor: Actor,
        branch_id: Optional[UUID] = None,
        date_from: Optional[date] = None,
        date_to: Optional[date] = None,
    ) -> AdminReport:
        if actor.role != UserRole.ADMIN:
            raise AuthorizationError("Only admins can view reports")

        observations = self._fetch_all(branch_id, date_from, date_to)

        item_ids = {s.rubric_item_id for o in observations for s in o.item_scores}
        rubric = self.rubric_service.get_rubric_for_items(item_ids)
        item_domains: Dict[UUID, str] = {
            item.id: domain.name for domain in rubric.domains for item in domain.items
        }

        report = build_admin_report(observations, item_domains)
        logger.info(
            "admin_report_generated",
            actor_id=str(actor.id),
            branch_id=str(branch_id) if branch_id else None,
            observations=report.summary.total_observations,
        )
        return report
