"""
Report Router - Classroom Observation Platform
app/routers/reports.py

Admin-only statistics across observations.
"""

from datetime import date
from typing import Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Query

from app.core.dependencies import get_actor, get_report_service, rate_limit
from app.models.observation import Actor
from app.models.report import AdminReport
from app.services.report_service import ReportService

router = APIRouter(prefix="/api/v1/reports", tags=["Reports"])


@router.get(
    "",
    response_model=AdminReport,
    summary="Observation statistics (admin)",
    description=(
        "Summary, per-domain averages, top teachers, monthly trends and branch "
        "performance over observations matching the optional branch and date filters."
    ),
    dependencies=[Depends(rate_limit("list"))],
)
async def get_reports(
    branch_id: Optional[UUID] = Query(default=None, alias="branchId"),
    date_from: Optional[date] = Query(default=None, alias="dateFrom"),
    date_to: Optional[date] = Query(default=None, alias="dateTo"),
    actor: Actor = Depends(get_actor),
    report_service: ReportService = Depends(get_report_service),
) -> AdminReport:
    return report_service.generate(actor, branch_id=branch_id, date_from=date_from, date_to=date_to)
