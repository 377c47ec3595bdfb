from typing import Dict, List
from uuid import UUID

from pydantic import Field

from app.models.common import ApiModel


class ReportSummary(ApiModel):
    total_observations: int = 0
    total_teachers: int = 0
    total_branches: int = 0
    average_score: float = Field(default=0.0, description="Mean item rating; unrated items count as 0")


class DomainAverage(ApiModel):
    """
    Mean of the non-null ratings given under one rubric domain.
    """

    total: int = 0
    count: int = 0
    average: float = 0.0


class TeacherPerformance(ApiModel):
    teacher_id: UUID
    branch_id: UUID
    observation_count: int
    average_score: float


class MonthlyTrend(ApiModel):
    month: str = Field(..., description="Observation month as YYYY-MM")
    observation_count: int
    average_score: float


class BranchPerformance(ApiModel):
    branch_id: UUID
    observation_count: int
    teacher_count: int = Field(..., description="Distinct teachers observed at the branch")
    average_score: float


class AdminReport(ApiModel):
    """
    Aggregate statistics over every observation matching the report filters.
    """

    summary: ReportSummary
    domain_scores: Dict[str, DomainAverage] = Field(default_factory=dict)
    top_teachers: List[TeacherPerformance] = Field(default_factory=list)
    monthly_trends: List[MonthlyTrend] = Field(default_factory=list)
    branch_performance: List[BranchPerformance] = Field(default_factory=list)
