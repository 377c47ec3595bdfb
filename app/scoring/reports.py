# app/scoring/reports.py
"""
Admin Report Aggregation
------------------------
Cross-observation statistics for the admin dashboard.

Two averaging rules apply:
    summary, teacher, month and branch averages
        = Σ (rating or 0) / number of item score rows
    domain averages
        = Σ rating / number of non-null ratings

Averages are rounded half-up to 2 decimals. All functions are pure.
"""
from collections import defaultdict
from collections.abc import Mapping
from typing import Dict, Iterable, List, Sequence, Tuple
from uuid import UUID

import structlog

from app.models.observation import ObservationResponse
from app.models.report import (
    AdminReport,
    BranchPerformance,
    DomainAverage,
    MonthlyTrend,
    ReportSummary,
    TeacherPerformance,
)
from app.scoring.utils import to_decimal

logger = structlog.get_logger(__name__)

TOP_TEACHERS_LIMIT = 10
MONTHLY_TRENDS_LIMIT = 12
UNKNOWN_DOMAIN = "Unknown"


def _rating_sums(observations: Iterable[ObservationResponse]) -> Tuple[int, int]:
    total = 0
    count = 0
    for observation in observations:
        for score in observation.item_scores:
            total += score.rating or 0
            count += 1
    return total, count


def average_score(observations: Iterable[ObservationResponse]) -> float:
    total, count = _rating_sums(observations)
    if count == 0:
        return 0.0
    return float(to_decimal(total / count, places=2))


def calculate_domain_averages(
    observations: Iterable[ObservationResponse],
    item_domains: Mapping,
) -> Dict[str, DomainAverage]:
    """
    Args:
        observations: Observations to aggregate.
        item_domains: Mapping of rubric item id -> domain name. Items not in
                      the mapping are grouped under "Unknown".
    """
    totals: Dict[str, List[int]] = {}
    for observation in observations:
        for score in observation.item_scores:
            name = item_domains.get(score.rubric_item_id, UNKNOWN_DOMAIN)
            bucket = totals.setdefault(name, [0, 0])
            if score.rating is not None:
                bucket[0] += score.rating
                bucket[1] += 1

    return {
        name: DomainAverage(
            total=total,
            count=count,
            average=float(to_decimal(total / count, places=2)) if count else 0.0,
        )
        for name, (total, count) in totals.items()
    }


def calculate_top_teachers(
    observations: Sequence[ObservationResponse],
    limit: int = TOP_TEACHERS_LIMIT,
) -> List[TeacherPerformance]:
    by_teacher: Dict[UUID, List[ObservationResponse]] = defaultdict(list)
    for observation in observations:
        by_teacher[observation.teacher_id].append(observation)

    ranked = [
        TeacherPerformance(
            teacher_id=teacher_id,
            branch_id=group[0].branch_id,
            observation_count=len(group),
            average_score=average_score(group),
        )
        for teacher_id, group in by_teacher.items()
    ]
    ranked.sort(key=lambda t: (-t.average_score, str(t.teacher_id)))
    return ranked[:limit]


def calculate_monthly_trends(
    observations: Sequence[ObservationResponse],
    limit: int = MONTHLY_TRENDS_LIMIT,
) -> List[MonthlyTrend]:
    """Newest month first."""
    by_month: Dict[str, List[ObservationResponse]] = defaultdict(list)
    for observation in observations:
        by_month[observation.date.strftime("%Y-%m")].append(observation)

    months = sorted(by_month, reverse=True)[:limit]
    return [
        MonthlyTrend(
            month=month,
            observation_count=len(by_month[month]),
            average_score=average_score(by_month[month]),
        )
        for month in months
    ]


def calculate_branch_performance(
    observations: Sequence[ObservationResponse],
) -> List[BranchPerformance]:
    by_branch: Dict[UUID, List[ObservationResponse]] = defaultdict(list)
    for observation in observations:
        by_branch[observation.branch_id].append(observation)

    branches = [
        BranchPerformance(
            branch_id=branch_id,
            observation_count=len(group),
            teacher_count=len({o.teacher_id for o in group}),
            average_score=average_score(group),
        )
        for branch_id, group in by_branch.items()
    ]
    branches.sort(key=lambda b: (-b.average_score, str(b.branch_id)))
    return branches


def build_admin_report(
    observations: Sequence[ObservationResponse],
    item_domains: Mapping,
) -> AdminReport:
    report = AdminReport(
        summary=ReportSummary(
            total_observations=len(observations),
            total_teachers=len({o.teacher_id for o in observations}),
            total_branches=len({o.branch_id for o in observations}),
            average_score=average_score(observations),
        ),
        domain_scores=calculate_domain_averages(observations, item_domains),
        top_teachers=calculate_top_teachers(observations),
        monthly_trends=calculate_monthly_trends(observations),
        branch_performance=calculate_branch_performance(observations),
    )
    logger.debug(
        "admin_report_built",
        observations=report.summary.total_observations,
        domains=len(report.domain_scores),
    )
    return report
