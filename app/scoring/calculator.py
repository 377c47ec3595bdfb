# app/scoring/calculator.py
"""
Rubric Score Calculator
-----------------------
Turns a rubric snapshot plus a sparse map of item id → {rating, comment}
into per-domain totals, a grand total and a categorical overall rating.

Domain level (max_score aware):
    counted items  = items with a rating that is not null and not 0
    total          = Σ rating of counted items
    max_possible   = Σ item.max_score of counted items
    percentage     = 100 × total / max_possible   (0 when max_possible = 0)

Overall level (fixed per-item maximum of 4):
    total_max      = Σ_domains (counted items × 4)
    percentage     = 100 × grand_total / total_max (0 when total_max = 0)

The two maxima intentionally differ; historical observations were
categorized with the fixed value, so both are kept as separate functions.
Percentages are rounded half-up to 2 decimals.

All functions are pure. Malformed or missing entries are treated as
"not rated" instead of raising.
"""
from collections.abc import Mapping
from decimal import Decimal
from typing import Any, Iterable, List, Optional, Sequence

import structlog

from app.models.rubric import RubricDomain
from app.models.scoring import (
    DEFAULT_OVERALL_RATING_THRESHOLDS,
    DomainScore,
    OverallRating,
    OverallRatingThreshold,
    ScoreReport,
    ScoredItem,
)
from app.scoring.utils import percentage, round_half_up

logger = structlog.get_logger(__name__)

FIXED_ITEM_MAX_SCORE = 4

RATING_LABELS = {
    5: "Excellent",
    4: "Good",
    3: "Satisfactory",
    2: "Needs Improvement",
    1: "Unsatisfactory",
    0: "Not Observed",
}

RATING_COLORS = {
    5: "success",
    4: "primary",
    3: "warning",
    2: "warning",
    1: "danger",
    0: "gray",
}


# ---------------------------------------------------------------------------
# Entry helpers
# ---------------------------------------------------------------------------

def _entry_field(entry: Any, name: str) -> Any:
    if entry is None:
        return None
    if isinstance(entry, Mapping):
        return entry.get(name)
    return getattr(entry, name, None)


def _coerce_rating(value: Any) -> Optional[int]:
    # bool is an int subclass; True is not a rating
    if isinstance(value, bool) or not isinstance(value, int):
        return None
    return value


def _coerce_comment(value: Any) -> Optional[str]:
    return value if isinstance(value, str) and value else None


def _lookup(item_scores: Any, item_id: Any) -> Any:
    if not isinstance(item_scores, Mapping):
        return None
    entry = item_scores.get(item_id)
    if entry is None:
        entry = item_scores.get(str(item_id))
    return entry


def entry_rating(entry: Any) -> Optional[int]:
    """Rating of a score entry, or None when absent or malformed."""
    return _coerce_rating(_entry_field(entry, "rating"))


def is_counted(rating: Optional[int]) -> bool:
    """A rating contributes to aggregation only if it is set and non-zero."""
    return rating is not None and rating != 0


# ---------------------------------------------------------------------------
# Domain level
# ---------------------------------------------------------------------------

def calculate_domain_scores(
    domains: Sequence[RubricDomain],
    item_scores: Mapping,
) -> List[DomainScore]:
    """
    Args:
        domains: Ordered domains, each with its ordered items.
        item_scores: Mapping of item id → {rating, comment}. Values may be
                     ItemScoreInput models or plain dicts; keys may be UUIDs
                     or their string form.

    Returns:
        One DomainScore per domain, in input order.
    """
    results: List[DomainScore] = []
    for domain in domains:
        scored: List[ScoredItem] = []
        total = 0
        max_possible = 0
        for item in domain.items:
            entry = _lookup(item_scores, item.id)
            rating = entry_rating(entry)
            scored.append(
                ScoredItem(
                    rubric_item_id=item.id,
                    rating=rating,
                    comment=_coerce_comment(_entry_field(entry, "comment")),
                    label=rating_label(rating) if rating is not None else None,
                    color=rating_color(rating) if rating is not None else None,
                )
            )
            if is_counted(rating):
                total += rating
                max_possible += item.max_score

        results.append(
            DomainScore(
                domain_id=domain.id,
                domain_name=domain.name,
                total=total,
                max_possible=max_possible,
                percentage=float(percentage(total, max_possible)),
                item_scores=scored,
            )
        )
    return results


def calculate_grand_total(domain_scores: Iterable[DomainScore]) -> int:
    """Unweighted sum of every domain's raw total."""
    return sum(d.total for d in domain_scores)


def calculate_total_max_score_fixed(domain_scores: Iterable[DomainScore]) -> int:
    """Overall denominator: counted items × 4, ignoring each item's max_score."""
    return sum(
        sum(1 for s in d.item_scores if is_counted(s.rating)) * FIXED_ITEM_MAX_SCORE
        for d in domain_scores
    )


# ---------------------------------------------------------------------------
# Overall rating
# ---------------------------------------------------------------------------

def _as_thresholds(thresholds: Optional[Iterable[Any]]) -> List[OverallRatingThreshold]:
    if thresholds is None:
        return list(DEFAULT_OVERALL_RATING_THRESHOLDS)
    return [
        t if isinstance(t, OverallRatingThreshold) else OverallRatingThreshold.model_validate(t)
        for t in thresholds
    ]


def find_threshold(
    value: Decimal,
    thresholds: Sequence[OverallRatingThreshold],
) -> Optional[OverallRatingThreshold]:
    """
    First band with min <= value <= max wins. A value that falls in the gap
    between two integer bands (e.g. 89.99) belongs to the band with the
    highest min not above it. Returns None below every band and above the
    top of the table (possible because the overall denominator is fixed at 4
    per item while items may score up to max_score).
    """
    for band in thresholds:
        if Decimal(str(band.min_percentage)) <= value <= Decimal(str(band.max_percentage)):
            return band

    if not thresholds or value > max(Decimal(str(b.max_percentage)) for b in thresholds):
        return None
    below = [b for b in thresholds if Decimal(str(b.min_percentage)) <= value]
    if not below:
        return None
    return max(below, key=lambda b: b.min_percentage)


def calculate_overall_rating(
    domain_scores: Sequence[DomainScore],
    thresholds: Optional[Iterable[Any]] = None,
) -> OverallRating:
    if not domain_scores:
        return OverallRating(rating="No Data", color="gray", percentage=0)

    bands = _as_thresholds(thresholds)
    grand_total = calculate_grand_total(domain_scores)
    total_max = calculate_total_max_score_fixed(domain_scores)
    overall_pct = percentage(grand_total, total_max)

    band = find_threshold(overall_pct, bands)
    result = OverallRating(
        rating=band.rating if band else "Unknown",
        color=band.color if band else "gray",
        percentage=float(overall_pct),
    )

    logger.debug(
        "overall_rating_calculated",
        grand_total=grand_total,
        total_max_score=total_max,
        percentage=result.percentage,
        rating=result.rating,
    )
    return result


def build_score_report(
    domains: Sequence[RubricDomain],
    item_scores: Mapping,
    thresholds: Optional[Iterable[Any]] = None,
) -> ScoreReport:
    """Compute domain scores, grand total and overall rating in one pass."""
    domain_scores = calculate_domain_scores(domains, item_scores)
    return ScoreReport(
        domain_scores=domain_scores,
        grand_total=calculate_grand_total(domain_scores),
        overall_rating=calculate_overall_rating(domain_scores, thresholds),
        progress_percentage=calculate_progress_percentage(domains, item_scores),
    )


# ---------------------------------------------------------------------------
# Rating scale helpers
# ---------------------------------------------------------------------------

def rating_label(score: int) -> str:
    return RATING_LABELS.get(score, "Unknown")


def rating_color(score: int) -> str:
    return RATING_COLORS.get(score, "gray")


def calculate_progress_percentage(
    domains: Sequence[RubricDomain],
    item_scores: Mapping,
) -> int:
    """Share of rubric items carrying a non-zero rating, as a whole percent."""
    items = [item for d in domains for item in d.items]
    if not items:
        return 0
    scored = sum(1 for item in items if is_counted(entry_rating(_lookup(item_scores, item.id))))
    total_items = len(items)
    return round_half_up(Decimal(scored) * 100 / Decimal(total_items))
