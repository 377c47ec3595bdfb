"""
scoring/ - Observation Scoring Engine

Modules:
    utils.py       - Decimal utilities (half-up rounding, safe percentages)
    calculator.py  - Domain scores, grand total, overall rating, rating labels
    reports.py     - Cross-observation statistics for the admin report
    validation.py  - Observation data validation (all rules, full error list)
"""
from app.scoring.calculator import (
    FIXED_ITEM_MAX_SCORE,
    build_score_report,
    calculate_domain_scores,
    calculate_grand_total,
    calculate_overall_rating,
    calculate_progress_percentage,
    calculate_total_max_score_fixed,
    find_threshold,
    rating_color,
    rating_label,
)
from app.scoring.validation import validate_observation_data

__all__ = [
    "FIXED_ITEM_MAX_SCORE",
    "build_score_report",
    "calculate_domain_scores",
    "calculate_grand_total",
    "calculate_overall_rating",
    "calculate_progress_percentage",
    "calculate_total_max_score_fixed",
    "find_threshold",
    "rating_color",
    "rating_label",
    "validate_observation_data",
]
