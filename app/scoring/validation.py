"""
Observation Data Validation
app/scoring/validation.py

All rules run on every call so the caller gets the complete error list.
"""

from collections.abc import Mapping
from typing import Any, Union

from app.models.scoring import ObservationValidationInput, ValidationResult
from app.scoring.calculator import entry_rating, is_counted

TOTAL_STUDENTS_ERROR = "Total students must be greater than 0"
PRESENT_NEGATIVE_ERROR = "Present students cannot be negative"
PRESENT_EXCEEDS_ERROR = "Present students cannot exceed total students"
NO_SCORES_ERROR = "At least one rubric item must be scored"


def validate_observation_data(
    data: Union[ObservationValidationInput, Mapping[str, Any]],
) -> ValidationResult:
    if not isinstance(data, ObservationValidationInput):
        data = ObservationValidationInput.model_validate(data)

    total = data.total_students if data.total_students is not None else 0
    present = data.present_students if data.present_students is not None else 0
    errors = []

    if total <= 0:
        errors.append(TOTAL_STUDENTS_ERROR)

    if present < 0:
        errors.append(PRESENT_NEGATIVE_ERROR)

    if present > total:
        errors.append(PRESENT_EXCEEDS_ERROR)

    has_scores = any(
        is_counted(entry_rating(entry))
        for entry in data.item_scores.values()
    )
    if not has_scores:
        errors.append(NO_SCORES_ERROR)

    return ValidationResult(is_valid=not errors, errors=errors)
