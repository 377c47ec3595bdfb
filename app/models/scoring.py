from typing import Any, Dict, List, Optional
from uuid import UUID

from pydantic import Field, model_validator

from app.models.common import ApiModel
from app.models.observation import ItemScore


class OverallRatingThreshold(ApiModel):
    """
    One percentage band of the overall rating table (both ends inclusive).
    """

    min_percentage: float = Field(..., ge=0)
    max_percentage: float = Field(..., ge=0)
    rating: str
    color: str

    @model_validator(mode="after")
    def validate_band(self):
        if self.min_percentage > self.max_percentage:
            raise ValueError("min_percentage must be <= max_percentage")
        return self


DEFAULT_OVERALL_RATING_THRESHOLDS: List[OverallRatingThreshold] = [
    OverallRatingThreshold(min_percentage=90, max_percentage=100, rating="Excellent", color="success"),
    OverallRatingThreshold(min_percentage=75, max_percentage=89, rating="Good", color="primary"),
    OverallRatingThreshold(min_percentage=60, max_percentage=74, rating="Average", color="warning"),
    OverallRatingThreshold(min_percentage=50, max_percentage=59, rating="Weak", color="warning"),
    OverallRatingThreshold(min_percentage=0, max_percentage=49, rating="Very Poor", color="danger"),
]


class ScoredItem(ItemScore):
    """
    Item rating as shown in a report, with its rating-scale label and color.
    """

    label: Optional[str] = None
    color: Optional[str] = None


class DomainScore(ApiModel):
    """
    Aggregated score for one rubric domain. Derived on every read, never stored.
    """

    domain_id: UUID
    domain_name: str
    total: int = 0
    max_possible: int = 0
    percentage: float = 0.0
    item_scores: List[ScoredItem] = Field(default_factory=list)


class OverallRating(ApiModel):
    rating: str
    color: str
    percentage: float


class ScoreReport(ApiModel):
    """
    Full score report for one observation.
    """

    domain_scores: List[DomainScore] = Field(default_factory=list)
    grand_total: int = 0
    overall_rating: OverallRating
    progress_percentage: int = Field(default=0, ge=0, le=100)


class ObservationValidationInput(ApiModel):
    """
    Fields checked by validate_observation_data.
    """

    total_students: Optional[int] = None
    present_students: Optional[int] = None
    item_scores: Dict[str, Any] = Field(default_factory=dict)


class ValidationResult(ApiModel):
    is_valid: bool
    errors: List[str] = Field(default_factory=list)
