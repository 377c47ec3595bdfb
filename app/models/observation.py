import re
from datetime import date as DateType, datetime, timezone
from typing import Dict, List, Optional
from uuid import UUID, uuid4

from pydantic import ConfigDict, Field, field_validator, model_validator

from app.models.common import ApiModel
from app.models.enumerations import ObservationStatus, TransitionAction, UserRole

TIME_PATTERN = re.compile(r"^([0-1]?[0-9]|2[0-3]):[0-5][0-9]$")


class ItemScoreInput(ApiModel):
    """
    Rating and comment for one rubric item, as submitted by an observer.
    """

    rating: Optional[int] = Field(default=None, description="Integer rating; null means not yet observed")
    comment: Optional[str] = Field(default=None, description="Optional free-text comment")

    @field_validator("comment")
    @classmethod
    def blank_comment_to_none(cls, value: Optional[str]) -> Optional[str]:
        if value is None:
            return None
        value = value.strip()
        return value or None


class ItemScore(ApiModel):
    """
    Stored rating for one (observation, rubric item) pair.
    """

    id: Optional[UUID] = None
    observation_id: Optional[UUID] = None
    rubric_item_id: UUID
    rating: Optional[int] = None
    comment: Optional[str] = None


class ObservationBase(ApiModel):
    """
    Base Pydantic model for Observation context and reflections.
    """

    model_config = ConfigDict(str_strip_whitespace=True)

    branch_id: UUID = Field(..., description="Branch where the class was observed")
    teacher_id: UUID = Field(..., description="Observed teacher")
    class_section: str = Field(..., min_length=1, max_length=100)
    subject: str = Field(..., min_length=1, max_length=255)
    topic: str = Field(..., min_length=1, max_length=255)
    date: DateType = Field(..., description="Date of the observed lesson")
    time: str = Field(..., description="Lesson start time, HH:MM (24h)")
    total_students: int = Field(..., ge=1, le=100)
    present_students: int = Field(..., ge=0, le=100)
    lesson_plan_attached: bool = False
    strengths: Optional[str] = None
    areas_to_improve: Optional[str] = None
    suggestions: Optional[str] = None
    overall_override_rating: Optional[int] = Field(default=None, ge=0, le=5)
    override_reason: Optional[str] = None

    @field_validator("time")
    @classmethod
    def validate_time(cls, value: str) -> str:
        if not TIME_PATTERN.match(value):
            raise ValueError("Invalid time format. Use HH:MM format")
        return value

    @field_validator("strengths", "areas_to_improve", "suggestions", "override_reason")
    @classmethod
    def blank_text_to_none(cls, value: Optional[str]) -> Optional[str]:
        return value or None

    @model_validator(mode="after")
    def validate_student_counts(self):
        """Present students can never exceed the class size."""
        if self.present_students > self.total_students:
            raise ValueError("Present students cannot exceed total students")
        return self


class ObservationCreate(ObservationBase):
    """
    Model for creating a new observation. Status is always draft on creation.
    """

    item_scores: Dict[UUID, ItemScoreInput] = Field(default_factory=dict)


class ObservationUpdate(ApiModel):
    """
    Partial update of an observation. Omitted fields are left unchanged;
    item_scores, when given, replace the stored set.
    """

    model_config = ConfigDict(str_strip_whitespace=True)

    class_section: Optional[str] = Field(default=None, min_length=1, max_length=100)
    subject: Optional[str] = Field(default=None, min_length=1, max_length=255)
    topic: Optional[str] = Field(default=None, min_length=1, max_length=255)
    date: Optional[DateType] = None
    time: Optional[str] = None
    total_students: Optional[int] = Field(default=None, ge=1, le=100)
    present_students: Optional[int] = Field(default=None, ge=0, le=100)
    lesson_plan_attached: Optional[bool] = None
    strengths: Optional[str] = None
    areas_to_improve: Optional[str] = None
    suggestions: Optional[str] = None
    overall_override_rating: Optional[int] = Field(default=None, ge=0, le=5)
    override_reason: Optional[str] = None
    item_scores: Optional[Dict[UUID, ItemScoreInput]] = None

    @field_validator("time")
    @classmethod
    def validate_time(cls, value: Optional[str]) -> Optional[str]:
        if value is not None and not TIME_PATTERN.match(value):
            raise ValueError("Invalid time format. Use HH:MM format")
        return value


class ObservationResponse(ObservationBase):
    """
    Model returned in API responses.
    """

    id: UUID = Field(default_factory=uuid4)
    observer_id: UUID
    reviewer_id: Optional[UUID] = None
    status: ObservationStatus = ObservationStatus.DRAFT
    reviewer_comments: Optional[str] = None
    reviewed_at: Optional[datetime] = None
    finalized_at: Optional[datetime] = None
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    updated_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    item_scores: List[ItemScore] = Field(default_factory=list)

    def score_map(self) -> Dict[UUID, ItemScoreInput]:
        """Stored item scores keyed by rubric item id."""
        return {
            s.rubric_item_id: ItemScoreInput(rating=s.rating, comment=s.comment)
            for s in self.item_scores
        }


class PaginatedObservationResponse(ApiModel):
    """
    Paginated response for listing observations.
    """

    items: List[ObservationResponse]
    total: int
    page: int
    page_size: int
    total_pages: int


class Actor(ApiModel):
    """
    Authenticated caller, as supplied by the external auth layer.
    """

    id: UUID
    role: UserRole


class TransitionRequest(ApiModel):
    """
    Lifecycle transition request body.
    """

    action: TransitionAction
    reviewer_comments: Optional[str] = None

    @field_validator("reviewer_comments")
    @classmethod
    def trim_comments(cls, value: Optional[str]) -> Optional[str]:
        if value is None:
            return None
        value = str(value).strip()
        return value or None


class TransitionResponse(ApiModel):
    id: UUID
    previous_status: ObservationStatus
    new_status: ObservationStatus
