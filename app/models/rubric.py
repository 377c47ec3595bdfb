from datetime import datetime, timezone
from typing import List, Optional
from uuid import UUID, uuid4

from pydantic import Field, model_validator

from app.models.common import ApiModel


class RubricItem(ApiModel):
    """
    One evaluable criterion within a domain.
    """

    id: UUID = Field(default_factory=uuid4, description="Unique item identifier")
    domain_id: UUID = Field(..., description="Owning domain")
    number: int = Field(default=1, ge=1, description="Display number within the domain")
    prompt: str = Field(..., min_length=1, description="Criterion statement")
    order_index: int = Field(default=1, description="Aggregation / display order")
    max_score: int = Field(default=5, ge=1, description="Upper bound of the rating")
    scale_min: int = Field(default=0, ge=0, description="Inclusive lower rating bound")
    scale_max: int = Field(default=5, ge=0, description="Inclusive upper rating bound")
    is_active: bool = Field(default=True, description="False once archived")


class RubricDomain(ApiModel):
    """
    Named grouping of related criteria.
    """

    id: UUID = Field(default_factory=uuid4, description="Unique domain identifier")
    name: str = Field(..., min_length=1, max_length=255)
    description: str = Field(default="")
    order_index: int = Field(..., description="Unique ordinal position within the rubric")
    is_active: bool = Field(default=True, description="False once archived")
    items: List[RubricItem] = Field(default_factory=list)


class RubricSnapshot(ApiModel):
    """
    Active rubric as read at one point in time.

    Scoring for a single request always uses one snapshot so that max scores
    are not mixed across a concurrent rubric edit.
    """

    domains: List[RubricDomain] = Field(default_factory=list)
    loaded_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))

    def item_index(self) -> dict:
        """Map item id -> RubricItem across all domains."""
        return {item.id: item for domain in self.domains for item in domain.items}


class RubricDomainCreate(ApiModel):
    name: str = Field(..., min_length=1, max_length=255)
    description: str = Field(default="")
    order_index: int = Field(..., ge=0)


class RubricDomainUpdate(ApiModel):
    name: Optional[str] = Field(default=None, min_length=1, max_length=255)
    description: Optional[str] = None
    order_index: Optional[int] = Field(default=None, ge=0)


class RubricItemCreate(ApiModel):
    domain_id: UUID
    prompt: str = Field(..., min_length=1)
    number: int = Field(default=1, ge=1)
    order_index: int = Field(default=1, ge=0)
    max_score: Optional[int] = Field(default=None, ge=1)
    scale_min: int = Field(default=0, ge=0)
    scale_max: Optional[int] = Field(default=None, ge=0)

    @model_validator(mode="after")
    def validate_scale(self):
        """scale_min must not exceed scale_max when both are known."""
        if self.scale_max is not None and self.scale_min > self.scale_max:
            raise ValueError("scale_min must be <= scale_max")
        return self


class RubricItemUpdate(ApiModel):
    prompt: Optional[str] = Field(default=None, min_length=1)
    number: Optional[int] = Field(default=None, ge=1)
    order_index: Optional[int] = Field(default=None, ge=0)
    max_score: Optional[int] = Field(default=None, ge=1)
    scale_min: Optional[int] = Field(default=None, ge=0)
    scale_max: Optional[int] = Field(default=None, ge=0)

    @model_validator(mode="after")
    def validate_scale(self):
        if (
            self.scale_min is not None
            and self.scale_max is not None
            and self.scale_min > self.scale_max
        ):
            raise ValueError("scale_min must be <= scale_max")
        return self
