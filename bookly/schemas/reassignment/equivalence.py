"""
Equivalence query schemas.

Payloads exchanged with the equivalence oracle when looking for
replacement resources.
"""

from __future__ import annotations

from datetime import datetime
from typing import List, Optional

from pydantic import Field, field_validator, model_validator

from bookly.schemas.common.base import BaseSchema

__all__ = [
    "TimeWindow",
    "EquivalenceQuery",
    "EquivalentResource",
]


class TimeWindow(BaseSchema):
    """Time span a replacement resource must be free for."""

    start: datetime = Field(..., description="Start of the booking")
    end: datetime = Field(..., description="End of the booking")

    @model_validator(mode="after")
    def validate_window(self) -> "TimeWindow":
        """Ensure the window is not empty."""
        if self.end <= self.start:
            raise ValueError("Time window end must be after its start")
        return self

    @property
    def duration_hours(self) -> float:
        return (self.end - self.start).total_seconds() / 3600


class EquivalenceQuery(BaseSchema):
    """Criteria sent to the equivalence oracle."""

    resource_id: str = Field(
        ...,
        min_length=1,
        description="Resource to find replacements for",
    )
    time_window: TimeWindow = Field(..., description="Booking time window")
    capacity_tolerance_percent: Optional[float] = Field(
        None,
        ge=0,
        le=100,
        description="Allowed capacity deviation in percent",
    )
    required_features: List[str] = Field(
        default_factory=list,
        description="Features a replacement must have",
    )
    preferred_features: List[str] = Field(
        default_factory=list,
        description="Features a replacement should have",
    )
    max_distance_meters: Optional[float] = Field(
        None,
        ge=0,
        description="Maximum distance from the original resource",
    )
    exclude_ids: List[str] = Field(
        default_factory=list,
        description="Resources that must not be returned",
    )
    limit: int = Field(
        default=5,
        ge=1,
        le=50,
        description="Maximum number of candidates",
    )

    @field_validator("required_features", "preferred_features", "exclude_ids")
    @classmethod
    def drop_blank_entries(cls, v: List[str]) -> List[str]:
        """Remove empty and duplicate entries, keeping order."""
        seen = []
        for item in v:
            item = item.strip()
            if item and item not in seen:
                seen.append(item)
        return seen


class EquivalentResource(BaseSchema):
    """Candidate replacement returned by the oracle."""

    resource_id: str = Field(..., min_length=1, description="Candidate resource")
    score: float = Field(
        ...,
        ge=0,
        le=100,
        description="Equivalence score, higher is better",
    )
    is_equivalent: bool = Field(
        default=False,
        description="Whether the candidate fully matches the original",
    )
    reasoning: Optional[str] = Field(
        None,
        max_length=1000,
        description="Explanation of the score",
    )
