"""
Reassignment request schemas.

This module defines the payloads used to raise, filter and answer
reassignment requests, and the shapes returned by the service layer.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any, List, Optional

from pydantic import Field, field_validator, model_validator

from bookly.models.base.enums import (
    NextAction,
    ReassignmentReason,
    ReassignmentStatus,
    UrgencyLevel,
    UserPriority,
    UserResponse,
)
from bookly.schemas.common.base import (
    BaseCreateSchema,
    BaseFilterSchema,
    BaseResponseSchema,
    BaseSchema,
)
from bookly.schemas.reassignment.equivalence import EquivalentResource

__all__ = [
    "ReassignmentRequestCreate",
    "ReassignmentRequestResponse",
    "ReassignmentFilterParams",
    "UserResponseSubmission",
    "ReassignmentCreateResult",
    "ReassignmentResponseResult",
    "AutoProcessDecision",
    "AutoProcessSummary",
]


class ReassignmentRequestCreate(BaseCreateSchema):
    """
    Payload for raising a reassignment request.

    Required identifiers are checked by the request itself so that every
    missing value is reported at once.
    """

    original_reservation_id: str = Field(..., description="Booking being reassigned")
    requested_by: str = Field(..., description="User raising the request")
    reason: ReassignmentReason = Field(..., description="Cause of the reassignment")
    custom_reason: Optional[str] = Field(
        None,
        max_length=1000,
        description="Free text reason, required when reason is OTHER",
    )
    suggested_resource_id: Optional[str] = Field(None, description="Known replacement resource")

    # Original booking context
    original_resource_id: Optional[str] = Field(None, description="Resource of the original booking")
    original_start_time: Optional[datetime] = Field(None, description="Start of the original booking")
    original_end_time: Optional[datetime] = Field(None, description="End of the original booking")

    # Workflow
    user_priority: UserPriority = Field(
        default=UserPriority.STUDENT,
        description="Role priority of the requester",
    )
    is_urgent: bool = Field(
        default=False,
        description="Use the urgent response window",
    )
    response_deadline: Optional[datetime] = Field(
        None,
        description="Explicit response deadline, overrides the configured window",
    )

    # Matching criteria
    accept_equivalent_resources: Optional[bool] = None
    accept_alternative_time_slots: Optional[bool] = None
    capacity_tolerance_percent: Optional[float] = Field(None, ge=0, le=100)
    required_features: List[str] = Field(default_factory=list)
    preferred_features: List[str] = Field(default_factory=list)
    max_distance_meters: Optional[float] = Field(None, ge=0)

    # Administrative bookkeeping
    compensation_info: Optional[str] = Field(None, max_length=2000)
    internal_notes: Optional[str] = Field(None, max_length=5000)
    tags: List[str] = Field(default_factory=list)
    impact_level: Optional[str] = Field(None, max_length=20)
    estimated_resolution_hours: Optional[float] = Field(None, ge=0)
    related_ticket_id: Optional[str] = Field(None, max_length=100)
    affected_program_id: Optional[str] = Field(None, description="Program owning the booking")
    min_advance_notice_hours: Optional[float] = Field(None, ge=0)
    allow_partial_reassignment: Optional[bool] = None
    require_user_confirmation: Optional[bool] = None

    @model_validator(mode="after")
    def validate_original_window(self) -> "ReassignmentRequestCreate":
        """Ensure the original booking window is ordered."""
        if self.original_start_time and self.original_end_time:
            if self.original_end_time <= self.original_start_time:
                raise ValueError("Original end time must be after original start time")
        return self

    def to_entity_values(self) -> dict:
        """Attributes for ReassignmentRequest.create()."""
        values = self.model_dump(exclude={"user_priority", "is_urgent"})
        values["priority"] = self.user_priority
        return values


class ReassignmentRequestResponse(BaseResponseSchema):
    """Reassignment request as returned by the service."""

    original_reservation_id: str
    requested_by: str
    reason: ReassignmentReason
    custom_reason: Optional[str] = None
    suggested_resource_id: Optional[str] = None
    original_resource_id: Optional[str] = None
    original_start_time: Optional[datetime] = None
    original_end_time: Optional[datetime] = None

    status: ReassignmentStatus
    user_response: UserResponse
    rejection_count: int
    priority: UserPriority
    response_deadline: Optional[datetime] = None
    responded_at: Optional[datetime] = None

    accept_equivalent_resources: Optional[bool] = None
    accept_alternative_time_slots: Optional[bool] = None
    capacity_tolerance_percent: Optional[float] = None
    required_features: Optional[List[str]] = None
    preferred_features: Optional[List[str]] = None
    max_distance_meters: Optional[float] = None

    compensation_info: Optional[str] = None
    internal_notes: Optional[str] = None
    tags: Optional[List[str]] = None
    impact_level: Optional[str] = None
    estimated_resolution_hours: Optional[float] = None
    related_ticket_id: Optional[str] = None
    affected_program_id: Optional[str] = None
    min_advance_notice_hours: Optional[float] = None
    allow_partial_reassignment: Optional[bool] = None
    require_user_confirmation: Optional[bool] = None
    version: int

    # Derived at read time
    priority_weight: Optional[int] = None
    urgency_level: Optional[UrgencyLevel] = None
    high_priority: Optional[bool] = None
    expired: Optional[bool] = None
    time_remaining_minutes: Optional[int] = None
    reason_description: Optional[str] = None

    @classmethod
    def from_entity(cls, request: Any, now: Optional[datetime] = None) -> "ReassignmentRequestResponse":
        """
        Build the response from a ReassignmentRequest.

        Args:
            request: Persisted reassignment request
            now: Reference time for derived values

        Returns:
            Response schema with derived values filled in
        """
        response = cls.model_validate(request)
        return response.model_copy(update={
            "priority_weight": request.get_priority_weight(),
            "urgency_level": request.get_urgency_level(),
            "high_priority": request.is_high_priority(),
            "expired": request.is_expired(now),
            "time_remaining_minutes": request.get_time_remaining_minutes(now),
            "reason_description": request.get_reason_description(),
        })


class ReassignmentFilterParams(BaseFilterSchema):
    """Filters for listing reassignment requests."""

    status: Optional[ReassignmentStatus] = None
    statuses: Optional[List[ReassignmentStatus]] = None
    user_response: Optional[UserResponse] = None
    reason: Optional[ReassignmentReason] = None
    priority: Optional[UserPriority] = None
    requested_by: Optional[str] = None
    resource_id: Optional[str] = Field(
        None,
        description="Matches the suggested or the original resource",
    )
    program_id: Optional[str] = None
    reservation_id: Optional[str] = None
    date_from: Optional[datetime] = Field(None, description="Created at or after")
    date_to: Optional[datetime] = Field(None, description="Created at or before")
    min_rejections: Optional[int] = Field(None, ge=0)
    has_suggestion: Optional[bool] = None
    search: Optional[str] = Field(
        None,
        min_length=1,
        max_length=255,
        description="Free text over custom reason and internal notes",
    )

    @model_validator(mode="after")
    def validate_date_range(self) -> "ReassignmentFilterParams":
        """Ensure date_to is not before date_from."""
        if self.date_from and self.date_to and self.date_to < self.date_from:
            raise ValueError("date_to must be after or equal to date_from")
        return self


class UserResponseSubmission(BaseSchema):
    """Decision of the affected user."""

    response: UserResponse = Field(..., description="ACCEPTED or REJECTED")
    selected_resource_id: Optional[str] = Field(
        None,
        description="Resource chosen by the user when accepting",
    )
    comments: Optional[str] = Field(None, max_length=1000)

    @field_validator("response")
    @classmethod
    def validate_response(cls, v: UserResponse) -> UserResponse:
        """A submission must carry a decision."""
        if v == UserResponse.PENDING:
            raise ValueError("Response must be ACCEPTED or REJECTED")
        return v

    @model_validator(mode="after")
    def validate_selection(self) -> "UserResponseSubmission":
        """A resource can only be selected when accepting."""
        if self.selected_resource_id and self.response != UserResponse.ACCEPTED:
            raise ValueError("A resource can only be selected when accepting")
        return self


class ReassignmentCreateResult(BaseSchema):
    """Outcome of raising a reassignment request."""

    request: ReassignmentRequestResponse
    suggestions: List[EquivalentResource] = Field(default_factory=list)
    warnings: List[str] = Field(default_factory=list)


class ReassignmentResponseResult(BaseSchema):
    """Outcome of recording a user decision."""

    request: ReassignmentRequestResponse
    next_action: NextAction
    penalty_points: int = 0


class AutoProcessDecision(BaseSchema):
    """What the automatic pass decided for one request."""

    request_id: str
    suggested_resource_id: Optional[str] = None
    newly_suggested: bool = False
    auto_approved: bool = False
    skipped_reason: Optional[str] = None
    error: Optional[str] = None


class AutoProcessSummary(BaseSchema):
    """Aggregate of an automatic processing pass."""

    dry_run: bool = False
    processed: int = 0
    suggested: int = 0
    auto_approved: int = 0
    skipped: int = 0
    failed: int = 0
    decisions: List[AutoProcessDecision] = Field(default_factory=list)
