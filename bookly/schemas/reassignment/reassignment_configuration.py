"""
Reassignment configuration schemas.
"""

from __future__ import annotations

from typing import List, Optional

from pydantic import Field, model_validator

from bookly.schemas.common.base import BaseCreateSchema, BaseResponseSchema, BaseUpdateSchema

__all__ = [
    "ReassignmentConfigurationCreate",
    "ReassignmentConfigurationUpdate",
    "ReassignmentConfigurationResponse",
]


class ReassignmentConfigurationCreate(BaseCreateSchema):
    """Payload for storing a program's reassignment policy."""

    program_id: Optional[str] = Field(
        None,
        description="Program the policy applies to, None for the institution default",
    )

    # Matching
    default_capacity_tolerance: float = Field(default=10, ge=0, le=100)
    max_suggestions: int = Field(default=5, ge=1, le=20)
    prioritize_by_distance: bool = True
    prioritize_by_availability: bool = True

    # Time limits
    default_response_time_hours: float = Field(default=24, ge=1, le=168)
    urgent_response_time_hours: float = Field(default=4, ge=0.5, le=48)
    reminder_interval_hours: float = Field(default=6, ge=1, le=24)

    # Notifications
    enable_email_notifications: bool = True
    enable_sms_notifications: bool = False
    enable_push_notifications: bool = True
    escalate_to_supervisor: bool = True

    # Auto-approval
    enable_auto_approval: bool = False
    auto_approval_threshold_hours: float = Field(default=2, ge=1, le=72)
    auto_approval_only_for_equivalent: bool = True

    # Penalties
    apply_penalty_for_rejection: bool = True
    rejection_penalty_points: int = Field(default=5, ge=0, le=50)
    max_rejections_before_penalty: int = Field(default=3, ge=1, le=10)

    is_active: bool = True

    @model_validator(mode="after")
    def validate_response_windows(self) -> "ReassignmentConfigurationCreate":
        """Urgent window may not exceed the default one."""
        if self.urgent_response_time_hours > self.default_response_time_hours:
            raise ValueError("Urgent response time cannot be longer than default response time")
        return self


class ReassignmentConfigurationUpdate(BaseUpdateSchema):
    """Partial update of a reassignment policy. Ranges are checked by the model."""

    default_capacity_tolerance: Optional[float] = None
    max_suggestions: Optional[int] = None
    prioritize_by_distance: Optional[bool] = None
    prioritize_by_availability: Optional[bool] = None
    default_response_time_hours: Optional[float] = None
    urgent_response_time_hours: Optional[float] = None
    reminder_interval_hours: Optional[float] = None
    enable_email_notifications: Optional[bool] = None
    enable_sms_notifications: Optional[bool] = None
    enable_push_notifications: Optional[bool] = None
    escalate_to_supervisor: Optional[bool] = None
    enable_auto_approval: Optional[bool] = None
    auto_approval_threshold_hours: Optional[float] = None
    auto_approval_only_for_equivalent: Optional[bool] = None
    apply_penalty_for_rejection: Optional[bool] = None
    rejection_penalty_points: Optional[int] = None
    max_rejections_before_penalty: Optional[int] = None


class ReassignmentConfigurationResponse(BaseResponseSchema):
    """Stored reassignment policy. Defaults built from settings have no id."""

    id: Optional[str] = None
    program_id: Optional[str] = None
    default_capacity_tolerance: float
    max_suggestions: int
    prioritize_by_distance: bool
    prioritize_by_availability: bool
    default_response_time_hours: float
    urgent_response_time_hours: float
    reminder_interval_hours: float
    enable_email_notifications: bool
    enable_sms_notifications: bool
    enable_push_notifications: bool
    escalate_to_supervisor: bool
    enable_auto_approval: bool
    auto_approval_threshold_hours: float
    auto_approval_only_for_equivalent: bool
    apply_penalty_for_rejection: bool
    rejection_penalty_points: int
    max_rejections_before_penalty: int
    is_active: bool
    notification_channels: List[str] = Field(default_factory=list)
    summary: Optional[str] = None

    @classmethod
    def from_entity(cls, configuration) -> "ReassignmentConfigurationResponse":
        response = cls.model_validate(configuration)
        return response.model_copy(update={
            "notification_channels": configuration.get_enabled_notification_channels(),
            "summary": configuration.get_configuration_summary(),
        })
