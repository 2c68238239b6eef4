"""
Reassignment request model.

This module defines the request raised when a booked resource becomes
unavailable and the booking has to be moved to an equivalent resource.
The model owns the request state machine: suggestion, user response,
cancellation, expiry and the priority downgrade applied on rejection.
"""

import math
from datetime import datetime
from types import MappingProxyType
from typing import Any, Dict, List, Mapping, Optional

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    Enum as SQLEnum,
    Float,
    Index,
    Integer,
    String,
    Text,
    inspect,
)
from sqlalchemy.orm import Mapped, mapped_column, validates

from bookly.core.exceptions import (
    AlreadyCancelledError,
    ExpiredError,
    InvalidArgumentError,
    InvalidStateError,
)
from bookly.models.base.base_model import TimestampModel, ensure_utc, utc_now
from bookly.models.base.enums import (
    ReassignmentReason,
    ReassignmentStatus,
    UrgencyLevel,
    UserPriority,
    UserResponse,
)
from bookly.models.base.types import JSONType, UTCDateTime
from bookly.models.base.validators import ValidationOutcome, is_blank

__all__ = [
    "ReassignmentRequest",
    "PRIORITY_WEIGHTS",
    "PRIORITY_DOWNGRADE",
    "URGENCY_BY_REASON",
    "REASON_DESCRIPTIONS",
]


PRIORITY_WEIGHTS: Mapping[UserPriority, int] = MappingProxyType({
    UserPriority.ADMIN_GENERAL: 5,
    UserPriority.PROGRAM_DIRECTOR: 4,
    UserPriority.TEACHER: 3,
    UserPriority.STUDENT: 2,
    UserPriority.EXTERNAL: 1,
})

# EXTERNAL is the floor
PRIORITY_DOWNGRADE: Mapping[UserPriority, UserPriority] = MappingProxyType({
    UserPriority.ADMIN_GENERAL: UserPriority.PROGRAM_DIRECTOR,
    UserPriority.PROGRAM_DIRECTOR: UserPriority.TEACHER,
    UserPriority.TEACHER: UserPriority.STUDENT,
    UserPriority.STUDENT: UserPriority.EXTERNAL,
    UserPriority.EXTERNAL: UserPriority.EXTERNAL,
})

URGENCY_BY_REASON: Mapping[ReassignmentReason, UrgencyLevel] = MappingProxyType({
    ReassignmentReason.EMERGENCY: UrgencyLevel.CRITICAL,
    ReassignmentReason.TECHNICAL_ISSUES: UrgencyLevel.HIGH,
    ReassignmentReason.FACILITY_UNAVAILABLE: UrgencyLevel.HIGH,
    ReassignmentReason.MAINTENANCE: UrgencyLevel.MEDIUM,
    ReassignmentReason.CAPACITY_CHANGE: UrgencyLevel.MEDIUM,
})

REASON_DESCRIPTIONS: Mapping[ReassignmentReason, str] = MappingProxyType({
    ReassignmentReason.MAINTENANCE: "Scheduled maintenance",
    ReassignmentReason.TECHNICAL_ISSUES: "Technical issues",
    ReassignmentReason.CAPACITY_CHANGE: "Capacity change",
    ReassignmentReason.FACILITY_UNAVAILABLE: "Facility unavailable",
    ReassignmentReason.EMERGENCY: "Emergency situation",
    ReassignmentReason.ADMINISTRATIVE: "Administrative reasons",
    ReassignmentReason.OTHER: "Other reasons",
})

_IMMUTABLE_FIELDS = (
    "original_reservation_id",
    "requested_by",
    "reason",
    "original_resource_id",
    "original_start_time",
    "original_end_time",
)


class ReassignmentRequest(TimestampModel):
    """
    Reassignment request and its workflow state.

    Status tracks the administrative workflow while user_response tracks
    the decision of the affected user. ACCEPTED and REJECTED always pair
    with the matching user response; CANCELLED and EXPIRED leave the user
    response untouched.

    Attributes:
        original_reservation_id: Booking being reassigned
        requested_by: User who raised the request
        reason: Cause of the reassignment
        custom_reason: Free text, required when reason is OTHER
        suggested_resource_id: Candidate replacement resource
        original_resource_id: Resource of the original booking
        original_start_time: Start of the original booking
        original_end_time: End of the original booking
        status: Workflow status
        user_response: Decision of the affected user
        rejection_count: Number of rejections, never decreases
        priority: Requester precedence, only ever downgraded
        response_deadline: Time by which the user must respond
        responded_at: When the user decision was recorded
        version: Optimistic concurrency counter
    """

    __tablename__ = "reassignment_requests"

    # References
    original_reservation_id: Mapped[str] = mapped_column(
        String(36),
        nullable=False,
        index=True,
        comment="Booking being reassigned",
    )

    requested_by: Mapped[str] = mapped_column(
        String(36),
        nullable=False,
        index=True,
        comment="User who raised the request",
    )

    reason: Mapped[ReassignmentReason] = mapped_column(
        SQLEnum(ReassignmentReason, name="reassignment_reason"),
        nullable=False,
        comment="Cause of the reassignment",
    )

    custom_reason: Mapped[Optional[str]] = mapped_column(
        Text,
        nullable=True,
        comment="Free text reason, required when reason is OTHER",
    )

    suggested_resource_id: Mapped[Optional[str]] = mapped_column(
        String(36),
        nullable=True,
        index=True,
        comment="Candidate replacement resource",
    )

    # Original booking context
    original_resource_id: Mapped[Optional[str]] = mapped_column(
        String(36),
        nullable=True,
        index=True,
        comment="Resource of the original booking",
    )

    original_start_time: Mapped[Optional[datetime]] = mapped_column(
        UTCDateTime(),
        nullable=True,
        comment="Start of the original booking",
    )

    original_end_time: Mapped[Optional[datetime]] = mapped_column(
        UTCDateTime(),
        nullable=True,
        comment="End of the original booking",
    )

    # Workflow
    status: Mapped[ReassignmentStatus] = mapped_column(
        SQLEnum(ReassignmentStatus, name="reassignment_status"),
        nullable=False,
        default=ReassignmentStatus.PENDING,
        index=True,
        comment="Workflow status",
    )

    user_response: Mapped[UserResponse] = mapped_column(
        SQLEnum(UserResponse, name="reassignment_user_response"),
        nullable=False,
        default=UserResponse.PENDING,
        comment="Decision of the affected user",
    )

    rejection_count: Mapped[int] = mapped_column(
        Integer,
        nullable=False,
        default=0,
        comment="Number of rejections",
    )

    priority: Mapped[UserPriority] = mapped_column(
        SQLEnum(UserPriority, name="reassignment_priority"),
        nullable=False,
        default=UserPriority.STUDENT,
        index=True,
        comment="Requester precedence",
    )

    response_deadline: Mapped[Optional[datetime]] = mapped_column(
        UTCDateTime(),
        nullable=True,
        index=True,
        comment="Time by which the user must respond",
    )

    responded_at: Mapped[Optional[datetime]] = mapped_column(
        UTCDateTime(),
        nullable=True,
        comment="When the user decision was recorded",
    )

    # Matching criteria
    accept_equivalent_resources: Mapped[Optional[bool]] = mapped_column(
        Boolean,
        nullable=True,
        comment="Whether equivalent resources are acceptable",
    )

    accept_alternative_time_slots: Mapped[Optional[bool]] = mapped_column(
        Boolean,
        nullable=True,
        comment="Whether other time slots are acceptable",
    )

    capacity_tolerance_percent: Mapped[Optional[float]] = mapped_column(
        Float,
        nullable=True,
        comment="Allowed capacity deviation in percent",
    )

    required_features: Mapped[Optional[List[str]]] = mapped_column(
        JSONType(),
        nullable=True,
        comment="Features the replacement must have",
    )

    preferred_features: Mapped[Optional[List[str]]] = mapped_column(
        JSONType(),
        nullable=True,
        comment="Features the replacement should have",
    )

    max_distance_meters: Mapped[Optional[float]] = mapped_column(
        Float,
        nullable=True,
        comment="Maximum distance from the original resource",
    )

    # Administrative bookkeeping
    compensation_info: Mapped[Optional[str]] = mapped_column(
        Text,
        nullable=True,
        comment="Compensation offered to the user",
    )

    internal_notes: Mapped[Optional[str]] = mapped_column(
        Text,
        nullable=True,
        comment="Staff notes",
    )

    tags: Mapped[Optional[List[str]]] = mapped_column(
        JSONType(),
        nullable=True,
        comment="Free form tags",
    )

    impact_level: Mapped[Optional[str]] = mapped_column(
        String(20),
        nullable=True,
        comment="Impact classification",
    )

    estimated_resolution_hours: Mapped[Optional[float]] = mapped_column(
        Float,
        nullable=True,
        comment="Estimated time to resolve the underlying issue",
    )

    related_ticket_id: Mapped[Optional[str]] = mapped_column(
        String(100),
        nullable=True,
        comment="Related maintenance or support ticket",
    )

    affected_program_id: Mapped[Optional[str]] = mapped_column(
        String(36),
        nullable=True,
        index=True,
        comment="Academic program owning the booking",
    )

    min_advance_notice_hours: Mapped[Optional[float]] = mapped_column(
        Float,
        nullable=True,
        comment="Minimum notice owed to the user",
    )

    allow_partial_reassignment: Mapped[Optional[bool]] = mapped_column(
        Boolean,
        nullable=True,
        comment="Whether part of the booking may be moved",
    )

    require_user_confirmation: Mapped[Optional[bool]] = mapped_column(
        Boolean,
        nullable=True,
        comment="Whether the user must confirm explicitly",
    )

    version: Mapped[int] = mapped_column(
        Integer,
        nullable=False,
        comment="Optimistic concurrency version",
    )

    __mapper_args__ = {"version_id_col": version}

    # Table Configuration
    __table_args__ = (
        CheckConstraint(
            "rejection_count >= 0",
            name="ck_reassignment_rejection_count_positive",
        ),
        CheckConstraint(
            "capacity_tolerance_percent IS NULL OR "
            "(capacity_tolerance_percent >= 0 AND capacity_tolerance_percent <= 100)",
            name="ck_reassignment_capacity_tolerance_range",
        ),
        Index("ix_reassignment_status_deadline", "status", "response_deadline"),
        Index("ix_reassignment_program_status", "affected_program_id", "status"),
        {"comment": "Resource reassignment requests"},
    )

    # Validators
    @validates(*_IMMUTABLE_FIELDS)
    def validate_immutable(self, key: str, value: Any) -> Any:
        """Reject changes to fields fixed at creation."""
        if key == "reason" and value is not None:
            value = self._coerce_enum(ReassignmentReason, value, key)
        elif key in ("original_start_time", "original_end_time"):
            value = ensure_utc(value)

        current = self._stored_value(key)
        if current is not None and current != value:
            raise InvalidArgumentError(
                f"{key} cannot be changed after creation",
                argument=key,
                value=value,
            )
        return value

    def _stored_value(self, key: str) -> Any:
        """Value of a column, reloaded from the session when it has been expired."""
        if key in self.__dict__:
            return self.__dict__[key]

        state = inspect(self)
        if not state.has_identity or state.session is None:
            return None

        with state.session.no_autoflush:
            state.session.refresh(self, [key])
        return self.__dict__.get(key)

    @validates("status")
    def validate_status(self, key: str, value: Any) -> ReassignmentStatus:
        """Validate workflow status."""
        return self._coerce_enum(ReassignmentStatus, value, key)

    @validates("user_response")
    def validate_user_response(self, key: str, value: Any) -> UserResponse:
        """Validate user response."""
        return self._coerce_enum(UserResponse, value, key)

    @validates("priority")
    def validate_priority(self, key: str, value: Any) -> UserPriority:
        """Validate requester priority."""
        return self._coerce_enum(UserPriority, value, key)

    @validates("response_deadline", "responded_at", "created_at", "updated_at")
    def validate_timestamp(self, key: str, value: Optional[datetime]) -> Optional[datetime]:
        """Keep timestamps in UTC."""
        return ensure_utc(value)

    @staticmethod
    def _coerce_enum(enum_cls, value: Any, key: str):
        if isinstance(value, enum_cls):
            return value
        try:
            return enum_cls(value)
        except ValueError:
            raise InvalidArgumentError(
                f"Invalid {key}. Must be one of {[member.value for member in enum_cls]}",
                argument=key,
                value=value,
            )

    # Construction
    @classmethod
    def create(cls, now: Optional[datetime] = None, **props: Any) -> "ReassignmentRequest":
        """
        Build a new, unpersisted request.

        No validation happens here; call validate() before persisting.

        Args:
            now: Creation time (defaults to the current UTC time)
            **props: Entity attributes except id and timestamps

        Returns:
            Draft request in PENDING status
        """
        now = ensure_utc(now) or utc_now()

        props.setdefault("status", ReassignmentStatus.PENDING)
        props.setdefault("user_response", UserResponse.PENDING)
        props.setdefault("rejection_count", 0)
        props.setdefault("priority", UserPriority.STUDENT)
        for list_field in ("required_features", "preferred_features", "tags"):
            if props.get(list_field) is None:
                props[list_field] = []

        request = cls(**props)
        request.created_at = now
        request.updated_at = now
        return request

    def validate(self, now: Optional[datetime] = None) -> ValidationOutcome:
        """
        Check the request is complete enough to persist.

        Never mutates the request.

        Args:
            now: Reference time for the deadline check

        Returns:
            Validation outcome with every violated rule
        """
        now = ensure_utc(now) or utc_now()
        errors: List[str] = []

        if is_blank(self.original_reservation_id):
            errors.append("Original reservation ID is required")

        if is_blank(self.requested_by):
            errors.append("Requested by user ID is required")

        if self.reason is None:
            errors.append("Reason is required")
        elif self.reason == ReassignmentReason.OTHER and is_blank(self.custom_reason):
            errors.append("Custom reason is required when reason is OTHER")

        if self.response_deadline is not None and self.response_deadline <= now:
            errors.append("Response deadline must be in the future")

        return ValidationOutcome.from_errors(errors)

    # Properties
    @property
    def is_pending(self) -> bool:
        """Check if request awaits a response."""
        return self.status == ReassignmentStatus.PENDING

    @property
    def is_accepted(self) -> bool:
        """Check if request was accepted."""
        return self.status == ReassignmentStatus.ACCEPTED

    @property
    def is_rejected(self) -> bool:
        """Check if request was rejected."""
        return self.status == ReassignmentStatus.REJECTED

    @property
    def is_cancelled(self) -> bool:
        """Check if request was cancelled."""
        return self.status == ReassignmentStatus.CANCELLED

    @property
    def has_suggested_resource(self) -> bool:
        """Check if a replacement resource has been proposed."""
        return not is_blank(self.suggested_resource_id)

    # Transitions
    def set_suggested_resource(self, resource_id: str, now: Optional[datetime] = None) -> None:
        """
        Propose a replacement resource.

        Args:
            resource_id: Candidate resource
            now: Operation time
        """
        if not self.is_pending:
            raise InvalidStateError(
                "Can only set suggested resource for pending requests",
                request_id=self.id,
                current_status=self.status.value,
            )
        if is_blank(resource_id):
            raise InvalidArgumentError("Resource ID is required", argument="resource_id")

        self.suggested_resource_id = resource_id
        self.touch(now)

    def set_response_deadline(self, deadline: datetime, now: Optional[datetime] = None) -> None:
        """
        Set the time by which the user must respond.

        Allowed in any status.

        Args:
            deadline: New deadline, strictly after now
            now: Operation time
        """
        now = ensure_utc(now) or utc_now()
        deadline = ensure_utc(deadline)

        if deadline is None or deadline <= now:
            raise InvalidArgumentError(
                "Response deadline must be in the future",
                argument="response_deadline",
                value=deadline,
            )

        self.response_deadline = deadline
        self.touch(now)

    def accept(self, now: Optional[datetime] = None) -> None:
        """
        Record the user's acceptance.

        Args:
            now: Operation time
        """
        now = ensure_utc(now) or utc_now()
        self._ensure_can_respond("accept", now)

        self.status = ReassignmentStatus.ACCEPTED
        self.user_response = UserResponse.ACCEPTED
        self.responded_at = now
        self.touch(now)

    def reject(self, now: Optional[datetime] = None) -> None:
        """
        Record the user's rejection.

        The first rejection downgrades priority by one step.

        Args:
            now: Operation time
        """
        now = ensure_utc(now) or utc_now()
        self._ensure_can_respond("reject", now)

        self.status = ReassignmentStatus.REJECTED
        self.user_response = UserResponse.REJECTED
        self.rejection_count = (self.rejection_count or 0) + 1
        self.responded_at = now
        self.touch(now)

        if self.rejection_count == 1:
            self._lower_priority()

    def cancel(self, now: Optional[datetime] = None) -> None:
        """Cancel the request from any status other than CANCELLED."""
        if self.is_cancelled:
            raise AlreadyCancelledError(request_id=self.id)

        self.status = ReassignmentStatus.CANCELLED
        self.touch(now)

    def expire(self, now: Optional[datetime] = None) -> None:
        """Move a pending request to EXPIRED."""
        if not self.is_pending:
            raise InvalidStateError(
                "Only pending requests can expire",
                request_id=self.id,
                current_status=self.status.value,
            )

        self.status = ReassignmentStatus.EXPIRED
        self.touch(now)

    def _ensure_can_respond(self, action: str, now: datetime) -> None:
        if not self.is_pending:
            raise InvalidStateError(
                f"Only pending requests can be {action}ed",
                request_id=self.id,
                current_status=self.status.value,
            )
        if self.is_expired(now):
            raise ExpiredError(
                f"Cannot {action} expired request",
                request_id=self.id,
                current_status=self.status.value,
            )

    def _lower_priority(self) -> None:
        self.priority = PRIORITY_DOWNGRADE.get(self.priority, self.priority)

    # Queries
    def is_expired(self, now: Optional[datetime] = None) -> bool:
        """
        Check whether the request is expired.

        A pending request whose deadline has passed counts as expired
        even before expire() is called.
        """
        if self.status == ReassignmentStatus.EXPIRED:
            return True

        if self.is_pending and self.response_deadline is not None:
            now = ensure_utc(now) or utc_now()
            return now > self.response_deadline

        return False

    def get_time_remaining_minutes(self, now: Optional[datetime] = None) -> Optional[int]:
        """Whole minutes left before the deadline, None when not applicable."""
        if self.response_deadline is None or not self.is_pending:
            return None

        now = ensure_utc(now) or utc_now()
        remaining = (self.response_deadline - now).total_seconds() / 60
        return max(0, math.floor(remaining))

    def get_hours_until_start(self, now: Optional[datetime] = None) -> Optional[float]:
        """Hours until the original booking starts, None when unknown."""
        if self.original_start_time is None:
            return None

        now = ensure_utc(now) or utc_now()
        return (self.original_start_time - now).total_seconds() / 3600

    def get_priority_weight(self) -> int:
        """Sort weight of the priority, higher first."""
        return PRIORITY_WEIGHTS.get(self.priority, 0)

    def get_urgency_level(self) -> UrgencyLevel:
        """Urgency derived from the reason alone."""
        return URGENCY_BY_REASON.get(self.reason, UrgencyLevel.LOW)

    def is_high_priority(self) -> bool:
        """High urgency, or a requester of program director rank or above."""
        urgency = self.get_urgency_level()
        return (
            urgency in (UrgencyLevel.CRITICAL, UrgencyLevel.HIGH)
            or self.get_priority_weight() >= 4
        )

    def get_reason_description(self) -> str:
        """Human readable reason."""
        if self.reason == ReassignmentReason.OTHER and not is_blank(self.custom_reason):
            return self.custom_reason
        return REASON_DESCRIPTIONS.get(self.reason, "Unknown reason")

    # Serialization
    def to_snapshot(self) -> Dict[str, Any]:
        """Every persisted column value, keyed by attribute name."""
        snapshot = {}
        for column in self.__table__.columns:
            value = getattr(self, column.key)
            snapshot[column.key] = list(value) if isinstance(value, list) else value
        return snapshot

    @classmethod
    def from_snapshot(cls, snapshot: Dict[str, Any]) -> "ReassignmentRequest":
        """Rebuild a detached request from to_snapshot() output."""
        return cls(**snapshot)

    def to_dict(
        self,
        exclude: Optional[List[str]] = None,
        now: Optional[datetime] = None
    ) -> Dict[str, Any]:
        """
        JSON friendly rendering including derived values.

        Args:
            exclude: List of field names to exclude
            now: Reference time for derived values

        Returns:
            Dictionary representation of the request
        """
        result = super().to_dict(exclude=exclude)
        result.update({
            "priority_weight": self.get_priority_weight(),
            "urgency_level": self.get_urgency_level().value,
            "is_high_priority": self.is_high_priority(),
            "is_expired": self.is_expired(now),
            "time_remaining_minutes": self.get_time_remaining_minutes(now),
            "reason_description": self.get_reason_description(),
        })
        return result

    def __repr__(self) -> str:
        """String representation."""
        return (
            f"<ReassignmentRequest(id={self.id}, "
            f"reservation_id={self.original_reservation_id}, "
            f"status={self.status}, priority={self.priority})>"
        )
