"""
Reassignment configuration model.

Per-program tuning of the reassignment workflow: suggestion limits,
response windows, notification channels, auto-approval and rejection
penalties.
"""

from datetime import datetime
from types import MappingProxyType
from typing import Any, List, Mapping, Optional, Tuple

from sqlalchemy import Boolean, Float, Index, Integer, String
from sqlalchemy.orm import Mapped, mapped_column

from bookly.core.exceptions import InvalidArgumentError
from bookly.models.base.base_model import TimestampModel, ensure_utc, utc_now
from bookly.models.base.enums import NotificationChannel
from bookly.models.base.validators import ValidationOutcome, validate_range

__all__ = [
    "ReassignmentConfiguration",
    "CONFIGURATION_RANGES",
]


# field -> (minimum, maximum, error message)
CONFIGURATION_RANGES: Mapping[str, Tuple[float, float, str]] = MappingProxyType({
    "default_capacity_tolerance": (
        0, 100, "Default capacity tolerance must be between 0 and 100 percent"
    ),
    "max_suggestions": (1, 20, "Max suggestions must be between 1 and 20"),
    "default_response_time_hours": (
        1, 168, "Default response time must be between 1 and 168 hours (1 week)"
    ),
    "urgent_response_time_hours": (
        0.5, 48, "Urgent response time must be between 0.5 and 48 hours"
    ),
    "reminder_interval_hours": (1, 24, "Reminder interval must be between 1 and 24 hours"),
    "auto_approval_threshold_hours": (
        1, 72, "Auto approval threshold must be between 1 and 72 hours"
    ),
    "rejection_penalty_points": (0, 50, "Rejection penalty points must be between 0 and 50"),
    "max_rejections_before_penalty": (
        1, 10, "Max rejections before penalty must be between 1 and 10"
    ),
})

_READ_ONLY_FIELDS = frozenset({"id", "program_id", "created_at", "updated_at"})


class ReassignmentConfiguration(TimestampModel):
    """
    Reassignment policy of an academic program.

    A configuration without program_id is the institution-wide default.
    Only one active configuration per program is expected; the repository
    enforces this when saving.
    """

    __tablename__ = "reassignment_configurations"

    program_id: Mapped[Optional[str]] = mapped_column(
        String(36),
        nullable=True,
        index=True,
        comment="Program the configuration applies to",
    )

    # Matching
    default_capacity_tolerance: Mapped[float] = mapped_column(
        Float,
        nullable=False,
        default=10,
        comment="Allowed capacity deviation in percent",
    )

    max_suggestions: Mapped[int] = mapped_column(
        Integer,
        nullable=False,
        default=5,
        comment="Maximum number of suggested resources",
    )

    prioritize_by_distance: Mapped[bool] = mapped_column(
        Boolean,
        nullable=False,
        default=True,
    )

    prioritize_by_availability: Mapped[bool] = mapped_column(
        Boolean,
        nullable=False,
        default=True,
    )

    # Time limits
    default_response_time_hours: Mapped[float] = mapped_column(
        Float,
        nullable=False,
        default=24,
        comment="Response window for regular requests",
    )

    urgent_response_time_hours: Mapped[float] = mapped_column(
        Float,
        nullable=False,
        default=4,
        comment="Response window for urgent requests",
    )

    reminder_interval_hours: Mapped[float] = mapped_column(
        Float,
        nullable=False,
        default=6,
        comment="Interval between response reminders",
    )

    # Notifications
    enable_email_notifications: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    enable_sms_notifications: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    enable_push_notifications: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    escalate_to_supervisor: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)

    # Auto-approval
    enable_auto_approval: Mapped[bool] = mapped_column(
        Boolean,
        nullable=False,
        default=False,
    )

    auto_approval_threshold_hours: Mapped[float] = mapped_column(
        Float,
        nullable=False,
        default=2,
        comment="Auto-approve only when the event starts within this many hours",
    )

    auto_approval_only_for_equivalent: Mapped[bool] = mapped_column(
        Boolean,
        nullable=False,
        default=True,
    )

    # Penalties
    apply_penalty_for_rejection: Mapped[bool] = mapped_column(
        Boolean,
        nullable=False,
        default=True,
    )

    rejection_penalty_points: Mapped[int] = mapped_column(
        Integer,
        nullable=False,
        default=5,
    )

    max_rejections_before_penalty: Mapped[int] = mapped_column(
        Integer,
        nullable=False,
        default=3,
    )

    is_active: Mapped[bool] = mapped_column(
        Boolean,
        nullable=False,
        default=True,
        index=True,
    )

    __table_args__ = (
        Index("ix_reassignment_configuration_program_active", "program_id", "is_active"),
        {"comment": "Per-program reassignment policies"},
    )

    @classmethod
    def create(cls, now: Optional[datetime] = None, **props: Any) -> "ReassignmentConfiguration":
        """
        Build an unpersisted configuration.

        Unset fields take the standard defaults.
        """
        now = ensure_utc(now) or utc_now()
        values = dict(_DEFAULT_VALUES)
        values.update(props)

        configuration = cls(**values)
        configuration.created_at = now
        configuration.updated_at = now
        return configuration

    def validate(self) -> ValidationOutcome:
        """Collect every range violation."""
        errors: List[str] = []

        for field_name, (minimum, maximum, message) in CONFIGURATION_RANGES.items():
            value = getattr(self, field_name)
            if value is None or validate_range(value, minimum, maximum, field_name):
                errors.append(message)

        if (
            self.urgent_response_time_hours is not None
            and self.default_response_time_hours is not None
            and self.urgent_response_time_hours > self.default_response_time_hours
        ):
            errors.append("Urgent response time cannot be longer than default response time")

        return ValidationOutcome.from_errors(errors)

    def update(self, now: Optional[datetime] = None, **changes: Any) -> None:
        """
        Apply changes, checking ranges field by field.

        Args:
            now: Operation time
            **changes: New field values

        Raises:
            InvalidArgumentError: On the first invalid field
        """
        for field_name, value in changes.items():
            if field_name in _READ_ONLY_FIELDS:
                raise InvalidArgumentError(
                    f"{field_name} cannot be updated",
                    argument=field_name,
                    value=value,
                )
            if field_name not in self.__table__.columns:
                raise InvalidArgumentError(
                    f"Unknown configuration field: {field_name}",
                    argument=field_name,
                    value=value,
                )

            if field_name in CONFIGURATION_RANGES:
                minimum, maximum, message = CONFIGURATION_RANGES[field_name]
                if value is None or validate_range(value, minimum, maximum, field_name):
                    raise InvalidArgumentError(message, argument=field_name, value=value)

            setattr(self, field_name, value)

        self.touch(now)

    def deactivate(self, now: Optional[datetime] = None) -> None:
        self.is_active = False
        self.touch(now)

    def get_response_time_hours(self, is_urgent: bool) -> float:
        """Response window for urgent or regular requests."""
        return self.urgent_response_time_hours if is_urgent else self.default_response_time_hours

    def should_auto_approve(self, hours_until_event: float, is_equivalent_resource: bool) -> bool:
        """
        Decide whether a suggestion can be accepted without the user.

        Args:
            hours_until_event: Hours until the booking starts
            is_equivalent_resource: Whether the suggestion is fully equivalent

        Returns:
            True when auto-approval applies
        """
        if not self.enable_auto_approval:
            return False

        if hours_until_event > self.auto_approval_threshold_hours:
            return False

        if self.auto_approval_only_for_equivalent and not is_equivalent_resource:
            return False

        return True

    def should_apply_penalty_for_rejection(self, rejection_count: int) -> bool:
        if not self.apply_penalty_for_rejection:
            return False

        return rejection_count >= self.max_rejections_before_penalty

    def get_enabled_notification_channels(self) -> List[str]:
        channels = []

        if self.enable_email_notifications:
            channels.append(NotificationChannel.EMAIL.value)

        if self.enable_sms_notifications:
            channels.append(NotificationChannel.SMS.value)

        if self.enable_push_notifications:
            channels.append(NotificationChannel.PUSH.value)

        return channels

    def get_configuration_summary(self) -> str:
        """One-line human readable summary."""
        parts = [
            f"Capacity tolerance: {_format_number(self.default_capacity_tolerance)}%",
            f"Max suggestions: {self.max_suggestions}",
            f"Response time: {_format_number(self.default_response_time_hours)}h "
            f"(urgent: {_format_number(self.urgent_response_time_hours)}h)",
        ]

        if self.enable_auto_approval:
            parts.append(
                f"Auto-approval: {_format_number(self.auto_approval_threshold_hours)}h threshold"
            )

        if self.apply_penalty_for_rejection:
            parts.append(
                f"Penalty: {self.rejection_penalty_points} points after "
                f"{self.max_rejections_before_penalty} rejections"
            )

        return ", ".join(parts)

    # Presets
    @classmethod
    def create_default(cls, program_id: Optional[str] = None) -> "ReassignmentConfiguration":
        return cls.create(program_id=program_id)

    @classmethod
    def create_lenient(cls, program_id: Optional[str] = None) -> "ReassignmentConfiguration":
        """More forgiving policy: longer windows, auto-approval, no penalties."""
        return cls.create(
            program_id=program_id,
            default_capacity_tolerance=20,
            max_suggestions=8,
            prioritize_by_distance=True,
            prioritize_by_availability=True,
            default_response_time_hours=48,
            urgent_response_time_hours=8,
            reminder_interval_hours=12,
            enable_email_notifications=True,
            enable_sms_notifications=False,
            enable_push_notifications=True,
            escalate_to_supervisor=False,
            enable_auto_approval=True,
            auto_approval_threshold_hours=4,
            auto_approval_only_for_equivalent=False,
            apply_penalty_for_rejection=False,
            rejection_penalty_points=0,
            max_rejections_before_penalty=5,
            is_active=True,
        )

    @classmethod
    def create_strict(cls, program_id: Optional[str] = None) -> "ReassignmentConfiguration":
        """Restrictive policy: short windows, every channel, early penalties."""
        return cls.create(
            program_id=program_id,
            default_capacity_tolerance=5,
            max_suggestions=3,
            prioritize_by_distance=True,
            prioritize_by_availability=True,
            default_response_time_hours=12,
            urgent_response_time_hours=2,
            reminder_interval_hours=3,
            enable_email_notifications=True,
            enable_sms_notifications=True,
            enable_push_notifications=True,
            escalate_to_supervisor=True,
            enable_auto_approval=False,
            auto_approval_threshold_hours=1,
            auto_approval_only_for_equivalent=True,
            apply_penalty_for_rejection=True,
            rejection_penalty_points=10,
            max_rejections_before_penalty=2,
            is_active=True,
        )

    @classmethod
    def from_settings(cls, reassignment_settings: Any, program_id: Optional[str] = None) -> "ReassignmentConfiguration":
        """
        Default preset with the windows and limits taken from settings.

        Args:
            reassignment_settings: ReassignmentSettings instance
            program_id: Program the configuration applies to

        Returns:
            Unpersisted configuration
        """
        configuration = cls.create_default(program_id)
        configuration.default_capacity_tolerance = reassignment_settings.DEFAULT_CAPACITY_TOLERANCE
        configuration.max_suggestions = reassignment_settings.MAX_SUGGESTIONS
        configuration.default_response_time_hours = reassignment_settings.DEFAULT_RESPONSE_TIME_HOURS
        configuration.urgent_response_time_hours = reassignment_settings.URGENT_RESPONSE_TIME_HOURS
        configuration.reminder_interval_hours = reassignment_settings.REMINDER_INTERVAL_HOURS
        return configuration

    def __repr__(self) -> str:
        return (
            f"<ReassignmentConfiguration(id={self.id}, program_id={self.program_id}, "
            f"active={self.is_active})>"
        )


_DEFAULT_VALUES = MappingProxyType({
    "default_capacity_tolerance": 10,
    "max_suggestions": 5,
    "prioritize_by_distance": True,
    "prioritize_by_availability": True,
    "default_response_time_hours": 24,
    "urgent_response_time_hours": 4,
    "reminder_interval_hours": 6,
    "enable_email_notifications": True,
    "enable_sms_notifications": False,
    "enable_push_notifications": True,
    "escalate_to_supervisor": True,
    "enable_auto_approval": False,
    "auto_approval_threshold_hours": 2,
    "auto_approval_only_for_equivalent": True,
    "apply_penalty_for_rejection": True,
    "rejection_penalty_points": 5,
    "max_rejections_before_penalty": 3,
    "is_active": True,
})


def _format_number(value: float) -> str:
    """Render 24.0 as 24 and 0.5 as 0.5."""
    if value is not None and float(value).is_integer():
        return str(int(value))
    return str(value)
