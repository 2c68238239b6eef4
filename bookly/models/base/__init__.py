"""
Base models package.

Provides base classes, custom types and enums for all database models.
"""

from bookly.models.base.base_model import (
    Base,
    BaseModel,
    TimestampModel,
    utc_now,
    ensure_utc,
)

from bookly.models.base.types import (
    UTCDateTime,
    JSONType,
)

from bookly.models.base.validators import (
    ValidationOutcome,
    validate_range,
    is_blank,
)

from bookly.models.base.enums import (
    ReassignmentReason,
    ReassignmentStatus,
    UserResponse,
    UserPriority,
    UrgencyLevel,
    NextAction,
    NotificationChannel,
)

__all__ = [
    "Base",
    "BaseModel",
    "TimestampModel",
    "utc_now",
    "ensure_utc",
    "UTCDateTime",
    "JSONType",
    "ValidationOutcome",
    "validate_range",
    "is_blank",
    "ReassignmentReason",
    "ReassignmentStatus",
    "UserResponse",
    "UserPriority",
    "UrgencyLevel",
    "NextAction",
    "NotificationChannel",
]
