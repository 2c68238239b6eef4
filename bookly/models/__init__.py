"""
Database models package.

Importing this package registers every mapped table on Base.metadata.
"""

from bookly.models.base import (
    Base,
    BaseModel,
    TimestampModel,
    ValidationOutcome,
    ReassignmentReason,
    ReassignmentStatus,
    UserResponse,
    UserPriority,
    UrgencyLevel,
    NextAction,
    NotificationChannel,
)
from bookly.models.reassignment import (
    ReassignmentRequest,
    ReassignmentConfiguration,
)

__all__ = [
    "Base",
    "BaseModel",
    "TimestampModel",
    "ValidationOutcome",
    "ReassignmentReason",
    "ReassignmentStatus",
    "UserResponse",
    "UserPriority",
    "UrgencyLevel",
    "NextAction",
    "NotificationChannel",
    "ReassignmentRequest",
    "ReassignmentConfiguration",
]
