"""
Database enums for the reassignment workflow.

Provides SQLAlchemy-compatible enum definitions shared by the models,
schemas and services. Enum members are persisted by name.
"""

import enum


class ReassignmentReason(str, enum.Enum):
    """Cause of a reassignment request."""
    MAINTENANCE = "MAINTENANCE"
    TECHNICAL_ISSUES = "TECHNICAL_ISSUES"
    CAPACITY_CHANGE = "CAPACITY_CHANGE"
    FACILITY_UNAVAILABLE = "FACILITY_UNAVAILABLE"
    EMERGENCY = "EMERGENCY"
    ADMINISTRATIVE = "ADMINISTRATIVE"
    OTHER = "OTHER"


class ReassignmentStatus(str, enum.Enum):
    """Workflow status of a reassignment request."""
    PENDING = "PENDING"
    ACCEPTED = "ACCEPTED"
    REJECTED = "REJECTED"
    CANCELLED = "CANCELLED"
    EXPIRED = "EXPIRED"


class UserResponse(str, enum.Enum):
    """Decision recorded for the affected user."""
    PENDING = "PENDING"
    ACCEPTED = "ACCEPTED"
    REJECTED = "REJECTED"


class UserPriority(str, enum.Enum):
    """Requester role precedence, highest first."""
    ADMIN_GENERAL = "ADMIN_GENERAL"
    PROGRAM_DIRECTOR = "PROGRAM_DIRECTOR"
    TEACHER = "TEACHER"
    STUDENT = "STUDENT"
    EXTERNAL = "EXTERNAL"


class UrgencyLevel(str, enum.Enum):
    """Urgency derived from the reassignment reason."""
    LOW = "LOW"
    MEDIUM = "MEDIUM"
    HIGH = "HIGH"
    CRITICAL = "CRITICAL"


class NextAction(str, enum.Enum):
    """Follow-up suggested after a user response."""
    COMPLETE = "COMPLETE"
    FIND_ALTERNATIVES = "FIND_ALTERNATIVES"
    APPLY_PENALTY = "APPLY_PENALTY"
    ESCALATE = "ESCALATE"


class NotificationChannel(str, enum.Enum):
    """Channels a program can notify users through."""
    EMAIL = "email"
    SMS = "sms"
    PUSH = "push"


__all__ = [
    "ReassignmentReason",
    "ReassignmentStatus",
    "UserResponse",
    "UserPriority",
    "UrgencyLevel",
    "NextAction",
    "NotificationChannel",
]
