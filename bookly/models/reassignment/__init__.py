"""
Reassignment models package.

Reassignment requests and per-program reassignment configurations.
"""

from bookly.models.reassignment.reassignment_request import (
    PRIORITY_DOWNGRADE,
    PRIORITY_WEIGHTS,
    REASON_DESCRIPTIONS,
    URGENCY_BY_REASON,
    ReassignmentRequest,
)
from bookly.models.reassignment.reassignment_configuration import (
    CONFIGURATION_RANGES,
    ReassignmentConfiguration,
)

__all__ = [
    "ReassignmentRequest",
    "ReassignmentConfiguration",
    "PRIORITY_WEIGHTS",
    "PRIORITY_DOWNGRADE",
    "URGENCY_BY_REASON",
    "REASON_DESCRIPTIONS",
    "CONFIGURATION_RANGES",
]
