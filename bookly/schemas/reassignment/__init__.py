"""
Reassignment schemas package.
"""

from bookly.schemas.reassignment.bulk_actions import (
    AcceptAction,
    BulkAction,
    BulkActionRequest,
    CancelAction,
    ExpireAction,
    RejectAction,
    SetDeadlineAction,
    SuggestResourceAction,
    parse_bulk_action,
)
from bookly.schemas.reassignment.equivalence import (
    EquivalenceQuery,
    EquivalentResource,
    TimeWindow,
)
from bookly.schemas.reassignment.reassignment_configuration import (
    ReassignmentConfigurationCreate,
    ReassignmentConfigurationResponse,
    ReassignmentConfigurationUpdate,
)
from bookly.schemas.reassignment.reassignment_request import (
    AutoProcessDecision,
    AutoProcessSummary,
    ReassignmentCreateResult,
    ReassignmentFilterParams,
    ReassignmentRequestCreate,
    ReassignmentRequestResponse,
    ReassignmentResponseResult,
    UserResponseSubmission,
)

__all__ = [
    "AcceptAction",
    "RejectAction",
    "CancelAction",
    "ExpireAction",
    "SetDeadlineAction",
    "SuggestResourceAction",
    "BulkAction",
    "BulkActionRequest",
    "parse_bulk_action",
    "TimeWindow",
    "EquivalenceQuery",
    "EquivalentResource",
    "ReassignmentConfigurationCreate",
    "ReassignmentConfigurationUpdate",
    "ReassignmentConfigurationResponse",
    "ReassignmentRequestCreate",
    "ReassignmentRequestResponse",
    "ReassignmentFilterParams",
    "UserResponseSubmission",
    "ReassignmentCreateResult",
    "ReassignmentResponseResult",
    "AutoProcessDecision",
    "AutoProcessSummary",
]
