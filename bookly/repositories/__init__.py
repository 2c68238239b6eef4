"""
Repositories package.
"""

from bookly.repositories.base import (
    BaseRepository,
    BulkFailure,
    BulkOperationResult,
    PageInfo,
    PaginatedResult,
)
from bookly.repositories.reassignment import (
    ReassignmentConfigurationRepository,
    ReassignmentRequestRepository,
    ReassignmentSearchCriteria,
)

__all__ = [
    "BaseRepository",
    "BulkFailure",
    "BulkOperationResult",
    "PageInfo",
    "PaginatedResult",
    "ReassignmentRequestRepository",
    "ReassignmentSearchCriteria",
    "ReassignmentConfigurationRepository",
]
