"""
Reassignment repositories package.

Exports the reassignment request and configuration repositories.
"""

from bookly.repositories.reassignment.reassignment_request_repository import (
    ReassignmentRequestRepository,
    ReassignmentSearchCriteria,
)
from bookly.repositories.reassignment.reassignment_configuration_repository import (
    ReassignmentConfigurationRepository,
)

__all__ = [
    "ReassignmentRequestRepository",
    "ReassignmentSearchCriteria",
    "ReassignmentConfigurationRepository",
]
