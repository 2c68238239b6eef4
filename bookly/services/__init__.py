"""
Service layer.

Services orchestrate models and repositories and report outcomes as
ServiceResult objects.
"""

from bookly.services.base import (
    BaseService,
    ServiceErrorCode,
    ErrorSeverity,
    ServiceError,
    ServiceResult,
)
from bookly.services.reassignment import (
    EquivalenceOracle,
    NullEquivalenceOracle,
    ReassignmentService,
)

__all__ = [
    "BaseService",
    "ServiceErrorCode",
    "ErrorSeverity",
    "ServiceError",
    "ServiceResult",
    "EquivalenceOracle",
    "NullEquivalenceOracle",
    "ReassignmentService",
]
