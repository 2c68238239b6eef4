"""
Base services module.

Provides the service result pattern and the base service class with
shared error handling, logging and transaction helpers.
"""

from bookly.services.base.service_result import (
    ServiceResult,
    ServiceError,
    ServiceErrorCode,
    ErrorSeverity,
    DictResult,
)

from bookly.services.base.base_service import BaseService

__all__ = [
    "ServiceResult",
    "ServiceError",
    "ServiceErrorCode",
    "ErrorSeverity",
    "DictResult",
    "BaseService",
]
