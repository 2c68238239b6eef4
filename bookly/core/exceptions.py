"""
Custom Exceptions for the Bookly Reassignment Backend

This module defines custom exception classes used throughout the application
for better error handling and debugging.
"""

from typing import Any, Dict, List, Optional
from enum import Enum


class ErrorCode(str, Enum):
    """Standard error codes for the application"""
    # General errors
    INTERNAL_ERROR = "INTERNAL_ERROR"
    RESOURCE_NOT_FOUND = "RESOURCE_NOT_FOUND"

    # Argument errors
    INVALID_ARGUMENT = "INVALID_ARGUMENT"

    # Database errors
    DATABASE_ERROR = "DATABASE_ERROR"
    CONFLICT = "CONFLICT"

    # Reassignment workflow errors
    INVALID_STATE = "INVALID_STATE"
    REQUEST_EXPIRED = "REQUEST_EXPIRED"
    ALREADY_CANCELLED = "ALREADY_CANCELLED"

    # External collaborator errors
    EXTERNAL_SERVICE_ERROR = "EXTERNAL_SERVICE_ERROR"

    # Configuration errors
    INVALID_CONFIGURATION = "INVALID_CONFIGURATION"


class BaseAppException(Exception):
    """
    Base exception class for all application exceptions.

    Provides consistent error handling across the application with
    structured error information.
    """

    def __init__(
        self,
        message: str,
        error_code: ErrorCode = ErrorCode.INTERNAL_ERROR,
        details: Optional[Dict[str, Any]] = None,
        status_code: int = 500
    ):
        self.message = message
        self.error_code = error_code
        self.details = details or {}
        self.status_code = status_code
        super().__init__(self.message)

    def to_dict(self) -> Dict[str, Any]:
        """Convert exception to dictionary format"""
        return {
            "error": {
                "message": self.message,
                "code": self.error_code.value,
                "details": self.details,
                "type": self.__class__.__name__
            }
        }

    def __str__(self) -> str:
        return f"{self.error_code.value}: {self.message}"

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(message='{self.message}', error_code='{self.error_code.value}')"


# ========================================
# General Application Exceptions
# ========================================

class InvalidArgumentError(BaseAppException):
    """Exception raised when an operation receives a malformed argument"""

    def __init__(
        self,
        message: str = "Invalid argument",
        argument: Optional[str] = None,
        value: Any = None
    ):
        details = {}
        if argument:
            details["argument"] = argument
            details["value"] = str(value) if value is not None else None
        super().__init__(message, ErrorCode.INVALID_ARGUMENT, details, 400)


class ResourceNotFoundError(BaseAppException):
    """Exception raised when a requested resource is not found"""

    def __init__(
        self,
        resource_type: str = "Resource",
        resource_id: Optional[str] = None,
        message: Optional[str] = None
    ):
        if not message:
            message = f"{resource_type} not found"
            if resource_id:
                message += f" (ID: {resource_id})"

        details = {
            "resource_type": resource_type,
            "resource_id": resource_id
        }
        super().__init__(message, ErrorCode.RESOURCE_NOT_FOUND, details, 404)


# ========================================
# Persistence Exceptions
# ========================================

class RepositoryError(BaseAppException):
    """Exception raised when the database layer fails"""

    def __init__(
        self,
        message: str = "Database operation failed",
        operation: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None
    ):
        details = dict(details or {})
        if operation:
            details["operation"] = operation
        super().__init__(message, ErrorCode.DATABASE_ERROR, details, 500)


class ConflictError(BaseAppException):
    """Exception raised when a concurrent modification is detected"""

    def __init__(
        self,
        message: str = "Record was modified by another writer",
        resource_id: Optional[str] = None,
        expected_version: Optional[int] = None,
        actual_version: Optional[int] = None
    ):
        details = {
            "resource_id": resource_id,
            "expected_version": expected_version,
            "actual_version": actual_version
        }
        super().__init__(message, ErrorCode.CONFLICT, details, 409)


# ========================================
# Reassignment Workflow Exceptions
# ========================================

class ReassignmentError(BaseAppException):
    """Base exception for reassignment request state machine errors"""

    def __init__(
        self,
        message: str,
        error_code: ErrorCode = ErrorCode.INVALID_STATE,
        request_id: Optional[str] = None,
        current_status: Optional[str] = None,
        status_code: int = 409
    ):
        details = {}
        if request_id:
            details["request_id"] = request_id
        if current_status:
            details["current_status"] = current_status
        super().__init__(message, error_code, details, status_code)


class InvalidStateError(ReassignmentError):
    """Transition attempted from a status that forbids it"""

    def __init__(
        self,
        message: str = "Operation not allowed in current state",
        request_id: Optional[str] = None,
        current_status: Optional[str] = None
    ):
        super().__init__(message, ErrorCode.INVALID_STATE, request_id, current_status)


class ExpiredError(ReassignmentError):
    """Transition attempted on a request whose response deadline has passed"""

    def __init__(
        self,
        message: str = "Reassignment request has expired",
        request_id: Optional[str] = None,
        current_status: Optional[str] = None
    ):
        super().__init__(message, ErrorCode.REQUEST_EXPIRED, request_id, current_status, 410)


class AlreadyCancelledError(ReassignmentError):
    """Cancellation attempted on an already cancelled request"""

    def __init__(
        self,
        message: str = "Request is already cancelled",
        request_id: Optional[str] = None
    ):
        super().__init__(message, ErrorCode.ALREADY_CANCELLED, request_id, "CANCELLED")


class ReassignmentRequestNotFoundError(ResourceNotFoundError):
    """Reassignment request id does not exist"""

    def __init__(self, request_id: Optional[str] = None):
        super().__init__("ReassignmentRequest", request_id)


class ConfigurationError(BaseAppException):
    """Exception raised when a reassignment configuration is invalid"""

    def __init__(
        self,
        message: str = "Invalid configuration",
        errors: Optional[List[str]] = None
    ):
        details = {"errors": list(errors)} if errors else {}
        super().__init__(message, ErrorCode.INVALID_CONFIGURATION, details, 422)


class ExternalServiceError(BaseAppException):
    """Exception raised when an external collaborator fails"""

    def __init__(
        self,
        service_name: str,
        message: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None
    ):
        message = message or f"External service '{service_name}' failed"
        details = dict(details or {})
        details["service"] = service_name
        super().__init__(message, ErrorCode.EXTERNAL_SERVICE_ERROR, details, 502)


__all__ = [
    "ErrorCode",
    "BaseAppException",
    "InvalidArgumentError",
    "ResourceNotFoundError",
    "RepositoryError",
    "ConflictError",
    "ReassignmentError",
    "InvalidStateError",
    "ExpiredError",
    "AlreadyCancelledError",
    "ReassignmentRequestNotFoundError",
    "ConfigurationError",
    "ExternalServiceError",
]
