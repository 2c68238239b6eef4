"""
Service results: every reassignment operation reports success or a coded
failure instead of raising across the service boundary.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Generic, List, Optional, TypeVar


class ServiceErrorCode(str, Enum):
    """Failure codes callers of the services branch on."""

    INTERNAL_ERROR = "INTERNAL_ERROR"
    VALIDATION_ERROR = "VALIDATION_ERROR"
    INVALID_ARGUMENT = "INVALID_ARGUMENT"
    NOT_FOUND = "NOT_FOUND"

    # Request workflow
    INVALID_STATE = "INVALID_STATE"
    EXPIRED = "EXPIRED"
    ALREADY_CANCELLED = "ALREADY_CANCELLED"
    CONFLICT = "CONFLICT"

    # Infrastructure
    DATABASE_ERROR = "DATABASE_ERROR"
    INVALID_CONFIGURATION = "INVALID_CONFIGURATION"
    EXTERNAL_SERVICE_ERROR = "EXTERNAL_SERVICE_ERROR"


class ErrorSeverity(str, Enum):
    """WARNING for rejected business input, CRITICAL for unexpected failures."""

    WARNING = "WARNING"
    CRITICAL = "CRITICAL"


@dataclass
class ServiceError:
    """Coded failure with the details of the domain error behind it."""

    code: ServiceErrorCode
    message: str
    severity: ErrorSeverity = ErrorSeverity.CRITICAL
    details: Dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "code": self.code.value,
            "message": self.message,
            "severity": self.severity.value,
            "details": self.details,
        }


TData = TypeVar("TData")


@dataclass
class ServiceResult(Generic[TData]):
    """
    Outcome of a service operation.

    Attributes:
        is_success: Whether the operation completed
        data: Payload of a successful operation
        error: Failure description
        message: Human-readable summary
        metadata: Counts and settings that shaped the result
    """

    is_success: bool
    data: Optional[TData] = None
    error: Optional[ServiceError] = None
    message: Optional[str] = None
    metadata: Dict[str, Any] = field(default_factory=dict)

    @classmethod
    def success(
        cls,
        data: Optional[TData] = None,
        message: Optional[str] = None,
        metadata: Optional[Dict[str, Any]] = None,
    ) -> "ServiceResult[TData]":
        return cls(is_success=True, data=data, message=message, metadata=dict(metadata or {}))

    @classmethod
    def failure(cls, error: ServiceError) -> "ServiceResult[TData]":
        return cls(is_success=False, error=error, message=error.message)

    @classmethod
    def validation_failure(cls, message: str, errors: List[str]) -> "ServiceResult[TData]":
        """Failure carrying every validation error, not just the first."""
        return cls.failure(
            ServiceError(
                code=ServiceErrorCode.VALIDATION_ERROR,
                message=message,
                severity=ErrorSeverity.WARNING,
                details={"errors": list(errors)},
            )
        )

    @property
    def error_code(self) -> Optional[ServiceErrorCode]:
        """Code of the failure, None on success."""
        return self.error.code if self.error else None

    def unwrap(self) -> TData:
        """
        Return the payload of a successful result.

        Raises:
            ValueError: If the operation failed
        """
        if not self.is_success:
            reason = self.error.message if self.error else "unknown error"
            raise ValueError(f"Cannot unwrap failed result: {reason}")
        return self.data

    def to_dict(self) -> Dict[str, Any]:
        """Render for logging or an outer transport layer."""
        rendered: Dict[str, Any] = {
            "is_success": self.is_success,
            "message": self.message,
            "metadata": self.metadata,
        }
        if self.is_success:
            rendered["data"] = self.data
        else:
            rendered["error"] = self.error.to_dict() if self.error else None
        return rendered

    def __repr__(self) -> str:
        status = "Success" if self.is_success else f"Failure {self.error_code.value}"
        if self.message:
            return f"ServiceResult({status}: {self.message})"
        return f"ServiceResult({status})"


DictResult = ServiceResult[Dict[str, Any]]


__all__ = [
    "ServiceErrorCode",
    "ErrorSeverity",
    "ServiceError",
    "ServiceResult",
    "DictResult",
]
