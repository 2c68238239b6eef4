"""
Base service class providing common functionality for all services.
"""

from typing import TypeVar, Generic, Optional, Dict, Any
from abc import ABC

from sqlalchemy.orm import Session
from sqlalchemy.exc import SQLAlchemyError

from bookly.core.exceptions import BaseAppException, ErrorCode
from bookly.core.logging import get_logger
from bookly.repositories.base.base_repository import BaseRepository
from bookly.services.base.service_result import (
    ServiceResult,
    ServiceError,
    ServiceErrorCode,
    ErrorSeverity,
)


TModel = TypeVar("TModel")
TRepo = TypeVar("TRepo", bound=BaseRepository)

# Domain error codes to service error codes
_APP_ERROR_CODES: Dict[ErrorCode, ServiceErrorCode] = {
    ErrorCode.INVALID_ARGUMENT: ServiceErrorCode.INVALID_ARGUMENT,
    ErrorCode.RESOURCE_NOT_FOUND: ServiceErrorCode.NOT_FOUND,
    ErrorCode.CONFLICT: ServiceErrorCode.CONFLICT,
    ErrorCode.INVALID_STATE: ServiceErrorCode.INVALID_STATE,
    ErrorCode.REQUEST_EXPIRED: ServiceErrorCode.EXPIRED,
    ErrorCode.ALREADY_CANCELLED: ServiceErrorCode.ALREADY_CANCELLED,
    ErrorCode.DATABASE_ERROR: ServiceErrorCode.DATABASE_ERROR,
    ErrorCode.INVALID_CONFIGURATION: ServiceErrorCode.INVALID_CONFIGURATION,
    ErrorCode.EXTERNAL_SERVICE_ERROR: ServiceErrorCode.EXTERNAL_SERVICE_ERROR,
}

# Expected business outcomes are logged below ERROR
_EXPECTED_ERROR_CODES = frozenset({
    ServiceErrorCode.VALIDATION_ERROR,
    ServiceErrorCode.INVALID_ARGUMENT,
    ServiceErrorCode.NOT_FOUND,
    ServiceErrorCode.CONFLICT,
    ServiceErrorCode.INVALID_STATE,
    ServiceErrorCode.EXPIRED,
    ServiceErrorCode.ALREADY_CANCELLED,
})


class BaseService(ABC, Generic[TModel, TRepo]):
    """
    Base service with common behaviors:
    - Shared logger and db session
    - Consistent error handling via ServiceResult
    - Transaction management utilities
    """

    def __init__(self, repository: TRepo, db_session: Session):
        """
        Initialize base service.

        Args:
            repository: Repository instance for data access
            db_session: SQLAlchemy database session
        """
        self.repository: TRepo = repository
        self.db: Session = db_session
        self._logger = get_logger(f"{self.__class__.__module__}.{self.__class__.__name__}")

    # -------------------------------------------------------------------------
    # Exception & Error Handling
    # -------------------------------------------------------------------------

    def _handle_exception(
        self,
        exception: Exception,
        operation: str,
        entity_ref: Optional[Any] = None,
        additional_context: Optional[Dict[str, Any]] = None,
    ) -> ServiceResult:
        """
        Convert exception to a ServiceResult failure with logging.

        Domain errors keep their own message; anything else is reported
        as a failure of the operation.

        Args:
            exception: The caught exception
            operation: Description of the operation that failed
            entity_ref: Reference to the entity involved (ID, name, etc.)
            additional_context: Extra context for logging/debugging

        Returns:
            ServiceResult with failure status and error details
        """
        error_code = self._map_exception_to_error_code(exception)

        context = {
            "operation": operation,
            "entity_ref": str(entity_ref) if entity_ref is not None else None,
            "exception_type": type(exception).__name__,
            "error_code": error_code.value,
        }
        if additional_context:
            context.update(additional_context)

        if error_code in _EXPECTED_ERROR_CODES:
            self._logger.warning(f"{operation} rejected: {exception}", extra=context)
            severity = ErrorSeverity.WARNING
        else:
            self._logger.error(f"Error during {operation}: {exception}", exc_info=True, extra=context)
            severity = ErrorSeverity.CRITICAL

        if isinstance(exception, BaseAppException):
            message = exception.message
            details = dict(exception.details)
        else:
            message = f"Failed to {operation}"
            details = {"error": str(exception)}

        if entity_ref is not None:
            details.setdefault("entity_ref", str(entity_ref))

        return ServiceResult.failure(
            ServiceError(
                code=error_code,
                message=message,
                details=details,
                severity=severity,
            )
        )

    def _map_exception_to_error_code(self, exception: Exception) -> ServiceErrorCode:
        """
        Map exception types to appropriate error codes.

        Args:
            exception: The exception to map

        Returns:
            Appropriate ServiceErrorCode for the exception
        """
        if isinstance(exception, BaseAppException):
            return _APP_ERROR_CODES.get(exception.error_code, ServiceErrorCode.INTERNAL_ERROR)

        exception_mapping = {
            ValueError: ServiceErrorCode.VALIDATION_ERROR,
            SQLAlchemyError: ServiceErrorCode.DATABASE_ERROR,
        }

        for exc_type, error_code in exception_mapping.items():
            if isinstance(exception, exc_type):
                return error_code

        return ServiceErrorCode.INTERNAL_ERROR

    # -------------------------------------------------------------------------
    # Transaction Management
    # -------------------------------------------------------------------------

    def _commit(self) -> None:
        """Commit the current transaction with error handling."""
        try:
            self.db.commit()
            self._logger.debug("Transaction committed successfully")
        except Exception as e:
            self._logger.error(f"Commit failed: {e}", exc_info=True)
            self._rollback()
            raise

    def _rollback(self) -> None:
        """Rollback the current transaction, suppressing rollback errors."""
        try:
            self.db.rollback()
            self._logger.debug("Transaction rolled back")
        except SQLAlchemyError as e:
            self._logger.warning(f"Rollback failed: {e}")

    # -------------------------------------------------------------------------
    # Utility Methods
    # -------------------------------------------------------------------------

    def _log_operation(
        self,
        operation: str,
        entity_ref: Optional[Any] = None,
        extra: Optional[Dict[str, Any]] = None,
    ) -> None:
        """
        Log service operation with standardized format.

        Args:
            operation: Description of the operation
            entity_ref: Reference to the entity involved
            extra: Additional context to log
        """
        context = {"entity_ref": str(entity_ref) if entity_ref else None}
        if extra:
            context.update(extra)

        self._logger.info(f"Operation: {operation}", extra=context)
