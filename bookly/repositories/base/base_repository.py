"""
Base repository with standardized CRUD operations, transaction management, and error handling.

Provides foundation for all domain repositories with optimistic
concurrency and per-record bulk processing.
"""

from dataclasses import dataclass, field
from typing import Any, Callable, Dict, Generic, List, Optional, Type, TypeVar, Union

from sqlalchemy import func, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session
from sqlalchemy.orm.exc import StaleDataError

from bookly.models.base import BaseModel
from bookly.core.logging import get_logger
from bookly.core.exceptions import (
    BaseAppException,
    ConflictError,
    RepositoryError,
    ResourceNotFoundError,
)

logger = get_logger(__name__)

# Type variable for model classes
ModelType = TypeVar("ModelType", bound=BaseModel)

# Either a dict of new values or a callable mutating the loaded entity
Changes = Union[Dict[str, Any], Callable[[Any], Any]]


@dataclass
class BulkFailure:
    """A record a bulk operation could not process."""

    id: str
    error_code: str
    message: str

    def to_dict(self) -> Dict[str, Any]:
        return {"id": self.id, "error_code": self.error_code, "message": self.message}


@dataclass
class BulkOperationResult(Generic[ModelType]):
    """Aggregate outcome of a partial-failure tolerant bulk operation."""

    succeeded: List[ModelType] = field(default_factory=list)
    failed: List[BulkFailure] = field(default_factory=list)

    @property
    def success_count(self) -> int:
        return len(self.succeeded)

    @property
    def failure_count(self) -> int:
        return len(self.failed)

    @property
    def total(self) -> int:
        return self.success_count + self.failure_count

    def add_failure(self, record_id: str, exception: Exception) -> None:
        code = (
            exception.error_code.value
            if isinstance(exception, BaseAppException)
            else type(exception).__name__
        )
        message = exception.message if isinstance(exception, BaseAppException) else str(exception)
        self.failed.append(BulkFailure(id=record_id, error_code=code, message=message))

    def to_dict(self) -> Dict[str, Any]:
        return {
            "succeeded": [getattr(item, "id", item) for item in self.succeeded],
            "failed": [failure.to_dict() for failure in self.failed],
            "success_count": self.success_count,
            "failure_count": self.failure_count,
        }


class BaseRepository(Generic[ModelType]):
    """
    Abstract base repository with standardized operations.

    Provides CRUD operations, transaction management, and error handling
    for all domain repositories.
    """

    def __init__(self, model: Type[ModelType], db: Session):
        """
        Initialize repository.

        Args:
            model: SQLAlchemy model class
            db: Database session
        """
        self.model = model
        self.db = db
        self._is_versioned = self.model.__mapper__.version_id_col is not None

    # ==================== Transaction Management ====================

    def commit(self):
        """Commit current transaction."""
        try:
            self.db.commit()
        except StaleDataError as e:
            self.db.rollback()
            raise ConflictError(f"Concurrent modification detected: {str(e)}") from e
        except SQLAlchemyError as e:
            self.db.rollback()
            raise RepositoryError(f"Commit failed: {str(e)}") from e

    # ==================== Error Hooks ====================

    def _not_found(self, id: str) -> ResourceNotFoundError:
        """Exception raised by get_by_id. Override for a domain specific error."""
        return ResourceNotFoundError(self.model.__name__, id)

    # ==================== Create Operations ====================

    def create(self, entity: ModelType, commit: bool = True) -> ModelType:
        """
        Persist a new entity.

        Args:
            entity: Entity to create
            commit: Whether to commit immediately

        Returns:
            Created entity with its id assigned
        """
        try:
            self.db.add(entity)

            if commit:
                self.db.commit()
                self.db.refresh(entity)
            else:
                self.db.flush()

            logger.info(f"Created {self.model.__name__} with id: {entity.id}")
            return entity

        except SQLAlchemyError as e:
            self.db.rollback()
            raise RepositoryError(f"Create failed: {str(e)}", operation="create") from e

    # ==================== Read Operations ====================

    def find_by_id(self, id: str) -> Optional[ModelType]:
        """
        Find entity by ID.

        Args:
            id: Entity ID

        Returns:
            Entity or None
        """
        try:
            return self.db.get(self.model, id)
        except SQLAlchemyError as e:
            raise RepositoryError(f"Find by ID failed: {str(e)}", operation="find_by_id") from e

    def get_by_id(self, id: str) -> ModelType:
        """
        Get entity by ID or raise exception.

        Args:
            id: Entity ID

        Returns:
            Entity

        Raises:
            ResourceNotFoundError: If entity not found
        """
        entity = self.find_by_id(id)
        if entity is None:
            raise self._not_found(id)
        return entity

    def count(self) -> int:
        """Total number of rows."""
        try:
            stmt = select(func.count()).select_from(self.model)
            return self.db.execute(stmt).scalar_one()
        except SQLAlchemyError as e:
            raise RepositoryError(f"Count failed: {str(e)}", operation="count") from e

    # ==================== Update Operations ====================

    def update(
        self,
        id: str,
        changes: Changes,
        expected_version: Optional[int] = None,
        commit: bool = True
    ) -> ModelType:
        """
        Update entity with version control.

        Args:
            id: Entity ID
            changes: Dict of new values, or a callable applied to the loaded entity
            expected_version: Version the caller read, for compare-and-swap
            commit: Whether to commit immediately

        Returns:
            Updated entity

        Raises:
            ResourceNotFoundError: If entity not found
            ConflictError: On version mismatch or a concurrent write
        """
        entity = self.get_by_id(id)

        if expected_version is not None and self._is_versioned:
            if entity.version != expected_version:
                raise ConflictError(
                    f"Version mismatch: expected {expected_version}, got {entity.version}",
                    resource_id=id,
                    expected_version=expected_version,
                    actual_version=entity.version,
                )

        try:
            if callable(changes):
                changes(entity)
            else:
                for key, value in changes.items():
                    if hasattr(entity, key):
                        setattr(entity, key, value)

            if commit:
                self.db.commit()
            else:
                self.db.flush()

        except BaseAppException:
            self.db.rollback()
            raise
        except StaleDataError as e:
            self.db.rollback()
            raise ConflictError(
                f"{self.model.__name__} {id} was modified concurrently",
                resource_id=id,
                expected_version=expected_version,
            ) from e
        except SQLAlchemyError as e:
            self.db.rollback()
            raise RepositoryError(f"Update failed: {str(e)}", operation="update") from e

        logger.info(f"Updated {self.model.__name__} with id: {id}")
        return entity

    # ==================== Bulk Operations ====================

    def apply_each(
        self,
        entities: List[ModelType],
        operation: Callable[[ModelType], Any],
        commit: bool = True
    ) -> BulkOperationResult[ModelType]:
        """
        Apply an operation to every entity inside its own savepoint.

        A failing record is rolled back alone and reported; the rest
        continue.

        Args:
            entities: Entities to process
            operation: Callable mutating one entity
            commit: Whether to commit once all records are processed

        Returns:
            Per-record outcome
        """
        result: BulkOperationResult[ModelType] = BulkOperationResult()

        for entity in entities:
            entity_id = entity.id
            try:
                with self.db.begin_nested():
                    operation(entity)
                    self.db.flush()
                result.succeeded.append(entity)
            except StaleDataError as e:
                result.add_failure(
                    entity_id,
                    ConflictError(f"{self.model.__name__} {entity_id} was modified concurrently"),
                )
                logger.warning(f"Bulk operation conflict on {entity_id}: {str(e)}")
            except (BaseAppException, SQLAlchemyError) as e:
                result.add_failure(entity_id, e)
                logger.warning(f"Bulk operation failed on {entity_id}: {str(e)}")

        if commit:
            self.commit()

        return result


__all__ = [
    "BaseRepository",
    "BulkOperationResult",
    "BulkFailure",
    "ModelType",
]
