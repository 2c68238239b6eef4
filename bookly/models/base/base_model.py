"""
Base model configuration for SQLAlchemy ORM.

Provides abstract base classes with common functionality
for all database models.
"""

from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, List, Optional, TypeVar
from uuid import uuid4

from sqlalchemy import String
from sqlalchemy.orm import Mapped, declarative_base, declared_attr, mapped_column

from bookly.models.base.types import UTCDateTime

# Create declarative base
Base = declarative_base()

# Type variable for model classes
ModelType = TypeVar("ModelType", bound="BaseModel")


def utc_now() -> datetime:
    """Current time as an aware UTC datetime."""
    return datetime.now(timezone.utc)


def ensure_utc(value: Optional[datetime]) -> Optional[datetime]:
    """Interpret naive datetimes as UTC and convert aware ones to UTC."""
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


class BaseModel(Base):
    """
    Abstract base model with common fields and methods.

    Provides foundation for all database models with
    standard functionality and utilities.
    """

    __abstract__ = True

    # Primary key column - present in all models
    id: Mapped[str] = mapped_column(
        String(36),
        primary_key=True,
        default=lambda: str(uuid4()),
        nullable=False,
        comment="Primary key (UUID)"
    )

    @declared_attr
    def __tablename__(cls) -> str:
        """Generate table name from class name."""
        # Convert CamelCase to snake_case
        import re
        name = re.sub('(.)([A-Z][a-z]+)', r'\1_\2', cls.__name__)
        return re.sub('([a-z0-9])([A-Z])', r'\1_\2', name).lower() + 's'

    def to_dict(self, exclude: Optional[List[str]] = None) -> Dict[str, Any]:
        """
        Convert model instance to dictionary.

        Args:
            exclude: List of field names to exclude

        Returns:
            Dictionary representation of the model
        """
        exclude = exclude or []
        result = {}

        for column in self.__table__.columns:
            if column.key not in exclude:
                value = getattr(self, column.key)

                # Handle special types
                if isinstance(value, datetime):
                    result[column.key] = value.isoformat()
                elif isinstance(value, Enum):
                    result[column.key] = value.value
                elif isinstance(value, list):
                    result[column.key] = list(value)
                else:
                    result[column.key] = value

        return result

    def __repr__(self) -> str:
        """String representation of model instance."""
        return f"<{self.__class__.__name__}(id={getattr(self, 'id', None)})>"


class TimestampModel(BaseModel):
    """
    Base model with timestamp tracking.

    Includes created_at and updated_at fields. Domain methods refresh
    updated_at themselves so the value matches the operation's clock.
    """

    __abstract__ = True

    created_at: Mapped[datetime] = mapped_column(
        UTCDateTime(),
        nullable=False,
        default=utc_now,
        index=True,
        comment="Record creation timestamp"
    )
    updated_at: Mapped[datetime] = mapped_column(
        UTCDateTime(),
        nullable=False,
        default=utc_now,
        comment="Record last update timestamp"
    )

    def touch(self, now: Optional[datetime] = None) -> None:
        """Refresh updated_at."""
        self.updated_at = now or utc_now()

