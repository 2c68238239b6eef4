"""
Custom SQLAlchemy types for specialized data handling.

Provides column types for timezone-aware timestamps and JSON lists that
behave the same on SQLite and PostgreSQL.
"""

from datetime import datetime, timezone
from typing import Any, Optional

from sqlalchemy import JSON, DateTime, TypeDecorator


class UTCDateTime(TypeDecorator):
    """
    Timezone-aware UTC timestamp.

    Values are normalised to UTC on write. Databases that drop tzinfo
    (SQLite) get UTC re-attached on read.
    """

    impl = DateTime(timezone=True)
    cache_ok = True

    def process_bind_param(self, value: Optional[datetime], dialect) -> Optional[datetime]:
        """Normalise value to UTC before storing."""
        if value is None:
            return value

        if not isinstance(value, datetime):
            raise ValueError(f"UTCDateTime requires datetime, got {type(value)}")

        if value.tzinfo is None:
            value = value.replace(tzinfo=timezone.utc)
        else:
            value = value.astimezone(timezone.utc)

        if dialect.name == "sqlite":
            return value.replace(tzinfo=None)
        return value

    def process_result_value(self, value: Optional[datetime], dialect) -> Optional[datetime]:
        """Return value as an aware UTC datetime."""
        if value is None:
            return value

        if value.tzinfo is None:
            return value.replace(tzinfo=timezone.utc)
        return value.astimezone(timezone.utc)


class JSONType(TypeDecorator):
    """
    JSON column restricted to dicts and lists.

    Provides JSON storage with automatic serialization/deserialization.
    """

    impl = JSON
    cache_ok = True

    def process_bind_param(self, value: Any, dialect) -> Any:
        """Validate value before serialising."""
        if value is None:
            return value

        if isinstance(value, tuple):
            value = list(value)

        if not isinstance(value, (dict, list)):
            raise ValueError(f"JSONType requires dict or list, got {type(value)}")

        return value

    def process_result_value(self, value: Any, dialect) -> Any:
        """Deserialize JSON value."""
        return value


__all__ = [
    "UTCDateTime",
    "JSONType",
]
