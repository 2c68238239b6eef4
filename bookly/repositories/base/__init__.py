"""
Base repositories package.

Provides base repository infrastructure and pagination.
"""

from bookly.repositories.base.base_repository import (
    BaseRepository,
    BulkFailure,
    BulkOperationResult,
)
from bookly.repositories.base.pagination import (
    PageInfo,
    PaginatedResult,
    paginate_offset,
)

__all__ = [
    "BaseRepository",
    "BulkFailure",
    "BulkOperationResult",
    "PageInfo",
    "PaginatedResult",
    "paginate_offset",
]
