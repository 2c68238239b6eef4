"""
Common schemas shared across the package.
"""

from bookly.schemas.common.base import (
    BaseCreateSchema,
    BaseDBSchema,
    BaseFilterSchema,
    BaseResponseSchema,
    BaseSchema,
    BaseUpdateSchema,
)
from bookly.schemas.common.pagination import (
    PaginatedResponse,
    PaginationMeta,
    PaginationParams,
    SortOptions,
)

__all__ = [
    "BaseSchema",
    "BaseDBSchema",
    "BaseCreateSchema",
    "BaseUpdateSchema",
    "BaseResponseSchema",
    "BaseFilterSchema",
    "PaginationParams",
    "PaginationMeta",
    "PaginatedResponse",
    "SortOptions",
]
