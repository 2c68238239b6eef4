"""
Offset pagination for select() statements.

Provides page metadata and a helper that counts and slices a query
in one call.
"""

from dataclasses import dataclass, field
from typing import Generic, List, TypeVar

from sqlalchemy import Select, func, select
from sqlalchemy.orm import Session

from bookly.core.logging import get_logger

logger = get_logger(__name__)

ModelType = TypeVar("ModelType")


@dataclass
class PageInfo:
    """Pagination metadata."""

    current_page: int
    per_page: int
    total_items: int
    total_pages: int
    has_next: bool
    has_previous: bool


@dataclass
class PaginatedResult(Generic[ModelType]):
    """Paginated query result."""

    items: List[ModelType] = field(default_factory=list)
    page_info: PageInfo = None

    @property
    def total(self) -> int:
        """Total number of matching items across all pages."""
        return self.page_info.total_items if self.page_info else len(self.items)


def paginate_offset(
    db: Session,
    stmt: Select,
    page: int = 1,
    per_page: int = 20,
    max_page_size: int = 100
) -> PaginatedResult:
    """
    Traditional offset-based pagination.

    Args:
        db: Database session
        stmt: Ordered select statement
        page: Page number (1-indexed)
        per_page: Items per page
        max_page_size: Upper bound for per_page

    Returns:
        Paginated result
    """
    page = max(1, page)
    per_page = max(1, min(per_page, max_page_size))
    offset = (page - 1) * per_page

    count_stmt = select(func.count()).select_from(stmt.order_by(None).subquery())
    total_items = db.execute(count_stmt).scalar_one()

    items = list(db.execute(stmt.offset(offset).limit(per_page)).scalars().all())

    total_pages = (total_items + per_page - 1) // per_page
    page_info = PageInfo(
        current_page=page,
        per_page=per_page,
        total_items=total_items,
        total_pages=total_pages,
        has_next=page < total_pages,
        has_previous=page > 1
    )

    logger.debug(f"Paginated query: page {page}/{total_pages}, {total_items} items")
    return PaginatedResult(items=items, page_info=page_info)


__all__ = [
    "PageInfo",
    "PaginatedResult",
    "paginate_offset",
]
