"""
Reassignment request repository for request persistence, search and sweeps.
"""

from datetime import datetime, timedelta
from typing import Any, Dict, List, Optional

from sqlalchemy import and_, case, func, or_, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from bookly.core.config import settings
from bookly.core.exceptions import (
    InvalidArgumentError,
    ReassignmentRequestNotFoundError,
    RepositoryError,
)
from bookly.core.logging import get_logger
from bookly.models.base import (
    ReassignmentReason,
    ReassignmentStatus,
    UserPriority,
    UserResponse,
    ensure_utc,
    utc_now,
)
from bookly.models.reassignment import PRIORITY_WEIGHTS, ReassignmentRequest
from bookly.repositories.base.base_repository import BaseRepository, BulkOperationResult
from bookly.repositories.base.pagination import PaginatedResult, paginate_offset

logger = get_logger(__name__)


class ReassignmentSearchCriteria:
    """Search criteria for reassignment requests."""

    def __init__(
        self,
        status: Optional[ReassignmentStatus] = None,
        statuses: Optional[List[ReassignmentStatus]] = None,
        user_response: Optional[UserResponse] = None,
        reason: Optional[ReassignmentReason] = None,
        priority: Optional[UserPriority] = None,
        requested_by: Optional[str] = None,
        resource_id: Optional[str] = None,
        program_id: Optional[str] = None,
        reservation_id: Optional[str] = None,
        date_from: Optional[datetime] = None,
        date_to: Optional[datetime] = None,
        min_rejections: Optional[int] = None,
        has_suggestion: Optional[bool] = None,
        search: Optional[str] = None,
    ):
        self.status = status
        self.statuses = statuses
        self.user_response = user_response
        self.reason = reason
        self.priority = priority
        self.requested_by = requested_by
        self.resource_id = resource_id
        self.program_id = program_id
        self.reservation_id = reservation_id
        self.date_from = ensure_utc(date_from)
        self.date_to = ensure_utc(date_to)
        self.min_rejections = min_rejections
        self.has_suggestion = has_suggestion
        self.search = search

    @classmethod
    def from_dict(cls, data: Optional[Dict[str, Any]]) -> "ReassignmentSearchCriteria":
        """Build criteria from a mapping, ignoring None values."""
        data = {key: value for key, value in (data or {}).items() if value is not None}
        return cls(**data)


class ReassignmentRequestRepository(BaseRepository[ReassignmentRequest]):
    """
    Repository for reassignment requests.

    Provides:
    - Versioned create/update of requests
    - Filtered, sorted and paginated search
    - Deadline sweeps with per-record isolation
    - Reminder, similarity and expiry queries
    - Statistics and per-user history
    """

    SORTABLE_FIELDS = frozenset({
        "created_at",
        "updated_at",
        "response_deadline",
        "responded_at",
        "priority",
        "status",
        "reason",
        "rejection_count",
    })

    def __init__(self, db: Session):
        """Initialize reassignment request repository."""
        super().__init__(ReassignmentRequest, db)

    def _not_found(self, id: str) -> ReassignmentRequestNotFoundError:
        return ReassignmentRequestNotFoundError(id)

    # ==================== SEARCH & RETRIEVAL ====================

    def find_by_filter(
        self,
        criteria: Optional[ReassignmentSearchCriteria] = None,
        page: int = 1,
        page_size: Optional[int] = None,
        sort_by: str = "created_at",
        sort_order: str = "desc",
    ) -> PaginatedResult[ReassignmentRequest]:
        """
        Filtered, sorted and paginated search.

        Args:
            criteria: Search criteria
            page: Page number (1-indexed)
            page_size: Results per page
            sort_by: Column to sort by (whitelisted)
            sort_order: asc or desc

        Returns:
            Page of requests with the total independent of page size
        """
        criteria = criteria or ReassignmentSearchCriteria()
        page_size = page_size or settings.reassignment.DEFAULT_PAGE_SIZE

        if sort_by not in self.SORTABLE_FIELDS:
            raise InvalidArgumentError(
                f"Cannot sort by '{sort_by}'. Must be one of {sorted(self.SORTABLE_FIELDS)}",
                argument="sort_by",
                value=sort_by,
            )
        if sort_order not in ("asc", "desc"):
            raise InvalidArgumentError(
                "Sort order must be 'asc' or 'desc'",
                argument="sort_order",
                value=sort_order,
            )

        stmt = select(ReassignmentRequest)
        filters = self._build_search_filters(criteria)
        if filters:
            stmt = stmt.where(and_(*filters))

        sort_column = self._sort_expression(sort_by)
        if sort_order == "desc":
            stmt = stmt.order_by(sort_column.desc(), ReassignmentRequest.id.desc())
        else:
            stmt = stmt.order_by(sort_column.asc(), ReassignmentRequest.id.asc())

        try:
            return paginate_offset(
                self.db,
                stmt,
                page=page,
                per_page=page_size,
                max_page_size=settings.reassignment.MAX_PAGE_SIZE,
            )
        except SQLAlchemyError as e:
            raise RepositoryError(f"Search failed: {str(e)}", operation="find_by_filter") from e

    def _build_search_filters(self, criteria: ReassignmentSearchCriteria) -> List:
        """Build SQLAlchemy filters from search criteria."""
        filters = []

        if criteria.status:
            filters.append(ReassignmentRequest.status == criteria.status)

        if criteria.statuses:
            filters.append(ReassignmentRequest.status.in_(criteria.statuses))

        if criteria.user_response:
            filters.append(ReassignmentRequest.user_response == criteria.user_response)

        if criteria.reason:
            filters.append(ReassignmentRequest.reason == criteria.reason)

        if criteria.priority:
            filters.append(ReassignmentRequest.priority == criteria.priority)

        if criteria.requested_by:
            filters.append(ReassignmentRequest.requested_by == criteria.requested_by)

        if criteria.resource_id:
            filters.append(
                or_(
                    ReassignmentRequest.suggested_resource_id == criteria.resource_id,
                    ReassignmentRequest.original_resource_id == criteria.resource_id,
                )
            )

        if criteria.program_id:
            filters.append(ReassignmentRequest.affected_program_id == criteria.program_id)

        if criteria.reservation_id:
            filters.append(ReassignmentRequest.original_reservation_id == criteria.reservation_id)

        if criteria.date_from:
            filters.append(ReassignmentRequest.created_at >= criteria.date_from)

        if criteria.date_to:
            filters.append(ReassignmentRequest.created_at <= criteria.date_to)

        if criteria.min_rejections is not None:
            filters.append(ReassignmentRequest.rejection_count >= criteria.min_rejections)

        if criteria.has_suggestion is True:
            filters.append(ReassignmentRequest.suggested_resource_id.is_not(None))
        elif criteria.has_suggestion is False:
            filters.append(ReassignmentRequest.suggested_resource_id.is_(None))

        if criteria.search:
            pattern = f"%{criteria.search.strip()}%"
            filters.append(
                or_(
                    ReassignmentRequest.custom_reason.ilike(pattern),
                    ReassignmentRequest.internal_notes.ilike(pattern),
                )
            )

        return filters

    def _sort_expression(self, sort_by: str):
        # Priority sorts by weight rather than by stored name
        if sort_by == "priority":
            return case(
                *[
                    (ReassignmentRequest.priority == priority, weight)
                    for priority, weight in PRIORITY_WEIGHTS.items()
                ],
                else_=0,
            )
        return getattr(ReassignmentRequest, sort_by)

    def _find(self, *conditions, order_by=None, limit: Optional[int] = None) -> List[ReassignmentRequest]:
        stmt = select(ReassignmentRequest)
        if conditions:
            stmt = stmt.where(and_(*conditions))
        stmt = stmt.order_by(
            order_by if order_by is not None else ReassignmentRequest.created_at.asc()
        )
        if limit:
            stmt = stmt.limit(limit)

        try:
            return list(self.db.execute(stmt).scalars().all())
        except SQLAlchemyError as e:
            raise RepositoryError(f"Query failed: {str(e)}", operation="find") from e

    def find_by_reservation(self, reservation_id: str) -> List[ReassignmentRequest]:
        """All requests raised for a booking, newest first."""
        return self._find(
            ReassignmentRequest.original_reservation_id == reservation_id,
            order_by=ReassignmentRequest.created_at.desc(),
        )

    def find_by_requester(
        self,
        user_id: str,
        since: Optional[datetime] = None,
    ) -> List[ReassignmentRequest]:
        """Requests raised by a user, optionally only those created since a time."""
        conditions = [ReassignmentRequest.requested_by == user_id]
        if since is not None:
            conditions.append(ReassignmentRequest.created_at >= ensure_utc(since))
        return self._find(*conditions, order_by=ReassignmentRequest.created_at.desc())

    def find_pending(
        self,
        program_id: Optional[str] = None,
        limit: Optional[int] = None,
    ) -> List[ReassignmentRequest]:
        """
        Pending requests, oldest first.

        Args:
            program_id: Optional program filter
            limit: Maximum number of requests

        Returns:
            List of pending requests
        """
        conditions = [ReassignmentRequest.status == ReassignmentStatus.PENDING]
        if program_id:
            conditions.append(ReassignmentRequest.affected_program_id == program_id)
        return self._find(*conditions, limit=limit)

    def find_expiring_soon(
        self,
        within_hours: float = 2,
        now: Optional[datetime] = None,
    ) -> List[ReassignmentRequest]:
        """
        Pending requests whose deadline falls within the next hours.

        Requests already past their deadline are excluded.
        """
        now = ensure_utc(now) or utc_now()
        horizon = now + timedelta(hours=within_hours)

        return self._find(
            ReassignmentRequest.status == ReassignmentStatus.PENDING,
            ReassignmentRequest.response_deadline.is_not(None),
            ReassignmentRequest.response_deadline > now,
            ReassignmentRequest.response_deadline <= horizon,
            order_by=ReassignmentRequest.response_deadline.asc(),
        )

    def find_overdue(self, now: Optional[datetime] = None) -> List[ReassignmentRequest]:
        """Pending requests whose deadline has passed."""
        now = ensure_utc(now) or utc_now()

        return self._find(
            ReassignmentRequest.status == ReassignmentStatus.PENDING,
            ReassignmentRequest.response_deadline.is_not(None),
            ReassignmentRequest.response_deadline < now,
            order_by=ReassignmentRequest.response_deadline.asc(),
        )

    def find_needing_reminders(
        self,
        reminder_interval_hours: float,
        now: Optional[datetime] = None,
        program_id: Optional[str] = None,
    ) -> List[ReassignmentRequest]:
        """
        Pending requests created at least one reminder interval ago.

        Args:
            reminder_interval_hours: Hours between reminders
            now: Reference time
            program_id: Optional program filter

        Returns:
            Requests that should receive a reminder
        """
        now = ensure_utc(now) or utc_now()
        cutoff = now - timedelta(hours=reminder_interval_hours)

        conditions = [
            ReassignmentRequest.status == ReassignmentStatus.PENDING,
            ReassignmentRequest.created_at <= cutoff,
        ]
        if program_id:
            conditions.append(ReassignmentRequest.affected_program_id == program_id)

        return self._find(*conditions)

    def find_similar(
        self,
        resource_id: str,
        reason: ReassignmentReason,
        window_hours: float = 24,
        now: Optional[datetime] = None,
    ) -> List[ReassignmentRequest]:
        """
        Recent requests for the same resource and reason.

        The resource matches either the suggested or the original resource.
        """
        now = ensure_utc(now) or utc_now()
        since = now - timedelta(hours=window_hours)

        return self._find(
            or_(
                ReassignmentRequest.suggested_resource_id == resource_id,
                ReassignmentRequest.original_resource_id == resource_id,
            ),
            ReassignmentRequest.reason == reason,
            ReassignmentRequest.created_at >= since,
            order_by=ReassignmentRequest.created_at.desc(),
        )

    # ==================== BULK OPERATIONS ====================

    def bulk_expire(self, now: Optional[datetime] = None) -> BulkOperationResult[ReassignmentRequest]:
        """
        Expire every pending request whose deadline has passed.

        Each request is expired in its own savepoint so one failure does
        not stop the sweep.

        Args:
            now: Reference time

        Returns:
            Expired requests and per-id failures
        """
        now = ensure_utc(now) or utc_now()
        overdue = self.find_overdue(now)

        result = self.apply_each(overdue, lambda request: request.expire(now))

        logger.info(
            f"Expired {result.success_count} reassignment requests "
            f"({result.failure_count} failed)"
        )
        return result

    # ==================== COUNTS & STATISTICS ====================

    def count_by_status(self, program_id: Optional[str] = None) -> Dict[str, int]:
        """Number of requests per status, every status present."""
        stmt = select(ReassignmentRequest.status, func.count(ReassignmentRequest.id)).group_by(
            ReassignmentRequest.status
        )
        if program_id:
            stmt = stmt.where(ReassignmentRequest.affected_program_id == program_id)

        counts = {status.value: 0 for status in ReassignmentStatus}
        try:
            for status, count in self.db.execute(stmt).all():
                counts[status.value] = count
        except SQLAlchemyError as e:
            raise RepositoryError(f"Count failed: {str(e)}", operation="count_by_status") from e
        return counts

    def count_pending_by_user(self, user_id: str) -> int:
        """Pending requests raised by a user."""
        stmt = select(func.count(ReassignmentRequest.id)).where(
            and_(
                ReassignmentRequest.requested_by == user_id,
                ReassignmentRequest.status == ReassignmentStatus.PENDING,
            )
        )
        try:
            return self.db.execute(stmt).scalar_one()
        except SQLAlchemyError as e:
            raise RepositoryError(f"Count failed: {str(e)}", operation="count_pending_by_user") from e

    def get_statistics(
        self,
        date_from: Optional[datetime] = None,
        date_to: Optional[datetime] = None,
        program_id: Optional[str] = None,
    ) -> Dict[str, Any]:
        """
        Get reassignment statistics.

        Args:
            date_from: Optional start of the creation window
            date_to: Optional end of the creation window
            program_id: Optional program filter

        Returns:
            Statistics dictionary
        """
        conditions = []
        if date_from:
            conditions.append(ReassignmentRequest.created_at >= ensure_utc(date_from))
        if date_to:
            conditions.append(ReassignmentRequest.created_at <= ensure_utc(date_to))
        if program_id:
            conditions.append(ReassignmentRequest.affected_program_id == program_id)

        requests = self._find(*conditions)
        total = len(requests)

        by_status = {status.value: 0 for status in ReassignmentStatus}
        by_reason = {reason.value: 0 for reason in ReassignmentReason}
        by_priority = {priority.value: 0 for priority in UserPriority}
        for request in requests:
            by_status[request.status.value] += 1
            by_reason[request.reason.value] += 1
            by_priority[request.priority.value] += 1

        accepted = by_status[ReassignmentStatus.ACCEPTED.value]
        rejected = by_status[ReassignmentStatus.REJECTED.value]

        return {
            "total_requests": total,
            "by_status": by_status,
            "by_reason": by_reason,
            "by_priority": by_priority,
            "acceptance_rate": round(accepted / total * 100, 2) if total else 0.0,
            "rejection_rate": round(rejected / total * 100, 2) if total else 0.0,
            "average_response_minutes": _average_response_minutes(requests),
        }

    def get_user_history(self, user_id: str, recent_limit: int = 10) -> Dict[str, Any]:
        """
        Reassignment history of a requester.

        Args:
            user_id: Requesting user
            recent_limit: Number of most recent requests to include

        Returns:
            Totals and the most recent requests
        """
        requests = self._find(
            ReassignmentRequest.requested_by == user_id,
            order_by=ReassignmentRequest.created_at.desc(),
        )

        return {
            "user_id": user_id,
            "total_requests": len(requests),
            "accepted_requests": sum(1 for r in requests if r.is_accepted),
            "rejected_requests": sum(1 for r in requests if r.is_rejected),
            "pending_requests": sum(1 for r in requests if r.is_pending),
            "total_rejections": sum(r.rejection_count for r in requests),
            "average_response_minutes": _average_response_minutes(requests),
            "recent_requests": requests[:recent_limit],
        }


def _average_response_minutes(requests: List[ReassignmentRequest]) -> Optional[float]:
    """Mean minutes between creation and response over answered requests."""
    durations = [
        (request.responded_at - request.created_at).total_seconds() / 60
        for request in requests
        if request.responded_at is not None and request.created_at is not None
    ]
    if not durations:
        return None
    return round(sum(durations) / len(durations), 2)


__all__ = [
    "ReassignmentRequestRepository",
    "ReassignmentSearchCriteria",
]
