"""
Reassignment service: request lifecycle, user responses, sweeps and
automatic processing.

Calls the request model, the repositories and the equivalence oracle
directly and reports every outcome as a ServiceResult.
"""

from datetime import datetime, timedelta
from typing import Any, Callable, Dict, List, Optional, Union

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session
from sqlalchemy.orm.exc import StaleDataError

from bookly.core.exceptions import (
    BaseAppException,
    ConfigurationError,
    ExternalServiceError,
    InvalidArgumentError,
    ReassignmentRequestNotFoundError,
)
from bookly.core.logging import log_execution_time
from bookly.models.base import (
    NextAction,
    ReassignmentReason,
    UrgencyLevel,
    UserResponse,
    ensure_utc,
    utc_now,
)
from bookly.models.reassignment import ReassignmentConfiguration, ReassignmentRequest
from bookly.repositories.base.base_repository import BulkOperationResult
from bookly.repositories.reassignment import (
    ReassignmentConfigurationRepository,
    ReassignmentRequestRepository,
    ReassignmentSearchCriteria,
)
from bookly.schemas.common.pagination import PaginatedResponse, PaginationParams, SortOptions
from bookly.schemas.reassignment.bulk_actions import (
    AcceptAction,
    BulkAction,
    CancelAction,
    ExpireAction,
    RejectAction,
    SetDeadlineAction,
    SuggestResourceAction,
    parse_bulk_action,
)
from bookly.schemas.reassignment.equivalence import (
    EquivalenceQuery,
    EquivalentResource,
    TimeWindow,
)
from bookly.schemas.reassignment.reassignment_configuration import (
    ReassignmentConfigurationCreate,
    ReassignmentConfigurationResponse,
    ReassignmentConfigurationUpdate,
)
from bookly.schemas.reassignment.reassignment_request import (
    AutoProcessDecision,
    AutoProcessSummary,
    ReassignmentCreateResult,
    ReassignmentFilterParams,
    ReassignmentRequestCreate,
    ReassignmentRequestResponse,
    ReassignmentResponseResult,
    UserResponseSubmission,
)
from bookly.services.base import BaseService, DictResult, ServiceResult
from bookly.services.reassignment.equivalence_oracle import (
    EquivalenceOracle,
    NullEquivalenceOracle,
    rank_candidates,
)

# Processing order of urgency levels in the queue
_URGENCY_RANK = {
    UrgencyLevel.CRITICAL: 0,
    UrgencyLevel.HIGH: 1,
    UrgencyLevel.MEDIUM: 2,
    UrgencyLevel.LOW: 3,
}

RECENT_REJECTION_DAYS = 7
RECENT_REJECTION_LIMIT = 3
RECENT_EMERGENCY_DAYS = 30
RECENT_EMERGENCY_LIMIT = 2


class ReassignmentService(BaseService[ReassignmentRequest, ReassignmentRequestRepository]):
    """
    Reassignment request orchestration.

    Responsibilities:
    - Raising requests with response windows and suggestions
    - Recording user responses and deciding the next step
    - Cancellation, expiry and deadline sweeps
    - Bulk actions and automatic processing
    - Queue ordering, statistics and reminders
    """

    def __init__(
        self,
        repository: ReassignmentRequestRepository,
        db_session: Session,
        oracle: Optional[EquivalenceOracle] = None,
        configuration_repository: Optional[ReassignmentConfigurationRepository] = None,
    ):
        super().__init__(repository, db_session)
        self.oracle: EquivalenceOracle = oracle or NullEquivalenceOracle()
        self.configuration_repository = (
            configuration_repository or ReassignmentConfigurationRepository(db_session)
        )

    @classmethod
    def from_session(
        cls,
        db_session: Session,
        oracle: Optional[EquivalenceOracle] = None,
    ) -> "ReassignmentService":
        """Build the service with default repositories on a session."""
        return cls(
            ReassignmentRequestRepository(db_session),
            db_session,
            oracle=oracle,
            configuration_repository=ReassignmentConfigurationRepository(db_session),
        )

    # -------------------------------------------------------------------------
    # Helpers
    # -------------------------------------------------------------------------

    def _configuration_for(self, program_id: Optional[str]) -> ReassignmentConfiguration:
        return self.configuration_repository.get_effective(program_id)

    @staticmethod
    def _to_response(
        request: ReassignmentRequest,
        now: Optional[datetime] = None,
    ) -> ReassignmentRequestResponse:
        return ReassignmentRequestResponse.from_entity(request, now)

    @staticmethod
    def _append_note(request: ReassignmentRequest, note: str) -> None:
        if request.internal_notes:
            request.internal_notes = f"{request.internal_notes}\n{note}"
        else:
            request.internal_notes = note

    @staticmethod
    def _can_query_oracle(request: ReassignmentRequest) -> bool:
        return (
            bool(request.original_resource_id)
            and request.original_start_time is not None
            and request.original_end_time is not None
        )

    def _build_equivalence_query(
        self,
        request: ReassignmentRequest,
        configuration: ReassignmentConfiguration,
        limit: int,
    ) -> EquivalenceQuery:
        """Oracle query from the request's matching criteria."""
        exclude_ids = [request.original_resource_id]
        if request.has_suggested_resource:
            exclude_ids.append(request.suggested_resource_id)

        tolerance = request.capacity_tolerance_percent
        if tolerance is None:
            tolerance = configuration.default_capacity_tolerance

        return EquivalenceQuery(
            resource_id=request.original_resource_id,
            time_window=TimeWindow(
                start=request.original_start_time,
                end=request.original_end_time,
            ),
            capacity_tolerance_percent=tolerance,
            required_features=list(request.required_features or []),
            preferred_features=list(request.preferred_features or []),
            max_distance_meters=request.max_distance_meters,
            exclude_ids=exclude_ids,
            limit=limit,
        )

    def _lookup_equivalents(
        self,
        request: ReassignmentRequest,
        configuration: ReassignmentConfiguration,
        limit: Optional[int] = None,
    ) -> List[EquivalentResource]:
        """
        Ask the oracle for ranked replacement candidates.

        Returns an empty list when the original resource or booking
        window is unknown.

        Raises:
            ExternalServiceError: If the oracle fails
        """
        if not self._can_query_oracle(request):
            return []

        limit = limit or configuration.max_suggestions
        query = self._build_equivalence_query(request, configuration, limit)

        try:
            candidates = self.oracle.find_equivalents(query)
        except BaseAppException:
            raise
        except Exception as e:
            raise ExternalServiceError(
                self.oracle.oracle_name,
                f"Equivalence lookup failed: {str(e)}",
                details={"resource_id": query.resource_id},
            ) from e

        excluded = set(query.exclude_ids)
        candidates = [c for c in candidates if c.resource_id not in excluded]
        return rank_candidates(candidates, limit)

    def _update_request(
        self,
        request_id: str,
        transition: Callable[[ReassignmentRequest], Any],
        operation: str,
        expected_version: Optional[int] = None,
        now: Optional[datetime] = None,
    ) -> ServiceResult[ReassignmentRequestResponse]:
        """Apply one transition, commit, and wrap the outcome."""
        try:
            request = self.repository.update(
                request_id,
                transition,
                expected_version=expected_version,
                commit=False,
            )
            self._commit()

            self._log_operation(operation, request_id, extra={"status": request.status.value})
            return ServiceResult.success(self._to_response(request, now))

        except Exception as e:
            self._rollback()
            return self._handle_exception(e, operation, request_id)

    # -------------------------------------------------------------------------
    # Create & Validate
    # -------------------------------------------------------------------------

    def validate_request(
        self,
        data: ReassignmentRequestCreate,
        now: Optional[datetime] = None,
    ) -> DictResult:
        """
        Check a new request against existing requests of the booking and user.

        An open request for the same booking is a violation; a history of
        recent rejections or emergencies only produces warnings.

        Args:
            data: Request payload
            now: Reference time

        Returns:
            ServiceResult with is_valid, violations, warnings and existing request ids
        """
        now = ensure_utc(now) or utc_now()
        try:
            violations: List[str] = []
            warnings: List[str] = []

            existing = self.repository.find_by_reservation(data.original_reservation_id)
            if any(request.is_pending for request in existing):
                violations.append(
                    "There is already a pending reassignment request for this reservation"
                )

            user_requests = self.repository.find_by_requester(data.requested_by)

            rejection_cutoff = now - timedelta(days=RECENT_REJECTION_DAYS)
            recent_rejections = [
                request for request in user_requests
                if request.is_rejected
                and request.responded_at is not None
                and request.responded_at > rejection_cutoff
            ]
            if len(recent_rejections) >= RECENT_REJECTION_LIMIT:
                warnings.append("User has multiple recent rejections - may affect priority")

            if data.reason == ReassignmentReason.EMERGENCY:
                emergency_cutoff = now - timedelta(days=RECENT_EMERGENCY_DAYS)
                recent_emergencies = [
                    request for request in user_requests
                    if request.reason == ReassignmentReason.EMERGENCY
                    and request.created_at > emergency_cutoff
                ]
                if len(recent_emergencies) >= RECENT_EMERGENCY_LIMIT:
                    warnings.append("Multiple emergency reassignments in the last 30 days")

            return ServiceResult.success({
                "is_valid": not violations,
                "violations": violations,
                "warnings": warnings,
                "existing_request_ids": [request.id for request in existing],
            })

        except Exception as e:
            return self._handle_exception(e, "validate reassignment request")

    @log_execution_time()
    def create_request(
        self,
        data: ReassignmentRequestCreate,
        now: Optional[datetime] = None,
    ) -> ServiceResult[ReassignmentCreateResult]:
        """
        Raise a reassignment request.

        The response window comes from the program configuration unless
        the payload carries an explicit deadline. When the original
        resource and booking window are known the oracle is asked for
        replacements and the best one becomes the suggestion.

        Args:
            data: Request payload
            now: Creation time

        Returns:
            ServiceResult containing the request, ranked suggestions and warnings
        """
        now = ensure_utc(now) or utc_now()

        try:
            configuration = self._configuration_for(data.affected_program_id)

            values = data.to_entity_values()
            if values.get("response_deadline") is None:
                hours = configuration.get_response_time_hours(data.is_urgent)
                values["response_deadline"] = now + timedelta(hours=hours)

            request = ReassignmentRequest.create(now=now, **values)

            outcome = request.validate(now)
            if not outcome.is_valid:
                self._logger.info(
                    f"Rejected invalid reassignment request for reservation {data.original_reservation_id}",
                    extra={"errors": outcome.errors},
                )
                return ServiceResult.validation_failure(
                    f"Invalid reassignment request: {', '.join(outcome.errors)}",
                    errors=outcome.errors,
                )

            self._logger.info(
                f"Creating reassignment request for reservation {data.original_reservation_id}",
                extra={
                    "reservation_id": data.original_reservation_id,
                    "requested_by": data.requested_by,
                    "reason": data.reason.value,
                    "is_urgent": data.is_urgent,
                },
            )

            self.repository.create(request, commit=False)

            warnings: List[str] = []
            suggestions: List[EquivalentResource] = []
            try:
                suggestions = self._lookup_equivalents(request, configuration)
            except ExternalServiceError as e:
                self._logger.warning(
                    f"Equivalence lookup failed for request {request.id}: {e.message}",
                    extra={"request_id": request.id},
                )
                warnings.append("Equivalent resource lookup failed")

            if data.is_urgent and not suggestions:
                warnings.append("No equivalent resources found for urgent reassignment")

            if not suggestions:
                warnings.append(
                    "No equivalent resources available - manual intervention may be required"
                )
            elif len(suggestions) == 1:
                warnings.append("Limited options available for reassignment")

            if suggestions and not request.has_suggested_resource:
                request.set_suggested_resource(suggestions[0].resource_id, now)
                self.db.flush()

            self._commit()

            self._logger.info(
                f"Created reassignment request {request.id}",
                extra={"request_id": request.id, "suggestion_count": len(suggestions)},
            )

            return ServiceResult.success(
                ReassignmentCreateResult(
                    request=self._to_response(request, now),
                    suggestions=suggestions,
                    warnings=warnings,
                ),
                message="Reassignment request created successfully",
            )

        except Exception as e:
            self._rollback()
            return self._handle_exception(e, "create reassignment request")

    # -------------------------------------------------------------------------
    # Queries
    # -------------------------------------------------------------------------

    def get_request(
        self,
        request_id: str,
        now: Optional[datetime] = None,
    ) -> ServiceResult[ReassignmentRequestResponse]:
        """Get a request by id."""
        try:
            request = self.repository.get_by_id(request_id)
            return ServiceResult.success(self._to_response(request, now))
        except Exception as e:
            return self._handle_exception(e, "get reassignment request", request_id)

    def list_requests(
        self,
        filters: Optional[ReassignmentFilterParams] = None,
        pagination: Optional[PaginationParams] = None,
        sort: Optional[SortOptions] = None,
        now: Optional[datetime] = None,
    ) -> ServiceResult[PaginatedResponse[ReassignmentRequestResponse]]:
        """
        List requests with filtering, sorting and pagination.

        Args:
            filters: Filter parameters
            pagination: Page and page size
            sort: Sort column and direction

        Returns:
            ServiceResult containing a page of requests
        """
        pagination = pagination or PaginationParams()
        sort = sort or SortOptions()

        try:
            criteria = ReassignmentSearchCriteria.from_dict(
                filters.model_dump(exclude_none=True) if filters else None
            )
            page = self.repository.find_by_filter(
                criteria,
                page=pagination.page,
                page_size=pagination.page_size,
                sort_by=sort.sort_by,
                sort_order=sort.sort_order,
            )

            response = PaginatedResponse[ReassignmentRequestResponse].create(
                items=[self._to_response(request, now) for request in page.items],
                total_items=page.total,
                page=page.page_info.current_page,
                page_size=page.page_info.per_page,
            )
            return ServiceResult.success(
                response,
                metadata={"count": len(response.items), "total": page.total},
            )

        except Exception as e:
            return self._handle_exception(e, "list reassignment requests")

    def find_expiring_soon(
        self,
        within_hours: float = 2,
        now: Optional[datetime] = None,
    ) -> ServiceResult[List[ReassignmentRequestResponse]]:
        """Pending requests whose deadline falls within the next hours."""
        try:
            requests = self.repository.find_expiring_soon(within_hours, now)
            return ServiceResult.success([self._to_response(r, now) for r in requests])
        except Exception as e:
            return self._handle_exception(e, "find expiring reassignment requests")

    def find_needing_reminders(
        self,
        program_id: Optional[str] = None,
        now: Optional[datetime] = None,
    ) -> ServiceResult[List[ReassignmentRequestResponse]]:
        """Pending requests due a reminder under the program's reminder interval."""
        try:
            configuration = self._configuration_for(program_id)
            requests = self.repository.find_needing_reminders(
                configuration.reminder_interval_hours,
                now=now,
                program_id=program_id,
            )
            return ServiceResult.success(
                [self._to_response(r, now) for r in requests],
                metadata={"reminder_interval_hours": configuration.reminder_interval_hours},
            )
        except Exception as e:
            return self._handle_exception(e, "find requests needing reminders", program_id)

    def get_statistics(
        self,
        date_from: Optional[datetime] = None,
        date_to: Optional[datetime] = None,
        program_id: Optional[str] = None,
    ) -> DictResult:
        """Counts, rates and average response time."""
        try:
            if date_from and date_to and ensure_utc(date_to) < ensure_utc(date_from):
                raise InvalidArgumentError(
                    "date_to must be after or equal to date_from",
                    argument="date_to",
                    value=date_to,
                )
            return ServiceResult.success(
                self.repository.get_statistics(date_from, date_to, program_id)
            )
        except Exception as e:
            return self._handle_exception(e, "get reassignment statistics")

    def get_user_history(
        self,
        user_id: str,
        recent_limit: int = 10,
        now: Optional[datetime] = None,
    ) -> DictResult:
        """Reassignment history of a requester with the most recent requests."""
        try:
            history = self.repository.get_user_history(user_id, recent_limit)
            history["recent_requests"] = [
                self._to_response(request, now) for request in history["recent_requests"]
            ]
            return ServiceResult.success(history)
        except Exception as e:
            return self._handle_exception(e, "get user reassignment history", user_id)

    # -------------------------------------------------------------------------
    # Transitions
    # -------------------------------------------------------------------------

    def set_suggested_resource(
        self,
        request_id: str,
        resource_id: str,
        expected_version: Optional[int] = None,
        now: Optional[datetime] = None,
    ) -> ServiceResult[ReassignmentRequestResponse]:
        """Propose a replacement resource for a pending request."""
        return self._update_request(
            request_id,
            lambda request: request.set_suggested_resource(resource_id, now),
            "set suggested resource",
            expected_version=expected_version,
            now=now,
        )

    def set_response_deadline(
        self,
        request_id: str,
        deadline: datetime,
        expected_version: Optional[int] = None,
        now: Optional[datetime] = None,
    ) -> ServiceResult[ReassignmentRequestResponse]:
        """Move the response deadline of a request."""
        return self._update_request(
            request_id,
            lambda request: request.set_response_deadline(deadline, now),
            "set response deadline",
            expected_version=expected_version,
            now=now,
        )

    def respond(
        self,
        request_id: str,
        submission: UserResponseSubmission,
        expected_version: Optional[int] = None,
        now: Optional[datetime] = None,
    ) -> ServiceResult[ReassignmentResponseResult]:
        """
        Record the user's decision and decide what happens next.

        Accepting completes the request; a selected resource replaces the
        suggestion first. After a rejection the next action is a penalty
        when the configuration calls for one, a search for alternatives on
        the first rejection, and escalation otherwise.

        Args:
            request_id: Request ID
            submission: User decision
            expected_version: Version the caller read
            now: Operation time

        Returns:
            ServiceResult containing the updated request and next action
        """
        now = ensure_utc(now) or utc_now()

        def transition(request: ReassignmentRequest) -> None:
            if submission.response == UserResponse.ACCEPTED:
                if submission.selected_resource_id:
                    request.set_suggested_resource(submission.selected_resource_id, now)
                request.accept(now)
            else:
                request.reject(now)

            if submission.comments:
                self._append_note(request, f"User comments: {submission.comments}")

        try:
            request = self.repository.update(
                request_id,
                transition,
                expected_version=expected_version,
                commit=False,
            )

            penalty_points = 0
            if request.is_accepted:
                next_action = NextAction.COMPLETE
            else:
                configuration = self._configuration_for(request.affected_program_id)
                if configuration.should_apply_penalty_for_rejection(request.rejection_count):
                    next_action = NextAction.APPLY_PENALTY
                    penalty_points = configuration.rejection_penalty_points
                elif request.rejection_count == 1:
                    next_action = NextAction.FIND_ALTERNATIVES
                else:
                    next_action = NextAction.ESCALATE

            self._commit()

            self._logger.info(
                f"Recorded {submission.response.value} for reassignment request {request_id}",
                extra={
                    "request_id": request_id,
                    "next_action": next_action.value,
                    "rejection_count": request.rejection_count,
                },
            )

            return ServiceResult.success(
                ReassignmentResponseResult(
                    request=self._to_response(request, now),
                    next_action=next_action,
                    penalty_points=penalty_points,
                ),
                message=f"Reassignment request {submission.response.value.lower()}",
            )

        except Exception as e:
            self._rollback()
            return self._handle_exception(e, "respond to reassignment request", request_id)

    def cancel_request(
        self,
        request_id: str,
        reason: Optional[str] = None,
        expected_version: Optional[int] = None,
        now: Optional[datetime] = None,
    ) -> ServiceResult[ReassignmentRequestResponse]:
        """Cancel a request, appending the reason to its internal notes."""

        def transition(request: ReassignmentRequest) -> None:
            request.cancel(now)
            if reason:
                self._append_note(request, f"Cancelled: {reason}")

        return self._update_request(
            request_id,
            transition,
            "cancel reassignment request",
            expected_version=expected_version,
            now=now,
        )

    def expire_request(
        self,
        request_id: str,
        expected_version: Optional[int] = None,
        now: Optional[datetime] = None,
    ) -> ServiceResult[ReassignmentRequestResponse]:
        """Expire a pending request."""
        return self._update_request(
            request_id,
            lambda request: request.expire(now),
            "expire reassignment request",
            expected_version=expected_version,
            now=now,
        )

    @log_execution_time()
    def expire_overdue(
        self,
        now: Optional[datetime] = None,
    ) -> ServiceResult[BulkOperationResult[ReassignmentRequest]]:
        """Expire every pending request whose deadline has passed."""
        try:
            result = self.repository.bulk_expire(now)
            return ServiceResult.success(
                result,
                message=f"Expired {result.success_count} reassignment requests",
                metadata={"failure_count": result.failure_count},
            )
        except Exception as e:
            self._rollback()
            return self._handle_exception(e, "expire overdue reassignment requests")

    # -------------------------------------------------------------------------
    # Equivalent Resources
    # -------------------------------------------------------------------------

    def find_equivalent_resources(
        self,
        request_id: str,
        limit: Optional[int] = None,
    ) -> ServiceResult[List[EquivalentResource]]:
        """
        Ranked replacement candidates for a request.

        The original and the current suggested resource are excluded.

        Args:
            request_id: Request ID
            limit: Maximum candidates, defaults to the configured max suggestions

        Returns:
            ServiceResult containing candidates by descending score
        """
        try:
            if limit is not None and limit < 1:
                raise InvalidArgumentError("Limit must be at least 1", argument="limit", value=limit)

            request = self.repository.get_by_id(request_id)
            if not self._can_query_oracle(request):
                raise InvalidArgumentError(
                    "Original resource and booking window are required to find equivalents",
                    argument="request_id",
                    value=request_id,
                )

            configuration = self._configuration_for(request.affected_program_id)
            candidates = self._lookup_equivalents(request, configuration, limit)

            return ServiceResult.success(candidates, metadata={"count": len(candidates)})

        except Exception as e:
            return self._handle_exception(e, "find equivalent resources", request_id)

    # -------------------------------------------------------------------------
    # Bulk & Automatic Processing
    # -------------------------------------------------------------------------

    @staticmethod
    def _bulk_transition(
        action: BulkAction,
        now: datetime,
    ) -> Callable[[ReassignmentRequest], None]:
        if isinstance(action, AcceptAction):
            return lambda request: request.accept(now)
        if isinstance(action, RejectAction):
            return lambda request: request.reject(now)
        if isinstance(action, ExpireAction):
            return lambda request: request.expire(now)
        if isinstance(action, SetDeadlineAction):
            return lambda request: request.set_response_deadline(action.deadline, now)
        if isinstance(action, SuggestResourceAction):
            return lambda request: request.set_suggested_resource(action.resource_id, now)
        if isinstance(action, CancelAction):
            def cancel(request: ReassignmentRequest) -> None:
                request.cancel(now)
                if action.reason:
                    ReassignmentService._append_note(request, f"Cancelled: {action.reason}")
            return cancel

        raise InvalidArgumentError(f"Unsupported bulk action: {action!r}", argument="action")

    @log_execution_time()
    def bulk_process(
        self,
        action: Union[BulkAction, Dict[str, Any]],
        request_ids: List[str],
        now: Optional[datetime] = None,
    ) -> ServiceResult[BulkOperationResult[ReassignmentRequest]]:
        """
        Apply one action to many requests.

        Each request is processed in its own savepoint; failures are
        reported per id and do not stop the batch.

        Args:
            action: Bulk action variant or its raw payload
            request_ids: Requests to process
            now: Operation time

        Returns:
            ServiceResult containing per-request outcomes
        """
        now = ensure_utc(now) or utc_now()

        try:
            if isinstance(action, dict):
                action = parse_bulk_action(action)
            transition = self._bulk_transition(action, now)

            result: BulkOperationResult[ReassignmentRequest] = BulkOperationResult()
            found: List[ReassignmentRequest] = []
            for request_id in dict.fromkeys(request_ids):
                request = self.repository.find_by_id(request_id)
                if request is None:
                    result.add_failure(request_id, ReassignmentRequestNotFoundError(request_id))
                else:
                    found.append(request)

            applied = self.repository.apply_each(found, transition, commit=True)
            result.succeeded.extend(applied.succeeded)
            result.failed.extend(applied.failed)

            self._logger.info(
                f"Bulk {action.action} processed {result.total} reassignment requests",
                extra={
                    "action": action.action,
                    "success_count": result.success_count,
                    "failure_count": result.failure_count,
                },
            )

            return ServiceResult.success(
                result,
                message=f"{result.success_count} of {result.total} requests processed",
            )

        except Exception as e:
            self._rollback()
            return self._handle_exception(e, "bulk process reassignment requests")

    @log_execution_time()
    def auto_process(
        self,
        program_id: Optional[str] = None,
        now: Optional[datetime] = None,
        dry_run: bool = False,
    ) -> ServiceResult[AutoProcessSummary]:
        """
        Suggest and, where the configuration allows, auto-approve pending requests.

        Requests without a suggestion get the oracle's best candidate. A
        request is accepted on the user's behalf when the configuration's
        auto-approval rule holds and it does not require user
        confirmation. With dry_run nothing is written.

        Args:
            program_id: Optional program filter
            now: Reference time
            dry_run: Report decisions without writing

        Returns:
            ServiceResult containing the per-request decisions
        """
        now = ensure_utc(now) or utc_now()

        try:
            configurations: Dict[Optional[str], ReassignmentConfiguration] = {}
            summary = AutoProcessSummary(dry_run=dry_run)

            for request in self.repository.find_pending(program_id=program_id):
                if request.is_expired(now):
                    continue

                program = request.affected_program_id
                if program not in configurations:
                    configurations[program] = self._configuration_for(program)

                decision = self._auto_process_one(request, configurations[program], now, dry_run)
                summary.decisions.append(decision)
                summary.processed += 1
                if decision.error:
                    summary.failed += 1
                elif decision.auto_approved:
                    summary.auto_approved += 1
                elif decision.skipped_reason:
                    summary.skipped += 1
                if decision.newly_suggested and not decision.error:
                    summary.suggested += 1

            if not dry_run:
                self._commit()

            self._logger.info(
                f"Auto-processed {summary.processed} reassignment requests",
                extra={
                    "program_id": program_id,
                    "auto_approved": summary.auto_approved,
                    "dry_run": dry_run,
                },
            )
            return ServiceResult.success(summary)

        except Exception as e:
            self._rollback()
            return self._handle_exception(e, "auto process reassignment requests", program_id)

    def _auto_process_one(
        self,
        request: ReassignmentRequest,
        configuration: ReassignmentConfiguration,
        now: datetime,
        dry_run: bool,
    ) -> AutoProcessDecision:
        decision = AutoProcessDecision(
            request_id=request.id,
            suggested_resource_id=request.suggested_resource_id,
        )

        try:
            is_equivalent = False
            new_suggestion: Optional[str] = None

            if not request.has_suggested_resource:
                candidates = self._lookup_equivalents(request, configuration)
                if not candidates:
                    decision.skipped_reason = "No equivalent resources found"
                    return decision
                new_suggestion = candidates[0].resource_id
                is_equivalent = candidates[0].is_equivalent
                decision.suggested_resource_id = new_suggestion
                decision.newly_suggested = True

            hours_until_event = request.get_hours_until_start(now)
            approve = (
                hours_until_event is not None
                and configuration.should_auto_approve(hours_until_event, is_equivalent)
                and not request.require_user_confirmation
            )

            if not approve:
                decision.skipped_reason = (
                    "User confirmation required"
                    if request.require_user_confirmation
                    else "Auto-approval rule not met"
                )

            if dry_run:
                decision.auto_approved = approve
                return decision

            with self.db.begin_nested():
                if new_suggestion:
                    request.set_suggested_resource(new_suggestion, now)
                if approve:
                    request.accept(now)
                    self._append_note(request, "Auto-approved")
                self.db.flush()

            decision.auto_approved = approve

        except StaleDataError:
            self._logger.warning(
                f"Auto-processing conflict on request {decision.request_id}",
                extra={"request_id": decision.request_id},
            )
            decision.auto_approved = False
            decision.error = f"Request {decision.request_id} was modified concurrently"

        except (BaseAppException, SQLAlchemyError, ValueError) as e:
            self._logger.warning(
                f"Auto-processing failed for request {decision.request_id}: {str(e)}",
                extra={"request_id": decision.request_id},
            )
            decision.auto_approved = False
            decision.error = str(e)

        return decision

    def optimize_queue(
        self,
        limit: Optional[int] = None,
        program_id: Optional[str] = None,
        now: Optional[datetime] = None,
    ) -> ServiceResult[List[ReassignmentRequestResponse]]:
        """
        Pending, non-expired requests in processing order.

        High priority first, then urgency, then priority weight, then
        earliest deadline (no deadline last), then oldest.
        """
        now = ensure_utc(now) or utc_now()

        try:
            pending = [
                request for request in self.repository.find_pending(program_id=program_id)
                if not request.is_expired(now)
            ]

            ordered = sorted(pending, key=lambda request: (
                not request.is_high_priority(),
                _URGENCY_RANK[request.get_urgency_level()],
                -request.get_priority_weight(),
                request.response_deadline is None,
                request.response_deadline or now,
                request.created_at,
            ))

            if limit is not None:
                ordered = ordered[:limit]

            return ServiceResult.success([self._to_response(request, now) for request in ordered])

        except Exception as e:
            return self._handle_exception(e, "optimize reassignment queue")

    # -------------------------------------------------------------------------
    # Configuration
    # -------------------------------------------------------------------------

    def get_configuration(
        self,
        program_id: Optional[str] = None,
    ) -> ServiceResult[ReassignmentConfigurationResponse]:
        """Configuration in effect for a program."""
        try:
            configuration = self._configuration_for(program_id)
            return ServiceResult.success(ReassignmentConfigurationResponse.from_entity(configuration))
        except Exception as e:
            return self._handle_exception(e, "get reassignment configuration", program_id)

    def save_configuration(
        self,
        data: ReassignmentConfigurationCreate,
        now: Optional[datetime] = None,
    ) -> ServiceResult[ReassignmentConfigurationResponse]:
        """Store a program's configuration, replacing the active one."""
        try:
            configuration = ReassignmentConfiguration.create(now=now, **data.model_dump())
            self.configuration_repository.save(configuration, now=now)

            self._log_operation("save reassignment configuration", configuration.id, extra={
                "program_id": configuration.program_id,
            })
            return ServiceResult.success(ReassignmentConfigurationResponse.from_entity(configuration))

        except Exception as e:
            self._rollback()
            return self._handle_exception(e, "save reassignment configuration", data.program_id)

    def update_configuration(
        self,
        configuration_id: str,
        data: ReassignmentConfigurationUpdate,
        now: Optional[datetime] = None,
    ) -> ServiceResult[ReassignmentConfigurationResponse]:
        """Change fields of a stored configuration."""
        try:
            configuration = self.configuration_repository.get_by_id(configuration_id)
            configuration.update(now=now, **data.model_dump(exclude_none=True))

            outcome = configuration.validate()
            if not outcome.is_valid:
                raise ConfigurationError(
                    f"Invalid reassignment configuration: {'; '.join(outcome.errors)}",
                    errors=outcome.errors,
                )

            self._commit()
            return ServiceResult.success(ReassignmentConfigurationResponse.from_entity(configuration))

        except Exception as e:
            self._rollback()
            return self._handle_exception(e, "update reassignment configuration", configuration_id)


__all__ = [
    "ReassignmentService",
]
