"""Tests for the reassignment request state machine and derived values."""

from datetime import timedelta

import pytest

from bookly.core.exceptions import (
    AlreadyCancelledError,
    ExpiredError,
    InvalidArgumentError,
    InvalidStateError,
)
from bookly.models.base import (
    ReassignmentReason,
    ReassignmentStatus,
    UrgencyLevel,
    UserPriority,
    UserResponse,
)
from bookly.models.reassignment import ReassignmentRequest


# =============================================================================
# Construction & Validation
# =============================================================================

def test_create_starts_pending_with_empty_collections(now):
    request = ReassignmentRequest.create(
        now=now,
        original_reservation_id="reservation-1",
        requested_by="user-1",
        reason=ReassignmentReason.MAINTENANCE,
    )

    assert request.status == ReassignmentStatus.PENDING
    assert request.user_response == UserResponse.PENDING
    assert request.rejection_count == 0
    assert request.priority == UserPriority.STUDENT
    assert request.required_features == []
    assert request.tags == []
    assert request.created_at == now
    assert request.updated_at == now


def test_validate_reports_every_violation_without_mutating(draft_request, now):
    request = draft_request(
        original_reservation_id=" ",
        requested_by="",
        reason=ReassignmentReason.OTHER,
        custom_reason=None,
        response_deadline=now - timedelta(minutes=1),
    )

    outcome = request.validate(now)

    assert not outcome.is_valid
    assert outcome.errors == [
        "Original reservation ID is required",
        "Requested by user ID is required",
        "Custom reason is required when reason is OTHER",
        "Response deadline must be in the future",
    ]
    assert request.status == ReassignmentStatus.PENDING
    assert request.updated_at == now


def test_validate_requires_a_reason(draft_request, now):
    outcome = draft_request(reason=None).validate(now)

    assert outcome.errors == ["Reason is required"]


def test_validate_accepts_complete_request(draft_request, now):
    outcome = draft_request(reason=ReassignmentReason.OTHER, custom_reason="Projector swap").validate(now)

    assert outcome.is_valid
    assert outcome.errors == []


def test_immutable_fields_cannot_change(draft_request):
    request = draft_request()

    with pytest.raises(InvalidArgumentError):
        request.reason = ReassignmentReason.EMERGENCY

    with pytest.raises(InvalidArgumentError):
        request.original_reservation_id = "reservation-2"

    assert request.reason == ReassignmentReason.MAINTENANCE


def test_create_rejects_values_outside_the_enums(now):
    with pytest.raises(InvalidArgumentError) as exc_info:
        ReassignmentRequest.create(
            now=now,
            original_reservation_id="reservation-1",
            requested_by="user-1",
            reason="EARTHQUAKE",
        )

    assert exc_info.value.details["argument"] == "reason"

    from_value = ReassignmentRequest.create(
        now=now,
        original_reservation_id="reservation-1",
        requested_by="user-1",
        reason="EMERGENCY",
    )
    assert from_value.reason == ReassignmentReason.EMERGENCY


def test_unknown_status_is_rejected(draft_request):
    request = draft_request()

    with pytest.raises(InvalidArgumentError):
        request.status = "ON_HOLD"


# =============================================================================
# Transitions
# =============================================================================

def test_accept_records_response(draft_request, now):
    request = draft_request()
    later = now + timedelta(hours=1)

    request.accept(later)

    assert request.status == ReassignmentStatus.ACCEPTED
    assert request.user_response == UserResponse.ACCEPTED
    assert request.responded_at == later
    assert request.updated_at == later


def test_reject_downgrades_priority_on_first_rejection(draft_request, now):
    request = draft_request(priority=UserPriority.ADMIN_GENERAL)

    request.reject(now)

    assert request.status == ReassignmentStatus.REJECTED
    assert request.user_response == UserResponse.REJECTED
    assert request.rejection_count == 1
    assert request.priority == UserPriority.PROGRAM_DIRECTOR
    assert request.responded_at == now


def test_second_rejection_keeps_priority(draft_request, now):
    request = draft_request(priority=UserPriority.ADMIN_GENERAL)
    request.reject(now)

    request.status = ReassignmentStatus.PENDING
    request.reject(now)

    assert request.rejection_count == 2
    assert request.priority == UserPriority.PROGRAM_DIRECTOR


def test_external_priority_is_the_floor(draft_request, now):
    request = draft_request(priority=UserPriority.EXTERNAL)

    request.reject(now)

    assert request.priority == UserPriority.EXTERNAL


@pytest.mark.parametrize("status", [
    ReassignmentStatus.ACCEPTED,
    ReassignmentStatus.REJECTED,
    ReassignmentStatus.CANCELLED,
    ReassignmentStatus.EXPIRED,
])
def test_responses_require_pending_status(draft_request, now, status):
    request = draft_request(status=status)

    with pytest.raises(InvalidStateError):
        request.accept(now)
    with pytest.raises(InvalidStateError):
        request.reject(now)

    assert request.status == status
    assert request.rejection_count == 0


def test_responses_fail_after_deadline(draft_request, now):
    request = draft_request(response_deadline=now - timedelta(minutes=1))

    assert request.is_expired(now)
    with pytest.raises(ExpiredError):
        request.accept(now)
    with pytest.raises(ExpiredError):
        request.reject(now)

    assert request.status == ReassignmentStatus.PENDING
    assert request.priority == UserPriority.STUDENT


@pytest.mark.parametrize("transition, status, user_response", [
    (None, ReassignmentStatus.PENDING, UserResponse.PENDING),
    ("accept", ReassignmentStatus.ACCEPTED, UserResponse.ACCEPTED),
    ("reject", ReassignmentStatus.REJECTED, UserResponse.REJECTED),
    ("expire", ReassignmentStatus.EXPIRED, UserResponse.PENDING),
])
def test_cancel_from_every_state_but_cancelled(draft_request, now, transition, status, user_response):
    request = draft_request(priority=UserPriority.TEACHER)
    if transition:
        getattr(request, transition)(now)
    assert request.status == status
    priority = request.priority
    rejection_count = request.rejection_count

    request.cancel(now + timedelta(minutes=5))

    assert request.status == ReassignmentStatus.CANCELLED
    assert request.user_response == user_response
    assert request.priority == priority
    assert request.rejection_count == rejection_count
    assert request.updated_at == now + timedelta(minutes=5)


def test_cancel_twice_fails_and_keeps_state(draft_request, now):
    request = draft_request()
    request.cancel(now)
    cancelled_at = request.updated_at

    with pytest.raises(AlreadyCancelledError):
        request.cancel(now + timedelta(hours=1))

    assert request.status == ReassignmentStatus.CANCELLED
    assert request.updated_at == cancelled_at


def test_expire_only_from_pending(draft_request, now):
    request = draft_request()
    request.expire(now)

    assert request.status == ReassignmentStatus.EXPIRED
    assert request.user_response == UserResponse.PENDING
    assert request.is_expired(now)

    with pytest.raises(InvalidStateError):
        request.expire(now)


def test_set_suggested_resource(draft_request, now):
    request = draft_request()

    request.set_suggested_resource("room-202", now)

    assert request.suggested_resource_id == "room-202"
    assert request.has_suggested_resource

    with pytest.raises(InvalidArgumentError):
        request.set_suggested_resource("  ", now)


def test_set_suggested_resource_requires_pending(draft_request, now):
    request = draft_request()
    request.cancel(now)

    with pytest.raises(InvalidStateError):
        request.set_suggested_resource("room-202", now)

    assert request.suggested_resource_id is None


def test_set_response_deadline_in_any_status(draft_request, now):
    request = draft_request()
    request.accept(now)
    deadline = now + timedelta(hours=3)

    request.set_response_deadline(deadline, now)

    assert request.response_deadline == deadline


@pytest.mark.parametrize("offset", [timedelta(0), timedelta(minutes=-5)])
def test_set_response_deadline_must_be_future(draft_request, now, offset):
    request = draft_request()
    original = request.response_deadline

    with pytest.raises(InvalidArgumentError):
        request.set_response_deadline(now + offset, now)

    assert request.response_deadline == original


# =============================================================================
# Queries
# =============================================================================

def test_time_remaining_minutes(draft_request, now):
    request = draft_request(response_deadline=now + timedelta(minutes=90, seconds=40))

    assert request.get_time_remaining_minutes(now) == 90
    assert request.get_time_remaining_minutes(now + timedelta(minutes=30)) == 60
    assert request.get_time_remaining_minutes(now + timedelta(hours=5)) == 0

    request.accept(now)
    assert request.get_time_remaining_minutes(now) is None


def test_time_remaining_without_deadline(draft_request, now):
    assert draft_request(response_deadline=None).get_time_remaining_minutes(now) is None


def test_expiry_only_applies_to_pending_requests(draft_request, now):
    request = draft_request(response_deadline=now + timedelta(hours=1))
    request.accept(now)

    assert not request.is_expired(now + timedelta(days=2))


def test_hours_until_start(draft_request, now):
    request = draft_request(original_start_time=now + timedelta(hours=5, minutes=30))

    assert request.get_hours_until_start(now) == pytest.approx(5.5)
    assert draft_request(original_start_time=None, original_end_time=None).get_hours_until_start(now) is None


def test_maintenance_by_teacher_is_not_high_priority(draft_request):
    request = draft_request(reason=ReassignmentReason.MAINTENANCE, priority=UserPriority.TEACHER, response_deadline=None)

    assert request.get_urgency_level() == UrgencyLevel.MEDIUM
    assert request.get_priority_weight() == 3
    assert not request.is_high_priority()


def test_emergency_urgency_dominates_priority(draft_request):
    request = draft_request(reason=ReassignmentReason.EMERGENCY, priority=UserPriority.STUDENT)

    assert request.get_urgency_level() == UrgencyLevel.CRITICAL
    assert request.is_high_priority()


def test_program_director_is_high_priority_for_any_reason(draft_request):
    request = draft_request(reason=ReassignmentReason.ADMINISTRATIVE, priority=UserPriority.PROGRAM_DIRECTOR)

    assert request.get_urgency_level() == UrgencyLevel.LOW
    assert request.is_high_priority()


def test_reason_description(draft_request):
    assert draft_request(reason=ReassignmentReason.EMERGENCY).get_reason_description() == "Emergency situation"
    assert draft_request(
        reason=ReassignmentReason.OTHER,
        custom_reason="Filming crew on site",
    ).get_reason_description() == "Filming crew on site"
    assert draft_request(reason=ReassignmentReason.OTHER).get_reason_description() == "Other reasons"


# =============================================================================
# Serialization
# =============================================================================

def test_snapshot_round_trip_keeps_query_results(draft_request, now):
    request = draft_request(
        reason=ReassignmentReason.TECHNICAL_ISSUES,
        priority=UserPriority.TEACHER,
        tags=["projector"],
    )

    rebuilt = ReassignmentRequest.from_snapshot(request.to_snapshot())

    assert rebuilt.to_snapshot() == request.to_snapshot()
    assert rebuilt.is_expired(now) == request.is_expired(now)
    assert rebuilt.get_priority_weight() == request.get_priority_weight()
    assert rebuilt.get_urgency_level() == request.get_urgency_level()
    assert rebuilt.get_reason_description() == request.get_reason_description()


def test_to_dict_includes_derived_values(draft_request, now):
    request = draft_request(reason=ReassignmentReason.EMERGENCY)

    data = request.to_dict(exclude=["internal_notes"], now=now)

    assert "internal_notes" not in data
    assert data["reason"] == "EMERGENCY"
    assert data["urgency_level"] == "CRITICAL"
    assert data["is_high_priority"] is True
    assert data["is_expired"] is False
    assert data["time_remaining_minutes"] == 24 * 60
    assert data["reason_description"] == "Emergency situation"
