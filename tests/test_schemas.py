"""Tests for request, equivalence and bulk action payload validation."""

from datetime import timedelta

import pytest
from pydantic import ValidationError

from bookly.models.base import ReassignmentReason, UserPriority
from bookly.schemas.reassignment import (
    AcceptAction,
    BulkActionRequest,
    CancelAction,
    EquivalenceQuery,
    ReassignmentFilterParams,
    ReassignmentRequestCreate,
    SetDeadlineAction,
    SuggestResourceAction,
    TimeWindow,
    parse_bulk_action,
)


# =============================================================================
# Bulk Actions
# =============================================================================

def test_parse_bulk_action_selects_variant(now):
    assert isinstance(parse_bulk_action({"action": "accept"}), AcceptAction)
    assert parse_bulk_action({"action": "cancel", "reason": "Closed"}).reason == "Closed"

    deadline = parse_bulk_action({"action": "set_deadline", "deadline": now.isoformat()})
    assert isinstance(deadline, SetDeadlineAction)
    assert deadline.deadline == now


@pytest.mark.parametrize("payload", [
    {"action": "teleport"},
    {"action": "set_deadline"},
    {"action": "suggest_resource", "resource_id": ""},
    {"reason": "missing action"},
])
def test_parse_bulk_action_rejects_malformed_payload(payload):
    with pytest.raises(ValidationError):
        parse_bulk_action(payload)


def test_bulk_request_deduplicates_ids():
    request = BulkActionRequest(
        action={"action": "suggest_resource", "resource_id": "room-9"},
        request_ids=["a", " b ", "a", ""],
    )

    assert isinstance(request.action, SuggestResourceAction)
    assert request.request_ids == ["a", "b"]


def test_bulk_request_needs_ids():
    with pytest.raises(ValidationError):
        BulkActionRequest(action=CancelAction(), request_ids=[])
    with pytest.raises(ValidationError):
        BulkActionRequest(action=CancelAction(), request_ids=[" "])


# =============================================================================
# Equivalence
# =============================================================================

def test_time_window_must_be_ordered(now):
    window = TimeWindow(start=now, end=now + timedelta(minutes=90))
    assert window.duration_hours == 1.5

    with pytest.raises(ValidationError) as exc_info:
        TimeWindow(start=now, end=now)
    assert "Time window end must be after its start" in str(exc_info.value)


def test_equivalence_query_normalizes_lists(now):
    query = EquivalenceQuery(
        resource_id="room-101",
        time_window=TimeWindow(start=now, end=now + timedelta(hours=1)),
        required_features=["projector", " projector ", "", "whiteboard"],
        exclude_ids=["room-101", "room-101"],
    )

    assert query.required_features == ["projector", "whiteboard"]
    assert query.exclude_ids == ["room-101"]
    assert query.limit == 5


# =============================================================================
# Requests
# =============================================================================

def test_create_payload_maps_user_priority():
    payload = ReassignmentRequestCreate(
        original_reservation_id="reservation-1",
        requested_by="user-1",
        reason=ReassignmentReason.EMERGENCY,
        user_priority=UserPriority.PROGRAM_DIRECTOR,
        is_urgent=True,
    )

    values = payload.to_entity_values()

    assert values["priority"] == UserPriority.PROGRAM_DIRECTOR
    assert "user_priority" not in values
    assert "is_urgent" not in values


def test_create_payload_checks_original_window(now):
    with pytest.raises(ValidationError):
        ReassignmentRequestCreate(
            original_reservation_id="reservation-1",
            requested_by="user-1",
            reason=ReassignmentReason.MAINTENANCE,
            original_start_time=now,
            original_end_time=now - timedelta(hours=1),
        )


def test_filter_params_check_date_range(now):
    with pytest.raises(ValidationError):
        ReassignmentFilterParams(date_from=now, date_to=now - timedelta(days=1))

    assert ReassignmentFilterParams(min_rejections=0).min_rejections == 0
