"""Tests for reassignment request persistence, search and sweeps."""

from datetime import timedelta

import pytest

from bookly.core.database import DatabaseManager
from bookly.core.exceptions import (
    ConflictError,
    InvalidArgumentError,
    InvalidStateError,
    ReassignmentRequestNotFoundError,
)
from bookly.models.base import ReassignmentReason, ReassignmentStatus, UserPriority
from bookly.repositories.reassignment import (
    ReassignmentRequestRepository,
    ReassignmentSearchCriteria,
)


# =============================================================================
# CRUD & Concurrency
# =============================================================================

def test_create_assigns_id_and_version(request_repository, make_request, now):
    request = make_request()

    stored = request_repository.get_by_id(request.id)

    assert stored.id
    assert stored.version == 1
    assert stored.created_at == now
    assert stored.response_deadline == now + timedelta(hours=24)


def test_get_missing_request_raises_not_found(request_repository):
    with pytest.raises(ReassignmentRequestNotFoundError):
        request_repository.get_by_id("missing")

    assert request_repository.find_by_id("missing") is None


def test_update_bumps_version(request_repository, make_request, now):
    request = make_request()

    updated = request_repository.update(
        request.id,
        lambda r: r.set_suggested_resource("room-202", now),
        expected_version=1,
    )

    assert updated.version == 2
    assert updated.suggested_resource_id == "room-202"


def test_update_with_stale_version_conflicts(request_repository, make_request, now):
    request = make_request()
    request_repository.update(request.id, lambda r: r.set_suggested_resource("room-202", now))

    with pytest.raises(ConflictError) as exc_info:
        request_repository.update(
            request.id,
            lambda r: r.set_suggested_resource("room-303", now),
            expected_version=1,
        )

    assert exc_info.value.details["actual_version"] == 2
    assert request_repository.get_by_id(request.id).suggested_resource_id == "room-202"


def test_failed_transition_is_rolled_back(request_repository, make_request, now):
    request = make_request()
    request_repository.update(request.id, lambda r: r.cancel(now))

    with pytest.raises(InvalidStateError):
        request_repository.update(request.id, lambda r: r.accept(now))

    stored = request_repository.get_by_id(request.id)
    assert stored.status == ReassignmentStatus.CANCELLED
    assert stored.version == 2


def test_concurrent_sessions_conflict(tmp_path, draft_request, now):
    manager = DatabaseManager(f"sqlite:///{tmp_path / 'race.db'}", echo=False)
    manager.create_all()
    first, second = manager.get_session(), manager.get_session()
    try:
        first_repository = ReassignmentRequestRepository(first)
        second_repository = ReassignmentRequestRepository(second)

        request = first_repository.create(draft_request())
        stale = second_repository.get_by_id(request.id)
        second.commit()
        assert stale.version == 1

        first_repository.update(request.id, lambda r: r.set_suggested_resource("room-202", now))

        with pytest.raises(ConflictError):
            second_repository.update(stale.id, lambda r: r.set_suggested_resource("room-303", now))

        stored = second_repository.get_by_id(request.id)
        assert stored.suggested_resource_id == "room-202"
        assert stored.version == 2
    finally:
        first.close()
        second.close()
        manager.drop_all()
        manager.close()


@pytest.mark.parametrize("field", ["requested_by", "reason", "original_reservation_id"])
def test_immutable_fields_hold_after_expiry(db, request_repository, make_request, field):
    request = make_request()
    original = getattr(request, field)
    replacement = {
        "requested_by": "user-9",
        "reason": ReassignmentReason.EMERGENCY.value,
        "original_reservation_id": "reservation-9",
    }[field]

    db.expire(request)
    with pytest.raises(InvalidArgumentError):
        setattr(request, field, replacement)

    db.commit()
    db.expire_all()
    assert getattr(request_repository.get_by_id(request.id), field) == original


# =============================================================================
# Search
# =============================================================================

def test_pagination_total_is_independent_of_page_size(request_repository, make_request, now):
    for hours in range(5):
        make_request(
            created_at=now - timedelta(hours=hours),
            original_reservation_id=f"reservation-{hours}",
        )

    first_page = request_repository.find_by_filter(page=1, page_size=2)
    last_page = request_repository.find_by_filter(page=3, page_size=2)
    single_page = request_repository.find_by_filter(page=1, page_size=10)

    assert first_page.total == last_page.total == single_page.total == 5
    assert [r.original_reservation_id for r in first_page.items] == ["reservation-0", "reservation-1"]
    assert len(last_page.items) == 1
    assert first_page.page_info.has_next
    assert not last_page.page_info.has_next


def test_resource_filter_matches_original_or_suggested(request_repository, make_request):
    original = make_request(original_resource_id="room-101")
    suggested = make_request(original_resource_id="room-300", suggested_resource_id="room-101")
    make_request(original_resource_id="room-300")

    page = request_repository.find_by_filter(ReassignmentSearchCriteria(resource_id="room-101"))

    assert {r.id for r in page.items} == {original.id, suggested.id}


def test_filters_combine(request_repository, make_request):
    match = make_request(
        reason=ReassignmentReason.OTHER,
        custom_reason="Projector failure",
        affected_program_id="program-1",
    )
    make_request(reason=ReassignmentReason.OTHER, custom_reason="Projector failure")
    make_request(affected_program_id="program-1", internal_notes="Heating")

    criteria = ReassignmentSearchCriteria.from_dict({
        "program_id": "program-1",
        "search": "projector",
        "has_suggestion": False,
        "requested_by": None,
    })
    page = request_repository.find_by_filter(criteria)

    assert [r.id for r in page.items] == [match.id]


def test_sort_by_priority_uses_weight(request_repository, make_request):
    for priority in (UserPriority.STUDENT, UserPriority.ADMIN_GENERAL, UserPriority.TEACHER):
        make_request(priority=priority)

    page = request_repository.find_by_filter(sort_by="priority", sort_order="desc")

    assert [r.priority for r in page.items] == [
        UserPriority.ADMIN_GENERAL,
        UserPriority.TEACHER,
        UserPriority.STUDENT,
    ]


@pytest.mark.parametrize("sort_by, sort_order", [("id; DROP TABLE", "asc"), ("created_at", "up")])
def test_invalid_sort_is_rejected(request_repository, sort_by, sort_order):
    with pytest.raises(InvalidArgumentError):
        request_repository.find_by_filter(sort_by=sort_by, sort_order=sort_order)


def test_deadline_queries(request_repository, make_request, now):
    soon = make_request(response_deadline=now + timedelta(hours=1))
    make_request(response_deadline=now + timedelta(hours=3))
    overdue = make_request(response_deadline=now - timedelta(hours=1))
    answered = make_request(response_deadline=now - timedelta(hours=2))
    request_repository.update(answered.id, lambda r: r.cancel(now))

    assert [r.id for r in request_repository.find_expiring_soon(2, now)] == [soon.id]
    assert [r.id for r in request_repository.find_overdue(now)] == [overdue.id]


def test_find_needing_reminders(request_repository, make_request, now):
    due = make_request(created_at=now - timedelta(hours=7))
    make_request(created_at=now - timedelta(hours=1))
    make_request(created_at=now - timedelta(hours=8), status=ReassignmentStatus.ACCEPTED)

    assert [r.id for r in request_repository.find_needing_reminders(6, now)] == [due.id]
    assert request_repository.find_needing_reminders(6, now, program_id="program-9") == []


def test_find_similar(request_repository, make_request, now):
    recent = make_request(created_at=now - timedelta(hours=2))
    make_request(created_at=now - timedelta(hours=30))
    make_request(created_at=now - timedelta(hours=1), reason=ReassignmentReason.EMERGENCY)

    similar = request_repository.find_similar("room-101", ReassignmentReason.MAINTENANCE, 24, now)

    assert [r.id for r in similar] == [recent.id]


# =============================================================================
# Bulk Expiry
# =============================================================================

def test_bulk_expire_continues_past_failures(request_repository, make_request, now, monkeypatch):
    overdue = [
        make_request(created_at=now - timedelta(days=2), original_reservation_id=f"reservation-{i}")
        for i in range(3)
    ]
    fresh = make_request()

    def refuse(when=None):
        raise InvalidStateError("Request is locked", request_id=overdue[1].id)

    monkeypatch.setattr(overdue[1], "expire", refuse)

    result = request_repository.bulk_expire(now)

    assert result.success_count == 2
    assert result.failure_count == 1
    assert result.failed[0].id == overdue[1].id
    assert result.failed[0].error_code == "INVALID_STATE"

    counts = request_repository.count_by_status()
    assert counts["EXPIRED"] == 2
    assert counts["PENDING"] == 2
    assert request_repository.get_by_id(fresh.id).status == ReassignmentStatus.PENDING
    assert request_repository.get_by_id(overdue[1].id).status == ReassignmentStatus.PENDING


def test_bulk_expire_with_nothing_overdue(request_repository, make_request, now):
    make_request()

    result = request_repository.bulk_expire(now)

    assert result.total == 0


# =============================================================================
# Statistics & History
# =============================================================================

def test_statistics(request_repository, make_request, now):
    accepted = make_request()
    rejected = make_request()
    make_request()
    cancelled = make_request()
    request_repository.update(accepted.id, lambda r: r.accept(now + timedelta(minutes=30)))
    request_repository.update(rejected.id, lambda r: r.reject(now + timedelta(minutes=90)))
    request_repository.update(cancelled.id, lambda r: r.cancel(now))

    stats = request_repository.get_statistics()

    assert stats["total_requests"] == 4
    assert stats["by_status"]["ACCEPTED"] == 1
    assert stats["by_status"]["EXPIRED"] == 0
    assert stats["by_reason"]["MAINTENANCE"] == 4
    assert stats["by_priority"] == {
        "ADMIN_GENERAL": 0,
        "PROGRAM_DIRECTOR": 0,
        "TEACHER": 0,
        "STUDENT": 3,
        "EXTERNAL": 1,
    }
    assert stats["acceptance_rate"] == 25.0
    assert stats["rejection_rate"] == 25.0
    assert stats["average_response_minutes"] == 60.0


def test_statistics_for_empty_window(request_repository, make_request, now):
    make_request()

    stats = request_repository.get_statistics(date_from=now + timedelta(days=1))

    assert stats["total_requests"] == 0
    assert stats["acceptance_rate"] == 0.0
    assert stats["average_response_minutes"] is None


def test_user_history(request_repository, make_request, now):
    for hours in range(3):
        make_request(created_at=now - timedelta(hours=hours), requested_by="user-7")
    make_request(requested_by="user-8")

    history = request_repository.get_user_history("user-7", recent_limit=2)

    assert history["total_requests"] == 3
    assert history["pending_requests"] == 3
    assert history["total_rejections"] == 0
    assert len(history["recent_requests"]) == 2
    assert request_repository.count_pending_by_user("user-7") == 3
