"""Tests for reassignment configuration policy and persistence."""

import pytest
from pydantic import ValidationError

from bookly.core.config import ReassignmentSettings
from bookly.core.exceptions import ConfigurationError, InvalidArgumentError
from bookly.models.reassignment import ReassignmentConfiguration
from bookly.schemas.reassignment import ReassignmentConfigurationCreate


# =============================================================================
# Policy
# =============================================================================

def test_default_configuration_is_valid():
    configuration = ReassignmentConfiguration.create_default("program-1")

    assert configuration.program_id == "program-1"
    assert configuration.validate().is_valid
    assert configuration.get_response_time_hours(is_urgent=False) == 24
    assert configuration.get_response_time_hours(is_urgent=True) == 4


def test_validate_collects_range_errors():
    configuration = ReassignmentConfiguration.create(
        max_suggestions=0,
        default_response_time_hours=2,
        urgent_response_time_hours=3,
        rejection_penalty_points=60,
    )

    outcome = configuration.validate()

    assert not outcome.is_valid
    assert "Max suggestions must be between 1 and 20" in outcome.errors
    assert "Rejection penalty points must be between 0 and 50" in outcome.errors
    assert "Urgent response time cannot be longer than default response time" in outcome.errors


def test_update_rejects_out_of_range_value(now):
    configuration = ReassignmentConfiguration.create_default()

    with pytest.raises(InvalidArgumentError) as exc_info:
        configuration.update(now=now, reminder_interval_hours=30)

    assert exc_info.value.message == "Reminder interval must be between 1 and 24 hours"
    assert configuration.reminder_interval_hours == 6


def test_update_rejects_read_only_and_unknown_fields():
    configuration = ReassignmentConfiguration.create_default()

    with pytest.raises(InvalidArgumentError):
        configuration.update(program_id="program-2")
    with pytest.raises(InvalidArgumentError):
        configuration.update(colour="blue")


def test_auto_approval_rules():
    configuration = ReassignmentConfiguration.create_default()
    assert not configuration.should_auto_approve(1, True)

    configuration.enable_auto_approval = True
    assert configuration.should_auto_approve(1.5, True)
    assert not configuration.should_auto_approve(3, True)
    assert not configuration.should_auto_approve(1, False)

    configuration.auto_approval_only_for_equivalent = False
    assert configuration.should_auto_approve(1, False)


def test_rejection_penalty_threshold():
    configuration = ReassignmentConfiguration.create_default()

    assert not configuration.should_apply_penalty_for_rejection(2)
    assert configuration.should_apply_penalty_for_rejection(3)

    configuration.apply_penalty_for_rejection = False
    assert not configuration.should_apply_penalty_for_rejection(10)


def test_presets():
    lenient = ReassignmentConfiguration.create_lenient()
    strict = ReassignmentConfiguration.create_strict()

    assert lenient.enable_auto_approval
    assert not lenient.apply_penalty_for_rejection
    assert strict.max_suggestions == 3
    assert strict.get_enabled_notification_channels() == ["email", "sms", "push"]
    assert lenient.validate().is_valid
    assert strict.validate().is_valid


def test_configuration_summary():
    summary = ReassignmentConfiguration.create_default().get_configuration_summary()

    assert summary == (
        "Capacity tolerance: 10%, Max suggestions: 5, Response time: 24h (urgent: 4h), "
        "Penalty: 5 points after 3 rejections"
    )

    lenient = ReassignmentConfiguration.create_lenient().get_configuration_summary()
    assert "Auto-approval: 4h threshold" in lenient
    assert "Penalty" not in lenient


def test_from_settings_uses_configured_windows():
    reassignment_settings = ReassignmentSettings(
        DEFAULT_RESPONSE_TIME_HOURS=36,
        URGENT_RESPONSE_TIME_HOURS=0.5,
        MAX_SUGGESTIONS=7,
    )

    configuration = ReassignmentConfiguration.from_settings(reassignment_settings, "program-1")

    assert configuration.default_response_time_hours == 36
    assert configuration.urgent_response_time_hours == 0.5
    assert configuration.max_suggestions == 7
    assert "(urgent: 0.5h)" in configuration.get_configuration_summary()


def test_create_schema_checks_response_windows():
    with pytest.raises(ValidationError) as exc_info:
        ReassignmentConfigurationCreate(default_response_time_hours=4, urgent_response_time_hours=8)

    assert "Urgent response time cannot be longer than default response time" in str(exc_info.value)


# =============================================================================
# Persistence
# =============================================================================

def test_effective_configuration_falls_back(configuration_repository, make_configuration):
    fallback = configuration_repository.get_effective("program-1")
    assert fallback.id is None
    assert fallback.program_id == "program-1"

    institution = make_configuration(program_id=None, max_suggestions=9)
    assert configuration_repository.get_effective("program-1").id == institution.id

    program = make_configuration(program_id="program-1", max_suggestions=2)
    assert configuration_repository.get_effective("program-1").id == program.id
    assert configuration_repository.get_effective("program-2").id == institution.id


def test_saving_active_configuration_deactivates_previous(configuration_repository, make_configuration):
    first = make_configuration(program_id="program-1")
    second = make_configuration(program_id="program-1", max_suggestions=3)

    assert not first.is_active
    assert second.is_active
    assert configuration_repository.find_active_for_program("program-1").id == second.id
    assert len(configuration_repository.find_by_program("program-1")) == 2


def test_save_rejects_invalid_configuration(configuration_repository, now):
    configuration = ReassignmentConfiguration.create(now=now, max_suggestions=50)

    with pytest.raises(ConfigurationError) as exc_info:
        configuration_repository.save(configuration, now=now)

    assert exc_info.value.details["errors"] == ["Max suggestions must be between 1 and 20"]
    assert configuration_repository.count() == 0
