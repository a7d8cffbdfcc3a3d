"""Tests for application status transitions."""

from datetime import datetime, timezone

import pytest

from app.models.application import ApplicationStatus, InvalidTransitionError, apply_status, check_transition
from tests.conftest import make_application

PENDING, SUCCESS, FAILED = ApplicationStatus.PENDING, ApplicationStatus.SUCCESS, ApplicationStatus.FAILED


@pytest.mark.parametrize("requested", [SUCCESS, FAILED])
def test_pending_moves_to_either_terminal_state(requested):
    assert check_transition(PENDING, requested) is True


@pytest.mark.parametrize("terminal", [SUCCESS, FAILED])
def test_repeat_of_terminal_state_is_a_no_op(terminal):
    assert check_transition(terminal, terminal) is False


@pytest.mark.parametrize("current,requested", [(SUCCESS, FAILED), (FAILED, SUCCESS), (SUCCESS, PENDING)])
def test_no_transition_out_of_terminal_state(current, requested):
    with pytest.raises(InvalidTransitionError) as exc_info:
        check_transition(current, requested)
    assert exc_info.value.current == current
    assert exc_info.value.requested == requested


def test_success_stamps_reported_applied_at():
    record = make_application()
    applied_at = datetime(2024, 5, 1, 12, 30, tzinfo=timezone.utc)

    assert apply_status(record, SUCCESS, applied_at=applied_at)

    assert record.status == SUCCESS
    assert record.applied_at == applied_at
    assert record.error_message is None


def test_success_without_applied_at_uses_now():
    record = make_application()
    before = datetime.now(timezone.utc)

    apply_status(record, SUCCESS)

    assert record.applied_at >= before


def test_failure_keeps_error_message_and_no_applied_at():
    record = make_application()

    apply_status(record, FAILED, error_message="x" * 5000)

    assert record.status == FAILED
    assert record.applied_at is None
    assert len(record.error_message) == 2000


def test_repeat_leaves_record_untouched():
    applied_at = datetime(2024, 5, 1, tzinfo=timezone.utc)
    record = make_application(status=SUCCESS, applied_at=applied_at)
    updated_at = record.updated_at

    assert apply_status(record, SUCCESS) is False

    assert record.applied_at == applied_at
    assert record.updated_at == updated_at


def test_is_terminal():
    assert not PENDING.is_terminal
    assert SUCCESS.is_terminal and FAILED.is_terminal
