"""
test_login_guard.py: Attempt counting, lockout and reset.
"""
from unittest.mock import MagicMock

import pytest

from conftest import login_response
from carelink.errors import TransportError
from carelink.login_guard import LoginGuard, accepts_admin_login
from carelink.models import LoginResponse, OutcomeKind


def make_guard(timers, login_call=None, **kwargs):
    login_call = login_call or MagicMock(return_value=login_response(success=False, reason="wrong_password", message="Incorrect password."))
    return LoginGuard(login_call, timer_factory=timers, **kwargs), login_call


# ---------------------------------------------------------------------------
# Counting
# ---------------------------------------------------------------------------

def test_empty_fields_count_as_failure_without_network(timers):
    guard, login_call = make_guard(timers)

    outcome = guard.submit("", "secret")

    assert outcome.kind is OutcomeKind.FAILED
    assert outcome.attempts_left == 4
    assert outcome.clear_credentials is True
    assert "4 attempts left" in outcome.message
    login_call.assert_not_called()


def test_backend_rejection_decrements_and_clears(timers):
    guard, login_call = make_guard(timers)

    outcome = guard.submit("ana@example.com", "wrong")

    assert outcome.kind is OutcomeKind.FAILED
    assert outcome.attempts_left == 4
    assert outcome.clear_credentials is True
    assert outcome.message.startswith("Incorrect password.")
    login_call.assert_called_once_with("ana@example.com", "wrong")


def test_success_resets_attempts(timers):
    responses = [
        login_response(success=False, reason="wrong_password", message="Nope"),
        login_response(success=False, reason="wrong_password", message="Nope"),
        login_response(success=True, user_type="parent", user_id=7, name="Ben"),
    ]
    guard, _ = make_guard(timers, login_call=MagicMock(side_effect=responses))

    guard.submit("ben@example.com", "x")
    guard.submit("ben@example.com", "y")
    outcome = guard.submit("ben@example.com", "right")

    assert outcome.succeeded
    assert outcome.title == "Welcome Back!"
    assert outcome.user.user_id == "7"
    assert outcome.user.user_type == "parent"
    assert guard.state.attempts_left == 5
    assert guard.state.is_locked is False


def test_pending_account_is_let_in(timers):
    pending = login_response(success=False, reason="Account Pending", message="Your account is pending approval.")
    guard, _ = make_guard(timers, login_call=MagicMock(return_value=pending))

    outcome = guard.submit("new@example.com", "pw")

    assert outcome.succeeded
    assert outcome.kind is OutcomeKind.PENDING
    assert outcome.title == "Welcome Back!"
    assert outcome.message == "Your account is pending approval."
    assert outcome.user is None
    assert outcome.user_type == "helper"
    assert guard.state.attempts_left == 5


def test_pending_account_without_user_record_is_not_a_connection_error(timers):
    pending = LoginResponse(
        success=False,
        message="Your account is pending approval.",
        user_type="parent",
        reason="Account Pending",
        user=None,
    )
    guard, _ = make_guard(timers, login_call=MagicMock(return_value=pending))
    guard.submit("", "")

    outcome = guard.submit("new@example.com", "pw")

    assert outcome.kind is OutcomeKind.PENDING
    assert outcome.user_type == "parent"
    assert guard.state.attempts_left == 5


def test_transport_error_does_not_consume_an_attempt(timers):
    guard, _ = make_guard(timers, login_call=MagicMock(side_effect=TransportError("Network error: refused")))

    outcome = guard.submit("ana@example.com", "pw")

    assert outcome.kind is OutcomeKind.CONNECTION_ERROR
    assert outcome.title == "Connection Error"
    assert outcome.message == "Unable to connect to server."
    assert guard.state.attempts_left == 5


def test_success_without_user_record_is_a_transport_error(timers):
    broken = login_response(success=True)
    broken.user = None
    guard, _ = make_guard(timers, login_call=MagicMock(return_value=broken))

    outcome = guard.submit("ana@example.com", "pw")

    assert outcome.kind is OutcomeKind.CONNECTION_ERROR
    assert guard.state.attempts_left == 5


# ---------------------------------------------------------------------------
# Lockout
# ---------------------------------------------------------------------------

def test_five_failures_lock_exactly_once_and_sixth_skips_network(timers):
    guard, login_call = make_guard(timers)

    outcomes = [guard.submit("ana@example.com", "wrong") for _ in range(5)]

    assert [o.attempts_left for o in outcomes] == [4, 3, 2, 1, 0]
    assert [o.locked_now for o in outcomes] == [False, False, False, False, True]
    assert len(timers.timers) == 1
    assert timers.last.started
    assert timers.last.seconds == 60

    sixth = guard.submit("ana@example.com", "right")
    assert sixth.kind is OutcomeKind.LOCKED
    assert login_call.call_count == 5
    assert len(timers.timers) == 1


def test_lockout_scenario_with_empty_credentials(timers):
    guard, login_call = make_guard(timers)

    for _ in range(4):
        guard.submit("", "")
    fifth = guard.submit("", "")

    assert "0 attempts" in fifth.message
    assert fifth.title == "Too Many Attempts"

    locked = guard.submit("", "")
    assert locked.kind is OutcomeKind.LOCKED
    assert locked.message == "Account locked for 1 minute."
    assert guard.state.attempts_left == 0
    login_call.assert_not_called()

    timers.last.fire()

    assert guard.state.attempts_left == 5
    assert guard.state.is_locked is False


def test_locked_submissions_do_not_decrement(timers):
    guard, _ = make_guard(timers, max_attempts=2)
    guard.submit("", "")
    guard.submit("", "")

    for _ in range(3):
        guard.submit("", "")

    assert guard.state.attempts_left == 0
    assert guard.state.is_locked is True


def test_reset_is_unconditional(timers):
    guard, _ = make_guard(timers, max_attempts=1)
    guard.submit("", "")
    assert guard.state.is_locked

    timers.last.fire()
    timers.last.fire()

    assert guard.state.attempts_left == 1
    assert guard.state.is_locked is False


def test_custom_window_wording(timers):
    guard, _ = make_guard(timers, max_attempts=1, lockout_seconds=90)

    outcome = guard.submit("", "")

    assert "Account locked for 90 seconds." in outcome.message
    assert timers.last.seconds == 90


def test_dispose_cancels_pending_timer(timers):
    guard, _ = make_guard(timers, max_attempts=1)
    guard.submit("", "")

    guard.dispose()

    assert timers.last.cancelled is True


def test_dispose_without_timer_is_noop(timers):
    guard, _ = make_guard(timers)
    guard.dispose()
    assert timers.timers == []


# ---------------------------------------------------------------------------
# In-flight guard
# ---------------------------------------------------------------------------

def test_second_submission_while_pending_is_rejected(timers):
    nested = {}

    def login_call(email, password):
        nested["outcome"] = guard.submit(email, password)
        return login_response(success=False, reason="wrong_password", message="Nope")

    guard = LoginGuard(login_call, timer_factory=timers)

    first = guard.submit("ana@example.com", "pw")

    assert nested["outcome"].kind is OutcomeKind.BUSY
    assert first.kind is OutcomeKind.FAILED
    assert guard.state.attempts_left == 4


# ---------------------------------------------------------------------------
# Admin variant
# ---------------------------------------------------------------------------

def test_admin_guard_rejects_non_admin_account_but_keeps_credentials(timers):
    helper_ok = login_response(success=True, user_type="helper", message="Login successful")
    guard = LoginGuard(
        MagicMock(return_value=helper_ok), accepts=accepts_admin_login, admin=True, timer_factory=timers
    )

    outcome = guard.submit("helper@example.com", "pw")

    assert outcome.kind is OutcomeKind.FAILED
    assert outcome.attempts_left == 4
    assert outcome.clear_credentials is False


def test_admin_guard_success(timers):
    admin_ok = login_response(success=True, user_type="admin", user_id=1, name="Root")
    guard = LoginGuard(
        MagicMock(return_value=admin_ok), accepts=accepts_admin_login, admin=True, timer_factory=timers
    )

    outcome = guard.submit("admin@example.com", "pw")

    assert outcome.succeeded
    assert outcome.title == "Welcome Admin"
    assert outcome.message == "Access Granted."
    assert outcome.user.user_type == "admin"


def test_admin_guard_does_not_let_pending_accounts_in(timers):
    pending = login_response(success=False, reason="Account Pending", message="Pending")
    guard = LoginGuard(
        MagicMock(return_value=pending), accepts=accepts_admin_login, admin=True, timer_factory=timers
    )

    outcome = guard.submit("x@example.com", "pw")

    assert outcome.kind is OutcomeKind.FAILED
    assert "admin email" in outcome.message


def test_max_attempts_must_be_positive(timers):
    with pytest.raises(ValueError):
        LoginGuard(MagicMock(), max_attempts=0, timer_factory=timers)
