"""
Attempt-counting gate for credential submissions.

A LoginGuard counts failed submissions for one client session. When the
counter reaches zero the guard locks, rejects every submission without
contacting the backend, and starts a one-shot timer that restores the full
attempt count when it fires. State is in memory only.

Only credential failures consume attempts:
- an empty email or password counts as a failed attempt without a request
- a backend rejection counts as a failed attempt
- a TransportError (network down, bad status, unparseable body) does not

The same class backs the regular and the admin login; the two differ only in
the acceptance predicate and the message keys they are built with.
"""

import logging
import threading
from typing import Callable, Optional

from carelink.errors import CredentialError, TransportError
from carelink.messaging import describe_window, get_message
from carelink.models import (
    LoginAttemptState,
    LoginOutcome,
    LoginResponse,
    OutcomeKind,
    UserSummary,
)

DEFAULT_MAX_ATTEMPTS = 5
DEFAULT_LOCKOUT_SECONDS = 60

PENDING_REASON = "Account Pending"


def accepts_user_login(response: LoginResponse) -> bool:
    """Regular login: success, or a pending account that gets limited access."""
    return response.success or response.reason == PENDING_REASON


def accepts_admin_login(response: LoginResponse) -> bool:
    return response.success and response.user_type == "admin"


class LoginGuard:
    """Lockout state machine wrapped around a login call.

    Args:
        login_call: ``(email, password) -> LoginResponse``; may raise TransportError.
        accepts: predicate deciding whether a response grants access.
        max_attempts: attempts available before locking.
        lockout_seconds: length of the lockout window.
        admin: use the admin wording for messages.
        timer_factory: ``(seconds, callback) -> timer`` with ``start()`` and
            ``cancel()``; defaults to threading.Timer.
    """

    def __init__(
        self,
        login_call: Callable[[str, str], LoginResponse],
        accepts: Callable[[LoginResponse], bool] = accepts_user_login,
        max_attempts: int = DEFAULT_MAX_ATTEMPTS,
        lockout_seconds: int = DEFAULT_LOCKOUT_SECONDS,
        admin: bool = False,
        timer_factory: Optional[Callable[[float, Callable[[], None]], object]] = None,
    ):
        if max_attempts <= 0:
            raise ValueError("max_attempts must be positive")
        self.logger = logging.getLogger(self.__class__.__name__)
        self._login_call = login_call
        self._accepts = accepts
        self.max_attempts = max_attempts
        self.lockout_seconds = lockout_seconds
        self.admin = admin
        self._timer_factory = timer_factory or self._default_timer

        self._lock = threading.Lock()
        self._attempts_left = max_attempts
        self._is_locked = False
        self._in_flight = False
        self._timer = None

    @staticmethod
    def _default_timer(seconds: float, callback: Callable[[], None]) -> threading.Timer:
        timer = threading.Timer(seconds, callback)
        timer.daemon = True
        return timer

    @property
    def state(self) -> LoginAttemptState:
        with self._lock:
            return LoginAttemptState(self._attempts_left, self._is_locked)

    @property
    def window_label(self) -> str:
        return describe_window(self.lockout_seconds)

    def submit(self, email: str, password: str) -> LoginOutcome:
        """Run one credential submission through the guard."""
        with self._lock:
            if self._is_locked:
                self.logger.warning("Login submission rejected: guard is locked.")
                return self._outcome(
                    OutcomeKind.LOCKED,
                    get_message("login.locked_title"),
                    get_message("login.locked", window=self.window_label),
                )
            if self._in_flight:
                self.logger.warning("Login submission rejected: a request is in flight.")
                return self._outcome(
                    OutcomeKind.BUSY,
                    get_message("login.busy_title"),
                    get_message("login.busy"),
                )
            self._in_flight = True

        try:
            user, message, user_type = self._check_credentials(email, password)
        except CredentialError as e:
            return self._record_failure(e)
        except TransportError as e:
            self.logger.error(f"Login could not reach the server: {e.message}")
            with self._lock:
                return self._outcome(
                    OutcomeKind.CONNECTION_ERROR,
                    get_message("general.connection_error_title"),
                    get_message("general.connection_error"),
                )
        finally:
            with self._lock:
                self._in_flight = False

        with self._lock:
            self._attempts_left = self.max_attempts
            if user is None:
                self.logger.info(f"Login accepted for a pending {user_type} account.")
                return self._outcome(
                    OutcomeKind.PENDING,
                    get_message("login.success_title"),
                    message,
                    user_type=user_type,
                )
            self.logger.info(f"Login accepted for user {user.user_id} ({user.user_type}).")
            if self.admin:
                title = get_message("login.admin_success_title")
                message = get_message("login.admin_success")
            else:
                title = get_message("login.success_title")
            return self._outcome(
                OutcomeKind.SUCCESS, title, message, user=user, user_type=user.user_type
            )

    def _check_credentials(self, email: str, password: str):
        """Return (user, backend message, role) or raise CredentialError / TransportError.

        A pending account is let in without a user record, so ``user`` is None.
        """
        if not email or not password:
            raise CredentialError("", reason="empty_fields")

        response = self._login_call(email, password)

        if not self._accepts(response):
            # success=true on the admin login with a non-admin account keeps the typed credentials
            reason = "not_admin" if response.success else (response.reason or "rejected")
            raise CredentialError(response.message, reason=reason)

        if response.reason == PENDING_REASON and not response.success:
            return None, response.message, response.user_type

        if not response.user:
            raise TransportError("Login response did not include a user record.")
        record = dict(response.user)
        record.setdefault("user_type", response.user_type)
        try:
            user = UserSummary.from_dict(record)
        except (KeyError, ValueError, TypeError) as e:
            raise TransportError(f"Login response had an unusable user record: {e}") from e
        return user, response.message, user.user_type

    def _record_failure(self, error: CredentialError) -> LoginOutcome:
        with self._lock:
            self._attempts_left = max(self._attempts_left - 1, 0)
            attempts_left = self._attempts_left
            clear_credentials = error.reason != "not_admin"
            self.logger.warning(
                f"Login attempt failed ({error.reason}); {attempts_left} attempts left."
            )

            if attempts_left == 0:
                self._lock_out()
                return self._outcome(
                    OutcomeKind.FAILED,
                    get_message("login.lockout_title"),
                    get_message("login.locked_out", window=self.window_label),
                    locked_now=True,
                    clear_credentials=clear_credentials,
                )

            return self._outcome(
                OutcomeKind.FAILED,
                get_message("login.failed_title"),
                self._failure_message(error, attempts_left),
                clear_credentials=clear_credentials,
            )

    def _failure_message(self, error: CredentialError, attempts_left: int) -> str:
        prefix = "login.admin_" if self.admin else "login."
        if error.reason == "empty_fields":
            return get_message(f"{prefix}empty_fields", attempts_left=attempts_left)
        if error.reason == "not_admin":
            return get_message(
                "login.not_admin", message=error.message, attempts_left=attempts_left
            )
        if self.admin:
            return get_message("login.admin_rejected", attempts_left=attempts_left)
        return get_message(
            "login.rejected",
            message=error.message or get_message("login.default_rejection"),
            attempts_left=attempts_left,
        )

    def _lock_out(self) -> None:
        # Caller holds self._lock
        self._is_locked = True
        self.logger.warning(
            f"Too many failed login attempts; locked for {self.lockout_seconds} seconds."
        )
        self._timer = self._timer_factory(self.lockout_seconds, self._reset)
        self._timer.start()

    def _reset(self) -> None:
        """Timer callback: always restores a full, unlocked counter."""
        with self._lock:
            self._is_locked = False
            self._attempts_left = self.max_attempts
            self._timer = None
        self.logger.info("Login lockout window elapsed; attempts reset.")

    def dispose(self) -> None:
        """Cancel a pending lockout timer. Call when the guard's owner shuts down."""
        with self._lock:
            if self._timer is not None:
                self._timer.cancel()
                self._timer = None
                self.logger.debug("Cancelled pending lockout timer.")

    def _outcome(
        self,
        kind: OutcomeKind,
        title: str,
        message: str,
        user: Optional[UserSummary] = None,
        locked_now: bool = False,
        clear_credentials: bool = False,
        user_type: Optional[str] = None,
    ) -> LoginOutcome:
        # Caller holds self._lock
        return LoginOutcome(
            kind=kind,
            title=title,
            message=message,
            attempts_left=self._attempts_left,
            user=user,
            locked_now=locked_now,
            clear_credentials=clear_credentials,
            user_type=user_type,
        )
