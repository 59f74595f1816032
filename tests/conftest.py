"""
conftest.py: Shared fixtures for the client tests.
"""
import sys
from pathlib import Path
from typing import Any, Dict, List
from unittest.mock import MagicMock

import pytest

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from carelink.models import LoginResponse  # noqa: E402
from carelink.session_store import SessionStore  # noqa: E402


class FakeTimer:
    """Stands in for threading.Timer; fires only when the test says so."""

    def __init__(self, seconds: float, callback):
        self.seconds = seconds
        self.callback = callback
        self.started = False
        self.cancelled = False

    def start(self):
        self.started = True

    def cancel(self):
        self.cancelled = True

    def fire(self):
        self.callback()


class TimerRecorder:
    def __init__(self):
        self.timers: List[FakeTimer] = []

    def __call__(self, seconds, callback):
        timer = FakeTimer(seconds, callback)
        self.timers.append(timer)
        return timer

    @property
    def last(self) -> FakeTimer:
        return self.timers[-1]


@pytest.fixture()
def timers():
    return TimerRecorder()


@pytest.fixture()
def store(tmp_path):
    return SessionStore(str(tmp_path / "session.db"))


def login_response(
    success: bool = True,
    user_type: str = "helper",
    reason: str = None,
    message: str = "Login successful",
    user_id: Any = 42,
    name: str = "Ana",
) -> LoginResponse:
    user: Dict[str, Any] = {"user_id": user_id, "name": name, "user_type": user_type}
    return LoginResponse(
        success=success,
        message=message,
        user_type=user_type,
        reason=reason,
        user=user if success else None,
    )


def http_response(body: Any = None, status_code: int = 200, invalid_json: bool = False):
    response = MagicMock()
    response.status_code = status_code
    response.text = "" if body is None else str(body)
    if invalid_json:
        response.json.side_effect = ValueError("Expecting value")
    else:
        response.json.return_value = body
    return response
