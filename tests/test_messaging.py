"""
test_messaging.py: Template lookup, window wording and terminal notices.
"""
import pytest

from carelink.messaging import describe_window, format_notice, get_message


def test_get_message_formats_arguments():
    assert get_message("login.locked", window="1 minute") == "Account locked for 1 minute."


def test_missing_key_returns_default_or_placeholder():
    assert get_message("nope.missing", default="fallback") == "fallback"
    assert get_message("nope.missing") == "<Missing Template: nope.missing>"


def test_missing_format_argument_is_reported():
    assert get_message("login.locked") == "<Error Formatting Template: login.locked>"


@pytest.mark.parametrize(
    "seconds, label",
    [(60, "1 minute"), (120, "2 minutes"), (90, "90 seconds"), (1, "1 second"), (0, "0 seconds")],
)
def test_describe_window(seconds, label):
    assert describe_window(seconds) == label


def test_format_notice_boxes_and_wraps():
    notice = format_notice("Login Failed", "line one\n" + "word " * 20, width=30)
    lines = notice.splitlines()

    assert lines[0] == lines[2] == lines[-1]
    assert "Login Failed" in lines[1]
    assert "line one" in lines[3]
    assert all(len(line) == len(lines[0]) for line in lines)
    assert len(lines) > 6
