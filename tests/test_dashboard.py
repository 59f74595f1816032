"""
test_dashboard.py: Role dashboards and the stats error path.
"""
from unittest.mock import MagicMock

import pytest

from carelink.dashboard import load_dashboard, render_dashboard
from carelink.errors import BackendError, TransportError
from carelink.models import HelperStats, ParentStats, UserSummary

HELPER = UserSummary(user_id="42", name="Ana", user_type="helper")
PARENT = UserSummary(user_id="7", name="Ben", user_type="parent")
ADMIN = UserSummary(user_id="1", name="Root", user_type="admin")


def test_helper_dashboard_renders_stats():
    client = MagicMock()
    client.get_stats.return_value = {
        "profile_views": "12",
        "job_applications": 3,
        "pending_interviews": 1,
        "profile_completeness": 80,
    }

    view = load_dashboard(client, HELPER)
    text = render_dashboard(view)

    client.get_stats.assert_called_once_with("helper", "42")
    assert view.stats == HelperStats(12, 3, 1, 80)
    assert not view.retry_available
    assert "Profile views:        12" in text
    assert "80%" in text


def test_parent_dashboard_accepts_camel_case_active_jobs():
    client = MagicMock()
    client.get_stats.return_value = {"activeJobs": 2, "applications": 5, "hired": 1}

    view = load_dashboard(client, PARENT)

    assert view.stats == ParentStats(active_jobs=2, applications=5, hired=1)
    assert "Hired:        1" in render_dashboard(view)


def test_admin_dashboard_makes_no_request():
    client = MagicMock()

    view = load_dashboard(client, ADMIN)

    client.get_stats.assert_not_called()
    assert "Admin dashboard - Root" in render_dashboard(view)


def test_stats_failure_shows_error_and_retry_not_zeros():
    client = MagicMock()
    client.get_stats.side_effect = TransportError("Network error: refused")

    view = load_dashboard(client, HELPER)
    text = render_dashboard(view)

    assert view.stats is None
    assert view.retry_available
    assert "Dashboard Unavailable: Network error: refused" in text
    assert "run the command again to retry" in text
    assert "Profile views" not in text


def test_backend_refusal_shows_error_without_retry():
    client = MagicMock()
    client.get_stats.side_effect = BackendError("No such user")

    view = load_dashboard(client, PARENT)
    text = render_dashboard(view)

    assert view.stats is None
    assert view.error == "No such user"
    assert not view.retry_available
    assert "Dashboard Unavailable: No such user" in text
    assert "run the command again" not in text


def test_bad_stat_values_are_an_error():
    client = MagicMock()
    client.get_stats.return_value = {"profile_views": "many"}

    view = load_dashboard(client, HELPER)

    assert view.stats is None
    assert view.error == "Failed to load dashboard stats."


def test_unknown_role_has_no_dashboard():
    # UserSummary.from_dict rejects unknown roles, so build one directly
    odd = UserSummary(user_id="9", name="X", user_type="guest")
    with pytest.raises(ValueError):
        load_dashboard(MagicMock(), odd)
