"""
test_audit_logs.py: Role filtering, timestamp ordering and the log view state.
"""
import math
from unittest.mock import MagicMock

import pytest

from carelink.audit_logs import (
    AuditLogView,
    format_entry,
    parse_timestamp,
    project,
    status_tone,
)
from carelink.errors import TransportError
from carelink.models import AuditLogEntry


def entry(log_id, role="helper", timestamp="2024-01-01 10:00:00", status="Success", action="Login"):
    return AuditLogEntry(
        log_id=str(log_id),
        action=action,
        username=f"user{log_id}",
        role=role,
        status=status,
        timestamp=timestamp,
    )


@pytest.fixture()
def mixed_entries():
    return [
        entry(1, role="helper", timestamp="2024-01-02 08:00:00"),
        entry(2, role="Parent", timestamp="2024-01-01 09:00:00"),
        entry(3, role="admin", timestamp="2024-01-03 07:00:00"),
        entry(4, role="HELPER", timestamp="2024-01-04 06:00:00"),
        entry(5, role="", timestamp="2024-01-05 05:00:00"),
    ]


# ---------------------------------------------------------------------------
# Filtering
# ---------------------------------------------------------------------------

@pytest.mark.parametrize("role", ["parent", "helper", "admin"])
def test_filter_keeps_only_matching_role(mixed_entries, role):
    shown = project(mixed_entries, role, "asc")

    assert shown
    assert all(e.role.lower() == role for e in shown)
    expected = {e.log_id for e in mixed_entries if e.role.lower() == role}
    assert {e.log_id for e in shown} == expected


def test_filter_all_keeps_everything(mixed_entries):
    shown = project(mixed_entries, "all", "desc")
    assert sorted(e.log_id for e in shown) == ["1", "2", "3", "4", "5"]


def test_invalid_arguments_raise(mixed_entries):
    with pytest.raises(ValueError):
        project(mixed_entries, "guest", "asc")
    with pytest.raises(ValueError):
        project(mixed_entries, "all", "newest")


# ---------------------------------------------------------------------------
# Ordering
# ---------------------------------------------------------------------------

def test_descending_order_by_date():
    entries = [
        entry(1, timestamp="2024-01-02"),
        entry(2, timestamp="2024-01-01"),
        entry(3, timestamp="2024-01-03"),
    ]

    shown = project(entries, "all", "desc")

    assert [e.timestamp for e in shown] == ["2024-01-03", "2024-01-02", "2024-01-01"]


def test_desc_is_reverse_of_asc_without_ties(mixed_entries):
    asc = project(mixed_entries, "all", "asc")
    desc = project(mixed_entries, "all", "desc")
    assert desc == list(reversed(asc))


def test_ties_keep_input_order_in_both_directions():
    entries = [
        entry(1, timestamp="2024-01-01 10:00:00"),
        entry(2, timestamp="2024-01-01 10:00:00"),
        entry(3, timestamp="2024-01-02 10:00:00"),
    ]

    assert [e.log_id for e in project(entries, "all", "asc")] == ["1", "2", "3"]
    assert [e.log_id for e in project(entries, "all", "desc")] == ["3", "1", "2"]


def test_unparseable_timestamps_sort_as_oldest():
    entries = [
        entry(1, timestamp="not a date"),
        entry(2, timestamp="2024-01-01 00:00:00"),
        entry(3, timestamp=""),
    ]

    desc = project(entries, "all", "desc")

    assert desc[0].log_id == "2"
    assert {e.log_id for e in desc[1:]} == {"1", "3"}


def test_parse_timestamp_formats():
    utc_z = parse_timestamp("2024-01-01T00:00:00Z")
    naive = parse_timestamp("2024-01-01 00:00:00")
    offset = parse_timestamp("2024-01-01T08:00:00+08:00")

    assert utc_z == naive == offset
    assert parse_timestamp(None) == -math.inf
    assert parse_timestamp("yesterday") == -math.inf


# ---------------------------------------------------------------------------
# View state
# ---------------------------------------------------------------------------

def test_toggle_sort_twice_restores_order():
    view = AuditLogView(MagicMock(return_value=[]))
    original = view.sort_order

    view.toggle_sort()
    assert view.sort_order != original
    view.toggle_sort()

    assert view.sort_order == original


def test_view_defaults_to_newest_first_all_roles(mixed_entries):
    view = AuditLogView(MagicMock(return_value=mixed_entries))
    view.load()

    shown = view.visible_entries()

    assert view.sort_order == "desc"
    assert view.filter_role == "all"
    assert [e.log_id for e in shown] == ["5", "4", "3", "1", "2"]


def test_resort_and_refilter_do_not_refetch(mixed_entries):
    fetch = MagicMock(return_value=mixed_entries)
    view = AuditLogView(fetch)
    view.load()

    view.toggle_sort()
    view.set_filter("Helper")
    shown = view.visible_entries()

    assert fetch.call_count == 1
    assert [e.log_id for e in shown] == ["1", "4"]


def test_set_filter_rejects_unknown_role():
    view = AuditLogView(MagicMock(return_value=[]))
    with pytest.raises(ValueError):
        view.set_filter("guest")
    assert view.filter_role == "all"


def test_failed_refresh_keeps_previous_entries(mixed_entries):
    fetch = MagicMock(side_effect=[mixed_entries, TransportError("Network error: timed out")])
    view = AuditLogView(fetch)
    view.load()

    with pytest.raises(TransportError):
        view.load()

    assert view.entries == mixed_entries
    assert view.last_error is not None

    fetch.side_effect = None
    fetch.return_value = []
    view.load()
    assert view.entries == []
    assert view.last_error is None


# ---------------------------------------------------------------------------
# Presentation
# ---------------------------------------------------------------------------

@pytest.mark.parametrize(
    "status, tone",
    [
        ("Success", "success"),
        ("Login Success", "success"),
        ("Failed", "failure"),
        ("Pending", "failure"),
        ("Logout", "neutral"),
        ("", "neutral"),
    ],
)
def test_status_tone(status, tone):
    assert status_tone(entry(1, status=status)) == tone


def test_format_entry_includes_key_fields():
    row = AuditLogEntry(
        log_id="9",
        action="Login",
        username="ana",
        role="helper",
        status="Failed",
        timestamp="2024-01-01 10:00:00",
        ip_address="10.0.0.2",
    )

    line = format_entry(row)

    assert line.startswith("!")
    assert "HELPER" in line
    assert "ana" in line
    assert "[Failed]" in line
    assert "ip=10.0.0.2" in line
