"""Filtering and ordering of audit log entries for display."""

import datetime
import logging
from typing import Callable, List, Optional, Sequence

from carelink.errors import TransportError
from carelink.models import AuditLogEntry

logger = logging.getLogger(__name__)

SORT_ORDERS = ("asc", "desc")
FILTER_ROLES = ("all", "parent", "helper", "admin")

DEFAULT_SORT_ORDER = "desc"
DEFAULT_FILTER_ROLE = "all"

# Unparseable timestamps sort as the oldest entries
_UNPARSEABLE = float("-inf")


def parse_timestamp(value: Optional[str]) -> float:
    """Epoch seconds for an ISO-8601 or 'YYYY-MM-DD HH:MM:SS' timestamp.

    Naive values are read as UTC. Returns -inf when the value cannot be parsed.
    """
    if not value:
        return _UNPARSEABLE
    text = value.strip()
    if text.endswith("Z"):
        text = text[:-1] + "+00:00"
    try:
        parsed = datetime.datetime.fromisoformat(text)
    except ValueError:
        return _UNPARSEABLE
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=datetime.timezone.utc)
    return parsed.timestamp()


def project(
    entries: Sequence[AuditLogEntry], filter_role: str, sort_order: str
) -> List[AuditLogEntry]:
    """Filter by role, then order by timestamp.

    Entries with equal timestamps keep their input order in both directions
    (``sorted`` is stable, including with ``reverse=True``).
    """
    if filter_role not in FILTER_ROLES:
        raise ValueError(f"Unknown role filter: {filter_role!r}")
    if sort_order not in SORT_ORDERS:
        raise ValueError(f"Unknown sort order: {sort_order!r}")

    if filter_role == "all":
        kept = list(entries)
    else:
        kept = [e for e in entries if (e.role or "").lower() == filter_role]

    return sorted(
        kept,
        key=lambda e: parse_timestamp(e.timestamp),
        reverse=(sort_order == "desc"),
    )


def status_tone(entry: AuditLogEntry) -> str:
    status = entry.status or ""
    if "Success" in status:
        return "success"
    if "Fail" in status or "Pending" in status:
        return "failure"
    return "neutral"


def format_entry(entry: AuditLogEntry) -> str:
    marker = {"success": "+", "failure": "!", "neutral": " "}[status_tone(entry)]
    role = (entry.role or "").upper() or "-"
    line = f"{marker} {entry.timestamp:<19}  {role:<6}  {entry.username:<20}  {entry.action}  [{entry.status}]"
    if entry.ip_address:
        line += f"  ip={entry.ip_address}"
    return line


class AuditLogView:
    """Holds the fetched entries and the (sort order, role filter) view state.

    The entries are fetched once per load(); toggling the sort or changing the
    filter re-projects the held entries without another request.
    """

    def __init__(self, fetch: Callable[[], List[AuditLogEntry]]):
        self.logger = logging.getLogger(self.__class__.__name__)
        self._fetch = fetch
        self.entries: List[AuditLogEntry] = []
        self.sort_order = DEFAULT_SORT_ORDER
        self.filter_role = DEFAULT_FILTER_ROLE
        self.last_error: Optional[TransportError] = None

    def load(self) -> List[AuditLogEntry]:
        """Fetch a fresh list.

        On TransportError the previously loaded entries are kept, the error is
        remembered in ``last_error`` and re-raised for the caller to report.
        """
        try:
            fetched = self._fetch()
        except TransportError as e:
            self.last_error = e
            self.logger.error(
                f"Failed to load audit logs; keeping {len(self.entries)} previously loaded entries: {e.message}"
            )
            raise
        self.entries = list(fetched)
        self.last_error = None
        self.logger.debug(f"Loaded {len(self.entries)} audit log entries.")
        return self.entries

    def toggle_sort(self) -> str:
        self.sort_order = "asc" if self.sort_order == "desc" else "desc"
        return self.sort_order

    def set_filter(self, role: str) -> str:
        role = role.lower()
        if role not in FILTER_ROLES:
            raise ValueError(f"Unknown role filter: {role!r}")
        self.filter_role = role
        return self.filter_role

    def visible_entries(self) -> List[AuditLogEntry]:
        return project(self.entries, self.filter_role, self.sort_order)
