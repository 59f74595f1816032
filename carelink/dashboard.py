"""
Role-specific dashboards.

Each role has one loader and one renderer registered below; load_dashboard and
render_dashboard only look the role up and delegate. A stats fetch that fails
leaves ``stats`` unset and records the error; transport and parse failures
also offer a retry. Stats are never filled in with placeholder zeros.
"""

import logging
from dataclasses import dataclass
from typing import Callable, Dict, Optional, Union

from carelink.api_client import CareLinkClient
from carelink.errors import BackendError, TransportError
from carelink.messaging import get_message
from carelink.models import HelperStats, ParentStats, UserSummary

logger = logging.getLogger(__name__)

Stats = Union[HelperStats, ParentStats]


@dataclass
class DashboardView:
    user: UserSummary
    stats: Optional[Stats] = None
    error: Optional[str] = None
    # Only transport failures are worth retrying
    retryable: bool = False

    @property
    def retry_available(self) -> bool:
        return self.error is not None and self.retryable


def _load_stats(client: CareLinkClient, user: UserSummary, parse) -> DashboardView:
    try:
        raw = client.get_stats(user.user_type, user.user_id)
        return DashboardView(user=user, stats=parse(raw))
    except TransportError as e:
        logger.error(f"Failed to fetch {user.user_type} stats for {user.user_id}: {e.message}")
        return DashboardView(
            user=user,
            error=e.message or get_message("dashboard.stats_failed"),
            retryable=True,
        )
    except BackendError as e:
        logger.warning(f"Server refused {user.user_type} stats for {user.user_id}: {e.message}")
        return DashboardView(user=user, error=e.message or get_message("dashboard.stats_failed"))
    except (TypeError, ValueError) as e:
        logger.error(f"Stats for {user.user_id} had unexpected values: {e}")
        return DashboardView(
            user=user, error=get_message("dashboard.stats_failed"), retryable=True
        )


def _load_helper(client: CareLinkClient, user: UserSummary) -> DashboardView:
    return _load_stats(client, user, HelperStats.from_dict)


def _load_parent(client: CareLinkClient, user: UserSummary) -> DashboardView:
    return _load_stats(client, user, ParentStats.from_dict)


def _load_admin(client: CareLinkClient, user: UserSummary) -> DashboardView:
    return DashboardView(user=user)


def _render_helper(view: DashboardView) -> str:
    s = view.stats
    return "\n".join(
        [
            f"Helper dashboard - {view.user.name}",
            f"  Profile views:        {s.profile_views}",
            f"  Job applications:     {s.job_applications}",
            f"  Pending interviews:   {s.pending_interviews}",
            f"  Profile completeness: {s.profile_completeness}%",
        ]
    )


def _render_parent(view: DashboardView) -> str:
    s = view.stats
    return "\n".join(
        [
            f"Parent dashboard - {view.user.name}",
            f"  Active jobs:  {s.active_jobs}",
            f"  Applications: {s.applications}",
            f"  Hired:        {s.hired}",
        ]
    )


def _render_admin(view: DashboardView) -> str:
    name = view.user.name or "Admin"
    return "\n".join(
        [
            f"Admin dashboard - {name}",
            "  carelink users      manage accounts",
            "  carelink logs       review audit logs",
        ]
    )


LOADERS: Dict[str, Callable[[CareLinkClient, UserSummary], DashboardView]] = {
    "helper": _load_helper,
    "parent": _load_parent,
    "admin": _load_admin,
}

RENDERERS: Dict[str, Callable[[DashboardView], str]] = {
    "helper": _render_helper,
    "parent": _render_parent,
    "admin": _render_admin,
}


def load_dashboard(client: CareLinkClient, user: UserSummary) -> DashboardView:
    try:
        loader = LOADERS[user.user_type]
    except KeyError:
        raise ValueError(f"No dashboard for role {user.user_type!r}") from None
    return loader(client, user)


def render_dashboard(view: DashboardView) -> str:
    """Text for the view; an errored view renders the error, plus the retry hint when retryable."""
    if view.error is not None:
        lines = [f"{get_message('dashboard.error_title')}: {view.error}"]
        if view.retry_available:
            lines.append(get_message("general.retry_hint"))
        return "\n".join(lines)
    return RENDERERS[view.user.user_type](view)
