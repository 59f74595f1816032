"""Startup routing based on the persisted session."""

import json
import logging
from dataclasses import dataclass
from typing import Optional

from carelink.models import ROLES
from carelink.session_store import TOKEN_KEY, USER_DATA_KEY, SessionStore

logger = logging.getLogger(__name__)

WELCOME = "welcome"
ADMIN_DASHBOARD = "admin_dashboard"
ROLE_HOME = "role_home"


@dataclass(frozen=True)
class Route:
    kind: str
    role: Optional[str] = None

    @classmethod
    def welcome(cls) -> "Route":
        return cls(WELCOME)

    @classmethod
    def admin_dashboard(cls) -> "Route":
        return cls(ADMIN_DASHBOARD, "admin")

    @classmethod
    def role_home(cls, role: str) -> "Route":
        return cls(ROLE_HOME, role)

    @classmethod
    def for_role(cls, role: str) -> "Route":
        if role == "admin":
            return cls.admin_dashboard()
        return cls.role_home(role)

    def __str__(self) -> str:
        if self.kind == ROLE_HOME:
            return f"{self.role} home"
        return self.kind.replace("_", " ")


def resolve_start_route(store: SessionStore) -> Route:
    """
    Decide where the client starts.

    Both ``user_token`` and ``user_data`` must be present and ``user_data`` must
    decode to a record with a known ``user_type``; otherwise the user lands on
    the welcome route. Any error reading or decoding storage also lands on
    welcome, never on an authenticated route.
    """
    try:
        token = store.get_item(TOKEN_KEY)
        user_data = store.get_item(USER_DATA_KEY)
        if not token or not user_data:
            logger.debug("No persisted session found; routing to welcome.")
            return Route.welcome()

        cached_user = json.loads(user_data)
        user_type = str(cached_user["user_type"]).lower()
        if user_type not in ROLES:
            logger.warning(f"Persisted session has unknown user_type {user_type!r}.")
            return Route.welcome()

        route = Route.for_role(user_type)
        logger.info(f"Persisted session found; routing to {route}.")
        return route
    except Exception as e:
        logger.error(f"Error checking auth status: {e}", exc_info=True)
        return Route.welcome()
