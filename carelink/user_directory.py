"""Local search and moderation actions for the admin user listing."""

from typing import List, Sequence

from carelink.models import ManagedUser


def filter_users(users: Sequence[ManagedUser], query: str) -> List[ManagedUser]:
    """Case-insensitive substring match on name or email. Empty query keeps everyone."""
    needle = (query or "").strip().lower()
    if not needle:
        return list(users)
    return [u for u in users if needle in u.name.lower() or needle in u.email.lower()]


def available_actions(user: ManagedUser) -> List[str]:
    """Status changes an admin can apply to this account."""
    actions = []
    if user.status != "approved":
        actions.append("approved")
    if user.status != "suspended":
        actions.append("suspended")
    return actions


def format_user(user: ManagedUser) -> str:
    actions = ", ".join(available_actions(user)) or "-"
    return (
        f"{user.user_id:>6}  {user.name:<24}  {user.email:<30}  "
        f"{user.user_type.upper():<6}  {user.status.upper():<10}  actions: {actions}"
    )
