"""Command handlers for admin-only commands: audit logs and account moderation."""

import logging

from carelink.audit_logs import FILTER_ROLES, SORT_ORDERS, AuditLogView, format_entry
from carelink.commands.auth import admin_required
from carelink.errors import TransportError
from carelink.messaging import get_message
from carelink.user_directory import filter_users, format_user

logger = logging.getLogger(__name__)

MODERATION_STATUSES = ("approved", "suspended")


def _print_logs(app, view: AuditLogView) -> None:
    visible = view.visible_entries()
    app.echo(
        get_message(
            "logs.header",
            count=len(visible),
            role=view.filter_role,
            order=view.sort_order,
        )
    )
    if not visible:
        app.echo(get_message("logs.empty"))
        return
    for entry in visible:
        app.echo(format_entry(entry))


def _interactive_logs(app, view: AuditLogView) -> int:
    """Re-project on sort/filter changes; only 'r' fetches again."""
    while True:
        app.echo(get_message("logs.interactive_help"))
        try:
            command = app.prompt("> ").strip()
        except (EOFError, KeyboardInterrupt):
            app.echo()
            return 0

        action, _, argument = command.partition(" ")
        action = action.lower()
        if action == "q":
            return 0
        if action == "s":
            view.toggle_sort()
        elif action == "f":
            try:
                view.set_filter(argument.strip() or "all")
            except ValueError:
                app.echo(get_message("logs.invalid_role", role=argument.strip()))
                continue
        elif action == "r":
            try:
                view.load()
            except TransportError as e:
                app.notify(
                    get_message("general.connection_error_title"),
                    f"{e.message}\n{get_message('logs.stale')}",
                )
        else:
            continue
        _print_logs(app, view)


@admin_required
def logs_command(app, args, session) -> int:
    view = AuditLogView(app.client.get_audit_logs)
    view.set_filter(args.role)
    if args.order != view.sort_order:
        view.toggle_sort()

    view.load()
    _print_logs(app, view)
    if args.interactive:
        return _interactive_logs(app, view)
    return 0


@admin_required
def users_command(app, args, session) -> int:
    users = app.client.get_users(pending_only=args.pending)
    shown = filter_users(users, args.search or "")
    if not shown:
        app.echo(get_message("users.empty"))
        return 0
    for user in shown:
        app.echo(format_user(user))
    return 0


@admin_required
def set_status_command(app, args, session) -> int:
    success, message = app.client.update_user_status(
        args.user_id, args.status, admin_id=session.token
    )
    if success:
        app.notify(get_message("general.success_title"), message)
        return 0
    app.notify(get_message("general.failed_title"), message or get_message("users.status_failed"))
    return 1


def setup_commands(app, subparsers):
    """Register the admin commands with the app's parser."""
    logs = subparsers.add_parser("logs", help="Review the audit log (admin).")
    logs.add_argument("--role", choices=FILTER_ROLES, default="all", help="Only show this role.")
    logs.add_argument("--order", choices=SORT_ORDERS, default="desc", help="desc = newest first.")
    logs.add_argument(
        "--interactive", action="store_true", help="Keep the list open to re-sort and re-filter."
    )
    logs.set_defaults(handler=logs_command)

    users = subparsers.add_parser("users", help="List accounts (admin).")
    users.add_argument("--pending", action="store_true", help="Only accounts awaiting approval.")
    users.add_argument("--search", help="Filter by name or email.")
    users.set_defaults(handler=users_command)

    set_status = subparsers.add_parser("set-status", help="Approve or suspend an account (admin).")
    set_status.add_argument("user_id", help="Target account id.")
    set_status.add_argument("status", choices=MODERATION_STATUSES)
    set_status.set_defaults(handler=set_status_command)
