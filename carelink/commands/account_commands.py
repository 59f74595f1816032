"""Command handlers for starting up, logging in and out, and signing up."""

import logging

from carelink.dashboard import load_dashboard, render_dashboard
from carelink.errors import TransportError
from carelink.login_guard import LoginGuard
from carelink.messaging import get_message
from carelink.models import ROLES, LoginOutcome, OutcomeKind
from carelink.session_gate import WELCOME, Route, resolve_start_route
from carelink.validation import validate_signup

logger = logging.getLogger(__name__)


def start_command(app, args) -> int:
    """Show where a cold start would land and, when logged in, that dashboard."""
    route = resolve_start_route(app.store)
    app.echo(get_message("start.route", route=route))
    if route.kind == WELCOME:
        return 0

    session = app.store.load_session()
    if session is None:
        return 0
    view = load_dashboard(app.client, session.user)
    app.echo(render_dashboard(view))
    return 1 if view.error else 0


def _complete_login(app, outcome: LoginOutcome) -> int:
    if outcome.kind is OutcomeKind.PENDING:
        # Pending accounts get limited access for this run only; nothing is persisted
        role = (outcome.user_type or "").lower()
        route = Route.for_role(role) if role in ROLES else Route.welcome()
        app.echo(get_message("login.redirecting", route=route))
        return 0

    app.store.save_session(outcome.user)
    route = Route.for_role(outcome.user.user_type)
    app.echo(get_message("login.redirecting", route=route))
    return 0


def _run_login(app, guard: LoginGuard, args) -> int:
    # One attempt when credentials come from the command line
    if args.email is not None or args.password is not None:
        outcome = guard.submit(args.email or "", args.password or "")
        app.notify(outcome.title, outcome.message)
        return _complete_login(app, outcome) if outcome.succeeded else 1

    while True:
        try:
            email = app.prompt("Email: ")
            password = app.secret_prompt("Password: ")
        except (EOFError, KeyboardInterrupt):
            app.echo()
            app.echo(get_message("login.cancelled"))
            return 1

        outcome = guard.submit(email, password)
        app.notify(outcome.title, outcome.message)
        if outcome.succeeded:
            return _complete_login(app, outcome)


def login_command(app, args) -> int:
    return _run_login(app, app.user_guard, args)


def admin_login_command(app, args) -> int:
    return _run_login(app, app.admin_guard, args)


def signup_command(app, args) -> int:
    password = args.password
    confirm_password = args.confirm_password
    if password is None:
        password = app.secret_prompt("Password: ")
        confirm_password = app.secret_prompt("Confirm password: ")
    elif confirm_password is None:
        confirm_password = app.secret_prompt("Confirm password: ")

    user_type = (args.user_type or "").lower()
    validate_signup(args.name, args.email, user_type, password, confirm_password)

    success, message = app.client.signup(args.name, args.email, user_type, password)
    if success:
        app.notify(get_message("signup.success_title"), message)
        return 0
    app.notify(get_message("signup.failed_title"), message or get_message("signup.failed_default"))
    return 1


def logout_command(app, args) -> int:
    """Notify the backend when possible, then always clear local storage."""
    session = app.store.load_session()
    if session is not None:
        try:
            app.client.logout(session.token)
        except TransportError as e:
            logger.warning(f"Logout call failed, clearing local session anyway: {e.message}")
    app.store.clear()
    app.notify(get_message("logout.title"), get_message("logout.done"))
    return 0


def setup_commands(app, subparsers):
    """Register the account commands with the app's parser."""
    start = subparsers.add_parser("start", help="Resolve the start route from the saved session.")
    start.set_defaults(handler=start_command)

    for name, handler, help_text in (
        ("login", login_command, "Log in as a parent or helper."),
        ("admin-login", admin_login_command, "Log in to the admin console."),
    ):
        login = subparsers.add_parser(name, help=help_text)
        login.add_argument("--email", help="Email address (single attempt, no prompt).")
        login.add_argument("--password", help="Password (single attempt, no prompt).")
        login.set_defaults(handler=handler)

    signup = subparsers.add_parser("signup", help="Create a parent or helper account.")
    signup.add_argument("--name", default="", help="Full name.")
    signup.add_argument("--email", default="", help="Email address.")
    signup.add_argument("--type", dest="user_type", default="", help="parent or helper.")
    signup.add_argument("--password", help="Password (prompted when omitted).")
    signup.add_argument("--confirm-password", dest="confirm_password", help="Password again.")
    signup.set_defaults(handler=signup_command)

    logout = subparsers.add_parser("logout", help="Log out and clear the saved session.")
    logout.set_defaults(handler=logout_command)
