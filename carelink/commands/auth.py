"""Session and role checks for commands."""

import functools
import logging

from carelink.messaging import get_message

logger = logging.getLogger(__name__)


def session_required(handler):
    """Run the handler only when a session is persisted; passes it as ``session``."""

    @functools.wraps(handler)
    def wrapper(app, args):
        session = app.store.load_session()
        if session is None:
            logger.warning(f"Command '{args.command}' refused: no persisted session.")
            app.notify(get_message("general.error_title"), get_message("general.not_logged_in"))
            return 1
        return handler(app, args, session)

    return wrapper


def admin_required(handler):
    """Like session_required, and the cached user must be an admin."""

    @functools.wraps(handler)
    @session_required
    def wrapper(app, args, session):
        if session.user.user_type != "admin":
            logger.warning(
                f"Command '{args.command}' refused for user {session.user.user_id} ({session.user.user_type})."
            )
            app.notify(get_message("general.error_title"), get_message("general.admin_only"))
            return 1
        return handler(app, args, session)

    return wrapper
