"""
Command-line application for the CareLink client.

This module wires the API client, the local session store and the two login
guards together and dispatches argparse subcommands to their handlers.

Key components:
- CareLinkApp class: owns shared state and runs one command
- create_app: builds a CareLinkApp from the loaded configuration
"""

import argparse
import getpass
import logging
import sys
from typing import Callable, List, Optional, TextIO

from carelink.api_client import CareLinkClient
from carelink.commands import account_commands, admin_commands, profile_commands
from carelink.config import get_config_value
from carelink.errors import BackendError, TransportError, ValidationError
from carelink.login_guard import LoginGuard, accepts_admin_login, accepts_user_login
from carelink.messaging import format_notice, get_message
from carelink.session_store import SessionStore


class CareLinkApp:
    """
    CareLink command-line client.

    Attributes:
        client: CareLink backend API client
        store: local key-value store holding the session
        user_guard: lockout guard for the regular login
        admin_guard: lockout guard for the admin login
        parser: argparse parser with every subcommand registered
    """

    def __init__(
        self,
        client: CareLinkClient,
        store: SessionStore,
        max_attempts: int = 5,
        lockout_seconds: int = 60,
        prompt: Callable[[str], str] = input,
        secret_prompt: Callable[[str], str] = getpass.getpass,
        stdout: Optional[TextIO] = None,
        timer_factory=None,
    ):
        self.logger = logging.getLogger(self.__class__.__name__)
        self.client = client
        self.store = store
        self.prompt = prompt
        self.secret_prompt = secret_prompt
        self.stdout = stdout

        self.user_guard = LoginGuard(
            client.login,
            accepts=accepts_user_login,
            max_attempts=max_attempts,
            lockout_seconds=lockout_seconds,
            timer_factory=timer_factory,
        )
        self.admin_guard = LoginGuard(
            client.login,
            accepts=accepts_admin_login,
            max_attempts=max_attempts,
            lockout_seconds=lockout_seconds,
            admin=True,
            timer_factory=timer_factory,
        )
        self.parser = self._build_parser()

    def _build_parser(self) -> argparse.ArgumentParser:
        parser = argparse.ArgumentParser(
            prog="carelink",
            description="Command-line client for the CareLink helper marketplace.",
        )
        subparsers = parser.add_subparsers(dest="command", metavar="COMMAND")
        subparsers.required = True

        account_commands.setup_commands(self, subparsers)
        self.logger.debug("Account commands setup.")
        profile_commands.setup_commands(self, subparsers)
        self.logger.debug("Profile commands setup.")
        admin_commands.setup_commands(self, subparsers)
        self.logger.debug("Admin commands setup.")
        return parser

    def echo(self, text: str = "") -> None:
        print(text, file=self.stdout or sys.stdout)

    def notify(self, title: str, message: str) -> None:
        self.echo(format_notice(title, message))

    def run(self, argv: Optional[List[str]] = None) -> int:
        """Parse argv and run one command. Returns the process exit code."""
        args = self.parser.parse_args(argv)
        self.logger.info(f"Running command '{args.command}'")
        try:
            return args.handler(self, args)
        except ValidationError as e:
            self.logger.info(f"Validation failed for '{args.command}': {e.message}")
            self.notify(e.title or get_message("general.error_title"), e.message)
            return 1
        except BackendError as e:
            self.logger.warning(f"Command '{args.command}' was refused by the server: {e.message}")
            self.notify(e.title or get_message("general.failed_title"), e.message)
            return 1
        except TransportError as e:
            self.logger.error(f"Command '{args.command}' failed to reach the server: {e.message}")
            self.notify(
                get_message("general.connection_error_title"),
                f"{e.message}\n{get_message('general.retry_hint')}",
            )
            return 1

    def close(self) -> None:
        """Cancel pending lockout timers."""
        self.user_guard.dispose()
        self.admin_guard.dispose()


def create_app() -> CareLinkApp:
    """Build the app from configuration. The API URL is passed in explicitly."""
    client = CareLinkClient(
        base_url=get_config_value("api.base_url"),
        timeout=get_config_value("api.timeout_seconds", 15),
        retry_total=get_config_value("api.retry_total", 3),
        user_agent=get_config_value("api.user_agent", "CareLink Python Client/1.0"),
        debug=get_config_value("client_settings.debug_mode", False),
    )
    store = SessionStore(
        get_config_value("client_settings.session_db_file_name", "carelink_session.db")
    )
    return CareLinkApp(
        client,
        store,
        max_attempts=get_config_value("login_guard.max_attempts", 5),
        lockout_seconds=get_config_value("login_guard.lockout_seconds", 60),
    )
