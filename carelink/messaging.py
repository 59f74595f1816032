"""Handles loading and formatting of user-facing messages and notices from templates."""

import json
import logging
import os
import textwrap
from typing import Any, Dict, Optional

from carelink.config import get_config_value

logger = logging.getLogger(__name__)

MESSAGE_TEMPLATES: Dict[str, Any] = {}


def load_message_templates() -> None:
    """
    Loads message templates from the JSON file specified in the configuration.
    Called once when this module is imported.
    """
    global MESSAGE_TEMPLATES
    templates_file_path = get_config_value(
        "message_settings.templates_file", "message_templates.json"
    )

    # The configured path wins, then the copy shipped inside the package
    possible_paths = [
        templates_file_path,
        os.path.join(os.path.dirname(__file__), os.path.basename(templates_file_path)),
    ]

    loaded_path = None
    for path_option in possible_paths:
        abs_path = os.path.abspath(path_option)
        if os.path.exists(abs_path):
            loaded_path = abs_path
            break

    if not loaded_path:
        logger.error(
            f"Message templates file could not be found (tried {possible_paths}). Messages will show placeholders."
        )
        MESSAGE_TEMPLATES = {}
        return

    try:
        with open(loaded_path, "r", encoding="utf-8") as f:
            MESSAGE_TEMPLATES = json.load(f)
        logger.debug(f"Loaded message templates from: {loaded_path}")
    except json.JSONDecodeError as e:
        logger.error(
            f"Error decoding JSON from message templates file {loaded_path}: {e}. Using empty templates."
        )
        MESSAGE_TEMPLATES = {}
    except OSError as e:
        logger.error(
            f"Could not read message templates from {loaded_path}: {e}. Using empty templates."
        )
        MESSAGE_TEMPLATES = {}


def get_message(key: str, default: Optional[str] = None, **kwargs: Any) -> str:
    """
    Retrieves a message template by its dot-separated key, formats it with kwargs,
    and returns the formatted string.

    Example: get_message("general.not_logged_in")
             get_message("login.rejected", message="Wrong password", attempts_left=3)
    """
    if not MESSAGE_TEMPLATES:
        logger.warning(
            f"Attempted to get message for key '{key}' but templates are not loaded."
        )
        return default if default is not None else f"<Missing Template: {key}>"

    value: Any = MESSAGE_TEMPLATES
    for k in key.split("."):
        if isinstance(value, dict) and k in value:
            value = value[k]
        else:
            logger.warning(
                f"Message template key '{key}' not found. Returning default or placeholder."
            )
            return default if default is not None else f"<Missing Template: {key}>"

    if not isinstance(value, str):
        logger.warning(f"Template value for key '{key}' is not a string: {type(value)}.")
        return str(value) if default is None else default

    try:
        return value.format(**kwargs)
    except (KeyError, IndexError, ValueError) as e:
        logger.error(f"Error formatting message for key '{key}' with args {kwargs}: {e}")
        return default if default is not None else f"<Error Formatting Template: {key}>"


def describe_window(seconds: int) -> str:
    """Human wording for a lockout window, e.g. 60 -> '1 minute'."""
    if seconds > 0 and seconds % 60 == 0:
        minutes = seconds // 60
        return f"{minutes} minute" if minutes == 1 else f"{minutes} minutes"
    return f"{seconds} second" if seconds == 1 else f"{seconds} seconds"


def format_notice(title: str, message: str, width: Optional[int] = None) -> str:
    """
    Renders a title and message as a boxed text notice for the terminal.

    Message lines are wrapped to the configured notice width; explicit newlines
    in the message are preserved.
    """
    width = width or get_config_value("message_settings.notice_width", 60)
    inner = max(width - 4, 10)

    lines = []
    for paragraph in message.splitlines() or [""]:
        lines.extend(textwrap.wrap(paragraph, inner) or [""])

    border = "+" + "-" * (inner + 2) + "+"
    out = [border, f"| {title[:inner].ljust(inner)} |", border]
    out.extend(f"| {line.ljust(inner)} |" for line in lines)
    out.append(border)
    return "\n".join(out)


load_message_templates()
