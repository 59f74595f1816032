"""Rotating file and stderr logging for the client."""

import logging
import logging.handlers
import os
import sys

from carelink.config import get_config_value

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(module)s.%(funcName)s:%(lineno)d - %(message)s"


def _resolve_log_level() -> int:
    if get_config_value("client_settings.debug_mode", False):
        return logging.DEBUG
    level_name = str(get_config_value("client_settings.log_level", "INFO")).upper()
    return getattr(logging, level_name, logging.INFO)


def setup_logging():
    """Attach a 5MB rotating file handler and a stderr handler to the root logger.

    The stderr handler only shows warnings unless debug mode is on, so command
    output on stdout stays readable.
    """
    log_level = _resolve_log_level()
    log_formatter = logging.Formatter(LOG_FORMAT)

    root_logger = logging.getLogger()
    root_logger.setLevel(log_level)
    root_logger.handlers.clear()

    log_file = get_config_value("client_settings.log_file_name", "carelink.log")
    log_dir = os.path.dirname(log_file)
    if log_dir:
        try:
            os.makedirs(log_dir, exist_ok=True)
        except OSError as e:
            print(f"Could not create log directory {log_dir}: {e}. Logging to current directory.", file=sys.stderr)
            log_file = os.path.basename(log_file)

    try:
        file_handler = logging.handlers.RotatingFileHandler(
            log_file, maxBytes=5 * 1024 * 1024, backupCount=5, encoding="utf-8"
        )
        file_handler.setFormatter(log_formatter)
        root_logger.addHandler(file_handler)
    except OSError as e:
        print(f"Error setting up file logger for {log_file}: {e}", file=sys.stderr)

    stream_handler = logging.StreamHandler(sys.stderr)
    stream_handler.setFormatter(log_formatter)
    stream_handler.setLevel(log_level if log_level == logging.DEBUG else logging.WARNING)
    root_logger.addHandler(stream_handler)

    logging.info(f"Logging setup complete. Level: {logging.getLevelName(log_level)}, File: {log_file}")
