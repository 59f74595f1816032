"""Main entry point for the CareLink command-line client."""

import logging
import sys

from carelink.app import create_app
from carelink.config import validate_config
from carelink.logging_setup import setup_logging

logger = logging.getLogger(__name__)


def main(argv=None) -> int:
    setup_logging()
    validate_config()

    try:
        app = create_app()
    except Exception as e:
        logger.critical(f"Failed to start client: {e}", exc_info=True)
        return 1

    try:
        return app.run(argv)
    finally:
        app.close()


if __name__ == "__main__":
    sys.exit(main())
