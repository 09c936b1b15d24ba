"""Logging configuration utilities."""

import logging
import sys
from typing import List, Optional, TextIO

TIMESTAMP_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"

# the hub that starts a pack stamps its output itself
PLAIN_FORMAT = "%(levelname)s %(name)s: %(message)s"


def setup_logging(
    level: str = "INFO",
    timestamps: bool = True,
    stream: Optional[TextIO] = None,
    quiet_loggers: Optional[List[str]] = None,
) -> None:
    """Configure logging for swapbridge services.

    Args:
        level: Log level (DEBUG, INFO, WARNING, ERROR, CRITICAL).
        timestamps: Prefix messages with the time; off when the hub
            already timestamps the pack's output.
        stream: Where to write, stdout by default.
        quiet_loggers: Extra logger names to set to WARNING level.
    """
    log_level = getattr(logging, level.upper(), logging.INFO)

    logging.basicConfig(
        level=log_level,
        format=TIMESTAMP_FORMAT if timestamps else PLAIN_FORMAT,
        stream=stream or sys.stdout,
    )

    for logger_name in ["paho"] + (quiet_loggers or []):
        logging.getLogger(logger_name).setLevel(logging.WARNING)
