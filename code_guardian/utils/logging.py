"""Logging for the code_guardian package and the code-guardian CLI.

Log lines go to stderr so that `code-guardian score --json` and the other
JSON-emitting commands keep stdout machine-readable.
"""

import logging
import sys
from typing import Optional


LOGGER_NAME = "code_guardian"

# Third-party loggers that are chatty at INFO
QUIET_LOGGERS = ("claude_agent_sdk", "matplotlib")


def setup_logging(
    level: int = logging.INFO,
    format_str: Optional[str] = None
) -> logging.Logger:
    """
    Configure the CodeGuardian logger for a CLI run.

    SDK and plotting loggers stay at WARNING unless ``level`` is DEBUG,
    in which case their output is kept too (useful when an AI call fails).

    Args:
        level: Level for the code_guardian logger (``--debug`` passes DEBUG)
        format_str: Custom format string

    Returns:
        The code_guardian logger
    """
    if format_str is None:
        format_str = "[%(asctime)s] %(levelname)s - %(message)s"

    logging.basicConfig(
        level=level,
        format=format_str,
        handlers=[
            logging.StreamHandler(sys.stderr)
        ]
    )

    third_party_level = logging.DEBUG if level <= logging.DEBUG else logging.WARNING
    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(third_party_level)

    logger = logging.getLogger(LOGGER_NAME)
    logger.setLevel(level)

    return logger


def get_logger(name: str = LOGGER_NAME) -> logging.Logger:
    """Logger shared by the pipeline, tools and CLI; pass a name for a child."""
    return logging.getLogger(name)
