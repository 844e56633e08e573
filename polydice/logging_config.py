"""Logging setup for command-line use.

Library modules only create loggers; handlers are installed here, once, by
the CLI entry point.
"""

import logging

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


def configure_logging(level: str | int = "WARNING") -> None:
    """Configure root logging with the standard format.

    Args:
        level: Level name ("DEBUG", "INFO", ...) or numeric level.
    """
    if isinstance(level, str):
        level = level.upper()
    logging.basicConfig(level=level, format=LOG_FORMAT)
    logging.getLogger().setLevel(level)
    logging.getLogger(__name__).debug("Logging configured at %s", level)
