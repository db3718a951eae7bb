"""Logging configuration for the command-line entry point.

Library modules only create module-level loggers; handlers are
installed here, once, by the application.
"""

import logging
from typing import Optional

from rich.logging import RichHandler


def configure_logging(level: Optional[str] = None) -> None:
    """Route librarydesk log records through a Rich handler.

    Args:
        level: Log level name (defaults to the configured level)
    """
    if level is None:
        from .config import get_config

        level = get_config().log_level

    logger = logging.getLogger("librarydesk")
    logger.setLevel(level)
    if not any(isinstance(h, RichHandler) for h in logger.handlers):
        handler = RichHandler(show_path=False, rich_tracebacks=True)
        handler.setFormatter(logging.Formatter("%(name)s: %(message)s"))
        logger.addHandler(handler)
