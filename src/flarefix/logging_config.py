"""Logging setup for the command line entry point.

Library modules only create module loggers; handlers are installed here,
once, at process startup.
"""

import logging
from typing import Optional

from rich.console import Console
from rich.logging import RichHandler

from flarefix.config import settings


def setup_logging(level: Optional[str] = None, console: Optional[Console] = None) -> None:
    """Install a rich console handler on the root logger.

    Args:
        level: Log level name (default from settings).
        console: Console to log to (default: a stderr console).
    """
    root_logger = logging.getLogger()

    # Clear any existing handlers (prevents duplicates)
    root_logger.handlers.clear()

    handler = RichHandler(
        console=console or Console(stderr=True),
        show_path=False,
        rich_tracebacks=True,
    )
    handler.setFormatter(logging.Formatter("%(message)s", datefmt="[%X]"))

    root_logger.addHandler(handler)
    root_logger.setLevel((level or settings.log_level).upper())
