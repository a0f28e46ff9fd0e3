"""Logging setup for the command-line interface."""

import logging

from rich.console import Console
from rich.logging import RichHandler

LOG_FORMAT = "%(message)s"


def configure_logging(level: str = "INFO", console: Console | None = None) -> None:
    """Route log records through a Rich handler on stderr.

    Calling it again only adjusts the level.

    Args:
        level: Log level name.
        console: Console to render to; a stderr console if not given.
    """
    root = logging.getLogger()
    root.setLevel(level)
    if any(isinstance(h, RichHandler) for h in root.handlers):
        return
    handler = RichHandler(
        console=console or Console(stderr=True),
        show_path=False,
        markup=False,
        rich_tracebacks=True,
    )
    handler.setFormatter(logging.Formatter(LOG_FORMAT))
    root.addHandler(handler)


__all__ = ["configure_logging"]
