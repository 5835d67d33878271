"""Logging setup shared by the CLI and the web backend."""

from __future__ import annotations

import logging

from rich.console import Console
from rich.logging import RichHandler

_configured = False


def configure_logging(level: str | int = "INFO", console: Console | None = None) -> None:
    """Attach a single :class:`RichHandler` to the ``whatif`` and ``web`` loggers.

    Calling it again only adjusts the level.
    """
    global _configured

    if isinstance(level, str):
        level = logging.getLevelName(level.upper())
        if not isinstance(level, int):
            level = logging.INFO

    for name in ("whatif", "web"):
        logger = logging.getLogger(name)
        logger.setLevel(level)
        if not _configured:
            handler = RichHandler(
                console=console or Console(stderr=True),
                show_path=False,
                rich_tracebacks=True,
            )
            handler.setFormatter(logging.Formatter("%(name)s: %(message)s"))
            logger.addHandler(handler)
    _configured = True
