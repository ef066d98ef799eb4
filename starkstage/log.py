"""Logging setup for the command line.

Library modules only ever call ``logging.getLogger(__name__)``; handlers
are installed here, once, by the CLI.
"""

from __future__ import annotations

import logging

from rich.console import Console
from rich.logging import RichHandler


def configure_logging(level: str = "INFO", console: Console | None = None) -> None:
    """Route the ``starkstage`` loggers through a Rich handler on stderr."""
    handler = RichHandler(
        console=console or Console(stderr=True),
        show_path=False,
        rich_tracebacks=False,
    )
    handler.setFormatter(logging.Formatter("%(message)s"))

    root = logging.getLogger("starkstage")
    root.handlers[:] = [handler]
    root.setLevel(level.upper())
