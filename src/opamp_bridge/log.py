from __future__ import annotations
import logging
from typing import Optional

from rich.console import Console
from rich.logging import RichHandler


ROOT_LOGGER_NAME = "opamp-bridge"


def get_logger(level: str = "info", console: Optional[Console] = None) -> logging.Logger:
    """Return the bridge's root logger, attaching a rich handler the first time."""
    log = logging.getLogger(ROOT_LOGGER_NAME)
    if not log.handlers:
        handler = RichHandler(
            console=console or Console(stderr=True),
            show_path=False,
            rich_tracebacks=True,
        )
        handler.setFormatter(logging.Formatter("%(name)s | %(message)s"))
        log.addHandler(handler)
        log.propagate = False
    log.setLevel(level.upper())
    return log
