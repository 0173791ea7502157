"""Logging setup for Relay CLI."""

import logging

from rich.console import Console
from rich.logging import RichHandler

ROOT_LOGGER = "relay_cli"


def get_logger(name: str = ROOT_LOGGER) -> logging.Logger:
    """Return a logger under the package namespace."""
    return logging.getLogger(name)


def setup_logging(level: str = "WARNING", console: Console | None = None) -> logging.Logger:
    """Route package logs through a single Rich handler.

    Safe to call repeatedly; the handler is only added once and later calls
    just change the level.
    """
    logger = logging.getLogger(ROOT_LOGGER)
    logger.setLevel(level.upper())

    if not any(isinstance(h, RichHandler) for h in logger.handlers):
        handler = RichHandler(
            console=console or Console(stderr=True),
            show_path=False,
            rich_tracebacks=True,
        )
        handler.setFormatter(logging.Formatter("%(message)s", datefmt="[%X]"))
        logger.addHandler(handler)
        logger.propagate = False

    return logger
