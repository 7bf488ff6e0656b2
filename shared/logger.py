"""Logging setup shared by all tools."""

import logging
from typing import Optional

from rich.console import Console
from rich.logging import RichHandler


def setup_logger(name: str, level: str = "INFO") -> logging.Logger:
    """
    Configure a logger with a rich console handler.

    Calling this more than once for the same name only updates the level.

    Args:
        name: Logger name (usually a package name, so child modules inherit it)
        level: Log level name

    Returns:
        Configured logger
    """
    logger = logging.getLogger(name)
    logger.setLevel(level.upper())

    if not any(isinstance(h, RichHandler) for h in logger.handlers):
        handler = RichHandler(console=Console(stderr=True), rich_tracebacks=True, show_path=False)
        handler.setFormatter(logging.Formatter("%(message)s"))
        logger.addHandler(handler)
        logger.propagate = False

    return logger


def get_logger(name: Optional[str] = None) -> logging.Logger:
    """Get a module logger."""
    return logging.getLogger(name)
