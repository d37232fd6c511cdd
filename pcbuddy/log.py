"""
Logging setup for pcbuddy.

Components never reach for a global logger slot: each one takes a
logging.Logger in its constructor. This module only wires handlers onto the
"pcbuddy" logger hierarchy once, at CLI start-up.

  stderr — RichHandler, only with --verbose
  file   — plain text, truncated on each run
"""

from __future__ import annotations

import logging
from pathlib import Path

from rich.console import Console
from rich.logging import RichHandler

ROOT_LOGGER = "pcbuddy"

_FILE_FORMAT = "[%(asctime)s] %(levelname)s %(name)s: %(message)s"


def get_logger(name: str = ROOT_LOGGER) -> logging.Logger:
    """Return a logger inside the pcbuddy hierarchy."""
    if name != ROOT_LOGGER and not name.startswith(ROOT_LOGGER + "."):
        name = f"{ROOT_LOGGER}.{name}"
    return logging.getLogger(name)


def configure_logging(
    verbose: bool = False,
    log_file: Path | None = None,
    console: Console | None = None,
) -> logging.Logger:
    """
    Attach handlers to the pcbuddy root logger and return it.

    Safe to call more than once; previously attached handlers are replaced.
    An unwritable log file is skipped silently.
    """
    logger = logging.getLogger(ROOT_LOGGER)
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()

    logger.setLevel(logging.DEBUG)
    logger.propagate = False

    if verbose:
        rich_handler = RichHandler(
            console=console or Console(stderr=True),
            show_path=False,
            markup=False,
            rich_tracebacks=False,
        )
        rich_handler.setLevel(logging.DEBUG)
        logger.addHandler(rich_handler)

    if log_file is not None:
        try:
            log_file.parent.mkdir(parents=True, exist_ok=True)
            file_handler = logging.FileHandler(log_file, mode="w", encoding="utf-8")
        except OSError:
            file_handler = None
        if file_handler is not None:
            file_handler.setFormatter(logging.Formatter(_FILE_FORMAT))
            file_handler.setLevel(logging.DEBUG)
            logger.addHandler(file_handler)

    if not logger.handlers:
        logger.addHandler(logging.NullHandler())

    return logger
