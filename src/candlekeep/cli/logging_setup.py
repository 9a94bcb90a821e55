"""Logging configuration for the ``ck`` process.

Library modules only create ``logging.getLogger(__name__)`` loggers;
handlers are attached here, once, by the CLI entry point.  Output goes
to stderr so it never mixes with command results on stdout.
"""

from __future__ import annotations

import logging

ROOT_LOGGER: str = "candlekeep"


def setup_logging(verbosity: int = 0) -> None:
    """Attach a stderr handler to the package logger.

    Args:
        verbosity: 0=WARNING, 1=INFO, 2+=DEBUG (``httpx`` debug included)
    """
    if verbosity >= 2:
        level = logging.DEBUG
    elif verbosity == 1:
        level = logging.INFO
    else:
        level = logging.WARNING

    logger = logging.getLogger(ROOT_LOGGER)
    logger.handlers = []
    logger.setLevel(level)
    logger.propagate = False
    logger.addHandler(_build_handler(level))

    # httpx logs every request at INFO; only surface it when asked for debug.
    http_logger = logging.getLogger("httpx")
    http_logger.handlers = []
    http_logger.setLevel(logging.DEBUG if verbosity >= 2 else logging.WARNING)
    if verbosity >= 2:
        http_logger.addHandler(_build_handler(logging.DEBUG))

    logger.debug("Logging initialized (verbosity=%d)", verbosity)


def _build_handler(level: int) -> logging.Handler:
    try:
        from rich.logging import RichHandler

        from candlekeep.cli.console import get_rich_console
    except ModuleNotFoundError:
        handler: logging.Handler = logging.StreamHandler()
        handler.setFormatter(logging.Formatter("%(asctime)s - %(name)s - %(levelname)s - %(message)s"))
    else:
        handler = RichHandler(
            console=get_rich_console(stderr=True),
            show_path=False,
            rich_tracebacks=False,
        )
        handler.setFormatter(logging.Formatter("%(name)s: %(message)s"))
    handler.setLevel(level)
    return handler
