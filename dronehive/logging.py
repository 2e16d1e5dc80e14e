"""Logger wiring for the CLI, the build worker and the service."""

from __future__ import annotations

import logging
from pathlib import Path

ROOT_LOGGER = "dronehive"

CONSOLE_FORMAT = "%(levelname)s %(name)s: %(message)s"
FILE_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


def get_logger(component: str | None = None) -> logging.Logger:
    """Child of the ``dronehive`` logger, e.g. ``get_logger("build.compiler")``."""
    if not component:
        return logging.getLogger(ROOT_LOGGER)
    return logging.getLogger(f"{ROOT_LOGGER}.{component}")


def configure_logging(
    *, verbose: bool = False, log_file: Path | None = None
) -> logging.Logger:
    """Send dronehive records to stderr and, when given, to ``log_file``.

    Handlers installed by an earlier call are replaced, so a process that
    runs several commands logs each record once.
    """
    level = logging.DEBUG if verbose else logging.INFO
    logger = logging.getLogger(ROOT_LOGGER)
    logger.setLevel(level)
    logger.propagate = False

    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()

    handlers: list[logging.Handler] = [_with_format(logging.StreamHandler(), CONSOLE_FORMAT)]
    if log_file is not None:
        handlers.append(_with_format(logging.FileHandler(log_file, encoding="utf-8"), FILE_FORMAT))
    for handler in handlers:
        handler.setLevel(level)
        logger.addHandler(handler)
    return logger


def _with_format(handler: logging.Handler, fmt: str) -> logging.Handler:
    handler.setFormatter(logging.Formatter(fmt))
    return handler


__all__ = ["configure_logging", "get_logger"]
