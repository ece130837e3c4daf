"""Logging setup shared by the CLI, watch mode and the HTTP service."""

from __future__ import annotations

import logging
from pathlib import Path

_LOGGER_NAME = "docpilot"
_CONSOLE_FORMAT = "[docpilot] %(levelname)s %(message)s"
_FILE_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"

# Client libraries that log every request or file event at INFO.
_CHATTY_LIBRARIES = ("anthropic", "httpx", "httpcore", "watchdog")


def get_logger(name: str | None = None) -> logging.Logger:
    """Return ``docpilot.<name>``, e.g. ``get_logger("scheduler")``."""
    if not name:
        return logging.getLogger(_LOGGER_NAME)
    return logging.getLogger(f"{_LOGGER_NAME}.{name}")


def configure_logging(
    *, verbose: bool = False, log_file: Path | None = None
) -> logging.Logger:
    """Route docpilot records to stderr and, for long watch sessions, a file.

    Verbose mode lowers docpilot to DEBUG and lets the HTTP and file-system
    libraries through at INFO; otherwise they are held at WARNING.
    """
    level = logging.DEBUG if verbose else logging.INFO
    logger = logging.getLogger(_LOGGER_NAME)
    logger.setLevel(level)
    logger.propagate = False

    # Repeated calls (tests, service reloads) must not stack handlers.
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()

    console = logging.StreamHandler()
    console.setLevel(level)
    console.setFormatter(logging.Formatter(_CONSOLE_FORMAT))
    logger.addHandler(console)

    if log_file is not None:
        log_file.parent.mkdir(parents=True, exist_ok=True)
        sink = logging.FileHandler(log_file, encoding="utf-8")
        sink.setLevel(logging.DEBUG)
        sink.setFormatter(logging.Formatter(_FILE_FORMAT))
        logger.addHandler(sink)

    for library in _CHATTY_LIBRARIES:
        logging.getLogger(library).setLevel(logging.INFO if verbose else logging.WARNING)

    return logger


__all__ = ["configure_logging", "get_logger"]
