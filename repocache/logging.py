"""Logging for repocache: one ``repocache`` hierarchy shared by stores, CLI and service."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Iterable, List

_LOGGER_NAME = "repocache"
_CONSOLE_FORMAT = "[repocache] %(levelname)s %(message)s"
_FILE_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"

# Loggers owned by the HTTP server; in service mode they share our handlers.
SERVICE_LOGGERS = ("uvicorn", "uvicorn.error", "uvicorn.access")


def get_logger(name: str | None = None) -> logging.Logger:
    """Return ``repocache.<name>``, e.g. ``get_logger("stores.matcher")``."""
    full_name = f"{_LOGGER_NAME}.{name}" if name else _LOGGER_NAME
    return logging.getLogger(full_name)


def _build_handlers(level: int, log_file: Path | None) -> List[logging.Handler]:
    console = logging.StreamHandler()
    console.setLevel(level)
    console.setFormatter(logging.Formatter(_CONSOLE_FORMAT))
    handlers: List[logging.Handler] = [console]

    if log_file is not None:
        log_file.parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(log_file, encoding="utf-8")
        file_handler.setLevel(level)
        file_handler.setFormatter(logging.Formatter(_FILE_FORMAT))
        handlers.append(file_handler)
    return handlers


def _install(logger: logging.Logger, level: int, handlers: Iterable[logging.Handler]) -> None:
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()
    logger.setLevel(level)
    logger.propagate = False
    for handler in handlers:
        logger.addHandler(handler)


def configure_logging(
    *,
    verbose: bool = False,
    log_file: Path | None = None,
    service: bool = False,
) -> logging.Logger:
    """Attach console (and optional file) handlers to the repocache logger.

    Calling this again replaces the previous handlers instead of stacking
    them. With ``service=True`` the uvicorn loggers are routed through the
    same handlers so request logs and cache logs land in one stream.
    """
    level = logging.DEBUG if verbose else logging.INFO
    handlers = _build_handlers(level, log_file)

    logger = logging.getLogger(_LOGGER_NAME)
    _install(logger, level, handlers)
    if service:
        for name in SERVICE_LOGGERS:
            _install(logging.getLogger(name), level, handlers)
    return logger


__all__ = ["SERVICE_LOGGERS", "configure_logging", "get_logger"]
