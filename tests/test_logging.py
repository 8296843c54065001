"""Tests for repocache.logging."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Iterator

import pytest

from repocache.logging import SERVICE_LOGGERS, configure_logging, get_logger


@pytest.fixture(autouse=True)
def _reset_loggers() -> Iterator[None]:
    yield
    for name in ("repocache", *SERVICE_LOGGERS):
        logger = logging.getLogger(name)
        for handler in list(logger.handlers):
            logger.removeHandler(handler)
            handler.close()
        logger.propagate = True
        logger.setLevel(logging.NOTSET)


def test_get_logger_nests_under_repocache() -> None:
    assert get_logger().name == "repocache"
    assert get_logger("stores.matcher").name == "repocache.stores.matcher"


def test_repeated_configuration_does_not_stack_handlers() -> None:
    configure_logging()
    logger = configure_logging(verbose=True)

    assert len(logger.handlers) == 1
    assert logger.level == logging.DEBUG
    assert logger.propagate is False


def test_log_file_is_created_with_parent_directory(tmp_path: Path) -> None:
    log_file = tmp_path / "logs" / "repocache.log"

    configure_logging(log_file=log_file)
    get_logger("cache").info("Cache hit: strategy %d", 7)
    for handler in logging.getLogger("repocache").handlers:
        handler.flush()

    assert "Cache hit: strategy 7" in log_file.read_text(encoding="utf-8")


def test_service_mode_routes_server_loggers() -> None:
    logger = configure_logging(service=True)

    for name in SERVICE_LOGGERS:
        server_logger = logging.getLogger(name)
        assert server_logger.handlers == logger.handlers
        assert server_logger.propagate is False
