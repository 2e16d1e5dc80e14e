"""Tests for dronehive.logging."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Iterator

import pytest

from dronehive.logging import configure_logging, get_logger


@pytest.fixture(autouse=True)
def _restore_root_logger() -> Iterator[None]:
    yield
    logger = logging.getLogger("dronehive")
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()
    logger.propagate = True
    logger.setLevel(logging.NOTSET)


def test_get_logger_returns_children_of_root() -> None:
    assert get_logger().name == "dronehive"
    assert get_logger("build.compiler").name == "dronehive.build.compiler"


def test_repeated_configuration_replaces_handlers(tmp_path: Path) -> None:
    configure_logging()
    logger = configure_logging(verbose=True)

    assert len(logger.handlers) == 1
    assert logger.level == logging.DEBUG


def test_log_file_receives_component_records(tmp_path: Path) -> None:
    log_file = tmp_path / "dronehive.log"
    configure_logging(log_file=log_file)

    get_logger("orchestrator").info("Rebuild finished")
    get_logger("git").debug("hidden at info level")
    for handler in logging.getLogger("dronehive").handlers:
        handler.flush()

    text = log_file.read_text(encoding="utf-8")
    assert "INFO dronehive.orchestrator: Rebuild finished" in text
    assert "hidden at info level" not in text
