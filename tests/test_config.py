"""Tests for logging setup."""

import logging

import pytest

from config import configure_logging


@pytest.fixture
def restore_root_logger():
    root = logging.getLogger()
    handlers, level = root.handlers[:], root.level
    yield
    for handler in root.handlers:
        if handler not in handlers:
            handler.close()
    root.handlers = handlers
    root.setLevel(level)


def test_configure_logging_writes_file(tmp_path, restore_root_logger):
    configure_logging(level="debug", logs_dir=tmp_path / "logs")
    logging.getLogger("ledger").debug("hello ledger")
    for handler in logging.getLogger().handlers:
        handler.flush()

    log_file = tmp_path / "logs" / "covered_calls.log"
    assert log_file.exists()
    assert "hello ledger" in log_file.read_text()
    assert logging.getLogger().level == logging.DEBUG


def test_unknown_level_falls_back_to_info(tmp_path, restore_root_logger):
    configure_logging(level="chatty", logs_dir=tmp_path)
    assert logging.getLogger().level == logging.INFO
