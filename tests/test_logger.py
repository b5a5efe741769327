"""Unit tests for the logging helpers."""

import logging
from pathlib import Path

import pytest

from library_backup.logger import LOG_FORMAT, clean_log, configure_logging, get_logger


@pytest.fixture
def restore_root_logger():
    root = logging.getLogger()
    handlers, level = root.handlers[:], root.level
    yield root
    root.handlers[:] = handlers
    root.setLevel(level)


def test_configure_logging_installs_single_handler(restore_root_logger):
    configure_logging("debug")
    configure_logging("warning")

    assert restore_root_logger.level == logging.WARNING
    assert len(restore_root_logger.handlers) == 1
    assert restore_root_logger.handlers[0].formatter._fmt == LOG_FORMAT


def test_unknown_level_falls_back_to_info(restore_root_logger):
    configure_logging("chatty")
    assert restore_root_logger.level == logging.INFO


def test_clean_log_quotes_and_strips_control_characters():
    assert clean_log(Path("/srv/backup/albums")) == "'/srv/backup/albums'"
    assert clean_log("evil\nname\x1b[31m") == "'evilname[31m'"
    assert clean_log("") == "''"


def test_clean_log_truncates_long_values():
    assert clean_log("a" * 20, max_length=5) == "'aaaaa...'"


def test_get_logger_returns_named_logger():
    assert get_logger("library_backup.orchestrator") is logging.getLogger("library_backup.orchestrator")
