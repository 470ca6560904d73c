"""Tests for logging_config.py utility functions."""

import os
import sys
import logging
from unittest.mock import patch

import pytest

from image_resizer.core.logging_config import PROJECT_LOGGER, get_logger, setup_logger


@pytest.fixture(autouse=True)
def fresh_project_logger():
    """Detach the project logger's handlers for the test and restore them after."""
    logger = logging.getLogger(PROJECT_LOGGER)
    saved = (logger.handlers[:], logger.level, logger.propagate)
    logger.handlers.clear()
    yield logger
    logger.handlers[:], logger.level, logger.propagate = saved


class TestSetupLogger:
    """Tests for setup_logger function."""

    def test_defaults(self):
        with patch.dict(os.environ, {}, clear=True):
            logger = setup_logger()
        assert logger.name == PROJECT_LOGGER
        assert logger.level == logging.INFO
        assert len(logger.handlers) == 1
        assert logger.handlers[0].stream is sys.stdout
        assert not logger.propagate

    @pytest.mark.parametrize(
        "level, env, expected",
        [
            ("DEBUG", {}, logging.DEBUG),
            ("warning", {}, logging.WARNING),
            (None, {"LOG_LEVEL": "ERROR"}, logging.ERROR),
            ("DEBUG", {"LOG_LEVEL": "ERROR"}, logging.DEBUG),
            ("LOUD", {}, logging.INFO),
            (None, {"LOG_LEVEL": "LOUD"}, logging.INFO),
        ],
    )
    def test_level_resolution(self, level, env, expected):
        with patch.dict(os.environ, env, clear=True):
            assert setup_logger(level=level).level == expected

    def test_structured_format(self):
        with patch.dict(os.environ, {}, clear=True):
            logger = setup_logger()
        format_string = logger.handlers[0].formatter._fmt
        for field in ("%(asctime)s", "%(name)s", "%(filename)s", "%(lineno)d", "%(funcName)s"):
            assert field in format_string

    def test_simple_format_from_env(self):
        with patch.dict(os.environ, {"LOG_FORMAT": "simple"}, clear=True):
            logger = setup_logger()
        format_string = logger.handlers[0].formatter._fmt
        assert "%(message)s" in format_string
        assert "%(filename)s" not in format_string

    def test_explicit_format_wins_over_env(self):
        with patch.dict(os.environ, {"LOG_FORMAT": "simple"}, clear=True):
            logger = setup_logger(format_type="structured")
        assert "%(filename)s" in logger.handlers[0].formatter._fmt

    def test_repeated_calls_reuse_handler_and_update_level(self):
        with patch.dict(os.environ, {}, clear=True):
            first = setup_logger()
            second = setup_logger(level="DEBUG")

        assert first is second
        assert len(second.handlers) == 1
        assert second.level == logging.DEBUG


class TestGetLogger:
    """Tests for get_logger function."""

    def test_configures_project_logger_on_first_use(self, fresh_project_logger):
        with patch.dict(os.environ, {}, clear=True):
            logger = get_logger()
        assert logger is fresh_project_logger
        assert len(logger.handlers) == 1

    def test_module_loggers_propagate_to_project_logger(self):
        child = get_logger(f"{PROJECT_LOGGER}.http")

        assert child.parent is logging.getLogger(PROJECT_LOGGER)
        assert child.handlers == []
        assert child.propagate

    def test_does_not_reset_level(self):
        setup_logger(level="DEBUG")
        with patch.dict(os.environ, {"LOG_LEVEL": "ERROR"}):
            get_logger(f"{PROJECT_LOGGER}.http")
        assert logging.getLogger(PROJECT_LOGGER).level == logging.DEBUG

    def test_debug_reaches_module_loggers(self):
        setup_logger(level="INFO")
        child = get_logger(f"{PROJECT_LOGGER}.worker")
        assert not child.isEnabledFor(logging.DEBUG)

        setup_logger(level="DEBUG")
        assert child.isEnabledFor(logging.DEBUG)
