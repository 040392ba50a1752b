"""Tests for vaultsite._logging."""

import logging

import pytest

from vaultsite._logging import LOGGER_NAME, configure_logging


@pytest.fixture()
def clean_logger():
    logger = logging.getLogger(LOGGER_NAME)
    saved = (logger.handlers[:], logger.level, logger.propagate)
    logger.handlers.clear()
    yield logger
    logger.handlers[:], logger.level, logger.propagate = saved


class TestConfigureLogging:
    def test_attaches_single_handler(self, clean_logger, monkeypatch):
        monkeypatch.delenv("VAULTSITE_LOG_LEVEL", raising=False)
        configure_logging()
        configure_logging()
        assert len(clean_logger.handlers) == 1
        assert clean_logger.level == logging.INFO
        assert clean_logger.propagate is False

    def test_level_from_environment(self, clean_logger, monkeypatch):
        monkeypatch.setenv("VAULTSITE_LOG_LEVEL", "debug")
        configure_logging()
        assert clean_logger.level == logging.DEBUG

    def test_unknown_level_falls_back_to_info(self, clean_logger, monkeypatch):
        monkeypatch.setenv("VAULTSITE_LOG_LEVEL", "chatty")
        configure_logging()
        assert clean_logger.level == logging.INFO
