"""Tests for logging configuration."""

import logging

import pytest
from colorlog import ColoredFormatter
from mcp_apps_sanity.logger import LOG_LEVEL_ENV, configure_logging, get_logger


@pytest.fixture
def package_logger():
    logger = logging.getLogger("mcp_apps_sanity")
    saved_handlers = list(logger.handlers)
    saved_level = logger.level
    yield logger
    logger.handlers = saved_handlers
    logger.setLevel(saved_level)


class TestConfigureLogging:

    def test_attaches_colored_handler_once(self, package_logger, monkeypatch):
        monkeypatch.delenv(LOG_LEVEL_ENV, raising=False)
        configure_logging()
        configure_logging("DEBUG")
        colored = [h for h in package_logger.handlers if isinstance(h.formatter, ColoredFormatter)]
        assert len(colored) == 1
        assert package_logger.level == logging.DEBUG

    def test_default_level(self, package_logger, monkeypatch):
        monkeypatch.delenv(LOG_LEVEL_ENV, raising=False)
        configure_logging()
        assert package_logger.level == logging.WARNING

    def test_env_level(self, package_logger, monkeypatch):
        monkeypatch.setenv(LOG_LEVEL_ENV, "info")
        configure_logging()
        assert package_logger.level == logging.INFO

    def test_unknown_level_falls_back(self, package_logger):
        configure_logging("CHATTY")
        assert package_logger.level == logging.WARNING

    def test_module_loggers_are_children(self):
        assert get_logger().name == "mcp_apps_sanity"
        assert get_logger("mcp_apps_sanity.connector").parent is get_logger()
