"""Colored stderr logging for the probe and CLI."""

import logging
import os
from typing import Optional

from colorlog import ColoredFormatter


LOG_LEVEL_ENV = "MCP_APPS_SANITY_LOG_LEVEL"
DEFAULT_LOG_LEVEL = "WARNING"

_HANDLER_MARKER = "_mcp_apps_sanity_handler"
_ROOT_LOGGER = "mcp_apps_sanity"


def _resolve_log_level(level_name: Optional[str]) -> int:
    value = (level_name or os.getenv(LOG_LEVEL_ENV) or DEFAULT_LOG_LEVEL).strip().upper()
    return getattr(logging, value, logging.WARNING)


def configure_logging(level_name: Optional[str] = None) -> None:
    """Attach the colored handler to the package logger once; later calls only adjust the level.

    Logs go to stderr so that ``--json`` output on stdout stays parseable.
    """
    package_logger = logging.getLogger(_ROOT_LOGGER)
    package_logger.setLevel(_resolve_log_level(level_name))

    if any(getattr(handler, _HANDLER_MARKER, False) for handler in package_logger.handlers):
        return

    handler = logging.StreamHandler()
    handler.setFormatter(
        ColoredFormatter(
            "%(log_color)s%(levelname)s:%(name)s:%(message)s",
            log_colors={
                "DEBUG": "cyan",
                "INFO": "green",
                "WARNING": "yellow",
                "ERROR": "red",
                "CRITICAL": "red,bg_white",
            },
        )
    )
    setattr(handler, _HANDLER_MARKER, True)
    package_logger.addHandler(handler)


def get_logger(name: Optional[str] = None) -> logging.Logger:
    return logging.getLogger(name or _ROOT_LOGGER)
