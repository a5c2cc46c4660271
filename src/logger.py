"""
Logging configuration for kettle-env-stager.

The staging modules only create loggers under the "kettle_env" namespace and
never configure handlers themselves. An application embedding the installer
calls setup_logging() once at startup, before installing an environment:

    from logger import setup_logging

    setup_logging()  # honours LOG_LEVEL
    EnvironmentInstaller(StagingSettings.from_env()).install_kettle_environment(...)
"""

import logging
import os
import sys
from typing import Iterable, Optional, Union

from constants import NAMESPACE

QUIET_LOGGERS = ("fsspec", "pyarrow")
"""Third-party loggers kept at INFO when kettle_env logs at DEBUG."""


def get_log_level() -> int:
    """Get log level from the LOG_LEVEL environment variable, defaulting to INFO."""
    log_level = os.environ.get("LOG_LEVEL", "INFO").upper()
    return getattr(logging, log_level, logging.INFO)


def get_log_format(level: int) -> str:
    """Get log format for a level; DEBUG adds logger name and source location."""
    if level == logging.DEBUG:
        return "%(asctime)s | %(levelname)-5s | %(name)s | %(filename)s:%(lineno)d | %(message)s"
    return "%(asctime)s | %(levelname)-5s | %(message)s"


def _resolve_level(level: Optional[Union[int, str]]) -> int:
    if level is None:
        return get_log_level()
    if isinstance(level, str):
        return getattr(logging, level.upper(), logging.INFO)
    return level


def setup_logging(
    level: Optional[Union[int, str]] = None,
    stream=sys.stderr,
    fmt: Optional[str] = None,
    quiet_loggers: Iterable[str] = QUIET_LOGGERS,
) -> None:
    """
    Configure logging for an application running the staging engine.

    A stream handler is added to the root logger unless one is already
    configured, so calling this from a host that set up logging itself only
    adjusts levels.

    Args:
        level: Log level (defaults to LOG_LEVEL env var or INFO)
        stream: Output stream for the handler
        fmt: Custom format string (selected from the level if None)
        quiet_loggers: Loggers held at INFO when level is DEBUG
    """
    level = _resolve_level(level)

    root_logger = logging.getLogger()
    root_logger.setLevel(level)

    if not root_logger.hasHandlers():
        handler = logging.StreamHandler(stream)
        handler.setFormatter(logging.Formatter(fmt or get_log_format(level)))
        root_logger.addHandler(handler)

    logging.getLogger(NAMESPACE).setLevel(level)

    if level == logging.DEBUG:
        for name in quiet_loggers:
            logging.getLogger(name).setLevel(logging.INFO)
