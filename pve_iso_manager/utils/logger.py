"""Logging helpers"""

import logging
from typing import Optional

from pythonjsonlogger.json import JsonFormatter

ROOT_LOGGER = 'pve_iso_manager'
DEFAULT_LOG_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'


def get_logger(name: str) -> logging.Logger:
    """Get a module logger under the package namespace"""
    return logging.getLogger(name)


def setup_logging(level: str = 'WARNING', fmt: Optional[str] = None,
                  json_format: bool = False) -> logging.Logger:
    """
    Configure the package logger.

    Safe to call more than once; the previous handler is replaced.

    Args:
        level: Log level name
        fmt: Log record format
        json_format: Emit JSON records instead of plain text

    Returns:
        The configured package logger
    """
    logger = logging.getLogger(ROOT_LOGGER)
    for handler in list(logger.handlers):
        logger.removeHandler(handler)

    handler = logging.StreamHandler()
    if json_format:
        handler.setFormatter(JsonFormatter(fmt or DEFAULT_LOG_FORMAT))
    else:
        handler.setFormatter(logging.Formatter(fmt or DEFAULT_LOG_FORMAT))

    logger.addHandler(handler)
    logger.setLevel(getattr(logging, str(level).upper(), logging.WARNING))
    logger.propagate = False
    return logger
