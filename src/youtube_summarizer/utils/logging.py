import logging
import os
import sys
from typing import Optional

import colorlog

PACKAGE_LOGGER = "youtube_summarizer"

DEFAULT_LOG_FORMAT = "%(asctime)s [%(name)s] %(levelname)s: %(message)s"
DEFAULT_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

LOG_LEVELS = {
    "DEBUG": logging.DEBUG,
    "INFO": logging.INFO,
    "WARNING": logging.WARNING,
    "ERROR": logging.ERROR,
    "CRITICAL": logging.CRITICAL
}

LOG_COLORS = {
    'DEBUG': 'cyan',
    'INFO': 'green',
    'WARNING': 'yellow',
    'ERROR': 'red',
    'CRITICAL': 'red,bg_white',
}


def get_log_level() -> str:
    """Get the log level from environment variable or use default."""
    return os.environ.get("LOG_LEVEL", "INFO").upper()


def _resolve_level(log_level: str) -> int:
    level = LOG_LEVELS.get(log_level.upper())
    if level is None:
        logging.getLogger(PACKAGE_LOGGER).warning(f"Invalid log level: {log_level}. Using INFO instead.")
        return logging.INFO
    return level


def setup_logger(
    name: str = PACKAGE_LOGGER,
    log_level: Optional[str] = None,
    log_format: Optional[str] = None,
    date_format: Optional[str] = None
) -> logging.Logger:
    """
    Attach the colored stderr handler to the package logger.

    Only the package logger gets a handler; module loggers created by
    get_logger propagate to it. Calling this again replaces the handler,
    so format changes from LOG_FORMAT / LOG_DATE_FORMAT are picked up.

    Args:
        name: Logger to configure, the package logger by default
        log_level: DEBUG, INFO, WARNING, ERROR or CRITICAL; LOG_LEVEL if omitted
        log_format: Record format without the color prefix; LOG_FORMAT if omitted
        date_format: strftime format for asctime; LOG_DATE_FORMAT if omitted

    Returns:
        The configured logger
    """
    logger = logging.getLogger(name)
    logger.setLevel(_resolve_level(log_level or get_log_level()))

    for handler in logger.handlers[:]:
        logger.removeHandler(handler)

    formatter = colorlog.ColoredFormatter(
        "%(log_color)s" + (log_format or os.environ.get("LOG_FORMAT", DEFAULT_LOG_FORMAT)),
        datefmt=date_format or os.environ.get("LOG_DATE_FORMAT", DEFAULT_DATE_FORMAT),
        log_colors=LOG_COLORS
    )
    console_handler = logging.StreamHandler(sys.stderr)
    console_handler.setFormatter(formatter)
    logger.addHandler(console_handler)
    return logger


def get_logger(name: str, log_level: Optional[str] = None) -> logging.Logger:
    """
    Get a module logger under the package namespace.

    ``get_logger("orchestrator")`` returns ``youtube_summarizer.orchestrator``.
    The package handler is installed on first use.
    """
    package_logger = logging.getLogger(PACKAGE_LOGGER)
    if not package_logger.handlers:
        setup_logger(PACKAGE_LOGGER)

    if not name.startswith(PACKAGE_LOGGER):
        name = f"{PACKAGE_LOGGER}.{name}"
    logger = logging.getLogger(name)
    if log_level:
        logger.setLevel(_resolve_level(log_level))
    return logger


def set_log_level(log_level: str) -> None:
    """Change the level of the whole package at runtime (e.g. from ``--log-level``)."""
    logging.getLogger(PACKAGE_LOGGER).setLevel(_resolve_level(log_level))
