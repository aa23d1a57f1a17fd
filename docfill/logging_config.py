"""
Logging setup for docfill.

Modules log through logging.getLogger(__name__); this attaches a single console
handler to the package logger so the Flask app and scripts share one format.
"""
import logging
import sys

from docfill.config import LOG_DATE_FORMAT, LOG_FORMAT, LOG_LEVEL

PACKAGE_LOGGER = "docfill"


def setup_logging(level: str | int | None = None) -> logging.Logger:
    """
    Configure the docfill logger. Safe to call more than once.

    Returns:
        The configured package logger.
    """
    logger = logging.getLogger(PACKAGE_LOGGER)
    logger.setLevel(level or LOG_LEVEL)

    # Prevent duplicate handlers if called multiple times
    if logger.handlers:
        return logger

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(logging.Formatter(LOG_FORMAT, datefmt=LOG_DATE_FORMAT))
    logger.addHandler(handler)
    return logger
