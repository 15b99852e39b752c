# reqfabric/log_config.py
"""Logging configuration for the reqfabric library using Loguru.

Every module in the package logs through the ``logger`` re-exported here, so
applications can route pipeline diagnostics with a single call to
``configure_logging``.
"""

import sys

from loguru import logger

LOG_FORMAT = (
    "<green>{time:YYYY-MM-DD HH:mm:ss.SSS}</green> | <level>{level: <8}</level> | "
    "<cyan>{name}</cyan>:<cyan>{function}</cyan>:<cyan>{line}</cyan> - <level>{message}</level>"
)


def configure_logging(level: str = "INFO", sink=sys.stderr, *, serialize: bool = False):
    """
    Configures the Loguru logger for reqfabric.

    Removes existing handlers and installs one with the package format.

    Args:
        level: The minimum logging level (e.g., "DEBUG", "TRACE", "WARNING").
        sink: The output sink (e.g., sys.stderr, "pipeline.log").
        serialize: Emit each record as a JSON document instead of formatted text.

    Returns:
        int: The id of the installed handler, usable with ``logger.remove``.
    """
    logger.remove()
    handler_id = logger.add(
        sink,
        level=level.upper(),
        format=LOG_FORMAT,
        colorize=sink is sys.stderr and not serialize,
        serialize=serialize,
        backtrace=True,
        diagnose=False,
    )
    logger.debug(f"reqfabric logging configured: level={level.upper()} sink={sink}")
    return handler_id


__all__ = ["LOG_FORMAT", "configure_logging", "logger"]
