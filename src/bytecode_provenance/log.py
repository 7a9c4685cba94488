"""Logging configuration for bytecode-provenance.

The library only emits records through loguru; sinks are configured by the
command-line entry point.
"""

import sys

from loguru import logger


def setup_logging(level: str = "WARNING") -> None:
    """Configure the stderr sink.

    Args:
        level: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
    """
    # Remove default handler
    logger.remove()
    logger.add(
        sys.stderr,
        format=(
            "<green>{time:HH:mm:ss}</green> | "
            "<level>{level: <8}</level> | "
            "<cyan>{name}</cyan> - <level>{message}</level>"
        ),
        level=level,
        colorize=True,
        backtrace=False,
        diagnose=False,
    )
