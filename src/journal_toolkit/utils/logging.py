"""
Logging setup for entry points.

Library code only calls 'loguru.logger'; scripts and the API factory call
'configure_logging' once so every module writes to the same stderr sink.
"""

import sys

from loguru import logger


def configure_logging(level: str = "INFO") -> None:
    logger.remove()
    logger.add(
        sys.stderr,
        level=level.upper(),
        format="<green>{time:HH:mm:ss}</green> | <level>{level: <8}</level> | <cyan>{name}</cyan> - {message}",
    )
