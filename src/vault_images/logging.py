"""Logging setup for vault-images, built on loguru.

Call ``setup_logging`` once from the entry point; library modules import
``logger`` from loguru directly and never configure sinks themselves.

Example:
    from vault_images.logging import setup_logging

    setup_logging(level="DEBUG")

    from loguru import logger
    logger.info("Vault opened")

"""

import sys
from typing import Any

from loguru import logger

CONSOLE_FORMAT = (
    "<green>{time:YYYY-MM-DD HH:mm:ss}</green> | "
    "<level>{level: <8}</level> | "
    "<cyan>{name}</cyan>:<cyan>{function}</cyan>:<cyan>{line}</cyan> - "
    "<level>{message}</level>"
)


def setup_logging(
    level: str = "INFO",
    json_output: bool = False,
    log_file: str | None = None,
) -> Any:
    """Configure loguru sinks for the command line and library use.

    Args:
        level: Minimum log level. One of: DEBUG, INFO, WARNING, ERROR, CRITICAL.
        json_output: Emit serialized JSON records on stderr instead of colored text.
        log_file: Optional path of a rotating log file.

    Returns:
        The configured loguru logger.

    """
    logger.remove()

    if json_output:
        logger.add(sys.stderr, format="{message}", serialize=True, level=level)
    else:
        logger.add(sys.stderr, format=CONSOLE_FORMAT, level=level, colorize=True)

    if log_file:
        logger.add(
            log_file,
            format=CONSOLE_FORMAT,
            level=level,
            rotation="5 MB",
            retention=5,
        )

    return logger
