"""
Logging configuration for the DiSPA timeline toolkit.
"""

import logging
import sys

ROOT_LOGGER = "dispa"


def setup_logging(level: int | str = logging.INFO) -> logging.Logger:
    """
    Configure application logging.

    :param level: Level name or number for the root handler
    :return: Root logger for the toolkit
    :rtype: logging.Logger
    """
    if isinstance(level, str):
        level = level.upper()
    logging.basicConfig(
        level=level,
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
        handlers=[logging.StreamHandler(sys.stderr)],
        force=True,
    )

    return logging.getLogger(ROOT_LOGGER)


def get_logger(name: str) -> logging.Logger:
    """
    Get a logger for a specific module.

    :param name: The module name for the logger
    :type name: str
    :return: Logger instance for the specified module
    :rtype: logging.Logger
    """
    return logging.getLogger(f'{ROOT_LOGGER}.{name}')
