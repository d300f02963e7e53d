"""
Application logger for the storefront backend.
Usage:
    from utils.logger import logger
    logger.info("Order 12 moved to processing")
    logger.warning("Inventory reservation failed")
    logger.exception("Unexpected error occurred")
"""

import logging
import sys
from logging import Logger

from utils.app_config import LOG_LEVEL

_logger: Logger = logging.getLogger("storefront")

# Prevent duplicate handlers on uvicorn reload
if not _logger.handlers:
    _logger.setLevel(LOG_LEVEL)

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setLevel(LOG_LEVEL)

    # timestamp | level | module | message
    formatter = logging.Formatter(
        fmt="%(asctime)s | %(levelname)-8s | %(name)s | %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S"
    )
    console_handler.setFormatter(formatter)

    _logger.addHandler(console_handler)

    # Avoid duplicate lines through the root logger
    _logger.propagate = False

logger = _logger
