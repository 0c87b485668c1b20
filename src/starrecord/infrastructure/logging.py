"""
Logging Setup

Applies a LoggingConfig to the package logger. Modules log through
``logging.getLogger(__name__)`` so everything lands under ``starrecord``.
"""

import logging
from typing import Optional

from .configuration import LoggingConfig, get_config

PACKAGE_LOGGER = "starrecord"

def configure_logging(config: Optional[LoggingConfig] = None) -> logging.Logger:
    """Install handlers on the package logger according to the configuration"""
    config = config or get_config().logging
    logger = logging.getLogger(PACKAGE_LOGGER)
    logger.setLevel(getattr(logging, config.level.upper(), logging.INFO))

    # Replace handlers installed by a previous call
    for handler in list(logger.handlers):
        if getattr(handler, "_starrecord_handler", False):
            logger.removeHandler(handler)
            handler.close()

    formatter = logging.Formatter(config.format)
    handlers = [logging.StreamHandler()]
    if config.file_path:
        handlers.append(logging.FileHandler(config.file_path))

    for handler in handlers:
        handler.setFormatter(formatter)
        handler._starrecord_handler = True
        logger.addHandler(handler)

    return logger

__all__ = ["configure_logging", "PACKAGE_LOGGER"]
