"""
Structured logging for the cart library

Library modules only call structlog.get_logger(); applications opt in to the
output format by calling configure_logging() once at start-up.
"""
import logging
import sys
from typing import Optional

import structlog

from sessioncart.config import Config, get_config

# Drivers whose DEBUG output drowns cart events
NOISY_LOGGERS = ("pymongo", "redis")


def _renderer(log_format: str):
    if log_format.lower() == "console":
        return structlog.dev.ConsoleRenderer()
    return structlog.processors.JSONRenderer()


def _level(log_level: str) -> int:
    level = logging.getLevelName(log_level.upper())
    return level if isinstance(level, int) else logging.INFO


def configure_logging(config: Optional[Config] = None) -> structlog.BoundLogger:
    """
    Route structlog through stdlib logging using the library settings

    Args:
        config: Settings providing service_name, log_level and log_format;
            the process-wide config when omitted

    Returns:
        Logger bound to the service name
    """
    config = config or get_config()
    level = _level(config.log_level)

    structlog.configure(
        processors=[
            structlog.stdlib.filter_by_level,
            structlog.stdlib.add_logger_name,
            structlog.stdlib.add_log_level,
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.format_exc_info,
            _renderer(config.log_format),
        ],
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    logging.basicConfig(format="%(message)s", stream=sys.stdout)
    logging.getLogger().setLevel(level)
    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(max(level, logging.WARNING))

    return structlog.get_logger().bind(service=config.service_name)
