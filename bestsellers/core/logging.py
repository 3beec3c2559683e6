# bestsellers/core/logging.py
import logging
import sys
from typing import Optional

import colorlog

# Upstream HTTP clients log every Shopify page request at INFO/DEBUG.
HTTP_LOGGERS = ("httpx", "httpcore")

LOG_FORMAT = "%(log_color)s%(asctime)s %(levelname)-8s [%(name)s]%(reset)s %(message)s"


def configure_logging(level: int = logging.INFO, http_level: Optional[int] = None) -> logging.Handler:
    """
    Colored stdout logging for the service.

    HTTP client loggers follow `http_level`; by default they stay at WARNING
    unless the service itself runs at DEBUG (settings.DEBUG).
    """
    handler = colorlog.StreamHandler(sys.stdout)
    handler.setFormatter(
        colorlog.ColoredFormatter(
            LOG_FORMAT,
            datefmt="%Y-%m-%d %H:%M:%S",
            log_colors={
                "DEBUG": "cyan",
                "INFO": "green",
                "WARNING": "yellow",
                "ERROR": "red",
                "CRITICAL": "bold_red",
            },
        )
    )

    root_logger = logging.getLogger()
    root_logger.setLevel(level)
    root_logger.handlers = [handler]

    if http_level is None:
        http_level = logging.DEBUG if level <= logging.DEBUG else logging.WARNING
    for name in HTTP_LOGGERS:
        logging.getLogger(name).setLevel(http_level)
    return handler
