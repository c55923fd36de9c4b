"""
Logging configuration for shelfsim.

Console logging through ``logging.config.dictConfig`` with three formats
(simple, detailed, json).  Level and format default to the values in
``Settings`` and can be overridden per call.
"""

from __future__ import annotations

import logging
import logging.config
from typing import Optional

SIMPLE_FORMAT = "%(levelname)s - %(name)s - %(message)s"

DETAILED_FORMAT = (
    "%(asctime)s - %(name)s - %(levelname)s - [%(filename)s:%(lineno)d] - %(message)s"
)

JSON_FORMAT = (
    '{"timestamp": "%(asctime)s", "level": "%(levelname)s", "logger": "%(name)s", '
    '"module": "%(filename)s", "line": %(lineno)d, "message": "%(message)s"}'
)

FORMATS = {
    "simple": SIMPLE_FORMAT,
    "detailed": DETAILED_FORMAT,
    "json": JSON_FORMAT,
}

# Third-party loggers that are too chatty at INFO
MODULE_LOG_LEVELS = {
    "sqlalchemy.engine": "WARNING",
    "httpx": "WARNING",
    "openai": "WARNING",
    "selenium": "WARNING",
    "urllib3": "WARNING",
    "uvicorn.access": "WARNING",
}


def setup_logging(
    log_level: Optional[str] = None,
    log_format: Optional[str] = None,
) -> None:
    """
    Configure the root logger.

    Args:
        log_level: DEBUG, INFO, WARNING, ERROR or CRITICAL
        log_format: simple, detailed or json
    """
    if log_level is None or log_format is None:
        from shelfsim.config import get_settings

        settings = get_settings()
        log_level = log_level or settings.log_level
        log_format = log_format or settings.log_format

    level = log_level.upper()
    fmt = FORMATS.get(log_format, DETAILED_FORMAT)

    logging.config.dictConfig(
        {
            "version": 1,
            "disable_existing_loggers": False,
            "formatters": {
                "default": {"format": fmt, "datefmt": "%Y-%m-%d %H:%M:%S"},
            },
            "handlers": {
                "console": {
                    "class": "logging.StreamHandler",
                    "formatter": "default",
                    "level": level,
                },
            },
            "root": {"handlers": ["console"], "level": level},
            "loggers": {
                name: {"level": lvl} for name, lvl in MODULE_LOG_LEVELS.items()
            },
        }
    )
    logging.getLogger(__name__).debug(
        "Logging configured: level=%s, format=%s", level, log_format
    )


def get_logger(name: str) -> logging.Logger:
    """Return the logger for a module (pass ``__name__``)."""
    return logging.getLogger(name)
