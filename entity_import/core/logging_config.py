"""
Logging setup shared by the collaborator service and the import pipeline.

Both sides write to stdout through one console handler. Chatty third-party
loggers (httpx request lines, multipart parsing, SQL echo) are held at
WARNING unless the package itself runs at DEBUG.
"""
from __future__ import annotations

import logging
from logging.config import dictConfig
from typing import Dict, Optional

PACKAGE_LOGGER = "entity_import"

_NOISY_LOGGERS = ("httpx", "httpcore", "multipart", "python_multipart", "sqlalchemy.engine")

_configured_level: Optional[str] = None


def _library_levels(level: str) -> Dict[str, Dict[str, str]]:
    library_level = "DEBUG" if level == "DEBUG" else "WARNING"
    return {name: {"level": library_level} for name in _NOISY_LOGGERS}


def configure_logging(level: Optional[str] = None) -> None:
    """
    Install the console handler once; later calls only change the package level.

    Args:
        level: Log level name such as "DEBUG" or "INFO". Defaults to INFO.
    """
    global _configured_level

    log_level = (level or "INFO").upper()
    if _configured_level is not None:
        if log_level != _configured_level:
            logging.getLogger(PACKAGE_LOGGER).setLevel(log_level)
            _configured_level = log_level
        return

    dictConfig(
        {
            "version": 1,
            "disable_existing_loggers": False,
            "formatters": {
                "console": {
                    "format": "%(asctime)s %(levelname)-7s [%(name)s] %(message)s",
                    "datefmt": "%H:%M:%S",
                }
            },
            "handlers": {
                "stdout": {
                    "class": "logging.StreamHandler",
                    "stream": "ext://sys.stdout",
                    "formatter": "console",
                }
            },
            "loggers": {
                PACKAGE_LOGGER: {"level": log_level},
                **_library_levels(log_level),
            },
            "root": {"handlers": ["stdout"], "level": "WARNING"},
        }
    )
    _configured_level = log_level
