"""Logging configuration for hostprobe."""

import logging
import logging.config
from typing import Any, Dict, Optional

from hostprobe.config import Settings, get_settings


def build_logging_config(settings: Settings) -> Dict[str, Any]:
    """Return a dictConfig mapping for the given settings."""
    return {
        "version": 1,
        "disable_existing_loggers": False,
        "formatters": {
            "simple": {
                "format": "%(levelname)s - %(name)s - %(message)s",
            },
            "detailed": {
                "format": "%(asctime)s - %(name)s - %(levelname)s - [%(filename)s:%(lineno)d] - %(message)s",
                "datefmt": "%Y-%m-%d %H:%M:%S",
            },
            "json": {
                "()": "pythonjsonlogger.json.JsonFormatter",
                "fmt": "%(asctime)s %(name)s %(levelname)s %(filename)s %(lineno)d %(message)s",
            },
        },
        "handlers": {
            # stdout carries the JSON document, logs go to stderr
            "console": {
                "class": "logging.StreamHandler",
                "formatter": settings.log_format,
                "stream": "ext://sys.stderr",
            },
        },
        "loggers": {
            "hostprobe": {
                "level": settings.log_level,
                "handlers": ["console"],
                "propagate": False,
            },
        },
    }


def setup_logging(settings: Optional[Settings] = None) -> None:
    """Configure console logging for the hostprobe package."""
    settings = settings or get_settings()
    logging.config.dictConfig(build_logging_config(settings))
    logging.getLogger(__name__).debug(
        "Logging configured (level=%s, format=%s)",
        settings.log_level,
        settings.log_format,
    )
