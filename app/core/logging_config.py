"""
Logging configuration for the split ledger service.
Every module logs through ``logging.getLogger(__name__)`` under the ``app`` tree.
"""
import logging
import logging.config
import sys
from typing import Any, Dict

LOGGING_CONFIG: Dict[str, Any] = {
    "version": 1,
    "disable_existing_loggers": False,
    "formatters": {
        "standard": {
            "format": "%(asctime)s [%(levelname)s] %(name)s: %(message)s"
        },
    },
    "handlers": {
        "console": {
            "level": "INFO",
            "class": "logging.StreamHandler",
            "formatter": "standard",
            "stream": sys.stdout,
        },
    },
    "root": {
        "level": "WARNING",
        "handlers": ["console"],
    },
    "loggers": {
        "app": {
            "level": "INFO",
        },
        "sqlalchemy.engine": {
            "level": "WARNING",
            "handlers": ["console"],
            "propagate": False,
        },
        "uvicorn.access": {
            "level": "INFO",
            "handlers": ["console"],
            "propagate": False,
        },
    },
}


def configure_logging(level: str | None = None) -> None:
    config = dict(LOGGING_CONFIG)
    if level:
        config["loggers"] = dict(config["loggers"])
        config["loggers"]["app"] = {**config["loggers"]["app"], "level": level.upper()}
    logging.config.dictConfig(config)
    logging.getLogger("app").debug("logging configured at %s", level or "INFO")
