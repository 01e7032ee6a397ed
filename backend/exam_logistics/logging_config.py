# backend/exam_logistics/logging_config.py
import logging
import logging.config
from typing import Any, Dict, Optional


class BatchContextFilter(logging.Filter):
    """Make sure every record carries a ``batch_id`` for the formatters."""

    def filter(self, record):
        if not hasattr(record, "batch_id"):
            record.batch_id = "no-batch"
        return True


LOGGING_CONFIG: Dict[str, Any] = {
    "version": 1,
    "disable_existing_loggers": False,
    "filters": {
        "batch_context_filter": {
            "()": BatchContextFilter,
        },
    },
    "formatters": {
        "default": {
            "format": "%(levelname)-8s %(asctime)s [%(name)s] [%(batch_id)s] %(message)s",
            "datefmt": "%Y-%m-%d %H:%M:%S",
        },
        # This formatter is key for tracebacks
        "detailed": {
            "format": "%(levelname)s %(asctime)s [%(name)s] [%(module)s:%(lineno)d] [%(batch_id)s] - %(message)s",
            "datefmt": "%Y-%m-%d %H:%M:%S",
        },
    },
    "handlers": {
        "default": {
            "formatter": "default",
            "class": "logging.StreamHandler",
            "stream": "ext://sys.stdout",
            "filters": ["batch_context_filter"],
        },
        "error": {
            "formatter": "detailed",
            "class": "logging.StreamHandler",
            "stream": "ext://sys.stderr",
            "level": "ERROR",
            "filters": ["batch_context_filter"],
        },
    },
    "loggers": {
        "": {
            "handlers": ["default", "error"],
            "level": "INFO",
        },
        "sqlalchemy.engine": {
            "handlers": ["default"],
            "level": "WARNING",
            "propagate": False,
        },
        "exam_logistics": {
            "handlers": ["default", "error"],
            "level": "DEBUG",
            "propagate": False,  # Prevent duplicating logs in the root logger
        },
    },
}


def configure_logging(level: Optional[str] = None) -> None:
    """Apply ``LOGGING_CONFIG``, optionally overriding the package log level."""
    config = dict(LOGGING_CONFIG)
    if level:
        loggers = dict(config["loggers"])
        loggers["exam_logistics"] = {**loggers["exam_logistics"], "level": level.upper()}
        config["loggers"] = loggers
    logging.config.dictConfig(config)
