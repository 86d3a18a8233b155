"""
Logging configuration.

JSON lines on stdout so the hosting platform can index request and saga
events; a plain format is available for local runs (LOG_JSON=false).
"""

import logging
import logging.config
import sys

from pythonjsonlogger import jsonlogger

from .config import Settings


class StorefrontJsonFormatter(jsonlogger.JsonFormatter):
    """JSON formatter that tags each record with the service and environment."""

    def __init__(self, *args, service: str = "", environment: str = "", **kwargs):
        super().__init__(*args, **kwargs)
        self.service = service
        self.environment = environment

    def add_fields(self, log_record, record, message_dict):
        super().add_fields(log_record, record, message_dict)
        log_record["level"] = record.levelname
        log_record["service"] = self.service
        log_record["environment"] = self.environment


def get_logging_config(settings: Settings) -> dict:
    level = settings.LOG_LEVEL or ("DEBUG" if settings.is_development else "INFO")
    formatter = "json" if settings.LOG_JSON else "simple"

    return {
        "version": 1,
        "disable_existing_loggers": False,
        "formatters": {
            "json": {
                "()": StorefrontJsonFormatter,
                "format": "%(asctime)s %(name)s %(levelname)s %(message)s",
                "service": settings.SERVICE_NAME,
                "environment": settings.ENVIRONMENT,
            },
            "simple": {
                "format": "{levelname} {asctime} {name} {message}",
                "style": "{",
            },
        },
        "handlers": {
            "console": {
                "class": "logging.StreamHandler",
                "formatter": formatter,
                "stream": sys.stdout,
            },
        },
        "root": {
            "handlers": ["console"],
            "level": level,
        },
        "loggers": {
            # chatty at DEBUG
            "urllib3": {"level": "WARNING"},
            "pymongo": {"level": "WARNING"},
        },
    }


def configure_logging(settings: Settings) -> None:
    logging.config.dictConfig(get_logging_config(settings))
