"""Logging for the consultant service.

Loggers under `consultant_service` emit at the configured level to stdout,
so submission lifecycle records and store writes show up next to uvicorn's
access log. SQLAlchemy's engine logger is held at WARNING to keep the SQL
backend quiet.
"""
from __future__ import annotations
import logging
from logging.config import dictConfig
from typing import Any, Dict

LOG_FORMAT = "%(asctime)s %(levelname)s:%(name)s:%(message)s"


def build_logging_config(level: str = "INFO") -> Dict[str, Any]:
    console = {"level": "INFO", "handlers": ["console"], "propagate": False}
    return {
        "version": 1,
        "disable_existing_loggers": False,
        "formatters": {"default": {"format": LOG_FORMAT}},
        "handlers": {
            "console": {
                "class": "logging.StreamHandler",
                "formatter": "default",
                "stream": "ext://sys.stdout",
            }
        },
        "root": {"level": "WARNING", "handlers": ["console"]},
        "loggers": {
            "consultant_service": {"level": level},
            "sqlalchemy.engine": {"level": "WARNING"},
            "uvicorn": dict(console),
            "uvicorn.error": dict(console),
            "uvicorn.access": dict(console),
        },
    }


def configure_logging(level: str = "INFO") -> None:
    """Install the stdout handler once, then only adjust the service level.

    When the root logger already has handlers (pytest, a uvicorn reload) no
    second handler is added.
    """
    if logging.getLogger().handlers:
        logging.getLogger("consultant_service").setLevel(level)
        return
    dictConfig(build_logging_config(level))


__all__ = ["LOG_FORMAT", "build_logging_config", "configure_logging"]
