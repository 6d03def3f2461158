"""Central logging configuration for the contract harness.

Applies a root stdout handler so all module loggers emit at the configured
level without per-module setup. Routes uvicorn loggers through the same
handler (the mock server runs uvicorn in-process) and avoids duplicate
handlers when a test runner has already configured logging.
"""
from __future__ import annotations
import logging
from logging.config import dictConfig


def _dict_config(level: str) -> dict:
    return {
        "version": 1,
        "disable_existing_loggers": False,
        "formatters": {
            "default": {
                "format": "%(asctime)s %(levelname)s:%(name)s:%(message)s",
            }
        },
        "handlers": {
            "console": {
                "class": "logging.StreamHandler",
                "level": level,
                "formatter": "default",
                "stream": "ext://sys.stdout",
            }
        },
        "root": {"level": level, "handlers": ["console"]},
        "loggers": {
            "uvicorn": {"level": "WARNING", "handlers": ["console"], "propagate": False},
            "uvicorn.error": {"level": "WARNING", "handlers": ["console"], "propagate": False},
            "uvicorn.access": {"level": "WARNING", "handlers": ["console"], "propagate": False},
        },
    }


def configure_logging(level: str = "INFO") -> None:
    """Configure process-wide logging once.

    If the root logger already has handlers (pytest's capture, an embedding
    application), only the `pactmock` logger level is adjusted.
    """
    root = logging.getLogger()
    if root.handlers:
        logging.getLogger("pactmock").setLevel(level)
        return
    dictConfig(_dict_config(level))


__all__ = ["configure_logging"]
