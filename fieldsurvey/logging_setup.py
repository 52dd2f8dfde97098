"""Logging configuration for the field survey service.

One stdout handler on the root logger; the ``fieldsurvey`` package level is
taken from ``LOG_LEVEL`` (default INFO). Autosave timer chatter is kept at
WARNING unless ``AUTOSAVE_LOG_LEVEL`` says otherwise. Calling
``configure_logging`` twice is harmless.
"""
from __future__ import annotations
import logging
import os
from logging.config import dictConfig


def _build_config(level: str, autosave_level: str) -> dict:
    return {
        "version": 1,
        "disable_existing_loggers": False,
        "formatters": {
            "default": {"format": "%(asctime)s %(levelname)s:%(name)s:%(message)s"},
        },
        "handlers": {
            "console": {
                "class": "logging.StreamHandler",
                "formatter": "default",
                "stream": "ext://sys.stdout",
            }
        },
        "root": {"level": "WARNING", "handlers": ["console"]},
        "loggers": {
            "fieldsurvey": {"level": level},
            "fieldsurvey.logic.autosave": {"level": autosave_level},
            "uvicorn": {"level": "INFO", "handlers": ["console"], "propagate": False},
            "uvicorn.access": {"level": "INFO", "handlers": ["console"], "propagate": False},
        },
    }


def configure_logging(level: str | None = None) -> None:
    """Configure application-wide logging once.

    Returns early when the root logger already has handlers (reloaders,
    pytest's log capture) to avoid duplicate output.
    """
    root = logging.getLogger()
    if root.handlers:
        return
    resolved = (level or os.getenv("LOG_LEVEL") or "INFO").upper()
    autosave_level = (os.getenv("AUTOSAVE_LOG_LEVEL") or "WARNING").upper()
    dictConfig(_build_config(resolved, autosave_level))


__all__ = ["configure_logging"]
