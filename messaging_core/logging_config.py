"""Logging setup applied when the application starts."""

from __future__ import annotations

from logging.config import dictConfig

LOG_FORMAT = "%(asctime)s | %(levelname)s | %(name)s | %(message)s"


def configure_logging(level: str = "INFO") -> None:
    """Route every logger through a single console handler."""

    dictConfig(
        {
            "version": 1,
            "disable_existing_loggers": False,
            "formatters": {
                "default": {"format": LOG_FORMAT},
            },
            "handlers": {
                "console": {
                    "class": "logging.StreamHandler",
                    "formatter": "default",
                },
            },
            "loggers": {
                "messaging_core": {"level": level, "propagate": True},
            },
            "root": {
                "level": "WARNING",
                "handlers": ["console"],
            },
        }
    )


__all__ = ["configure_logging", "LOG_FORMAT"]
