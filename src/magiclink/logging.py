"""Logging configuration.

One dict config drives both the application loggers and uvicorn's, so request
IDs show up on every line in production.
"""

import logging.config

from magiclink.config import settings

DEV_FORMAT = "%(levelname)s:     %(name)s - %(message)s"
PROD_FORMAT = "%(asctime)s %(levelname)s [%(request_id)s] %(name)s - %(message)s"

# Third-party loggers that are too chatty at INFO
QUIET_LOGGERS = ("httpx", "httpcore", "aiosqlite", "saq")


def build_log_config() -> dict:
    """dictConfig for the current environment."""
    dev = settings.is_development
    handler = {
        "class": "logging.StreamHandler",
        "formatter": "app",
        "filters": ["request_id"],
        "stream": "ext://sys.stdout",
    }
    return {
        "version": 1,
        "disable_existing_loggers": False,
        "filters": {
            "request_id": {"()": "magiclink.api.middleware.RequestContextFilter"},
        },
        "formatters": {
            "app": {"format": DEV_FORMAT if dev else PROD_FORMAT},
            "access": {
                "()": "uvicorn.logging.AccessFormatter",
                "fmt": '%(levelprefix)s %(client_addr)s "%(request_line)s" %(status_code)s',
            },
        },
        "handlers": {
            "app": handler,
            "access": {**handler, "formatter": "access", "filters": []},
        },
        "loggers": {
            "uvicorn.access": {"handlers": ["access"], "level": "INFO", "propagate": False},
            "uvicorn.error": {"handlers": ["app"], "level": "INFO", "propagate": False},
            **{name: {"level": "WARNING"} for name in QUIET_LOGGERS},
        },
        "root": {"handlers": ["app"], "level": settings.log_level},
    }


def setup_logging() -> None:
    logging.config.dictConfig(build_log_config())
