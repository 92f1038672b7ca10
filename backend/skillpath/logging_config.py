import logging
import os
from logging.config import dictConfig
from typing import Dict

DEFAULT_LOG_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"

# Third-party loggers that are chatty at INFO.
QUIET_LOGGERS = ("openai.agents", "httpx", "sqlalchemy.engine")


def parse_logger_levels(raw: str) -> Dict[str, str]:
    """Parse ``"skillpath.quota=DEBUG,httpx=WARNING"`` into a logger → level map.

    Malformed entries and unknown level names are ignored.
    """
    levels: Dict[str, str] = {}
    for entry in raw.split(","):
        name, sep, level = entry.partition("=")
        name, level = name.strip(), level.strip().upper()
        if not sep or not name or not isinstance(logging.getLevelName(level), int):
            continue
        levels[name] = level
    return levels


def configure_logging() -> Dict[str, str]:
    """Configure backend logging from SKILLPATH_* environment flags.

    Returns the per-logger levels that were applied.
    """
    level = os.getenv("SKILLPATH_LOG_LEVEL", "INFO").upper()

    loggers: Dict[str, str] = {}
    if level != "DEBUG":
        loggers.update({name: "WARNING" for name in QUIET_LOGGERS})
    if os.getenv("SKILLPATH_DEBUG_HTTP", "0") == "1":
        loggers.update({"httpx": "DEBUG", "uvicorn.access": "DEBUG"})
    loggers.update(parse_logger_levels(os.getenv("SKILLPATH_LOG_LEVELS", "")))

    dictConfig(
        {
            "version": 1,
            "disable_existing_loggers": False,
            "formatters": {"default": {"format": DEFAULT_LOG_FORMAT}},
            "handlers": {
                "default": {
                    "class": "logging.StreamHandler",
                    "formatter": "default",
                },
            },
            "loggers": {name: {"level": value} for name, value in loggers.items()},
            "root": {
                "handlers": ["default"],
                "level": level,
            },
        }
    )
    return loggers
