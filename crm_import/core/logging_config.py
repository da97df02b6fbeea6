"""
Logging setup shared by the HTTP app and the ``crm-import`` command.

Both entry points call ``configure_logging`` at startup; only the first call
in a process takes effect.
"""
from __future__ import annotations

from logging.config import dictConfig
from typing import Any, Dict, Optional

from crm_import.core.config import settings

APP_LOGGER = "crm_import"
LOG_FORMAT = "%(asctime)s | %(levelname)-7s | %(name)s | %(message)s"

_is_configured = False


def _build_config(log_level: str) -> Dict[str, Any]:
    return {
        "version": 1,
        "disable_existing_loggers": False,
        "formatters": {
            "standard": {"format": LOG_FORMAT, "datefmt": "%Y-%m-%d %H:%M:%S"},
        },
        "handlers": {
            "console": {
                "class": "logging.StreamHandler",
                "formatter": "standard",
                "level": log_level,
            },
        },
        "root": {"handlers": ["console"], "level": log_level},
        # Session and RPC records go through the root handler.
        "loggers": {APP_LOGGER: {"level": log_level, "propagate": True}},
    }


def configure_logging(level: Optional[str] = None) -> None:
    """
    Install the console handler for import sessions and RPC calls.

    Args:
        level: Level name such as "DEBUG"; defaults to ``settings.log_level``.
    """
    global _is_configured

    if _is_configured:
        return

    log_level = (level or settings.log_level or "INFO").upper()
    dictConfig(_build_config(log_level))
    _is_configured = True
