# app/core/logging.py
# Logs texte, request_id injecté dans chaque ligne (y compris celles de uvicorn).

from __future__ import annotations
import contextvars
import logging
import logging.config
import uuid
from typing import Any, Dict, Optional

request_id_var: contextvars.ContextVar[str] = contextvars.ContextVar("request_id", default="-")

LOG_FORMAT = "%(asctime)s | %(levelname)s | %(name)s | req=%(request_id)s | %(message)s"

# bibliothèques bavardes en DEBUG (PIL logue chaque chunk PNG lu)
_QUIET = ("PIL", "multipart", "python_multipart")


class RequestContextFilter(logging.Filter):
    """Attache request_id au record (le format le réclame toujours)."""

    def filter(self, record: logging.LogRecord) -> bool: # type: ignore[override]
        if not hasattr(record, "request_id"):
            record.request_id = request_id_var.get() or "-"
        return True


def _logging_config(level: str) -> Dict[str, Any]:
    handler = {"class": "logging.StreamHandler", "formatter": "std", "filters": ["request_ctx"]}
    loggers: Dict[str, Any] = {name: {"level": "WARNING"} for name in _QUIET}
    loggers.update({
        "uvicorn": {"level": level},
        "uvicorn.error": {"level": level},
        # uvicorn.access doublonne les lignes "request end" du middleware
        "uvicorn.access": {"level": "WARNING", "handlers": ["console"], "propagate": False},
    })
    return {
        "version": 1,
        "disable_existing_loggers": False,
        "filters": {"request_ctx": {"()": RequestContextFilter}},
        "formatters": {"std": {"format": LOG_FORMAT}},
        "handlers": {"console": handler},
        "root": {"level": level.upper(), "handlers": ["console"]},
        "loggers": loggers,
    }


def setup_logging(level: str = "INFO") -> None:
    logging.config.dictConfig(_logging_config(level.upper()))


def get_logger(name: Optional[str] = None) -> logging.Logger:
    return logging.getLogger(name)


def new_request_id() -> str:
    return uuid.uuid4().hex
