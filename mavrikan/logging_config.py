"""
Structured logs for the bot: one JSON object per line on stdout.

Services log through `get_logger(<module>)` and pass per-call fields as
`extra={"context": {...}}`. A turn binds the masked phone once with
`LoggerAdapter` so every line it writes carries it.
"""

import json
import logging
import sys
from datetime import datetime, timezone
from typing import Any

# Chatty third-party loggers kept at WARNING.
QUIET_LOGGERS = ("httpx", "httpcore", "uvicorn.access")


class JSONFormatter(logging.Formatter):
    """Render a record as a JSON line; Hebrew text is kept unescaped."""

    def format(self, record: logging.LogRecord) -> str:
        entry = {
            "timestamp": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }

        context = getattr(record, "context", None)
        if context:
            entry["context"] = context

        if record.exc_info:
            entry["exception"] = self.formatException(record.exc_info)

        return json.dumps(entry, ensure_ascii=False, default=str)


def setup_logging(level: str = "INFO") -> None:
    """Route the root logger to stdout as JSON. Safe to call more than once."""
    root_logger = logging.getLogger()
    root_logger.setLevel(getattr(logging, level.upper(), logging.INFO))

    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(JSONFormatter())
    root_logger.addHandler(handler)

    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)


def get_logger(name: str) -> logging.Logger:
    return logging.getLogger(f"mavrikan.{name}")


class LoggerAdapter(logging.LoggerAdapter):
    """Carries fields bound at construction (e.g. the contact's masked phone).

    Calls may add their own fields with `context=`; those win on key clashes.
    """

    def process(self, msg: str, kwargs: dict[str, Any]) -> tuple[str, dict[str, Any]]:
        context = kwargs.pop("context", None)
        if context or self.extra:
            kwargs["extra"] = {"context": {**self.extra, **(context or {})}}
        return msg, kwargs
