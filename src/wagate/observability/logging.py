"""Structured JSON logging with session context support."""

import json
import logging
import sys
from datetime import datetime, timezone
from typing import Any

from .context import get_session_id


class JsonFormatter(logging.Formatter):
    """JSON formatter that includes the bound WhatsApp session id."""

    def format(self, record: logging.LogRecord) -> str:
        log_obj: dict[str, Any] = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }

        session_id = get_session_id()
        if session_id:
            log_obj["sessionId"] = session_id

        if record.exc_info:
            log_obj["exception"] = self.formatException(record.exc_info)

        # Include extra fields if present
        if hasattr(record, "extra_fields"):
            log_obj.update(record.extra_fields)

        return json.dumps(log_obj, default=str)


def get_logger(name: str) -> logging.Logger:
    """Get a logger configured for JSON output."""
    logger = logging.getLogger(name)

    # Only configure if no handlers (avoid duplicate handlers)
    if not logger.handlers:
        handler = logging.StreamHandler(sys.stdout)
        handler.setFormatter(JsonFormatter())
        logger.addHandler(handler)
        logger.setLevel(logging.INFO)
        logger.propagate = False

    return logger


def set_debug(enabled: bool) -> None:
    """Toggle verbose diagnostics for every wagate logger."""
    level = logging.DEBUG if enabled else logging.INFO
    logging.getLogger("wagate").setLevel(level)
    for name, logger in logging.Logger.manager.loggerDict.items():
        if name.startswith("wagate.") and isinstance(logger, logging.Logger):
            logger.setLevel(level)
