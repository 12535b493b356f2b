"""Logging setup for the CLI and the HTTP sidecar.

Library modules only create loggers; handlers are installed here, once,
by the entry points.  The level defaults to ``SPAN_RECONCILER_LOG_LEVEL``
(read after loading ``.env``).
"""

from __future__ import annotations
import json
import logging
import os
import sys
from datetime import datetime, timezone
from typing import Any

from dotenv import load_dotenv

VALID_LOG_LEVELS = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]


class StructuredFormatter(logging.Formatter):
    """One JSON object per record."""

    def format(self, record: logging.LogRecord) -> str:
        payload: dict[str, Any] = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        if record.exc_info:
            payload["exception"] = self.formatException(record.exc_info)
        return json.dumps(payload, ensure_ascii=False)


_configured = False


def resolve_level(level: str | int | None = None) -> int:
    """Map a level name (or None → environment) to a logging constant."""
    if isinstance(level, int):
        return level
    if level is None:
        load_dotenv()
        level = os.getenv("SPAN_RECONCILER_LOG_LEVEL", "INFO")
    name = str(level).upper()
    if name not in VALID_LOG_LEVELS:
        name = "INFO"
    return getattr(logging, name)


def configure_logging(
    level: str | int | None = None,
    structured: bool = False,
) -> None:
    """Attach a stderr handler to the package logger (idempotent)."""
    global _configured
    if _configured:
        return

    logger = logging.getLogger("span_reconciler")
    logger.setLevel(resolve_level(level))

    handler = logging.StreamHandler(sys.stderr)
    if structured:
        handler.setFormatter(StructuredFormatter())
    else:
        handler.setFormatter(
            logging.Formatter("%(asctime)s - %(levelname)s - %(name)s - %(message)s")
        )
    logger.addHandler(handler)
    _configured = True
