"""
Structured JSON logging for the CookFi trading workflow.

One JSON object per line on stdout, so a cycle's discovery, decisions,
swap attempts and alerts can be grepped or shipped to a log store as-is.
Context goes in ``extra={"data": {...}}``; pydantic models and enums
inside it are serialized to plain JSON.
"""

import logging
import json
import os
import sys
from datetime import datetime, timezone
from enum import Enum
from typing import Any

from pydantic import BaseModel

LOGGER_NAMESPACE = "cookfi.trader"
LOG_LEVEL_ENV = "COOKFI_LOG_LEVEL"


def _to_json(value: Any) -> Any:
    if isinstance(value, BaseModel):
        return value.model_dump(mode="json")
    if isinstance(value, Enum):
        return value.value
    return str(value)


class JSONFormatter(logging.Formatter):
    """Renders a record as a single JSON line."""

    def format(self, record: logging.LogRecord) -> str:
        entry: dict[str, Any] = {
            "timestamp": datetime.fromtimestamp(record.created, timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "module": record.module,
            "function": record.funcName,
            "message": record.getMessage(),
        }
        data = getattr(record, "data", None)
        if data is not None:
            entry["data"] = data
        if record.exc_info and record.exc_info[1]:
            exc = record.exc_info[1]
            entry["exception"] = str(exc)
            entry["exception_type"] = type(exc).__name__
            entry["traceback"] = self.formatException(record.exc_info)
        return json.dumps(entry, default=_to_json)


def _default_level() -> int:
    name = os.getenv(LOG_LEVEL_ENV, "INFO").upper()
    return getattr(logging, name, logging.INFO)


def get_logger(name: str, level: int | None = None) -> logging.Logger:
    """
    JSON logger under the ``cookfi.trader`` namespace.

    Module names already inside the namespace are used unchanged; anything
    else is prefixed. The level defaults to ``COOKFI_LOG_LEVEL`` (INFO).

    Usage:
        logger = get_logger(__name__)
        logger.info("Swap sent", extra={"data": {"token": "BONK", "slippage_pct": 3.0}})
    """
    if name != LOGGER_NAMESPACE and not name.startswith(f"{LOGGER_NAMESPACE}."):
        name = f"{LOGGER_NAMESPACE}.{name}"
    logger = logging.getLogger(name)
    if not logger.handlers:
        handler = logging.StreamHandler(sys.stdout)
        handler.setFormatter(JSONFormatter())
        logger.addHandler(handler)
        logger.setLevel(level if level is not None else _default_level())
        logger.propagate = False
    return logger
