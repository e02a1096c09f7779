"""
Structured logging configuration.
JSON lines in production, a pipe-separated format when debugging.
Both carry the request context passed through `extra=`.
"""
import json
import logging
import sys
from datetime import datetime, timezone
from typing import Any, Dict, Optional

CONTEXT_FIELDS = ("viewer_id", "cache_key", "plan_mode")


def _context(record: logging.LogRecord) -> Dict[str, Any]:
    return {
        field: getattr(record, field)
        for field in CONTEXT_FIELDS
        if getattr(record, field, None) is not None
    }


class JsonFormatter(logging.Formatter):
    """One JSON object per record, UTC ISO-8601 timestamps."""

    def format(self, record: logging.LogRecord) -> str:
        log_obj: Dict[str, Any] = {
            "timestamp": datetime.fromtimestamp(record.created, timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            **_context(record),
        }
        if record.exc_info:
            log_obj["exception"] = self.formatException(record.exc_info)

        return json.dumps(log_obj, default=str)


class ReadableFormatter(logging.Formatter):
    """Human-readable lines with context appended as key=value pairs."""

    def __init__(self) -> None:
        super().__init__("%(asctime)s | %(levelname)-8s | %(name)s | %(message)s")

    def format(self, record: logging.LogRecord) -> str:
        line = super().format(record)
        context = _context(record)
        if context:
            line += " | " + " ".join(f"{k}={v}" for k, v in context.items())
        return line


def configure_logging(debug: bool = False, level: Optional[str] = None) -> None:
    """
    Install a single stdout handler on the root logger.

    Args:
        debug: Readable output at DEBUG level instead of JSON at INFO
        level: Explicit level name overriding the debug default
    """
    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(ReadableFormatter() if debug else JsonFormatter())

    root_logger = logging.getLogger()
    root_logger.handlers = [handler]
    root_logger.setLevel(level or (logging.DEBUG if debug else logging.INFO))

    # uvicorn logs through our handler; access lines only on warnings
    logging.getLogger("uvicorn.access").setLevel(logging.WARNING)
    logging.getLogger("uvicorn.error").handlers = [handler]
