"""Structured logging."""

import hashlib
import json
import logging
import sys
from datetime import datetime, timezone
from typing import Any, Dict, Optional

_NOISY_LOGGERS = ("httpx", "httpcore")


class JsonFormatter(logging.Formatter):
    """One JSON object per record; `fields` passed through `extra` are merged in."""

    def format(self, record: logging.LogRecord) -> str:
        log_data: Dict[str, Any] = {
            "timestamp": datetime.fromtimestamp(record.created, timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        log_data.update(getattr(record, "fields", {}))
        if record.exc_info:
            log_data["exc_info"] = self.formatException(record.exc_info)
        return json.dumps(log_data, default=str)


class TextFormatter(logging.Formatter):
    """Plain text for development, with structured fields appended as key=value."""

    def __init__(self):
        super().__init__("%(asctime)s %(levelname)s %(name)s: %(message)s")

    def format(self, record: logging.LogRecord) -> str:
        line = super().format(record)
        fields = getattr(record, "fields", None)
        if fields:
            line += " " + " ".join(f"{k}={v}" for k, v in fields.items())
        return line


def setup_logging(level: str = "INFO", json_output: bool = True) -> None:
    """Configure the root logger. JSON lines when json_output, plain text otherwise."""
    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(JsonFormatter() if json_output else TextFormatter())
    logging.basicConfig(level=level, handlers=[handler], force=True)
    for name in _NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)


def token_fingerprint(token: Optional[str]) -> Optional[str]:
    """Short, non-reversible handle for a token so log lines can be correlated."""
    if not token:
        return None
    return hashlib.sha256(token.encode("utf-8")).hexdigest()[:12]


class StructuredLogger:
    """Logs an event name with its fields attached to the record."""

    def __init__(self, name: str = __name__):
        self.logger = logging.getLogger(name)

    def log_event(self, event: str, level: int = logging.INFO, **fields: Any) -> None:
        fields = {k: v for k, v in fields.items() if v is not None}
        self.logger.log(level, event, extra={"fields": fields})
