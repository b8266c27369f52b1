"""Structured logging utilities."""

from __future__ import annotations

from collections.abc import Iterable
from datetime import datetime, timezone
import json
import logging
from typing import Any

# Third-party loggers that are chatty at INFO.
NOISY_LOGGERS = ("httpx", "httpcore", "openai", "uvicorn.access")


class JsonFormatter(logging.Formatter):
    """Render log records as one JSON object per line.

    Structured fields are passed as ``extra={"extra": {...}}`` and merged into
    the top level of the payload.
    """

    def __init__(self, service: str | None = None) -> None:
        super().__init__()
        self._service = service

    def format(self, record: logging.LogRecord) -> str:  # noqa: A003
        payload: dict[str, Any] = {
            "timestamp": datetime.fromtimestamp(record.created, timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        if self._service:
            payload["service"] = self._service
        if hasattr(record, "extra") and isinstance(record.extra, dict):
            payload.update(record.extra)
        if record.exc_info:
            payload["exc_info"] = self.formatException(record.exc_info)
        return json.dumps(payload, default=str)


def _level(level: int | str) -> int:
    if isinstance(level, int):
        return level
    resolved = logging.getLevelName(level.upper())
    return resolved if isinstance(resolved, int) else logging.INFO


def configure_logging(
    level: int | str = logging.INFO,
    *,
    service_name: str | None = None,
    quiet: Iterable[str] = NOISY_LOGGERS,
) -> None:
    """Configure JSON logging for the service."""
    handler = logging.StreamHandler()
    handler.setFormatter(JsonFormatter(service=service_name))
    logging.basicConfig(level=_level(level), handlers=[handler], force=True)
    for name in quiet:
        logging.getLogger(name).setLevel(logging.WARNING)
