"""Logging setup: one JSON object per line, correlated with the bound context."""

from __future__ import annotations

from collections.abc import Mapping
from datetime import datetime, timezone
import logging
from pathlib import Path
import sys
from typing import IO, Any

import orjson

from docs_site_search.observability.context import current_context


TEXT_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"
REDACTED = "[REDACTED]"
SENSITIVE_KEYS = frozenset({"password", "token", "api_key", "secret", "authorization"})

# Attributes every LogRecord has; anything else arrived through ``extra=``.
_RECORD_ATTRS = frozenset(vars(logging.LogRecord("", 0, "", 0, "", (), None))) | {"message", "asctime"}


def _clip(text: str, limit: int) -> str:
    return text if len(text) <= limit else text[:limit] + "..."


def _json_default(value: Any) -> Any:
    if isinstance(value, (set, frozenset)):
        try:
            return sorted(value)
        except TypeError:
            return list(value)
    if isinstance(value, Path):
        return str(value)
    if isinstance(value, (bytes, bytearray)):
        return value.decode("utf-8", errors="replace")
    if isinstance(value, BaseException):
        return f"{type(value).__name__}: {value}"
    return repr(value)


class JsonFormatter(logging.Formatter):
    """Render records as orjson lines.

    Fields bound with ``bind_context`` (``site``, ``operation``) and values
    passed through ``extra=`` (``document_id``, ``documents``) are merged into
    the entry. Credential-looking keys are masked and long values clipped.
    """

    max_message_length = 2000
    max_value_length = 500

    def format(self, record: logging.LogRecord) -> str:
        entry: dict[str, Any] = {
            "timestamp": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": _clip(record.getMessage(), self.max_message_length),
        }
        entry.update(current_context().as_dict())
        entry.update(self._extras(record))
        if record.exc_info:
            entry["exception"] = self.formatException(record.exc_info)
        return orjson.dumps(entry, default=_json_default).decode("utf-8")

    def _extras(self, record: logging.LogRecord) -> Mapping[str, Any]:
        extras: dict[str, Any] = {}
        for key, value in vars(record).items():
            if key in _RECORD_ATTRS or key.startswith("_"):
                continue
            if key.lower() in SENSITIVE_KEYS:
                extras[key] = REDACTED
            elif isinstance(value, str):
                extras[key] = _clip(value, self.max_value_length)
            else:
                extras[key] = value
        return extras


def _level(name: str) -> int:
    resolved = logging.getLevelName(name.upper())
    return resolved if isinstance(resolved, int) else logging.INFO


def configure_logging(
    level: str = "INFO",
    json_output: bool = True,
    *,
    logger_levels: Mapping[str, str] | None = None,
    stream: IO[str] | None = None,
) -> None:
    """Replace root handlers with a single stream handler.

    Args:
        level: Root log level name; unknown names fall back to INFO
        json_output: Emit ``JsonFormatter`` lines instead of plain text
        logger_levels: Per-logger level overrides (logger name -> level name)
        stream: Destination, stderr by default so stdout stays clean for CLI output
    """
    root = logging.getLogger()
    root.setLevel(_level(level))
    for existing in root.handlers[:]:
        root.removeHandler(existing)

    handler = logging.StreamHandler(stream or sys.stderr)
    handler.setFormatter(JsonFormatter() if json_output else logging.Formatter(TEXT_FORMAT))
    root.addHandler(handler)

    for logger_name, logger_level in (logger_levels or {}).items():
        logging.getLogger(logger_name).setLevel(_level(logger_level))
