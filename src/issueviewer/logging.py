"""Structured JSON logging for issueviewer.

Writes one JSON object per line to stderr, or to a rotating log file
(5MB, 3 backups) when a path is given.  Stdout is never used: the MCP stdio
transport owns it.
"""

from __future__ import annotations

import json
import logging
import os
import sys
import threading
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Any

_LOGGER_NAME = "issueviewer"
_setup_lock = threading.Lock()
_MAX_BYTES = 5 * 1024 * 1024  # 5MB
_BACKUP_COUNT = 3
_REDACTED_KEYS = frozenset({"password", "token"})


class _JsonFormatter(logging.Formatter):
    """Format log records as single-line JSON."""

    def format(self, record: logging.LogRecord) -> str:
        entry: dict[str, Any] = {
            "ts": self.formatTime(record, datefmt="%Y-%m-%dT%H:%M:%S"),
            "level": record.levelname,
            "logger": record.name,
            "msg": record.getMessage(),
        }
        if hasattr(record, "tool"):
            entry["tool"] = record.tool
        if hasattr(record, "args_data"):
            entry["args"] = redact(record.args_data)
        if hasattr(record, "duration_ms"):
            entry["duration_ms"] = record.duration_ms
        if hasattr(record, "is_error"):
            entry["is_error"] = record.is_error
        if hasattr(record, "code"):
            entry["code"] = record.code
        if hasattr(record, "error"):
            entry["error"] = record.error
        if record.exc_info and record.exc_info[1]:
            entry["exception"] = str(record.exc_info[1])
        return json.dumps(entry, default=str)


def redact(data: Any) -> Any:
    """Mask credential-looking values in a logged argument mapping."""
    if not isinstance(data, dict):
        return data
    return {k: ("***" if k.lower() in _REDACTED_KEYS else v) for k, v in data.items()}


def _handler_target(handler: logging.Handler) -> str | None:
    if isinstance(handler, RotatingFileHandler):
        return handler.baseFilename
    if isinstance(handler, logging.StreamHandler) and getattr(handler, "_issueviewer", False):
        return "<stderr>"
    return None


def setup_logging(log_file: Path | None = None, level: int = logging.INFO) -> logging.Logger:
    """Attach a JSON-lines handler to the ``issueviewer`` logger.

    Calling again with the same target is a no-op; a different target
    replaces the previous handler.
    """
    logger = logging.getLogger(_LOGGER_NAME)
    target = os.path.abspath(str(log_file)) if log_file is not None else "<stderr>"

    with _setup_lock:
        for h in logger.handlers[:]:
            existing = _handler_target(h)
            if existing is None:
                continue
            if existing == target:
                logger.setLevel(level)
                return logger
            # Different target: drop the stale handler.
            logger.removeHandler(h)
            h.close()

        handler: logging.Handler
        if log_file is not None:
            handler = RotatingFileHandler(str(log_file), maxBytes=_MAX_BYTES, backupCount=_BACKUP_COUNT)
        else:
            handler = logging.StreamHandler(sys.stderr)
            handler._issueviewer = True  # type: ignore[attr-defined]
        handler.setFormatter(_JsonFormatter())
        logger.addHandler(handler)
        logger.setLevel(level)
    return logger
