"""Structured JSON logging for fieldflow.

Writes JSONL to .fieldflow/fieldflow.log with rotation (5MB, 3 backups).
"""

from __future__ import annotations

import json
import logging
import os
import threading
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Any

_LOG_FILENAME = "fieldflow.log"
_setup_lock = threading.Lock()
_MAX_BYTES = 5 * 1024 * 1024  # 5MB
_BACKUP_COUNT = 3

# Record attributes copied into the JSON entry when present: attribute -> key.
_EXTRA_FIELDS = {
    "command": "command",
    "args_data": "args",
    "duration_ms": "duration_ms",
    "error": "error",
}

# Pipeline context keys, each with the command arguments it may be read from
# when the record does not carry it directly.
_CONTEXT_FIELDS = {
    "workflow_id": ("workflow_id",),
    "user_id": ("user_id",),
    "request_id": ("request_id",),
    "stage": ("stage", "target_stage", "to_stage", "stage_id"),
}


class _JsonFormatter(logging.Formatter):
    """One JSON object per line, tagged with the workflow context it concerns."""

    def format(self, record: logging.LogRecord) -> str:
        entry: dict[str, Any] = {
            "ts": self.formatTime(record, datefmt="%Y-%m-%dT%H:%M:%S"),
            "level": record.levelname,
            "logger": record.name,
            "msg": record.getMessage(),
        }
        for attr, key in _EXTRA_FIELDS.items():
            if hasattr(record, attr):
                entry[key] = getattr(record, attr)
        entry.update(_pipeline_context(record))
        if record.exc_info and record.exc_info[1]:
            entry["exception"] = str(record.exc_info[1])
        return json.dumps(entry, default=str)


def _pipeline_context(record: logging.LogRecord) -> dict[str, Any]:
    """Pipeline ids for *record*. Explicit record attributes win over command args."""
    args = getattr(record, "args_data", None)
    if not isinstance(args, dict):
        args = {}
    context: dict[str, Any] = {}
    for key, arg_names in _CONTEXT_FIELDS.items():
        value = getattr(record, key, None)
        if value is None:
            value = next((args[name] for name in arg_names if args.get(name) is not None), None)
        if value is not None:
            context[key] = str(value)
    return context


def setup_logging(fieldflow_dir: Path) -> logging.Logger:
    """Attach the JSONL handler for *fieldflow_dir* to the ``fieldflow`` logger.

    Idempotent: calling again with the same directory is a no-op, and a
    handler for a different directory is replaced.
    """
    logger = logging.getLogger("fieldflow")
    log_path = fieldflow_dir / _LOG_FILENAME
    target_filename = os.path.abspath(str(log_path))

    with _setup_lock:
        for h in logger.handlers[:]:
            if not isinstance(h, RotatingFileHandler):
                continue
            if h.baseFilename == target_filename:
                return logger
            logger.removeHandler(h)
            h.close()

        handler = RotatingFileHandler(
            str(log_path),
            maxBytes=_MAX_BYTES,
            backupCount=_BACKUP_COUNT,
        )
        handler.setFormatter(_JsonFormatter())
        logger.addHandler(handler)
        logger.setLevel(logging.INFO)
    return logger


def teardown_logging() -> None:
    """Detach and close every file handler on the ``fieldflow`` logger."""
    logger = logging.getLogger("fieldflow")
    with _setup_lock:
        for h in logger.handlers[:]:
            if isinstance(h, RotatingFileHandler):
                logger.removeHandler(h)
                h.close()
