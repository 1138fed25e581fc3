"""Shared clock, id generation, and timestamp helpers."""

from __future__ import annotations

import itertools
import threading
import uuid
from collections.abc import Callable
from datetime import UTC, datetime

Clock = Callable[[], datetime]
IdFactory = Callable[[str], str]


def _now() -> datetime:
    return datetime.now(UTC)


def _to_iso(dt: datetime | None) -> str | None:
    return dt.isoformat() if dt is not None else None


def _parse_iso(ts: str | None) -> datetime | None:
    """Parse an ISO timestamp; naive values are taken as UTC."""
    if ts is None:
        return None
    dt = datetime.fromisoformat(ts)
    if dt.tzinfo is None:
        return dt.replace(tzinfo=UTC)
    return dt


def new_id(prefix: str) -> str:
    """Random short id, e.g. ``wf-3f9a0c12de``."""
    return f"{prefix}-{uuid.uuid4().hex[:10]}"


class SequentialIds:
    """Deterministic id factory: ``wf-1``, ``wf-2``, ``user-1``, ...

    Each prefix has its own counter. Safe to share between threads.
    """

    def __init__(self) -> None:
        self._counters: dict[str, itertools.count[int]] = {}
        self._lock = threading.Lock()

    def __call__(self, prefix: str) -> str:
        with self._lock:
            counter = self._counters.setdefault(prefix, itertools.count(1))
            return f"{prefix}-{next(counter)}"
