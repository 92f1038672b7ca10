"""Structured events for generation, cache and quota decisions.

Every event is logged as one ``TELEMETRY {...}`` JSON line and handed to the
in-process listeners registered for its name. Listener failures are logged
and never reach the request that emitted the event.
"""

from __future__ import annotations

import json
import logging
from contextlib import contextmanager
from dataclasses import dataclass, field
from datetime import date, datetime, timezone
from threading import RLock
from typing import Any, Callable, Dict, FrozenSet, Iterator, List, Optional, Tuple

logger = logging.getLogger("skillpath.telemetry")

SKILL_GRAPH_CACHE = "skill_graph_cache"
SKILL_GRAPH_GENERATION = "skill_graph_generation"
COURSE_SCAN = "course_scan"
QUOTA_REJECTED = "quota_rejected"
USAGE_RECORD_FAILED = "usage_record_failed"


@dataclass(frozen=True)
class TelemetryEvent:
    name: str
    payload: Dict[str, Any]
    emitted_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))


Listener = Callable[[TelemetryEvent], None]

# (listener, event names or None for all)
_listeners: List[Tuple[Listener, Optional[FrozenSet[str]]]] = []
_lock = RLock()


def register_listener(listener: Listener, *, events: Optional[List[str]] = None) -> Callable[[], None]:
    """Subscribe ``listener`` to every event, or only to ``events``; returns an unsubscribe callable."""
    entry = (listener, frozenset(events) if events else None)
    with _lock:
        _listeners.append(entry)

    def unsubscribe() -> None:
        with _lock:
            if entry in _listeners:
                _listeners.remove(entry)

    return unsubscribe


def clear_listeners() -> None:
    with _lock:
        _listeners.clear()


@contextmanager
def capture_events(*names: str) -> Iterator[List[TelemetryEvent]]:
    """Collect events emitted inside the block, optionally filtered by name."""
    captured: List[TelemetryEvent] = []
    unsubscribe = register_listener(captured.append, events=list(names) or None)
    try:
        yield captured
    finally:
        unsubscribe()


def _jsonable(value: Any) -> Any:
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    return value


def emit_event(name: str, **fields: Any) -> TelemetryEvent:
    payload = {key: _jsonable(value) for key, value in fields.items()}
    event = TelemetryEvent(name=name, payload=payload)

    with _lock:
        targets = [listener for listener, names in _listeners if names is None or name in names]

    for listener in targets:
        try:
            listener(event)
        except Exception:  # noqa: BLE001
            logger.exception("Telemetry listener failed for %s", name)

    logger.info(
        "TELEMETRY %s",
        json.dumps({"event": name, "at": event.emitted_at.isoformat(), **payload}, default=str),
    )
    return event


__all__ = [
    "COURSE_SCAN",
    "QUOTA_REJECTED",
    "SKILL_GRAPH_CACHE",
    "SKILL_GRAPH_GENERATION",
    "TelemetryEvent",
    "USAGE_RECORD_FAILED",
    "capture_events",
    "clear_listeners",
    "emit_event",
    "register_listener",
]
