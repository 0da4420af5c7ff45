from __future__ import annotations

import json
from datetime import datetime, timezone
from queue import Queue
from threading import Lock
from typing import Any

# execution_id -> subscriber queues (one per open SSE stream)
_subscribers: dict[str, list[Queue[dict[str, Any]]]] = {}
_lock = Lock()

DONE_EVENT = "done"


def _utcnow_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


def publish_event(execution_id: str, event: dict[str, Any]) -> None:
    event.setdefault("runId", execution_id)
    event.setdefault("timestamp", _utcnow_iso())
    with _lock:
        queues = list(_subscribers.get(execution_id, []))
    for queue in queues:
        queue.put(event)


def subscribe(execution_id: str) -> Queue[dict[str, Any]]:
    queue: Queue[dict[str, Any]] = Queue()
    with _lock:
        _subscribers.setdefault(execution_id, []).append(queue)
    return queue


def unsubscribe(execution_id: str, queue: Queue[dict[str, Any]]) -> None:
    with _lock:
        queues = _subscribers.get(execution_id, [])
        if queue in queues:
            queues.remove(queue)
        if not queues:
            _subscribers.pop(execution_id, None)


def sse_event(payload: dict[str, Any]) -> str:
    """Payloads must already be JSON-safe (serialize_for_json)."""
    return f"data: {json.dumps(payload, ensure_ascii=True)}\n\n"


def is_done(event: dict[str, Any]) -> bool:
    return event.get("type") == DONE_EVENT
