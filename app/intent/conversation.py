from __future__ import annotations

import threading
import time
from typing import Any


_STORE: dict[str, dict[str, Any]] = {}
# reentrant: the read-modify-write helpers call get/set while holding it
_LOCK = threading.RLock()

MAX_MESSAGES = 50


def _now() -> float:
    return time.time()


def _evict_expired(now: float) -> None:
    for key, state in list(_STORE.items()):
        expires_at = state.get("expires_at")
        if expires_at is not None and expires_at <= now:
            _STORE.pop(key, None)


def get(conversation_id: str) -> dict[str, Any] | None:
    with _LOCK:
        state = _STORE.get(conversation_id)
        if not state:
            return None
        expires_at = state.get("expires_at")
        if expires_at is not None and expires_at <= _now():
            _STORE.pop(conversation_id, None)
            return None
        return state


def set(
    conversation_id: str,
    state: dict[str, Any],
    *,
    ttl_seconds: int = 1200,
) -> None:
    now = _now()
    state = dict(state)
    state["updated_at"] = now
    state["expires_at"] = now + ttl_seconds
    with _LOCK:
        _evict_expired(now)
        _STORE[conversation_id] = state


def append_message(conversation_id: str, role: str, content: str, **extra: Any) -> None:
    with _LOCK:
        state = dict(get(conversation_id) or {})
        messages = list(state.get("messages") or [])
        messages.append({"role": role, "content": content, "timestamp": _now(), **extra})
        state["messages"] = messages[-MAX_MESSAGES:]
        set(conversation_id, state)


def park_operation(conversation_id: str, operation: dict[str, Any], missing: list[str]) -> None:
    """Hold an operation until the user supplies the missing slot(s)."""
    with _LOCK:
        state = dict(get(conversation_id) or {})
        state["pending"] = {"operation": operation, "missing": list(missing)}
        set(conversation_id, state)


def pop_pending(conversation_id: str) -> dict[str, Any] | None:
    """Consume the parked operation; concurrent callers get it at most once."""
    with _LOCK:
        state = get(conversation_id)
        if not state or not state.get("pending"):
            return None
        state = dict(state)
        pending = state.pop("pending")
        set(conversation_id, state)
        return pending


def set_status(conversation_id: str, status: str) -> None:
    with _LOCK:
        state = dict(get(conversation_id) or {})
        state["status"] = status
        set(conversation_id, state)
