from __future__ import annotations

import logging

from langchain_core.runnables import RunnableConfig

from app.intent.recorder import build_record
from graph.artifacts import append_timeline_event
from graph.state import IntentState

logger = logging.getLogger(__name__)


def record_node(state: IntentState, config: RunnableConfig) -> IntentState:
    """Hands the finished plan to the injected recorder. Storage never fails the turn."""
    recorder = config["configurable"].get("recorder")
    steps = state.artifacts.get("steps") or []

    if recorder is None or not state.user_address:
        return state
    if not any(s.get("status") == "complete" for s in steps):
        return state

    payload = build_record(
        user_address=state.user_address,
        description=state.intent,
        steps=steps,
    )
    try:
        recorder(payload)
    except Exception as e:
        logger.warning("intent recorder raised user=%s error=%s", state.user_address, e)
        state.artifacts["record_error"] = str(e)
        append_timeline_event(state, {"step": "RECORD", "status": "FAILED", "summary": str(e)})
        return state

    state.artifacts["recorded"] = True
    append_timeline_event(state, {"step": "RECORD", "status": "DONE", "summary": payload["type"]})
    return state
