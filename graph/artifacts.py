from __future__ import annotations

from typing import Any, Dict

from app.intent.contracts import IntentStep, ParsedOperation
from graph.state import IntentState


def append_timeline_event(state: IntentState, event: Dict[str, Any]) -> None:
    timeline = state.artifacts.get("timeline")
    if not isinstance(timeline, list):
        timeline = []
    timeline.append(event)
    state.artifacts["timeline"] = timeline


def operation_entry(op: ParsedOperation) -> Dict[str, Any]:
    return {"operation": op.model_dump(by_alias=True, mode="json")}


def step_entry(step: IntentStep) -> Dict[str, Any]:
    return {"step": step.public_dict()}


def entry_operation(entry: Dict[str, Any]) -> ParsedOperation | None:
    raw = entry.get("operation")
    return ParsedOperation.model_validate(raw) if isinstance(raw, dict) else None


def entry_step(entry: Dict[str, Any]) -> IntentStep | None:
    raw = entry.get("step")
    return IntentStep.model_validate(raw) if isinstance(raw, dict) else None
