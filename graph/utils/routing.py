from __future__ import annotations

from app.domain.turn_status import TurnStatus, assert_valid_transition
from graph.state import IntentState


def route_post_step(state: IntentState, default_next: str) -> str:
    artifacts = state.artifacts
    if artifacts.get("fatal_error") or artifacts.get("short_circuit"):
        return "FINALIZE"
    if artifacts.get("needs_input"):
        return "CLARIFY"
    return default_next


def advance(state: IntentState, to: TurnStatus) -> None:
    """Move the turn to `to`, rejecting transitions the table does not allow."""
    if state.status == to:
        return
    assert_valid_transition(state.status, to)
    history = state.artifacts.setdefault("status_history", [state.status.value])
    history.append(to.value)
    state.status = to
