from __future__ import annotations

import logging

from langchain_core.runnables import RunnableConfig

from app.domain.turn_status import TurnStatus
from app.intent.errors import PlanGenerationError
from app.intent.planner import generate_plan
from graph.artifacts import append_timeline_event, operation_entry, step_entry
from graph.state import IntentState
from graph.utils.needs_input import set_needs_input
from graph.utils.routing import advance

logger = logging.getLogger(__name__)


def plan_node(state: IntentState, config: RunnableConfig) -> IntentState:
    advance(state, TurnStatus.PLANNING)
    providers = config["configurable"].get("plan_providers")
    utterance = state.artifacts.get("normalized_intent") or state.intent

    try:
        draft, failures = generate_plan(utterance, state.chain_id, providers=providers)
    except PlanGenerationError as e:
        state.artifacts["fatal_error"] = {"step": "PLAN", "message": str(e)}
        append_timeline_event(state, {"step": "PLAN", "status": "FAILED", "summary": str(e)})
        return state

    state.artifacts["plan_source"] = draft.source
    state.artifacts["plan_failures"] = [{"source": f.source, "error": f.error} for f in failures]

    # A model-produced operation with a hole is asked about before anything runs.
    incomplete = next((op for op in draft.operations if op.missing_slots()), None)
    if incomplete is not None:
        set_needs_input(
            state,
            missing=incomplete.missing_slots(),
            operation=incomplete.model_dump(by_alias=True, mode="json"),
        )
        append_timeline_event(
            state,
            {"step": "PLAN", "status": "DONE", "summary": f"{draft.source}: needs input"},
        )
        return state

    state.artifacts["entries"] = [
        operation_entry(entry.operation) if entry.operation is not None else step_entry(entry.step)
        for entry in draft.entries
    ]
    append_timeline_event(
        state,
        {
            "step": "PLAN",
            "status": "DONE",
            "summary": f"{draft.source}: {len(draft.entries)} step(s)",
        },
    )
    return state
