from __future__ import annotations

import logging
from typing import Any

from langchain_core.runnables import RunnableConfig

from app.domain.turn_status import TurnStatus
from app.intent.contracts import NeedsDisambiguation, ParsedOperation
from app.intent.extractor import extract
from graph.artifacts import append_timeline_event, operation_entry
from graph.state import IntentState
from graph.utils.needs_input import set_needs_input
from graph.utils.routing import advance

logger = logging.getLogger(__name__)


def _held_tokens(config: RunnableConfig, user_address: str | None):
    integration: Any = config["configurable"].get("integration")
    if integration is None:
        return None

    def _lookup(chain_id: int) -> list[str]:
        return integration.held_tokens(chain_id, user_address or None)

    return _lookup


def extract_node(state: IntentState, config: RunnableConfig) -> IntentState:
    advance(state, TurnStatus.EXTRACTING)

    utterance = state.artifacts.get("normalized_intent") or state.intent
    result = extract(
        utterance,
        chain_id=state.chain_id,
        held_tokens=_held_tokens(config, state.user_address),
    )

    if isinstance(result, NeedsDisambiguation):
        set_needs_input(
            state,
            missing=[result.missing],
            operation=result.operation.model_dump(by_alias=True, mode="json"),
            choices=result.choices,
        )
        summary = f"needs {result.missing}"
    elif isinstance(result, ParsedOperation):
        missing = result.missing_slots()
        if missing:
            set_needs_input(
                state,
                missing=missing,
                operation=result.model_dump(by_alias=True, mode="json"),
            )
            summary = f"needs {', '.join(missing)}"
        else:
            state.artifacts["entries"] = [operation_entry(result)]
            state.artifacts["plan_source"] = "extractor"
            summary = result.operation.value
    else:
        summary = "no match"

    append_timeline_event(state, {"step": "EXTRACT", "status": "DONE", "summary": summary})
    return state
