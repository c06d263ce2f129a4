from __future__ import annotations

import logging

from langchain_core.runnables import RunnableConfig

from app.domain.turn_status import TurnStatus
from app.intent.classifier import REFUSAL_MESSAGE, SUGGESTED_ACTIONS, WELCOME_MESSAGE, classify
from app.intent.contracts import Classification
from app.intent.errors import ClassificationShortCircuit
from graph.artifacts import append_timeline_event
from graph.state import IntentState
from graph.utils.routing import advance

logger = logging.getLogger(__name__)


def _short_circuit(classification: Classification) -> ClassificationShortCircuit | None:
    if classification == Classification.GREETING:
        return ClassificationShortCircuit(classification.value, WELCOME_MESSAGE)
    if classification == Classification.OFF_TOPIC:
        return ClassificationShortCircuit(classification.value, REFUSAL_MESSAGE)
    return None


def classify_node(state: IntentState, config: RunnableConfig) -> IntentState:
    advance(state, TurnStatus.CLASSIFYING)

    normalized = " ".join(state.intent.split())
    classification = classify(normalized)
    state.artifacts["normalized_intent"] = normalized
    state.artifacts["classification"] = classification.value

    exit_ = _short_circuit(classification)
    if exit_ is not None:
        state.artifacts["short_circuit"] = {
            "kind": exit_.kind,
            "message": exit_.reply,
            "suggestions": list(SUGGESTED_ACTIONS),
        }
        logger.info("turn short-circuited classification=%s", classification.value)

    append_timeline_event(
        state,
        {"step": "CLASSIFY", "status": "DONE", "summary": classification.value},
    )
    return state
