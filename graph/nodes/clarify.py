from __future__ import annotations

import logging

from langchain_core.runnables import RunnableConfig

from app.intent import conversation
from graph.artifacts import append_timeline_event
from graph.state import IntentState

logger = logging.getLogger(__name__)

_QUESTION_MAP = {
    "amount": "How much {token} would you like to {verb}?",
    "token": "Which token would you like to {verb}?",
    "fromToken": "Which token do you want to swap from?",
    "recipient": "Who should I send it to? Reply with a 0x address or an ENS name.",
}

_VERBS = {
    "balanceOf": "check the balance of",
    "getPoolInformation": "look up",
}


def _questions_from_missing(missing: list[str], operation: dict) -> list[str]:
    name = str(operation.get("operation") or "use")
    verb = _VERBS.get(name, name)
    token = operation.get("token") or ""
    questions: list[str] = []
    for slot in missing:
        template = _QUESTION_MAP.get(slot)
        if template:
            questions.append(" ".join(template.format(token=token, verb=verb).split()))
        else:
            questions.append(f"Please provide {slot}.")
    if not questions:
        questions.append("What additional details can you provide so I can continue?")
    return questions


def clarify_node(state: IntentState, config: RunnableConfig) -> IntentState:
    needs = state.artifacts.get("needs_input")
    if not isinstance(needs, dict):
        return state

    missing = needs.get("missing") or []
    operation = needs.get("operation") or {}
    questions = needs.get("questions") or []
    if not questions:
        questions = _questions_from_missing(missing, operation)
        needs["questions"] = questions
        state.artifacts["needs_input"] = needs

    if state.conversation_id and operation:
        conversation.park_operation(state.conversation_id, operation, missing)
        logger.info("parked operation conversation_id=%s missing=%s", state.conversation_id, missing)

    append_timeline_event(
        state,
        {"step": "CLARIFY", "status": "DONE", "summary": "Awaiting user input."},
    )
    return state
