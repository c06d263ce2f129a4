from __future__ import annotations

import logging

from langchain_core.runnables import RunnableConfig

from app.domain.turn_status import TurnStatus
from app.intent.classifier import SUGGESTED_ACTIONS
from graph.artifacts import append_timeline_event
from graph.state import IntentState
from graph.utils.routing import advance

logger = logging.getLogger(__name__)


def _clarify_message(needs: dict) -> str:
    questions = needs.get("questions") or []
    choices = needs.get("choices") or []
    if len(questions) == 1:
        message = questions[0]
    else:
        message = "I need a bit more detail:\n" + "\n".join(f"- {q}" for q in questions)
    if choices:
        message += "\nOptions: " + ", ".join(choices)
    return message


def _plan_message(steps: list[dict], wallet_request: dict | None, source: str | None) -> tuple[str, TurnStatus]:
    statuses = [s.get("status") for s in steps]

    if wallet_request:
        token = wallet_request.get("token") or "the native token"
        return (
            f"Please confirm the transfer of {wallet_request.get('amount')} {token} "
            f"to {wallet_request.get('recipient')} in your wallet.",
            TurnStatus.AWAITING_WALLET_SIGNATURE,
        )

    if steps and all(s == "failed" for s in statuses):
        first = steps[0].get("description") or "The request failed."
        return (
            f"I couldn't complete your request. {first} "
            "You can retry, adjust the amount, or switch network.",
            TurnStatus.FAILED,
        )

    if "complete" not in statuses:
        # descriptive plan from a fallback tier, nothing was executed
        return (
            "Here's a suggested execution plan. These steps were not executed automatically.",
            TurnStatus.DONE,
        )

    if "failed" in statuses:
        return ("Some steps completed, but a later step failed. Review the plan below.", TurnStatus.DONE)

    if source == "extractor" and len(steps) == 1:
        return (steps[0].get("description") or "Done.", TurnStatus.DONE)
    return ("Done! Here's what I executed.", TurnStatus.DONE)


def finalize_node(state: IntentState, config: RunnableConfig) -> IntentState:
    artifacts = state.artifacts
    suggestions: list[str] = []

    short_circuit = artifacts.get("short_circuit")
    fatal = artifacts.get("fatal_error")
    needs = artifacts.get("needs_input")

    if isinstance(short_circuit, dict):
        message = short_circuit["message"]
        suggestions = list(short_circuit.get("suggestions") or [])
        to = TurnStatus.DONE
    elif isinstance(fatal, dict):
        message = (
            f"I couldn't build a plan for that request: {fatal.get('message')}. "
            "Please rephrase it or try again shortly."
        )
        to = TurnStatus.FAILED
    elif isinstance(needs, dict):
        message = _clarify_message(needs)
        to = TurnStatus.DONE
    else:
        steps = artifacts.get("steps")
        if steps is None:
            # plan node produced descriptive steps only
            steps = [e["step"] for e in artifacts.get("entries") or [] if "step" in e]
            artifacts["steps"] = steps
        message, to = _plan_message(steps, artifacts.get("wallet_request"), artifacts.get("plan_source"))
        if not steps:
            suggestions = list(SUGGESTED_ACTIONS)

    advance(state, to)
    artifacts["assistant_message"] = message
    artifacts["suggestions"] = suggestions
    append_timeline_event(state, {"step": "FINALIZE", "status": "DONE", "summary": to.value})
    logger.info("turn finalized status=%s", to.value)
    return state
