from __future__ import annotations

import logging
from typing import Any

from langchain_core.runnables import RunnableConfig

from app.domain.turn_status import TurnStatus
from app.intent import dispatcher
from app.intent.contracts import IntentStep, OperationName, StepStatus, WalletRequest
from chain.networks import chain_display_name
from graph.artifacts import append_timeline_event, entry_operation, entry_step
from graph.state import IntentState
from graph.utils.routing import advance

logger = logging.getLogger(__name__)


def _skipped(description: str, chain: str, reason: str) -> IntentStep:
    return IntentStep(
        description=f"Skipped: {description} ({reason}).",
        chain=chain,
        status=StepStatus.FAILED,
    )


def dispatch_node(state: IntentState, config: RunnableConfig) -> IntentState:
    """
    Runs plan entries strictly in order. Once a step fails, or a transfer
    hands off to the wallet, later entries are reported but not executed.
    """
    advance(state, TurnStatus.DISPATCHING)
    configurable = config["configurable"]
    integration: Any = configurable["integration"]
    is_verified = configurable.get("is_verified")

    steps: list[IntentStep] = []
    halt_reason: str | None = None

    for entry in state.artifacts.get("entries") or []:
        op = entry_operation(entry)
        if op is None:
            step = entry_step(entry)
            if step is None:
                continue
            if halt_reason and step.status != StepStatus.FAILED:
                step = _skipped(step.description.rstrip("."), step.chain, halt_reason)
        elif halt_reason:
            step = _skipped(dispatcher.describe(op), chain_display_name(op.chain_id), halt_reason)
        else:
            step = dispatcher.execute(
                op,
                integration,
                user_address=state.user_address,
                is_verified=is_verified,
            )
            if op.operation == OperationName.TRANSFER and step.status == StepStatus.PENDING:
                state.artifacts["wallet_request"] = WalletRequest(
                    chain_id=op.chain_id,
                    recipient=op.recipient or "",
                    amount=op.amount or "",
                    token=op.token,
                ).model_dump(by_alias=True)
                halt_reason = "waiting for the wallet signature on the transfer"

        steps.append(step)
        if step.status == StepStatus.FAILED and not halt_reason:
            halt_reason = "an earlier step failed"

    state.artifacts["steps"] = [s.public_dict() for s in steps]
    complete = sum(1 for s in steps if s.status == StepStatus.COMPLETE)
    append_timeline_event(
        state,
        {
            "step": "DISPATCH",
            "status": "DONE",
            "summary": f"{complete}/{len(steps)} step(s) complete",
        },
    )
    return state
