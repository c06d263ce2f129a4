from __future__ import annotations

import logging
import re
import uuid
from typing import Any, Callable, Iterable

from pydantic import ValidationError
from sqlalchemy.orm import Session

from app.core.context import set_conversation_id
from app.intent import conversation, recorder, verification
from app.intent.contracts import (
    IntentExecutionPlan,
    IntentProcessResult,
    IntentStep,
    IntentTurnRequest,
    ParsedOperation,
    WalletRequest,
)
from app.intent.errors import IntentValidationError
from chain.networks import UnsupportedChainError, get_network
from graph.artifacts import operation_entry
from graph.graph import run_graph
from graph.state import IntentState

logger = logging.getLogger(__name__)

_AMOUNT_RE = re.compile(r"\d+(?:\.\d+)?")
_WORD_RE = re.compile(r"[A-Za-z]+")
_RECIPIENT_RE = re.compile(r"(0x[0-9a-fA-F]+|[\w-]+(?:\.[\w-]+)+)")


def _known_symbols(chain_id: int) -> set[str]:
    try:
        network = get_network(chain_id)
    except UnsupportedChainError:
        return set()
    return set(network.tokens) | {network.native_symbol}


def _slot_value(slot: str, text: str, chain_id: int) -> str | None:
    if slot == "amount":
        match = _AMOUNT_RE.search(text)
        return match.group(0) if match else None
    if slot == "recipient":
        match = _RECIPIENT_RE.search(text)
        return match.group(1) if match else None
    if slot in {"token", "fromToken"}:
        words = _WORD_RE.findall(text)
        if len(words) == 1:
            return words[0].upper()
        known = _known_symbols(chain_id)
        return next((w.upper() for w in words if w.upper() in known), None)
    return None


def fill_pending(pending: dict[str, Any], utterance: str) -> ParsedOperation | None:
    """
    Complete a parked operation from the user's answer. Returns None when the
    answer does not supply every missing slot, in which case the utterance is
    treated as a new intent.
    """
    operation = dict(pending.get("operation") or {})
    chain_id = operation.get("chainId")
    for slot in pending.get("missing") or []:
        value = _slot_value(slot, utterance.strip(), chain_id)
        if value is None:
            return None
        operation[slot] = value
    try:
        op = ParsedOperation.model_validate(operation)
    except ValidationError:
        return None
    return None if op.missing_slots() else op


def _default_recorder(db: Session | None) -> Callable[[dict[str, Any]], Any] | None:
    if db is None:
        return None
    return lambda payload: recorder.record(db, payload)


def process_intent(
    request: IntentTurnRequest,
    *,
    db: Session | None,
    integration: Any,
    recorder_fn: Callable[[dict[str, Any]], Any] | None = None,
    plan_providers: Iterable[Any] | None = None,
) -> IntentProcessResult:
    """
    Run one conversation turn through the pipeline graph. Dispatch and storage
    failures come back inside the result; only validation errors raise.
    """
    intent = (request.intent or "").strip()
    if not intent:
        raise IntentValidationError("Intent is required")

    conversation_id = request.conversation_id or str(uuid.uuid4())
    set_conversation_id(conversation_id)
    try:
        return _run_turn(
            request,
            intent=intent,
            conversation_id=conversation_id,
            db=db,
            integration=integration,
            recorder_fn=recorder_fn,
            plan_providers=plan_providers,
        )
    finally:
        set_conversation_id(None)


def _run_turn(
    request: IntentTurnRequest,
    *,
    intent: str,
    conversation_id: str,
    db: Session | None,
    integration: Any,
    recorder_fn: Callable[[dict[str, Any]], Any] | None,
    plan_providers: Iterable[Any] | None,
) -> IntentProcessResult:
    conversation.append_message(conversation_id, "user", intent)

    state = IntentState(
        intent=intent,
        chain_id=request.chain_id,
        user_address=request.user_address or None,
        conversation_id=conversation_id,
    )

    pending = conversation.pop_pending(conversation_id) if request.conversation_id else None
    if pending:
        resumed = fill_pending(pending, intent)
        if resumed is not None:
            state.artifacts["entries"] = [operation_entry(resumed)]
            state.artifacts["plan_source"] = "conversation"
            logger.info("resuming parked operation conversation_id=%s", conversation_id)

    result = run_graph(
        state,
        integration=integration,
        recorder=recorder_fn if recorder_fn is not None else _default_recorder(db),
        plan_providers=plan_providers,
        is_verified=verification.checker(db) if db is not None else None,
    )

    artifacts = result.artifacts
    steps = [IntentStep.model_validate(s) for s in artifacts.get("steps") or []]
    needs = artifacts.get("needs_input") or {}
    wallet_request = artifacts.get("wallet_request")
    message = artifacts.get("assistant_message") or ""

    conversation.append_message(conversation_id, "assistant", message, status=result.status.value)
    conversation.set_status(conversation_id, result.status.value)

    return IntentProcessResult(
        status=result.status.value,
        message=message,
        conversation_id=conversation_id,
        plan=IntentExecutionPlan(steps=steps) if steps else None,
        suggestions=artifacts.get("suggestions") or [],
        questions=needs.get("questions") or [],
        choices=needs.get("choices") or [],
        wallet_request=WalletRequest.model_validate(wallet_request) if wallet_request else None,
        source=artifacts.get("plan_source"),
    )


def submit_intent(
    db: Session,
    *,
    wallet_address: str,
    intent_plan: IntentExecutionPlan,
    original_intent: str,
) -> str:
    if not wallet_address:
        raise IntentValidationError("walletAddress is required")
    payload = recorder.build_record(
        user_address=wallet_address,
        description=original_intent,
        steps=[step.public_dict() for step in intent_plan.steps],
    )
    return recorder.store(db, payload)


def store_intent(
    db: Session,
    *,
    user_address: str,
    description: str,
    chain: str,
    type: str,
    steps: list[dict[str, Any]],
) -> str:
    if not user_address or not description:
        raise IntentValidationError("userAddress and description are required")
    return recorder.store(
        db,
        {
            "user_address": user_address,
            "description": description,
            "chain": chain,
            "type": type,
            "steps": steps,
        },
    )


def intent_history(db: Session, user_address: str) -> list[dict[str, Any]]:
    if not user_address:
        raise IntentValidationError("User address is required")
    return recorder.fetch(db, user_address)
