from __future__ import annotations

import logging
from typing import Any, Callable, Protocol

from app.intent.contracts import IntentStep, OperationName, ParsedOperation, StepStatus
from app.intent.errors import DispatchError
from chain.networks import chain_display_name

logger = logging.getLogger(__name__)

VERIFICATION_HINT = (
    "Borrowing requires a verified identity. Complete identity verification, then try again."
)


class Integration(Protocol):
    def deposit(self, chain_id: int, token: str, amount: Any) -> dict[str, Any]: ...
    def withdraw(self, chain_id: int, token: str, amount: Any) -> dict[str, Any]: ...
    def borrow(self, chain_id: int, token: str, amount: Any) -> dict[str, Any]: ...
    def repay(self, chain_id: int, token: str, amount: Any) -> dict[str, Any]: ...
    def stake(self, chain_id: int, pool_id: int, amount: Any) -> dict[str, Any]: ...
    def unstake(self, chain_id: int, pool_id: int, amount: Any) -> dict[str, Any]: ...
    def get_token_balance(self, chain_id: int, token: str, owner: str | None = None) -> dict[str, Any]: ...
    def get_pool_information(self, chain_id: int) -> dict[str, Any]: ...
    def get_swap_quote(self, chain_id: int, from_token: str, to_token: str, amount: Any) -> dict[str, Any]: ...
    def swap(self, chain_id: int, from_token: str, to_token: str, amount: Any) -> dict[str, Any]: ...
    def held_tokens(self, chain_id: int, owner: str | None = None) -> list[str]: ...


VerificationCheck = Callable[[str], bool]

# operation -> (past tense, preposition)
_LENDING_VERBS = {
    OperationName.DEPOSIT: ("Deposited", "on"),
    OperationName.WITHDRAW: ("Withdrew", "from"),
    OperationName.BORROW: ("Borrowed", "on"),
    OperationName.REPAY: ("Repaid", "on"),
}


def _unwrap(result: Any) -> dict[str, Any]:
    if not isinstance(result, dict):
        raise DispatchError("Integration returned an unexpected result", details={"result": repr(result)})
    if not result.get("success"):
        raise DispatchError(str(result.get("error") or result.get("message") or "Transaction failed"), details=result)
    return result


def _complete(description: str, chain: str, tx_hash: str | None = None) -> IntentStep:
    return IntentStep(
        description=description,
        chain=chain,
        transaction_hash=tx_hash or None,
        status=StepStatus.COMPLETE,
    )


def _failed(description: str, chain: str) -> IntentStep:
    return IntentStep(description=description, chain=chain, status=StepStatus.FAILED)


def describe(op: ParsedOperation) -> str:
    """Present-tense summary used for failure and pending messages."""
    chain = chain_display_name(op.chain_id)
    token = op.token or "tokens"
    if op.operation in _LENDING_VERBS:
        prep = _LENDING_VERBS[op.operation][1]
        return f"{op.operation.value} {op.amount} {token} {prep} {chain}"
    if op.operation == OperationName.STAKE:
        return f"stake {op.amount} {token} in pool {op.pool_id} on {chain}"
    if op.operation == OperationName.UNSTAKE:
        return f"unstake {op.amount} {token} from pool {op.pool_id} on {chain}"
    if op.operation == OperationName.BALANCE_OF:
        return f"check {token} balance on {chain}"
    if op.operation == OperationName.GET_POOL_INFORMATION:
        return f"fetch pool information on {chain}"
    if op.operation == OperationName.SWAP:
        verb = "quote" if op.quote_only else "swap"
        return f"{verb} {op.amount} {op.from_token} for {op.to_token} on {chain}"
    if op.operation == OperationName.TRANSFER:
        return f"send {op.amount} {token} to {op.recipient} on {chain}"
    return f"run {op.operation.value} on {chain}"


def _run(
    op: ParsedOperation,
    integration: Integration,
    *,
    user_address: str | None,
    is_verified: VerificationCheck | None,
) -> IntentStep:
    chain = chain_display_name(op.chain_id)

    if op.operation in _LENDING_VERBS:
        if op.operation == OperationName.BORROW and user_address and is_verified is not None:
            if not is_verified(user_address):
                return _failed(f"Failed to {describe(op)}. {VERIFICATION_HINT}", chain)
        method = getattr(integration, op.operation.value)
        result = _unwrap(method(op.chain_id, op.token, op.amount))
        verb, prep = _LENDING_VERBS[op.operation]
        return _complete(f"{verb} {op.amount} {op.token} {prep} {chain}.", chain, result.get("transactionHash"))

    if op.operation == OperationName.STAKE:
        result = _unwrap(integration.stake(op.chain_id, op.pool_id, op.amount))
        token = f" {op.token}" if op.token else ""
        return _complete(
            f"Staked {op.amount}{token} in pool {op.pool_id} on {chain}.",
            chain,
            result.get("transactionHash"),
        )

    if op.operation == OperationName.UNSTAKE:
        result = _unwrap(integration.unstake(op.chain_id, op.pool_id, op.amount))
        token = f" {op.token}" if op.token else ""
        return _complete(
            f"Unstaked {op.amount}{token} from pool {op.pool_id} on {chain}.",
            chain,
            result.get("transactionHash"),
        )

    if op.operation == OperationName.BALANCE_OF:
        result = _unwrap(integration.get_token_balance(op.chain_id, op.token, user_address or None))
        formatted = result.get("formatted") or result.get("balance") or "0"
        return _complete(f"Your {op.token} balance on {chain} is {formatted} {op.token}.", chain)

    if op.operation == OperationName.GET_POOL_INFORMATION:
        result = _unwrap(integration.get_pool_information(op.chain_id))
        count = result.get("poolCount", len(result.get("pools") or []))
        active = sum(1 for p in (result.get("pools") or []) if p.get("isActive"))
        return _complete(f"Found {count} staking pools on {chain} ({active} active).", chain)

    if op.operation == OperationName.SWAP:
        if op.quote_only:
            result = _unwrap(integration.get_swap_quote(op.chain_id, op.from_token, op.to_token, op.amount))
            return _complete(
                f"Quote: {op.amount} {op.from_token} ≈ {result.get('expectedOutput')} {op.to_token} on {chain}.",
                chain,
            )
        result = _unwrap(integration.swap(op.chain_id, op.from_token, op.to_token, op.amount))
        return _complete(
            f"Swapped {op.amount} {op.from_token} for {op.to_token} on {chain}.",
            chain,
            result.get("transactionHash"),
        )

    if op.operation == OperationName.TRANSFER:
        return IntentStep(
            description=f"Awaiting wallet signature to {describe(op)}.",
            chain=chain,
            status=StepStatus.PENDING,
        )

    return _failed(f"Unsupported operation: {op.operation.value}.", chain)


def execute(
    op: ParsedOperation,
    integration: Integration,
    *,
    user_address: str | None = None,
    is_verified: VerificationCheck | None = None,
) -> IntentStep:
    """
    Dispatch one operation and normalise the outcome into an IntentStep.
    Never raises: failures come back as failed steps.
    """
    chain = chain_display_name(op.chain_id)
    missing = op.missing_slots()
    if missing:
        return _failed(f"Cannot {describe(op)}: missing {', '.join(missing)}.", chain)

    try:
        step = _run(op, integration, user_address=user_address, is_verified=is_verified)
    except DispatchError as e:
        logger.warning("dispatch failed operation=%s chain_id=%s error=%s", op.operation.value, op.chain_id, e)
        return _failed(f"Failed to {describe(op)}: {e}", chain)
    except Exception as e:
        logger.exception("dispatch raised operation=%s chain_id=%s", op.operation.value, op.chain_id)
        return _failed(f"Failed to {describe(op)}: {e}", chain)

    if step.status == StepStatus.COMPLETE:
        logger.info("dispatch complete operation=%s chain_id=%s", op.operation.value, op.chain_id)
    return step
