from __future__ import annotations

import logging

from app.domain.turn_status import TurnStatus, assert_valid_transition
from app.intent import conversation
from app.intent.contracts import WalletRequest
from app.intent.errors import IntentValidationError
from chain.networks import UnsupportedChainError, get_network, token_address
from wallet.provider import WalletProvider, Web3WalletProvider, resolve_ens
from wallet.transfer import TransferExecutor, TransferOutcome, TransferRequest

logger = logging.getLogger(__name__)


def build_transfer_request(request: WalletRequest, *, from_address: str) -> TransferRequest:
    try:
        network = get_network(request.chain_id)
    except UnsupportedChainError as e:
        raise IntentValidationError(str(e)) from e

    symbol = (request.token or network.native_symbol).upper()
    if symbol == network.native_symbol:
        return TransferRequest(
            chain_id=network.chain_id,
            from_address=from_address,
            recipient=request.recipient,
            amount=request.amount,
            token_symbol=symbol,
        )
    try:
        address = token_address(network.chain_id, symbol)
    except ValueError as e:
        raise IntentValidationError(str(e)) from e
    return TransferRequest(
        chain_id=network.chain_id,
        from_address=from_address,
        recipient=request.recipient,
        amount=request.amount,
        token_symbol=symbol,
        token_address=address,
    )


def _settle_conversation(conversation_id: str, outcome: TransferOutcome) -> None:
    state = conversation.get(conversation_id)
    if not state or state.get("status") != TurnStatus.AWAITING_WALLET_SIGNATURE.value:
        return
    if outcome.awaiting_confirmation:
        # the turn stays open; the transaction may still confirm
        conversation.append_message(
            conversation_id,
            "assistant",
            outcome.message,
            status=TurnStatus.AWAITING_WALLET_SIGNATURE.value,
            provisionalHash=outcome.provisional_hash,
        )
        return
    to = TurnStatus.DONE if outcome.confirmed else TurnStatus.FAILED
    assert_valid_transition(TurnStatus.AWAITING_WALLET_SIGNATURE, to)
    conversation.set_status(conversation_id, to.value)
    conversation.append_message(conversation_id, "assistant", outcome.message, status=to.value)


def execute_transfer(
    request: WalletRequest,
    *,
    provider: WalletProvider | None = None,
    executor: TransferExecutor | None = None,
    conversation_id: str | None = None,
    expected_sender: str | None = None,
) -> tuple[TransferRequest, TransferOutcome]:
    if executor is None:
        executor = TransferExecutor(
            provider or Web3WalletProvider(request.chain_id),
            resolve_name=resolve_ens,
        )

    accounts = executor.provider.request("eth_accounts", [])
    if not accounts:
        raise IntentValidationError("No wallet account is connected")
    if expected_sender and expected_sender.lower() != str(accounts[0]).lower():
        raise IntentValidationError("userAddress does not match the connected wallet account")

    transfer = build_transfer_request(request, from_address=accounts[0])
    outcome = executor.execute(transfer)
    if conversation_id:
        _settle_conversation(conversation_id, outcome)
    return transfer, outcome
