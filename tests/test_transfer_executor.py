from __future__ import annotations

from wallet.provider import WalletRPCError
from wallet.transfer import (
    ERC20_GAS_LIMIT,
    TransferExecutor,
    TransferPhase,
    TransferRequest,
)

RECIPIENT = "0x2222222222222222222222222222222222222222"
TX_HASH = "0x" + "ab" * 32
USER = "0x1111111111111111111111111111111111111111"
TOKEN = "0x3333333333333333333333333333333333333333"


def _native(recipient=RECIPIENT, amount="1"):
    return TransferRequest(chain_id=44787, from_address=USER, recipient=recipient, amount=amount, token_symbol="CELO")


def _token(amount="5"):
    return TransferRequest(
        chain_id=44787,
        from_address=USER,
        recipient=RECIPIENT,
        amount=amount,
        token_symbol="USDC",
        token_address=TOKEN,
    )


def _executor(wallet, clock, **kwargs):
    return TransferExecutor(wallet, sleep=clock.sleep, clock=clock, **kwargs)


def test_native_transfer_confirms(fake_wallet, fake_clock):
    outcome = _executor(fake_wallet, fake_clock).execute(_native())

    assert outcome.confirmed
    assert outcome.tx_hash == TX_HASH
    assert outcome.attempts == 1
    assert outcome.phases == [
        TransferPhase.IDLE,
        TransferPhase.ADDRESS_RESOLVING,
        TransferPhase.BALANCE_CHECKING,
        TransferPhase.SIGNING,
        TransferPhase.SUBMITTED,
        TransferPhase.CONFIRMED,
    ]
    assert outcome.message == f"Sent 1 CELO to {RECIPIENT} on Celo."

    tx = fake_wallet.sent[0]
    assert tx["value"] == hex(10**18)
    assert "data" not in tx


def test_token_transfer_encodes_erc20_call(fake_wallet, fake_clock):
    outcome = _executor(fake_wallet, fake_clock).execute(_token())

    assert outcome.confirmed
    tx = fake_wallet.sent[0]
    assert tx["to"] == TOKEN
    assert tx["value"] == "0x0"
    assert tx["data"].startswith("0xa9059cbb")
    assert tx["gas"] == hex(ERC20_GAS_LIMIT)
    assert fake_wallet.methods()[:3] == ["eth_getBalance", "eth_call", "eth_gasPrice"]


def test_missing_recipient_fails_before_any_rpc(fake_wallet, fake_clock):
    outcome = _executor(fake_wallet, fake_clock).execute(_native(recipient="N/A"))

    assert outcome.phase == TransferPhase.FAILED
    assert outcome.error_code == "MISSING_RECIPIENT"
    assert fake_wallet.calls == []
    assert outcome.message.startswith("Transfer of 1 CELO failed.")


def test_malformed_address_is_invalid(fake_wallet, fake_clock):
    outcome = _executor(fake_wallet, fake_clock).execute(_native(recipient="0x1234"))

    assert outcome.error_code == "INVALID_ADDRESS"
    assert fake_wallet.calls == []


def test_plain_word_recipient_is_invalid(fake_wallet, fake_clock):
    outcome = _executor(fake_wallet, fake_clock).execute(_native(recipient="alice"))
    assert outcome.error_code == "INVALID_ADDRESS"


def test_name_is_resolved(fake_wallet, fake_clock):
    seen = []

    def resolve(name):
        seen.append(name)
        return RECIPIENT

    outcome = _executor(fake_wallet, fake_clock, resolve_name=resolve).execute(_native(recipient="alice.eth"))

    assert outcome.confirmed
    assert seen == ["alice.eth"]
    assert fake_wallet.sent[0]["to"] == RECIPIENT


def test_unresolvable_name(fake_wallet, fake_clock):
    outcome = _executor(fake_wallet, fake_clock, resolve_name=lambda name: None).execute(
        _native(recipient="nobody.eth")
    )
    assert outcome.error_code == "UNRESOLVABLE_NAME"


def test_native_balance_must_cover_gas_margin(make_wallet, fake_clock):
    # exactly the amount, nothing left for the gas margin
    wallet = make_wallet(native_balance=10**18)
    outcome = _executor(wallet, fake_clock).execute(_native(amount="1"))

    assert outcome.error_code == "INSUFFICIENT_FUNDS"
    assert wallet.sent == []


def test_token_balance_too_low(make_wallet, fake_clock):
    wallet = make_wallet(token_balance=10**18)
    outcome = _executor(wallet, fake_clock).execute(_token(amount="5"))

    assert outcome.error_code == "INSUFFICIENT_FUNDS"
    assert "eth_gasPrice" not in wallet.methods()


def test_token_transfer_needs_native_gas(make_wallet, fake_clock):
    wallet = make_wallet(native_balance=10, gas_price=10**9)
    outcome = _executor(wallet, fake_clock).execute(_token())

    assert outcome.error_code == "INSUFFICIENT_FUNDS"
    assert wallet.sent == []


def test_nonce_conflict_retried_then_confirmed(make_wallet, fake_clock):
    wallet = make_wallet(send_errors=[WalletRPCError("nonce too low"), WalletRPCError("nonce too low")])
    outcome = _executor(wallet, fake_clock).execute(_native())

    assert outcome.confirmed
    assert outcome.attempts == 3
    assert len(wallet.sent) == 3
    assert fake_clock.sleeps[:2] == [2.0, 2.0]
    # each attempt builds its own transaction object
    assert wallet.sent[0] is not wallet.sent[1]


def test_nonce_conflict_exhausts_retries(make_wallet, fake_clock):
    wallet = make_wallet(send_errors=[WalletRPCError("nonce too low")] * 3)
    outcome = _executor(wallet, fake_clock).execute(_native())

    assert outcome.phase == TransferPhase.FAILED
    assert outcome.error_code == "NONCE_CONFLICT"
    assert outcome.attempts == 3
    assert "eth_getTransactionReceipt" not in wallet.methods()


def test_user_rejection_is_not_retried(make_wallet, fake_clock):
    wallet = make_wallet(send_errors=[WalletRPCError("User rejected the request.", code=4001)])
    outcome = _executor(wallet, fake_clock).execute(_native())

    assert outcome.error_code == "USER_REJECTED"
    assert outcome.attempts == 1
    assert fake_clock.sleeps == []


def test_other_submission_errors_fail_immediately(make_wallet, fake_clock):
    wallet = make_wallet(send_errors=[WalletRPCError("intrinsic gas too low")])
    outcome = _executor(wallet, fake_clock).execute(_native())

    assert outcome.error_code == "SUBMISSION_FAILED"
    assert outcome.attempts == 1


def test_confirmation_timeout_keeps_provisional_hash(make_wallet, fake_clock):
    wallet = make_wallet(receipts=[None] * 100)
    outcome = _executor(wallet, fake_clock, confirmation_timeout_s=5, poll_interval_s=1).execute(_native())

    assert outcome.phase == TransferPhase.FAILED
    assert outcome.error_code == "CONFIRMATION_TIMEOUT"
    assert outcome.awaiting_confirmation
    assert outcome.tx_hash is None
    assert outcome.provisional_hash == TX_HASH
    assert outcome.message.startswith("Transfer of 1 CELO is awaiting confirmation.")
    assert "failed" not in outcome.message

    data = outcome.public_dict()
    assert data["provisionalHash"] == TX_HASH
    assert "transactionHash" not in data

    step = outcome.to_step(_native())
    assert step.status.value == "processing"
    assert step.transaction_hash is None


def test_receipt_poll_error_keeps_provisional_hash(make_wallet, fake_clock):
    wallet = make_wallet(receipts=[WalletRPCError("upstream RPC 502")])
    outcome = _executor(wallet, fake_clock).execute(_native())

    assert outcome.phase == TransferPhase.FAILED
    assert outcome.error_code == "CONFIRMATION_TIMEOUT"
    assert outcome.provisional_hash == TX_HASH
    assert outcome.phases[-2:] == [TransferPhase.SUBMITTED, TransferPhase.FAILED]
    assert "upstream RPC 502" in outcome.message


def test_balance_rpc_error_fails_the_transfer(make_wallet, fake_clock):
    wallet = make_wallet(rpc_errors={"eth_getBalance": WalletRPCError("upstream RPC 502")})
    outcome = _executor(wallet, fake_clock).execute(_native())

    assert outcome.phase == TransferPhase.FAILED
    assert outcome.error_code == "RPC_UNAVAILABLE"
    assert outcome.phases[-2:] == [TransferPhase.BALANCE_CHECKING, TransferPhase.FAILED]
    assert "another RPC endpoint" in outcome.message
    assert wallet.sent == []


def test_gas_price_rpc_error_fails_token_transfer(make_wallet, fake_clock):
    wallet = make_wallet(rpc_errors={"eth_gasPrice": WalletRPCError("timeout")})
    outcome = _executor(wallet, fake_clock).execute(_token())

    assert outcome.error_code == "RPC_UNAVAILABLE"
    assert wallet.sent == []


def test_name_lookup_error_fails_the_transfer(fake_wallet, fake_clock):
    def resolve(name):
        raise ConnectionError("ens endpoint down")

    outcome = _executor(fake_wallet, fake_clock, resolve_name=resolve).execute(_native(recipient="alice.eth"))

    assert outcome.phase == TransferPhase.FAILED
    assert outcome.error_code == "RPC_UNAVAILABLE"
    assert fake_wallet.calls == []


def test_reverted_receipt(make_wallet, fake_clock):
    wallet = make_wallet(receipts=[{"status": "0x0", "transactionHash": TX_HASH}])
    outcome = _executor(wallet, fake_clock).execute(_native())

    assert outcome.error_code == "TRANSACTION_REVERTED"
    assert outcome.phases[-2:] == [TransferPhase.SUBMITTED, TransferPhase.FAILED]


def test_to_step_reflects_outcome(fake_wallet, fake_clock):
    req = _native()
    outcome = _executor(fake_wallet, fake_clock).execute(req)
    step = outcome.to_step(req)

    assert step.transaction_hash == TX_HASH
    assert step.chain == "Celo"
