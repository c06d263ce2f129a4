from __future__ import annotations

from app.intent import dispatcher
from app.intent.contracts import OperationName, ParsedOperation, StepStatus

CELO = 44787


def _op(operation, **kwargs) -> ParsedOperation:
    return ParsedOperation(operation=operation, chain_id=kwargs.pop("chain_id", CELO), **kwargs)


def test_successful_deposit_becomes_complete_step(fake_integration):
    fake_integration.responses["deposit"] = {"success": True, "transactionHash": "0xabc"}
    step = dispatcher.execute(_op(OperationName.DEPOSIT, token="USDC", amount="10"), fake_integration)

    assert step.status == StepStatus.COMPLETE
    assert step.transaction_hash == "0xabc"
    assert step.description == "Deposited 10 USDC on Celo."
    assert step.chain == "Celo"
    assert fake_integration.called("deposit") == [(CELO, "USDC", "10")]


def test_failed_result_becomes_failed_step_without_hash(fake_integration):
    fake_integration.responses["withdraw"] = {"success": False, "error": "insufficient liquidity"}
    step = dispatcher.execute(_op(OperationName.WITHDRAW, token="USDC", amount="5"), fake_integration)

    assert step.status == StepStatus.FAILED
    assert step.transaction_hash is None
    assert "insufficient liquidity" in step.description
    assert step.description.startswith("Failed to withdraw 5 USDC from Celo")


def test_integration_exception_is_caught(fake_integration):
    fake_integration.responses["borrow"] = RuntimeError("rpc timeout")
    step = dispatcher.execute(_op(OperationName.BORROW, token="USDC", amount="1"), fake_integration)

    assert step.status == StepStatus.FAILED
    assert "rpc timeout" in step.description


def test_stake_uses_pool_id(fake_integration):
    step = dispatcher.execute(_op(OperationName.STAKE, token="CELO", amount="10"), fake_integration)

    assert step.status == StepStatus.COMPLETE
    assert step.description == "Staked 10 CELO in pool 4 on Celo."
    assert fake_integration.called("stake") == [(CELO, 4, "10")]


def test_balance_has_no_hash_and_embeds_value(fake_integration):
    step = dispatcher.execute(
        _op(OperationName.BALANCE_OF, token="USDC"),
        fake_integration,
        user_address="0xabc",
    )

    assert step.status == StepStatus.COMPLETE
    assert step.transaction_hash is None
    assert step.description == "Your USDC balance on Celo is 25 USDC."
    assert fake_integration.called("get_token_balance") == [(CELO, "USDC", "0xabc")]


def test_pool_information_summary(fake_integration):
    step = dispatcher.execute(_op(OperationName.GET_POOL_INFORMATION), fake_integration)
    assert step.description == "Found 2 staking pools on Celo (1 active)."


def test_quote_does_not_swap(fake_integration):
    op = _op(OperationName.SWAP, token="USDC", from_token="USDC", to_token="CELO", amount="5", quote_only=True)
    step = dispatcher.execute(op, fake_integration)

    assert step.status == StepStatus.COMPLETE
    assert "4.9 CELO" in step.description
    assert fake_integration.called("swap") == []


def test_missing_slots_fail_without_calling_integration(fake_integration):
    step = dispatcher.execute(_op(OperationName.DEPOSIT, token="USDC"), fake_integration)

    assert step.status == StepStatus.FAILED
    assert "missing amount" in step.description
    assert fake_integration.calls == []


def test_borrow_requires_verified_identity(fake_integration):
    step = dispatcher.execute(
        _op(OperationName.BORROW, token="USDC", amount="1"),
        fake_integration,
        user_address="0xabc",
        is_verified=lambda address: False,
    )

    assert step.status == StepStatus.FAILED
    assert "identity verification" in step.description
    assert fake_integration.called("borrow") == []


def test_transfer_is_left_pending_for_the_wallet(fake_integration):
    op = _op(OperationName.TRANSFER, token="CELO", amount="1", recipient="alice.eth")
    step = dispatcher.execute(op, fake_integration)

    assert step.status == StepStatus.PENDING
    assert step.description.startswith("Awaiting wallet signature")
    assert fake_integration.calls == []


def test_unsupported_chain_is_a_failed_step(fake_integration):
    fake_integration.responses["deposit"] = {"success": False, "error": "Unsupported chain_id: 1"}
    step = dispatcher.execute(_op(OperationName.DEPOSIT, token="USDC", amount="1", chain_id=1), fake_integration)

    assert step.status == StepStatus.FAILED
    assert step.chain == "Chain 1"
