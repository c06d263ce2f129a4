from __future__ import annotations

from app.intent import conversation, recorder
from app.intent.classifier import REFUSAL_MESSAGE, SUGGESTED_ACTIONS, WELCOME_MESSAGE
from app.intent.contracts import IntentTurnRequest, OperationName, ParsedOperation, PlanDraft, PlanEntry
from app.intent.planner import ProviderFailure
from app.services.intent_service import fill_pending, process_intent

USER = "0x1111111111111111111111111111111111111111"
CELO = 44787


class _StaticProvider:
    def __init__(self, name, attempt):
        self.name = name
        self.attempt = attempt

    def try_generate(self, utterance, chain_id):
        return self.attempt


def _op(operation, **slots):
    return ParsedOperation(operation=operation, chain_id=CELO, **slots)


def _draft(*ops):
    return PlanDraft(source="primary_llm", entries=[PlanEntry(operation=op) for op in ops])


def _turn(db, integration, intent, *, conversation_id=None, user=USER, **kwargs):
    return process_intent(
        IntentTurnRequest(intent=intent, chain_id=CELO, user_address=user, conversation_id=conversation_id),
        db=db,
        integration=integration,
        **kwargs,
    )


def test_deposit_is_dispatched_and_recorded(db_session, fake_integration):
    result = _turn(db_session, fake_integration, "Deposit 10 USDC on Celo")

    assert result.status == "DONE"
    assert result.source == "extractor"
    assert result.message == "Deposited 10 USDC on Celo."
    data = result.public_dict()
    assert data["steps"] == [
        {
            "description": "Deposited 10 USDC on Celo.",
            "chain": "Celo",
            "transactionHash": "0xdeposit",
            "status": "complete",
        }
    ]

    stored = recorder.fetch(db_session, USER)
    assert len(stored) == 1
    assert stored[0]["type"] == "deposit"
    assert stored[0]["chain"] == "Celo"
    assert stored[0]["description"] == "Deposit 10 USDC on Celo"


def test_off_topic_question_is_refused_without_side_effects(db_session, fake_integration):
    result = _turn(db_session, fake_integration, "Who is the president of France?")

    assert result.status == "DONE"
    assert result.message == REFUSAL_MESSAGE
    assert result.public_dict()["steps"] == []
    assert fake_integration.calls == []
    assert recorder.fetch(db_session, USER) == []


def test_greeting_makes_no_integration_calls(db_session, fake_integration):
    result = _turn(db_session, fake_integration, "hello")

    assert result.message == WELCOME_MESSAGE
    assert result.suggestions == SUGGESTED_ACTIONS
    assert fake_integration.calls == []


def test_bare_balance_asks_for_token_then_resumes(db_session, fake_integration):
    first = _turn(db_session, fake_integration, "check my balance", conversation_id="conv-1")

    assert first.status == "DONE"
    assert first.choices == ["CELO", "USDC"]
    assert first.questions == ["Which token would you like to check the balance of?"]
    assert "Options: CELO, USDC" in first.message
    assert conversation.get("conv-1")["pending"]["missing"] == ["token"]

    second = _turn(db_session, fake_integration, "USDC", conversation_id="conv-1")

    assert second.status == "DONE"
    assert second.source == "conversation"
    assert second.public_dict()["steps"][0]["description"] == "Your USDC balance on Celo is 25 USDC."
    assert fake_integration.called("get_token_balance") == [(CELO, "USDC", USER)]
    assert "pending" not in conversation.get("conv-1")


def test_missing_recipient_is_asked_for(db_session, fake_integration):
    result = _turn(db_session, fake_integration, "send 1 CELO", conversation_id="conv-2")

    assert result.status == "DONE"
    assert result.questions == ["Who should I send it to? Reply with a 0x address or an ENS name."]
    assert conversation.get("conv-2")["pending"]["missing"] == ["recipient"]


def test_unrelated_answer_starts_a_new_turn(db_session, fake_integration):
    _turn(db_session, fake_integration, "send 1 CELO", conversation_id="conv-3")
    result = _turn(db_session, fake_integration, "Deposit 10 USDC", conversation_id="conv-3")

    assert result.source == "extractor"
    assert fake_integration.called("deposit") == [(CELO, "USDC", "10")]


def test_transfer_waits_for_wallet_signature(db_session, fake_integration):
    result = _turn(db_session, fake_integration, "send 1 CELO to alice.eth", conversation_id="conv-4")

    assert result.status == "AWAITING_WALLET_SIGNATURE"
    data = result.public_dict()
    assert data["walletRequest"] == {"chainId": CELO, "recipient": "alice.eth", "amount": "1", "token": "CELO"}
    assert data["steps"][0]["status"] == "pending"
    assert "Please confirm the transfer of 1 CELO to alice.eth" in result.message
    assert conversation.get("conv-4")["status"] == "AWAITING_WALLET_SIGNATURE"
    assert recorder.fetch(db_session, USER) == []


def test_failed_step_halts_later_steps(db_session, fake_integration):
    fake_integration.responses["withdraw"] = {"success": False, "error": "insufficient liquidity"}
    provider = _StaticProvider(
        "primary_llm",
        _draft(
            _op(OperationName.WITHDRAW, token="USDC", amount="5"),
            _op(OperationName.DEPOSIT, token="USDC", amount="1"),
        ),
    )

    result = _turn(db_session, fake_integration, "rebalance my lending position", plan_providers=[provider])

    assert result.status == "FAILED"
    steps = result.public_dict()["steps"]
    assert [s["status"] for s in steps] == ["failed", "failed"]
    assert steps[1]["description"] == "Skipped: deposit 1 USDC on Celo (an earlier step failed)."
    assert fake_integration.called("deposit") == []
    assert recorder.fetch(db_session, USER) == []


def test_partial_success_is_done_and_recorded(db_session, fake_integration):
    fake_integration.responses["borrow"] = RuntimeError("rpc timeout")
    provider = _StaticProvider(
        "primary_llm",
        _draft(
            _op(OperationName.DEPOSIT, token="USDC", amount="10"),
            _op(OperationName.BORROW, token="USDC", amount="2"),
            _op(OperationName.WITHDRAW, token="USDC", amount="1"),
        ),
    )

    result = _turn(db_session, fake_integration, "rebalance my lending position", plan_providers=[provider])

    assert result.status == "DONE"
    assert result.message.startswith("Some steps completed")
    assert [s["status"] for s in result.public_dict()["steps"]] == ["complete", "failed", "failed"]
    assert fake_integration.called("withdraw") == []
    assert recorder.fetch(db_session, USER)[0]["type"] == "deposit"


def test_heuristic_plan_when_llm_disabled(db_session, fake_integration):
    result = _turn(db_session, fake_integration, "rebalance my lending position")

    assert result.status == "DONE"
    assert result.source == "heuristic"
    assert result.message.startswith("Here's a suggested execution plan")
    steps = result.public_dict()["steps"]
    assert len(steps) == 5
    assert all(s["status"] == "pending" for s in steps)
    assert fake_integration.called("deposit") == []


def test_fallback_tier_is_used_after_llm_failure(db_session, fake_integration):
    providers = [
        _StaticProvider("primary_llm", ProviderFailure(source="primary_llm", error="timeout")),
        _StaticProvider(
            "secondary_llm",
            _draft(_op(OperationName.STAKE, token="CELO", amount="3")).model_copy(update={"source": "secondary_llm"}),
        ),
    ]
    result = _turn(db_session, fake_integration, "rebalance my lending position", plan_providers=providers)

    assert result.source == "secondary_llm"
    assert fake_integration.called("stake") == [(CELO, 4, "3")]


def test_every_provider_failing_fails_the_turn(db_session, fake_integration):
    providers = [_StaticProvider("primary_llm", ProviderFailure(source="primary_llm", error="timeout"))]
    result = _turn(db_session, fake_integration, "rebalance my lending position", plan_providers=providers)

    assert result.status == "FAILED"
    assert result.message.startswith("I couldn't build a plan for that request")


def test_recorder_failure_does_not_fail_the_turn(db_session, fake_integration):
    def broken(payload):
        raise RuntimeError("disk full")

    result = _turn(db_session, fake_integration, "Deposit 10 USDC", recorder_fn=broken)

    assert result.status == "DONE"
    assert result.public_dict()["steps"][0]["transactionHash"] == "0xdeposit"


def test_fill_pending_requires_every_slot():
    pending = {
        "operation": {"operation": "deposit", "chainId": CELO, "token": "USDC"},
        "missing": ["amount"],
    }
    assert fill_pending(pending, "no idea") is None
    op = fill_pending(pending, "about 12.5 please")
    assert op.amount == "12.5"
    assert op.token == "USDC"
