from __future__ import annotations

from app.domain.turn_status import TurnStatus
from app.intent import conversation
from graph.nodes.clarify import clarify_node
from graph.nodes.finalize import finalize_node
from graph.nodes.record import record_node
from graph.state import IntentState
from graph.utils.needs_input import clear_needs_input, set_needs_input

USER = "0x1111111111111111111111111111111111111111"


def _state(status=TurnStatus.EXTRACTING, **artifacts) -> IntentState:
    return IntentState(
        intent="deposit usdc",
        chain_id=44787,
        user_address=USER,
        conversation_id="conv-nodes",
        status=status,
        artifacts=artifacts,
    )


def _config(**configurable):
    return {"configurable": configurable}


def test_set_and_clear_needs_input():
    state = _state()
    set_needs_input(
        state,
        questions=["Which token?"],
        missing=["token"],
        operation={"operation": "balanceOf", "chainId": 44787},
        choices=["CELO"],
    )

    needs = state.artifacts["needs_input"]
    assert needs["missing"] == ["token"]
    assert needs["choices"] == ["CELO"]

    clear_needs_input(state)
    assert "needs_input" not in state.artifacts


def test_clarify_fills_questions_and_parks_operation():
    operation = {"operation": "deposit", "chainId": 44787, "token": "USDC"}
    state = _state(needs_input={"questions": [], "missing": ["amount"], "operation": operation, "choices": []})

    state = clarify_node(state, _config())

    assert state.artifacts["needs_input"]["questions"] == ["How much USDC would you like to deposit?"]
    assert conversation.get("conv-nodes")["pending"] == {"operation": operation, "missing": ["amount"]}


def test_clarify_keeps_existing_questions():
    state = _state(needs_input={"questions": ["Which pool?"], "missing": ["poolId"], "operation": {}})
    state = clarify_node(state, _config())

    assert state.artifacts["needs_input"]["questions"] == ["Which pool?"]
    assert conversation.get("conv-nodes") is None


def test_finalize_needs_input_lists_choices():
    state = _state(needs_input={"questions": ["Which token would you like to check the balance of?"], "choices": ["CELO", "USDC"]})
    state = finalize_node(state, _config())

    assert state.status == TurnStatus.DONE
    assert state.artifacts["assistant_message"] == (
        "Which token would you like to check the balance of?\nOptions: CELO, USDC"
    )


def test_finalize_fatal_error_fails_turn():
    state = _state(status=TurnStatus.PLANNING, fatal_error={"step": "PLAN", "message": "All plan providers failed"})
    state = finalize_node(state, _config())

    assert state.status == TurnStatus.FAILED
    assert "All plan providers failed" in state.artifacts["assistant_message"]


def test_finalize_all_failed_steps():
    steps = [{"description": "Failed to deposit 1 USDC on Celo: reverted", "chain": "Celo", "status": "failed"}]
    state = finalize_node(_state(status=TurnStatus.DISPATCHING, steps=steps), _config())

    assert state.status == TurnStatus.FAILED
    assert "Failed to deposit 1 USDC on Celo" in state.artifacts["assistant_message"]


def test_finalize_descriptive_plan_uses_entries():
    entries = [{"step": {"description": "Analyze intent requirements", "chain": "N/A", "status": "pending"}}]
    state = finalize_node(_state(status=TurnStatus.PLANNING, entries=entries, plan_source="heuristic"), _config())

    assert state.status == TurnStatus.DONE
    assert state.artifacts["steps"] == [entries[0]["step"]]
    assert state.artifacts["assistant_message"].startswith("Here's a suggested execution plan")


def test_finalize_multi_step_success():
    steps = [
        {"description": "Deposited 1 USDC on Celo.", "chain": "Celo", "status": "complete"},
        {"description": "Staked 1 CELO in pool 4 on Celo.", "chain": "Celo", "status": "complete"},
    ]
    state = finalize_node(_state(status=TurnStatus.DISPATCHING, steps=steps, plan_source="primary_llm"), _config())
    assert state.artifacts["assistant_message"] == "Done! Here's what I executed."


def test_record_skips_when_nothing_completed():
    seen = []
    steps = [{"description": "Failed", "chain": "Celo", "status": "failed"}]
    state = record_node(_state(status=TurnStatus.DISPATCHING, steps=steps), _config(recorder=seen.append))

    assert seen == []
    assert "recorded" not in state.artifacts


def test_record_builds_payload():
    seen = []
    steps = [{"description": "Deposited 1 USDC on Celo.", "chain": "Celo", "status": "complete"}]
    state = record_node(_state(status=TurnStatus.DISPATCHING, steps=steps), _config(recorder=seen.append))

    assert state.artifacts["recorded"] is True
    assert seen[0]["type"] == "deposit"
    assert seen[0]["chain"] == "Celo"
    assert seen[0]["user_address"] == USER
