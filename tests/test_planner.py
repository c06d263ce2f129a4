from __future__ import annotations

import pytest

from app.config import get_settings
from app.intent.contracts import OperationName, PlanDraft, PlanEntry, StepStatus
from app.intent.errors import PlanGenerationError
from app.intent.heuristics import heuristic_plan
from app.intent.planner import (
    HeuristicProvider,
    PrimaryLLMProvider,
    ProviderFailure,
    SecondaryLLMProvider,
    default_plan_providers,
    generate_plan,
    entry_from_llm_step,
)


class _StaticProvider:
    def __init__(self, name, attempt):
        self.name = name
        self.attempt = attempt
        self.calls = 0

    def try_generate(self, utterance, chain_id):
        self.calls += 1
        return self.attempt


class _FakeClient:
    def __init__(self, response=None, error=None):
        self.response = response
        self.error = error
        self.inputs = []

    def plan_operations(self, *, planner_input):
        self.inputs.append(planner_input)
        if self.error:
            raise self.error
        return self.response

    plan_steps = plan_operations


@pytest.mark.parametrize(
    "utterance, first_step",
    [
        ("maximize my yield on stablecoins", "Check current USDC balances across chains"),
        ("diversify my bitcoin", "Check current Bitcoin balance"),
        ("buy ETH every friday when rsi is low", "Setup conditional intent smart contract"),
        ("move my assets somewhere cheaper on gas", "Analyze current asset positions on Ethereum"),
        ("do something clever", "Analyze intent requirements"),
    ],
)
def test_heuristic_branches(utterance, first_step):
    plan = heuristic_plan(utterance)
    assert plan.steps[0].description == first_step
    assert all(step.status == StepStatus.PENDING for step in plan.steps)


def test_heuristic_empty_input_still_returns_a_plan():
    assert len(heuristic_plan("").steps) == 5


def test_generate_plan_falls_through_to_first_success():
    failing = _StaticProvider("primary_llm", ProviderFailure(source="primary_llm", error="boom"))
    draft = PlanDraft(source="secondary_llm", entries=[PlanEntry(step=step) for step in heuristic_plan("x").steps])
    succeeding = _StaticProvider("secondary_llm", draft)
    never = _StaticProvider("heuristic", draft)

    result, failures = generate_plan("x", 44787, providers=[failing, succeeding, never])

    assert result.source == "secondary_llm"
    assert [f.source for f in failures] == ["primary_llm"]
    assert never.calls == 0


def test_generate_plan_raises_when_every_provider_fails():
    providers = [
        _StaticProvider("primary_llm", ProviderFailure(source="primary_llm", error="timeout")),
        _StaticProvider("secondary_llm", ProviderFailure(source="secondary_llm", error="bad json")),
    ]
    with pytest.raises(PlanGenerationError) as exc:
        generate_plan("deposit", 44787, providers=providers)
    assert "primary_llm: timeout" in str(exc.value)
    assert "secondary_llm: bad json" in str(exc.value)


def test_default_providers_are_heuristic_only_when_llm_disabled():
    providers = default_plan_providers()
    assert [p.name for p in providers] == ["heuristic"]


def test_default_providers_with_llm_enabled(monkeypatch):
    monkeypatch.setenv("LLM_ENABLED", "true")
    get_settings.cache_clear()

    providers = default_plan_providers()

    assert [p.name for p in providers] == ["primary_llm", "secondary_llm", "heuristic"]
    assert providers[0].client.provider == "anthropic"
    assert providers[1].client.provider == "openai"


def test_llm_step_entry_maps_fields():
    entry = entry_from_llm_step(
        {"chain": "Celo", "token": "usdc", "chainId": 44787, "amount": "10", "function": "Deposit", "poolId": 4},
        default_chain_id=31,
    )
    assert entry.operation.operation == OperationName.DEPOSIT
    assert entry.operation.token == "USDC"
    assert entry.operation.chain_id == 44787


def test_llm_step_entry_defaults_chain_and_pool():
    entry = entry_from_llm_step({"function": "stake", "amount": "3", "poolId": ""}, default_chain_id=31)
    assert entry.operation.chain_id == 31
    assert entry.operation.pool_id == 4


def test_llm_step_entry_accepts_lowercase_function_names():
    entry = entry_from_llm_step({"function": "balanceof", "token": "CELO"}, default_chain_id=44787)
    assert entry.operation.operation == OperationName.BALANCE_OF


def test_unknown_function_becomes_skipped_step():
    entry = entry_from_llm_step({"function": "bridge", "chainId": 44787}, default_chain_id=44787)
    assert entry.operation is None
    assert entry.step.status == StepStatus.FAILED
    assert entry.step.description.startswith("Skipped")


def test_unsupported_chain_becomes_skipped_step():
    entry = entry_from_llm_step({"function": "deposit", "chainId": 1, "amount": "1", "token": "USDC"}, default_chain_id=44787)
    assert entry.operation is None
    assert "not a supported network" in entry.step.description
    assert entry.step.chain == "Chain 1"


def test_unparseable_amount_is_treated_as_missing():
    entry = entry_from_llm_step({"function": "deposit", "token": "USDC", "amount": "ten"}, default_chain_id=44787)
    assert entry.operation.amount is None
    assert entry.operation.missing_slots() == ["amount"]


def test_primary_provider_builds_operations():
    client = _FakeClient({"steps": [{"function": "withdraw", "token": "USDC", "amount": "5", "chainId": 44787}]})
    attempt = PrimaryLLMProvider(client).try_generate("withdraw 5 usdc", 44787)

    assert isinstance(attempt, PlanDraft)
    assert attempt.source == "primary_llm"
    assert attempt.operations[0].operation == OperationName.WITHDRAW
    assert client.inputs[0]["intent"] == "withdraw 5 usdc"
    assert "44787" in client.inputs[0]["networks"]


def test_primary_provider_reports_empty_steps_as_failure():
    attempt = PrimaryLLMProvider(_FakeClient({"steps": []})).try_generate("x", 44787)
    assert isinstance(attempt, ProviderFailure)
    assert "non-empty steps" in attempt.error


def test_primary_provider_reports_client_errors():
    attempt = PrimaryLLMProvider(_FakeClient(error=RuntimeError("ANTHROPIC_API_KEY is not set"))).try_generate(
        "x", 44787
    )
    assert isinstance(attempt, ProviderFailure)
    assert attempt.error == "RuntimeError: ANTHROPIC_API_KEY is not set"


def test_secondary_provider_returns_descriptive_steps():
    client = _FakeClient({"steps": [{"description": "Check balances"}, {"description": "Bridge", "chain": "Celo"}]})
    attempt = SecondaryLLMProvider(client).try_generate("x", 44787)

    assert attempt.operations == []
    assert [e.step.chain for e in attempt.entries] == ["N/A", "Celo"]


def test_heuristic_provider_never_fails():
    attempt = HeuristicProvider().try_generate("", 44787)
    assert attempt.source == "heuristic"
    assert attempt.entries
