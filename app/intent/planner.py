"""Plan providers: primary LLM -> secondary LLM -> local heuristic.

Each provider exposes try_generate(); the first success wins. Providers only
plan. Nothing here calls the blockchain integration.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Iterable, Protocol, Union

from pydantic import ValidationError

from app.config import Settings, get_settings
from app.intent.contracts import (
    DEFAULT_POOL_ID,
    IntentStep,
    OperationName,
    ParsedOperation,
    PlanDraft,
    PlanEntry,
    StepStatus,
)
from app.intent.errors import PlanGenerationError
from app.intent.heuristics import heuristic_plan
from chain.networks import chain_display_name, is_supported, prompt_view
from llm.client import LLMClient

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ProviderFailure:
    source: str
    error: str


PlanAttempt = Union[PlanDraft, ProviderFailure]


class PlanProvider(Protocol):
    name: str

    def try_generate(self, utterance: str, chain_id: int) -> PlanAttempt:
        ...


def _planner_input(utterance: str, chain_id: int) -> dict[str, Any]:
    return {"intent": utterance, "chain_id": chain_id, "networks": prompt_view()}


def _require_steps(raw: Any) -> list[Any]:
    steps = raw.get("steps") if isinstance(raw, dict) else None
    if not isinstance(steps, list) or not steps:
        raise ValueError("LLM response is missing a non-empty steps array")
    return steps


def _blank_to_none(value: Any) -> str | None:
    if value is None:
        return None
    text = str(value).strip()
    return text or None


def _skipped(description: str, chain: str) -> PlanEntry:
    return PlanEntry(step=IntentStep(description=description, chain=chain, status=StepStatus.FAILED))


def entry_from_llm_step(raw_step: dict[str, Any], *, default_chain_id: int) -> PlanEntry:
    """
    Map one {chain, token, chainId, amount, function, poolId} object to a plan
    entry. Unknown functions and chain ids outside the network table become
    skipped descriptive steps instead of raising.
    """
    function = raw_step.get("function")
    operation = OperationName.from_function_name(function)
    raw_chain = raw_step.get("chainId", default_chain_id)
    chain_label = str(raw_step.get("chain") or chain_display_name(raw_chain))

    if operation == OperationName.UNKNOWN:
        return _skipped(f"Skipped: '{function}' is not a supported operation.", chain_label)
    if not is_supported(raw_chain):
        return _skipped(
            f"Skipped {operation.value}: chain {raw_chain} is not a supported network.",
            chain_label,
        )

    amount = _blank_to_none(raw_step.get("amount"))
    pool_id = raw_step.get("poolId")
    try:
        pool_id = int(pool_id) if pool_id not in (None, "") else DEFAULT_POOL_ID
    except (TypeError, ValueError):
        pool_id = DEFAULT_POOL_ID

    token = _blank_to_none(raw_step.get("token"))
    from_token = _blank_to_none(raw_step.get("fromToken")) or (token if operation == OperationName.SWAP else None)
    fields = dict(
        operation=operation,
        chain_id=int(raw_chain),
        token=token,
        pool_id=pool_id,
        from_token=from_token,
        to_token=_blank_to_none(raw_step.get("toToken")),
        recipient=_blank_to_none(raw_step.get("recipient")),
    )
    try:
        parsed = ParsedOperation(amount=amount, **fields)
    except ValidationError:
        # unparseable amount is treated as missing so the user is asked for it
        parsed = ParsedOperation(amount=None, **fields)
    return PlanEntry(operation=parsed)


class PrimaryLLMProvider:
    """Strict JSON operations from the primary model."""

    name = "primary_llm"

    def __init__(self, client: LLMClient):
        self.client = client

    def try_generate(self, utterance: str, chain_id: int) -> PlanAttempt:
        try:
            raw = self.client.plan_operations(planner_input=_planner_input(utterance, chain_id))
            steps = _require_steps(raw)
            entries = [
                entry_from_llm_step(step if isinstance(step, dict) else {}, default_chain_id=chain_id)
                for step in steps
            ]
            return PlanDraft(source=self.name, entries=entries)
        except Exception as e:
            return ProviderFailure(source=self.name, error=f"{type(e).__name__}: {e}")


class SecondaryLLMProvider:
    """Descriptive step list from the secondary model. Steps are not dispatched."""

    name = "secondary_llm"

    def __init__(self, client: LLMClient):
        self.client = client

    def try_generate(self, utterance: str, chain_id: int) -> PlanAttempt:
        try:
            raw = self.client.plan_steps(planner_input=_planner_input(utterance, chain_id))
            steps = _require_steps(raw)
            entries = [
                PlanEntry(
                    step=IntentStep(
                        description=str(step["description"]),
                        chain=str(step.get("chain") or "N/A"),
                    )
                )
                for step in steps
            ]
            return PlanDraft(source=self.name, entries=entries)
        except Exception as e:
            return ProviderFailure(source=self.name, error=f"{type(e).__name__}: {e}")


class HeuristicProvider:
    name = "heuristic"

    def try_generate(self, utterance: str, chain_id: int) -> PlanAttempt:
        plan = heuristic_plan(utterance)
        return PlanDraft(source=self.name, entries=[PlanEntry(step=step) for step in plan.steps])


def default_plan_providers(settings: Settings | None = None) -> list[PlanProvider]:
    settings = settings or get_settings()
    providers: list[PlanProvider] = []
    if settings.LLM_ENABLED:
        providers.append(
            PrimaryLLMProvider(
                LLMClient(
                    model=settings.primary_llm_model,
                    provider=settings.primary_llm_provider,
                    api_key=settings.anthropic_api_key,
                    base_url=settings.anthropic_base_url,
                    temperature=settings.llm_temperature,
                    timeout_s=settings.llm_timeout_s,
                )
            )
        )
        providers.append(
            SecondaryLLMProvider(
                LLMClient(
                    model=settings.secondary_llm_model,
                    provider=settings.secondary_llm_provider,
                    api_key=settings.openai_api_key,
                    base_url=settings.openai_base_url,
                    temperature=settings.llm_temperature,
                    timeout_s=settings.llm_timeout_s,
                )
            )
        )
    providers.append(HeuristicProvider())
    return providers


def generate_plan(
    utterance: str,
    chain_id: int,
    *,
    providers: Iterable[PlanProvider] | None = None,
) -> tuple[PlanDraft, list[ProviderFailure]]:
    """
    Iterate providers until one succeeds. Returns the draft plus the failures
    of the tiers that were tried before it.
    """
    failures: list[ProviderFailure] = []
    for provider in providers if providers is not None else default_plan_providers():
        attempt = provider.try_generate(utterance, chain_id)
        if isinstance(attempt, PlanDraft):
            logger.info("plan generated source=%s entries=%s", attempt.source, len(attempt.entries))
            return attempt, failures
        logger.warning("plan provider failed source=%s error=%s", attempt.source, attempt.error)
        failures.append(attempt)

    raise PlanGenerationError(
        "All plan providers failed: " + "; ".join(f"{f.source}: {f.error}" for f in failures)
    )
