from __future__ import annotations

from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

DEFAULT_POOL_ID = 4


class Classification(str, Enum):
    GREETING = "GREETING"
    OFF_TOPIC = "OFF_TOPIC"
    IN_DOMAIN = "IN_DOMAIN"


class OperationName(str, Enum):
    DEPOSIT = "deposit"
    WITHDRAW = "withdraw"
    BORROW = "borrow"
    REPAY = "repay"
    STAKE = "stake"
    UNSTAKE = "unstake"
    BALANCE_OF = "balanceOf"
    GET_POOL_INFORMATION = "getPoolInformation"
    SWAP = "swap"
    TRANSFER = "transfer"
    UNKNOWN = "unknown"

    @classmethod
    def from_function_name(cls, value: Any) -> "OperationName":
        """Case-insensitive lookup used for LLM output ("balanceof" -> balanceOf)."""
        if isinstance(value, cls):
            return value
        text = str(value or "").strip().lower()
        for member in cls:
            if member.value.lower() == text:
                return member
        return cls.UNKNOWN


class StepStatus(str, Enum):
    PENDING = "pending"
    PROCESSING = "processing"
    COMPLETE = "complete"
    FAILED = "failed"


class ParsedOperation(BaseModel):
    model_config = ConfigDict(extra="forbid", populate_by_name=True)

    operation: OperationName
    chain_id: int = Field(alias="chainId")
    token: str | None = None
    amount: str | None = None
    pool_id: int = Field(default=DEFAULT_POOL_ID, alias="poolId")
    from_token: str | None = Field(default=None, alias="fromToken")
    to_token: str | None = Field(default=None, alias="toToken")
    recipient: str | None = None
    quote_only: bool = Field(default=False, alias="quoteOnly")

    @field_validator("amount")
    @classmethod
    def _amount_is_decimal_string(cls, value: str | None) -> str | None:
        if value is None:
            return value
        text = str(value).strip()
        head, _, tail = text.partition(".")
        if not head.isdigit() or (tail and not tail.isdigit()):
            raise ValueError(f"amount must be a decimal string, got {value!r}")
        return text

    @field_validator("token", "from_token", "to_token")
    @classmethod
    def _upper_symbol(cls, value: str | None) -> str | None:
        return value.upper() if isinstance(value, str) and value else value

    def missing_slots(self) -> list[str]:
        """Slots that must be filled before this operation can be dispatched."""
        op = self.operation
        missing: list[str] = []
        if op in {
            OperationName.DEPOSIT,
            OperationName.WITHDRAW,
            OperationName.BORROW,
            OperationName.REPAY,
        }:
            if not self.token:
                missing.append("token")
            if not self.amount:
                missing.append("amount")
        elif op in {OperationName.STAKE, OperationName.UNSTAKE}:
            if not self.amount:
                missing.append("amount")
        elif op == OperationName.BALANCE_OF:
            if not self.token:
                missing.append("token")
        elif op == OperationName.SWAP:
            if not self.from_token:
                missing.append("fromToken")
            if not self.amount:
                missing.append("amount")
        elif op == OperationName.TRANSFER:
            if not self.amount:
                missing.append("amount")
            if not self.recipient or self.recipient.upper() == "N/A":
                missing.append("recipient")
        return missing


class NeedsDisambiguation(BaseModel):
    """The extractor recognised the operation but a slot must come from the user."""

    model_config = ConfigDict(extra="forbid", populate_by_name=True)

    operation: ParsedOperation
    missing: str
    choices: list[str] = Field(default_factory=list)


class IntentStep(BaseModel):
    model_config = ConfigDict(extra="forbid", populate_by_name=True)

    description: str
    chain: str
    transaction_hash: str | None = Field(default=None, alias="transactionHash")
    status: StepStatus = StepStatus.PENDING

    @model_validator(mode="after")
    def _hash_only_when_complete(self) -> "IntentStep":
        if self.transaction_hash and self.status != StepStatus.COMPLETE:
            raise ValueError("transactionHash is only allowed on complete steps")
        return self

    def public_dict(self) -> dict[str, Any]:
        return self.model_dump(by_alias=True, exclude_none=True, mode="json")


class IntentExecutionPlan(BaseModel):
    model_config = ConfigDict(extra="forbid", populate_by_name=True)

    steps: list[IntentStep] = Field(..., min_length=1)

    def public_dict(self) -> dict[str, Any]:
        return {"steps": [step.public_dict() for step in self.steps]}


class PlanEntry(BaseModel):
    """Exactly one of: an operation to dispatch, or an already-final descriptive step."""

    model_config = ConfigDict(extra="forbid")

    operation: ParsedOperation | None = None
    step: IntentStep | None = None

    @model_validator(mode="after")
    def _exactly_one(self) -> "PlanEntry":
        if (self.operation is None) == (self.step is None):
            raise ValueError("PlanEntry needs exactly one of operation or step")
        return self


class PlanDraft(BaseModel):
    """Output of one plan provider, in execution order."""

    model_config = ConfigDict(extra="forbid")

    source: str
    entries: list[PlanEntry] = Field(..., min_length=1)

    @property
    def operations(self) -> list[ParsedOperation]:
        return [e.operation for e in self.entries if e.operation is not None]


class WalletRequest(BaseModel):
    """Hand-off to the transfer executor for steps that need a wallet signature."""

    model_config = ConfigDict(extra="forbid", populate_by_name=True)

    chain_id: int = Field(alias="chainId")
    recipient: str
    amount: str
    token: str | None = None


class IntentTurnRequest(BaseModel):
    """One user utterance plus the wallet context read at submission time."""

    model_config = ConfigDict(extra="forbid", populate_by_name=True)

    intent: str
    chain_id: int = Field(alias="chainId")
    user_address: str | None = Field(default=None, alias="userAddress")
    conversation_id: str | None = Field(default=None, alias="conversationId")


class IntentProcessResult(BaseModel):
    model_config = ConfigDict(extra="forbid", populate_by_name=True)

    status: str
    message: str
    conversation_id: str = Field(alias="conversationId")
    plan: IntentExecutionPlan | None = None
    suggestions: list[str] = Field(default_factory=list)
    questions: list[str] = Field(default_factory=list)
    choices: list[str] = Field(default_factory=list)
    wallet_request: WalletRequest | None = Field(default=None, alias="walletRequest")
    source: str | None = None

    def public_dict(self) -> dict[str, Any]:
        """Flat view: the plan steps sit beside the turn metadata."""
        data = self.model_dump(by_alias=True, exclude_none=True, exclude={"plan"}, mode="json")
        data["steps"] = self.plan.public_dict()["steps"] if self.plan is not None else []
        return data
