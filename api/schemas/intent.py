from __future__ import annotations

from typing import Any

from pydantic import BaseModel, Field

from app.intent.contracts import IntentExecutionPlan


class IntentProcessRequest(BaseModel):
    intent: str = Field(..., max_length=5000)
    chainId: int = Field(..., ge=1)
    userAddress: str | None = Field(default=None, max_length=64)
    conversationId: str | None = Field(default=None, max_length=64)


class IntentSubmitRequest(BaseModel):
    walletAddress: str = Field(..., min_length=3, max_length=64)
    intentPlan: IntentExecutionPlan
    originalIntent: str = Field(..., min_length=1, max_length=5000)


class IntentStoreRequest(BaseModel):
    userAddress: str = Field(..., min_length=3, max_length=64)
    description: str = Field(..., min_length=1, max_length=5000)
    chain: str = "N/A"
    type: str = "other"
    steps: list[dict[str, Any]] = Field(default_factory=list)


class IntentIdResponse(BaseModel):
    intentId: str
