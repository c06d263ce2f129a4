from __future__ import annotations

from pydantic import BaseModel, Field


class TransferRequestBody(BaseModel):
    chainId: int = Field(..., ge=1)
    recipient: str = Field(..., max_length=256)
    amount: str = Field(..., min_length=1, max_length=64)
    token: str | None = Field(default=None, max_length=16)
    userAddress: str | None = Field(default=None, max_length=64)
    conversationId: str | None = Field(default=None, max_length=64)
