from __future__ import annotations

from pydantic import BaseModel, Field


class VerificationUpdateRequest(BaseModel):
    address: str = Field(..., min_length=3, max_length=64)
    isVerified: bool
