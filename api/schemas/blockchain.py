from __future__ import annotations

from pydantic import BaseModel, ConfigDict


class BlockchainRequest(BaseModel):
    """
    Union of the parameters the blockchain endpoints accept. Each endpoint
    checks its own required subset and answers 400 when one is absent.
    """

    model_config = ConfigDict(extra="ignore")

    chainId: int | None = None
    token: str | None = None
    tokenAddress: str | None = None
    amount: str | float | int | None = None
    poolId: int | None = None
    price: str | float | int | None = None
    userAddress: str | None = None

    def missing(self, *fields: str) -> list[str]:
        return [f for f in fields if getattr(self, f) in (None, "")]
