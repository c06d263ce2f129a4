from __future__ import annotations

from typing import Any, Callable

from fastapi import APIRouter, Depends

from api.deps import get_transfer_executor_factory
from api.schemas.wallet import TransferRequestBody
from app.intent.contracts import WalletRequest
from app.services.transfer_service import execute_transfer
from wallet.transfer import TransferExecutor

router = APIRouter(prefix="/api/wallet", tags=["wallet"])


@router.post("/transfer")
def transfer_endpoint(
    payload: TransferRequestBody,
    executor_for: Callable[[int], TransferExecutor] = Depends(get_transfer_executor_factory),
) -> dict[str, Any]:
    request = WalletRequest(
        chain_id=payload.chainId,
        recipient=payload.recipient,
        amount=payload.amount,
        token=payload.token,
    )
    transfer, outcome = execute_transfer(
        request,
        executor=executor_for(payload.chainId),
        conversation_id=payload.conversationId,
        expected_sender=payload.userAddress,
    )
    data = outcome.public_dict()
    data["step"] = outcome.to_step(transfer).public_dict()
    return {"success": outcome.confirmed, "data": data}
