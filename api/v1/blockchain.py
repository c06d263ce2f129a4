from __future__ import annotations

import logging
from typing import Any, Callable

from fastapi import APIRouter, Depends, Query
from fastapi.responses import JSONResponse

from api.deps import get_integration
from api.schemas.blockchain import BlockchainRequest

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/blockchain", tags=["blockchain"])

MISSING_PARAMETERS = "Missing required parameters"


def _missing_response() -> JSONResponse:
    return JSONResponse(status_code=400, content={"success": False, "message": MISSING_PARAMETERS})


def _respond(
    payload: BlockchainRequest,
    required: tuple[str, ...],
    call: Callable[[BlockchainRequest], dict[str, Any]],
    *,
    ok_message: str,
    fail_message: str,
) -> Any:
    if payload.missing(*required):
        return _missing_response()

    result = call(payload)
    if not result.get("success"):
        return JSONResponse(
            status_code=500,
            content={"success": False, "message": fail_message, "error": result.get("error")},
        )
    data = {k: v for k, v in result.items() if k != "success"}
    return {"success": True, "message": ok_message, "data": data}


@router.post("/deposit")
def deposit_endpoint(payload: BlockchainRequest, integration: Any = Depends(get_integration)):
    return _respond(
        payload,
        ("chainId", "token", "amount"),
        lambda p: integration.deposit(p.chainId, p.token, p.amount),
        ok_message="Deposit successful",
        fail_message="Failed to process deposit",
    )


@router.post("/withdraw")
def withdraw_endpoint(payload: BlockchainRequest, integration: Any = Depends(get_integration)):
    return _respond(
        payload,
        ("chainId", "token", "amount"),
        lambda p: integration.withdraw(p.chainId, p.token, p.amount),
        ok_message="Withdraw successful",
        fail_message="Failed to process withdraw",
    )


@router.post("/borrow")
def borrow_endpoint(payload: BlockchainRequest, integration: Any = Depends(get_integration)):
    return _respond(
        payload,
        ("chainId", "token", "amount"),
        lambda p: integration.borrow(p.chainId, p.token, p.amount),
        ok_message="Borrow successful",
        fail_message="Failed to process borrow",
    )


@router.post("/repay")
def repay_endpoint(payload: BlockchainRequest, integration: Any = Depends(get_integration)):
    return _respond(
        payload,
        ("chainId", "token", "amount"),
        lambda p: integration.repay(p.chainId, p.token, p.amount),
        ok_message="Repay successful",
        fail_message="Failed to process repay",
    )


@router.post("/stake")
def stake_endpoint(payload: BlockchainRequest, integration: Any = Depends(get_integration)):
    return _respond(
        payload,
        ("chainId", "poolId", "amount"),
        lambda p: integration.stake(p.chainId, p.poolId, p.amount),
        ok_message="Stake successful",
        fail_message="Failed to stake",
    )


@router.post("/unstake")
def unstake_endpoint(payload: BlockchainRequest, integration: Any = Depends(get_integration)):
    return _respond(
        payload,
        ("chainId", "poolId", "amount"),
        lambda p: integration.unstake(p.chainId, p.poolId, p.amount),
        ok_message="Unstake successful",
        fail_message="Failed to unstake",
    )


@router.post("/claim-rewards")
def claim_rewards_endpoint(payload: BlockchainRequest, integration: Any = Depends(get_integration)):
    return _respond(
        payload,
        ("chainId", "poolId"),
        lambda p: integration.claim_rewards(p.chainId, p.poolId),
        ok_message="Rewards claimed successfully",
        fail_message="Failed to process claim rewards",
    )


@router.post("/emergency-withdraw")
def emergency_withdraw_endpoint(payload: BlockchainRequest, integration: Any = Depends(get_integration)):
    return _respond(
        payload,
        ("chainId", "poolId"),
        lambda p: integration.emergency_withdraw(p.chainId, p.poolId),
        ok_message="Emergency withdraw successful",
        fail_message="Failed to process emergency withdraw",
    )


@router.post("/getpools")
def get_pools_endpoint(payload: BlockchainRequest, integration: Any = Depends(get_integration)):
    return _respond(
        payload,
        ("chainId",),
        lambda p: integration.get_pool_information(p.chainId),
        ok_message="Pools fetched successfully",
        fail_message="Failed to get pools information",
    )


@router.post("/getUserPoolInfo")
def get_user_pool_info_endpoint(payload: BlockchainRequest, integration: Any = Depends(get_integration)):
    return _respond(
        payload,
        ("chainId",),
        lambda p: integration.get_user_pool_info(p.chainId, p.userAddress),
        ok_message="User pool info fetched successfully",
        fail_message="Failed to get user pool info",
    )


@router.post("/create-pool")
def create_pool_endpoint(payload: BlockchainRequest, integration: Any = Depends(get_integration)):
    return _respond(
        payload,
        ("chainId", "token"),
        lambda p: integration.create_pool(p.chainId, p.token),
        ok_message="Pool created successfully",
        fail_message="Failed to process create pool",
    )


@router.post("/list-token")
def list_token_endpoint(payload: BlockchainRequest, integration: Any = Depends(get_integration)):
    if not payload.tokenAddress and not payload.token:
        return _missing_response()
    return _respond(
        payload,
        ("chainId",),
        lambda p: integration.list_token(p.chainId, p.tokenAddress or p.token),
        ok_message="List token successful",
        fail_message="Failed to process list token",
    )


@router.post("/set-tokenprice")
def set_token_price_endpoint(payload: BlockchainRequest, integration: Any = Depends(get_integration)):
    return _respond(
        payload,
        ("chainId", "token", "price"),
        lambda p: integration.set_token_price(p.chainId, p.token, p.price),
        ok_message="Set token price successful",
        fail_message="Failed to process set token price",
    )


@router.get("/balance")
def balance_endpoint(
    token: str | None = Query(None),
    chainId: int | None = Query(None),
    userAddress: str | None = Query(None),
    integration: Any = Depends(get_integration),
):
    payload = BlockchainRequest(token=token, chainId=chainId, userAddress=userAddress)
    return _respond(
        payload,
        ("chainId", "token"),
        lambda p: integration.get_token_balance(p.chainId, p.token, p.userAddress),
        ok_message="Balance fetched successfully",
        fail_message="Failed to get balance",
    )
