from __future__ import annotations

from typing import Any

from fastapi import APIRouter, BackgroundTasks, Depends, Query
from sqlalchemy.orm import Session

from api.deps import get_integration
from api.schemas.intent import (
    IntentIdResponse,
    IntentProcessRequest,
    IntentStoreRequest,
    IntentSubmitRequest,
)
from app.intent.contracts import IntentTurnRequest
from app.intent.errors import IntentValidationError
from app.intent.recorder import record_in_background
from app.services.intent_service import (
    intent_history,
    process_intent,
    store_intent,
    submit_intent,
)
from db.deps import get_db

router = APIRouter(prefix="/api/intent", tags=["intent"])


@router.post("/process")
def process_intent_endpoint(
    payload: IntentProcessRequest,
    background_tasks: BackgroundTasks,
    db: Session = Depends(get_db),
    integration: Any = Depends(get_integration),
) -> dict[str, Any]:
    if not payload.intent.strip():
        raise IntentValidationError("Intent is required and must be a string")
    if not payload.userAddress:
        raise IntentValidationError("User address is required")

    result = process_intent(
        IntentTurnRequest(
            intent=payload.intent,
            chain_id=payload.chainId,
            user_address=payload.userAddress,
            conversation_id=payload.conversationId,
        ),
        db=db,
        integration=integration,
        recorder_fn=lambda record: background_tasks.add_task(record_in_background, record),
    )
    return {"success": True, "data": result.public_dict()}


@router.post("/submit")
def submit_intent_endpoint(payload: IntentSubmitRequest, db: Session = Depends(get_db)) -> dict[str, Any]:
    intent_id = submit_intent(
        db,
        wallet_address=payload.walletAddress,
        intent_plan=payload.intentPlan,
        original_intent=payload.originalIntent,
    )
    return {"success": True, "data": IntentIdResponse(intentId=intent_id).model_dump()}


@router.post("/store")
def store_intent_endpoint(payload: IntentStoreRequest, db: Session = Depends(get_db)) -> dict[str, Any]:
    intent_id = store_intent(
        db,
        user_address=payload.userAddress,
        description=payload.description,
        chain=payload.chain,
        type=payload.type,
        steps=payload.steps,
    )
    return {"success": True, "data": IntentIdResponse(intentId=intent_id).model_dump()}


@router.get("/history")
def intent_history_endpoint(
    userAddress: str | None = Query(None, description="Wallet address whose intents to list"),
    db: Session = Depends(get_db),
) -> dict[str, Any]:
    return {"success": True, "data": intent_history(db, userAddress or "")}
