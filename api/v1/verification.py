from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from api.schemas.verification import VerificationUpdateRequest
from app.intent import verification
from app.intent.errors import IntentValidationError
from db.deps import get_db

router = APIRouter(prefix="/api/user", tags=["verification"])


@router.get("/verification")
def get_verification_endpoint(
    address: str | None = Query(None, description="Wallet address to look up"),
    db: Session = Depends(get_db),
) -> dict[str, Any]:
    if not address:
        raise IntentValidationError("Address is required")
    status = verification.lookup(db, address)
    return {"success": True, "data": status.public_dict()}


@router.post("/verification")
def update_verification_endpoint(
    payload: VerificationUpdateRequest,
    db: Session = Depends(get_db),
) -> dict[str, Any]:
    status = verification.update(db, payload.address, payload.isVerified)
    return {"success": True, "data": status.public_dict()}
