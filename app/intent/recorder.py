from __future__ import annotations

import logging
from typing import Any, Callable

from sqlalchemy.orm import Session

from app.domain.intent_type import derive_intent_type
from app.intent.errors import StorageError
from db.repos.intents_repo import create_intent, list_intents_for_user
from db.session import SessionLocal

logger = logging.getLogger(__name__)

RecordFn = Callable[[dict[str, Any]], None]


def plan_chain_label(steps: list[dict[str, Any]]) -> str:
    chains = {str(s.get("chain")) for s in steps if s.get("chain") and s.get("chain") != "N/A"}
    if len(chains) == 1:
        return chains.pop()
    return "Multiple" if chains else "N/A"


def build_record(*, user_address: str, description: str, steps: list[dict[str, Any]]) -> dict[str, Any]:
    return {
        "user_address": user_address,
        "description": description,
        "chain": plan_chain_label(steps),
        "type": derive_intent_type(s.get("description", "") for s in steps).value,
        "steps": steps,
    }


def store(db: Session, record: dict[str, Any]) -> str:
    """
    Synchronous write. Raises StorageError so API callers can report storage
    failures separately from processing failures.
    """
    try:
        row = create_intent(
            db,
            user_address=record["user_address"],
            description=record["description"],
            chain=record["chain"],
            type=record["type"],
            steps=record["steps"],
        )
    except Exception as e:
        db.rollback()
        raise StorageError(f"Failed to store intent: {e}") from e
    return str(row.id)


def record(db: Session, payload: dict[str, Any]) -> str | None:
    """Fire-and-forget write: failures are logged, never raised."""
    try:
        return store(db, payload)
    except StorageError as e:
        logger.warning("intent record failed user=%s error=%s", payload.get("user_address"), e)
        return None


def record_in_background(payload: dict[str, Any]) -> None:
    db = SessionLocal()
    try:
        record(db, payload)
    finally:
        db.close()


def fetch(db: Session, user_address: str) -> list[dict[str, Any]]:
    try:
        rows = list_intents_for_user(db, user_address)
    except Exception as e:
        raise StorageError(f"Failed to fetch intents: {e}") from e
    return [
        {
            "id": str(row.id),
            "userAddress": row.user_address,
            "description": row.description,
            "chain": row.chain,
            "type": row.type,
            "steps": row.steps,
            "createdAt": row.created_at.isoformat() if row.created_at else None,
        }
        for row in rows
    ]
