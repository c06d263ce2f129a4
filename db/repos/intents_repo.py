from __future__ import annotations

import uuid

from sqlalchemy import select
from sqlalchemy.orm import Session

from db.models.intent import StoredIntent


def create_intent(
    db: Session,
    *,
    user_address: str,
    description: str,
    chain: str,
    type: str,
    steps: list[dict],
) -> StoredIntent:
    row = StoredIntent(
        user_address=user_address,
        description=description,
        chain=chain,
        type=type,
        steps=list(steps),
    )
    db.add(row)
    db.commit()
    db.refresh(row)
    return row


def get_intent(db: Session, intent_id: uuid.UUID) -> StoredIntent | None:
    return db.execute(select(StoredIntent).where(StoredIntent.id == intent_id)).scalar_one_or_none()


def list_intents_for_user(db: Session, user_address: str, *, limit: int = 100) -> list[StoredIntent]:
    """Newest first."""
    stmt = (
        select(StoredIntent)
        .where(StoredIntent.user_address == user_address)
        .order_by(StoredIntent.created_at.desc())
        .limit(limit)
    )
    return list(db.execute(stmt).scalars().all())
