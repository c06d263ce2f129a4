from __future__ import annotations

from sqlalchemy import select
from sqlalchemy.orm import Session

from db.models.verification import VerifiedAddress


def get_verification(db: Session, address: str) -> VerifiedAddress | None:
    return db.execute(
        select(VerifiedAddress).where(VerifiedAddress.address == address.lower())
    ).scalar_one_or_none()


def set_verification(db: Session, *, address: str, is_verified: bool) -> VerifiedAddress:
    row = get_verification(db, address)
    if row is None:
        row = VerifiedAddress(address=address.lower(), is_verified=is_verified)
    else:
        row.is_verified = is_verified
    db.add(row)
    db.commit()
    db.refresh(row)
    return row
