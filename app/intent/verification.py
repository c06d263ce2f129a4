"""Identity-verification status with a two-tier lookup.

The database is authoritative. An in-memory set answers when the database has
no row, and also when the database is unreachable; in the latter case the
result is flagged degraded so operators can see it.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Callable

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from db.repos.verification_repo import get_verification, set_verification

logger = logging.getLogger(__name__)

SEED_VERIFIED_ADDRESSES = frozenset(
    {
        "0x1234567890123456789012345678901234567890",
        "0xabcdefabcdefabcdefabcdefabcdefabcdefabcd",
    }
)

_fallback_verified: set[str] = set(SEED_VERIFIED_ADDRESSES)


@dataclass(frozen=True)
class VerificationStatus:
    address: str
    is_verified: bool
    source: str
    degraded: bool = False

    def public_dict(self) -> dict:
        return {
            "address": self.address,
            "isVerified": self.is_verified,
            "source": self.source,
            "degraded": self.degraded,
        }


def _fallback(address: str, *, degraded: bool) -> VerificationStatus:
    return VerificationStatus(
        address=address,
        is_verified=address in _fallback_verified,
        source="memory",
        degraded=degraded,
    )


def lookup(db: Session, address: str) -> VerificationStatus:
    key = address.lower()
    try:
        row = get_verification(db, key)
    except SQLAlchemyError as e:
        logger.warning("verification store unavailable, using memory fallback: %s", e)
        db.rollback()
        return _fallback(key, degraded=True)

    if row is None:
        return _fallback(key, degraded=False)
    return VerificationStatus(address=key, is_verified=bool(row.is_verified), source="database")


def update(db: Session, address: str, is_verified: bool) -> VerificationStatus:
    key = address.lower()
    if is_verified:
        _fallback_verified.add(key)
    else:
        _fallback_verified.discard(key)

    try:
        row = set_verification(db, address=key, is_verified=is_verified)
    except SQLAlchemyError as e:
        logger.warning("verification write failed, kept in memory only: %s", e)
        db.rollback()
        return VerificationStatus(address=key, is_verified=is_verified, source="memory", degraded=True)
    return VerificationStatus(address=key, is_verified=bool(row.is_verified), source="database")


def checker(db: Session) -> Callable[[str], bool]:
    def _is_verified(address: str) -> bool:
        return lookup(db, address).is_verified
    return _is_verified


def reset_fallback() -> None:
    _fallback_verified.clear()
    _fallback_verified.update(SEED_VERIFIED_ADDRESSES)
