from __future__ import annotations

from sqlalchemy import Boolean, DateTime, String
from sqlalchemy.orm import Mapped, mapped_column

from db.base import Base
from db.utils import utcnow


class VerifiedAddress(Base):
    __tablename__ = "verified_addresses"

    # stored lower-cased
    address: Mapped[str] = mapped_column(String(64), primary_key=True)
    is_verified: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)

    updated_at = mapped_column(
        DateTime(timezone=True),
        default=utcnow,
        onupdate=utcnow,
        nullable=False,
    )
