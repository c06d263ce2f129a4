from __future__ import annotations

import uuid

from sqlalchemy import DateTime, Index, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from db.base import Base
from db.utils import JSONType, UUIDType, utcnow


class StoredIntent(Base):
    __tablename__ = "intents"
    __table_args__ = (Index("idx_intents_user_created", "user_address", "created_at"),)

    id: Mapped[uuid.UUID] = mapped_column(
        UUIDType,
        primary_key=True,
        default=uuid.uuid4,
    )

    user_address: Mapped[str] = mapped_column(String(64), nullable=False, index=True)
    description: Mapped[str] = mapped_column(Text, nullable=False)
    chain: Mapped[str] = mapped_column(String(64), nullable=False)
    type: Mapped[str] = mapped_column(String(16), nullable=False)
    steps: Mapped[list] = mapped_column(JSONType, nullable=False, default=list)

    created_at = mapped_column(
        DateTime(timezone=True),
        default=utcnow,
        nullable=False,
    )
