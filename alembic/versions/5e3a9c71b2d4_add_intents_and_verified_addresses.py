"""add intents and verified_addresses tables

Revision ID: 5e3a9c71b2d4
Revises:
Create Date: 2026-10-18 09:12:41.417233

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql


# revision identifiers, used by Alembic.
revision: str = '5e3a9c71b2d4'
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.create_table(
        "intents",
        sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True, nullable=False),
        sa.Column("user_address", sa.String(length=64), nullable=False),
        sa.Column("description", sa.Text(), nullable=False),
        sa.Column("chain", sa.String(length=64), nullable=False),
        sa.Column("type", sa.String(length=16), nullable=False),
        sa.Column("steps", postgresql.JSONB(), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
    )
    op.create_index("ix_intents_user_address", "intents", ["user_address"])
    op.create_index("idx_intents_user_created", "intents", ["user_address", "created_at"])

    op.create_table(
        "verified_addresses",
        sa.Column("address", sa.String(length=64), primary_key=True, nullable=False),
        sa.Column("is_verified", sa.Boolean(), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
    )


def downgrade() -> None:
    op.drop_table("verified_addresses")
    op.drop_index("idx_intents_user_created", table_name="intents")
    op.drop_index("ix_intents_user_address", table_name="intents")
    op.drop_table("intents")
