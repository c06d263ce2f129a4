"""Column types shared by the models.

PostgreSQL gets JSONB and native UUID; SQLite (used by the test suite) falls
back to JSON text and CHAR(32).
"""
from sqlalchemy import JSON, Uuid
from sqlalchemy.dialects.postgresql import JSONB

JSONType = JSON().with_variant(JSONB(), "postgresql")
UUIDType = Uuid(as_uuid=True)
