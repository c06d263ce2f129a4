from .time import utcnow
from .types import JSONType, UUIDType

__all__ = ["JSONType", "UUIDType", "utcnow"]
