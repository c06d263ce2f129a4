from db.models.intent import StoredIntent
from db.models.verification import VerifiedAddress

__all__ = ["StoredIntent", "VerifiedAddress"]
