from __future__ import annotations

import enum
from typing import Iterable


class IntentType(str, enum.Enum):
    DEPOSIT = "deposit"
    WITHDRAW = "withdraw"
    BORROW = "borrow"
    REPAY = "repay"
    SWAP = "swap"
    STAKE = "stake"
    UNSTAKE = "unstake"
    CLAIM = "claim"
    TRANSFER = "transfer"
    OTHER = "other"


# Checked top to bottom. "unstake" must win over "stake".
_TYPE_KEYWORDS: list[tuple[IntentType, tuple[str, ...]]] = [
    (IntentType.DEPOSIT, ("deposit", "supply")),
    (IntentType.WITHDRAW, ("withdraw", "withdrew")),
    (IntentType.BORROW, ("borrow",)),
    (IntentType.REPAY, ("repay", "repaid")),
    (IntentType.SWAP, ("swap", "exchange")),
    (IntentType.UNSTAKE, ("unstake",)),
    (IntentType.STAKE, ("stake",)),
    (IntentType.CLAIM, ("claim",)),
    (IntentType.TRANSFER, ("transfer", "send", "sent")),
]


def derive_intent_type(descriptions: Iterable[str]) -> IntentType:
    """
    Pure keyword match over the concatenated, lower-cased step descriptions.
    """
    text = " ".join(str(d) for d in descriptions).lower()
    for intent_type, keywords in _TYPE_KEYWORDS:
        if any(keyword in text for keyword in keywords):
            return intent_type
    return IntentType.OTHER
