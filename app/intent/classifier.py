from __future__ import annotations

import re

from app.intent.contracts import Classification

GREETINGS = {
    "hi",
    "hello",
    "hey",
    "greetings",
    "howdy",
    "what's up",
    "sup",
    "hola",
    "good morning",
    "good afternoon",
    "good evening",
}

FINANCIAL_KEYWORDS = (
    "deposit",
    "withdraw",
    "borrow",
    "repay",
    "stake",
    "unstake",
    "swap",
    "exchange",
    "bridge",
    "transfer",
    "send",
    "balance",
    "token",
    "yield",
    "apy",
    "interest",
    "pool",
    "liquidity",
    "lend",
    "lending",
    "loan",
    "defi",
    "price",
    "quote",
    "usdc",
    "usdt",
    "celo",
    "eth",
    "btc",
    "rbtc",
    "bitcoin",
    "wallet",
    "portfolio",
    "invest",
    "earn",
    "reward",
    "gas",
    "fee",
    "collateral",
    "rootstock",
)

INTERROGATIVES = ("who is", "what is", "when did", "where is")

WELCOME_MESSAGE = (
    "Hello! I'm your IntentFi financial assistant. I can help you with DeFi operations, "
    "investments, and financial strategies. What would you like to do today?"
)

REFUSAL_MESSAGE = (
    "I'm your IntentFi financial assistant focused on DeFi operations and financial strategies. "
    "I can't answer general knowledge questions or process non-financial intents. "
    "How can I help with your financial needs today?"
)

SUGGESTED_ACTIONS = [
    "Show available functions",
    "See example intents",
    "Show my portfolio",
]

_KEYWORD_RE = re.compile(
    r"\b(?:" + "|".join(re.escape(k) for k in FINANCIAL_KEYWORDS) + r")(?:s|es|ed|ing)?\b",
    re.IGNORECASE,
)


def _normalize(utterance: str) -> str:
    text = " ".join((utterance or "").lower().split())
    return text.rstrip("!.,")


def has_financial_keyword(utterance: str) -> bool:
    return bool(_KEYWORD_RE.search(utterance or ""))


def is_greeting(utterance: str) -> bool:
    return _normalize(utterance) in GREETINGS


def classify(utterance: str) -> Classification:
    """
    First gate of the pipeline. Synchronous and side-effect free.
    """
    if is_greeting(utterance):
        return Classification.GREETING

    text = _normalize(utterance)
    interrogative = "?" in text or any(marker in text for marker in INTERROGATIVES)
    if interrogative and not has_financial_keyword(text):
        return Classification.OFF_TOPIC

    return Classification.IN_DOMAIN
