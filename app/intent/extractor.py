"""Regex slot extraction.

An ordered rule table: each rule pairs a pattern with a handler that turns the
match into a ParsedOperation, a NeedsDisambiguation, or None (keep looking).
The first rule that produces a result wins. No rule calls an LLM.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from typing import Callable, Optional, Union

from app.intent.contracts import (
    DEFAULT_POOL_ID,
    NeedsDisambiguation,
    OperationName,
    ParsedOperation,
)
from chain.networks import (
    UnsupportedChainError,
    default_token,
    find_network_by_name,
    get_network,
    stable_token,
)

logger = logging.getLogger(__name__)

ExtractResult = Union[ParsedOperation, NeedsDisambiguation]
HeldTokens = Callable[[int], list[str]]

_AMOUNT = r"(\d+(?:\.\d+)?)"
_TOKEN = r"([a-zA-Z]+)"
_SWAP_TAIL = r"(?:\s+(?:for|to|into)\s+([a-zA-Z]+))?"

# Words the balance patterns can capture that are not token symbols.
_NOT_A_TOKEN = {
    "my",
    "the",
    "of",
    "all",
    "a",
    "wallet",
    "balance",
    "balances",
    "token",
    "tokens",
    "do",
    "i",
    "is",
    "have",
    "for",
    "on",
}
# Captures that belong to other rules (e.g. "check pool info").
_OTHER_SUBJECTS = {"pool", "pools", "quote", "price", "status", "transaction", "tx", "rewards"}


@dataclass(frozen=True)
class ExtractContext:
    utterance: str
    chain_id: int
    held_tokens: Optional[HeldTokens] = None


@dataclass(frozen=True)
class Rule:
    name: str
    pattern: re.Pattern
    handler: Callable[[re.Match, ExtractContext], Optional[ExtractResult]]


def _op(ctx: ExtractContext, operation: OperationName, **slots) -> ParsedOperation:
    return ParsedOperation(operation=operation, chain_id=ctx.chain_id, **slots)


def _amount_token(operation: OperationName):
    def handler(m: re.Match, ctx: ExtractContext) -> ParsedOperation:
        return _op(ctx, operation, amount=m.group(1), token=m.group(2))
    return handler


def _pool_op(operation: OperationName):
    def handler(m: re.Match, ctx: ExtractContext) -> ParsedOperation:
        pool_id = int(m.group(3)) if m.group(3) else DEFAULT_POOL_ID
        return _op(ctx, operation, amount=m.group(1), token=m.group(2), pool_id=pool_id)
    return handler


def _token_choices(ctx: ExtractContext) -> list[str]:
    if ctx.held_tokens is not None:
        try:
            held = ctx.held_tokens(ctx.chain_id)
        except Exception as e:
            logger.warning("held token lookup failed chain_id=%s error=%s", ctx.chain_id, e)
            held = []
        if held:
            return list(held)
    try:
        network = get_network(ctx.chain_id)
    except UnsupportedChainError:
        return []
    return sorted(set(network.tokens) | {network.native_symbol})


def _needs_token(ctx: ExtractContext) -> NeedsDisambiguation:
    return NeedsDisambiguation(
        operation=_op(ctx, OperationName.BALANCE_OF),
        missing="token",
        choices=_token_choices(ctx),
    )


def _balance(m: re.Match, ctx: ExtractContext) -> Optional[ExtractResult]:
    word = (m.group(1) or "").lower()
    if word in _OTHER_SUBJECTS:
        return None
    if not word or word in _NOT_A_TOKEN:
        return _needs_token(ctx)
    return _op(ctx, OperationName.BALANCE_OF, token=word)


def _bare_balance(m: re.Match, ctx: ExtractContext) -> NeedsDisambiguation:
    return _needs_token(ctx)


def _pool_info(m: re.Match, ctx: ExtractContext) -> ParsedOperation:
    return _op(ctx, OperationName.GET_POOL_INFORMATION)


def swap_destination(chain_id: int, from_token: str) -> str:
    """
    Default destination when none is given: the chain stablecoin, or the
    native token when the source already is that stablecoin.
    """
    try:
        stable = stable_token(chain_id)
        native = default_token(chain_id)
    except UnsupportedChainError:
        stable, native = "USDC", "USDT"
    return native if from_token.upper() == stable else stable


def _swap(quote_only: bool):
    def handler(m: re.Match, ctx: ExtractContext) -> ParsedOperation:
        from_token = m.group(2).upper()
        to_token = (m.group(3) or "").upper() or swap_destination(ctx.chain_id, from_token)
        return _op(
            ctx,
            OperationName.SWAP,
            amount=m.group(1),
            token=from_token,
            from_token=from_token,
            to_token=to_token,
            quote_only=quote_only,
        )
    return handler


def _transfer(m: re.Match, ctx: ExtractContext) -> ParsedOperation:
    return _op(
        ctx,
        OperationName.TRANSFER,
        amount=m.group(1),
        token=m.group(2),
        recipient=m.group(3) or "N/A",
    )


def _rule(name: str, pattern: str, handler) -> Rule:
    return Rule(name=name, pattern=re.compile(pattern, re.IGNORECASE), handler=handler)


RULES: list[Rule] = [
    _rule("deposit", rf"\bdeposit\s+{_AMOUNT}\s+{_TOKEN}", _amount_token(OperationName.DEPOSIT)),
    _rule("withdraw", rf"\bwithdraw\s+{_AMOUNT}\s+{_TOKEN}", _amount_token(OperationName.WITHDRAW)),
    _rule("borrow", rf"\bborrow\s+{_AMOUNT}\s+{_TOKEN}", _amount_token(OperationName.BORROW)),
    _rule("repay", rf"\brepay\s+{_AMOUNT}\s+{_TOKEN}", _amount_token(OperationName.REPAY)),
    _rule("balance_named", r"\b(?:check|show|get)\s+(?:my\s+)?([a-zA-Z]+)\s+balance\b", _balance),
    _rule("balance_of", r"\bbalance\s+(?:of\s+)?(?:my\s+)?([a-zA-Z]+)", _balance),
    _rule("how_much", r"\bhow\s+much\s+([a-zA-Z]+)", _balance),
    _rule("stake", rf"\bstake\s+{_AMOUNT}\s+{_TOKEN}(?:\s+in\s+pool\s+(\d+))?", _pool_op(OperationName.STAKE)),
    _rule(
        "unstake",
        rf"\bunstake\s+{_AMOUNT}\s+{_TOKEN}(?:\s+from\s+pool\s+(\d+))?",
        _pool_op(OperationName.UNSTAKE),
    ),
    _rule("pool_info", r"\bpools?\s+(?:info|information|details)\b", _pool_info),
    _rule(
        "quote",
        rf"\b(?:get|show)\s+(?:a\s+|me\s+a\s+)?quote\s+(?:for\s+)?(?:swap(?:ping)?\s+|exchang(?:ing|e)\s+)?"
        rf"{_AMOUNT}\s+{_TOKEN}{_SWAP_TAIL}",
        _swap(quote_only=True),
    ),
    _rule("swap", rf"\bswap\s+{_AMOUNT}\s+{_TOKEN}{_SWAP_TAIL}", _swap(quote_only=False)),
    _rule("exchange", rf"\bexchange\s+{_AMOUNT}\s+{_TOKEN}{_SWAP_TAIL}", _swap(quote_only=False)),
    _rule(
        "transfer",
        rf"\b(?:send|transfer)\s+{_AMOUNT}\s+{_TOKEN}(?:\s+to\s+(\S+))?",
        _transfer,
    ),
    _rule("balance_bare", r"\b(?:balance|balances|how\s+much)\b", _bare_balance),
]


def resolve_chain_id(utterance: str, chain_id: int) -> int:
    """A chain named in the text ("on Celo") overrides the wallet's chain."""
    network = find_network_by_name(utterance)
    return network.chain_id if network else chain_id


def extract(
    utterance: str,
    *,
    chain_id: int,
    held_tokens: Optional[HeldTokens] = None,
) -> Optional[ExtractResult]:
    """
    Returns None when no rule matches; the caller then falls through to the
    plan providers.
    """
    text = (utterance or "").strip()
    if not text:
        return None

    ctx = ExtractContext(
        utterance=text,
        chain_id=resolve_chain_id(text, chain_id),
        held_tokens=held_tokens,
    )
    for rule in RULES:
        match = rule.pattern.search(text)
        if not match:
            continue
        result = rule.handler(match, ctx)
        if result is not None:
            logger.info("slot extractor matched rule=%s", rule.name)
            return result
    return None
