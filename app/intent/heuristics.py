from __future__ import annotations

from app.intent.contracts import IntentExecutionPlan, IntentStep

# (keywords, steps as (description, chain)); first matching branch wins.
_BRANCHES: list[tuple[tuple[str, ...], list[tuple[str, str]]]] = [
    (
        ("yield", "earn", "apy"),
        [
            ("Check current USDC balances across chains", "Multiple"),
            ("Query yield rates across DeFi protocols", "Multiple"),
            ("Bridge 3,000 USDC from Ethereum to Polygon", "Ethereum → Polygon"),
            ("Deposit 3,000 USDC into Aave on Polygon", "Polygon"),
            ("Set up monitoring for better rates", "N/A"),
        ],
    ),
    (
        ("diversif", "portfolio", "convert", "bitcoin", "btc"),
        [
            ("Check current Bitcoin balance", "Bitcoin"),
            ("Calculate 50% of current BTC holdings", "N/A"),
            ("Bridge BTC to Ethereum via Portal Bridge", "Bitcoin → Ethereum"),
            ("Exchange 20% for ETH on Ethereum", "Ethereum"),
            ("Bridge 15% to Polygon and swap for MATIC", "Ethereum → Polygon"),
            ("Bridge 10% to Avalanche and swap for AVAX", "Ethereum → Avalanche"),
            ("Bridge 5% to Celo and swap for CELO", "Ethereum → Celo"),
        ],
    ),
    (
        ("every", "weekly", "when", "condition", "rsi"),
        [
            ("Setup conditional intent smart contract", "Ethereum"),
            ("Configure RSI data feed from Chainlink", "Ethereum"),
            ("Set weekly trigger (Fridays) with RSI < 40 condition", "N/A"),
            ("Authorize weekly USDC allowance of $200", "Ethereum"),
            ("Set notification preferences for execution", "N/A"),
        ],
    ),
    (
        ("gas", "move", "transfer", "bridge"),
        [
            ("Analyze current asset positions on Ethereum", "Ethereum"),
            ("Estimate gas savings by moving to Polygon", "N/A"),
            ("Batch assets for efficient bridging", "Ethereum"),
            ("Bridge ETH for Polygon gas via Hyperlane", "Ethereum → Polygon"),
            ("Bridge remaining assets via Circle CCTP", "Ethereum → Polygon"),
            ("Setup gas-free transactions via Paymaster", "Polygon"),
        ],
    ),
]

_GENERIC_STEPS: list[tuple[str, str]] = [
    ("Analyze intent requirements", "N/A"),
    ("Optimize cross-chain execution path", "Multiple"),
    ("Prepare transaction sequence", "Multiple"),
    ("Execute primary transactions", "Multiple"),
    ("Monitor and confirm completion", "N/A"),
]


def heuristic_plan(utterance: str) -> IntentExecutionPlan:
    """
    Deterministic keyword plan. Makes no external calls and always returns
    a non-empty plan of pending steps.
    """
    text = (utterance or "").lower()
    rows = _GENERIC_STEPS
    for keywords, steps in _BRANCHES:
        if any(keyword in text for keyword in keywords):
            rows = steps
            break
    return IntentExecutionPlan(
        steps=[IntentStep(description=description, chain=chain) for description, chain in rows]
    )
