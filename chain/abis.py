from __future__ import annotations

from typing import Any


def _fn(
    name: str,
    inputs: list[tuple[str, str]],
    outputs: list[tuple[str, str]] | None = None,
    *,
    mutability: str = "nonpayable",
) -> dict[str, Any]:
    return {
        "type": "function",
        "name": name,
        "stateMutability": mutability,
        "inputs": [{"name": n, "type": t} for n, t in inputs],
        "outputs": [{"name": n, "type": t} for n, t in (outputs or [])],
    }


ERC20_ABI = [
    _fn("balanceOf", [("owner", "address")], [("", "uint256")], mutability="view"),
    _fn(
        "allowance",
        [("owner", "address"), ("spender", "address")],
        [("", "uint256")],
        mutability="view",
    ),
    _fn("approve", [("spender", "address"), ("amount", "uint256")], [("", "bool")]),
    _fn("transfer", [("to", "address"), ("amount", "uint256")], [("", "bool")]),
    _fn("decimals", [], [("", "uint8")], mutability="view"),
    _fn("symbol", [], [("", "string")], mutability="view"),
]

LENDING_POOL_ABI = [
    _fn("deposit", [("token", "address"), ("amount", "uint256")]),
    _fn("withdraw", [("token", "address"), ("amount", "uint256")]),
    _fn("borrow", [("token", "address"), ("amount", "uint256")]),
    _fn("repay", [("token", "address"), ("amount", "uint256"), ("onBehalfOf", "address")]),
    _fn(
        "listToken",
        [
            ("token", "address"),
            ("collateralFactor", "uint256"),
            ("borrowFactor", "uint256"),
            ("liquidationThreshold", "uint256"),
            ("liquidationPenalty", "uint256"),
            ("reserveFactor", "uint256"),
        ],
    ),
]

YIELD_FARM_ABI = [
    _fn("stake", [("poolId", "uint256"), ("amount", "uint256")]),
    _fn("unstake", [("poolId", "uint256"), ("amount", "uint256")]),
    _fn("claimRewards", [("poolId", "uint256")]),
    _fn("emergencyWithdraw", [("poolId", "uint256")]),
    _fn(
        "createPool",
        [
            ("stakingToken", "address"),
            ("rewardToken", "address"),
            ("rewardPerSecond", "uint256"),
            ("startTime", "uint256"),
            ("endTime", "uint256"),
        ],
    ),
    _fn("activatePool", [("poolId", "uint256")]),
    _fn("poolLength", [], [("", "uint256")], mutability="view"),
    _fn(
        "getPoolInfo",
        [("poolId", "uint256")],
        [
            ("stakingToken", "address"),
            ("rewardToken", "address"),
            ("rewardPerSecond", "uint256"),
            ("totalStaked", "uint256"),
            ("startTime", "uint256"),
            ("endTime", "uint256"),
            ("isActive", "bool"),
        ],
        mutability="view",
    ),
    _fn(
        "userInfo",
        [("poolId", "uint256"), ("user", "address")],
        [("amount", "uint256"), ("rewardDebt", "uint256")],
        mutability="view",
    ),
    _fn(
        "pendingRewards",
        [("poolId", "uint256"), ("user", "address")],
        [("", "uint256")],
        mutability="view",
    ),
]

PRICE_ORACLE_ABI = [
    _fn("setTokenPrice", [("token", "address"), ("price", "uint256")]),
    _fn("getTokenPrice", [("token", "address")], [("", "uint256")], mutability="view"),
]

UNISWAP_V2_ROUTER_ABI = [
    _fn(
        "getAmountsOut",
        [("amountIn", "uint256"), ("path", "address[]")],
        [("amounts", "uint256[]")],
        mutability="view",
    ),
    _fn(
        "swapExactTokensForTokens",
        [
            ("amountIn", "uint256"),
            ("amountOutMin", "uint256"),
            ("path", "address[]"),
            ("to", "address"),
            ("deadline", "uint256"),
        ],
        [("amounts", "uint256[]")],
    ),
]
