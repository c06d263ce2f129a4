from __future__ import annotations

import functools
import json
import logging
import time
from decimal import Decimal, InvalidOperation
from typing import Any, Callable

from web3 import Web3

from app.config import get_settings
from chain import rpc
from chain.abis import (
    ERC20_ABI,
    LENDING_POOL_ABI,
    PRICE_ORACLE_ABI,
    UNISWAP_V2_ROUTER_ABI,
    YIELD_FARM_ABI,
)
from chain.networks import NetworkConfig, get_network, token_address

logger = logging.getLogger(__name__)

TOKEN_DECIMALS = 18

GAS_APPROVE = 100_000
GAS_DEFAULT = 200_000
GAS_CREATE_POOL = 300_000

# listToken risk parameters (18-decimal fractions)
COLLATERAL_FACTOR = "0.05"
BORROW_FACTOR = "0.1"
LIQUIDATION_THRESHOLD = "0.075"
LIQUIDATION_PENALTY = "0.01"
RESERVE_FACTOR = "0.01"


def to_base_units(amount: Any, decimals: int = TOKEN_DECIMALS) -> int:
    try:
        value = Decimal(str(amount))
    except (InvalidOperation, ValueError) as e:
        raise ValueError(f"Invalid amount: {amount}") from e
    if value < 0:
        raise ValueError("amount must not be negative")
    return int(value * (Decimal(10) ** decimals))


def format_units(raw: Any, decimals: int = TOKEN_DECIMALS) -> str:
    value = Decimal(int(raw)) / (Decimal(10) ** decimals)
    text = format(value.normalize(), "f")
    return text if text else "0"


def _ok(tx_hash: str | None = None, **extra: Any) -> dict[str, Any]:
    result: dict[str, Any] = {"success": True}
    if tx_hash:
        result["transactionHash"] = tx_hash
    result.update(extra)
    return result


def _fail(error: str) -> dict[str, Any]:
    return {"success": False, "error": error}


def _guard(label: str) -> Callable:
    """
    Convert RPC, contract and configuration failures into {success: false}.
    """
    def decorator(fn: Callable) -> Callable:
        @functools.wraps(fn)
        def wrapper(self, *args, **kwargs) -> dict[str, Any]:
            try:
                return fn(self, *args, **kwargs)
            except (rpc.Web3RPCError, ValueError) as e:
                logger.warning("integration call failed label=%s error=%s", label, e)
                return _fail(str(e))
        return wrapper
    return decorator


class BlockchainIntegration:
    """
    Lending, staking, oracle and swap calls against the configured networks,
    signed by the service key. State-changing methods return
    {"success": True, "transactionHash": ...} or {"success": False, "error": ...}.
    """

    # ---------------------------
    # Internals
    # ---------------------------

    def _contract(self, network: NetworkConfig, role: str, abi: list[dict[str, Any]]):
        address = network.contracts.get(role)
        if not address:
            raise ValueError(f"{role} is not deployed on {network.name}")
        return rpc.get_contract(network.chain_id, address, abi)

    def _owner(self, owner: str | None) -> str:
        if owner:
            return Web3.to_checksum_address(owner)
        return rpc.get_signer().address

    def _ensure_allowance(self, network: NetworkConfig, token: str, spender: str, amount: int) -> None:
        owner = rpc.get_signer().address
        current = rpc.erc20_allowance(network.chain_id, token, owner, spender)
        if current >= amount:
            return
        erc20 = rpc.get_contract(network.chain_id, token, ERC20_ABI)
        rpc.send_contract_tx(
            network.chain_id,
            erc20.functions.approve(Web3.to_checksum_address(spender), amount),
            gas=GAS_APPROVE,
            label="approve",
        )

    def _swap_router(self, chain_id: int) -> str | None:
        raw = get_settings().swap_routers
        if not raw:
            return None
        try:
            routers = json.loads(raw)
        except Exception as e:
            raise ValueError("SWAP_ROUTERS must be valid JSON") from e
        return routers.get(str(chain_id))

    def _lending_call(self, method: str, chain_id: int, token: str, amount: Any, *, approve: bool) -> dict[str, Any]:
        network = get_network(chain_id)
        token_addr = token_address(chain_id, token)
        raw_amount = to_base_units(amount)
        pool = self._contract(network, "LendingPool", LENDING_POOL_ABI)
        if approve:
            self._ensure_allowance(network, token_addr, pool.address, raw_amount)

        token_arg = Web3.to_checksum_address(token_addr)
        if method == "repay":
            fn_call = pool.functions.repay(token_arg, raw_amount, rpc.get_signer().address)
        else:
            fn_call = getattr(pool.functions, method)(token_arg, raw_amount)

        tx_hash = rpc.send_contract_tx(chain_id, fn_call, gas=GAS_DEFAULT, label=method)
        return _ok(tx_hash)

    # ---------------------------
    # Lending pool
    # ---------------------------

    @_guard("deposit")
    def deposit(self, chain_id: int, token: str, amount: Any) -> dict[str, Any]:
        return self._lending_call("deposit", chain_id, token, amount, approve=True)

    @_guard("withdraw")
    def withdraw(self, chain_id: int, token: str, amount: Any) -> dict[str, Any]:
        return self._lending_call("withdraw", chain_id, token, amount, approve=False)

    @_guard("borrow")
    def borrow(self, chain_id: int, token: str, amount: Any) -> dict[str, Any]:
        return self._lending_call("borrow", chain_id, token, amount, approve=False)

    @_guard("repay")
    def repay(self, chain_id: int, token: str, amount: Any) -> dict[str, Any]:
        return self._lending_call("repay", chain_id, token, amount, approve=True)

    @_guard("list_token")
    def list_token(self, chain_id: int, token: str) -> dict[str, Any]:
        """
        token may be a configured symbol or a raw token address.
        """
        network = get_network(chain_id)
        addr = token if Web3.is_address(token) else token_address(chain_id, token)
        pool = self._contract(network, "LendingPool", LENDING_POOL_ABI)
        fn_call = pool.functions.listToken(
            Web3.to_checksum_address(addr),
            to_base_units(COLLATERAL_FACTOR),
            to_base_units(BORROW_FACTOR),
            to_base_units(LIQUIDATION_THRESHOLD),
            to_base_units(LIQUIDATION_PENALTY),
            to_base_units(RESERVE_FACTOR),
        )
        return _ok(rpc.send_contract_tx(chain_id, fn_call, gas=GAS_DEFAULT, label="listToken"))

    # ---------------------------
    # Yield farming
    # ---------------------------

    @_guard("stake")
    def stake(self, chain_id: int, pool_id: int, amount: Any) -> dict[str, Any]:
        network = get_network(chain_id)
        farm = self._contract(network, "YieldFarming", YIELD_FARM_ABI)
        raw_amount = to_base_units(amount)
        info = rpc.call_function(farm.functions.getPoolInfo(int(pool_id)), label="getPoolInfo")
        self._ensure_allowance(network, info[0], farm.address, raw_amount)
        fn_call = farm.functions.stake(int(pool_id), raw_amount)
        return _ok(rpc.send_contract_tx(chain_id, fn_call, gas=GAS_DEFAULT, label="stake"))

    @_guard("unstake")
    def unstake(self, chain_id: int, pool_id: int, amount: Any) -> dict[str, Any]:
        network = get_network(chain_id)
        farm = self._contract(network, "YieldFarming", YIELD_FARM_ABI)
        fn_call = farm.functions.unstake(int(pool_id), to_base_units(amount))
        return _ok(rpc.send_contract_tx(chain_id, fn_call, gas=GAS_DEFAULT, label="unstake"))

    @_guard("claim_rewards")
    def claim_rewards(self, chain_id: int, pool_id: int) -> dict[str, Any]:
        network = get_network(chain_id)
        farm = self._contract(network, "YieldFarming", YIELD_FARM_ABI)
        fn_call = farm.functions.claimRewards(int(pool_id))
        return _ok(rpc.send_contract_tx(chain_id, fn_call, gas=GAS_DEFAULT, label="claimRewards"))

    @_guard("emergency_withdraw")
    def emergency_withdraw(self, chain_id: int, pool_id: int) -> dict[str, Any]:
        network = get_network(chain_id)
        farm = self._contract(network, "YieldFarming", YIELD_FARM_ABI)
        fn_call = farm.functions.emergencyWithdraw(int(pool_id))
        return _ok(rpc.send_contract_tx(chain_id, fn_call, gas=GAS_DEFAULT, label="emergencyWithdraw"))

    @_guard("create_pool")
    def create_pool(
        self,
        chain_id: int,
        token: str,
        *,
        reward_per_second: int = 5,
        start_delay_s: int = 5 * 60,
        duration_s: int = 60 * 60 * 24 * 7,
    ) -> dict[str, Any]:
        """
        Create a staking pool (staking token doubles as reward token), then
        activate it as poolLength - 1.
        """
        network = get_network(chain_id)
        addr = token if Web3.is_address(token) else token_address(chain_id, token)
        addr = Web3.to_checksum_address(addr)
        farm = self._contract(network, "YieldFarming", YIELD_FARM_ABI)
        now = int(time.time())
        create_hash = rpc.send_contract_tx(
            chain_id,
            farm.functions.createPool(addr, addr, int(reward_per_second), now + start_delay_s, now + duration_s),
            gas=GAS_CREATE_POOL,
            label="createPool",
        )
        pool_length = rpc.call_function(farm.functions.poolLength(), label="poolLength")
        new_pool_id = int(pool_length) - 1
        activate_hash = rpc.send_contract_tx(
            chain_id,
            farm.functions.activatePool(new_pool_id),
            gas=GAS_DEFAULT,
            label="activatePool",
        )
        return _ok(create_hash, poolId=new_pool_id, activationHash=activate_hash)

    @_guard("get_pool_information")
    def get_pool_information(self, chain_id: int) -> dict[str, Any]:
        network = get_network(chain_id)
        farm = self._contract(network, "YieldFarming", YIELD_FARM_ABI)
        pool_length = int(rpc.call_function(farm.functions.poolLength(), label="poolLength"))
        pools = []
        for pool_id in range(pool_length):
            info = rpc.call_function(farm.functions.getPoolInfo(pool_id), label="getPoolInfo")
            pools.append(
                {
                    "poolId": pool_id,
                    "stakingToken": info[0],
                    "rewardToken": info[1],
                    "rewardPerSecond": str(info[2]),
                    "totalStaked": format_units(info[3]),
                    "startTime": int(info[4]),
                    "endTime": int(info[5]),
                    "isActive": bool(info[6]),
                }
            )
        return _ok(poolCount=pool_length, pools=pools)

    @_guard("get_user_pool_info")
    def get_user_pool_info(self, chain_id: int, owner: str | None = None) -> dict[str, Any]:
        network = get_network(chain_id)
        farm = self._contract(network, "YieldFarming", YIELD_FARM_ABI)
        user = self._owner(owner)
        pool_length = int(rpc.call_function(farm.functions.poolLength(), label="poolLength"))
        positions = []
        for pool_id in range(pool_length):
            staked, _ = rpc.call_function(farm.functions.userInfo(pool_id, user), label="userInfo")
            if not staked:
                continue
            pending = rpc.call_function(farm.functions.pendingRewards(pool_id, user), label="pendingRewards")
            positions.append(
                {
                    "poolId": pool_id,
                    "staked": format_units(staked),
                    "pendingRewards": format_units(pending),
                }
            )
        return _ok(address=user, positions=positions)

    # ---------------------------
    # Oracle and balances
    # ---------------------------

    @_guard("set_token_price")
    def set_token_price(self, chain_id: int, token: str, price: Any) -> dict[str, Any]:
        network = get_network(chain_id)
        addr = token if Web3.is_address(token) else token_address(chain_id, token)
        oracle = self._contract(network, "PriceOracle", PRICE_ORACLE_ABI)
        fn_call = oracle.functions.setTokenPrice(Web3.to_checksum_address(addr), to_base_units(price))
        return _ok(rpc.send_contract_tx(chain_id, fn_call, gas=GAS_DEFAULT, label="setTokenPrice"))

    @_guard("get_token_balance")
    def get_token_balance(self, chain_id: int, token: str, owner: str | None = None) -> dict[str, Any]:
        """
        balance is the raw integer string; formatted is in whole tokens.
        """
        user = self._owner(owner)
        network = get_network(chain_id)
        if token.upper() == network.native_symbol and token.upper() not in network.tokens:
            raw = rpc.get_native_balance(chain_id, user)
        else:
            raw = rpc.erc20_balance(chain_id, token_address(chain_id, token), user)
        return _ok(balance=str(raw), formatted=format_units(raw), token=token.upper())

    def held_tokens(self, chain_id: int, owner: str | None = None) -> list[str]:
        """
        Symbols with a non-zero balance. Tokens whose balance cannot be read are skipped.
        """
        network = get_network(chain_id)
        held: list[str] = []
        for symbol in sorted(set(network.tokens) | {network.native_symbol}):
            result = self.get_token_balance(chain_id, symbol, owner)
            if result.get("success") and int(result.get("balance") or 0) > 0:
                held.append(symbol)
        return held

    # ---------------------------
    # Swaps
    # ---------------------------

    @_guard("get_swap_quote")
    def get_swap_quote(self, chain_id: int, from_token: str, to_token: str, amount: Any) -> dict[str, Any]:
        network = get_network(chain_id)
        router_addr = self._swap_router(chain_id)
        if not router_addr:
            return _fail(f"Swaps are not available on {network.display_name}")
        path = [
            Web3.to_checksum_address(token_address(chain_id, from_token)),
            Web3.to_checksum_address(token_address(chain_id, to_token)),
        ]
        router = rpc.get_contract(chain_id, router_addr, UNISWAP_V2_ROUTER_ABI)
        amounts = rpc.call_function(
            router.functions.getAmountsOut(to_base_units(amount), path),
            label="getAmountsOut",
        )
        return _ok(
            inputToken=from_token.upper(),
            outputToken=to_token.upper(),
            inputAmount=str(amount),
            expectedOutput=format_units(amounts[-1]),
            expectedOutputRaw=str(amounts[-1]),
            routeDescription=f"{from_token.upper()} -> {to_token.upper()}",
        )

    @_guard("swap")
    def swap(
        self,
        chain_id: int,
        from_token: str,
        to_token: str,
        amount: Any,
        *,
        slippage_bps: int | None = None,
    ) -> dict[str, Any]:
        settings = get_settings()
        quote = self.get_swap_quote(chain_id, from_token, to_token, amount)
        if not quote.get("success"):
            return quote

        network = get_network(chain_id)
        router_addr = Web3.to_checksum_address(self._swap_router(chain_id))
        from_addr = Web3.to_checksum_address(token_address(chain_id, from_token))
        to_addr = Web3.to_checksum_address(token_address(chain_id, to_token))
        raw_in = to_base_units(amount)
        bps = settings.default_slippage_bps if slippage_bps is None else int(slippage_bps)
        min_out = int(quote["expectedOutputRaw"]) * (10_000 - bps) // 10_000

        self._ensure_allowance(network, from_addr, router_addr, raw_in)
        router = rpc.get_contract(chain_id, router_addr, UNISWAP_V2_ROUTER_ABI)
        fn_call = router.functions.swapExactTokensForTokens(
            raw_in,
            min_out,
            [from_addr, to_addr],
            rpc.get_signer().address,
            int(time.time()) + settings.swap_deadline_seconds,
        )
        tx_hash = rpc.send_contract_tx(chain_id, fn_call, gas=GAS_CREATE_POOL, label="swap")
        return _ok(tx_hash, expectedOutput=quote["expectedOutput"])
