from __future__ import annotations

import json
import re
from dataclasses import dataclass, field
from typing import Any, Dict

from app.config import get_settings


class UnsupportedChainError(ValueError):
    pass


@dataclass(frozen=True)
class NetworkConfig:
    chain_id: int
    key: str
    name: str
    display_name: str
    native_symbol: str
    rpc_url: str
    contracts: Dict[str, str]
    tokens: Dict[str, str]
    aliases: tuple[str, ...] = ()
    stable_symbol: str = "USDC"
    swap_router: str | None = None
    wrapped_native: str | None = None
    extra: Dict[str, Any] = field(default_factory=dict)


NETWORKS: Dict[int, NetworkConfig] = {
    31: NetworkConfig(
        chain_id=31,
        key="rootstock",
        name="Rootstock Testnet",
        display_name="Rootstock",
        native_symbol="RBTC",
        rpc_url="https://public-node.testnet.rsk.co",
        contracts={
            "PriceOracle": "0xc6C9FE196408c0Ade5F394d930cF90Ebab66511e",
            "LendingPool": "0x60b588582b8308b9b41966fBd38821F31AA06537",
            "YieldFarming": "0x2B65Eba61bac37Ae872bEFf9d1932129B0ed24ee",
            "DeFiPlatform": "0x653c13Fb7C1E5d855448af2A385F2D97a623384E",
        },
        tokens={
            "RBTC": "0x86E47CBf56d01C842AC036A56C8ea2fE0168a2D1",
            "USDT": "0x14b1c5415C1164fB09450c9e46a00D5C39e52644",
        },
        aliases=("rootstock", "rsk", "rootstock testnet"),
        stable_symbol="USDT",
    ),
    44787: NetworkConfig(
        chain_id=44787,
        key="celoAlfajores",
        name="Celo Alfajores",
        display_name="Celo",
        native_symbol="CELO",
        rpc_url="https://alfajores-forno.celo-testnet.org",
        contracts={
            "PriceOracle": "0x308b659C3B437cFB4F54573E9C3C03acEb8B5205",
            "LendingPool": "0x884184a9aFb1B8f44fAd1C74a63B739A7c82801D",
            "YieldFarming": "0xa2AE5cB0B0E23f710887BE2676F1381fb9e4fe44",
            "DeFiPlatform": "0x649f3f2F4aB598272f2796401968ed74CBeA948c",
        },
        tokens={
            "USDC": "0xB1edE574409Af70267E37F368Ffa4eC427F5eE73",
            "CELO": "0xb2CfbF986e91beBF31f31CCf41EDa83384c3e7d5",
            "USDT": "0x50ef9155718e4b69972ebd7feb7d6d554169e6d2",
        },
        aliases=("celo", "alfajores", "celo alfajores"),
        stable_symbol="USDC",
    ),
}


def _load_rpc_overrides() -> Dict[int, str]:
    """
    RPC overrides from settings.

    Expected env format:
      RPC_URLS='{"44787":"https://alfajores-forno.celo-testnet.org"}'
    """
    raw = get_settings().RPC_URLS
    if not raw:
        return {}

    try:
        data = json.loads(raw)
    except Exception as e:
        raise ValueError("RPC_URLS must be valid JSON") from e

    overrides: Dict[int, str] = {}
    for k, v in data.items():
        try:
            chain_id = int(k)
        except ValueError:
            raise ValueError(f"Invalid chain_id key in RPC_URLS: {k}")
        if not isinstance(v, str) or not v:
            raise ValueError(f"Invalid RPC URL for chain {chain_id}")
        overrides[chain_id] = v.rstrip("/")
    return overrides


def get_network(chain_id: int | None) -> NetworkConfig:
    try:
        return NETWORKS[int(chain_id)]
    except (KeyError, TypeError, ValueError):
        raise UnsupportedChainError(f"Unsupported chain_id: {chain_id}")


def is_supported(chain_id: Any) -> bool:
    try:
        return int(chain_id) in NETWORKS
    except (TypeError, ValueError):
        return False


def get_rpc_url(chain_id: int) -> str:
    network = get_network(chain_id)
    return _load_rpc_overrides().get(network.chain_id, network.rpc_url)


def find_network_by_name(text: str | None) -> NetworkConfig | None:
    """
    Match a network alias in free text ("... on Celo", "rsk").
    Longer aliases win so "celo alfajores" is preferred over "celo".
    An alias that is also a token symbol ("celo") only counts when it reads
    as a network: "on celo" or "celo network/chain/testnet".
    """
    if not text:
        return None
    lowered = text.lower()
    symbols = {symbol.lower() for network in NETWORKS.values() for symbol in network.tokens}
    symbols.update(network.native_symbol.lower() for network in NETWORKS.values())
    candidates = [
        (alias, network)
        for network in NETWORKS.values()
        for alias in network.aliases
    ]
    for alias, network in sorted(candidates, key=lambda c: len(c[0]), reverse=True):
        escaped = re.escape(alias)
        if alias in symbols:
            pattern = rf"\bon\s+(?:the\s+)?{escaped}\b|\b{escaped}\s+(?:network|chain|testnet)\b"
        else:
            pattern = rf"\b{escaped}\b"
        if re.search(pattern, lowered):
            return network
    return None


def token_address(chain_id: int, symbol: str) -> str:
    network = get_network(chain_id)
    address = network.tokens.get((symbol or "").upper())
    if not address:
        raise ValueError(f"Token {symbol} is not configured on {network.name}")
    return address


def default_token(chain_id: int) -> str:
    return get_network(chain_id).native_symbol


def stable_token(chain_id: int) -> str:
    return get_network(chain_id).stable_symbol


def chain_display_name(chain_id: Any) -> str:
    if is_supported(chain_id):
        return get_network(chain_id).display_name
    return f"Chain {chain_id}"


def list_supported_chains() -> list[int]:
    return sorted(NETWORKS.keys())


def prompt_view() -> Dict[str, Any]:
    """
    JSON-safe view of the table, embedded in the LLM prompt as ground truth.
    """
    return {
        str(network.chain_id): {
            "name": network.name,
            "chain": network.display_name,
            "nativeCurrency": network.native_symbol,
            "tokens": sorted(network.tokens.keys()),
            "contracts": sorted(network.contracts.keys()),
        }
        for network in NETWORKS.values()
    }
