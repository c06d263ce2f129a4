from __future__ import annotations

import logging
from functools import lru_cache
from typing import Any, Protocol

from eth_account.signers.local import LocalAccount
from web3 import Web3

from app.config import get_settings
from chain import rpc

logger = logging.getLogger(__name__)


class WalletRPCError(RuntimeError):
    def __init__(self, message: str, *, code: int | None = None):
        super().__init__(message)
        self.code = code


class WalletProvider(Protocol):
    """Single capability interface: EIP-1193 style request(method, params)."""

    def request(self, method: str, params: list[Any] | None = None) -> Any:
        ...


def _to_int(value: Any) -> int:
    if isinstance(value, str):
        return int(value, 16) if value.startswith("0x") else int(value)
    return int(value)


class Web3WalletProvider:
    """
    Server-side wallet backed by the service signer. eth_sendTransaction is
    signed locally; every other method is forwarded to the chain RPC.
    """

    def __init__(self, chain_id: int, *, signer: LocalAccount | None = None, w3: Web3 | None = None):
        self.chain_id = chain_id
        self._signer = signer
        self._w3 = w3

    @property
    def signer(self) -> LocalAccount:
        if self._signer is None:
            self._signer = rpc.get_signer()
        return self._signer

    @property
    def w3(self) -> Web3:
        if self._w3 is None:
            self._w3 = rpc.web3_for(self.chain_id)
        return self._w3

    def request(self, method: str, params: list[Any] | None = None) -> Any:
        params = list(params or [])
        if method in ("eth_accounts", "eth_requestAccounts"):
            return [self.signer.address]
        if method == "eth_chainId":
            return hex(self.chain_id)
        if method == "eth_sendTransaction":
            return self._send_transaction(dict(params[0]))

        response = self.w3.provider.make_request(method, params)
        error = response.get("error") if isinstance(response, dict) else None
        if error:
            raise WalletRPCError(str(error.get("message") or error), code=error.get("code"))
        return response.get("result")

    def _send_transaction(self, tx: dict[str, Any]) -> str:
        w3 = self.w3
        sender = self.signer.address
        full_tx = {
            "from": sender,
            "to": Web3.to_checksum_address(tx["to"]),
            "value": _to_int(tx.get("value", 0)),
            "data": tx.get("data", "0x"),
            "gas": _to_int(tx.get("gas", 100_000)),
            "gasPrice": _to_int(tx["gasPrice"]) if tx.get("gasPrice") else int(w3.eth.gas_price),
            "nonce": w3.eth.get_transaction_count(sender, "pending"),
            "chainId": self.chain_id,
        }
        signed = self.signer.sign_transaction(full_tx)
        try:
            tx_hash = w3.eth.send_raw_transaction(signed.raw_transaction)
        except Exception as e:
            raise WalletRPCError(str(e)) from e
        return Web3.to_hex(tx_hash)


@lru_cache
def _ens_web3() -> Web3:
    return Web3(Web3.HTTPProvider(get_settings().ens_rpc_url))


def resolve_ens(name: str) -> str | None:
    """
    Resolve an ENS name on mainnet. Returns None when the name has no address.
    """
    try:
        address = _ens_web3().ens.address(name)
    except Exception as e:
        logger.warning("ens resolution failed name=%s error=%s", name, e)
        return None
    return str(address) if address else None
