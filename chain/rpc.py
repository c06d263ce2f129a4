from __future__ import annotations

import logging
from contextlib import contextmanager
from functools import lru_cache
from typing import Any, Iterator

from eth_account import Account
from eth_account.signers.local import LocalAccount
from web3 import Web3
from web3.exceptions import ContractLogicError

from app.config import get_settings
from chain.abis import ERC20_ABI
from chain.networks import get_rpc_url

logger = logging.getLogger(__name__)

RECEIPT_TIMEOUT_S = 120


class Web3RPCError(RuntimeError):
    pass


@contextmanager
def _rpc_errors(label: str) -> Iterator[None]:
    """Re-raise reverts and transport failures as Web3RPCError tagged with `label`."""
    try:
        yield
    except Web3RPCError:
        raise
    except ContractLogicError as e:
        raise Web3RPCError(f"{label} reverted: {e}") from e
    except Exception as e:
        raise Web3RPCError(f"{label} failed: {e}") from e


@lru_cache
def web3_for(chain_id: int) -> Web3:
    """One HTTP-backed Web3 per supported chain, created on first use."""
    w3 = Web3(Web3.HTTPProvider(get_rpc_url(chain_id)))
    if not w3.is_connected():
        raise Web3RPCError(f"Unable to connect to RPC for chain_id={chain_id}")
    return w3


def get_signer() -> LocalAccount:
    """Service signer from PRIVATE_KEY; the 0x prefix is optional."""
    key = get_settings().private_key
    if not key:
        raise Web3RPCError("Private key not found")
    return Account.from_key(key if key.startswith("0x") else f"0x{key}")


def get_contract(chain_id: int, address: str, abi: list[dict[str, Any]]):
    return web3_for(chain_id).eth.contract(address=Web3.to_checksum_address(address), abi=abi)


def call_function(fn_call, *, label: str) -> Any:
    with _rpc_errors(label):
        return fn_call.call()


def get_native_balance(chain_id: int, address: str) -> int:
    with _rpc_errors("getBalance"):
        return int(web3_for(chain_id).eth.get_balance(Web3.to_checksum_address(address)))


def erc20_balance(chain_id: int, token_address: str, owner: str) -> int:
    token = get_contract(chain_id, token_address, ERC20_ABI)
    return int(call_function(token.functions.balanceOf(Web3.to_checksum_address(owner)), label="balanceOf"))


def erc20_allowance(chain_id: int, token_address: str, owner: str, spender: str) -> int:
    token = get_contract(chain_id, token_address, ERC20_ABI)
    fn_call = token.functions.allowance(
        Web3.to_checksum_address(owner),
        Web3.to_checksum_address(spender),
    )
    return int(call_function(fn_call, label="allowance"))


def send_contract_tx(chain_id: int, fn_call, *, gas: int, label: str) -> str:
    """
    Sign `fn_call` with the service key, submit it and block until mined.
    Returns the 0x transaction hash; a status-0 receipt raises.
    """
    w3 = web3_for(chain_id)
    signer = get_signer()
    with _rpc_errors(label):
        tx = fn_call.build_transaction(
            {
                "from": signer.address,
                "chainId": chain_id,
                "gas": gas,
                "gasPrice": int(w3.eth.gas_price),
                "nonce": w3.eth.get_transaction_count(signer.address, "pending"),
            }
        )
        signed = signer.sign_transaction(tx)
        tx_hash = w3.eth.send_raw_transaction(signed.raw_transaction)
        receipt = w3.eth.wait_for_transaction_receipt(tx_hash, timeout=RECEIPT_TIMEOUT_S)

    hex_hash = Web3.to_hex(tx_hash)
    if receipt.get("status") == 0:
        raise Web3RPCError(f"{label} reverted on-chain: {hex_hash}")
    logger.info("tx confirmed label=%s chain_id=%s hash=%s", label, chain_id, hex_hash)
    return hex_hash
