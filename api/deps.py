from __future__ import annotations

from functools import lru_cache
from typing import Callable

from chain.integration import BlockchainIntegration
from wallet.provider import Web3WalletProvider, resolve_ens
from wallet.transfer import TransferExecutor


@lru_cache
def get_integration() -> BlockchainIntegration:
    return BlockchainIntegration()


def get_transfer_executor_factory() -> Callable[[int], TransferExecutor]:
    """Builds an executor bound to the server-side wallet on the requested chain."""

    def _factory(chain_id: int) -> TransferExecutor:
        return TransferExecutor(Web3WalletProvider(chain_id), resolve_name=resolve_ens)

    return _factory
