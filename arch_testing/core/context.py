"""Context handed to the caller's test routine."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, ClassVar

from arch_testing.clients.arch import ArchRpcClient
from arch_testing.constants import (
    ARCH_NETWORK_MODE,
    BITCOIN_NETWORK,
    TRANSACTION_POLL_INTERVAL,
    TRANSACTION_WAIT_TIMEOUT,
)
from arch_testing.containers.base import ServiceHandle
from arch_testing.core.offload import run_blocking


@dataclass(frozen=True)
class TestContext:
    """Read-only view of the running validator.

    Plain test routines run in a worker thread and can call
    ``arch_rpc_client`` directly. Coroutine routines should use the async
    helpers, which keep the blocking RPC calls off the event loop.

    Attributes
    ----------
    arch_rpc_client : ArchRpcClient
        Client bound to the validator's local RPC endpoint
    rpc_url : str
        Validator RPC URL reachable from the harness
    websocket_url : str
        Validator websocket URL reachable from the harness
    network : str
        Bitcoin network of the fleet
    network_mode : str
        Arch network mode of the validator
    """

    __test__: ClassVar[bool] = False

    arch_rpc_client: ArchRpcClient
    rpc_url: str
    websocket_url: str
    network: str = BITCOIN_NETWORK
    network_mode: str = ARCH_NETWORK_MODE

    @classmethod
    def from_handle(cls, handle: ServiceHandle) -> TestContext:
        """Build a context from a ready validator handle."""
        config = handle.config
        return cls(
            arch_rpc_client=handle.client,
            rpc_url=config.local_rpc_url,
            websocket_url=config.local_websocket_url,
        )

    async def get_block_count(self) -> int:
        return await run_blocking(self.arch_rpc_client.get_block_count)

    async def get_best_block_hash(self) -> str:
        return await run_blocking(self.arch_rpc_client.get_best_block_hash)

    async def send_transaction(self, transaction: dict[str, Any]) -> str:
        return await run_blocking(self.arch_rpc_client.send_transaction, transaction)

    async def send_transactions(self, transactions: list[dict[str, Any]]) -> list[str]:
        return await run_blocking(self.arch_rpc_client.send_transactions, transactions)

    async def read_account_info(self, pubkey: str) -> dict[str, Any]:
        return await run_blocking(self.arch_rpc_client.read_account_info, pubkey)

    async def wait_for_transaction(
        self,
        txid: str,
        timeout: float = TRANSACTION_WAIT_TIMEOUT,
        poll_interval: float = TRANSACTION_POLL_INTERVAL,
    ) -> dict[str, Any]:
        """Wait until ``txid`` is processed or failed.

        Raises
        ------
        TimeoutError
            If the transaction is still queued after ``timeout``
        """
        return await run_blocking(
            self.arch_rpc_client.wait_for_processed_transaction, txid, timeout, poll_interval
        )
