"""Arch validator JSON-RPC client."""

from __future__ import annotations

import logging
import time
from typing import Any

from arch_testing.clients.jsonrpc import JsonRpcClient
from arch_testing.constants import TRANSACTION_POLL_INTERVAL, TRANSACTION_WAIT_TIMEOUT

logger = logging.getLogger(__name__)

QUEUED_STATUS = "Queued"


class ArchRpcClient:
    """Blocking client for the local validator RPC interface.

    Transactions and account payloads are passed through as decoded JSON;
    building and signing them is left to the caller.

    Parameters
    ----------
    url : str
        RPC endpoint, e.g. ``http://127.0.0.1:9002``
    """

    def __init__(self, url: str) -> None:
        self.url = url
        self.rpc = JsonRpcClient(url)

    def get_block_count(self) -> int:
        """Return the validator's current block height."""
        return self.rpc.call("get_block_count")

    def get_best_block_hash(self) -> str:
        return self.rpc.call("get_best_block_hash")

    def get_block_hash(self, height: int) -> str:
        return self.rpc.call("get_block_hash", height)

    def send_transaction(self, transaction: dict[str, Any]) -> str:
        """Submit a signed runtime transaction.

        Returns
        -------
        str
            Transaction id assigned by the validator
        """
        return self.rpc.call("send_transaction", transaction)

    def send_transactions(self, transactions: list[dict[str, Any]]) -> list[str]:
        return self.rpc.call("send_transactions", transactions)

    def get_processed_transaction(self, txid: str) -> dict[str, Any] | None:
        """Return the processed transaction for ``txid``, or None if unknown."""
        return self.rpc.call("get_processed_transaction", txid)

    def read_account_info(self, pubkey: str) -> dict[str, Any]:
        """Return account info for a hex-encoded public key."""
        return self.rpc.call("read_account_info", pubkey)

    def wait_for_processed_transaction(
        self,
        txid: str,
        timeout: float = TRANSACTION_WAIT_TIMEOUT,
        poll_interval: float = TRANSACTION_POLL_INTERVAL,
    ) -> dict[str, Any]:
        """Poll until ``txid`` has left the queued state.

        Parameters
        ----------
        txid : str
            Transaction id returned by ``send_transaction``
        timeout : float
            Seconds to wait before giving up
        poll_interval : float
            Delay between lookups

        Returns
        -------
        dict[str, Any]
            Processed transaction, either processed or failed

        Raises
        ------
        TimeoutError
            If the transaction is still unknown or queued after ``timeout``
        """
        deadline = time.monotonic() + timeout

        while True:
            processed = self.get_processed_transaction(txid)
            if processed is not None and processed.get("status") != QUEUED_STATUS:
                return processed

            if time.monotonic() >= deadline:
                raise TimeoutError(f"Transaction {txid} not processed after {timeout}s")

            logger.debug("Transaction %s not processed yet", txid)
            time.sleep(poll_interval)

    def close(self) -> None:
        self.rpc.close()
