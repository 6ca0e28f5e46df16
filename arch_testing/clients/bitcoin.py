"""bitcoind JSON-RPC client."""

from __future__ import annotations

from typing import Any

from arch_testing.clients.jsonrpc import JsonRpcClient


class BitcoinRpcClient:
    """Blocking client for the bitcoind RPC interface.

    Parameters
    ----------
    url : str
        RPC endpoint, e.g. ``http://127.0.0.1:18443``
    user : str
        RPC username
    password : str
        RPC password
    """

    def __init__(self, url: str, user: str, password: str) -> None:
        self.url = url.rstrip("/")
        self.rpc = JsonRpcClient(self.url, auth=(user, password), jsonrpc_version="1.0")

    def _wallet_url(self, wallet: str) -> str:
        return f"{self.url}/wallet/{wallet}"

    def get_block_count(self) -> int:
        """Return the height of the best chain."""
        return self.rpc.call("getblockcount")

    def get_blockchain_info(self) -> dict[str, Any]:
        return self.rpc.call("getblockchaininfo")

    def create_wallet(self, name: str) -> dict[str, Any]:
        """Create a wallet with default options."""
        return self.rpc.call("createwallet", [name])

    def get_new_address(self, wallet: str) -> str:
        """Return a fresh receiving address from ``wallet``."""
        return self.rpc.call("getnewaddress", [], url=self._wallet_url(wallet))

    def generate_to_address(self, blocks: int, address: str) -> list[str]:
        """Mine ``blocks`` blocks paying the coinbase to ``address``.

        Returns
        -------
        list[str]
            Hashes of the mined blocks
        """
        return self.rpc.call("generatetoaddress", [blocks, address])

    def get_balance(self, wallet: str) -> float:
        return self.rpc.call("getbalance", [], url=self._wallet_url(wallet))

    def close(self) -> None:
        self.rpc.close()
