"""Blocking clients for the provisioned services."""

from arch_testing.clients.arch import ArchRpcClient
from arch_testing.clients.bitcoin import BitcoinRpcClient
from arch_testing.clients.jsonrpc import JsonRpcClient, RpcError
from arch_testing.clients.titan import TitanClient

__all__ = [
    "ArchRpcClient",
    "BitcoinRpcClient",
    "JsonRpcClient",
    "RpcError",
    "TitanClient",
]
