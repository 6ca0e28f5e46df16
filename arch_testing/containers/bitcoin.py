"""bitcoind, the ledger-source of the fleet."""

from __future__ import annotations

import logging
from collections.abc import Mapping
from dataclasses import dataclass

from arch_testing.clients.bitcoin import BitcoinRpcClient
from arch_testing.constants import (
    BITCOIN_DATA_DIR,
    BITCOIN_FUNDING_BLOCKS,
    BITCOIN_RPC_PASSWORD,
    BITCOIN_RPC_PORT,
    BITCOIN_RPC_USER,
    BITCOIN_WALLET_NAME,
    ServiceKind,
)
from arch_testing.containers.base import ServiceConfig, ServiceDefinition
from arch_testing.containers.launcher import ContainerSpec

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class BitcoinConfig(ServiceConfig):
    """Settings for the bitcoind container.

    Attributes
    ----------
    rpc_port : int
        RPC port, published on the same host port
    rpc_user : str
        RPC username
    rpc_password : str
        RPC password
    wallet_name : str
        Wallet created and funded after startup
    funding_blocks : int
        Number of blocks mined to the wallet
    """

    rpc_port: int = BITCOIN_RPC_PORT
    rpc_user: str = BITCOIN_RPC_USER
    rpc_password: str = BITCOIN_RPC_PASSWORD
    wallet_name: str = BITCOIN_WALLET_NAME
    funding_blocks: int = BITCOIN_FUNDING_BLOCKS

    @property
    def local_rpc_url(self) -> str:
        return self.local_url(self.rpc_port)

    @property
    def peer_rpc_url(self) -> str:
        return self.peer_url(self.rpc_port)


class BitcoinDefinition(ServiceDefinition):
    """Regtest bitcoind with a funded test wallet."""

    kind = ServiceKind.BITCOIN
    log_tag = "bitcoind"

    def container_spec(
        self, config: BitcoinConfig, upstream: Mapping[ServiceKind, ServiceConfig]
    ) -> ContainerSpec:
        command = (
            "bitcoind",
            f"-datadir={BITCOIN_DATA_DIR}",
            "-fallbackfee=0.00000001",
            "-printtoconsole",
            "-regtest=1",
            "-rpcallowip=0.0.0.0/0",
            "-rpcbind=0.0.0.0",
            f"-rpcport={config.rpc_port}",
            f"-rpcuser={config.rpc_user}",
            f"-rpcpassword={config.rpc_password}",
        )
        return self.base_spec(
            config,
            command=command,
            environment={"BITCOIN_DATA": BITCOIN_DATA_DIR},
            ports=(config.rpc_port,),
        )

    def build_client(self, config: BitcoinConfig) -> BitcoinRpcClient:
        return BitcoinRpcClient(config.local_rpc_url, config.rpc_user, config.rpc_password)

    def probe(self, client: BitcoinRpcClient) -> bool:
        client.get_block_count()
        return True

    def prepare(self, client: BitcoinRpcClient, config: BitcoinConfig) -> None:
        """Create the test wallet and mine enough blocks to mature its first coinbase."""
        client.create_wallet(config.wallet_name)
        address = client.get_new_address(config.wallet_name)
        client.generate_to_address(config.funding_blocks, address)
        logger.info(
            "Funded wallet '%s' with %d blocks to %s",
            config.wallet_name,
            config.funding_blocks,
            address,
        )
