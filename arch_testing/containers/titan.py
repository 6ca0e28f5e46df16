"""Titan, the indexer that follows bitcoind."""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass

from arch_testing.clients.titan import TitanClient
from arch_testing.constants import (
    BITCOIN_NETWORK,
    TITAN_HTTP_PORT,
    TITAN_SYNCED_MESSAGE,
    TITAN_TCP_PORT,
    ServiceKind,
)
from arch_testing.containers.base import ServiceConfig, ServiceDefinition
from arch_testing.containers.bitcoin import BitcoinConfig
from arch_testing.containers.launcher import ContainerSpec

COMMIT_INTERVAL = 5


@dataclass(frozen=True)
class TitanConfig(ServiceConfig):
    """Settings for the Titan container.

    Attributes
    ----------
    http_port : int
        HTTP API port
    tcp_port : int
        Event socket port
    """

    http_port: int = TITAN_HTTP_PORT
    tcp_port: int = TITAN_TCP_PORT

    @property
    def local_http_url(self) -> str:
        return self.local_url(self.http_port)

    @property
    def peer_http_url(self) -> str:
        return self.peer_url(self.http_port)

    @property
    def peer_tcp_address(self) -> str:
        return self.peer_address(self.tcp_port)


class TitanDefinition(ServiceDefinition):
    """Titan indexer; launch completes once it reports being synced to the tip."""

    kind = ServiceKind.TITAN
    dependencies = (ServiceKind.BITCOIN,)
    log_tag = "titand"

    def container_spec(
        self, config: TitanConfig, upstream: Mapping[ServiceKind, ServiceConfig]
    ) -> ContainerSpec:
        bitcoin: BitcoinConfig = upstream[ServiceKind.BITCOIN]
        environment = {
            "BITCOIN_RPC_URL": bitcoin.peer_rpc_url,
            "BITCOIN_RPC_USERNAME": bitcoin.rpc_user,
            "BITCOIN_RPC_PASSWORD": bitcoin.rpc_password,
            "CHAIN": BITCOIN_NETWORK,
            "COMMIT_INTERVAL": str(COMMIT_INTERVAL),
            "HTTP_LISTEN": f"0.0.0.0:{config.http_port}",
            "TCP_ADDRESS": f"0.0.0.0:{config.tcp_port}",
            "RUST_BACKTRACE": "full",
        }
        return self.base_spec(
            config,
            environment=environment,
            ports=(config.http_port, config.tcp_port),
            wait_for_log=TITAN_SYNCED_MESSAGE,
        )

    def build_client(self, config: TitanConfig) -> TitanClient:
        return TitanClient(config.local_http_url)

    def probe(self, client: TitanClient) -> bool:
        client.get_tip()
        return True
