"""Arch local validator, the service tests talk to."""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass

from arch_testing.clients.arch import ArchRpcClient
from arch_testing.constants import (
    ARCH_NETWORK_MODE,
    VALIDATOR_RPC_PORT,
    VALIDATOR_WEBSOCKET_PORT,
    ServiceKind,
)
from arch_testing.containers.base import ServiceConfig, ServiceDefinition
from arch_testing.containers.launcher import ContainerSpec
from arch_testing.containers.titan import TitanConfig


@dataclass(frozen=True)
class ValidatorConfig(ServiceConfig):
    """Settings for the local validator container.

    Attributes
    ----------
    rpc_port : int
        JSON-RPC port
    websocket_port : int
        Websocket port
    """

    rpc_port: int = VALIDATOR_RPC_PORT
    websocket_port: int = VALIDATOR_WEBSOCKET_PORT

    @property
    def local_rpc_url(self) -> str:
        return self.local_url(self.rpc_port)

    @property
    def local_websocket_url(self) -> str:
        return f"ws://{self.local_host}:{self.websocket_port}"


class ValidatorDefinition(ServiceDefinition):
    kind = ServiceKind.VALIDATOR
    dependencies = (ServiceKind.TITAN,)
    log_tag = "local_validator"

    def container_spec(
        self, config: ValidatorConfig, upstream: Mapping[ServiceKind, ServiceConfig]
    ) -> ContainerSpec:
        titan: TitanConfig = upstream[ServiceKind.TITAN]
        command = (
            "/bin/local_validator",
            f"--network-mode={ARCH_NETWORK_MODE}",
            "--rpc-bind-ip=0.0.0.0",
            f"--rpc-bind-port={config.rpc_port}",
            f"--titan-endpoint={titan.peer_http_url}",
            f"--titan-socket-endpoint={titan.peer_tcp_address}",
        )
        return self.base_spec(
            config,
            command=command,
            environment={"RUST_BACKTRACE": "full"},
            ports=(config.rpc_port, config.websocket_port),
        )

    def build_client(self, config: ValidatorConfig) -> ArchRpcClient:
        return ArchRpcClient(config.local_rpc_url)

    def probe(self, client: ArchRpcClient) -> bool:
        client.get_block_count()
        return True
