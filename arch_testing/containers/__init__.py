"""Service containers: launcher, per-kind definitions and the start sequence."""

from __future__ import annotations

from arch_testing.constants import ServiceKind
from arch_testing.containers.base import (
    ContainerLauncher,
    ServiceConfig,
    ServiceDefinition,
    ServiceHandle,
    ServiceOrchestrator,
    container_name_for,
)
from arch_testing.containers.bitcoin import BitcoinConfig, BitcoinDefinition
from arch_testing.containers.launcher import ContainerSpec, DockerLauncher, LaunchedContainer
from arch_testing.containers.titan import TitanConfig, TitanDefinition
from arch_testing.containers.validator import ValidatorConfig, ValidatorDefinition
from arch_testing.core.readiness import ReadinessProber

DEFINITIONS: dict[ServiceKind, type[ServiceDefinition]] = {
    ServiceKind.BITCOIN: BitcoinDefinition,
    ServiceKind.TITAN: TitanDefinition,
    ServiceKind.VALIDATOR: ValidatorDefinition,
}


def default_orchestrators(
    launcher: ContainerLauncher, prober: ReadinessProber | None = None
) -> dict[ServiceKind, ServiceOrchestrator]:
    """Build one orchestrator per service kind sharing ``launcher`` and ``prober``.

    Parameters
    ----------
    launcher : ContainerLauncher
        Launcher used for every service
    prober : ReadinessProber | None
        Shared readiness prober; default-configured when None

    Returns
    -------
    dict[ServiceKind, ServiceOrchestrator]
        Orchestrators keyed by kind
    """
    return {
        kind: ServiceOrchestrator(definition(), launcher, prober)
        for kind, definition in DEFINITIONS.items()
    }


__all__ = [
    "BitcoinConfig",
    "BitcoinDefinition",
    "ContainerLauncher",
    "ContainerSpec",
    "DEFINITIONS",
    "DockerLauncher",
    "LaunchedContainer",
    "ServiceConfig",
    "ServiceDefinition",
    "ServiceHandle",
    "ServiceOrchestrator",
    "TitanConfig",
    "TitanDefinition",
    "ValidatorConfig",
    "ValidatorDefinition",
    "container_name_for",
    "default_orchestrators",
]
