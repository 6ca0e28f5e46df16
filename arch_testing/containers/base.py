"""Service configs, handles and the generic start sequence."""

from __future__ import annotations

import asyncio
import logging
import threading
from abc import ABC, abstractmethod
from collections.abc import Callable, Mapping
from concurrent.futures import Future
from dataclasses import dataclass
from typing import Any, Protocol

from arch_testing.constants import (
    CONTAINER_NAME_PREFIX,
    DEFAULT_LOCAL_HOST,
    DEFAULT_PEER_HOST,
    RUN_LABEL,
    ServiceKind,
)
from arch_testing.containers.launcher import ContainerSpec
from arch_testing.core.offload import get_executor, run_blocking
from arch_testing.core.readiness import ReadinessProber
from arch_testing.exceptions import FixtureError, ShutdownError

logger = logging.getLogger(__name__)

HOST_GATEWAY = "host-gateway"


def container_name_for(kind: ServiceKind, run_id: str) -> str:
    """Return the container name used for ``kind`` in run ``run_id``."""
    return f"{CONTAINER_NAME_PREFIX}-{kind.value}-{run_id}"


@dataclass(frozen=True)
class ServiceConfig:
    """Immutable settings shared by every service kind.

    Attributes
    ----------
    container_name : str
        Name given to the container
    image_name : str
        Image repository
    image_tag : str
        Image tag
    startup_timeout : float
        Budget for the readiness probe and the launcher's log barrier
    run_id : str
        Identifier of the run, attached to the container as a label
    local_host : str
        Host at which the harness reaches the mapped ports
    peer_host : str
        Host at which sibling containers reach the mapped ports
    """

    container_name: str
    image_name: str
    image_tag: str
    startup_timeout: float
    run_id: str = ""
    local_host: str = DEFAULT_LOCAL_HOST
    peer_host: str = DEFAULT_PEER_HOST

    @property
    def image_ref(self) -> str:
        return f"{self.image_name}:{self.image_tag}"

    def local_url(self, port: int) -> str:
        return f"http://{self.local_host}:{port}"

    def peer_url(self, port: int) -> str:
        return f"http://{self.peer_host}:{port}"

    def peer_address(self, port: int) -> str:
        return f"{self.peer_host}:{port}"


class ContainerLauncher(Protocol):
    """Protocol for anything that can start a container from a ``ContainerSpec``."""

    def launch(self, spec: ContainerSpec, cancelled: threading.Event | None = None) -> Any: ...


class ServiceHandle:
    """A launched service: its container plus a client bound to its local endpoint.

    ``shutdown`` stops the container on the first call and does nothing on
    later calls, so the owner and any error path may both invoke it safely.

    Parameters
    ----------
    kind : ServiceKind
        Role of the service
    config : ServiceConfig
        Config the service was started from
    container : Any
        Launched container; must provide ``stop()``
    """

    def __init__(self, kind: ServiceKind, config: ServiceConfig, container: Any) -> None:
        self.kind = kind
        self.config = config
        self.container = container
        self.client: Any = None
        self.ready = False
        self._stopped = False
        self._lock = threading.Lock()

    def __repr__(self) -> str:
        return (
            f"ServiceHandle(kind={self.kind.value}, container={self.config.container_name}, "
            f"ready={self.ready}, stopped={self._stopped})"
        )

    @property
    def stopped(self) -> bool:
        return self._stopped

    def attach_client(self, client: Any) -> None:
        self.client = client

    def mark_ready(self) -> None:
        self.ready = True

    def shutdown(self) -> None:
        """Stop the container and release the client.

        The container is always stopped first; the client is closed even if
        stopping fails.

        Raises
        ------
        ShutdownError
            If the container could not be stopped or the client failed to
            close; a stop failure takes precedence
        """
        with self._lock:
            if self._stopped:
                return
            self._stopped = True

        logger.debug("Shutting down %s (%s)", self.kind.value, self.config.container_name)
        errors: list[Exception] = []

        try:
            self.container.stop()
        except Exception as e:
            errors.append(e)

        if self.client is not None and hasattr(self.client, "close"):
            try:
                self.client.close()
            except Exception as e:
                logger.warning("Closing %s client failed: %s", self.kind.value, e)
                errors.append(e)

        if errors:
            raise ShutdownError(self.kind.value, self.config.container_name, errors[0]) from errors[0]


class ServiceDefinition(ABC):
    """Kind-specific parts of the start sequence.

    Subclasses describe how to build the container, which client talks to
    it, what counts as ready and which fixture work follows readiness.
    """

    kind: ServiceKind
    dependencies: tuple[ServiceKind, ...] = ()
    log_tag: str = ""

    @abstractmethod
    def container_spec(
        self, config: ServiceConfig, upstream: Mapping[ServiceKind, ServiceConfig]
    ) -> ContainerSpec:
        """Build the container spec, wiring in peer endpoints of ``upstream``."""

    @abstractmethod
    def build_client(self, config: ServiceConfig) -> Any:
        """Return a client bound to the service's local endpoint."""

    @abstractmethod
    def probe(self, client: Any) -> bool:
        """Make the cheapest read-only call; return True once it answers."""

    def prepare(self, client: Any, config: ServiceConfig) -> None:
        """One-time fixture work after readiness. Does nothing by default."""

    def base_spec(self, config: ServiceConfig, **kwargs: Any) -> ContainerSpec:
        """Build a ``ContainerSpec`` with the fields common to every kind."""
        return ContainerSpec(
            service=self.kind.value,
            name=config.container_name,
            image=config.image_name,
            tag=config.image_tag,
            startup_timeout=config.startup_timeout,
            log_tag=self.log_tag or self.kind.value,
            extra_hosts={DEFAULT_PEER_HOST: HOST_GATEWAY},
            labels={RUN_LABEL: config.run_id},
            **kwargs,
        )


class ServiceOrchestrator:
    """Runs the start sequence for one service kind.

    Parameters
    ----------
    definition : ServiceDefinition
        Kind-specific behaviour
    launcher : ContainerLauncher
        Starts the container
    prober : ReadinessProber | None
        Readiness poller; a default-configured one when None
    """

    def __init__(
        self,
        definition: ServiceDefinition,
        launcher: ContainerLauncher,
        prober: ReadinessProber | None = None,
    ) -> None:
        self.definition = definition
        self.launcher = launcher
        self.prober = prober or ReadinessProber()

    @property
    def kind(self) -> ServiceKind:
        return self.definition.kind

    async def start(
        self,
        config: ServiceConfig,
        upstream: Mapping[ServiceKind, ServiceConfig] | None = None,
        on_launched: Callable[[ServiceHandle], None] | None = None,
    ) -> ServiceHandle:
        """Launch the service, wait until it is ready and run its fixture.

        Parameters
        ----------
        config : ServiceConfig
            Config of this service
        upstream : Mapping[ServiceKind, ServiceConfig] | None
            Configs of already-started services this one depends on
        on_launched : Callable[[ServiceHandle], None] | None
            Called with the handle as soon as the container is running, so
            the caller can tear it down if a later step fails. When None,
            the orchestrator shuts the handle down itself on failure.

        Returns
        -------
        ServiceHandle
            Ready handle

        Raises
        ------
        ValueError
            If a dependency config is missing from ``upstream``
        LaunchError
            If the container fails to start
        ReadinessTimeoutError
            If the service is not ready within ``config.startup_timeout``
        FixtureError
            If the fixture step fails
        """
        upstream = dict(upstream or {})
        missing = [kind.value for kind in self.definition.dependencies if kind not in upstream]
        if missing:
            raise ValueError(f"{self.kind.value} requires upstream config for: {', '.join(missing)}")

        spec = self.definition.container_spec(config, upstream)
        container = await self._launch(spec)

        handle = ServiceHandle(self.kind, config, container)
        if on_launched is not None:
            on_launched(handle)
            return await self._bring_up(handle)

        try:
            return await self._bring_up(handle)
        except Exception:
            await run_blocking(handle.shutdown)
            raise

    async def _launch(self, spec: ContainerSpec) -> Any:
        cancelled = threading.Event()
        future = get_executor().submit(self.launcher.launch, spec, cancelled)

        try:
            return await asyncio.wrap_future(future)
        except asyncio.CancelledError:
            cancelled.set()
            future.add_done_callback(_stop_late_container)
            raise

    async def _bring_up(self, handle: ServiceHandle) -> ServiceHandle:
        config = handle.config
        client = self.definition.build_client(config)
        handle.attach_client(client)

        await self.prober.wait_until_ready(
            lambda: self.definition.probe(client),
            config.startup_timeout,
            self.kind.value,
        )

        try:
            await run_blocking(self.definition.prepare, client, config)
        except Exception as e:
            raise FixtureError(self.kind.value, e) from e

        handle.mark_ready()
        logger.debug("%s started: %s", self.kind.value, config.container_name)
        return handle


def _stop_late_container(future: Future) -> None:
    """Stop a container whose launch finished after the caller stopped waiting."""
    if future.cancelled() or future.exception() is not None:
        return

    container = future.result()
    logger.warning("Stopping container that started after its launch was abandoned")
    try:
        container.stop()
    except Exception as e:
        logger.error("Could not stop abandoned container: %s", e)
