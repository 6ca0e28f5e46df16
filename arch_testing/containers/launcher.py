"""Docker launcher for service containers."""

from __future__ import annotations

import logging
import threading
import time
from collections import deque
from dataclasses import dataclass, field
from typing import Any

import docker
import docker.errors

from arch_testing.constants import CONTAINER_STATUS_POLL_INTERVAL, CONTAINER_STOP_TIMEOUT
from arch_testing.exceptions import LaunchError

logger = logging.getLogger(__name__)
container_logger = logging.getLogger("arch_testing.containers.output")

LOG_HISTORY_LINES = 50
FAILED_STATUSES = ("exited", "dead")


@dataclass(frozen=True)
class ContainerSpec:
    """Everything needed to start one service container.

    Attributes
    ----------
    service : str
        Service kind, used in logs and errors
    name : str
        Container name
    image : str
        Image repository
    tag : str
        Image tag
    command : tuple[str, ...]
        Command line; empty to use the image default
    environment : dict[str, str]
        Environment variables
    ports : tuple[int, ...]
        TCP ports published on the same host port
    startup_timeout : float
        Seconds allowed for the container to run and pass its log barrier
    wait_for_log : str | None
        Line fragment that must appear in the output before launch completes
    log_tag : str
        Prefix for forwarded output lines
    extra_hosts : dict[str, str]
        Extra ``/etc/hosts`` entries
    labels : dict[str, str]
        Container labels
    """

    service: str
    name: str
    image: str
    tag: str
    command: tuple[str, ...] = ()
    environment: dict[str, str] = field(default_factory=dict)
    ports: tuple[int, ...] = ()
    startup_timeout: float = 60.0
    wait_for_log: str | None = None
    log_tag: str = ""
    extra_hosts: dict[str, str] = field(default_factory=dict)
    labels: dict[str, str] = field(default_factory=dict)

    @property
    def image_ref(self) -> str:
        return f"{self.image}:{self.tag}"


class ContainerLogForwarder:
    """Streams container output into logging from a daemon thread.

    Also watches for an optional barrier line so the launcher can block on
    it without reading the stream itself.

    Parameters
    ----------
    container : Any
        Docker container object
    tag : str
        Prefix attached to forwarded lines
    wait_for : str | None
        Line fragment that sets ``matched`` when seen
    """

    def __init__(self, container: Any, tag: str, wait_for: str | None = None) -> None:
        self.container = container
        self.tag = tag
        self.wait_for = wait_for
        self.matched = threading.Event()
        self.finished = threading.Event()
        self.recent: deque[str] = deque(maxlen=LOG_HISTORY_LINES)
        self._thread = threading.Thread(target=self._run, name=f"logs-{tag}", daemon=True)

    def start(self) -> None:
        self._thread.start()

    def _run(self) -> None:
        buffer = ""
        try:
            for chunk in self.container.logs(stream=True, follow=True):
                buffer += chunk.decode("utf-8", errors="replace")
                *lines, buffer = buffer.split("\n")
                for line in lines:
                    self._emit(line)
            if buffer:
                self._emit(buffer)
        except Exception as e:
            logger.debug("Log stream for %s ended: %s", self.tag, e)
        finally:
            self.finished.set()

    def _emit(self, line: str) -> None:
        line = line.rstrip("\r")
        if not line.strip():
            return

        self.recent.append(line)
        container_logger.info("%s", line.strip(), extra={"container": self.tag})

        if self.wait_for and self.wait_for in line:
            self.matched.set()


class LaunchedContainer:
    """A running container started by ``DockerLauncher``.

    Parameters
    ----------
    container : Any
        Docker container object
    spec : ContainerSpec
        Spec the container was started from
    forwarder : ContainerLogForwarder
        Output forwarder attached to the container
    """

    def __init__(self, container: Any, spec: ContainerSpec, forwarder: ContainerLogForwarder) -> None:
        self.container = container
        self.spec = spec
        self.forwarder = forwarder

    @property
    def name(self) -> str:
        return self.spec.name

    def recent_logs(self) -> list[str]:
        """Return the last lines of forwarded output."""
        return list(self.forwarder.recent)

    def stop(self) -> None:
        """Stop and remove the container.

        Raises
        ------
        docker.errors.APIError
            If the engine refuses to stop the container
        """
        logger.debug("Stopping container %s (image: %s)", self.spec.name, self.spec.image_ref)

        try:
            self.container.stop(timeout=CONTAINER_STOP_TIMEOUT)
        except docker.errors.NotFound:
            logger.debug("Container %s already gone", self.spec.name)
            return

        try:
            self.container.remove(force=True, v=True)
        except docker.errors.NotFound:
            logger.debug("Container %s already removed", self.spec.name)

        logger.debug("Stopped container %s", self.spec.name)


class DockerLauncher:
    """Starts service containers through the Docker engine API.

    Parameters
    ----------
    client : docker.DockerClient | None
        Docker client; created from the environment on first use when None
    """

    def __init__(self, client: docker.DockerClient | None = None) -> None:
        self._client = client

    @property
    def client(self) -> docker.DockerClient:
        if self._client is None:
            self._client = docker.from_env()
        return self._client

    def remove_existing_container(self, container_name: str) -> None:
        """Remove a leftover container with the same name before creating a new one.

        Best-effort removal. Logs a warning but doesn't raise if removal
        fails, leaving the conflict to surface from ``containers.run``.

        Parameters
        ----------
        container_name : str
            Name of the container to remove if it exists
        """
        try:
            existing = self.client.containers.get(container_name)
        except docker.errors.NotFound:
            return
        except docker.errors.APIError as e:
            logger.warning("Could not look up existing container %s: %s", container_name, e)
            return

        logger.info("Found existing container %s, removing it", container_name)
        try:
            existing.remove(force=True)
        except docker.errors.APIError as e:
            logger.warning("Could not remove existing container %s: %s", container_name, e)

    def launch(self, spec: ContainerSpec, cancelled: threading.Event | None = None) -> LaunchedContainer:
        """Start a container and block until it is running and past its log barrier.

        Parameters
        ----------
        spec : ContainerSpec
            Container to start
        cancelled : threading.Event | None
            Set by the caller when it stops waiting; the launcher then
            discards the container instead of returning it

        Returns
        -------
        LaunchedContainer
            Running container with its output forwarder attached

        Raises
        ------
        LaunchError
            If the engine rejects the container, it exits early, the barrier
            is not seen within ``spec.startup_timeout``, or the launch was
            cancelled
        """
        logger.debug(
            "Starting %s container: %s (image: %s)", spec.service, spec.name, spec.image_ref
        )
        self.remove_existing_container(spec.name)

        try:
            container = self.client.containers.run(
                spec.image_ref,
                command=list(spec.command) or None,
                name=spec.name,
                detach=True,
                environment=dict(spec.environment),
                ports={f"{port}/tcp": port for port in spec.ports},
                extra_hosts=dict(spec.extra_hosts) or None,
                labels=dict(spec.labels),
            )
        except docker.errors.ImageNotFound as e:
            raise LaunchError(spec.service, f"image {spec.image_ref} not found: {e}") from e
        except docker.errors.APIError as e:
            raise LaunchError(spec.service, str(e)) from e

        forwarder = ContainerLogForwarder(container, spec.log_tag or spec.service, spec.wait_for_log)
        launched = LaunchedContainer(container, spec, forwarder)
        forwarder.start()

        try:
            self._wait_until_started(launched, cancelled)
        except Exception:
            self._discard(launched)
            raise

        logger.debug("Started %s container: %s", spec.service, spec.name)
        return launched

    def _wait_until_started(
        self, launched: LaunchedContainer, cancelled: threading.Event | None
    ) -> None:
        spec = launched.spec
        deadline = time.monotonic() + spec.startup_timeout

        while True:
            self._check_cancelled(spec, cancelled)
            launched.container.reload()
            status = launched.container.status

            if status == "running":
                break
            if status in FAILED_STATUSES:
                raise LaunchError(spec.service, self._exit_message(launched, status))
            if time.monotonic() >= deadline:
                raise LaunchError(
                    spec.service,
                    f"container not running after {spec.startup_timeout}s (status: {status})",
                )
            time.sleep(CONTAINER_STATUS_POLL_INTERVAL)

        if spec.wait_for_log is None:
            return

        logger.info("Waiting for '%s' from %s...", spec.wait_for_log, spec.service)
        forwarder = launched.forwarder

        while not forwarder.matched.wait(CONTAINER_STATUS_POLL_INTERVAL):
            self._check_cancelled(spec, cancelled)
            if forwarder.finished.is_set() and not forwarder.matched.is_set():
                launched.container.reload()
                raise LaunchError(
                    spec.service, self._exit_message(launched, launched.container.status)
                )
            if time.monotonic() >= deadline:
                raise LaunchError(
                    spec.service,
                    f"'{spec.wait_for_log}' not seen in output within {spec.startup_timeout}s",
                )

    @staticmethod
    def _check_cancelled(spec: ContainerSpec, cancelled: threading.Event | None) -> None:
        if cancelled is not None and cancelled.is_set():
            raise LaunchError(spec.service, "launch abandoned by caller")

    @staticmethod
    def _exit_message(launched: LaunchedContainer, status: str) -> str:
        message = f"container stopped during startup (status: {status})"
        tail = launched.recent_logs()[-5:]
        if tail:
            message += "; last output:\n" + "\n".join(tail)
        return message

    @staticmethod
    def _discard(launched: LaunchedContainer) -> None:
        try:
            launched.stop()
        except Exception as e:
            logger.warning("Could not discard container %s: %s", launched.name, e)
