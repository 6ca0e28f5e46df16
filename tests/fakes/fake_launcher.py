"""Fake container launcher for testing with dependency injection."""

from __future__ import annotations

import logging
import threading

from arch_testing.containers.launcher import ContainerSpec
from arch_testing.exceptions import LaunchError

logger = logging.getLogger(__name__)


class FakeContainer:
    """Stand-in for a launched container that records ``stop`` calls.

    Parameters
    ----------
    spec : ContainerSpec
        Spec the container was "started" from
    events : list[tuple[str, str]]
        Shared event log, appended to on stop
    stop_error : Exception | None
        Raised from ``stop`` when set
    """

    def __init__(
        self,
        spec: ContainerSpec,
        events: list[tuple[str, str]],
        stop_error: Exception | None = None,
    ) -> None:
        self.spec = spec
        self.events = events
        self.stop_error = stop_error
        self.stop_calls = 0

    @property
    def name(self) -> str:
        return self.spec.name

    def stop(self) -> None:
        self.stop_calls += 1
        self.events.append(("stop", self.spec.service))
        if self.stop_error is not None:
            raise self.stop_error


class FakeLauncher:
    """Launcher that hands out ``FakeContainer`` objects instead of starting Docker.

    Every launch and stop is appended to ``events`` as ``(action, service)``
    so tests can assert on ordering across services.

    Parameters
    ----------
    launch_errors : dict[str, Exception] | None
        Exception to raise when launching the given service
    stop_errors : dict[str, Exception] | None
        Exception the given service's container raises on stop
    launch_delays : dict[str, float] | None
        Seconds the given service's launch blocks; the wait ends early
        with a ``LaunchError`` if the caller cancels
    """

    def __init__(
        self,
        launch_errors: dict[str, Exception] | None = None,
        stop_errors: dict[str, Exception] | None = None,
        launch_delays: dict[str, float] | None = None,
    ) -> None:
        self.launch_errors = launch_errors or {}
        self.stop_errors = stop_errors or {}
        self.launch_delays = launch_delays or {}
        self.specs: list[ContainerSpec] = []
        self.containers: dict[str, FakeContainer] = {}
        self.events: list[tuple[str, str]] = []
        self.abandoned: list[str] = []

    def launch(self, spec: ContainerSpec, cancelled: threading.Event | None = None) -> FakeContainer:
        self.specs.append(spec)
        self.events.append(("launch", spec.service))

        delay = self.launch_delays.get(spec.service)
        if delay:
            waiter = cancelled or threading.Event()
            if waiter.wait(delay):
                self.abandoned.append(spec.service)
                raise LaunchError(spec.service, "launch abandoned by caller")

        if spec.service in self.launch_errors:
            raise self.launch_errors[spec.service]

        container = FakeContainer(spec, self.events, self.stop_errors.get(spec.service))
        self.containers[spec.service] = container
        logger.debug("Fake-launched %s", spec.name)
        return container

    def launched_services(self) -> list[str]:
        return [spec.service for spec in self.specs]

    def stopped_services(self) -> list[str]:
        return [service for action, service in self.events if action == "stop"]
