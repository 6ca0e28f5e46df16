"""Registry for managing service handles with reverse-order teardown."""

from __future__ import annotations

import logging
import time
from collections.abc import Callable
from dataclasses import dataclass, field
from typing import Any

from arch_testing.constants import ServiceKind
from arch_testing.core.offload import run_blocking

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class TeardownStep:
    """Outcome of disposing of one service.

    Attributes
    ----------
    kind : ServiceKind
        Service kind that was disposed of
    label : str
        Label given at registration, usually the container name
    duration_sec : float
        Wall-clock time the disposal took
    error : str | None
        Failure message, or None if the disposal succeeded
    """

    kind: ServiceKind
    label: str
    duration_sec: float
    error: str | None = None

    @property
    def name(self) -> str:
        return f"{self.kind.value}-shutdown"

    @property
    def failed(self) -> bool:
        return self.error is not None


@dataclass
class TeardownReport:
    """Steps of one ``cleanup_all`` pass, in the order they ran."""

    steps: list[TeardownStep] = field(default_factory=list)

    @property
    def errors(self) -> list[str]:
        """Messages of failed steps, in teardown order."""
        return [f"{step.kind.value} shutdown failed: {step.error}" for step in self.steps if step.failed]

    def success(self) -> bool:
        return not any(step.failed for step in self.steps)

    def first_failed_step(self) -> str | None:
        for step in self.steps:
            if step.failed:
                return step.name
        return None


@dataclass
class RegisteredResource:
    """A resource awaiting disposal.

    Attributes
    ----------
    kind : ServiceKind
        Service kind owning the resource
    handle : Any
        Resource handle passed to ``dispose_fn``
    dispose_fn : Callable[[Any], None]
        Blocking disposal function, called as ``dispose_fn(handle)``
    label : str
        Descriptive label for diagnostics
    """

    kind: ServiceKind
    handle: Any
    dispose_fn: Callable[[Any], None]
    label: str = ""


class ResourceRegistry:
    """Holds at most one resource per service kind and disposes of them in reverse.

    Resources are appended in creation order. ``cleanup_all`` disposes of
    every registered resource in reverse creation order and continues past
    individual failures, recording every step in a ``TeardownReport``.

    Attributes
    ----------
    resources : list[RegisteredResource]
        Registered resources in creation order
    """

    def __init__(self) -> None:
        self.resources: list[RegisteredResource] = []

    def register(
        self,
        kind: ServiceKind,
        handle: Any,
        dispose_fn: Callable[[Any], None],
        label: str = "",
    ) -> None:
        """Register a resource for teardown.

        Parameters
        ----------
        kind : ServiceKind
            Service kind owning the resource
        handle : Any
            Resource handle to pass to dispose_fn
        dispose_fn : Callable
            Function to call during teardown: dispose_fn(handle)
        label : str, optional
            Descriptive label for diagnostics

        Raises
        ------
        ValueError
            If a resource for ``kind`` is already registered
        """
        if self.get(kind) is not None:
            raise ValueError(f"A {kind.value} resource is already registered")

        self.resources.append(RegisteredResource(kind, handle, dispose_fn, label))
        logger.debug("Registered %s: %s", kind.value, label)

    def get(self, kind: ServiceKind) -> Any | None:
        """Return the handle registered for ``kind``, or None."""
        for entry in self.resources:
            if entry.kind is kind:
                return entry.handle
        return None

    def kinds(self) -> list[ServiceKind]:
        """Return registered kinds in creation order."""
        return [entry.kind for entry in self.resources]

    async def cleanup_all(self) -> TeardownReport:
        """Dispose of all registered resources in reverse creation order.

        Every disposal is attempted even if earlier ones raise. The registry
        is empty afterwards.

        Returns
        -------
        TeardownReport
            One step per disposal, failed ones carrying their error
        """
        entries = list(reversed(self.resources))
        self.resources.clear()

        report = TeardownReport()
        for entry in entries:
            report.steps.append(await self._dispose(entry))
        return report

    async def _dispose(self, entry: RegisteredResource) -> TeardownStep:
        start = time.perf_counter()
        error = None

        try:
            await run_blocking(entry.dispose_fn, entry.handle)
            logger.debug("Cleaned up %s: %s", entry.kind.value, entry.label)
        except Exception as e:
            error = str(e)
            logger.error("Teardown of %s '%s' failed: %s", entry.kind.value, entry.label, e)

        return TeardownStep(entry.kind, entry.label, time.perf_counter() - start, error)
