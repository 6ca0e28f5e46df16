"""Test orchestration lifecycle.

``TestRunner`` provisions bitcoind, Titan and the local validator in
dependency order, hands a ``TestContext`` to the caller's routine and tears
every launched container down again, whatever happened before.
"""

from __future__ import annotations

import asyncio
import dataclasses
import inspect
import logging
from collections.abc import Callable
from concurrent.futures import ThreadPoolExecutor
from enum import Enum
from typing import Any

from arch_testing.constants import SERVICE_ORDER, ServiceKind
from arch_testing.containers import (
    ContainerLauncher,
    DockerLauncher,
    ServiceConfig,
    ServiceHandle,
    ServiceOrchestrator,
    default_orchestrators,
)
from arch_testing.core.config import TestRunnerConfig
from arch_testing.core.context import TestContext
from arch_testing.core.offload import run_blocking
from arch_testing.core.resources import ResourceRegistry, TeardownReport
from arch_testing.core.timeouts import PhaseBudget
from arch_testing.exceptions import PhaseTimeoutError, RunFailedError
from arch_testing.logging import init_logging

logger = logging.getLogger(__name__)

TestFn = Callable[[TestContext], Any]


class RunnerState(Enum):
    IDLE = "idle"
    SETTING_UP = "setting_up"
    READY = "ready"
    TESTING = "testing"
    TEARING_DOWN = "tearing_down"
    DONE = "done"


class TestRunner:
    """Runs one test routine against a freshly provisioned fleet.

    The class-level entry points ``run``, ``arun``, ``run_with_config`` and
    ``arun_with_config`` build a fresh runner per call. An instance is
    single-use: ``execute`` or ``aexecute`` may be called once.

    Parameters
    ----------
    config : TestRunnerConfig | None
        Run configuration; loaded with ``TestRunnerConfig.new()`` (YAML file
        and environment overrides) when None
    launcher : ContainerLauncher | None
        Container launcher; a ``DockerLauncher`` when None
    orchestrators : dict[ServiceKind, ServiceOrchestrator] | None
        Per-kind orchestrators; built around ``launcher`` when None

    Attributes
    ----------
    state : RunnerState
        Current lifecycle state
    current_step : str | None
        Step in progress, or the last one attempted
    handles : dict[ServiceKind, ServiceHandle]
        Handles of services that finished their start sequence
    teardown_report : TeardownReport | None
        Teardown steps once teardown has run
    """

    __test__ = False

    def __init__(
        self,
        config: TestRunnerConfig | None = None,
        launcher: ContainerLauncher | None = None,
        orchestrators: dict[ServiceKind, ServiceOrchestrator] | None = None,
    ) -> None:
        self.config = config if config is not None else TestRunnerConfig.new()
        self._launcher = launcher
        self._orchestrators = orchestrators
        self.registry = ResourceRegistry()
        self.state = RunnerState.IDLE
        self.current_step: str | None = None
        self.handles: dict[ServiceKind, ServiceHandle] = {}
        self.teardown_report: TeardownReport | None = None

    @property
    def orchestrators(self) -> dict[ServiceKind, ServiceOrchestrator]:
        if self._orchestrators is None:
            self._orchestrators = default_orchestrators(self._launcher or DockerLauncher())
        return self._orchestrators

    @classmethod
    def run(cls, test_fn: TestFn) -> None:
        """Run ``test_fn`` on a new runner configured by ``TestRunnerConfig.new()``.

        Raises
        ------
        RunFailedError
            If setup, the test routine or teardown failed
        """
        cls().execute(test_fn)

    @classmethod
    def run_with_config(cls, config: TestRunnerConfig, test_fn: TestFn) -> None:
        """Run ``test_fn`` with ``config`` on a new runner."""
        cls(config).execute(test_fn)

    @classmethod
    async def arun(cls, test_fn: TestFn) -> None:
        await cls().aexecute(test_fn)

    @classmethod
    async def arun_with_config(cls, config: TestRunnerConfig, test_fn: TestFn) -> None:
        await cls(config).aexecute(test_fn)

    def execute(self, test_fn: TestFn) -> None:
        """Run ``test_fn`` from synchronous code.

        When called from a thread that already runs an event loop, the run
        gets its own loop in a helper thread.

        Raises
        ------
        RunFailedError
            If setup, the test routine or teardown failed
        """
        try:
            asyncio.get_running_loop()
        except RuntimeError:
            loop_running = False
        else:
            loop_running = True

        if not loop_running:
            asyncio.run(self.aexecute(test_fn))
            return

        with ThreadPoolExecutor(max_workers=1) as executor:
            executor.submit(asyncio.run, self.aexecute(test_fn)).result()

    async def aexecute(self, test_fn: TestFn) -> None:
        """Provision the fleet, run ``test_fn`` and tear everything down.

        A plain function that overruns the test budget cannot be cancelled:
        the run fails and teardown stops the containers while the function
        keeps running in its worker thread until it returns on its own.
        Calls it makes after that point see the services gone.

        Parameters
        ----------
        test_fn : Callable[[TestContext], Any]
            Plain function (run in the worker pool) or coroutine function
            (awaited on the loop). Raising means failure.

        Raises
        ------
        RunFailedError
            After teardown, if setup, the test routine or teardown failed
        RuntimeError
            If this runner has already been used
        """
        init_logging()
        self._claim()

        phase: str | None = None
        cause: BaseException | None = None

        try:
            try:
                context = await self._setup()
            except Exception as e:
                phase, cause = "setup", e
                logger.error("Setup failed at '%s': %s", self.current_step, e)
            else:
                try:
                    await self._run_test(test_fn, context)
                except Exception as e:
                    phase, cause = "test", e
                    logger.error("Test routine failed: %s", e)
        finally:
            failed_step = self.current_step
            report = await self._shielded_teardown()

        if cause is None and report.success():
            logger.info("Test run %s passed", self.config.run_id)
            return

        if cause is None:
            phase, failed_step = "teardown", report.first_failed_step()

        raise RunFailedError(phase, failed_step, cause, report.errors) from cause

    def _claim(self) -> None:
        if self.state is not RunnerState.IDLE:
            raise RuntimeError("TestRunner instances are single-use; create a new one per run")
        self.state = RunnerState.SETTING_UP

    async def _setup(self) -> TestContext:
        budget_seconds = self.config.effective_setup_timeout()
        budget = PhaseBudget("setup", budget_seconds)
        configs = self.config.service_configs()
        logger.debug("Starting fleet for run %s (budget %.1fs)", self.config.run_id, budget_seconds)

        try:
            async with asyncio.timeout(budget_seconds) as deadline:
                for kind in SERVICE_ORDER:
                    await self._start_service(kind, configs, budget)
        except TimeoutError as e:
            if deadline.expired():
                raise PhaseTimeoutError("setup", budget_seconds, self.current_step) from e
            raise

        self.state = RunnerState.READY
        budget.checkpoint("fleet ready")
        return TestContext.from_handle(self.handles[ServiceKind.VALIDATOR])

    async def _start_service(
        self,
        kind: ServiceKind,
        configs: dict[ServiceKind, ServiceConfig],
        budget: PhaseBudget,
    ) -> None:
        self.current_step = f"start {kind.value}"
        config = configs[kind]
        startup = budget.allocate(self.current_step, config.startup_timeout)
        config = dataclasses.replace(config, startup_timeout=startup)
        upstream = {started: configs[started] for started in self.handles}

        handle = await self.orchestrators[kind].start(config, upstream, on_launched=self._register)

        self.handles[kind] = handle
        budget.checkpoint(f"{kind.value} ready")

    def _register(self, handle: ServiceHandle) -> None:
        self.registry.register(
            handle.kind, handle, ServiceHandle.shutdown, label=handle.config.container_name
        )

    async def _run_test(self, test_fn: TestFn, context: TestContext) -> None:
        self.state = RunnerState.TESTING
        self.current_step = getattr(test_fn, "__name__", "test routine")
        budget_seconds = self.config.effective_test_timeout()
        logger.debug("Running %s (budget %.1fs)", self.current_step, budget_seconds)

        try:
            async with asyncio.timeout(budget_seconds) as deadline:
                await self._invoke(test_fn, context)
        except TimeoutError as e:
            if deadline.expired():
                raise PhaseTimeoutError("test", budget_seconds, self.current_step) from e
            raise

    @staticmethod
    async def _invoke(test_fn: TestFn, context: TestContext) -> None:
        if inspect.iscoroutinefunction(test_fn):
            await test_fn(context)
            return

        result = await run_blocking(test_fn, context)
        if inspect.isawaitable(result):
            await result

    async def _shielded_teardown(self) -> TeardownReport:
        task = asyncio.ensure_future(self._teardown())
        try:
            return await asyncio.shield(task)
        except asyncio.CancelledError:
            await task
            raise

    async def _teardown(self) -> TeardownReport:
        self.state = RunnerState.TEARING_DOWN
        logger.debug("Tearing down: %s", ", ".join(kind.value for kind in self.registry.kinds()))

        report = await self.registry.cleanup_all()

        self.teardown_report = report
        self.state = RunnerState.DONE
        if report.success():
            logger.debug("Teardown complete")
        else:
            logger.error("Teardown finished with %d error(s)", len(report.errors))
        return report

