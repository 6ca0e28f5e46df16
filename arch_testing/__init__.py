"""Ephemeral bitcoind, Titan and Arch validator fleets for integration tests."""

from arch_testing.core.config import TestRunnerConfig
from arch_testing.core.context import TestContext
from arch_testing.core.runner import RunnerState, TestRunner
from arch_testing.exceptions import (
    ArchTestingError,
    FixtureError,
    LaunchError,
    PhaseTimeoutError,
    ReadinessTimeoutError,
    RunFailedError,
    ShutdownError,
)

__version__ = "0.1.0"

__all__ = [
    "ArchTestingError",
    "FixtureError",
    "LaunchError",
    "PhaseTimeoutError",
    "ReadinessTimeoutError",
    "RunFailedError",
    "RunnerState",
    "ShutdownError",
    "TestContext",
    "TestRunner",
    "TestRunnerConfig",
]
