"""CLI entry point for arch-testing."""

from __future__ import annotations

import logging
import os
import sys
from collections.abc import Callable
from typing import Any

import docker.errors
import fire
import yaml

from arch_testing.containers import ContainerLauncher
from arch_testing.core.config import TestRunnerConfig
from arch_testing.core.context import TestContext
from arch_testing.core.runner import TestRunner
from arch_testing.exceptions import RunFailedError
from arch_testing.logging import init_logging

logger = logging.getLogger(__name__)

DEBUG_ENV = "ARCH_TESTING_DEBUG"


def check_validator(context: TestContext) -> None:
    """Smoke check: the validator answers a block count query."""
    height = context.arch_rpc_client.get_block_count()
    if not isinstance(height, int):
        raise AssertionError(f"get_block_count returned {height!r}, expected an integer")
    logger.info("Validator at %s is at block %d", context.rpc_url, height)


class ArchTestingCLI:
    """Inspect the configuration and smoke-test the fleet.

    Parameters
    ----------
    launcher_factory : Callable[[], ContainerLauncher] | None
        Optional factory for the container launcher. If None, the runner
        uses a Docker launcher.
    """

    def __init__(self, launcher_factory: Callable[[], ContainerLauncher] | None = None) -> None:
        self._launcher_factory = launcher_factory

    def config(self, config_path: str | None = None) -> str:
        """Print the effective configuration as YAML.

        Parameters
        ----------
        config_path : str | None
            Path to a YAML config file (default: ARCH_TESTING_CONFIG or
            arch-testing.yaml)

        Returns
        -------
        str
            YAML document including the capped phase budgets
        """
        cfg = TestRunnerConfig.new(config_path)
        values: dict[str, Any] = cfg.to_dict()
        values["effective_setup_timeout"] = cfg.effective_setup_timeout()
        values["effective_test_timeout"] = cfg.effective_test_timeout()
        return yaml.safe_dump(values, sort_keys=False)

    def smoke(self, config_path: str | None = None) -> str:
        """Start the fleet, query the validator once and tear everything down.

        Parameters
        ----------
        config_path : str | None
            Path to a YAML config file

        Returns
        -------
        str
            Summary line on success; exits with status 1 on failure
        """
        cfg = TestRunnerConfig.new(config_path)
        launcher = self._launcher_factory() if self._launcher_factory else None
        runner = TestRunner(cfg, launcher=launcher)

        try:
            runner.execute(check_validator)
        except RunFailedError as e:
            print(str(e), file=sys.stderr)
            sys.exit(1)

        return f"Smoke run {cfg.run_id} passed"


def handle_value_error(error: ValueError, debug_mode: bool) -> None:
    """Report a configuration error and exit with status 2.

    Raises
    ------
    ValueError
        Re-raised if debug mode is enabled
    """
    if debug_mode:
        raise error

    print(f"Configuration error: {error}", file=sys.stderr)
    sys.exit(2)


def handle_docker_error(error: docker.errors.DockerException, debug_mode: bool) -> None:
    """Report an unreachable or failing Docker engine and exit with status 1.

    Raises
    ------
    docker.errors.DockerException
        Re-raised if debug mode is enabled
    """
    if debug_mode:
        raise error

    print(f"Docker error: {error}\n", file=sys.stderr)
    print("This usually means:", file=sys.stderr)
    print("  - The Docker daemon is not running", file=sys.stderr)
    print("  - DOCKER_HOST points at an unreachable engine", file=sys.stderr)
    sys.exit(1)


def main() -> None:
    """Entry point for the Fire CLI with graceful error handling.

    Fire maps the methods of ``ArchTestingCLI`` to commands. Set
    ARCH_TESTING_DEBUG=1 to get tracebacks instead of short messages.
    """
    init_logging()
    debug_mode = os.environ.get(DEBUG_ENV) == "1"

    try:
        fire.Fire(ArchTestingCLI())
    except ValueError as e:
        handle_value_error(e, debug_mode)
    except docker.errors.DockerException as e:
        handle_docker_error(e, debug_mode)
