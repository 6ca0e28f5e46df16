"""BDD step definitions for the test run lifecycle against fake containers."""

import asyncio
import logging
import os

from behave import given, then, when
from behave.runner import Context

from arch_testing.constants import ServiceKind
from arch_testing.containers import DEFINITIONS
from arch_testing.core.config import TestRunnerConfig
from arch_testing.core.runner import TestRunner
from arch_testing.exceptions import LaunchError, RunFailedError
from tests.fakes import FakeDefinition, FakeLauncher, fake_orchestrators

logger = logging.getLogger(__name__)


def parse_services(names: str) -> list[str]:
    return [name.strip() for name in names.split(",") if name.strip()]


def execute_run(context: Context, test_fn) -> None:
    """Run ``test_fn`` on a fresh runner and store the outcome on the context.

    Parameters
    ----------
    context : Context
        Behave context holding the launcher, definitions and overrides
    test_fn : Callable
        Test routine handed to the runner
    """
    config = TestRunnerConfig.new().with_overrides(**context.config_overrides)
    orchestrators = fake_orchestrators(context.launcher, **context.definitions)
    runner = TestRunner(config, orchestrators=orchestrators)
    context.runner = runner
    context.run_error = None

    try:
        runner.execute(test_fn)
    except RunFailedError as e:
        context.run_error = e
        logger.debug("Run failed: %s", e)


@given("a harness with fake containers")
def step_harness_with_fakes(context: Context) -> None:
    context.launcher = FakeLauncher()
    context.definitions = {}
    context.config_overrides = {}
    context.routine_calls = []


@given('launching "{service}" fails with "{message}"')
def step_launch_fails(context: Context, service: str, message: str) -> None:
    context.launcher.launch_errors[service] = LaunchError(service, message)


@given('stopping "{service}" fails with "{message}"')
def step_stop_fails(context: Context, service: str, message: str) -> None:
    context.launcher.stop_errors[service] = RuntimeError(message)


@given('"{service}" never becomes ready')
def step_never_ready(context: Context, service: str) -> None:
    kind = ServiceKind(service)
    context.definitions[service] = FakeDefinition(
        kind, dependencies=DEFINITIONS[kind].dependencies, never_ready=True
    )


@given("the setup timeout is {seconds:g} seconds")
def step_setup_timeout(context: Context, seconds: float) -> None:
    context.config_overrides["setup_timeout"] = seconds


@given("the test timeout is {seconds:g} seconds")
def step_test_timeout(context: Context, seconds: float) -> None:
    context.config_overrides["test_timeout"] = seconds


@given('the environment variable "{name}" is "{value}"')
def step_set_env(context: Context, name: str, value: str) -> None:
    os.environ[name] = value


@when("I run a test routine that reads the block count")
def step_run_block_count(context: Context) -> None:
    def read_block_count(test_context) -> None:
        context.routine_calls.append(test_context.arch_rpc_client.get_block_count())

    execute_run(context, read_block_count)


@when('I run a test routine that fails with "{message}"')
def step_run_failing(context: Context, message: str) -> None:
    def failing_routine(test_context) -> None:
        context.routine_calls.append("failing_routine")
        raise AssertionError(message)

    execute_run(context, failing_routine)


@when("I run a test routine that sleeps for {seconds:g} seconds")
def step_run_sleeping(context: Context, seconds: float) -> None:
    async def sleeping_routine(test_context) -> None:
        context.routine_calls.append("sleeping_routine")
        await asyncio.sleep(seconds)

    execute_run(context, sleeping_routine)


@then("the run passes")
def step_run_passes(context: Context) -> None:
    assert context.run_error is None, f"Run failed unexpectedly: {context.run_error}"


@then('the run fails during "{phase}" at step "{step}"')
def step_run_fails_at(context: Context, phase: str, step: str) -> None:
    error = context.run_error
    assert error is not None, "Run passed but a failure was expected"
    assert error.phase == phase, f"Expected phase {phase}, got {error.phase}"
    assert error.step == step, f"Expected step {step}, got {error.step}"


@then('the failure mentions "{text}"')
def step_failure_mentions(context: Context, text: str) -> None:
    assert text in str(context.run_error), f"'{text}' not in: {context.run_error}"


@then('the services were launched in order "{names}"')
def step_launch_order(context: Context, names: str) -> None:
    launched = context.launcher.launched_services()
    assert launched == parse_services(names), f"Launched: {launched}"


@then('the services were stopped in order "{names}"')
def step_stop_order(context: Context, names: str) -> None:
    stopped = context.launcher.stopped_services()
    assert stopped == parse_services(names), f"Stopped: {stopped}"


@then("the test routine saw block count {height:d}")
def step_routine_saw_height(context: Context, height: int) -> None:
    assert context.routine_calls == [height], f"Routine calls: {context.routine_calls}"


@then("the test routine was not called")
def step_routine_not_called(context: Context) -> None:
    assert context.routine_calls == []


@then('a warning mentioning "{text}" was logged')
def step_warning_logged(context: Context, text: str) -> None:
    warnings = context.log_capture.messages(logging.WARNING)
    assert any(text in message for message in warnings), f"Warnings: {warnings}"
