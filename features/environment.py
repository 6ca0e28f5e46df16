"""Behave environment configuration for arch-testing scenarios."""

import logging
import os
import sys
from pathlib import Path

from behave.model import Scenario
from behave.runner import Context

logger = logging.getLogger(__name__)

PROJECT_ROOT = Path(__file__).parent.parent
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

HARNESS_ENV_PREFIX = "ARCH_TESTING_"


class LogCapture(logging.Handler):
    """Custom logging handler for capturing log records in tests."""

    def __init__(self) -> None:
        super().__init__()
        self.records: list[logging.LogRecord] = []

    def emit(self, record: logging.LogRecord) -> None:
        self.records.append(record)

    def messages(self, level: int = logging.NOTSET) -> list[str]:
        return [record.getMessage() for record in self.records if record.levelno >= level]


def before_all(context: Context) -> None:
    """Setup executed before all scenarios."""
    context.project_root = PROJECT_ROOT


def before_scenario(context: Context, scenario: Scenario) -> None:
    """Isolate harness environment variables and capture harness logs."""
    context.saved_env = os.environ.copy()
    for name in [k for k in os.environ if k.startswith(HARNESS_ENV_PREFIX)]:
        del os.environ[name]

    context.log_capture = LogCapture()
    harness_logger = logging.getLogger("arch_testing")
    harness_logger.addHandler(context.log_capture)
    context.saved_log_level = harness_logger.level
    harness_logger.setLevel(logging.DEBUG)


def after_scenario(context: Context, scenario: Scenario) -> None:
    """Restore the environment and detach the log capture."""
    harness_logger = logging.getLogger("arch_testing")
    harness_logger.removeHandler(context.log_capture)
    harness_logger.setLevel(context.saved_log_level)

    os.environ.clear()
    os.environ.update(context.saved_env)

    if scenario.status == "failed":
        logger.info(
            "Captured harness log for '%s':\n%s",
            scenario.name,
            "\n".join(context.log_capture.messages()),
        )
