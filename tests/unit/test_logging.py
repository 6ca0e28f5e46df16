"""Unit tests for harness logging setup."""

import logging
from collections.abc import Generator

import pytest

import arch_testing.logging as arch_logging
from arch_testing.logging import ContainerLogFormatter, init_logging


def make_record(msg: str, **extra) -> logging.LogRecord:
    record = logging.LogRecord("arch_testing.containers.output", logging.INFO, __file__, 1, msg, None, None)
    for key, value in extra.items():
        setattr(record, key, value)
    return record


class TestContainerLogFormatter:
    def test_prefixes_container_tag(self) -> None:
        formatter = ContainerLogFormatter("%(message)s")

        assert formatter.format(make_record("Synced to tip", container="titand")) == "titand> Synced to tip"

    def test_plain_records_untouched(self) -> None:
        formatter = ContainerLogFormatter("%(message)s")

        assert formatter.format(make_record("Starting fleet")) == "Starting fleet"

    def test_record_restored_after_format(self) -> None:
        formatter = ContainerLogFormatter("%(message)s")
        record = make_record("ready", container="bitcoind")

        formatter.format(record)

        assert record.msg == "ready"


@pytest.fixture
def fresh_logging(monkeypatch: pytest.MonkeyPatch) -> Generator[logging.Logger, None, None]:
    package_logger = logging.getLogger("arch_testing")
    handlers = list(package_logger.handlers)
    level = package_logger.level
    monkeypatch.setattr(arch_logging, "_initialized", False)
    yield package_logger
    package_logger.handlers[:] = handlers
    package_logger.setLevel(level)


class TestInitLogging:
    def test_installs_single_handler(self, fresh_logging: logging.Logger) -> None:
        before = len(fresh_logging.handlers)

        init_logging()
        init_logging()

        assert len(fresh_logging.handlers) == before + 1
        assert isinstance(fresh_logging.handlers[-1].formatter, ContainerLogFormatter)
        assert fresh_logging.level == logging.INFO

    def test_level_from_environment(
        self, fresh_logging: logging.Logger, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        monkeypatch.setenv("ARCH_TESTING_LOG_LEVEL", "debug")

        init_logging()

        assert fresh_logging.level == logging.DEBUG

    def test_unknown_level_falls_back_to_info(
        self, fresh_logging: logging.Logger, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        monkeypatch.setenv("ARCH_TESTING_LOG_LEVEL", "chatty")

        init_logging()

        assert fresh_logging.level == logging.INFO
