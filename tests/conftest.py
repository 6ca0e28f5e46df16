"""Pytest configuration and fixtures for arch-testing tests."""

import sys
from collections.abc import Generator
from pathlib import Path

import pytest

repo_root = Path(__file__).parent.parent
if str(repo_root) not in sys.path:
    sys.path.insert(0, str(repo_root))

from tests.fakes import FakeLauncher  # noqa: E402

HARNESS_ENV_VARS = (
    "ARCH_TESTING_CONFIG",
    "ARCH_TESTING_SETUP_TIMEOUT",
    "ARCH_TESTING_TEST_TIMEOUT",
    "ARCH_TESTING_LOG_LEVEL",
    "ARCH_TESTING_DEBUG",
)


@pytest.fixture(autouse=True)
def clean_harness_env(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> Generator[None, None, None]:
    """Run every test without harness environment overrides.

    Also switches into an empty temporary directory so a stray
    ``arch-testing.yaml`` in the checkout is never picked up.

    Yields
    ------
    None
        Control back to the test
    """
    for name in HARNESS_ENV_VARS:
        monkeypatch.delenv(name, raising=False)
    monkeypatch.chdir(tmp_path)
    yield


@pytest.fixture
def fake_launcher() -> FakeLauncher:
    """Launcher that records launches and stops without touching Docker."""
    return FakeLauncher()


