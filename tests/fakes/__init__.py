"""Test fake implementations for dependency injection testing."""

from tests.fakes.fake_launcher import FakeContainer, FakeLauncher
from tests.fakes.fake_services import (
    FakeArchClient,
    FakeDefinition,
    fake_orchestrators,
    fast_prober,
)

__all__ = [
    "FakeArchClient",
    "FakeContainer",
    "FakeDefinition",
    "FakeLauncher",
    "fake_orchestrators",
    "fast_prober",
]
