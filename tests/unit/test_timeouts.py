"""Unit tests for timeout clamping and phase budgets."""

import logging
import time

import pytest

from arch_testing.constants import MAX_SETUP_TIMEOUT, MAX_TEST_TIMEOUT
from arch_testing.core.config import TestRunnerConfig
from arch_testing.core.timeouts import PhaseBudget, clamp_timeout
from arch_testing.exceptions import PhaseTimeoutError


class TestClampTimeout:
    """Test capping of requested timeouts at their ceilings."""

    def test_below_ceiling_is_unchanged(self, caplog: pytest.LogCaptureFixture) -> None:
        """A budget of 1 with ceiling 2 stays 1 and logs nothing."""
        with caplog.at_level(logging.WARNING, logger="arch_testing"):
            assert clamp_timeout(1.0, 2.0, "setup_timeout") == 1.0

        assert caplog.records == []

    def test_above_ceiling_is_capped_with_warning(self, caplog: pytest.LogCaptureFixture) -> None:
        """A budget of 5 with ceiling 2 becomes 2 and warns."""
        with caplog.at_level(logging.WARNING, logger="arch_testing"):
            assert clamp_timeout(5.0, 2.0, "setup_timeout") == 2.0

        assert len(caplog.records) == 1
        assert "setup_timeout" in caplog.records[0].getMessage()
        assert "Capping at maximum" in caplog.records[0].getMessage()

    def test_equal_to_ceiling_is_not_a_clamp(self, caplog: pytest.LogCaptureFixture) -> None:
        with caplog.at_level(logging.WARNING, logger="arch_testing"):
            assert clamp_timeout(2.0, 2.0, "test_timeout") == 2.0

        assert caplog.records == []

    @pytest.mark.parametrize("requested", [MAX_SETUP_TIMEOUT + 0.1, 1000.0, 1e9])
    def test_effective_setup_timeout_never_exceeds_ceiling(self, requested: float) -> None:
        config = TestRunnerConfig(setup_timeout=requested)
        assert config.effective_setup_timeout() == MAX_SETUP_TIMEOUT

    @pytest.mark.parametrize("requested", [MAX_TEST_TIMEOUT + 1, 10_000.0])
    def test_effective_test_timeout_never_exceeds_ceiling(self, requested: float) -> None:
        config = TestRunnerConfig(test_timeout=requested)
        assert config.effective_test_timeout() == MAX_TEST_TIMEOUT


class TestPhaseBudget:
    """Test phase budget tracking and sub-budget allocation."""

    def test_elapsed_seconds(self) -> None:
        budget = PhaseBudget("setup", 10.0)
        time.sleep(0.05)
        assert budget.elapsed_seconds() >= 0.05

    def test_remaining_seconds(self) -> None:
        budget = PhaseBudget("setup", 10.0)
        time.sleep(0.05)
        remaining = budget.remaining_seconds()
        assert 9.0 < remaining < 10.0

    def test_checkpoint_logging(self) -> None:
        """Test checkpoint method doesn't raise."""
        PhaseBudget("setup", 10.0).checkpoint("bitcoin ready")

    def test_allocate_caps_at_requested(self) -> None:
        budget = PhaseBudget("setup", 10.0)
        assert budget.allocate("start bitcoin", 5.0) == 5.0

    def test_allocate_caps_at_remaining(self) -> None:
        budget = PhaseBudget("setup", 1.0)
        allocated = budget.allocate("start bitcoin", 15.0)
        assert 0 < allocated <= 1.0

    def test_allocate_after_deadline_raises(self) -> None:
        budget = PhaseBudget("setup", 0.01)
        time.sleep(0.02)

        with pytest.raises(PhaseTimeoutError) as exc_info:
            budget.allocate("start titan", 5.0)

        assert exc_info.value.phase == "setup"
        assert exc_info.value.step == "start titan"
        assert "start titan" in str(exc_info.value)
