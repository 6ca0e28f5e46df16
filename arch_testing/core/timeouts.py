"""Timeout budgets for the setup and test phases."""

from __future__ import annotations

import logging
import time

from arch_testing.exceptions import PhaseTimeoutError

logger = logging.getLogger(__name__)


def clamp_timeout(requested: float, ceiling: float, label: str) -> float:
    """Cap a requested timeout at its hard ceiling.

    Parameters
    ----------
    requested : float
        Caller-requested timeout in seconds
    ceiling : float
        Maximum allowed timeout in seconds
    label : str
        Name of the setting, used in the warning

    Returns
    -------
    float
        ``ceiling`` when ``requested`` exceeds it, otherwise ``requested``
    """
    if requested > ceiling:
        logger.warning(
            "Configured %s of %.1fs exceeds maximum %.1fs. Capping at maximum",
            label,
            requested,
            ceiling,
        )
        return ceiling

    return requested


class PhaseBudget:
    """Tracks the wall-clock budget of one lifecycle phase.

    Tracks the phase deadline and allows allocating sub-budgets for the
    steps inside it. Provides checkpoint logging for elapsed/remaining time.

    Parameters
    ----------
    phase : str
        Phase name ("setup" or "test")
    budget_seconds : float
        Total phase budget in seconds
    """

    def __init__(self, phase: str, budget_seconds: float) -> None:
        self.phase = phase
        self.budget_seconds = budget_seconds
        self.start_time = time.monotonic()
        self.deadline = self.start_time + budget_seconds

    def elapsed_seconds(self) -> float:
        """Get elapsed time since the phase started.

        Returns
        -------
        float
            Elapsed seconds
        """
        return time.monotonic() - self.start_time

    def remaining_seconds(self) -> float:
        """Get remaining time until the phase deadline.

        Returns
        -------
        float
            Remaining seconds (may be negative if deadline passed)
        """
        return self.deadline - time.monotonic()

    def checkpoint(self, description: str) -> None:
        """Log elapsed and remaining time at a checkpoint.

        Parameters
        ----------
        description : str
            Description of checkpoint for logging
        """
        logger.debug(
            "%s checkpoint '%s': elapsed=%.2fs, remaining=%.2fs",
            self.phase,
            description,
            self.elapsed_seconds(),
            self.remaining_seconds(),
        )

    def allocate(self, step: str, max_seconds: float) -> float:
        """Allocate a sub-budget for a step inside the phase.

        Parameters
        ----------
        step : str
            Name of the step (for logging)
        max_seconds : float
            Maximum time the step would like

        Returns
        -------
        float
            Available time: the smaller of ``max_seconds`` and what is left

        Raises
        ------
        PhaseTimeoutError
            If the phase budget is already exhausted
        """
        remaining = self.remaining_seconds()
        if remaining <= 0:
            raise PhaseTimeoutError(self.phase, self.budget_seconds, step)

        allocated = min(remaining, max_seconds)
        logger.debug(
            "Sub-budget '%s': requested=%.1fs, allocated=%.2fs",
            step,
            max_seconds,
            allocated,
        )
        return allocated
