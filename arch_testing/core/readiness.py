"""Readiness polling with exponential backoff."""

from __future__ import annotations

import asyncio
import inspect
import logging
import random
import time
from collections.abc import Callable, Iterator
from typing import Any

from arch_testing.constants import (
    PROBE_INITIAL_INTERVAL,
    PROBE_MAX_INTERVAL,
    PROBE_MULTIPLIER,
    PROBE_RANDOMIZATION,
)
from arch_testing.core.offload import run_blocking
from arch_testing.exceptions import ReadinessTimeoutError

logger = logging.getLogger(__name__)


class ReadinessProber:
    """Retries a probe with exponential backoff until it succeeds or time runs out.

    A probe is a zero-argument callable returning a truthy value once the
    service is ready. A falsy return value and any raised exception both
    mean "not ready yet"; the only way the prober gives up is the deadline.

    Parameters
    ----------
    initial_interval : float
        First delay between attempts in seconds
    multiplier : float
        Growth factor applied to the delay after each failed attempt
    max_interval : float
        Upper bound for a single delay
    randomization : float
        Jitter factor in ``[0, 1)``; 0 disables jitter
    """

    def __init__(
        self,
        initial_interval: float = PROBE_INITIAL_INTERVAL,
        multiplier: float = PROBE_MULTIPLIER,
        max_interval: float = PROBE_MAX_INTERVAL,
        randomization: float = PROBE_RANDOMIZATION,
    ) -> None:
        self.initial_interval = initial_interval
        self.multiplier = multiplier
        self.max_interval = max_interval
        self.randomization = randomization

    def delays(self) -> Iterator[float]:
        """Yield the (unjittered) backoff schedule indefinitely."""
        delay = self.initial_interval
        while True:
            yield delay
            delay = min(delay * self.multiplier, self.max_interval)

    def _jitter(self, delay: float) -> float:
        if self.randomization <= 0:
            return delay
        spread = delay * self.randomization
        return random.uniform(delay - spread, delay + spread)

    async def wait_until_ready(
        self,
        probe: Callable[[], Any],
        budget_seconds: float,
        service: str,
    ) -> int:
        """Poll ``probe`` until it reports ready.

        Parameters
        ----------
        probe : Callable[[], Any]
            Plain or coroutine function; plain ones run in the worker pool
        budget_seconds : float
            Time allowed for the service to become ready
        service : str
            Service name for logs and errors

        Returns
        -------
        int
            Number of attempts it took

        Raises
        ------
        ReadinessTimeoutError
            If the budget elapses before the probe reports ready
        """
        attempts = 0
        last_error: BaseException | None = None
        deadline = time.monotonic() + budget_seconds
        schedule = self.delays()

        try:
            async with asyncio.timeout(budget_seconds):
                while True:
                    attempts += 1
                    try:
                        if await self._attempt(probe):
                            logger.info("%s is ready (attempt %d)", service, attempts)
                            return attempts
                        last_error = None
                        logger.debug("%s not ready yet (attempt %d)", service, attempts)
                    except Exception as e:
                        last_error = e
                        logger.debug("%s not ready yet (attempt %d): %s", service, attempts, e)

                    remaining = deadline - time.monotonic()
                    delay = min(self._jitter(next(schedule)), max(remaining, 0))
                    await asyncio.sleep(delay)
        except TimeoutError as e:
            raise ReadinessTimeoutError(service, budget_seconds, attempts, last_error) from e

    async def _attempt(self, probe: Callable[[], Any]) -> bool:
        if inspect.iscoroutinefunction(probe):
            result = await probe()
        else:
            result = await run_blocking(probe)
            if inspect.isawaitable(result):
                result = await result
        return bool(result)
