"""Bridge between blocking calls and the event loop.

Docker SDK calls, ``requests`` clients and plain test routines all block.
Everything of that kind goes through ``run_blocking`` so the loop keeps
serving deadline timers while the call is in flight.
"""

from __future__ import annotations

import asyncio
import functools
import threading
from collections.abc import Callable
from concurrent.futures import ThreadPoolExecutor
from typing import Any, TypeVar

from arch_testing.constants import BLOCKING_WORKER_COUNT

T = TypeVar("T")

_executor: ThreadPoolExecutor | None = None
_executor_lock = threading.Lock()


def get_executor() -> ThreadPoolExecutor:
    """Return the process-wide worker pool, creating it on first use.

    Returns
    -------
    ThreadPoolExecutor
        Pool dedicated to blocking harness work
    """
    global _executor

    with _executor_lock:
        if _executor is None:
            _executor = ThreadPoolExecutor(
                max_workers=BLOCKING_WORKER_COUNT,
                thread_name_prefix="arch-testing-blocking",
            )
        return _executor


async def run_blocking(func: Callable[..., T], *args: Any, **kwargs: Any) -> T:
    """Run a blocking callable in the worker pool and await its result.

    Parameters
    ----------
    func : Callable[..., T]
        Blocking callable
    *args : Any
        Positional arguments for ``func``
    **kwargs : Any
        Keyword arguments for ``func``

    Returns
    -------
    T
        Whatever ``func`` returns

    Notes
    -----
    Cancelling the awaiting task does not interrupt the worker thread; the
    call runs to completion in the background and its result is discarded.
    """
    loop = asyncio.get_running_loop()
    return await loop.run_in_executor(get_executor(), functools.partial(func, *args, **kwargs))
