"""Logging setup for arch-testing."""

from __future__ import annotations

import logging
import os
import sys
import threading

from arch_testing.logging.formatters import ContainerLogFormatter

LOG_LEVEL_ENV = "ARCH_TESTING_LOG_LEVEL"
DEFAULT_LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"

_init_lock = threading.Lock()
_initialized = False


def init_logging() -> None:
    """Install the harness log handler once per process.

    The handler is attached to the ``arch_testing`` logger rather than the
    root logger so host test frameworks keep control of their own output.
    The level is read from ``ARCH_TESTING_LOG_LEVEL`` (default ``INFO``).
    """
    global _initialized

    with _init_lock:
        if _initialized:
            return

        level_name = os.environ.get(LOG_LEVEL_ENV, "INFO").upper()
        level = logging.getLevelName(level_name)
        if not isinstance(level, int):
            level = logging.INFO

        handler = logging.StreamHandler(sys.stderr)
        handler.setFormatter(ContainerLogFormatter(DEFAULT_LOG_FORMAT))

        package_logger = logging.getLogger("arch_testing")
        package_logger.setLevel(level)
        package_logger.addHandler(handler)
        _initialized = True


__all__ = ["ContainerLogFormatter", "init_logging"]
