"""Titan indexer HTTP client."""

from __future__ import annotations

from typing import Any

import requests

from arch_testing.constants import RPC_REQUEST_TIMEOUT


class TitanClient:
    """Blocking client for the Titan HTTP API.

    Parameters
    ----------
    base_url : str
        HTTP endpoint, e.g. ``http://127.0.0.1:3030``
    timeout : float
        Per-request timeout in seconds
    """

    def __init__(self, base_url: str, timeout: float = RPC_REQUEST_TIMEOUT) -> None:
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.session = requests.Session()

    def _get(self, path: str) -> Any:
        response = self.session.get(f"{self.base_url}{path}", timeout=self.timeout)
        response.raise_for_status()
        return response.json()

    def get_tip(self) -> dict[str, Any]:
        """Return the indexed chain tip (``{"height": ..., "hash": ...}``)."""
        return self._get("/tip")

    def get_status(self) -> dict[str, Any]:
        return self._get("/status")

    def close(self) -> None:
        self.session.close()
