"""Minimal JSON-RPC client over HTTP."""

from __future__ import annotations

import itertools
import logging
from typing import Any

import requests

from arch_testing.constants import RPC_REQUEST_TIMEOUT

logger = logging.getLogger(__name__)


class RpcError(Exception):
    """Raised when a JSON-RPC call returns an error object.

    Parameters
    ----------
    method : str
        RPC method that failed
    code : int | None
        JSON-RPC error code
    message : str
        Error message reported by the server
    """

    def __init__(self, method: str, code: int | None, message: str) -> None:
        super().__init__(f"RPC {method} failed ({code}): {message}")
        self.method = method
        self.code = code
        self.message = message


class JsonRpcClient:
    """Blocking JSON-RPC client built on a ``requests`` session.

    Parameters
    ----------
    url : str
        Endpoint URL
    auth : tuple[str, str] | None
        Optional basic-auth credentials
    jsonrpc_version : str
        Protocol version sent in each request ("1.0" or "2.0")
    timeout : float
        Per-request timeout in seconds
    """

    def __init__(
        self,
        url: str,
        auth: tuple[str, str] | None = None,
        jsonrpc_version: str = "2.0",
        timeout: float = RPC_REQUEST_TIMEOUT,
    ) -> None:
        self.url = url
        self.jsonrpc_version = jsonrpc_version
        self.timeout = timeout
        self.session = requests.Session()
        self.session.auth = auth
        self._ids = itertools.count(1)

    def call(self, method: str, params: Any = None, url: str | None = None) -> Any:
        """Invoke ``method`` and return its ``result``.

        Parameters
        ----------
        method : str
            RPC method name
        params : Any
            Method parameters, sent as-is (an empty list when None)
        url : str | None
            Override endpoint for this call (e.g. a wallet path)

        Returns
        -------
        Any
            Decoded ``result`` member of the response

        Raises
        ------
        RpcError
            If the response carries an error object
        requests.RequestException
            If the transport fails or the server answers with a non-JSON error
        """
        payload = {
            "jsonrpc": self.jsonrpc_version,
            "id": next(self._ids),
            "method": method,
            "params": [] if params is None else params,
        }
        endpoint = url or self.url
        logger.debug("RPC %s -> %s", method, endpoint)
        response = self.session.post(endpoint, json=payload, timeout=self.timeout)

        try:
            body = response.json()
        except ValueError:
            response.raise_for_status()
            raise requests.RequestException(
                f"RPC {method} returned a non-JSON response (HTTP {response.status_code})"
            )

        error = body.get("error")
        if isinstance(error, dict):
            raise RpcError(method, error.get("code"), error.get("message", ""))
        if error:
            raise RpcError(method, None, str(error))

        return body.get("result")

    def close(self) -> None:
        """Close the underlying HTTP session."""
        self.session.close()
