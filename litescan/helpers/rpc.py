"""Ethereum JSON-RPC client utilities."""

from __future__ import annotations

from typing import Any

import httpx
from pydantic import ValidationError

from litescan.helpers.errors import NodeUnreachable, RPCError
from litescan.helpers.rpc_models import JsonRpcRequest, JsonRpcResponse


class RPCClient:
    """Ethereum JSON-RPC client.

    Transport failures (connection errors, timeouts, HTTP status errors and
    unparseable bodies) are raised as ``NodeUnreachable``; a JSON-RPC error
    object is raised as ``RPCError``.
    """

    def __init__(self, rpc_url: str, timeout: float = 30.0) -> None:
        """Initialize RPC client.

        Args:
            rpc_url: Ethereum JSON-RPC endpoint URL
            timeout: Default timeout for requests in seconds

        Raises:
            ValueError: If rpc_url is empty or None
        """
        if not rpc_url:
            msg = "RPC URL cannot be empty"
            raise ValueError(msg)

        self.rpc_url = rpc_url
        self.timeout = timeout

    async def _post(
        self,
        client: httpx.AsyncClient,
        payload: dict[str, Any] | list[dict[str, Any]],
        timeout: float | None,
    ) -> Any:
        try:
            response = await client.post(
                self.rpc_url, json=payload, timeout=timeout or self.timeout
            )
            response.raise_for_status()
            return response.json()
        except httpx.TimeoutException as e:
            msg = f"Timed out talking to {self.rpc_url}"
            raise NodeUnreachable(msg) from e
        except httpx.HTTPError as e:
            msg = f"HTTP error talking to {self.rpc_url}: {e}"
            raise NodeUnreachable(msg) from e
        except ValueError as e:
            msg = f"Invalid JSON from {self.rpc_url}: {e}"
            raise NodeUnreachable(msg) from e

    async def call(
        self,
        client: httpx.AsyncClient,
        method: str,
        params: list[Any] | None = None,
        *,
        timeout: float | None = None,
    ) -> Any:
        """Make a single JSON-RPC call.

        Args:
            client: HTTP client instance
            method: RPC method name (e.g., "eth_blockNumber")
            params: Method parameters list
            timeout: Optional timeout override

        Returns:
            RPC result value (may be None when the node has no such object)

        Raises:
            NodeUnreachable: If the HTTP request fails
            RPCError: If the RPC response contains an error
        """
        request = JsonRpcRequest(method=method, params=params or [], id=1)
        body = await self._post(client, request.model_dump(), timeout)

        try:
            response = JsonRpcResponse.model_validate(body)
        except ValidationError as e:
            msg = f"Malformed JSON-RPC response for {method}"
            raise NodeUnreachable(msg) from e

        if response.error is not None:
            raise RPCError(method, response.error.message or response.error)

        return response.result


__all__ = ["RPCClient"]
