"""Async client for the bridge server's JSON-RPC endpoint.

This is the piece an LLM-driven loop uses to forward the model's tool calls.
"""

import itertools
import json
import logging
from typing import Any, Iterable

import httpx

from fsbridge.protocol.initialization import InitializeRequest
from fsbridge.protocol.tools import CallToolRequest
from fsbridge.server.exceptions import AuthenticationError, BridgeError

logger = logging.getLogger(__name__)


class ToolCallError(BridgeError):
    """Raised when the server answers with a JSON-RPC error envelope."""

    def __init__(self, code: int, message: str):
        self.code = code
        self.message = message
        super().__init__(f"[{code}] {message}")


class BridgeClient:
    """Sends initialize and tool_call requests over HTTP.

    Usage:
        async with BridgeClient("http://localhost:3000/mcp", token) as client:
            tools = await client.initialize()
            hits = await client.call_tool("search_files", {"query": "error"})
    """

    def __init__(
        self,
        endpoint: str,
        auth_token: str,
        http_client: httpx.AsyncClient | None = None,
        timeout: float = 30.0,
    ) -> None:
        if not endpoint.startswith(("http://", "https://")):
            raise ValueError("endpoint must be a valid HTTP URL")

        self.endpoint = endpoint
        self._headers = {
            "Authorization": f"Bearer {auth_token}",
            "Content-Type": "application/json",
        }
        self._http_client = http_client or httpx.AsyncClient(timeout=timeout)
        self._ids = itertools.count(1)

    async def __aenter__(self) -> "BridgeClient":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        await self._http_client.aclose()

    # ================================
    # Requests
    # ================================

    async def initialize(self) -> list[str]:
        """Names of the tools the server currently allows."""
        envelope = await self._post(self._request(InitializeRequest().to_protocol()))
        result = self._unwrap(envelope)
        return result["capabilities"]["tools"]

    async def call_tool(self, name: str, arguments: dict[str, Any] | None = None) -> Any:
        """Run one tool and return its decoded result.

        Raises:
            ToolCallError: If the server reports an error for the call.
        """
        request = CallToolRequest(name=name, arguments=arguments or {})
        envelope = await self._post(self._request(request.to_protocol()))
        return self.decode_tool_result(self._unwrap(envelope))

    async def call_batch(
        self, calls: Iterable[tuple[str, dict[str, Any]]]
    ) -> list[dict[str, Any]]:
        """Send several tool calls in one request.

        Returns the raw envelopes in call order; errors are not raised so one
        failed item doesn't hide the others.
        """
        batch = [
            self._request(CallToolRequest(name=name, arguments=arguments).to_protocol())
            for name, arguments in calls
        ]
        return await self._post(batch)

    @staticmethod
    def decode_tool_result(result: dict[str, Any]) -> Any:
        """Decode the JSON text content of a tool_call result."""
        text = "".join(
            item.get("text", "")
            for item in result.get("content", [])
            if item.get("type") == "text"
        )
        return json.loads(text) if text else None

    # ================================
    # Helpers
    # ================================

    def _request(self, body: dict[str, Any]) -> dict[str, Any]:
        return {"jsonrpc": "2.0", "id": next(self._ids), **body}

    async def _post(self, payload: Any) -> Any:
        try:
            response = await self._http_client.post(
                self.endpoint, json=payload, headers=self._headers
            )
        except httpx.RequestError as e:
            raise ConnectionError(f"HTTP request to {self.endpoint} failed: {e}") from e

        if response.status_code == 401:
            raise AuthenticationError("Server rejected the bearer token")

        try:
            data = response.json()
        except ValueError as e:
            raise ConnectionError(
                f"Server returned non-JSON response ({response.status_code})"
            ) from e

        if response.status_code != 200 and isinstance(data, dict) and "error" in data:
            self._unwrap(data)
        return data

    def _unwrap(self, envelope: dict[str, Any]) -> dict[str, Any]:
        if "error" in envelope:
            error = envelope["error"]
            logger.debug(f"Request {envelope.get('id')!r} failed: {error}")
            raise ToolCallError(error.get("code", 0), error.get("message", ""))
        return envelope["result"]
