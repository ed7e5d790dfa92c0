"""Per-request dispatch for the bridge server.

Turns one decoded JSON-RPC payload into exactly one response envelope.
Handler failures never escape: they come back as error envelopes carrying
the caller's correlation id.
"""

import logging
from typing import Any

from pydantic import ValidationError

from fsbridge.protocol.base import EXECUTION_ERROR, INVALID_REQUEST, Error
from fsbridge.protocol.initialization import InitializeRequest
from fsbridge.protocol.jsonrpc import JSONRPCError, JSONRPCResponse
from fsbridge.protocol.tools import CallToolRequest
from fsbridge.server.capabilities import CapabilityAnnouncer
from fsbridge.server.exceptions import BridgeError, ProtocolError
from fsbridge.server.managers.tools import ToolManager
from fsbridge.server.utils import format_validation_error

logger = logging.getLogger(__name__)


class RequestDispatcher:
    """Routes tool_call and initialize requests to their handlers."""

    def __init__(self, tools: ToolManager, capabilities: CapabilityAnnouncer):
        self.tools = tools
        self.capabilities = capabilities

    async def dispatch(self, payload: Any) -> dict[str, Any]:
        """Handle a single request payload.

        Args:
            payload: One decoded item from the request body.

        Returns:
            Wire-ready success or error envelope.
        """
        if not isinstance(payload, dict):
            return self._error(None, ProtocolError("Invalid request"))

        request_id = payload.get("id")
        method = payload.get("method")
        logger.debug(f"Dispatching {method!r} (id={request_id!r})")

        if method == CallToolRequest.METHOD:
            return await self._handle_tool_call(request_id, payload)
        if method == InitializeRequest.METHOD:
            return await self._handle_initialize(request_id, payload)

        logger.warning(f"Rejected unknown method {method!r} (id={request_id!r})")
        return self._error(request_id, ProtocolError("Invalid method"))

    async def dispatch_batch(self, payloads: list[Any]) -> list[dict[str, Any]]:
        """Handle a batch strictly in order, one request at a time.

        Later items may depend on filesystem changes made by earlier ones,
        so each dispatch completes before the next starts.
        """
        responses = []
        for payload in payloads:
            responses.append(await self.dispatch(payload))
        return responses

    async def _handle_tool_call(
        self, request_id: Any, payload: dict[str, Any]
    ) -> dict[str, Any]:
        tool_name = None
        try:
            request = CallToolRequest.from_protocol(payload)
            tool_name = request.name
            result = await self.tools.handle_call(request)
        except ValidationError as e:
            message = format_validation_error(e)
            if tool_name is not None:
                message = f"Invalid arguments for {tool_name}: {message}"
            else:
                message = f"Invalid tool_call params: {message}"
            logger.warning(f"Tool call {request_id!r} rejected: {message}")
            return self._error(request_id, message=message)
        except BridgeError as e:
            logger.warning(f"Tool call {request_id!r} ({tool_name}) failed: {e}")
            return self._error(request_id, e)
        except Exception as e:
            logger.exception(f"Tool call {request_id!r} ({tool_name}) raised")
            message = e.strerror if isinstance(e, OSError) and e.strerror else str(e)
            return self._error(request_id, message=message or type(e).__name__)

        return JSONRPCResponse.from_result(result, request_id).to_wire()

    async def _handle_initialize(
        self, request_id: Any, payload: dict[str, Any]
    ) -> dict[str, Any]:
        request = InitializeRequest.from_protocol(payload)
        result = await self.capabilities.handle_initialize(request)
        return JSONRPCResponse.from_result(result, request_id).to_wire()

    def _error(
        self,
        request_id: Any,
        exc: BridgeError | None = None,
        message: str | None = None,
    ) -> dict[str, Any]:
        code = INVALID_REQUEST if isinstance(exc, ProtocolError) else EXECUTION_ERROR
        error = Error(code=code, message=message if message is not None else str(exc))
        return JSONRPCError.from_error(error, request_id).to_wire()
