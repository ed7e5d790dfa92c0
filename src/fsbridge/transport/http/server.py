"""HTTP transport for the bridge server."""

import json
import logging
import secrets
from typing import Any

import uvicorn
from starlette.applications import Starlette
from starlette.requests import Request
from starlette.responses import JSONResponse, Response
from starlette.routing import Route

from fsbridge.protocol.base import (
    EXECUTION_ERROR,
    INVALID_REQUEST,
    UNAUTHORIZED,
    Error,
)
from fsbridge.protocol.jsonrpc import JSONRPCError
from fsbridge.server.config import ServerConfig
from fsbridge.server.dispatcher import RequestDispatcher
from fsbridge.server.exceptions import AuthenticationError, ParseError
from fsbridge.server.session import ServerSession

logger = logging.getLogger(__name__)


class HttpServerTransport:
    """Single-endpoint JSON-RPC over HTTP.

    Serves ``POST <endpoint_path>`` only. Requests are authenticated with a
    bearer token before the body is read, then each item of the body is
    handed to the dispatcher in order. A single request object gets a single
    response object; an array gets an array of the same length.
    """

    def __init__(
        self,
        dispatcher: RequestDispatcher,
        auth_token: str,
        endpoint_path: str = "/mcp",
        host: str = "127.0.0.1",
        port: int = 3000,
        log_level: str = "info",
    ) -> None:
        self.endpoint_path = endpoint_path
        self.host = host
        self.port = port
        self.log_level = log_level

        self._dispatcher = dispatcher
        self._expected_authorization = f"Bearer {auth_token}"

        # Unknown paths (404) and other methods on the endpoint (405) both
        # answer with the Not Found envelope.
        self._app = Starlette(
            routes=[Route(endpoint_path, self._handle_mcp_endpoint, methods=["POST"])],
            exception_handlers={
                404: self._handle_not_found,
                405: self._handle_not_found,
            },
        )
        # "/mcp/" is a different path, not a redirect to the endpoint.
        self._app.router.redirect_slashes = False

    @classmethod
    def from_config(cls, config: ServerConfig) -> "HttpServerTransport":
        """Build the transport and the session behind it."""
        session = ServerSession(config)
        return cls(
            session.dispatcher,
            auth_token=config.auth_token,
            endpoint_path=config.endpoint_path,
            host=config.host,
            port=config.port,
            log_level=config.log_level,
        )

    @property
    def app(self) -> Starlette:
        """ASGI application, for uvicorn or test clients."""
        return self._app

    # ================================
    # Lifecycle
    # ================================

    async def serve(self) -> None:
        """Run the HTTP server until the process is interrupted."""
        config = uvicorn.Config(
            app=self._app, host=self.host, port=self.port, log_level=self.log_level
        )
        server = uvicorn.Server(config)
        logger.info(
            f"MCP server running at http://{self.host}:{self.port}{self.endpoint_path}"
        )
        await server.serve()

    # ================================
    # Request handling
    # ================================

    async def _handle_mcp_endpoint(self, request: Request) -> Response:
        try:
            return await self._handle_post_request(request)
        except Exception:
            logger.exception("Error handling MCP request")
            return self._error_response(EXECUTION_ERROR, "Internal server error", 500)

    async def _handle_post_request(self, request: Request) -> Response:
        try:
            self._authenticate(request)
        except AuthenticationError as e:
            logger.warning(f"Rejected request from {self._peer(request)}: {e}")
            return self._error_response(UNAUTHORIZED, "Unauthorized", 401)

        try:
            message_data = self._parse_body(await request.body())
        except ParseError as e:
            return self._error_response(EXECUTION_ERROR, str(e), 500)

        if isinstance(message_data, list):
            logger.debug(f"Processing batch of {len(message_data)} request(s)")
            return JSONResponse(await self._dispatcher.dispatch_batch(message_data))
        return JSONResponse(await self._dispatcher.dispatch(message_data))

    async def _handle_not_found(
        self, request: Request, exc: Exception | None = None
    ) -> Response:
        return self._error_response(INVALID_REQUEST, "Not Found", 404)

    def _authenticate(self, request: Request) -> None:
        """Exact, constant-time match of the Authorization header.

        Raises:
            AuthenticationError: If the header is missing or wrong.
        """
        presented = request.headers.get("Authorization")
        if presented is None:
            raise AuthenticationError("missing Authorization header")
        if not secrets.compare_digest(
            presented.encode("utf-8"), self._expected_authorization.encode("utf-8")
        ):
            raise AuthenticationError("invalid bearer token")

    def _parse_body(self, body: bytes) -> Any:
        """Decode a request body as JSON.

        Raises:
            ParseError: If the body is not valid UTF-8 JSON.
        """
        try:
            return json.loads(body)
        except (json.JSONDecodeError, UnicodeDecodeError) as e:
            raise ParseError(f"Parse error: {e}") from e

    def _error_response(self, code: int, message: str, status_code: int) -> JSONResponse:
        envelope = JSONRPCError.from_error(Error(code=code, message=message))
        return JSONResponse(envelope.to_wire(), status_code=status_code)

    def _peer(self, request: Request) -> str:
        return request.client.host if request.client else "unknown client"
