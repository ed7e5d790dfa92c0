"""Exception hierarchy for the bridge server.

Each class maps onto one kind of failure the front-end or dispatcher
converts into a JSON-RPC error envelope.
"""

from __future__ import annotations


class BridgeError(Exception):
    """Base exception for all bridge errors."""

    pass


class ConfigurationError(BridgeError):
    """Raised when the startup configuration is missing or invalid."""

    pass


class AuthenticationError(BridgeError):
    """Raised when the bearer credential is missing or does not match."""

    pass


class ProtocolError(BridgeError):
    """Raised when a request has an unknown method or malformed shape."""

    pass


class ParseError(BridgeError):
    """Raised when a request body is not valid JSON."""

    pass


class OperationError(BridgeError):
    """Raised when a tool cannot complete.

    Covers missing files, invalid patterns, disabled capabilities and
    failed moves. The message is returned to the caller as-is.
    """

    pass


class UnknownToolError(OperationError):
    """Raised when a tool_call names a tool that is not registered."""

    def __init__(self, name: str):
        self.name = name
        super().__init__(f"Unknown tool: {name}")


class SandboxViolation(OperationError):
    """Raised when a path resolves outside the root directory.

    Only the caller's own input is echoed back, never the resolved path.
    """

    def __init__(self, requested: str, reason: str = "Path escapes the root directory"):
        self.requested = requested
        self.reason = reason
        super().__init__(f"{reason}: {requested!r}")
