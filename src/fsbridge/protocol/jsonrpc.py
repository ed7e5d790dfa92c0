"""JSON-RPC 2.0 envelopes.

The correlation id is opaque: whatever the caller sent is echoed back
unchanged, and ``None`` is serialized as ``null`` rather than dropped.
"""

from typing import Any, Literal

from fsbridge.protocol.base import JSONRPC_VERSION, Error, ProtocolModel, Result


class JSONRPCResponse(ProtocolModel):
    """Success envelope."""

    jsonrpc: Literal["2.0"] = JSONRPC_VERSION
    id: Any = None
    result: dict[str, Any]

    @classmethod
    def from_result(cls, result: Result, request_id: Any) -> "JSONRPCResponse":
        return cls(id=request_id, result=result.to_protocol())

    def to_wire(self) -> dict[str, Any]:
        return {"jsonrpc": self.jsonrpc, "id": self.id, "result": self.result}


class JSONRPCError(ProtocolModel):
    """Error envelope."""

    jsonrpc: Literal["2.0"] = JSONRPC_VERSION
    id: Any = None
    error: Error

    @classmethod
    def from_error(cls, error: Error, request_id: Any = None) -> "JSONRPCError":
        return cls(id=request_id, error=error)

    def to_wire(self) -> dict[str, Any]:
        return {"jsonrpc": self.jsonrpc, "id": self.id, "error": self.error.to_protocol()}
