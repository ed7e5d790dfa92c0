"""Base protocol types shared by requests, results and errors."""

from typing import Any, ClassVar, Self

from pydantic import BaseModel, ConfigDict

JSONRPC_VERSION = "2.0"

# Error codes
INVALID_REQUEST = -32600
EXECUTION_ERROR = -32000
UNAUTHORIZED = -32001


class ProtocolModel(BaseModel):
    """Base model for everything that crosses the wire.

    Fields use snake_case in Python and their camelCase alias on the wire.
    Unknown fields are ignored so callers can send extra data without
    breaking deserialization.
    """

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    def to_protocol(self) -> dict[str, Any]:
        """Serialize to a wire-ready dict, dropping unset optional fields."""
        return self.model_dump(by_alias=True, exclude_none=True, mode="json")


class Error(ProtocolModel):
    """JSON-RPC error object."""

    code: int
    message: str
    data: Any | None = None


class Request(ProtocolModel):
    """Base class for inbound requests.

    Subclasses pin ``METHOD`` and read their params in ``from_protocol``.
    """

    METHOD: ClassVar[str] = ""

    method: str

    @classmethod
    def from_protocol(cls, data: dict[str, Any]) -> Self:
        """Build a request from a raw JSON-RPC payload."""
        return cls(method=data["method"])


class Result(ProtocolModel):
    """Base class for request results."""
