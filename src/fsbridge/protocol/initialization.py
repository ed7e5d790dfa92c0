from typing import ClassVar, Literal

from pydantic import Field

from fsbridge.protocol.base import ProtocolModel, Request, Result


class ServerCapabilities(ProtocolModel):
    """Capabilities the server announces during initialization."""

    tools: list[str] = Field(default_factory=list)
    """
    Names of the tools the caller may invoke under the current configuration.
    """


class InitializeRequest(Request):
    """
    Opens a conversation with the server. Carries no parameters we act on.
    """

    METHOD: ClassVar[str] = "initialize"

    method: Literal["initialize"] = "initialize"


class InitializeResult(Result):
    """
    Server's answer to an initialize request.
    """

    capabilities: ServerCapabilities
