from typing import Literal

from fsbridge.protocol.base import ProtocolModel


class TextContent(ProtocolModel):
    """
    Plain text content for tool results.

    Structured tool output is JSON-encoded into the text so clients that only
    understand text content can still pass it straight to the LLM.
    """

    type: Literal["text"] = "text"
    text: str
    """The text content."""


ContentList = list[TextContent]
