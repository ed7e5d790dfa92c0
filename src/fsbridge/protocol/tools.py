"""Tool-related protocol types."""

import json
from typing import Any, ClassVar, Literal, Self

from pydantic import BaseModel, Field

from fsbridge.protocol.base import ProtocolModel, Request, Result
from fsbridge.protocol.content import ContentList, TextContent


class JSONSchema(ProtocolModel):
    """
    JSON Schema describing the arguments a tool accepts.
    """

    type: Literal["object"] = "object"
    properties: dict[str, Any] | None = None
    required: list[str] | None = None

    @classmethod
    def from_model(cls, model: "type[BaseModel]") -> Self:
        """Derive the schema from a pydantic argument model."""
        schema = model.model_json_schema()
        return cls(
            properties=schema.get("properties", {}),
            required=schema.get("required") or None,
        )


class Tool(ProtocolModel):
    """
    Definition of an operation the server can run on the caller's behalf.
    """

    name: str
    """
    Unique identifier for the tool.
    """

    description: str | None = None
    """
    What the tool does, written for the LLM that decides when to call it.
    """

    input_schema: JSONSchema = Field(alias="inputSchema")
    """
    Arguments the tool expects.
    """

    def to_function_definition(self) -> dict[str, Any]:
        """Shape used by chat-completion APIs for function calling."""
        return {
            "name": self.name,
            "description": self.description or "",
            "parameters": self.input_schema.to_protocol(),
        }


class CallToolRequest(Request):
    """
    Run a registered tool with the given arguments.
    """

    METHOD: ClassVar[str] = "tool_call"

    method: Literal["tool_call"] = "tool_call"
    name: str
    """
    Name of the tool to run.
    """

    arguments: dict[str, Any] = Field(default_factory=dict)
    """
    Raw argument object, validated by the tool's argument model.
    """

    @classmethod
    def from_protocol(cls, data: dict[str, Any]) -> Self:
        params = data.get("params")
        if not isinstance(params, dict):
            # Let validation report the missing name.
            params = {}
        arguments = params.get("arguments")
        return cls(
            name=params.get("name"),
            arguments={} if arguments is None else arguments,
        )

    def to_protocol(self) -> dict[str, Any]:
        return {
            "method": self.method,
            "params": {"name": self.name, "arguments": self.arguments},
        }


class CallToolResult(Result):
    """
    Output of a successful tool call.
    """

    content: ContentList

    @classmethod
    def from_value(cls, value: Any) -> Self:
        """Wrap any JSON-serializable value as a single text content item."""
        return cls(content=[TextContent(text=json.dumps(value, ensure_ascii=False))])
