"""Registry mapping tool names to typed handlers."""

import logging
from copy import deepcopy
from dataclasses import dataclass
from typing import Any, Awaitable, Callable

from pydantic import BaseModel

from fsbridge.protocol.tools import CallToolRequest, CallToolResult, JSONSchema, Tool
from fsbridge.server.exceptions import UnknownToolError

logger = logging.getLogger(__name__)

# Handlers receive their validated argument model and return any
# JSON-serializable value.
ToolHandler = Callable[[Any], Awaitable[Any]]


@dataclass(frozen=True)
class RegisteredTool:
    tool: Tool
    arguments_model: type[BaseModel]
    handler: ToolHandler


class ToolManager:
    """Holds the tools the server can run.

    Each tool is registered once with a pydantic model describing its
    arguments. Raw arguments are validated against that model before the
    handler sees them, and the model doubles as the tool's input schema.
    """

    def __init__(self):
        self._tools: dict[str, RegisteredTool] = {}

    # ================================
    # Registration
    # ================================

    def add_tool(
        self,
        name: str,
        description: str,
        arguments_model: type[BaseModel],
        handler: ToolHandler,
    ) -> Tool:
        """Register a tool with its argument model and async handler.

        Handlers should raise OperationError (or a subclass) with a message
        the LLM can act on. Any exception is reported to the caller as an
        execution error; nothing is retried.

        Args:
            name: Unique tool name used in tool_call requests.
            description: What the tool does, for the LLM.
            arguments_model: Pydantic model the raw arguments must satisfy.
            handler: Async function taking a validated arguments_model instance.

        Returns:
            Tool: The definition built for this registration.

        Raises:
            ValueError: If the name is empty or taken, or the model is not a
                pydantic model.
        """
        if not name:
            raise ValueError("Tool name must not be empty")
        if name in self._tools:
            raise ValueError(f"Tool '{name}' is already registered")
        if not (isinstance(arguments_model, type) and issubclass(arguments_model, BaseModel)):
            raise ValueError(f"Tool '{name}' needs a pydantic model for its arguments")

        tool = Tool(
            name=name,
            description=description,
            input_schema=JSONSchema.from_model(arguments_model),
        )
        self._tools[name] = RegisteredTool(tool, arguments_model, handler)
        logger.debug(f"Registered tool '{name}'")
        return tool

    # ================================
    # Access
    # ================================

    def get_tool(self, name: str) -> Tool | None:
        """Copy of the definition registered under name, if any."""
        registered = self._tools.get(name)
        return deepcopy(registered.tool) if registered else None

    def names(self) -> list[str]:
        return list(self._tools)

    # ================================
    # Execution
    # ================================

    async def handle_call(self, request: CallToolRequest) -> CallToolResult:
        """Validate arguments and run the named tool.

        Args:
            request: Tool call with name and raw arguments.

        Returns:
            CallToolResult: Handler output, JSON-encoded as text content.

        Raises:
            UnknownToolError: If no tool has that name.
            pydantic.ValidationError: If the arguments don't fit the model.
            Exception: Whatever the handler raised.
        """
        registered = self._tools.get(request.name)
        if registered is None:
            raise UnknownToolError(request.name)

        arguments = registered.arguments_model.model_validate(request.arguments)
        value = await registered.handler(arguments)
        return CallToolResult.from_value(value)
