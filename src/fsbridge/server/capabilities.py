from typing import Any

from fsbridge.protocol.initialization import (
    InitializeRequest,
    InitializeResult,
    ServerCapabilities,
)
from fsbridge.server.managers.tools import ToolManager

DESTRUCTIVE_TOOLS = frozenset({"delete_file"})


class CapabilityAnnouncer:
    """Tells callers which tools they may use.

    Destructive tools stay registered but are left out of the announcement
    while disabled; calling one returns the refusal message.
    """

    def __init__(self, tools: ToolManager, allow_delete: bool) -> None:
        self.tools = tools
        self.allow_delete = allow_delete

    def available_tools(self) -> list[str]:
        """Registered tool names permitted by the configuration, in order."""
        return [
            name
            for name in self.tools.names()
            if self.allow_delete or name not in DESTRUCTIVE_TOOLS
        ]

    def function_definitions(self) -> list[dict[str, Any]]:
        """Function-calling definitions for the announced tools."""
        return [
            self.tools.get_tool(name).to_function_definition()
            for name in self.available_tools()
        ]

    async def handle_initialize(self, request: InitializeRequest) -> InitializeResult:
        return InitializeResult(
            capabilities=ServerCapabilities(tools=self.available_tools())
        )
