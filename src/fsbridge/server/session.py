"""Server session: wires configuration into the tool registry and dispatcher."""

import logging

from fsbridge.server.capabilities import CapabilityAnnouncer
from fsbridge.server.config import ServerConfig
from fsbridge.server.dispatcher import RequestDispatcher
from fsbridge.server.managers.tools import ToolManager
from fsbridge.server.sandbox import PathSandbox
from fsbridge.server.tools.filesystem import FileSystemTools, register_filesystem_tools

logger = logging.getLogger(__name__)


class ServerSession:
    """Everything behind the transport, built from one configuration.

    The configuration is passed in once and never re-read, so every
    component sees the same root directory and deletion setting.
    """

    def __init__(self, config: ServerConfig):
        self.config = config
        self.sandbox = PathSandbox(config.root_dir)

        self.tools = ToolManager()
        register_filesystem_tools(
            self.tools, FileSystemTools(self.sandbox, allow_delete=config.allow_delete)
        )

        self.capabilities = CapabilityAnnouncer(self.tools, config.allow_delete)
        self.dispatcher = RequestDispatcher(self.tools, self.capabilities)

        logger.info(
            f"Serving {self.sandbox.root} "
            f"(deletion {'enabled' if config.allow_delete else 'disabled'})"
        )
