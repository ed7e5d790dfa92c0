"""
Command line entry point for the fsbridge server.

Usage:
    fsbridge serve --root ./workspace
    fsbridge tools > tools.json
"""

import asyncio
import json
import logging
import sys
from pathlib import Path
from typing import Optional

import click

from fsbridge.server.capabilities import CapabilityAnnouncer
from fsbridge.server.config import ServerConfig, load_config
from fsbridge.server.exceptions import ConfigurationError
from fsbridge.server.managers.tools import ToolManager
from fsbridge.server.sandbox import PathSandbox
from fsbridge.server.tools.filesystem import FileSystemTools, register_filesystem_tools
from fsbridge.transport.http.server import HttpServerTransport

logger = logging.getLogger(__name__)


def setup_logging(level: str) -> None:
    logging.basicConfig(
        level=level.upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


def _load(config_path: Optional[Path], **overrides) -> ServerConfig:
    try:
        return load_config(config_path, **overrides)
    except ConfigurationError as e:
        raise click.ClickException(str(e)) from e


@click.group()
@click.version_option(version="0.1.0")
def cli():
    """Sandboxed file tools for LLM agents over JSON-RPC."""
    pass


@cli.command()
@click.option(
    "--config",
    "-c",
    "config_path",
    type=click.Path(dir_okay=False, path_type=Path),
    default=None,
    help="JSON config file (default: ./config.json if present)",
)
@click.option(
    "--root",
    "-r",
    type=click.Path(file_okay=False, path_type=Path),
    default=None,
    help="Directory the tools are confined to",
)
@click.option("--host", default=None, help="Interface to listen on")
@click.option("--port", "-p", type=int, default=None, help="Port to listen on")
@click.option(
    "--allow-delete/--no-allow-delete",
    default=None,
    help="Enable or disable the delete_file tool",
)
@click.option("--log-level", default=None, help="Logging level (default: info)")
def serve(
    config_path: Optional[Path],
    root: Optional[Path],
    host: Optional[str],
    port: Optional[int],
    allow_delete: Optional[bool],
    log_level: Optional[str],
):
    """Run the JSON-RPC server."""
    config = _load(
        config_path,
        root_dir=root,
        host=host,
        port=port,
        allow_delete=allow_delete,
        log_level=log_level,
    )
    setup_logging(config.log_level)

    transport = HttpServerTransport.from_config(config)
    try:
        asyncio.run(transport.serve())
    except KeyboardInterrupt:
        logger.info("Shutting down")


@cli.command()
@click.option(
    "--allow-delete/--no-allow-delete",
    default=False,
    help="Include delete_file in the output",
)
def tools(allow_delete: bool):
    """Print the tool definitions as JSON for an LLM client."""
    manager = ToolManager()
    register_filesystem_tools(
        manager, FileSystemTools(PathSandbox(Path.cwd()), allow_delete=allow_delete)
    )
    announcer = CapabilityAnnouncer(manager, allow_delete)
    click.echo(json.dumps(announcer.function_definitions(), indent=2))


def main() -> None:
    cli()


if __name__ == "__main__":
    sys.exit(main())
