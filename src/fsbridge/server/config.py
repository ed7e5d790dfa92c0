"""Startup configuration for the bridge server.

Values come from, in increasing priority: built-in defaults, a JSON config
file, environment variables (optionally via a ``.env`` file), and explicit
overrides such as CLI flags. The result is frozen and read once.
"""

import json
import logging
import os
from pathlib import Path
from typing import Any, Mapping

from dotenv import load_dotenv
from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from fsbridge.server.exceptions import ConfigurationError
from fsbridge.server.utils import format_validation_error

logger = logging.getLogger(__name__)

DEFAULT_CONFIG_FILE = Path("config.json")
LOG_LEVELS = ("critical", "error", "warning", "info", "debug")

# field -> (config file key, environment variable)
_SOURCES: dict[str, tuple[str, str]] = {
    "auth_token": ("MCP_SERVER_AUTH_TOKEN", "FSBRIDGE_AUTH_TOKEN"),
    "root_dir": ("WORKING_DIR", "FSBRIDGE_ROOT_DIR"),
    "allow_delete": ("ALLOW_DELETE", "FSBRIDGE_ALLOW_DELETE"),
    "host": ("HOST", "FSBRIDGE_HOST"),
    "port": ("PORT", "FSBRIDGE_PORT"),
    "endpoint_path": ("ENDPOINT_PATH", "FSBRIDGE_ENDPOINT_PATH"),
    "log_level": ("LOG_LEVEL", "FSBRIDGE_LOG_LEVEL"),
}


class ServerConfig(BaseModel):
    """Immutable server configuration."""

    model_config = ConfigDict(frozen=True)

    auth_token: str = Field(min_length=1, repr=False)
    """
    Bearer token every request must present.
    """

    root_dir: Path
    """
    Directory all tools are confined to. Stored canonicalized.
    """

    allow_delete: bool = False
    """
    Whether delete_file may run and is announced.
    """

    host: str = "127.0.0.1"
    port: int = Field(default=3000, ge=1, le=65535)
    endpoint_path: str = "/mcp"
    log_level: str = "info"

    @field_validator("root_dir")
    @classmethod
    def validate_root_dir(cls, v: Path) -> Path:
        resolved = Path(os.path.realpath(v.expanduser()))
        if not resolved.is_dir():
            raise ValueError(f"root directory does not exist: {v}")
        return resolved

    @field_validator("endpoint_path")
    @classmethod
    def validate_endpoint_path(cls, v: str) -> str:
        if not v.startswith("/"):
            raise ValueError("endpoint path must start with '/'")
        return v

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        level = v.lower()
        if level not in LOG_LEVELS:
            raise ValueError(f"log level must be one of {', '.join(LOG_LEVELS)}")
        return level


def load_config(
    path: str | os.PathLike[str] | None = None,
    env: Mapping[str, str] | None = None,
    **overrides: Any,
) -> ServerConfig:
    """Build the server configuration.

    Args:
        path: JSON config file. When omitted, ``config.json`` in the current
            directory is used if present.
        env: Environment to read. Defaults to ``os.environ`` after loading a
            ``.env`` file.
        **overrides: Field values that win over every other source. ``None``
            values are ignored.

    Returns:
        ServerConfig: Validated, frozen configuration.

    Raises:
        ConfigurationError: If the file is unreadable or a value is invalid.
    """
    if env is None:
        load_dotenv()
        env = os.environ

    file_values = _read_config_file(path)
    values: dict[str, Any] = {}
    for field, (file_key, env_key) in _SOURCES.items():
        if env.get(env_key):
            values[field] = env[env_key]
        elif file_values.get(file_key) is not None:
            values[field] = file_values[file_key]

    values.update({k: v for k, v in overrides.items() if v is not None})
    values.setdefault("root_dir", Path.cwd())

    try:
        config = ServerConfig(**values)
    except ValidationError as e:
        raise ConfigurationError(
            f"Invalid configuration: {format_validation_error(e)}"
        ) from e

    logger.debug(f"Loaded configuration: {config!r}")
    return config


def _read_config_file(path: str | os.PathLike[str] | None) -> dict[str, Any]:
    if path is None:
        if not DEFAULT_CONFIG_FILE.is_file():
            return {}
        path = DEFAULT_CONFIG_FILE

    try:
        with open(path, encoding="utf-8") as f:
            data = json.load(f)
    except OSError as e:
        raise ConfigurationError(f"Cannot read config file {path}: {e}") from e
    except json.JSONDecodeError as e:
        raise ConfigurationError(f"Config file {path} is not valid JSON: {e}") from e

    if not isinstance(data, dict):
        raise ConfigurationError(f"Config file {path} must contain a JSON object")
    return data
