from pathlib import Path

import pytest

from fsbridge.server.config import ServerConfig
from fsbridge.server.sandbox import PathSandbox
from fsbridge.server.tools.filesystem import FileSystemTools

AUTH_TOKEN = "test-token"


@pytest.fixture
def root_dir(tmp_path: Path) -> Path:
    """Empty root directory with a sibling that shares its name as a prefix."""
    root = tmp_path / "root"
    root.mkdir()
    (tmp_path / "root-sibling").mkdir()
    (tmp_path / "root-sibling" / "secret.txt").write_text("top secret")
    return root


@pytest.fixture
def config(root_dir: Path) -> ServerConfig:
    return ServerConfig(auth_token=AUTH_TOKEN, root_dir=root_dir)


@pytest.fixture
def delete_config(root_dir: Path) -> ServerConfig:
    return ServerConfig(auth_token=AUTH_TOKEN, root_dir=root_dir, allow_delete=True)


@pytest.fixture
def sandbox(root_dir: Path) -> PathSandbox:
    return PathSandbox(root_dir)


@pytest.fixture
def fs_tools(sandbox: PathSandbox) -> FileSystemTools:
    return FileSystemTools(sandbox)
