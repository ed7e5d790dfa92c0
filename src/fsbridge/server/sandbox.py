"""Confinement of caller-supplied paths to a single root directory."""

import logging
import os
from pathlib import Path

from fsbridge.server.exceptions import SandboxViolation

logger = logging.getLogger(__name__)


class PathSandbox:
    """Resolves untrusted path expressions against a fixed root.

    Root and candidate go through the same canonicalization (``realpath``
    plus ``normcase``), so a path is judged on where it actually lands.
    Containment is equality or a prefix that ends on a separator, so
    ``/data`` never admits ``/data-secret``.
    """

    def __init__(self, root: str | os.PathLike[str]) -> None:
        self._root = os.path.realpath(os.fspath(root))
        self._root_key = os.path.normcase(self._root)
        self._root_prefix = (
            self._root_key
            if self._root_key.endswith(os.sep)
            else self._root_key + os.sep
        )

    @property
    def root(self) -> Path:
        """Canonical root directory."""
        return Path(self._root)

    def resolve(self, relative_input: str) -> Path:
        """Resolve a caller path to an absolute path inside the root.

        Args:
            relative_input: Path relative to the root. Absolute paths are
                accepted only when they land inside the root. Backslashes
                are treated as separators.

        Returns:
            Canonical absolute path. The target does not need to exist.

        Raises:
            SandboxViolation: If the path is malformed or lands outside the root.
        """
        if "\x00" in relative_input:
            logger.warning(f"Rejected path containing NUL byte: {relative_input!r}")
            raise SandboxViolation(relative_input, "Invalid path")

        normalized = relative_input.replace("\\", "/")
        candidate = os.path.realpath(os.path.join(self._root, normalized))

        if not self._is_within_root(candidate):
            logger.warning(f"Sandbox violation for requested path {relative_input!r}")
            raise SandboxViolation(relative_input)

        return Path(candidate)

    def resolve_entry(self, relative_input: str) -> Path:
        """Resolve a caller path without following a link in its last component.

        The parent directory goes through ``resolve`` and the final name is
        joined as-is, so the result names a symlink itself rather than its
        target.

        Raises:
            SandboxViolation: If the parent lands outside the root.
        """
        if "\x00" in relative_input:
            logger.warning(f"Rejected path containing NUL byte: {relative_input!r}")
            raise SandboxViolation(relative_input, "Invalid path")

        normalized = os.path.normpath(relative_input.replace("\\", "/"))
        parent, name = os.path.split(normalized)
        if name in ("", os.curdir, os.pardir):
            return self.resolve(relative_input)

        try:
            parent_path = self.resolve(parent or os.curdir)
        except SandboxViolation:
            raise SandboxViolation(relative_input) from None
        return parent_path / name

    def contains(self, path: str | os.PathLike[str]) -> bool:
        """Check whether an existing path (after following links) is in the root."""
        return self._is_within_root(os.path.realpath(os.fspath(path)))

    def relative(self, path: str | os.PathLike[str]) -> str:
        """Root-relative POSIX form of a path under the root.

        Links are not followed, so a walked entry keeps the name it was
        found under.
        """
        absolute = os.path.abspath(os.fspath(path))
        return Path(os.path.relpath(absolute, self._root)).as_posix()

    def _is_within_root(self, candidate: str) -> bool:
        key = os.path.normcase(candidate)
        return key == self._root_key or key.startswith(self._root_prefix)
