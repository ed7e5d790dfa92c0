"""Sandboxed file tools exposed to the LLM.

Every path argument goes through the PathSandbox before the disk is
touched. Blocking filesystem work runs in a worker thread so a slow scan
only delays its own request.
"""

import asyncio
import logging
import os
import re
import shutil
from pathlib import Path
from typing import Any, Iterator, Literal

from pydantic import BaseModel, Field

from fsbridge.server.exceptions import OperationError
from fsbridge.server.managers.tools import ToolManager
from fsbridge.server.sandbox import PathSandbox
from fsbridge.server.utils import compile_pattern, utc_date, utc_timestamp

logger = logging.getLogger(__name__)

NO_EXTENSION_GROUP = "no-extension"


# ================================
# Argument models
# ================================


class AnalyzeLogsArguments(BaseModel):
    filename: str = Field(description="Log file, relative to the working directory")
    pattern: str = Field(description="Regular expression to search for, e.g. 'ERROR'")


class SearchFilesArguments(BaseModel):
    query: str = Field(
        description="Substring of the file name or content, or a prefix of the "
        "UTC modification time such as '2024-01-15'"
    )
    by: Literal["name", "content", "date"] = Field(
        default="name", description="What to match the query against"
    )


class OrganizeFilesArguments(BaseModel):
    by: Literal["extension", "date"] = Field(
        description="Group files into folders by extension or by modification date"
    )


class ReplaceTextArguments(BaseModel):
    filename: str = Field(description="File to edit, relative to the working directory")
    search: str = Field(description="Regular expression to replace (all occurrences)")
    replace: str = Field(description="Replacement text, inserted literally")


class DeleteFileArguments(BaseModel):
    filename: str = Field(description="File to delete, relative to the working directory")


# ================================
# Tools
# ================================


class FileSystemTools:
    """Handlers for the file tools, bound to one sandbox.

    Results and messages only ever mention root-relative paths.
    """

    def __init__(self, sandbox: PathSandbox, allow_delete: bool = False) -> None:
        self.sandbox = sandbox
        self.allow_delete = allow_delete

    async def analyze_logs(self, arguments: AnalyzeLogsArguments) -> dict[str, Any]:
        """Every match of the pattern in the file, with a count."""
        path = self._existing_file(arguments.filename)
        regex = compile_pattern(arguments.pattern)
        content = await asyncio.to_thread(
            path.read_text, encoding="utf-8", errors="replace"
        )
        matches = [match.group(0) for match in regex.finditer(content)]
        return {"matches": matches, "count": len(matches)}

    async def search_files(self, arguments: SearchFilesArguments) -> list[str]:
        """Sorted root-relative paths of the files matching the query."""
        return await asyncio.to_thread(self._search, arguments.query, arguments.by)

    async def organize_files(
        self, arguments: OrganizeFilesArguments
    ) -> dict[str, list[str]]:
        """Move every file into a folder named after its group.

        Not transactional: if a move fails, the moves before it stay done.
        """
        return await asyncio.to_thread(self._organize, arguments.by)

    async def replace_text(self, arguments: ReplaceTextArguments) -> str:
        path = self._existing_file(arguments.filename)
        regex = compile_pattern(arguments.search)
        count = await asyncio.to_thread(_rewrite_file, path, regex, arguments.replace)
        return f"Text replaced in {self.sandbox.relative(path)} ({count} occurrence(s))"

    async def delete_file(self, arguments: DeleteFileArguments) -> str:
        if not self.allow_delete:
            raise OperationError("File deletion is disabled in configuration")
        # Links are removed themselves, never their targets.
        path = self.sandbox.resolve_entry(arguments.filename)
        if not os.path.lexists(path):
            raise OperationError(f"File not found: {arguments.filename}")
        if path.is_dir() and not path.is_symlink():
            raise OperationError(f"Not a file: {arguments.filename}")
        await asyncio.to_thread(path.unlink)
        logger.info(f"Deleted {self.sandbox.relative(path)}")
        return f"File deleted: {self.sandbox.relative(path)}"

    # ================================
    # Helpers
    # ================================

    def _existing_file(self, filename: str) -> Path:
        path = self.sandbox.resolve(filename)
        if not path.exists():
            raise OperationError(f"File not found: {filename}")
        if not path.is_file():
            raise OperationError(f"Not a file: {filename}")
        return path

    def _walk_files(self) -> Iterator[Path]:
        """Regular files under the root, depth-first in name order.

        Directory links are not descended into, and file links whose target
        leaves the root are skipped.
        """
        for dirpath, dirnames, filenames in os.walk(self.sandbox.root):
            dirnames.sort()
            for name in sorted(filenames):
                path = Path(dirpath) / name
                if not self.sandbox.contains(path):
                    continue
                if path.is_file():
                    yield path

    def _search(self, query: str, by: str) -> list[str]:
        results = []
        for path in self._walk_files():
            if by == "name":
                matched = query in path.name
            elif by == "content":
                matched = _file_contains(path, query)
            else:
                matched = _modified_timestamp_matches(path, query)
            if matched:
                results.append(self.sandbox.relative(path))
        return sorted(results)

    def _organize(self, by: str) -> dict[str, list[str]]:
        groups: dict[str, list[str]] = {}
        # Snapshot first so files moved into group folders aren't revisited.
        for path in list(self._walk_files()):
            group = _extension_group(path) if by == "extension" else _date_group(path)
            target = self.sandbox.resolve(group) / path.name
            self._move(path, target)
            groups.setdefault(group, []).append(self.sandbox.relative(target))
        logger.info(f"Organized files by {by} into {len(groups)} group(s)")
        return groups

    def _move(self, source: Path, target: Path) -> None:
        if os.path.abspath(source) == os.path.abspath(target):
            return

        source_name = self.sandbox.relative(source)
        target_name = self.sandbox.relative(target)
        if target.exists() or target.is_symlink():
            raise OperationError(
                f"Cannot move {source_name}: {target_name} already exists"
            )
        try:
            target.parent.mkdir(parents=True, exist_ok=True)
            shutil.move(source, target)
        except OSError as e:
            raise OperationError(
                f"Failed to move {source_name} to {target_name}: {e.strerror or e}"
            ) from e


def _file_contains(path: Path, query: str) -> bool:
    try:
        return query in path.read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError):
        return False


def _modified_timestamp_matches(path: Path, query: str) -> bool:
    try:
        return utc_timestamp(path.stat().st_mtime).startswith(query)
    except OSError:
        return False


def _extension_group(path: Path) -> str:
    return path.suffix[1:].lower() or NO_EXTENSION_GROUP


def _date_group(path: Path) -> str:
    try:
        return utc_date(path.stat().st_mtime)
    except OSError as e:
        raise OperationError(f"Cannot read modification time of {path.name}") from e


def substitute(pattern: re.Pattern[str], replacement: str, content: str) -> tuple[str, int]:
    """Replace every match of pattern with the literal replacement.

    A match that is a proper prefix of the replacement and is already
    followed by the rest of it is left alone, so replacing ``http`` with
    ``https`` twice does not produce ``httpss``.

    Returns:
        Tuple of (new content, number of replacements made)
    """
    count = 0

    def _replace(match: re.Match[str]) -> str:
        nonlocal count
        matched = match.group(0)
        already_replaced = (
            len(replacement) > len(matched)
            and replacement.startswith(matched)
            and content.startswith(replacement, match.start())
        )
        if already_replaced:
            return matched
        count += 1
        return replacement

    return pattern.sub(_replace, content), count


def _rewrite_file(path: Path, pattern: re.Pattern[str], replacement: str) -> int:
    try:
        with path.open("r", encoding="utf-8", newline="") as f:
            content = f.read()
    except UnicodeDecodeError as e:
        raise OperationError(f"{path.name} is not a UTF-8 text file") from e

    new_content, count = substitute(pattern, replacement, content)
    if new_content != content:
        with path.open("w", encoding="utf-8", newline="") as f:
            f.write(new_content)
    return count


# ================================
# Registration
# ================================


def register_filesystem_tools(manager: ToolManager, tools: FileSystemTools) -> None:
    """Register the file tools, in the order they are announced."""
    manager.add_tool(
        "analyze_logs",
        "Analyze a log file for patterns (e.g., errors)",
        AnalyzeLogsArguments,
        tools.analyze_logs,
    )
    manager.add_tool(
        "search_files",
        "Search files by name, content, or date (by: name, content, date)",
        SearchFilesArguments,
        tools.search_files,
    )
    manager.add_tool(
        "organize_files",
        "Organize files into folders by extension or date",
        OrganizeFilesArguments,
        tools.organize_files,
    )
    manager.add_tool(
        "replace_text",
        "Replace text in a file using a regular expression",
        ReplaceTextArguments,
        tools.replace_text,
    )
    manager.add_tool(
        "delete_file",
        "Delete a file (only if deletion is enabled)",
        DeleteFileArguments,
        tools.delete_file,
    )
