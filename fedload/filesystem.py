"""Filesystem capability used by environments.

Environments never touch the disk directly; they go through a ``FileSystem``
so that scans and depot lookups can be redirected (tests, sandboxes, archives).
"""

from __future__ import annotations

import os
from pathlib import Path
from typing import Protocol


class FileSystem(Protocol):
    """Read-only filesystem operations needed for resolution."""

    def read_bytes(self, path: Path) -> bytes:
        """Read a file. Raises FileNotFoundError if it does not exist."""
        ...

    def list_dir(self, path: Path) -> list[str]:
        """List entry names in a directory. Raises FileNotFoundError if missing."""
        ...

    def is_file(self, path: Path) -> bool: ...

    def is_dir(self, path: Path) -> bool: ...

    def realpath(self, path: Path) -> Path:
        """Canonical path with symlinks resolved."""
        ...


class LocalFileSystem:
    """FileSystem backed by the local disk."""

    def read_bytes(self, path: Path) -> bytes:
        return Path(path).read_bytes()

    def list_dir(self, path: Path) -> list[str]:
        path = Path(path)
        if not path.is_dir():
            raise FileNotFoundError(f"Not a directory: {path}")
        return sorted(entry.name for entry in path.iterdir())

    def is_file(self, path: Path) -> bool:
        return Path(path).is_file()

    def is_dir(self, path: Path) -> bool:
        return Path(path).is_dir()

    def realpath(self, path: Path) -> Path:
        return Path(os.path.realpath(path))

    def __repr__(self) -> str:
        return "LocalFileSystem()"
