"""Implicit environments: a directory of package source trees.

A package ``X`` exists in the directory if one of these entry points does
(checked in this order):

- ``X.py``
- ``X/src/X.py``
- ``X.py/src/X.py``

Identity of ``X``:

1. ``X/Project.toml`` declares ``uuid`` → that identity
2. ``X/Project.toml`` exists without ``uuid`` → identity derived from the
   canonical path of the project file
3. no project file → the nil identity

Packages with a project file may only import their ``[deps]``. Packages
without one are top-level: they see the same roots as the main context.
Path-derived identities are local to this directory, so only top-level
packages can depend on such a package.
"""

from __future__ import annotations

import logging
from collections.abc import Iterator
from dataclasses import dataclass
from dataclasses import field
from pathlib import Path

from ..filesystem import FileSystem
from ..filesystem import LocalFileSystem
from ..identity import NIL_IDENTITY
from ..identity import Identity
from ..identity import path_identity
from ..records import ProjectRecord
from ..records import read_project
from .base import Environment
from .manifest import DEFAULT_SOURCE_SUFFIX
from .manifest import find_project_file

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Candidate:
    """A package discovered in a package directory."""

    name: str
    identity: Identity
    entry: Path
    project: ProjectRecord | None = None
    deps: dict[str, Identity] = field(default_factory=dict)

    @property
    def has_project(self) -> bool:
        return self.project is not None


class DirectoryEnvironment(Environment):
    """Environment defined by scanning a package directory."""

    def __init__(
        self,
        directory: Path,
        filesystem: FileSystem | None = None,
        source_suffix: str = DEFAULT_SOURCE_SUFFIX,
    ):
        self.directory = Path(directory)
        self.filesystem = filesystem or LocalFileSystem()
        self.source_suffix = source_suffix
        self._candidates: dict[str, Candidate | None] = {}
        self._entry_names: list[str] | None = None

    # ----- scanning -----

    def _names(self) -> list[str]:
        """Package names suggested by the directory listing, in listing order."""
        if self._entry_names is None:
            try:
                entries = self.filesystem.list_dir(self.directory)
            except (FileNotFoundError, NotADirectoryError, PermissionError):
                logger.debug(f"[scan] {self.directory} is not a readable directory, treating as empty")
                entries = []
            names: list[str] = []
            for entry in entries:
                name = entry[: -len(self.source_suffix)] if entry.endswith(self.source_suffix) else entry
                if name and not name.startswith(".") and name not in names:
                    names.append(name)
            self._entry_names = names
        return self._entry_names

    def candidate(self, name: str) -> Candidate | None:
        """Find package ``name`` in the directory (memoized).

        Raises:
            ParseError: The package's project file is malformed
        """
        if name not in self._candidates:
            self._candidates[name] = self._scan(name)
        return self._candidates[name]

    def _scan(self, name: str) -> Candidate | None:
        fs = self.filesystem

        single_file = self.directory / f"{name}{self.source_suffix}"
        if fs.is_file(single_file):
            logger.debug(f"[scan] {name} -> {single_file} (single file)")
            return Candidate(name=name, identity=NIL_IDENTITY, entry=single_file)

        for package_dir in (self.directory / name, self.directory / f"{name}{self.source_suffix}"):
            entry = package_dir / "src" / f"{name}{self.source_suffix}"
            if not fs.is_file(entry):
                continue

            project_file = find_project_file(fs, package_dir)
            if project_file is None:
                logger.debug(f"[scan] {name} -> {entry} (no project file)")
                return Candidate(name=name, identity=NIL_IDENTITY, entry=entry)

            project = read_project(fs, project_file)
            if project.identity is not None:
                identity = project.identity
            else:
                identity = path_identity(str(fs.realpath(project_file)))
            logger.debug(f"[scan] {name} [{identity}] -> {entry}")
            return Candidate(name=name, identity=identity, entry=entry, project=project, deps=dict(project.deps))

        return None

    def _find_context(self, context: Identity) -> Candidate | None:
        """Find the package with a project file whose identity is ``context``."""
        for name in self._names():
            found = self.candidate(name)
            if found is not None and found.has_project and found.identity == context:
                return found
        return None

    # ----- roots / graph / paths -----

    def root(self, name: str) -> Identity | None:
        found = self.candidate(name)
        return found.identity if found is not None else None

    def graph(self, context: Identity, name: str) -> Identity | None:
        if context == NIL_IDENTITY:
            # Packages without a project file have no graph entry
            return None
        found = self._find_context(context)
        if found is None:
            return None
        return found.deps.get(name)

    def path(self, identity: Identity, name: str) -> Path | None:
        found = self.candidate(name)
        if found is None or found.identity != identity:
            return None
        return found.entry

    def iter_roots(self) -> Iterator[tuple[str, Identity]]:
        for name in self._names():
            found = self.candidate(name)
            if found is not None:
                yield name, found.identity

    def __repr__(self) -> str:
        return f"DirectoryEnvironment({self.directory})"
