"""Explicit environments: a project file plus an optional manifest.

- roots: the project's ``[deps]``, plus the project's own name → identity
- graph: one entry per manifest stanza (empty without a manifest)
- paths: the project's own entry point, then manifest stanzas, either by
  explicit ``path`` or by content hash looked up in the depots
"""

from __future__ import annotations

import logging
import os
from collections.abc import Iterator
from collections.abc import Sequence
from pathlib import Path

from ..content_address import slug
from ..filesystem import FileSystem
from ..filesystem import LocalFileSystem
from ..identity import Identity
from ..records import ManifestRecord
from ..records import ManifestStanza
from ..records import read_manifest
from ..records import read_project
from .base import Environment

logger = logging.getLogger(__name__)

# Preferred names first; the fedload-specific names let a project coexist with
# other tools that give Project.toml / Manifest.toml their own meaning.
PROJECT_FILE_NAMES = ("FedProject.toml", "Project.toml")
MANIFEST_FILE_NAMES = ("FedManifest.toml", "Manifest.toml")

DEFAULT_SOURCE_SUFFIX = ".py"


def find_project_file(filesystem: FileSystem, directory: Path) -> Path | None:
    """Return the project file in ``directory``, if there is one."""
    for file_name in PROJECT_FILE_NAMES:
        candidate = Path(directory) / file_name
        if filesystem.is_file(candidate):
            return candidate
    return None


def entry_point(filesystem: FileSystem, location: Path, name: str, suffix: str = DEFAULT_SOURCE_SUFFIX) -> Path:
    """Entry-point file for a package rooted at ``location``.

    A location that is already a file is its own entry point; a directory
    contributes ``src/<name><suffix>``.
    """
    if filesystem.is_file(location):
        return location
    return location / "src" / f"{name}{suffix}"


def _join(directory: Path, relative: str) -> Path:
    return Path(os.path.normpath(directory / relative))


class ManifestEnvironment(Environment):
    """Environment defined by a project file and its manifest."""

    def __init__(
        self,
        project_file: Path,
        depots: Sequence[Path] = (),
        filesystem: FileSystem | None = None,
        source_suffix: str = DEFAULT_SOURCE_SUFFIX,
    ):
        """Parse the project and manifest files.

        Args:
            project_file: Path to the project file
            depots: Storage roots searched, in order, for content-addressed packages
            filesystem: Filesystem capability (default: local disk)
            source_suffix: Suffix of entry-point source files

        Raises:
            ParseError: Project or manifest file is malformed
            FileNotFoundError: Project file does not exist
        """
        self.filesystem = filesystem or LocalFileSystem()
        self.project_file = Path(project_file)
        self.project_dir = self.project_file.parent
        self.depots = tuple(Path(d) for d in depots)
        self.source_suffix = source_suffix

        self.project = read_project(self.filesystem, self.project_file)
        self.manifest_file = self._find_manifest_file()
        self.manifest: ManifestRecord | None = None
        if self.manifest_file is not None:
            self.manifest = read_manifest(self.filesystem, self.manifest_file)

        self._paths: dict[tuple[Identity, str], Path | None] = {}

        logger.debug(
            f"[env] project {self.project.name or '<anonymous>'} at {self.project_file} "
            f"(manifest: {self.manifest_file or 'none'})"
        )

    @classmethod
    def from_directory(cls, directory: Path, **kwargs) -> ManifestEnvironment | None:
        """Build from a project directory; None when it holds no project file."""
        filesystem = kwargs.get("filesystem") or LocalFileSystem()
        project_file = find_project_file(filesystem, Path(directory))
        if project_file is None:
            return None
        return cls(project_file, **{**kwargs, "filesystem": filesystem})

    def _find_manifest_file(self) -> Path | None:
        if self.project.manifest:
            explicit = _join(self.project_dir, self.project.manifest)
            if self.filesystem.is_file(explicit):
                return explicit
            logger.debug(f"[env] manifest {explicit} named by {self.project_file} is missing, trying defaults")
        for file_name in MANIFEST_FILE_NAMES:
            candidate = self.project_dir / file_name
            if self.filesystem.is_file(candidate):
                return candidate
        return None

    # ----- roots / graph -----

    def root(self, name: str) -> Identity | None:
        if name == self.project.name and self.project.identity is not None:
            return self.project.identity
        return self.project.deps.get(name)

    def graph(self, context: Identity, name: str) -> Identity | None:
        if self.manifest is None:
            return None
        stanza = self.manifest.stanza(context)
        if stanza is None:
            return None
        return stanza.deps.get(name)

    def iter_roots(self) -> Iterator[tuple[str, Identity]]:
        if self.project.name is not None and self.project.identity is not None:
            yield self.project.name, self.project.identity
        for name, identity in self.project.deps.items():
            if name != self.project.name:
                yield name, identity

    # ----- paths -----

    def path(self, identity: Identity, name: str) -> Path | None:
        key = (identity, name)
        if key not in self._paths:
            self._paths[key] = self._compute_path(identity, name)
        return self._paths[key]

    def _compute_path(self, identity: Identity, name: str) -> Path | None:
        # 1. The project itself
        if identity == self.project.identity and name == self.project.name:
            if self.project.path:
                return _join(self.project_dir, self.project.path)
            return self.project_dir / "src" / f"{name}{self.source_suffix}"

        # 2. A manifest stanza, matched by identity only
        if self.manifest is None:
            return None
        stanza = self.manifest.stanza(identity)
        if stanza is None or stanza.name != name:
            return None

        location = self._stanza_location(stanza)
        if location is None:
            return None
        return entry_point(self.filesystem, location, name, self.source_suffix)

    def _stanza_location(self, stanza: ManifestStanza) -> Path | None:
        """Find where a stanza's source tree lives, or None."""
        assert self.manifest_file is not None

        if stanza.path is not None:
            location = _join(self.manifest_file.parent, stanza.path)
            if self.filesystem.is_dir(location) or self.filesystem.is_file(location):
                logger.debug(f"[locate] {stanza.name} [{stanza.identity}] -> path {location}")
                return location
            logger.debug(f"[locate] {stanza.name} [{stanza.identity}] path {location} does not exist")
            return None

        if stanza.content_hash is not None:
            package_slug = slug(stanza.identity, stanza.content_hash)
            # Depot order is significant: first match wins
            for depot in self.depots:
                candidate = depot / "packages" / stanza.name / package_slug
                if self.filesystem.is_dir(candidate) or self.filesystem.is_file(candidate):
                    logger.debug(f"[locate] {stanza.name} [{stanza.identity}] -> depot {candidate}")
                    return candidate
            logger.debug(
                f"[locate] {stanza.name} [{stanza.identity}] slug {package_slug} not installed in "
                f"{len(self.depots)} depot(s)"
            )
        return None

    def __repr__(self) -> str:
        return f"ManifestEnvironment({self.project_file})"
