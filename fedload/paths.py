"""Load-path policy and dependency factories.

Turns ``LoaderSettings`` into concrete environments. Named load-path entries:

- ``@``       the active project (omitted when none is configured); a project
              of ``@.`` means the nearest project, as below
- ``@.``      nearest ancestor of the working directory with a project file
- ``@stdlib`` the configured standard package directory
- ``@v#.#``   ``environments/v<major>.<minor>`` of the running interpreter
- ``@name``   ``environments/<name>`` in the first depot where it exists

Anything else is a filesystem path. Named entries that resolve to nothing are
dropped.
"""

from __future__ import annotations

import logging
import sys
from dataclasses import dataclass
from pathlib import Path

from .config import LoaderSettings
from .environments import DirectoryEnvironment
from .environments import Environment
from .environments import ManifestEnvironment
from .environments import find_project_file
from .filesystem import FileSystem
from .filesystem import LocalFileSystem
from .loaders import ExternalLoader
from .resolver import Resolver
from .stack import EnvironmentStack

logger = logging.getLogger(__name__)

CURRENT_PROJECT = "@."


@dataclass(frozen=True)
class LoadPathEntry:
    """One expanded load-path entry."""

    entry: str
    path: Path


def find_project_upwards(filesystem: FileSystem, start: Path) -> Path | None:
    """Nearest directory at or above ``start`` holding a project file."""
    current = Path(start).absolute()
    for directory in (current, *current.parents):
        if find_project_file(filesystem, directory) is not None:
            return directory
    return None


def _named_environment(settings: LoaderSettings, filesystem: FileSystem, name: str) -> Path | None:
    for depot in settings.depot_path:
        candidate = Path(depot) / "environments" / name
        if filesystem.is_dir(candidate):
            return candidate
    return None


def expand_entry(entry: str, settings: LoaderSettings, filesystem: FileSystem, cwd: Path | None = None) -> Path | None:
    """Expand one load-path entry to a filesystem path, or None."""
    if entry == "@":
        if settings.project is not None and str(settings.project) == CURRENT_PROJECT:
            return find_project_upwards(filesystem, cwd or Path.cwd())
        return settings.project
    if entry == CURRENT_PROJECT:
        return find_project_upwards(filesystem, cwd or Path.cwd())
    if entry == "@stdlib":
        return settings.stdlib
    if entry.startswith("@"):
        name = entry[1:].replace("#.#", f"{sys.version_info.major}.{sys.version_info.minor}")
        return _named_environment(settings, filesystem, name)
    return Path(entry).expanduser()


def expand_load_path(
    settings: LoaderSettings, filesystem: FileSystem | None = None, cwd: Path | None = None
) -> list[LoadPathEntry]:
    """Expand the configured load path, dropping entries that resolve to nothing."""
    filesystem = filesystem or LocalFileSystem()
    expanded = []
    for entry in settings.load_path:
        path = expand_entry(entry, settings, filesystem, cwd)
        if path is None:
            logger.debug(f"[config] load path entry '{entry}' resolves to nothing, skipping")
            continue
        expanded.append(LoadPathEntry(entry=entry, path=path))
    return expanded


def create_environment(path: Path, settings: LoaderSettings, filesystem: FileSystem | None = None) -> Environment:
    """Build the environment a load-path location stands for.

    A project file, or a directory holding one, is an explicit environment;
    any other location is a package directory (possibly empty).

    Raises:
        ParseError: Project or manifest file is malformed
    """
    filesystem = filesystem or LocalFileSystem()
    project_file: Path | None = None
    if filesystem.is_file(path):
        project_file = path
    elif filesystem.is_dir(path):
        project_file = find_project_file(filesystem, path)

    if project_file is not None:
        return ManifestEnvironment(
            project_file,
            depots=settings.depot_path,
            filesystem=filesystem,
            source_suffix=settings.source_suffix,
        )
    return DirectoryEnvironment(path, filesystem=filesystem, source_suffix=settings.source_suffix)


def build_stack(
    settings: LoaderSettings, filesystem: FileSystem | None = None, cwd: Path | None = None
) -> EnvironmentStack:
    """Build the environment stack for the configured load path."""
    filesystem = filesystem or LocalFileSystem()
    environments = [
        create_environment(item.path, settings, filesystem) for item in expand_load_path(settings, filesystem, cwd)
    ]
    return EnvironmentStack(environments)


def create_resolver(
    settings: LoaderSettings | None = None,
    loader: ExternalLoader | None = None,
    filesystem: FileSystem | None = None,
) -> Resolver:
    """Create a resolver for the given (or environment-derived) settings."""
    settings = settings or LoaderSettings.from_env()
    return Resolver(build_stack(settings, filesystem), loader=loader)
