"""Project and manifest records.

A project file names a project, gives it an identity and lists its direct
dependencies:

    name = "App"
    uuid = "8f986787-14fe-4607-ba5d-fbff2944afa9"

    [deps]
    Priv = "ba13f791-ae1d-465a-978b-69c3ad90f72b"

A manifest file records the complete dependency graph, one stanza per
package. The same name may appear in several stanzas with different
identities:

    [[Priv]]
    uuid = "ba13f791-ae1d-465a-978b-69c3ad90f72b"
    path = "deps/Priv"

    [[Priv]]
    uuid = "2d15fe94-a1f7-436c-a4d8-07a9a496e01c"
    git-tree-sha1 = "1bf63d3be994fe83456a03b874b409cfd59a6373"

The versioned layout (``manifest_format = "2.0"``) nests the same stanzas
under ``[[deps.<name>]]``.
"""

from __future__ import annotations

import tomllib
from collections.abc import Mapping
from pathlib import Path
from typing import Any

from pydantic import BaseModel
from pydantic import ConfigDict
from pydantic import Field
from pydantic import PrivateAttr
from pydantic import ValidationError

from .errors import ParseError
from .filesystem import FileSystem
from .identity import Identity

SUPPORTED_MANIFEST_MAJOR = 2


class ProjectRecord(BaseModel):
    """Parsed project file. Every field is optional (anonymous projects are valid)."""

    model_config = ConfigDict(frozen=True, populate_by_name=True, extra="ignore")

    name: str | None = Field(None, description="Project name")
    identity: Identity | None = Field(None, alias="uuid", description="Declared identity")
    deps: dict[str, Identity] = Field(default_factory=dict, description="Direct dependencies")
    path: str | None = Field(None, description="Explicit entry point, relative to the project file")
    version: str | None = Field(None, description="Project version")
    manifest: str | None = Field(None, description="Explicit manifest file, relative to the project file")
    source: Path | None = Field(None, description="File this record was read from")


class ManifestStanza(BaseModel):
    """One package entry in a manifest."""

    model_config = ConfigDict(frozen=True, populate_by_name=True, extra="ignore")

    name: str
    identity: Identity = Field(..., alias="uuid")
    deps: dict[str, Identity] = Field(default_factory=dict)
    path: str | None = Field(None, description="Explicit source path, relative to the manifest")
    content_hash: str | None = Field(None, alias="git-tree-sha1", description="Content hash of the source tree")
    version: str | None = None


class ManifestRecord(BaseModel):
    """Parsed manifest: every stanza, indexed by identity."""

    model_config = ConfigDict(frozen=True)

    stanzas: tuple[ManifestStanza, ...] = ()
    source: Path | None = None

    _by_identity: dict[Identity, ManifestStanza] = PrivateAttr(default_factory=dict)

    def model_post_init(self, __context: Any) -> None:
        for stanza in self.stanzas:
            self._by_identity[stanza.identity] = stanza

    def stanza(self, identity: Identity) -> ManifestStanza | None:
        """Find the stanza for an identity (never matched by name)."""
        return self._by_identity.get(identity)

    def named(self, name: str) -> list[ManifestStanza]:
        """All stanzas sharing a name."""
        return [s for s in self.stanzas if s.name == name]


def _load_toml(raw: bytes | str | Mapping[str, Any], path: Path | None) -> dict[str, Any]:
    if isinstance(raw, Mapping):
        return dict(raw)
    if isinstance(raw, bytes):
        try:
            raw = raw.decode("utf-8")
        except UnicodeDecodeError as e:
            raise ParseError(f"File is not valid UTF-8: {e}", path) from e
    try:
        return tomllib.loads(raw)
    except tomllib.TOMLDecodeError as e:
        raise ParseError(f"Invalid TOML: {e}", path) from e


def _format_validation_error(error: ValidationError) -> str:
    parts = []
    for item in error.errors():
        location = ".".join(str(p) for p in item["loc"]) or "<root>"
        parts.append(f"{location}: {item['msg']}")
    return "; ".join(parts)


def parse_project(raw: bytes | str | Mapping[str, Any], path: Path | None = None) -> ProjectRecord:
    """Parse a project file.

    Args:
        raw: File contents (bytes or text) or an already decoded mapping
        path: Source path, recorded on the result and on errors

    Returns:
        ProjectRecord

    Raises:
        ParseError: Invalid TOML or invalid field values
    """
    data = _load_toml(raw, path)
    try:
        return ProjectRecord.model_validate({**data, "source": path})
    except ValidationError as e:
        raise ParseError(f"Invalid project file: {_format_validation_error(e)}", path) from e


def _raw_stanzas(data: dict[str, Any], path: Path | None) -> list[tuple[str, dict[str, Any]]]:
    """Flatten either manifest layout into (name, stanza-table) pairs."""
    if "manifest_format" in data:
        fmt = str(data["manifest_format"])
        major = fmt.split(".", 1)[0]
        if not major.isdigit() or int(major) != SUPPORTED_MANIFEST_MAJOR:
            raise ParseError(f"Unsupported manifest_format '{fmt}'", path)
        packages = data.get("deps", {})
        if not isinstance(packages, dict):
            raise ParseError("Manifest 'deps' must be a table", path)
    else:
        packages = data

    result = []
    for name, entries in packages.items():
        if not isinstance(entries, list) or not all(isinstance(e, dict) for e in entries):
            raise ParseError(f"Manifest entry '{name}' must be an array of tables", path)
        for entry in entries:
            result.append((name, entry))
    return result


def _expand_dep_list(
    name: str, deps: list[Any], uuids_by_name: dict[str, list[Any]], path: Path | None
) -> dict[str, Any]:
    """Turn ``deps = ["A", "B"]`` into a name→uuid table using the manifest's unique names."""
    expanded: dict[str, Any] = {}
    for dep in deps:
        if not isinstance(dep, str):
            raise ParseError(f"Stanza '{name}': dependency names must be strings", path)
        uuids = uuids_by_name.get(dep)
        if not uuids:
            raise ParseError(f"Stanza '{name}': dependency '{dep}' has no stanza in the manifest", path)
        if len(uuids) > 1:
            raise ParseError(
                f"Stanza '{name}': dependency '{dep}' is ambiguous (several stanzas share the name); "
                f"list it as a table of name = uuid",
                path,
            )
        if uuids[0] is None:
            raise ParseError(f"Stanza '{name}': the stanza of dependency '{dep}' has no uuid", path)
        expanded[dep] = uuids[0]
    return expanded


def parse_manifest(raw: bytes | str | Mapping[str, Any], path: Path | None = None) -> ManifestRecord:
    """Parse a manifest file.

    Args:
        raw: File contents (bytes or text) or an already decoded mapping
        path: Source path, recorded on the result and on errors

    Returns:
        ManifestRecord with all stanzas

    Raises:
        ParseError: Invalid TOML, unsupported layout or invalid stanza
    """
    data = _load_toml(raw, path)
    raw_stanzas = _raw_stanzas(data, path)

    # Names with exactly one stanza can be referenced by name alone
    uuids_by_name: dict[str, list[Any]] = {}
    for name, entry in raw_stanzas:
        uuids_by_name.setdefault(name, []).append(entry.get("uuid"))

    stanzas = []
    for name, entry in raw_stanzas:
        entry = dict(entry)
        if isinstance(entry.get("deps"), list):
            entry["deps"] = _expand_dep_list(name, entry["deps"], uuids_by_name, path)
        try:
            stanzas.append(ManifestStanza.model_validate({**entry, "name": name}))
        except ValidationError as e:
            raise ParseError(f"Invalid stanza '{name}': {_format_validation_error(e)}", path) from e

    return ManifestRecord(stanzas=tuple(stanzas), source=path)


def read_project(filesystem: FileSystem, path: Path) -> ProjectRecord:
    """Read and parse a project file through the filesystem capability."""
    return parse_project(filesystem.read_bytes(path), path)


def read_manifest(filesystem: FileSystem, path: Path) -> ManifestRecord:
    """Read and parse a manifest file through the filesystem capability."""
    return parse_manifest(filesystem.read_bytes(path), path)
