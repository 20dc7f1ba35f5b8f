"""Loader configuration.

Two ordered lists drive resolution:

- the load path: environments to stack (``FEDLOAD_LOAD_PATH``)
- the depot path: storage roots for content-addressed packages
  (``FEDLOAD_DEPOT_PATH``)

Path-list variables follow these rules:

- unset → the default list
- set to the empty string → an empty list (not a list holding "")
- otherwise split on ``os.pathsep``; the first empty entry expands in place to
  the default list, so ``"/foo/bar:"`` prepends ``/foo/bar`` to the defaults
  and ``":"`` is the defaults

Priority: environment variables > settings file (``~/.fedload/settings.yaml``)
> built-in defaults.
"""

from __future__ import annotations

import logging
import os
from collections.abc import Mapping
from collections.abc import Sequence
from pathlib import Path
from typing import Any

import yaml
from pydantic import BaseModel
from pydantic import Field
from pydantic import ValidationError

from .errors import ConfigError

logger = logging.getLogger(__name__)

ENV_LOAD_PATH = "FEDLOAD_LOAD_PATH"
ENV_DEPOT_PATH = "FEDLOAD_DEPOT_PATH"
ENV_PROJECT = "FEDLOAD_PROJECT"
ENV_STDLIB = "FEDLOAD_STDLIB"

DEFAULT_LOAD_PATH: tuple[str, ...] = ("@", "@v#.#", "@stdlib")


def default_depot_path() -> list[str]:
    """Built-in depot list: the user depot."""
    return [str(Path.home() / ".fedload")]


def default_settings_file() -> Path:
    return Path.home() / ".fedload" / "settings.yaml"


def parse_path_list(value: str | None, defaults: Sequence[str], separator: str = os.pathsep) -> list[str]:
    """Parse a path-list value.

    Args:
        value: Raw value, or None when unset
        defaults: List used when unset and in place of the first empty entry
        separator: Entry separator

    Returns:
        The expanded list

    Example:
        >>> parse_path_list(None, ["@"])
        ['@']
        >>> parse_path_list("", ["@"])
        []
        >>> parse_path_list("/foo:", ["@"], ":")
        ['/foo', '@']
    """
    if value is None:
        return list(defaults)
    if value == "":
        return []

    result: list[str] = []
    expanded = False
    for entry in value.split(separator):
        if entry:
            result.append(entry)
        elif not expanded:
            result.extend(defaults)
            expanded = True
    return result


class LoaderSettings(BaseModel):
    """Resolved loader configuration, passed explicitly to the stack builder."""

    load_path: list[str] = Field(default_factory=lambda: list(DEFAULT_LOAD_PATH), description="Load path entries")
    depot_path: list[Path] = Field(default_factory=lambda: [Path(p) for p in default_depot_path()])
    project: Path | None = Field(None, description="Active project (directory or project file)")
    stdlib: Path | None = Field(None, description="Package directory providing '@stdlib'")
    source_suffix: str = Field(".py", description="Suffix of entry-point source files")

    @classmethod
    def from_env(
        cls,
        environ: Mapping[str, str] | None = None,
        settings_file: Path | None = None,
    ) -> LoaderSettings:
        """Build settings from environment variables and the settings file.

        Args:
            environ: Environment mapping (default: os.environ)
            settings_file: YAML settings file (default: ~/.fedload/settings.yaml)

        Raises:
            ConfigError: Settings file is malformed or holds invalid values
        """
        environ = os.environ if environ is None else environ
        file_settings = read_settings_file(settings_file or default_settings_file())

        values: dict[str, Any] = {}

        load_path = file_settings.get("load_path")
        if isinstance(load_path, str):
            load_path = parse_path_list(load_path, DEFAULT_LOAD_PATH)
        if ENV_LOAD_PATH in environ:
            load_path = parse_path_list(environ[ENV_LOAD_PATH], DEFAULT_LOAD_PATH)
        if load_path is not None:
            values["load_path"] = load_path

        depot_path = file_settings.get("depot_path")
        if isinstance(depot_path, str):
            depot_path = parse_path_list(depot_path, default_depot_path())
        if ENV_DEPOT_PATH in environ:
            depot_path = parse_path_list(environ[ENV_DEPOT_PATH], default_depot_path())
        if depot_path is not None:
            values["depot_path"] = depot_path

        for key, env_key in (("project", ENV_PROJECT), ("stdlib", ENV_STDLIB)):
            value = environ.get(env_key) or file_settings.get(key)
            if value:
                values[key] = Path(str(value)).expanduser()

        if "source_suffix" in file_settings:
            values["source_suffix"] = file_settings["source_suffix"]

        try:
            settings = cls.model_validate(values)
        except ValidationError as e:
            raise ConfigError(f"Invalid loader settings: {e}") from e

        logger.debug(
            f"[config] load_path={settings.load_path} depot_path={[str(d) for d in settings.depot_path]}"
        )
        return settings


def read_settings_file(path: Path) -> dict[str, Any]:
    """Read the YAML settings file; a missing file yields no settings.

    Raises:
        ConfigError: File is not valid YAML or not a mapping
    """
    if not path.exists():
        return {}
    try:
        with open(path, encoding="utf-8") as f:
            content = yaml.safe_load(f) or {}
    except yaml.YAMLError as e:
        raise ConfigError(f"Failed to parse {path}: {e}") from e
    if not isinstance(content, dict):
        raise ConfigError(f"Settings file {path} must contain a mapping")
    return content
