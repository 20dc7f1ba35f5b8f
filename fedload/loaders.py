"""Loaders turn an entry-point location into a handle.

The resolver accepts any object with a ``load(location)`` method returning a
handle or an awaitable of one. ``SourceFileLoader`` is the default: it
executes a Python source file into a fresh module object.
"""

from __future__ import annotations

import importlib.util
import logging
from collections.abc import Awaitable
from pathlib import Path
from types import ModuleType
from typing import Any
from typing import Protocol

from .errors import LoadError

logger = logging.getLogger(__name__)


class ExternalLoader(Protocol):
    """Loader collaborator invoked at most once per identity."""

    def load(self, location: Path) -> Any | Awaitable[Any]: ...


class SourceFileLoader:
    """Execute an entry-point source file as a new module.

    Modules are not registered in ``sys.modules``: two packages sharing a name
    must be able to coexist.
    """

    def load(self, location: Path) -> ModuleType:
        """Load ``location``.

        Raises:
            LoadError: File missing, not importable, or failed while executing
        """
        location = Path(location)
        if not location.is_file():
            raise LoadError(f"Entry point not found: {location}", location)

        spec = importlib.util.spec_from_file_location(location.stem, location)
        if spec is None or spec.loader is None:
            raise LoadError(f"Cannot create an import spec for {location}", location)

        module = importlib.util.module_from_spec(spec)
        logger.info(f"[load] executing {location}")
        try:
            spec.loader.exec_module(module)
        except Exception as e:
            raise LoadError(f"Failed to execute {location}: {e}", location) from e
        return module

    def __repr__(self) -> str:
        return "SourceFileLoader()"
