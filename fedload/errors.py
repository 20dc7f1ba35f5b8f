"""Error taxonomy for package resolution.

"Not found" is never an exception below the resolver: environments and the
stack return ``None``. The resolver turns a missing identity into
``UnknownImport`` and a missing location into ``NoLoadPath``, because the
remediation differs (declare a dependency vs. install the package).
"""

from __future__ import annotations

from pathlib import Path

from .identity import Identity
from .identity import is_top_level


class FedloadError(Exception):
    """Base class for recoverable fedload errors."""


class ConfigError(FedloadError):
    """Invalid configuration value or settings file."""


class ParseError(FedloadError):
    """Malformed project or manifest record."""

    def __init__(self, message: str, path: Path | str | None = None):
        self.path = Path(path) if path is not None else None
        self.message = message
        if self.path is not None:
            message = f"{self.path}: {message}"
        super().__init__(message)


class ResolutionError(FedloadError):
    """A name or identity could not be resolved."""


class UnknownImport(ResolutionError):
    """No identity is bound to ``name`` in the importing context."""

    def __init__(self, name: str, context: Identity | None):
        self.name = name
        self.context = context
        where = "the main context" if is_top_level(context) else f"package context {context}"
        super().__init__(
            f"Package '{name}' is not a declared dependency of {where}\n\n"
            f"Suggestions:\n"
            f"  - Add '{name}' to the [deps] section of the importing project\n"
            f"  - Check the load path with: fedload path"
        )


class NoLoadPath(ResolutionError):
    """An identity was resolved but no entry point could be found for it."""

    def __init__(self, identity: Identity, name: str):
        self.identity = identity
        self.name = name
        super().__init__(
            f"Package '{name}' [{identity}] is declared but no source was found\n\n"
            f"Suggestions:\n"
            f"  - Install the package into one of the depots\n"
            f"  - Check the depot path with: fedload path"
        )


class LoadError(FedloadError):
    """The loader failed to turn a location into a module."""

    def __init__(self, message: str, location: Path | str | None = None):
        self.location = location
        super().__init__(message)


class LoadCacheContractError(AssertionError):
    """A load cache transition was requested from the wrong state.

    This is an invariant violation inside fedload, not an external condition.
    """
