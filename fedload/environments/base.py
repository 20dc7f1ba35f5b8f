"""Environment protocol.

Every environment conceptually defines three maps:

- roots: name → identity, for imports from the main context
- graph: context identity → name → identity, for imports from a package
- paths: (identity, name) → entry-point location

None of them is built up front. Each map is exposed as a lookup that computes
only the key it is asked for; ``None`` means the key is absent.
"""

from __future__ import annotations

from abc import ABC
from abc import abstractmethod
from collections.abc import Iterator
from pathlib import Path

from ..identity import Identity


class Environment(ABC):
    """One layer of an environment stack."""

    @abstractmethod
    def root(self, name: str) -> Identity | None:
        """Look up ``roots[name]``."""

    @abstractmethod
    def graph(self, context: Identity, name: str) -> Identity | None:
        """Look up ``graph[context][name]``."""

    @abstractmethod
    def path(self, identity: Identity, name: str) -> Path | None:
        """Look up ``paths[identity, name]``."""

    @abstractmethod
    def iter_roots(self) -> Iterator[tuple[str, Identity]]:
        """Enumerate the roots map (inspection only, not used for resolution)."""

    @property
    def kind(self) -> str:
        return type(self).__name__
