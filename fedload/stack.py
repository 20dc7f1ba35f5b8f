"""Environment stacks.

A stack overlays environments as if their maps were merged with earlier
environments winning on key collisions:

    roots = reduce(merge, reversed([roots1, roots2, ...]))

The merge is never performed. Each lookup walks the members in order and
returns the first non-absent value for that one key, so the primary (first)
environment is always reproduced intact and later environments only fill
gaps. A later environment whose dependencies get shadowed by an earlier one
may end up with incompatible versions; that is accepted.
"""

from __future__ import annotations

from collections.abc import Iterable
from collections.abc import Iterator
from pathlib import Path

from .environments import Environment
from .identity import Identity


class EnvironmentStack:
    """Immutable ordered overlay of environments (first wins)."""

    def __init__(self, environments: Iterable[Environment]):
        self._environments: tuple[Environment, ...] = tuple(environments)

    @property
    def environments(self) -> tuple[Environment, ...]:
        return self._environments

    def __len__(self) -> int:
        return len(self._environments)

    def __iter__(self) -> Iterator[Environment]:
        return iter(self._environments)

    def resolve_root(self, name: str) -> Identity | None:
        """First ``roots[name]`` in stack order."""
        for env in self._environments:
            identity = env.root(name)
            if identity is not None:
                return identity
        return None

    def resolve_graph(self, context: Identity, name: str) -> Identity | None:
        """First ``graph[context][name]`` in stack order."""
        for env in self._environments:
            identity = env.graph(context, name)
            if identity is not None:
                return identity
        return None

    def resolve_path(self, identity: Identity, name: str) -> Path | None:
        """First ``paths[identity, name]`` in stack order."""
        for env in self._environments:
            location = env.path(identity, name)
            if location is not None:
                return location
        return None

    def iter_roots(self) -> Iterator[tuple[str, Identity, Environment]]:
        """Enumerate visible roots with the environment that provides each."""
        seen: set[str] = set()
        for env in self._environments:
            for name, identity in env.iter_roots():
                if name in seen:
                    continue
                seen.add(name)
                yield name, identity, env

    def __repr__(self) -> str:
        return f"EnvironmentStack({len(self._environments)} environments)"
