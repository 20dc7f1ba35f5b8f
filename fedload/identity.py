"""Package identities.

An identity is a 128-bit UUID naming one logical package regardless of the
name it is imported under. Two identity namespaces share the UUID type:

- declared identities, read from a project file's ``uuid`` entry
- path-derived identities, minted for project files that declare no ``uuid``

Path-derived identities are UUIDv5 values in a dedicated namespace, so they
cannot be produced by anyone writing a ``uuid`` entry by hand.
"""

from __future__ import annotations

import uuid
from dataclasses import dataclass

Identity = uuid.UUID

NIL_IDENTITY: Identity = uuid.UUID(int=0)

# Namespace for identities derived from canonical project-file paths
PATH_IDENTITY_NAMESPACE = uuid.UUID("2c4b9f7e-6d1a-5e3b-9a8f-0f1d2e3c4b5a")


def parse_identity(value: str | Identity) -> Identity:
    """Parse a printable identity.

    Raises:
        ValueError: value is not a valid UUID
    """
    if isinstance(value, uuid.UUID):
        return value
    return uuid.UUID(str(value).strip())


def path_identity(canonical_path: str) -> Identity:
    """Derive a stable pseudo-identity from a canonical project-file path."""
    return uuid.uuid5(PATH_IDENTITY_NAMESPACE, canonical_path)


def is_top_level(context: Identity | None) -> bool:
    """True for the main context and for packages without a project file."""
    return context is None or context == NIL_IDENTITY


@dataclass(frozen=True)
class PackageId:
    """A resolved (identity, name) pair."""

    identity: Identity
    name: str

    def __str__(self) -> str:
        return f"{self.name} [{self.identity}]"
