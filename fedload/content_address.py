"""Content addressing for depot-installed packages.

A package installed from a content hash lives at
``<depot>/packages/<name>/<slug>``, where the slug is a short string derived
from the package identity and its content hash. Two versions of the same
package (or two packages sharing a name) therefore never collide on disk.
"""

from __future__ import annotations

import hashlib
import string
import zlib
from typing import Callable

from .identity import Identity

SLUG_CHARS = string.ascii_uppercase + string.ascii_lowercase + string.digits
SLUG_LENGTH = 5

HashFunction = Callable[[bytes], str]


def _hash_bytes(content_hash: str | bytes) -> bytes:
    """Normalize a content hash to raw bytes (hex text is decoded)."""
    if isinstance(content_hash, bytes):
        return content_hash
    text = content_hash.strip()
    try:
        return bytes.fromhex(text)
    except ValueError:
        return text.encode("utf-8")


def slug(identity: Identity, content_hash: str | bytes, length: int = SLUG_LENGTH) -> str:
    """Compute the storage slug for an (identity, content hash) pair.

    The checksum of the identity bytes is chained into the checksum of the hash
    bytes and rendered in base 62, so the result only contains ``[A-Za-z0-9]``.

    Args:
        identity: Package identity
        content_hash: Content hash as hex text or raw bytes
        length: Number of slug characters

    Returns:
        Filesystem-safe slug string
    """
    crc = zlib.crc32(identity.bytes)
    crc = zlib.crc32(_hash_bytes(content_hash), crc)

    base = len(SLUG_CHARS)
    chars = []
    for _ in range(length):
        crc, digit = divmod(crc, base)
        chars.append(SLUG_CHARS[digit])
    return "".join(chars)


def tree_hash(data: bytes) -> str:
    """Default hash function for raw content: SHA-1 hex digest."""
    return hashlib.sha1(data).hexdigest()


def content_slug(
    identity: Identity,
    data: bytes,
    hash_function: HashFunction = tree_hash,
    length: int = SLUG_LENGTH,
) -> str:
    """Slug for raw package content, hashed with ``hash_function`` first."""
    return slug(identity, hash_function(data), length)
