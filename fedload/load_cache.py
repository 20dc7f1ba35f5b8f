"""Load cache with single-flight semantics.

Each identity moves through ``NOT_LOADED → LOADING → LOADED``. The first
caller to ``mark_loading`` an identity owns the load; everyone else waits for
its outcome. A failed or cancelled load returns the identity to
``NOT_LOADED`` and the failure is delivered to every waiter. A loaded
identity stays loaded for the lifetime of the cache.

The cache is shared between threads. State changes happen under a lock, and
each in-flight load carries a ``concurrent.futures.Future`` so waiters on any
thread or event loop observe the outcome.
"""

from __future__ import annotations

import asyncio
import concurrent.futures
import logging
import threading
from dataclasses import dataclass
from dataclasses import field
from enum import Enum
from typing import Any

from .errors import LoadCacheContractError
from .identity import Identity

logger = logging.getLogger(__name__)


class CacheState(str, Enum):
    """Load state of one identity."""

    NOT_LOADED = "not_loaded"
    LOADING = "loading"
    LOADED = "loaded"


@dataclass
class _Entry:
    state: CacheState
    handle: Any = None
    outcome: concurrent.futures.Future = field(default_factory=concurrent.futures.Future)


class LoadCache:
    """Tracks loaded identities and coordinates concurrent loads."""

    def __init__(self) -> None:
        self._entries: dict[Identity, _Entry] = {}
        self._lock = threading.Lock()

    def get(self, identity: Identity) -> CacheState:
        with self._lock:
            entry = self._entries.get(identity)
            return entry.state if entry is not None else CacheState.NOT_LOADED

    def handle(self, identity: Identity) -> Any:
        """Return the handle of a loaded identity.

        Raises:
            KeyError: identity is not loaded
        """
        with self._lock:
            entry = self._entries.get(identity)
            if entry is None or entry.state is not CacheState.LOADED:
                raise KeyError(identity)
            return entry.handle

    def mark_loading(self, identity: Identity) -> bool:
        """Claim the load of ``identity``.

        Returns:
            True if this call moved the identity from NOT_LOADED to LOADING,
            False if it was already loading or loaded
        """
        with self._lock:
            if identity in self._entries:
                return False
            self._entries[identity] = _Entry(state=CacheState.LOADING)
        logger.debug(f"[load] {identity} -> loading")
        return True

    def complete(self, identity: Identity, handle: Any) -> None:
        """Record a finished load (LOADING → LOADED) and wake waiters."""
        with self._lock:
            entry = self._require_loading(identity, "complete")
            entry.state = CacheState.LOADED
            entry.handle = handle
        entry.outcome.set_result(handle)
        logger.debug(f"[load] {identity} -> loaded")

    def fail(self, identity: Identity, error: BaseException) -> None:
        """Record a failed or cancelled load (LOADING → NOT_LOADED) and wake waiters."""
        with self._lock:
            entry = self._require_loading(identity, "fail")
            del self._entries[identity]
        if isinstance(error, (asyncio.CancelledError, concurrent.futures.CancelledError)):
            entry.outcome.cancel()
        else:
            entry.outcome.set_exception(error)
        logger.debug(f"[load] {identity} -> not loaded ({type(error).__name__})")

    async def wait(self, identity: Identity) -> Any:
        """Wait for the in-flight load of ``identity`` and return its handle.

        Raises:
            Whatever the owning load failed with.
            asyncio.CancelledError: the owning load was cancelled
            LoadCacheContractError: identity is not loading or loaded
        """
        outcome = self._outcome(identity, "wait")
        # A cancelled waiter must not cancel the shared outcome
        return await asyncio.shield(asyncio.wrap_future(outcome))

    def wait_blocking(self, identity: Identity, timeout: float | None = None) -> Any:
        """Block the calling thread until the in-flight load of ``identity`` ends.

        Raises:
            Whatever the owning load failed with.
            concurrent.futures.CancelledError: the owning load was cancelled
            TimeoutError: ``timeout`` elapsed first
            LoadCacheContractError: identity is not loading or loaded
        """
        return self._outcome(identity, "wait_blocking").result(timeout)

    def loaded(self) -> dict[Identity, Any]:
        """Snapshot of loaded identities and their handles."""
        with self._lock:
            return {i: e.handle for i, e in self._entries.items() if e.state is CacheState.LOADED}

    def _outcome(self, identity: Identity, operation: str) -> concurrent.futures.Future:
        with self._lock:
            entry = self._entries.get(identity)
            if entry is None:
                raise LoadCacheContractError(f"{operation}() on {identity}, which is not loading")
            return entry.outcome

    def _require_loading(self, identity: Identity, operation: str) -> _Entry:
        entry = self._entries.get(identity)
        if entry is None or entry.state is not CacheState.LOADING:
            state = entry.state.value if entry is not None else CacheState.NOT_LOADED.value
            raise LoadCacheContractError(f"{operation}() on {identity} in state '{state}', expected 'loading'")
        return entry

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)
