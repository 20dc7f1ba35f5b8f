"""Resolver - the two-stage meaning of ``import X``.

1. **What** is ``X``? From the main context (or a package without a project
   file) the stack's roots map answers; from a package with identity
   ``context`` the stack's graph map answers. The result is an identity.
2. **Where** is it? The stack's paths map gives the entry point for the
   (identity, name) pair.

``load`` adds the at-most-once guarantee: one loader invocation per identity,
no matter how many contexts or names lead to it, or how many tasks and threads
ask at the same time.
"""

from __future__ import annotations

import asyncio
import inspect
import logging
from pathlib import Path
from typing import Any
from typing import Awaitable

from .errors import NoLoadPath
from .errors import UnknownImport
from .identity import Identity
from .identity import PackageId
from .identity import is_top_level
from .load_cache import CacheState
from .load_cache import LoadCache
from .loaders import ExternalLoader
from .loaders import SourceFileLoader
from .stack import EnvironmentStack

logger = logging.getLogger(__name__)


async def _awaited(awaitable: Awaitable[Any]) -> Any:
    return await awaitable


class Resolver:
    """Resolve, locate and load packages through an environment stack."""

    def __init__(
        self,
        stack: EnvironmentStack,
        loader: ExternalLoader | None = None,
        cache: LoadCache | None = None,
    ):
        """Initialize resolver.

        Args:
            stack: Environment stack to resolve against
            loader: Loader collaborator (default: SourceFileLoader)
            cache: Load cache (default: a new, empty cache)
        """
        self.stack = stack
        self.loader = loader or SourceFileLoader()
        self.cache = cache or LoadCache()

    def resolve(self, context: Identity | None, name: str) -> Identity:
        """Resolve ``name`` as imported from ``context``.

        Args:
            context: Identity of the importing package; None (or the nil
                identity) for the main context
            name: Imported name

        Raises:
            UnknownImport: name is not visible from context
        """
        if is_top_level(context):
            identity = self.stack.resolve_root(name)
        else:
            assert context is not None
            identity = self.stack.resolve_graph(context, name)

        if identity is None:
            logger.debug(f"[resolve] {name} from {context or 'main'} -> not found")
            raise UnknownImport(name, context)

        logger.debug(f"[resolve] {name} from {context or 'main'} -> {identity}")
        return identity

    def identify(self, context: Identity | None, name: str) -> PackageId:
        """Resolve and pair the identity with its name."""
        return PackageId(self.resolve(context, name), name)

    def locate(self, identity: Identity, name: str) -> Path:
        """Find the entry point of package ``name`` with ``identity``.

        Raises:
            NoLoadPath: no environment provides a location
        """
        location = self.stack.resolve_path(identity, name)
        if location is None:
            logger.debug(f"[locate] {name} [{identity}] -> no path")
            raise NoLoadPath(identity, name)
        logger.debug(f"[locate] {name} [{identity}] -> {location}")
        return location

    async def load(self, context: Identity | None, name: str) -> Any:
        """Resolve and load ``name`` as imported from ``context``.

        Returns the same handle for every request that resolves to the same
        identity. Concurrent requests share a single loader invocation.

        Raises:
            UnknownImport: name is not visible from context
            NoLoadPath: the identity has no location
            Exception: whatever the loader raised, unchanged
        """
        identity = self.resolve(context, name)

        if self.cache.get(identity) is CacheState.LOADED:
            return self.cache.handle(identity)

        if not self.cache.mark_loading(identity):
            logger.debug(f"[load] {name} [{identity}] already in flight, waiting")
            return await self.cache.wait(identity)

        try:
            location = self.locate(identity, name)
            handle = self.loader.load(location)
            if inspect.isawaitable(handle):
                handle = await handle
        except BaseException as e:
            self.cache.fail(identity, e)
            raise

        self.cache.complete(identity, handle)
        logger.info(f"[load] {name} [{identity}] loaded from {location}")
        return handle

    def load_sync(self, context: Identity | None, name: str) -> Any:
        """Blocking ``load`` for callers without a running event loop.

        Safe to call from several threads at once: a thread that finds the
        identity in flight blocks until the owning load (on any thread or
        event loop) completes or fails. An awaitable returned by the loader
        is driven to completion with ``asyncio.run``.
        """
        identity = self.resolve(context, name)

        if self.cache.get(identity) is CacheState.LOADED:
            return self.cache.handle(identity)

        if not self.cache.mark_loading(identity):
            logger.debug(f"[load] {name} [{identity}] already in flight, blocking")
            return self.cache.wait_blocking(identity)

        try:
            location = self.locate(identity, name)
            handle = self.loader.load(location)
            if inspect.isawaitable(handle):
                handle = asyncio.run(_awaited(handle))
        except BaseException as e:
            self.cache.fail(identity, e)
            raise

        self.cache.complete(identity, handle)
        logger.info(f"[load] {name} [{identity}] loaded from {location}")
        return handle

    def __repr__(self) -> str:
        return f"Resolver({self.stack!r}, loader={self.loader!r})"
