"""
Tests for resolver module.

Test the two-stage resolution end to end and the at-most-once load guarantee.
"""

import asyncio
import threading
import time
from pathlib import Path

import pytest

from fedload.content_address import slug
from fedload.environments import DirectoryEnvironment
from fedload.environments import ManifestEnvironment
from fedload.errors import LoadError
from fedload.errors import NoLoadPath
from fedload.errors import UnknownImport
from fedload.identity import NIL_IDENTITY
from fedload.identity import PackageId
from fedload.load_cache import CacheState
from fedload.resolver import Resolver
from fedload.stack import EnvironmentStack

from conftest import APP
from conftest import COBRA
from conftest import DINGO
from conftest import PRIV_PRIVATE
from conftest import PRIV_PUBLIC
from conftest import PRIV_PUBLIC_HASH
from conftest import PUB
from conftest import ZEBRA


class RecordingLoader:
    """Loader that records calls and can be held open or made to fail."""

    def __init__(self, error: BaseException | None = None):
        self.calls: list[Path] = []
        self.error = error
        self.release = asyncio.Event()
        self.release.set()

    async def load(self, location: Path):
        self.calls.append(location)
        await self.release.wait()
        if self.error is not None:
            raise self.error
        return {"location": location}


class BlockingLoader:
    """Synchronous loader that holds its caller until released."""

    def __init__(self, error: BaseException | None = None):
        self.calls: list[Path] = []
        self.error = error
        self.entered = threading.Event()
        self.release = threading.Event()

    def load(self, location: Path):
        self.calls.append(location)
        self.entered.set()
        self.release.wait(5)
        if self.error is not None:
            raise self.error
        return {"location": location}


@pytest.fixture
def app_stack(app_tree):
    return EnvironmentStack(
        [ManifestEnvironment(app_tree["project_file"], depots=[app_tree["user_depot"], app_tree["system_depot"]])]
    )


@pytest.fixture
def resolver(app_stack):
    return Resolver(app_stack)


class TestResolve:
    def test_main_context_uses_roots(self, resolver):
        assert resolver.resolve(None, "Priv") == PRIV_PRIVATE
        assert resolver.resolve(None, "Pub") == PUB
        assert resolver.resolve(None, "App") == APP

    def test_nil_context_is_main_context(self, resolver):
        assert resolver.resolve(NIL_IDENTITY, "Priv") == PRIV_PRIVATE

    def test_package_context_uses_graph(self, resolver):
        """Pub's Priv is the public package, not the one App sees."""
        assert resolver.resolve(PUB, "Priv") == PRIV_PUBLIC
        assert resolver.resolve(PUB, "Zebra") == ZEBRA
        assert resolver.resolve(PRIV_PRIVATE, "Pub") == PUB

    def test_transitive_dep_not_visible_from_main(self, resolver):
        with pytest.raises(UnknownImport) as exc_info:
            resolver.resolve(None, "Zebra")

        assert exc_info.value.name == "Zebra"
        assert exc_info.value.context is None
        assert "main context" in str(exc_info.value)

    def test_undeclared_dep_of_package(self, resolver):
        with pytest.raises(UnknownImport) as exc_info:
            resolver.resolve(PRIV_PUBLIC, "Pub")
        assert str(PRIV_PUBLIC) in str(exc_info.value)

    def test_identify(self, resolver):
        package = resolver.identify(PUB, "Priv")
        assert package == PackageId(PRIV_PUBLIC, "Priv")
        assert str(package) == f"Priv [{PRIV_PUBLIC}]"


class TestLocate:
    def test_vendored_package(self, resolver, app_tree):
        location = resolver.locate(PRIV_PRIVATE, "Priv")
        assert location == app_tree["project"] / "deps" / "Priv" / "src" / "Priv.py"

    def test_depot_package(self, resolver, app_tree):
        location = resolver.locate(PRIV_PUBLIC, "Priv")
        expected = app_tree["system_depot"] / "packages" / "Priv" / slug(PRIV_PUBLIC, PRIV_PUBLIC_HASH)
        assert location == expected / "src" / "Priv.py"

    def test_not_installed(self, app_tree):
        stack = EnvironmentStack([ManifestEnvironment(app_tree["project_file"], depots=[app_tree["user_depot"]])])
        with pytest.raises(NoLoadPath) as exc_info:
            Resolver(stack).locate(ZEBRA, "Zebra")

        assert exc_info.value.identity == ZEBRA
        assert exc_info.value.name == "Zebra"

    def test_identity_known_under_other_name(self, resolver):
        with pytest.raises(NoLoadPath):
            resolver.locate(PRIV_PUBLIC, "Pub")


class TestPackageDirectory:
    @pytest.fixture
    def resolver(self, animals):
        return Resolver(EnvironmentStack([DirectoryEnvironment(animals)]))

    def test_package_without_project_sees_roots(self, resolver):
        assert resolver.resolve(NIL_IDENTITY, "Bobcat") == resolver.resolve(None, "Bobcat")
        assert resolver.resolve(NIL_IDENTITY, "Cobra") == COBRA

    def test_project_without_uuid_imports_its_deps(self, resolver):
        bobcat = resolver.resolve(None, "Bobcat")
        assert resolver.resolve(bobcat, "Cobra") == COBRA
        assert resolver.resolve(bobcat, "Dingo") == DINGO

    def test_package_cannot_import_undeclared(self, resolver):
        with pytest.raises(UnknownImport):
            resolver.resolve(COBRA, "Bobcat")
        with pytest.raises(UnknownImport):
            resolver.resolve(DINGO, "Cobra")

    def test_locate(self, resolver, animals):
        assert resolver.locate(COBRA, "Cobra") == animals / "Cobra" / "src" / "Cobra.py"


class TestLoad:
    @pytest.mark.asyncio
    async def test_loads_source_files(self, resolver):
        """Same-named packages load as distinct modules."""
        private = await resolver.load(None, "Priv")
        public = await resolver.load(PUB, "Priv")

        assert private.KIND == "private"
        assert public.KIND == "public"
        assert private is not public

    @pytest.mark.asyncio
    async def test_same_identity_loaded_once(self, app_stack):
        loader = RecordingLoader()
        resolver = Resolver(app_stack, loader=loader)

        first = await resolver.load(PRIV_PRIVATE, "Pub")
        second = await resolver.load(None, "Pub")

        assert first is second
        assert len(loader.calls) == 1
        assert resolver.cache.get(PUB) is CacheState.LOADED

    @pytest.mark.asyncio
    async def test_concurrent_loads_share_one_invocation(self, app_stack):
        loader = RecordingLoader()
        loader.release.clear()
        resolver = Resolver(app_stack, loader=loader)

        tasks = [asyncio.create_task(resolver.load(None, "Pub")) for _ in range(5)]
        tasks.append(asyncio.create_task(resolver.load(PRIV_PRIVATE, "Pub")))
        await asyncio.sleep(0)
        assert resolver.cache.get(PUB) is CacheState.LOADING

        loader.release.set()
        handles = await asyncio.gather(*tasks)

        assert len(loader.calls) == 1
        assert all(h is handles[0] for h in handles)

    @pytest.mark.asyncio
    async def test_failure_reaches_waiters_and_allows_retry(self, app_stack):
        loader = RecordingLoader(error=RuntimeError("broken package"))
        loader.release.clear()
        resolver = Resolver(app_stack, loader=loader)

        tasks = [asyncio.create_task(resolver.load(None, "Pub")) for _ in range(3)]
        await asyncio.sleep(0)
        loader.release.set()
        results = await asyncio.gather(*tasks, return_exceptions=True)

        assert all(isinstance(r, RuntimeError) and str(r) == "broken package" for r in results)
        assert resolver.cache.get(PUB) is CacheState.NOT_LOADED

        loader.error = None
        handle = await resolver.load(None, "Pub")
        assert handle["location"].name == "Pub.py"
        assert len(loader.calls) == 2

    @pytest.mark.asyncio
    async def test_missing_location_resets_entry(self, app_tree):
        stack = EnvironmentStack([ManifestEnvironment(app_tree["project_file"], depots=[])])
        resolver = Resolver(stack, loader=RecordingLoader())

        with pytest.raises(NoLoadPath):
            await resolver.load(None, "Pub")
        assert resolver.cache.get(PUB) is CacheState.NOT_LOADED

    @pytest.mark.asyncio
    async def test_unknown_import_leaves_cache_untouched(self, resolver):
        with pytest.raises(UnknownImport):
            await resolver.load(None, "Zebra")
        assert len(resolver.cache) == 0

    @pytest.mark.asyncio
    async def test_loader_error_propagates_unchanged(self, app_tree, resolver):
        (app_tree["project"] / "deps" / "Priv" / "src" / "Priv.py").write_text("raise ValueError('bad')\n")

        with pytest.raises(LoadError, match="bad"):
            await resolver.load(None, "Priv")
        assert resolver.cache.get(PRIV_PRIVATE) is CacheState.NOT_LOADED

    @pytest.mark.asyncio
    async def test_cancelled_load_resets_entry(self, app_stack):
        loader = RecordingLoader()
        loader.release.clear()
        resolver = Resolver(app_stack, loader=loader)

        owner = asyncio.create_task(resolver.load(None, "Pub"))
        await asyncio.sleep(0)
        owner.cancel()
        with pytest.raises(asyncio.CancelledError):
            await owner

        assert resolver.cache.get(PUB) is CacheState.NOT_LOADED

    def test_load_sync(self, resolver):
        module = resolver.load_sync(None, "Pub")
        assert module.NAME == "Pub"


class TestLoadSyncThreads:
    @staticmethod
    def _start(resolver, outcomes, key):
        def run():
            try:
                outcomes[key] = resolver.load_sync(None, "Pub")
            except Exception as e:
                outcomes[key] = e

        thread = threading.Thread(target=run, daemon=True)
        thread.start()
        return thread

    def test_threads_share_one_invocation(self, app_stack):
        loader = BlockingLoader()
        resolver = Resolver(app_stack, loader=loader)
        outcomes = {}

        owner = self._start(resolver, outcomes, "owner")
        assert loader.entered.wait(5)
        waiter = self._start(resolver, outcomes, "waiter")
        time.sleep(0.1)
        assert resolver.cache.get(PUB) is CacheState.LOADING

        loader.release.set()
        owner.join(5)
        waiter.join(5)

        assert not owner.is_alive()
        assert not waiter.is_alive()
        assert len(loader.calls) == 1
        assert outcomes["owner"] is outcomes["waiter"]

    def test_failure_reaches_blocked_thread(self, app_stack):
        loader = BlockingLoader(error=RuntimeError("broken package"))
        resolver = Resolver(app_stack, loader=loader)
        outcomes = {}

        owner = self._start(resolver, outcomes, "owner")
        assert loader.entered.wait(5)
        waiter = self._start(resolver, outcomes, "waiter")
        time.sleep(0.1)

        loader.release.set()
        owner.join(5)
        waiter.join(5)

        assert not waiter.is_alive()
        assert all(isinstance(o, RuntimeError) and str(o) == "broken package" for o in outcomes.values())
        assert len(outcomes) == 2
        assert resolver.cache.get(PUB) is CacheState.NOT_LOADED

    @pytest.mark.asyncio
    async def test_thread_waits_for_task_on_event_loop(self, app_stack):
        loader = RecordingLoader()
        loader.release.clear()
        resolver = Resolver(app_stack, loader=loader)

        owner = asyncio.create_task(resolver.load(None, "Pub"))
        await asyncio.sleep(0)
        blocked = asyncio.create_task(asyncio.to_thread(resolver.load_sync, None, "Pub"))
        await asyncio.sleep(0.1)

        loader.release.set()
        handles = await asyncio.wait_for(asyncio.gather(owner, blocked), timeout=5)

        assert handles[0] is handles[1]
        assert len(loader.calls) == 1

    def test_load_sync_drives_async_loader(self, app_stack):
        loader = RecordingLoader()
        resolver = Resolver(app_stack, loader=loader)

        handle = resolver.load_sync(None, "Pub")

        assert handle["location"].name == "Pub.py"
        assert resolver.cache.get(PUB) is CacheState.LOADED
