"""Shared fixtures."""

import pytest

from fakes import FakeFetcher, InMemoryNoteStore, MemoryCacheStorage
from offline_notes.cache import FetchRouter, OfflineCache
from offline_notes.store import DuckDBNoteStore

BASE_URL = "http://notes.test/"
SHELL_ASSETS = ["./", "./index.html", "./css/style.css", "./js/app.js"]


def shell_bodies(tag: str = "v6"):
    """Canned bodies for every shell asset, tagged so generations differ."""
    return {
        BASE_URL: f"<html>{tag}</html>".encode(),
        BASE_URL + "index.html": f"<html>{tag}</html>".encode(),
        BASE_URL + "css/style.css": f"body{{}}/*{tag}*/".encode(),
        BASE_URL + "js/app.js": f"// {tag}".encode(),
    }


class FakeClock:
    """Millisecond clock that only moves when told to."""

    def __init__(self, start: int = 1_700_000_000_000):
        self.now = start

    def __call__(self) -> int:
        return self.now

    def advance(self, ms: int) -> None:
        self.now += ms


@pytest.fixture
def memory_store():
    return InMemoryNoteStore()


@pytest.fixture
def duckdb_store(tmp_path):
    store = DuckDBNoteStore(db_path=str(tmp_path / "notes.duckdb"))
    yield store
    store.close()


@pytest.fixture(params=["memory", "duckdb"])
def note_store(request, tmp_path):
    """Every NoteStore implementation, so behaviour is checked on each."""
    if request.param == "memory":
        yield InMemoryNoteStore()
        return
    store = DuckDBNoteStore(db_path=str(tmp_path / "notes.duckdb"))
    yield store
    store.close()


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def cache_storage():
    return MemoryCacheStorage()


@pytest.fixture
def fetcher():
    return FakeFetcher(shell_bodies("v6"))


def make_offline(storage, fetcher, version="v6", **kwargs):
    return OfflineCache(
        storage=storage,
        fetcher=fetcher,
        version=version,
        base_url=BASE_URL,
        shell_assets=SHELL_ASSETS,
        **kwargs,
    )


@pytest.fixture
def offline(cache_storage, fetcher):
    return make_offline(cache_storage, fetcher)


@pytest.fixture
def active_offline(offline):
    """Coordinator whose declared generation is installed and active."""
    offline.install_and_activate()
    return offline


@pytest.fixture
def router(active_offline):
    router = FetchRouter(active_offline)
    yield router
    router.close()
