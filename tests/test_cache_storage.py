"""Tests for the DuckDB resource cache storage."""

import pytest

from offline_notes.cache import DuckDBCacheStorage
from offline_notes.models.http import Response


@pytest.fixture
def storage(tmp_path):
    storage = DuckDBCacheStorage(db_path=str(tmp_path / "resources.duckdb"))
    yield storage
    storage.close()


def page(body=b"<html></html>", status=200):
    return Response(
        url="http://notes.test/index.html",
        status=status,
        headers={"Content-Type": "text/html"},
        body=body,
    )


class TestDuckDBCacheStorage:
    """Tests for named caches kept in DuckDB."""

    def test_empty(self, storage):
        assert storage.keys() == []
        assert storage.match("app-shell-v6", "http://notes.test/") is None

    def test_open_registers_name(self, storage):
        storage.open("app-shell-v6")
        assert storage.has("app-shell-v6")
        assert storage.entry_count("app-shell-v6") == 0

    def test_put_and_match(self, storage):
        storage.put("app-shell-v6", "http://notes.test/index.html", page(b"<html>v6</html>"))

        cached = storage.match("app-shell-v6", "http://notes.test/index.html")

        assert cached.from_cache
        assert cached.status == 200
        assert cached.body == b"<html>v6</html>"
        assert cached.headers == {"Content-Type": "text/html"}
        assert storage.keys() == ["app-shell-v6"]

    def test_put_replaces_entry(self, storage):
        url = "http://notes.test/index.html"
        storage.put("runtime-v6", url, page(b"old"))
        storage.put("runtime-v6", url, page(b"new"))

        assert storage.entry_count("runtime-v6") == 1
        assert storage.match("runtime-v6", url).body == b"new"

    def test_caches_are_isolated(self, storage):
        url = "http://notes.test/index.html"
        storage.put("app-shell-v5", url, page(b"v5"))
        storage.put("app-shell-v6", url, page(b"v6"))

        assert storage.match("app-shell-v5", url).body == b"v5"
        assert storage.match("app-shell-v6", url).body == b"v6"

    def test_put_all(self, storage):
        responses = {f"http://notes.test/{i}.js": page(str(i).encode()) for i in range(3)}
        storage.put_all("app-shell-v6", responses)
        assert storage.entry_count("app-shell-v6") == 3

    def test_delete(self, storage):
        storage.put("runtime-v5", "http://notes.test/a", page())

        assert storage.delete("runtime-v5") is True
        assert storage.delete("runtime-v5") is False
        assert storage.keys() == []
        assert storage.match("runtime-v5", "http://notes.test/a") is None

    def test_meta(self, storage):
        assert storage.get_meta("active_version") is None
        storage.set_meta("active_version", "v5")
        storage.set_meta("active_version", "v6")
        assert storage.get_meta("active_version") == "v6"

    def test_persists_across_reopen(self, tmp_path):
        path = str(tmp_path / "resources.duckdb")
        first = DuckDBCacheStorage(db_path=path)
        first.put("app-shell-v6", "http://notes.test/", page(b"root"))
        first.set_meta("active_version", "v6")
        first.close()

        second = DuckDBCacheStorage(db_path=path)
        try:
            assert second.match("app-shell-v6", "http://notes.test/").body == b"root"
            assert second.get_meta("active_version") == "v6"
            assert second.size_bytes() > 0
        finally:
            second.close()
