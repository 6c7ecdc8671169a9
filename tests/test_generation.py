"""Tests for cache generations and the install/activate lifecycle."""

import pytest

from conftest import BASE_URL, SHELL_ASSETS, make_offline, shell_bodies
from fakes import FakeFetcher
from offline_notes.cache import GenerationState, Partition, partition_names
from offline_notes.cache.generation import CacheGeneration
from offline_notes.errors import CacheInstallFailed
from offline_notes.models.http import Request


class TestPartitionNames:
    def test_names_embed_version(self):
        names = partition_names("v6")
        assert names[Partition.SHELL] == "app-shell-v6"
        assert names[Partition.RUNTIME] == "runtime-v6"


class TestCacheGeneration:
    """Tests for a single generation."""

    def make_generation(self, storage, fetcher, version="v6"):
        return CacheGeneration(
            version=version,
            storage=storage,
            fetcher=fetcher,
            base_url=BASE_URL,
            shell_assets=SHELL_ASSETS,
        )

    def test_resolve_relative_paths(self, cache_storage, fetcher):
        generation = self.make_generation(cache_storage, fetcher)
        assert generation.resolve("./css/style.css") == BASE_URL + "css/style.css"
        assert generation.resolve("./") == BASE_URL
        assert generation.resolve("./index.html#top") == BASE_URL + "index.html"

    def test_populate_stores_every_asset(self, cache_storage, fetcher):
        generation = self.make_generation(cache_storage, fetcher)

        stored = generation.populate_shell()

        assert stored == len(SHELL_ASSETS)
        assert generation.state == GenerationState.INSTALLED
        assert cache_storage.entry_count("app-shell-v6") == len(SHELL_ASSETS)

    def test_unreachable_asset_fails_whole_install(self, cache_storage, fetcher):
        fetcher.offline_urls.add(BASE_URL + "js/app.js")
        generation = self.make_generation(cache_storage, fetcher)

        with pytest.raises(CacheInstallFailed) as exc_info:
            generation.populate_shell()

        assert exc_info.value.failed_paths == ["./js/app.js"]
        assert generation.state == GenerationState.FAILED
        assert cache_storage.entry_count("app-shell-v6") == 0

    def test_error_status_fails_install(self, cache_storage, fetcher):
        fetcher.statuses[BASE_URL + "css/style.css"] = 500
        generation = self.make_generation(cache_storage, fetcher)

        with pytest.raises(CacheInstallFailed) as exc_info:
            generation.populate_shell()

        assert exc_info.value.failed_paths == ["./css/style.css"]

    def test_storage_failure_fails_install(self, cache_storage, fetcher):
        cache_storage.fail_writes = True
        generation = self.make_generation(cache_storage, fetcher)

        with pytest.raises(CacheInstallFailed):
            generation.populate_shell()
        assert generation.state == GenerationState.FAILED

    def test_promote_deletes_other_caches(self, cache_storage, fetcher):
        for name in ("app-shell-v5", "runtime-v5", "unrelated"):
            cache_storage.open(name)
        generation = self.make_generation(cache_storage, fetcher)
        generation.populate_shell()

        deleted = generation.promote()

        assert sorted(deleted) == ["app-shell-v5", "runtime-v5", "unrelated"]
        assert cache_storage.keys() == ["app-shell-v6", "runtime-v6"]
        assert generation.state == GenerationState.ACTIVE

    def test_lookup_ignores_fragment(self, cache_storage, fetcher):
        generation = self.make_generation(cache_storage, fetcher)
        generation.populate_shell()

        cached = generation.lookup(Partition.SHELL, Request(url=BASE_URL + "index.html#section"))

        assert cached is not None
        assert cached.from_cache


class TestOfflineCache:
    """Tests for the install/activate lifecycle across versions."""

    def test_nothing_serves_before_activation(self, offline):
        assert offline.active_version() is None
        assert offline.serving_generation() is None

    def test_install_and_activate(self, offline, cache_storage):
        offline.install_and_activate()

        assert offline.active_version() == "v6"
        assert offline.declared.state == GenerationState.ACTIVE
        assert offline.serving_generation() is offline.declared
        assert cache_storage.keys() == ["app-shell-v6", "runtime-v6"]

    def test_activate_without_install_raises(self, offline):
        with pytest.raises(CacheInstallFailed):
            offline.activate()
        assert offline.active_version() is None

    def test_upgrade_leaves_single_shell_namespace(self, cache_storage):
        old = make_offline(cache_storage, FakeFetcher(shell_bodies("v5")), version="v5")
        old.install_and_activate()
        old.serving_generation().store(
            Partition.RUNTIME,
            Request(url=BASE_URL + "api/notes.json"),
            old.fetcher.fetch(Request(url=BASE_URL + "index.html")),
        )

        new = make_offline(cache_storage, FakeFetcher(shell_bodies("v6")), version="v6")
        deleted = new.install_and_activate()

        assert sorted(deleted) == ["app-shell-v5", "runtime-v5"]
        shells = [name for name in cache_storage.keys() if name.startswith("app-shell-")]
        assert shells == ["app-shell-v6"]
        assert not any(name.endswith("-v5") for name in cache_storage.keys())

        page = new.serving_generation().lookup(Partition.SHELL, Request(url=BASE_URL + "index.html"))
        assert page.body == b"<html>v6</html>"

    def test_upgrade_supersedes_then_deletes_previous(self, cache_storage):
        old = make_offline(cache_storage, FakeFetcher(shell_bodies("v5")), version="v5")
        old.install_and_activate()
        new = make_offline(cache_storage, FakeFetcher(shell_bodies("v6")), version="v6")
        new.install()

        states_during_cleanup = []
        delete = cache_storage.delete

        def recording_delete(name):
            states_during_cleanup.append(new.superseded.state)
            return delete(name)

        cache_storage.delete = recording_delete
        new.activate()

        assert states_during_cleanup == [GenerationState.SUPERSEDED] * 2
        assert new.superseded.version == "v5"
        assert new.superseded.state == GenerationState.DELETED

    def test_first_activation_supersedes_nothing(self, offline):
        offline.install_and_activate()
        assert offline.superseded is None

    def test_failed_upgrade_keeps_previous_generation(self, cache_storage):
        old = make_offline(cache_storage, FakeFetcher(shell_bodies("v5")), version="v5")
        old.install_and_activate()

        broken_fetcher = FakeFetcher(shell_bodies("v6"))
        broken_fetcher.offline_urls.add(BASE_URL + "css/style.css")
        new = make_offline(cache_storage, broken_fetcher, version="v6")

        with pytest.raises(CacheInstallFailed):
            new.install_and_activate()

        assert new.declared.state == GenerationState.FAILED
        assert new.active_version() == "v5"
        serving = new.serving_generation()
        assert serving.version == "v5"
        page = serving.lookup(Partition.SHELL, Request(url=BASE_URL + "index.html"))
        assert page.body == b"<html>v5</html>"

    def test_restart_recognises_active_generation(self, cache_storage, fetcher):
        make_offline(cache_storage, fetcher).install_and_activate()

        restarted = make_offline(cache_storage, fetcher)

        assert restarted.declared.state == GenerationState.ACTIVE
        assert restarted.activate() == []

    def test_status(self, active_offline):
        status = active_offline.status()

        assert status["declared_version"] == "v6"
        assert status["active_version"] == "v6"
        assert status["shell_cached"] == len(SHELL_ASSETS)
        assert status["caches"] == {"app-shell-v6": len(SHELL_ASSETS), "runtime-v6": 0}

    def test_bootstrap_url(self, offline):
        assert offline.bootstrap_url == BASE_URL + "index.html"
