"""Tests for configuration loading."""

import pytest

from offline_notes.config import Config, ConfigManager, DEFAULT_SHELL_ASSETS


class TestConfig:
    def test_defaults(self):
        config = Config()

        assert config.store.version == 2
        assert config.offline.cache_version == "v6"
        assert config.offline.navigation_strategy == "network-first"
        assert config.offline.shell_assets == DEFAULT_SHELL_ASSETS
        assert config.location.timeout_seconds == 10.0
        assert config.store.db_path.endswith("notes.duckdb")

    def test_base_url_gets_trailing_slash(self):
        config = Config(offline={"base_url": "https://example.org/app"})
        assert config.offline.base_url == "https://example.org/app/"

    def test_user_path_is_expanded(self):
        config = Config(store={"db_path": "~/notes.duckdb"})
        assert not config.store.db_path.startswith("~")

    @pytest.mark.parametrize(
        "section",
        [
            {"store": {"version": 1}},
            {"offline": {"navigation_strategy": "network-only"}},
            {"offline": {"cache_version": "v 6"}},
        ],
    )
    def test_invalid_values_rejected(self, section):
        with pytest.raises(ValueError):
            Config(**section)


class TestConfigManager:
    """Tests for TOML loading."""

    def test_missing_file_gives_defaults(self, tmp_path):
        manager = ConfigManager(str(tmp_path / "absent.toml"))
        assert manager.config == Config()

    def test_load_toml(self, tmp_path):
        path = tmp_path / "config.toml"
        path.write_text(
            """
[store]
db_path = "/data/notes.duckdb"
version = 3

[offline]
cache_version = "v7"
navigation_strategy = "cache-first"
shell_assets = ["./", "./index.html"]
"""
        )

        config = ConfigManager(str(path)).config

        assert config.store.db_path == "/data/notes.duckdb"
        assert config.store.version == 3
        assert config.offline.cache_version == "v7"
        assert config.offline.navigation_strategy == "cache-first"
        assert config.offline.shell_assets == ["./", "./index.html"]

    def test_invalid_file_raises(self, tmp_path):
        path = tmp_path / "config.toml"
        path.write_text("[store\nversion = ")

        with pytest.raises(ValueError, match="Invalid configuration file"):
            ConfigManager(str(path)).config

    def test_reload(self, tmp_path):
        path = tmp_path / "config.toml"
        path.write_text('[offline]\ncache_version = "v6"\n')
        manager = ConfigManager(str(path))
        assert manager.config.offline.cache_version == "v6"

        path.write_text('[offline]\ncache_version = "v7"\n')
        manager.reload()

        assert manager.config.offline.cache_version == "v7"
