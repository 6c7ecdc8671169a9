"""Configuration management for Offline Notes."""

import os
import toml
from typing import List, Optional

from pydantic import BaseModel, Field, field_validator


def data_path(name: str) -> str:
    base = os.getenv("XDG_DATA_HOME") or "~/.local/share"
    return os.path.join(base, "offline-notes", name)


def cache_path(name: str) -> str:
    base = os.getenv("XDG_CACHE_HOME") or "~/.cache"
    return os.path.join(base, "offline-notes", name)


# Files that must be cacheable for the app to boot offline
DEFAULT_SHELL_ASSETS = [
    "./",
    "./index.html",
    "./css/style.css",
    "./manifest.json",
    "./js/app.js",
    "./js/db.js",
    "./js/auth.js",
    "./js/speech.js",
    "./sw.js",
    "./assets/icon-192.png",
]


class StoreConfig(BaseModel):
    """Configuration for the note record store."""

    db_path: str = Field(
        default=data_path("notes.duckdb"),
        description="Path to DuckDB note database file",
    )
    version: int = Field(
        default=2,
        ge=2,
        description="Declared schema version; bumping it triggers migration",
    )

    @field_validator("db_path")
    @classmethod
    def expand_db_path(cls, v):
        """Expand user paths and environment variables."""
        return os.path.expanduser(os.path.expandvars(v))


class OfflineConfig(BaseModel):
    """Configuration for the offline resource cache."""

    db_path: str = Field(
        default=cache_path("resources.duckdb"),
        description="Path to DuckDB resource cache file",
    )
    cache_version: str = Field(
        default="v6",
        pattern="^[A-Za-z0-9._-]+$",
        description="Version tag embedded in cache namespace names",
    )
    base_url: str = Field(
        default="http://localhost:8000/",
        description="URL the app is served from; shell paths resolve against it",
    )
    shell_assets: List[str] = Field(default_factory=lambda: list(DEFAULT_SHELL_ASSETS))
    bootstrap_page: str = Field(
        default="./index.html",
        description="Shell entry served for navigations when offline",
    )
    navigation_strategy: str = Field(
        default="network-first",
        pattern="^(network-first|cache-first)$",
        description="Policy for full-page loads",
    )
    fetch_timeout_seconds: float = Field(default=10.0, gt=0, le=120)
    revalidate_workers: int = Field(
        default=2,
        ge=1,
        le=16,
        description="Threads used for stale-while-revalidate refreshes",
    )

    @field_validator("db_path")
    @classmethod
    def expand_db_path(cls, v):
        """Expand user paths and environment variables."""
        return os.path.expanduser(os.path.expandvars(v))

    @field_validator("base_url")
    @classmethod
    def ensure_trailing_slash(cls, v):
        """Relative shell paths resolve against a directory URL."""
        return v if v.endswith("/") else v + "/"


class LocationConfig(BaseModel):
    """Configuration for location lookups."""

    timeout_seconds: float = Field(default=10.0, gt=0, le=60)
    map_url: str = Field(default="https://www.google.com/maps?q={lat},{lon}")


class UIConfig(BaseModel):
    """Configuration for CLI appearance."""

    table_style: str = Field(default="rich", pattern="^(rich|simple|minimal)$")
    colors: bool = Field(default=True)
    preview_length: int = Field(default=60, ge=10, le=500)


class Config(BaseModel):
    """Main configuration class."""

    store: StoreConfig = Field(default_factory=StoreConfig)
    offline: OfflineConfig = Field(default_factory=OfflineConfig)
    location: LocationConfig = Field(default_factory=LocationConfig)
    ui: UIConfig = Field(default_factory=UIConfig)


class ConfigManager:
    """Manages configuration loading and access."""

    def __init__(self, config_path: Optional[str] = None):
        """Initialize configuration manager.

        Args:
            config_path: Path to configuration file. If None, searches standard locations.
        """
        self.config_path = config_path or self._find_config_file()
        self._config: Optional[Config] = None

    def _find_config_file(self) -> str:
        """Find configuration file in standard locations."""
        search_paths = [
            os.path.expanduser("~/.config/offline-notes/config.toml"),
            "config.toml",
            "offline_notes.toml",
        ]

        for path in search_paths:
            if os.path.exists(path):
                return path

        # Return default path even if it doesn't exist
        return search_paths[0]

    @property
    def config(self) -> Config:
        """Get configuration, loading if necessary."""
        if self._config is None:
            self._config = self._load_config()
        return self._config

    def _load_config(self) -> Config:
        """Load configuration from TOML file."""
        if not os.path.exists(self.config_path):
            # Return default configuration if file doesn't exist
            return Config()

        try:
            with open(self.config_path, "r") as f:
                config_data = toml.load(f)
            return Config(**config_data)
        except (toml.TomlDecodeError, ValueError) as e:
            raise ValueError(f"Invalid configuration file {self.config_path}: {e}")

    def reload(self):
        """Reload configuration."""
        self._config = None


# Global configuration manager instance
config_manager = ConfigManager()
