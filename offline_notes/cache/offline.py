"""Offline cache coordinator.

Runs the install/activate lifecycle for the declared generation and tracks
which generation is serving requests. The serving generation is whatever
was last promoted, so a failed install of a newer tag leaves the previous
one in place.
"""

import logging
from typing import Any, Dict, List, Optional, Sequence

from .generation import CacheGeneration, GenerationState, Partition
from .storage import CacheStorage
from ..errors import CacheInstallFailed
from ..utils.fetcher import Fetcher

logger = logging.getLogger(__name__)

ACTIVE_VERSION_KEY = "active_version"


class OfflineCache:
    """Coordinates cache generations for the app shell and runtime resources."""

    def __init__(
        self,
        storage: CacheStorage,
        fetcher: Fetcher,
        version: str,
        base_url: str,
        shell_assets: Sequence[str],
        bootstrap_page: str = "./index.html",
    ):
        """Initialize coordinator.

        Args:
            storage: Cache storage
            fetcher: Network fetcher
            version: Declared version tag for this build
            base_url: URL the app is served from
            shell_assets: Shell manifest
            bootstrap_page: Shell entry served to offline navigations
        """
        self.storage = storage
        self.fetcher = fetcher
        self.base_url = base_url
        self.shell_assets = list(shell_assets)
        self.bootstrap_page = bootstrap_page

        state = GenerationState.DECLARED
        if self.active_version() == version:
            state = GenerationState.ACTIVE
        self.declared = self._generation(version, state)
        # Generation replaced by the last activate(), if any
        self.superseded: Optional[CacheGeneration] = None

    def _generation(self, version: str, state: GenerationState) -> CacheGeneration:
        return CacheGeneration(
            version=version,
            storage=self.storage,
            fetcher=self.fetcher,
            base_url=self.base_url,
            shell_assets=self.shell_assets,
            state=state,
        )

    def active_version(self) -> Optional[str]:
        """Get the version tag last promoted, if any."""
        return self.storage.get_meta(ACTIVE_VERSION_KEY)

    def serving_generation(self) -> Optional[CacheGeneration]:
        """Get the generation that answers requests, or None before first activation."""
        active = self.active_version()
        if active is None:
            return None
        if active == self.declared.version:
            return self.declared
        return self._generation(active, GenerationState.ACTIVE)

    @property
    def bootstrap_url(self) -> str:
        return self.declared.resolve(self.bootstrap_page)

    # === Lifecycle ===

    def install(self) -> int:
        """Populate the declared generation's shell partition.

        Returns:
            Number of shell entries stored

        Raises:
            CacheInstallFailed: Population failed; nothing was promoted
        """
        return self.declared.populate_shell()

    def activate(self) -> List[str]:
        """Promote the declared generation and collect stale caches.

        Returns:
            Names of the deleted caches

        Raises:
            CacheInstallFailed: The declared generation was never installed
        """
        if self.declared.state == GenerationState.ACTIVE:
            return self.declared.promote()
        if self.declared.state != GenerationState.INSTALLED:
            raise CacheInstallFailed(
                f"Cannot activate {self.declared.version}: generation is {self.declared.state.value}"
            )

        previous = self.active_version()
        self.storage.set_meta(ACTIVE_VERSION_KEY, self.declared.version)

        superseded = None
        if previous and previous != self.declared.version:
            superseded = self._generation(previous, GenerationState.SUPERSEDED)
            self.superseded = superseded
            logger.info("Generation %s superseded by %s", previous, self.declared.version)

        deleted = self.declared.promote()
        if superseded and not any(self.storage.has(name) for name in superseded.names):
            superseded.state = GenerationState.DELETED
        return deleted

    def install_and_activate(self) -> List[str]:
        """Install then activate, as a fresh worker does on startup."""
        self.install()
        return self.activate()

    def status(self) -> Dict[str, Any]:
        """Get cache status.

        Returns:
            Dict with declared/active version and per-cache entry counts
        """
        serving = self.serving_generation()
        return {
            "declared_version": self.declared.version,
            "declared_state": self.declared.state.value,
            "active_version": serving.version if serving else None,
            "caches": {name: self.storage.entry_count(name) for name in self.storage.keys()},
            "shell_assets": len(self.shell_assets),
            "shell_cached": (
                self.storage.entry_count(serving.partition_name(Partition.SHELL))
                if serving
                else 0
            ),
        }
