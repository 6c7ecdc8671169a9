"""Versioned cache generations.

A generation is a pair of named caches sharing one version tag:

- ``app-shell-<tag>``: the fixed asset manifest needed to boot offline
- ``runtime-<tag>``: anything else fetched while the app is in use

Lifecycle: declared -> populating -> installed -> active -> superseded -> deleted.
A failed population ends in ``failed`` and leaves the previous generation
serving.
"""

import logging
from enum import Enum
from typing import Dict, List, Optional, Sequence, Set
from urllib.parse import urldefrag, urljoin, urlsplit

from .storage import CacheStorage
from ..errors import CacheInstallFailed, NetworkUnavailable, WriteFailed
from ..models.http import Request, Response
from ..utils.fetcher import Fetcher

logger = logging.getLogger(__name__)

SHELL_PREFIX = "app-shell"
RUNTIME_PREFIX = "runtime"


class Partition(str, Enum):
    """Logical partitions of a generation."""

    SHELL = "shell"
    RUNTIME = "runtime"


class GenerationState(str, Enum):
    """Lifecycle states of a generation."""

    DECLARED = "declared"
    POPULATING = "populating"
    INSTALLED = "installed"
    ACTIVE = "active"
    SUPERSEDED = "superseded"
    DELETED = "deleted"
    FAILED = "failed"


def partition_names(version: str) -> Dict[Partition, str]:
    """Get the cache names used by a version tag."""
    return {
        Partition.SHELL: f"{SHELL_PREFIX}-{version}",
        Partition.RUNTIME: f"{RUNTIME_PREFIX}-{version}",
    }


class CacheGeneration:
    """One versioned set of shell and runtime caches."""

    def __init__(
        self,
        version: str,
        storage: CacheStorage,
        fetcher: Fetcher,
        base_url: str,
        shell_assets: Sequence[str],
        state: GenerationState = GenerationState.DECLARED,
    ):
        """Initialize a generation.

        Args:
            version: Version tag embedded in the cache names
            storage: Cache storage holding the partitions
            fetcher: Network fetcher used to populate the shell
            base_url: URL the app is served from
            shell_assets: Relative paths of the shell manifest
            state: Initial lifecycle state
        """
        self.version = version
        self.storage = storage
        self.fetcher = fetcher
        self.base_url = base_url
        self.shell_assets = list(shell_assets)
        self.state = state
        self._names = partition_names(version)

    def __repr__(self) -> str:
        return f"CacheGeneration(version={self.version!r}, state={self.state.value})"

    @property
    def shell_name(self) -> str:
        return self._names[Partition.SHELL]

    @property
    def runtime_name(self) -> str:
        return self._names[Partition.RUNTIME]

    @property
    def names(self) -> List[str]:
        return [self.shell_name, self.runtime_name]

    def partition_name(self, partition: Partition) -> str:
        return self._names[Partition(partition)]

    def resolve(self, path: str) -> str:
        """Resolve a manifest path to the absolute URL used as cache key."""
        return urldefrag(urljoin(self.base_url, path))[0]

    @property
    def shell_urls(self) -> Set[str]:
        return {self.resolve(path) for path in self.shell_assets}

    def is_shell_url(self, url: str) -> bool:
        """Match on path alone, so cache-busting query strings still count."""
        return urlsplit(url)._replace(query="", fragment="").geturl() in self.shell_urls

    # === Population ===

    def populate_shell(self, asset_paths: Optional[Sequence[str]] = None) -> int:
        """Fetch and store every shell asset, all or nothing.

        Nothing is written unless every asset came back with a 2xx status.

        Args:
            asset_paths: Paths to populate (default: the generation's manifest)

        Returns:
            Number of entries stored

        Raises:
            CacheInstallFailed: At least one asset could not be fetched or stored
        """
        paths = list(asset_paths) if asset_paths is not None else self.shell_assets
        self.state = GenerationState.POPULATING
        logger.info("Populating %s with %d assets", self.shell_name, len(paths))

        fetched: Dict[str, Response] = {}
        failed: List[str] = []
        for path in paths:
            url = self.resolve(path)
            try:
                response = self.fetcher.fetch(Request(url=url))
            except NetworkUnavailable as e:
                logger.warning("Shell asset %s unreachable: %s", path, e.reason)
                failed.append(path)
                continue
            if not response.ok:
                logger.warning("Shell asset %s returned HTTP %d", path, response.status)
                failed.append(path)
                continue
            fetched[url] = response

        if failed:
            self.state = GenerationState.FAILED
            raise CacheInstallFailed(
                f"Install of {self.version} failed: {len(failed)} shell asset(s) unreachable",
                failed_paths=failed,
            )

        try:
            self.storage.put_all(self.shell_name, fetched)
        except WriteFailed as e:
            self.state = GenerationState.FAILED
            raise CacheInstallFailed(
                f"Install of {self.version} failed: {e}", failed_paths=paths
            ) from e

        self.state = GenerationState.INSTALLED
        return len(fetched)

    # === Activation ===

    def promote(self) -> List[str]:
        """Make this generation current and delete every other cache.

        Returns:
            Names of the deleted caches
        """
        self.storage.open(self.shell_name)
        self.storage.open(self.runtime_name)

        deleted = []
        for name in self.storage.keys():
            if name in self.names:
                continue
            logger.info("Deleting stale cache %s", name)
            self.storage.delete(name)
            deleted.append(name)

        self.state = GenerationState.ACTIVE
        return deleted

    # === Entries ===

    def lookup(self, partition: Partition, request: Request) -> Optional[Response]:
        return self.storage.match(self.partition_name(partition), request.cache_key)

    def store(self, partition: Partition, request: Request, response: Response) -> None:
        self.storage.put(self.partition_name(partition), request.cache_key, response)
