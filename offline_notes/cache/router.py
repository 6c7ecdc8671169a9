"""Fetch interception router.

Classifies each outgoing request and answers it with a caching strategy:

1. Non-GET and cross-origin requests go straight to the network.
2. Navigations are network-first with the cached bootstrap page as
   fallback (or cache-first, when configured).
3. Shell assets are cache-first.
4. Everything else is stale-while-revalidate against the runtime partition.

Until a generation has been activated the router does not intercept at all.
"""

import logging
import threading
from concurrent.futures import Future, ThreadPoolExecutor, wait
from enum import Enum
from typing import List, Optional
from urllib.parse import urlsplit

from .generation import CacheGeneration, Partition
from .offline import OfflineCache
from ..errors import NetworkUnavailable, OfflineNotesError, WriteFailed
from ..models.http import Request, Response
from ..utils.fetcher import Fetcher

logger = logging.getLogger(__name__)

NETWORK_FIRST = "network-first"
CACHE_FIRST = "cache-first"


class RouteKind(str, Enum):
    """Strategy chosen for a request."""

    BYPASS = "bypass"
    NAVIGATION = "navigation"
    SHELL = "shell"
    RUNTIME = "runtime"


def _origin(url: str) -> tuple:
    parts = urlsplit(url)
    default_port = {"http": 80, "https": 443}.get(parts.scheme)
    return (parts.scheme.lower(), (parts.hostname or "").lower(), parts.port or default_port)


class FetchRouter:
    """Answers resource requests from the serving cache generation."""

    def __init__(
        self,
        offline: OfflineCache,
        fetcher: Optional[Fetcher] = None,
        navigation_strategy: str = NETWORK_FIRST,
        max_workers: int = 2,
    ):
        """Initialize router.

        Args:
            offline: Cache coordinator
            fetcher: Network fetcher (default: the coordinator's)
            navigation_strategy: "network-first" or "cache-first"
            max_workers: Threads used for background revalidation
        """
        if navigation_strategy not in (NETWORK_FIRST, CACHE_FIRST):
            raise ValueError(f"Unknown navigation strategy: {navigation_strategy}")

        self.offline = offline
        self.fetcher = fetcher or offline.fetcher
        self.navigation_strategy = navigation_strategy
        self.max_workers = max_workers
        self._origin = _origin(offline.base_url)
        self._executor: Optional[ThreadPoolExecutor] = None
        self._pending: List[Future] = []
        self._lock = threading.Lock()

    def classify(self, request: Request) -> RouteKind:
        """Pick the strategy for a request."""
        if request.method != "GET":
            return RouteKind.BYPASS
        if _origin(request.url) != self._origin:
            return RouteKind.BYPASS
        if request.is_navigation:
            return RouteKind.NAVIGATION
        if self.offline.declared.is_shell_url(request.url):
            return RouteKind.SHELL
        return RouteKind.RUNTIME

    def handle(self, request: Request) -> Response:
        """Answer a request.

        Raises:
            NetworkUnavailable: The network failed and nothing was cached
        """
        kind = self.classify(request)
        generation = self.offline.serving_generation()

        if kind == RouteKind.BYPASS or generation is None:
            return self.fetcher.fetch(request)
        if kind == RouteKind.NAVIGATION:
            if self.navigation_strategy == CACHE_FIRST:
                return self._navigation_cache_first(generation, request)
            return self._navigation_network_first(generation, request)
        if kind == RouteKind.SHELL:
            return self._cache_first(generation, request)
        return self._stale_while_revalidate(generation, request)

    # === Strategies ===

    def _bootstrap(self, generation: CacheGeneration) -> Optional[Response]:
        return generation.lookup(Partition.SHELL, Request(url=self.offline.bootstrap_url))

    def _navigation_network_first(
        self, generation: CacheGeneration, request: Request
    ) -> Response:
        try:
            return self.fetcher.fetch(request)
        except NetworkUnavailable:
            cached = self._bootstrap(generation)
            if cached is None:
                raise
            logger.debug("Offline navigation to %s served from bootstrap page", request.url)
            return cached

    def _navigation_cache_first(
        self, generation: CacheGeneration, request: Request
    ) -> Response:
        cached = self._bootstrap(generation)
        if cached is not None:
            return cached
        return self.fetcher.fetch(request)

    def _cache_first(self, generation: CacheGeneration, request: Request) -> Response:
        cached = generation.lookup(Partition.SHELL, request)
        if cached is not None:
            return cached

        fresh = self.fetcher.fetch(request)
        self._store(generation, Partition.SHELL, request, fresh)
        return fresh

    def _stale_while_revalidate(
        self, generation: CacheGeneration, request: Request
    ) -> Response:
        cached = generation.lookup(Partition.RUNTIME, request)
        if cached is not None:
            self._schedule_revalidation(generation, request)
            return cached

        fresh = self.fetcher.fetch(request)
        self._store(generation, Partition.RUNTIME, request, fresh)
        return fresh

    def _store(
        self,
        generation: CacheGeneration,
        partition: Partition,
        request: Request,
        response: Response,
    ) -> None:
        # Error responses are handed back but never cached
        if not response.ok:
            return
        try:
            generation.store(partition, request, response)
        except WriteFailed as e:
            logger.warning("Could not cache %s: %s", request.url, e)

    # === Background revalidation ===

    def _schedule_revalidation(self, generation: CacheGeneration, request: Request) -> None:
        with self._lock:
            if self._executor is None:
                self._executor = ThreadPoolExecutor(
                    max_workers=self.max_workers,
                    thread_name_prefix="revalidate",
                )
            future = self._executor.submit(self._revalidate, generation, request)
            self._pending.append(future)
        future.add_done_callback(self._forget)

    def _forget(self, future: Future) -> None:
        with self._lock:
            if future in self._pending:
                self._pending.remove(future)

    def _revalidate(self, generation: CacheGeneration, request: Request) -> None:
        # Runs on a worker thread; nothing here may escape into the future
        try:
            fresh = self.fetcher.fetch(request)
            self._store(generation, Partition.RUNTIME, request, fresh)
        except OfflineNotesError as e:
            logger.debug("Revalidation of %s failed: %s", request.url, e)
        except Exception:
            logger.warning("Revalidation of %s failed", request.url, exc_info=True)

    def pending_revalidations(self) -> int:
        with self._lock:
            return len(self._pending)

    def wait_for_revalidations(self, timeout: Optional[float] = None) -> None:
        """Block until scheduled revalidations have finished."""
        with self._lock:
            pending = list(self._pending)
        wait(pending, timeout=timeout)

    def close(self) -> None:
        """Finish pending revalidations and stop the worker threads."""
        with self._lock:
            executor, self._executor = self._executor, None
        if executor:
            executor.shutdown(wait=True)

    def __enter__(self) -> "FetchRouter":
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close()
