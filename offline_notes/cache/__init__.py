"""Offline resource cache for Offline Notes.

Provides versioned shell/runtime caches with:
- All-or-nothing shell population at install time
- Garbage collection of superseded generations on activation
- Request routing with cache-first and stale-while-revalidate strategies
"""

from .schema import CacheSchema
from .storage import CacheStorage, DuckDBCacheStorage
from .generation import CacheGeneration, GenerationState, Partition, partition_names
from .offline import OfflineCache
from .router import FetchRouter, RouteKind

__all__ = [
    "CacheSchema",
    "CacheStorage",
    "DuckDBCacheStorage",
    "CacheGeneration",
    "GenerationState",
    "Partition",
    "partition_names",
    "OfflineCache",
    "FetchRouter",
    "RouteKind",
]
