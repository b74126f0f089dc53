"""
Caching layer: key-value stores, the two-tier TTL cache and the typed caches built on it.
"""

from .store import KeyValueStore, MemoryKeyValueStore, FileKeyValueStore
from .ttl_cache import CacheEntry, TTLCache
from .caches import TokenMetadataCache, TokenTypeCache, BalanceHistoryCache

__all__ = [
    "KeyValueStore",
    "MemoryKeyValueStore",
    "FileKeyValueStore",
    "CacheEntry",
    "TTLCache",
    "TokenMetadataCache",
    "TokenTypeCache",
    "BalanceHistoryCache",
]
