"""
Two-tier TTL cache.

Reads check an in-memory map first and fall back to a persistent
KeyValueStore, promoting hits into memory. Writes go through to both tiers.
The persistent tier is allowed to fail: errors there are logged and the
memory tier stays authoritative for the life of the process.
"""

import copy
import json
import time
from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Mapping, Optional
from loguru import logger

from alphdata.cache.store import KeyValueStore
from alphdata.exceptions import StorageError


@dataclass
class CacheEntry:
    """A cached JSON object together with its write time."""
    key: str
    value: Dict[str, Any]
    cached_at: int  # epoch milliseconds

    def age_ms(self, now_ms: int) -> int:
        return now_ms - self.cached_at

    def is_expired(self, now_ms: int, ttl_ms: Optional[int]) -> bool:
        """An entry exactly at the window boundary counts as expired."""
        if ttl_ms is None:
            return False
        return self.age_ms(now_ms) >= ttl_ms


class TTLCache:
    """Cache of JSON objects keyed by ``<namespace>_<id>``.

    Args:
        store: Persistent tier
        namespace: Key prefix, e.g. ``alephium_token_type_cache``
        ttl_seconds: Freshness window; None means entries never expire
        timestamp_field: Field stamped with the write time in epoch ms
        source_tag: If set, written to the ``source`` field of every entry
        clock: Wall clock in seconds
    """

    def __init__(
        self,
        store: KeyValueStore,
        namespace: str,
        ttl_seconds: Optional[float] = None,
        timestamp_field: str = "cachedAt",
        source_tag: Optional[str] = None,
        clock: Callable[[], float] = time.time,
    ):
        self.store = store
        self.namespace = namespace
        self.ttl_ms = int(ttl_seconds * 1000) if ttl_seconds is not None else None
        self.timestamp_field = timestamp_field
        self.source_tag = source_tag
        self._clock = clock
        self._memory: Dict[str, CacheEntry] = {}
        self.stats_counters = {
            "hits": 0,
            "memory_hits": 0,
            "misses": 0,
            "stale": 0,
            "sets": 0,
            "errors": 0,
        }

    def _now_ms(self) -> int:
        return int(self._clock() * 1000)

    def storage_key(self, item_id: str) -> str:
        return f"{self.namespace}_{item_id}"

    def get(self, item_id: str) -> Optional[Dict[str, Any]]:
        """Return a copy of the cached object for ``item_id``, or None on miss or staleness."""
        entry = self._memory.get(item_id)
        if entry is not None:
            self.stats_counters["memory_hits"] += 1
        else:
            entry = self._read_persistent(item_id)
            if entry is not None:
                self._memory[item_id] = entry

        if entry is None:
            self.stats_counters["misses"] += 1
            return None

        if entry.is_expired(self._now_ms(), self.ttl_ms):
            self.stats_counters["stale"] += 1
            logger.debug(f"[{self.namespace}] Stale entry for {item_id} ({entry.age_ms(self._now_ms())}ms old)")
            return None

        self.stats_counters["hits"] += 1
        return copy.deepcopy(entry.value)

    def _read_persistent(self, item_id: str) -> Optional[CacheEntry]:
        key = self.storage_key(item_id)
        try:
            raw = self.store.get(key)
        except (StorageError, OSError) as e:
            self.stats_counters["errors"] += 1
            logger.warning(f"[{self.namespace}] Error reading persistent cache for {item_id}: {e}")
            return None

        if raw is None:
            return None

        try:
            payload = json.loads(raw)
            cached_at = int(payload[self.timestamp_field])
        except (ValueError, TypeError, KeyError) as e:
            self.stats_counters["errors"] += 1
            logger.warning(f"[{self.namespace}] Discarding malformed entry for {item_id}: {e}")
            return None

        if not isinstance(payload, dict):
            return None
        return CacheEntry(key=key, value=payload, cached_at=cached_at)

    def set(self, item_id: str, value: Mapping[str, Any]) -> Dict[str, Any]:
        """Store ``value`` under ``item_id`` in both tiers and return the stamped object."""
        now_ms = self._now_ms()
        payload = copy.deepcopy(dict(value))
        payload[self.timestamp_field] = now_ms
        if self.source_tag is not None:
            payload["source"] = self.source_tag

        key = self.storage_key(item_id)
        self._memory[item_id] = CacheEntry(key=key, value=payload, cached_at=now_ms)
        self.stats_counters["sets"] += 1

        try:
            self.store.set(key, json.dumps(payload))
        except (StorageError, OSError, TypeError, ValueError) as e:
            self.stats_counters["errors"] += 1
            logger.warning(f"[{self.namespace}] Persistent write failed for {item_id}, keeping memory copy: {e}")

        return copy.deepcopy(payload)

    def clear(self, item_id: Optional[str] = None) -> int:
        """Remove one entry, or every entry in this namespace. Returns entries removed."""
        if item_id is not None:
            self._memory.pop(item_id, None)
            return 1 if self._delete_persistent(self.storage_key(item_id)) else 0

        self._memory.clear()
        removed = 0
        for key in self._persistent_keys():
            if self._delete_persistent(key):
                removed += 1
        logger.debug(f"[{self.namespace}] Cleared {removed} persisted entries")
        return removed

    def clear_matching(self, id_prefix: str) -> int:
        """Remove every entry whose id starts with ``id_prefix``."""
        for item_id in [i for i in self._memory if i.startswith(id_prefix)]:
            del self._memory[item_id]

        removed = 0
        full_prefix = self.storage_key(id_prefix)
        for key in self._persistent_keys():
            if key.startswith(full_prefix) and self._delete_persistent(key):
                removed += 1
        return removed

    def _delete_persistent(self, key: str) -> bool:
        try:
            return self.store.delete(key)
        except (StorageError, OSError) as e:
            self.stats_counters["errors"] += 1
            logger.warning(f"[{self.namespace}] Error deleting {key}: {e}")
            return False

    def _persistent_keys(self) -> List[str]:
        prefix = f"{self.namespace}_"
        try:
            return [k for k in self.store.keys() if k.startswith(prefix)]
        except (StorageError, OSError) as e:
            self.stats_counters["errors"] += 1
            logger.warning(f"[{self.namespace}] Error listing persisted keys: {e}")
            return []

    def stats(self) -> Dict[str, Any]:
        """Entry count and ids across both tiers."""
        prefix_len = len(self.namespace) + 1
        ids = {key[prefix_len:] for key in self._persistent_keys()}
        ids.update(self._memory.keys())
        return {
            "count": len(ids),
            "keys": sorted(ids),
            "memory_count": len(self._memory),
        }

    def get_counters(self) -> Dict[str, Any]:
        total = self.stats_counters["hits"] + self.stats_counters["misses"] + self.stats_counters["stale"]
        hit_rate = (self.stats_counters["hits"] / total * 100) if total > 0 else 0
        return {**self.stats_counters, "hit_rate_percent": round(hit_rate, 2)}
