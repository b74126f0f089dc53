"""
Typed caches for token metadata, token classification and balance history.

Each wraps one TTLCache namespace under the shared key prefix:

- ``<prefix>_token_metadata_cache_<tokenId>``  (never expires)
- ``<prefix>_token_type_cache_<tokenId>``      (never expires)
- ``<prefix>_balance_history_cache_<address>_<days>``  (freshness window)
"""

import time
from typing import Any, Callable, Dict, List, Optional
from loguru import logger
from pydantic import ValidationError as PydanticValidationError

from alphdata.cache.store import KeyValueStore
from alphdata.cache.ttl_cache import TTLCache
from alphdata.models import (
    BalanceHistoryPoint,
    CachedBalanceHistory,
    TokenMetadataRecord,
    TokenTypeRecord,
)
from alphdata.types import TokenStandard

DEFAULT_KEY_PREFIX = "alephium"
DEFAULT_HISTORY_TTL_SECONDS = 3600


class TokenMetadataCache:
    """Token metadata with indefinite TTL until manually refreshed."""

    def __init__(self, store: KeyValueStore, key_prefix: str = DEFAULT_KEY_PREFIX,
                 clock: Callable[[], float] = time.time):
        self._cache = TTLCache(
            store,
            namespace=f"{key_prefix}_token_metadata_cache",
            source_tag="cache",
            clock=clock,
        )

    @property
    def namespace(self) -> str:
        return self._cache.namespace

    def get_metadata(self, token_id: str) -> Optional[TokenMetadataRecord]:
        payload = self._cache.get(token_id)
        if payload is None:
            return None
        try:
            return TokenMetadataRecord.model_validate(payload)
        except PydanticValidationError as e:
            logger.warning(f"[TokenMetadataCache] Ignoring malformed cached metadata for {token_id}: {e}")
            return None

    def set_metadata(self, record: TokenMetadataRecord) -> TokenMetadataRecord:
        stored = self._cache.set(record.id, record.to_json_dict())
        logger.debug(f"[TokenMetadataCache] Cached metadata for {record.id}")
        return TokenMetadataRecord.model_validate(stored)

    def clear_token(self, token_id: str) -> None:
        self._cache.clear(token_id)

    def clear_all(self) -> int:
        removed = self._cache.clear()
        logger.info(f"[TokenMetadataCache] Cleared all cached metadata ({removed} items)")
        return removed

    def get_stats(self) -> Dict[str, Any]:
        stats = self._cache.stats()
        return {
            "total_cached": stats["count"],
            "memory_count": stats["memory_count"],
            "cache_keys": stats["keys"],
        }


class TokenTypeCache:
    """Token standard classification. Token standards never change after deployment."""

    def __init__(self, store: KeyValueStore, key_prefix: str = DEFAULT_KEY_PREFIX,
                 clock: Callable[[], float] = time.time):
        self._cache = TTLCache(
            store,
            namespace=f"{key_prefix}_token_type_cache",
            clock=clock,
        )

    def get_token_type(self, token_id: str) -> Optional[TokenTypeRecord]:
        payload = self._cache.get(token_id)
        if payload is None:
            return None
        try:
            return TokenTypeRecord(
                token_id=token_id,
                is_nft=bool(payload["isNFT"]),
                classified_as=TokenStandard(payload.get("type", "unknown")),
                cached_at=payload.get("cachedAt"),
            )
        except (KeyError, ValueError) as e:
            logger.warning(f"[TokenTypeCache] Ignoring malformed cached type for {token_id}: {e}")
            return None

    def set_token_type(self, token_id: str, is_nft: bool, standard: TokenStandard) -> TokenTypeRecord:
        stored = self._cache.set(token_id, {"isNFT": is_nft, "type": str(standard)})
        return TokenTypeRecord(
            token_id=token_id,
            is_nft=is_nft,
            classified_as=standard,
            cached_at=stored["cachedAt"],
        )

    def clear_token(self, token_id: str) -> None:
        self._cache.clear(token_id)

    def clear_all(self) -> int:
        return self._cache.clear()

    def get_stats(self) -> Dict[str, Any]:
        stats = self._cache.stats()
        return {"total_cached": stats["count"], "cache_keys": stats["keys"]}


class BalanceHistoryCache:
    """Balance history snapshots per (address, days), fresh for a fixed window."""

    def __init__(self, store: KeyValueStore, key_prefix: str = DEFAULT_KEY_PREFIX,
                 ttl_seconds: float = DEFAULT_HISTORY_TTL_SECONDS,
                 clock: Callable[[], float] = time.time):
        self._cache = TTLCache(
            store,
            namespace=f"{key_prefix}_balance_history_cache",
            ttl_seconds=ttl_seconds,
            timestamp_field="lastUpdated",
            clock=clock,
        )

    @staticmethod
    def _item_id(address: str, days: int) -> str:
        return f"{address}_{days}"

    def get_cache(self, address: str, days: int) -> Optional[CachedBalanceHistory]:
        payload = self._cache.get(self._item_id(address, days))
        if payload is None:
            return None
        try:
            return CachedBalanceHistory.model_validate(payload)
        except PydanticValidationError as e:
            logger.warning(f"[BalanceHistoryCache] Ignoring malformed history for {address[:8]}...: {e}")
            return None

    def set_cache(self, address: str, days: int, points: List[BalanceHistoryPoint]) -> CachedBalanceHistory:
        stored = self._cache.set(
            self._item_id(address, days),
            {
                "data": [p.to_json_dict() for p in points],
                "address": address,
                "days": days,
            },
        )
        logger.debug(f"[BalanceHistoryCache] Cached {len(points)} data points for {address[:8]}...")
        return CachedBalanceHistory.model_validate(stored)

    def clear_cache(self, address: Optional[str] = None) -> int:
        if address:
            return self._cache.clear_matching(f"{address}_")
        return self._cache.clear()

    def get_stats(self) -> Dict[str, Any]:
        stats = self._cache.stats()
        return {
            "total_cached": stats["count"],
            "cache_keys": [f"{self._cache.namespace}_{k}" for k in stats["keys"]],
        }
