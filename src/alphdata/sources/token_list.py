"""
Community token list provider.

Fetches the published mainnet token list once per hour and indexes it by
token id. Concurrent callers share one in-flight download. When a refresh
fails the previous list keeps being served; with no previous list the
provider answers with an empty mapping.
"""

import time
from typing import Any, Callable, Dict, Optional

from loguru import logger

from alphdata.config import DEFAULT_TOKEN_LIST_URL
from alphdata.core.dedup import RequestDeduplicator
from alphdata.exceptions import AlphDataError
from alphdata.sources.base import parse_payload
from alphdata.sources.models import TokenList, TokenListEntry
from alphdata.utils.http_client import DataHTTPClient

_FETCH_KEY = "token_list"


class TokenListProvider:
    """Hourly-cached view of the community token list."""

    def __init__(self, http_client: DataHTTPClient, url: str = DEFAULT_TOKEN_LIST_URL,
                 ttl_seconds: float = 3600, clock: Callable[[], float] = time.time):
        self._http_client = http_client
        self.url = url
        self.ttl_seconds = ttl_seconds
        self._clock = clock

        self._tokens: Optional[Dict[str, TokenListEntry]] = None
        self._last_fetch_time: Optional[float] = None
        self._request_count = 0
        self._dedup = RequestDeduplicator("token_list")

    def _is_fresh(self) -> bool:
        if self._tokens is None or self._last_fetch_time is None:
            return False
        return self._clock() - self._last_fetch_time < self.ttl_seconds

    async def get_token_list(self) -> Dict[str, TokenListEntry]:
        """Token list entries by id. Never raises."""
        if self._is_fresh():
            return self._tokens
        return await self._dedup.dedupe(_FETCH_KEY, self._refresh)

    async def get_token(self, token_id: str) -> Optional[TokenListEntry]:
        tokens = await self.get_token_list()
        return tokens.get(token_id)

    async def _refresh(self) -> Dict[str, TokenListEntry]:
        self._request_count += 1
        logger.debug(f"[TokenList] Fetching token list (request #{self._request_count})")

        try:
            payload = await self._http_client.get_url(self.url)
            token_list = parse_payload(TokenList, payload, "token list")
        except AlphDataError as e:
            if self._tokens is not None:
                logger.warning(f"[TokenList] Refresh failed, serving stale list: {e.message}")
                return self._tokens
            logger.warning(f"[TokenList] Fetch failed and no cached list available: {e.message}")
            return {}

        self._tokens = {entry.id: entry for entry in token_list.tokens}
        self._last_fetch_time = self._clock()
        logger.info(f"[TokenList] Loaded {len(self._tokens)} tokens")
        return self._tokens

    def clear(self) -> None:
        self._tokens = None
        self._last_fetch_time = None

    def stats(self) -> Dict[str, Any]:
        cache_age = None
        if self._last_fetch_time is not None:
            cache_age = self._clock() - self._last_fetch_time
        return {
            "is_cached": self._tokens is not None,
            "token_count": len(self._tokens) if self._tokens else 0,
            "last_fetch_time": self._last_fetch_time,
            "cache_age": cache_age,
            "has_pending_fetch": self._dedup.in_flight(_FETCH_KEY),
            "request_count": self._request_count,
        }
