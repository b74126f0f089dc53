"""
Fungible / non-fungible classification of token ids.

Classifications are cached permanently: token standards do not change after
deployment. Only two outcomes are cached, a real answer from upstream or an
explicit "not found". Transient failures classify the token as unknown for
this call and leave the cache untouched, so the next call asks again.
"""

import asyncio
from typing import Dict, Iterable, List

from loguru import logger

from alphdata.cache.caches import TokenTypeCache
from alphdata.core.dedup import RequestDeduplicator
from alphdata.core.rate_limiter import RateLimitedGateway
from alphdata.error_handler import Result
from alphdata.exceptions import NotFoundError
from alphdata.models import TokenTypeRecord
from alphdata.sources.base import RemoteDataSource
from alphdata.types import TokenStandard


class TokenClassifier:
    """Classify tokens through the rate-limited gateway, backed by the type cache."""

    def __init__(self, source: RemoteDataSource, gateway: RateLimitedGateway,
                 type_cache: TokenTypeCache, batch_size: int = 5, batch_delay: float = 0.2):
        self._source = source
        self._gateway = gateway
        self._cache = type_cache
        self.batch_size = batch_size
        self.batch_delay = batch_delay
        self._dedup = RequestDeduplicator("token_type")

    async def _lookup(self, token_id: str) -> Result[TokenStandard]:
        try:
            standard = await self._gateway.execute(lambda: self._source.guess_std_token_type(token_id))
        except Exception as e:
            return Result.failure(e)
        return Result.success(standard)

    async def classify(self, token_id: str) -> TokenTypeRecord:
        """Classify one token. Never raises for upstream failures."""
        cached = self._cache.get_token_type(token_id)
        if cached is not None:
            return cached
        return await self._dedup.dedupe(token_id, lambda: self._classify_uncached(token_id))

    async def _classify_uncached(self, token_id: str) -> TokenTypeRecord:
        result = await self._lookup(token_id)

        if result.ok:
            standard = result.value
            record = self._cache.set_token_type(token_id, standard == TokenStandard.NON_FUNGIBLE, standard)
            logger.debug(f"[TokenClassifier] {token_id[:8]}... classified as {standard}")
            return record

        if isinstance(result.error, NotFoundError):
            logger.debug(f"[TokenClassifier] {token_id[:8]}... not found upstream, caching as unknown")
            return self._cache.set_token_type(token_id, False, TokenStandard.UNKNOWN)

        logger.warning(f"[TokenClassifier] Could not classify {token_id[:8]}...: {result.error.message}")
        return TokenTypeRecord(token_id=token_id, is_nft=False, classified_as=TokenStandard.UNKNOWN)

    async def classify_many(self, token_ids: Iterable[str]) -> Dict[str, TokenTypeRecord]:
        """Classify a set of tokens, querying uncached ids in paced chunks."""
        results: Dict[str, TokenTypeRecord] = {}
        uncached: List[str] = []

        for token_id in dict.fromkeys(token_ids):
            cached = self._cache.get_token_type(token_id)
            if cached is not None:
                results[token_id] = cached
            else:
                uncached.append(token_id)

        if not uncached:
            return results

        logger.debug(f"[TokenClassifier] {len(results)} cached, {len(uncached)} to classify")

        for start in range(0, len(uncached), self.batch_size):
            if start:
                await asyncio.sleep(self.batch_delay)
            chunk = uncached[start:start + self.batch_size]
            records = await asyncio.gather(*(self.classify(token_id) for token_id in chunk))
            results.update(zip(chunk, records))

        return results
