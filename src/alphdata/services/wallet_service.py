from __future__ import annotations

"""Alephium Data Service
=======================

The single object calling code works with. It owns the HTTP client, the
rate-limited gateway, the caches and every service built on them, and
exposes the wallet-facing operations:

- balances, UTXOs and transactions of an address
- enriched token and NFT holdings
- daily balance history with provenance tags
- network statistics and token transaction feeds
- cache maintenance and statistics

Example:
    ```python
    async with AlephiumDataService.from_config() as service:
        tokens = await service.get_address_tokens(address)
        history = await service.fetch_balance_history(address, days=30)
    ```
"""

import random
import time
from typing import Any, Callable, Dict, Iterable, List, Optional

from loguru import logger

from alphdata.cache.caches import BalanceHistoryCache, TokenMetadataCache, TokenTypeCache
from alphdata.cache.store import FileKeyValueStore, KeyValueStore, MemoryKeyValueStore
from alphdata.config import AlphDataConfig, CacheConfig, auto_load_config
from alphdata.core.rate_limiter import RateLimitedGateway
from alphdata.error_handler import ErrorHandler, get_error_handler, safe_execute
from alphdata.exceptions import AlphDataError
from alphdata.models import AddressBalanceSummary, BalanceHistoryPoint, EnrichedToken, TokenMetadataRecord
from alphdata.services.balance_reconstructor import BalanceHistoryReconstructor
from alphdata.services.history_orchestrator import BalanceHistoryOrchestrator, BalanceHistorySimulator
from alphdata.services.metadata_enricher import MetadataEnricher
from alphdata.services.network_stats import NetworkStats, NetworkStatsService
from alphdata.services.token_classifier import TokenClassifier
from alphdata.services.transactions import TransactionService
from alphdata.sources.alephium import AlephiumSource
from alphdata.sources.base import RemoteDataSource, validate_address
from alphdata.sources.explorer_api import ExplorerApiSource
from alphdata.sources.models import ExplorerTransaction, UtxoList
from alphdata.sources.token_list import TokenListProvider
from alphdata.sources.uri_fetcher import MetadataURIFetcher
from alphdata.types import StorageType
from alphdata.utils.formatting import add_integer_amounts, atto_to_alph
from alphdata.utils.http_client import DataHTTPClient

__all__ = ["AlephiumDataService", "build_store"]


def build_store(cache_config: CacheConfig) -> KeyValueStore:
    """Persistent tier selected by ``cache.storage_type``."""
    if cache_config.storage_type == StorageType.FILE.value:
        return FileKeyValueStore(cache_config.get_cache_dir())
    return MemoryKeyValueStore()


class AlephiumDataService:
    """Wallet data facade over the node, explorer and metadata sources."""

    def __init__(
        self,
        config: Optional[AlphDataConfig] = None,
        store: Optional[KeyValueStore] = None,
        source: Optional[RemoteDataSource] = None,
        http_client: Optional[DataHTTPClient] = None,
        rng: Optional[random.Random] = None,
        clock: Callable[[], float] = time.time,
        error_handler: Optional[ErrorHandler] = None,
    ):
        """Wire every component from one configuration.

        Args:
            config: Settings; defaults apply when omitted
            store: Persistent cache tier; built from ``config.cache`` when omitted
            source: Node/indexer capability; an ``AlephiumSource`` when omitted
            http_client: Shared HTTP client for the source, explorer API and metadata hosts
            rng: Random source for simulated history
            clock: Wall clock in seconds
            error_handler: Receives best-effort failures; the package-wide handler when omitted
        """
        self.config = config or AlphDataConfig()
        self._error_handler = error_handler or get_error_handler()

        node = self.config.node
        self._http_client = http_client or DataHTTPClient(
            default_timeout=node.timeout_seconds,
            max_retries=node.max_retries,
            retry_delay=node.retry_delay,
        )
        self._source = source or AlephiumSource(node, self._http_client)
        self._store = store or build_store(self.config.cache)

        self.gateway = RateLimitedGateway(
            max_concurrent=self.config.rate_limit.max_concurrent,
            min_delay=self.config.rate_limit.min_delay_ms / 1000,
            name="node",
        )

        prefix = self.config.cache.key_prefix
        self.metadata_cache = TokenMetadataCache(self._store, prefix, clock=clock)
        self.type_cache = TokenTypeCache(self._store, prefix, clock=clock)
        self.history_cache = BalanceHistoryCache(
            self._store, prefix, ttl_seconds=self.config.cache.balance_history_ttl_seconds, clock=clock
        )

        self.token_list = TokenListProvider(
            self._http_client,
            url=node.token_list_url,
            ttl_seconds=self.config.cache.token_list_ttl_seconds,
            clock=clock,
        )
        self.explorer_api = ExplorerApiSource(self._http_client, node.explorer_api_url)

        self.classifier = TokenClassifier(
            self._source,
            self.gateway,
            self.type_cache,
            batch_size=self.config.classifier.batch_size,
            batch_delay=self.config.classifier.batch_delay_ms / 1000,
        )
        self.enricher = MetadataEnricher(
            self._source,
            self.gateway,
            self.metadata_cache,
            self.token_list,
            MetadataURIFetcher(self._http_client, self.config.metadata),
            image_gateway=self.config.metadata.ipfs_gateways[0],
        )
        self.transactions = TransactionService(self._source, self.gateway, clock=clock)

        history = self.config.history
        self.history = BalanceHistoryOrchestrator(
            self._source,
            self.gateway,
            self.explorer_api,
            BalanceHistoryReconstructor(
                self._source,
                self.gateway,
                self.transactions,
                tolerance=history.tolerance,
                min_transactions=history.min_transactions,
                transactions_per_day=history.transactions_per_day,
                clock=clock,
            ),
            self.history_cache,
            simulator=BalanceHistorySimulator(rng=rng, clock=clock),
            clock=clock,
        )
        self.network_stats = NetworkStatsService(self._source, self.gateway, self.explorer_api, clock=clock)

        logger.debug(f"[AlephiumDataService] Initialized with {self.config.cache.storage_type} storage, "
                     f"key prefix '{prefix}'")

    @classmethod
    def from_config(cls, config: Optional[AlphDataConfig] = None, **kwargs: Any) -> "AlephiumDataService":
        """Build a service from an explicit or auto-discovered configuration."""
        if config is None:
            config = auto_load_config(configure_logging=False)
        return cls(config=config, **kwargs)

    # Address data

    async def get_address_balance(self, address: str) -> AddressBalanceSummary:
        """Balance of ``address`` in whole ALPH.

        Raises:
            ValidationError: For a malformed address
            AlphDataError: If the node lookup fails
        """
        validate_address(address)
        logger.info(f"[AlephiumDataService] Fetching balance for {address[:8]}...")
        balance = await self.gateway.execute(lambda: self._source.get_address_balance(address))
        summary = AddressBalanceSummary(
            balance=float(atto_to_alph(balance.balance)),
            locked_balance=float(atto_to_alph(balance.locked_balance)),
            utxo_num=balance.utxo_num,
        )
        logger.info(f"[AlephiumDataService] Balance: {summary.balance} ALPH ({summary.utxo_num} UTXOs)")
        return summary

    async def get_address_utxos(self, address: str) -> UtxoList:
        validate_address(address)
        return await self.gateway.execute(lambda: self._source.get_address_utxos(address))

    async def get_address_transactions(self, address: str, limit: int = 20) -> List[ExplorerTransaction]:
        validate_address(address)
        return await self.transactions.get_address_transactions(address, limit)

    # Tokens

    @staticmethod
    def _aggregate_token_amounts(utxos: UtxoList) -> Dict[str, str]:
        amounts: Dict[str, str] = {}
        for utxo in utxos.utxos:
            for token in utxo.tokens:
                try:
                    amounts[token.id] = add_integer_amounts(amounts.get(token.id, "0"), token.amount)
                except ValueError:
                    logger.warning(f"[AlephiumDataService] Skipping malformed amount {token.amount!r} "
                                   f"for token {token.id[:8]}...")
        return amounts

    async def get_address_tokens(self, address: str, skip_nft_metadata: bool = True) -> List[EnrichedToken]:
        """Tokens held by ``address`` with metadata and formatted amounts.

        Pricing fields are left unset. Returns an empty list when upstream fails.

        Raises:
            ValidationError: For a malformed address
        """
        validate_address(address)

        try:
            utxos = await self.gateway.execute(lambda: self._source.get_address_utxos(address))
            amounts = self._aggregate_token_amounts(utxos)
            logger.info(f"[AlephiumDataService] Processing {len(amounts)} unique tokens for {address[:8]}...")

            types = await self.classifier.classify_many(amounts)
            tokens = []
            for token_id, amount in amounts.items():
                tokens.append(await self.enricher.enrich(
                    token_id,
                    amount,
                    types[token_id].is_nft,
                    resolve_nft_metadata=not skip_nft_metadata,
                ))
        except AlphDataError as e:
            self._error_handler.handle_error(e, component="AlephiumDataService",
                                             context={"address": address[:8]}, reraise=False)
            return []

        nft_count = sum(1 for token in tokens if token.is_nft)
        logger.info(f"[AlephiumDataService] {len(tokens)} tokens: {len(tokens) - nft_count} fungible, {nft_count} NFTs")
        return tokens

    async def get_address_nfts(self, address: str) -> List[EnrichedToken]:
        """NFTs held by ``address``, with token URI documents resolved."""
        tokens = await self.get_address_tokens(address, skip_nft_metadata=False)
        return [token for token in tokens if token.is_nft]

    async def fetch_token_transactions(self, token_id: str, limit: int = 20) -> List[ExplorerTransaction]:
        return await self.transactions.fetch_token_transactions(token_id, limit)

    async def fetch_latest_token_transactions(self, token_ids: Iterable[str], limit: int = 5) -> List[ExplorerTransaction]:
        return await self.transactions.fetch_latest_token_transactions(token_ids, limit)

    # Balance history

    async def fetch_balance_history(self, address: str, days: Optional[int] = None) -> List[BalanceHistoryPoint]:
        if days is None:
            days = self.config.history.default_days
        return await self.history.get_history(address, days)

    def clear_balance_history_cache(self, address: Optional[str] = None) -> int:
        return self.history.clear_cache(address)

    def get_balance_history_cache_stats(self) -> Dict[str, Any]:
        return self.history.get_cache_stats()

    # Network

    async def fetch_network_stats(self) -> NetworkStats:
        """Network statistics; defaults stand in for anything unavailable."""
        try:
            return await self.network_stats.fetch()
        except Exception as e:
            self._error_handler.handle_error(e, component="NetworkStats", reraise=False)
            return NetworkStats()

    # Token cache maintenance

    def clear_token_cache(self) -> None:
        self.metadata_cache.clear_all()
        self.type_cache.clear_all()
        self.token_list.clear()
        logger.info("[AlephiumDataService] Cleared token metadata, token types and token list")

    def clear_token_cache_for_token(self, token_id: str) -> None:
        self.metadata_cache.clear_token(token_id)
        self.type_cache.clear_token(token_id)

    async def refresh_token_metadata(self, token_id: str) -> Optional[TokenMetadataRecord]:
        """Drop cached data for one token and fetch its on-chain metadata again."""
        logger.info(f"[AlephiumDataService] Refreshing metadata for {token_id[:8]}...")
        self.clear_token_cache_for_token(token_id)
        result = await self.enricher.fetch_fungible_metadata(token_id)
        return result.unwrap_or(None)

    async def refresh_all_token_metadata(self, token_ids: Iterable[str]) -> List[Dict[str, Any]]:
        token_ids = list(token_ids)
        logger.info(f"[AlephiumDataService] Refreshing metadata for {len(token_ids)} tokens")
        self.clear_token_cache()

        results = []
        for token_id in token_ids:
            result = await self.enricher.fetch_fungible_metadata(token_id)
            entry: Dict[str, Any] = {"token_id": token_id, "metadata": result.value, "success": result.ok}
            if not result.ok:
                entry["error"] = result.error.message
            results.append(entry)
        return results

    def get_error_stats(self) -> Dict[str, Any]:
        """Counts of failures absorbed at best-effort boundaries, by type and component."""
        return self._error_handler.get_error_stats()

    def get_token_cache_stats(self) -> Dict[str, Any]:
        return {
            "metadata": self.metadata_cache.get_stats(),
            "token_types": self.type_cache.get_stats(),
            "token_list": self.token_list.stats(),
            "rate_limiter": {
                "queue_length": self.gateway.queue_length,
                "active_requests": self.gateway.active_requests,
            },
        }

    # Lifecycle

    async def aclose(self) -> None:
        await self.gateway.aclose()
        await self._source.aclose()
        await self._http_client.aclose()
        safe_execute(self._store.close, component="AlephiumDataService")

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.aclose()
