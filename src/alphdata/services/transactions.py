"""
Transaction log access: address history with paging and a UTXO-derived
fallback, plus per-token transaction feeds.
"""

import time
from typing import Callable, Iterable, List

from loguru import logger

from alphdata.core.rate_limiter import RateLimitedGateway
from alphdata.exceptions import AlphDataError, handle_exception
from alphdata.sources.base import RemoteDataSource
from alphdata.sources.models import ExplorerTransaction, TransactionInput, TransactionOutput, UtxoList

MAX_PAGE_SIZE = 100

FALLBACK_GAS_AMOUNT = "20000"
FALLBACK_GAS_PRICE = "100000000000"
FALLBACK_SPACING_MS = 3_600_000


def transactions_from_utxos(address: str, utxos: UtxoList, limit: int, now_ms: int) -> List[ExplorerTransaction]:
    """Simplified receive-only transactions, one per UTXO, spaced an hour apart newest first.

    Sender and block are unknown at this level; timestamps are synthetic.
    """
    transactions = []
    for index, utxo in enumerate(utxos.utxos[:limit]):
        key = utxo.ref.key if utxo.ref and utxo.ref.key else None
        transactions.append(ExplorerTransaction(
            hash=key or f"tx-{index}",
            block_hash=f"block-{index}",
            timestamp=now_ms - index * FALLBACK_SPACING_MS,
            inputs=[TransactionInput(address="unknown", atto_alph_amount=utxo.amount)],
            outputs=[TransactionOutput(address=address, atto_alph_amount=utxo.amount, tokens=utxo.tokens)],
            gas_amount=FALLBACK_GAS_AMOUNT,
            gas_price=FALLBACK_GAS_PRICE,
            script_execution_ok=True,
        ))
    return transactions


class TransactionService:
    """Fetches transaction logs through the rate-limited gateway."""

    def __init__(self, source: RemoteDataSource, gateway: RateLimitedGateway,
                 clock: Callable[[], float] = time.time):
        self._source = source
        self._gateway = gateway
        self._clock = clock

    async def get_address_transactions(self, address: str, limit: int = 20) -> List[ExplorerTransaction]:
        """Up to ``limit`` transactions of ``address``, newest first.

        Falls back to UTXO-derived transactions when the explorer fails.

        Raises:
            AlphDataError: If both the explorer and the UTXO lookup fail
        """
        try:
            return await self._fetch_pages(address, limit)
        except (AlphDataError, ValueError, OverflowError) as e:
            error = handle_exception(e, context={"address": address[:8]})
            logger.warning(f"[Transactions] Explorer backend failed for {address[:8]}...: {error.message}")

        logger.info(f"[Transactions] Falling back to UTXO-derived history for {address[:8]}...")
        utxos = await self._gateway.execute(lambda: self._source.get_address_utxos(address))
        transactions = transactions_from_utxos(address, utxos, limit, int(self._clock() * 1000))
        logger.info(f"[Transactions] Generated {len(transactions)} simplified transactions from UTXOs")
        return transactions

    async def _fetch_pages(self, address: str, limit: int) -> List[ExplorerTransaction]:
        transactions: List[ExplorerTransaction] = []
        # Page size stays fixed so page offsets line up
        page_size = min(MAX_PAGE_SIZE, limit)
        page = 1
        while len(transactions) < limit:
            batch = await self._gateway.execute(
                lambda: self._source.get_address_transactions(address, page=page, limit=page_size)
            )
            transactions.extend(batch)
            if len(batch) < page_size:
                break
            page += 1

        logger.debug(f"[Transactions] Fetched {len(transactions)} transactions for {address[:8]}... in {page} page(s)")
        return transactions[:limit]

    async def fetch_token_transactions(self, token_id: str, limit: int = 20) -> List[ExplorerTransaction]:
        """Latest transactions of a token; empty on any failure."""
        try:
            return await self._gateway.execute(lambda: self._source.fetch_token_transactions(token_id, limit))
        except AlphDataError as e:
            logger.error(f"[Transactions] Error fetching transactions for token {token_id[:8]}...: {e.message}")
            return []

    async def fetch_latest_token_transactions(self, token_ids: Iterable[str], limit: int = 5) -> List[ExplorerTransaction]:
        """Most recent transactions across tokens, two per token, each tagged with its ``token_id``."""
        collected: List[ExplorerTransaction] = []

        for token_id in token_ids:
            if len(collected) >= limit:
                break
            for tx in await self.fetch_token_transactions(token_id, 2):
                collected.append(tx.model_copy(update={"token_id": token_id}))

        collected.sort(key=lambda tx: tx.timestamp or 0, reverse=True)
        return collected[:limit]
