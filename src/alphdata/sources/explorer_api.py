from __future__ import annotations

"""Explorer Public API Source
============================

Read-only client for ``https://explorer.alephium.org/api``: candidate
balance-history endpoints and the network statistics series.
"""

from typing import Any, List, Optional, Type

from loguru import logger

from alphdata.config import DEFAULT_EXPLORER_API_URL
from alphdata.exceptions import AlphDataError, ParseError, UpstreamUnavailableError
from alphdata.sources.base import M, parse_payload
from alphdata.sources.models import (
    BlocksPage,
    BlockSummary,
    BlockTimeSample,
    HashrateSample,
    HistoryApiPoint,
    SupplyInfo,
    TotalCount,
    TxCountSample,
)
from alphdata.utils.http_client import DataHTTPClient

__all__ = ["ExplorerApiSource", "HISTORY_ENDPOINTS"]

EXPLORER_API_ENDPOINT = "explorer_api"

# Tried in order; the first non-empty array wins
HISTORY_ENDPOINTS = (
    "/addresses/{address}/balance-history",
    "/addresses/{address}/history",
    "/balances/{address}/history",
)


class ExplorerApiSource:
    """Explorer API client for history and statistics."""

    def __init__(self, http_client: DataHTTPClient, base_url: str = DEFAULT_EXPLORER_API_URL):
        self._http_client = http_client
        self.base_url = base_url

    async def _get(self, path: str, params: Optional[dict] = None) -> Any:
        if not self._http_client.has_endpoint(EXPLORER_API_ENDPOINT):
            await self._http_client.add_endpoint(EXPLORER_API_ENDPOINT, self.base_url)
        return await self._http_client.get(EXPLORER_API_ENDPOINT, path, params=params)

    async def _get_list(self, path: str, model: Type[M], what: str, params: Optional[dict] = None) -> List[M]:
        payload = await self._get(path, params=params)
        if not isinstance(payload, list):
            raise ParseError(what, f"expected a list, got {type(payload).__name__}")
        return [parse_payload(model, item, what) for item in payload]

    async def fetch_balance_history(self, address: str, days: int) -> List[HistoryApiPoint]:
        """Daily balances from the first history endpoint that answers.

        Raises:
            UpstreamUnavailableError: If no endpoint returns a non-empty array
        """
        last_error: Optional[AlphDataError] = None

        for template in HISTORY_ENDPOINTS:
            path = template.format(address=address)
            try:
                points = await self._get_list(path, HistoryApiPoint, "balance history", params={"days": days})
            except AlphDataError as e:
                logger.debug(f"[ExplorerApi] History endpoint {path} failed: {e.message}")
                last_error = e
                continue

            if points:
                logger.info(f"[ExplorerApi] History endpoint {path} returned {len(points)} points")
                return points
            logger.debug(f"[ExplorerApi] History endpoint {path} returned no data")

        raise UpstreamUnavailableError(
            "No explorer history endpoint returned data",
            url=self.base_url,
            cause=last_error,
        )

    async def get_hashrates(self) -> List[HashrateSample]:
        return await self._get_list("/hashrates", HashrateSample, "hashrates")

    async def get_block_times(self) -> List[BlockTimeSample]:
        return await self._get_list("/block-times", BlockTimeSample, "block times")

    async def get_supply(self) -> SupplyInfo:
        return parse_payload(SupplyInfo, await self._get("/supply"), "supply")

    async def get_tx_counts(self) -> List[TxCountSample]:
        return await self._get_list("/charts/txs", TxCountSample, "transaction counts")

    async def get_latest_blocks(self, limit: int = 3) -> List[BlockSummary]:
        payload = await self._get("/blocks", params={"page": 1, "limit": limit})
        return parse_payload(BlocksPage, payload, "blocks").blocks

    async def get_total_addresses(self) -> int:
        return parse_payload(TotalCount, await self._get("/addresses/total"), "address count").total

    async def get_total_tokens(self) -> int:
        return parse_payload(TotalCount, await self._get("/tokens/total"), "token count").total
