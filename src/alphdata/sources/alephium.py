from __future__ import annotations

"""Alephium Node and Explorer Backend Source
===========================================

``RemoteDataSource`` implementation over two REST services:

- the full node (``https://node.mainnet.alephium.org``): balances, UTXOs,
  node and chain info
- the explorer backend (``https://backend.mainnet.alephium.org``): token
  standards, token metadata and transaction history

Every response is validated into a payload model before it leaves this module.
"""

from typing import Any, Dict, List, Optional

from loguru import logger

from alphdata.config import NodeConfig
from alphdata.exceptions import NotFoundError, ParseError
from alphdata.sources.base import RemoteDataSource, parse_payload
from alphdata.sources.models import (
    AddressBalance,
    ChainInfo,
    ExplorerTransaction,
    FungibleTokenMetadata,
    NFTMetadata,
    NodeInfo,
    TokenStdInfo,
    UtxoList,
)
from alphdata.types import TokenStandard, safe_token_standard
from alphdata.utils.http_client import DataHTTPClient

__all__ = ["AlephiumSource"]

NODE_ENDPOINT = "node"
EXPLORER_BACKEND_ENDPOINT = "explorer_backend"

_API_ENDPOINTS = {
    "address_balance": "/addresses/{address}/balance",
    "address_utxos": "/addresses/{address}/utxos",
    "node_info": "/infos/node",
    "chain_info": "/blockflow/chain-info",
    "token_std": "/tokens",
    "fungible_metadata": "/tokens/fungible-metadata",
    "nft_metadata": "/tokens/nft-metadata",
    "address_transactions": "/addresses/{address}/transactions",
    "token_transactions": "/tokens/{token_id}/transactions",
}


class AlephiumSource(RemoteDataSource):
    """Alephium mainnet data source.

    Example:
        ```python
        source = AlephiumSource(NodeConfig())
        balance = await source.get_address_balance("1DrDyTr9RpRsQnDnXo2YRiPzPW4ooHX5LLoqXrqfMrpQH")
        await source.aclose()
        ```
    """

    def __init__(self, config: Optional[NodeConfig] = None, http_client: Optional[DataHTTPClient] = None):
        self.config = config or NodeConfig()
        self._owns_client = http_client is None
        self._http_client = http_client or DataHTTPClient(
            default_timeout=self.config.timeout_seconds,
            max_retries=self.config.max_retries,
            retry_delay=self.config.retry_delay,
        )

    async def _setup_endpoints(self) -> None:
        if not self._http_client.has_endpoint(NODE_ENDPOINT):
            await self._http_client.add_endpoint(NODE_ENDPOINT, self.config.node_url)
        if not self._http_client.has_endpoint(EXPLORER_BACKEND_ENDPOINT):
            await self._http_client.add_endpoint(EXPLORER_BACKEND_ENDPOINT, self.config.explorer_backend_url)

    async def _get(self, endpoint_name: str, path: str, params: Optional[Dict[str, Any]] = None) -> Any:
        await self._setup_endpoints()
        return await self._http_client.get(endpoint_name, path, params=params)

    async def _post(self, endpoint_name: str, path: str, json_data: Any) -> Any:
        await self._setup_endpoints()
        return await self._http_client.post(endpoint_name, path, json_data=json_data)

    # Node

    async def get_address_balance(self, address: str) -> AddressBalance:
        payload = await self._get(NODE_ENDPOINT, _API_ENDPOINTS["address_balance"].format(address=address))
        return parse_payload(AddressBalance, payload, "address balance")

    async def get_address_utxos(self, address: str) -> UtxoList:
        payload = await self._get(NODE_ENDPOINT, _API_ENDPOINTS["address_utxos"].format(address=address))
        return parse_payload(UtxoList, payload, "UTXO list")

    async def get_node_info(self) -> NodeInfo:
        payload = await self._get(NODE_ENDPOINT, _API_ENDPOINTS["node_info"])
        return parse_payload(NodeInfo, payload, "node info")

    async def get_chain_info(self, from_group: int = 0, to_group: int = 0) -> ChainInfo:
        payload = await self._get(
            NODE_ENDPOINT,
            _API_ENDPOINTS["chain_info"],
            params={"fromGroup": from_group, "toGroup": to_group},
        )
        return parse_payload(ChainInfo, payload, "chain info")

    # Explorer backend: tokens

    async def _post_token_query(self, path_key: str, token_id: str) -> Dict[str, Any]:
        """POST a single-id token query and return the entry for that id."""
        payload = await self._post(EXPLORER_BACKEND_ENDPOINT, _API_ENDPOINTS[path_key], [token_id])
        if not isinstance(payload, list):
            raise ParseError(path_key, f"expected a list, got {type(payload).__name__}")

        for entry in payload:
            if isinstance(entry, dict) and token_id in (entry.get("id"), entry.get("token")):
                return entry
        raise NotFoundError("token", token_id)

    async def guess_std_token_type(self, token_id: str) -> TokenStandard:
        entry = parse_payload(TokenStdInfo, await self._post_token_query("token_std", token_id), "token standard")
        standard = safe_token_standard(entry.std_interface_id)
        logger.debug(f"[AlephiumSource] Token {token_id[:8]}... interface {entry.std_interface_id} -> {standard}")
        return standard

    async def fetch_fungible_token_metadata(self, token_id: str) -> FungibleTokenMetadata:
        entry = await self._post_token_query("fungible_metadata", token_id)
        return parse_payload(FungibleTokenMetadata, entry, "fungible token metadata")

    async def fetch_nft_metadata(self, token_id: str) -> NFTMetadata:
        entry = await self._post_token_query("nft_metadata", token_id)
        return parse_payload(NFTMetadata, entry, "NFT metadata")

    # Explorer backend: transactions

    def _parse_transactions(self, payload: Any, what: str) -> List[ExplorerTransaction]:
        if not isinstance(payload, list):
            raise ParseError(what, f"expected a list, got {type(payload).__name__}")

        transactions = []
        for raw in payload:
            try:
                transactions.append(parse_payload(ExplorerTransaction, raw, "transaction"))
            except (ParseError, ValueError, OverflowError) as e:
                tx_hash = raw.get("hash", "unknown") if isinstance(raw, dict) else "unknown"
                reason = e.message if isinstance(e, ParseError) else str(e)
                logger.warning(f"[AlephiumSource] Skipping malformed transaction {str(tx_hash)[:8]}: {reason}")
        return transactions

    async def get_address_transactions(self, address: str, page: int = 1,
                                       limit: int = 20) -> List[ExplorerTransaction]:
        payload = await self._get(
            EXPLORER_BACKEND_ENDPOINT,
            _API_ENDPOINTS["address_transactions"].format(address=address),
            params={"page": page, "limit": limit},
        )
        return self._parse_transactions(payload, "address transactions")

    async def fetch_token_transactions(self, token_id: str, limit: int = 20) -> List[ExplorerTransaction]:
        payload = await self._get(
            EXPLORER_BACKEND_ENDPOINT,
            _API_ENDPOINTS["token_transactions"].format(token_id=token_id),
            params={"page": 1, "limit": limit},
        )
        return self._parse_transactions(payload, "token transactions")

    async def aclose(self) -> None:
        if self._owns_client:
            await self._http_client.aclose()
