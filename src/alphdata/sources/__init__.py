"""
Upstream data sources: the node/indexer capability, the explorer API,
the community token list and NFT metadata URI resolution.
"""

from .base import RemoteDataSource, validate_address, validate_token_id, parse_payload
from .alephium import AlephiumSource
from .explorer_api import ExplorerApiSource
from .token_list import TokenListProvider
from .uri_fetcher import MetadataURIFetcher, extract_image_url

__all__ = [
    "RemoteDataSource",
    "AlephiumSource",
    "ExplorerApiSource",
    "TokenListProvider",
    "MetadataURIFetcher",
    "extract_image_url",
    "validate_address",
    "validate_token_id",
    "parse_payload",
]
