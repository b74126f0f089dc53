"""
Token metadata enrichment.

Merges three sources into one normalized record per token, in priority order:

1. On-chain fungible metadata (name and symbol hex-decoded), cached forever
2. The community token list (logo, description, curated names)
3. A synthesized placeholder derived from the token id

NFTs skip the on-chain fungible lookup; their name and image come from the
document behind the token URI when resolution is requested.
"""

from typing import Optional

from loguru import logger

from alphdata.cache.caches import TokenMetadataCache
from alphdata.config import DEFAULT_IPFS_GATEWAYS
from alphdata.core.dedup import RequestDeduplicator
from alphdata.core.rate_limiter import RateLimitedGateway
from alphdata.error_handler import Result
from alphdata.exceptions import ParseError
from alphdata.models import EnrichedToken, NFTDocument, TokenMetadataRecord
from alphdata.sources.base import RemoteDataSource
from alphdata.sources.models import TokenListEntry
from alphdata.sources.token_list import TokenListProvider
from alphdata.sources.uri_fetcher import MetadataURIFetcher
from alphdata.utils.formatting import decode_hex_string, format_token_amount, ipfs_to_gateway

UNKNOWN_TOKEN_LOGO = "https://raw.githubusercontent.com/alephium/token-list/master/logos/unknown.png"


def fallback_token_data(token_id: str) -> TokenMetadataRecord:
    """Placeholder metadata for a token nobody knows anything about."""
    return TokenMetadataRecord(
        id=token_id,
        name=f"Unknown Token ({token_id[:6]}...)",
        symbol=f"TOKEN-{token_id[:4]}",
        decimals=0,
        logo_uri=UNKNOWN_TOKEN_LOGO,
        description="Token information not available in the official token list",
        source="fallback",
    )


def token_list_record(entry: TokenListEntry) -> TokenMetadataRecord:
    return TokenMetadataRecord(
        id=entry.id,
        name=entry.name,
        symbol=entry.symbol,
        decimals=entry.decimals,
        logo_uri=entry.logo_uri,
        description=entry.description,
        name_on_chain=entry.name_on_chain,
        symbol_on_chain=entry.symbol_on_chain,
        source="token-list",
    )


class MetadataEnricher:
    """Build ``EnrichedToken`` views from raw token balances."""

    def __init__(self, source: RemoteDataSource, gateway: RateLimitedGateway,
                 metadata_cache: TokenMetadataCache, token_list: TokenListProvider,
                 uri_fetcher: MetadataURIFetcher, image_gateway: str = DEFAULT_IPFS_GATEWAYS[0]):
        self._source = source
        self._gateway = gateway
        self._cache = metadata_cache
        self._token_list = token_list
        self._uri_fetcher = uri_fetcher
        self.image_gateway = image_gateway
        self._dedup = RequestDeduplicator("token_metadata")

    async def fetch_fungible_metadata(self, token_id: str, use_cache: bool = True) -> Result[TokenMetadataRecord]:
        """On-chain metadata for a fungible token, served from cache when present."""
        if use_cache:
            cached = self._cache.get_metadata(token_id)
            if cached is not None:
                logger.debug(f"[MetadataEnricher] Using cached metadata for {token_id[:8]}...")
                return Result.success(cached)

        return await self._dedup.dedupe(token_id, lambda: self._fetch_fungible_uncached(token_id, use_cache))

    async def _fetch_fungible_uncached(self, token_id: str, use_cache: bool) -> Result[TokenMetadataRecord]:
        try:
            metadata = await self._gateway.execute(lambda: self._source.fetch_fungible_token_metadata(token_id))
        except Exception as e:
            result = Result.failure(e)
            logger.warning(f"[MetadataEnricher] On-chain metadata unavailable for {token_id[:8]}...: "
                           f"{result.error.message}")
            return result

        record = TokenMetadataRecord(
            id=token_id,
            name=decode_hex_string(metadata.name) if metadata.name else f"Token ({token_id[:6]}...)",
            symbol=decode_hex_string(metadata.symbol) if metadata.symbol else f"TKN-{token_id[:4]}",
            decimals=metadata.decimals,
            raw_name=metadata.name,
            raw_symbol=metadata.symbol,
            total_supply=metadata.total_supply,
        )
        logger.debug(f"[MetadataEnricher] Decoded {record.raw_name!r} -> {record.name!r}, "
                     f"{record.raw_symbol!r} -> {record.symbol!r}")

        if use_cache:
            record = self._cache.set_metadata(record)
        return Result.success(record)

    async def fetch_nft_document(self, token_id: str) -> Result[NFTDocument]:
        """Resolve the document behind an NFT's token URI."""
        try:
            nft = await self._gateway.execute(lambda: self._source.fetch_nft_metadata(token_id))
        except Exception as e:
            result = Result.failure(e)
            logger.debug(f"[MetadataEnricher] NFT metadata unavailable for {token_id[:8]}...: {result.error.message}")
            return result

        if not nft.token_uri:
            return Result.failure(ParseError("NFT metadata", f"no token URI for {token_id}"))

        resolved = await self._uri_fetcher.resolve(nft.token_uri)
        if not resolved.ok:
            return resolved
        document = resolved.value.model_copy(update={
            "token_uri": nft.token_uri,
            "collection_id": nft.collection_id,
        })
        return Result.success(document)

    async def resolve_metadata(self, token_id: str, is_nft: bool) -> TokenMetadataRecord:
        """Best metadata record available for ``token_id``. Never raises for upstream failures."""
        list_entry = await self._token_list.get_token(token_id)

        if not is_nft:
            chain = await self.fetch_fungible_metadata(token_id)
            if chain.ok:
                record = chain.value
                return record.model_copy(update={
                    "logo_uri": list_entry.logo_uri if list_entry else None,
                    "description": (list_entry.description if list_entry else None) or record.description,
                    "source": "chain",
                })
            logger.debug(f"[MetadataEnricher] Falling back to token list for {token_id[:8]}...")

        if list_entry is not None:
            return token_list_record(list_entry)
        return fallback_token_data(token_id)

    async def enrich(self, token_id: str, raw_amount: str, is_nft: bool,
                     resolve_nft_metadata: bool = False) -> EnrichedToken:
        """Combine a raw balance with the best metadata available for the token."""
        record = await self.resolve_metadata(token_id, is_nft)

        document: Optional[NFTDocument] = None
        if is_nft and resolve_nft_metadata:
            resolved = await self.fetch_nft_document(token_id)
            if resolved.ok:
                document = resolved.value

        if is_nft:
            # logoURI belongs to fungible tokens; NFTs only show their own artwork
            image_url = document.image_url if document else record.image_url
        else:
            image_url = record.logo_uri or record.image_url

        if is_nft:
            formatted_amount = raw_amount
        else:
            try:
                formatted_amount = format_token_amount(raw_amount, record.decimals)
            except ValueError as e:
                logger.warning(f"[MetadataEnricher] Unformattable amount for {token_id[:8]}...: {e}")
                formatted_amount = raw_amount

        return EnrichedToken(
            id=token_id,
            amount=raw_amount,
            name=(document.name if document and document.name else None) or record.name or token_id,
            symbol=record.symbol or token_id[:6],
            decimals=record.decimals,
            formatted_amount=formatted_amount,
            is_nft=is_nft,
            name_on_chain=record.name_on_chain,
            symbol_on_chain=record.symbol_on_chain,
            logo_uri=record.logo_uri,
            description=(document.description if document and document.description else None) or record.description,
            token_uri=document.token_uri if document else record.token_uri,
            image_url=ipfs_to_gateway(image_url, self.image_gateway),
            attributes=document.attributes if document else None,
            metadata_source="nft-metadata" if document else (record.source or "fallback"),
        )
