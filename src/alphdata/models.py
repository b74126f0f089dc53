"""
Application-ready records produced by alphdata.

These are the shapes handed to callers and written to the persistent cache.
Field aliases keep the persisted JSON layout in camelCase while Python code
uses snake_case attributes.
"""

from typing import Any, Dict, List, Optional
from pydantic import BaseModel, ConfigDict, Field, field_validator

from alphdata.types import HistorySource, TokenStandard


class _Record(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    def to_json_dict(self) -> Dict[str, Any]:
        """Dump using the persisted (camelCase) field names."""
        return self.model_dump(by_alias=True, exclude_none=True, mode="json")


class TokenTypeRecord(_Record):
    """Fungible or non-fungible classification of one token. Permanent once cached."""
    token_id: str = Field(alias="tokenId")
    is_nft: bool = Field(alias="isNFT")
    classified_as: TokenStandard = Field(default=TokenStandard.UNKNOWN, alias="type")
    cached_at: Optional[int] = Field(default=None, alias="cachedAt")


class TokenMetadataRecord(_Record):
    """Normalized token metadata merged from chain, token list and fallbacks."""
    id: str
    name: str
    symbol: str
    decimals: int = 0
    raw_name: Optional[str] = Field(default=None, alias="rawName")
    raw_symbol: Optional[str] = Field(default=None, alias="rawSymbol")
    total_supply: Optional[str] = Field(default=None, alias="totalSupply")
    logo_uri: Optional[str] = Field(default=None, alias="logoURI")
    description: Optional[str] = None
    token_uri: Optional[str] = Field(default=None, alias="tokenURI")
    image_url: Optional[str] = Field(default=None, alias="imageUrl")
    name_on_chain: Optional[str] = Field(default=None, alias="nameOnChain")
    symbol_on_chain: Optional[str] = Field(default=None, alias="symbolOnChain")
    cached_at: Optional[int] = Field(default=None, alias="cachedAt")
    source: Optional[str] = None

    @field_validator('decimals', mode='before')
    @classmethod
    def coerce_decimals(cls, v):
        try:
            return max(int(v), 0)
        except (TypeError, ValueError):
            return 0


class NFTDocument(_Record):
    """Resolved content of an NFT token URI."""
    name: Optional[str] = None
    description: Optional[str] = None
    image_url: Optional[str] = Field(default=None, alias="imageUrl")
    attributes: List[Any] = Field(default_factory=list)
    token_uri: Optional[str] = Field(default=None, alias="tokenUri")
    collection_id: Optional[str] = Field(default=None, alias="collectionId")
    cors_restricted: bool = Field(default=False, alias="corsRestricted")
    original_uri: Optional[str] = Field(default=None, alias="originalUri")
    raw: Dict[str, Any] = Field(default_factory=dict, exclude=True)


class EnrichedToken(_Record):
    """A token balance held by an address, with display-ready metadata.

    ``amount`` is the exact base-10 integer string from the chain. Pricing
    fields are declared for consumers but never populated here.
    """
    id: str
    amount: str
    name: str
    symbol: str
    decimals: int = 0
    formatted_amount: str = Field(alias="formattedAmount")
    is_nft: bool = Field(alias="isNFT")
    name_on_chain: Optional[str] = Field(default=None, alias="nameOnChain")
    symbol_on_chain: Optional[str] = Field(default=None, alias="symbolOnChain")
    logo_uri: Optional[str] = Field(default=None, alias="logoURI")
    description: Optional[str] = None
    token_uri: Optional[str] = Field(default=None, alias="tokenURI")
    image_url: Optional[str] = Field(default=None, alias="imageUrl")
    attributes: Optional[List[Any]] = None
    metadata_source: str = Field(default="fallback", alias="metadataSource")
    usd_value: Optional[float] = Field(default=None, alias="usdValue")
    token_price: Optional[float] = Field(default=None, alias="tokenPrice")
    price_source: Optional[str] = Field(default=None, alias="priceSource")


class BalanceHistoryPoint(_Record):
    """Base-asset balance at the end of one UTC calendar day."""
    date: str
    balance: float
    timestamp: int  # end-of-day epoch milliseconds
    source: HistorySource

    @field_validator('balance')
    @classmethod
    def validate_balance(cls, v):
        if v < 0:
            raise ValueError("balance cannot be negative")
        return v


class CachedBalanceHistory(_Record):
    """Persisted balance history for one (address, days) pair."""
    data: List[BalanceHistoryPoint]
    last_updated: int = Field(alias="lastUpdated")
    address: str
    days: int


class AddressBalanceSummary(_Record):
    """Base-asset balance of an address in whole ALPH."""
    balance: float
    locked_balance: float = Field(alias="lockedBalance")
    utxo_num: int = Field(alias="utxoNum")
