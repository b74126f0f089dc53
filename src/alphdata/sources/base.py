from __future__ import annotations

"""Remote Data Source Interface
==============================

The abstract capability the core consumes: balance and UTXO lookups,
token standard classification, token metadata, and transaction history.
Concrete sources translate these calls to a specific node/indexer API and
return validated payload models from ``alphdata.sources.models``.
"""

import re
from abc import ABC, abstractmethod
from typing import Any, List, Type, TypeVar

from loguru import logger
from pydantic import BaseModel, ValidationError as PydanticValidationError

from alphdata.exceptions import InvalidAddressError, ParseError, ValidationError
from alphdata.sources.models import (
    AddressBalance,
    ChainInfo,
    ExplorerTransaction,
    FungibleTokenMetadata,
    NFTMetadata,
    NodeInfo,
    UtxoList,
)
from alphdata.types import TokenStandard

__all__ = ["RemoteDataSource", "validate_address", "validate_token_id", "parse_payload"]

ADDRESS_MIN_LENGTH = 44
ADDRESS_MAX_LENGTH = 58
_ADDRESS_RE = re.compile(r"^[1-9A-HJ-NP-Za-km-z]+$")
_TOKEN_ID_RE = re.compile(r"^[0-9a-fA-F]{64}$")

M = TypeVar("M", bound=BaseModel)


def validate_address(address: Any) -> str:
    """Check an address for presence, length and base58 alphabet.

    Returns:
        The address unchanged

    Raises:
        InvalidAddressError: If any check fails
    """
    if not isinstance(address, str) or not address.strip():
        raise ValidationError("Address is required", context={"address": address})

    if not ADDRESS_MIN_LENGTH <= len(address) <= ADDRESS_MAX_LENGTH:
        logger.error(f"Invalid address length: {address!r} (length {len(address)})")
        raise InvalidAddressError(address, "incorrect length")

    if not _ADDRESS_RE.match(address):
        logger.error(f"Invalid address characters: {address!r}")
        raise InvalidAddressError(address, "invalid characters")

    return address


def validate_token_id(token_id: Any) -> str:
    """Token ids are 32-byte hex strings."""
    if not isinstance(token_id, str) or not _TOKEN_ID_RE.match(token_id):
        raise ValidationError(f"Invalid token id: {token_id!r}", context={"token_id": token_id})
    return token_id.lower()


def parse_payload(model: Type[M], payload: Any, what: str) -> M:
    """Validate a raw payload into ``model``, mapping failures to ParseError."""
    try:
        return model.model_validate(payload)
    except PydanticValidationError as e:
        raise ParseError(what, f"{e.error_count()} validation error(s)", cause=e)


class RemoteDataSource(ABC):
    """Abstract node/indexer capability used by every service."""

    @abstractmethod
    async def get_address_balance(self, address: str) -> AddressBalance:
        """Current base-asset balance of an address (atto units)."""

    @abstractmethod
    async def get_address_utxos(self, address: str) -> UtxoList:
        """Unspent outputs owned by an address."""

    @abstractmethod
    async def guess_std_token_type(self, token_id: str) -> TokenStandard:
        """Token standard of ``token_id``.

        Raises:
            NotFoundError: If the token is unknown upstream
        """

    @abstractmethod
    async def fetch_fungible_token_metadata(self, token_id: str) -> FungibleTokenMetadata:
        """On-chain name, symbol and decimals of a fungible token."""

    @abstractmethod
    async def fetch_nft_metadata(self, token_id: str) -> NFTMetadata:
        """Token URI and collection of a non-fungible token."""

    @abstractmethod
    async def get_address_transactions(self, address: str, page: int = 1,
                                       limit: int = 20) -> List[ExplorerTransaction]:
        """One page of an address's transactions, newest first."""

    @abstractmethod
    async def fetch_token_transactions(self, token_id: str, limit: int = 20) -> List[ExplorerTransaction]:
        """Latest transactions involving a token."""

    @abstractmethod
    async def get_node_info(self) -> NodeInfo:
        """Build information of the node."""

    @abstractmethod
    async def get_chain_info(self, from_group: int = 0, to_group: int = 0) -> ChainInfo:
        """Current height of one chain."""

    async def aclose(self) -> None:
        """Release network resources."""
