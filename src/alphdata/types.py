"""
Consolidated type definitions for the alphdata package.

This module is the single source of truth for the enums shared between
sources, caches and services, so string tags never drift between layers.
"""

from enum import Enum
from typing import Literal, Union


class HistorySource(str, Enum):
    """Provenance of a balance history point."""
    API = "api"                # Returned by an authoritative history endpoint
    CALCULATED = "calculated"  # Reconstructed from the transaction log
    ESTIMATED = "estimated"    # Synthetic series anchored at the current balance

    def __str__(self) -> str:
        return self.value


class TokenStandard(str, Enum):
    """Token standard tags reported by the explorer backend."""
    FUNGIBLE = "fungible"
    NON_FUNGIBLE = "non-fungible"
    UNKNOWN = "unknown"

    def __str__(self) -> str:
        return self.value


class StorageType(str, Enum):
    """Persistent tier implementations."""
    MEMORY = "memory"
    FILE = "file"

    def __str__(self) -> str:
        return self.value


HistorySourceLiteral = Literal["api", "calculated", "estimated"]

TokenStandardLiteral = Literal["fungible", "non-fungible", "unknown"]

# Standard interface ids published by the explorer for token contracts
STD_INTERFACE_FUNGIBLE = "0001"
STD_INTERFACE_NFT = "0003"


def safe_token_standard(value: Union[str, TokenStandard, None]) -> TokenStandard:
    """
    Convert a raw standard tag to TokenStandard, defaulting to UNKNOWN.

    Accepts the explorer's interface ids ("0001", "0003...") as well as the
    plain tags used in cached records.
    """
    if isinstance(value, TokenStandard):
        return value
    if not value:
        return TokenStandard.UNKNOWN

    text = str(value).strip().lower()
    if text.startswith(STD_INTERFACE_NFT):
        return TokenStandard.NON_FUNGIBLE
    if text.startswith(STD_INTERFACE_FUNGIBLE):
        return TokenStandard.FUNGIBLE
    try:
        return TokenStandard(text)
    except ValueError:
        return TokenStandard.UNKNOWN
