"""
alphdata: wallet data access for the Alephium blockchain.

Token holdings with normalized metadata, daily balance history with
provenance tags, and network statistics, served through paced, deduplicated
and cached upstream calls.
"""

__version__ = "0.1.0"

from alphdata.config import AlphDataConfig, load_config, auto_load_config
from alphdata.exceptions import (
    AlphDataError,
    ConfigurationError,
    ValidationError,
    InvalidAddressError,
    UpstreamUnavailableError,
    CorsRestrictedError,
    NotFoundError,
    ParseError,
    StorageError,
    HistoryUnavailableError,
)
from alphdata.error_handler import Result
from alphdata.models import (
    TokenTypeRecord,
    TokenMetadataRecord,
    NFTDocument,
    EnrichedToken,
    BalanceHistoryPoint,
    CachedBalanceHistory,
    AddressBalanceSummary,
)
from alphdata.types import HistorySource, TokenStandard, StorageType
from alphdata.services import AlephiumDataService, NetworkStats

__all__ = [
    "__version__",
    "AlphDataConfig",
    "load_config",
    "auto_load_config",
    "AlphDataError",
    "ConfigurationError",
    "ValidationError",
    "InvalidAddressError",
    "UpstreamUnavailableError",
    "CorsRestrictedError",
    "NotFoundError",
    "ParseError",
    "StorageError",
    "HistoryUnavailableError",
    "Result",
    "TokenTypeRecord",
    "TokenMetadataRecord",
    "NFTDocument",
    "EnrichedToken",
    "BalanceHistoryPoint",
    "CachedBalanceHistory",
    "AddressBalanceSummary",
    "HistorySource",
    "TokenStandard",
    "StorageType",
    "AlephiumDataService",
    "NetworkStats",
]
