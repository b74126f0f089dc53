"""
Services built on the sources and caches: classification, enrichment,
transaction deltas, balance history and network statistics, plus the
``AlephiumDataService`` facade that wires them together.
"""

from .token_classifier import TokenClassifier
from .metadata_enricher import MetadataEnricher, fallback_token_data
from .tx_delta import TransactionDeltaCalculator
from .transactions import TransactionService, transactions_from_utxos
from .balance_reconstructor import BalanceHistoryReconstructor
from .history_orchestrator import BalanceHistoryOrchestrator, BalanceHistorySimulator
from .network_stats import NetworkStats, NetworkStatsService
from .wallet_service import AlephiumDataService, build_store

__all__ = [
    "TokenClassifier",
    "MetadataEnricher",
    "fallback_token_data",
    "TransactionDeltaCalculator",
    "TransactionService",
    "transactions_from_utxos",
    "BalanceHistoryReconstructor",
    "BalanceHistoryOrchestrator",
    "BalanceHistorySimulator",
    "NetworkStats",
    "NetworkStatsService",
    "AlephiumDataService",
    "build_store",
]
