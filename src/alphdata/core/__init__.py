"""
Core runtime pieces: logging setup, request pacing and deduplication.
"""

from .dedup import RequestDeduplicator
from .rate_limiter import RateLimitedGateway
from .logging_config import setup_logging, create_module_filter

__all__ = [
    "RequestDeduplicator",
    "RateLimitedGateway",
    "setup_logging",
    "create_module_filter",
]
