"""
Shared fixtures for the alphdata test suite.
"""

from decimal import Decimal

import pytest
from unittest.mock import AsyncMock, Mock

from alphdata.cache.store import MemoryKeyValueStore
from alphdata.core.rate_limiter import RateLimitedGateway
from alphdata.sources.base import RemoteDataSource

# 2024-01-15 12:00:00 UTC
NOON_2024_01_15 = 1705320000.0

ADDRESS = "1DrDyTr9RpRsQnDnXo2YRiPzPW4ooHX5LLoqXrqfMrpQH"
OTHER_ADDRESS = "1BzBVtX3yiDwmpHcWtC2rWcCNTcqnERPMDiUA7dhWWhqf"

ATTO = 10 ** 18


def token_id(n: int) -> str:
    """Deterministic 64-hex token id."""
    return f"{n:064x}"


def alph(amount) -> str:
    """Whole ALPH as an atto integer string."""
    return str(int(Decimal(str(amount)) * ATTO))


class FakeClock:
    """Settable wall clock in seconds."""

    def __init__(self, now: float = NOON_2024_01_15):
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


# ============================================================================
# Core Fixtures
# ============================================================================

@pytest.fixture
def clock():
    """Clock frozen at 2024-01-15 12:00 UTC."""
    return FakeClock()


@pytest.fixture
def store():
    return MemoryKeyValueStore()


@pytest.fixture
def gateway():
    """Gateway without pacing so tests do not sleep."""
    return RateLimitedGateway(max_concurrent=3, min_delay=0, name="test")


@pytest.fixture
def address():
    return ADDRESS


# ============================================================================
# Upstream Mocks
# ============================================================================

@pytest.fixture
def mock_source():
    """AsyncMock standing in for a RemoteDataSource."""
    return AsyncMock(spec=RemoteDataSource)


@pytest.fixture
def mock_http_client():
    """HTTP client double with every endpoint already registered."""
    client = Mock()
    client.has_endpoint = Mock(return_value=True)
    client.add_endpoint = AsyncMock()
    client.get = AsyncMock()
    client.post = AsyncMock()
    client.get_url = AsyncMock()
    client.aclose = AsyncMock()
    return client
