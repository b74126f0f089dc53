"""
End-to-end balance history through the real sources and services.

Only the HTTP client is replaced: requests are answered from a route table
so each scenario controls which upstream calls succeed.
"""

import random

import pytest

from alphdata.config import AlphDataConfig, RateLimitConfig
from alphdata.error_handler import ErrorHandler
from alphdata.exceptions import HistoryUnavailableError, ValidationError
from alphdata.services.wallet_service import AlephiumDataService
from alphdata.sources.explorer_api import HISTORY_ENDPOINTS
from alphdata.types import HistorySource
from alphdata.utils.http_client import HTTPClientError

from conftest import ADDRESS, OTHER_ADDRESS, alph

JAN_14_10AM = 1705226400000

BALANCE_PATH = f"/addresses/{ADDRESS}/balance"
UTXOS_PATH = f"/addresses/{ADDRESS}/utxos"
TRANSACTIONS_PATH = f"/addresses/{ADDRESS}/transactions"

RECEIVE_5 = {
    "hash": "receive",
    "timestamp": JAN_14_10AM,
    "inputs": [{"address": OTHER_ADDRESS, "attoAlphAmount": alph(5)}],
    "outputs": [{"address": ADDRESS, "attoAlphAmount": alph(5)}],
    "gasAmount": "20000",
    "gasPrice": "100000000000",
}


class RoutedUpstream:
    """Answers ``DataHTTPClient.get`` calls by (endpoint, path); unknown routes fail with HTTP 500."""

    def __init__(self):
        self.routes = {}
        self.calls = []

    def __call__(self, endpoint_name, path, params=None, **kwargs):
        self.calls.append((endpoint_name, path))
        answer = self.routes.get((endpoint_name, path))
        if answer is None:
            raise HTTPClientError(f"HTTP 500 for {path}", status_code=500)
        if isinstance(answer, Exception):
            raise answer
        return answer

    def called(self, endpoint_name, path) -> int:
        return self.calls.count((endpoint_name, path))


@pytest.fixture
def upstream(mock_http_client):
    routes = RoutedUpstream()
    mock_http_client.get.side_effect = routes
    return routes


@pytest.fixture
def error_handler():
    return ErrorHandler(enable_detailed_logging=False)


@pytest.fixture
def service(upstream, mock_http_client, clock, error_handler):
    config = AlphDataConfig(rate_limit=RateLimitConfig(min_delay_ms=0))
    return AlephiumDataService(
        config=config,
        http_client=mock_http_client,
        rng=random.Random(3),
        clock=clock,
        error_handler=error_handler,
    )


class TestHistoryFallbackEndToEnd:

    @pytest.mark.asyncio
    async def test_reconstructs_when_history_endpoints_fail(self, service, upstream):
        upstream.routes[("node", BALANCE_PATH)] = {"balance": alph(5)}
        upstream.routes[("explorer_backend", TRANSACTIONS_PATH)] = [RECEIVE_5]

        points = await service.fetch_balance_history(ADDRESS, 7)

        assert len(points) == 8
        assert all(p.source == HistorySource.CALCULATED for p in points)
        assert [p.balance for p in points] == [0.0] * 6 + [5.0, 5.0]
        assert points[-1].date == "2024-01-15"
        for template in HISTORY_ENDPOINTS:
            assert upstream.called("explorer_api", template.format(address=ADDRESS)) == 1

    @pytest.mark.asyncio
    async def test_malformed_timestamp_keeps_the_rest_of_the_page(self, service, upstream):
        upstream.routes[("node", BALANCE_PATH)] = {"balance": alph(5)}
        upstream.routes[("explorer_backend", TRANSACTIONS_PATH)] = [
            RECEIVE_5,
            dict(RECEIVE_5, hash="broken", timestamp="Infinity"),
        ]

        points = await service.fetch_balance_history(ADDRESS, 7)

        assert all(p.source == HistorySource.CALCULATED for p in points)
        assert [p.balance for p in points] == [0.0] * 6 + [5.0, 5.0]
        assert upstream.called("node", UTXOS_PATH) == 0

    @pytest.mark.asyncio
    async def test_explorer_failure_reconstructs_from_utxos(self, service, upstream):
        upstream.routes[("node", BALANCE_PATH)] = {"balance": alph(3)}
        upstream.routes[("node", UTXOS_PATH)] = {"utxos": [
            {"ref": {"hint": 1, "key": "utxo-a"}, "amount": alph(2)},
            {"ref": {"hint": 2, "key": "utxo-b"}, "amount": alph(1)},
        ]}

        points = await service.fetch_balance_history(ADDRESS, 7)

        assert all(p.source == HistorySource.CALCULATED for p in points)
        assert points[-1].balance == 3.0
        assert points[-2].balance == 0.0

    @pytest.mark.asyncio
    async def test_transaction_failure_gives_estimate_anchored_at_balance(self, service, upstream):
        upstream.routes[("node", BALANCE_PATH)] = {"balance": alph(2.5)}

        points = await service.fetch_balance_history(ADDRESS, 7)

        assert len(points) == 8
        assert all(p.source == HistorySource.ESTIMATED for p in points)
        assert points[-1].balance == 2.5
        assert points[-1].date == "2024-01-15"
        assert all(p.balance >= 0 for p in points)
        assert upstream.called("explorer_backend", TRANSACTIONS_PATH) == 1
        assert upstream.called("node", UTXOS_PATH) == 1

    @pytest.mark.asyncio
    async def test_everything_down(self, service, upstream):
        with pytest.raises(HistoryUnavailableError):
            await service.fetch_balance_history(ADDRESS, 7)

    @pytest.mark.asyncio
    async def test_result_is_cached(self, service, upstream):
        upstream.routes[("node", BALANCE_PATH)] = {"balance": alph(5)}
        upstream.routes[("explorer_backend", TRANSACTIONS_PATH)] = [RECEIVE_5]

        first = await service.fetch_balance_history(ADDRESS, 7)
        calls = len(upstream.calls)
        second = await service.fetch_balance_history(ADDRESS, 7)

        assert [p.balance for p in second] == [p.balance for p in first]
        assert len(upstream.calls) == calls


class TestFacadeArguments:

    @pytest.mark.asyncio
    @pytest.mark.parametrize("days", [0, -1])
    async def test_explicit_non_positive_days_are_rejected(self, service, upstream, days):
        with pytest.raises(ValidationError):
            await service.fetch_balance_history(ADDRESS, days)

        assert upstream.calls == []

    @pytest.mark.asyncio
    async def test_absorbed_failures_are_counted(self, service, upstream):
        assert await service.get_address_tokens(ADDRESS) == []

        stats = service.get_error_stats()
        assert stats["total_errors"] == 1
        assert stats["errors_by_type"] == {"HTTPClientError": 1}
        assert stats["errors_by_component"] == {"AlephiumDataService": 1}
