"""
Tests for the balance history fallback chain and the simulator.
"""

import random

import pytest
from unittest.mock import AsyncMock, Mock

from alphdata.cache.caches import BalanceHistoryCache
from alphdata.exceptions import (
    HistoryUnavailableError,
    InvalidAddressError,
    UpstreamUnavailableError,
    ValidationError,
)
from alphdata.models import BalanceHistoryPoint
from alphdata.services.history_orchestrator import BalanceHistoryOrchestrator, BalanceHistorySimulator
from alphdata.sources.models import AddressBalance, HistoryApiPoint
from alphdata.types import HistorySource

from conftest import ADDRESS, alph


def calculated_points(days: int, balance: float = 4.0):
    return [
        BalanceHistoryPoint(
            date=f"2024-01-{15 - offset:02d}",
            balance=balance,
            timestamp=1705363199999 - offset * 86_400_000,
            source=HistorySource.CALCULATED,
        )
        for offset in range(days, -1, -1)
    ]


@pytest.fixture
def explorer_api():
    api = Mock()
    api.fetch_balance_history = AsyncMock(side_effect=UpstreamUnavailableError("no history endpoint"))
    return api


@pytest.fixture
def reconstructor():
    rebuilder = Mock()
    rebuilder.reconstruct = AsyncMock(side_effect=HistoryUnavailableError(ADDRESS, 7))
    return rebuilder


@pytest.fixture
def history_cache(store, clock):
    return BalanceHistoryCache(store, clock=clock)


@pytest.fixture
def orchestrator(mock_source, gateway, explorer_api, reconstructor, history_cache, clock):
    return BalanceHistoryOrchestrator(
        mock_source,
        gateway,
        explorer_api,
        reconstructor,
        history_cache,
        simulator=BalanceHistorySimulator(rng=random.Random(7), clock=clock),
        clock=clock,
    )


class TestFallbackChain:

    @pytest.mark.asyncio
    async def test_api_history_is_preferred(self, orchestrator, explorer_api, reconstructor, history_cache):
        explorer_api.fetch_balance_history.side_effect = None
        explorer_api.fetch_balance_history.return_value = [
            HistoryApiPoint(date="2024-01-14", balance="12.5", timestamp=1705276799999),
            HistoryApiPoint(timestamp="2024-01-15T23:59:59.999Z", amount=13),
        ]

        points = await orchestrator.get_history(ADDRESS, 7)

        assert [p.date for p in points] == ["2024-01-14", "2024-01-15"]
        assert [p.balance for p in points] == [12.5, 13.0]
        assert all(p.source == HistorySource.API for p in points)
        reconstructor.reconstruct.assert_not_awaited()
        assert history_cache.get_cache(ADDRESS, 7) is not None

    @pytest.mark.asyncio
    async def test_falls_back_to_reconstruction(self, orchestrator, reconstructor, history_cache):
        reconstructor.reconstruct.side_effect = None
        reconstructor.reconstruct.return_value = calculated_points(7)

        points = await orchestrator.get_history(ADDRESS, 7)

        assert len(points) == 8
        assert all(p.source == HistorySource.CALCULATED for p in points)
        reconstructor.reconstruct.assert_awaited_once_with(ADDRESS, 7)
        assert history_cache.get_cache(ADDRESS, 7).data[0].source == HistorySource.CALCULATED

    @pytest.mark.asyncio
    async def test_negative_api_balance_falls_through(self, orchestrator, explorer_api, reconstructor):
        explorer_api.fetch_balance_history.side_effect = None
        explorer_api.fetch_balance_history.return_value = [HistoryApiPoint(date="2024-01-15", balance=-1)]
        reconstructor.reconstruct.side_effect = None
        reconstructor.reconstruct.return_value = calculated_points(1)

        points = await orchestrator.get_history(ADDRESS, 1)

        assert points[0].source == HistorySource.CALCULATED

    @pytest.mark.asyncio
    async def test_falls_back_to_estimate_anchored_at_current_balance(self, orchestrator, mock_source):
        mock_source.get_address_balance.return_value = AddressBalance(balance=alph(2.5))

        points = await orchestrator.get_history(ADDRESS, 7)

        assert len(points) == 8
        assert all(p.source == HistorySource.ESTIMATED for p in points)
        assert points[-1].balance == 2.5
        assert points[-1].date == "2024-01-15"
        assert all(p.balance >= 0 for p in points)

    @pytest.mark.asyncio
    async def test_cache_hit_skips_upstream(self, orchestrator, explorer_api, reconstructor):
        reconstructor.reconstruct.side_effect = None
        reconstructor.reconstruct.return_value = calculated_points(7)

        first = await orchestrator.get_history(ADDRESS, 7)
        second = await orchestrator.get_history(ADDRESS, 7)

        assert [p.balance for p in second] == [p.balance for p in first]
        assert explorer_api.fetch_balance_history.await_count == 1
        assert reconstructor.reconstruct.await_count == 1

    @pytest.mark.asyncio
    async def test_expired_cache_refetches(self, orchestrator, reconstructor, clock):
        reconstructor.reconstruct.side_effect = None
        reconstructor.reconstruct.return_value = calculated_points(7)
        await orchestrator.get_history(ADDRESS, 7)

        clock.advance(3600)
        await orchestrator.get_history(ADDRESS, 7)

        assert reconstructor.reconstruct.await_count == 2

    @pytest.mark.asyncio
    async def test_all_branches_failing(self, orchestrator, mock_source):
        mock_source.get_address_balance.side_effect = UpstreamUnavailableError("node down")

        with pytest.raises(HistoryUnavailableError) as exc_info:
            await orchestrator.get_history(ADDRESS, 7)

        assert isinstance(exc_info.value.cause, UpstreamUnavailableError)

    @pytest.mark.asyncio
    async def test_invalid_address(self, orchestrator, explorer_api):
        with pytest.raises(InvalidAddressError):
            await orchestrator.get_history("not-an-address", 7)

        explorer_api.fetch_balance_history.assert_not_awaited()

    @pytest.mark.asyncio
    @pytest.mark.parametrize("days", [0, -3, "7"])
    async def test_invalid_days(self, orchestrator, days):
        with pytest.raises(ValidationError):
            await orchestrator.get_history(ADDRESS, days)

    @pytest.mark.asyncio
    async def test_clear_cache(self, orchestrator, reconstructor):
        reconstructor.reconstruct.side_effect = None
        reconstructor.reconstruct.return_value = calculated_points(7)
        await orchestrator.get_history(ADDRESS, 7)

        assert orchestrator.get_cache_stats()["total_cached"] == 1
        assert orchestrator.clear_cache(ADDRESS) == 1
        assert orchestrator.get_cache_stats()["total_cached"] == 0


class TestBalanceHistorySimulator:

    def test_series_shape(self, clock):
        simulator = BalanceHistorySimulator(rng=random.Random(1), clock=clock)

        points = simulator.simulate(100.0, 30)

        assert len(points) == 31
        assert points[0].date == "2023-12-16"
        assert points[-1].balance == 100.0
        timestamps = [p.timestamp for p in points]
        assert timestamps == sorted(timestamps)
        assert all(t % 86_400_000 == 86_399_999 for t in timestamps)

    def test_zero_balance_stays_zero(self, clock):
        points = BalanceHistorySimulator(rng=random.Random(1), clock=clock).simulate(0.0, 5)

        assert all(p.balance == 0.0 for p in points)
