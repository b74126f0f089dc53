"""
Balance history with a fallback chain.

Order of attempts, each tagging its points with their provenance:

1. Fresh cache entry for (address, days)
2. Explorer history endpoints (``api``)
3. Reconstruction from the transaction log (``calculated``)
4. Synthetic series anchored at the current balance (``estimated``)

Whichever branch produces data is persisted before returning.
"""

import random
import time
from typing import Awaitable, Callable, List, Optional

from loguru import logger

from alphdata.cache.caches import BalanceHistoryCache
from alphdata.core.rate_limiter import RateLimitedGateway
from alphdata.error_handler import Result
from alphdata.exceptions import HistoryUnavailableError, ParseError, ValidationError
from alphdata.models import BalanceHistoryPoint
from alphdata.services.balance_reconstructor import BalanceHistoryReconstructor
from alphdata.sources.base import RemoteDataSource, validate_address
from alphdata.sources.explorer_api import ExplorerApiSource
from alphdata.sources.models import HistoryApiPoint
from alphdata.types import HistorySource
from alphdata.utils.dates import days_back, end_of_day, iso_date, parse_timestamp_ms, to_epoch_ms, utc_now
from alphdata.utils.formatting import atto_to_alph, to_decimal

Branch = Callable[[str, int], Awaitable[List[BalanceHistoryPoint]]]


class BalanceHistorySimulator:
    """Plausible random walk ending exactly at the current balance.

    Starts at 70-90% of the current balance, moves up to 5% per day with a
    slight upward drift towards today.
    """

    def __init__(self, rng: Optional[random.Random] = None, clock: Callable[[], float] = time.time):
        self._rng = rng or random.Random()
        self._clock = clock

    def simulate(self, current_balance: float, days: int) -> List[BalanceHistoryPoint]:
        today = utc_now(self._clock()).date()
        balance = current_balance * self._rng.uniform(0.7, 0.9)

        points = []
        for offset in range(days, -1, -1):
            trend = (days - offset) / days * 0.3
            balance = balance * (1 + self._rng.uniform(-0.05, 0.05) + trend * 0.001)
            if offset == 0:
                balance = current_balance

            day_end = end_of_day(days_back(today, offset))
            points.append(BalanceHistoryPoint(
                date=day_end.date().isoformat(),
                balance=round(max(balance, 0.0), 4),
                timestamp=to_epoch_ms(day_end),
                source=HistorySource.ESTIMATED,
            ))

        logger.info(f"[BalanceHistory] Generated {len(points)} simulated points")
        return points


class BalanceHistoryOrchestrator:
    """Entry point for balance history with cache, fallbacks and persistence."""

    def __init__(
        self,
        source: RemoteDataSource,
        gateway: RateLimitedGateway,
        explorer_api: ExplorerApiSource,
        reconstructor: BalanceHistoryReconstructor,
        cache: BalanceHistoryCache,
        simulator: Optional[BalanceHistorySimulator] = None,
        clock: Callable[[], float] = time.time,
    ):
        self._source = source
        self._gateway = gateway
        self._explorer_api = explorer_api
        self._reconstructor = reconstructor
        self._cache = cache
        self._simulator = simulator or BalanceHistorySimulator(clock=clock)
        self._clock = clock

    async def get_history(self, address: str, days: int = 30) -> List[BalanceHistoryPoint]:
        """Daily balance history of ``address``.

        Raises:
            ValidationError: For a malformed address or non-positive ``days``
            HistoryUnavailableError: If every branch failed and nothing is cached
        """
        validate_address(address)
        if not isinstance(days, int) or isinstance(days, bool) or days < 1:
            raise ValidationError(f"days must be a positive integer, got {days!r}")

        logger.info(f"[BalanceHistory] Fetching {days} days of history for {address[:8]}...")

        cached = self._cache.get_cache(address, days)
        if cached is not None:
            logger.info(f"[BalanceHistory] Using cached data for {address[:8]}...")
            return cached.data

        branches = (
            ("explorer API", self._from_explorer),
            ("transaction reconstruction", self._reconstructor.reconstruct),
            ("simulation", self._simulate),
        )

        last_error = None
        for name, branch in branches:
            result = await self._run_branch(branch, address, days)
            if result.ok and result.value:
                points = result.value
                logger.info(f"[BalanceHistory] {name} produced {len(points)} points")
                self._cache.set_cache(address, days, points)
                return points
            last_error = result.error
            logger.info(f"[BalanceHistory] {name} unavailable for {address[:8]}...: "
                        f"{result.error.message if result.error else 'no data'}")

        raise HistoryUnavailableError(address, days, cause=last_error)

    @staticmethod
    async def _run_branch(branch: Branch, address: str, days: int) -> Result[List[BalanceHistoryPoint]]:
        try:
            return Result.success(await branch(address, days))
        except Exception as e:
            return Result.failure(e)

    async def _from_explorer(self, address: str, days: int) -> List[BalanceHistoryPoint]:
        api_points = await self._explorer_api.fetch_balance_history(address, days)
        return [self._api_point(point) for point in api_points]

    def _api_point(self, point: HistoryApiPoint) -> BalanceHistoryPoint:
        timestamp = parse_timestamp_ms(point.timestamp)
        if timestamp is None:
            timestamp = int(self._clock() * 1000)

        date = point.date
        if not date and isinstance(point.timestamp, str) and "T" in point.timestamp:
            date = point.timestamp.split("T")[0]
        if not date:
            date = iso_date(utc_now(timestamp / 1000))

        raw_balance = point.balance if point.balance not in (None, "") else point.amount
        balance = to_decimal(raw_balance)
        if balance < 0:
            raise ParseError("balance history point", f"negative balance {raw_balance!r}")

        return BalanceHistoryPoint(
            date=date,
            balance=float(balance),
            timestamp=timestamp,
            source=HistorySource.API,
        )

    async def _simulate(self, address: str, days: int) -> List[BalanceHistoryPoint]:
        balance = await self._gateway.execute(lambda: self._source.get_address_balance(address))
        return self._simulator.simulate(float(atto_to_alph(balance.balance)), days)

    def clear_cache(self, address: Optional[str] = None) -> int:
        return self._cache.clear_cache(address)

    def get_cache_stats(self):
        return self._cache.get_stats()
