"""
Daily balance history rebuilt from the transaction log.

Walking backwards from the current balance: the balance at the end of a day
is the current balance minus every delta that happened after that moment.
Points are clamped at zero, since a negative value only means the log is
incomplete. The rebuilt "today" point is checked against the real balance
and a mismatch above the tolerance is logged.
"""

import time
from decimal import Decimal
from typing import Callable, List, Optional, Sequence, Tuple

from loguru import logger

from alphdata.core.rate_limiter import RateLimitedGateway
from alphdata.exceptions import HistoryUnavailableError
from alphdata.models import BalanceHistoryPoint
from alphdata.services.transactions import TransactionService
from alphdata.services.tx_delta import TransactionDeltaCalculator
from alphdata.sources.base import RemoteDataSource
from alphdata.sources.models import ExplorerTransaction
from alphdata.types import HistorySource
from alphdata.utils.dates import days_back, end_of_day, to_epoch_ms, utc_now
from alphdata.utils.formatting import atto_to_alph

SIX_PLACES = Decimal("0.000001")


class BalanceHistoryReconstructor:
    """Reconstruct ``days + 1`` end-of-day balances, oldest first."""

    def __init__(
        self,
        source: RemoteDataSource,
        gateway: RateLimitedGateway,
        transactions: TransactionService,
        delta_calculator: Optional[TransactionDeltaCalculator] = None,
        tolerance: float = 0.001,
        min_transactions: int = 200,
        transactions_per_day: int = 10,
        clock: Callable[[], float] = time.time,
    ):
        self._source = source
        self._gateway = gateway
        self._transactions = transactions
        self._delta = delta_calculator or TransactionDeltaCalculator()
        self.tolerance = Decimal(str(tolerance))
        self.min_transactions = min_transactions
        self.transactions_per_day = transactions_per_day
        self._clock = clock

    def transaction_window(self, days: int) -> int:
        return max(self.min_transactions, self.transactions_per_day * days)

    async def reconstruct(self, address: str, days: int) -> List[BalanceHistoryPoint]:
        """Fetch the balance and transaction log, then rebuild the series.

        Raises:
            HistoryUnavailableError: If no transactions are available
            AlphDataError: If the balance or transaction fetch fails
        """
        balance = await self._gateway.execute(lambda: self._source.get_address_balance(address))
        current_balance = atto_to_alph(balance.balance)

        transactions = await self._transactions.get_address_transactions(address, self.transaction_window(days))
        if not transactions:
            raise HistoryUnavailableError(address, days)

        logger.info(f"[BalanceHistory] Processing {len(transactions)} transactions for {address[:8]}...")
        return self.build_points(address, current_balance, transactions, days)

    def _timed_deltas(self, address: str,
                      transactions: Sequence[ExplorerTransaction]) -> List[Tuple[int, Decimal]]:
        deltas = [
            (tx.timestamp, self._delta.delta(tx, address))
            for tx in transactions
            if tx.timestamp is not None
        ]
        deltas.sort(key=lambda item: item[0])
        return deltas

    def build_points(self, address: str, current_balance: Decimal,
                     transactions: Sequence[ExplorerTransaction], days: int) -> List[BalanceHistoryPoint]:
        deltas = self._timed_deltas(address, transactions)
        today = utc_now(self._clock()).date()

        points = []
        for offset in range(days, -1, -1):
            day_end = end_of_day(days_back(today, offset))
            cutoff = to_epoch_ms(day_end)

            later_change = sum((delta for ts, delta in deltas if ts > cutoff), Decimal(0))
            balance = max(Decimal(0), current_balance - later_change)

            points.append(BalanceHistoryPoint(
                date=day_end.date().isoformat(),
                balance=float(balance.quantize(SIX_PLACES)),
                timestamp=cutoff,
                source=HistorySource.CALCULATED,
            ))

        self._check_discrepancy(address, points, current_balance)

        balances = [p.balance for p in points]
        logger.info(f"[BalanceHistory] Calculated {len(points)} points from {len(deltas)} transactions, "
                    f"range {min(balances):.4f} - {max(balances):.4f} ALPH")
        return points

    def _check_discrepancy(self, address: str, points: List[BalanceHistoryPoint], current_balance: Decimal) -> None:
        difference = abs(Decimal(str(points[-1].balance)) - current_balance)
        if difference > self.tolerance:
            logger.warning(
                f"[BalanceHistory] Balance discrepancy for {address[:8]}...: "
                f"calculated {points[-1].balance} ALPH, actual {current_balance} ALPH, "
                f"difference {difference} ALPH. Complex transactions or missing data are likely."
            )
