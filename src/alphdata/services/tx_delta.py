"""
Net base-asset change of one address in one transaction.

Inputs owned by the address leave it, outputs to the address arrive, and the
fee payer (the owner of the first input) also pays ``gasAmount * gasPrice``.
Token transfers riding on the same inputs/outputs never count towards the
ALPH delta. Failed scripts still burn gas, which the fee rule already covers.
"""

from decimal import Decimal
from typing import Any, Mapping, Union

from loguru import logger

from alphdata.exceptions import AlphDataError
from alphdata.sources.base import parse_payload
from alphdata.sources.models import ExplorerTransaction
from alphdata.utils.formatting import ATTO_PER_ALPH, atto_to_alph, to_decimal

TransactionLike = Union[ExplorerTransaction, Mapping[str, Any]]

ZERO = Decimal(0)


class TransactionDeltaCalculator:
    """Compute signed ALPH deltas. Malformed transactions contribute zero."""

    def delta(self, transaction: TransactionLike, address: str) -> Decimal:
        try:
            tx = transaction if isinstance(transaction, ExplorerTransaction) else \
                parse_payload(ExplorerTransaction, transaction, "transaction")
            return self._compute(tx, address)
        except (AlphDataError, ArithmeticError, TypeError, ValueError) as e:
            tx_hash = self._hash_of(transaction)
            logger.warning(f"[TxDelta] Error parsing transaction {tx_hash[:8]}: {e}")
            return ZERO

    @staticmethod
    def _hash_of(transaction: TransactionLike) -> str:
        if isinstance(transaction, ExplorerTransaction):
            return transaction.hash or "unknown"
        if isinstance(transaction, Mapping):
            return str(transaction.get("hash") or "unknown")
        return "unknown"

    def _compute(self, tx: ExplorerTransaction, address: str) -> Decimal:
        change = ZERO
        moved_tokens = False

        for tx_input in tx.inputs:
            if tx_input.address != address:
                continue
            amount = atto_to_alph(tx_input.atto_alph_amount)
            if amount > 0:
                change -= amount
            moved_tokens = moved_tokens or bool(tx_input.tokens)

        for tx_output in tx.outputs:
            if tx_output.address != address:
                continue
            amount = atto_to_alph(tx_output.atto_alph_amount)
            if amount > 0:
                change += amount
            moved_tokens = moved_tokens or bool(tx_output.tokens)

        if tx.inputs and tx.inputs[0].address == address:
            gas_cost = to_decimal(tx.gas_amount) * to_decimal(tx.gas_price) / ATTO_PER_ALPH
            if gas_cost > 0:
                change -= gas_cost

        short_hash = (tx.hash or "unknown")[:8]
        if moved_tokens and change != 0:
            logger.debug(f"[TxDelta] Swap/exchange: {change:+.6f} ALPH plus tokens for {address[:8]}... in {short_hash}")
        elif moved_tokens:
            logger.debug(f"[TxDelta] Token-only transaction for {address[:8]}... in {short_hash}")

        if not tx.script_execution_ok:
            logger.debug(f"[TxDelta] Failed script in {short_hash}, gas still consumed")

        return change
