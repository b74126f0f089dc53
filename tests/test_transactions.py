"""
Tests for transaction log paging, the UTXO fallback and token feeds.
"""

import pytest

from alphdata.exceptions import UpstreamUnavailableError
from alphdata.services.transactions import TransactionService, transactions_from_utxos
from alphdata.services.tx_delta import TransactionDeltaCalculator
from alphdata.sources.models import ExplorerTransaction, UtxoList

from conftest import ADDRESS, alph, token_id


def make_txs(count: int, start_ts: int = 1705320000000, prefix: str = "tx"):
    return [
        ExplorerTransaction(hash=f"{prefix}{i}", timestamp=start_ts - i * 1000)
        for i in range(count)
    ]


@pytest.fixture
def service(mock_source, gateway, clock):
    return TransactionService(mock_source, gateway, clock=clock)


@pytest.fixture
def utxos():
    return UtxoList.model_validate({"utxos": [
        {"ref": {"hint": 1, "key": "utxo-a"}, "amount": alph(2),
         "tokens": [{"id": token_id(1), "amount": "100"}]},
        {"ref": {"hint": 2, "key": "utxo-b"}, "amount": alph(0.5)},
    ]})


class TestAddressTransactions:

    @pytest.mark.asyncio
    async def test_pages_until_limit(self, service, mock_source):
        mock_source.get_address_transactions.side_effect = [
            make_txs(100, prefix="p1-"),
            make_txs(100, prefix="p2-"),
            make_txs(100, prefix="p3-"),
        ]

        transactions = await service.get_address_transactions(ADDRESS, 250)

        assert len(transactions) == 250
        pages = [call.kwargs["page"] for call in mock_source.get_address_transactions.await_args_list]
        limits = {call.kwargs["limit"] for call in mock_source.get_address_transactions.await_args_list}
        assert pages == [1, 2, 3]
        assert limits == {100}

    @pytest.mark.asyncio
    async def test_short_page_ends_paging(self, service, mock_source):
        mock_source.get_address_transactions.return_value = make_txs(5)

        transactions = await service.get_address_transactions(ADDRESS, 20)

        assert len(transactions) == 5
        assert mock_source.get_address_transactions.await_count == 1

    @pytest.mark.asyncio
    async def test_falls_back_to_utxos(self, service, mock_source, utxos):
        mock_source.get_address_transactions.side_effect = UpstreamUnavailableError("explorer down")
        mock_source.get_address_utxos.return_value = utxos

        transactions = await service.get_address_transactions(ADDRESS, 20)

        assert [tx.hash for tx in transactions] == ["utxo-a", "utxo-b"]
        assert transactions[0].timestamp - transactions[1].timestamp == 3_600_000
        assert transactions[0].outputs[0].address == ADDRESS
        assert transactions[0].outputs[0].tokens[0].amount == "100"

    @pytest.mark.asyncio
    async def test_unconverted_parse_failure_still_falls_back(self, service, mock_source, utxos):
        mock_source.get_address_transactions.side_effect = OverflowError("cannot convert float infinity to integer")
        mock_source.get_address_utxos.return_value = utxos

        transactions = await service.get_address_transactions(ADDRESS, 20)

        assert [tx.hash for tx in transactions] == ["utxo-a", "utxo-b"]
        mock_source.get_address_utxos.assert_awaited_once_with(ADDRESS)

    @pytest.mark.asyncio
    async def test_raises_when_fallback_fails_too(self, service, mock_source):
        mock_source.get_address_transactions.side_effect = UpstreamUnavailableError("explorer down")
        mock_source.get_address_utxos.side_effect = UpstreamUnavailableError("node down")

        with pytest.raises(UpstreamUnavailableError, match="node down"):
            await service.get_address_transactions(ADDRESS, 20)


class TestTransactionsFromUtxos:

    def test_receive_only_and_capped(self, utxos):
        transactions = transactions_from_utxos(ADDRESS, utxos, limit=1, now_ms=1705320000000)

        assert len(transactions) == 1
        assert transactions[0].timestamp == 1705320000000
        assert transactions[0].inputs[0].address == "unknown"

    def test_delta_counts_the_received_amount(self, utxos):
        transactions = transactions_from_utxos(ADDRESS, utxos, limit=10, now_ms=1705320000000)
        calculator = TransactionDeltaCalculator()

        assert sum(calculator.delta(tx, ADDRESS) for tx in transactions) == 2.5


class TestTokenTransactions:

    @pytest.mark.asyncio
    async def test_failure_gives_empty_list(self, service, mock_source):
        mock_source.fetch_token_transactions.side_effect = UpstreamUnavailableError("explorer down")

        assert await service.fetch_token_transactions(token_id(1)) == []

    @pytest.mark.asyncio
    async def test_latest_across_tokens(self, service, mock_source):
        feeds = {
            token_id(1): make_txs(2, start_ts=1705320000000, prefix="a"),
            token_id(2): make_txs(2, start_ts=1705320500000, prefix="b"),
        }
        mock_source.fetch_token_transactions.side_effect = lambda tid, limit: feeds[tid]

        latest = await service.fetch_latest_token_transactions([token_id(1), token_id(2)], limit=3)

        assert [tx.hash for tx in latest] == ["b0", "b1", "a0"]
        assert latest[0].token_id == token_id(2)
        assert latest[2].token_id == token_id(1)
        assert all(call.args[1] == 2 for call in mock_source.fetch_token_transactions.await_args_list)
