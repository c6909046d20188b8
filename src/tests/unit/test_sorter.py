# src/tests/unit/test_sorter.py

import pytest
from datetime import date

from src.core.models.group import GroupKey
from src.logic.sorter import TransactionSorter

@pytest.fixture
def sorter():
    """Provides a TransactionSorter instance for tests."""
    return TransactionSorter()

@pytest.fixture
def mock_transactions(make_transaction):
    """Provides transactions over three groups, deliberately out of order."""
    return [
        make_transaction("SELL", 3, "30", date(2024, 1, 10), transaction_id=5),
        make_transaction("BUY", 10, "10", date(2024, 1, 5), transaction_id=4),
        make_transaction("BUY", 15, "10", date(2024, 1, 5), transaction_id=2),
        make_transaction("BUY", 5, "10", date(2024, 1, 1), transaction_id=6, ticker="vnm"),
        make_transaction("BUY", 8, "10", date(2024, 1, 2), transaction_id=1, account_id="acc-0"),
    ]

def test_sort_transactions_empty(sorter):
    assert sorter.sort_transactions([]) == []

def test_sort_transactions_by_date_then_id(sorter, mock_transactions):
    sorted_txns = sorter.sort_transactions(mock_transactions)

    assert [t.transaction_id for t in sorted_txns] == [6, 1, 2, 4, 5]

def test_sort_transactions_same_date_uses_storage_sequence(sorter, make_transaction):
    """Trades on the same date replay in the order they were recorded, regardless of type or size."""
    txn_sell = make_transaction("SELL", 5, "10", date(2024, 2, 1), transaction_id=3)
    txn_big = make_transaction("BUY", 20, "10", date(2024, 2, 1), transaction_id=2)
    txn_small = make_transaction("BUY", 10, "10", date(2024, 2, 1), transaction_id=1)

    sorted_txns = sorter.sort_transactions([txn_sell, txn_big, txn_small])

    assert [t.transaction_id for t in sorted_txns] == [1, 2, 3]

def test_sort_transactions_returns_new_list(sorter, mock_transactions):
    original = list(mock_transactions)
    sorter.sort_transactions(mock_transactions)
    assert mock_transactions == original

def test_group_transactions(sorter, mock_transactions):
    grouped = sorter.group_transactions(mock_transactions)

    assert list(grouped) == [
        GroupKey("user-1", "acc-0", "FPT"),
        GroupKey("user-1", "acc-1", "FPT"),
        GroupKey("user-1", "acc-1", "VNM"),
    ]
    assert [t.transaction_id for t in grouped[GroupKey("user-1", "acc-1", "FPT")]] == [2, 4, 5]
    assert [t.transaction_id for t in grouped[GroupKey("user-1", "acc-1", "VNM")]] == [6]
