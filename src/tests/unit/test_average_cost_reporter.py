# src/tests/unit/test_average_cost_reporter.py

import pytest
from datetime import date
from decimal import Decimal

from src.core.models.group import GroupKey
from src.logic.average_cost_reporter import AverageCostReporter
from src.logic.lot_store import InMemoryLotStore

GROUP = GroupKey("user-1", "acc-1", "FPT")


@pytest.fixture
def reporter():
    return AverageCostReporter()


@pytest.fixture
def lot_store():
    store = InMemoryLotStore()
    store.create_lot("user-1", "acc-1", "FPT", date(2024, 1, 10), 1000, Decimal("20000"), Decimal("50000"), 1)
    store.create_lot("user-1", "acc-1", "FPT", date(2024, 2, 10), 500, Decimal("22000"), Decimal("30000"), 2)
    return store


def test_summarize_full_lots(reporter, lot_store):
    summary = reporter.summarize(GROUP, lot_store.list_open_lots(GROUP))

    assert summary.total_quantity == 1500
    assert summary.total_cost == Decimal("31080000")
    assert summary.average_cost == Decimal("20720")
    assert [lot.lot_id for lot in summary.open_lots] == [1, 2]


def test_summarize_after_partial_consumption(reporter, lot_store):
    """Each lot contributes its original unit cost for the shares still held."""
    lot_store.decrement_lot(1, 1000)
    lot_store.decrement_lot(2, 200)

    summary = reporter.summarize(GROUP, lot_store.list_lots(GROUP))

    assert summary.total_quantity == 300
    assert summary.total_cost == Decimal("6618000")
    assert summary.average_cost == Decimal("22060")
    assert [lot.lot_id for lot in summary.open_lots] == [2]
    assert summary.open_lots[0].remaining_quantity == 300


def test_summarize_nothing_open(reporter):
    summary = reporter.summarize(GROUP, [])

    assert summary.total_quantity == 0
    assert summary.total_cost == Decimal(0)
    assert summary.average_cost == Decimal(0)
    assert summary.open_lots == []


def test_summarize_portfolio_orders_by_account_then_ticker(reporter, lot_store):
    lot_store.create_lot("user-1", "acc-1", "ACB", date(2024, 1, 1), 100, Decimal("25000"), Decimal("0"), 3)
    lot_store.create_lot("user-1", "acc-0", "VNM", date(2024, 1, 1), 10, Decimal("70000"), Decimal("0"), 4)
    closed = lot_store.create_lot("user-1", "acc-2", "HPG", date(2024, 1, 1), 10, Decimal("30000"), Decimal("0"), 5)
    lot_store.decrement_lot(closed.lot_id, 10)

    all_lots = [lot for group in lot_store.groups() for lot in lot_store.list_lots(group)]
    positions = reporter.summarize_portfolio(all_lots)

    assert [(p.account_id, p.ticker) for p in positions] == [("acc-0", "VNM"), ("acc-1", "ACB"), ("acc-1", "FPT")]
    assert positions[2].total_quantity == 1500
