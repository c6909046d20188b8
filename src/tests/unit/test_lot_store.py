# src/tests/unit/test_lot_store.py

import pytest
from datetime import date
from decimal import Decimal

from src.core.models.group import GroupKey
from src.logic.errors import InvariantViolation
from src.logic.lot_store import InMemoryLotStore

GROUP = GroupKey("user-1", "acc-1", "FPT")
OTHER_GROUP = GroupKey("user-1", "acc-2", "FPT")


@pytest.fixture
def lot_store():
    """Provides an empty InMemoryLotStore for each test."""
    return InMemoryLotStore()


def _create(store, group, purchase_date, quantity, price, fee="0", source_id=None):
    return store.create_lot(
        owner_id=group.owner_id,
        account_id=group.account_id,
        ticker=group.ticker,
        purchase_date=purchase_date,
        quantity=quantity,
        price_per_share=Decimal(price),
        buy_fee=Decimal(fee),
        source_transaction_id=source_id,
    )


def test_create_lot_computes_total_cost(lot_store):
    lot = _create(lot_store, GROUP, date(2024, 1, 10), 1000, "20000", "50000", source_id=1)

    assert lot.total_cost == Decimal("20050000")
    assert lot.remaining_quantity == 1000
    assert lot.cost_per_share == Decimal("20050")
    assert lot.group_key == GROUP


def test_list_open_lots_orders_by_purchase_date_then_source(lot_store):
    """Lots created out of order still come back in FIFO order."""
    late = _create(lot_store, GROUP, date(2024, 3, 1), 10, "10", source_id=3)
    same_day_second = _create(lot_store, GROUP, date(2024, 1, 1), 10, "10", source_id=2)
    same_day_first = _create(lot_store, GROUP, date(2024, 1, 1), 10, "10", source_id=1)

    lots = lot_store.list_open_lots(GROUP)

    assert [lot.lot_id for lot in lots] == [same_day_first.lot_id, same_day_second.lot_id, late.lot_id]


def test_list_open_lots_excludes_exhausted_lots(lot_store):
    first = _create(lot_store, GROUP, date(2024, 1, 1), 10, "10", source_id=1)
    second = _create(lot_store, GROUP, date(2024, 1, 2), 10, "10", source_id=2)

    lot_store.decrement_lot(first.lot_id, 10)

    assert [lot.lot_id for lot in lot_store.list_open_lots(GROUP)] == [second.lot_id]
    assert [lot.lot_id for lot in lot_store.list_lots(GROUP)] == [first.lot_id, second.lot_id]


def test_groups_are_isolated(lot_store):
    _create(lot_store, GROUP, date(2024, 1, 1), 10, "10", source_id=1)
    other = _create(lot_store, OTHER_GROUP, date(2024, 1, 1), 5, "10", source_id=2)

    assert [lot.lot_id for lot in lot_store.list_open_lots(OTHER_GROUP)] == [other.lot_id]
    assert lot_store.list_open_lots(GroupKey("user-2", "acc-1", "FPT")) == []


def test_decrement_lot_returns_remaining(lot_store):
    lot = _create(lot_store, GROUP, date(2024, 1, 1), 10, "10", source_id=1)

    assert lot_store.decrement_lot(lot.lot_id, 4) == 6
    assert lot.remaining_quantity == 6
    # total_cost never changes with consumption
    assert lot.total_cost == Decimal("100")


@pytest.mark.parametrize("amount", [0, -1, 11])
def test_decrement_lot_rejects_invalid_amounts(lot_store, amount):
    lot = _create(lot_store, GROUP, date(2024, 1, 1), 10, "10", source_id=1)

    with pytest.raises(InvariantViolation):
        lot_store.decrement_lot(lot.lot_id, amount)
    assert lot.remaining_quantity == 10


def test_decrement_unknown_lot_raises(lot_store):
    with pytest.raises(InvariantViolation, match="does not exist"):
        lot_store.decrement_lot(999, 1)


def test_delete_all_lots_for_one_group(lot_store):
    _create(lot_store, GROUP, date(2024, 1, 1), 10, "10", source_id=1)
    _create(lot_store, GROUP, date(2024, 1, 2), 10, "10", source_id=2)
    _create(lot_store, OTHER_GROUP, date(2024, 1, 1), 10, "10", source_id=3)

    assert lot_store.delete_all_lots(GROUP) == 2
    assert lot_store.list_lots(GROUP) == []
    assert len(lot_store.list_lots(OTHER_GROUP)) == 1
    assert lot_store.groups() == [OTHER_GROUP]


def test_delete_all_lots_without_scope(lot_store):
    _create(lot_store, GROUP, date(2024, 1, 1), 10, "10", source_id=1)
    _create(lot_store, OTHER_GROUP, date(2024, 1, 1), 10, "10", source_id=2)

    assert lot_store.delete_all_lots() == 2
    assert lot_store.groups() == []
