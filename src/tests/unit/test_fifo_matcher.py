# src/tests/unit/test_fifo_matcher.py

import pytest
from datetime import date
from decimal import Decimal
from unittest.mock import MagicMock

from src.core.models.group import GroupKey
from src.logic.cost_objects import PurchaseLot
from src.logic.errors import InvariantViolation
from src.logic.fifo_matcher import FIFOMatcher
from src.logic.lot_store import InMemoryLotStore

GROUP = GroupKey("user-1", "acc-1", "FPT")


@pytest.fixture
def matcher():
    return FIFOMatcher()


@pytest.fixture
def lot_store():
    return InMemoryLotStore()


@pytest.fixture
def two_lots(lot_store):
    """Lot A: 1000 @ 20,000 + 50,000 fee; lot B: 500 @ 22,000 + 30,000 fee."""
    lot_a = lot_store.create_lot("user-1", "acc-1", "FPT", date(2024, 1, 10), 1000, Decimal("20000"), Decimal("50000"), 1)
    lot_b = lot_store.create_lot("user-1", "acc-1", "FPT", date(2024, 2, 10), 500, Decimal("22000"), Decimal("30000"), 2)
    return lot_a, lot_b


def test_match_consumes_oldest_lot_first(matcher, lot_store, two_lots):
    lot_a, lot_b = two_lots

    result = matcher.match(1200, lot_store.list_open_lots(GROUP), lot_store)

    assert result.total_cogs == Decimal("24462000")
    assert result.matched_quantity == 1200
    assert result.unmatched_quantity == 0
    assert result.has_shortfall is False
    assert lot_a.remaining_quantity == 0
    assert lot_b.remaining_quantity == 300

    assert [(c.lot_id, c.quantity) for c in result.consumptions] == [(lot_a.lot_id, 1000), (lot_b.lot_id, 200)]
    assert result.consumptions[0].cost == Decimal("20050000")
    assert result.consumptions[1].cost == Decimal("4412000")
    assert result.consumptions[1].cost_per_share == Decimal("22060")


def test_match_within_first_lot_leaves_later_lots_untouched(matcher, lot_store, two_lots):
    lot_a, lot_b = two_lots

    result = matcher.match(400, lot_store.list_open_lots(GROUP), lot_store)

    assert result.total_cogs == Decimal("8020000")
    assert lot_a.remaining_quantity == 600
    assert lot_b.remaining_quantity == 500
    assert len(result.consumptions) == 1


def test_partial_consumptions_keep_original_unit_cost(matcher, lot_store):
    """Consuming a lot in pieces always uses total_cost / quantity."""
    lot = lot_store.create_lot("user-1", "acc-1", "FPT", date(2024, 1, 1), 4, Decimal("2"), Decimal("2"), 1)

    first = matcher.match(1, lot_store.list_open_lots(GROUP), lot_store)
    second = matcher.match(3, lot_store.list_open_lots(GROUP), lot_store)

    assert first.consumptions[0].cost_per_share == Decimal("2.5")
    assert second.consumptions[0].cost_per_share == Decimal("2.5")
    assert first.total_cogs + second.total_cogs == lot.total_cost
    assert lot.remaining_quantity == 0


def test_match_shortfall_consumes_everything_available(matcher, lot_store, two_lots):
    lot_a, lot_b = two_lots

    result = matcher.match(1600, lot_store.list_open_lots(GROUP), lot_store)

    assert result.matched_quantity == 1500
    assert result.unmatched_quantity == 100
    assert result.has_shortfall is True
    assert result.total_cogs == lot_a.total_cost + lot_b.total_cost
    assert lot_a.remaining_quantity == 0
    assert lot_b.remaining_quantity == 0
    assert lot_store.list_open_lots(GROUP) == []


def test_match_with_no_open_lots(matcher, lot_store):
    result = matcher.match(100, [], lot_store)

    assert result.total_cogs == Decimal(0)
    assert result.matched_quantity == 0
    assert result.unmatched_quantity == 100
    assert result.consumptions == []
    # No lot is fabricated to cover the shortfall.
    assert lot_store.list_lots(GROUP) == []


@pytest.mark.parametrize("quantity", [0, -5])
def test_match_rejects_non_positive_quantity(matcher, lot_store, quantity):
    with pytest.raises(ValueError, match="must be positive"):
        matcher.match(quantity, [], lot_store)


def test_match_propagates_store_failures(matcher):
    """A failed decrement aborts the match instead of being skipped."""
    lot = PurchaseLot(1, "user-1", "acc-1", "FPT", date(2024, 1, 1), 10, Decimal("10"), Decimal("0"), 1)
    store = MagicMock()
    store.decrement_lot.side_effect = InvariantViolation("Simulated decrement failure")

    with pytest.raises(InvariantViolation, match="Simulated decrement failure"):
        matcher.match(5, [lot], store)
    store.decrement_lot.assert_called_once_with(1, 5)
